"""Single entry point for importing text in any supported format.

:func:`import_file` detects (or accepts) the source format, runs the
registered parser, and then post-processes the result:

* **Variable analysis** -- for Postman and Insomnia collections, reports
  dynamic variables, Insomnia template tags, and used-vs-defined mismatches.
  Postman collection variables are also surfaced as a ``Collection
  Variables`` environment.
* **Name normalisation** (opt-in) -- rewrites collection and environment
  variable keys into valid identifiers and resolves the collisions that
  produces.

:func:`get_supported_formats` exposes the static format registry used to
build format pickers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from reqport.detect import detect_format
from reqport.exceptions import InvalidUsageError, UnknownFormatError, ValidationError
from reqport.importers.base import get_parser
from reqport.models import (
    Collection,
    Environment,
    FormatInfo,
    ImportConfig,
    ImportFormat,
    ImportResult,
    ImportWarning,
    Variable,
)
from reqport.variables import EnvVarMapper

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: tuple[FormatInfo, ...] = (
    FormatInfo(
        id=ImportFormat.POSTMAN,
        name="Postman",
        description="Import Postman collections and environments",
        extensions=[".json", ".postman_collection.json", ".postman_environment.json"],
    ),
    FormatInfo(
        id=ImportFormat.INSOMNIA,
        name="Insomnia",
        description="Import Insomnia workspaces and environments",
        extensions=[".json", ".yaml", ".yml"],
    ),
    FormatInfo(
        id=ImportFormat.OPENAPI,
        name="OpenAPI / Swagger",
        description="Import OpenAPI 3.x or Swagger 2.0 specifications",
        extensions=[".json", ".yaml", ".yml"],
    ),
    FormatInfo(
        id=ImportFormat.CURL,
        name="cURL",
        description="Import cURL commands",
        extensions=[".txt", ".sh"],
    ),
    FormatInfo(
        id=ImportFormat.HAR,
        name="HAR",
        description="Import HTTP Archive files (coming soon)",
        extensions=[".har"],
        supported=False,
    ),
)

_ANALYZED_FORMATS = frozenset({ImportFormat.POSTMAN, ImportFormat.INSOMNIA})


@dataclass
class ImportOptions:
    """Post-processing switches for :func:`import_file`.

    Attributes:
        analyze_variables: Report dynamic variables, template tags, and
            used/defined mismatches.
        normalize_variable_names: Rewrite variable keys into valid
            identifiers; later values win on collisions.
    """

    analyze_variables: bool = True
    normalize_variable_names: bool = False

    @classmethod
    def from_config(cls, config: ImportConfig) -> ImportOptions:
        return cls(
            analyze_variables=config.analyze_variables,
            normalize_variable_names=config.normalize_variable_names,
        )


def resolve_format(format_hint: Union[ImportFormat, str, None]) -> Optional[ImportFormat]:
    """Convert a user-supplied format hint into an :class:`ImportFormat`.

    Raises:
        InvalidUsageError: If *format_hint* names no known format.
    """
    if format_hint is None or isinstance(format_hint, ImportFormat):
        return format_hint
    try:
        return ImportFormat(format_hint.strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in ImportFormat if f is not ImportFormat.UNKNOWN)
        raise InvalidUsageError(
            f"Unknown import format: {format_hint!r}. Valid formats: {valid}"
        ) from None


def import_file(
    text: str,
    format_hint: Union[ImportFormat, str, None] = None,
    options: Optional[ImportOptions] = None,
) -> ImportResult:
    """Import *text* into canonical models.

    Args:
        text: Raw source text.
        format_hint: Skip detection and parse as this format.
        options: Post-processing switches; defaults to
            :class:`ImportOptions` defaults.

    Returns:
        The parsed :class:`~reqport.models.ImportResult` with every warning
        attached.

    Raises:
        InvalidUsageError: If *format_hint* is not a known format.
        UnknownFormatError: If the format cannot be detected.
        ValidationError: If the input is malformed.
        UnsupportedFeatureError: For HAR input and YAML OpenAPI documents.
    """
    options = options or ImportOptions()
    fmt = resolve_format(format_hint)
    if fmt is None:
        fmt = detect_format(text)
    if fmt is ImportFormat.UNKNOWN:
        raise UnknownFormatError(
            "Unable to detect import format. Please specify the format explicitly."
        )

    parser = get_parser(fmt)
    try:
        result = parser.import_text(text)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {fmt.value} input: {exc}") from exc

    # Analysis works on normalised keys.
    if options.normalize_variable_names:
        _normalize_variables(result)
    if options.analyze_variables and fmt in _ANALYZED_FORMATS:
        _analyze_variables(fmt, result)

    logger.debug(
        "Imported %s input as %s with %d warning(s)",
        fmt.value,
        result.type,
        len(result.warnings),
    )
    return result


def get_supported_formats() -> list[FormatInfo]:
    """Return the format registry, HAR included but flagged unsupported."""
    return [info.model_copy() for info in SUPPORTED_FORMATS]


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------


def _analyze_variables(fmt: ImportFormat, result: ImportResult) -> None:
    collections = result.collections()
    if not collections:
        return

    mapper = EnvVarMapper()
    requests = [r for c in collections for r in c.iter_requests()]
    warnings: list[ImportWarning] = []
    warnings.extend(mapper.check_dynamic_variables(requests))
    warnings.extend(mapper.check_insomnia_template_tags(requests))

    used = mapper.extract_used_variables(requests)
    defined = [v.key for c in collections for v in c.variables]
    defined.extend(v.key for env in result.environments for v in env.variables)
    warnings.extend(mapper.validate_variables(used, defined))

    if fmt is ImportFormat.POSTMAN:
        for collection in collections:
            mapped = mapper.map_collection_variables(collection.variables)
            result.environments.extend(mapped.environments)
            warnings.extend(mapped.warnings)

    logger.debug("Variable analysis produced %d warning(s)", len(warnings))
    result.warnings.extend(warnings)


def _dedupe(variables: Iterable[Variable]) -> list[Variable]:
    """Collapse variables sharing a key; the later value wins, first position kept."""
    by_key: dict[str, Variable] = {}
    for variable in variables:
        if variable.key in by_key:
            logger.debug("Duplicate variable %s: keeping later value", variable.key)
        by_key[variable.key] = variable
    return list(by_key.values())


def _normalize_variables(result: ImportResult) -> None:
    mapper = EnvVarMapper()
    holders: list[Union[Collection, Environment]] = [*result.collections(), *result.environments]
    if isinstance(result.data, Environment):
        holders.append(result.data)

    renames: dict[str, str] = {}
    for holder in holders:
        variables, warnings = mapper.normalize_variable_names(holder.variables)
        renames.update((v.original_key, v.key) for v in variables if v.original_key)
        holder.variables = _dedupe(variables)
        result.warnings.extend(warnings)

    requests = [r for c in result.collections() for r in c.iter_requests()]
    mapper.rename_request_variables(requests, renames)
