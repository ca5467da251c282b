"""Parser contract, parser registry, and helpers shared by all importers.

Every source format is handled by a subclass of :class:`FormatParser`
registered against an :class:`~reqport.models.ImportFormat` with the
:func:`register_parser` decorator. The orchestrator looks parsers up with
:func:`get_parser`, which returns a fresh instance per call so that no
state (such as accumulated warnings) leaks between imports.

Example:
    Adding a format::

        @register_parser(ImportFormat.CURL)
        class CurlParser(FormatParser):
            def parse(self, text):
                ...
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar, Union
from urllib.parse import unquote_plus

from reqport.exceptions import InvalidUsageError, ValidationError
from reqport.models import (
    Collection,
    Environment,
    ImportFormat,
    ImportResult,
    ImportWarning,
    KeyValue,
    Request,
    WarningType,
    new_id,
)

logger = logging.getLogger(__name__)

Parsed = Union[Collection, Environment, Request, list[Collection], list[Request]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def stringify(value: Any) -> str:
    """Render a source scalar as a string.

    Strings pass through unchanged and ``None`` becomes ``""``; everything
    else is JSON-encoded, so ``True`` becomes ``"true"`` and ``{"a": 1}``
    becomes ``'{"a": 1}'``.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def split_query(url: str) -> tuple[str, list[tuple[str, str]]]:
    """Split the query string off *url*.

    Works on URLs containing ``{{variable}}`` placeholders, which the
    standard URL parsers reject or mangle. A fragment stays on the URL.

    Returns:
        ``(url_without_query, [(key, value), ...])`` with keys and values
        percent-decoded.
    """
    base, sep, rest = url.partition("?")
    if not sep:
        return url, []
    query, hash_sep, fragment = rest.partition("#")
    if hash_sep:
        base = f"{base}#{fragment}"
    pairs: list[tuple[str, str]] = []
    for part in query.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        pairs.append((unquote_plus(key), unquote_plus(value)))
    return base, pairs


def key_value(
    key: str,
    value: Any = "",
    enabled: bool = True,
    description: Optional[str] = None,
) -> KeyValue:
    """Build a :class:`~reqport.models.KeyValue` with a fresh id."""
    return KeyValue(
        id=new_id(),
        key=key,
        value=stringify(value),
        enabled=enabled,
        description=description or None,
    )


def load_json(text: str, what: str = "JSON") -> Any:
    """Parse *text* as JSON, raising :class:`ValidationError` on failure.

    Args:
        text: Raw input.
        what: Name of the expected document, used in the error message.
    """
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise ValidationError(f"Invalid {what}: {exc}") from exc


# ---------------------------------------------------------------------------
# Parser contract
# ---------------------------------------------------------------------------


class FormatParser(ABC):
    """Base class for source-format parsers.

    Subclasses implement :meth:`parse`, which turns raw text into the
    format's natural canonical value. Non-fatal problems are appended to
    :attr:`warnings` through :meth:`warn`. Parsers never perform I/O.

    :meth:`import_text` wraps :meth:`parse` into an
    :class:`~reqport.models.ImportResult`; parsers that produce extra
    output (such as environments) override it.
    """

    format: ImportFormat = ImportFormat.UNKNOWN

    def __init__(self) -> None:
        self.warnings: list[ImportWarning] = []

    @abstractmethod
    def parse(self, text: str) -> Parsed:
        """Parse *text* into canonical models.

        Raises:
            ValidationError: If the input is malformed or unsupported.
        """
        ...

    def warn(self, type: WarningType, message: str, **fields: Any) -> None:
        """Record a non-fatal warning."""
        self.warnings.append(ImportWarning(type=type, message=message, **fields))

    def import_text(self, text: str) -> ImportResult:
        """Parse *text* and wrap the value and warnings in an ImportResult."""
        data = self.parse(text)
        return ImportResult(
            type=result_type(data),
            data=data,
            warnings=list(self.warnings),
        )


def result_type(data: Parsed) -> str:
    """Return the :class:`~reqport.models.ImportResult` type tag for *data*."""
    if isinstance(data, Environment):
        return "environment"
    if isinstance(data, Request):
        return "request"
    if isinstance(data, list) and data and isinstance(data[0], Request):
        return "requests"
    return "collection"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_PARSERS: dict[ImportFormat, type[FormatParser]] = {}

P = TypeVar("P", bound=type[FormatParser])


def register_parser(fmt: ImportFormat) -> Callable[[P], P]:
    """Class decorator registering a :class:`FormatParser` for *fmt*."""

    def decorator(cls: P) -> P:
        cls.format = fmt
        _PARSERS[fmt] = cls
        logger.debug("Registered parser '%s' for %s", cls.__name__, fmt.value)
        return cls

    return decorator


def get_parser(fmt: ImportFormat) -> FormatParser:
    """Return a fresh parser instance for *fmt*.

    Raises:
        InvalidUsageError: If no parser is registered for *fmt*.
    """
    try:
        cls = _PARSERS[fmt]
    except KeyError:
        raise InvalidUsageError(f"No parser registered for format: {fmt.value}") from None
    return cls()


def registered_formats() -> list[ImportFormat]:
    """Return the formats that have a registered parser, in registration order."""
    return list(_PARSERS)
