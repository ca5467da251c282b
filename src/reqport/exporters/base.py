"""Exporter registry and helpers shared by the serializers.

Every target format is a plain function ``(Collection) -> str`` registered
against an :class:`~reqport.models.ExportFormat` with
:func:`register_exporter`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Union

from reqport.exceptions import InvalidUsageError
from reqport.models import Collection, ExportFormat

logger = logging.getLogger(__name__)

Exporter = Callable[[Collection], str]

_EXPORTERS: dict[ExportFormat, Exporter] = {}


def register_exporter(fmt: ExportFormat) -> Callable[[Exporter], Exporter]:
    """Function decorator registering a serializer for *fmt*."""

    def decorator(func: Exporter) -> Exporter:
        _EXPORTERS[fmt] = func
        logger.debug("Registered exporter '%s' for %s", func.__name__, fmt.value)
        return func

    return decorator


def resolve_export_format(fmt: Union[ExportFormat, str]) -> ExportFormat:
    """Convert a format name into an :class:`ExportFormat`.

    Raises:
        InvalidUsageError: If *fmt* names no known export format.
    """
    if isinstance(fmt, ExportFormat):
        return fmt
    try:
        return ExportFormat(str(fmt).strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in ExportFormat)
        raise InvalidUsageError(
            f"Unsupported export format: {fmt!r}. Valid formats: {valid}"
        ) from None


def get_exporter(fmt: Union[ExportFormat, str]) -> Exporter:
    """Return the serializer registered for *fmt*.

    Raises:
        InvalidUsageError: If *fmt* is unknown or has no serializer.
    """
    fmt = resolve_export_format(fmt)
    try:
        return _EXPORTERS[fmt]
    except KeyError:
        raise InvalidUsageError(f"No exporter registered for format: {fmt.value}") from None


def dump_json(document: Any) -> str:
    """Pretty-print *document* the way every JSON exporter writes it."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def prune(document: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values from *document* (one level deep)."""
    return {key: value for key, value in document.items() if value is not None}
