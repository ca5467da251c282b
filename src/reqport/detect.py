"""Classify raw input text into one of the supported source formats.

:func:`detect_format` is total: it never raises, whatever the input. It
returns :attr:`~reqport.models.ImportFormat.UNKNOWN` for empty text,
arbitrary text, non-object JSON, and JSON objects that match no known
signature.

Checks run in a fixed order and the first match wins:

1. text starting with ``curl`` -> cURL
2. a JSON object carrying a known signature -> Insomnia, Postman, HAR,
   or OpenAPI
3. non-JSON text mentioning ``openapi:``, ``swagger:`` or ``paths:`` ->
   OpenAPI (YAML heuristic only; nothing is actually parsed as YAML)
"""

from __future__ import annotations

import json
import logging
from typing import Any

from reqport.models import ImportFormat

logger = logging.getLogger(__name__)

_YAML_OPENAPI_MARKERS = ("openapi:", "swagger:", "paths:")


def looks_like_curl(text: str) -> bool:
    """Return True if *text* is a ``curl`` invocation."""
    lowered = text.strip().lower()
    return lowered == "curl" or lowered.startswith("curl ")


def looks_like_yaml_openapi(text: str) -> bool:
    """Return True if *text* carries a YAML OpenAPI/Swagger marker."""
    return any(marker in text for marker in _YAML_OPENAPI_MARKERS)


def _classify_object(doc: dict[str, Any]) -> ImportFormat:
    if doc.get("_type") == "export" and doc.get("__export_format"):
        return ImportFormat.INSOMNIA

    info = doc.get("info")
    if isinstance(info, dict):
        schema = info.get("schema")
        if isinstance(schema, str) and "postman" in schema:
            return ImportFormat.POSTMAN

    if is_postman_environment(doc):
        return ImportFormat.POSTMAN

    log = doc.get("log")
    if isinstance(log, dict) and log.get("version") and log.get("entries"):
        return ImportFormat.HAR

    if doc.get("openapi") or doc.get("swagger"):
        return ImportFormat.OPENAPI

    return ImportFormat.UNKNOWN


def is_postman_environment(doc: dict[str, Any]) -> bool:
    """Return True if *doc* has the ``name`` + ``values`` environment shape."""
    return bool(doc.get("name")) and isinstance(doc.get("values"), list)


def detect_format(text: str) -> ImportFormat:
    """Detect the source format of *text*.

    Args:
        text: Raw input as read from a file, URL, or clipboard.

    Returns:
        The detected :class:`~reqport.models.ImportFormat`. Never raises.
    """
    if not isinstance(text, str):
        return ImportFormat.UNKNOWN

    if looks_like_curl(text):
        result = ImportFormat.CURL
    else:
        try:
            value = json.loads(text.strip())
        except (ValueError, RecursionError):
            result = (
                ImportFormat.OPENAPI
                if looks_like_yaml_openapi(text)
                else ImportFormat.UNKNOWN
            )
        else:
            result = (
                _classify_object(value)
                if isinstance(value, dict)
                else ImportFormat.UNKNOWN
            )

    logger.debug("Detected input format: %s", result.value)
    return result
