"""Serializers from the canonical model to other formats.

Typical usage::

    from reqport.exporters import export_collection

    text = export_collection(collection, "postman")

Sub-modules:

* :mod:`~reqport.exporters.base` -- exporter registry and JSON helpers.
* :mod:`~reqport.exporters.native` -- canonical camelCase JSON.
* :mod:`~reqport.exporters.postman` -- Postman Collection v2.1 and
  Postman environments.
* :mod:`~reqport.exporters.openapi` -- OpenAPI 3.0.3.
* :mod:`~reqport.exporters.curl` -- ``curl`` commands.
"""

from __future__ import annotations

from typing import Union

from reqport.exceptions import InvalidUsageError
from reqport.exporters import curl, native, openapi, postman  # noqa: F401
from reqport.exporters.base import get_exporter, resolve_export_format
from reqport.exporters.native import load_native_collection
from reqport.models import Collection, Environment, ExportFormat


def export_collection(collection: Collection, format: Union[ExportFormat, str]) -> str:
    """Serialise *collection* in *format*.

    Raises:
        InvalidUsageError: If *format* is not a known export format.
    """
    return get_exporter(format)(collection)


def export_environment(environment: Environment, format: Union[ExportFormat, str]) -> str:
    """Serialise *environment* as native JSON or a Postman environment.

    Raises:
        InvalidUsageError: For any other format.
    """
    fmt = resolve_export_format(format)
    if fmt is ExportFormat.NATIVE:
        return native.export_native_environment(environment)
    if fmt is ExportFormat.POSTMAN:
        return postman.export_postman_environment(environment)
    raise InvalidUsageError(
        f"Environments can only be exported as native or postman, not {fmt.value}"
    )


__all__ = [
    "export_collection",
    "export_environment",
    "load_native_collection",
]
