"""Native JSON: the canonical model serialised with camelCase keys."""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from reqport.exceptions import ValidationError
from reqport.exporters.base import dump_json, register_exporter
from reqport.models import Collection, Environment, ExportFormat


@register_exporter(ExportFormat.NATIVE)
def export_native(collection: Collection) -> str:
    return dump_json(collection.model_dump(by_alias=True, mode="json", exclude_none=True))


def export_native_environment(environment: Environment) -> str:
    return dump_json(environment.model_dump(by_alias=True, mode="json", exclude_none=True))


def load_native_collection(text: str) -> Collection:
    """Read back a collection written by :func:`export_native`.

    Raises:
        ValidationError: If *text* is not a valid native collection.
    """
    try:
        return Collection.model_validate_json(text)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid native collection: {exc}") from exc
