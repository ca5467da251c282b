"""OpenAPI 3.x and Swagger 2.0 parser (JSON documents only).

Each ``(path, method)`` pair becomes one :class:`~reqport.models.Request`
whose URL is ``{{baseUrl}}`` followed by the path, with OpenAPI path
templates (``{petId}``) rewritten into canonical placeholders
(``{{petId}}``). The base URL itself is stored as the ``baseUrl``
collection variable. Requests are grouped into one folder per first tag;
untagged requests stay at the collection root.

``$ref`` pointers are never resolved: a referenced schema yields an empty
example object and a referenced parameter is skipped with a warning.
YAML documents are recognised but not parsed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from reqport.detect import looks_like_yaml_openapi
from reqport.exceptions import UnsupportedFeatureError, ValidationError
from reqport.importers.base import (
    FormatParser,
    key_value,
    new_id,
    register_parser,
    stringify,
)
from reqport.models import (
    Body,
    Collection,
    Folder,
    FormBody,
    ImportFormat,
    KeyValue,
    RawBody,
    Request,
    Variable,
    WarningType,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.example.com"
DEFAULT_SWAGGER_SCHEME = "https"
DEFAULT_SWAGGER_HOST = "api.example.com"

_HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")

_STRING_FORMAT_EXAMPLES = {
    "date": "2024-01-01",
    "date-time": "2024-01-01T00:00:00Z",
    "email": "user@example.com",
    "uuid": "550e8400-e29b-41d4-a716-446655440000",
}

# {name} not already part of a {{name}} placeholder
_PATH_TEMPLATE = re.compile(r"(?<!\{)\{([^{}]+)\}(?!\})")


# ---------------------------------------------------------------------------
# Example synthesis
# ---------------------------------------------------------------------------


def generate_example(schema: Any) -> Any:
    """Synthesise an example value from a JSON schema.

    A literal ``example`` wins. Otherwise the schema type decides: strings
    become ``"string"`` (or a fixed literal for ``date``, ``date-time``,
    ``email`` and ``uuid`` formats), numbers become ``0``, booleans
    ``True``, objects recurse per property and arrays become a
    one-element list. Enums yield their first value. ``$ref`` schemas are
    not resolved and yield ``{}``.
    """
    if not isinstance(schema, dict):
        return {}
    if "example" in schema:
        return schema["example"]
    if "$ref" in schema:
        return {}
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return enum[0]

    schema_type = schema.get("type")
    if schema_type == "object" or (schema_type is None and "properties" in schema):
        properties = schema.get("properties") or {}
        return {name: generate_example(prop) for name, prop in properties.items()}
    if schema_type == "array":
        return [generate_example(schema.get("items"))]
    if schema_type == "string":
        return _STRING_FORMAT_EXAMPLES.get(schema.get("format"), "string")
    if schema_type in ("integer", "number"):
        return 0
    if schema_type == "boolean":
        return True
    return None


def parameter_value(schema: Any, example: Any = None) -> str:
    """Render a sample value for a parameter or form field as text.

    Preference order: explicit *example*, the schema's ``example``,
    ``default``, first ``enum`` value, then the type table.
    """
    if example is not None:
        return stringify(example)
    if not isinstance(schema, dict):
        return ""
    for field in ("example", "default"):
        if schema.get(field) is not None:
            return stringify(schema[field])
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return stringify(enum[0])

    schema_type = schema.get("type")
    if schema_type == "string":
        return _STRING_FORMAT_EXAMPLES.get(schema.get("format"), "string")
    if schema_type in ("integer", "number"):
        return "0"
    if schema_type == "boolean":
        return "true"
    return ""


def rewrite_path_template(path: str) -> str:
    """Rewrite OpenAPI ``{name}`` path templates into ``{{name}}`` placeholders."""
    return _PATH_TEMPLATE.sub(r"{{\1}}", path)


def _merge_parameters(
    path_params: list[Any], op_params: list[Any]
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    ``name`` and ``in``.
    """
    path_params = [p for p in path_params if isinstance(p, dict)]
    op_params = [p for p in op_params if isinstance(p, dict)]
    overridden = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [
        p for p in path_params if (p.get("name", ""), p.get("in", "")) not in overridden
    ]
    merged.extend(op_params)
    return merged


def _example_text(example: Any) -> str:
    if isinstance(example, str):
        return example
    return json.dumps(example, indent=2, ensure_ascii=False)


def _media_example(media: dict[str, Any]) -> Any:
    if media.get("example") is not None:
        return media["example"]
    examples = media.get("examples")
    if isinstance(examples, dict):
        for entry in examples.values():
            if isinstance(entry, dict) and "value" in entry:
                return entry["value"]
    return None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


@register_parser(ImportFormat.OPENAPI)
class OpenApiParser(FormatParser):
    """Parses OpenAPI 3.x and Swagger 2.0 JSON documents into a collection."""

    def parse(self, text: str) -> Collection:
        """Parse a JSON OpenAPI/Swagger document.

        Raises:
            UnsupportedFeatureError: If the text is YAML.
            ValidationError: If the text is not JSON or has no version field.
        """
        try:
            spec = json.loads(text)
        except (ValueError, RecursionError) as exc:
            if looks_like_yaml_openapi(text):
                raise UnsupportedFeatureError(
                    "Invalid JSON format. YAML support requires additional parsing."
                ) from exc
            raise ValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(spec, dict):
            raise ValidationError("Invalid OpenAPI/Swagger specification: expected a JSON object")

        if spec.get("openapi"):
            swagger = False
            base_url = self._openapi3_base_url(spec)
        elif spec.get("swagger"):
            swagger = True
            base_url = self._swagger2_base_url(spec)
        else:
            raise ValidationError(
                "Invalid OpenAPI/Swagger specification: missing version field"
            )

        info = spec.get("info") if isinstance(spec.get("info"), dict) else {}
        collection = Collection(
            id=new_id(),
            name=stringify(info.get("title")) or "Imported API",
            description=stringify(info.get("description")) or None,
            variables=[
                Variable(
                    id=new_id(),
                    key="baseUrl",
                    value=base_url,
                    description="Base URL for API requests",
                )
            ],
        )

        tagged: dict[str, list[Request]] = {}
        paths = spec.get("paths") if isinstance(spec.get("paths"), dict) else {}
        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue
            path_params = path_item.get("parameters") or []
            for method in _HTTP_METHODS:
                operation = path_item.get(method)
                if not isinstance(operation, dict):
                    continue
                request = self._parse_operation(
                    spec, method.upper(), path, operation, path_params, swagger
                )
                tags = operation.get("tags")
                if isinstance(tags, list) and tags:
                    tagged.setdefault(stringify(tags[0]), []).append(request)
                else:
                    collection.requests.append(request)

        tag_descriptions = {
            stringify(tag.get("name")): tag.get("description")
            for tag in spec.get("tags") or []
            if isinstance(tag, dict)
        }
        for tag_name, requests in tagged.items():
            collection.folders.append(
                Folder(
                    id=new_id(),
                    name=tag_name,
                    description=stringify(tag_descriptions.get(tag_name)) or None,
                    requests=requests,
                )
            )

        logger.debug(
            "Parsed %s document '%s' with %d tag folder(s)",
            "Swagger" if swagger else "OpenAPI",
            collection.name,
            len(collection.folders),
        )
        return collection

    # ------------------------------------------------------------------ #
    # Base URL
    # ------------------------------------------------------------------ #

    @staticmethod
    def _openapi3_base_url(spec: dict[str, Any]) -> str:
        servers = spec.get("servers")
        if isinstance(servers, list) and servers and isinstance(servers[0], dict):
            url = stringify(servers[0].get("url"))
            if url:
                return url
        return DEFAULT_BASE_URL

    @staticmethod
    def _swagger2_base_url(spec: dict[str, Any]) -> str:
        schemes = spec.get("schemes")
        scheme = schemes[0] if isinstance(schemes, list) and schemes else DEFAULT_SWAGGER_SCHEME
        host = spec.get("host") or DEFAULT_SWAGGER_HOST
        base_path = spec.get("basePath") or ""
        return f"{scheme}://{host}{base_path}"

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def _parse_operation(
        self,
        spec: dict[str, Any],
        method: str,
        path: str,
        operation: dict[str, Any],
        path_params: list[Any],
        swagger: bool,
    ) -> Request:
        name = (
            stringify(operation.get("summary"))
            or stringify(operation.get("operationId"))
            or f"{method} {path}"
        )
        query: list[KeyValue] = []
        headers: list[KeyValue] = []
        body_param: Optional[dict[str, Any]] = None
        form_params: list[dict[str, Any]] = []

        for param in _merge_parameters(path_params, operation.get("parameters") or []):
            if "$ref" in param:
                self.warn(
                    WarningType.CONVERSION_ISSUE,
                    f"Parameter reference {param['$ref']} in \"{name}\" was not "
                    "resolved and has been skipped",
                    resource_name=name,
                )
                continue
            location = param.get("in")
            if swagger and location == "body":
                body_param = param
                continue
            if swagger and location == "formData":
                form_params.append(param)
                continue

            # Swagger 2 non-body parameters carry their schema inline.
            schema = param if swagger else param.get("schema")
            kv = key_value(
                stringify(param.get("name")),
                parameter_value(schema, param.get("example")),
                enabled=param.get("required") is not False,
                description=stringify(param.get("description")) or None,
            )
            if location == "query":
                query.append(kv)
            elif location == "header":
                headers.append(kv)

        body: Optional[Body] = None
        if swagger:
            if body_param is not None:
                body = RawBody(
                    type="json",
                    content=_example_text(generate_example(body_param.get("schema"))),
                )
            elif form_params:
                body = self._swagger2_form_body(spec, operation, form_params)
        else:
            request_body = operation.get("requestBody")
            if isinstance(request_body, dict) and isinstance(request_body.get("content"), dict):
                body = self._parse_request_body(request_body["content"])

        return Request(
            id=new_id(),
            name=name,
            description=stringify(operation.get("description")) or None,
            method=method,
            url="{{baseUrl}}" + rewrite_path_template(path),
            headers=headers,
            params=query,
            body=body,
        )

    def _parse_request_body(self, content: dict[str, Any]) -> Optional[Body]:
        """Pick the first supported media type in fixed priority order."""
        media = content.get("application/json")
        if isinstance(media, dict):
            example = _media_example(media)
            if example is None:
                example = generate_example(media.get("schema"))
            return RawBody(type="json", content=_example_text(example))

        for media_type, body_type in (
            ("application/x-www-form-urlencoded", "form-urlencoded"),
            ("multipart/form-data", "form-data"),
        ):
            media = content.get(media_type)
            if isinstance(media, dict):
                return FormBody(
                    type=body_type, form_data=self._form_fields(media.get("schema"))
                )

        media = content.get("application/xml") or content.get("text/xml")
        if isinstance(media, dict):
            return RawBody(type="xml", content=stringify(_media_example(media)))

        media = content.get("text/plain")
        if isinstance(media, dict):
            return RawBody(type="text", content=stringify(_media_example(media)))
        return None

    @staticmethod
    def _form_fields(schema: Any) -> list[KeyValue]:
        if not isinstance(schema, dict) or not isinstance(schema.get("properties"), dict):
            return []
        required = schema.get("required")
        return [
            key_value(
                name,
                parameter_value(prop),
                enabled=name in required if isinstance(required, list) else True,
            )
            for name, prop in schema["properties"].items()
        ]

    @staticmethod
    def _swagger2_form_body(
        spec: dict[str, Any], operation: dict[str, Any], params: list[dict[str, Any]]
    ) -> FormBody:
        consumes = operation.get("consumes") or spec.get("consumes") or []
        body_type = "form-data" if "multipart/form-data" in consumes else "form-urlencoded"
        return FormBody(
            type=body_type,
            form_data=[
                key_value(
                    stringify(param.get("name")),
                    "" if param.get("type") == "file" else parameter_value(param),
                    enabled=param.get("required") is not False,
                    description=stringify(param.get("description")) or None,
                )
                for param in params
            ],
        )


def parse_openapi_spec(text: str) -> Collection:
    """Parse an OpenAPI 3.x or Swagger 2.0 JSON document.

    Args:
        text: The document as JSON text.

    Returns:
        The canonical :class:`~reqport.models.Collection`.

    Raises:
        UnsupportedFeatureError: If the document is YAML.
        ValidationError: If the document is invalid.
    """
    return OpenApiParser().parse(text)
