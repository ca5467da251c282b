"""OpenAPI 3.0.3 serializer.

Each request becomes one ``paths[<path>][<method>]`` operation. The path is
the request URL with its scheme, host, and leading ``{{baseUrl}}``-style
variable removed, and with ``{{var}}`` segments rewritten as ``{var}``.
Two requests that map to the same path and method share one slot; the one
visited later replaces the earlier one.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from reqport.exporters.base import dump_json, prune, register_exporter
from reqport.models import Body, Collection, ExportFormat, FormBody, GraphQLBody, RawBody, Request

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"

_LEADING_VARIABLE = re.compile(r"^\{\{[^}]+\}\}")
_PATH_VARIABLE = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")
_PATH_TEMPLATE = re.compile(r"\{([^{}]+)\}")

_RAW_MEDIA_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "text": "text/plain",
    "binary": "application/octet-stream",
}


def request_path(url: str) -> str:
    """Return the OpenAPI path template for a request URL.

    Example:
        >>> request_path("{{baseUrl}}/pets/{{petId}}")
        '/pets/{petId}'
    """
    rest = url.split("#", 1)[0].split("?", 1)[0]
    if "://" in rest:
        rest = rest.split("://", 1)[1]
        slash = rest.find("/")
        rest = rest[slash:] if slash >= 0 else ""
    else:
        rest = _LEADING_VARIABLE.sub("", rest)
    if not rest.startswith("/"):
        rest = f"/{rest}"
    return _PATH_VARIABLE.sub(r"{\1}", rest)


def _try_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _form_schema(body: FormBody) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            field.key: {"type": "string", "example": field.value}
            for field in body.form_data
            if field.enabled
        },
    }


def convert_body(body: Body) -> dict[str, Any] | None:
    """Build an OpenAPI ``requestBody`` object, or ``None`` for an empty body."""
    if isinstance(body, FormBody):
        media = (
            "application/x-www-form-urlencoded"
            if body.type == "form-urlencoded"
            else "multipart/form-data"
        )
        content = {media: {"schema": _form_schema(body)}}
    elif isinstance(body, GraphQLBody):
        example: dict[str, Any] = {"query": body.graphql.query}
        if body.graphql.variables:
            example["variables"] = _try_json(body.graphql.variables)
        content = {"application/json": {"schema": {"type": "object"}, "example": example}}
    elif isinstance(body, RawBody):
        if body.type == "json":
            content = {
                "application/json": {
                    "schema": {"type": "object"},
                    "example": _try_json(body.content) if body.content else {},
                }
            }
        else:
            content = {
                _RAW_MEDIA_TYPES[body.type]: {
                    "schema": {"type": "string"},
                    "example": body.content,
                }
            }
    else:
        return None
    return {"required": True, "content": content}


def convert_operation(request: Request) -> dict[str, Any]:
    parameters = [
        prune(
            {
                "name": param.key,
                "in": "query",
                "description": param.description,
                "required": False,
                "schema": {"type": "string"},
                "example": param.value,
            }
        )
        for param in request.params
        if param.enabled
    ]
    parameters.extend(
        prune(
            {
                "name": header.key,
                "in": "header",
                "description": header.description,
                "required": False,
                "schema": {"type": "string"},
                "example": header.value,
            }
        )
        for header in request.headers
        if header.enabled
    )
    path_names = _PATH_TEMPLATE.findall(request_path(request.url))
    parameters.extend(
        {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
        for name in dict.fromkeys(path_names)
    )

    operation = prune(
        {
            "summary": request.name,
            "description": request.description,
            "operationId": request.id,
            "parameters": parameters,
            "responses": {"200": {"description": "Successful response"}},
        }
    )
    if request.body is not None:
        body = convert_body(request.body)
        if body is not None:
            operation["requestBody"] = body
    return operation


@register_exporter(ExportFormat.OPENAPI)
def export_openapi(collection: Collection) -> str:
    paths: dict[str, dict[str, Any]] = {}
    for request in collection.iter_requests():
        path = request_path(request.url)
        method = request.method.lower()
        operations = paths.setdefault(path, {})
        if method in operations:
            logger.debug(
                "Request '%s' replaces an earlier %s %s operation",
                request.name,
                method.upper(),
                path,
            )
        operations[method] = convert_operation(request)

    document = {
        "openapi": OPENAPI_VERSION,
        "info": prune(
            {
                "title": collection.name,
                "description": collection.description,
                "version": "1.0.0",
            }
        ),
        "servers": [{"url": "{{baseUrl}}", "description": "Base URL"}],
        "paths": paths,
    }
    return dump_json(document)
