"""Postman Collection v2.1 and Postman environment serializers.

The body and auth tables are the inverse of the ones in
:mod:`reqport.importers.postman`, so a collection exported here and
imported again keeps its request names, methods, URLs, and scripts.
"""

from __future__ import annotations

from typing import Any, Optional

from reqport.exporters.base import dump_json, prune, register_exporter
from reqport.models import (
    ApiKeyAuth,
    Auth,
    BasicAuth,
    BearerAuth,
    Body,
    Collection,
    Environment,
    ExportFormat,
    Folder,
    FormBody,
    GraphQLBody,
    KeyValue,
    OAuth2Auth,
    RawBody,
    Request,
    new_id,
)

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

_RAW_LANGUAGE = {"json": "json", "xml": "xml", "html": "html"}


def _pair(entry: KeyValue) -> dict[str, Any]:
    return prune(
        {
            "key": entry.key,
            "value": entry.value,
            "description": entry.description,
            "disabled": True if not entry.enabled else None,
        }
    )


def _attributes(values: dict[str, str]) -> list[dict[str, str]]:
    return [{"key": key, "value": value, "type": "string"} for key, value in values.items()]


def convert_url(request: Request) -> dict[str, Any]:
    """Build a Postman URL object; ``raw`` carries the enabled query params."""
    url = request.url
    enabled = [p for p in request.params if p.enabled]
    raw = url
    if enabled:
        raw += "?" + "&".join(f"{p.key}={p.value}" for p in enabled)

    protocol: Optional[str] = None
    rest = url
    if "://" in url:
        protocol, rest = url.split("://", 1)
    rest = rest.split("#", 1)[0]
    host, _, path = rest.partition("/")

    document: dict[str, Any] = {"raw": raw}
    if protocol:
        document["protocol"] = protocol
    document["host"] = host.split(".") if host else []
    document["path"] = [segment for segment in path.split("/") if segment]
    if request.params:
        document["query"] = [_pair(p) for p in request.params]
    return document


def convert_body(body: Body) -> Optional[dict[str, Any]]:
    if isinstance(body, RawBody):
        if body.type == "binary":
            return {"mode": "file", "file": {"src": body.content}}
        return {
            "mode": "raw",
            "raw": body.content,
            "options": {"raw": {"language": _RAW_LANGUAGE.get(body.type, "text")}},
        }
    if isinstance(body, FormBody):
        if body.type == "form-urlencoded":
            return {"mode": "urlencoded", "urlencoded": [_pair(f) for f in body.form_data]}
        return {
            "mode": "formdata",
            "formdata": [{**_pair(f), "type": "text"} for f in body.form_data],
        }
    if isinstance(body, GraphQLBody):
        return {
            "mode": "graphql",
            "graphql": {
                "query": body.graphql.query,
                "variables": body.graphql.variables or "",
            },
        }
    return None


def convert_auth(auth: Auth) -> dict[str, Any]:
    if isinstance(auth, BearerAuth):
        return {"type": "bearer", "bearer": _attributes({"token": auth.bearer.token})}
    if isinstance(auth, BasicAuth):
        return {
            "type": "basic",
            "basic": _attributes(
                {"username": auth.basic.username, "password": auth.basic.password}
            ),
        }
    if isinstance(auth, ApiKeyAuth):
        return {
            "type": "apikey",
            "apikey": _attributes(
                {
                    "key": auth.api_key.key,
                    "value": auth.api_key.value,
                    "in": auth.api_key.add_to,
                }
            ),
        }
    if isinstance(auth, OAuth2Auth):
        return {"type": "oauth2", "oauth2": _attributes(auth.oauth2)}
    return {"type": "noauth"}


def _events(request: Request) -> list[dict[str, Any]]:
    events = []
    for listen, script in (("prerequest", request.pre_request_script), ("test", request.test_script)):
        if script:
            events.append(
                {
                    "listen": listen,
                    "script": {"type": "text/javascript", "exec": script.split("\n")},
                }
            )
    return events


def convert_request(request: Request) -> dict[str, Any]:
    inner: dict[str, Any] = {
        "method": request.method,
        "header": [_pair(h) for h in request.headers],
        "url": convert_url(request),
    }
    if request.description:
        inner["description"] = request.description
    if request.body is not None:
        body = convert_body(request.body)
        if body is not None:
            inner["body"] = body
    if request.auth is not None:
        inner["auth"] = convert_auth(request.auth)

    item: dict[str, Any] = {"name": request.name, "request": inner}
    events = _events(request)
    if events:
        item["event"] = events
    return item


def convert_folder(folder: Folder) -> dict[str, Any]:
    return prune(
        {
            "name": folder.name,
            "description": folder.description,
            "item": [convert_folder(f) for f in folder.folders]
            + [convert_request(r) for r in folder.requests],
        }
    )


@register_exporter(ExportFormat.POSTMAN)
def export_postman(collection: Collection) -> str:
    document: dict[str, Any] = {
        "info": prune(
            {
                "_postman_id": new_id(),
                "name": collection.name,
                "description": collection.description,
                "schema": POSTMAN_SCHEMA,
            }
        ),
        "item": [convert_folder(f) for f in collection.folders]
        + [convert_request(r) for r in collection.requests],
    }
    if collection.variables:
        document["variable"] = [
            prune(
                {
                    "key": v.key,
                    "value": v.value,
                    "description": v.description,
                    "type": "secret" if v.type == "secret" else None,
                    "disabled": True if not v.enabled else None,
                }
            )
            for v in collection.variables
        ]
    if collection.auth is not None:
        document["auth"] = convert_auth(collection.auth)
    return dump_json(document)


def export_postman_environment(environment: Environment) -> str:
    return dump_json(
        {
            "id": new_id(),
            "name": environment.name,
            "values": [
                {
                    "key": v.key,
                    "value": v.value,
                    "type": "secret" if v.type == "secret" else "default",
                    "enabled": v.enabled,
                }
                for v in environment.variables
            ],
            "_postman_variable_scope": "environment",
        }
    )
