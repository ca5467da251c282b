"""Postman collection (v2.0 / v2.1) and environment parser.

Collections are JSON documents with an ``info`` block whose ``schema`` URL
names the format version, a recursive ``item`` tree, optional collection
``variable`` and ``auth`` blocks. Environments are flat
``{"name": ..., "values": [...]}`` documents. :class:`PostmanParser`
distinguishes the two by shape.

The item tree maps directly onto the canonical tree: an item with a nested
``item`` list is a :class:`~reqport.models.Folder`, an item with a
``request`` is a :class:`~reqport.models.Request`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from reqport.detect import is_postman_environment
from reqport.exceptions import ValidationError
from reqport.importers.base import (
    FormatParser,
    key_value,
    load_json,
    new_id,
    register_parser,
    split_query,
    stringify,
)
from reqport.models import (
    ApiKeyAuth,
    ApiKeyCredentials,
    Auth,
    BasicAuth,
    BasicCredentials,
    BearerAuth,
    BearerCredentials,
    Body,
    Collection,
    Environment,
    Folder,
    FormBody,
    GraphQLBody,
    GraphQLQuery,
    ImportFormat,
    KeyValue,
    NoAuth,
    OAuth2Auth,
    RawBody,
    Request,
    Variable,
    WarningType,
)
from reqport.variables import classify_variable

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS = ("v2.0.0", "v2.1.0")

_RAW_LANGUAGES = {"json": "json", "xml": "xml", "html": "html"}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _description(value: Any) -> Optional[str]:
    """Return a description that may be a string or a ``{content, type}`` object."""
    if isinstance(value, dict):
        value = value.get("content")
    if value is None or value == "":
        return None
    return stringify(value)


def _auth_value(entries: Any, key: str) -> str:
    """Look up *key* in Postman auth attributes.

    v2.1 stores attributes as ``[{"key": ..., "value": ...}]`` arrays; v2.0
    collections may use a plain object instead.
    """
    if isinstance(entries, dict):
        return stringify(entries.get(key))
    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict) and entry.get("key") == key:
                return stringify(entry.get("value"))
    return ""


def _auth_pairs(entries: Any) -> dict[str, str]:
    if isinstance(entries, dict):
        return {str(k): stringify(v) for k, v in entries.items()}
    pairs: dict[str, str] = {}
    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict) and "key" in entry:
                pairs[str(entry["key"])] = stringify(entry.get("value"))
    return pairs


def _script(event: dict[str, Any]) -> str:
    script = event.get("script")
    if not isinstance(script, dict):
        return ""
    exec_ = script.get("exec", [])
    if isinstance(exec_, list):
        return "\n".join(stringify(line) for line in exec_)
    return stringify(exec_)


@register_parser(ImportFormat.POSTMAN)
class PostmanParser(FormatParser):
    """Parses Postman collections and environments."""

    def __init__(self) -> None:
        super().__init__()
        self._unsupported_auth: set[str] = set()

    def parse(self, text: str) -> Union[Collection, Environment]:
        doc = load_json(text, "Postman JSON")
        if isinstance(doc, dict) and is_postman_environment(doc):
            return self.parse_environment_data(doc)
        return self.parse_collection_data(doc)

    # ------------------------------------------------------------------ #
    # Collections
    # ------------------------------------------------------------------ #

    def parse_collection(self, text: str) -> Collection:
        """Parse Postman collection JSON text."""
        return self.parse_collection_data(load_json(text, "Postman collection"))

    def parse_collection_data(self, doc: Any) -> Collection:
        """Build a :class:`~reqport.models.Collection` from a decoded document.

        Raises:
            ValidationError: If the schema is missing or is not v2.0/v2.1.
        """
        if not isinstance(doc, dict):
            raise ValidationError("Invalid Postman collection: expected a JSON object")
        info = doc.get("info")
        schema = info.get("schema") if isinstance(info, dict) else None
        if not schema or not isinstance(schema, str):
            raise ValidationError("Invalid Postman collection: missing schema")
        if not any(version in schema for version in SUPPORTED_SCHEMA_VERSIONS):
            raise ValidationError(
                f"Unsupported Postman collection schema: {schema}. "
                "Only v2.0 and v2.1 are supported."
            )

        folders, requests = self._parse_items(_list(doc.get("item")))
        collection = Collection(
            id=new_id(),
            name=stringify(info.get("name")) or "Imported Collection",
            description=_description(info.get("description")),
            folders=folders,
            requests=requests,
            variables=[self._parse_variable(v) for v in _list(doc.get("variable"))],
            auth=self._parse_auth(doc.get("auth")) if doc.get("auth") else None,
        )
        logger.debug(
            "Parsed Postman collection '%s' (%d folders, %d root requests)",
            collection.name,
            len(folders),
            len(requests),
        )
        return collection

    def _parse_items(self, items: list[Any]) -> tuple[list[Folder], list[Request]]:
        folders: list[Folder] = []
        requests: list[Request] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if isinstance(item.get("item"), list):
                sub_folders, sub_requests = self._parse_items(item["item"])
                folders.append(
                    Folder(
                        id=new_id(),
                        name=stringify(item.get("name")),
                        description=_description(item.get("description")),
                        folders=sub_folders,
                        requests=sub_requests,
                    )
                )
            elif item.get("request") is not None:
                requests.append(self._parse_request(item))
        return folders, requests

    def _parse_request(self, item: dict[str, Any]) -> Request:
        req = item["request"]
        if isinstance(req, str):
            # v2.0 shorthand: the request is just a URL.
            req = {"url": req, "method": "GET"}
        if not isinstance(req, dict):
            name = stringify(item.get("name"))
            raise ValidationError(
                f"Invalid Postman collection: request of item '{name}' "
                "must be an object or a URL string"
            )

        url, params = self._parse_url(req.get("url", ""))
        request = Request(
            id=new_id(),
            name=stringify(item.get("name")),
            description=_description(item.get("description"))
            or _description(req.get("description")),
            method=stringify(req.get("method") or "GET").upper(),
            url=url,
            headers=self._parse_pairs(req.get("header")),
            params=params,
            body=self._parse_body(req.get("body")),
            auth=self._parse_auth(req.get("auth")) if req.get("auth") else None,
        )

        for event in _list(item.get("event")):
            if not isinstance(event, dict):
                continue
            if event.get("listen") == "prerequest":
                request.pre_request_script = _script(event)
            elif event.get("listen") == "test":
                request.test_script = _script(event)
        return request

    def _parse_url(self, url: Any) -> tuple[str, list[KeyValue]]:
        """Resolve a Postman URL into ``(url_without_query, params)``."""
        if isinstance(url, str):
            base, pairs = split_query(url)
            return base, [key_value(k, v) for k, v in pairs]
        if not isinstance(url, dict):
            return "", []

        raw = stringify(url.get("raw"))
        if not raw and url.get("host"):
            protocol = url.get("protocol") or "https"
            host = url["host"]
            host = ".".join(stringify(h) for h in host) if isinstance(host, list) else stringify(host)
            path = url.get("path") or []
            if isinstance(path, list):
                path = "/".join(stringify(p) for p in path)
            path = stringify(path).lstrip("/")
            raw = f"{protocol}://{host}" + (f"/{path}" if path else "")

        base, pairs = split_query(raw)
        if isinstance(url.get("query"), list):
            params = self._parse_pairs(url["query"])
        else:
            params = [key_value(k, v) for k, v in pairs]
        return base, params

    def _parse_pairs(self, entries: Any) -> list[KeyValue]:
        """Parse ``header``/``query``/form arrays, honouring ``disabled``."""
        if not isinstance(entries, list):
            return []
        return [
            key_value(
                stringify(entry.get("key")),
                entry.get("value"),
                enabled=not entry.get("disabled", False),
                description=_description(entry.get("description")),
            )
            for entry in entries
            if isinstance(entry, dict)
        ]

    def _parse_body(self, body: Any) -> Optional[Body]:
        if not isinstance(body, dict):
            return None
        mode = body.get("mode")

        if mode == "raw":
            options = body.get("options")
            raw_options = options.get("raw") if isinstance(options, dict) else None
            language = (
                stringify(raw_options.get("language", "text"))
                if isinstance(raw_options, dict)
                else "text"
            )
            return RawBody(
                type=_RAW_LANGUAGES.get(language, "text"),
                content=stringify(body.get("raw")),
            )
        if mode == "urlencoded":
            return FormBody(
                type="form-urlencoded",
                form_data=self._parse_pairs(body.get("urlencoded")),
            )
        if mode == "formdata":
            fields = []
            for entry in _list(body.get("formdata")):
                if not isinstance(entry, dict):
                    continue
                value = entry.get("value")
                if entry.get("type") == "file":
                    src = entry.get("src")
                    value = ",".join(src) if isinstance(src, list) else src
                fields.append(
                    key_value(
                        stringify(entry.get("key")),
                        value,
                        enabled=not entry.get("disabled", False),
                        description=_description(entry.get("description")),
                    )
                )
            return FormBody(type="form-data", form_data=fields)
        if mode == "graphql":
            graphql = _dict(body.get("graphql"))
            variables = graphql.get("variables")
            return GraphQLBody(
                graphql=GraphQLQuery(
                    query=stringify(graphql.get("query")),
                    variables=stringify(variables) if variables is not None else None,
                )
            )
        if mode == "file":
            return RawBody(type="binary", content=stringify(_dict(body.get("file")).get("src")))

        logger.debug("Ignoring unknown Postman body mode: %s", mode)
        return None

    def _parse_auth(self, auth: Any) -> Auth:
        if not isinstance(auth, dict):
            return NoAuth()
        auth_type = stringify(auth.get("type")) or None

        if auth_type == "bearer":
            return BearerAuth(
                bearer=BearerCredentials(token=_auth_value(auth.get("bearer"), "token"))
            )
        if auth_type == "basic":
            entries = auth.get("basic")
            return BasicAuth(
                basic=BasicCredentials(
                    username=_auth_value(entries, "username"),
                    password=_auth_value(entries, "password"),
                )
            )
        if auth_type == "apikey":
            entries = auth.get("apikey")
            return ApiKeyAuth(
                api_key=ApiKeyCredentials(
                    key=_auth_value(entries, "key"),
                    value=_auth_value(entries, "value"),
                    add_to="query" if _auth_value(entries, "in") == "query" else "header",
                )
            )
        if auth_type == "oauth2":
            return OAuth2Auth(oauth2=_auth_pairs(auth.get("oauth2")))
        if auth_type not in (None, "noauth") and auth_type not in self._unsupported_auth:
            self._unsupported_auth.add(auth_type)
            self.warn(
                WarningType.UNSUPPORTED_FEATURE,
                f'Postman auth type "{auth_type}" is not supported and was dropped.',
            )
        return NoAuth()

    def _parse_variable(self, entry: Any) -> Variable:
        entry = entry if isinstance(entry, dict) else {}
        key = stringify(entry.get("key") or entry.get("id"))
        is_secret = entry.get("type") == "secret"
        return Variable(
            id=new_id(),
            key=key,
            value=stringify(entry.get("value")),
            description=_description(entry.get("description")),
            enabled=not entry.get("disabled", False),
            type="secret" if is_secret else classify_variable(key),
        )

    # ------------------------------------------------------------------ #
    # Environments
    # ------------------------------------------------------------------ #

    def parse_environment(self, text: str) -> Environment:
        """Parse Postman environment JSON text."""
        return self.parse_environment_data(load_json(text, "Postman environment"))

    def parse_environment_data(self, doc: Any) -> Environment:
        """Build an :class:`~reqport.models.Environment` from a decoded document.

        Raises:
            ValidationError: If ``name`` or the ``values`` list is missing.
        """
        if not isinstance(doc, dict) or not doc.get("name") or not isinstance(
            doc.get("values"), list
        ):
            raise ValidationError("Invalid Postman environment format")

        variables = []
        for entry in doc["values"]:
            if not isinstance(entry, dict):
                continue
            key = stringify(entry.get("key"))
            is_secret = entry.get("type") == "secret"
            variables.append(
                Variable(
                    id=new_id(),
                    key=key,
                    value=stringify(entry.get("value")),
                    enabled=entry.get("enabled") is not False,
                    type="secret" if is_secret else classify_variable(key),
                )
            )
        return Environment(id=new_id(), name=stringify(doc["name"]), variables=variables)


def parse_postman_collection(text: str) -> Collection:
    """Parse a Postman v2.0/v2.1 collection.

    Args:
        text: Collection JSON.

    Returns:
        The canonical :class:`~reqport.models.Collection`.

    Raises:
        ValidationError: If the JSON is malformed or the schema is unsupported.
    """
    return PostmanParser().parse_collection(text)


def parse_postman_environment(text: str) -> Environment:
    """Parse a Postman environment export."""
    return PostmanParser().parse_environment(text)
