"""Insomnia v4 export parser.

An Insomnia export is a flat ``resources`` list where every resource has a
``_type`` and an ``_id``, and hierarchy is expressed with ``parentId``
back-references:

* ``workspace`` -- tree root; each becomes one :class:`~reqport.models.Collection`
* ``request_group`` -- a :class:`~reqport.models.Folder`
* ``request`` -- a :class:`~reqport.models.Request`
* ``environment`` -- an :class:`~reqport.models.Environment`

Every other resource type (cookie jars, certificates, gRPC and WebSocket
requests, test suites, API specs, ...) is skipped with one warning per
distinct type.
"""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Optional

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
    ImportResult,
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

SUPPORTED_EXPORT_FORMAT = 4

SUPPORTED_RESOURCE_TYPES = frozenset(
    {"workspace", "request_group", "request", "environment"}
)

_OAUTH2_FIELDS = (
    "grantType",
    "accessTokenUrl",
    "authorizationUrl",
    "clientId",
    "clientSecret",
    "scope",
    "state",
    "redirectUrl",
    "audience",
    "resource",
    "username",
    "password",
)


def _timestamp(value: Any) -> Optional[datetime]:
    """Convert an Insomnia millisecond epoch into an aware datetime."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _ref(value: Any) -> Any:
    """Return a resource id usable as a dict key; odd shapes are stringified."""
    if value is None or isinstance(value, (str, int)):
        return value
    return stringify(value)


@register_parser(ImportFormat.INSOMNIA)
class InsomniaParser(FormatParser):
    """Parses Insomnia v4 exports into collections and environments.

    :meth:`parse` returns the list of collections (one per workspace); the
    environments found in the same export are left on :attr:`environments`.
    """

    def __init__(self) -> None:
        super().__init__()
        self.environments: list[Environment] = []
        self._groups_by_parent: dict[Any, list[dict[str, Any]]] = defaultdict(list)
        self._requests_by_parent: dict[Any, list[dict[str, Any]]] = defaultdict(list)

    def parse(self, text: str) -> list[Collection]:
        """Parse export JSON text.

        Raises:
            ValidationError: If the JSON is malformed, is not an Insomnia
                export, or uses an export format other than v4.
        """
        doc = load_json(text, "Insomnia export JSON")
        if not isinstance(doc, dict) or doc.get("_type") != "export":
            raise ValidationError("Not a valid Insomnia export file")

        version = doc.get("__export_format")
        if version != SUPPORTED_EXPORT_FORMAT:
            raise ValidationError(
                f"Unsupported export format version: {version}. Only v4 is supported."
            )

        resources = doc.get("resources")
        if not isinstance(resources, list):
            raise ValidationError("Invalid Insomnia export: missing resources list")
        resources = [r for r in resources if isinstance(r, dict)]

        self._warn_unsupported(resources)

        workspaces: list[dict[str, Any]] = []
        env_resources: list[dict[str, Any]] = []
        for resource in resources:
            kind = resource.get("_type")
            if kind == "workspace":
                workspaces.append(resource)
            elif kind == "request_group":
                self._groups_by_parent[_ref(resource.get("parentId"))].append(resource)
            elif kind == "request":
                self._requests_by_parent[_ref(resource.get("parentId"))].append(resource)
            elif kind == "environment":
                env_resources.append(resource)

        collections = [self._parse_workspace(ws) for ws in workspaces]
        self.environments = [self._parse_environment(env) for env in env_resources]
        logger.debug(
            "Parsed Insomnia export: %d workspace(s), %d environment(s)",
            len(collections),
            len(self.environments),
        )
        return collections

    def import_text(self, text: str) -> ImportResult:
        collections = self.parse(text)
        return ImportResult(
            type="collection",
            data=collections,
            warnings=list(self.warnings),
            environments=list(self.environments),
        )

    # ------------------------------------------------------------------ #
    # Resources
    # ------------------------------------------------------------------ #

    def _warn_unsupported(self, resources: list[dict[str, Any]]) -> None:
        counts = Counter(
            str(r.get("_type"))
            for r in resources
            if str(r.get("_type")) not in SUPPORTED_RESOURCE_TYPES
        )
        for kind, count in counts.items():
            label = kind.replace("_", " ")
            logger.debug("Skipping %d unsupported Insomnia resource(s) of type %s", count, kind)
            self.warn(
                WarningType.UNSUPPORTED_FEATURE,
                f"{label} resources are not supported and will be skipped "
                f"({count} skipped)",
                resource_name=kind,
            )

    def _parse_workspace(self, workspace: dict[str, Any]) -> Collection:
        workspace_id = _ref(workspace.get("_id"))
        visited: set[Any] = {workspace_id}
        folders, requests = self._children(workspace_id, visited)
        collection = Collection(
            id=new_id(),
            name=stringify(workspace.get("name")) or "Insomnia Workspace",
            description=stringify(workspace.get("description")) or None,
            folders=folders,
            requests=requests,
        )
        created = _timestamp(workspace.get("created"))
        modified = _timestamp(workspace.get("modified"))
        if created is not None:
            collection.created_at = created
        if modified is not None:
            collection.updated_at = modified
        return collection

    def _children(
        self, parent_id: Any, visited: set[Any]
    ) -> tuple[list[Folder], list[Request]]:
        """Collect the folders and requests whose ``parentId`` is *parent_id*.

        *visited* holds the ids already expanded on this workspace so that a
        ``parentId`` cycle cannot recurse forever.
        """
        folders: list[Folder] = []
        for group in self._groups_by_parent.get(parent_id, []):
            group_id = _ref(group.get("_id"))
            if group_id in visited:
                logger.debug("Breaking request_group cycle at %s", group_id)
                continue
            visited.add(group_id)
            sub_folders, sub_requests = self._children(group_id, visited)
            folders.append(
                Folder(
                    id=new_id(),
                    name=stringify(group.get("name")),
                    description=stringify(group.get("description")) or None,
                    folders=sub_folders,
                    requests=sub_requests,
                )
            )
        requests = [
            self._parse_request(req) for req in self._requests_by_parent.get(parent_id, [])
        ]
        return folders, requests

    def _parse_request(self, resource: dict[str, Any]) -> Request:
        url, query = split_query(stringify(resource.get("url")))
        params = self._parse_pairs(resource.get("parameters"))
        params.extend(key_value(k, v) for k, v in query)
        return Request(
            id=new_id(),
            name=stringify(resource.get("name")),
            description=stringify(resource.get("description")) or None,
            method=stringify(resource.get("method") or "GET").upper(),
            url=url,
            headers=self._parse_pairs(resource.get("headers")),
            params=params,
            body=self._parse_body(resource.get("body")),
            auth=self._parse_auth(resource.get("authentication"), resource),
        )

    def _parse_pairs(self, entries: Any) -> list[KeyValue]:
        if not isinstance(entries, list):
            return []
        return [
            key_value(
                stringify(entry.get("name")),
                entry.get("value"),
                enabled=not entry.get("disabled", False),
                description=stringify(entry.get("description")) or None,
            )
            for entry in entries
            if isinstance(entry, dict)
        ]

    def _parse_body(self, body: Any) -> Optional[Body]:
        if not isinstance(body, dict):
            return None
        mime = stringify(body.get("mimeType"))
        text = stringify(body.get("text"))
        if not mime and not text and not body.get("params"):
            return None

        if "application/json" in mime:
            return RawBody(type="json", content=text)
        if "application/xml" in mime or "text/xml" in mime:
            return RawBody(type="xml", content=text)
        if "text/html" in mime:
            return RawBody(type="html", content=text)
        if "application/graphql" in mime:
            return GraphQLBody(graphql=self._parse_graphql(text))
        if "application/x-www-form-urlencoded" in mime:
            return FormBody(
                type="form-urlencoded", form_data=self._parse_pairs(body.get("params"))
            )
        if "multipart/form-data" in mime:
            fields = []
            params = body.get("params")
            for param in params if isinstance(params, list) else []:
                if not isinstance(param, dict):
                    continue
                value = param.get("fileName") if param.get("type") == "file" else param.get("value")
                fields.append(
                    key_value(
                        stringify(param.get("name")),
                        value,
                        enabled=not param.get("disabled", False),
                    )
                )
            return FormBody(type="form-data", form_data=fields)
        if text:
            return RawBody(type="text", content=text)
        return None

    @staticmethod
    def _parse_graphql(text: str) -> GraphQLQuery:
        """Insomnia stores GraphQL bodies as a JSON ``{query, variables}`` document."""
        try:
            doc = json.loads(text) if text else {}
        except ValueError:
            return GraphQLQuery(query=text)
        if not isinstance(doc, dict):
            return GraphQLQuery(query=text)
        variables = doc.get("variables")
        return GraphQLQuery(
            query=stringify(doc.get("query")),
            variables=stringify(variables) if variables not in (None, {}, "") else None,
        )

    def _parse_auth(self, auth: Any, resource: dict[str, Any]) -> Optional[Auth]:
        if not isinstance(auth, dict) or not auth.get("type"):
            return None
        auth_type = auth["type"]

        if auth_type == "basic":
            return BasicAuth(
                basic=BasicCredentials(
                    username=stringify(auth.get("username")),
                    password=stringify(auth.get("password")),
                )
            )
        if auth_type == "bearer":
            return BearerAuth(
                bearer=BearerCredentials(
                    token=stringify(auth.get("token")),
                    prefix=stringify(auth.get("prefix")) or None,
                )
            )
        if auth_type == "apikey":
            return ApiKeyAuth(
                api_key=ApiKeyCredentials(
                    key=stringify(auth.get("key")),
                    value=stringify(auth.get("value")),
                    add_to="query" if auth.get("addTo") == "query" else "header",
                )
            )
        if auth_type == "oauth2":
            settings = {
                field: stringify(auth[field])
                for field in _OAUTH2_FIELDS
                if auth.get(field) not in (None, "")
            }
            settings.setdefault("grantType", "authorization_code")
            return OAuth2Auth(oauth2=settings)
        if auth_type == "none":
            return NoAuth()

        self.warn(
            WarningType.UNSUPPORTED_FEATURE,
            f'Authentication type "{auth_type}" is not fully supported',
            resource_id=stringify(resource.get("_id")) or None,
            resource_name=stringify(resource.get("name")) or None,
        )
        return None

    def _parse_environment(self, resource: dict[str, Any]) -> Environment:
        data = resource.get("data")
        variables = []
        if isinstance(data, dict):
            for key, value in data.items():
                variables.append(
                    Variable(
                        id=new_id(),
                        key=str(key),
                        value=stringify(value),
                        type=classify_variable(str(key)),
                    )
                )
        return Environment(
            id=new_id(),
            name=stringify(resource.get("name")) or "Insomnia Environment",
            variables=variables,
        )


def parse_insomnia_export(text: str) -> ImportResult:
    """Parse an Insomnia v4 export.

    Args:
        text: Export JSON.

    Returns:
        An :class:`~reqport.models.ImportResult` whose ``data`` is the list
        of collections (one per workspace), with the export's environments
        and any warnings attached.

    Raises:
        ValidationError: If the export is malformed or not v4.
    """
    return InsomniaParser().import_text(text)
