"""Canonical Pydantic models shared across all reqport modules.

This is the single source of truth for data shapes in the project. Every
parser writes into these models and every exporter reads from them. The
models fall into three groups:

**Collection models** -- the canonical, tool-neutral collection shape:
    :class:`KeyValue`, :class:`Body` (a tagged union of :class:`EmptyBody`,
    :class:`RawBody`, :class:`FormBody`, :class:`GraphQLBody`),
    :class:`Auth` (a tagged union of :class:`NoAuth`, :class:`BearerAuth`,
    :class:`BasicAuth`, :class:`ApiKeyAuth`, :class:`OAuth2Auth`),
    :class:`Request`, :class:`Folder`, :class:`Collection`,
    :class:`Variable`, and :class:`Environment`.

**Import result models** -- returned by the import orchestrator:
    :class:`WarningType`, :class:`ImportWarning`, :class:`ImportFormat`,
    :class:`ImportResult`, :class:`FormatInfo`, and :class:`MappingResult`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`ImportConfig`, :class:`ExportConfig`, and
    :class:`GlobalConfig`.

Collection models use snake_case attribute names and serialise to camelCase
(``created_at`` -> ``createdAt``) when dumped with ``by_alias=True``. Either
spelling is accepted on input.
"""

from __future__ import annotations

import enum
import secrets
from datetime import datetime, timezone
from typing import Annotated, Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a fresh, URL-safe identifier for a canonical model object."""
    return secrets.token_urlsafe(12)


class CamelModel(BaseModel):
    """Base for models that serialise with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Key/value pairs ---


class KeyValue(CamelModel):
    """A header, query parameter, or form field.

    ``enabled`` is ``True`` unless the source explicitly disabled the entry.
    """

    id: str
    key: str
    value: str = ""
    description: Optional[str] = None
    enabled: bool = True


# --- Body (tagged union on ``type``) ---


class EmptyBody(CamelModel):
    """A request without a body."""

    type: Literal["none"] = "none"


class RawBody(CamelModel):
    """A textual body. ``binary`` bodies carry the file path as content."""

    type: Literal["json", "text", "xml", "html", "binary"]
    content: str = ""


class FormBody(CamelModel):
    """A ``form-urlencoded`` or ``form-data`` body made of key/value fields."""

    type: Literal["form-urlencoded", "form-data"]
    form_data: list[KeyValue] = Field(default_factory=list)


class GraphQLQuery(CamelModel):
    """GraphQL query text plus its variables as a JSON string."""

    query: str = ""
    variables: Optional[str] = None


class GraphQLBody(CamelModel):
    """A GraphQL request body."""

    type: Literal["graphql"] = "graphql"
    graphql: GraphQLQuery = Field(default_factory=GraphQLQuery)


Body = Annotated[
    Union[EmptyBody, RawBody, FormBody, GraphQLBody],
    Field(discriminator="type"),
]


# --- Auth (tagged union on ``type``) ---


class BearerCredentials(CamelModel):
    token: str = ""
    prefix: Optional[str] = None


class BasicCredentials(CamelModel):
    username: str = ""
    password: str = ""


class ApiKeyCredentials(CamelModel):
    key: str = ""
    value: str = ""
    add_to: Literal["header", "query"] = "header"


class NoAuth(CamelModel):
    """Explicitly unauthenticated (or auth that could not be converted)."""

    type: Literal["none"] = "none"


class BearerAuth(CamelModel):
    type: Literal["bearer"] = "bearer"
    bearer: BearerCredentials = Field(default_factory=BearerCredentials)


class BasicAuth(CamelModel):
    type: Literal["basic"] = "basic"
    basic: BasicCredentials = Field(default_factory=BasicCredentials)


class ApiKeyAuth(CamelModel):
    type: Literal["api-key"] = "api-key"
    api_key: ApiKeyCredentials = Field(default_factory=ApiKeyCredentials)


class OAuth2Auth(CamelModel):
    """OAuth 2.0 settings, kept as an opaque string map."""

    type: Literal["oauth2"] = "oauth2"
    oauth2: dict[str, str] = Field(default_factory=dict)


Auth = Annotated[
    Union[NoAuth, BearerAuth, BasicAuth, ApiKeyAuth, OAuth2Auth],
    Field(discriminator="type"),
]


# --- Collection tree ---


class Request(CamelModel):
    """A single HTTP request (a leaf of the collection tree).

    ``url`` never carries a query string; query parameters live in
    ``params`` so that they can be individually enabled or disabled.
    """

    id: str
    name: str
    description: Optional[str] = None
    method: str = "GET"
    url: str = ""
    headers: list[KeyValue] = Field(default_factory=list)
    params: list[KeyValue] = Field(default_factory=list)
    body: Optional[Body] = None
    auth: Optional[Auth] = None
    pre_request_script: Optional[str] = None
    test_script: Optional[str] = None


class Folder(CamelModel):
    """A named group of requests and nested folders."""

    id: str
    name: str
    description: Optional[str] = None
    folders: list[Folder] = Field(default_factory=list)
    requests: list[Request] = Field(default_factory=list)

    def iter_requests(self) -> Iterator[Request]:
        """Yield every request in this folder, depth-first."""
        yield from self.requests
        for folder in self.folders:
            yield from folder.iter_requests()


class Variable(CamelModel):
    """A named interpolation variable.

    ``original_key`` is only set when name normalisation changed ``key``.
    """

    id: str
    key: str
    value: str = ""
    description: Optional[str] = None
    enabled: bool = True
    type: Literal["text", "secret"] = "text"
    original_key: Optional[str] = None


class Collection(CamelModel):
    """Root container owning folders, requests, and collection variables."""

    id: str
    name: str
    description: Optional[str] = None
    folders: list[Folder] = Field(default_factory=list)
    requests: list[Request] = Field(default_factory=list)
    variables: list[Variable] = Field(default_factory=list)
    auth: Optional[Auth] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def iter_requests(self) -> Iterator[Request]:
        """Yield every request in the collection.

        Root-level requests come first, then each folder's requests
        depth-first in declaration order.
        """
        yield from self.requests
        for folder in self.folders:
            yield from folder.iter_requests()


class Environment(CamelModel):
    """A named set of variables."""

    id: str
    name: str
    variables: list[Variable] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# --- Import results ---


class WarningType(str, enum.Enum):
    """Categories of non-fatal import warnings."""

    UNDEFINED_VARIABLE = "undefined_variable"
    UNUSED_VARIABLE = "unused_variable"
    DYNAMIC_VARIABLE = "dynamic_variable"
    CONVERSION_NOTE = "conversion_note"
    UNSUPPORTED_FEATURE = "unsupported_feature"
    VARIABLE_RENAMED = "variable_renamed"
    DUPLICATE_VARIABLE = "duplicate_variable"
    CONVERSION_ISSUE = "conversion_issue"
    MISSING_DATA = "missing_data"


class ImportWarning(CamelModel):
    """A structured note about a lossy or ambiguous conversion.

    Warnings never abort an import; they are attached to the
    :class:`ImportResult` for the caller to display.
    """

    type: WarningType
    message: str
    variable_name: Optional[str] = None
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    original_name: Optional[str] = None
    new_name: Optional[str] = None


class ImportFormat(str, enum.Enum):
    """Source formats the detector can classify input into."""

    POSTMAN = "postman"
    INSOMNIA = "insomnia"
    OPENAPI = "openapi"
    CURL = "curl"
    HAR = "har"
    UNKNOWN = "unknown"


class ExportFormat(str, enum.Enum):
    """Target formats for the export serializers."""

    NATIVE = "native"
    POSTMAN = "postman"
    OPENAPI = "openapi"
    CURL = "curl"


class ImportResult(CamelModel):
    """Outcome of :func:`~reqport.importers.orchestrator.import_file`.

    The shape of ``data`` depends on ``type``:

    * ``collection`` -- a single :class:`Collection`, or a list of them for
      Insomnia exports (one per workspace)
    * ``environment`` -- a single :class:`Environment`
    * ``request`` -- a single :class:`Request`
    * ``requests`` -- a list of :class:`Request`
    """

    type: Literal["collection", "environment", "request", "requests"]
    data: Union[
        Collection, Environment, Request, list[Collection], list[Request]
    ]
    warnings: list[ImportWarning] = Field(default_factory=list)
    environments: list[Environment] = Field(default_factory=list)

    def collections(self) -> list[Collection]:
        """Return the imported collections regardless of result shape."""
        if isinstance(self.data, Collection):
            return [self.data]
        if isinstance(self.data, list):
            return [item for item in self.data if isinstance(item, Collection)]
        return []


class FormatInfo(BaseModel):
    """A format registry entry used to build format pickers."""

    id: ImportFormat
    name: str
    description: str
    extensions: list[str] = Field(default_factory=list)
    supported: bool = True


class MappingResult(BaseModel):
    """Environments and warnings produced by the variable mapper."""

    environments: list[Environment] = Field(default_factory=list)
    warnings: list[ImportWarning] = Field(default_factory=list)


# --- Configuration ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class ImportConfig(BaseModel):
    """Import behaviour stored in :class:`GlobalConfig`."""

    analyze_variables: bool = Field(
        default=True,
        description="Check variable usage and dynamic/template constructs",
    )
    normalize_variable_names: bool = Field(
        default=False,
        description="Rewrite variable keys to valid identifiers",
    )
    max_input_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Refuse inputs larger than this many bytes",
    )


class ExportConfig(BaseModel):
    """Export defaults stored in :class:`GlobalConfig`."""

    default_format: ExportFormat = Field(
        default=ExportFormat.NATIVE,
        description="Export format: native, postman, openapi, curl",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/reqport/config.json``.

    Loaded and saved by :func:`~reqport.config.load_global_config` and
    :func:`~reqport.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~reqport.config.resolve_config`
    for the full precedence chain.
    """

    model_config = ConfigDict(populate_by_name=True)

    output: OutputConfig = Field(default_factory=OutputConfig)
    import_: ImportConfig = Field(default_factory=ImportConfig, alias="import")
    export: ExportConfig = Field(default_factory=ExportConfig)


Folder.model_rebuild()
