"""Canonical Pydantic models shared across all specir modules.

This is the single source of truth for data shapes in the project.  Every
other module imports from here rather than defining its own models.  The
models fall into two groups:

**Configuration models** -- loaded from ``specir.json`` / the user config
directory and passed by handle into a run:
    :class:`LoaderConfig`, :class:`FetchCacheConfig`,
    :class:`ExtractionConfig`, :class:`ProjectionOptions` and the aggregate
    :class:`SpecirConfig`.

**IR models** -- produced once by the extractor and read-only afterwards:
    :class:`HTTPMethod`, :class:`ParameterLocation`,
    :class:`ParameterRecord`, :class:`MediaTypeRecord`,
    :class:`RequestBodyRecord`, :class:`ResponseRecord`,
    :class:`OperationRecord`, :class:`NamedSchema`, :class:`APIInfo`,
    :class:`ServerInfo`, :class:`SecurityScheme` and :class:`ParsedSpec`.

Raw schema values (``dict`` or ``bool``) are kept alongside their projected
:data:`~specir.schema.types.TypeDescriptor` so that emitters needing
validation keywords (``minLength``, ``pattern``...) still have them.
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from specir.schema.types import TOP, TypeDescriptor

SchemaLike = Union[dict[str, Any], bool]


# --- Configuration ---


class LoaderConfig(BaseModel):
    """Transport settings used when fetching remote documents."""

    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    follow_redirects: bool = True
    max_concurrency: int = Field(
        default=8, description="Upper bound on simultaneous remote fetches"
    )


class FetchCacheConfig(BaseModel):
    """On-disk cache of fetched remote documents."""

    enabled: bool = Field(default=False, description="Cache remote documents on disk")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")


class ExtractionConfig(BaseModel):
    """Policy switches for the path and operation extractor."""

    drop_reserved_headers: bool = Field(
        default=True,
        description="Drop Accept/Content-Type/Authorization header parameters "
        "from OpenAPI 3.x operations",
    )
    reserved_headers: list[str] = Field(
        default_factory=lambda: ["accept", "content-type", "authorization"],
        description="Header names managed by the HTTP layer (case-insensitive)",
    )


class ProjectionOptions(BaseModel):
    """Switches for :class:`~specir.schema.projector.TypeProjector`."""

    named_enums: bool = Field(
        default=False,
        description="Project an enum with a known declared name to a named type "
        "instead of a literal union",
    )
    inline_unknown_refs: bool = Field(
        default=False,
        description="Resolve and project inline a reference whose name is not in "
        "the schema table, instead of projecting it to top",
    )


class SpecirConfig(BaseModel):
    """Effective configuration for one generation run.

    Resolved by :func:`~specir.config.resolve_config` from defaults, the
    user config file, ``./specir.json`` and ``SPECIR_*`` environment
    variables.
    """

    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    cache: FetchCacheConfig = Field(default_factory=FetchCacheConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    projection: ProjectionOptions = Field(default_factory=ProjectionOptions)


# --- IR ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods that have a fixed field on an OpenAPI path-item object.

    ``QUERY`` is the OpenAPI 3.2 addition.  Any other verb lives in
    ``additionalOperations`` and keeps its literal spelling.
    """

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"
    QUERY = "query"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    QUERYSTRING = "querystring"


class ParameterRecord(BaseModel):
    """A single parameter of an operation, normalized to OpenAPI 3.x shape.

    Exactly one of ``schema_`` (styled value) or ``content`` (one encoded
    string) describes the value; ``content_based`` tells which.  For a
    content-based parameter ``schema_`` holds the schema of its sole content
    entry so emitters always have one place to look.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    style: Optional[str] = None
    explode: Optional[bool] = None
    allow_reserved: bool = False
    allow_empty_value: bool = False
    schema_: SchemaLike = Field(default_factory=dict, alias="schema")
    content: Optional[dict[str, MediaTypeRecord]] = None
    content_based: bool = False
    example: Any = None
    examples: Optional[dict[str, Any]] = None
    type: TypeDescriptor = TOP
    extensions: dict[str, Any] = Field(default_factory=dict)


class MediaTypeRecord(BaseModel):
    """One entry of a ``content`` map.

    ``item_schema`` is the OpenAPI 3.2 ``itemSchema`` used by streaming
    formats (JSON Lines, server-sent events...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_: Optional[SchemaLike] = Field(default=None, alias="schema")
    item_schema: Optional[SchemaLike] = None
    example: Any = None
    examples: Optional[dict[str, Any]] = None
    encoding: Optional[dict[str, Any]] = None
    type: TypeDescriptor = TOP
    item_type: Optional[TypeDescriptor] = None


class RequestBodyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: bool = False
    description: Optional[str] = None
    content: dict[str, MediaTypeRecord] = Field(default_factory=dict)
    preferred_media_type: Optional[str] = None


class ResponseRecord(BaseModel):
    """A response for one status code (or ``default``).

    ``headers`` maps header names to their projected types; the
    ``Content-Type`` header is never listed since it is described by
    ``content``.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    description: Optional[str] = None
    content: dict[str, MediaTypeRecord] = Field(default_factory=dict)
    headers: dict[str, TypeDescriptor] = Field(default_factory=dict)
    links: dict[str, dict[str, Any]] = Field(default_factory=dict)
    preferred_media_type: Optional[str] = None


class OperationRecord(BaseModel):
    """A single operation (one path template + one HTTP method).

    ``method`` is upper-cased for fixed verbs and kept verbatim for entries
    from ``additionalOperations`` (``additional=True``).  ``security`` is
    ``None`` when the operation does not override the document-level
    requirements; ``[]`` means explicitly unauthenticated.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: str
    additional: bool = False
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    tags: list[str] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = None
    servers: Optional[list[ServerInfo]] = None
    parameters: list[ParameterRecord] = Field(default_factory=list)
    request_body: Optional[RequestBodyRecord] = None
    responses: dict[str, ResponseRecord] = Field(default_factory=dict)
    callbacks: Optional[dict[str, Any]] = None
    external_docs: Optional[dict[str, Any]] = None
    consumes: Optional[list[str]] = None
    produces: Optional[list[str]] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


class NamedSchema(BaseModel):
    """An entry of the named-schema table handed to emitters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    schema_: SchemaLike = Field(alias="schema")
    type: TypeDescriptor = TOP
    origin: str = Field(description="URI of the document that declared the schema")


class SecurityScheme(BaseModel):
    """An OpenAPI *Security Scheme Object* (or Swagger 2.0 security definition).

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``,
    ``openIdConnect``, ``mutualTLS`` and Swagger 2.0 ``basic``.  Only the
    fields relevant to the scheme type are populated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str
    description: Optional[str] = None
    param_name: Optional[str] = Field(default=None, alias="in_name")
    location: Optional[str] = Field(default=None, alias="in_location")
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: Optional[dict[str, Any]] = None
    openid_connect_url: Optional[str] = None


class APIInfo(BaseModel):
    """API metadata extracted from the document's *Info Object*."""

    title: str
    version: str
    summary: Optional[str] = None
    description: Optional[str] = None
    terms_of_service: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_url: Optional[str] = None
    license_name: Optional[str] = None
    license_url: Optional[str] = None
    license_identifier: Optional[str] = None


class ServerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    description: Optional[str] = None
    variables: Optional[dict[str, Any]] = None


class ParsedSpec(BaseModel):
    """The complete IR of one document.

    Produced by :func:`~specir.parser.extractor.extract_spec` and consumed
    by emitters.  ``dialect`` is ``"swagger"`` or ``"openapi"`` and
    ``version`` the declared version string.
    """

    info: APIInfo
    dialect: str
    version: str
    json_schema_dialect: Optional[str] = None
    document_uri: str
    servers: list[ServerInfo] = Field(default_factory=list)
    security: list[dict[str, list[str]]] = Field(default_factory=list)
    operations: list[OperationRecord] = Field(default_factory=list)
    webhooks: list[OperationRecord] = Field(default_factory=list)
    schemas: list[NamedSchema] = Field(default_factory=list)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    links: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def schema_names(self) -> list[str]:
        return [entry.name for entry in self.schemas]


ParameterRecord.model_rebuild()
OperationRecord.model_rebuild()
