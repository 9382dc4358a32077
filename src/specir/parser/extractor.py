"""Extract operations, parameters and schemas from a loaded API description.

This module walks a Swagger 2.0 or OpenAPI 3.x document (references are
resolved on the way, through a :class:`~specir.parser.resolver.ReferenceResolver`)
and builds the IR defined in :mod:`specir.models`.

The public entry points are:

* :func:`extract_paths` -- one :class:`~specir.models.OperationRecord` per
  path template and method of a ``paths`` (or ``webhooks``) map.
* :func:`extract_spec` -- the whole :class:`~specir.models.ParsedSpec`:
  info, servers, operations, webhooks, the named-schema table, security
  schemes and component links.
* :func:`parse_spec` -- load a source and its reference closure, then
  :func:`extract_spec`.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them *field by
field* when they share the same ``name`` and ``in`` values.

Swagger 2.0 documents are normalized to the OpenAPI 3 shape on the way:
``in: body`` and ``in: formData`` parameters become a request body, a
response ``schema`` is lifted into ``content`` for every ``produces`` media
type, and ``collectionFormat`` becomes ``style`` / ``explode``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from specir.cache import FetchCache
from specir.config import create_fetch_cache
from specir.models import (
    APIInfo,
    ExtractionConfig,
    HTTPMethod,
    MediaTypeRecord,
    NamedSchema,
    OperationRecord,
    ParameterLocation,
    ParameterRecord,
    ParsedSpec,
    RequestBodyRecord,
    ResponseRecord,
    SecurityScheme,
    ServerInfo,
    SpecirConfig,
)
from specir.parser.documents import DocumentCache, load_documents
from specir.parser.loader import to_document_uri
from specir.parser.resolver import ReferenceResolver, is_ref
from specir.parser.validator import is_api_document, spec_dialect, validate_spec
from specir.schema.media import negotiate
from specir.schema.nodes import ref_name
from specir.schema.projector import TypeProjector
from specir.schema.types import TOP, TypeDescriptor

logger = logging.getLogger(__name__)

_HTTP_METHODS = tuple(m.value for m in HTTPMethod)

_PATH_ITEM_FIELDS = frozenset(
    {"$ref", "summary", "description", "servers", "parameters", "additionalOperations"}
)
_OPERATION_FIELDS = ("responses", "operationId", "requestBody", "parameters")
_METHOD_TOKEN = re.compile(r"^[A-Z][A-Z0-9_-]*$")

_COLLECTION_FORMATS = {
    "csv": ("form", False),
    "ssv": ("spaceDelimited", False),
    "tsv": ("tabDelimited", False),
    "pipes": ("pipeDelimited", False),
    "multi": ("form", True),
}

# Swagger 2.0 parameter / header / items fields that describe a value.
_FLAT_SCHEMA_FIELDS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "maximum",
    "exclusiveMaximum",
    "minimum",
    "exclusiveMinimum",
    "maxLength",
    "minLength",
    "pattern",
    "maxItems",
    "minItems",
    "uniqueItems",
    "multipleOf",
    "x-nullable",
)

_FORM_MEDIA_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
_DEFAULT_MEDIA_TYPE = "application/json"

_SWAGGER_FLOWS = {
    "implicit": "implicit",
    "password": "password",
    "application": "clientCredentials",
    "accessCode": "authorizationCode",
}

_INLINE_URI = "memory:"
_SCHEMA_DOCUMENT_KEYS = ("$schema", "type", "properties", "allOf", "oneOf", "anyOf", "enum")


@dataclass
class ExtractionContext:
    """Document-wide settings threaded through :func:`extract_paths`.

    Attributes:
        is_openapi3: ``False`` for Swagger 2.0 documents.  Reserved headers
            are only dropped for OpenAPI 3.x.
        consumes: Document-level ``consumes`` (Swagger 2.0).
        produces: Document-level ``produces`` (Swagger 2.0).
        security_scheme_names: Names of the declared security schemes;
            requirement keys equal to one of them are never rewritten.
        config: Extraction policy switches.
        projector: Projects every parameter, media type and header schema.
            A projector with no known type names is used when omitted.
        requirement_keys: Every security requirement key seen while
            extracting, as written.  Keys that point into other documents
            are resolved afterwards to register the schemes they name.
    """

    is_openapi3: bool = True
    consumes: list[str] = field(default_factory=list)
    produces: list[str] = field(default_factory=list)
    security_scheme_names: set[str] = field(default_factory=set)
    config: ExtractionConfig = field(default_factory=ExtractionConfig)
    projector: Optional[TypeProjector] = None
    requirement_keys: list[str] = field(default_factory=list)


def extract_paths(
    paths: Optional[dict[str, Any]],
    resolver: Optional[ReferenceResolver] = None,
    components: Optional[dict[str, Any]] = None,
    context: Optional[ExtractionContext] = None,
) -> list[OperationRecord]:
    """Build one :class:`~specir.models.OperationRecord` per path and method.

    Records are produced, per path template in document order, for every
    fixed method field (``get put post delete options head patch trace
    query``), every ``additionalOperations`` entry, and every residual
    custom-method bucket (an upper-case key of the path item holding an
    operation object).

    Args:
        paths: The ``paths`` (or ``webhooks``) map.
        resolver: Resolves ``$ref`` values.  When omitted, references are
            resolved against *components* only.
        components: The document's ``components`` object, used when no
            resolver is given.
        context: Document-wide settings.

    Returns:
        The operation records, in document order.

    Example::

        records = extract_paths({"/x": {"get": {"responses": {}}}})
        # [OperationRecord(path="/x", method="GET", ...)]
    """
    if resolver is None:
        cache = DocumentCache()
        cache.add(_INLINE_URI, {"components": components or {}})
        resolver = ReferenceResolver(cache, _INLINE_URI)
    context = context or ExtractionContext()
    if context.projector is None:
        schemas = (components or {}).get("schemas")
        names = schemas.keys() if isinstance(schemas, dict) else ()
        context.projector = TypeProjector(names, resolver=resolver)

    builder = _OperationBuilder(resolver, context)
    records: list[OperationRecord] = []
    for path, path_item in (paths or {}).items():
        if str(path).startswith("x-"):
            continue
        records.extend(builder.path_operations(str(path), path_item))
    return records


class _OperationBuilder:
    def __init__(self, resolver: ReferenceResolver, context: ExtractionContext) -> None:
        self.resolver = resolver
        self.context = context
        self.projector: TypeProjector = context.projector

    def resolve(self, value: Any) -> Any:
        if is_ref(value):
            return self.resolver.resolve_object(value)
        return value

    def project(self, schema: Any) -> TypeDescriptor:
        if schema is None:
            return TOP
        return self.projector.project(schema)

    # ------------------------------------------------------------------
    # Path items and operations
    # ------------------------------------------------------------------

    def path_operations(self, path: str, raw_item: Any) -> list[OperationRecord]:
        path_item = self.resolve(raw_item)
        if not isinstance(path_item, dict):
            if path_item is not None:
                logger.warning("Path item '%s' is not an object; skipping it", path)
            return []

        shared = self._shared_parameters(path_item.get("parameters"))
        records: list[OperationRecord] = []
        seen: set[str] = set()

        def add(method: str, operation: Any, additional: bool) -> None:
            if method in seen:
                logger.warning(
                    "Duplicate method '%s' on path '%s'; keeping the first", method, path
                )
                return
            operation = self.resolve(operation)
            if not isinstance(operation, dict):
                return
            seen.add(method)
            records.append(self._operation(path, method, operation, path_item, shared, additional))

        for method in _HTTP_METHODS:
            if method in path_item:
                add(method.upper(), path_item[method], False)

        additional_ops = path_item.get("additionalOperations")
        if isinstance(additional_ops, dict):
            for token, operation in additional_ops.items():
                add(str(token), operation, True)

        for key, value in path_item.items():
            if (
                not isinstance(key, str)
                or key in _PATH_ITEM_FIELDS
                or key in _HTTP_METHODS
                or key.startswith("x-")
                or not _METHOD_TOKEN.match(key)
            ):
                continue
            if isinstance(value, dict) and any(f in value for f in _OPERATION_FIELDS):
                add(key, value, True)

        return records

    def _operation(
        self,
        path: str,
        method: str,
        operation: dict[str, Any],
        path_item: dict[str, Any],
        shared: list[dict[str, Any]],
        additional: bool,
    ) -> OperationRecord:
        params = _merge_parameters(shared, self._resolved_parameters(operation.get("parameters")))

        consumes = _string_list(operation.get("consumes")) or self.context.consumes
        produces = _string_list(operation.get("produces")) or self.context.produces

        request_body: Optional[RequestBodyRecord] = None
        if self.context.is_openapi3:
            request_body = self._request_body(operation.get("requestBody"))
        else:
            request_body = self._swagger_body(params, consumes)

        servers = operation.get("servers")
        if servers is None:
            servers = path_item.get("servers")

        return OperationRecord(
            path=path,
            method=method,
            additional=additional,
            operation_id=operation.get("operationId"),
            summary=operation.get("summary") or path_item.get("summary"),
            description=operation.get("description") or path_item.get("description"),
            deprecated=operation.get("deprecated") is True,
            tags=[str(tag) for tag in operation.get("tags") or []],
            security=self._security(operation.get("security")),
            servers=_servers(servers) if servers is not None else None,
            parameters=[
                record for record in (self._parameter(p) for p in params) if record is not None
            ],
            request_body=request_body,
            responses=self._responses(operation.get("responses"), produces),
            callbacks=self._callbacks(operation.get("callbacks")),
            external_docs=operation.get("externalDocs"),
            consumes=_string_list(operation.get("consumes")),
            produces=_string_list(operation.get("produces")),
            extensions=_extensions(operation),
        )

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def _resolved_parameters(self, raw: Any) -> list[dict[str, Any]]:
        if not isinstance(raw, list):
            return []
        resolved = []
        for param in raw:
            param = self.resolve(param)
            if isinstance(param, dict) and isinstance(param.get("name"), str):
                resolved.append(param)
            elif param is not None:
                logger.warning("Ignoring malformed parameter: %r", param)
        return resolved

    def _shared_parameters(self, raw: Any) -> list[dict[str, Any]]:
        unique: dict[tuple[str, str], dict[str, Any]] = {}
        for param in self._resolved_parameters(raw):
            unique.setdefault((param["name"], str(param.get("in", ""))), param)
        return list(unique.values())

    def _parameter(self, raw: dict[str, Any]) -> Optional[ParameterRecord]:
        name = raw["name"]
        location_str = raw.get("in")
        if location_str in ("body", "formData"):
            return None
        try:
            location = ParameterLocation(location_str)
        except ValueError:
            logger.warning(
                "Parameter '%s' has unknown location %r; skipping it", name, location_str
            )
            return None

        config = self.context.config
        if (
            self.context.is_openapi3
            and config.drop_reserved_headers
            and location == ParameterLocation.HEADER
            and name.lower() in {h.lower() for h in config.reserved_headers}
        ):
            logger.debug("Dropping reserved header parameter '%s'", name)
            return None

        content = raw.get("content")
        content_records: Optional[dict[str, MediaTypeRecord]] = None
        style: Optional[str] = None
        explode: Optional[bool] = None
        if isinstance(content, dict) and content:
            content_records = self._media_types(content)
            first = self.resolve(next(iter(content.values())))
            schema = first.get("schema") if isinstance(first, dict) else None
            schema = _schema_value(schema, f"parameter '{name}'")
            if schema is None:
                schema = {}
        else:
            schema = _schema_value(raw.get("schema"), f"parameter '{name}'")
            if schema is None:
                schema = _flat_schema(raw)
            style, explode = _style(raw, location)

        return ParameterRecord(
            name=name,
            location=location,
            required=location == ParameterLocation.PATH or raw.get("required") is True,
            description=raw.get("description"),
            deprecated=raw.get("deprecated") is True,
            style=style,
            explode=explode,
            allow_reserved=raw.get("allowReserved") is True,
            allow_empty_value=raw.get("allowEmptyValue") is True,
            schema=schema,
            content=content_records,
            content_based=content_records is not None,
            example=raw.get("example"),
            examples=raw.get("examples") if isinstance(raw.get("examples"), dict) else None,
            type=self.project(schema),
            extensions=_extensions(raw),
        )

    # ------------------------------------------------------------------
    # Bodies
    # ------------------------------------------------------------------

    def _request_body(self, raw: Any) -> Optional[RequestBodyRecord]:
        body = self.resolve(raw)
        if not isinstance(body, dict):
            return None
        content = self._media_types(body.get("content"))
        return RequestBodyRecord(
            required=body.get("required") is True,
            description=body.get("description"),
            content=content,
            preferred_media_type=_preferred(content),
        )

    def _swagger_body(
        self, params: list[dict[str, Any]], consumes: list[str]
    ) -> Optional[RequestBodyRecord]:
        body = next((p for p in params if p.get("in") == "body"), None)
        if body is not None:
            schema = _schema_value(body.get("schema"), "body parameter")
            if schema is None:
                schema = {}
            media_types = consumes or [_DEFAULT_MEDIA_TYPE]
            content = {
                media_type: MediaTypeRecord(schema=schema, type=self.project(schema))
                for media_type in media_types
            }
            return RequestBodyRecord(
                required=body.get("required") is True,
                description=body.get("description"),
                content=content,
                preferred_media_type=_preferred(content),
            )

        fields = [p for p in params if p.get("in") == "formData"]
        if not fields:
            return None
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {p["name"]: _flat_schema(p) for p in fields},
        }
        required = [p["name"] for p in fields if p.get("required") is True]
        if required:
            schema["required"] = required

        media_types = [c for c in consumes if c in _FORM_MEDIA_TYPES]
        if not media_types:
            has_file = any(p.get("type") == "file" for p in fields)
            media_types = [_FORM_MEDIA_TYPES[0] if has_file else _FORM_MEDIA_TYPES[1]]
        form_type = self.project(schema)
        content = {
            media_type: MediaTypeRecord(schema=schema, type=form_type) for media_type in media_types
        }
        return RequestBodyRecord(
            required=bool(required),
            content=content,
            preferred_media_type=_preferred(content),
        )

    def _media_types(self, raw: Any) -> dict[str, MediaTypeRecord]:
        if not isinstance(raw, dict):
            return {}
        records: dict[str, MediaTypeRecord] = {}
        for media_type, entry in raw.items():
            entry = self.resolve(entry)
            if not isinstance(entry, dict):
                logger.warning("Media type entry '%s' is not an object; skipping it", media_type)
                continue
            schema = _schema_value(entry.get("schema"), f"media type '{media_type}'")
            item_schema = _schema_value(entry.get("itemSchema"), f"media type '{media_type}'")
            records[str(media_type)] = MediaTypeRecord(
                schema=schema,
                item_schema=item_schema,
                example=entry.get("example"),
                examples=self._examples(entry.get("examples")),
                encoding=entry.get("encoding") if isinstance(entry.get("encoding"), dict) else None,
                type=self.project(schema),
                item_type=self.project(item_schema) if item_schema is not None else None,
            )
        return records

    def _examples(self, raw: Any) -> Optional[dict[str, Any]]:
        if not isinstance(raw, dict):
            return None
        return {name: self.resolve(example) for name, example in raw.items()}

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _responses(self, raw: Any, produces: list[str]) -> dict[str, ResponseRecord]:
        if not isinstance(raw, dict):
            return {}
        responses: dict[str, ResponseRecord] = {}
        for status, entry in raw.items():
            status = str(status)
            if status.startswith("x-"):
                continue
            response = self.resolve(entry)
            if not isinstance(response, dict):
                logger.warning("Response '%s' could not be resolved; skipping it", status)
                continue
            responses[status] = self._response(status, response, produces)
        return responses

    def _response(
        self, status: str, response: dict[str, Any], produces: list[str]
    ) -> ResponseRecord:
        if self.context.is_openapi3:
            content = self._media_types(response.get("content"))
        else:
            content = {}
            schema = _schema_value(response.get("schema"), f"response '{status}'")
            if schema is not None:
                examples = response.get("examples")
                if not isinstance(examples, dict):
                    examples = {}
                projected = self.project(schema)
                for media_type in produces or [_DEFAULT_MEDIA_TYPE]:
                    content[media_type] = MediaTypeRecord(
                        schema=schema, example=examples.get(media_type), type=projected
                    )

        headers: dict[str, TypeDescriptor] = {}
        raw_headers = response.get("headers")
        if isinstance(raw_headers, dict):
            for name, header in raw_headers.items():
                if name.lower() == "content-type":
                    continue
                header = self.resolve(header)
                if isinstance(header, dict):
                    headers[name] = self.project(self._header_schema(header))

        links: dict[str, dict[str, Any]] = {}
        raw_links = response.get("links")
        if isinstance(raw_links, dict):
            for name, link in raw_links.items():
                link = self.resolve(link)
                if isinstance(link, dict):
                    links[name] = link

        return ResponseRecord(
            status=status,
            description=response.get("description"),
            content=content,
            headers=headers,
            links=links,
            preferred_media_type=_preferred(content),
        )

    def _header_schema(self, header: dict[str, Any]) -> Any:
        if "schema" in header:
            return header["schema"]
        content = header.get("content")
        if isinstance(content, dict) and content:
            entry = self.resolve(next(iter(content.values())))
            return entry.get("schema") if isinstance(entry, dict) else None
        return _flat_schema(header)

    def _callbacks(self, raw: Any) -> Optional[dict[str, Any]]:
        if not isinstance(raw, dict):
            return None
        return {name: self.resolve(callback) for name, callback in raw.items()}

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------

    def _security(self, raw: Any) -> Optional[list[dict[str, list[str]]]]:
        if not isinstance(raw, list):
            return None
        self.context.requirement_keys.extend(_requirement_keys(raw))
        return normalize_security(raw, self.context.security_scheme_names)


def normalize_security(
    requirements: list[Any], scheme_names: set[str]
) -> list[dict[str, list[str]]]:
    """Normalize the keys of a list of security requirement objects.

    A key equal to a declared scheme name is kept as written.  Any other
    key, whether a bare pointer fragment such as
    ``#/components/securitySchemes/MyAuth`` or a URI into another document,
    is reduced to the last segment of its fragment (or of its path when it
    has no fragment).
    """
    normalized: list[dict[str, list[str]]] = []
    for requirement in requirements:
        if not isinstance(requirement, dict):
            continue
        entry: dict[str, list[str]] = {}
        for key, scopes in requirement.items():
            entry[security_key(key, scheme_names)] = (
                [str(scope) for scope in scopes] if isinstance(scopes, list) else []
            )
        normalized.append(entry)
    return normalized


def security_key(key: str, scheme_names: set[str]) -> str:
    if key in scheme_names:
        return key
    target = key.split("?", 1)[0]
    if "#" in target:
        target = target.split("#", 1)[1]
    segments = [segment for segment in target.split("/") if segment]
    return segments[-1] if segments else key


def _requirement_keys(requirements: list[Any]) -> list[str]:
    return [
        key
        for requirement in requirements
        if isinstance(requirement, dict)
        for key in requirement
    ]


def _is_absolute_uri(value: str) -> bool:
    return re.match(r"^[A-Za-z][A-Za-z0-9+.-]*:", value) is not None and not any(
        ch.isspace() for ch in value
    )


def _merge_parameters(
    shared: list[dict[str, Any]], own: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    An operation-level parameter with the same ``name`` and ``in`` as a
    path-level one is laid over it field by field; the merged parameter keeps
    the path-level position.
    """
    own_lookup = {(p["name"], str(p.get("in", ""))): p for p in own}
    merged: list[dict[str, Any]] = []
    for param in shared:
        key = (param["name"], str(param.get("in", "")))
        merged.append({**param, **own_lookup[key]} if key in own_lookup else param)
    shared_keys = {(p["name"], str(p.get("in", ""))) for p in shared}
    merged.extend(p for p in own if (p["name"], str(p.get("in", ""))) not in shared_keys)
    return merged


def _style(raw: dict[str, Any], location: ParameterLocation) -> tuple[str, bool]:
    collection_format = raw.get("collectionFormat")
    if collection_format in _COLLECTION_FORMATS:
        return _COLLECTION_FORMATS[collection_format]
    style = raw.get("style")
    if not isinstance(style, str):
        simple = location in (ParameterLocation.PATH, ParameterLocation.HEADER)
        style = "simple" if simple else "form"
    explode = raw.get("explode")
    if not isinstance(explode, bool):
        explode = style == "form"
    return style, explode


def _flat_schema(raw: dict[str, Any]) -> dict[str, Any]:
    schema = {key: raw[key] for key in _FLAT_SCHEMA_FIELDS if key in raw}
    items = schema.get("items")
    if isinstance(items, dict) and not is_ref(items):
        schema["items"] = _flat_schema(items)
    return schema


def _schema_value(value: Any, where: str) -> Any:
    if value is None or isinstance(value, (dict, bool)):
        return value
    logger.warning("The schema of %s is not a schema object; ignoring it", where)
    return None


def _preferred(content: dict[str, MediaTypeRecord]) -> Optional[str]:
    chosen = negotiate(content)
    return chosen.key if chosen is not None else None


def _string_list(value: Any) -> Optional[list[str]]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return None


def _extensions(obj: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in obj.items()
        if isinstance(key, str) and key.startswith("x-")
    }


def _servers(raw: Any) -> list[ServerInfo]:
    if not isinstance(raw, list):
        return []
    return [
        ServerInfo(
            url=server.get("url", "/"),
            description=server.get("description"),
            variables=server.get("variables"),
        )
        for server in raw
        if isinstance(server, dict)
    ]


# ----------------------------------------------------------------------
# Whole-document extraction
# ----------------------------------------------------------------------


def parse_spec(
    source: str,
    config: Optional[SpecirConfig] = None,
    fetch_cache: Optional[FetchCache] = None,
) -> ParsedSpec:
    """Load *source* with everything it references and extract its IR.

    When no *fetch_cache* is given and ``config.cache.enabled`` is set, the
    on-disk cache from :func:`~specir.config.create_fetch_cache` is opened
    for the run and closed afterwards.

    Raises:
        DocumentLoadError: If the entry document cannot be loaded.
        SpecValidationError: If a loaded API document is malformed.
    """
    config = config or SpecirConfig()
    if fetch_cache is None and config.cache.enabled:
        fetch_cache = create_fetch_cache(config)
        try:
            cache, document = load_documents(source, config.loader, fetch_cache)
        finally:
            fetch_cache.close()
    else:
        cache, document = load_documents(source, config.loader, fetch_cache)
    return extract_spec(document, cache, config, document_uri=to_document_uri(source))


def extract_spec(
    document: dict[str, Any],
    cache: Optional[DocumentCache] = None,
    config: Optional[SpecirConfig] = None,
    document_uri: Optional[str] = None,
) -> ParsedSpec:
    """Extract a :class:`~specir.models.ParsedSpec` from a parsed document.

    Args:
        document: The entry document.
        cache: The run's document cache, holding every document *document*
            references.  When omitted the document is resolved on its own.
        config: Extraction and projection settings.
        document_uri: Retrieval URI of *document*.  Looked up in *cache*
            when omitted.

    Raises:
        SpecValidationError: If *document* fails structural validation.
    """
    validate_spec(document)
    config = config or SpecirConfig()
    dialect, version = spec_dialect(document)
    is_openapi3 = dialect == "openapi"

    if cache is None:
        cache = DocumentCache()
    if document_uri is None:
        document_uri = next((uri for uri, doc in cache.documents() if doc is document), None)
    if document_uri is None:
        document_uri = _INLINE_URI
    cache.add(document_uri, document)
    resolver = ReferenceResolver(cache, document_uri)

    schemas, originals, ref_names = _collect_schemas(
        document, document_uri, cache, resolver, is_openapi3
    )
    projector = TypeProjector(
        (entry.name for entry in schemas), config.projection, resolver, ref_names
    )
    schemas = [
        entry.model_copy(
            update={"type": projector.project_named(entry.name, originals[entry.name])}
        )
        for entry in schemas
    ]

    security_schemes = _security_schemes(document, resolver, is_openapi3)
    context = ExtractionContext(
        is_openapi3=is_openapi3,
        consumes=_string_list(document.get("consumes")) or [],
        produces=_string_list(document.get("produces")) or [],
        security_scheme_names=set(security_schemes),
        config=config.extraction,
        projector=projector,
    )
    components = document.get("components")
    operations = extract_paths(document.get("paths"), resolver, components, context)
    webhooks = extract_paths(document.get("webhooks"), resolver, components, context)

    declared = set(security_schemes)
    raw_security = document.get("security") or []
    security = normalize_security(raw_security, declared)
    requirement_keys = _requirement_keys(raw_security) + context.requirement_keys
    _add_uri_schemes(security_schemes, requirement_keys, declared, resolver)

    return ParsedSpec(
        info=_extract_info(document),
        dialect=dialect,
        version=version,
        json_schema_dialect=document.get("jsonSchemaDialect"),
        document_uri=document_uri,
        servers=_document_servers(document, document_uri, is_openapi3),
        security=security,
        operations=operations,
        webhooks=webhooks,
        schemas=schemas,
        security_schemes=security_schemes,
        links=_component_links(document, resolver),
    )


def _extract_info(spec: dict[str, Any]) -> APIInfo:
    info = spec.get("info", {})
    contact = info.get("contact") or {}
    license_info = info.get("license") or {}

    return APIInfo(
        title=info["title"],
        version=info["version"],
        summary=info.get("summary"),
        description=info.get("description"),
        terms_of_service=info.get("termsOfService"),
        contact_name=contact.get("name"),
        contact_email=contact.get("email"),
        contact_url=contact.get("url"),
        license_name=license_info.get("name"),
        license_url=license_info.get("url"),
        license_identifier=license_info.get("identifier"),
    )


def _document_servers(
    spec: dict[str, Any], document_uri: str, is_openapi3: bool
) -> list[ServerInfo]:
    """Return the document's servers.

    OpenAPI 3.x defaults to a single ``/`` server.  Swagger 2.0 servers are
    synthesized from ``schemes``, ``host`` and ``basePath``, falling back to
    the host and scheme the document was fetched from.
    """
    if is_openapi3:
        servers = _servers(spec.get("servers"))
        return servers or [ServerInfo(url="/")]

    document_url = document_uri if document_uri.startswith(("http://", "https://")) else None
    host = spec.get("host") or (document_url.split("/")[2] if document_url else None)
    base_path = spec.get("basePath") or "/"
    if not base_path.startswith("/"):
        base_path = f"/{base_path}"

    schemes = _string_list(spec.get("schemes"))
    if not schemes:
        schemes = [document_url.split(":", 1)[0]] if document_url else ["http"]

    if not host:
        return [ServerInfo(url=base_path)] if base_path != "/" else []
    return [ServerInfo(url=f"{scheme}://{host}{base_path}") for scheme in dict.fromkeys(schemes)]


def _collect_schemas(
    document: dict[str, Any],
    document_uri: str,
    cache: DocumentCache,
    resolver: ReferenceResolver,
    is_openapi3: bool,
) -> tuple[list[NamedSchema], dict[str, Any], dict[str, str]]:
    """Build the named-schema table and the reference-key -> name map.

    The entry document's schemas come first, then those of every other
    cached API document, then standalone schema documents (named from their
    ``$id`` or file name).  The first declaration of a name wins.
    """
    table: dict[str, NamedSchema] = {}
    originals: dict[str, Any] = {}
    ref_names: dict[str, str] = {}

    def register(name: str, schema: Any, origin: str, keys: list[str]) -> None:
        if not isinstance(schema, (dict, bool)):
            return
        if name in table:
            if originals[name] is not schema:
                logger.warning(
                    "Schema name '%s' from %s is already declared by %s; keeping the first",
                    name,
                    origin,
                    table[name].origin,
                )
            return
        table[name] = NamedSchema(name=name, schema=schema, origin=origin)
        originals[name] = schema
        for key in keys:
            ref_names.setdefault(key, name)
        if isinstance(schema, dict):
            base = cache.base_uri_of(schema) or origin
            for anchor_key in ("$anchor", "$dynamicAnchor"):
                anchor = schema.get(anchor_key)
                if isinstance(anchor, str):
                    ref_names.setdefault(f"{base}#{anchor}", name)
            if isinstance(schema.get("$id"), str):
                ref_names.setdefault(f"{base}#", name)

    def register_document(uri: str, doc: dict[str, Any], openapi3: bool) -> None:
        container = doc.get("components", {}).get("schemas") if openapi3 else doc.get("definitions")
        if not isinstance(container, dict):
            return
        prefix = "/components/schemas/" if openapi3 else "/definitions/"
        bases = dict.fromkeys([uri, cache.logical_base(uri)])
        for name, schema in container.items():
            pointer = prefix + str(name).replace("~", "~0").replace("/", "~1")
            register(str(name), schema, uri, [f"{base}#{pointer}" for base in bases])

    register_document(document_uri, document, is_openapi3)
    for uri, doc in cache.documents():
        if doc is document or not isinstance(doc, dict):
            continue
        if is_api_document(doc):
            other = spec_dialect(doc)
            register_document(uri, doc, other is not None and other[0] == "openapi")
        elif _is_schema_document(doc):
            schema_id = doc.get("$id")
            has_id = isinstance(schema_id, str) and bool(schema_id)
            name = ref_name(schema_id) if has_id else ref_name(uri)
            keys = [f"{uri}#"]
            id_key = resolver.ref_key(schema_id, uri) if isinstance(schema_id, str) else None
            if id_key is not None:
                keys.append(f"{id_key.partition('#')[0]}#")
            register(name, doc, uri, keys)

    return list(table.values()), originals, ref_names


def _is_schema_document(doc: dict[str, Any]) -> bool:
    return any(key in doc for key in _SCHEMA_DOCUMENT_KEYS)


def _security_schemes(
    spec: dict[str, Any], resolver: ReferenceResolver, is_openapi3: bool
) -> dict[str, SecurityScheme]:
    """Extract security scheme definitions.

    Reads ``components/securitySchemes`` (OpenAPI 3.x) or
    ``securityDefinitions`` (Swagger 2.0).  Swagger 2.0 OAuth2 definitions
    are converted to an OpenAPI 3 ``flows`` object.
    """
    if is_openapi3:
        raw = (spec.get("components") or {}).get("securitySchemes") or {}
    else:
        raw = spec.get("securityDefinitions") or {}

    schemes: dict[str, SecurityScheme] = {}
    for name, scheme_data in raw.items():
        scheme_data = resolver.resolve_object(scheme_data)
        if isinstance(scheme_data, dict):
            schemes[name] = _security_scheme(name, scheme_data)
    return schemes


def _security_scheme(name: str, scheme_data: dict[str, Any]) -> SecurityScheme:
    flows = scheme_data.get("flows")
    if flows is None and "flow" in scheme_data:
        flow = _SWAGGER_FLOWS.get(scheme_data["flow"], scheme_data["flow"])
        flows = {
            flow: {
                key: scheme_data[key]
                for key in ("authorizationUrl", "tokenUrl", "scopes")
                if key in scheme_data
            }
        }
    return SecurityScheme(
        name=name,
        type=scheme_data.get("type", ""),
        description=scheme_data.get("description"),
        in_name=scheme_data.get("name"),
        in_location=scheme_data.get("in"),
        scheme=scheme_data.get("scheme"),
        bearer_format=scheme_data.get("bearerFormat"),
        flows=flows,
        openid_connect_url=scheme_data.get("openIdConnectUrl"),
    )


def _add_uri_schemes(
    schemes: dict[str, SecurityScheme],
    requirement_keys: list[str],
    declared: set[str],
    resolver: ReferenceResolver,
) -> None:
    # Requirement keys written as URI references name schemes in other
    # documents; each is registered under the name its requirements use.
    for key in requirement_keys:
        if key in declared or not (_is_absolute_uri(key) or "#" in key):
            continue
        name = security_key(key, declared)
        if name in schemes:
            continue
        target = resolver.resolve(key)
        if isinstance(target, dict) and "type" in target:
            schemes[name] = _security_scheme(name, target)


def _component_links(
    spec: dict[str, Any], resolver: ReferenceResolver
) -> dict[str, dict[str, Any]]:
    raw = (spec.get("components") or {}).get("links")
    if not isinstance(raw, dict):
        return {}
    links: dict[str, dict[str, Any]] = {}
    for name, link in raw.items():
        link = resolver.resolve_object(link)
        if isinstance(link, dict):
            links[name] = link
    return links
