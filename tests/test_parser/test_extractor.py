"""Tests for specir.parser.extractor."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pytest

from specir.cache import FetchCache
from specir.config import create_fetch_cache
from specir.exceptions import SpecValidationError
from specir.models import (
    FetchCacheConfig,
    OperationRecord,
    ParameterLocation,
    ParameterRecord,
    ParsedSpec,
    SpecirConfig,
)
from specir.parser.documents import DocumentCache
from specir.parser.extractor import (
    ExtractionContext,
    _merge_parameters,
    extract_paths,
    extract_spec,
    normalize_security,
    parse_spec,
    security_key,
)
from specir.schema.types import (
    NULL,
    ArrayType,
    BinaryType,
    IntersectionType,
    NamedType,
    ObjectType,
    PrimitiveType,
    UnionType,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _load_fixture(name: str) -> dict[str, Any]:
    """Load a JSON fixture file."""
    path = FIXTURES_DIR / name
    return json.loads(path.read_text(encoding="utf-8"))


def _find_operation(records: list[OperationRecord], method: str, path: str) -> Optional[OperationRecord]:
    for op in records:
        if op.method == method and op.path == path:
            return op
    return None


def _find_param(op: OperationRecord, name: str) -> Optional[ParameterRecord]:
    for p in op.parameters:
        if p.name == name:
            return p
    return None


# ---------------------------------------------------------------------------
# extract_paths
# ---------------------------------------------------------------------------


class TestExtractPaths:
    def test_single_get(self) -> None:
        records = extract_paths({"/x": {"get": {"responses": {}}}})
        assert len(records) == 1
        assert records[0].method == "GET"
        assert records[0].path == "/x"
        assert records[0].additional is False

    def test_fixed_methods_in_canonical_order(self) -> None:
        item = {m: {"responses": {}} for m in ("trace", "post", "get", "query", "delete")}
        records = extract_paths({"/x": item})
        assert [r.method for r in records] == ["GET", "POST", "DELETE", "TRACE", "QUERY"]

    def test_additional_operations_keep_their_spelling(self) -> None:
        records = extract_paths(
            {"/x": {"get": {"responses": {}}, "additionalOperations": {"LINK": {"responses": {}}, "Purge": {}}}}
        )
        assert [(r.method, r.additional) for r in records] == [
            ("GET", False),
            ("LINK", True),
            ("Purge", True),
        ]

    def test_residual_custom_method_bucket(self) -> None:
        records = extract_paths(
            {
                "/x": {
                    "COPY": {"operationId": "copyX", "responses": {}},
                    "NOTES": "not an operation",
                    "Meta": {"responses": {}},
                }
            }
        )
        assert [(r.method, r.operation_id) for r in records] == [("COPY", "copyX")]

    def test_extension_paths_are_skipped(self) -> None:
        records = extract_paths({"x-internal": {"get": {"responses": {}}}, "/y": {"get": {}}})
        assert [r.path for r in records] == ["/y"]

    def test_empty_paths(self) -> None:
        assert extract_paths({}) == []
        assert extract_paths(None) == []

    def test_referenced_path_item(self) -> None:
        components = {"pathItems": {"Ping": {"get": {"operationId": "ping", "responses": {}}}}}
        records = extract_paths({"/ping": {"$ref": "#/components/pathItems/Ping"}}, components=components)
        assert records[0].operation_id == "ping"

    def test_path_level_summary_is_inherited(self) -> None:
        records = extract_paths({"/x": {"summary": "shared", "get": {"responses": {}}}})
        assert records[0].summary == "shared"

    def test_extensions_pass_through(self) -> None:
        records = extract_paths({"/x": {"get": {"responses": {}, "x-rate": {"limit": 5}}}})
        assert records[0].extensions == {"x-rate": {"limit": 5}}


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


class TestParameters:
    def test_operation_overrides_path_parameter_field_by_field(self) -> None:
        records = extract_paths(
            {
                "/items": {
                    "parameters": [
                        {"name": "q", "in": "query", "description": "Search", "schema": {"type": "string"}}
                    ],
                    "get": {"parameters": [{"name": "q", "in": "query", "required": True}], "responses": {}},
                }
            }
        )
        param = records[0].parameters[0]
        assert param.required is True
        assert param.description == "Search"
        assert param.type == PrimitiveType(name="string")

    def test_path_parameters_are_deduplicated(self) -> None:
        records = extract_paths(
            {
                "/items": {
                    "parameters": [
                        {"name": "q", "in": "query", "description": "first"},
                        {"name": "q", "in": "query", "description": "second"},
                    ],
                    "get": {"responses": {}},
                }
            }
        )
        assert [p.description for p in records[0].parameters] == ["first"]

    def test_referenced_parameter_with_sibling_override(self) -> None:
        components = {
            "parameters": {
                "Limit": {"name": "limit", "in": "query", "description": "base", "schema": {"type": "integer"}}
            }
        }
        records = extract_paths(
            {
                "/x": {
                    "get": {
                        "parameters": [{"$ref": "#/components/parameters/Limit", "description": "override"}],
                        "responses": {},
                    }
                }
            },
            components=components,
        )
        param = records[0].parameters[0]
        assert param.name == "limit"
        assert param.description == "override"
        assert param.type == PrimitiveType(name="integer")

    def test_content_based_parameter(self) -> None:
        records = extract_paths(
            {
                "/x": {
                    "get": {
                        "parameters": [
                            {
                                "name": "filter",
                                "in": "query",
                                "content": {"application/json": {"schema": {"type": "object"}}},
                            }
                        ],
                        "responses": {},
                    }
                }
            }
        )
        param = records[0].parameters[0]
        assert param.content_based is True
        assert param.schema_ == {"type": "object"}
        assert param.content is not None and "application/json" in param.content
        assert param.style is None

    def test_flat_swagger_parameter_is_synthesized(self) -> None:
        records = extract_paths(
            {
                "/x": {
                    "get": {
                        "parameters": [
                            {"name": "ids", "in": "query", "type": "array", "items": {"type": "integer"}}
                        ],
                        "responses": {},
                    }
                }
            },
            context=ExtractionContext(is_openapi3=False),
        )
        param = records[0].parameters[0]
        assert param.schema_ == {"type": "array", "items": {"type": "integer"}}
        assert param.type == ArrayType(items=PrimitiveType(name="integer"))

    @pytest.mark.parametrize(
        ("collection_format", "style", "explode"),
        [
            ("multi", "form", True),
            ("csv", "form", False),
            ("ssv", "spaceDelimited", False),
            ("pipes", "pipeDelimited", False),
        ],
    )
    def test_collection_formats(self, collection_format: str, style: str, explode: bool) -> None:
        records = extract_paths(
            {
                "/x": {
                    "get": {
                        "parameters": [
                            {
                                "name": "v",
                                "in": "query",
                                "type": "array",
                                "items": {"type": "string"},
                                "collectionFormat": collection_format,
                            }
                        ],
                        "responses": {},
                    }
                }
            },
            context=ExtractionContext(is_openapi3=False),
        )
        param = records[0].parameters[0]
        assert (param.style, param.explode) == (style, explode)

    def test_default_styles(self) -> None:
        records = extract_paths(
            {
                "/x/{id}": {
                    "get": {
                        "parameters": [
                            {"name": "id", "in": "path", "schema": {"type": "string"}},
                            {"name": "q", "in": "query", "schema": {"type": "string"}},
                        ],
                        "responses": {},
                    }
                }
            }
        )
        path_param, query_param = records[0].parameters
        assert (path_param.style, path_param.explode, path_param.required) == ("simple", False, True)
        assert (query_param.style, query_param.explode) == ("form", True)

    def test_reserved_headers_dropped_for_openapi3(self) -> None:
        paths = {
            "/x": {
                "get": {
                    "parameters": [
                        {"name": "Accept", "in": "header"},
                        {"name": "Content-Type", "in": "header"},
                        {"name": "X-Trace", "in": "header"},
                    ],
                    "responses": {},
                }
            }
        }
        records = extract_paths(paths)
        assert [p.name for p in records[0].parameters] == ["X-Trace"]

    def test_reserved_headers_kept_when_policy_disabled(self) -> None:
        config = SpecirConfig.model_validate({"extraction": {"drop_reserved_headers": False}})
        paths = {"/x": {"get": {"parameters": [{"name": "Accept", "in": "header"}], "responses": {}}}}
        records = extract_paths(paths, context=ExtractionContext(config=config.extraction))
        assert [p.name for p in records[0].parameters] == ["Accept"]

    def test_reserved_headers_kept_for_swagger(self) -> None:
        paths = {"/x": {"get": {"parameters": [{"name": "Accept", "in": "header", "type": "string"}], "responses": {}}}}
        records = extract_paths(paths, context=ExtractionContext(is_openapi3=False))
        assert [p.location for p in records[0].parameters] == [ParameterLocation.HEADER]

    def test_unknown_location_is_skipped(self) -> None:
        paths = {"/x": {"get": {"parameters": [{"name": "v", "in": "matrix"}], "responses": {}}}}
        assert extract_paths(paths)[0].parameters == []


class TestMergeParameters:
    def test_overrides_keep_path_position(self) -> None:
        shared = [{"name": "a", "in": "query", "description": "A"}, {"name": "b", "in": "query"}]
        own = [{"name": "c", "in": "query"}, {"name": "a", "in": "query", "required": True}]
        merged = _merge_parameters(shared, own)
        assert [p["name"] for p in merged] == ["a", "b", "c"]
        assert merged[0] == {"name": "a", "in": "query", "description": "A", "required": True}

    def test_same_name_different_location_is_kept(self) -> None:
        merged = _merge_parameters([{"name": "id", "in": "path"}], [{"name": "id", "in": "query"}])
        assert len(merged) == 2


# ---------------------------------------------------------------------------
# Security keys
# ---------------------------------------------------------------------------


class TestSecurityKeys:
    def test_pointer_fragment_reduced_to_scheme_name(self) -> None:
        assert security_key("#/components/securitySchemes/MyAuth", set()) == "MyAuth"

    def test_literal_scheme_name_wins(self) -> None:
        key = "#/components/securitySchemes/MyAuth"
        assert security_key(key, {key}) == key

    def test_declared_uri_name_is_kept(self) -> None:
        assert security_key("http://auth.example", {"http://auth.example"}) == "http://auth.example"

    def test_uri_with_pointer_fragment_reduced_to_scheme_name(self) -> None:
        key = "https://other.example/api.json#/components/securitySchemes/OAuth"
        assert security_key(key, {"MyAuth"}) == "OAuth"
        assert security_key("https://auth.example/schemes.json#/Oauth", set()) == "Oauth"

    def test_uri_without_fragment_reduced_to_last_path_segment(self) -> None:
        assert security_key("https://auth.example/schemes/basic", set()) == "basic"

    def test_plain_name_is_kept(self) -> None:
        assert security_key("api_key", set()) == "api_key"

    def test_normalize_requirements(self) -> None:
        result = normalize_security(
            [{"#/components/securitySchemes/MyAuth": ["read"]}, {}, "junk"], set()
        )
        assert result == [{"MyAuth": ["read"]}, {}]


# ---------------------------------------------------------------------------
# Full extraction from the petstore 3.1 fixture
# ---------------------------------------------------------------------------


class TestExtractSpecPetstore31:
    """Test full extraction from the Petstore 3.1 fixture."""

    @pytest.fixture()
    def parsed(self, petstore_spec: ParsedSpec) -> ParsedSpec:
        return petstore_spec

    def test_dialect(self, parsed: ParsedSpec) -> None:
        assert (parsed.dialect, parsed.version) == ("openapi", "3.1.0")

    def test_info(self, parsed: ParsedSpec) -> None:
        assert parsed.info.title == "Petstore API"
        assert parsed.info.version == "1.0.0"
        assert parsed.info.summary == "Pets as a service"
        assert parsed.info.contact_email == "support@example.com"
        assert parsed.info.license_name == "MIT"
        assert parsed.info.license_identifier == "MIT"
        assert parsed.info.license_url is None

    def test_servers(self, parsed: ParsedSpec) -> None:
        assert [s.url for s in parsed.servers] == [
            "https://api.petstore.example.com/v1",
            "https://staging.petstore.example.com/v1",
        ]
        assert parsed.servers[0].description == "Production server"

    def test_operations(self, parsed: ParsedSpec) -> None:
        assert [(op.method, op.path) for op in parsed.operations] == [
            ("GET", "/pets"),
            ("POST", "/pets"),
            ("GET", "/pets/{petId}"),
            ("DELETE", "/pets/{petId}"),
        ]

    def test_list_pets_parameters(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "GET", "/pets")
        assert op is not None
        # Accept is a reserved header and is dropped.
        assert [p.name for p in op.parameters] == ["X-Request-Id", "limit", "status"]

        limit = _find_param(op, "limit")
        assert limit is not None
        assert limit.description == "How many items to return"
        assert limit.type == PrimitiveType(name="integer", format="int32")

        status = _find_param(op, "status")
        assert status is not None
        assert (status.style, status.explode) == ("form", False)
        assert isinstance(status.type, ArrayType)
        assert isinstance(status.type.items, UnionType)
        assert [m.value for m in status.type.items.members] == ["available", "pending", "sold"]

    def test_list_pets_responses(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "GET", "/pets")
        assert op is not None
        ok = op.responses["200"]
        assert ok.preferred_media_type == "application/json"
        assert ok.content["application/json"].type == NamedType(name="Pets")
        assert ok.headers == {"X-Rate-Limit": PrimitiveType(name="integer", format="int32")}

        default = op.responses["default"]
        assert default.description == "Unexpected error"
        assert default.content["application/json"].type == NamedType(name="Error")
        assert op.extensions == {"x-internal": True}

    def test_create_pet_request_body(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "POST", "/pets")
        assert op is not None
        body = op.request_body
        assert body is not None
        assert body.required is True
        assert body.description == "Pet object to create"
        assert body.preferred_media_type == "application/json"
        assert body.content["application/json"].type == NamedType(name="NewPet")

    def test_security(self, parsed: ParsedSpec) -> None:
        assert parsed.security == [{"api_key": []}]
        create = _find_operation(parsed.operations, "POST", "/pets")
        delete = _find_operation(parsed.operations, "DELETE", "/pets/{petId}")
        listing = _find_operation(parsed.operations, "GET", "/pets")
        assert create is not None and create.security == []
        assert delete is not None and delete.security == [{"api_key": []}]
        assert listing is not None and listing.security is None

    def test_security_schemes(self, parsed: ParsedSpec) -> None:
        api_key = parsed.security_schemes["api_key"]
        assert (api_key.type, api_key.param_name, api_key.location) == ("apiKey", "X-API-Key", "header")
        bearer = parsed.security_schemes["bearer"]
        assert (bearer.scheme, bearer.bearer_format) == ("bearer", "JWT")

    def test_schema_table(self, parsed: ParsedSpec) -> None:
        assert parsed.schema_names() == ["Pet", "NewPet", "Pets", "Status", "Error"]
        table = {entry.name: entry for entry in parsed.schemas}

        pet = table["Pet"].type
        assert isinstance(pet, ObjectType)
        props = {p.name: p for p in pet.properties}
        assert props["id"].required is True and props["id"].read_only is True
        assert props["tag"].required is False
        assert props["tag"].type == UnionType(members=(PrimitiveType(name="string"), NULL))
        assert props["status"].type == NamedType(name="Status")

        assert table["Pets"].type == ArrayType(items=NamedType(name="Pet"))
        new_pet = table["NewPet"].type
        assert isinstance(new_pet, IntersectionType)
        assert new_pet.members[0] == NamedType(name="Pet")

    def test_component_links(self, parsed: ParsedSpec) -> None:
        assert parsed.links["GetPet"]["operationId"] == "showPetById"

    def test_deterministic(self, petstore_31_raw: dict[str, Any]) -> None:
        assert extract_spec(petstore_31_raw) == extract_spec(petstore_31_raw)

    def test_named_enums_option(self, petstore_31_raw: dict[str, Any]) -> None:
        schemas = petstore_31_raw["components"]["schemas"]
        schemas["Status"]["title"] = "Status"
        schemas["Pet"]["properties"]["status"] = dict(schemas["Status"])
        config = SpecirConfig.model_validate({"projection": {"named_enums": True}})
        parsed = extract_spec(petstore_31_raw, config=config)
        table = {entry.name: entry for entry in parsed.schemas}

        pet = table["Pet"].type
        assert isinstance(pet, ObjectType)
        assert {p.name: p.type for p in pet.properties}["status"] == NamedType(name="Status")
        # The named entry itself keeps its literal members.
        assert isinstance(table["Status"].type, UnionType)


# ---------------------------------------------------------------------------
# Swagger 2.0
# ---------------------------------------------------------------------------


class TestExtractSpecSwagger20:
    @pytest.fixture()
    def parsed(self, swagger_20_raw: dict[str, Any]) -> ParsedSpec:
        return extract_spec(swagger_20_raw)

    def test_dialect(self, parsed: ParsedSpec) -> None:
        assert (parsed.dialect, parsed.version) == ("swagger", "2.0")

    def test_servers_from_host_and_base_path(self, parsed: ParsedSpec) -> None:
        assert [s.url for s in parsed.servers] == [
            "https://legacy.example.com/api",
            "http://legacy.example.com/api",
        ]

    def test_collection_formats(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "GET", "/pets")
        assert op is not None
        tags, ids = _find_param(op, "tags"), _find_param(op, "ids")
        assert tags is not None and (tags.style, tags.explode) == ("form", True)
        assert ids is not None and (ids.style, ids.explode) == ("form", False)

    def test_x_nullable(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "GET", "/pets")
        assert op is not None
        limit = _find_param(op, "limit")
        assert limit is not None
        assert limit.type == UnionType(members=(PrimitiveType(name="integer", format="int32"), NULL))

    def test_response_schema_lifted_into_content(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "GET", "/pets")
        assert op is not None
        ok = op.responses["200"]
        assert list(ok.content) == ["application/json"]
        assert ok.content["application/json"].type == ArrayType(items=NamedType(name="Pet"))
        assert ok.headers == {"X-Total": PrimitiveType(name="integer")}

    def test_body_parameter_becomes_request_body(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "POST", "/pets")
        assert op is not None
        assert op.parameters == []
        assert op.request_body is not None
        assert op.request_body.required is True
        assert op.request_body.content["application/json"].type == NamedType(name="Pet")

    def test_form_data_becomes_multipart_body(self, parsed: ParsedSpec) -> None:
        op = _find_operation(parsed.operations, "POST", "/pets/{id}/photo")
        assert op is not None
        assert [p.name for p in op.parameters] == ["id"]
        body = op.request_body
        assert body is not None
        assert body.preferred_media_type == "multipart/form-data"
        form = body.content["multipart/form-data"].type
        assert isinstance(form, ObjectType)
        props = {p.name: p for p in form.properties}
        assert props["file"].type == BinaryType()
        assert props["file"].required is True
        assert props["caption"].required is False

    def test_oauth2_flow_is_converted(self, parsed: ParsedSpec) -> None:
        scheme = parsed.security_schemes["petstore_auth"]
        assert scheme.type == "oauth2"
        assert scheme.flows is not None
        assert scheme.flows["implicit"]["authorizationUrl"] == "https://legacy.example.com/oauth/authorize"
        assert parsed.security_schemes["basicAuth"].type == "basic"

    def test_schema_table_from_definitions(self, parsed: ParsedSpec) -> None:
        assert parsed.schema_names() == ["Pet"]
        pet = parsed.schemas[0].type
        assert isinstance(pet, ObjectType)
        assert {p.name: p.type for p in pet.properties}["photo"] == BinaryType()


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------


class TestExtractSpecEdgeCases:
    def test_validation_errors_propagate(self) -> None:
        with pytest.raises(SpecValidationError, match="'title'"):
            extract_spec({"openapi": "3.1.0", "info": {"version": "1"}, "paths": {}})

    def test_empty_paths(self) -> None:
        parsed = extract_spec({"openapi": "3.0.0", "info": {"title": "T", "version": "1"}, "paths": {}})
        assert parsed.operations == []
        assert [s.url for s in parsed.servers] == ["/"]

    def test_webhooks(self) -> None:
        parsed = extract_spec(
            {
                "openapi": "3.1.0",
                "info": {"title": "T", "version": "1"},
                "webhooks": {"newPet": {"post": {"operationId": "onNewPet", "responses": {}}}},
            }
        )
        assert parsed.operations == []
        assert [(w.path, w.method) for w in parsed.webhooks] == [("newPet", "POST")]

    def test_unresolved_reference_projects_to_top(self) -> None:
        parsed = extract_spec(
            {
                "openapi": "3.1.0",
                "info": {"title": "T", "version": "1"},
                "components": {"schemas": {"A": {"$ref": "#/components/schemas/Missing"}}},
            }
        )
        assert parsed.schemas[0].type.kind == "top"

    def test_security_requirement_with_uri_key(self) -> None:
        parsed = extract_spec(
            {
                "openapi": "3.1.0",
                "info": {"title": "T", "version": "1"},
                "paths": {},
                "security": [{"http://auth.example": []}],
                "components": {"securitySchemes": {"http://auth.example": {"type": "http", "scheme": "basic"}}},
            }
        )
        assert parsed.security == [{"http://auth.example": []}]
        assert "http://auth.example" in parsed.security_schemes

    def test_cross_document_scheme_registered_under_reduced_name(self) -> None:
        other = "https://other.example/api.json"
        cache = DocumentCache()
        cache.add(
            other,
            {"components": {"securitySchemes": {"OAuth": {"type": "oauth2", "flows": {}}}}},
        )
        parsed = extract_spec(
            {
                "openapi": "3.2.0",
                "info": {"title": "T", "version": "1"},
                "paths": {
                    "/pets": {
                        "get": {
                            "security": [{f"{other}#/components/securitySchemes/OAuth": ["read"]}],
                            "responses": {"200": {"description": "ok"}},
                        }
                    }
                },
                "security": [{f"{other}#/components/securitySchemes/OAuth": []}],
                "components": {"securitySchemes": {"MyAuth": {"type": "http", "scheme": "basic"}}},
            },
            cache,
            document_uri="https://api.example/openapi.json",
        )
        assert parsed.security == [{"OAuth": []}]
        assert parsed.operations[0].security == [{"OAuth": ["read"]}]
        assert set(parsed.security_schemes) == {"MyAuth", "OAuth"}
        assert parsed.security_schemes["OAuth"].type == "oauth2"

    def test_malformed_reference_uri_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="specir"):
            parsed = extract_spec(
                {
                    "openapi": "3.1.0",
                    "info": {"title": "T", "version": "1"},
                    "paths": {},
                    "components": {
                        "schemas": {
                            "Broken": {"$ref": "http://[bad/x.json"},
                            "Pet": {"type": "object"},
                        }
                    },
                },
            )
        types = {entry.name: entry.type for entry in parsed.schemas}
        assert types["Broken"].kind == "top"
        assert isinstance(types["Pet"], ObjectType)
        assert "http://[bad/x.json" in caplog.text


# ---------------------------------------------------------------------------
# Multi-document extraction
# ---------------------------------------------------------------------------


class TestParseSpecMultiDocument:
    @pytest.fixture()
    def parsed(self, multi_dir: Path) -> ParsedSpec:
        return parse_spec(str(multi_dir / "main.json"))

    def test_schema_table_spans_documents(self, parsed: ParsedSpec) -> None:
        assert parsed.schema_names() == ["Pet", "Owner", "Error", "address"]
        origins = {entry.name: entry.origin for entry in parsed.schemas}
        assert origins["Error"].endswith("/common.json")

    def test_cross_document_references_are_named(self, parsed: ParsedSpec) -> None:
        owner = next(entry.type for entry in parsed.schemas if entry.name == "Owner")
        assert isinstance(owner, ObjectType)
        props = {p.name: p.type for p in owner.properties}
        assert props["pets"] == ArrayType(items=NamedType(name="Pet"))
        assert props["address"] == NamedType(name="address")
        assert props["lastError"] == NamedType(name="Error")

    def test_mutual_reference_back_into_entry(self, parsed: ParsedSpec) -> None:
        error = next(entry.type for entry in parsed.schemas if entry.name == "Error")
        assert isinstance(error, ObjectType)
        assert {p.name: p.type for p in error.properties}["pet"] == NamedType(name="Pet")

    def test_referenced_response_from_other_document(self, parsed: ParsedSpec) -> None:
        op = parsed.operations[0]
        problem = op.responses["default"]
        assert problem.description == "A problem"
        assert problem.preferred_media_type == "application/problem+json"
        assert problem.content["application/problem+json"].type == NamedType(name="Error")

    def test_document_uri(self, parsed: ParsedSpec, multi_dir: Path) -> None:
        assert parsed.document_uri == (multi_dir / "main.json").resolve().as_uri()


# ---------------------------------------------------------------------------
# Fetch cache wiring
# ---------------------------------------------------------------------------


class TestParseSpecFetchCache:
    def _record(self, monkeypatch: pytest.MonkeyPatch) -> list[FetchCache]:
        opened: list[FetchCache] = []

        def create(config: SpecirConfig) -> FetchCache:
            fetch_cache = create_fetch_cache(config)
            opened.append(fetch_cache)
            return fetch_cache

        monkeypatch.setattr("specir.parser.extractor.create_fetch_cache", create)
        return opened

    def test_enabled_cache_is_opened_from_config(
        self, multi_dir: Path, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        opened = self._record(monkeypatch)
        config = SpecirConfig(cache=FetchCacheConfig(enabled=True))

        parsed = parse_spec(str(multi_dir / "main.json"), config)

        assert len(opened) == 1
        assert opened[0].enabled is True
        assert parsed.schema_names()[0] == "Pet"
        assert (isolated_config / "cache" / "specir" / "documents").is_dir()

    def test_disabled_cache_is_not_opened(
        self, multi_dir: Path, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        opened = self._record(monkeypatch)
        parse_spec(str(multi_dir / "main.json"), SpecirConfig())
        assert opened == []

    def test_explicit_cache_is_used_as_given(
        self, multi_dir: Path, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        opened = self._record(monkeypatch)
        config = SpecirConfig(cache=FetchCacheConfig(enabled=True))
        fetch_cache = FetchCache(isolated_config / "own", config.cache)
        try:
            parse_spec(str(multi_dir / "main.json"), config, fetch_cache)
        finally:
            fetch_cache.close()
        assert opened == []
