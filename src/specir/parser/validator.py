"""Minimal structural validation of Swagger 2.0 / OpenAPI 3.x documents.

:func:`validate_spec` gates the rest of the pipeline: it confirms that a
document declares a supported dialect and carries the fields every later
stage relies on, and raises :class:`~specir.exceptions.SpecValidationError`
naming the offending field otherwise.  It is not a full schema validator;
anything it does not check is tolerated downstream.

Checks, in order:

1. A version marker: ``swagger: "2.x"`` or ``openapi: "3.x"``.
2. An ``info`` object with string ``title`` and ``version``.
3. ``$self`` (OpenAPI 3.2), when present, is a URI reference.
4. ``info.license`` has a ``name`` and not both ``url`` and ``identifier``.
5. A structural root: ``paths`` for Swagger 2.0; at least one of ``paths``,
   ``components`` or ``webhooks`` for OpenAPI 3.x.  ``paths: {}`` is valid.
6. Path items: ``additionalOperations`` never redefines a fixed-field
   method, and parameters are unique by ``(name, in)``.
7. ``operationId`` values are unique across ``paths`` and ``webhooks``.
"""

from __future__ import annotations

import logging
from typing import Any

from specir.exceptions import SpecValidationError
from specir.models import HTTPMethod

logger = logging.getLogger(__name__)

OAS_3_1_DIALECT = "https://spec.openapis.org/oas/3.1/dialect/base"
JSON_SCHEMA_2020_12_DIALECT = "https://json-schema.org/draft/2020-12/schema"

_FIXED_METHODS = tuple(m.value for m in HTTPMethod)


def _version_string(value: Any) -> str | None:
    # Unquoted YAML versions (``swagger: 2.0``) load as floats.
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def spec_dialect(spec: dict[str, Any]) -> tuple[str, str] | None:
    """Return ``("swagger", version)`` or ``("openapi", version)``, or None."""
    swagger = _version_string(spec.get("swagger"))
    if swagger is not None and swagger.startswith("2."):
        return "swagger", swagger
    openapi = _version_string(spec.get("openapi"))
    if openapi is not None and openapi.startswith("3."):
        return "openapi", openapi
    return None


def is_api_document(doc: Any) -> bool:
    """True for documents that declare ``openapi`` or ``swagger`` (not bare schemas)."""
    return isinstance(doc, dict) and ("openapi" in doc or "swagger" in doc)


def validate_spec(spec: Any) -> None:
    """Validate the minimal structure of a Swagger 2.0 or OpenAPI 3.x document.

    Args:
        spec: The parsed document.

    Raises:
        SpecValidationError: On the first violation found.  The message
            names the offending field.
    """
    if not isinstance(spec, dict):
        raise SpecValidationError("Specification must be a JSON/YAML object.")

    dialect = spec_dialect(spec)
    if dialect is None:
        raise SpecValidationError(
            "Unsupported or missing OpenAPI/Swagger version. Specification must "
            "contain 'swagger: \"2.x\"' or 'openapi: \"3.x\"'."
        )
    is_openapi3 = dialect[0] == "openapi"

    info = spec.get("info")
    if not isinstance(info, dict):
        raise SpecValidationError("Specification must contain an 'info' object.")
    for field in ("title", "version"):
        value = info.get(field)
        if not value or not isinstance(value, str):
            raise SpecValidationError(
                f"Specification info object must contain a required string field: '{field}'."
            )

    if is_openapi3 and "$self" in spec:
        self_uri = spec["$self"]
        if not isinstance(self_uri, str) or not _is_uri_reference(self_uri):
            raise SpecValidationError(
                f"OpenAPI '$self' must be a valid URI reference. Value: {self_uri!r}"
            )

    _validate_license(info.get("license"))

    has_paths = spec.get("paths") is not None
    if is_openapi3:
        if not has_paths and not spec.get("components") and not spec.get("webhooks"):
            raise SpecValidationError(
                "OpenAPI 3.x specification must contain at least one of: "
                "'paths', 'components', or 'webhooks'."
            )
    elif not has_paths:
        raise SpecValidationError("Swagger 2.0 specification must contain a 'paths' object.")

    dialect_uri = spec.get("jsonSchemaDialect")
    if dialect_uri and dialect_uri not in (OAS_3_1_DIALECT, JSON_SCHEMA_2020_12_DIALECT):
        logger.warning(
            "Document declares a custom jsonSchemaDialect %r; keywords outside "
            "JSON Schema 2020-12 are ignored",
            dialect_uri,
        )

    operation_ids: dict[str, list[str]] = {}
    for section in ("paths", "webhooks"):
        items = spec.get(section)
        if not isinstance(items, dict):
            continue
        for key, path_item in items.items():
            _validate_path_item(path_item, f"{section}.{key}", operation_ids)

    duplicates = {k: v for k, v in operation_ids.items() if len(v) > 1}
    if duplicates:
        op_id, locations = next(iter(duplicates.items()))
        raise SpecValidationError(
            f"Duplicate 'operationId' {op_id!r} found in multiple operations: "
            + ", ".join(locations)
        )


def _validate_license(license_info: Any) -> None:
    if license_info is None:
        return
    if not isinstance(license_info, dict):
        raise SpecValidationError("Info 'license' must be an object.")
    if not isinstance(license_info.get("name"), str) or not license_info["name"]:
        raise SpecValidationError("License object must contain a required string field: 'name'.")
    if license_info.get("url") is not None and license_info.get("identifier") is not None:
        raise SpecValidationError(
            "License object cannot contain both 'url' and 'identifier' fields. "
            "They are mutually exclusive."
        )


def _validate_path_item(
    path_item: Any,
    location: str,
    operation_ids: dict[str, list[str]],
) -> None:
    if not isinstance(path_item, dict) or "$ref" in path_item:
        return

    _validate_unique_parameters(path_item.get("parameters"), location)

    operations: list[tuple[str, Any]] = [
        (method.upper(), path_item[method]) for method in _FIXED_METHODS if method in path_item
    ]

    additional = path_item.get("additionalOperations")
    if isinstance(additional, dict):
        for token, operation in additional.items():
            if token.lower() in _FIXED_METHODS and token == token.upper():
                raise SpecValidationError(
                    f"Path item '{location}' lists '{token}' in 'additionalOperations'; "
                    f"use the fixed '{token.lower()}' field instead."
                )
            operations.append((token, operation))

    for method, operation in operations:
        if not isinstance(operation, dict):
            continue
        _validate_unique_parameters(operation.get("parameters"), f"{location}.{method}")
        op_id = operation.get("operationId")
        if isinstance(op_id, str):
            operation_ids.setdefault(op_id, []).append(f"{method} {location}")


def _validate_unique_parameters(params: Any, location: str) -> None:
    if not isinstance(params, list):
        return
    seen: set[tuple[str, str]] = set()
    for param in params:
        if not isinstance(param, dict) or "$ref" in param:
            continue
        key = (str(param.get("name", "")), str(param.get("in", "")))
        if key in seen:
            raise SpecValidationError(
                f"Duplicate parameter 'name' {key[0]!r} in {key[1]!r} at '{location}'."
            )
        seen.add(key)


def _is_uri_reference(value: str) -> bool:
    return not any(ch.isspace() for ch in value) and "\\" not in value
