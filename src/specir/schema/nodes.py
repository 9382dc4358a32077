"""Classify raw JSON Schema values into a closed set of shapes.

:func:`classify` inspects one schema object and returns the
:data:`SchemaNode` variant describing its outermost shape.  Children are
left raw (``dict`` or ``bool``) and classified on demand by whoever walks
into them, so a self-referential graph is never walked eagerly.

Precedence, first match wins:

1. ``$ref`` / ``$dynamicRef`` -> :class:`Reference`
2. ``const`` / ``enum`` -> :class:`EnumOrConst`
3. ``type`` as a list -> an ``anyOf`` :class:`Combinator` over one schema
   per listed type
4. ``allOf`` / ``oneOf`` / ``anyOf`` -> :class:`Combinator`; the remaining
   keywords are kept in ``remainder``
5. ``if`` -> :class:`Conditional`
6. ``contentSchema`` / ``contentMediaType`` / ``contentEncoding`` ->
   :class:`ContentWrapped`
7. a scalar ``type`` (or Swagger 2.0 ``file``) -> :class:`Primitive`
8. ``type: array`` or ``items`` / ``prefixItems`` -> :class:`ArrayShape`
9. ``type: object`` or any property keyword -> :class:`ObjectShape`
10. anything else -> :class:`Unconstrained`
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict

_PRIMITIVE_TYPES = ("string", "number", "integer", "boolean", "null", "file")
_COMBINATORS = ("allOf", "oneOf", "anyOf")
_OBJECT_KEYWORDS = (
    "properties",
    "additionalProperties",
    "patternProperties",
    "unevaluatedProperties",
)
_ARRAY_KEYWORDS = ("items", "prefixItems")

#: Keywords that constrain the shape of a value.  A combinator's or
#: conditional's sibling remainder is only projected when it has one.
STRUCTURAL_KEYWORDS = frozenset(
    {
        "$ref",
        "$dynamicRef",
        "const",
        "enum",
        "allOf",
        "oneOf",
        "anyOf",
        "if",
        "properties",
        "additionalProperties",
        "patternProperties",
        "unevaluatedProperties",
        "required",
        "items",
        "prefixItems",
        "unevaluatedItems",
        "contentSchema",
        "contentMediaType",
        "contentEncoding",
    }
)


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class Reference(_Node):
    """``{"$ref": ...}`` or ``{"$dynamicRef": ...}``.

    ``uri`` is the document part of the reference (empty for a local
    reference) and ``pointer`` its fragment.
    """

    ref: str
    uri: str = ""
    pointer: str = ""
    dynamic: bool = False


class Primitive(_Node):
    kind: Literal["string", "number", "integer", "boolean", "null", "file"]
    format: Optional[str] = None
    constraints: dict[str, Any] = {}


class EnumOrConst(_Node):
    """Literal values from ``const`` (one) or ``enum`` (any number).

    ``name`` is the declared name (``title`` or ``x-enum-name``), if any.
    """

    literals: tuple[Any, ...]
    is_const: bool = False
    name: Optional[str] = None


class ObjectShape(_Node):
    properties: dict[str, Any] = {}
    required: tuple[str, ...] = ()
    additional_properties: Any = None
    pattern_properties: dict[str, Any] = {}
    unevaluated_properties: Any = None


class ArrayShape(_Node):
    """An array.  ``prefix_items`` is set for tuple forms only.

    Draft-04 array-form ``items`` is normalized into ``prefix_items`` with
    ``additionalItems`` as ``items``.
    """

    items: Any = None
    prefix_items: Optional[tuple[Any, ...]] = None
    unevaluated_items: Any = None
    min_items: Any = None
    max_items: Any = None
    unique_items: bool = False


class Combinator(_Node):
    kind: Literal["allOf", "oneOf", "anyOf"]
    members: tuple[Any, ...]
    discriminator: Optional[dict[str, Any]] = None
    remainder: dict[str, Any] = {}


class Conditional(_Node):
    if_: Any
    then: Any = None
    else_: Any = None
    remainder: dict[str, Any] = {}


class ContentWrapped(_Node):
    media_type: Optional[str] = None
    encoding: Optional[str] = None
    inner_schema: Any = None


class Unconstrained(_Node):
    """No structural keyword at all (``{}``, or only annotations)."""


SchemaNode = Union[
    Reference,
    Primitive,
    EnumOrConst,
    ObjectShape,
    ArrayShape,
    Combinator,
    Conditional,
    ContentWrapped,
    Unconstrained,
]


def has_structure(schema: dict[str, Any]) -> bool:
    """Return True if *schema* carries a shape-constraining keyword (``type`` excluded)."""
    return any(key in STRUCTURAL_KEYWORDS for key in schema)


def ref_name(ref: str) -> str:
    """Return the last segment of *ref*'s fragment (or file name), unescaped.

    ``#/components/schemas/Pet`` -> ``Pet``; ``common.yaml#/Error`` ->
    ``Error``; ``#node`` -> ``node``; ``pet.json`` -> ``pet``.
    """
    document, _, fragment = ref.partition("#")
    if fragment:
        segment = unquote(fragment).rstrip("/").rsplit("/", 1)[-1]
        return segment.replace("~1", "/").replace("~0", "~")
    name = document.rstrip("/").rsplit("/", 1)[-1]
    return name.split(".", 1)[0] if "." in name else name


def classify(schema: dict[str, Any]) -> SchemaNode:
    """Return the outermost shape of the schema object *schema*."""
    ref = schema.get("$ref")
    dynamic = False
    if not isinstance(ref, str):
        ref = schema.get("$dynamicRef")
        dynamic = True
    if isinstance(ref, str):
        uri, _, pointer = ref.partition("#")
        return Reference(ref=ref, uri=uri, pointer=pointer, dynamic=dynamic)

    if "const" in schema:
        return EnumOrConst(literals=(schema["const"],), is_const=True, name=_declared_name(schema))
    if isinstance(schema.get("enum"), list):
        return EnumOrConst(literals=tuple(schema["enum"]), name=_declared_name(schema))

    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        types = [t for t in dict.fromkeys(schema_type) if isinstance(t, str)]
        if len(types) == 1:
            return classify({**schema, "type": types[0]})
        return Combinator(kind="anyOf", members=tuple({**schema, "type": t} for t in types))

    for kind in _COMBINATORS:
        members = schema.get(kind)
        if isinstance(members, list):
            remainder = {k: v for k, v in schema.items() if k not in (kind, "discriminator")}
            discriminator = schema.get("discriminator") if kind != "allOf" else None
            return Combinator(
                kind=kind,
                members=tuple(members),
                discriminator=discriminator if isinstance(discriminator, dict) else None,
                remainder=remainder,
            )

    if "if" in schema:
        return Conditional(
            if_=schema["if"],
            then=schema.get("then"),
            else_=schema.get("else"),
            remainder={k: v for k, v in schema.items() if k not in ("if", "then", "else")},
        )

    if any(key in schema for key in ("contentSchema", "contentMediaType", "contentEncoding")):
        return ContentWrapped(
            media_type=_string_or_none(schema.get("contentMediaType")),
            encoding=_string_or_none(schema.get("contentEncoding")),
            inner_schema=schema.get("contentSchema"),
        )

    if schema_type in _PRIMITIVE_TYPES:
        return Primitive(
            kind=schema_type,
            format=_string_or_none(schema.get("format")),
            constraints={k: v for k, v in schema.items() if k not in ("type", "format")},
        )

    if schema_type == "array" or (
        schema_type is None and any(key in schema for key in _ARRAY_KEYWORDS)
    ):
        return _array_shape(schema)

    if schema_type == "object" or any(key in schema for key in _OBJECT_KEYWORDS):
        properties = schema.get("properties")
        patterns = schema.get("patternProperties")
        required = schema.get("required")
        return ObjectShape(
            properties=properties if isinstance(properties, dict) else {},
            required=tuple(r for r in required if isinstance(r, str))
            if isinstance(required, list)
            else (),
            additional_properties=schema.get("additionalProperties"),
            pattern_properties=patterns if isinstance(patterns, dict) else {},
            unevaluated_properties=schema.get("unevaluatedProperties"),
        )

    return Unconstrained()


def _array_shape(schema: dict[str, Any]) -> ArrayShape:
    items = schema.get("items")
    prefix = schema.get("prefixItems")
    if isinstance(items, list):
        prefix, items = items, schema.get("additionalItems")
    return ArrayShape(
        items=items,
        prefix_items=tuple(prefix) if isinstance(prefix, list) else None,
        unevaluated_items=schema.get("unevaluatedItems"),
        min_items=schema.get("minItems"),
        max_items=schema.get("maxItems"),
        unique_items=schema.get("uniqueItems") is True,
    )


def _declared_name(schema: dict[str, Any]) -> Optional[str]:
    for key in ("x-enum-name", "title"):
        value = schema.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
