"""Canonical type descriptors produced by the type projector.

A :data:`TypeDescriptor` is a closed tagged union of frozen Pydantic models,
discriminated by the ``kind`` field.  Downstream emitters translate each
variant into a construct of their target language; because the set of
variants is fixed, an emitter can match on ``kind`` exhaustively.

"Anything goes" and "nothing is allowed" are explicit variants
(:class:`TopType` and :class:`BottomType`) rather than an untyped escape
hatch.

Use :func:`union_of` and :func:`intersection_of` instead of building
:class:`UnionType` / :class:`IntersectionType` directly: they flatten nested
members, remove duplicates while keeping first-seen order, and collapse the
trivial cases, so that projecting the same schema twice always yields equal
descriptors.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Descriptor(BaseModel):
    model_config = ConfigDict(frozen=True)


class TopType(_Descriptor):
    """Any JSON value (boolean schema ``true``, or no structural hint)."""

    kind: Literal["top"] = "top"


class BottomType(_Descriptor):
    """No value is valid (boolean schema ``false``)."""

    kind: Literal["bottom"] = "bottom"


class NullType(_Descriptor):
    """The JSON ``null`` value."""

    kind: Literal["null"] = "null"


class PrimitiveType(_Descriptor):
    """A JSON scalar: ``string``, ``number``, ``integer`` or ``boolean``.

    ``format`` is carried through verbatim (``date-time``, ``int64``,
    ``uuid``...) so emitters can pick a richer native type.
    """

    kind: Literal["primitive"] = "primitive"
    name: Literal["string", "number", "integer", "boolean"]
    format: Optional[str] = None


class BinaryType(_Descriptor):
    """Raw bytes (``format: binary``, ``type: file`` or a binary ``contentMediaType``)."""

    kind: Literal["binary"] = "binary"
    media_type: Optional[str] = None


class LiteralType(_Descriptor):
    """A single literal value, from ``const`` or one ``enum`` member."""

    kind: Literal["literal"] = "literal"
    value: Any = None


class NamedType(_Descriptor):
    """A reference to a named schema from the IR's schema table."""

    kind: Literal["named"] = "named"
    name: str


class ArrayType(_Descriptor):
    kind: Literal["array"] = "array"
    items: TypeDescriptor
    unique: bool = False


class TupleType(_Descriptor):
    """A fixed-length prefix with an optional variadic tail.

    ``rest`` is ``None`` for a closed tuple.
    """

    kind: Literal["tuple"] = "tuple"
    items: tuple[TypeDescriptor, ...] = ()
    rest: Optional[TypeDescriptor] = None


class PropertyType(_Descriptor):
    """One declared property of an :class:`ObjectType`."""

    name: str
    type: TypeDescriptor
    required: bool = False
    read_only: bool = False
    write_only: bool = False


class ObjectType(_Descriptor):
    """A JSON object.

    ``index`` is the value type of the index signature for undeclared keys,
    or ``None`` when no keyword admits them explicitly.  ``closed`` is
    ``True`` when the schema forbids extra keys outright.
    """

    kind: Literal["object"] = "object"
    properties: tuple[PropertyType, ...] = ()
    index: Optional[TypeDescriptor] = None
    closed: bool = False


class DiscriminatorCase(_Descriptor):
    value: str
    type: TypeDescriptor


class Discriminator(_Descriptor):
    """Polymorphism metadata attached to a union: which property selects the member."""

    property_name: str
    mapping: tuple[DiscriminatorCase, ...] = ()


class UnionType(_Descriptor):
    kind: Literal["union"] = "union"
    members: tuple[TypeDescriptor, ...]
    discriminator: Optional[Discriminator] = None


class IntersectionType(_Descriptor):
    kind: Literal["intersection"] = "intersection"
    members: tuple[TypeDescriptor, ...]


TypeDescriptor = Annotated[
    Union[
        TopType,
        BottomType,
        NullType,
        PrimitiveType,
        BinaryType,
        LiteralType,
        NamedType,
        ArrayType,
        TupleType,
        ObjectType,
        UnionType,
        IntersectionType,
    ],
    Field(discriminator="kind"),
]

for _model in (ArrayType, TupleType, PropertyType, ObjectType, DiscriminatorCase,
               Discriminator, UnionType, IntersectionType):
    _model.model_rebuild()

TOP = TopType()
BOTTOM = BottomType()
NULL = NullType()


def _dedupe(members: Iterable[TypeDescriptor]) -> list[TypeDescriptor]:
    # Keyed on the JSON form so that literal 1 and literal True stay distinct.
    seen: set[str] = set()
    result: list[TypeDescriptor] = []
    for member in members:
        key = member.model_dump_json()
        if key in seen:
            continue
        seen.add(key)
        result.append(member)
    return result


def union_of(
    members: Iterable[TypeDescriptor],
    discriminator: Optional[Discriminator] = None,
) -> TypeDescriptor:
    """Build the disjunction of *members*.

    Nested plain unions are flattened, duplicates removed, ``bottom``
    members dropped.  A ``top`` member makes the whole union ``top``.  An
    empty union is ``bottom`` and a single member is returned as-is unless a
    discriminator must be preserved.
    """
    flat: list[TypeDescriptor] = []
    for member in members:
        if isinstance(member, UnionType) and member.discriminator is None:
            flat.extend(member.members)
        else:
            flat.append(member)

    if any(isinstance(m, TopType) for m in flat):
        return TOP
    flat = _dedupe(m for m in flat if not isinstance(m, BottomType))
    if not flat:
        return BOTTOM
    if len(flat) == 1 and discriminator is None:
        return flat[0]
    return UnionType(members=tuple(flat), discriminator=discriminator)


def intersection_of(members: Iterable[TypeDescriptor]) -> TypeDescriptor:
    """Build the conjunction of *members*.

    Nested intersections are flattened, duplicates and ``top`` members
    dropped.  A ``bottom`` member makes the whole intersection ``bottom``;
    an empty intersection is ``top``.
    """
    flat: list[TypeDescriptor] = []
    for member in members:
        if isinstance(member, IntersectionType):
            flat.extend(member.members)
        else:
            flat.append(member)

    if any(isinstance(m, BottomType) for m in flat):
        return BOTTOM
    flat = _dedupe(m for m in flat if not isinstance(m, TopType))
    if not flat:
        return TOP
    if len(flat) == 1:
        return flat[0]
    return IntersectionType(members=tuple(flat))


def is_nullable(descriptor: TypeDescriptor) -> bool:
    """Return True if ``null`` is already a member of *descriptor*."""
    if isinstance(descriptor, NullType):
        return True
    if isinstance(descriptor, UnionType):
        return any(isinstance(m, NullType) for m in descriptor.members)
    return False
