"""Project JSON Schema values onto the :mod:`specir.schema.types` type system.

:func:`project` (and the :class:`TypeProjector` it wraps) turns one schema,
boolean or object, into a :data:`~specir.schema.types.TypeDescriptor`.  A
few guards run first, in order, on the raw schema:

1. Boolean schemas: ``true`` is top, ``false`` is bottom.
2. ``nullable: true`` (and Swagger 2.0 ``x-nullable``) unions the projected
   base with null, unless the base is already top or nullable.
3. ``dependentSchemas`` / ``dependentRequired`` (and draft-04
   ``dependencies``) conjoin the base with, per trigger property,
   ``(trigger present AND dependent type) OR (trigger absent)``.

Then the schema is classified (:func:`~specir.schema.nodes.classify`) and
the variant decides the result: references become named types when the
name is known (top otherwise), literals become literal unions, combinators
become unions or intersections, tuples and arrays and objects become their
structural descriptors, and anything without a structural hint is top.

Malformed input never raises.  It degrades to top for the offending slot
and is logged as a warning.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from specir.models import ProjectionOptions
from specir.schema.media import is_textual
from specir.schema.nodes import (
    ArrayShape,
    Combinator,
    Conditional,
    ContentWrapped,
    EnumOrConst,
    ObjectShape,
    Primitive,
    Reference,
    SchemaNode,
    Unconstrained,
    classify,
    has_structure,
    ref_name,
)
from specir.schema.types import (
    BOTTOM,
    NULL,
    TOP,
    ArrayType,
    BinaryType,
    Discriminator,
    DiscriminatorCase,
    LiteralType,
    NamedType,
    ObjectType,
    PrimitiveType,
    PropertyType,
    TopType,
    TupleType,
    TypeDescriptor,
    intersection_of,
    is_nullable,
    union_of,
)

if TYPE_CHECKING:
    from specir.parser.resolver import ReferenceResolver

logger = logging.getLogger(__name__)

_DEPENDENT_KEYS = ("dependentSchemas", "dependentRequired", "dependencies")
_BINARY_ENCODINGS = ("base64", "base64url", "binary", "quoted-printable")


class TypeProjector:
    """Project schemas against a fixed table of known type names.

    Args:
        known_type_names: Names that may be referenced as
            :class:`~specir.schema.types.NamedType`.
        options: Projection switches.
        resolver: Used to name cross-document references, to follow
            ``$dynamicRef`` and, with ``options.inline_unknown_refs``, to
            project references to unnamed schemas inline.  Without one,
            references are named from the last segment of their fragment.
        ref_names: Absolute reference key (``<document-uri>#<fragment>``)
            -> type name, as built by the extractor for every entry of the
            named-schema table.
    """

    def __init__(
        self,
        known_type_names: Iterable[str] = (),
        options: Optional[ProjectionOptions] = None,
        resolver: Optional[ReferenceResolver] = None,
        ref_names: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.known_type_names = frozenset(known_type_names)
        self.options = options or ProjectionOptions()
        self.resolver = resolver
        self.ref_names = dict(ref_names or {})
        self._active: set[int] = set()
        self._defining: Optional[str] = None

    def project(self, schema: Any, stack: tuple[str, ...] = ()) -> TypeDescriptor:
        """Return the descriptor of *schema*.

        *stack* holds the keys of references being projected inline, so
        recursive inline references stop at top.
        """
        if isinstance(schema, bool):
            return TOP if schema else BOTTOM
        if not isinstance(schema, dict):
            logger.warning("Expected a schema object, got %s; using top", type(schema).__name__)
            return TOP
        if id(schema) in self._active:
            logger.debug("Schema contains itself; projecting the inner occurrence as top")
            return TOP

        self._active.add(id(schema))
        try:
            if schema.get("nullable") is True or schema.get("x-nullable") is True:
                return self._project_nullable(schema, stack)
            if any(key in schema for key in _DEPENDENT_KEYS):
                return self._project_dependent(schema, stack)
            return self._dispatch(classify(schema), schema, stack)
        finally:
            self._active.discard(id(schema))

    def project_named(self, name: str, schema: Any) -> TypeDescriptor:
        """Project the named-schema table entry *name*.

        Same as :meth:`project`, except that an enum declaring *name* as its
        own name is projected to its literals rather than to a reference to
        itself.
        """
        self._defining = name
        try:
            return self.project(schema)
        finally:
            self._defining = None

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _project_nullable(self, schema: dict[str, Any], stack: tuple[str, ...]) -> TypeDescriptor:
        base = self.project(
            {k: v for k, v in schema.items() if k not in ("nullable", "x-nullable")}, stack
        )
        if isinstance(base, TopType) or is_nullable(base):
            return base
        return union_of([base, NULL])

    def _project_dependent(self, schema: dict[str, Any], stack: tuple[str, ...]) -> TypeDescriptor:
        base = self.project({k: v for k, v in schema.items() if k not in _DEPENDENT_KEYS}, stack)

        dependents: list[tuple[str, TypeDescriptor]] = []
        for key in _DEPENDENT_KEYS:
            value = schema.get(key)
            if not isinstance(value, dict):
                continue
            for trigger, dependency in value.items():
                if isinstance(dependency, list):
                    dependents.append((trigger, _required_object(dependency)))
                else:
                    dependents.append((trigger, self.project(dependency, stack)))

        branches = []
        for trigger, dependent in dependents:
            present = ObjectType(
                properties=(PropertyType(name=trigger, type=TOP, required=True),), index=TOP
            )
            absent = ObjectType(
                properties=(PropertyType(name=trigger, type=BOTTOM),), index=TOP
            )
            branches.append(union_of([intersection_of([present, dependent]), absent]))
        return intersection_of([base, *branches])

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def _dispatch(
        self, node: SchemaNode, schema: dict[str, Any], stack: tuple[str, ...]
    ) -> TypeDescriptor:
        if isinstance(node, Reference):
            return self._project_reference(node, schema, stack)
        if isinstance(node, EnumOrConst):
            return self._project_literals(node)
        if isinstance(node, Combinator):
            return self._project_combinator(node, stack)
        if isinstance(node, Conditional):
            return self._project_conditional(node, stack)
        if isinstance(node, ContentWrapped):
            return self._project_content(node, stack)
        if isinstance(node, Primitive):
            return self._project_primitive(node)
        if isinstance(node, ArrayShape):
            return self._project_array(node, stack)
        if isinstance(node, ObjectShape):
            return self._project_object(node, stack)
        if isinstance(node, Unconstrained):
            return TOP
        raise TypeError(f"Unhandled schema node {type(node).__name__}")

    def _project_reference(
        self, node: Reference, schema: dict[str, Any], stack: tuple[str, ...]
    ) -> TypeDescriptor:
        key = None
        name = ref_name(node.ref)
        if self.resolver is not None:
            key = self.resolver.ref_key(node.ref, self.resolver.base_of(schema))
            name = self.ref_names.get(key, name)
        if name in self.known_type_names:
            return NamedType(name=name)
        if self.resolver is None or key is None:
            return TOP

        if key in stack:
            logger.debug("Recursive reference '%s' projected as top", node.ref)
            return TOP
        target = self.resolver.resolve_object(schema)
        if target is None or target is schema:
            return TOP
        if node.dynamic:
            # A dynamic anchor declared on a named schema names that schema.
            for anchor_key, anchor_name in self.ref_names.items():
                if (
                    anchor_name in self.known_type_names
                    and self.resolver.cache.get(anchor_key) is target
                ):
                    return NamedType(name=anchor_name)
        if not self.options.inline_unknown_refs:
            return TOP
        return self.project(target, stack + (key,))

    def _project_literals(self, node: EnumOrConst) -> TypeDescriptor:
        if (
            not node.is_const
            and self.options.named_enums
            and node.name is not None
            and node.name in self.known_type_names
            and node.name != self._defining
        ):
            return NamedType(name=node.name)
        return union_of(
            NULL if value is None else LiteralType(value=value) for value in node.literals
        )

    def _project_combinator(self, node: Combinator, stack: tuple[str, ...]) -> TypeDescriptor:
        members = [self.project(member, stack) for member in node.members]
        if node.kind == "allOf":
            core = intersection_of(members)
        else:
            core = union_of(members, discriminator=self._discriminator(node, stack))
        if has_structure(node.remainder) or "type" in node.remainder:
            return intersection_of([core, self.project(node.remainder, stack)])
        return core

    def _discriminator(self, node: Combinator, stack: tuple[str, ...]) -> Optional[Discriminator]:
        if node.discriminator is None:
            return None
        property_name = node.discriminator.get("propertyName")
        if not isinstance(property_name, str):
            logger.warning("Discriminator without a string 'propertyName'; ignoring it")
            return None

        cases: list[DiscriminatorCase] = []
        mapping = node.discriminator.get("mapping")
        if isinstance(mapping, dict):
            for value, target in mapping.items():
                if isinstance(target, str):
                    if "#" not in target and "/" not in target and "." not in target:
                        target = f"#/components/schemas/{target}"
                    case_type = self.project({"$ref": target}, stack)
                    cases.append(DiscriminatorCase(value=str(value), type=case_type))
        else:
            for member in node.members:
                if isinstance(member, dict) and isinstance(member.get("$ref"), str):
                    cases.append(
                        DiscriminatorCase(
                            value=ref_name(member["$ref"]),
                            type=self.project(member, stack),
                        )
                    )
        return Discriminator(property_name=property_name, mapping=tuple(cases))

    def _project_conditional(self, node: Conditional, stack: tuple[str, ...]) -> TypeDescriptor:
        then_type = TOP if node.then is None else self.project(node.then, stack)
        else_type = TOP if node.else_ is None else self.project(node.else_, stack)
        branches = union_of([then_type, else_type])
        if has_structure(node.remainder) or "type" in node.remainder:
            return intersection_of([self.project(node.remainder, stack), branches])
        return branches

    def _project_content(self, node: ContentWrapped, stack: tuple[str, ...]) -> TypeDescriptor:
        if node.inner_schema is not None:
            return self.project(node.inner_schema, stack)
        if node.media_type is not None:
            if is_textual(node.media_type):
                return PrimitiveType(name="string")
            return BinaryType(media_type=node.media_type)
        if node.encoding is not None and node.encoding.lower() in _BINARY_ENCODINGS:
            return BinaryType()
        return PrimitiveType(name="string")

    def _project_primitive(self, node: Primitive) -> TypeDescriptor:
        if node.kind == "null":
            return NULL
        if node.kind == "file" or (node.kind == "string" and node.format == "binary"):
            return BinaryType()
        return PrimitiveType(name=node.kind, format=node.format)

    def _project_array(self, node: ArrayShape, stack: tuple[str, ...]) -> TypeDescriptor:
        tail = node.items if node.items is not None else node.unevaluated_items
        if node.prefix_items is not None:
            items = tuple(
                self._tuple_entry(entry, index, stack)
                for index, entry in enumerate(node.prefix_items)
            )
            if tail is None or tail is False:
                return TupleType(items=items)
            return TupleType(items=items, rest=self._tuple_entry(tail, len(items), stack))
        if tail is None:
            return ArrayType(items=TOP, unique=node.unique_items)
        return ArrayType(items=self.project(tail, stack), unique=node.unique_items)

    def _tuple_entry(self, entry: Any, index: int, stack: tuple[str, ...]) -> TypeDescriptor:
        if not isinstance(entry, (dict, bool)):
            logger.warning(
                "Tuple entry %d is not a schema (%s); using top", index, type(entry).__name__
            )
            return TOP
        return self.project(entry, stack)

    def _project_object(self, node: ObjectShape, stack: tuple[str, ...]) -> TypeDescriptor:
        required = set(node.required)
        properties: list[PropertyType] = []
        for name, subschema in node.properties.items():
            flags = subschema if isinstance(subschema, dict) else {}
            properties.append(
                PropertyType(
                    name=name,
                    type=self.project(subschema, stack),
                    required=name in required,
                    read_only=flags.get("readOnly") is True,
                    write_only=flags.get("writeOnly") is True,
                )
            )

        admitting: list[TypeDescriptor] = [
            self.project(pattern_schema, stack)
            for pattern_schema in node.pattern_properties.values()
        ]
        forbids_extra = False
        for extra in (node.additional_properties, node.unevaluated_properties):
            if extra is False:
                forbids_extra = True
            elif extra is not None:
                admitting.append(self.project(extra, stack))

        index: Optional[TypeDescriptor] = None
        closed = False
        if admitting:
            index = union_of(admitting)
        elif forbids_extra:
            closed = True
        elif not properties:
            index = TOP

        declared = {prop.name for prop in properties}
        for name in node.required:
            if name not in declared:
                properties.append(PropertyType(name=name, type=index or TOP, required=True))
                declared.add(name)

        return ObjectType(properties=tuple(properties), index=index, closed=closed)


def _required_object(names: list[Any]) -> ObjectType:
    return ObjectType(
        properties=tuple(
            PropertyType(name=name, type=TOP, required=True)
            for name in dict.fromkeys(names)
            if isinstance(name, str)
        ),
        index=TOP,
    )


def project(
    schema: Any,
    known_type_names: Iterable[str] = (),
    options: Optional[ProjectionOptions] = None,
    resolver: Optional[ReferenceResolver] = None,
) -> TypeDescriptor:
    """Project *schema* to a :data:`~specir.schema.types.TypeDescriptor`.

    Example::

        project({"type": "array", "items": {"$ref": "#/components/schemas/Pet"}}, {"Pet"})
        # ArrayType(items=NamedType(name="Pet"))
    """
    return TypeProjector(known_type_names, options, resolver).project(schema)
