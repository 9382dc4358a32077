"""Schema classification, type projection and media-type negotiation.

* :mod:`~specir.schema.types` -- the closed :data:`TypeDescriptor` union.
* :mod:`~specir.schema.nodes` -- the :data:`SchemaNode` shapes of raw schemas.
* :mod:`~specir.schema.projector` -- schema -> descriptor projection.
* :mod:`~specir.schema.media` -- choosing one entry of a ``content`` map.

The sub-modules are imported directly; :mod:`specir.models` depends on
:mod:`~specir.schema.types`, so this package does not re-export the
projector.
"""
