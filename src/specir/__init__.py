"""specir -- resolve and project OpenAPI / Swagger documents into a typed IR.

This package is the schema-resolution and type-projection core of an
API-client code generator.  It loads a Swagger 2.0 or OpenAPI 3.0-3.2
document together with every document it references, validates it, and
produces a :class:`~specir.models.ParsedSpec`: one record per operation,
parameter, request body and response, plus a named-schema table whose
entries are projected onto a closed set of type descriptors.

Typical usage::

    from specir.parser import parse_spec

    spec = parse_spec("openapi.yaml")
    for operation in spec.operations:
        print(operation.method, operation.path)

Modules:
    parser: Loading, reference resolution, validation and extraction.
    schema: Schema classification, type projection and media negotiation.
    models: Pydantic models for the IR and the run configuration.
    config: XDG-aware configuration and precedence resolution.
    cache: Optional on-disk cache of fetched remote documents.
    exceptions: Exception hierarchy with exit-code mapping.
    output: Logging setup.
"""

__version__ = "0.3.0"
