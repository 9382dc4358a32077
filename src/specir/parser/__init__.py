"""API description parser -- load, resolve references, validate and extract.

This sub-package turns a Swagger 2.0 or OpenAPI 3.x document (JSON or YAML,
local file, remote URL or stdin) and every document it references into a
:class:`~specir.models.ParsedSpec`.

Typical usage::

    from specir.parser import load_documents, extract_spec

    cache, document = load_documents("openapi.yaml")
    parsed = extract_spec(document, cache)

Sub-modules:

* :mod:`~specir.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection.
* :mod:`~specir.parser.documents` -- the per-run document cache and
  concurrent reference-closure loading.
* :mod:`~specir.parser.resolver` -- ``$ref`` / ``$dynamicRef`` resolution
  with JSON Pointer walking and cycle detection.
* :mod:`~specir.parser.validator` -- minimal structural validation.
* :mod:`~specir.parser.extractor` -- walks the document and produces the
  :class:`~specir.models.OperationRecord` list and schema table.
"""

from specir.parser.documents import DocumentCache, load_documents
from specir.parser.extractor import extract_paths, extract_spec, parse_spec
from specir.parser.loader import load_spec
from specir.parser.resolver import ReferenceResolver
from specir.parser.validator import validate_spec

__all__ = [
    "DocumentCache",
    "ReferenceResolver",
    "extract_paths",
    "extract_spec",
    "load_documents",
    "load_spec",
    "parse_spec",
    "validate_spec",
]
