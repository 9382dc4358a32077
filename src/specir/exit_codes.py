"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specir.exceptions.SpecirError` subclass.  Wrappers
that drive a generation run (build scripts, CI jobs) can inspect the exit
code to determine the failure class without parsing stderr.

Example::

    $ python -m my_emitter openapi.yaml
    $ echo $?
    8   # EXIT_SPEC_VALIDATION_ERROR -- info.title is missing
"""

EXIT_SUCCESS = 0
"""The run completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_SPEC_PARSE_ERROR = 7
"""A document could not be read or parsed as JSON/YAML."""

EXIT_SPEC_VALIDATION_ERROR = 8
"""A document failed the structural OpenAPI/Swagger checks."""
