"""Exception hierarchy for specir.

All exceptions inherit from :class:`SpecirError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specir.exit_codes`.
Only two conditions are fatal for a generation run: a document that fails
structural validation, and an entry document that cannot be loaded.
Everything else (unresolved references, broken remote documents, malformed
schema corners) is logged as a warning and absorbed where it happens.

Subclass hierarchy::

    SpecirError (exit 1)
    +-- SpecParseError        (exit 7)
    |   +-- DocumentLoadError (exit 7)
    +-- SpecValidationError   (exit 8)
    +-- ConfigError           (exit 1)
"""

from specir.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_SPEC_VALIDATION_ERROR,
)


class SpecirError(Exception):
    """Base exception for all specir errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specir.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SpecParseError(SpecirError):
    """Raised when a document cannot be read or parsed as JSON/YAML."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class DocumentLoadError(SpecParseError):
    """Raised when the entry document of a run cannot be loaded.

    Failures loading any *other* document are not raised; the document
    cache logs them and leaves the references pointing at it unresolved.

    Args:
        uri: The retrieval URI of the entry document.
        message: Description of the underlying transport or parse failure.
    """

    def __init__(self, uri: str, message: str):
        super().__init__(f"Failed to load entry document {uri}: {message}")
        self.uri = uri


class SpecValidationError(SpecirError):
    """Raised when a document fails the minimal OpenAPI/Swagger shape checks.

    The message always names the offending field (for example ``'title'``)
    so callers can surface it without further context.
    """

    exit_code = EXIT_SPEC_VALIDATION_ERROR


class ConfigError(SpecirError):
    """Raised for configuration problems (invalid JSON, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE
