"""Exception hierarchy for reqport.

All exceptions inherit from :class:`ReqportError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`reqport.exit_codes`.
The top-level error handler in :func:`reqport.app.main` catches
``ReqportError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Import warnings are *not* exceptions: they are collected as
:class:`~reqport.models.ImportWarning` records on the import result.

Subclass hierarchy::

    ReqportError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- ValidationError          (exit 3)
    |   +-- UnknownFormatError   (exit 3)
    +-- UnsupportedFeatureError  (exit 4)
    +-- SourceError              (exit 5)
    +-- ConfigError              (exit 1)
"""

from reqport.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SOURCE_ERROR,
    EXIT_UNSUPPORTED,
    EXIT_VALIDATION_ERROR,
)


class ReqportError(Exception):
    """Base exception for all reqport errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`reqport.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ReqportError):
    """Raised for invalid CLI arguments or an unknown format identifier."""

    exit_code = EXIT_INVALID_USAGE


class ValidationError(ReqportError):
    """Raised when input text is malformed or structurally invalid.

    Covers invalid JSON, missing required fields, and unsupported schema or
    export-format versions. Not to be confused with
    :class:`pydantic.ValidationError`, which the importers translate into
    this type.
    """

    exit_code = EXIT_VALIDATION_ERROR


class UnknownFormatError(ValidationError):
    """Raised when the format of the input cannot be detected and no hint was given."""


class UnsupportedFeatureError(ReqportError):
    """Raised for recognised but unimplemented inputs (HAR, YAML OpenAPI documents)."""

    exit_code = EXIT_UNSUPPORTED


class SourceError(ReqportError):
    """Raised when input cannot be read from a file, URL, or stdin."""

    exit_code = EXIT_SOURCE_ERROR


class ConfigError(ReqportError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
