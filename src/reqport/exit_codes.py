"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~reqport.exceptions.ReqportError` subclass.
Shell pipelines can branch on the exit code without parsing stderr.

Example::

    $ reqport import export.har
    $ echo $?
    4   # EXIT_UNSUPPORTED -- HAR import is not available yet
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown format name."""

EXIT_VALIDATION_ERROR = 3
"""The input could not be parsed or failed structural validation."""

EXIT_UNSUPPORTED = 4
"""The input uses a format or feature that is recognised but not implemented."""

EXIT_SOURCE_ERROR = 5
"""The input source could not be read (missing file, failed download, too large)."""
