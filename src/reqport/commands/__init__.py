"""Built-in CLI sub-commands for reqport.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~reqport.commands.detect` -- print the detected format of a source.
* :mod:`~reqport.commands.formats` -- list the import format registry.
* :mod:`~reqport.commands.import_` -- import a source into native JSON.
* :mod:`~reqport.commands.export` -- import a source and export it as
  another format.
* :mod:`~reqport.commands.variables` -- placeholder syntax tools and
  variable usage checks.
* :mod:`~reqport.commands.config` -- view and modify global settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from reqport.exceptions import ReqportError, UnknownFormatError
from reqport.output import error, suggest


@contextmanager
def reported_errors() -> Iterator[None]:
    """Report a :class:`~reqport.exceptions.ReqportError` and exit with its code."""
    try:
        yield
    except ReqportError as exc:
        error(str(exc))
        if isinstance(exc, UnknownFormatError):
            suggest("Pass --format (postman, insomnia, openapi, curl) to skip detection.")
        raise typer.Exit(code=exc.exit_code) from None
