"""Typer application and CLI entry point for reqport.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``detect``, ``formats``, ``import``, ``export``,
``variables``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`reqport.config`: Configuration resolution.
    :mod:`reqport.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from reqport import __version__
from reqport.commands.config import config_app
from reqport.commands.detect import detect_command
from reqport.commands.export import export_command
from reqport.commands.formats import formats_command
from reqport.commands.import_ import import_command
from reqport.commands.variables import variables_app
from reqport.exceptions import ConfigError
from reqport.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="reqport",
    help="Import and export API collections (Postman, Insomnia, OpenAPI, cURL).",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("detect")(detect_command)
app.command("formats")(formats_command)
app.command("import")(import_command)
app.command("export")(export_command)
app.add_typer(variables_app, name="variables", help="Variable syntax tools and checks.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"reqport {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route library log records to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        markup=False,
    )
    root = logging.getLogger("reqport")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write primary output to this file."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~reqport.output.OutputManager` from CLI
    flags, configures logging, and stores shared options in ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        force: Skip interactive confirmations.
        output_file: Redirect primary data output to a file path.
    """
    from reqport.commands import reported_errors
    from reqport.config import resolve_config
    from reqport.output import OutputFormat, OutputManager, set_output

    cli_format = None
    if json_output:
        cli_format = OutputFormat.JSON.value
    elif plain_output:
        cli_format = OutputFormat.PLAIN.value

    with reported_errors():
        config = resolve_config(cli_format=cli_format)
        try:
            fmt = OutputFormat(config.output.format)
        except ValueError:
            raise ConfigError(f"Unknown output format: {config.output.format!r}") from None

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )
    _configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to disk and return the log file path."""
    from reqport.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``reqport`` console script.

    :class:`~reqport.exceptions.ReqportError` instances that escape a
    command cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from reqport.exceptions import ReqportError
        from reqport.output import error

        if isinstance(exc, ReqportError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
