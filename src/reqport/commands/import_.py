"""``reqport import`` -- import a source into the native collection format.

The import result (collections, environments, or requests plus warnings) is
written to stdout as native camelCase JSON. Warnings are also printed to
stderr so that they remain visible when stdout is redirected.
"""

from __future__ import annotations

from typing import Optional

import typer

from reqport.commands import reported_errors
from reqport.models import GlobalConfig, ImportResult
from reqport.output import debug, format_document, print_warnings


def load_and_import(
    source: str,
    format_hint: Optional[str],
    config: GlobalConfig,
    analyze: Optional[bool] = None,
) -> ImportResult:
    """Read *source* and run it through :func:`~reqport.importers.import_file`.

    Args:
        source: File path, http(s) URL, or ``-``.
        format_hint: Skip detection and parse as this format.
        config: Resolved configuration supplying the import options and
            the input size limit.
        analyze: Override ``import.analyze_variables`` when not ``None``.

    Raises:
        ReqportError: Any loading or import failure.
    """
    from reqport.importers import ImportOptions, import_file
    from reqport.loader import load_source

    text = load_source(source, max_bytes=config.import_.max_input_bytes)
    options = ImportOptions.from_config(config.import_)
    if analyze is not None:
        options.analyze_variables = analyze
    debug(f"Importing {source} (format hint: {format_hint or 'auto'})")
    return import_file(text, format_hint, options)


def import_command(
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    format: Optional[str] = typer.Option(
        None,
        "--format",
        "-F",
        help="Source format (postman, insomnia, openapi, curl). Detected when omitted.",
    ),
    normalize_variables: Optional[bool] = typer.Option(
        None,
        "--normalize-variables/--keep-variable-names",
        help="Rewrite variable names into valid identifiers.",
    ),
    no_analyze: bool = typer.Option(
        False, "--no-analyze", help="Skip variable usage analysis."
    ),
) -> None:
    """Import SOURCE and print it as native JSON.

    Example::

        reqport import collection.postman_collection.json
        reqport import --format curl - < request.sh
        reqport import insomnia.json --normalize-variables -o out.json
    """
    from reqport.config import resolve_config

    with reported_errors():
        config = resolve_config(cli_normalize=normalize_variables)
        result = load_and_import(
            source, format, config, analyze=False if no_analyze else None
        )

    format_document(result.model_dump(by_alias=True, mode="json", exclude_none=True))
    print_warnings(result.warnings)
