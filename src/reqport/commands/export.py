"""``reqport export`` -- import a source and write it in another format."""

from __future__ import annotations

import json
from typing import Optional

import typer

from reqport.commands import reported_errors
from reqport.commands.import_ import load_and_import
from reqport.models import Collection, ExportFormat, ImportResult, Request, new_id
from reqport.output import format_document, print_warnings

_CURL_COLLECTION_NAME = "cURL Import"


def _collections(result: ImportResult) -> list[Collection]:
    """Return the collections to export, wrapping bare requests in one."""
    if isinstance(result.data, Request):
        return [Collection(id=new_id(), name=_CURL_COLLECTION_NAME, requests=[result.data])]
    if result.type == "requests":
        return [Collection(id=new_id(), name=_CURL_COLLECTION_NAME, requests=list(result.data))]
    return result.collections()


def _combine(documents: list[str], fmt: ExportFormat) -> str:
    """Join several exported documents into one output text."""
    if len(documents) == 1:
        return documents[0]
    if fmt is ExportFormat.CURL:
        return "\n\n".join(documents)
    return json.dumps([json.loads(d) for d in documents], indent=2, ensure_ascii=False)


def export_command(
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    to: Optional[str] = typer.Option(
        None,
        "--to",
        "-t",
        help="Target format (native, postman, openapi, curl). Defaults to export.default_format.",
    ),
    format: Optional[str] = typer.Option(
        None,
        "--format",
        "-F",
        help="Source format. Detected when omitted.",
    ),
) -> None:
    """Import SOURCE and export it as another format.

    cURL input is wrapped in a single collection. Environments can only be
    exported as ``native`` or ``postman``. An Insomnia export with several
    workspaces produces a JSON array (or newline-separated commands for
    ``curl``).

    Example::

        reqport export collection.json --to openapi
        reqport export insomnia.json --to postman -o collection.json
        reqport export --to curl https://example.com/openapi.json
    """
    from reqport.config import resolve_config
    from reqport.exporters import export_collection, export_environment
    from reqport.exporters.base import resolve_export_format

    with reported_errors():
        target = resolve_export_format(to) if to is not None else None
        config = resolve_config(cli_export_format=target.value if target else None)
        fmt = config.export.default_format
        result = load_and_import(source, format, config, analyze=False)

        if result.type == "environment":
            text = export_environment(result.data, fmt)
        else:
            text = _combine([export_collection(c, fmt) for c in _collections(result)], fmt)

    format_document(text, language="bash" if fmt is ExportFormat.CURL else "json")
    print_warnings(result.warnings)
