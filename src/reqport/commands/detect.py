"""``reqport detect`` -- print the detected format of a source."""

from __future__ import annotations

import json

import typer

from reqport.commands import reported_errors
from reqport.output import OutputFormat, get_output, print_data


def detect_command(
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
) -> None:
    """Detect the format of SOURCE.

    Prints one of ``postman``, ``insomnia``, ``openapi``, ``curl``, ``har``,
    or ``unknown``. Detection never fails on content; only an unreadable
    source is an error.

    Example::

        reqport detect collection.json
        curl -s https://example.com/openapi.json | reqport detect -
    """
    from reqport.config import resolve_config
    from reqport.detect import detect_format
    from reqport.loader import load_source

    with reported_errors():
        config = resolve_config()
        text = load_source(source, max_bytes=config.import_.max_input_bytes)

    fmt = detect_format(text)
    if get_output().format == OutputFormat.JSON:
        print_data(json.dumps({"format": fmt.value}))
    else:
        print_data(fmt.value)
