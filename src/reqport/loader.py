"""Read import sources from a URL, local file, or stdin.

This is the only module that performs input I/O. Everything it returns is
plain text; format detection and parsing happen later in
:mod:`reqport.importers`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import httpx

from reqport.exceptions import SourceError

logger = logging.getLogger(__name__)


def load_source(source: str, max_bytes: Optional[int] = None) -> str:
    """Load raw text from a URL, file path, or stdin (``-``).

    Args:
        source: An http(s) URL, a file path, or ``-`` for stdin.
        max_bytes: Refuse inputs larger than this many bytes.

    Returns:
        The source text.

    Raises:
        SourceError: If the source cannot be read, is empty, or is too
            large.
    """
    if source == "-":
        text = _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        text = _load_from_url(source)
    else:
        text = _load_from_file(source)

    if max_bytes is not None:
        size = len(text.encode("utf-8"))
        if size > max_bytes:
            raise SourceError(
                f"Input from {source} is {size} bytes, larger than the "
                f"{max_bytes} byte limit (import.max_input_bytes)"
            )
    logger.debug("Loaded %d characters from %s", len(text), source)
    return text


def _load_from_stdin() -> str:
    try:
        content = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SourceError("No input received from stdin")
    return content


def _load_from_url(url: str) -> str:
    """Fetch *url*, following redirects.

    Raises:
        SourceError: On a non-2xx status or a transport failure.
    """
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SourceError(
            f"HTTP {exc.response.status_code} fetching {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SourceError(f"Failed to fetch {url}: {exc}") from exc

    if not response.text.strip():
        raise SourceError(f"Empty response from {url}")
    return response.text


def _load_from_file(path: str) -> str:
    file_path = Path(path)
    if not file_path.is_file():
        raise SourceError(f"File not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceError(f"Failed to read {path}: {exc}") from exc

    if not content.strip():
        raise SourceError(f"File is empty: {path}")
    return content
