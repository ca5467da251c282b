"""HTTP Archive (HAR) importer placeholder.

HAR files are recognised by :func:`~reqport.detect.detect_format` and listed
in the format registry, but converting their entries is not implemented yet.
"""

from __future__ import annotations

from reqport.exceptions import UnsupportedFeatureError
from reqport.importers.base import FormatParser, register_parser
from reqport.models import ImportFormat, Request


@register_parser(ImportFormat.HAR)
class HarParser(FormatParser):
    """Registered so that HAR input fails with a clear message."""

    def parse(self, text: str) -> list[Request]:
        raise UnsupportedFeatureError("HAR import is not yet supported. Coming soon!")
