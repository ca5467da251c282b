"""``reqport formats`` -- list the import format registry."""

from __future__ import annotations

from reqport.output import print_table


def formats_command() -> None:
    """List the formats reqport can import.

    Example::

        reqport formats
        reqport --json formats
    """
    from reqport.importers import get_supported_formats

    rows = [
        [
            info.id.value,
            info.name,
            ", ".join(info.extensions),
            "yes" if info.supported else "no",
            info.description,
        ]
        for info in get_supported_formats()
    ]
    print_table(
        ["ID", "Name", "Extensions", "Supported", "Description"],
        rows,
        title="Import formats",
    )
