"""Source-format parsers and the import orchestrator.

Importing this package registers every parser with the registry in
:mod:`~reqport.importers.base`, so :func:`import_file` can dispatch on the
detected format.

Typical usage::

    from reqport.importers import import_file

    result = import_file(text)            # detect, parse, analyse
    result = import_file(text, "curl")    # skip detection

Sub-modules:

* :mod:`~reqport.importers.base` -- parser contract, registry, and helpers.
* :mod:`~reqport.importers.postman` -- Postman v2.0/v2.1 collections and
  environments.
* :mod:`~reqport.importers.insomnia` -- Insomnia v4 exports.
* :mod:`~reqport.importers.openapi` -- OpenAPI 3.x and Swagger 2.0 JSON.
* :mod:`~reqport.importers.curl` -- ``curl`` command lines.
* :mod:`~reqport.importers.har` -- recognised, not yet supported.
* :mod:`~reqport.importers.orchestrator` -- :func:`import_file` and the
  format registry.
"""

from reqport.importers import curl, har, insomnia, openapi, postman  # noqa: F401
from reqport.importers.curl import parse_curl_command, parse_multiple_curl_commands
from reqport.importers.insomnia import parse_insomnia_export
from reqport.importers.openapi import parse_openapi_spec
from reqport.importers.orchestrator import (
    ImportOptions,
    get_supported_formats,
    import_file,
)
from reqport.importers.postman import parse_postman_collection, parse_postman_environment

__all__ = [
    "ImportOptions",
    "get_supported_formats",
    "import_file",
    "parse_curl_command",
    "parse_insomnia_export",
    "parse_multiple_curl_commands",
    "parse_openapi_spec",
    "parse_postman_collection",
    "parse_postman_environment",
]
