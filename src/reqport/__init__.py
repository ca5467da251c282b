"""reqport -- Import and export API collections between tools.

This package reads collection artifacts written by other API tools (Postman
collections and environments, Insomnia v4 exports, OpenAPI 3.x / Swagger 2.0
JSON documents, and shell ``curl`` commands), normalises them into one
canonical collection model, and writes that model back out as native JSON,
Postman v2.1, OpenAPI 3.0.3, or cURL text.

Typical usage::

    from reqport.importers import import_file
    from reqport.exporters import export_collection

    result = import_file(open("collection.json").read())
    print(export_collection(result.data, "openapi"))

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the canonical collection shape.
    detect: Format sniffing for raw input text.
    importers: Per-format parsers and the import orchestrator.
    exporters: Serializers from the canonical model to other formats.
    variables: Variable syntax conversion and variable analysis.
    config: XDG-aware configuration management.
    loader: Reading input from files, URLs, and stdin.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
