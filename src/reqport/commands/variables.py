"""Variable commands -- placeholder syntax tools and usage checks.

Provides the ``reqport variables`` sub-command group:

* ``detect`` -- report which placeholder dialect a piece of text uses.
* ``convert`` -- rewrite placeholders into the canonical ``{{name}}`` form.
* ``check`` -- import a source and list every variable it uses or defines.
"""

from __future__ import annotations

from typing import Optional

import typer

from reqport.commands import reported_errors
from reqport.exceptions import InvalidUsageError
from reqport.output import error, info, print_data, print_table, print_warnings
from reqport.variables import (
    VariableSyntax,
    convert_variable_syntax,
    detect_variable_syntax,
)

variables_app = typer.Typer(no_args_is_help=True)


def _syntax(value: str) -> VariableSyntax:
    try:
        return VariableSyntax(value.strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in VariableSyntax)
        raise InvalidUsageError(f"Unknown variable syntax: {value!r}. Valid: {valid}") from None


@variables_app.command("detect")
def variables_detect(
    text: str = typer.Argument(help="Text containing variable placeholders."),
) -> None:
    """Print the placeholder dialect used in TEXT.

    Prints ``postman``, ``env-braces``, ``env``, ``curl``, or ``none``.

    Example::

        reqport variables detect 'https://${HOST}/users'
    """
    syntax = detect_variable_syntax(text)
    print_data(syntax.value if syntax else "none")


@variables_app.command("convert")
def variables_convert(
    text: str = typer.Argument(help="Text containing variable placeholders."),
    from_: Optional[str] = typer.Option(
        None,
        "--from",
        help="Source dialect (env, env-braces, curl). Detected when omitted.",
    ),
) -> None:
    """Rewrite placeholders in TEXT into ``{{name}}`` form.

    Example::

        reqport variables convert 'https://$HOST/users/:id'
        reqport variables convert '/users/:id' --from curl
    """
    with reported_errors():
        source = _syntax(from_) if from_ else detect_variable_syntax(text)

    if source is None:
        info("No variable placeholders found.")
        print_data(text)
        return
    print_data(convert_variable_syntax(text, source, VariableSyntax.CANONICAL))


@variables_app.command("check")
def variables_check(
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
    format: Optional[str] = typer.Option(
        None, "--format", "-F", help="Source format. Detected when omitted."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with code 3 when any variable is undefined."
    ),
) -> None:
    """List the variables SOURCE uses and defines.

    Variables come from request URLs, headers, params, and bodies; definitions
    come from collection variables and any environments in the import.

    Example::

        reqport variables check collection.json
        reqport variables check insomnia.json --strict
    """
    from reqport.commands.import_ import load_and_import
    from reqport.config import resolve_config
    from reqport.exit_codes import EXIT_VALIDATION_ERROR
    from reqport.models import Request, WarningType
    from reqport.variables import EnvVarMapper, classify_variable

    with reported_errors():
        config = resolve_config()
        result = load_and_import(source, format, config, analyze=True)

    requests = [r for c in result.collections() for r in c.iter_requests()]
    if isinstance(result.data, Request):
        requests.append(result.data)
    elif result.type == "requests":
        requests.extend(result.data)

    used = EnvVarMapper().extract_used_variables(requests)
    defined: dict[str, str] = {}
    for collection in result.collections():
        for var in collection.variables:
            defined.setdefault(var.key, var.type)
    for env in result.environments:
        for var in env.variables:
            defined.setdefault(var.key, var.type)
    if result.type == "environment":
        for var in result.data.variables:
            defined.setdefault(var.key, var.type)

    names = list(dict.fromkeys([*used, *defined]))
    rows = [
        [
            name,
            "yes" if name in used else "no",
            "yes" if name in defined else "no",
            defined.get(name, classify_variable(name)),
        ]
        for name in names
    ]
    print_table(["Variable", "Used", "Defined", "Type"], rows, title="Variables")
    print_warnings(result.warnings)

    undefined = [w for w in result.warnings if w.type == WarningType.UNDEFINED_VARIABLE]
    if strict and undefined:
        error(f"{len(undefined)} undefined variable(s)")
        raise typer.Exit(code=EXIT_VALIDATION_ERROR)
