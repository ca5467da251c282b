"""Config commands -- view and modify global configuration.

Provides the ``reqport config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~reqport.models.GlobalConfig`). Settings control the default
output mode, import post-processing, and the default export format.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError as PydanticValidationError

from reqport.commands import reported_errors
from reqport.exceptions import InvalidUsageError
from reqport.output import format_document, info, success

config_app = typer.Typer(no_args_is_help=True)

_TRUE_WORDS = ("true", "1", "yes", "on")
_FALSE_WORDS = ("false", "0", "no", "off")


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the field it replaces."""
    if isinstance(current, bool):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise InvalidUsageError(f"Expected true or false for {key}, got: {value}")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            raise InvalidUsageError(f"Expected integer for {key}, got: {value}") from None
    return value


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config directory path to stderr and the global configuration
    to stdout.

    Example::

        reqport config show
        reqport --json config show
    """
    from reqport.config import get_config_dir, load_global_config

    with reported_errors():
        config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_document(config.model_dump(mode="json", by_alias=True))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'export.default_format')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type (bool, int, or str)
    and the result is validated before it is saved.

    Example::

        reqport config set export.default_format postman
        reqport config set import.normalize_variable_names true
        reqport config set import.max_input_bytes 1048576
    """
    from reqport.config import load_global_config, save_global_config
    from reqport.models import GlobalConfig

    with reported_errors():
        config = load_global_config()
        data = config.model_dump(mode="json", by_alias=True)

        *parents, final_key = key.split(".")
        target = data
        for part in parents:
            if not isinstance(target.get(part), dict):
                raise InvalidUsageError(f"Invalid config key: {key}")
            target = target[part]
        if final_key not in target or isinstance(target[final_key], dict):
            raise InvalidUsageError(f"Unknown config key: {key}")

        coerced = _coerce(key, target[final_key], value)
        target[final_key] = coerced

        try:
            new_config = GlobalConfig.model_validate(data)
        except PydanticValidationError as exc:
            raise InvalidUsageError(f"Invalid value for {key}: {exc}") from None

        save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        reqport config reset
        reqport --force config reset
    """
    from reqport.config import save_global_config
    from reqport.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
