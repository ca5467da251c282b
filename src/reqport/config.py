"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for reqport:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.reqport/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~reqport.models.GlobalConfig`
  JSON file storing import and export defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from reqport.exceptions import ConfigError
from reqport.models import ExportFormat, GlobalConfig

_APP_NAME = "reqport"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "reqport.json"

ENV_EXPORT_FORMAT = "REQPORT_EXPORT_FORMAT"
ENV_NORMALIZE_VARIABLES = "REQPORT_NORMALIZE_VARIABLES"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/reqport/`` (default ``~/.config/reqport/``).
    On macOS/Windows: ``~/.reqport/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/reqport/`` (default ``~/.local/share/reqport/``).
    On macOS/Windows: ``~/.reqport/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created next to *path* so that ``os.replace`` is
    an atomic rename on POSIX systems. On any failure the temp file is
    removed and the original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~reqport.models.GlobalConfig`, or a default
        instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json", by_alias=True)
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./reqport.json``.

    The file uses the same shape as the global config and only needs to
    carry the keys it overrides, e.g. ``{"export": {"default_format":
    "postman"}}``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_flag(name: str) -> Optional[bool]:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean in {name}: {raw!r}")


# --- Precedence resolution ---


def resolve_config(
    cli_export_format: Optional[str] = None,
    cli_normalize: Optional[bool] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_export_format``, ``cli_normalize``, ``cli_format``)
        2. Environment variables (``REQPORT_EXPORT_FORMAT``,
           ``REQPORT_NORMALIZE_VARIABLES``)
        3. Project config (``./reqport.json``)
        4. User config (``~/.config/reqport/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    # 5 + 4
    global_cfg = load_global_config()

    # 3
    project = load_project_config()
    if project is not None:
        data = _deep_merge(global_cfg.model_dump(mode="json", by_alias=True), project)
        try:
            global_cfg = GlobalConfig.model_validate(data)
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    # 2
    export_format = os.environ.get(ENV_EXPORT_FORMAT) or None
    normalize = _env_flag(ENV_NORMALIZE_VARIABLES)

    # 1
    if cli_export_format is not None:
        export_format = cli_export_format
    if cli_normalize is not None:
        normalize = cli_normalize

    if export_format is not None:
        try:
            global_cfg.export.default_format = ExportFormat(export_format.strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in ExportFormat)
            raise ConfigError(
                f"Unknown export format: {export_format!r}. Valid formats: {valid}"
            ) from None
    if normalize is not None:
        global_cfg.import_.normalize_variable_names = normalize
    if cli_format is not None:
        global_cfg.output.format = cli_format

    return global_cfg
