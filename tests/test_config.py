"""Tests for reqport.config -- XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from reqport.config import (
    ENV_EXPORT_FORMAT,
    ENV_NORMALIZE_VARIABLES,
    _atomic_write,
    get_config_dir,
    get_data_dir,
    global_config_path,
    load_global_config,
    load_project_config,
    resolve_config,
    save_global_config,
)
from reqport.exceptions import ConfigError
from reqport.models import ExportFormat, GlobalConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestPaths:
    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("reqport.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        result = get_config_dir()
        assert result == tmp_path / "cfg" / "reqport"
        assert result.is_dir()

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("reqport.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".config" / "reqport"

    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("reqport.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        assert get_data_dir() == tmp_path / "data" / "reqport"

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("reqport.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".reqport"
        assert get_data_dir() == tmp_path / ".reqport"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b.json"
        _atomic_write(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "b.json"
        target.write_text("old", encoding="utf-8")
        _atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "b.json"
        with patch("reqport.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Global and project config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.export.default_format is ExportFormat.NATIVE
        assert config.import_.analyze_variables is True

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        config = GlobalConfig()
        config.export.default_format = ExportFormat.OPENAPI
        config.import_.normalize_variable_names = True
        save_global_config(config)
        assert load_global_config() == config

    def test_saved_with_import_key(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig())
        data = json.loads(global_config_path().read_text(encoding="utf-8"))
        assert "import" in data
        assert "import_" not in data

    def test_invalid_json(self, isolated_config: Path) -> None:
        global_config_path().write_text("{oops", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_invalid_schema(self, isolated_config: Path) -> None:
        _write_json(global_config_path(), {"export": {"default_format": "har"}})
        with pytest.raises(ConfigError):
            load_global_config()


class TestProjectConfig:
    def test_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_valid(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "reqport.json", {"export": {"default_format": "curl"}})
        assert load_project_config() == {"export": {"default_format": "curl"}}

    def test_not_an_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "reqport.json", [1, 2])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()

    def test_invalid_json(self, isolated_config: Path) -> None:
        (isolated_config / "reqport.json").write_text("nope", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    """CLI > env > project > global > defaults."""

    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == GlobalConfig()

    def test_global(self, isolated_config: Path) -> None:
        _write_json(global_config_path(), {"export": {"default_format": "postman"}})
        assert resolve_config().export.default_format is ExportFormat.POSTMAN

    def test_project_overrides_global_and_keeps_other_keys(self, isolated_config: Path) -> None:
        _write_json(
            global_config_path(),
            {"export": {"default_format": "postman"}, "import": {"max_input_bytes": 100}},
        )
        _write_json(isolated_config / "reqport.json", {"export": {"default_format": "curl"}})
        config = resolve_config()
        assert config.export.default_format is ExportFormat.CURL
        assert config.import_.max_input_bytes == 100

    def test_env_overrides_project(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(isolated_config / "reqport.json", {"export": {"default_format": "curl"}})
        monkeypatch.setenv(ENV_EXPORT_FORMAT, "openapi")
        monkeypatch.setenv(ENV_NORMALIZE_VARIABLES, "yes")
        config = resolve_config()
        assert config.export.default_format is ExportFormat.OPENAPI
        assert config.import_.normalize_variable_names is True

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_EXPORT_FORMAT, "openapi")
        monkeypatch.setenv(ENV_NORMALIZE_VARIABLES, "1")
        config = resolve_config(cli_export_format="postman", cli_normalize=False, cli_format="json")
        assert config.export.default_format is ExportFormat.POSTMAN
        assert config.import_.normalize_variable_names is False
        assert config.output.format == "json"

    def test_bad_env_boolean(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_NORMALIZE_VARIABLES, "maybe")
        with pytest.raises(ConfigError, match=ENV_NORMALIZE_VARIABLES):
            resolve_config()

    def test_bad_export_format(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Unknown export format"):
            resolve_config(cli_export_format="yaml")

    def test_invalid_project_value(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "reqport.json", {"import": {"max_input_bytes": "lots"}})
        with pytest.raises(ConfigError, match="Invalid project config"):
            resolve_config()
