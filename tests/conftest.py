"""Shared test fixtures for reqport.

Provides reusable fixtures for loading source fixtures, creating isolated
config environments, managing output state, and running CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from reqport.models import (
    BearerAuth,
    BearerCredentials,
    Collection,
    Folder,
    KeyValue,
    RawBody,
    Request,
    Variable,
)
from reqport.output import reset_output

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references go stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Source fixtures
# ---------------------------------------------------------------------------


def load_fixture(name: str) -> str:
    """Return the text of a fixture file."""
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def postman_text() -> str:
    return load_fixture("postman_users.json")


@pytest.fixture
def postman_environment_text() -> str:
    return load_fixture("postman_environment.json")


@pytest.fixture
def insomnia_text() -> str:
    return load_fixture("insomnia_v4.json")


@pytest.fixture
def openapi_text() -> str:
    return load_fixture("openapi_pets.json")


@pytest.fixture
def openapi_raw(openapi_text: str) -> dict[str, Any]:
    return json.loads(openapi_text)


@pytest.fixture
def swagger_text() -> str:
    return load_fixture("swagger2.json")


# ---------------------------------------------------------------------------
# Canonical model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_collection() -> Collection:
    """A small collection with one folder, two requests, and one variable."""
    return Collection(
        id="col-1",
        name="Pets",
        description="Pet store requests",
        variables=[Variable(id="var-1", key="baseUrl", value="https://pets.example.com")],
        requests=[
            Request(
                id="req-1",
                name="List pets",
                method="GET",
                url="{{baseUrl}}/pets",
                params=[
                    KeyValue(id="p-1", key="limit", value="10"),
                    KeyValue(id="p-2", key="debug", value="1", enabled=False),
                ],
            )
        ],
        folders=[
            Folder(
                id="fold-1",
                name="Admin",
                requests=[
                    Request(
                        id="req-2",
                        name="Create pet",
                        method="POST",
                        url="{{baseUrl}}/pets/{{petId}}",
                        headers=[KeyValue(id="h-1", key="Content-Type", value="application/json")],
                        body=RawBody(type="json", content='{"name": "Rex"}'),
                        auth=BearerAuth(bearer=BearerCredentials(token="{{token}}")),
                        test_script="pm.test('ok', () => {});",
                    )
                ],
            )
        ],
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path,
    clears REQPORT_* environment variables, and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("reqport.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ("REQPORT_EXPORT_FORMAT", "REQPORT_NORMALIZE_VARIABLES"):
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
