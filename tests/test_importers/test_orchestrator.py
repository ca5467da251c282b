"""Tests for reqport.importers.orchestrator -- import_file and the format registry."""

from __future__ import annotations

import json
from typing import Any, Optional

import pytest

from reqport.exceptions import (
    InvalidUsageError,
    UnknownFormatError,
    UnsupportedFeatureError,
    ValidationError,
)
from reqport.importers import ImportOptions, get_supported_formats, import_file
from reqport.importers.base import get_parser, registered_formats
from reqport.importers.orchestrator import SUPPORTED_FORMATS, resolve_format
from reqport.models import Environment, ImportConfig, ImportFormat, Request, WarningType

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

_TIMESTAMP_KEYS = frozenset({"created_at", "updated_at", "createdAt", "updatedAt"})


def _types(result) -> list[WarningType]:
    return [w.type for w in result.warnings]


def _postman(items: list[Any], variables: Optional[list[Any]] = None) -> str:
    return json.dumps(
        {
            "info": {"name": "P", "schema": POSTMAN_SCHEMA},
            "item": items,
            "variable": variables or [],
        }
    )


def _strip_volatile(value: Any, ids: set[str]) -> Any:
    """Drop generated ids and timestamps from a dump, collecting the ids."""
    if isinstance(value, dict):
        stripped = {}
        for key, item in value.items():
            if key == "id" and isinstance(item, str):
                ids.add(item)
            elif key not in _TIMESTAMP_KEYS:
                stripped[key] = _strip_volatile(item, ids)
        return stripped
    if isinstance(value, list):
        return [_strip_volatile(item, ids) for item in value]
    return value


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_detects_postman(self, postman_text: str) -> None:
        result = import_file(postman_text)
        assert result.type == "collection"
        assert result.data.name == "Users API"

    def test_detects_curl(self) -> None:
        result = import_file("curl https://x.io/ping")
        assert result.type == "request"
        assert isinstance(result.data, Request)

    def test_format_hint_skips_detection(self) -> None:
        result = import_file("curl https://x.io/ping", format_hint="curl")
        assert result.type == "request"

    def test_format_hint_case_insensitive(self, openapi_text: str) -> None:
        assert import_file(openapi_text, format_hint=" OpenAPI ").data.name == "Pet Store"

    def test_bad_format_hint(self) -> None:
        with pytest.raises(InvalidUsageError, match="Unknown import format"):
            import_file("{}", format_hint="yaml")

    def test_unknown_format(self) -> None:
        with pytest.raises(UnknownFormatError, match="Unable to detect import format"):
            import_file("hello world")

    def test_unknown_format_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            import_file("{}")

    def test_har_is_unsupported(self) -> None:
        doc = {"log": {"version": "1.2", "entries": [{}]}}
        with pytest.raises(UnsupportedFeatureError, match="HAR import is not yet supported"):
            import_file(json.dumps(doc))

    def test_wrong_hint_surfaces_parser_error(self, postman_text: str) -> None:
        with pytest.raises(ValidationError):
            import_file(postman_text, format_hint="insomnia")

    def test_malformed_shape_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError, match="Invalid Postman collection"):
            import_file(_postman([{"name": "R", "request": []}]))


# ---------------------------------------------------------------------------
# Variable analysis
# ---------------------------------------------------------------------------


class TestVariableAnalysis:
    def test_postman_dynamic_variables(self, postman_text: str) -> None:
        result = import_file(postman_text)
        dynamic = [w for w in result.warnings if w.type == WarningType.DYNAMIC_VARIABLE]
        assert len(dynamic) == 1
        assert "$guid" in dynamic[0].message

    def test_postman_undefined_and_unused(self, postman_text: str) -> None:
        result = import_file(postman_text)
        undefined = {w.variable_name for w in result.warnings if w.type == WarningType.UNDEFINED_VARIABLE}
        unused = {w.variable_name for w in result.warnings if w.type == WarningType.UNUSED_VARIABLE}
        assert undefined == {"token", "userName"}
        assert unused == {"api_key"}

    def test_postman_collection_variables_environment(self, postman_text: str) -> None:
        result = import_file(postman_text)
        assert [e.name for e in result.environments] == ["Collection Variables"]
        keys = [v.key for v in result.environments[0].variables]
        assert keys == ["baseUrl", "api_key"]
        assert WarningType.CONVERSION_NOTE in _types(result)

    def test_insomnia_context_variables_resolve(self, insomnia_text: str) -> None:
        result = import_file(insomnia_text)
        undefined = [w for w in result.warnings if w.type == WarningType.UNDEFINED_VARIABLE]
        assert undefined == []

    def test_insomnia_template_tags(self) -> None:
        doc = {
            "_type": "export",
            "__export_format": 4,
            "resources": [
                {"_id": "w", "_type": "workspace", "name": "W"},
                {
                    "_id": "r",
                    "_type": "request",
                    "parentId": "w",
                    "name": "R",
                    "url": "https://x.io/{% uuid 'v4' %}",
                    "headers": [{"name": "X", "value": "{% response 'body', 'req_1', '$.id' %}"}],
                },
            ],
        }
        result = import_file(json.dumps(doc))
        unsupported = [w.message for w in result.warnings if w.type == WarningType.UNSUPPORTED_FEATURE]
        assert any("uuid" in m and "response" in m for m in unsupported)
        assert any("response reference" in m for m in unsupported)

    def test_postman_dynamic_variable_in_query(self) -> None:
        text = _postman([{"name": "R", "request": {"url": {"raw": "https://x.io/a?id={{$guid}}"}}}])
        result = import_file(text)
        assert result.data.requests[0].url == "https://x.io/a"
        dynamic = [w for w in result.warnings if w.type == WarningType.DYNAMIC_VARIABLE]
        assert len(dynamic) == 1
        assert "$guid" in dynamic[0].message

    def test_insomnia_template_tag_in_query(self) -> None:
        doc = {
            "_type": "export",
            "__export_format": 4,
            "resources": [
                {"_id": "w", "_type": "workspace", "name": "W"},
                {
                    "_id": "r",
                    "_type": "request",
                    "parentId": "w",
                    "name": "R",
                    "url": "https://x.io/a?tok={% response 'body', 'req_1', '$.id' %}",
                },
            ],
        }
        result = import_file(json.dumps(doc))
        unsupported = [w.message for w in result.warnings if w.type == WarningType.UNSUPPORTED_FEATURE]
        assert any("response" in m and "template tags" in m.lower() for m in unsupported)
        assert any("response reference" in m for m in unsupported)

    def test_analysis_can_be_disabled(self, postman_text: str) -> None:
        result = import_file(postman_text, options=ImportOptions(analyze_variables=False))
        assert result.warnings == []
        assert result.environments == []

    def test_openapi_is_not_analysed(self, openapi_text: str) -> None:
        result = import_file(openapi_text)
        assert WarningType.UNDEFINED_VARIABLE not in _types(result)


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


class TestNormalisation:
    def _collection_text(self) -> str:
        return json.dumps(
            {
                "info": {
                    "name": "N",
                    "schema": "https://schema.getpostman.com/json/collection/v2.1.0/collection.json",
                },
                "item": [],
                "variable": [
                    {"key": "base-url", "value": "first"},
                    {"key": "base url", "value": "second"},
                    {"key": "ok", "value": "1"},
                ],
            }
        )

    def test_off_by_default(self) -> None:
        result = import_file(self._collection_text())
        assert [v.key for v in result.data.variables] == ["base-url", "base url", "ok"]

    def test_renames_and_later_value_wins(self) -> None:
        options = ImportOptions(analyze_variables=False, normalize_variable_names=True)
        result = import_file(self._collection_text(), options=options)
        variables = result.data.variables
        assert [(v.key, v.value) for v in variables] == [("base_url", "second"), ("ok", "1")]
        assert variables[0].original_key == "base url"
        types = _types(result)
        assert types.count(WarningType.VARIABLE_RENAMED) == 2
        assert types.count(WarningType.DUPLICATE_VARIABLE) == 1

    def test_environment_normalised(self) -> None:
        doc = {"name": "Env", "values": [{"key": "my.token", "value": "x"}]}
        options = ImportOptions(normalize_variable_names=True)
        result = import_file(json.dumps(doc), options=options)
        assert isinstance(result.data, Environment)
        variable = result.data.variables[0]
        assert variable.key == "my_token"
        assert variable.type == "secret"

    def test_each_rename_reported_once(self) -> None:
        text = _postman(
            [{"name": "R", "request": {"url": "{{base-url}}/x"}}],
            variables=[{"key": "base-url", "value": "https://x.io"}],
        )
        result = import_file(text, options=ImportOptions(normalize_variable_names=True))
        assert _types(result).count(WarningType.VARIABLE_RENAMED) == 1
        [env] = result.environments
        assert env.name == "Collection Variables"
        assert [v.key for v in env.variables] == ["base_url"]

    def test_references_follow_renamed_keys(self) -> None:
        text = _postman(
            [
                {
                    "name": "R",
                    "request": {
                        "url": "{{base-url}}/x",
                        "header": [{"key": "Authorization", "value": "Bearer {{api.token}}"}],
                    },
                }
            ],
            variables=[
                {"key": "base-url", "value": "https://x.io"},
                {"key": "api.token", "value": "t"},
            ],
        )
        result = import_file(text, options=ImportOptions(normalize_variable_names=True))
        request = result.data.requests[0]
        assert request.url == "{{base_url}}/x"
        assert request.headers[0].value == "Bearer {{api_token}}"
        assert WarningType.UNDEFINED_VARIABLE not in _types(result)
        assert WarningType.UNUSED_VARIABLE not in _types(result)

    def test_options_from_config(self) -> None:
        options = ImportOptions.from_config(ImportConfig(normalize_variable_names=True))
        assert options.normalize_variable_names is True
        assert options.analyze_variables is True


# ---------------------------------------------------------------------------
# Repeatability
# ---------------------------------------------------------------------------


class TestRepeatability:
    """Importing the same text twice gives the same tree under fresh ids."""

    @pytest.mark.parametrize(
        "fixture",
        ["postman_text", "postman_environment_text", "insomnia_text", "openapi_text", "swagger_text"],
    )
    def test_fixture_imports_match(self, fixture: str, request: pytest.FixtureRequest) -> None:
        self._assert_repeatable(request.getfixturevalue(fixture))

    def test_curl_imports_match(self) -> None:
        self._assert_repeatable(
            "curl -X POST https://x.io/users?page=2 -H 'Content-Type: application/json' "
            "-u alice:secret -d '{\"name\": \"a\"}'"
        )

    def test_normalised_imports_match(self, postman_text: str) -> None:
        self._assert_repeatable(postman_text, ImportOptions(normalize_variable_names=True))

    @staticmethod
    def _assert_repeatable(text: str, options: Optional[ImportOptions] = None) -> None:
        first_ids: set[str] = set()
        second_ids: set[str] = set()
        first = _strip_volatile(import_file(text, options=options).model_dump(mode="json"), first_ids)
        second = _strip_volatile(import_file(text, options=options).model_dump(mode="json"), second_ids)
        assert first == second
        assert first_ids
        assert first_ids.isdisjoint(second_ids)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_supported_formats(self) -> None:
        formats = get_supported_formats()
        assert [f.id for f in formats] == [
            ImportFormat.POSTMAN,
            ImportFormat.INSOMNIA,
            ImportFormat.OPENAPI,
            ImportFormat.CURL,
            ImportFormat.HAR,
        ]
        har = formats[-1]
        assert har.supported is False
        assert all(f.supported for f in formats[:-1])

    def test_supported_formats_returns_copies(self) -> None:
        get_supported_formats()[0].name = "changed"
        assert SUPPORTED_FORMATS[0].name == "Postman"

    def test_every_listed_format_has_a_parser(self) -> None:
        assert {f.id for f in SUPPORTED_FORMATS} <= set(registered_formats())

    def test_fresh_parser_per_call(self) -> None:
        assert get_parser(ImportFormat.CURL) is not get_parser(ImportFormat.CURL)

    def test_unknown_has_no_parser(self) -> None:
        with pytest.raises(InvalidUsageError):
            get_parser(ImportFormat.UNKNOWN)

    def test_resolve_format(self) -> None:
        assert resolve_format(None) is None
        assert resolve_format("postman") is ImportFormat.POSTMAN
        assert resolve_format(ImportFormat.HAR) is ImportFormat.HAR
