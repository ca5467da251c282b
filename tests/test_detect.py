"""Tests for reqport.detect -- format sniffing."""

from __future__ import annotations

import json

import pytest

from reqport.detect import detect_format, is_postman_environment, looks_like_curl
from reqport.models import ImportFormat


# ---------------------------------------------------------------------------
# Fixture documents
# ---------------------------------------------------------------------------


class TestFixtureDocuments:
    def test_postman_collection(self, postman_text: str) -> None:
        assert detect_format(postman_text) == ImportFormat.POSTMAN

    def test_postman_environment(self, postman_environment_text: str) -> None:
        assert detect_format(postman_environment_text) == ImportFormat.POSTMAN

    def test_insomnia_export(self, insomnia_text: str) -> None:
        assert detect_format(insomnia_text) == ImportFormat.INSOMNIA

    def test_openapi_document(self, openapi_text: str) -> None:
        assert detect_format(openapi_text) == ImportFormat.OPENAPI

    def test_swagger_document(self, swagger_text: str) -> None:
        assert detect_format(swagger_text) == ImportFormat.OPENAPI


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class TestSignatures:
    def test_curl_command(self) -> None:
        assert detect_format("curl https://example.com/ping") == ImportFormat.CURL

    def test_curl_with_leading_whitespace_and_case(self) -> None:
        assert detect_format("\n  CURL -X POST https://example.com") == ImportFormat.CURL

    def test_bare_curl_keyword(self) -> None:
        assert detect_format("curl") == ImportFormat.CURL

    def test_curly_word_is_not_curl(self) -> None:
        assert detect_format("curly braces") == ImportFormat.UNKNOWN

    def test_har_document(self) -> None:
        doc = {"log": {"version": "1.2", "entries": [{"request": {}}]}}
        assert detect_format(json.dumps(doc)) == ImportFormat.HAR

    def test_har_without_entries_is_unknown(self) -> None:
        doc = {"log": {"version": "1.2", "entries": []}}
        assert detect_format(json.dumps(doc)) == ImportFormat.UNKNOWN

    def test_insomnia_requires_export_format(self) -> None:
        assert detect_format(json.dumps({"_type": "export"})) == ImportFormat.UNKNOWN

    def test_insomnia_wins_over_openapi(self) -> None:
        doc = {"_type": "export", "__export_format": 4, "openapi": "3.0.0"}
        assert detect_format(json.dumps(doc)) == ImportFormat.INSOMNIA

    def test_postman_schema_must_mention_postman(self) -> None:
        doc = {"info": {"schema": "https://example.com/schema.json"}}
        assert detect_format(json.dumps(doc)) == ImportFormat.UNKNOWN

    def test_yaml_openapi_heuristic(self) -> None:
        text = "openapi: 3.0.0\ninfo:\n  title: Pets\npaths: {}\n"
        assert detect_format(text) == ImportFormat.OPENAPI

    def test_yaml_swagger_heuristic(self) -> None:
        assert detect_format("swagger: '2.0'\n") == ImportFormat.OPENAPI


# ---------------------------------------------------------------------------
# Totality
# ---------------------------------------------------------------------------


class TestNeverRaises:
    @pytest.mark.parametrize(
        "text",
        ["", "   ", "hello world", "[1, 2, 3]", "42", "null", '"string"', "{not json", "{}"],
    )
    def test_unknown_inputs(self, text: str) -> None:
        assert detect_format(text) == ImportFormat.UNKNOWN

    def test_non_string_input(self) -> None:
        assert detect_format(None) == ImportFormat.UNKNOWN  # type: ignore[arg-type]

    def test_deeply_nested_json(self) -> None:
        text = "[" * 100000 + "]" * 100000
        assert detect_format(text) == ImportFormat.UNKNOWN


class TestHelpers:
    def test_looks_like_curl(self) -> None:
        assert looks_like_curl("curl example.com")
        assert not looks_like_curl("wget example.com")

    def test_is_postman_environment(self) -> None:
        assert is_postman_environment({"name": "Dev", "values": []})
        assert not is_postman_environment({"name": "", "values": []})
        assert not is_postman_environment({"name": "Dev", "values": {}})
