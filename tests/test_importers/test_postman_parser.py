"""Tests for reqport.importers.postman -- collections and environments."""

from __future__ import annotations

import json
from typing import Any

import pytest

from reqport.exceptions import ValidationError
from reqport.importers.postman import (
    PostmanParser,
    parse_postman_collection,
    parse_postman_environment,
)
from reqport.models import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    Environment,
    FormBody,
    GraphQLBody,
    NoAuth,
    OAuth2Auth,
    RawBody,
    WarningType,
)

SCHEMA_21 = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
SCHEMA_20 = "https://schema.getpostman.com/json/collection/v2.0.0/collection.json"


def _collection(items: list[Any], **extra: Any) -> str:
    return json.dumps({"info": {"name": "Test", "schema": SCHEMA_21}, "item": items, **extra})


def _single(request: dict[str, Any], **item: Any) -> str:
    return _collection([{"name": "Req", "request": request, **item}])


# ---------------------------------------------------------------------------
# Collection structure
# ---------------------------------------------------------------------------


class TestCollectionStructure:
    def test_name_and_description(self, postman_text: str) -> None:
        collection = parse_postman_collection(postman_text)
        assert collection.name == "Users API"
        assert collection.description == "Manage users"

    def test_folders_and_root_requests(self, postman_text: str) -> None:
        collection = parse_postman_collection(postman_text)
        assert [f.name for f in collection.folders] == ["Users"]
        assert [r.name for r in collection.folders[0].requests] == ["List users", "Create user"]
        assert [r.name for r in collection.requests] == ["Health"]

    def test_iter_requests_order(self, postman_text: str) -> None:
        collection = parse_postman_collection(postman_text)
        names = [r.name for r in collection.iter_requests()]
        assert names == ["Health", "List users", "Create user"]

    def test_url_without_query_and_params(self, postman_text: str) -> None:
        request = parse_postman_collection(postman_text).folders[0].requests[0]
        assert request.url == "https://api.example.com/users"
        assert [(p.key, p.value) for p in request.params] == [("page", "1")]

    def test_disabled_header_kept_but_disabled(self, postman_text: str) -> None:
        request = parse_postman_collection(postman_text).folders[0].requests[0]
        debug = next(h for h in request.headers if h.key == "X-Debug")
        assert debug.enabled is False
        accept = next(h for h in request.headers if h.key == "Accept")
        assert accept.enabled is True

    def test_test_script(self, postman_text: str) -> None:
        request = parse_postman_collection(postman_text).folders[0].requests[0]
        assert request.test_script == "pm.test('ok', function () {\n});"
        assert request.pre_request_script is None

    def test_collection_variables(self, postman_text: str) -> None:
        collection = parse_postman_collection(postman_text)
        by_key = {v.key: v for v in collection.variables}
        assert by_key["baseUrl"].value == "https://api.example.com"
        assert by_key["baseUrl"].type == "text"
        assert by_key["api_key"].type == "secret"

    def test_nested_folders(self) -> None:
        text = _collection(
            [{"name": "A", "item": [{"name": "B", "item": [{"name": "R", "request": {"url": "x"}}]}]}]
        )
        collection = parse_postman_collection(text)
        assert collection.folders[0].folders[0].requests[0].name == "R"

    def test_v20_string_request(self) -> None:
        text = json.dumps(
            {
                "info": {"name": "Old", "schema": SCHEMA_20},
                "item": [{"name": "Ping", "request": "https://example.com/ping?x=1"}],
            }
        )
        request = parse_postman_collection(text).requests[0]
        assert request.method == "GET"
        assert request.url == "https://example.com/ping"
        assert request.params[0].key == "x"

    def test_url_object_without_raw(self) -> None:
        text = _single(
            {"method": "get", "url": {"host": ["api", "example", "com"], "path": ["v1", "users"]}}
        )
        request = parse_postman_collection(text).requests[0]
        assert request.url == "https://api.example.com/v1/users"
        assert request.method == "GET"

    def test_description_object(self) -> None:
        text = _single({"url": "x"}, description={"content": "Doc", "type": "text/markdown"})
        assert parse_postman_collection(text).requests[0].description == "Doc"


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------


class TestBodies:
    def test_raw_json(self, postman_text: str) -> None:
        body = parse_postman_collection(postman_text).folders[0].requests[1].body
        assert isinstance(body, RawBody)
        assert body.type == "json"
        assert "{{userName}}" in body.content

    def test_raw_without_language_is_text(self) -> None:
        text = _single({"url": "x", "body": {"mode": "raw", "raw": "hello"}})
        body = parse_postman_collection(text).requests[0].body
        assert isinstance(body, RawBody)
        assert body.type == "text"

    def test_urlencoded(self) -> None:
        text = _single(
            {
                "url": "x",
                "body": {
                    "mode": "urlencoded",
                    "urlencoded": [{"key": "a", "value": "1"}, {"key": "b", "value": "2", "disabled": True}],
                },
            }
        )
        body = parse_postman_collection(text).requests[0].body
        assert isinstance(body, FormBody)
        assert body.type == "form-urlencoded"
        assert [(f.key, f.enabled) for f in body.form_data] == [("a", True), ("b", False)]

    def test_formdata_file_uses_src(self) -> None:
        text = _single(
            {
                "url": "x",
                "body": {
                    "mode": "formdata",
                    "formdata": [{"key": "upload", "type": "file", "src": "/tmp/a.png"}],
                },
            }
        )
        body = parse_postman_collection(text).requests[0].body
        assert isinstance(body, FormBody)
        assert body.type == "form-data"
        assert body.form_data[0].value == "/tmp/a.png"

    def test_graphql(self) -> None:
        text = _single(
            {"url": "x", "body": {"mode": "graphql", "graphql": {"query": "{ me { id } }", "variables": "{}"}}}
        )
        body = parse_postman_collection(text).requests[0].body
        assert isinstance(body, GraphQLBody)
        assert body.graphql.query == "{ me { id } }"
        assert body.graphql.variables == "{}"

    def test_file_mode_is_binary(self) -> None:
        text = _single({"url": "x", "body": {"mode": "file", "file": {"src": "data.bin"}}})
        body = parse_postman_collection(text).requests[0].body
        assert isinstance(body, RawBody)
        assert body.type == "binary"
        assert body.content == "data.bin"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    def test_bearer(self, postman_text: str) -> None:
        auth = parse_postman_collection(postman_text).folders[0].requests[1].auth
        assert isinstance(auth, BearerAuth)
        assert auth.bearer.token == "{{token}}"

    def test_basic(self) -> None:
        auth = {
            "type": "basic",
            "basic": [{"key": "username", "value": "u"}, {"key": "password", "value": "p"}],
        }
        result = parse_postman_collection(_single({"url": "x", "auth": auth})).requests[0].auth
        assert isinstance(result, BasicAuth)
        assert (result.basic.username, result.basic.password) == ("u", "p")

    def test_v20_object_attributes(self) -> None:
        auth = {"type": "basic", "basic": {"username": "u", "password": "p"}}
        result = parse_postman_collection(_single({"url": "x", "auth": auth})).requests[0].auth
        assert isinstance(result, BasicAuth)
        assert result.basic.username == "u"

    def test_apikey_in_query(self) -> None:
        auth = {
            "type": "apikey",
            "apikey": [
                {"key": "key", "value": "X-Key"},
                {"key": "value", "value": "123"},
                {"key": "in", "value": "query"},
            ],
        }
        result = parse_postman_collection(_single({"url": "x", "auth": auth})).requests[0].auth
        assert isinstance(result, ApiKeyAuth)
        assert result.api_key.add_to == "query"
        assert result.api_key.key == "X-Key"

    def test_oauth2(self) -> None:
        auth = {"type": "oauth2", "oauth2": [{"key": "grant_type", "value": "client_credentials"}]}
        result = parse_postman_collection(_single({"url": "x", "auth": auth})).requests[0].auth
        assert isinstance(result, OAuth2Auth)
        assert result.oauth2 == {"grant_type": "client_credentials"}

    def test_unsupported_auth_warns_once(self) -> None:
        auth = {"type": "hawk", "hawk": []}
        text = _collection(
            [
                {"name": "A", "request": {"url": "x", "auth": auth}},
                {"name": "B", "request": {"url": "y", "auth": auth}},
            ]
        )
        parser = PostmanParser()
        collection = parser.parse(text)
        assert isinstance(collection.requests[0].auth, NoAuth)
        unsupported = [w for w in parser.warnings if w.type == WarningType.UNSUPPORTED_FEATURE]
        assert len(unsupported) == 1
        assert "hawk" in unsupported[0].message

    def test_collection_level_auth(self) -> None:
        text = _collection([], auth={"type": "bearer", "bearer": [{"key": "token", "value": "t"}]})
        assert isinstance(parse_postman_collection(text).auth, BearerAuth)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_invalid_json(self) -> None:
        with pytest.raises(ValidationError):
            parse_postman_collection("{not json")

    def test_missing_schema(self) -> None:
        with pytest.raises(ValidationError, match="missing schema"):
            parse_postman_collection(json.dumps({"info": {"name": "x"}, "item": []}))

    def test_unsupported_schema_version(self) -> None:
        doc = {
            "info": {"name": "x", "schema": "https://schema.getpostman.com/json/collection/v1.0.0/"},
            "item": [],
        }
        with pytest.raises(ValidationError, match="Unsupported Postman collection schema"):
            parse_postman_collection(json.dumps(doc))

    def test_not_an_object(self) -> None:
        with pytest.raises(ValidationError):
            parse_postman_collection("[]")

    def test_request_of_wrong_shape(self) -> None:
        with pytest.raises(ValidationError, match="request of item 'Req' must be an object"):
            parse_postman_collection(_collection([{"name": "Req", "request": []}]))

    @pytest.mark.parametrize(
        "item",
        [
            {"request": {"method": "POST", "url": "x", "body": {"mode": "raw", "raw": "hi", "options": "json"}}},
            {"request": {"url": "x"}, "event": [{"listen": "test", "script": "x"}]},
            {"request": {"url": "x"}, "event": {"listen": "test"}},
            {"request": {"url": "x", "body": {"mode": "formdata", "formdata": "a=b"}}},
            {"request": {"url": "x", "auth": {"type": ["bearer"]}}},
        ],
    )
    def test_odd_shapes_are_tolerated(self, item: dict[str, Any]) -> None:
        collection = parse_postman_collection(_collection([{"name": "Req", **item}]))
        assert [r.name for r in collection.iter_requests()] == ["Req"]

    def test_raw_options_of_wrong_shape_keep_text_body(self) -> None:
        body = {"mode": "raw", "raw": "hi", "options": "json"}
        request = parse_postman_collection(_single({"method": "POST", "url": "x", "body": body})).requests[0]
        assert isinstance(request.body, RawBody)
        assert request.body.content == "hi"

    def test_script_of_wrong_shape_is_empty(self) -> None:
        text = _single({"url": "x"}, event=[{"listen": "test", "script": "x"}])
        request = parse_postman_collection(text).requests[0]
        assert not request.test_script


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_parse_environment(self, postman_environment_text: str) -> None:
        env = parse_postman_environment(postman_environment_text)
        assert env.name == "Staging"
        by_key = {v.key: v for v in env.variables}
        assert by_key["token"].type == "secret"
        assert by_key["baseUrl"].type == "text"
        assert by_key["region"].enabled is False

    def test_parser_dispatches_on_shape(self, postman_environment_text: str) -> None:
        assert isinstance(PostmanParser().parse(postman_environment_text), Environment)

    def test_import_text_result_type(self, postman_environment_text: str) -> None:
        result = PostmanParser().import_text(postman_environment_text)
        assert result.type == "environment"

    def test_invalid_environment(self) -> None:
        with pytest.raises(ValidationError, match="Invalid Postman environment"):
            parse_postman_environment(json.dumps({"name": "x"}))
