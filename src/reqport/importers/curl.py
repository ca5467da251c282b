"""cURL command parser.

Turns one or more ``curl`` invocations, as copied from a browser's dev
tools or API documentation, into canonical
:class:`~reqport.models.Request` objects.

Tokenising follows POSIX shell quoting (:func:`shlex.split`): single and
double quotes and backslash escapes are honoured, while variables and
globs are left alone. Line continuations (``\\`` or ``^`` before a
newline) are collapsed first so that multi-line commands parse the same
as one-liners.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import shlex
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import unquote_plus, urlsplit

from reqport.exceptions import ValidationError
from reqport.importers.base import (
    FormatParser,
    key_value,
    new_id,
    register_parser,
    split_query,
)
from reqport.models import (
    Auth,
    BasicAuth,
    BasicCredentials,
    BearerAuth,
    BearerCredentials,
    Body,
    FormBody,
    ImportFormat,
    ImportResult,
    KeyValue,
    RawBody,
    Request,
)

logger = logging.getLogger(__name__)

_CONTINUATION = re.compile(r"[\\^]\s*\n")
_COMMENT_LINE = re.compile(r"^[ \t]*#.*$", re.MULTILINE)
_COMMAND_BOUNDARY = re.compile(r"(?=curl\s)", re.IGNORECASE)
_COMMAND_TOKEN = re.compile(r"curl\s", re.IGNORECASE)

# Canonical flag name for every alias that takes an argument.
_VALUE_FLAGS = {
    "-X": "request",
    "--request": "request",
    "-H": "header",
    "--header": "header",
    "-d": "data",
    "--data": "data",
    "--data-ascii": "data",
    "--data-raw": "data",
    "--data-binary": "data",
    "--data-urlencode": "data-urlencode",
    "-F": "form",
    "--form": "form",
    "-u": "user",
    "--user": "user",
    "-A": "user-agent",
    "--user-agent": "user-agent",
    "-e": "referer",
    "--referer": "referer",
    "-b": "cookie",
    "--cookie": "cookie",
    "--url": "url",
    # Recognised but not represented in the canonical request.
    "-c": None,
    "--cookie-jar": None,
    "--max-redirs": None,
    "--connect-timeout": None,
    "-m": None,
    "--max-time": None,
    "-x": None,
    "--proxy": None,
    "-U": None,
    "--proxy-user": None,
    "-o": None,
    "--output": None,
}

_BOOLEAN_FLAGS = {
    "-G": "get",
    "--get": "get",
    "-I": "head",
    "--head": "head",
    # No-ops.
    "-L": None,
    "--location": None,
    "-k": None,
    "--insecure": None,
    "--compressed": None,
    "-s": None,
    "--silent": None,
    "-S": None,
    "--show-error": None,
    "-v": None,
    "--verbose": None,
    "-i": None,
    "--include": None,
    "-O": None,
    "--remote-name": None,
    "-f": None,
    "--fail": None,
}

_DERIVED_HEADERS = (
    ("user_agent", "User-Agent"),
    ("referer", "Referer"),
    ("cookie", "Cookie"),
)


@dataclass
class CurlOptions:
    """The subset of a curl invocation that maps onto a request."""

    url: str = ""
    method: str = "GET"
    explicit_method: bool = False
    get: bool = False
    headers: list[tuple[str, str]] = field(default_factory=list)
    data: list[str] = field(default_factory=list)
    data_urlencode: list[str] = field(default_factory=list)
    form: list[str] = field(default_factory=list)
    user: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    cookie: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return bool(self.data or self.data_urlencode or self.form)

    def header(self, name: str) -> Optional[str]:
        """Return the value of the first header called *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


def normalize_command(command: str) -> str:
    """Drop comment lines, collapse continuations, and strip the ``curl`` keyword.

    Raises:
        ValidationError: If *command* is not a curl invocation or has no
            arguments at all.
    """
    text = _CONTINUATION.sub(" ", _COMMENT_LINE.sub("", command)).strip()
    if text.lower() == "curl":
        raise ValidationError("Invalid cURL command: no URL provided")
    if not _COMMAND_TOKEN.match(text):
        raise ValidationError("Invalid cURL command: must start with 'curl'")
    return text[5:].strip()


def tokenize(command: str) -> list[str]:
    """Split a normalised command into shell words.

    Raises:
        ValidationError: On unbalanced quotes or a dangling escape.
    """
    try:
        return shlex.split(command, posix=True)
    except ValueError as exc:
        raise ValidationError(f"Invalid cURL command: {exc}") from exc


def _split_pair(item: str) -> tuple[str, str]:
    key, sep, value = item.partition("=")
    if not key or not sep:
        return item, ""
    return key, value


def _request_name(method: str, url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ""
    return f"{method} {path or '/'}"


@register_parser(ImportFormat.CURL)
class CurlParser(FormatParser):
    """Parses curl invocations into :class:`~reqport.models.Request` objects.

    :meth:`parse` returns a single request, or a list of requests when the
    input holds more than one ``curl`` command.
    """

    def parse(self, text: str) -> Union[Request, list[Request]]:
        if len(_COMMAND_TOKEN.findall(_COMMENT_LINE.sub("", text))) > 1:
            return self.parse_multiple(text)
        return self.parse_command(text)

    def import_text(self, text: str) -> ImportResult:
        data = self.parse(text)
        return ImportResult(
            type="requests" if isinstance(data, list) else "request",
            data=data,
            warnings=list(self.warnings),
        )

    def parse_multiple(self, text: str) -> list[Request]:
        """Parse every ``curl`` command found in *text*, in order."""
        requests = []
        for chunk in _COMMAND_BOUNDARY.split(_COMMENT_LINE.sub("", text)):
            if not chunk.strip().lower().startswith("curl"):
                continue
            requests.append(self.parse_command(chunk))
        logger.debug("Parsed %d cURL command(s)", len(requests))
        return requests

    def parse_command(self, command: str) -> Request:
        """Parse one curl invocation.

        Raises:
            ValidationError: If the command is malformed or has no URL.
        """
        options = self._parse_tokens(tokenize(normalize_command(command)))
        if not options.url:
            raise ValidationError("Invalid cURL command: no URL provided")
        return self._to_request(options)

    # ------------------------------------------------------------------ #
    # Tokens -> options
    # ------------------------------------------------------------------ #

    def _parse_tokens(self, tokens: list[str]) -> CurlOptions:
        options = CurlOptions()
        i = 0
        while i < len(tokens):
            token = tokens[i]
            i += 1

            if not token.startswith("-") or token == "-":
                if not options.url:
                    options.url = token
                continue

            flag, value = token, None
            if token.startswith("--") and "=" in token:
                flag, _, value = token.partition("=")
            elif not token.startswith("--") and len(token) > 2:
                if token[:2] in _VALUE_FLAGS:
                    flag, value = token[:2], token[2:]
                else:
                    for char in token[1:]:
                        self._apply_boolean(options, f"-{char}")
                    continue

            if flag in _VALUE_FLAGS:
                if value is None:
                    if i >= len(tokens):
                        logger.debug("cURL flag %s is missing its argument", flag)
                        break
                    value = tokens[i]
                    i += 1
                self._apply_value(options, _VALUE_FLAGS[flag], value)
            elif flag in _BOOLEAN_FLAGS:
                self._apply_boolean(options, flag)
            else:
                logger.debug("Ignoring unknown cURL flag %s", flag)

        return options

    @staticmethod
    def _apply_boolean(options: CurlOptions, flag: str) -> None:
        name = _BOOLEAN_FLAGS.get(flag)
        if name == "get":
            options.get = True
        elif name == "head":
            options.method = "HEAD"
            options.explicit_method = True

    @staticmethod
    def _apply_value(options: CurlOptions, name: Optional[str], value: str) -> None:
        if name is None:
            return
        if name == "request":
            options.method = value.upper() or "GET"
            options.explicit_method = True
        elif name == "header":
            key, sep, header_value = value.partition(":")
            if sep and key.strip():
                options.headers.append((key.strip(), header_value.strip()))
        elif name == "data":
            options.data.append(value)
        elif name == "data-urlencode":
            options.data_urlencode.append(value)
        elif name == "form":
            options.form.append(value)
        elif name == "user":
            options.user = value
        elif name == "user-agent":
            options.user_agent = value
        elif name == "referer":
            options.referer = value
        elif name == "cookie":
            options.cookie = value
        elif name == "url" and not options.url:
            options.url = value

    # ------------------------------------------------------------------ #
    # Options -> request
    # ------------------------------------------------------------------ #

    def _to_request(self, options: CurlOptions) -> Request:
        url = options.url
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"
        url, query = split_query(url)
        params = [key_value(k, v) for k, v in query]

        method = options.method
        if options.get:
            if not options.explicit_method:
                method = "GET"
            for chunk in options.data + options.data_urlencode:
                for part in chunk.split("&"):
                    if part:
                        key, value = _split_pair(part)
                        params.append(key_value(unquote_plus(key), unquote_plus(value)))
        elif options.has_data and not options.explicit_method and method == "GET":
            method = "POST"

        headers = [key_value(k, v) for k, v in options.headers]
        for attr, name in _DERIVED_HEADERS:
            value = getattr(options, attr)
            if value is not None and options.header(name) is None:
                headers.append(key_value(name, value))

        body = None if options.get else self._parse_body(options, headers)
        auth = self._parse_auth(options, headers)

        return Request(
            id=new_id(),
            name=_request_name(method, url),
            method=method,
            url=url,
            headers=headers,
            params=params,
            body=body,
            auth=auth,
        )

    def _parse_body(self, options: CurlOptions, headers: list[KeyValue]) -> Optional[Body]:
        if options.form:
            return FormBody(
                type="form-data",
                form_data=[key_value(*_split_pair(item)) for item in options.form],
            )
        if options.data_urlencode:
            return FormBody(
                type="form-urlencoded",
                form_data=[key_value(*_split_pair(item)) for item in options.data_urlencode],
            )
        if not options.data:
            return None

        data = "&".join(options.data)
        content_type = (options.header("Content-Type") or "").lower()

        if "application/json" in content_type:
            return RawBody(type="json", content=data)
        if "application/xml" in content_type or "text/xml" in content_type:
            return RawBody(type="xml", content=data)
        if "text/html" in content_type:
            return RawBody(type="html", content=data)
        if "application/x-www-form-urlencoded" in content_type:
            fields = []
            for part in data.split("&"):
                key, value = _split_pair(part)
                fields.append(key_value(unquote_plus(key), unquote_plus(value)))
            return FormBody(type="form-urlencoded", form_data=fields)

        if data.lstrip().startswith(("{", "[")):
            try:
                json.loads(data)
            except ValueError:
                pass
            else:
                if not content_type:
                    headers.append(key_value("Content-Type", "application/json"))
                return RawBody(type="json", content=data)

        return RawBody(type="text", content=data)

    def _parse_auth(self, options: CurlOptions, headers: list[KeyValue]) -> Optional[Auth]:
        if options.user is not None:
            username, _, password = options.user.partition(":")
            return BasicAuth(basic=BasicCredentials(username=username, password=password))

        for index, header in enumerate(headers):
            if header.key.lower() == "authorization":
                break
        else:
            return None

        scheme, _, credentials = header.value.strip().partition(" ")
        credentials = credentials.strip()
        if scheme.lower() == "bearer":
            del headers[index]
            return BearerAuth(bearer=BearerCredentials(token=credentials))
        if scheme.lower() == "basic":
            try:
                decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                logger.debug("Authorization header is not valid Basic credentials; keeping it")
                return None
            del headers[index]
            username, _, password = decoded.partition(":")
            return BasicAuth(basic=BasicCredentials(username=username, password=password))
        return None


def parse_curl_command(command: str) -> Request:
    """Parse a single curl invocation into a :class:`~reqport.models.Request`.

    Example:
        >>> parse_curl_command("curl https://example.com/ping").method
        'GET'
    """
    return CurlParser().parse_command(command)


def parse_multiple_curl_commands(commands: str) -> list[Request]:
    """Parse every curl invocation in *commands*."""
    return CurlParser().parse_multiple(commands)
