"""cURL serializer: one shell-quoted ``curl`` command per request."""

from __future__ import annotations

import shlex
from urllib.parse import quote

from reqport.exporters.base import register_exporter
from reqport.models import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    Collection,
    ExportFormat,
    FormBody,
    RawBody,
    Request,
)


def _append_query(url: str, pairs: list[tuple[str, str]]) -> str:
    if not pairs:
        return url
    query = "&".join(f"{quote(k, safe='{}')}={quote(v, safe='{}')}" for k, v in pairs)
    return f"{url}{'&' if '?' in url else '?'}{query}"


def generate_curl_command(request: Request) -> str:
    """Render *request* as a multi-line ``curl`` command.

    The command is preceded by a ``# <name>`` comment line. Disabled
    headers, params, and form fields are left out.
    """
    args: list[str] = []
    if request.method.upper() != "GET":
        args += ["-X", request.method.upper()]

    for header in request.headers:
        if header.enabled:
            args += ["-H", f"{header.key}: {header.value}"]

    query = [(p.key, p.value) for p in request.params if p.enabled]
    auth = request.auth
    if isinstance(auth, BasicAuth):
        args += ["-u", f"{auth.basic.username}:{auth.basic.password}"]
    elif isinstance(auth, BearerAuth):
        prefix = auth.bearer.prefix or "Bearer"
        args += ["-H", f"Authorization: {prefix} {auth.bearer.token}"]
    elif isinstance(auth, ApiKeyAuth):
        if auth.api_key.add_to == "query":
            query.append((auth.api_key.key, auth.api_key.value))
        else:
            args += ["-H", f"{auth.api_key.key}: {auth.api_key.value}"]

    body = request.body
    if isinstance(body, RawBody) and body.content:
        flag = "--data-binary" if body.type == "binary" else "-d"
        content = f"@{body.content}" if body.type == "binary" else body.content
        args += [flag, content]
    elif isinstance(body, FormBody):
        flag = "--data-urlencode" if body.type == "form-urlencoded" else "-F"
        for field in body.form_data:
            if field.enabled:
                args += [flag, f"{field.key}={field.value}"]

    url = _append_query(request.url, query)

    lines = ["curl"]
    for i in range(0, len(args), 2):
        lines.append(" ".join(shlex.quote(a) for a in args[i : i + 2]))
    lines.append(shlex.quote(url))
    return f"# {request.name}\n" + " \\\n  ".join(lines)


@register_exporter(ExportFormat.CURL)
def export_curl(collection: Collection) -> str:
    return "\n\n".join(generate_curl_command(r) for r in collection.iter_requests())
