"""Interpolation-variable syntax conversion and variable analysis.

Different tools write placeholders differently. reqport's canonical syntax
is the double-brace form ``{{name}}`` used by Postman and Insomnia; shell
scripts use ``$NAME`` or ``${NAME}`` and cURL-style route templates use
``:name``. This module converts those dialects into the canonical form and
analyses how variables are used across imported requests:

* :func:`detect_variable_syntax` / :func:`convert_variable_syntax` --
  dialect sniffing and conversion.
* :func:`is_secret_variable` / :func:`classify_variable` -- name-based
  secret classification.
* :func:`extract_variables` -- canonical placeholder extraction.
* :class:`EnvVarMapper` -- request-level analysis (used vs. defined
  variables, dynamic variables, Insomnia template tags) and conversion of
  flat variable lists into environments.

Compiled patterns are module-level constants; every scan builds its own
match iterator, so no match state is shared between calls.
"""

from __future__ import annotations

import enum
import re
from typing import Iterable, Iterator, Optional

from reqport.models import (
    Environment,
    FormBody,
    ImportWarning,
    MappingResult,
    RawBody,
    Request,
    Variable,
    WarningType,
    new_id,
)


class VariableSyntax(str, enum.Enum):
    """Placeholder dialects understood by the converter."""

    POSTMAN = "postman"
    ENV_BRACES = "env-braces"
    ENV = "env"
    CURL = "curl"
    CANONICAL = "canonical"


_DOUBLE_BRACE = re.compile(r"\{\{([^}]+)\}\}")
_ENV = re.compile(r"\$([A-Z_][A-Z0-9_]*)")
_ENV_BRACES = re.compile(r"\$\{([^}]+)\}")
_CURL = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")
_DYNAMIC = re.compile(r"\{\{\$([a-zA-Z]+)\}\}")
_TEMPLATE_TAG = re.compile(r"\{%\s*([^%]+)\s*%\}")

_SOURCE_PATTERNS: dict[VariableSyntax, re.Pattern[str]] = {
    VariableSyntax.ENV: _ENV,
    VariableSyntax.ENV_BRACES: _ENV_BRACES,
    VariableSyntax.CURL: _CURL,
}

# Detection order matters: ``${X}`` would also match the bare ``$X`` pattern.
_DETECTION_ORDER: tuple[tuple[VariableSyntax, re.Pattern[str]], ...] = (
    (VariableSyntax.POSTMAN, _DOUBLE_BRACE),
    (VariableSyntax.ENV_BRACES, _ENV_BRACES),
    (VariableSyntax.ENV, _ENV),
    (VariableSyntax.CURL, _CURL),
)

_SECRET_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"api[_-]?key",
        r"apikey",
        r"password",
        r"passwd",
        r"secret",
        r"token",
        r"auth",
        r"credential",
        r"private[_-]?key",
        r"access[_-]?key",
        r"bearer",
    )
)


# ---------------------------------------------------------------------------
# Syntax detection and conversion
# ---------------------------------------------------------------------------


def detect_variable_syntax(text: str) -> Optional[VariableSyntax]:
    """Return the first placeholder dialect found in *text*, or ``None``.

    Dialects are tried in priority order: double-brace, ``${VAR}``,
    ``$VAR`` (upper case and underscores only), then ``:var``.
    """
    for syntax, pattern in _DETECTION_ORDER:
        if pattern.search(text):
            return syntax
    return None


def convert_variable_syntax(
    text: str, from_: VariableSyntax, to: VariableSyntax
) -> str:
    """Rewrite placeholders in *text* from one dialect into another.

    Only conversion *into* the canonical dialect is supported; any other
    target returns *text* unchanged, as does a ``postman`` source (it is
    already canonical).

    Args:
        text: Text containing placeholders.
        from_: Dialect the placeholders are written in.
        to: Target dialect.

    Returns:
        The converted text.
    """
    if from_ == to or to != VariableSyntax.CANONICAL:
        return text
    pattern = _SOURCE_PATTERNS.get(from_)
    if pattern is None:
        return text
    return pattern.sub(r"{{\1}}", text)


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


def is_secret_variable(name: str) -> bool:
    """Return True if *name* looks like it holds a credential."""
    return any(pattern.search(name) for pattern in _SECRET_PATTERNS)


def classify_variable(name: str) -> str:
    """Return ``"secret"`` or ``"text"`` for a variable called *name*."""
    return "secret" if is_secret_variable(name) else "text"


def normalize_variable_name(name: str) -> str:
    """Turn *name* into a valid identifier.

    Characters outside ``[A-Za-z0-9_]`` become underscores, runs of
    underscores collapse into one, and leading/trailing underscores are
    stripped. A name with nothing left becomes ``"variable"``.
    """
    result = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    result = re.sub(r"_+", "_", result).strip("_")
    return result or "variable"


def extract_variables(text: str) -> list[str]:
    """Return canonical placeholder names in *text*, in order of appearance.

    Surrounding whitespace and Insomnia's ``_.`` context prefix are removed,
    so ``{{ _.base_url }}`` yields ``base_url``. Dynamic placeholders
    (``{{$guid}}`` and friends) are skipped. Names may repeat; callers dedupe.
    """
    if not text:
        return []
    names = []
    for match in _DOUBLE_BRACE.finditer(text):
        name = match.group(1).strip()
        if name.startswith("_."):
            name = name[2:]
        if name and not name.startswith("$"):
            names.append(name)
    return names


def rename_variable_references(text: str, renames: dict[str, str]) -> str:
    """Rewrite ``{{old}}`` placeholders in *text* to ``{{new}}`` using *renames*.

    Insomnia's ``_.`` prefix is kept, so ``{{ _.base-url }}`` becomes
    ``{{ _.base_url }}``; unknown and dynamic names are left alone.
    """
    if not text or not renames:
        return text

    def _swap(match: re.Match[str]) -> str:
        inner = match.group(1)
        name = inner.strip()
        prefix = "_." if name.startswith("_.") else ""
        new = renames.get(name[len(prefix):])
        if new is None:
            return match.group(0)
        return "{{" + inner.replace(name, prefix + new, 1) + "}}"

    return _DOUBLE_BRACE.sub(_swap, text)


# ---------------------------------------------------------------------------
# Request-level analysis
# ---------------------------------------------------------------------------


def _request_texts(request: Request, keys: bool = True) -> Iterator[str]:
    """Yield the scannable strings of *request*.

    With ``keys=False`` only values are yielded (URL, header, query param,
    body content, and form field values), which is where dynamic
    placeholders and template tags matter. Query strings live in
    ``params``, so those are scanned alongside the URL.
    """
    yield request.url
    for header in request.headers:
        if keys:
            yield header.key
        yield header.value
    for param in request.params:
        if keys:
            yield param.key
        yield param.value
    body = request.body
    if isinstance(body, RawBody):
        yield body.content
    elif isinstance(body, FormBody):
        for field in body.form_data:
            if keys:
                yield field.key
            yield field.value


class EnvVarMapper:
    """Analyses variable usage and maps variable lists to environments.

    The mapper is stateless; every method returns fresh results. Warnings
    it produces are detection-only: resolving duplicates or undefined
    names is left to the caller.
    """

    def extract_used_variables(self, requests: Iterable[Request]) -> list[str]:
        """Return every variable referenced by *requests*, deduplicated.

        Scans the URL, header keys and values, param keys and values, raw
        body content, and form field keys and values. Order of first
        appearance is preserved.
        """
        seen: dict[str, None] = {}
        for request in requests:
            for text in _request_texts(request):
                for name in extract_variables(text):
                    seen.setdefault(name, None)
        return list(seen)

    def validate_variables(
        self, used: Iterable[str], defined: Iterable[str]
    ) -> list[ImportWarning]:
        """Compare used against defined variable names.

        Returns:
            One ``undefined_variable`` warning per used-but-undefined name
            followed by one ``unused_variable`` warning per
            defined-but-unused name.
        """
        used_names = list(dict.fromkeys(used))
        defined_names = list(dict.fromkeys(defined))
        used_set = set(used_names)
        defined_set = set(defined_names)

        warnings = [
            ImportWarning(
                type=WarningType.UNDEFINED_VARIABLE,
                message=(
                    f'Variable "{name}" is used but not defined in any environment'
                ),
                variable_name=name,
            )
            for name in used_names
            if name not in defined_set
        ]
        warnings.extend(
            ImportWarning(
                type=WarningType.UNUSED_VARIABLE,
                message=f'Variable "{name}" is defined but never used',
                variable_name=name,
            )
            for name in defined_names
            if name not in used_set
        )
        return warnings

    def check_dynamic_variables(
        self, requests: Iterable[Request]
    ) -> list[ImportWarning]:
        """Return one aggregated warning listing distinct ``{{$name}}`` placeholders."""
        names: dict[str, None] = {}
        for request in requests:
            for text in _request_texts(request, keys=False):
                for match in _DYNAMIC.finditer(text):
                    names.setdefault(match.group(1), None)

        if not names:
            return []
        listed = ", ".join(f"${name}" for name in names)
        return [
            ImportWarning(
                type=WarningType.DYNAMIC_VARIABLE,
                message=(
                    f"Postman dynamic variables detected: {listed}. These will "
                    "need to be replaced with static values."
                ),
            )
        ]

    def check_insomnia_template_tags(
        self, requests: Iterable[Request]
    ) -> list[ImportWarning]:
        """Return warnings for Insomnia ``{% tag %}`` template tags.

        Distinct tag names are aggregated into one warning. Response tags
        (``{% response ... %}``) chain requests together and add a second
        warning.
        """
        tags: dict[str, None] = {}
        has_response_ref = False
        for request in requests:
            for text in _request_texts(request, keys=False):
                for match in _TEMPLATE_TAG.finditer(text):
                    tag = match.group(1).strip()
                    tags.setdefault(tag.split(" ")[0], None)
                    if tag.startswith("response"):
                        has_response_ref = True

        warnings: list[ImportWarning] = []
        if tags:
            warnings.append(
                ImportWarning(
                    type=WarningType.UNSUPPORTED_FEATURE,
                    message=(
                        f"Insomnia template tags detected: {', '.join(tags)}. "
                        "These are not supported and will need manual replacement."
                    ),
                )
            )
        if has_response_ref:
            warnings.append(
                ImportWarning(
                    type=WarningType.UNSUPPORTED_FEATURE,
                    message=(
                        "Insomnia response reference tags detected. These chain "
                        "requests together and are not directly supported."
                    ),
                )
            )
        return warnings

    def normalize_variable_names(
        self, variables: Iterable[Variable]
    ) -> tuple[list[Variable], list[ImportWarning]]:
        """Normalise every variable key into a valid identifier.

        Renamed variables keep their source key in ``original_key``. Keys
        that collide after normalisation are reported but all entries are
        returned.

        Returns:
            ``(variables, warnings)`` where warnings hold
            ``variable_renamed`` and ``duplicate_variable`` entries.
        """
        warnings: list[ImportWarning] = []
        normalized: list[Variable] = []
        seen: set[str] = set()

        for variable in variables:
            key = normalize_variable_name(variable.key)
            renamed = key != variable.key
            if renamed:
                warnings.append(
                    ImportWarning(
                        type=WarningType.VARIABLE_RENAMED,
                        message=(
                            f'Variable "{variable.key}" was renamed to "{key}" '
                            "to be a valid identifier"
                        ),
                        original_name=variable.key,
                        new_name=key,
                    )
                )
            if key in seen:
                warnings.append(
                    ImportWarning(
                        type=WarningType.DUPLICATE_VARIABLE,
                        message=(
                            f'Duplicate variable name "{key}" after normalization. '
                            "The later value will be used."
                        ),
                        variable_name=key,
                    )
                )
            seen.add(key)

            normalized.append(
                variable.model_copy(
                    update={
                        "key": key,
                        "type": "secret" if variable.type == "secret" else classify_variable(key),
                        "original_key": variable.key if renamed else variable.original_key,
                    }
                )
            )
        return normalized, warnings

    def rename_request_variables(
        self, requests: Iterable[Request], renames: dict[str, str]
    ) -> None:
        """Rewrite placeholders in *requests* in place after keys were renamed.

        Covers the URL, header and param keys and values, raw body content,
        and form field keys and values.
        """
        if not renames:
            return
        for request in requests:
            request.url = rename_variable_references(request.url, renames)
            for pair in (*request.headers, *request.params):
                pair.key = rename_variable_references(pair.key, renames)
                pair.value = rename_variable_references(pair.value, renames)
            body = request.body
            if isinstance(body, RawBody):
                body.content = rename_variable_references(body.content, renames)
            elif isinstance(body, FormBody):
                for field in body.form_data:
                    field.key = rename_variable_references(field.key, renames)
                    field.value = rename_variable_references(field.value, renames)

    def map_environments(self, environments: Iterable[Environment]) -> MappingResult:
        """Re-classify the variables of *environments* by name."""
        mapped = [
            env.model_copy(
                update={
                    "variables": [
                        var.model_copy(update={"type": _merged_type(var)})
                        for var in env.variables
                    ]
                }
            )
            for env in environments
        ]
        return MappingResult(environments=mapped)

    def map_collection_variables(self, variables: Iterable[Variable]) -> MappingResult:
        """Wrap collection variables into a ``Collection Variables`` environment.

        Adds one ``conversion_note`` warning: environment variables take
        precedence over collection variables in Postman, a distinction that
        is lost once both live in environments.
        """
        variables = list(variables)
        if not variables:
            return MappingResult()
        environment = _synthetic_environment("Collection Variables", variables)
        note = ImportWarning(
            type=WarningType.CONVERSION_NOTE,
            message=(
                f"{len(variables)} collection variable(s) found. These have been "
                "converted to environment variables. In Postman, collection "
                "variables have lower precedence than environment variables."
            ),
        )
        return MappingResult(environments=[environment], warnings=[note])

    def map_global_variables(self, variables: Iterable[Variable]) -> MappingResult:
        """Wrap global variables into a ``Global Variables`` environment."""
        variables = list(variables)
        if not variables:
            return MappingResult()
        return MappingResult(
            environments=[_synthetic_environment("Global Variables", variables)]
        )


def _merged_type(variable: Variable) -> str:
    if variable.type == "secret":
        return "secret"
    return classify_variable(variable.key)


def _synthetic_environment(name: str, variables: list[Variable]) -> Environment:
    return Environment(
        id=new_id(),
        name=name,
        variables=[
            var.model_copy(update={"id": new_id(), "type": _merged_type(var)})
            for var in variables
        ],
    )


def validate_variables(
    used: Iterable[str], defined: Iterable[str]
) -> list[ImportWarning]:
    """Module-level shortcut for :meth:`EnvVarMapper.validate_variables`."""
    return EnvVarMapper().validate_variables(used, defined)
