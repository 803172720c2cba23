"""Naming helpers for Dart identifiers, file names and endpoint methods."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from .json_types import JSONObject, JSONValue, is_json_object
from .model_types import OperationSpec

_HTTP_METHODS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "patch",
    "head",
    "options",
    "trace",
)

DART_RESERVED_KEYWORDS: frozenset[str] = frozenset(
    {
        "abstract",
        "as",
        "assert",
        "async",
        "await",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "covariant",
        "default",
        "deferred",
        "do",
        "dynamic",
        "else",
        "enum",
        "export",
        "extends",
        "extension",
        "external",
        "factory",
        "false",
        "final",
        "finally",
        "for",
        "Function",
        "get",
        "hide",
        "if",
        "implements",
        "import",
        "in",
        "interface",
        "is",
        "late",
        "library",
        "mixin",
        "new",
        "null",
        "on",
        "operator",
        "part",
        "required",
        "rethrow",
        "return",
        "sealed",
        "set",
        "show",
        "static",
        "super",
        "switch",
        "sync",
        "this",
        "throw",
        "true",
        "try",
        "typedef",
        "var",
        "void",
        "when",
        "while",
        "with",
        "yield",
    }
)

_ACRONYM_RE = re.compile(r"([A-Z])([A-Z]+)([A-Z][a-z]|$)")
_PASCAL_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_CLASS_SEPARATOR_RE = re.compile(r"[^\w]+")
_WORD_SPLIT_RE = re.compile(r"[\s_]+")

_PROPERTY_INVALID_RE = re.compile(r"[^\w.-]")
_PROPERTY_SEPARATOR_RE = re.compile(r"[-_]([a-zA-Z])")
_PROPERTY_DOT_RE = re.compile(r"\.([a-zA-Z])")
_NON_WORD_RE = re.compile(r"[^\w]")

_HEADER_TOKEN_SPLIT_RE = re.compile(r"[^0-9A-Za-z$]+")

_SNAKE_LOWER_UPPER_RE = re.compile(r"([a-z])([A-Z])")
_SNAKE_DIGIT_UPPER_RE = re.compile(r"([0-9])([A-Z])")
_SNAKE_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SNAKE_NON_WORD_RE = re.compile(r"[^\w]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")

_PATH_PARAM_RE = re.compile(r"^\{(?P<name>[^{}]+)\}$")

_DEFAULT_CLASS_NAME = "Model"
_DEFAULT_PROPERTY_NAME = "property"
_DEFAULT_HEADER_NAME = "header"
_DIGIT_PREFIX = "$"
_RESERVED_SUFFIX = "_"


def is_reserved_word(name: str) -> bool:
    """Return whether ``name`` is a Dart reserved keyword."""
    return name in DART_RESERVED_KEYWORDS


def to_class_name(raw: str) -> str:
    """Convert a schema identifier into a PascalCase Dart class name.

    Acronym runs are collapsed (``APIResponse`` -> ``ApiResponse``) and words
    already written in mixed case keep their inner casing.

    Args:
        raw (str): Source identifier such as ``user_profile`` or ``APIResponse``.

    Returns:
        str: Dart class name; ``Model`` when nothing usable remains.
    """
    result = _collapse_acronyms(raw)

    if not _PASCAL_RE.match(result):
        normalized = _CLASS_SEPARATOR_RE.sub(" ", result)
        words = [word for word in _WORD_SPLIT_RE.split(normalized) if word]
        # Joining single-letter words can form new capital runs.
        result = _collapse_acronyms("".join(_capitalize_word(word) for word in words))

    if not result:
        return _DEFAULT_CLASS_NAME
    if result[0].isdigit():
        return f"{_DEFAULT_CLASS_NAME}{result}"
    return result


def _collapse_acronyms(text: str) -> str:
    while True:
        collapsed = _ACRONYM_RE.sub(_collapse_acronym, text)
        if collapsed == text:
            return collapsed
        text = collapsed


def _collapse_acronym(match: re.Match[str]) -> str:
    head, middle, tail = match.group(1), match.group(2), match.group(3)
    return f"{head}{middle.lower()}{tail}"


def _capitalize_word(word: str) -> str:
    has_lower = any(char.islower() for char in word)
    has_upper = any(char.isupper() for char in word)
    if has_lower and has_upper:
        return word[0].upper() + word[1:]
    return word[0].upper() + word[1:].lower()


def to_property_name(raw: str) -> str:
    """Convert a JSON property key into a camelCase Dart identifier.

    Keys starting with ``$`` are returned verbatim. Reserved keywords get a
    trailing underscore, leading digits get a ``$`` prefix and keys with no
    identifier characters map to ``property``.

    Args:
        raw (str): Source JSON key.

    Returns:
        str: Dart property name.
    """
    if raw.startswith("$"):
        return raw

    if raw == raw.upper() and "_" in raw:
        parts = raw.lower().split("_")
        result = parts[0] + "".join(_upper_first(part) for part in parts[1:])
    else:
        result = _PROPERTY_INVALID_RE.sub("-", raw)
        result = _PROPERTY_SEPARATOR_RE.sub(lambda match: match.group(1).upper(), result)
        result = _PROPERTY_DOT_RE.sub(lambda match: match.group(1).upper(), result)

    result = _NON_WORD_RE.sub("", result)
    if len(result) > 1 and result == result.upper():
        result = result.lower()
    return _finish_identifier(result, fallback=_DEFAULT_PROPERTY_NAME)


def to_header_property_name(raw: str) -> str:
    """Convert a header name into a camelCase Dart identifier.

    ``x-api-key``, ``X-Api-Key`` and ``X-API-KEY`` all map to ``xApiKey``.
    """
    tokens = [token for token in _HEADER_TOKEN_SPLIT_RE.split(raw) if token]
    if not tokens:
        return _DEFAULT_HEADER_NAME

    first = tokens[0]
    head = first.lower() if first.isupper() else first[0].lower() + first[1:]
    tail = "".join(
        token.capitalize() if token.isupper() else _upper_first(token) for token in tokens[1:]
    )
    return _finish_identifier(head + tail, fallback=_DEFAULT_HEADER_NAME)


def _finish_identifier(result: str, *, fallback: str) -> str:
    if not result:
        return fallback
    result = result[0].lower() + result[1:]
    if result[0].isdigit():
        result = f"{_DIGIT_PREFIX}{result}"
    if is_reserved_word(result):
        result = f"{result}{_RESERVED_SUFFIX}"
    return result


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def to_file_name(raw: str) -> str:
    """Convert a class name into a snake_case file name stem.

    Examples: ``ScheduleViewResponseV2Dto`` -> ``schedule_view_response_v2_dto``,
    ``HTTPSConnection`` -> ``https_connection``.
    """
    result = _SNAKE_LOWER_UPPER_RE.sub(r"\1_\2", raw)
    result = _SNAKE_DIGIT_UPPER_RE.sub(r"\1_\2", result)
    result = _SNAKE_ACRONYM_RE.sub(r"\1_\2", result)
    result = _SNAKE_NON_WORD_RE.sub("_", result.lower())
    return _MULTIPLE_UNDERSCORES_RE.sub("_", result).strip("_")


def enum_value_name(value: JSONValue) -> str:
    """Convert an enum wire value into a camelCase Dart enum constant name."""
    if value is None or value == "null":
        return "nullValue"
    if value == "":
        return "empty"

    text = str(value)
    if text[0].isdigit() or text[0] == "-":
        text = f"value_{text}"
    text = re.sub(r"[^a-zA-Z0-9_]", "_", text)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    parts = [part for part in text.split("_") if part]
    if not parts:
        return "empty"

    name = parts[0].lower() + "".join(part.capitalize() for part in parts[1:])
    if is_reserved_word(name):
        name = f"{name}{_RESERVED_SUFFIX}"
    return name


def path_to_endpoint_name(method: str, path: str) -> str:
    """Create a Dart method name from an HTTP method and a URL path.

    Path parameters become ``By<Name>`` segments, so
    ``GET /users/{user_id}/posts`` becomes ``getUsersByUserIdPosts``.
    """
    words: list[str] = [method.lower()]
    for segment in (segment for segment in path.split("/") if segment):
        match = _PATH_PARAM_RE.match(segment)
        if match:
            words.append("by")
            words.append(match.group("name"))
            continue
        words.append(segment)
    joined = "_".join(_CLASS_SEPARATOR_RE.sub("_", word) for word in words)
    return to_property_name(joined)


@dataclass(frozen=True)
class _OperationCandidate:
    path: str
    method: str
    operation: JSONObject
    path_item: JSONObject
    operation_id: Optional[str]


def _collect_operation_candidates(raw_paths: JSONObject) -> list[_OperationCandidate]:
    candidates: list[_OperationCandidate] = []
    for path, path_item in raw_paths.items():
        if not is_json_object(path_item):
            continue
        for method in _HTTP_METHODS:
            operation = path_item.get(method)
            if not is_json_object(operation):
                continue
            candidates.append(
                _OperationCandidate(
                    path=path,
                    method=method,
                    operation=operation,
                    path_item=path_item,
                    operation_id=_normalize_operation_id(operation.get("operationId")),
                )
            )
    return candidates


def _normalize_operation_id(operation_id_raw: JSONValue) -> Optional[str]:
    if isinstance(operation_id_raw, str) and operation_id_raw.strip():
        return to_property_name(operation_id_raw.strip())
    return None


def _conflicting_operation_ids(candidates: list[_OperationCandidate]) -> set[str]:
    operation_ids = [candidate.operation_id for candidate in candidates if candidate.operation_id]
    counts = Counter(operation_ids)
    return {name for name, count in counts.items() if count > 1}


def resolve_operations(raw_paths: JSONObject) -> tuple[list[OperationSpec], list[str]]:
    """Extract operations and name them by operationId with a path-based fallback."""
    candidates = _collect_operation_candidates(raw_paths)
    conflicting_ids = _conflicting_operation_ids(candidates)

    warnings: list[str] = []
    if conflicting_ids:
        joined = ", ".join(sorted(conflicting_ids))
        warnings.append(
            "Conflicting operationId values detected; using path-based naming for conflicts: "
            f"{joined}"
        )

    resolved: list[OperationSpec] = []
    for candidate in candidates:
        operation_id = candidate.operation_id
        if operation_id is not None and operation_id not in conflicting_ids:
            endpoint_name = operation_id
        else:
            endpoint_name = path_to_endpoint_name(candidate.method, candidate.path)
        resolved.append(
            OperationSpec(
                path=candidate.path,
                method=candidate.method,
                endpoint_name=endpoint_name,
                operation=candidate.operation,
                path_item=candidate.path_item,
            )
        )

    return resolved, warnings
