"""JSON-compatible typing aliases for raw OpenAPI documents."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias, TypeGuard, Union

JSONPrimitive: TypeAlias = Union[str, int, float, bool, None]
JSONValue: TypeAlias = Union[JSONPrimitive, Sequence["JSONValue"], Mapping[str, "JSONValue"]]
JSONObject: TypeAlias = Mapping[str, JSONValue]
MutableJSONObject: TypeAlias = dict[str, JSONValue]
JSONArray: TypeAlias = Sequence[JSONValue]


def is_json_object(value: Any) -> TypeGuard[JSONObject]:
    """Return whether a raw document value is a string-keyed mapping."""
    return isinstance(value, Mapping)


def is_json_array(value: Any) -> TypeGuard[list[Any]]:
    """Return whether a raw document value is a list."""
    return isinstance(value, list)
