"""Pure mapping from OpenAPI primitive, array and map schemas to Dart types."""

from __future__ import annotations

import re
from typing import Optional

from .json_types import JSONObject, is_json_object
from .model_types import DYNAMIC_TYPE, NULLABLE_MARKER
from .naming import to_class_name
from .resolver import ReferenceResolver
from .schema_nodes import (
    NULL_TYPE,
    ArrayNode,
    CompositionKind,
    CompositionNode,
    EnumNode,
    ObjectNode,
    ReferenceNode,
    ScalarNode,
    classify_schema,
    is_null_schema,
)

TYPED_DATA_IMPORT = "dart:typed_data"
DYNAMIC_MAP_TYPE = "Map<String, dynamic>"

TYPE_MAP: dict[str, str] = {
    "string": "String",
    "integer": "int",
    "number": "double",
    "boolean": "bool",
    "string:date": "DateTime",
    "string:date-time": "DateTime",
    "string:byte": "String",
    "string:binary": "Uint8List",
    "string:email": "String",
    "string:uuid": "String",
    "string:uri": "String",
    "string:hostname": "String",
    "string:ipv4": "String",
    "string:ipv6": "String",
    "integer:int32": "int",
    "integer:int64": "int",
    "number:float": "double",
    "number:double": "double",
}

PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {"String", "int", "double", "bool", "num", "DateTime", "Uint8List", DYNAMIC_TYPE}
)

_GENERIC_RE = re.compile(r"^(?:List|Map)<(?P<args>.+)>$")


def scalar_type(type_name: Optional[str], schema_format: Optional[str] = None) -> str:
    """Map an OpenAPI ``(type, format)`` pair to a Dart type.

    Unknown formats fall back to the plain type mapping; missing or unknown
    types map to ``dynamic``.
    """
    if type_name is None or type_name == NULL_TYPE:
        return DYNAMIC_TYPE
    if schema_format:
        mapped = TYPE_MAP.get(f"{type_name}:{schema_format}")
        if mapped is not None:
            return mapped
    return TYPE_MAP.get(type_name, DYNAMIC_TYPE)


def map_type(schema: Optional[JSONObject]) -> str:
    """Map a schema to a Dart type expression without dereferencing anything.

    References map to their class name, nullable unions map to the nullable
    form of the non-null member, arrays recurse on ``items`` and objects map to
    string-keyed maps. Everything else is ``dynamic``.

    Args:
        schema (Optional[JSONObject]): Raw schema mapping.

    Returns:
        str: Dart type expression.
    """
    if not is_json_object(schema):
        return DYNAMIC_TYPE

    node = classify_schema(schema)
    match node:
        case ReferenceNode(ref=ref):
            name = ReferenceResolver.ref_name(ref)
            return to_class_name(name) if name else DYNAMIC_TYPE
        case CompositionNode():
            mapped = _map_composition(node)
        case EnumNode(type_name=type_name, raw=raw):
            title = raw.get("title")
            mapped = to_class_name(title) if isinstance(title, str) and title else scalar_type(type_name or "string")
        case ArrayNode(items=items):
            mapped = f"List<{map_type(items)}>" if items is not None else f"List<{DYNAMIC_TYPE}>"
        case ObjectNode(additional_properties=extra):
            if is_json_object(extra) and extra:
                mapped = f"Map<String, {map_type(extra)}>"
            else:
                mapped = DYNAMIC_MAP_TYPE
        case ScalarNode(type_name=type_name, format=schema_format):
            mapped = scalar_type(type_name, schema_format)

    if node.nullable:
        return with_nullable(mapped)
    return mapped


def _map_composition(node: CompositionNode) -> str:
    members = node.members
    if node.kind is not CompositionKind.ALL_OF:
        null_members = [member for member in members if is_null_schema(member)]
        if len(members) == 2 and len(null_members) == 1:
            other = next(member for member in members if not is_null_schema(member))
            return with_nullable(map_type(other))
    if len(members) == 1:
        return map_type(members[0])
    return DYNAMIC_TYPE


def with_nullable(type_name: str) -> str:
    """Append the nullable marker unless present or the type is ``dynamic``."""
    if type_name == DYNAMIC_TYPE or type_name.endswith(NULLABLE_MARKER):
        return type_name
    return f"{type_name}{NULLABLE_MARKER}"


def strip_nullable(type_name: str) -> str:
    """Remove a trailing nullable marker."""
    if type_name.endswith(NULLABLE_MARKER):
        return type_name[: -len(NULLABLE_MARKER)]
    return type_name


def inner_type(type_name: str) -> str:
    """Return the innermost element type of nested ``List``/``Map`` expressions.

    ``List<List<Foo>>`` yields ``Foo`` and ``Map<String, Bar>`` yields ``Bar``.
    """
    current = strip_nullable(type_name)
    while True:
        match = _GENERIC_RE.match(current)
        if match is None:
            return current
        args = match.group("args")
        if current.startswith("Map<"):
            _, _, args = args.partition(",")
        current = strip_nullable(args.strip())


def is_primitive_type(type_name: str) -> bool:
    """Return whether the innermost type is a Dart builtin rather than a model."""
    base = inner_type(type_name)
    return base in PRIMITIVE_TYPES or base.startswith("Map<")


def dart_imports_for_type(type_name: str) -> frozenset[str]:
    """Return SDK library imports needed by a type expression."""
    if "Uint8List" in type_name:
        return frozenset({TYPED_DATA_IMPORT})
    return frozenset()
