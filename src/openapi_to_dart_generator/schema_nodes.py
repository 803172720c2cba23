"""Closed set of schema node variants read from a raw OpenAPI schema mapping.

Resolvers classify a raw mapping once with ``classify_schema`` and dispatch on
the returned variant instead of probing ad hoc keys. Variants keep a reference
to the raw mapping and never modify it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TypeAlias, Union

from .json_types import JSONObject, JSONValue, is_json_array, is_json_object

NULL_TYPE = "null"


class CompositionKind(str, Enum):
    """Schema combinator keyword."""

    ALL_OF = "allOf"
    ONE_OF = "oneOf"
    ANY_OF = "anyOf"


@dataclass(frozen=True)
class ReferenceNode:
    """A ``$ref`` pointer."""

    ref: str
    raw: JSONObject


@dataclass(frozen=True)
class ScalarNode:
    """A primitive schema; ``type_name`` is None when missing or unrecognized."""

    type_name: Optional[str]
    format: Optional[str]
    nullable: bool
    raw: JSONObject


@dataclass(frozen=True)
class ArrayNode:
    """An array schema."""

    items: Optional[JSONObject]
    nullable: bool
    raw: JSONObject


@dataclass(frozen=True)
class ObjectNode:
    """An object schema with properties and/or additionalProperties."""

    properties: JSONObject
    required: tuple[str, ...]
    additional_properties: Optional[JSONValue]
    nullable: bool
    raw: JSONObject


@dataclass(frozen=True)
class CompositionNode:
    """An ``allOf``/``oneOf``/``anyOf`` schema."""

    kind: CompositionKind
    members: tuple[JSONObject, ...]
    discriminator: Optional[JSONObject]
    nullable: bool
    raw: JSONObject


@dataclass(frozen=True)
class EnumNode:
    """A schema with an ``enum`` value list."""

    values: tuple[JSONValue, ...]
    type_name: Optional[str]
    nullable: bool
    raw: JSONObject


SchemaNode: TypeAlias = Union[ReferenceNode, ScalarNode, ArrayNode, ObjectNode, CompositionNode, EnumNode]


def classify_schema(raw: JSONObject) -> SchemaNode:
    """Classify a raw schema mapping into its node variant.

    Args:
        raw (JSONObject): Raw schema mapping from the document.

    Returns:
        SchemaNode: Variant describing the schema's kind.
    """
    ref = raw.get("$ref")
    if isinstance(ref, str):
        return ReferenceNode(ref=ref, raw=raw)

    type_name, nullable = _declared_type(raw)

    for kind in CompositionKind:
        members = raw.get(kind.value)
        if is_json_array(members) and members:
            discriminator = raw.get("discriminator")
            return CompositionNode(
                kind=kind,
                members=tuple(member if is_json_object(member) else {} for member in members),
                discriminator=discriminator if is_json_object(discriminator) else None,
                nullable=nullable,
                raw=raw,
            )

    enum_values = raw.get("enum")
    if is_json_array(enum_values) and enum_values:
        non_null = tuple(value for value in enum_values if value is not None)
        return EnumNode(
            values=non_null,
            type_name=type_name,
            nullable=nullable or len(non_null) != len(enum_values),
            raw=raw,
        )

    if type_name == "array":
        items = raw.get("items")
        return ArrayNode(
            items=items if is_json_object(items) else None,
            nullable=nullable,
            raw=raw,
        )

    properties = raw.get("properties")
    if type_name == "object" or is_json_object(properties) or "additionalProperties" in raw:
        required = raw.get("required")
        return ObjectNode(
            properties=properties if is_json_object(properties) else {},
            required=tuple(name for name in required if isinstance(name, str))
            if is_json_array(required)
            else (),
            additional_properties=raw.get("additionalProperties"),
            nullable=nullable,
            raw=raw,
        )

    schema_format = raw.get("format")
    return ScalarNode(
        type_name=type_name,
        format=schema_format if isinstance(schema_format, str) else None,
        nullable=nullable or type_name == NULL_TYPE,
        raw=raw,
    )


def is_null_schema(raw: JSONObject) -> bool:
    """Return whether a schema is exactly the ``{type: null}`` member form."""
    return raw.get("type") == NULL_TYPE


def _declared_type(raw: JSONObject) -> tuple[Optional[str], bool]:
    nullable = raw.get("nullable") is True
    schema_type = raw.get("type")
    if isinstance(schema_type, str):
        return schema_type, nullable
    if is_json_array(schema_type):
        members = [member for member in schema_type if isinstance(member, str)]
        non_null = [member for member in members if member != NULL_TYPE]
        nullable = nullable or len(non_null) != len(members)
        if len(non_null) == 1:
            return non_null[0], nullable
        if not non_null and members:
            return NULL_TYPE, True
        return None, nullable
    return None, nullable
