"""Unit tests for OpenAPI to Dart type mapping."""

from __future__ import annotations

import pytest

from openapi_to_dart_generator.type_mapper import (
    dart_imports_for_type,
    inner_type,
    is_primitive_type,
    map_type,
    scalar_type,
    strip_nullable,
    with_nullable,
)


@pytest.mark.parametrize(
    ("type_name", "schema_format", "expected"),
    [
        ("string", None, "String"),
        ("string", "date", "DateTime"),
        ("string", "date-time", "DateTime"),
        ("string", "binary", "Uint8List"),
        ("string", "byte", "String"),
        ("string", "made-up", "String"),
        ("integer", "int64", "int"),
        ("number", None, "double"),
        ("number", "float", "double"),
        ("boolean", None, "bool"),
        (None, None, "dynamic"),
        ("null", None, "dynamic"),
        ("tuple", None, "dynamic"),
    ],
)
def test_scalar_type(type_name: str | None, schema_format: str | None, expected: str) -> None:
    """Type and format pairs should map to the expected Dart builtin."""
    assert scalar_type(type_name, schema_format) == expected


def test_map_type_nested_arrays_keep_reference_names() -> None:
    """Arrays of arrays of references should nest List types."""
    schema = {
        "type": "array",
        "items": {"type": "array", "items": {"$ref": "#/components/schemas/Foo"}},
    }
    assert map_type(schema) == "List<List<Foo>>"


def test_map_type_nullable_forms() -> None:
    """Nullable unions, 3.0 flags and 3.1 type lists should all add the marker."""
    assert map_type({"oneOf": [{"type": "null"}, {"type": "integer"}]}) == "int?"
    assert map_type({"anyOf": [{"type": "string"}, {"type": "null"}]}) == "String?"
    assert map_type({"type": "string", "nullable": True}) == "String?"
    assert map_type({"type": ["string", "null"]}) == "String?"


def test_map_type_keeps_item_nullability() -> None:
    """Nullable array items should stay nullable inside the List type."""
    schema = {"type": "array", "items": {"type": "string", "nullable": True}}
    assert map_type(schema) == "List<String?>"


def test_map_type_objects_become_maps() -> None:
    """Objects map to string keyed maps, typed when additionalProperties is a schema."""
    assert map_type({"type": "object", "additionalProperties": {"type": "integer"}}) == (
        "Map<String, int>"
    )
    assert map_type({"type": "object"}) == "Map<String, dynamic>"
    assert map_type({"type": "object", "additionalProperties": True}) == "Map<String, dynamic>"


def test_map_type_unknown_shapes_are_dynamic() -> None:
    """Missing type information and unions without a single member are dynamic."""
    assert map_type({}) == "dynamic"
    assert map_type(None) == "dynamic"
    assert map_type({"oneOf": [{"type": "string"}, {"type": "integer"}]}) == "dynamic"
    assert map_type({"type": "string", "nullable": True, "format": "uuid"}) == "String?"


def test_nullable_helpers() -> None:
    """The nullable marker should never be doubled or attached to dynamic."""
    assert with_nullable("String") == "String?"
    assert with_nullable("String?") == "String?"
    assert with_nullable("dynamic") == "dynamic"
    assert strip_nullable("Pet?") == "Pet"
    assert strip_nullable("Pet") == "Pet"


def test_inner_type_unwraps_generics() -> None:
    """Inner types should be found through nested lists and maps."""
    assert inner_type("List<List<Foo>>") == "Foo"
    assert inner_type("Map<String, Bar>?") == "Bar"
    assert inner_type("List<Map<String, List<Baz?>>>") == "Baz"
    assert inner_type("Pet") == "Pet"


def test_primitive_detection_and_imports() -> None:
    """Builtins are primitive and Uint8List pulls in dart:typed_data."""
    assert is_primitive_type("List<int>")
    assert is_primitive_type("Map<String, dynamic>")
    assert is_primitive_type("DateTime?")
    assert not is_primitive_type("List<Pet>")
    assert dart_imports_for_type("List<Uint8List>") == {"dart:typed_data"}
    assert dart_imports_for_type("String") == frozenset()
