"""Unit tests for schema to entity resolution."""

from __future__ import annotations

from openapi_to_dart_generator.json_types import JSONObject
from openapi_to_dart_generator.model_types import EnumEntity, ModelEntity, PropertyInfo
from openapi_to_dart_generator.resolver import ReferenceResolver
from openapi_to_dart_generator.schema_to_models import ModelResolver


def _resolve(schemas: JSONObject) -> tuple[dict[str, object], ModelResolver]:
    resolver = ModelResolver(ReferenceResolver({"components": {"schemas": schemas}}))
    entities = resolver.resolve_all()
    return {entity.name: entity for entity in entities}, resolver


def _model(entities: dict[str, object], name: str) -> ModelEntity:
    entity = entities[name]
    assert isinstance(entity, ModelEntity), f"{name} is not a model: {entity!r}"
    return entity


def _prop(entity: ModelEntity, name: str) -> PropertyInfo:
    for prop in entity.properties:
        if prop.name == name:
            return prop
    raise AssertionError(f"{entity.name} has no property {name}")


def _ref(name: str) -> JSONObject:
    return {"$ref": f"#/components/schemas/{name}"}


def test_nullable_union_keeps_required_flag() -> None:
    """oneOf [T, null] resolves to T? regardless of member order."""
    entities, _ = _resolve(
        {
            "Thing": {
                "type": "object",
                "required": ["a", "b"],
                "properties": {
                    "a": {"oneOf": [{"type": "string"}, {"type": "null"}]},
                    "b": {"oneOf": [{"type": "null"}, {"type": "string"}]},
                },
            }
        }
    )

    thing = _model(entities, "Thing")
    for name in ("a", "b"):
        prop = _prop(thing, name)
        assert prop.required
        assert prop.nullable
        assert prop.dart_type == "String?"


def test_single_ref_all_of_is_transparent() -> None:
    """allOf [ref] must not create a wrapper entity."""
    entities, _ = _resolve(
        {
            "Foo": {"type": "object", "properties": {"id": {"type": "integer"}}},
            "Wrapper": {
                "type": "object",
                "required": ["foo"],
                "properties": {
                    "foo": {"allOf": [_ref("Foo")]},
                    "bar": {"allOf": [_ref("Foo")]},
                },
            },
        }
    )

    wrapper = _model(entities, "Wrapper")
    foo = _prop(wrapper, "foo")
    bar = _prop(wrapper, "bar")
    assert foo.dart_type == "Foo"
    assert foo.required and not foo.nullable
    assert bar.dart_type == "Foo?"
    assert wrapper.imports == ("Foo",)
    assert set(entities) == {"Foo", "Wrapper"}


def test_inline_objects_are_promoted_and_empty_objects_are_maps() -> None:
    """Inline objects with properties become <Entity><Property> entities."""
    entities, _ = _resolve(
        {
            "Resp": {
                "type": "object",
                "properties": {
                    "meta": {"type": "object", "properties": {"nextCursor": {"type": "string"}}},
                    "extra": {"type": "object"},
                },
            }
        }
    )

    assert list(entities) == ["Resp", "RespMeta"], "Parent must precede promoted child"
    resp = _model(entities, "Resp")
    assert _prop(resp, "meta").type.type_name == "RespMeta"
    assert _prop(resp, "extra").type.type_name == "Map<String, dynamic>"
    assert [prop.name for prop in _model(entities, "RespMeta").properties] == ["nextCursor"]


def test_promoted_names_avoid_component_names() -> None:
    """A promoted type gets a numeric suffix when a component owns its name."""
    entities, _ = _resolve(
        {
            "Resp": {
                "type": "object",
                "properties": {
                    "meta": {"type": "object", "properties": {"page": {"type": "integer"}}},
                },
            },
            "RespMeta": {"type": "object", "properties": {"total": {"type": "integer"}}},
        }
    )

    assert _prop(_model(entities, "Resp"), "meta").type.type_name == "RespMeta2"
    assert [prop.name for prop in _model(entities, "RespMeta").properties] == ["total"]
    assert [prop.name for prop in _model(entities, "RespMeta2").properties] == ["page"]


def test_recursive_schemas_resolve_by_name() -> None:
    """Mutually referencing components should reference each other by class name."""
    entities, resolver = _resolve(
        {
            "Pet": {"type": "object", "properties": {"owner": _ref("Owner")}},
            "Owner": {
                "type": "object",
                "properties": {"pets": {"type": "array", "items": _ref("Pet")}},
            },
        }
    )

    assert _prop(_model(entities, "Pet"), "owner").dart_type == "Owner?"
    assert _prop(_model(entities, "Owner"), "pets").dart_type == "List<Pet>?"
    assert _model(entities, "Owner").imports == ("Pet",)
    assert resolver.warnings == ()


def test_type_alias_components_are_inlined() -> None:
    """Array and scalar components resolve to their structure, not to an entity."""
    entities, _ = _resolve(
        {
            "Pet": {"type": "object", "properties": {"id": {"type": "integer"}}},
            "PetList": {"type": "array", "items": _ref("Pet")},
            "Identifier": {"type": "string", "format": "uuid"},
            "Page": {
                "type": "object",
                "required": ["items", "id"],
                "properties": {"items": _ref("PetList"), "id": _ref("Identifier")},
            },
        }
    )

    page = _model(entities, "Page")
    assert _prop(page, "items").dart_type == "List<Pet>"
    assert _prop(page, "id").dart_type == "String"
    assert "PetList" not in entities
    assert "Identifier" not in entities


def test_cyclic_type_alias_degrades_to_dynamic() -> None:
    """Aliases that only reference each other cannot be named and become dynamic."""
    entities, resolver = _resolve(
        {
            "Left": {"type": "array", "items": _ref("Right")},
            "Right": {"type": "array", "items": _ref("Left")},
            "Holder": {"type": "object", "properties": {"value": _ref("Left")}},
        }
    )

    assert _prop(_model(entities, "Holder"), "value").dart_type == "List<List<dynamic>>?"
    assert any("Cyclic type alias" in warning for warning in resolver.warnings)


def test_enums_become_enum_entities() -> None:
    """Inline and component enums produce enum entities with Dart constant names."""
    entities, _ = _resolve(
        {
            "Pet": {
                "type": "object",
                "properties": {"status": {"type": "string", "enum": ["available", "SOLD_OUT"]}},
            },
            "Color": {"type": "string", "enum": ["red", "1st"]},
        }
    )

    status = entities["PetStatusEnum"]
    assert isinstance(status, EnumEntity)
    assert [(value.name, value.value) for value in status.values] == [
        ("available", "available"),
        ("soldOut", "SOLD_OUT"),
    ]
    assert _prop(_model(entities, "Pet"), "status").type.type_name == "PetStatusEnum"
    color = entities["Color"]
    assert isinstance(color, EnumEntity)
    assert [value.name for value in color.values] == ["red", "value1st"]


def test_special_property_keys_keep_original_names() -> None:
    """Renamed, dollar-prefixed and DateTime keys record their JSON name."""
    entities, _ = _resolve(
        {
            "Event": {
                "type": "object",
                "properties": {
                    "$if": {"type": "string"},
                    "class": {"type": "string"},
                    "created_at": {"type": "string", "format": "date-time"},
                    "updatedAt": {"type": "string", "format": "date-time"},
                    "title": {"type": "string"},
                },
            }
        }
    )

    event = _model(entities, "Event")
    assert _prop(event, "$if").original_name == "$if"
    assert _prop(event, "class_").original_name == "class"
    assert _prop(event, "createdAt").original_name == "created_at"
    assert _prop(event, "updatedAt").original_name == "updatedAt"
    assert _prop(event, "title").original_name is None


def test_unresolvable_reference_falls_back_to_dynamic() -> None:
    """A dangling $ref degrades the field and records a warning."""
    entities, resolver = _resolve(
        {"Holder": {"type": "object", "properties": {"thing": _ref("Missing")}}}
    )

    thing = _prop(_model(entities, "Holder"), "thing")
    assert thing.dart_type == "dynamic"
    assert any("#/components/schemas/Missing" in warning for warning in resolver.warnings)


def test_all_of_components_merge_properties() -> None:
    """Multi-member allOf components merge into one entity."""
    entities, _ = _resolve(
        {
            "Pet": {
                "type": "object",
                "required": ["id"],
                "properties": {"id": {"type": "integer"}, "name": {"type": "string"}},
            },
            "NewPet": {
                "allOf": [
                    _ref("Pet"),
                    {"type": "object", "properties": {"note": {"type": "string"}}},
                ]
            },
        }
    )

    new_pet = _model(entities, "NewPet")
    assert [prop.name for prop in new_pet.properties] == ["id", "name", "note"]
    assert _prop(new_pet, "id").dart_type == "int"


def test_discriminated_unions_become_union_entities() -> None:
    """Component and inline discriminated unions produce union entities."""
    entities, _ = _resolve(
        {
            "Cat": {"type": "object", "properties": {"petType": {"type": "string"}}},
            "Dog": {"type": "object", "properties": {"petType": {"type": "string"}}},
            "AnyPet": {
                "oneOf": [_ref("Cat"), _ref("Dog")],
                "discriminator": {"propertyName": "petType"},
            },
            "Holder": {
                "type": "object",
                "properties": {
                    "pet": {
                        "oneOf": [_ref("Cat"), _ref("Dog")],
                        "discriminator": {"propertyName": "petType"},
                    },
                    "loose": {"oneOf": [_ref("Cat"), _ref("Dog")]},
                },
            },
        }
    )

    any_pet = _model(entities, "AnyPet")
    assert any_pet.union is not None
    assert [member.tag for member in any_pet.union.members] == ["Cat", "Dog"]
    assert any_pet.imports == ("Cat", "Dog")

    holder = _model(entities, "Holder")
    assert _prop(holder, "pet").type.type_name == "HolderPet"
    assert _model(entities, "HolderPet").union is not None
    assert _prop(holder, "loose").dart_type == "dynamic"


def test_inline_union_members_avoid_component_names() -> None:
    """Inline union members are renamed when a component owns their name."""
    entities, _ = _resolve(
        {
            "PetType0": {"type": "object", "properties": {"real": {"type": "integer"}}},
            "Pet": {
                "oneOf": [
                    {
                        "type": "object",
                        "properties": {"kind": {"type": "string"}, "a": {"type": "string"}},
                    },
                    {
                        "type": "object",
                        "properties": {"kind": {"type": "string"}, "b": {"type": "string"}},
                    },
                ],
                "discriminator": {"propertyName": "kind"},
            },
        }
    )

    assert [prop.name for prop in _model(entities, "PetType0").properties] == ["real"]
    pet = _model(entities, "Pet")
    assert pet.union is not None
    assert [(member.tag, member.member_name) for member in pet.union.members] == [
        ("type0", "PetType02"),
        ("type1", "PetType1"),
    ]
    assert pet.imports == ("PetType02", "PetType1")
    assert [prop.name for prop in _model(entities, "PetType02").properties] == ["kind", "a"]
    assert [prop.name for prop in _model(entities, "PetType1").properties] == ["kind", "b"]
