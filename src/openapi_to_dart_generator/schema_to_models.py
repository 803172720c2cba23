"""Resolve OpenAPI schemas into Dart model and enum entities."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from .composition import CompositionPlan, PlanKind, merge_all_of, plan_composition
from .discriminators import DiscriminatorResolver
from .json_types import JSONObject, is_json_array, is_json_object
from .logs import get_logger
from .model_types import (
    DYNAMIC_TYPE,
    DiscriminatedUnion,
    Entity,
    EnumEntity,
    EnumValue,
    ModelEntity,
    PropertyInfo,
    ResolvedType,
    UnionMember,
)
from .naming import enum_value_name, to_class_name, to_property_name
from .resolver import ReferenceResolver
from .schema_nodes import (
    ArrayNode,
    CompositionKind,
    CompositionNode,
    EnumNode,
    ObjectNode,
    ReferenceNode,
    ScalarNode,
    classify_schema,
)
from .type_mapper import DYNAMIC_MAP_TYPE, dart_imports_for_type, scalar_type, strip_nullable

logger = get_logger(__name__)

_DATETIME_TYPE = "DateTime"
_ENUM_SUFFIX = "Enum"
_ITEM_SUFFIX = "Item"
_VALUE_SUFFIX = "Value"
_DYNAMIC = ResolvedType(type_name=DYNAMIC_TYPE)


class ModelResolver:
    """Turn a document's schemas into an ordered list of entities.

    One instance serves one document. Entities are kept in creation order with
    a parent always listed before the types promoted out of it.
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        *,
        reserved_names: Iterable[str] = (),
    ) -> None:
        self._resolver = resolver
        self._discriminators = DiscriminatorResolver(resolver)
        self._entities: dict[str, Optional[Entity]] = {}
        self._used_names: set[str] = set(reserved_names)
        self._component_names: dict[str, str] = {}
        self._alias_cache: dict[str, ResolvedType] = {}
        self._alias_stack: list[str] = []
        self._warnings: list[str] = []

    @property
    def warnings(self) -> tuple[str, ...]:
        """Degraded-resolution findings collected so far."""
        return tuple(self._warnings)

    @property
    def entities(self) -> tuple[Entity, ...]:
        """Entities resolved so far, in creation order."""
        return tuple(entity for entity in self._entities.values() if entity is not None)

    def resolve_all(self) -> tuple[Entity, ...]:
        """Resolve every named schema of the document.

        Component class names are reserved up front so that promoted inline
        types never take a name a component needs.

        Returns:
            tuple[Entity, ...]: Resolved entities in document order.
        """
        schemas = self._resolver.schemas()
        for raw_name in schemas:
            self._component_names[raw_name] = self._unique_name(to_class_name(raw_name))

        for raw_name, schema in schemas.items():
            if not is_json_object(schema):
                self._warn(f"Schema {raw_name} is not an object; skipped")
                continue
            self._resolve_component(raw_name, schema)

        logger.debug("Resolved %d entities from %d schemas", len(self.entities), len(schemas))
        return self.entities

    def _resolve_component(self, raw_name: str, schema: JSONObject) -> None:
        class_name = self._component_names[raw_name]
        if class_name in self._entities:
            return
        if not self._produces_entity(schema):
            logger.debug("Schema %s is a type alias; no entity generated", raw_name)
            return

        node = classify_schema(schema)
        if isinstance(node, EnumNode):
            self._register_enum(node, class_name)
        elif isinstance(node, CompositionNode) and node.kind is not CompositionKind.ALL_OF:
            self._resolve_union(node.raw, class_name)
        else:
            self.resolve(schema, class_name)

    def resolve(self, schema: JSONObject, entity_name: str) -> ModelEntity:
        """Resolve an object schema into a model entity named ``entity_name``.

        ``allOf`` chains are merged first; discriminated ``oneOf``/``anyOf``
        schemas produce a union entity. Inline objects found in properties are
        promoted to ``<entity_name><PropertyName>`` entities.

        Args:
            schema (JSONObject): Object, ``allOf`` or discriminated union schema.
            entity_name (str): Class name for the entity.

        Returns:
            ModelEntity: The resolved entity, also registered on this resolver.
        """
        node = classify_schema(schema)
        if isinstance(node, CompositionNode) and node.kind is not CompositionKind.ALL_OF:
            if plan_composition(node).kind is PlanKind.DISCRIMINATED:
                return self._resolve_union(schema, entity_name)

        self._used_names.add(entity_name)
        self._entities.setdefault(entity_name, None)

        all_of = schema.get("allOf")
        if is_json_array(all_of) and all_of:
            base = {key: value for key, value in schema.items() if key != "allOf"}
            schema = merge_all_of(all_of, self._resolver, base=base)

        raw_properties = schema.get("properties")
        properties_map = raw_properties if is_json_object(raw_properties) else {}
        raw_required = schema.get("required")
        required = set(raw_required) if is_json_array(raw_required) else set()

        properties: list[PropertyInfo] = []
        imports: list[str] = []
        for key, property_schema in properties_map.items():
            info = self._resolve_property(
                entity_name=entity_name,
                key=key,
                schema=property_schema,
                required=key in required,
            )
            properties.append(info)
            _extend_imports(imports, info.type.required_imports, own_name=entity_name)

        entity = ModelEntity(
            name=entity_name,
            properties=tuple(properties),
            imports=tuple(imports),
            description=_string_or_none(schema.get("description")),
        )
        self._entities[entity_name] = entity
        return entity

    def _resolve_property(
        self,
        *,
        entity_name: str,
        key: str,
        schema: JSONObject,
        required: bool,
    ) -> PropertyInfo:
        resolved = self.resolve_type(schema, hint=f"{entity_name}{to_class_name(key)}")
        name = to_property_name(key)

        original_name: Optional[str] = None
        if name != key or key.startswith("$") or strip_nullable(resolved.type_name) == _DATETIME_TYPE:
            original_name = key

        description = None
        default = None
        if is_json_object(schema):
            description = _string_or_none(schema.get("description"))
            default = schema.get("default")

        return PropertyInfo(
            name=name,
            type=resolved,
            required=required,
            nullable=not required or resolved.nullable,
            original_name=original_name,
            description=description,
            default=default,
        )

    def resolve_type(self, schema: JSONObject, *, hint: str) -> ResolvedType:
        """Resolve one schema node to a Dart type.

        Args:
            schema (JSONObject): Property, item or value schema.
            hint (str): Class name to use if the node must be promoted.

        Returns:
            ResolvedType: Type without the nullable marker; nullability
                implied by the schema is reported in ``nullable``.
        """
        if not is_json_object(schema):
            return _DYNAMIC

        node = classify_schema(schema)
        match node:
            case ReferenceNode():
                return self._resolve_reference(node, hint=hint)
            case CompositionNode():
                return self._resolve_composition(node, hint=hint)
            case EnumNode() if not node.values:
                return _DYNAMIC
            case EnumNode():
                name = self._unique_name(f"{hint}{_ENUM_SUFFIX}")
                self._register_enum(node, name)
                return ResolvedType(
                    type_name=name,
                    required_imports=frozenset({name}),
                    nested_definition=name,
                    nullable=node.nullable,
                )
            case ArrayNode():
                return self._resolve_array(node, hint=hint)
            case ObjectNode():
                return self._resolve_object(node, hint=hint)
            case ScalarNode():
                type_name = scalar_type(node.type_name, node.format)
                return ResolvedType(
                    type_name=type_name,
                    required_imports=dart_imports_for_type(type_name),
                    nullable=node.nullable and type_name != DYNAMIC_TYPE,
                )
        return _DYNAMIC

    def _resolve_reference(self, node: ReferenceNode, *, hint: str) -> ResolvedType:
        ref = node.ref
        target = self._resolver.resolve(ref)
        if target is None:
            self._warn(f"Unresolvable reference {ref}; using {DYNAMIC_TYPE}")
            return _DYNAMIC

        sibling_nullable = node.raw.get("nullable") is True
        name = self._resolver.ref_name(ref)
        if name is not None and self._produces_entity(target):
            class_name = self._component_names.get(name) or to_class_name(name)
            return ResolvedType(
                type_name=class_name,
                required_imports=frozenset({class_name}),
                nullable=sibling_nullable,
            )

        resolved = self._resolve_alias(ref, target, name=name, hint=hint)
        if sibling_nullable and not resolved.is_dynamic:
            return replace(resolved, nullable=True)
        return resolved

    def _resolve_alias(
        self,
        ref: str,
        target: JSONObject,
        *,
        name: Optional[str],
        hint: str,
    ) -> ResolvedType:
        cached = self._alias_cache.get(ref)
        if cached is not None:
            return cached
        if ref in self._alias_stack:
            self._warn(f"Cyclic type alias {ref}; using {DYNAMIC_TYPE}")
            return _DYNAMIC

        self._alias_stack.append(ref)
        try:
            alias_hint = self._component_names.get(name, to_class_name(name)) if name else hint
            resolved = self.resolve_type(target, hint=alias_hint)
        finally:
            self._alias_stack.pop()
        self._alias_cache[ref] = resolved
        return resolved

    def _resolve_composition(self, node: CompositionNode, *, hint: str) -> ResolvedType:
        plan = plan_composition(node)
        match plan.kind:
            case PlanKind.ALIAS | PlanKind.SINGLE | PlanKind.NULLABLE:
                resolved = self.resolve_type(plan.member or {}, hint=hint)
                if plan.nullable and not resolved.is_dynamic:
                    return replace(resolved, nullable=True)
                return resolved
            case PlanKind.MERGE:
                return self._resolve_merge(node, plan, hint=hint)
            case PlanKind.DISCRIMINATED:
                name = self._unique_name(hint)
                self._resolve_union(node.raw, name)
                return ResolvedType(
                    type_name=name,
                    required_imports=frozenset({name}),
                    nested_definition=name,
                    nullable=plan.nullable,
                )
        return _DYNAMIC

    def _resolve_merge(self, node: CompositionNode, plan: CompositionPlan, *, hint: str) -> ResolvedType:
        base = {key: value for key, value in node.raw.items() if key != node.kind.value}
        merged = merge_all_of(plan.members, self._resolver, base=base)
        if not merged.get("properties"):
            return ResolvedType(type_name=DYNAMIC_MAP_TYPE, nullable=plan.nullable)
        name = self._unique_name(hint)
        self.resolve(merged, name)
        return ResolvedType(
            type_name=name,
            required_imports=frozenset({name}),
            nested_definition=name,
            nullable=plan.nullable,
        )

    def _resolve_array(self, node: ArrayNode, *, hint: str) -> ResolvedType:
        if node.items is None:
            return ResolvedType(type_name=f"List<{DYNAMIC_TYPE}>", nullable=node.nullable)
        item = self.resolve_type(node.items, hint=f"{hint}{_ITEM_SUFFIX}")
        item_type = item.type_name if not item.nullable else f"{item.type_name}?"
        return ResolvedType(
            type_name=f"List<{item_type}>",
            required_imports=item.required_imports,
            nested_definition=item.nested_definition,
            nullable=node.nullable,
        )

    def _resolve_object(self, node: ObjectNode, *, hint: str) -> ResolvedType:
        if node.properties:
            name = self._unique_name(hint)
            self.resolve(node.raw, name)
            return ResolvedType(
                type_name=name,
                required_imports=frozenset({name}),
                nested_definition=name,
                nullable=node.nullable,
            )

        extra = node.additional_properties
        if is_json_object(extra) and extra:
            value = self.resolve_type(extra, hint=f"{hint}{_VALUE_SUFFIX}")
            value_type = value.type_name if not value.nullable else f"{value.type_name}?"
            return ResolvedType(
                type_name=f"Map<String, {value_type}>",
                required_imports=value.required_imports,
                nested_definition=value.nested_definition,
                nullable=node.nullable,
            )
        return ResolvedType(type_name=DYNAMIC_MAP_TYPE, nullable=node.nullable)

    def _resolve_union(self, schema: JSONObject, entity_name: str) -> ModelEntity:
        self._used_names.add(entity_name)
        self._entities.setdefault(entity_name, None)

        union = self._discriminators.resolve(schema, entity_name)
        imports: list[str] = []
        if union is not None:
            members: list[UnionMember] = []
            for member in union.members:
                if not member.is_reference:
                    member = replace(member, member_name=self._unique_name(member.member_name))
                    self.resolve(member.schema, member.member_name)
                members.append(member)
                _extend_imports(imports, (member.member_name,), own_name=entity_name)
            union = replace(union, members=tuple(members))
            self._warnings.extend(f"{entity_name}: {error}" for error in union.errors)
        else:
            union = DiscriminatedUnion(property_name="", members=(), errors=("Missing discriminator",))

        entity = ModelEntity(
            name=entity_name,
            properties=(),
            imports=tuple(imports),
            description=_string_or_none(schema.get("description")),
            union=union,
        )
        self._entities[entity_name] = entity
        return entity

    def _register_enum(self, node: EnumNode, name: str) -> EnumEntity:
        self._used_names.add(name)
        values: list[EnumValue] = []
        seen: set[str] = set()
        for value in node.values:
            value_name = _unique_member(enum_value_name(value), seen)
            values.append(EnumValue(name=value_name, value=value))
        entity = EnumEntity(
            name=name,
            values=tuple(values),
            description=_string_or_none(node.raw.get("description")),
        )
        self._entities[name] = entity
        return entity

    def _produces_entity(self, schema: JSONObject) -> bool:
        node = classify_schema(schema)
        match node:
            case EnumNode():
                return bool(node.values)
            case ObjectNode():
                return bool(node.properties)
            case CompositionNode():
                plan = plan_composition(node)
                if plan.kind is PlanKind.DISCRIMINATED:
                    return True
                if node.kind is CompositionKind.ALL_OF and plan.kind is not PlanKind.ALIAS:
                    base = {key: value for key, value in schema.items() if key != "allOf"}
                    merged = merge_all_of(node.members, self._resolver, base=base)
                    return bool(merged.get("properties"))
        return False

    def _unique_name(self, base: str) -> str:
        candidate = base
        suffix = 2
        while candidate in self._used_names:
            candidate = f"{base}{suffix}"
            suffix += 1
        self._used_names.add(candidate)
        return candidate

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._warnings.append(message)


def _extend_imports(imports: list[str], names: Iterable[str], *, own_name: str) -> None:
    for name in sorted(names):
        if name != own_name and name not in imports:
            imports.append(name)


def _unique_member(name: str, seen: set[str]) -> str:
    candidate = name
    suffix = 2
    while candidate in seen:
        candidate = f"{name}{suffix}"
        suffix += 1
    seen.add(candidate)
    return candidate


def _string_or_none(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None
