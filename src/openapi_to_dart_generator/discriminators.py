"""Discriminator metadata extraction for tagged ``oneOf``/``anyOf`` unions."""

from __future__ import annotations

from typing import Optional

from .composition import merge_all_of
from .json_types import JSONObject, is_json_array, is_json_object
from .logs import get_logger
from .model_types import DiscriminatedUnion, UnionMember
from .naming import to_class_name
from .resolver import ReferenceResolver
from .schema_nodes import is_null_schema

logger = get_logger(__name__)


class DiscriminatorResolver:
    """Build ``DiscriminatedUnion`` values from union schemas."""

    def __init__(self, resolver: ReferenceResolver) -> None:
        self._resolver = resolver

    def resolve(self, schema: JSONObject, entity_name: str) -> Optional[DiscriminatedUnion]:
        """Extract the tagged-union description of ``schema``.

        Members listed in ``discriminator.mapping`` take the mapping key as
        their tag. Other referenced members use the referenced schema name as
        tag. Inline members are named ``<entity>Type<index>``. Their tag is the
        value they declare for the property through ``const``, a single
        ``enum`` value or the ``default`` of a required property. Only members
        declaring none get the synthesized ``type<index>`` tag.
        When two members share a tag the first one is kept and the collision is
        reported in ``errors``.

        Args:
            schema (JSONObject): Schema with ``discriminator`` and ``oneOf``/``anyOf``.
            entity_name (str): Class name of the union entity.

        Returns:
            Optional[DiscriminatedUnion]: Union metadata, or None when the schema
                has no usable discriminator or no members.
        """
        discriminator = schema.get("discriminator")
        if not is_json_object(discriminator):
            return None
        property_name = discriminator.get("propertyName")
        if not isinstance(property_name, str) or not property_name:
            return None

        raw_members = schema.get("oneOf")
        if not is_json_array(raw_members) or not raw_members:
            raw_members = schema.get("anyOf")
        if not is_json_array(raw_members) or not raw_members:
            return None

        mapping = discriminator.get("mapping")
        mapping = mapping if is_json_object(mapping) else {}

        members: list[UnionMember] = []
        errors: list[str] = []
        seen_tags: set[str] = set()
        candidates = [
            member for member in raw_members if is_json_object(member) and not is_null_schema(member)
        ]
        for index, member in enumerate(candidates):
            union_member = self._build_member(
                member,
                index=index,
                entity_name=entity_name,
                property_name=property_name,
                mapping=mapping,
            )
            if union_member.tag in seen_tags:
                errors.append(f"Duplicate discriminator value: {union_member.tag}")
                continue
            seen_tags.add(union_member.tag)
            members.append(union_member)

        errors.extend(self._missing_property_errors(members, property_name))
        for error in errors:
            logger.warning("%s: %s", entity_name, error)

        return DiscriminatedUnion(
            property_name=property_name,
            members=tuple(members),
            errors=tuple(errors),
        )

    def _build_member(
        self,
        member: JSONObject,
        *,
        index: int,
        entity_name: str,
        property_name: str,
        mapping: JSONObject,
    ) -> UnionMember:
        ref = member.get("$ref")
        if isinstance(ref, str):
            ref_name = self._resolver.ref_name(ref)
            for tag, target in mapping.items():
                if target == ref or (ref_name is not None and target == ref_name):
                    return UnionMember(
                        tag=str(tag),
                        member_name=to_class_name(ref_name or str(tag)),
                        schema=member,
                        is_reference=True,
                    )
            if ref_name is not None:
                return UnionMember(
                    tag=ref_name,
                    member_name=to_class_name(ref_name),
                    schema=member,
                    is_reference=True,
                )

        declared = discriminator_value(member, property_name)
        return UnionMember(
            tag=declared if declared is not None else f"type{index}",
            member_name=f"{entity_name}Type{index}",
            schema=member,
            is_reference=False,
        )

    def _missing_property_errors(self, members: list[UnionMember], property_name: str) -> list[str]:
        errors: list[str] = []
        for member in members:
            schema = member.schema
            if member.is_reference:
                ref = schema.get("$ref")
                resolved = self._resolver.resolve(ref) if isinstance(ref, str) else None
                if resolved is None:
                    errors.append(f"Unresolvable union member: {ref}")
                    continue
                schema = resolved
            if is_json_array(schema.get("allOf")):
                schema = merge_all_of(schema["allOf"], self._resolver, base=schema)
            properties = schema.get("properties")
            if is_json_object(properties) and property_name not in properties:
                errors.append(
                    f"Discriminator property '{property_name}' missing from {member.member_name}"
                )
        return errors


def discriminator_value(schema: JSONObject, property_name: str) -> Optional[str]:
    """Read the tag a member schema declares for the discriminator property.

    ``const`` and single-value ``enum`` are honored; a ``default`` counts only
    when the property is required.
    """
    properties = schema.get("properties")
    if not is_json_object(properties):
        return None
    prop = properties.get(property_name)
    if not is_json_object(prop):
        return None
    if "const" in prop:
        return str(prop["const"])
    enum_values = prop.get("enum")
    if is_json_array(enum_values) and len(enum_values) == 1:
        return str(enum_values[0])
    required = schema.get("required")
    if is_json_array(required) and property_name in required and "default" in prop:
        return str(prop["default"])
    return None
