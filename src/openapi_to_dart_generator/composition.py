"""Resolution rules for ``allOf``/``oneOf``/``anyOf`` schema combinators."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .json_types import JSONObject, JSONValue, MutableJSONObject, is_json_array, is_json_object
from .logs import get_logger
from .resolver import ReferenceResolver
from .schema_nodes import CompositionKind, CompositionNode, is_null_schema

logger = get_logger(__name__)


class PlanKind(str, Enum):
    """How a composition schema resolves to a type."""

    ALIAS = "alias"
    NULLABLE = "nullable"
    SINGLE = "single"
    MERGE = "merge"
    DISCRIMINATED = "discriminated"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class CompositionPlan:
    """Resolution decision for one composition node.

    ``member`` is set for ``ALIAS``, ``NULLABLE`` and ``SINGLE``; ``members``
    holds every member for ``MERGE`` and the non-null members for
    ``DISCRIMINATED``.
    """

    kind: PlanKind
    member: Optional[JSONObject] = None
    members: tuple[JSONObject, ...] = ()
    nullable: bool = False
    discriminator: Optional[JSONObject] = None


def plan_composition(node: CompositionNode) -> CompositionPlan:
    """Decide how a composition schema should be resolved.

    Args:
        node (CompositionNode): Classified composition schema.

    Returns:
        CompositionPlan: The resolution decision.
    """
    if node.kind is CompositionKind.ALL_OF:
        return _plan_all_of(node)
    return _plan_union(node)


def _plan_all_of(node: CompositionNode) -> CompositionPlan:
    members = node.members
    if len(members) == 1:
        member = members[0]
        kind = PlanKind.ALIAS if ReferenceResolver.is_reference(member) else PlanKind.SINGLE
        return CompositionPlan(kind=kind, member=member, nullable=node.nullable)
    return CompositionPlan(kind=PlanKind.MERGE, members=members, nullable=node.nullable)


def _plan_union(node: CompositionNode) -> CompositionPlan:
    members = node.members
    null_count = sum(1 for member in members if is_null_schema(member))
    non_null = tuple(member for member in members if not is_null_schema(member))

    if null_count > 1:
        logger.info("%s with %d null members resolves to dynamic", node.kind.value, null_count)
        return CompositionPlan(kind=PlanKind.DYNAMIC)

    if len(members) == 2 and null_count == 1:
        return CompositionPlan(kind=PlanKind.NULLABLE, member=non_null[0], nullable=True)

    if len(members) == 1:
        return CompositionPlan(kind=PlanKind.SINGLE, member=members[0], nullable=node.nullable)

    if node.discriminator is not None and len(non_null) >= 2:
        return CompositionPlan(
            kind=PlanKind.DISCRIMINATED,
            members=non_null,
            nullable=node.nullable or null_count == 1,
            discriminator=node.discriminator,
        )

    logger.info(
        "%s with %d members and no discriminator resolves to dynamic",
        node.kind.value,
        len(members),
    )
    return CompositionPlan(kind=PlanKind.DYNAMIC)


def merge_all_of(
    members: tuple[JSONObject, ...] | list[JSONObject],
    resolver: ReferenceResolver,
    *,
    base: Optional[JSONObject] = None,
) -> MutableJSONObject:
    """Flatten ``allOf`` members into one object schema.

    Referenced members are resolved and nested ``allOf`` chains are followed.
    The first occurrence of a property name wins, ``required`` is the ordered
    union of every member's list and the first description found is kept.

    Args:
        members (tuple[JSONObject, ...] | list[JSONObject]): ``allOf`` members.
        resolver (ReferenceResolver): Resolver for referenced members.
        base (Optional[JSONObject]): Enclosing schema whose own ``properties``
            and ``description`` take precedence over the members'.

    Returns:
        MutableJSONObject: Merged object schema.
    """
    properties: MutableJSONObject = {}
    required: list[str] = []
    state: dict[str, Optional[JSONValue]] = {"description": None, "additionalProperties": None}

    if base is not None:
        _merge_member(base, properties=properties, required=required, state=state)
    for member in members:
        _collect(member, resolver, visited=set(), properties=properties, required=required, state=state)

    merged: MutableJSONObject = {"type": "object", "properties": properties}
    if required:
        merged["required"] = required
    if state["description"] is not None:
        merged["description"] = state["description"]
    if state["additionalProperties"] is not None:
        merged["additionalProperties"] = state["additionalProperties"]
    return merged


def _collect(
    member: JSONObject,
    resolver: ReferenceResolver,
    *,
    visited: set[str],
    properties: MutableJSONObject,
    required: list[str],
    state: dict[str, Optional[JSONValue]],
) -> None:
    ref = member.get("$ref")
    if isinstance(ref, str):
        if ref in visited:
            logger.debug("Skipping cyclic allOf reference %s", ref)
            return
        target = resolver.resolve(ref)
        if target is None:
            logger.warning("Unresolvable allOf member %s", ref)
            return
        _collect(
            target,
            resolver,
            visited=visited | {ref},
            properties=properties,
            required=required,
            state=state,
        )
        return

    _merge_member(member, properties=properties, required=required, state=state)

    nested = member.get("allOf")
    if is_json_array(nested):
        for item in nested:
            if is_json_object(item):
                _collect(
                    item,
                    resolver,
                    visited=visited,
                    properties=properties,
                    required=required,
                    state=state,
                )


def _merge_member(
    member: JSONObject,
    *,
    properties: MutableJSONObject,
    required: list[str],
    state: dict[str, Optional[JSONValue]],
) -> None:
    member_properties = member.get("properties")
    if is_json_object(member_properties):
        for name, schema in member_properties.items():
            if name not in properties:
                properties[name] = deepcopy(schema)

    member_required = member.get("required")
    if is_json_array(member_required):
        for name in member_required:
            if isinstance(name, str) and name not in required:
                required.append(name)

    description = member.get("description")
    if state["description"] is None and isinstance(description, str):
        state["description"] = description

    extra = member.get("additionalProperties")
    if state["additionalProperties"] is None and extra is not None:
        state["additionalProperties"] = deepcopy(extra)
