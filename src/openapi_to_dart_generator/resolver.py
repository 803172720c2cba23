"""Local ``$ref`` resolution over an in-memory OpenAPI document."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

from .json_types import JSONObject, JSONValue, is_json_object
from .logs import get_logger

logger = get_logger(__name__)

_LOCAL_PREFIX = "#/"
_COMPONENT_SECTIONS = frozenset(
    {
        "schemas",
        "parameters",
        "responses",
        "examples",
        "requestBodies",
        "headers",
        "securitySchemes",
        "links",
        "callbacks",
    }
)


class ReferenceResolver:
    """Resolve local references without mutating the source document.

    Unresolvable references never raise: ``resolve`` returns None and
    ``resolve_node`` leaves the ``$ref`` node in place, so callers can degrade
    the affected field instead of aborting the run.
    """

    def __init__(self, document: JSONObject) -> None:
        self._document = document
        self._cache: dict[str, Any] = {}
        self._cycle_refs: set[str] = set()

    @property
    def cyclic_refs(self) -> frozenset[str]:
        """References found to be part of a cycle during deep resolution."""
        return frozenset(self._cycle_refs)

    @staticmethod
    def is_reference(node: Any) -> bool:
        """Return whether ``node`` is a ``$ref`` object."""
        return is_json_object(node) and isinstance(node.get("$ref"), str)

    @staticmethod
    def ref_name(ref: str) -> Optional[str]:
        """Extract the component name from a reference string.

        ``#/components/schemas/Pet`` and ``#/definitions/Pet`` both yield
        ``Pet``; external or malformed references yield None.
        """
        if not isinstance(ref, str) or not ref.startswith(_LOCAL_PREFIX):
            return None
        parts = [_unescape(token) for token in ref[len(_LOCAL_PREFIX) :].split("/")]
        if parts[0] == "components":
            if len(parts) != 3 or parts[1] not in _COMPONENT_SECTIONS:
                return None
        elif parts[0] == "definitions":
            if len(parts) != 2:
                return None
        else:
            return None
        return parts[-1] or None

    def resolve(self, ref: str) -> Optional[JSONObject]:
        """Resolve a reference to its concrete schema node.

        Reference chains are followed until a non-reference node is reached; a
        chain that loops back on itself resolves to None.

        Args:
            ref (str): Local JSON pointer such as ``#/components/schemas/Pet``.

        Returns:
            Optional[JSONObject]: Target node, or None when it cannot be resolved.
        """
        visited: set[str] = set()
        current_ref = ref
        while True:
            if current_ref in visited:
                logger.warning("Circular reference chain detected at %s", current_ref)
                return None
            visited.add(current_ref)

            target = self._lookup(current_ref)
            if target is None:
                return None
            next_ref = target.get("$ref")
            if not isinstance(next_ref, str):
                return target
            current_ref = next_ref

    def _lookup(self, ref: str) -> Optional[JSONObject]:
        if not ref.startswith(_LOCAL_PREFIX):
            logger.debug("External references are not supported: %s", ref)
            return None

        current: Any = self._document
        for token in ref[len(_LOCAL_PREFIX) :].split("/"):
            token = _unescape(token)
            if not is_json_object(current) or token not in current:
                logger.debug("Unresolvable reference: %s", ref)
                return None
            current = current[token]

        if not is_json_object(current):
            return None
        return current

    def resolve_node(self, node: Any) -> Any:
        """Recursively inline references in a node.

        A reference that is already being expanded further up the current path
        is left as ``{"$ref": ...}`` so recursive schemas stay finite.
        """
        return self._resolve(node, stack=())

    def _resolve(self, node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self._resolve(item, stack) for item in node]
        if not is_json_object(node):
            return node

        ref_value = node.get("$ref")
        if isinstance(ref_value, str):
            resolved_ref = self._resolve_ref(ref_value, stack)
            if resolved_ref is None:
                return {key: deepcopy(value) for key, value in node.items()}
            siblings = {key: value for key, value in node.items() if key != "$ref"}
            if siblings and is_json_object(resolved_ref):
                merged = dict(deepcopy(resolved_ref))
                for key, value in siblings.items():
                    merged[key] = self._resolve(value, stack)
                return merged
            return deepcopy(resolved_ref)

        return {key: self._resolve(value, stack) for key, value in node.items()}

    def _resolve_ref(self, ref: str, stack: tuple[str, ...]) -> Optional[JSONValue]:
        if ref in stack:
            self._cycle_refs.add(ref)
            return {"$ref": ref}

        if ref in self._cache:
            return deepcopy(self._cache[ref])

        target = self._lookup(ref)
        if target is None:
            return None

        resolved = self._resolve(target, (*stack, ref))
        if not self._stack_touches_cycle(stack):
            self._cache[ref] = deepcopy(resolved)
        return resolved

    def _stack_touches_cycle(self, stack: tuple[str, ...]) -> bool:
        return any(ref in self._cycle_refs for ref in stack)

    def schemas(self) -> JSONObject:
        """Return the named schema map (``components.schemas`` or ``definitions``)."""
        components = self._document.get("components")
        if is_json_object(components):
            schemas = components.get("schemas")
            if is_json_object(schemas):
                return schemas
        definitions = self._document.get("definitions")
        if is_json_object(definitions):
            return definitions
        return {}


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")
