"""Extract endpoints and their header parameters from OpenAPI paths."""

from __future__ import annotations

from typing import Any, Optional

from .json_types import JSONObject, is_json_array, is_json_object
from .logs import get_logger
from .model_types import EndpointSpec, HeaderParameter, OperationSpec
from .naming import resolve_operations, to_header_property_name
from .resolver import ReferenceResolver
from .type_mapper import map_type, strip_nullable

logger = get_logger(__name__)

_HEADER_LOCATION = "header"
_DEFAULT_HEADER_TYPE = "String"
# Header parameters with these names are ignored by OpenAPI 3.
_IGNORED_HEADERS = frozenset({"accept", "content-type", "authorization"})


def extract_endpoints(
    document: JSONObject,
    resolver: ReferenceResolver,
) -> tuple[list[EndpointSpec], list[str]]:
    """Collect every operation with its header parameters.

    Args:
        document (JSONObject): Loaded OpenAPI document.
        resolver (ReferenceResolver): Resolver for ``$ref`` parameters.

    Returns:
        tuple[list[EndpointSpec], list[str]]: Endpoints in document order and
            naming warnings.
    """
    raw_paths = document.get("paths")
    if not is_json_object(raw_paths):
        return [], []

    operations, warnings = resolve_operations(raw_paths)
    endpoints = [_build_endpoint(operation, resolver) for operation in operations]
    logger.debug("Extracted %d endpoints", len(endpoints))
    return endpoints, warnings


def _build_endpoint(operation_spec: OperationSpec, resolver: ReferenceResolver) -> EndpointSpec:
    merged: dict[tuple[str, str], JSONObject] = {}
    for parameter in (
        *_collect_parameters(operation_spec.path_item, resolver),
        *_collect_parameters(operation_spec.operation, resolver),
    ):
        name = parameter.get("name")
        location = parameter.get("in")
        if isinstance(name, str) and isinstance(location, str):
            merged[(location, name)] = parameter

    headers: list[HeaderParameter] = []
    for (location, _), parameter in merged.items():
        if location != _HEADER_LOCATION:
            continue
        header = _to_header_parameter(parameter)
        if header is not None:
            headers.append(header)

    summary = operation_spec.operation.get("summary")
    return EndpointSpec(
        endpoint_name=operation_spec.endpoint_name,
        method=operation_spec.method,
        path=operation_spec.path,
        headers=tuple(headers),
        summary=summary if isinstance(summary, str) else None,
    )


def _collect_parameters(node: JSONObject, resolver: ReferenceResolver) -> list[JSONObject]:
    raw = node.get("parameters")
    if not is_json_array(raw):
        return []
    parameters: list[JSONObject] = []
    for parameter in raw:
        if not is_json_object(parameter):
            continue
        ref = parameter.get("$ref")
        if isinstance(ref, str):
            resolved = resolver.resolve(ref)
            if resolved is None:
                logger.warning("Unresolvable parameter reference %s", ref)
                continue
            parameter = resolved
        parameters.append(parameter)
    return parameters


def _to_header_parameter(parameter: JSONObject) -> Optional[HeaderParameter]:
    name: Any = parameter.get("name")
    if not isinstance(name, str) or not name or name.lower() in _IGNORED_HEADERS:
        return None

    schema = parameter.get("schema")
    header_type = strip_nullable(map_type(schema)) if is_json_object(schema) else _DEFAULT_HEADER_TYPE

    description = parameter.get("description")
    return HeaderParameter(
        original_name=name,
        dart_name=to_header_property_name(name),
        type=header_type,
        required=parameter.get("required") is True,
        description=description if isinstance(description, str) else None,
    )
