"""Internal datatypes for schema resolution, header matching and emission."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, TypeAlias, Union

from .json_types import JSONObject, JSONValue

DYNAMIC_TYPE = "dynamic"
NULLABLE_MARKER = "?"


@dataclass(frozen=True)
class ResolvedType:
    """Dart type expression produced by resolving one schema node."""

    type_name: str
    required_imports: frozenset[str] = frozenset()
    nested_definition: Optional[str] = None
    nullable: bool = False

    @property
    def is_dynamic(self) -> bool:
        """Whether the type fell back to the dynamic sentinel."""
        return self.type_name == DYNAMIC_TYPE


@dataclass(frozen=True)
class PropertyInfo:
    """One property of a generated model class."""

    name: str
    type: ResolvedType
    required: bool
    nullable: bool
    original_name: Optional[str] = None
    description: Optional[str] = None
    default: Optional[JSONValue] = None

    @property
    def dart_type(self) -> str:
        """Type expression including the nullable marker when applicable."""
        base = self.type.type_name
        if not self.nullable or base == DYNAMIC_TYPE or base.endswith(NULLABLE_MARKER):
            return base
        return f"{base}{NULLABLE_MARKER}"


@dataclass(frozen=True)
class UnionMember:
    """One variant of a discriminated union."""

    tag: str
    member_name: str
    schema: JSONObject
    is_reference: bool


@dataclass(frozen=True)
class DiscriminatedUnion:
    """Discriminator metadata for a tagged union entity."""

    property_name: str
    members: tuple[UnionMember, ...]
    errors: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        """Whether validation produced no findings."""
        return not self.errors


@dataclass(frozen=True)
class ModelEntity:
    """A named class definition in the resolved type model."""

    name: str
    properties: tuple[PropertyInfo, ...]
    imports: tuple[str, ...] = ()
    description: Optional[str] = None
    union: Optional[DiscriminatedUnion] = None


@dataclass(frozen=True)
class EnumValue:
    """One enum constant with its Dart identifier and wire value."""

    name: str
    value: JSONValue


@dataclass(frozen=True)
class EnumEntity:
    """A named enum definition in the resolved type model."""

    name: str
    values: tuple[EnumValue, ...]
    description: Optional[str] = None


Entity: TypeAlias = Union[ModelEntity, EnumEntity]


@dataclass(frozen=True)
class HeaderParameter:
    """One header parameter of an operation."""

    original_name: str
    dart_name: str
    type: str = "String"
    required: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class HeaderField:
    """One field of a header class definition."""

    name: str
    type: str = "String"
    required: bool = True
    description: Optional[str] = None


@dataclass(frozen=True)
class HeaderClassDefinition:
    """Canonical shape of a configured or synthesized header class."""

    name: str
    fields: tuple[HeaderField, ...]
    description: Optional[str] = None
    synthesized: bool = False
    unknown_required: frozenset[str] = frozenset()

    @property
    def field_names(self) -> frozenset[str]:
        """Names of all fields."""
        return frozenset(item.name for item in self.fields)

    @property
    def required_names(self) -> frozenset[str]:
        """Names required by the definition, including ones missing from ``fields``."""
        declared = frozenset(item.name for item in self.fields if item.required)
        return declared | self.unknown_required


@dataclass
class MatchingStats:
    """Counters accumulated by one header matcher during one run."""

    total_endpoints: int = 0
    matched_endpoints: int = 0
    consolidated_classes: int = 0
    unmatched_endpoints: int = 0
    unmatched_signatures: set[str] = field(default_factory=set)
    class_usage: Counter[str] = field(default_factory=Counter)


@dataclass(frozen=True)
class OperationSpec:
    """Normalized operation metadata extracted from OpenAPI paths."""

    path: str
    method: str
    endpoint_name: str
    operation: JSONObject
    path_item: JSONObject


@dataclass(frozen=True)
class EndpointSpec:
    """Endpoint data consumed by header matching and emission."""

    endpoint_name: str
    method: str
    path: str
    headers: tuple[HeaderParameter, ...]
    summary: Optional[str] = None


@dataclass(frozen=True)
class ResolutionResult:
    """Resolved type model and header assignments for one document."""

    entities: tuple[Entity, ...]
    endpoints: tuple[EndpointSpec, ...]
    header_assignments: dict[str, Optional[str]]
    header_classes: tuple[HeaderClassDefinition, ...]
    report: str
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class GenerationResult:
    """Generation output metadata."""

    output_dir: str
    written_files: tuple[str, ...]
    warnings: tuple[str, ...]
