"""Generator configuration loaded from YAML.

Keys follow the camelCase spelling used in configuration files::

    headers:
      customMatch: true
      matchStrategy: subset
      customConsolidate: true
      consolidationThreshold: 3
      definitions:
        ApiHeaders:
          fields: [x-api-key, x-user-id]
          required: [x-api-key]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .headers import (
    DEFAULT_CONSOLIDATION_THRESHOLD,
    DEFAULT_FUZZY_THRESHOLD,
    HeaderConsolidator,
    HeaderMatcher,
    MatchStrategy,
)
from .logs import get_logger
from .model_types import HeaderClassDefinition, HeaderField

logger = get_logger(__name__)

_DEFAULT_FIELD_TYPE = "String"


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be loaded."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class HeaderFieldConfig(_CamelModel):
    """Per-field metadata in the mapping form of ``fields``."""

    type: str = _DEFAULT_FIELD_TYPE
    required: Optional[bool] = None
    description: Optional[str] = None


class HeaderDefinitionConfig(_CamelModel):
    """One configured header class."""

    field_spec: Union[list[str], dict[str, Optional[HeaderFieldConfig]]] = Field(alias="fields")
    required: Optional[list[str]] = None
    description: Optional[str] = None


class HeadersConfig(_CamelModel):
    """Header matching and consolidation options."""

    definitions: dict[str, HeaderDefinitionConfig] = Field(default_factory=dict)
    custom_match: bool = True
    match_strategy: MatchStrategy = MatchStrategy.EXACT
    custom_consolidate: bool = False
    consolidation_threshold: int = Field(default=DEFAULT_CONSOLIDATION_THRESHOLD, ge=1)
    fuzzy_threshold: float = Field(default=DEFAULT_FUZZY_THRESHOLD, ge=0.0, le=1.0)

    def header_classes(self) -> tuple[HeaderClassDefinition, ...]:
        """Configured definitions in their canonical form, in file order."""
        return tuple(
            normalize_definition(name, definition) for name, definition in self.definitions.items()
        )

    def build_matcher(self, *, reserved_names: tuple[str, ...] = ()) -> HeaderMatcher:
        """Create a fresh matcher (and consolidator when enabled) for one run."""
        consolidator = None
        if self.custom_consolidate:
            consolidator = HeaderConsolidator(
                threshold=self.consolidation_threshold,
                reserved_names=reserved_names,
            )
        return HeaderMatcher(
            self.header_classes(),
            enabled=self.custom_match,
            strategy=self.match_strategy,
            fuzzy_threshold=self.fuzzy_threshold,
            consolidator=consolidator,
        )


class GeneratorConfig(_CamelModel):
    """Top-level configuration."""

    headers: HeadersConfig = Field(default_factory=HeadersConfig)


def normalize_definition(name: str, definition: HeaderDefinitionConfig) -> HeaderClassDefinition:
    """Turn either ``fields`` form into a ``HeaderClassDefinition``.

    ``required`` defaults to every field. In the mapping form a field's own
    ``required`` flag overrides the list. Names listed in ``required`` but not
    in ``fields`` are kept as ``unknown_required`` and logged; exact and
    subset matching never select such a definition.

    Args:
        name (str): Header class name.
        definition (HeaderDefinitionConfig): Parsed definition.

    Returns:
        HeaderClassDefinition: Canonical definition.
    """
    spec = definition.field_spec
    if isinstance(spec, list):
        field_items: list[tuple[str, Optional[HeaderFieldConfig]]] = [(item, None) for item in spec]
    else:
        field_items = list(spec.items())

    field_names = [field_name for field_name, _ in field_items]
    unknown: list[str] = []
    if definition.required is None:
        required = set(field_names)
    else:
        required = set(definition.required)
        unknown = sorted(required.difference(field_names))
        if unknown:
            logger.warning(
                "Header definition %s lists required fields not in fields: %s",
                name,
                ", ".join(unknown),
            )

    fields: list[HeaderField] = []
    for field_name, metadata in field_items:
        is_required = field_name in required
        field_type = _DEFAULT_FIELD_TYPE
        description = None
        if metadata is not None:
            field_type = metadata.type
            description = metadata.description
            if metadata.required is not None:
                is_required = metadata.required
        fields.append(
            HeaderField(
                name=field_name,
                type=field_type,
                required=is_required,
                description=description,
            )
        )

    return HeaderClassDefinition(
        name=name,
        fields=tuple(fields),
        description=definition.description,
        unknown_required=frozenset(unknown),
    )


def parse_config(data: Optional[Mapping[str, Any]]) -> GeneratorConfig:
    """Validate a configuration mapping.

    Args:
        data (Optional[Mapping[str, Any]]): Raw configuration; None gives defaults.

    Returns:
        GeneratorConfig: Validated configuration.
    """
    try:
        return GeneratorConfig.model_validate(dict(data or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: Optional[Path]) -> GeneratorConfig:
    """Load configuration from a YAML file, or defaults when ``path`` is None."""
    if path is None:
        return GeneratorConfig()

    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML in {path}: {exc}") from exc

    if payload is not None and not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(payload)!r}")
    config = parse_config(payload)
    logger.debug("Loaded config from %s with %d header definitions", path, len(config.headers.definitions))
    return config
