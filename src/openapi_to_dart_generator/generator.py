"""High-level generator orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .codegen_dart import render_files
from .config import ConfigError, GeneratorConfig, load_config
from .endpoints import extract_endpoints
from .json_types import JSONObject
from .loader import OpenAPILoadError, load_openapi_document
from .logs import get_logger
from .model_types import GenerationResult, ResolutionResult
from .resolver import ReferenceResolver
from .schema_to_models import ModelResolver
from .writer import (
    WriteError,
    create_output_layout,
    format_generated_tree,
    write_generated_files,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationRun:
    """Generation result with the resolution it was rendered from."""

    result: GenerationResult
    resolution: ResolutionResult


def resolve_document(
    document: JSONObject,
    config: Optional[GeneratorConfig] = None,
) -> ResolutionResult:
    """Resolve schemas and header assignments for an in-memory document.

    Every call builds its own resolver, matcher and consolidator, so repeated
    calls never share state.

    Args:
        document (JSONObject): Parsed OpenAPI document.
        config (Optional[GeneratorConfig]): Generator options; defaults when None.

    Returns:
        ResolutionResult: Entities, per-endpoint header classes and the report.
    """
    config = config or GeneratorConfig()
    resolver = ReferenceResolver(document)

    models = ModelResolver(resolver)
    entities = models.resolve_all()
    entity_names = tuple(entity.name for entity in entities)

    endpoints, naming_warnings = extract_endpoints(document, resolver)

    header_warnings: list[str] = []
    header_config = config.headers
    for name in header_config.definitions:
        if name in entity_names:
            header_warnings.append(f"Header class {name} has the same name as a model")

    matcher = header_config.build_matcher(reserved_names=entity_names)
    for endpoint in endpoints:
        matcher.find_matching_header_class(
            endpoint.path,
            endpoint.headers,
            endpoint_name=endpoint.endpoint_name,
        )
    assigned = matcher.assignments()
    header_assignments = {
        endpoint.endpoint_name: assigned.get(endpoint.endpoint_name) for endpoint in endpoints
    }

    stats = matcher.stats
    logger.info(
        "Resolved %d entities and %d endpoints (%d with header classes)",
        len(entities),
        len(endpoints),
        sum(1 for value in header_assignments.values() if value is not None),
    )
    logger.debug(
        "Header matching: %d analyzed, %d matched, %d unmatched",
        stats.total_endpoints,
        stats.matched_endpoints,
        stats.unmatched_endpoints,
    )

    return ResolutionResult(
        entities=entities,
        endpoints=tuple(endpoints),
        header_assignments=header_assignments,
        header_classes=matcher.header_classes(),
        report=matcher.report(),
        warnings=(*naming_warnings, *models.warnings, *header_warnings),
    )


def run_generation(
    *,
    input_path: Path,
    output_dir: Path,
    config_path: Optional[Path] = None,
    config: Optional[GeneratorConfig] = None,
    write_report: bool = False,
    format_output: bool = False,
) -> GenerationRun:
    """Generate Dart models and header classes from an OpenAPI document.

    Args:
        input_path (Path): Path to the input OpenAPI document.
        output_dir (Path): Directory where generated files are written.
        config_path (Optional[Path]): YAML configuration file.
        config (Optional[GeneratorConfig]): Already loaded configuration; wins
            over ``config_path``.
        write_report (bool): Whether to write ``header_report.md``.
        format_output (bool): Whether to run ``dart format`` afterwards.

    Returns:
        GenerationRun: Generation metadata and the resolution result.
    """
    if config is None:
        config = load_config(config_path)
    document = load_openapi_document(input_path)

    resolution = resolve_document(document, config)
    files = render_files(resolution, include_report=write_report)

    create_output_layout(output_dir)
    written = write_generated_files(output_dir=output_dir, files=files)
    if format_output:
        format_generated_tree(output_dir=output_dir)

    result = GenerationResult(
        output_dir=str(output_dir),
        written_files=written,
        warnings=resolution.warnings,
    )
    return GenerationRun(result=result, resolution=resolution)


__all__ = [
    "ConfigError",
    "GenerationRun",
    "OpenAPILoadError",
    "WriteError",
    "resolve_document",
    "run_generation",
]
