"""Fixture-based OpenAPI loading and resolution tests."""

from __future__ import annotations

from pathlib import Path

from openapi_to_dart_generator.generator import resolve_document
from openapi_to_dart_generator.loader import load_openapi_document
from openapi_to_dart_generator.model_types import ModelEntity
from .fixture_helpers import fixture_dir, parametrize_fixtures


def test_fixture_directory_exists() -> None:
    """Ensure the fixtures directory is present."""
    assert fixture_dir().is_dir(), f"Fixture directory not found: {fixture_dir()}"


@parametrize_fixtures()
def test_fixture_loads_and_resolves(fixture_path: Path) -> None:
    """Every fixture should validate and resolve to a self-consistent entity set."""
    document = load_openapi_document(fixture_path)

    resolution = resolve_document(document)

    names = [entity.name for entity in resolution.entities]
    assert len(names) == len(set(names)), f"Duplicate entity names in {fixture_path.name}"
    for entity in resolution.entities:
        if not isinstance(entity, ModelEntity):
            continue
        missing = [name for name in entity.imports if name not in names]
        assert not missing, f"{entity.name} imports unknown types {missing!r}"


@parametrize_fixtures()
def test_fixture_resolution_is_repeatable(fixture_path: Path) -> None:
    """Resolving one document twice must give identical results."""
    document = load_openapi_document(fixture_path)

    first = resolve_document(document)
    second = resolve_document(document)

    assert first == second
