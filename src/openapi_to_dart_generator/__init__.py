"""OpenAPI to Dart model generator package."""

from __future__ import annotations

from .cli import main
from .generator import GenerationRun, resolve_document, run_generation

__all__ = ["GenerationRun", "main", "resolve_document", "run_generation"]
