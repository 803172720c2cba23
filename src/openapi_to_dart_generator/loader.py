"""OpenAPI document loading and basic validation."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from openapi_python_client.schema import OpenAPI
from pydantic import ValidationError

from .json_types import JSONObject, JSONValue
from .logs import get_logger

logger = get_logger(__name__)

_JSON_SUFFIXES = frozenset({".json"})


class OpenAPILoadError(RuntimeError):
    """Raised when a source OpenAPI document cannot be loaded."""


def load_openapi_document(path: Path) -> JSONObject:
    """Load and validate an OpenAPI document from YAML or JSON.

    Args:
        path (Path): Document path; ``.json`` files are parsed as JSON and
            everything else as YAML.

    Returns:
        JSONObject: The parsed document.
    """
    payload = _read_payload(path)

    payload_value: JSONValue = payload
    if not isinstance(payload_value, dict):
        raise OpenAPILoadError(
            f"OpenAPI document must deserialize to a mapping, got {type(payload_value)!r}"
        )

    ensure_supported_version(get_openapi_version(payload_value))

    try:
        OpenAPI.model_validate(payload_value)
    except ValidationError as exc:
        raise OpenAPILoadError(f"OpenAPI schema validation failed for {path}: {exc}") from exc

    logger.debug("Loaded OpenAPI %s document from %s", payload_value.get("openapi"), path)
    return payload_value


def _read_payload(path: Path) -> object:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() in _JSON_SUFFIXES:
                return json.load(handle)
            return yaml.safe_load(handle)
    except OSError as exc:
        raise OpenAPILoadError(f"Failed to read OpenAPI file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise OpenAPILoadError(f"Failed to parse JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise OpenAPILoadError(f"Failed to parse YAML in {path}: {exc}") from exc


def get_openapi_version(document: JSONObject) -> str:
    """Return the declared OpenAPI version string."""
    version = document.get("openapi")
    if not isinstance(version, str) or not version.strip():
        raise OpenAPILoadError("Missing or invalid 'openapi' version field")
    return version.strip()


def ensure_supported_version(version: str) -> None:
    """Validate that the input version is OpenAPI v3+."""
    major_text = version.split(".", maxsplit=1)[0]
    try:
        major = int(major_text)
    except ValueError as exc:
        raise OpenAPILoadError(f"Unable to parse OpenAPI version: {version}") from exc
    if major < 3:
        raise OpenAPILoadError(f"Unsupported OpenAPI version {version}; only v3+ is supported")
