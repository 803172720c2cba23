"""Filesystem writers for generated Dart sources."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import shutil
import subprocess

from .codegen_dart import HEADERS_DIR, MODELS_DIR, GeneratedFile
from .logs import get_logger

logger = get_logger(__name__)

_DART_EXECUTABLE = "dart"


class WriteError(RuntimeError):
    """Raised when output files cannot be written."""


def create_output_layout(output_dir: Path) -> Path:
    """Create the output directory with its ``models/headers`` tree.

    Args:
        output_dir (Path): Root output directory to create.

    Returns:
        Path: Path to the created ``models`` directory.
    """
    if output_dir.exists():
        raise WriteError(f"Output directory already exists: {output_dir}")

    models_dir = output_dir / MODELS_DIR
    try:
        (models_dir / HEADERS_DIR).mkdir(parents=True, exist_ok=False)
    except OSError as exc:
        raise WriteError(f"Failed to create output directory {output_dir}: {exc}") from exc
    return models_dir


def write_generated_files(*, output_dir: Path, files: Sequence[GeneratedFile]) -> tuple[str, ...]:
    """Write rendered files below ``output_dir``.

    Args:
        output_dir (Path): Output root created by ``create_output_layout``.
        files (Sequence[GeneratedFile]): Files with root-relative paths.

    Returns:
        tuple[str, ...]: Relative paths written, in order.
    """
    written: list[str] = []
    for generated in files:
        path = output_dir / generated.path
        if not path.parent.exists():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise WriteError(f"Failed to create directory {path.parent}: {exc}") from exc
        _write_file(path, generated.content)
        written.append(generated.path)
    logger.debug("Wrote %d files to %s", len(written), output_dir)
    return tuple(written)


def format_generated_tree(*, output_dir: Path) -> None:
    """Run ``dart format`` over the generated tree.

    Args:
        output_dir (Path): Output root to format.
    """
    if shutil.which(_DART_EXECUTABLE) is None:
        raise WriteError("Cannot format output: 'dart' executable not found on PATH")
    _run_dart(output_dir=output_dir, args=("format", str(output_dir)))


def _run_dart(*, output_dir: Path, args: tuple[str, ...]) -> None:
    command = [_DART_EXECUTABLE, *args]
    command_desc = " ".join(args)
    try:
        subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise WriteError(f"Failed to execute dart {command_desc} for {output_dir}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise WriteError(f"dart {command_desc} failed for {output_dir}: {error_text}") from exc


def _write_file(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write file {path}: {exc}") from exc
