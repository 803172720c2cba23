"""Command line interface for OpenAPI to Dart generation."""

from __future__ import annotations

import argparse
from pathlib import Path

from .generator import ConfigError, OpenAPILoadError, WriteError, run_generation
from .logs import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="openapi-to-dart-generator",
        description="Generate freezed Dart models and shared header classes from OpenAPI",
    )
    parser.add_argument("--input", required=True, help="Path to an OpenAPI YAML or JSON file")
    parser.add_argument("--output", required=True, help="Output directory for generated Dart files")
    parser.add_argument("--config", help="Path to a YAML generator configuration file")
    parser.add_argument(
        "--report",
        action="store_true",
        help="Write header_report.md with header matching statistics",
    )
    parser.add_argument(
        "--format",
        action="store_true",
        help="Run 'dart format' over the generated files",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    try:
        run = run_generation(
            input_path=Path(args.input),
            output_dir=Path(args.output),
            config_path=Path(args.config) if args.config else None,
            write_report=bool(args.report),
            format_output=bool(args.format),
        )
    except (OpenAPILoadError, ConfigError, WriteError) as exc:
        parser.error(str(exc))
        return 2

    for warning in run.result.warnings:
        logger.warning(warning)

    logger.info(
        "Wrote %d files to %s",
        len(run.result.written_files),
        run.result.output_dir,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
