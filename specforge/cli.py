# File: specforge/cli.py
"""
SpecForge - Command-Line Interface
===================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Compile with defaults (sqlite, express-style paths)
    python -m specforge --spec openapi.yaml --output ./generated

    # Postgres DDL, flask-style route paths, verbose
    python -m specforge -s openapi.yaml -o ./out --dialect postgres \\
        --router-style flask -vv

    # Diagnostics and compilation only, no files written
    python -m specforge -s openapi.yaml --check

Exit codes:
    0 — success
    1 — diagnostics error
    2 — compilation error
    3 — export error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from specforge.compiler import CompilationReport, SpecCompiler
from specforge.dialects import SUPPORTED_DIALECTS
from specforge.exporters import ArtifactExporter, ExportResult
from specforge.models import CompilerConfig, RouterStyle
from specforge.templates import ArtifactRenderer

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_COMPILATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``specforge`` logger.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root_logger: logging.Logger = logging.getLogger("specforge")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    from specforge import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="specforge",
        description=(
            "SpecForge — OpenAPI to SQL / routes / validation compiler.\n\n"
            "Compiles one OpenAPI document (JSON/YAML) into relational DDL "
            "with junction migrations, per-resource route registrations and "
            "per-operation validation configs."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s openapi.yaml -o ./generated\n"
            "  %(prog)s -s openapi.json -o ./out --dialect postgres\n"
            "  %(prog)s -s openapi.yaml --check\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SpecForge v{__version__}",
    )

    parser.add_argument(
        "-s", "--spec",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the OpenAPI document (JSON or YAML).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory. Required unless --check is set.",
    )

    config_group = parser.add_argument_group("compilation")
    config_group.add_argument(
        "--dialect",
        type=str,
        default="sqlite",
        help=(
            f"Target SQL dialect ({', '.join(SUPPORTED_DIALECTS)}); any other "
            f"value compiles every column as TEXT."
        ),
    )
    config_group.add_argument(
        "--router-style",
        type=str,
        default=RouterStyle.EXPRESS.value,
        choices=[style.value for style in RouterStyle],
        help="Parameter syntax used for route paths in routes.json.",
    )
    config_group.add_argument(
        "--no-schema",
        action="store_true",
        default=False,
        help="Skip relational schema compilation.",
    )

    mode_group = parser.add_argument_group("behaviour flags")
    mode_group.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Compile and report, but write no files.",
    )
    mode_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Continue when diagnostics report errors.",
    )
    mode_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat diagnostics warnings as errors.",
    )

    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


def _build_config(args: argparse.Namespace) -> CompilerConfig:
    return CompilerConfig(
        dialect=args.dialect,
        router_style=args.router_style,
        compile_schema=False if args.no_schema else None,
        strict=not args.no_strict,
        fail_on_warnings=args.fail_on_warnings,
    )


def _exit_code_for(report: CompilationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.compile_errors:
        return EXIT_COMPILATION_ERROR
    return EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, compile, export; return the exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    _setup_logging(-1 if args.quiet else args.verbose)

    spec_path: Path = Path(args.spec).resolve()
    if not spec_path.is_file():
        logger.error("Specification file not found: %s", spec_path)
        return EXIT_INPUT_ERROR

    if args.output is None and not args.check:
        logger.error("Output directory is required. Use -o/--output or --check.")
        parser.print_usage(sys.stderr)
        return EXIT_INPUT_ERROR

    try:
        config: CompilerConfig = _build_config(args)
    except PydanticValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_INPUT_ERROR

    logger.info("Spec:     %s", spec_path)
    logger.info("Dialect:  %s", config.dialect)
    logger.info("Routes:   %s", config.router_style)

    report: CompilationReport = SpecCompiler(config).compile_file(spec_path)
    if not args.quiet:
        print(report.summary())

    exit_code: int = _exit_code_for(report)
    if exit_code != EXIT_SUCCESS or args.check:
        if report.diagnostics is not None and report.diagnostics.has_errors:
            logger.error("%s", report.diagnostics.format_report())
        return exit_code

    if report.result is None:
        return EXIT_COMPILATION_ERROR
    files = ArtifactRenderer(report.result, title=report.title).render_all()
    exporter: ArtifactExporter = ArtifactExporter(
        Path(args.output), title=report.title, dialect=config.dialect
    )
    export: ExportResult = exporter.export(files)
    if not export.success:
        return EXIT_EXPORT_ERROR

    logger.info("Wrote %d files to %s.", export.manifest.total_files, exporter.output_dir)
    return EXIT_SUCCESS


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Console-script entry point."""
    sys.exit(run(argv))


__all__: List[str] = [
    "run",
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_COMPILATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("specforge.cli loaded.")
