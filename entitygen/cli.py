# File: entitygen/cli.py
"""
entitygen - Command-Line Interface
====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Compile a directory of schemas into a project tree
    python -m entitygen --schema schemas/ --output ./app

    # Several files, regenerate extension stubs too
    python -m entitygen -s Post.json -s Comment.yaml -o ./app --force

    # Reject unknown exposure flags, abort entities on unknown field kinds
    python -m entitygen -s schemas/ -o ./app \\
        --unknown-exposure reject --field-errors raise

    # Validate only (no file output)
    python -m entitygen -s schemas/ --validate-only

Exit codes:
    0  success
    1  validation error
    2  generation error (an entity failed to parse or compile)
    3  export error
    4  input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, NoReturn, Optional, Sequence

if TYPE_CHECKING:
    from entitygen.generator import GenerationReport

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root entitygen logger based on verbosity level.

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

    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    datefmt: str = "%H:%M:%S"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt=datefmt)
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("entitygen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from entitygen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="entitygen",
        description=(
            "entitygen - Entity Schema Compiler.\n\n"
            "Compiles JSON/YAML entity schemas into TypeScript entity classes "
            "(TypeORM columns and relations, type-graphql fields, "
            "class-validator constraints and Zod schemas)."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schemas/ -o ./app\n"
            "  %(prog)s -s Post.json -s Comment.yaml -o ./app --force\n"
            "  %(prog)s -s schemas/ --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"entitygen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        action="append",
        required=True,
        metavar="PATH",
        help=(
            "Schema file (JSON or YAML) or a directory of schema files. "
            "May be given several times."
        ),
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Root of the output tree. "
            "Required unless --validate-only is set."
        ),
    )
    parser.add_argument(
        "--base-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory for regenerated base files, relative to the output root.",
    )
    parser.add_argument(
        "--extension-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory for user extension files, relative to the output root.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only parse, compile and validate; write nothing.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )
    mode_group.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite existing extension files.",
    )

    # --- Policies ---
    policy_group = parser.add_argument_group("policies")
    policy_group.add_argument(
        "--unknown-exposure",
        type=str,
        default="warn",
        choices=["ignore", "warn", "reject"],
        help="Handling of unknown per-field graphql flags (default: warn).",
    )
    policy_group.add_argument(
        "--field-errors",
        type=str,
        default="degrade",
        choices=["degrade", "raise"],
        help=(
            "Unknown field kinds degrade to a generic string column, "
            "or abort the entity (default: degrade)."
        ),
    )

    # --- Verbosity ---
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


# ---------------------------------------------------------------------------
# Config builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build ``CompilerConfig`` keyword arguments from CLI arguments."""
    overrides: Dict[str, object] = {
        "unknown_exposure_policy": args.unknown_exposure,
        "field_error_policy": args.field_errors,
        "force": args.force,
        "dry_run": args.dry_run,
    }
    if args.output is not None:
        overrides["output_dir"] = str(Path(args.output).resolve())
    if args.base_dir is not None:
        overrides["base_dir"] = args.base_dir
    if args.extension_dir is not None:
        overrides["extension_dir"] = args.extension_dir
    return overrides


def _exit_code_for(report: GenerationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


def _run(schema_paths: List[Path], args: argparse.Namespace) -> int:
    """
    Run the pipeline (full or validate-only).

    Returns the appropriate exit code.
    """
    from entitygen.generator import GenerationReport, SchemaCompiler
    from entitygen.models import CompilerConfig

    config: CompilerConfig = CompilerConfig(**_build_config_overrides(args))
    compiler: SchemaCompiler = SchemaCompiler(config)

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = compiler.generate_from_paths(
        schema_paths,
        validate_only=args.validate_only,
    )

    if not args.quiet:
        print(report.summary())

    return _exit_code_for(report)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    # --- Schema paths ---
    schema_paths: List[Path] = [Path(p).resolve() for p in args.schema]
    missing: List[Path] = [p for p in schema_paths if not p.exists()]
    for path in missing:
        logger.error("Schema path not found: %s", path)
    if missing:
        sys.exit(EXIT_INPUT_ERROR)

    # --- Output directory validation ---
    if args.output is None and not args.validate_only:
        logger.error(
            "Output directory is required for generation. "
            "Use -o/--output or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Schemas: %s", ", ".join(str(p) for p in schema_paths))
    logger.info("Output:  %s", args.output)
    logger.info("Force:   %s", args.force)

    exit_code: int = _run(schema_paths, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("entitygen.cli loaded.")
