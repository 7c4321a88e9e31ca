# File: zerogen/cli.py
"""
ZeroGen - Command-Line Interface
=================================

Command line built with the standard-library ``argparse`` module.

Usage examples::

    # Write schema.ts and types.ts for a live database
    python -m zerogen schema --database-url postgresql://localhost/app -o ./zero

    # Per-table mutation files, previewed only
    python -m zerogen mutations --database-url sqlite:///app.db \\
        --registry models.yaml -o ./zero/mutations --dry-run

    # Regenerate one table, overwriting manual edits
    python -m zerogen mutations -c zerogen.yaml --table tasks --force

    # Check a config file and an existing schema file
    python -m zerogen validate -c zerogen.yaml -o ./zero

Exit codes:
    0 - success
    1 - configuration error
    2 - generation error (some table failed, or a conflict was found)
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from zerogen.exceptions import ConfigurationError, ConflictError, ZeroGenError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_CONFIG_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root zerogen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("zerogen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _common_parser() -> argparse.ArgumentParser:
    """Options shared by every sub-command."""
    common: argparse.ArgumentParser = argparse.ArgumentParser(add_help=False)

    source_group = common.add_argument_group("input")
    source_group.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy database URL to introspect (overrides the config file).",
    )
    source_group.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML config file with 'generator:' and 'models:' sections.",
    )
    source_group.add_argument(
        "--registry",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML model registry (overrides the config file's 'models:').",
    )

    output_group = common.add_argument_group("output")
    output_group.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory for generated files.",
    )
    output_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print what would be written without touching the filesystem.",
    )
    output_group.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Regenerate unchanged tables and overwrite manually edited files.",
    )

    filter_group = common.add_argument_group("table selection")
    filter_group.add_argument(
        "--table",
        dest="tables",
        action="append",
        default=[],
        metavar="NAME",
        help="Only process this table (repeatable).",
    )
    filter_group.add_argument(
        "--exclude-table",
        dest="exclude_tables",
        action="append",
        default=[],
        metavar="NAME",
        help="Skip this table (repeatable).",
    )
    filter_group.add_argument(
        "--exclude-pattern",
        dest="exclude_patterns",
        action="append",
        default=[],
        metavar="GLOB",
        help="Skip tables matching this glob, e.g. 'audit_*' (repeatable).",
    )

    tuning_group = common.add_argument_group("generation")
    tuning_group.add_argument(
        "--rename",
        dest="renames",
        action="append",
        default=[],
        metavar="LOGICAL=VERB",
        help="Rename an emitted operation, e.g. soft_delete=discard (repeatable).",
    )
    tuning_group.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="N",
        help="Number of tables generated in parallel.",
    )

    verbosity_group = common.add_argument_group("verbosity")
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
        help="Suppress all log output.",
    )
    return common


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from zerogen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="zerogen",
        description=(
            "ZeroGen - client schema and mutation generator.\n\n"
            "Introspects a relational database plus a model registry and "
            "writes a Zero client schema and per-table mutation files."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s schema --database-url sqlite:///app.db -o ./zero\n"
            "  %(prog)s mutations -c zerogen.yaml --dry-run\n"
            "  %(prog)s validate -c zerogen.yaml\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ZeroGen v{__version__}",
    )

    common: argparse.ArgumentParser = _common_parser()
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True
    commands.add_parser(
        "schema",
        parents=[common],
        help="Generate the client schema and types files.",
    )
    commands.add_parser(
        "mutations",
        parents=[common],
        help="Generate per-table mutation files.",
    )
    commands.add_parser(
        "validate",
        parents=[common],
        help="Validate the configuration and any existing schema file.",
    )
    return parser


# ---------------------------------------------------------------------------
# Config assembly
# ---------------------------------------------------------------------------


def _parse_renames(pairs: Sequence[str]) -> Dict[str, str]:
    """Parse ``logical=verb`` pairs; raises ValueError on a malformed pair."""
    renames: Dict[str, str] = {}
    for pair in pairs:
        logical, sep, verb = pair.partition("=")
        if not sep or not logical.strip() or not verb.strip():
            raise ValueError(f"Invalid --rename value '{pair}', expected LOGICAL=VERB.")
        renames[logical.strip()] = verb.strip()
    return renames


def _build_config_overrides(
    args: argparse.Namespace,
    section: Dict[str, Any],
) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.output is not None:
        overrides["output_directory"] = args.output
    if args.dry_run:
        overrides["dry_run"] = True
    if args.force:
        overrides["force"] = True
    if args.workers is not None:
        overrides["workers"] = args.workers

    # List and mapping flags extend the file's values.
    if args.tables:
        overrides["only_tables"] = list(section.get("only_tables") or []) + args.tables
    if args.exclude_tables:
        overrides["excluded_tables"] = (
            list(section.get("excluded_tables") or []) + args.exclude_tables
        )
    if args.exclude_patterns:
        overrides["exclude_patterns"] = (
            list(section.get("exclude_patterns") or []) + args.exclude_patterns
        )
    if args.renames:
        overrides["name_overrides"] = {
            **(section.get("name_overrides") or {}),
            **_parse_renames(args.renames),
        }
    return overrides


def _load_settings(args: argparse.Namespace) -> Tuple[Any, Any, Optional[str]]:
    """
    Returns ``(GeneratorConfig, ModelRegistry or None, database URL or None)``.

    Raises:
        ConfigurationError: on unreadable or invalid config/registry files.
        ValueError: on malformed command-line values.
    """
    from zerogen.generator import load_config_file, parse_raw_config
    from zerogen.registry import ModelRegistry

    raw: Dict[str, Any] = load_config_file(Path(args.config)) if args.config else {}
    section: Any = raw.get("generator") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("'generator' section must be a mapping.")

    config, registry = parse_raw_config(raw, _build_config_overrides(args, section))
    if args.registry:
        registry = ModelRegistry.from_yaml(Path(args.registry))

    database_url: Optional[str] = args.database_url or raw.get("database_url")
    return config, registry, database_url


def _extract(config: Any, registry: Any, database_url: str) -> Any:
    from zerogen.introspector import DatabaseHandle, SchemaIntrospector
    from zerogen.patterns import PatternDetector

    with DatabaseHandle(database_url) as database:
        introspector: SchemaIntrospector = SchemaIntrospector(
            database,
            registry,
            excluded_tables=config.excluded_tables,
            detector=PatternDetector.from_config(config),
        )
        return introspector.extract_schema()


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------


def _run_schema(config: Any, registry: Any, database_url: str) -> int:
    from zerogen.generator import SchemaGenerationResult, SchemaGenerator

    schema = _extract(config, registry, database_url)
    try:
        result: SchemaGenerationResult = SchemaGenerator(schema, config).generate()
    except ConflictError as exc:
        logger.error("%s", exc)
        return EXIT_GENERATION_ERROR

    for block in result.previews:
        print(block)
    print(result.summary())
    return EXIT_SUCCESS


def _run_mutations(config: Any, registry: Any, database_url: str) -> int:
    from zerogen.generator import GenerationSummary, MutationGenerator

    schema = _extract(config, registry, database_url)
    summary: GenerationSummary = MutationGenerator(schema, config).generate()

    for block in summary.previews:
        print(block)
    print(summary.summary())
    return EXIT_SUCCESS if summary.success else EXIT_GENERATION_ERROR


def _run_validate(config: Any) -> int:
    """Validate the config and, when present, the written schema file."""
    from zerogen.manifest import detect_customizations
    from zerogen.utils import read_file
    from zerogen.validators import (
        ValidationResult,
        validate_generator_config,
        validate_schema_source,
    )

    result: ValidationResult = validate_generator_config(config)
    schema_path: Path = Path(config.resolved_schema_file)
    if schema_path.is_file():
        result.merge(validate_schema_source(read_file(schema_path)))
        if detect_customizations(schema_path):
            result.add_warning(
                "SCHEMA_CUSTOMIZED",
                f"{schema_path} has no generator banner; the next run will refuse to overwrite it.",
            )
    else:
        result.add_info("NO_SCHEMA_FILE", f"No schema file at {schema_path}; skipped.")

    print(result.format_report())
    return EXIT_SUCCESS if result.is_valid else EXIT_CONFIG_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run one sub-command and return its exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    try:
        config, registry, database_url = _load_settings(args)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    if args.command == "validate":
        return _run_validate(config)

    if not database_url:
        logger.error("A database URL is required: use --database-url or 'database_url:'.")
        parser.print_usage(sys.stderr)
        return EXIT_INPUT_ERROR

    logger.info("Command: %s", args.command)
    logger.info("Output:  %s", Path(config.output_directory).resolve())
    logger.info("Dry run: %s", config.dry_run)

    try:
        if args.command == "schema":
            return _run_schema(config, registry, database_url)
        return _run_mutations(config, registry, database_url)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except SQLAlchemyError as exc:
        logger.error("Database introspection failed: %s", exc)
        return EXIT_INPUT_ERROR
    except ZeroGenError as exc:
        logger.error("%s", exc)
        return EXIT_GENERATION_ERROR


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    exit_code: int = run(argv)
    if exit_code == EXIT_SUCCESS:
        logger.info("Completed successfully.")
    else:
        logger.error("Failed with exit code %d.", exit_code)
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
    "run",
    "EXIT_SUCCESS",
    "EXIT_CONFIG_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("zerogen.cli loaded.")
