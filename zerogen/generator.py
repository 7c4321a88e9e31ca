# File: zerogen/generator.py
"""
ZeroGen - Generation Orchestrators
===================================

Connects the phases together:

    Extracted schema → Config validation → Templates/Synthesis
        → Conflict check → File-set write (or dry-run preview) → Summary

``MutationGenerator`` runs the per-table state machine:

    1. excluded?                        → skip ("excluded via config")
    2. unchanged since the manifest?    → skip ("no changes detected")
    3. no patterns and no baseline CRUD → skip ("no patterns detected")
    4. render generated / custom / main bodies
    5. conflict check on generated and main files (aborts the table)
    6. write all-or-nothing, or accumulate the dry-run preview

``SchemaGenerator`` writes the schema aggregate and the types file.

Error handling strategy:
    - Configuration errors are fatal and raised before any table runs.
    - Per-table errors are isolated: recorded in the summary, and the run
      carries on with the next table.
    - Tables whose singular names share a file stem are reported as
      collisions; only the first of them is generated.
    - The manifest is updated by worker threads under its own lock and
      saved once, after every table has finished.
"""

from __future__ import annotations

import fnmatch
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from zerogen.exceptions import ConfigurationError, ConflictError, ZeroGenError
from zerogen.exporters import FileRecord, render_preview, write_file_set
from zerogen.introspector import EXCLUDED_TABLES
from zerogen.manifest import GenerationManifest, check_overwrite, detect_existing
from zerogen.models import (
    ExistingFile,
    ExtractedSchema,
    FileKind,
    GeneratedFile,
    GeneratorConfig,
    PatternSet,
    TableInfo,
)
from zerogen.registry import ModelRegistry
from zerogen.synthesizer import (
    SchemaChanges,
    SchemaSynthesizer,
    SynthesisResult,
    detect_schema_changes,
)
from zerogen.templates import MutationTemplates, file_names
from zerogen.type_mapper import TypeMapper
from zerogen.utils import Timer, read_file, write_file
from zerogen.validators import (
    ValidationResult,
    validate_generator_config,
    validate_schema_source,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.generator")

DRY_RUN_LABEL: str = "DRY RUN MODE - No files were actually created"

REASON_EXCLUDED: str = "excluded via config"
REASON_UNCHANGED: str = "no changes detected"
REASON_NO_PATTERNS: str = "no patterns detected"


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a YAML config file.

    Raises:
        ConfigurationError: if the file is missing, unparsable or not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level of {path}, got {type(data).__name__}."
        )
    return data


def parse_raw_config(
    raw: Mapping[str, Any],
    overrides: Optional[Mapping[str, Any]] = None,
) -> Tuple[GeneratorConfig, Optional[ModelRegistry]]:
    """
    Split a parsed config mapping into ``GeneratorConfig`` and registry.

    Expected top-level keys:
        - "generator": generator settings (optional)
        - "models" / "known_models": model registry (optional)

    ``overrides`` (e.g. from command-line flags) win over file values.
    """
    section: Any = raw.get("generator") or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError("'generator' section must be a mapping.")

    merged: Dict[str, Any] = {**section, **(overrides or {})}
    try:
        config: GeneratorConfig = GeneratorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(
            "Config validation failed",
            [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()],
        ) from exc

    registry: Optional[ModelRegistry] = None
    if "models" in raw or "known_models" in raw:
        registry = ModelRegistry.from_mapping(raw)
    return config, registry


def is_table_excluded(name: str, config: GeneratorConfig) -> bool:
    """Built-in list, configured names and globs, and the ``only_tables`` filter."""
    if name in EXCLUDED_TABLES or name in config.excluded_tables:
        return True
    if any(fnmatch.fnmatchcase(name, pattern) for pattern in config.exclude_patterns):
        return True
    return bool(config.only_tables) and name not in config.only_tables


def ensure_valid_config(config: GeneratorConfig) -> None:
    """
    Log configuration warnings and raise on errors.

    Raises:
        ConfigurationError: listing every validation error.
    """
    result: ValidationResult = validate_generator_config(config)
    for warning in result.warnings:
        logger.warning("Configuration warning: %s", warning.message)
    if not result.is_valid:
        raise ConfigurationError(
            "Configuration validation failed",
            [e.message for e in result.errors],
        )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SkippedTable:
    table: str
    reason: str

    def __str__(self) -> str:
        return f"{self.table} ({self.reason})"


@dataclass(frozen=True, slots=True)
class TableError:
    table: str
    message: str
    kind: str = "error"  # "error" | "conflict" | "collision"

    def __str__(self) -> str:
        return f"{self.table}: {self.message}"


@dataclass(frozen=False, slots=True)
class GenerationSummary:
    """
    Structured report returned by ``MutationGenerator.generate()``.

    Skipped tables are "nothing to do"; only ``errors`` are failures.
    """

    generated_tables: List[str] = field(default_factory=list)
    skipped_tables: List[SkippedTable] = field(default_factory=list)
    errors: List[TableError] = field(default_factory=list)
    files_written: List[str] = field(default_factory=list)
    previews: List[str] = field(default_factory=list)
    existing_files: List[ExistingFile] = field(default_factory=list)
    dry_run: bool = False
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def conflicts(self) -> List[TableError]:
        return [e for e in self.errors if e.kind == "conflict"]

    def skip_reason(self, table: str) -> Optional[str]:
        for skipped in self.skipped_tables:
            if skipped.table == table:
                return skipped.reason
        return None

    def preview_text(self) -> str:
        return "\n\n".join(self.previews)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  ZeroGen - Mutation Generation Summary")
        lines.append(f"{'='*60}")
        if self.dry_run:
            lines.append(f"  {DRY_RUN_LABEL}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Generated:        {len(self.generated_tables)} tables")
        lines.append(f"  Skipped:          {len(self.skipped_tables)} tables")
        lines.append(f"  Errors:           {len(self.errors)}")
        lines.append(f"  Total time:       {self.elapsed_seconds:.3f}s")

        if self.generated_tables:
            lines.append(f"{'─'*60}")
            lines.append(f"  Generated Tables ({len(self.generated_tables)}):")
            for table in self.generated_tables:
                lines.append(f"    ✓ {table}")

        if self.skipped_tables:
            lines.append(f"{'─'*60}")
            lines.append(f"  Skipped Tables ({len(self.skipped_tables)}):")
            for skipped in self.skipped_tables:
                lines.append(f"    ⊘ {skipped}")

        if self.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        if not self.dry_run:
            lines.append(f"{'─'*60}")
            lines.append(f"  Files Written ({len(self.files_written)}):")
            for path in self.files_written:
                lines.append(f"    ✓ {Path(path).name}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


@dataclass(frozen=False, slots=True)
class _TableOutcome:
    table: str
    skipped: Optional[str] = None
    error: Optional[TableError] = None
    records: List[FileRecord] = field(default_factory=list)
    previews: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# MutationGenerator
# ---------------------------------------------------------------------------


class MutationGenerator:
    """
    Per-table mutation file orchestrator.

    Usage::

        generator = MutationGenerator(schema, GeneratorConfig(dry_run=True))
        summary = generator.generate()
        print(summary.summary())
    """

    def __init__(
        self,
        schema: ExtractedSchema,
        config: Optional[GeneratorConfig] = None,
        manifest: Optional[GenerationManifest] = None,
        templates: Optional[MutationTemplates] = None,
    ) -> None:
        self._schema: ExtractedSchema = schema
        self._config: GeneratorConfig = config or GeneratorConfig()
        self._manifest: GenerationManifest = manifest or GenerationManifest.load(
            Path(self._config.resolved_manifest_file)
        )
        self._templates: MutationTemplates = templates or MutationTemplates(self._config)
        self._output_dir: Path = Path(self._config.output_directory)

    @property
    def manifest(self) -> GenerationManifest:
        return self._manifest

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate(self) -> GenerationSummary:
        """
        Run generation over every table of the extracted schema.

        Raises:
            ConfigurationError: before any table is processed.
        """
        ensure_valid_config(self._config)

        summary: GenerationSummary = GenerationSummary(dry_run=self._config.dry_run)
        summary.existing_files = detect_existing(
            self._output_dir, self._config.file_extension
        )
        if summary.existing_files and not self._config.force:
            logger.info("Found %d existing mutation file(s):", len(summary.existing_files))
            for existing in summary.existing_files:
                logger.info(
                    "  - %s.%s (%d bytes, modified %s)",
                    existing.name,
                    self._config.file_extension,
                    existing.size,
                    existing.modified.strftime("%Y-%m-%d %H:%M"),
                )

        tables: List[TableInfo] = list(self._schema.tables)
        collisions: Dict[str, str] = self._find_stem_collisions(tables)
        with Timer("mutation generation") as timer:
            with ThreadPoolExecutor(
                max_workers=self._config.workers,
                thread_name_prefix="zerogen",
            ) as pool:
                futures: Dict[str, Future[_TableOutcome]] = {
                    table.name: pool.submit(self._process_table, table)
                    for table in tables
                    if table.name not in collisions
                }
                outcomes: List[_TableOutcome] = [
                    futures[table.name].result()
                    if table.name in futures
                    else self._collision_outcome(table, collisions[table.name])
                    for table in tables
                ]

            for outcome in outcomes:
                self._collect(outcome, summary)

            if not self._config.dry_run:
                self._manifest.save()

        summary.elapsed_seconds = timer.elapsed
        if summary.success:
            logger.info(
                "Mutation generation finished: %d generated, %d skipped.",
                len(summary.generated_tables),
                len(summary.skipped_tables),
            )
        else:
            logger.error(
                "Mutation generation finished with %d error(s).", len(summary.errors)
            )
        return summary

    def build_files(self, table: TableInfo, patterns: PatternSet) -> List[GeneratedFile]:
        """The table's file set; the custom body is included only if absent."""
        names: Dict[str, str] = file_names(table, self._config.file_extension)
        bodies: Dict[str, str] = self._templates.render_all(table, patterns)

        files: List[GeneratedFile] = []
        for kind in (FileKind.GENERATED.value, FileKind.CUSTOM.value, FileKind.MAIN.value):
            path: Path = self._output_dir / names[kind]
            if kind == FileKind.CUSTOM.value and path.exists():
                continue
            files.append(GeneratedFile(
                path=str(path),
                kind=kind,
                content=bodies[kind],
                table=table.name,
            ))
        return files

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _process_table(self, table: TableInfo) -> _TableOutcome:
        name: str = table.name
        if is_table_excluded(name, self._config):
            return _TableOutcome(table=name, skipped=REASON_EXCLUDED)

        patterns: PatternSet = self._schema.patterns_for(name)
        if not self._manifest.should_regenerate(name, patterns, self._config.force):
            return _TableOutcome(table=name, skipped=REASON_UNCHANGED)
        if patterns.is_empty and not self._config.baseline_crud:
            return _TableOutcome(table=name, skipped=REASON_NO_PATTERNS)

        try:
            files: List[GeneratedFile] = self.build_files(table, patterns)
            for generated in files:
                if generated.kind != FileKind.CUSTOM.value:
                    check_overwrite(Path(generated.path), name, self._config.force)

            if self._config.dry_run:
                return _TableOutcome(table=name, previews=render_preview(files))

            records: List[FileRecord] = write_file_set(files)
            owned: List[str] = [
                str(self._output_dir / n)
                for n in file_names(table, self._config.file_extension).values()
            ]
            self._manifest.update_manifest(name, patterns, owned)
            logger.info("Generated mutations for %s (%d file(s)).", name, len(records))
            return _TableOutcome(table=name, records=records)

        except ConflictError as exc:
            logger.error("Conflict for %s: %s", name, exc)
            return _TableOutcome(
                table=name, error=TableError(name, str(exc), kind="conflict")
            )
        except Exception as exc:
            logger.error("Error generating mutations for %s: %s", name, exc, exc_info=True)
            return _TableOutcome(
                table=name,
                error=TableError(name, f"{type(exc).__name__}: {exc}"),
            )

    def _find_stem_collisions(self, tables: List[TableInfo]) -> Dict[str, str]:
        """
        Map each table whose file stem is already taken to the table that
        claimed it first. Excluded tables never claim a stem.
        """
        claimed: Dict[str, str] = {}
        collisions: Dict[str, str] = {}
        for table in tables:
            if is_table_excluded(table.name, self._config):
                continue
            owner: str = claimed.setdefault(table.entity_name, table.name)
            if owner != table.name:
                collisions[table.name] = owner
        return collisions

    def _collision_outcome(self, table: TableInfo, owner: str) -> _TableOutcome:
        names: Dict[str, str] = file_names(table, self._config.file_extension)
        message: str = (
            f"mutation files {names[FileKind.GENERATED.value]} are already owned by "
            f"table '{owner}'; exclude one of the two tables"
        )
        logger.error("File collision for %s: %s", table.name, message)
        return _TableOutcome(
            table=table.name, error=TableError(table.name, message, kind="collision")
        )

    @staticmethod
    def _collect(outcome: _TableOutcome, summary: GenerationSummary) -> None:
        if outcome.skipped is not None:
            summary.skipped_tables.append(SkippedTable(outcome.table, outcome.skipped))
        elif outcome.error is not None:
            summary.errors.append(outcome.error)
        else:
            summary.generated_tables.append(outcome.table)
            summary.files_written.extend(r.path for r in outcome.records)
            summary.previews.extend(outcome.previews)


# ---------------------------------------------------------------------------
# SchemaGenerator
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class SchemaGenerationResult:
    """Report returned by ``SchemaGenerator.generate()``."""

    schema_path: str = ""
    types_path: str = ""
    synthesis: Optional[SynthesisResult] = None
    validation: Optional[ValidationResult] = None
    changes: Optional[SchemaChanges] = None
    files_written: List[str] = field(default_factory=list)
    unchanged_files: List[str] = field(default_factory=list)
    previews: List[str] = field(default_factory=list)
    dry_run: bool = False

    def summary(self) -> str:
        lines: List[str] = [f"{'='*60}", "  ZeroGen - Schema Generation", f"{'='*60}"]
        if self.dry_run:
            lines.append(f"  {DRY_RUN_LABEL}")
        if self.synthesis is not None:
            lines.append(f"  {self.synthesis.summary()}")
        if self.changes is not None:
            lines.append(f"{'─'*60}")
            for line in self.changes.summary().splitlines():
                lines.append(f"  {line}")
            for note in self.changes.migration_notes:
                lines.append(f"    • {note}")
            for custom in self.changes.customizations:
                lines.append(f"    ⚠ {custom}")
        if self.validation is not None and self.validation.warnings:
            lines.append(f"{'─'*60}")
            for warning in self.validation.warnings:
                lines.append(f"    ⚠ {warning.message}")
        lines.append(f"{'─'*60}")
        for path in self.files_written:
            lines.append(f"    ✓ {path}")
        for path in self.unchanged_files:
            lines.append(f"    ⊘ {path} (unchanged)")
        lines.append(f"{'='*60}")
        return "\n".join(lines)


class SchemaGenerator:
    """
    Writes the schema aggregate and the types file for an extracted schema.

    Both files go through the same conflict check as mutation files; a file
    whose content would not change is not rewritten.
    """

    def __init__(
        self,
        schema: ExtractedSchema,
        config: Optional[GeneratorConfig] = None,
        synthesizer: Optional[SchemaSynthesizer] = None,
    ) -> None:
        self._schema: ExtractedSchema = schema
        self._config: GeneratorConfig = config or GeneratorConfig()
        self._synth: SchemaSynthesizer = synthesizer or SchemaSynthesizer(
            TypeMapper(self._config.type_overrides),
            self._config.polymorphic_targets,
        )

    def generate(self) -> SchemaGenerationResult:
        """
        Raises:
            ConfigurationError: before anything is synthesized.
            ZeroGenError: if the synthesized schema fails validation.
            ConflictError: if an existing schema or types file lost its banner.
        """
        ensure_valid_config(self._config)

        tables: List[TableInfo] = [
            t for t in self._schema.tables if not is_table_excluded(t.name, self._config)
        ]
        synthesis: SynthesisResult = self._synth.build(tables, self._schema.relationships)

        validation: ValidationResult = validate_schema_source(synthesis.schema_source)
        if not validation.is_valid:
            raise ZeroGenError(
                "Schema generation failed validation: "
                + "; ".join(e.message for e in validation.errors)
            )

        schema_path: Path = Path(self._config.resolved_schema_file)
        types_path: Path = Path(self._config.resolved_types_file)
        previous: Optional[str] = read_file(schema_path) if schema_path.is_file() else None

        result: SchemaGenerationResult = SchemaGenerationResult(
            schema_path=str(schema_path),
            types_path=str(types_path),
            synthesis=synthesis,
            validation=validation,
            changes=detect_schema_changes(previous, synthesis.schema_source),
            dry_run=self._config.dry_run,
        )

        outputs: List[Tuple[Path, str]] = [(schema_path, synthesis.schema_source)]
        if types_path != schema_path:
            outputs.append((types_path, synthesis.types_source))

        for path, _ in outputs:
            check_overwrite(path, "schema", self._config.force)

        for path, content in outputs:
            if path.is_file() and read_file(path) == content:
                result.unchanged_files.append(str(path))
                continue
            if self._config.dry_run:
                result.previews.append(f"=== {path} ===\n{content}")
                continue
            write_file(path, content)
            result.files_written.append(str(path))

        logger.info(
            "Schema generation: %d written, %d unchanged.",
            len(result.files_written),
            len(result.unchanged_files),
        )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MutationGenerator",
    "SchemaGenerator",
    "GenerationSummary",
    "SchemaGenerationResult",
    "SkippedTable",
    "TableError",
    "load_config_file",
    "parse_raw_config",
    "is_table_excluded",
    "ensure_valid_config",
    "DRY_RUN_LABEL",
]

logger.debug("zerogen.generator loaded.")
