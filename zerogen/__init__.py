# File: zerogen/__init__.py
"""
ZeroGen - Client Schema and Mutation Generator
===============================================

Introspects a relational database together with a model registry, detects
recurring structural patterns (soft deletion, positioning, enumerations,
polymorphic references) and writes:

    - a declarative Zero client schema plus a types file, and
    - per-table mutation files split into generated / custom / main parts,

regenerating incrementally without ever overwriting hand-written code.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ SchemaIntrospector│────▶│ PatternDetector  │
    │   (cli.py)   │     │ (introspector.py) │     │  (patterns.py)   │
    └──────────────┘     └────────┬─────────┘     └──────────────────┘
                                  │ ExtractedSchema
                    ┌─────────────┴─────────────┐
                    ▼                           ▼
          ┌──────────────────┐        ┌───────────────────┐
          │ SchemaGenerator  │        │ MutationGenerator │
          │ (synthesizer.py) │        │  (templates.py)   │
          └────────┬─────────┘        └─────────┬─────────┘
                   └──────────┬─────────────────┘
                              ▼
                 ┌──────────────────────────┐
                 │ manifest.py / exporters  │
                 └──────────────────────────┘

Usage::

    from zerogen import (
        DatabaseHandle, GeneratorConfig, MutationGenerator, SchemaIntrospector,
    )

    with DatabaseHandle("sqlite:///app.db") as db:
        schema = SchemaIntrospector(db).extract_schema()
    print(MutationGenerator(schema, GeneratorConfig(dry_run=True)).generate().summary())

    # From the command line
    python -m zerogen mutations --database-url sqlite:///app.db -o ./zero
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from zerogen.exceptions import ConfigurationError, ConflictError, ZeroGenError
from zerogen.models import (
    AssociationInfo,
    AssociationKind,
    ColumnInfo,
    ExtractedSchema,
    FileKind,
    GeneratedFile,
    GeneratorConfig,
    NativeType,
    PatternSet,
    PositioningOperation,
    RelationshipInfo,
    TableInfo,
    TargetType,
)
from zerogen.type_mapper import MappedType, TypeMapper
from zerogen.registry import ModelDescriptor, ModelRegistry
from zerogen.introspector import EXCLUDED_TABLES, DatabaseHandle, SchemaIntrospector
from zerogen.patterns import PatternDetector
from zerogen.synthesizer import SchemaSynthesizer, SynthesisResult, detect_schema_changes
from zerogen.templates import MutationTemplates
from zerogen.manifest import GenerationManifest, check_overwrite, detect_existing
from zerogen.validators import (
    ValidationResult,
    validate_generator_config,
    validate_schema_source,
)
from zerogen.generator import (
    GenerationSummary,
    MutationGenerator,
    SchemaGenerationResult,
    SchemaGenerator,
    load_config_file,
    parse_raw_config,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestrators
    "MutationGenerator",
    "SchemaGenerator",
    "GenerationSummary",
    "SchemaGenerationResult",
    "load_config_file",
    "parse_raw_config",
    # Errors
    "ZeroGenError",
    "ConfigurationError",
    "ConflictError",
    # Models
    "AssociationInfo",
    "AssociationKind",
    "ColumnInfo",
    "ExtractedSchema",
    "FileKind",
    "GeneratedFile",
    "GeneratorConfig",
    "NativeType",
    "PatternSet",
    "PositioningOperation",
    "RelationshipInfo",
    "TableInfo",
    "TargetType",
    # Phases
    "TypeMapper",
    "MappedType",
    "ModelDescriptor",
    "ModelRegistry",
    "EXCLUDED_TABLES",
    "DatabaseHandle",
    "SchemaIntrospector",
    "PatternDetector",
    "SchemaSynthesizer",
    "SynthesisResult",
    "detect_schema_changes",
    "MutationTemplates",
    "GenerationManifest",
    "check_overwrite",
    "detect_existing",
    # Validation
    "ValidationResult",
    "validate_generator_config",
    "validate_schema_source",
]
