# File: zerogen/models.py
"""
ZeroGen - Core Data Models
===========================
Pydantic V2 models representing the introspected database schema, the
detected structural patterns, the generated files and the generator
configuration.  These models are the single source of truth for the whole
pipeline: Introspection -> Pattern Detection -> Synthesis -> Export.

Introspected entities (tables, columns, keys, relationships, patterns) are
frozen: they are created once per run and shared read-only between worker
threads.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from zerogen.utils import (
    sha256_hex,
    table_to_class_name,
    table_to_entity_name,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class NativeType(str, Enum):
    """Database-side column type tag, normalised across dialects."""

    UUID = "uuid"
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    DATE = "date"
    TIME = "time"
    INTERVAL = "interval"
    JSON = "json"
    JSONB = "jsonb"
    BINARY = "binary"
    ARRAY = "array"
    ENUM = "enum"
    UNKNOWN = "unknown"


class TargetType(str, Enum):
    """Column builders available in the client schema language."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"


class AssociationKind(str, Enum):
    """ORM association cardinalities."""

    BELONGS_TO = "belongs_to"
    HAS_MANY = "has_many"
    HAS_ONE = "has_one"


class FileKind(str, Enum):
    """Logical kind of an emitted file."""

    GENERATED = "generated"
    CUSTOM = "custom"
    MAIN = "main"
    SCHEMA = "schema"
    TYPES = "types"


class PositioningOperation(str, Enum):
    """Move operations a positionable collection can support."""

    MOVE_BEFORE = "move_before"
    MOVE_AFTER = "move_after"
    MOVE_TO_TOP = "move_to_top"
    MOVE_TO_BOTTOM = "move_to_bottom"


ALL_POSITIONING_OPERATIONS: List[str] = [op.value for op in PositioningOperation]

# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Introspected schema primitives
# ---------------------------------------------------------------------------


class ColumnInfo(BaseModel):
    """A single column as reported by the database catalog."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    native_type: NativeType = Field(
        default=NativeType.UNKNOWN, description="Normalised native type tag."
    )
    sql_type: str = Field(default="", description="Raw SQL type string.")
    nullable: bool = Field(default=True, description="Whether the column allows NULL.")
    default: Optional[str] = Field(default=None, description="Server default, as text.")
    comment: Optional[str] = Field(default=None, description="Column comment.")
    primary_key: bool = Field(default=False, description="Part of the primary key?")
    is_enum: bool = Field(default=False, description="Backed by a declared enumeration?")
    enum_values: List[str] = Field(
        default_factory=list, description="Allowed values when enum-backed."
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_temporal(self) -> bool:
        return self.native_type in (
            NativeType.DATETIME.value,
            NativeType.TIMESTAMP.value,
            NativeType.DATE.value,
            NativeType.TIME.value,
        )

    @computed_field  # type: ignore[misc]
    @property
    def is_integer(self) -> bool:
        return self.native_type in (NativeType.INTEGER.value, NativeType.BIGINT.value)

    def __repr__(self) -> str:
        flags: List[str] = []
        if self.primary_key:
            flags.append("PK")
        if self.nullable:
            flags.append("NULL")
        if self.is_enum:
            flags.append("ENUM")
        flag_str: str = f" [{','.join(flags)}]" if flags else ""
        return f"<Column {self.name}: {self.native_type}{flag_str}>"


class ForeignKeyInfo(BaseModel):
    """Directed edge between two tables."""

    model_config = _FROZEN_CONFIG

    name: Optional[str] = Field(default=None, description="Constraint name.")
    from_table: str = Field(..., min_length=1)
    from_column: str = Field(..., min_length=1)
    to_table: str = Field(..., min_length=1)
    to_column: str = Field(default="id", min_length=1)
    on_delete: Optional[str] = Field(default=None)
    on_update: Optional[str] = Field(default=None)

    def __repr__(self) -> str:
        return (
            f"<FK {self.from_table}.{self.from_column} -> "
            f"{self.to_table}.{self.to_column}>"
        )


class IndexInfo(BaseModel):
    """Database index metadata."""

    model_config = _FROZEN_CONFIG

    name: Optional[str] = Field(default=None)
    table: str = Field(..., min_length=1)
    columns: List[str] = Field(default_factory=list)
    unique: bool = Field(default=False)
    using: Optional[str] = Field(default=None, description="Index method, e.g. btree.")
    where: Optional[str] = Field(default=None, description="Partial index predicate.")


class ConstraintInfo(BaseModel):
    """CHECK or UNIQUE table constraint."""

    model_config = _FROZEN_CONFIG

    name: Optional[str] = Field(default=None)
    table: str = Field(..., min_length=1)
    constraint_type: Literal["check", "unique"] = Field(...)
    definition: str = Field(default="", description="SQL text or column list.")


class TableInfo(BaseModel):
    """
    One introspected table.

    Identity is the table name.  Created once per introspection run and
    never mutated afterwards.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Table name.")
    columns: List[ColumnInfo] = Field(default_factory=list)
    primary_key: Optional[str] = Field(default=None, description="Primary key column.")
    foreign_keys: List[ForeignKeyInfo] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def entity_name(self) -> str:
        """Singular snake_case name used for file stems."""
        return table_to_entity_name(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def class_name(self) -> str:
        return table_to_class_name(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @computed_field  # type: ignore[misc]
    @property
    def resolved_primary_key(self) -> str:
        return self.primary_key or "id"

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    def __repr__(self) -> str:
        return (
            f"<Table {self.name}: {len(self.columns)} cols, "
            f"{len(self.foreign_keys)} FKs>"
        )


# ---------------------------------------------------------------------------
# Model-level relationships
# ---------------------------------------------------------------------------


class AssociationInfo(BaseModel):
    """
    A single declared association on a domain model.

    ``target_table`` is None for polymorphic belongs-to associations; their
    row-level target is held in ``foreign_type``.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    kind: AssociationKind = Field(...)
    foreign_key: str = Field(..., min_length=1)
    target_table: Optional[str] = Field(default=None)
    target_class: Optional[str] = Field(default=None)
    through: Optional[str] = Field(default=None, description="Indirection association.")
    dependent: Optional[str] = Field(default=None, description="Cascade policy.")
    optional: bool = Field(default=False)
    polymorphic: bool = Field(default=False)
    foreign_type: Optional[str] = Field(
        default=None, description="Discriminator column for polymorphic belongs-to."
    )

    def __repr__(self) -> str:
        target: str = self.target_table or "<polymorphic>"
        return f"<{self.kind} {self.name} -> {target} via {self.foreign_key}>"


class RelationshipInfo(BaseModel):
    """All associations declared by one resolved domain model."""

    model_config = _FROZEN_CONFIG

    model: str = Field(..., min_length=1, description="Domain model name.")
    table: str = Field(..., min_length=1, description="Backing table.")
    belongs_to: List[AssociationInfo] = Field(default_factory=list)
    has_many: List[AssociationInfo] = Field(default_factory=list)
    has_one: List[AssociationInfo] = Field(default_factory=list)
    polymorphic: List[AssociationInfo] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Patterns (tagged union)
# ---------------------------------------------------------------------------


class SoftDeletionPattern(BaseModel):
    """Rows are hidden by setting a tombstone timestamp instead of deleting."""

    model_config = _FROZEN_CONFIG

    kind: Literal["soft_deletion"] = "soft_deletion"
    column: str = Field(..., min_length=1)


class PositioningPattern(BaseModel):
    """Rows are ordered by an integer position column."""

    model_config = _FROZEN_CONFIG

    kind: Literal["positioning"] = "positioning"
    column: str = Field(..., min_length=1)
    operations: List[PositioningOperation] = Field(default_factory=list)


class EnumColumn(BaseModel):
    model_config = _FROZEN_CONFIG

    column: str = Field(..., min_length=1)
    values: List[str] = Field(default_factory=list)


class EnumsPattern(BaseModel):
    """One or more enum-backed columns."""

    model_config = _FROZEN_CONFIG

    kind: Literal["enums"] = "enums"
    columns: List[EnumColumn] = Field(default_factory=list)


class PolymorphicAssociation(BaseModel):
    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    type_column: str = Field(..., min_length=1)
    id_column: str = Field(..., min_length=1)


class PolymorphicPattern(BaseModel):
    """One or more polymorphic belongs-to associations."""

    model_config = _FROZEN_CONFIG

    kind: Literal["polymorphic"] = "polymorphic"
    associations: List[PolymorphicAssociation] = Field(default_factory=list)


Pattern = Annotated[
    Union[SoftDeletionPattern, PositioningPattern, EnumsPattern, PolymorphicPattern],
    Field(discriminator="kind"),
]


class PatternSet(BaseModel):
    """
    Every pattern detected for one table.

    The set is derived, never stored; its ``signature`` is what the
    manifest records to decide whether a table must be regenerated.
    """

    model_config = _FROZEN_CONFIG

    table: str = Field(..., min_length=1)
    patterns: List[Pattern] = Field(default_factory=list)

    def _first(self, kind: str) -> Optional[BaseModel]:
        for pattern in self.patterns:
            if pattern.kind == kind:
                return pattern
        return None

    @property
    def soft_deletion(self) -> Optional[SoftDeletionPattern]:
        return self._first("soft_deletion")  # type: ignore[return-value]

    @property
    def positioning(self) -> Optional[PositioningPattern]:
        return self._first("positioning")  # type: ignore[return-value]

    @property
    def enums(self) -> Optional[EnumsPattern]:
        return self._first("enums")  # type: ignore[return-value]

    @property
    def polymorphic(self) -> Optional[PolymorphicPattern]:
        return self._first("polymorphic")  # type: ignore[return-value]

    @property
    def is_empty(self) -> bool:
        return not self.patterns

    @property
    def kinds(self) -> List[str]:
        return [p.kind for p in self.patterns]

    def signature(self) -> str:
        """Structural fingerprint of the pattern set (order-stable JSON hash)."""
        payload: List[Dict[str, object]] = [
            p.model_dump(mode="json") for p in self.patterns
        ]
        return sha256_hex(json.dumps(payload, sort_keys=True, separators=(",", ":")))

    def __repr__(self) -> str:
        return f"<PatternSet {self.table}: {', '.join(self.kinds) or 'none'}>"


# ---------------------------------------------------------------------------
# Introspection result
# ---------------------------------------------------------------------------


class ExtractedSchema(BaseModel):
    """Everything the introspector produced in one run."""

    model_config = _FROZEN_CONFIG

    tables: List[TableInfo] = Field(default_factory=list)
    relationships: List[RelationshipInfo] = Field(default_factory=list)
    indexes: Dict[str, List[IndexInfo]] = Field(default_factory=dict)
    constraints: Dict[str, List[ConstraintInfo]] = Field(default_factory=dict)
    patterns: Dict[str, PatternSet] = Field(default_factory=dict)

    def get_table(self, name: str) -> Optional[TableInfo]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def patterns_for(self, table_name: str) -> PatternSet:
        return self.patterns.get(table_name) or PatternSet(table=table_name)

    @computed_field  # type: ignore[misc]
    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def __repr__(self) -> str:
        return (
            f"<ExtractedSchema {len(self.tables)} tables, "
            f"{len(self.relationships)} relationships>"
        )


# ---------------------------------------------------------------------------
# Generated output & manifest
# ---------------------------------------------------------------------------


class GeneratedFile(BaseModel):
    """A single file body produced by the generator."""

    model_config = _FROZEN_CONFIG

    path: str = Field(..., min_length=1, description="Target file path.")
    kind: FileKind = Field(...)
    content: str = Field(..., description="Full file content.")
    table: Optional[str] = Field(default=None, description="Owning table, if any.")

    @computed_field  # type: ignore[misc]
    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def __repr__(self) -> str:
        return f"<GeneratedFile {self.kind} {self.path} ({self.size_bytes} bytes)>"


class ManifestEntry(BaseModel):
    """What was last generated for one table."""

    model_config = _SHARED_CONFIG

    table: str = Field(..., min_length=1)
    pattern_signature: str = Field(..., min_length=1)
    files: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ManifestDocument(BaseModel):
    """On-disk manifest format."""

    model_config = _SHARED_CONFIG

    version: int = Field(default=1, ge=1)
    tables: Dict[str, ManifestEntry] = Field(default_factory=dict)


class ExistingFile(BaseModel):
    """A mutation file already present in the output directory."""

    model_config = _FROZEN_CONFIG

    name: str
    size: int
    modified: datetime


# ---------------------------------------------------------------------------
# Generator configuration
# ---------------------------------------------------------------------------


class GeneratorConfig(BaseModel):
    """
    Master configuration for schema and mutation generation.

    Structural checks live here; semantic checks (identifier validity,
    name collisions) live in ``zerogen.validators`` so that they can be
    reported together as a ``ConfigurationError``.
    """

    model_config = _SHARED_CONFIG

    # -- Output -------------------------------------------------------------
    output_directory: str = Field(
        default="frontend/src/lib/zero",
        min_length=1,
        description="Directory receiving per-table mutation files.",
    )
    schema_file: Optional[str] = Field(
        default=None, description="Schema aggregate path (default: <output>/schema.ts)."
    )
    types_file: Optional[str] = Field(
        default=None, description="Types file path (default: <output>/types.ts)."
    )
    manifest_file: Optional[str] = Field(
        default=None,
        description="Manifest path (default: <output>/.zerogen-manifest.json).",
    )
    file_extension: str = Field(default="ts", min_length=1)
    client_import: str = Field(
        default="./client",
        description="Module the generated mutations import getZero from.",
    )

    # -- Invocation modes ---------------------------------------------------
    dry_run: bool = Field(default=False, description="Emit text, write nothing.")
    force: bool = Field(
        default=False, description="Bypass incremental skip and conflict abort."
    )

    # -- Table selection ----------------------------------------------------
    excluded_tables: List[str] = Field(
        default_factory=list,
        description="Added to the built-in infrastructure exclusion list.",
    )
    exclude_patterns: List[str] = Field(
        default_factory=list, description="fnmatch globs of tables to skip."
    )
    only_tables: List[str] = Field(
        default_factory=list, description="When set, every other table is excluded."
    )
    baseline_crud: bool = Field(
        default=False,
        description="Generate CRUD mutations for tables without any pattern.",
    )

    # -- Naming & typing ----------------------------------------------------
    name_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="Logical operation name -> emitted verb.",
    )
    type_overrides: Dict[str, TargetType] = Field(
        default_factory=dict, description="'table.column' -> target type."
    )

    # -- Pattern detection --------------------------------------------------
    soft_delete_columns: List[str] = Field(
        default_factory=lambda: ["deleted_at", "discarded_at"], min_length=1
    )
    position_column: str = Field(default="position", min_length=1)
    positioning_operations: List[PositioningOperation] = Field(
        default_factory=lambda: list(ALL_POSITIONING_OPERATIONS)
    )
    polymorphic_targets: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Association name -> candidate singular table names.",
    )

    # -- Concurrency --------------------------------------------------------
    workers: int = Field(default=4, ge=1, le=64)

    @field_validator("file_extension")
    @classmethod
    def _strip_leading_dot(cls, v: str) -> str:
        return v.lstrip(".")

    @computed_field  # type: ignore[misc]
    @property
    def resolved_schema_file(self) -> str:
        return self.schema_file or f"{self.output_directory}/schema.ts"

    @computed_field  # type: ignore[misc]
    @property
    def resolved_types_file(self) -> str:
        return self.types_file or f"{self.output_directory}/types.ts"

    @computed_field  # type: ignore[misc]
    @property
    def resolved_manifest_file(self) -> str:
        return self.manifest_file or f"{self.output_directory}/.zerogen-manifest.json"

    def __repr__(self) -> str:
        return (
            f"<GeneratorConfig output={self.output_directory} "
            f"dry_run={self.dry_run} force={self.force}>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    # Enums
    "NativeType",
    "TargetType",
    "AssociationKind",
    "FileKind",
    "PositioningOperation",
    "ALL_POSITIONING_OPERATIONS",
    # Schema primitives
    "ColumnInfo",
    "ForeignKeyInfo",
    "IndexInfo",
    "ConstraintInfo",
    "TableInfo",
    # Relationships
    "AssociationInfo",
    "RelationshipInfo",
    # Patterns
    "SoftDeletionPattern",
    "PositioningPattern",
    "EnumColumn",
    "EnumsPattern",
    "PolymorphicAssociation",
    "PolymorphicPattern",
    "Pattern",
    "PatternSet",
    # Results
    "ExtractedSchema",
    "GeneratedFile",
    "ManifestEntry",
    "ManifestDocument",
    "ExistingFile",
    # Config
    "GeneratorConfig",
]

logger.debug("zerogen.models loaded: %d public symbols.", len(__all__))
