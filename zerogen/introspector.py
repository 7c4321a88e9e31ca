# File: zerogen/introspector.py
"""
ZeroGen - Schema Introspector
==============================
Reads the live database catalog through the SQLAlchemy inspector and the
model registry's association declarations, producing an ``ExtractedSchema``.

Workflow::

    1. Acquire a connection from the ``DatabaseHandle`` (released on exit).
    2. List tables, dropping infrastructure tables (job queue, cache,
       cable, token and migration bookkeeping).
    3. Reflect columns, primary key and foreign keys per table.
    4. Reflect indexes and CHECK/UNIQUE constraints where the dialect
       supports them.
    5. Resolve registry models that have a backing table into
       relationship records.
    6. Run the pattern detector over the result.

No statement ever writes to the source database.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Union

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection, Engine, URL
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import CompileError, SQLAlchemyError
from sqlalchemy.types import TypeEngine
import sqlalchemy.types as sqltypes

from zerogen.models import (
    ColumnInfo,
    ConstraintInfo,
    ExtractedSchema,
    ForeignKeyInfo,
    IndexInfo,
    NativeType,
    PatternSet,
    RelationshipInfo,
    TableInfo,
)
from zerogen.patterns import PatternDetector
from zerogen.registry import ModelRegistry
from zerogen.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.introspector")

# Internal plumbing that must never reach the client schema.
EXCLUDED_TABLES: FrozenSet[str] = frozenset({
    "solid_cache_entries",
    "solid_queue_jobs",
    "solid_queue_blocked_executions",
    "solid_queue_claimed_executions",
    "solid_queue_failed_executions",
    "solid_queue_paused_executions",
    "solid_queue_ready_executions",
    "solid_queue_recurring_executions",
    "solid_queue_scheduled_executions",
    "solid_queue_semaphores",
    "solid_queue_processes",
    "solid_queue_pauses",
    "solid_queue_recurring_tasks",
    "solid_cable_messages",
    "refresh_tokens",
    "revoked_tokens",
    "unique_ids",
    "ar_internal_metadata",
    "schema_migrations",
    "versions",
    "alembic_version",
})


# ---------------------------------------------------------------------------
# Database handle
# ---------------------------------------------------------------------------


class DatabaseHandle:
    """
    Explicit owner of the read-only database connection.

    Accepts either a URL (an engine is created and disposed by the handle)
    or an existing ``Engine`` (left to its owner).

    Usage::

        with DatabaseHandle("postgresql://localhost/app") as db:
            schema = SchemaIntrospector(db, registry).extract_schema()
    """

    def __init__(self, url_or_engine: Union[str, URL, Engine], **engine_kwargs: Any) -> None:
        if isinstance(url_or_engine, Engine):
            self._engine: Engine = url_or_engine
            self._owns_engine: bool = False
        else:
            self._engine = create_engine(url_or_engine, **engine_kwargs)
            self._owns_engine = True

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Scoped connection; always returned to the pool on exit."""
        with self._engine.connect() as conn:
            logger.debug("Acquired %s connection.", self.dialect_name)
            yield conn
        logger.debug("Released %s connection.", self.dialect_name)

    def dispose(self) -> None:
        if self._owns_engine:
            self._engine.dispose()

    def __enter__(self) -> "DatabaseHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"<DatabaseHandle {self.dialect_name}>"


# ---------------------------------------------------------------------------
# Type normalisation
# ---------------------------------------------------------------------------


def normalize_native_type(sa_type: TypeEngine) -> NativeType:
    """
    Map a reflected SQLAlchemy type to a ``NativeType`` tag.

    Subclasses are checked before their bases (Enum before String, Text
    before String, BigInteger before Integer, Float before Numeric).
    """
    if isinstance(sa_type, sqltypes.Enum):
        return NativeType.ENUM
    if isinstance(sa_type, sqltypes.Boolean):
        return NativeType.BOOLEAN
    if isinstance(sa_type, sqltypes.Uuid):
        return NativeType.UUID
    if isinstance(sa_type, sqltypes.BigInteger):
        return NativeType.BIGINT
    if isinstance(sa_type, sqltypes.Integer):
        return NativeType.INTEGER
    if isinstance(sa_type, sqltypes.Float):
        return NativeType.FLOAT
    if isinstance(sa_type, sqltypes.Numeric):
        return NativeType.DECIMAL
    if isinstance(sa_type, sqltypes.TIMESTAMP):
        return NativeType.TIMESTAMP
    if isinstance(sa_type, sqltypes.DateTime):
        return NativeType.DATETIME
    if isinstance(sa_type, sqltypes.Date):
        return NativeType.DATE
    if isinstance(sa_type, sqltypes.Time):
        return NativeType.TIME
    if isinstance(sa_type, sqltypes.Interval):
        return NativeType.INTERVAL
    if isinstance(sa_type, sqltypes.JSON):
        if type(sa_type).__name__.upper() == "JSONB":
            return NativeType.JSONB
        return NativeType.JSON
    if isinstance(sa_type, sqltypes.ARRAY):
        return NativeType.ARRAY
    if isinstance(sa_type, sqltypes.Text):
        return NativeType.TEXT
    if isinstance(sa_type, sqltypes.String):
        return NativeType.STRING
    if isinstance(sa_type, (sqltypes.LargeBinary, sqltypes.BINARY, sqltypes.VARBINARY)):
        return NativeType.BINARY
    return NativeType.UNKNOWN


def _render_sql_type(sa_type: TypeEngine, inspector: Inspector) -> str:
    try:
        return str(sa_type.compile(dialect=inspector.dialect))
    except CompileError:
        return type(sa_type).__name__


# ---------------------------------------------------------------------------
# SchemaIntrospector
# ---------------------------------------------------------------------------


class SchemaIntrospector:
    """
    Builds the ``ExtractedSchema`` consumed by the synthesizer and the
    mutation generator.
    """

    def __init__(
        self,
        database: DatabaseHandle,
        registry: Optional[ModelRegistry] = None,
        *,
        excluded_tables: Iterable[str] = (),
        detector: Optional[PatternDetector] = None,
    ) -> None:
        self._database: DatabaseHandle = database
        self._registry: ModelRegistry = registry if registry is not None else ModelRegistry()
        self._excluded: FrozenSet[str] = EXCLUDED_TABLES | frozenset(excluded_tables)
        self._detector: PatternDetector = detector or PatternDetector()

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def extract_schema(self) -> ExtractedSchema:
        with Timer("introspection"), self._database.connect() as conn:
            inspector: Inspector = inspect(conn)
            table_names: List[str] = self.list_tables(inspector)

            tables: List[TableInfo] = [
                self._extract_table(inspector, name) for name in table_names
            ]
            indexes: Dict[str, List[IndexInfo]] = {
                name: self._extract_indexes(inspector, name) for name in table_names
            }
            constraints: Dict[str, List[ConstraintInfo]] = {
                name: self._extract_constraints(inspector, name) for name in table_names
            }

        relationships: List[RelationshipInfo] = self._registry.resolve(table_names)
        patterns: Dict[str, PatternSet] = self._detector.detect_all(
            tables, relationships, self._registry
        )

        logger.info(
            "Extracted %d table(s), %d relationship record(s) from %s.",
            len(tables),
            len(relationships),
            self._database.dialect_name,
        )
        return ExtractedSchema(
            tables=tables,
            relationships=relationships,
            indexes=indexes,
            constraints=constraints,
            patterns=patterns,
        )

    def list_tables(self, inspector: Inspector) -> List[str]:
        names: List[str] = sorted(inspector.get_table_names())
        kept: List[str] = [n for n in names if n not in self._excluded]
        dropped: int = len(names) - len(kept)
        if dropped:
            logger.debug("Excluded %d infrastructure table(s).", dropped)
        return kept

    # -----------------------------------------------------------------
    # Per-table extraction
    # -----------------------------------------------------------------

    def _extract_table(self, inspector: Inspector, name: str) -> TableInfo:
        pk_columns: List[str] = (
            inspector.get_pk_constraint(name).get("constrained_columns") or []
        )

        columns: List[ColumnInfo] = []
        for raw in inspector.get_columns(name):
            sa_type: TypeEngine = raw["type"]
            col_name: str = raw["name"]

            enum_values: Optional[List[str]] = self._registry.enum_values(name, col_name)
            if enum_values is None and isinstance(sa_type, sqltypes.Enum):
                enum_values = list(sa_type.enums)

            default: Any = raw.get("default")
            columns.append(ColumnInfo(
                name=col_name,
                native_type=normalize_native_type(sa_type),
                sql_type=_render_sql_type(sa_type, inspector),
                nullable=bool(raw.get("nullable", True)),
                default=str(default) if default is not None else None,
                comment=raw.get("comment"),
                primary_key=col_name in pk_columns,
                is_enum=enum_values is not None,
                enum_values=enum_values or [],
            ))

        foreign_keys: List[ForeignKeyInfo] = []
        for fk in inspector.get_foreign_keys(name):
            options: Dict[str, Any] = fk.get("options") or {}
            for local_col, remote_col in zip(
                fk.get("constrained_columns") or [], fk.get("referred_columns") or []
            ):
                foreign_keys.append(ForeignKeyInfo(
                    name=fk.get("name"),
                    from_table=name,
                    from_column=local_col,
                    to_table=fk["referred_table"],
                    to_column=remote_col,
                    on_delete=options.get("ondelete"),
                    on_update=options.get("onupdate"),
                ))

        return TableInfo(
            name=name,
            columns=columns,
            primary_key=pk_columns[0] if pk_columns else None,
            foreign_keys=foreign_keys,
        )

    def _extract_indexes(self, inspector: Inspector, name: str) -> List[IndexInfo]:
        try:
            raw_indexes: List[Dict[str, Any]] = inspector.get_indexes(name)
        except (NotImplementedError, SQLAlchemyError) as exc:
            logger.warning("Could not read indexes for %s: %s", name, exc)
            return []

        indexes: List[IndexInfo] = []
        for idx in raw_indexes:
            dialect_options: Dict[str, Any] = idx.get("dialect_options") or {}
            where: Any = dialect_options.get("postgresql_where")
            indexes.append(IndexInfo(
                name=idx.get("name"),
                table=name,
                columns=[c for c in idx.get("column_names") or [] if c],
                unique=bool(idx.get("unique")),
                using=dialect_options.get("postgresql_using"),
                where=str(where) if where is not None else None,
            ))
        return indexes

    def _extract_constraints(self, inspector: Inspector, name: str) -> List[ConstraintInfo]:
        constraints: List[ConstraintInfo] = []
        try:
            for check in inspector.get_check_constraints(name):
                constraints.append(ConstraintInfo(
                    name=check.get("name"),
                    table=name,
                    constraint_type="check",
                    definition=str(check.get("sqltext", "")),
                ))
        except NotImplementedError:
            logger.debug("Dialect does not report CHECK constraints.")
        except SQLAlchemyError as exc:
            logger.warning("Could not read CHECK constraints for %s: %s", name, exc)

        try:
            for unique in inspector.get_unique_constraints(name):
                constraints.append(ConstraintInfo(
                    name=unique.get("name"),
                    table=name,
                    constraint_type="unique",
                    definition=", ".join(unique.get("column_names") or []),
                ))
        except NotImplementedError:
            logger.debug("Dialect does not report UNIQUE constraints.")
        except SQLAlchemyError as exc:
            logger.warning("Could not read UNIQUE constraints for %s: %s", name, exc)

        return constraints


__all__: List[str] = [
    "EXCLUDED_TABLES",
    "DatabaseHandle",
    "SchemaIntrospector",
    "normalize_native_type",
]

logger.debug("zerogen.introspector loaded.")
