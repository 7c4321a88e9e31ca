# File: zerogen/type_mapper.py
"""
ZeroGen - Type Mapper
======================
Maps a column's native database type to the client schema language's
column builders (``string()``, ``number()``, ``boolean()``, ``json()``) and
to the TypeScript types used by the types file and mutation parameters.

The mapping is total: an unrecognised native type falls back to the
string-like builder with a warning instead of failing, so a new column
type in the database never halts generation.

Precedence, highest first:
    1. ``type_overrides`` from configuration (``"table.column"`` keys)
    2. well-known column names (``created_at``, ``position``, ...)
    3. enum-backed integer columns (serialised as their label)
    4. the native type tag
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from zerogen.models import ColumnInfo, NativeType, TableInfo, TargetType

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.type_mapper")

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Keys are the plain string values of ``NativeType``.
_NATIVE_TYPE_MAP: Dict[str, TargetType] = {
    "uuid": TargetType.STRING,
    "string": TargetType.STRING,
    "text": TargetType.STRING,
    "binary": TargetType.STRING,
    "enum": TargetType.STRING,
    "integer": TargetType.NUMBER,
    "bigint": TargetType.NUMBER,
    "decimal": TargetType.NUMBER,
    "float": TargetType.NUMBER,
    "datetime": TargetType.NUMBER,
    "timestamp": TargetType.NUMBER,
    "date": TargetType.NUMBER,
    "time": TargetType.NUMBER,
    "interval": TargetType.NUMBER,
    "boolean": TargetType.BOOLEAN,
    "json": TargetType.JSON,
    "jsonb": TargetType.JSON,
    "array": TargetType.JSON,
}

COLUMN_NAME_OVERRIDES: Dict[str, TargetType] = {
    "created_at": TargetType.NUMBER,
    "updated_at": TargetType.NUMBER,
    "lock_version": TargetType.NUMBER,
    "position": TargetType.NUMBER,
    "sort_order": TargetType.NUMBER,
    "priority": TargetType.NUMBER,
}

_TYPESCRIPT_TYPES: Dict[str, str] = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "json": "any",
}

# Ordered: first match wins.
_SQL_TYPE_SUGGESTIONS: Tuple[Tuple[re.Pattern[str], TargetType], ...] = (
    (re.compile(r"uuid", re.IGNORECASE), TargetType.STRING),
    (re.compile(r"json", re.IGNORECASE), TargetType.JSON),
    (re.compile(r"\[\]|array", re.IGNORECASE), TargetType.JSON),
    (re.compile(r"bool", re.IGNORECASE), TargetType.BOOLEAN),
    (re.compile(r"int|serial|numeric|decimal|float|double|real", re.IGNORECASE),
     TargetType.NUMBER),
    (re.compile(r"timestamp|date|time|interval", re.IGNORECASE), TargetType.NUMBER),
    (re.compile(r"char|text|clob|citext", re.IGNORECASE), TargetType.STRING),
)

# Canonical order of builder imports in the schema file.
_BUILDER_ORDER: Tuple[TargetType, ...] = (
    TargetType.STRING,
    TargetType.NUMBER,
    TargetType.BOOLEAN,
    TargetType.JSON,
)


def _native(column: ColumnInfo) -> str:
    native: object = column.native_type
    return str(getattr(native, "value", native))


# ---------------------------------------------------------------------------
# Mapped type value object
# ---------------------------------------------------------------------------


class MappedType:
    """A target builder plus its optionality, renderable as schema source."""

    __slots__ = ("target", "optional")

    def __init__(self, target: TargetType, optional: bool = False) -> None:
        self.target: TargetType = TargetType(target)
        self.optional: bool = optional

    def render(self) -> str:
        base: str = f"{self.target.value}()"
        return f"{base}.optional()" if self.optional else base

    @property
    def typescript(self) -> str:
        return _TYPESCRIPT_TYPES[self.target.value]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MappedType):
            return NotImplemented
        return self.target == other.target and self.optional == other.optional

    def __hash__(self) -> int:
        return hash((self.target, self.optional))

    def __repr__(self) -> str:
        return f"<MappedType {self.render()}>"


# ---------------------------------------------------------------------------
# TypeMapper
# ---------------------------------------------------------------------------


class TypeMapper:
    """
    Pure mapping from introspected columns to target types.

    Usage::

        mapper = TypeMapper(type_overrides={"tasks.metadata": "json"})
        mapper.map_column(column, table).render()   # 'json().optional()'
    """

    def __init__(self, type_overrides: Optional[Mapping[str, object]] = None) -> None:
        self._overrides: Dict[str, TargetType] = {
            key: TargetType(value) for key, value in (type_overrides or {}).items()
        }

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def map_column(
        self,
        column: ColumnInfo,
        table: Optional[TableInfo] = None,
    ) -> MappedType:
        """Map a column to its schema builder, appending ``.optional()`` when nullable."""
        target: TargetType = self.target_for(column, table)
        optional: bool = column.nullable and not self._is_primary_key(column, table)
        return MappedType(target, optional)

    def map_primary_key(
        self,
        column: ColumnInfo,
        table: Optional[TableInfo] = None,
    ) -> MappedType:
        """Primary keys are never optional; integers stay numeric."""
        native: str = _native(column)
        if native == NativeType.UUID.value:
            return MappedType(TargetType.STRING)
        if native in (NativeType.INTEGER.value, NativeType.BIGINT.value):
            return MappedType(TargetType.NUMBER)
        return MappedType(TargetType.STRING)

    def target_for(
        self,
        column: ColumnInfo,
        table: Optional[TableInfo] = None,
    ) -> TargetType:
        if table is not None:
            override: Optional[TargetType] = self._overrides.get(
                f"{table.name}.{column.name}"
            )
            if override is not None:
                return override

        if column.name in COLUMN_NAME_OVERRIDES:
            return COLUMN_NAME_OVERRIDES[column.name]

        native: str = _native(column)
        if column.is_enum and native in (
            NativeType.INTEGER.value,
            NativeType.BIGINT.value,
        ):
            return TargetType.STRING

        mapped: Optional[TargetType] = _NATIVE_TYPE_MAP.get(native)
        if mapped is None:
            logger.warning(
                "Unknown column type '%s' for %s.%s (sql type '%s' looks like "
                "%s()); defaulting to string(). Add a type override to change it.",
                native,
                table.name if table is not None else "?",
                column.name,
                column.sql_type,
                suggest_type_for_sql_type(column.sql_type).value,
            )
            return TargetType.STRING
        return mapped

    def typescript_type(
        self,
        column: ColumnInfo,
        table: Optional[TableInfo] = None,
    ) -> str:
        """TypeScript type for interfaces and mutation parameters."""
        if column.is_enum and column.enum_values:
            return " | ".join(f"'{v}'" for v in column.enum_values)
        return _TYPESCRIPT_TYPES[self.target_for(column, table).value]

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _is_primary_key(column: ColumnInfo, table: Optional[TableInfo]) -> bool:
        if column.primary_key or column.name == "id":
            return True
        return table is not None and table.primary_key == column.name


def suggest_type_for_sql_type(sql_type: str) -> TargetType:
    """
    Infer a target type from a raw SQL type string.

    Used for columns whose native type could not be normalised, e.g. a
    custom domain type reported verbatim by the driver.
    """
    for pattern, target in _SQL_TYPE_SUGGESTIONS:
        if pattern.search(sql_type or ""):
            return target
    return TargetType.STRING


def builder_imports(used: Iterable[MappedType]) -> List[str]:
    """Builder names to import for the given mapped types, in canonical order."""
    targets: Set[TargetType] = {m.target for m in used}
    return [t.value for t in _BUILDER_ORDER if t in targets]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TypeMapper",
    "MappedType",
    "suggest_type_for_sql_type",
    "builder_imports",
    "COLUMN_NAME_OVERRIDES",
]

logger.debug("zerogen.type_mapper loaded.")
