# File: zerogen/patterns.py
"""
ZeroGen - Pattern Detector
===========================
Classifies each table by the recurring structural patterns that select
specialised mutations:

    soft_deletion   a temporal tombstone column (``deleted_at``, ``discarded_at``)
    positioning     an integer ``position`` column; carries the supported moves
    enums           columns backed by a declared enumeration
    polymorphic     belongs-to associations without a fixed target table

Patterns are emitted in that fixed order so the set's signature is stable
between runs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from zerogen.models import (
    ALL_POSITIONING_OPERATIONS,
    ColumnInfo,
    EnumColumn,
    EnumsPattern,
    GeneratorConfig,
    PatternSet,
    PolymorphicAssociation,
    PolymorphicPattern,
    PositioningPattern,
    RelationshipInfo,
    SoftDeletionPattern,
    TableInfo,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.patterns")

DEFAULT_SOFT_DELETE_COLUMNS: List[str] = ["deleted_at", "discarded_at"]
DEFAULT_POSITION_COLUMN: str = "position"


class PatternDetector:
    """
    Derives a ``PatternSet`` per table from columns, relationships and the
    table's model descriptor.

    Usage::

        detector = PatternDetector.from_config(config)
        patterns = detector.detect(table, relationship, descriptor)
    """

    def __init__(
        self,
        soft_delete_columns: Sequence[str] = tuple(DEFAULT_SOFT_DELETE_COLUMNS),
        position_column: str = DEFAULT_POSITION_COLUMN,
        positioning_operations: Sequence[str] = tuple(ALL_POSITIONING_OPERATIONS),
    ) -> None:
        self.soft_delete_columns: List[str] = list(soft_delete_columns)
        self.position_column: str = position_column
        self.positioning_operations: List[str] = [
            str(getattr(op, "value", op)) for op in positioning_operations
        ]

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> "PatternDetector":
        return cls(
            soft_delete_columns=config.soft_delete_columns,
            position_column=config.position_column,
            positioning_operations=config.positioning_operations,
        )

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def detect(
        self,
        table: TableInfo,
        relationship: Optional[RelationshipInfo] = None,
        descriptor: Optional[Any] = None,
    ) -> PatternSet:
        patterns: List[Any] = []

        soft: Optional[SoftDeletionPattern] = self._soft_deletion(table)
        if soft is not None:
            patterns.append(soft)

        positioning: Optional[PositioningPattern] = self._positioning(table, descriptor)
        if positioning is not None:
            patterns.append(positioning)

        enum_columns: List[EnumColumn] = [
            EnumColumn(column=col.name, values=col.enum_values)
            for col in table.columns
            if col.is_enum and col.enum_values
        ]
        if enum_columns:
            patterns.append(EnumsPattern(columns=enum_columns))

        if relationship is not None and relationship.polymorphic:
            patterns.append(PolymorphicPattern(associations=[
                PolymorphicAssociation(
                    name=assoc.name,
                    type_column=assoc.foreign_type or f"{assoc.name}_type",
                    id_column=assoc.foreign_key,
                )
                for assoc in relationship.polymorphic
            ]))

        result: PatternSet = PatternSet(table=table.name, patterns=patterns)
        logger.debug("Detected %r", result)
        return result

    def detect_all(
        self,
        tables: Iterable[TableInfo],
        relationships: Iterable[RelationshipInfo],
        registry: Optional[Any] = None,
    ) -> Dict[str, PatternSet]:
        by_table: Dict[str, RelationshipInfo] = {r.table: r for r in relationships}
        results: Dict[str, PatternSet] = {}
        for table in tables:
            descriptor: Optional[Any] = (
                registry.find_for_table(table.name) if registry is not None else None
            )
            results[table.name] = self.detect(
                table, by_table.get(table.name), descriptor
            )
        return results

    # -----------------------------------------------------------------
    # Individual detectors
    # -----------------------------------------------------------------

    def _soft_deletion(self, table: TableInfo) -> Optional[SoftDeletionPattern]:
        for name in self.soft_delete_columns:
            col: Optional[ColumnInfo] = table.get_column(name)
            if col is not None and col.is_temporal:
                return SoftDeletionPattern(column=col.name)
        return None

    def _positioning(
        self,
        table: TableInfo,
        descriptor: Optional[Any],
    ) -> Optional[PositioningPattern]:
        col: Optional[ColumnInfo] = table.get_column(self.position_column)
        if col is None or not col.is_integer:
            return None

        supported: Optional[Sequence[Any]] = getattr(descriptor, "positioning", None)
        allowed: List[str] = self.positioning_operations
        if supported is not None:
            declared: List[str] = [str(getattr(op, "value", op)) for op in supported]
            allowed = [op for op in allowed if op in declared]

        operations: List[str] = [op for op in ALL_POSITIONING_OPERATIONS if op in allowed]
        if not operations:
            logger.debug(
                "Table %s has a %s column but no enabled move operations.",
                table.name,
                col.name,
            )
            return None
        return PositioningPattern(column=col.name, operations=operations)


__all__: List[str] = [
    "PatternDetector",
    "DEFAULT_SOFT_DELETE_COLUMNS",
    "DEFAULT_POSITION_COLUMN",
]
