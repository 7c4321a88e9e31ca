"""
tests/test_patterns.py
Unit tests for zerogen.patterns.PatternDetector and PatternSet signatures.
"""

from __future__ import annotations

from typing import List

from zerogen.models import (
    ALL_POSITIONING_OPERATIONS,
    AssociationInfo,
    ColumnInfo,
    GeneratorConfig,
    RelationshipInfo,
    TableInfo,
)
from zerogen.patterns import PatternDetector
from zerogen.registry import ModelDescriptor


def _table(*columns: ColumnInfo, name: str = "items") -> TableInfo:
    base: List[ColumnInfo] = [
        ColumnInfo(name="id", native_type="integer", nullable=False, primary_key=True)
    ]
    return TableInfo(name=name, primary_key="id", columns=base + list(columns))


class TestSoftDeletion:

    def test_discarded_at(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="discarded_at", native_type="datetime"))
        patterns = detector.detect(table)
        assert patterns.soft_deletion is not None
        assert patterns.soft_deletion.column == "discarded_at"

    def test_deleted_at_wins_when_both_present(self, detector: PatternDetector) -> None:
        table = _table(
            ColumnInfo(name="discarded_at", native_type="datetime"),
            ColumnInfo(name="deleted_at", native_type="timestamp"),
        )
        assert detector.detect(table).soft_deletion.column == "deleted_at"

    def test_non_temporal_column_is_not_a_tombstone(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="deleted_at", native_type="boolean"))
        assert detector.detect(table).soft_deletion is None

    def test_configured_column(self) -> None:
        detector = PatternDetector(soft_delete_columns=["archived_at"])
        table = _table(ColumnInfo(name="archived_at", native_type="datetime"))
        assert detector.detect(table).soft_deletion.column == "archived_at"


class TestPositioning:

    def test_integer_position_enables_all_operations(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="position", native_type="integer"))
        positioning = detector.detect(table).positioning
        assert positioning is not None
        assert positioning.operations == ALL_POSITIONING_OPERATIONS

    def test_string_position_is_ignored(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="position", native_type="string"))
        assert detector.detect(table).positioning is None

    def test_descriptor_narrows_operations(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="position", native_type="integer"))
        descriptor = ModelDescriptor(
            name="Item", positioning=["move_to_bottom", "move_to_top"]
        )
        positioning = detector.detect(table, descriptor=descriptor).positioning
        # canonical order, not declaration order
        assert positioning.operations == ["move_to_top", "move_to_bottom"]

    def test_config_subset(self) -> None:
        config = GeneratorConfig(positioning_operations=["move_before", "move_after"])
        detector = PatternDetector.from_config(config)
        table = _table(ColumnInfo(name="position", native_type="integer"))
        assert detector.detect(table).positioning.operations == ["move_before", "move_after"]

    def test_no_enabled_operations_means_no_pattern(self) -> None:
        detector = PatternDetector(positioning_operations=[])
        table = _table(ColumnInfo(name="position", native_type="integer"))
        assert detector.detect(table).positioning is None


class TestEnumsAndPolymorphic:

    def test_enum_columns(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(
            name="status", native_type="string", is_enum=True, enum_values=["a", "b"],
        ))
        enums = detector.detect(table).enums
        assert enums is not None
        assert [(c.column, c.values) for c in enums.columns] == [("status", ["a", "b"])]

    def test_enum_without_values_is_ignored(self, detector: PatternDetector) -> None:
        table = _table(ColumnInfo(name="status", native_type="string", is_enum=True))
        assert detector.detect(table).enums is None

    def test_polymorphic_from_relationship(self, detector: PatternDetector) -> None:
        notable = AssociationInfo(
            name="notable", kind="belongs_to", foreign_key="notable_id",
            polymorphic=True, foreign_type="notable_type",
        )
        rel = RelationshipInfo(
            model="Note", table="notes", belongs_to=[notable], polymorphic=[notable]
        )
        patterns = detector.detect(_table(name="notes"), rel)
        assert patterns.polymorphic is not None
        assoc = patterns.polymorphic.associations[0]
        assert (assoc.name, assoc.type_column, assoc.id_column) == (
            "notable", "notable_type", "notable_id",
        )

    def test_plain_table_is_empty(self, detector: PatternDetector) -> None:
        patterns = detector.detect(_table(ColumnInfo(name="label", native_type="string")))
        assert patterns.is_empty
        assert patterns.kinds == []


class TestSignature:

    def test_signature_is_deterministic(
        self, detector: PatternDetector, task_table: TableInfo
    ) -> None:
        assert detector.detect(task_table).signature() == detector.detect(task_table).signature()

    def test_signature_changes_with_patterns(self, detector: PatternDetector) -> None:
        plain = _table(ColumnInfo(name="position", native_type="integer"))
        with_tombstone = _table(
            ColumnInfo(name="position", native_type="integer"),
            ColumnInfo(name="deleted_at", native_type="datetime"),
        )
        assert detector.detect(plain).signature() != detector.detect(with_tombstone).signature()

    def test_signature_ignores_non_pattern_columns(self, detector: PatternDetector) -> None:
        a = _table(ColumnInfo(name="position", native_type="integer"))
        b = _table(
            ColumnInfo(name="position", native_type="integer"),
            ColumnInfo(name="label", native_type="string"),
        )
        assert detector.detect(a).signature() == detector.detect(b).signature()

    def test_detect_all_keys_every_table(
        self, detector: PatternDetector, task_table: TableInfo, job_table: TableInfo
    ) -> None:
        results = detector.detect_all([task_table, job_table], [])
        assert list(results) == ["tasks", "jobs"]
        assert results["jobs"].is_empty
