"""
tests/test_synthesizer.py
Unit tests for zerogen.synthesizer: table definitions, relationship blocks,
polymorphic fan-out, the types file and schema change detection.
"""

from __future__ import annotations

from typing import List

import pytest

from zerogen.manifest import SCHEMA_MARKER, TYPES_MARKER
from zerogen.models import (
    AssociationInfo,
    ColumnInfo,
    ExtractedSchema,
    RelationshipInfo,
    TableInfo,
)
from zerogen.synthesizer import (
    SchemaSynthesizer,
    detect_schema_changes,
    extract_relationship_names,
    extract_table_names,
    find_customizations,
    schema_identifier,
)
from zerogen.validators import validate_schema_source


def _simple(name: str) -> TableInfo:
    return TableInfo(
        name=name,
        primary_key="id",
        columns=[
            ColumnInfo(name="id", native_type="integer", nullable=False, primary_key=True),
        ],
    )


def _labels_table() -> TableInfo:
    table = _simple("labels")
    table.columns.append(ColumnInfo(name="job_id", native_type="integer", nullable=False))
    return table


def _labels_association() -> AssociationInfo:
    return AssociationInfo(name="labels", kind="has_many", foreign_key="job_id",
                           target_table="labels")


def _note_table() -> TableInfo:
    return TableInfo(
        name="notes",
        primary_key="id",
        columns=[
            ColumnInfo(name="id", native_type="integer", nullable=False, primary_key=True),
            ColumnInfo(name="notable_type", native_type="string", nullable=False),
            ColumnInfo(name="notable_id", native_type="integer", nullable=False),
        ],
    )


def _note_relationship() -> RelationshipInfo:
    notable = AssociationInfo(
        name="notable", kind="belongs_to", foreign_key="notable_id",
        polymorphic=True, foreign_type="notable_type",
    )
    return RelationshipInfo(
        model="Note", table="notes", belongs_to=[notable], polymorphic=[notable]
    )


# ===========================================================================
# Table definitions
# ===========================================================================


class TestTableDefinitions:

    def test_table_block(self, task_table: TableInfo) -> None:
        source = SchemaSynthesizer().build([task_table]).schema_source
        assert "// Tasks table" in source
        assert "const tasks = table('tasks')" in source
        assert "    id: number()," in source
        assert "    title: string()," in source
        assert "    position: number().optional()," in source
        assert "    discarded_at: number().optional()," in source
        assert "  .primaryKey('id');" in source

    def test_column_comment_is_inline(self) -> None:
        table = TableInfo(name="jobs", primary_key="id", columns=[
            ColumnInfo(name="id", native_type="uuid", nullable=False, primary_key=True),
            ColumnInfo(name="title", native_type="string", nullable=False,
                       comment="Shown in\nthe header"),
        ])
        source = SchemaSynthesizer().build([table]).schema_source
        assert "    title: string(), // Shown in the header" in source

    def test_imports_only_used_builders(self, job_table: TableInfo) -> None:
        source = SchemaSynthesizer().build([job_table]).schema_source
        assert "  string,\n  number,\n" in source
        assert "  boolean," not in source
        assert "  relationships," not in source
        assert "  type Zero,\n} from '@rocicorp/zero';" in source

    def test_banner_and_exports(self, job_table: TableInfo) -> None:
        source = SchemaSynthesizer().build([job_table]).schema_source
        assert source.startswith(f"// {SCHEMA_MARKER}")
        assert "export const schema = createSchema({" in source
        assert "export type Schema = typeof schema;" in source
        assert "export type ZeroClient = Zero<Schema>;" in source

    def test_identifier_sanitising(self) -> None:
        assert schema_identifier("tasks") == "tasks"
        assert schema_identifier("2fa-codes") == "_2fa_codes"


# ===========================================================================
# Relationships
# ===========================================================================


class TestRelationships:

    def test_one_many_pair(
        self,
        job_table: TableInfo,
        task_table: TableInfo,
        job_relationship: RelationshipInfo,
        task_relationship: RelationshipInfo,
    ) -> None:
        result = SchemaSynthesizer().build(
            [job_table, task_table], [job_relationship, task_relationship]
        )
        source = result.schema_source
        assert result.relationships == {"jobs": ["tasks"], "tasks": ["job"]}
        assert "const jobsRelationships = relationships(jobs, ({ one, many }) => ({" in source
        assert (
            "    tasks: many({\n"
            "      sourceField: ['id'],\n"
            "      destField: ['job_id'],\n"
            "      destSchema: tasks,\n"
            "    }),"
        ) in source
        assert (
            "    job: one({\n"
            "      sourceField: ['job_id'],\n"
            "      destField: ['id'],\n"
            "      destSchema: jobs,\n"
            "    }),"
        ) in source
        assert "  relationships: [\n    jobsRelationships,\n    tasksRelationships,\n  ]," in source

    def test_no_children_without_parent(
        self, job_table: TableInfo, task_table: TableInfo, task_relationship: RelationshipInfo
    ) -> None:
        source = SchemaSynthesizer().build([job_table, task_table], [task_relationship]).schema_source
        assert "children" not in source

    def test_self_referential_parent_adds_children(
        self, job_table: TableInfo, task_table: TableInfo
    ) -> None:
        rel = RelationshipInfo(model="Task", table="tasks", belongs_to=[
            AssociationInfo(name="parent", kind="belongs_to", foreign_key="parent_id",
                            target_table="tasks", target_class="Task", optional=True),
        ])
        result = SchemaSynthesizer().build([job_table, task_table], [rel])
        assert result.relationships["tasks"] == ["parent", "children"]
        assert "      destField: ['parent_id'],\n      destSchema: tasks," in result.schema_source

    def test_missing_target_table_is_skipped(self, task_table: TableInfo,
                                              task_relationship: RelationshipInfo) -> None:
        result = SchemaSynthesizer().build([task_table], [task_relationship])
        assert result.relationships == {}
        assert "relationships(" not in result.schema_source

    def test_has_many_with_missing_foreign_key(self, job_table: TableInfo) -> None:
        rel = RelationshipInfo(model="Job", table="jobs", has_many=[
            AssociationInfo(name="tasks", kind="has_many", foreign_key="job_id",
                            target_table="tasks"),
            _labels_association(),
        ])
        tables = [job_table, _simple("tasks"), _labels_table()]
        source = SchemaSynthesizer().build(tables, [rel]).schema_source
        assert "// SKIPPED: tasks - foreign key 'job_id' does not exist in tasks" in source

    def test_through_association_becomes_comment(self, job_table: TableInfo) -> None:
        rel = RelationshipInfo(model="Job", table="jobs", has_many=[
            AssociationInfo(name="people", kind="has_many", foreign_key="job_id",
                            target_table="people", through="job_people"),
            _labels_association(),
        ])
        tables = [job_table, _simple("people"), _simple("job_people"), _labels_table()]
        source = SchemaSynthesizer().build(tables, [rel]).schema_source
        assert "// people goes through job_people: use jobPeople.related('person')" in source


class TestPolymorphicFanOut:

    def test_notable_yields_exactly_three(self) -> None:
        tables = [_simple("jobs"), _simple("tasks"), _simple("clients"), _note_table()]
        result = SchemaSynthesizer().build(tables, [_note_relationship()])
        assert result.relationships["notes"] == ["notableJob", "notableTask", "notableClient"]
        source = result.schema_source
        assert source.count(": one({") == 3
        assert "      sourceField: ['notable_id'],\n      destField: ['id'],\n" \
               "      destSchema: clients," in source

    def test_absent_candidates_are_dropped(self) -> None:
        tables = [_simple("tasks"), _note_table()]
        result = SchemaSynthesizer().build(tables, [_note_relationship()])
        assert result.relationships["notes"] == ["notableTask"]

    def test_unknown_association_yields_nothing(self) -> None:
        commentable = AssociationInfo(
            name="commentable", kind="belongs_to", foreign_key="commentable_id",
            polymorphic=True,
        )
        rel = RelationshipInfo(model="Comment", table="comments",
                               belongs_to=[commentable], polymorphic=[commentable])
        result = SchemaSynthesizer().build([_simple("jobs"), _simple("comments")], [rel])
        assert result.relationships == {}

    def test_configured_targets_extend_builtin(self) -> None:
        synth = SchemaSynthesizer(polymorphic_targets={"notable": ["device", "job"]})
        assert synth.polymorphic_candidates("notable") == ("job", "task", "client", "device")


# ===========================================================================
# Aggregate, types file, determinism
# ===========================================================================


class TestAggregate:

    def test_full_schema_is_valid(self, extracted_schema: ExtractedSchema) -> None:
        result = SchemaSynthesizer().build(
            extracted_schema.tables, extracted_schema.relationships
        )
        validation = validate_schema_source(result.schema_source)
        assert validation.is_valid, validation.format_report()
        stats = validation.find("SCHEMA_STATS")
        assert stats.context["table_count"] == 5
        assert stats.context["relationship_count"] == 4

    def test_build_is_deterministic(self, extracted_schema: ExtractedSchema) -> None:
        synth = SchemaSynthesizer()
        first = synth.build(extracted_schema.tables, extracted_schema.relationships)
        second = synth.build(extracted_schema.tables, extracted_schema.relationships)
        assert first.schema_source == second.schema_source
        assert first.types_source == second.types_source

    def test_summary(self, job_table: TableInfo) -> None:
        assert SchemaSynthesizer().build([job_table]).summary() == (
            "Schema: 1 tables, 0 relationship blocks (0 relationships)"
        )


class TestTypesSource:

    def test_interfaces(self, task_table: TableInfo, job_table: TableInfo) -> None:
        types_source = SchemaSynthesizer().build_types_source([job_table, task_table])
        assert types_source.startswith(f"// {TYPES_MARKER}")
        assert "export interface Task {" in types_source
        assert "  id: number;" in types_source
        assert "  position?: number;" in types_source
        assert "  status: 'new_task' | 'in_progress' | 'completed';" in types_source
        assert "export type TableNames = 'jobs' | 'tasks';" in types_source
        assert "export type ModelNames = 'job' | 'task';" in types_source

    def test_empty(self) -> None:
        types_source = SchemaSynthesizer().build_types_source([])
        assert "export type TableNames = never;" in types_source


# ===========================================================================
# Change detection
# ===========================================================================


class TestChangeDetection:

    @pytest.fixture()
    def sources(self, job_table: TableInfo, task_table: TableInfo,
                job_relationship: RelationshipInfo) -> List[str]:
        synth = SchemaSynthesizer()
        old = synth.build([job_table]).schema_source
        new = synth.build([job_table, task_table], [job_relationship]).schema_source
        return [old, new]

    def test_extractors(self, sources: List[str]) -> None:
        assert extract_table_names(sources[1]) == ["jobs", "tasks"]
        assert extract_relationship_names(sources[1]) == ["jobsRelationships"]

    def test_first_generation(self, sources: List[str]) -> None:
        changes = detect_schema_changes(None, sources[0])
        assert changes.first_generation
        assert changes.summary() == "First generation: no previous schema."

    def test_new_tables_and_relationships(self, sources: List[str]) -> None:
        changes = detect_schema_changes(sources[0], sources[1])
        assert changes.new_tables == ["tasks"]
        assert changes.new_relationships == ["jobsRelationships"]
        assert changes.migration_notes[0].startswith("NEW TABLES: tasks")
        assert changes.customizations == []

    def test_removed_tables(self, sources: List[str]) -> None:
        changes = detect_schema_changes(sources[1], sources[0])
        assert changes.removed_tables == ["tasks"]
        assert changes.removed_relationships == ["jobsRelationships"]

    def test_no_changes(self, sources: List[str]) -> None:
        changes = detect_schema_changes(sources[1], sources[1])
        assert not changes.has_changes
        assert changes.summary() == "No schema changes detected."

    def test_customizations(self, sources: List[str]) -> None:
        edited = (
            "import { z } from 'zod';\n"
            + sources[1].split("\n", 1)[1]
            + "export const extraQuery = 1;\n"
        )
        found = find_customizations(edited)
        assert "Generator banner removed" in found
        assert "Custom imports: zod" in found
        assert "Custom exports: extraQuery" in found
