"""
tests/test_templates.py
Unit tests for zerogen.templates (MutationTemplates).

Tests cover:
- Operation selection and emission order per pattern set
- Baseline CRUD bodies (create / update / hard delete / upsert)
- Soft deletion, restore and the four positioning moves
- Operation renames through name_overrides
- Write-once custom file examples and the re-export file
- Deterministic output
"""

from __future__ import annotations

from typing import List

import pytest

from zerogen.manifest import CUSTOM_MARKER, GENERATED_MARKER, MERGER_MARKER
from zerogen.models import GeneratorConfig, PatternSet, TableInfo
from zerogen.patterns import PatternDetector
from zerogen.templates import DEFAULT_OPERATION_NAMES, MutationTemplates, file_names


@pytest.fixture()
def templates() -> MutationTemplates:
    return MutationTemplates()


@pytest.fixture()
def task_patterns(detector: PatternDetector, task_table: TableInfo) -> PatternSet:
    return detector.detect(task_table)


@pytest.fixture()
def generated(
    templates: MutationTemplates, task_table: TableInfo, task_patterns: PatternSet
) -> str:
    return templates.render_generated(task_table, task_patterns)


def _function_block(source: str, name: str) -> str:
    """Text of one exported function, up to its closing brace."""
    start: int = source.index(f"export async function {name}(")
    end: int = source.index("\n}\n", start)
    return source[start:end]


# ===========================================================================
# Operation selection
# ===========================================================================


class TestOperationSelection:

    def test_full_pattern_set(
        self, templates: MutationTemplates, task_patterns: PatternSet
    ) -> None:
        assert templates.operations_for(task_patterns) == [
            "create", "update", "soft_delete", "upsert",
            "move_before", "move_after", "move_to_top", "move_to_bottom",
            "restore",
        ]

    def test_no_patterns_gives_baseline(self, templates: MutationTemplates) -> None:
        ops: List[str] = templates.operations_for(PatternSet(table="jobs"))
        assert ops == ["create", "update", "delete", "upsert"]

    def test_exported_functions(
        self,
        templates: MutationTemplates,
        task_table: TableInfo,
        task_patterns: PatternSet,
    ) -> None:
        names = templates.exported_functions(task_table, task_patterns)
        assert names[:4] == ["createTask", "updateTask", "deleteTask", "upsertTask"]
        assert "moveToTopTask" in names
        assert names[-1] == "restoreTask"

    def test_default_names_are_not_mutated(self) -> None:
        MutationTemplates(GeneratorConfig(name_overrides={"create": "add"}))
        assert DEFAULT_OPERATION_NAMES["create"] == "create"


# ===========================================================================
# Generated file
# ===========================================================================


class TestGeneratedFile:

    def test_banner_and_import(self, generated: str) -> None:
        assert generated.startswith(f"// {GENERATED_MARKER}")
        assert "// Use task.custom.ts for your custom mutations" in generated
        assert "import { getZero } from './client';" in generated

    def test_create_parameters(self, generated: str) -> None:
        block = _function_block(generated, "createTask")
        assert "  job_id: number;" in block
        assert "  title: string;" in block
        assert "  position?: number;" in block
        assert "  status?: 'new_task' | 'in_progress' | 'completed';" in block
        assert "discarded_at" not in block
        assert "    created_at: now," in block
        assert "    updated_at: now," in block

    def test_soft_delete_sets_tombstone(self, generated: str) -> None:
        block = _function_block(generated, "deleteTask")
        assert "(soft deletion: sets discarded_at)" in generated
        assert "await zero.mutate.tasks.update({" in block
        assert "    discarded_at: now," in block
        assert ".delete(" not in block

    def test_restore_clears_tombstone(self, generated: str) -> None:
        block = _function_block(generated, "restoreTask")
        assert "    discarded_at: null," in block

    @pytest.mark.parametrize(
        "name, signature, assignment",
        [
            ("moveBeforeTask", "(id: string, targetPosition: number)",
             "    position: targetPosition,"),
            ("moveAfterTask", "(id: string, targetPosition: number)",
             "    position: targetPosition + 1,"),
            ("moveToTopTask", "(id: string)", "    position: 0,"),
            ("moveToBottomTask", "(id: string, lastPosition: number)",
             "    position: lastPosition + 1,"),
        ],
    )
    def test_move_operations(
        self, generated: str, name: str, signature: str, assignment: str
    ) -> None:
        block = _function_block(generated, name)
        assert block.startswith(f"export async function {name}{signature} {{")
        assert assignment in block

    def test_hard_delete_without_tombstone(
        self, templates: MutationTemplates, job_table: TableInfo
    ) -> None:
        source = templates.render_generated(job_table, PatternSet(table="jobs"))
        block = _function_block(source, "deleteJob")
        assert "  await zero.mutate.jobs.delete({ id });" in block
        assert "restoreJob" not in source

    def test_update_without_updated_at(
        self, templates: MutationTemplates, job_table: TableInfo
    ) -> None:
        source = templates.render_generated(job_table, PatternSet(table="jobs"))
        block = _function_block(source, "updateJob")
        assert "const now" not in block
        assert "  title: string;" in block

    def test_enum_guidance_is_commented(self, generated: str) -> None:
        assert "// Enum columns are updated through updateTask." in generated
        assert "//   status: 'new_task' | 'in_progress' | 'completed'" in generated

    def test_rendering_is_deterministic(
        self,
        templates: MutationTemplates,
        task_table: TableInfo,
        task_patterns: PatternSet,
        generated: str,
    ) -> None:
        assert templates.render_generated(task_table, task_patterns) == generated


class TestRenames:

    def test_soft_delete_rename(
        self, task_table: TableInfo, task_patterns: PatternSet
    ) -> None:
        templates = MutationTemplates(
            GeneratorConfig(name_overrides={"soft_delete": "discard"})
        )
        source = templates.render_generated(task_table, task_patterns)
        assert "export async function discardTask(id: string) {" in source
        assert " * Discard a task (soft deletion: sets discarded_at)" in source
        assert "function deleteTask(" not in source

    def test_client_import_and_extension(
        self, task_table: TableInfo, task_patterns: PatternSet
    ) -> None:
        config = GeneratorConfig(client_import="@/lib/zero", file_extension=".mts")
        source = MutationTemplates(config).render_generated(task_table, task_patterns)
        assert "import { getZero } from '@/lib/zero';" in source
        assert "// Use task.custom.mts for your custom mutations" in source


# ===========================================================================
# Custom and main files
# ===========================================================================


class TestCustomFile:

    def test_examples_follow_patterns(
        self,
        templates: MutationTemplates,
        task_table: TableInfo,
        task_patterns: PatternSet,
    ) -> None:
        source = templates.render_custom(task_table, task_patterns)
        assert source.startswith(f"// {CUSTOM_MARKER}")
        assert "// export async function hardDeleteTask(id: string) {" in source
        assert "// export async function transitionTaskStatus(" in source
        assert "// export async function validateAndUpdateTask(" in source

    def test_plain_table_has_only_validation_example(
        self, templates: MutationTemplates, job_table: TableInfo
    ) -> None:
        source = templates.render_custom(job_table, PatternSet(table="jobs"))
        assert "hardDelete" not in source
        assert "transition" not in source
        assert "validateAndUpdateJob" in source


class TestMainFile:

    def test_reexports_generated_then_custom(
        self, templates: MutationTemplates, task_table: TableInfo
    ) -> None:
        source = templates.render_main(task_table)
        assert source.startswith(f"// {MERGER_MARKER}")
        generated_at = source.index("export * from './task.generated';")
        custom_at = source.index("export * from './task.custom';")
        assert generated_at < custom_at
        assert "// import { createTask } from './task';" in source


class TestFileNames:

    def test_singular_stems(self, task_table: TableInfo) -> None:
        assert file_names(task_table) == {
            "generated": "task.generated.ts",
            "custom": "task.custom.ts",
            "main": "task.ts",
        }

    def test_render_all_keys(
        self,
        templates: MutationTemplates,
        task_table: TableInfo,
        task_patterns: PatternSet,
    ) -> None:
        assert list(templates.render_all(task_table, task_patterns)) == [
            "generated", "custom", "main",
        ]
