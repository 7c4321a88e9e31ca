"""
tests/test_validators.py
Unit tests for zerogen.validators.

Tests cover:
- ValidationResult accumulation and reporting
- Table selection checks (identifiers, duplicates, overlaps)
- Operation rename checks (unknown names, identifiers, reserved words, collisions)
- Type override key format and pattern settings
- Synthesized schema source checks
"""

from __future__ import annotations

import pytest

from zerogen.models import GeneratorConfig
from zerogen.validators import (
    ValidationResult,
    validate_generator_config,
    validate_name_overrides,
    validate_pattern_settings,
    validate_schema_source,
    validate_table_selection,
    validate_type_overrides,
)


# ===========================================================================
# ValidationResult container
# ===========================================================================


class TestValidationResult:

    def test_empty_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result) is True
        assert len(result) == 0

    def test_counts_and_merge(self) -> None:
        a = ValidationResult()
        a.add_error("E1", "first")
        b = ValidationResult()
        b.add_warning("W1", "second")
        b.add_info("I1", "third")
        a.merge(b)
        assert a.error_count == 1
        assert a.warning_count == 1
        assert a.codes == ["E1", "W1", "I1"]
        assert not a

    def test_format_report_hides_info_by_default(self) -> None:
        result = ValidationResult()
        result.add_error("BAD", "broken", {"table": "tasks"})
        result.add_info("NOTE", "fyi")
        report = result.format_report()
        assert "[BAD] broken" in report
        assert "table: tasks" in report
        assert "NOTE" not in report
        assert "NOTE" in result.format_report(include_info=True)

    def test_to_dict(self) -> None:
        result = ValidationResult()
        result.add_warning("W", "msg")
        assert result.warnings[0].to_dict() == {
            "level": "warning", "code": "W", "message": "msg", "context": {},
        }


# ===========================================================================
# Configuration validators
# ===========================================================================


class TestDefaultConfig:

    def test_default_config_is_valid(self) -> None:
        result = validate_generator_config(GeneratorConfig())
        assert result.is_valid, result.format_report()
        assert result.warning_count == 0


class TestTableSelection:

    def test_invalid_table_name(self) -> None:
        result = validate_table_selection(GeneratorConfig(excluded_tables=["bad-name"]))
        assert result.find("INVALID_TABLE_NAME") is not None

    def test_duplicate_entry(self) -> None:
        result = validate_table_selection(GeneratorConfig(only_tables=["tasks", "tasks"]))
        assert result.is_valid
        assert "DUPLICATE_TABLE_ENTRY" in result.codes

    def test_already_excluded_is_info(self) -> None:
        result = validate_table_selection(
            GeneratorConfig(excluded_tables=["schema_migrations"])
        )
        issue = result.find("ALREADY_EXCLUDED")
        assert issue is not None and issue.level == "info"

    def test_overlap_warning(self) -> None:
        config = GeneratorConfig(only_tables=["tasks"], excluded_tables=["tasks"])
        issue = validate_table_selection(config).find("ONLY_TABLE_EXCLUDED")
        assert issue is not None
        assert issue.context["tables"] == ["tasks"]

    def test_empty_pattern(self) -> None:
        result = validate_table_selection(GeneratorConfig(exclude_patterns=["  "]))
        assert "EMPTY_EXCLUDE_PATTERN" in result.codes


class TestNameOverrides:

    def test_valid_rename(self) -> None:
        result = validate_name_overrides(
            GeneratorConfig(name_overrides={"soft_delete": "discard"})
        )
        assert result.is_valid

    def test_unknown_operation(self) -> None:
        result = validate_name_overrides(GeneratorConfig(name_overrides={"archive": "arc"}))
        assert "UNKNOWN_OPERATION" in result.codes

    @pytest.mark.parametrize("verb", ["move-up", "1st", "has space"])
    def test_invalid_identifier(self, verb: str) -> None:
        result = validate_name_overrides(GeneratorConfig(name_overrides={"create": verb}))
        assert "INVALID_OPERATION_NAME" in result.codes

    def test_reserved_word_is_warning(self) -> None:
        result = validate_name_overrides(GeneratorConfig(name_overrides={"create": "new"}))
        assert result.is_valid
        assert "RESERVED_OPERATION_NAME" in result.codes

    def test_collision(self) -> None:
        result = validate_name_overrides(
            GeneratorConfig(name_overrides={"move_to_top": "moveToBottom"})
        )
        issue = result.find("NAME_COLLISION")
        assert issue is not None
        assert issue.context["operations"] == ["move_to_bottom", "move_to_top"]

    def test_delete_and_soft_delete_may_share(self) -> None:
        result = validate_name_overrides(
            GeneratorConfig(name_overrides={"delete": "remove", "soft_delete": "remove"})
        )
        assert result.find("NAME_COLLISION") is None


class TestTypeAndPatternSettings:

    def test_type_override_key_format(self) -> None:
        config = GeneratorConfig(type_overrides={"metadata": "json", "tasks.meta": "json"})
        result = validate_type_overrides(config)
        assert [i.context["key"] for i in result.errors] == ["metadata"]

    def test_invalid_soft_delete_column(self) -> None:
        result = validate_pattern_settings(
            GeneratorConfig(soft_delete_columns=["deleted at"])
        )
        assert "INVALID_COLUMN_NAME" in result.codes

    def test_duplicate_positioning_operation(self) -> None:
        config = GeneratorConfig(positioning_operations=["move_to_top", "move_to_top"])
        assert "DUPLICATE_POSITIONING_OPERATION" in validate_pattern_settings(config).codes

    def test_polymorphic_targets(self) -> None:
        config = GeneratorConfig(polymorphic_targets={"notable": [], "loggable": ["bad-name"]})
        codes = validate_pattern_settings(config).codes
        assert "EMPTY_POLYMORPHIC_TARGETS" in codes
        assert "INVALID_POLYMORPHIC_TARGET" in codes

    def test_aggregate_collects_everything(self) -> None:
        config = GeneratorConfig(
            excluded_tables=["bad-name"],
            name_overrides={"archive": "arc"},
        )
        result = validate_generator_config(config)
        assert result.error_count == 2


# ===========================================================================
# Schema source
# ===========================================================================


class TestSchemaSource:

    def test_missing_everything(self) -> None:
        result = validate_schema_source("// empty\n")
        assert {"MISSING_IMPORTS", "MISSING_SCHEMA_EXPORT", "MISSING_CLIENT_TYPE",
                "NO_TABLES"} <= set(result.codes)
        assert "NO_RELATIONSHIPS" in [w.code for w in result.warnings]

    def test_unsupported_api_and_deprecated_method(self) -> None:
        source = (
            "import { createSchema, table } from '@rocicorp/zero';\n"
            "const tasks = table('tasks');\n"
            "export const schema = createSchema({});\n"
            "export type ZeroClient = Zero<Schema>;\n"
            "type T = inferZodType<typeof tasks>;\n"
            "q.offset(10);\n"
        )
        result = validate_schema_source(source)
        assert [e.code for e in result.errors] == ["UNSUPPORTED_API"]
        assert "DEPRECATED_QUERY_METHOD" in result.codes

    def test_stats(self) -> None:
        source = (
            "import {\n  createSchema,\n  table,\n} from '@rocicorp/zero';\n"
            "const a = table('a')\nconst b = table('b')\n"
            "const aRelationships = relationships(a, ({ one, many }) => ({\n}));\n"
            "export const schema = createSchema({});\n"
            "export type ZeroClient = Zero<Schema>;\n"
        )
        result = validate_schema_source(source)
        assert result.is_valid
        assert result.find("SCHEMA_STATS").context == {
            "table_count": 2, "relationship_count": 1,
        }
