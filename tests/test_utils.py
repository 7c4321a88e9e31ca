"""
tests/test_utils.py
Unit tests for zerogen.utils: naming helpers, file I/O primitives, Timer.
"""

from __future__ import annotations

import pathlib

import pytest

from zerogen.utils import (
    Timer,
    count_lines,
    create_exclusive,
    read_file,
    sha256_hex,
    table_to_class_name,
    table_to_entity_name,
    to_camel_case,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
    to_title_human,
    write_file,
)


# ===========================================================================
# Naming
# ===========================================================================


class TestCaseConversion:

    @pytest.mark.parametrize(
        "raw, expected",
        [("ActivityLog", "activity_log"), ("HTTPResponse", "http_response"), ("", "")],
    )
    def test_to_snake_case(self, raw: str, expected: str) -> None:
        assert to_snake_case(raw) == expected

    def test_to_pascal_case(self) -> None:
        assert to_pascal_case("scheduled_date_time") == "ScheduledDateTime"

    def test_to_camel_case(self) -> None:
        assert to_camel_case("notable_job") == "notableJob"
        assert to_camel_case("tasks") == "tasks"

    def test_to_title_human(self) -> None:
        assert to_title_human("activity_logs") == "Activity Logs"


class TestInflection:

    @pytest.mark.parametrize(
        "singular, plural",
        [
            ("task", "tasks"),
            ("activity", "activities"),
            ("address", "addresses"),
            ("person", "people"),
            ("job_person", "job_people"),
            ("box", "boxes"),
        ],
    )
    def test_plural_and_back(self, singular: str, plural: str) -> None:
        assert to_plural(singular) == plural
        assert to_singular(plural) == singular

    def test_already_plural_is_unchanged(self) -> None:
        assert to_plural("tasks") == "tasks"
        assert to_plural("people") == "people"

    def test_only_last_word_is_inflected(self) -> None:
        assert to_singular("scheduled_date_times") == "scheduled_date_time"

    def test_table_names(self) -> None:
        assert table_to_entity_name("activity_logs") == "activity_log"
        assert table_to_class_name("activity_logs") == "ActivityLog"


# ===========================================================================
# File I/O
# ===========================================================================


class TestFileHelpers:

    def test_write_file_creates_parents(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "a" / "b" / "file.ts"
        written = write_file(target, "hello\n")
        assert written == 6
        assert read_file(target) == "hello\n"

    def test_write_file_replaces_and_leaves_no_temp(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "file.ts"
        write_file(target, "one")
        write_file(target, "two")
        assert read_file(target) == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["file.ts"]

    def test_create_exclusive_only_once(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "task.custom.ts"
        assert create_exclusive(target, "first") is True
        assert create_exclusive(target, "second") is False
        assert read_file(target) == "first"


class TestMetrics:

    def test_sha256_hex_is_stable(self) -> None:
        assert sha256_hex("abc") == sha256_hex("abc")
        assert len(sha256_hex("abc")) == 64

    @pytest.mark.parametrize(
        "content, expected", [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2), ("a\nb\n", 2)]
    )
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected

    def test_timer_records_elapsed(self) -> None:
        with Timer("noop") as t:
            pass
        assert t.elapsed >= 0.0
        assert "noop" in repr(t)
