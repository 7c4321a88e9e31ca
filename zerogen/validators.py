# File: zerogen/validators.py
"""
ZeroGen - Configuration & Output Validators
============================================
A **pure-function validation pipeline** over ``GeneratorConfig`` and over
the synthesized schema source.

Pydantic handles structural correctness of the configuration.  This module
adds the semantic checks: exclusion entries must be table identifiers,
name overrides must name known operations and produce valid, non-colliding
TypeScript identifiers, and a generated schema must carry its required
imports and exports.

Usage by downstream modules:
    from zerogen.validators import validate_generator_config
    result = validate_generator_config(config)
    if not result.is_valid:
        raise ConfigurationError(...)
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from zerogen.introspector import EXCLUDED_TABLES
from zerogen.models import GeneratorConfig
from zerogen.templates import DEFAULT_OPERATION_NAMES

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def find(self, code: str) -> Optional[ValidationIssue]:
        for item in self._items:
            if item.code == code:
                return item
        return None

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_TABLE_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_JS_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_TYPE_OVERRIDE_KEY_RE: re.Pattern[str] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*\.[A-Za-z_][A-Za-z0-9_]*$"
)
_ZERO_IMPORT_RE: re.Pattern[str] = re.compile(
    r"import\s*\{([^}]*)\}\s*from\s*'@rocicorp/zero'"
)
_TABLE_DEF_RE: re.Pattern[str] = re.compile(r"const \w+ = table\('")
_RELATIONSHIP_DEF_RE: re.Pattern[str] = re.compile(
    r"relationships\(\w+, \(\{ one, many \}\) =>"
)

_JS_RESERVED_WORDS: FrozenSet[str] = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger",
        "default", "delete", "do", "else", "enum", "export", "extends",
        "false", "finally", "for", "function", "if", "import", "in",
        "instanceof", "new", "null", "return", "super", "switch", "this",
        "throw", "true", "try", "typeof", "var", "void", "while", "with",
        "yield", "let", "static", "implements", "interface", "package",
        "private", "protected", "public", "await",
    }
)

# Only one of these is ever emitted for a table.
_EXCLUSIVE_OPERATIONS: FrozenSet[str] = frozenset({"delete", "soft_delete"})

REQUIRED_SCHEMA_IMPORTS: List[str] = ["createSchema", "table"]


# ---------------------------------------------------------------------------
# Configuration validators
# ---------------------------------------------------------------------------


def validate_table_selection(config: GeneratorConfig) -> ValidationResult:
    """
    Validate ``excluded_tables``, ``only_tables`` and ``exclude_patterns``.

    Entries must be table identifiers; repeated entries and entries that
    are already excluded by the built-in list are reported as warnings.
    """
    result: ValidationResult = ValidationResult()

    for field_name in ("excluded_tables", "only_tables"):
        seen: Set[str] = set()
        for name in getattr(config, field_name):
            ctx: Dict[str, Any] = {"field": field_name, "table": name}
            if not _TABLE_IDENTIFIER_RE.match(name):
                result.add_error(
                    "INVALID_TABLE_NAME",
                    f"'{name}' in {field_name} is not a valid table identifier.",
                    ctx,
                )
                continue
            if name in seen:
                result.add_warning(
                    "DUPLICATE_TABLE_ENTRY",
                    f"'{name}' is listed more than once in {field_name}.",
                    ctx,
                )
            seen.add(name)

    for name in config.excluded_tables:
        if name in EXCLUDED_TABLES:
            result.add_info(
                "ALREADY_EXCLUDED",
                f"'{name}' is excluded by default; the entry has no effect.",
                {"table": name},
            )

    overlap: List[str] = sorted(set(config.only_tables) & set(config.excluded_tables))
    if overlap:
        result.add_warning(
            "ONLY_TABLE_EXCLUDED",
            f"Tables both selected and excluded: {', '.join(overlap)}. "
            f"Exclusion wins.",
            {"tables": overlap},
        )

    for pattern in config.exclude_patterns:
        if not pattern.strip():
            result.add_error(
                "EMPTY_EXCLUDE_PATTERN",
                "exclude_patterns must not contain empty entries.",
            )

    return result


def validate_name_overrides(config: GeneratorConfig) -> ValidationResult:
    """
    Validate ``name_overrides``: known logical names, valid TypeScript
    identifiers, and no two co-emitted operations sharing one verb.
    """
    result: ValidationResult = ValidationResult()

    for logical, verb in config.name_overrides.items():
        ctx: Dict[str, Any] = {"operation": logical, "name": verb}
        if logical not in DEFAULT_OPERATION_NAMES:
            result.add_error(
                "UNKNOWN_OPERATION",
                f"name_overrides refers to unknown operation '{logical}'. "
                f"Known: {', '.join(sorted(DEFAULT_OPERATION_NAMES))}.",
                ctx,
            )
        if not _JS_IDENTIFIER_RE.match(verb):
            result.add_error(
                "INVALID_OPERATION_NAME",
                f"'{verb}' (for {logical}) is not a valid TypeScript identifier.",
                ctx,
            )
        elif verb in _JS_RESERVED_WORDS:
            result.add_warning(
                "RESERVED_OPERATION_NAME",
                f"'{verb}' (for {logical}) is a reserved word; it is only "
                f"safe as a prefix of the entity name.",
                ctx,
            )

    merged: Dict[str, str] = {**DEFAULT_OPERATION_NAMES, **config.name_overrides}
    by_verb: Dict[str, List[str]] = defaultdict(list)
    for logical, verb in merged.items():
        by_verb[verb].append(logical)
    for verb, logicals in sorted(by_verb.items()):
        if len(logicals) > 1 and set(logicals) != _EXCLUSIVE_OPERATIONS:
            result.add_error(
                "NAME_COLLISION",
                f"Operations {', '.join(sorted(logicals))} would all be emitted "
                f"as '{verb}'.",
                {"name": verb, "operations": sorted(logicals)},
            )

    return result


def validate_type_overrides(config: GeneratorConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for key in config.type_overrides:
        if not _TYPE_OVERRIDE_KEY_RE.match(key):
            result.add_error(
                "INVALID_TYPE_OVERRIDE_KEY",
                f"type_overrides key '{key}' must look like 'table.column'.",
                {"key": key},
            )
    return result


def validate_pattern_settings(config: GeneratorConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for column in [*config.soft_delete_columns, config.position_column]:
        if not _TABLE_IDENTIFIER_RE.match(column):
            result.add_error(
                "INVALID_COLUMN_NAME",
                f"'{column}' is not a valid column identifier.",
                {"column": column},
            )

    ops: List[str] = [str(getattr(op, "value", op)) for op in config.positioning_operations]
    if len(ops) != len(set(ops)):
        result.add_warning(
            "DUPLICATE_POSITIONING_OPERATION",
            "positioning_operations lists an operation more than once.",
            {"operations": ops},
        )

    for name, targets in config.polymorphic_targets.items():
        if not targets:
            result.add_warning(
                "EMPTY_POLYMORPHIC_TARGETS",
                f"polymorphic_targets['{name}'] is empty and adds nothing.",
                {"association": name},
            )
        for target in targets:
            if not _TABLE_IDENTIFIER_RE.match(target):
                result.add_error(
                    "INVALID_POLYMORPHIC_TARGET",
                    f"'{target}' (for {name}) is not a valid table identifier.",
                    {"association": name, "target": target},
                )

    if not config.client_import.strip():
        result.add_error("EMPTY_CLIENT_IMPORT", "client_import must not be empty.")

    return result


def validate_generator_config(config: GeneratorConfig) -> ValidationResult:
    """
    Run all configuration validators.  Returns a merged ``ValidationResult``.

    Called by the mutation generator before any table is processed.
    """
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[GeneratorConfig], ValidationResult]] = [
        validate_table_selection,
        validate_name_overrides,
        validate_type_overrides,
        validate_pattern_settings,
    ]

    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(config))

    logger.info("Config validation complete: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Generated schema validation
# ---------------------------------------------------------------------------


def validate_schema_source(source: str) -> ValidationResult:
    """
    Check a synthesized schema for the imports and exports the client
    runtime needs, and report table and relationship counts as info.
    """
    result: ValidationResult = ValidationResult()

    match: Optional[re.Match[str]] = _ZERO_IMPORT_RE.search(source)
    imported: Set[str] = set()
    if match is not None:
        imported = {name.strip() for name in match.group(1).split(",") if name.strip()}
    missing: List[str] = [name for name in REQUIRED_SCHEMA_IMPORTS if name not in imported]
    if missing:
        result.add_error(
            "MISSING_IMPORTS",
            f"Missing required imports: {', '.join(missing)}",
            {"missing": missing},
        )

    if "export const schema" not in source:
        result.add_error("MISSING_SCHEMA_EXPORT", "Missing schema export")
    if "export type ZeroClient" not in source:
        result.add_error("MISSING_CLIENT_TYPE", "Missing ZeroClient type export")
    if "inferZodType" in source:
        result.add_error(
            "UNSUPPORTED_API",
            "Schema contains 'inferZodType' which does not exist in the Zero API",
        )
    if ".offset(" in source:
        result.add_warning(
            "DEPRECATED_QUERY_METHOD",
            "Schema may contain deprecated Zero query methods (.offset)",
        )

    table_count: int = len(_TABLE_DEF_RE.findall(source))
    relationship_count: int = len(_RELATIONSHIP_DEF_RE.findall(source))
    if table_count == 0:
        result.add_error("NO_TABLES", "No table definitions found in schema")
    if relationship_count == 0:
        result.add_warning("NO_RELATIONSHIPS", "No relationships found in schema")

    result.add_info(
        "SCHEMA_STATS",
        f"{table_count} tables, {relationship_count} relationship blocks",
        {"table_count": table_count, "relationship_count": relationship_count},
    )
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_table_selection",
    "validate_name_overrides",
    "validate_type_overrides",
    "validate_pattern_settings",
    "validate_generator_config",
    "validate_schema_source",
    "REQUIRED_SCHEMA_IMPORTS",
]

logger.debug("zerogen.validators loaded: %d public symbols.", len(__all__))
