# File: zerogen/templates.py
"""
ZeroGen - Mutation Template Engine
===================================
Transforms a ``TableInfo`` plus its ``PatternSet`` into the three
TypeScript sources of the generated/custom split:

    1. ``<entity>.generated.ts``  machine-owned CRUD and pattern mutations
    2. ``<entity>.custom.ts``     human-owned, seeded once with examples
    3. ``<entity>.ts``            re-export of generated then custom

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()`` pattern.
    - Template methods are stateless; safe for concurrent use.

**Determinism contract:**
    - No timestamps or run-specific values are rendered, so an unchanged
      table always renders byte-identical sources.
    - Enum transitions are emitted only as commented guidance: whether a
      transition is legal is domain logic.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from zerogen.manifest import CUSTOM_MARKER, GENERATED_MARKER, MERGER_MARKER
from zerogen.models import (
    ColumnInfo,
    FileKind,
    GeneratorConfig,
    PatternSet,
    PositioningPattern,
    SoftDeletionPattern,
    TableInfo,
)
from zerogen.type_mapper import TypeMapper
from zerogen.utils import to_pascal_case, to_singular, to_snake_case, to_title_human

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "  "

# Logical operation name -> emitted verb.  The full function name is the
# verb followed by the entity class name, e.g. ``moveToTop`` + ``Task``.
DEFAULT_OPERATION_NAMES: Dict[str, str] = {
    "create": "create",
    "update": "update",
    "delete": "delete",
    "soft_delete": "delete",
    "upsert": "upsert",
    "restore": "restore",
    "move_before": "moveBefore",
    "move_after": "moveAfter",
    "move_to_top": "moveToTop",
    "move_to_bottom": "moveToBottom",
}

TIMESTAMP_COLUMNS: Tuple[str, str] = ("created_at", "updated_at")

TOP_POSITION: int = 0


def file_names(table: TableInfo, extension: str = "ts") -> Dict[str, str]:
    """File names of the three mutation files, keyed by file kind."""
    stem: str = table.entity_name
    ext: str = extension.lstrip(".")
    return {
        FileKind.GENERATED.value: f"{stem}.generated.{ext}",
        FileKind.CUSTOM.value: f"{stem}.custom.{ext}",
        FileKind.MAIN.value: f"{stem}.{ext}",
    }


class MutationTemplates:
    """
    Stateless mutation source engine.

    Each ``render_*`` method returns a complete file content string.

    Usage::

        templates = MutationTemplates(config)
        source = templates.render_generated(table, patterns)
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        type_mapper: Optional[TypeMapper] = None,
    ) -> None:
        self._config: GeneratorConfig = config or GeneratorConfig()
        self._mapper: TypeMapper = type_mapper or TypeMapper(self._config.type_overrides)
        self._names: Dict[str, str] = {
            **DEFAULT_OPERATION_NAMES,
            **self._config.name_overrides,
        }

    # ===================================================================
    # Naming
    # ===================================================================

    @property
    def operation_names(self) -> Mapping[str, str]:
        return dict(self._names)

    def verb(self, operation: str) -> str:
        return self._names.get(operation, operation)

    def function_name(self, operation: str, table: TableInfo) -> str:
        return f"{self.verb(operation)}{table.class_name}"

    def operations_for(self, patterns: PatternSet) -> List[str]:
        """Logical operations the generated file exports, in emission order."""
        soft: Optional[SoftDeletionPattern] = patterns.soft_deletion
        ops: List[str] = ["create", "update", "soft_delete" if soft else "delete", "upsert"]
        positioning: Optional[PositioningPattern] = patterns.positioning
        if positioning is not None:
            ops.extend(str(getattr(op, "value", op)) for op in positioning.operations)
        if soft is not None:
            ops.append("restore")
        return ops

    def exported_functions(self, table: TableInfo, patterns: PatternSet) -> List[str]:
        return [self.function_name(op, table) for op in self.operations_for(patterns)]

    # ===================================================================
    # 1. Generated file
    # ===================================================================

    def render_generated(self, table: TableInfo, patterns: PatternSet) -> str:
        names: Dict[str, str] = file_names(table, self._config.file_extension)
        lines: List[str] = [
            f"// {GENERATED_MARKER}",
            "//",
            "// DO NOT EDIT THIS FILE DIRECTLY",
            "// This file is automatically generated. Manual changes will be overwritten.",
            "//",
            "// FOR CUSTOMIZATIONS:",
            f"// Use {names[FileKind.CUSTOM.value]} for your custom mutations",
            "//",
            "// TO REGENERATE: Run `zerogen mutations`",
            "",
            f"import {{ getZero }} from '{self._config.client_import}';",
            "",
            f"// Generated CRUD mutations for {table.name}",
            "",
        ]

        bodies: List[List[str]] = []
        for op in self.operations_for(patterns):
            bodies.append(self._render_operation(op, table, patterns))
        for body in bodies:
            lines.extend(body)
            lines.append("")

        if patterns.enums is not None:
            lines.extend(self._enum_guidance(table, patterns))
            lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Rendered generated mutations for '%s': %d functions.",
            table.name,
            len(bodies),
        )
        return content

    def _render_operation(
        self,
        op: str,
        table: TableInfo,
        patterns: PatternSet,
    ) -> List[str]:
        if op == "create":
            return self._create(table, patterns)
        if op == "update":
            return self._update(table)
        if op == "delete":
            return self._hard_delete(table)
        if op == "soft_delete":
            return self._soft_delete(table, patterns.soft_deletion)
        if op == "upsert":
            return self._upsert(table)
        if op == "restore":
            return self._restore(table, patterns.soft_deletion)
        return self._move(op, table, patterns.positioning)

    # -------------------------------------------------------------------
    # Parameter shapes
    # -------------------------------------------------------------------

    def _writable_columns(
        self,
        table: TableInfo,
        patterns: PatternSet,
    ) -> List[ColumnInfo]:
        skipped: List[str] = [table.resolved_primary_key, "id", *TIMESTAMP_COLUMNS]
        if patterns.soft_deletion is not None:
            skipped.append(patterns.soft_deletion.column)
        return [c for c in table.columns if c.name not in skipped]

    def _field(self, col: ColumnInfo, table: TableInfo, optional: bool) -> str:
        marker: str = "?" if optional else ""
        return f"{col.name}{marker}: {self._mapper.typescript_type(col, table)};"

    def _timestamps(self, table: TableInfo, *names: str) -> List[str]:
        return [f"{_INDENT * 2}{n}: now," for n in names if table.has_column(n)]

    def _uses_now(self, table: TableInfo, *names: str) -> bool:
        return any(table.has_column(n) for n in names)

    # -------------------------------------------------------------------
    # Baseline CRUD
    # -------------------------------------------------------------------

    def _create(self, table: TableInfo, patterns: PatternSet) -> List[str]:
        position: Optional[str] = (
            patterns.positioning.column if patterns.positioning is not None else None
        )
        required: List[str] = []
        optional: List[str] = []
        for col in self._writable_columns(table, patterns):
            if col.name == position or col.nullable or col.default is not None:
                optional.append(self._field(col, table, optional=True))
            else:
                required.append(self._field(col, table, optional=False))

        pk: str = table.resolved_primary_key
        lines: List[str] = [
            "/**",
            f" * Create a new {to_singular(table.name)}",
            " */",
            f"export async function {self.function_name('create', table)}(data: {{",
        ]
        lines.extend(f"{_INDENT}{f}" for f in required + optional)
        lines.append("}) {")
        lines.append(f"{_INDENT}const zero = getZero();")
        lines.append(f"{_INDENT}const {pk} = crypto.randomUUID();")
        if self._uses_now(table, *TIMESTAMP_COLUMNS):
            lines.append(f"{_INDENT}const now = Date.now();")
        lines.append("")
        lines.append(f"{_INDENT}await zero.mutate.{table.name}.insert({{")
        lines.append(f"{_INDENT * 2}{pk},")
        lines.append(f"{_INDENT * 2}...data,")
        lines.extend(self._timestamps(table, *TIMESTAMP_COLUMNS))
        lines.append(f"{_INDENT}}});")
        lines.append("")
        lines.append(f"{_INDENT}return {{ {pk} }};")
        lines.append("}")
        return lines

    def _update(self, table: TableInfo) -> List[str]:
        pk: str = table.resolved_primary_key
        fields: List[str] = [
            self._field(col, table, optional=False)
            for col in table.columns
            if col.name not in (pk, *TIMESTAMP_COLUMNS)
        ]
        lines: List[str] = [
            "/**",
            f" * Update a {to_singular(table.name)}",
            " */",
            f"export async function {self.function_name('update', table)}"
            f"({pk}: string, data: Partial<{{",
        ]
        lines.extend(f"{_INDENT}{f}" for f in fields)
        lines.append("}>) {")
        lines.extend(self._update_call(table, [f"{_INDENT * 2}...data,"]))
        return lines

    def _hard_delete(self, table: TableInfo) -> List[str]:
        pk: str = table.resolved_primary_key
        return [
            "/**",
            f" * Delete a {to_singular(table.name)} (permanent deletion)",
            " */",
            f"export async function {self.function_name('delete', table)}({pk}: string) {{",
            f"{_INDENT}const zero = getZero();",
            "",
            f"{_INDENT}await zero.mutate.{table.name}.delete({{ {pk} }});",
            "",
            f"{_INDENT}return {{ {pk} }};",
            "}",
        ]

    def _upsert(self, table: TableInfo) -> List[str]:
        pk: str = table.resolved_primary_key
        lines: List[str] = [
            "/**",
            f" * Create or update a {to_singular(table.name)}",
            " */",
            f"export async function {self.function_name('upsert', table)}"
            f"(data: {{ {pk}: string; [key: string]: any }}) {{",
            f"{_INDENT}const zero = getZero();",
        ]
        if self._uses_now(table, "updated_at"):
            lines.append(f"{_INDENT}const now = Date.now();")
        lines.append("")
        lines.append(f"{_INDENT}await zero.mutate.{table.name}.upsert({{")
        lines.append(f"{_INDENT * 2}...data,")
        lines.extend(self._timestamps(table, "updated_at"))
        lines.append(f"{_INDENT}}});")
        lines.append("")
        lines.append(f"{_INDENT}return {{ {pk}: data.{pk} }};")
        lines.append("}")
        return lines

    # -------------------------------------------------------------------
    # Soft deletion
    # -------------------------------------------------------------------

    def _soft_delete(
        self,
        table: TableInfo,
        pattern: Optional[SoftDeletionPattern],
    ) -> List[str]:
        column: str = pattern.column if pattern is not None else "deleted_at"
        pk: str = table.resolved_primary_key
        lines: List[str] = [
            "/**",
            f" * {to_title_human(to_snake_case(self.verb('soft_delete')))} a "
            f"{to_singular(table.name)} (soft deletion: sets {column})",
            " */",
            f"export async function {self.function_name('soft_delete', table)}"
            f"({pk}: string) {{",
        ]
        lines.extend(self._update_call(table, [f"{_INDENT * 2}{column}: now,"], force_now=True))
        return lines

    def _restore(
        self,
        table: TableInfo,
        pattern: Optional[SoftDeletionPattern],
    ) -> List[str]:
        column: str = pattern.column if pattern is not None else "deleted_at"
        pk: str = table.resolved_primary_key
        lines: List[str] = [
            "/**",
            f" * {to_title_human(to_snake_case(self.verb('restore')))} a soft-deleted "
            f"{to_singular(table.name)}",
            " */",
            f"export async function {self.function_name('restore', table)}({pk}: string) {{",
        ]
        lines.extend(self._update_call(table, [f"{_INDENT * 2}{column}: null,"]))
        return lines

    # -------------------------------------------------------------------
    # Positioning
    # -------------------------------------------------------------------

    def _move(
        self,
        op: str,
        table: TableInfo,
        pattern: Optional[PositioningPattern],
    ) -> List[str]:
        column: str = pattern.column if pattern is not None else "position"
        pk: str = table.resolved_primary_key
        singular: str = to_singular(table.name)

        docs: Dict[str, Tuple[str, str, str]] = {
            "move_before": (
                f"Move {singular} before the {singular} at targetPosition",
                "targetPosition: number",
                "targetPosition",
            ),
            "move_after": (
                f"Move {singular} after the {singular} at targetPosition",
                "targetPosition: number",
                "targetPosition + 1",
            ),
            "move_to_top": (
                f"Move {singular} to first position",
                "",
                str(TOP_POSITION),
            ),
            "move_to_bottom": (
                f"Move {singular} to last position",
                "lastPosition: number",
                "lastPosition + 1",
            ),
        }
        summary, extra_param, value = docs[op]
        params: str = f"{pk}: string" + (f", {extra_param}" if extra_param else "")

        lines: List[str] = [
            "/**",
            f" * {summary}",
            " */",
            f"export async function {self.function_name(op, table)}({params}) {{",
        ]
        lines.extend(self._update_call(table, [f"{_INDENT * 2}{column}: {value},"]))
        return lines

    # -------------------------------------------------------------------
    # Shared update body
    # -------------------------------------------------------------------

    def _update_call(
        self,
        table: TableInfo,
        assignments: List[str],
        force_now: bool = False,
    ) -> List[str]:
        pk: str = table.resolved_primary_key
        lines: List[str] = [f"{_INDENT}const zero = getZero();"]
        if force_now or self._uses_now(table, "updated_at"):
            lines.append(f"{_INDENT}const now = Date.now();")
        lines.append("")
        lines.append(f"{_INDENT}await zero.mutate.{table.name}.update({{")
        lines.append(f"{_INDENT * 2}{pk},")
        lines.extend(assignments)
        lines.extend(self._timestamps(table, "updated_at"))
        lines.append(f"{_INDENT}}});")
        lines.append("")
        lines.append(f"{_INDENT}return {{ {pk} }};")
        lines.append("}")
        return lines

    # -------------------------------------------------------------------
    # Enum guidance
    # -------------------------------------------------------------------

    def _enum_guidance(self, table: TableInfo, patterns: PatternSet) -> List[str]:
        if patterns.enums is None:
            return []
        update_fn: str = self.function_name("update", table)
        lines: List[str] = [
            f"// Enum columns are updated through {update_fn}.",
            "// Transition rules belong in "
            f"{file_names(table, self._config.file_extension)[FileKind.CUSTOM.value]}.",
        ]
        for enum_col in patterns.enums.columns:
            values: str = " | ".join(f"'{v}'" for v in enum_col.values)
            lines.append(f"//   {enum_col.column}: {values}")
        return lines

    # ===================================================================
    # 2. Custom file (write-once)
    # ===================================================================

    def render_custom(self, table: TableInfo, patterns: PatternSet) -> str:
        class_name: str = table.class_name
        pk: str = table.resolved_primary_key
        lines: List[str] = [
            f"// {CUSTOM_MARKER}",
            "// Add your custom mutation logic here",
            "//",
            "// This file is safe to edit - it won't be overwritten by generation",
            "//",
            "// You can override generated mutations by exporting functions with the same name",
            "",
            f"import {{ getZero }} from '{self._config.client_import}';",
            "",
            f"// Custom mutations for {table.name}",
            "",
        ]

        if patterns.soft_deletion is not None:
            lines.extend([
                "// Example: Hard delete (permanent removal)",
                f"// export async function hardDelete{class_name}({pk}: string) {{",
                "//   const zero = getZero();",
                f"//   await zero.mutate.{table.name}.delete({{ {pk} }});",
                f"//   return {{ {pk} }};",
                "// }",
                "",
            ])

        if patterns.enums is not None and patterns.enums.columns:
            first = patterns.enums.columns[0]
            values: str = " | ".join(f"'{v}'" for v in first.values)
            transition: str = f"transition{class_name}{to_pascal_case(first.column)}"
            lines.extend([
                "// Example: Status transition with business logic",
                f"// export async function {transition}(",
                f"//   {pk}: string,",
                f"//   next: {values}",
                "// ) {",
                "//   // Check the current value and validate the transition here",
                f"//   return {self.function_name('update', table)}({pk}, "
                f"{{ {first.column}: next }});",
                "// }",
                "",
            ])

        lines.extend([
            "// Example: Custom validation mutation",
            f"// export async function validateAndUpdate{class_name}({pk}: string, data: any) {{",
            "//   // Add custom validation logic",
            "//   // Then call the standard update",
            f"//   return {self.function_name('update', table)}({pk}, data);",
            "// }",
            "",
        ])
        return "\n".join(lines)

    # ===================================================================
    # 3. Main (merge) file
    # ===================================================================

    def render_main(self, table: TableInfo) -> str:
        names: Dict[str, str] = file_names(table, self._config.file_extension)
        ext: str = f".{self._config.file_extension}"
        generated_module: str = names[FileKind.GENERATED.value][: -len(ext)]
        custom_module: str = names[FileKind.CUSTOM.value][: -len(ext)]
        create_fn: str = self.function_name("create", table)

        lines: List[str] = [
            f"// {MERGER_MARKER}",
            "// This file combines generated and custom mutations",
            "//",
            "// This file is automatically regenerated - do not edit directly",
            "//",
            "// Import this file to get access to all mutations:",
            f"// import {{ {create_fn} }} from './{table.entity_name}';",
            "",
            f"// Main export file for {table.name} mutations",
            "",
            "// Export all generated mutations",
            f"export * from './{generated_module}';",
            "",
            "// Export all custom mutations",
            f"export * from './{custom_module}';",
            "",
            "// Note: Custom mutations with the same name will override generated ones",
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 4. Aggregate
    # ===================================================================

    def render_all(self, table: TableInfo, patterns: PatternSet) -> Dict[str, str]:
        """All three bodies for one table, keyed by file kind."""
        return {
            FileKind.GENERATED.value: self.render_generated(table, patterns),
            FileKind.CUSTOM.value: self.render_custom(table, patterns),
            FileKind.MAIN.value: self.render_main(table),
        }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MutationTemplates",
    "DEFAULT_OPERATION_NAMES",
    "file_names",
]

logger.debug("zerogen.templates loaded.")
