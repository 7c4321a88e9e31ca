# File: zerogen/synthesizer.py
"""
ZeroGen - Schema Synthesizer
=============================
Turns introspected tables and relationships into two TypeScript sources:

    1. the declarative client schema (``table(...)`` definitions,
       ``relationships(...)`` blocks and the ``createSchema`` aggregate)
    2. a companion types file with one interface per table

**Determinism contract:**
    - Tables and relationship blocks follow input order; no timestamps are
      embedded.  Two runs over the same schema snapshot are byte-identical.
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.

**Polymorphic fan-out:** the target schema language has no polymorphic
reference, so each polymorphic belongs-to is expanded into one ``one``
relationship per candidate target present in the schema.  Candidates come
from a fixed per-association lookup table, extendable through
configuration; discriminator values are never queried.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from zerogen.manifest import SCHEMA_MARKER, TYPES_MARKER, is_generated_by_us
from zerogen.models import AssociationInfo, RelationshipInfo, TableInfo
from zerogen.type_mapper import MappedType, TypeMapper, builder_imports
from zerogen.utils import (
    Timer,
    to_camel_case,
    to_plural,
    to_singular,
    to_title_human,
    table_to_class_name,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.synthesizer")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "  "
ZERO_PACKAGE: str = "@rocicorp/zero"

# Association name -> singular names of the tables it may point at.
POLYMORPHIC_TARGETS: Dict[str, Tuple[str, ...]] = {
    "notable": ("job", "task", "client"),
    "loggable": ("job", "task", "client", "user", "person"),
    "schedulable": ("job", "task"),
}

STANDARD_EXPORTS: Tuple[str, ...] = ("schema", "Schema", "ZeroClient")

_TABLE_DEF_RE: re.Pattern[str] = re.compile(r"const (\w+) = table\('([^']+)'\)")
_RELATIONSHIP_DEF_RE: re.Pattern[str] = re.compile(
    r"const (\w+Relationships) = relationships\("
)
_EXPORT_RE: re.Pattern[str] = re.compile(r"export (?:const|type|function|interface) (\w+)")
_IMPORT_FROM_RE: re.Pattern[str] = re.compile(r"from '([^']+)'")
_NON_IDENT_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9_$]")


def schema_identifier(table_name: str) -> str:
    """TypeScript constant holding a table definition."""
    ident: str = _NON_IDENT_RE.sub("_", table_name)
    return f"_{ident}" if ident[:1].isdigit() else ident


def _inline_comment(comment: Optional[str]) -> str:
    if not comment:
        return ""
    return " // " + " ".join(comment.split())


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class SynthesisResult:
    """Output of one ``SchemaSynthesizer.build`` call."""

    schema_source: str = ""
    types_source: str = ""
    tables: List[str] = field(default_factory=list)
    # table name -> relationship keys emitted in its block
    relationships: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    def summary(self) -> str:
        entries: int = sum(len(keys) for keys in self.relationships.values())
        return (
            f"Schema: {self.table_count} tables, {self.relationship_count} "
            f"relationship blocks ({entries} relationships)"
        )


@dataclass(frozen=False, slots=True)
class SchemaChanges:
    """Difference between a previously written schema and a new one."""

    first_generation: bool = False
    new_tables: List[str] = field(default_factory=list)
    removed_tables: List[str] = field(default_factory=list)
    new_relationships: List[str] = field(default_factory=list)
    removed_relationships: List[str] = field(default_factory=list)
    customizations: List[str] = field(default_factory=list)
    migration_notes: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.new_tables
            or self.removed_tables
            or self.new_relationships
            or self.removed_relationships
        )

    def summary(self) -> str:
        if self.first_generation:
            return "First generation: no previous schema."
        if not self.has_changes:
            return "No schema changes detected."
        lines: List[str] = ["Schema changes detected:"]
        if self.new_tables:
            lines.append(f"  + {len(self.new_tables)} new tables: {', '.join(self.new_tables)}")
        if self.removed_tables:
            lines.append(
                f"  - {len(self.removed_tables)} removed tables: "
                f"{', '.join(self.removed_tables)}"
            )
        if self.new_relationships:
            lines.append(f"  + {len(self.new_relationships)} new relationships")
        if self.removed_relationships:
            lines.append(f"  - {len(self.removed_relationships)} removed relationships")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------


class SchemaSynthesizer:
    """
    Stateless source builder; safe to share between threads.

    Usage::

        synth = SchemaSynthesizer(TypeMapper())
        result = synth.build(schema.tables, schema.relationships)
        print(result.schema_source)
    """

    def __init__(
        self,
        type_mapper: Optional[TypeMapper] = None,
        polymorphic_targets: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self._mapper: TypeMapper = type_mapper or TypeMapper()
        self._targets: Dict[str, Tuple[str, ...]] = dict(POLYMORPHIC_TARGETS)
        for name, extra in (polymorphic_targets or {}).items():
            merged: List[str] = list(self._targets.get(name, ()))
            merged.extend(t for t in extra if t not in merged)
            self._targets[name] = tuple(merged)

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def build(
        self,
        tables: Sequence[TableInfo],
        relationships: Iterable[RelationshipInfo] = (),
    ) -> SynthesisResult:
        with Timer("schema synthesis"):
            by_table: Dict[str, RelationshipInfo] = {r.table: r for r in relationships}
            known: Dict[str, TableInfo] = {t.name: t for t in tables}

            definitions: List[str] = []
            used: List[MappedType] = []
            for table in tables:
                source, mapped = self._table_definition(table)
                definitions.append(source)
                used.extend(mapped)

            blocks: List[str] = []
            emitted: Dict[str, List[str]] = {}
            for table in tables:
                rel: Optional[RelationshipInfo] = by_table.get(table.name)
                if rel is None:
                    continue
                block, keys = self._relationship_block(table, rel, known)
                if block:
                    blocks.append(block)
                    emitted[table.name] = keys

            schema_source: str = self._schema_template(
                tables, definitions, blocks, list(emitted), builder_imports(used)
            )
            types_source: str = self.build_types_source(tables)

        result: SynthesisResult = SynthesisResult(
            schema_source=schema_source,
            types_source=types_source,
            tables=[t.name for t in tables],
            relationships=emitted,
        )
        logger.info(result.summary())
        return result

    def polymorphic_candidates(self, association: str) -> Tuple[str, ...]:
        return self._targets.get(association, ())

    # -----------------------------------------------------------------
    # Table definitions
    # -----------------------------------------------------------------

    def _table_definition(self, table: TableInfo) -> Tuple[str, List[MappedType]]:
        ident: str = schema_identifier(table.name)
        pk: str = table.resolved_primary_key
        mapped_types: List[MappedType] = []

        lines: List[str] = [
            f"// {to_title_human(table.name)} table",
            f"const {ident} = table('{table.name}')",
            f"{_INDENT}.columns({{",
        ]
        for col in table.columns:
            mapped: MappedType = (
                self._mapper.map_primary_key(col, table)
                if col.name == pk
                else self._mapper.map_column(col, table)
            )
            mapped_types.append(mapped)
            lines.append(
                f"{_INDENT * 2}{col.name}: {mapped.render()},"
                f"{_inline_comment(col.comment)}"
            )
        lines.append(f"{_INDENT}}})")
        lines.append(f"{_INDENT}.primaryKey('{pk}');")
        return "\n".join(lines), mapped_types

    # -----------------------------------------------------------------
    # Relationship blocks
    # -----------------------------------------------------------------

    def _relationship_block(
        self,
        table: TableInfo,
        rel: RelationshipInfo,
        known: Mapping[str, TableInfo],
    ) -> Tuple[str, List[str]]:
        body: List[str] = []
        keys: List[str] = []
        seen: Set[str] = set()

        def add(key: str, kind: str, source: str, dest: str, target: str) -> None:
            if key in seen:
                logger.debug("Duplicate relationship %s on %s; skipped.", key, table.name)
                return
            seen.add(key)
            keys.append(key)
            body.extend(_relationship_entry(key, kind, source, dest, target))

        for assoc in rel.belongs_to:
            if assoc.polymorphic:
                continue
            target: Optional[TableInfo] = known.get(assoc.target_table or "")
            if target is None:
                continue
            add(to_camel_case(assoc.name), "one",
                assoc.foreign_key, target.resolved_primary_key, target.name)

        for assoc in rel.has_many:
            target = known.get(assoc.target_table or "")
            if target is None:
                continue
            if assoc.through:
                note: Optional[str] = self._through_comment(assoc, known)
                if note:
                    body.append(f"{_INDENT * 2}{note}")
                continue
            if not target.has_column(assoc.foreign_key):
                body.append(
                    f"{_INDENT * 2}// SKIPPED: {to_camel_case(assoc.name)} - foreign key "
                    f"'{assoc.foreign_key}' does not exist in {target.name}"
                )
                continue
            add(to_camel_case(assoc.name), "many",
                table.resolved_primary_key, assoc.foreign_key, target.name)

        for assoc in rel.belongs_to:
            if assoc.target_table == table.name and "parent" in assoc.name:
                add("children", "many",
                    table.resolved_primary_key, assoc.foreign_key, table.name)

        for assoc in rel.polymorphic:
            for key, target in self._fan_out(assoc, known):
                add(key, "one", assoc.foreign_key, target.resolved_primary_key, target.name)

        if not keys:
            return "", []

        ident: str = schema_identifier(table.name)
        lines: List[str] = [
            f"// {to_title_human(table.name)} relationships",
            f"const {ident}Relationships = relationships({ident}, ({{ one, many }}) => ({{",
        ]
        lines.extend(body)
        lines.append("}));")
        return "\n".join(lines), keys

    def _fan_out(
        self,
        assoc: AssociationInfo,
        known: Mapping[str, TableInfo],
    ) -> List[Tuple[str, TableInfo]]:
        expanded: List[Tuple[str, TableInfo]] = []
        for candidate in self.polymorphic_candidates(assoc.name):
            target: Optional[TableInfo] = known.get(to_plural(candidate))
            if target is None:
                logger.debug(
                    "Polymorphic target %s of %s is not in the schema.",
                    candidate,
                    assoc.name,
                )
                continue
            expanded.append((to_camel_case(f"{assoc.name}_{candidate}"), target))
        if not expanded:
            logger.warning(
                "Polymorphic association '%s' has no known targets; add it to "
                "polymorphic_targets to expose it.",
                assoc.name,
            )
        return expanded

    @staticmethod
    def _through_comment(
        assoc: AssociationInfo,
        known: Mapping[str, TableInfo],
    ) -> Optional[str]:
        through: str = assoc.through or ""
        if through not in known and to_plural(through) not in known:
            return None
        return (
            f"// {to_camel_case(assoc.name)} goes through {through}: "
            f"use {to_camel_case(through)}.related('{to_singular(assoc.target_table or '')}')"
        )

    # -----------------------------------------------------------------
    # Aggregate
    # -----------------------------------------------------------------

    def _schema_template(
        self,
        tables: Sequence[TableInfo],
        definitions: List[str],
        blocks: List[str],
        related_tables: List[str],
        builders: List[str],
    ) -> str:
        imports: List[str] = ["createSchema", "table", *builders]
        if blocks:
            imports.append("relationships")
        imports.append("type Zero")

        lines: List[str] = _banner(
            SCHEMA_MARKER,
            [
                "This file is generated from your database schema.",
                "Any manual changes will be overwritten on the next generation.",
                "",
                "FOR CUSTOMIZATIONS:",
                "Create a separate file such as 'custom-schema-extensions.ts' and",
                "extend this schema from your application code.",
            ],
            "zerogen schema",
        )
        lines.append("import {")
        lines.extend(f"{_INDENT}{name}," for name in imports)
        lines.append(f"}} from '{ZERO_PACKAGE}';")
        lines.append("")

        for chunk in definitions + blocks:
            lines.append(chunk)
            lines.append("")

        lines.append("// Create the complete schema")
        lines.append("export const schema = createSchema({")
        lines.append(f"{_INDENT}tables: [")
        lines.extend(f"{_INDENT * 2}{schema_identifier(t.name)}," for t in tables)
        lines.append(f"{_INDENT}],")
        if related_tables:
            lines.append(f"{_INDENT}relationships: [")
            lines.extend(
                f"{_INDENT * 2}{schema_identifier(name)}Relationships,"
                for name in related_tables
            )
            lines.append(f"{_INDENT}],")
        lines.append("});")
        lines.append("")
        lines.append("export type Schema = typeof schema;")
        lines.append("export type ZeroClient = Zero<Schema>;")
        lines.append("")
        return "\n".join(lines)

    # -----------------------------------------------------------------
    # Types file
    # -----------------------------------------------------------------

    def build_types_source(self, tables: Sequence[TableInfo]) -> str:
        lines: List[str] = _banner(TYPES_MARKER, [], "zerogen schema")

        for table in tables:
            pk: str = table.resolved_primary_key
            lines.append(f"export interface {table_to_class_name(table.name)} {{")
            for col in table.columns:
                optional: str = "?" if col.nullable and col.name != pk else ""
                lines.append(
                    f"{_INDENT}{col.name}{optional}: "
                    f"{self._mapper.typescript_type(col, table)};"
                    f"{_inline_comment(col.comment)}"
                )
            lines.append("}")
            lines.append("")

        table_union: str = " | ".join(f"'{t.name}'" for t in tables) or "never"
        model_union: str = " | ".join(f"'{to_singular(t.name)}'" for t in tables) or "never"
        lines.append("// Union types for easier usage")
        lines.append(f"export type TableNames = {table_union};")
        lines.append(f"export type ModelNames = {model_union};")
        lines.append("")
        return "\n".join(lines)


def _relationship_entry(
    key: str,
    kind: str,
    source_field: str,
    dest_field: str,
    target_table: str,
) -> List[str]:
    pad: str = _INDENT * 2
    return [
        f"{pad}{key}: {kind}({{",
        f"{pad}{_INDENT}sourceField: ['{source_field}'],",
        f"{pad}{_INDENT}destField: ['{dest_field}'],",
        f"{pad}{_INDENT}destSchema: {schema_identifier(target_table)},",
        f"{pad}}}),",
    ]


def _banner(marker: str, body: List[str], command: str) -> List[str]:
    lines: List[str] = [f"// {marker}", "//", "// DO NOT EDIT THIS FILE DIRECTLY"]
    lines.extend(f"// {text}" if text else "//" for text in body)
    lines.append("//")
    lines.append(f"// TO REGENERATE: Run `{command}`")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------


def extract_table_names(source: str) -> List[str]:
    return [table for _, table in _TABLE_DEF_RE.findall(source)]


def extract_relationship_names(source: str) -> List[str]:
    return _RELATIONSHIP_DEF_RE.findall(source)


def find_customizations(source: str) -> List[str]:
    """Hand-made additions to a schema file that regeneration would drop."""
    found: List[str] = []
    if not is_generated_by_us(source):
        found.append("Generator banner removed")
    foreign: List[str] = sorted(
        {m for m in _IMPORT_FROM_RE.findall(source) if m != ZERO_PACKAGE}
    )
    if foreign:
        found.append(f"Custom imports: {', '.join(foreign)}")
    exports: List[str] = [
        name for name in _EXPORT_RE.findall(source) if name not in STANDARD_EXPORTS
    ]
    if exports:
        found.append(f"Custom exports: {', '.join(exports)}")
    return found


def detect_schema_changes(old_source: Optional[str], new_source: str) -> SchemaChanges:
    """Compare a previously written schema with a freshly synthesized one."""
    if old_source is None:
        return SchemaChanges(first_generation=True)

    old_tables: List[str] = extract_table_names(old_source)
    new_tables: List[str] = extract_table_names(new_source)
    old_rels: List[str] = extract_relationship_names(old_source)
    new_rels: List[str] = extract_relationship_names(new_source)

    changes: SchemaChanges = SchemaChanges(
        new_tables=[t for t in new_tables if t not in old_tables],
        removed_tables=[t for t in old_tables if t not in new_tables],
        new_relationships=[r for r in new_rels if r not in old_rels],
        removed_relationships=[r for r in old_rels if r not in new_rels],
        customizations=find_customizations(old_source),
    )

    if changes.new_tables:
        changes.migration_notes.append(
            f"NEW TABLES: {', '.join(changes.new_tables)} - "
            "Update your queries to use these new tables"
        )
    if changes.removed_tables:
        changes.migration_notes.append(
            f"REMOVED TABLES: {', '.join(changes.removed_tables)} - "
            "Remove any queries using these tables"
        )
    if changes.new_relationships:
        changes.migration_notes.append(
            f"NEW RELATIONSHIPS: {len(changes.new_relationships)} added - "
            "Update your joins and includes"
        )
    if changes.removed_relationships:
        changes.migration_notes.append(
            f"REMOVED RELATIONSHIPS: {len(changes.removed_relationships)} removed - "
            "Update affected queries"
        )
    return changes


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaSynthesizer",
    "SynthesisResult",
    "SchemaChanges",
    "POLYMORPHIC_TARGETS",
    "schema_identifier",
    "extract_table_names",
    "extract_relationship_names",
    "find_customizations",
    "detect_schema_changes",
]

logger.debug("zerogen.synthesizer loaded.")
