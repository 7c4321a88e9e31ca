# File: zerogen/registry.py
"""
ZeroGen - Domain Model Registry
================================
An explicit, versioned list of domain model descriptors (name, table,
associations, enums) that the introspector is allowed to resolve.

Descriptors come from static configuration (a YAML ``models:`` section) or
from a SQLAlchemy declarative base.  Nothing is discovered by scanning the
codebase, so the introspector's input is fully deterministic.

Resolution is permissive: a listed model that is not registered, or whose
table does not exist in the connected database, is skipped silently.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Set,
    runtime_checkable,
)

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zerogen.exceptions import ConfigurationError
from zerogen.models import (
    AssociationInfo,
    AssociationKind,
    PositioningOperation,
    RelationshipInfo,
)
from zerogen.utils import to_pascal_case, to_plural, to_singular, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.registry")

_DESCRIPTOR_CONFIG: ConfigDict = ConfigDict(
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


@runtime_checkable
class EnumAware(Protocol):
    """A descriptor that can answer which columns are enumerations."""

    def enum_values_for(self, column: str) -> Optional[List[str]]:
        ...


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class AssociationSpec(BaseModel):
    """Association as declared in configuration; defaults follow ORM conventions."""

    model_config = _DESCRIPTOR_CONFIG

    name: str = Field(..., min_length=1)
    kind: AssociationKind = Field(...)
    target_table: Optional[str] = Field(default=None)
    target_class: Optional[str] = Field(default=None)
    foreign_key: Optional[str] = Field(default=None)
    through: Optional[str] = Field(default=None)
    dependent: Optional[str] = Field(default=None)
    optional: bool = Field(default=False)
    polymorphic: bool = Field(default=False)
    as_: Optional[str] = Field(
        default=None, alias="as", description="Polymorphic interface name."
    )

    def resolve(self, owner_table: str) -> AssociationInfo:
        """Fill in conventional defaults relative to the owning table."""
        if self.kind == AssociationKind.BELONGS_TO.value:
            foreign_key: str = self.foreign_key or f"{self.name}_id"
            if self.polymorphic:
                return AssociationInfo(
                    name=self.name,
                    kind=AssociationKind.BELONGS_TO,
                    foreign_key=foreign_key,
                    target_table=None,
                    target_class=None,
                    optional=self.optional,
                    polymorphic=True,
                    foreign_type=f"{self.name}_type",
                )
            target_class: str = self.target_class or to_pascal_case(self.name)
            return AssociationInfo(
                name=self.name,
                kind=AssociationKind.BELONGS_TO,
                foreign_key=foreign_key,
                target_table=self.target_table
                or to_plural(to_snake_case(target_class)),
                target_class=target_class,
                optional=self.optional,
            )

        owner_key: str = (
            f"{self.as_}_id" if self.as_ else f"{to_singular(owner_table)}_id"
        )
        if self.kind == AssociationKind.HAS_MANY.value:
            target_class = self.target_class or to_pascal_case(to_singular(self.name))
            default_table: str = self.name
        else:
            target_class = self.target_class or to_pascal_case(self.name)
            default_table = to_plural(self.name)

        return AssociationInfo(
            name=self.name,
            kind=self.kind,
            foreign_key=self.foreign_key or owner_key,
            target_table=self.target_table
            or (to_plural(to_snake_case(self.target_class)) if self.target_class
                else default_table),
            target_class=target_class,
            through=self.through,
            dependent=self.dependent,
        )


class ModelDescriptor(BaseModel):
    """
    Static description of one domain model.

    Implements ``EnumAware``: ``enums`` maps column name to its declared
    labels.
    """

    model_config = _DESCRIPTOR_CONFIG

    name: str = Field(..., min_length=1, description="Model class name.")
    table: Optional[str] = Field(default=None, description="Backing table name.")
    enums: Dict[str, List[str]] = Field(default_factory=dict)
    positioning: Optional[List[PositioningOperation]] = Field(
        default=None,
        description="Move operations the model supports (None: config default).",
    )
    associations: List[AssociationSpec] = Field(default_factory=list)

    @property
    def resolved_table(self) -> str:
        return self.table or to_plural(to_snake_case(self.name))

    def enum_values_for(self, column: str) -> Optional[List[str]]:
        values: Optional[List[str]] = self.enums.get(column)
        return list(values) if values is not None else None

    def to_relationship(self) -> RelationshipInfo:
        table: str = self.resolved_table
        belongs_to: List[AssociationInfo] = []
        has_many: List[AssociationInfo] = []
        has_one: List[AssociationInfo] = []
        polymorphic: List[AssociationInfo] = []

        for spec in self.associations:
            assoc: AssociationInfo = spec.resolve(table)
            if assoc.kind == AssociationKind.BELONGS_TO.value:
                belongs_to.append(assoc)
                if assoc.polymorphic:
                    polymorphic.append(assoc)
            elif assoc.kind == AssociationKind.HAS_MANY.value:
                has_many.append(assoc)
            else:
                has_one.append(assoc)

        return RelationshipInfo(
            model=self.name,
            table=table,
            belongs_to=belongs_to,
            has_many=has_many,
            has_one=has_one,
            polymorphic=polymorphic,
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ModelRegistry:
    """
    Name-keyed collection of descriptors plus the list of names that may
    be resolved.

    Usage::

        registry = ModelRegistry.from_yaml(Path("zero_models.yml"))
        relationships = registry.resolve({"jobs", "tasks"})
    """

    def __init__(
        self,
        descriptors: Iterable[Any] = (),
        known_models: Optional[Sequence[str]] = None,
        version: int = 1,
    ) -> None:
        self._descriptors: Dict[str, Any] = {}
        for descriptor in descriptors:
            self._descriptors[descriptor.name] = descriptor
        self.known_models: List[str] = (
            list(known_models) if known_models is not None
            else list(self._descriptors)
        )
        self.version: int = version

    # -----------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ModelRegistry":
        """
        Build from a parsed config mapping.

        ``models`` may be a list of descriptor mappings or a mapping of
        model name to descriptor body.
        """
        raw_models: Any = data.get("models") or []
        if isinstance(raw_models, Mapping):
            raw_models = [
                {"name": name, **(body or {})} for name, body in raw_models.items()
            ]

        try:
            descriptors: List[ModelDescriptor] = [
                ModelDescriptor.model_validate(item) for item in raw_models
            ]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid model registry: {exc}") from exc

        known: Optional[List[str]] = data.get("known_models")
        version: int = int(data.get("version", 1))
        logger.info(
            "Loaded model registry v%d: %d descriptor(s).", version, len(descriptors)
        )
        return cls(descriptors, known_models=known, version=version)

    @classmethod
    def from_yaml(cls, path: Path) -> "ModelRegistry":
        if not path.is_file():
            raise ConfigurationError(f"Model registry not found: {path}")
        try:
            data: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Expected a YAML mapping in {path}, got {type(data).__name__}."
            )
        return cls.from_mapping(data)

    @classmethod
    def from_declarative(
        cls,
        base: Any,
        names: Optional[Sequence[str]] = None,
    ) -> "ModelRegistry":
        """
        Build descriptors from SQLAlchemy declarative classes.

        Many-to-one relationships become belongs-to, one-to-many become
        has-many (or has-one when ``uselist`` is false) and many-to-many
        become has-many ``through`` their secondary table.  ``Enum``
        columns are recorded as enums.
        """
        from sqlalchemy import Enum as SAEnum
        from sqlalchemy.orm import MANYTOMANY, MANYTOONE

        descriptors: List[ModelDescriptor] = []
        for mapper in sorted(base.registry.mappers, key=lambda m: m.class_.__name__):
            name: str = mapper.class_.__name__
            if names is not None and name not in names:
                continue
            table_name: str = mapper.local_table.name

            enums: Dict[str, List[str]] = {
                col.name: list(col.type.enums)
                for col in mapper.local_table.columns
                if isinstance(col.type, SAEnum)
            }

            specs: List[AssociationSpec] = []
            for rel in mapper.relationships:
                target_table: str = rel.mapper.local_table.name
                target_class: str = rel.mapper.class_.__name__
                dependent: Optional[str] = "destroy" if rel.cascade.delete else None

                if rel.direction is MANYTOONE:
                    local_col: Any = next(iter(rel.local_columns))
                    specs.append(AssociationSpec(
                        name=rel.key,
                        kind=AssociationKind.BELONGS_TO,
                        target_table=target_table,
                        target_class=target_class,
                        foreign_key=local_col.name,
                        optional=bool(local_col.nullable),
                    ))
                elif rel.direction is MANYTOMANY:
                    specs.append(AssociationSpec(
                        name=rel.key,
                        kind=AssociationKind.HAS_MANY,
                        target_table=target_table,
                        target_class=target_class,
                        foreign_key=f"{to_singular(table_name)}_id",
                        through=rel.secondary.name,
                    ))
                else:
                    remote_col: Any = next(iter(rel.remote_side))
                    specs.append(AssociationSpec(
                        name=rel.key,
                        kind=(AssociationKind.HAS_MANY if rel.uselist
                              else AssociationKind.HAS_ONE),
                        target_table=target_table,
                        target_class=target_class,
                        foreign_key=remote_col.name,
                        dependent=dependent,
                    ))

            descriptors.append(ModelDescriptor(
                name=name,
                table=table_name,
                enums=enums,
                associations=specs,
            ))

        logger.info(
            "Built %d descriptor(s) from declarative base %s.",
            len(descriptors),
            getattr(base, "__name__", base),
        )
        return cls(descriptors, known_models=names)

    # -----------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------

    def lookup(self, name: str) -> Optional[Any]:
        return self._descriptors.get(name)

    def resolved_descriptors(self, available_tables: Iterable[str]) -> List[Any]:
        """Descriptors that are registered and have a backing table, in list order."""
        tables: Set[str] = set(available_tables)
        resolved: List[Any] = []
        for name in self.known_models:
            descriptor: Optional[Any] = self.lookup(name)
            if descriptor is None:
                logger.debug("Model %s is not registered; skipping.", name)
                continue
            table: str = descriptor.resolved_table
            if table not in tables:
                logger.debug(
                    "Model %s has no backing table '%s'; skipping.", name, table
                )
                continue
            resolved.append(descriptor)
        return resolved

    def resolve(self, available_tables: Iterable[str]) -> List[RelationshipInfo]:
        """Relationship records for every resolvable model."""
        relationships: List[RelationshipInfo] = []
        for descriptor in self.resolved_descriptors(available_tables):
            try:
                relationships.append(descriptor.to_relationship())
            except (ValueError, TypeError, AttributeError) as exc:
                logger.debug(
                    "Could not resolve associations for %s: %s", descriptor.name, exc
                )
        return relationships

    def find_for_table(
        self,
        table: str,
        available_tables: Optional[Iterable[str]] = None,
    ) -> Optional[Any]:
        candidates: List[Any] = (
            self.resolved_descriptors(available_tables)
            if available_tables is not None
            else [d for d in (self.lookup(n) for n in self.known_models) if d]
        )
        for descriptor in candidates:
            if descriptor.resolved_table == table:
                return descriptor
        return None

    def enum_values(self, table: str, column: str) -> Optional[List[str]]:
        """Declared enum labels, or None for unresolvable or non-EnumAware models."""
        descriptor: Optional[Any] = self.find_for_table(table)
        if descriptor is None or not isinstance(descriptor, EnumAware):
            return None
        return descriptor.enum_values_for(column)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return (
            f"<ModelRegistry v{self.version}: {len(self._descriptors)} descriptors, "
            f"{len(self.known_models)} known>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EnumAware",
    "AssociationSpec",
    "ModelDescriptor",
    "ModelRegistry",
]

logger.debug("zerogen.registry loaded.")
