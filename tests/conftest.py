"""
tests/conftest.py
Shared fixtures for the zerogen test suite.

No external mocking libraries are used; real SQLite databases are built
with SQLAlchemy Core inside pytest's tmp_path, and real file I/O is
performed in temporary output directories.
"""

from __future__ import annotations

import copy
import logging
import pathlib
from typing import Any, Dict, Iterator

import pytest
import yaml
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)

from zerogen.introspector import DatabaseHandle, SchemaIntrospector
from zerogen.models import (
    AssociationInfo,
    ColumnInfo,
    ExtractedSchema,
    GeneratorConfig,
    RelationshipInfo,
    TableInfo,
)
from zerogen.patterns import PatternDetector
from zerogen.registry import ModelRegistry


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_zerogen_logging() -> Iterator[None]:
    """The CLI reconfigures the 'zerogen' logger; undo it after each test."""
    yield
    logging.disable(logging.NOTSET)
    root_logger: logging.Logger = logging.getLogger("zerogen")
    root_logger.handlers.clear()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Model registry
# ---------------------------------------------------------------------------

REGISTRY_DATA: Dict[str, Any] = {
    "version": 1,
    "models": {
        "Client": {
            "associations": [
                {"name": "jobs", "kind": "has_many", "dependent": "destroy"},
            ],
        },
        "Job": {
            "enums": {"status": ["open", "in_progress", "closed"]},
            "associations": [
                {"name": "client", "kind": "belongs_to"},
                {"name": "tasks", "kind": "has_many"},
            ],
        },
        "Task": {
            "enums": {"status": ["new_task", "in_progress", "completed"]},
            "associations": [
                {"name": "job", "kind": "belongs_to"},
                {
                    "name": "parent",
                    "kind": "belongs_to",
                    "target_class": "Task",
                    "optional": True,
                },
            ],
        },
        "Note": {
            "associations": [
                {"name": "notable", "kind": "belongs_to", "polymorphic": True},
            ],
        },
        "Invoice": {
            "associations": [{"name": "client", "kind": "belongs_to"}],
        },
    },
}


@pytest.fixture()
def registry_dict() -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(REGISTRY_DATA)


@pytest.fixture()
def registry(registry_dict: Dict[str, Any]) -> ModelRegistry:
    return ModelRegistry.from_mapping(registry_dict)


@pytest.fixture()
def registry_yaml_path(registry_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the registry to a temporary YAML file and return its path."""
    path = tmp_path / "models.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(registry_dict, fh, default_flow_style=False)
    return path


# ---------------------------------------------------------------------------
# SQLite database
# ---------------------------------------------------------------------------


def build_app_metadata() -> MetaData:
    """clients / jobs / tasks / notes / tags plus one infrastructure table."""
    metadata = MetaData()
    Table(
        "clients", metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(100), nullable=False),
        Column("created_at", DateTime, nullable=False),
        Column("updated_at", DateTime, nullable=False),
    )
    Table(
        "jobs", metadata,
        Column("id", Integer, primary_key=True),
        Column("title", String(200), nullable=False),
        Column("client_id", Integer, ForeignKey("clients.id"), nullable=False),
        Column("status", Integer, nullable=False, server_default="0"),
        Column("created_at", DateTime, nullable=False),
        Column("updated_at", DateTime, nullable=False),
    )
    Table(
        "tasks", metadata,
        Column("id", Integer, primary_key=True),
        Column("job_id", Integer, ForeignKey("jobs.id"), nullable=False),
        Column("parent_id", Integer, ForeignKey("tasks.id"), nullable=True),
        Column("title", String(200), nullable=False),
        Column("position", Integer, nullable=True),
        Column("status", String(20), nullable=False, server_default="new_task"),
        Column("discarded_at", DateTime, nullable=True),
        Column("created_at", DateTime, nullable=False),
        Column("updated_at", DateTime, nullable=False),
    )
    Table(
        "notes", metadata,
        Column("id", Integer, primary_key=True),
        Column("content", Text, nullable=False),
        Column("notable_type", String(50), nullable=False),
        Column("notable_id", Integer, nullable=False),
        Column("created_at", DateTime, nullable=False),
        Column("updated_at", DateTime, nullable=False),
    )
    Table(
        "tags", metadata,
        Column("id", Integer, primary_key=True),
        Column("label", String(50), nullable=False),
    )
    Table(
        "schema_migrations", metadata,
        Column("version", String(20), primary_key=True),
    )
    return metadata


@pytest.fixture()
def database_url(tmp_path: pathlib.Path) -> Iterator[str]:
    """File-backed SQLite database with the application tables."""
    url: str = f"sqlite:///{tmp_path / 'app.db'}"
    engine = create_engine(url)
    build_app_metadata().create_all(engine)
    engine.dispose()
    yield url


@pytest.fixture()
def extracted_schema(database_url: str, registry: ModelRegistry) -> ExtractedSchema:
    with DatabaseHandle(database_url) as db:
        return SchemaIntrospector(db, registry).extract_schema()


# ---------------------------------------------------------------------------
# Output configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "zero"


@pytest.fixture()
def config(output_dir: pathlib.Path) -> GeneratorConfig:
    return GeneratorConfig(output_directory=str(output_dir), workers=2)


# ---------------------------------------------------------------------------
# Hand-built schema primitives
# ---------------------------------------------------------------------------


@pytest.fixture()
def task_table() -> TableInfo:
    """tasks(id, job_id, title, position, discarded_at, status, timestamps)."""
    return TableInfo(
        name="tasks",
        primary_key="id",
        columns=[
            ColumnInfo(name="id", native_type="integer", nullable=False, primary_key=True),
            ColumnInfo(name="job_id", native_type="integer", nullable=False),
            ColumnInfo(name="title", native_type="string", nullable=False),
            ColumnInfo(name="position", native_type="integer", nullable=True),
            ColumnInfo(name="discarded_at", native_type="datetime", nullable=True),
            ColumnInfo(
                name="status",
                native_type="string",
                nullable=False,
                default="'new_task'",
                is_enum=True,
                enum_values=["new_task", "in_progress", "completed"],
            ),
            ColumnInfo(name="created_at", native_type="datetime", nullable=False),
            ColumnInfo(name="updated_at", native_type="datetime", nullable=False),
        ],
    )


@pytest.fixture()
def job_table() -> TableInfo:
    """jobs(id, title)."""
    return TableInfo(
        name="jobs",
        primary_key="id",
        columns=[
            ColumnInfo(name="id", native_type="integer", nullable=False, primary_key=True),
            ColumnInfo(name="title", native_type="string", nullable=False),
        ],
    )


@pytest.fixture()
def task_relationship() -> RelationshipInfo:
    return RelationshipInfo(
        model="Task",
        table="tasks",
        belongs_to=[
            AssociationInfo(
                name="job", kind="belongs_to", foreign_key="job_id",
                target_table="jobs", target_class="Job",
            ),
        ],
    )


@pytest.fixture()
def job_relationship() -> RelationshipInfo:
    return RelationshipInfo(
        model="Job",
        table="jobs",
        has_many=[
            AssociationInfo(
                name="tasks", kind="has_many", foreign_key="job_id",
                target_table="tasks", target_class="Task",
            ),
        ],
    )


@pytest.fixture()
def detector() -> PatternDetector:
    return PatternDetector()
