# File: zerogen/manifest.py
"""
ZeroGen - Incremental Generation & Conflict Manager
====================================================

Two responsibilities gate every write the generator makes:

1. **Incremental skip**: a JSON manifest records, per table, the
   signature of the pattern set last generated and the files written.  A
   table is regenerated only when its signature changed, one of its files
   disappeared, or the caller forces it.

2. **Conflict detection**: every machine-owned file opens with a banner
   containing a literal marker.  An existing file without the marker is
   treated as hand-edited and is never overwritten unless forced.

The manifest is shared by worker threads; reads and updates go through a
lock and ``save`` is called once by the orchestrator.  Running two
generator processes against the same output directory is not supported:
run them serially (for example under a CI job lock).
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from zerogen.exceptions import ConflictError
from zerogen.models import ExistingFile, ManifestDocument, ManifestEntry, PatternSet
from zerogen.utils import read_file, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.manifest")

# ---------------------------------------------------------------------------
# Banner markers
# ---------------------------------------------------------------------------

GENERATED_MARKER: str = "AUTO-GENERATED ZERO MUTATIONS"
MERGER_MARKER: str = "ZERO MUTATIONS MERGER"
SCHEMA_MARKER: str = "AUTO-GENERATED ZERO SCHEMA"
TYPES_MARKER: str = "AUTO-GENERATED ZERO TYPES"
CUSTOM_MARKER: str = "CUSTOM ZERO MUTATIONS"

_OWNED_MARKERS: Tuple[str, ...] = (GENERATED_MARKER, MERGER_MARKER, SCHEMA_MARKER, TYPES_MARKER)

# The banner must open the file; markers further down do not count.
_BANNER_SCAN_LINES: int = 10


def is_generated_by_us(content: str) -> bool:
    """True when the file opens with one of the machine-owned banners."""
    head: str = "\n".join(content.splitlines()[:_BANNER_SCAN_LINES])
    return any(marker in head for marker in _OWNED_MARKERS)


def detect_customizations(path: Path) -> bool:
    """True when *path* exists and no longer carries a generator banner."""
    if not path.is_file():
        return False
    return not is_generated_by_us(read_file(path))


def check_overwrite(path: Path, table: str, force: bool = False) -> None:
    """
    Raise ``ConflictError`` if *path* exists and was edited by hand.

    Read-only: safe to call in dry-run mode.
    """
    if force or not path.is_file():
        return
    if not is_generated_by_us(read_file(path)):
        raise ConflictError(table, str(path))


def detect_existing(directory: Path, extension: str = "ts") -> List[ExistingFile]:
    """List mutation source files already present in *directory*."""
    if not directory.is_dir():
        return []

    suffix: str = f".{extension.lstrip('.')}"
    found: List[ExistingFile] = []
    for path in sorted(directory.glob(f"*{suffix}")):
        if not path.is_file():
            continue
        stat = path.stat()
        found.append(ExistingFile(
            name=path.name[: -len(suffix)],
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        ))
    return found


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class GenerationManifest:
    """
    Persistent record of the last successful generation per table.

    Usage::

        manifest = GenerationManifest.load(Path("out/.zerogen-manifest.json"))
        if manifest.should_regenerate("tasks", patterns):
            ...
            manifest.update_manifest("tasks", patterns, written_paths)
        manifest.save()
    """

    def __init__(self, path: Path, document: Optional[ManifestDocument] = None) -> None:
        self._path: Path = path
        self._document: ManifestDocument = document or ManifestDocument()
        self._lock: threading.Lock = threading.Lock()
        self._dirty: bool = False

    @classmethod
    def load(cls, path: Path) -> "GenerationManifest":
        if not path.is_file():
            logger.debug("No manifest at %s; starting fresh.", path)
            return cls(path)
        try:
            document: ManifestDocument = ManifestDocument.model_validate_json(
                read_file(path)
            )
        except ValidationError as exc:
            logger.warning(
                "Manifest %s is unreadable (%s); every table will be regenerated.",
                path,
                exc.error_count(),
            )
            return cls(path)
        logger.debug("Loaded manifest with %d table(s).", len(document.tables))
        return cls(path, document)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def tables(self) -> List[str]:
        with self._lock:
            return sorted(self._document.tables)

    def entry(self, table: str) -> Optional[ManifestEntry]:
        with self._lock:
            found: Optional[ManifestEntry] = self._document.tables.get(table)
            return found.model_copy() if found is not None else None

    # -----------------------------------------------------------------
    # Decisions
    # -----------------------------------------------------------------

    def should_regenerate(
        self,
        table: str,
        patterns: PatternSet,
        force: bool = False,
    ) -> bool:
        if force:
            return True
        current: Optional[ManifestEntry] = self.entry(table)
        if current is None:
            return True
        if current.pattern_signature != patterns.signature():
            logger.info("Patterns changed for %s; regenerating.", table)
            return True
        missing: List[str] = [p for p in current.files if not Path(p).exists()]
        if missing:
            logger.info(
                "%d previously generated file(s) missing for %s; regenerating.",
                len(missing),
                table,
            )
            return True
        return False

    # -----------------------------------------------------------------
    # Updates
    # -----------------------------------------------------------------

    def update_manifest(
        self,
        table: str,
        patterns: PatternSet,
        paths: Iterable[str],
    ) -> ManifestEntry:
        new_entry: ManifestEntry = ManifestEntry(
            table=table,
            pattern_signature=patterns.signature(),
            files=sorted(str(p) for p in paths),
        )
        with self._lock:
            self._document.tables[table] = new_entry
            self._dirty = True
        logger.debug("Manifest updated for %s.", table)
        return new_entry

    def save(self) -> bool:
        """Persist the manifest if it changed. Returns True when written."""
        with self._lock:
            if not self._dirty:
                return False
            payload: str = self._document.model_dump_json(indent=2) + "\n"
            write_file(self._path, payload)
            self._dirty = False
        logger.info("Manifest saved: %s", self._path)
        return True

    def to_dict(self) -> Dict[str, object]:
        with self._lock:
            return self._document.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<GenerationManifest {self._path} ({len(self.tables)} tables)>"


__all__: List[str] = [
    "GENERATED_MARKER",
    "MERGER_MARKER",
    "SCHEMA_MARKER",
    "TYPES_MARKER",
    "CUSTOM_MARKER",
    "is_generated_by_us",
    "detect_customizations",
    "check_overwrite",
    "detect_existing",
    "GenerationManifest",
]

logger.debug("zerogen.manifest loaded.")
