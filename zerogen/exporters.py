# File: zerogen/exporters.py
"""
ZeroGen - File-Set Writer
==========================

Responsible for:
    1. Writing one table's file set: ``generated`` and ``main`` files are
       replaced atomically (write-to-temp then rename).
    2. Creating ``custom`` files with an atomic create-if-absent primitive;
       an existing custom file is never opened for writing.
    3. Rolling back a table's file set when any write in it fails, so a
       table never ends up half-written: replaced files get their previous
       content back and newly created files are removed.
    4. Rendering dry-run previews as ``=== path ===`` blocks without
       touching the filesystem.

Thread-safety: one ``write_file_set`` call per table; tables never share
paths, so concurrent calls for distinct tables are safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from zerogen.models import FileKind, GeneratedFile
from zerogen.utils import count_lines, create_exclusive, read_file, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.exporters")


# ---------------------------------------------------------------------------
# Data classes for write results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written file."""

    path: str
    kind: str
    size_bytes: int
    line_count: int
    sha256: str


def _kind(generated: GeneratedFile) -> str:
    return str(getattr(generated.kind, "value", generated.kind))


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def write_file_set(files: Sequence[GeneratedFile]) -> List[FileRecord]:
    """
    Write one table's files, all or nothing.

    Returns records for the files actually written; a custom file that
    already exists is left alone and produces no record.

    Raises:
        OSError: after rolling back every write made for this set.
    """
    # (path, previous content or None when the file did not exist)
    undo: List[Tuple[Path, Optional[str]]] = []
    records: List[FileRecord] = []

    try:
        for generated in files:
            path: Path = Path(generated.path)
            kind: str = _kind(generated)

            if kind == FileKind.CUSTOM.value:
                if not create_exclusive(path, generated.content):
                    logger.debug("Keeping existing custom file %s", path)
                    continue
                undo.append((path, None))
            else:
                previous: Optional[str] = read_file(path) if path.is_file() else None
                write_file(path, generated.content)
                undo.append((path, previous))

            records.append(FileRecord(
                path=str(path),
                kind=kind,
                size_bytes=generated.size_bytes,
                line_count=count_lines(generated.content),
                sha256=sha256_hex(generated.content),
            ))
    except OSError:
        _rollback(undo)
        raise

    return records


def _rollback(undo: List[Tuple[Path, Optional[str]]]) -> None:
    for path, previous in reversed(undo):
        try:
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                write_file(path, previous)
            logger.warning("Rolled back %s", path)
        except OSError as exc:
            logger.error("Could not roll back %s: %s", path, exc)


def render_preview(files: Sequence[GeneratedFile]) -> List[str]:
    """Dry-run blocks for a file set; an existing custom file is only named."""
    blocks: List[str] = []
    for generated in files:
        if _kind(generated) == FileKind.CUSTOM.value and Path(generated.path).exists():
            blocks.append(f"=== {generated.path} === (exists, left unchanged)")
            continue
        blocks.append(f"=== {generated.path} ===\n{generated.content}")
    return blocks


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FileRecord",
    "write_file_set",
    "render_preview",
]

logger.debug("zerogen.exporters loaded.")
