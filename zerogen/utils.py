# File: zerogen/utils.py
"""
ZeroGen - Utility Functions & Helpers
======================================
String transformation, file I/O, and timing helpers used throughout the
generation pipeline.

Performance strategy:
- All naming functions are decorated with ``@lru_cache(maxsize=None)``;
  the same table and column names are converted many times per run.
- File writes go through a temp file plus ``os.replace`` so a reader never
  observes a half-written file.
- ``create_exclusive`` is the race-free "create if not exists" primitive
  used for write-once files.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("zerogen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

# Irregular nouns that show up in table names
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "datum": "data",
    "index": "indices",
    "status": "statuses",
    "address": "addresses",
    "analysis": "analyses",
}
_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("ActivityLog")
        'activity_log'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("scheduled_date_time")
        'ScheduledDateTime'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("job_assignment")
        'jobAssignment'
        >>> to_camel_case("notable_Job")
        'notableJob'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


@functools.lru_cache(maxsize=None)
def to_title_human(name: str) -> str:
    """
    Convert identifier to human-readable title.

    Examples:
        >>> to_title_human("activity_logs")
        'Activity Logs'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return " ".join(w.capitalize() for w in words)


def _split_last_word(name: str) -> Tuple[str, str]:
    """Split ``job_people`` into ``("job_", "people")``."""
    idx: int = name.rfind("_")
    if idx < 0:
        return "", name
    return name[: idx + 1], name[idx + 1 :]


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for table names.

    Only the last word of a snake_case name is inflected, so
    ``job_person`` becomes ``job_people``.
    """
    if not name:
        return ""

    head, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_PLURALS:
        return head + _IRREGULAR_PLURALS[lower]
    if lower in _IRREGULAR_SINGULARS:
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("s"):
        return name
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"

    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of ``to_plural``).

    Examples:
        >>> to_singular("activity_logs")
        'activity_log'
        >>> to_singular("job_people")
        'job_person'
        >>> to_singular("scheduled_date_times")
        'scheduled_date_time'
    """
    if not name:
        return ""

    head, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_SINGULARS:
        return head + _IRREGULAR_SINGULARS[lower]
    if lower in _IRREGULAR_PLURALS:
        return name

    if lower.endswith("ies") and len(word) > 3:
        return name[:-3] + "y"
    if lower.endswith(("sses", "shes", "ches", "xes", "zes")):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return name[:-1]

    return name


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def table_to_entity_name(table_name: str) -> str:
    """``activity_logs`` -> ``activity_log`` (file stem for mutation files)."""
    return to_singular(table_name)


@functools.lru_cache(maxsize=None)
def table_to_class_name(table_name: str) -> str:
    """``activity_logs`` -> ``ActivityLog``."""
    return to_pascal_case(to_singular(table_name))


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Atomically write *content* to *path*.

    Writes to a temporary file in the same directory, then renames it over
    the target with ``os.replace``.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    fd: int
    tmp_path: str
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def create_exclusive(path: Path, content: str) -> bool:
    """
    Create *path* with *content* only if it does not already exist.

    Uses ``O_CREAT | O_EXCL`` so two concurrent callers can never both
    create the file.  Returns False when the file was already present.
    """
    ensure_directory(path.parent)
    try:
        fd: int = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    except FileExistsError:
        logger.debug("Not creating %s: already exists.", path)
        return False

    with os.fdopen(fd, "wb") as fh:
        fh.write(content.encode("utf-8"))
    logger.debug("Created %s", path)
    return True


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("introspection") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_title_human",
    "to_plural",
    "to_singular",
    "table_to_entity_name",
    "table_to_class_name",
    "ensure_directory",
    "write_file",
    "create_exclusive",
    "read_file",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("zerogen.utils loaded: %d public symbols.", len(__all__))
