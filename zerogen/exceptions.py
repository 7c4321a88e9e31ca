# File: zerogen/exceptions.py
"""
ZeroGen - Exception Hierarchy
==============================

``ConfigurationError`` is fatal and raised before any table is processed.
``ConflictError`` is scoped to one table; the generator records it in the
run summary and moves on to the next table.
"""

from __future__ import annotations

from typing import Any, List, Optional


class ZeroGenError(Exception):
    """Base class for all generator errors."""


class ConfigurationError(ZeroGenError):
    """Invalid generator configuration (exclusion list, name overrides, ...)."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.errors: List[Any] = list(errors or [])

    def __str__(self) -> str:
        base: str = super().__str__()
        if not self.errors:
            return base
        details: str = "; ".join(str(e) for e in self.errors)
        return f"{base} ({details})"


class ConflictError(ZeroGenError):
    """An existing generated file was edited by hand and force was not set."""

    def __init__(self, table: str, path: str) -> None:
        super().__init__(
            f"{path} appears to have manual modifications. "
            f"Use --force to overwrite."
        )
        self.table: str = table
        self.path: str = path


__all__: List[str] = [
    "ZeroGenError",
    "ConfigurationError",
    "ConflictError",
]
