"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .discovery import FileSystemWalkerAdapter
from .sqlite_index import SQLiteIndexEngine

__all__ = [
    "FileSystemWalkerAdapter",
    "SQLiteIndexEngine",
]
