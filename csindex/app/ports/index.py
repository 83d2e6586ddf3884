"""Index engine port interface for building, reading and merging indexes."""

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field


class IndexStats(BaseModel):
    """Summary of one index file."""

    path: str
    files: int = Field(..., ge=0, description="Number of indexed source files")
    roots: int = Field(..., ge=0, description="Number of recorded root paths")
    total_bytes: int = Field(0, ge=0, description="Sum of indexed file sizes")
    fts: bool = Field(False, description="Whether the index carries a trigram table")


class IndexWriterPort(Protocol):
    """Append-only writer producing one index file.

    Side effects: Writes the target file; sealed exactly once by ``flush``.
    """

    verbose: bool

    def add_paths(self, roots: Iterable[str]) -> None:
        """Record the root paths this index covers."""
        ...

    def add_file(self, path: str) -> bool:
        """Index one file.

        Returns:
            True if the file was indexed, False if it was refused
        """
        ...

    def flush(self) -> None:
        """Seal the index; further appends raise."""
        ...

    def abort(self) -> None:
        """Discard an unsealed index."""
        ...


class IndexEnginePort(Protocol):
    """Port interface for the index engine.

    Adapter: single-file SQLite index.

    Side effects: Reads/writes index files (offline).
    """

    def create(self, path: Path, *, verbose: bool = False) -> IndexWriterPort:
        """Create a new, empty index at ``path``."""
        ...

    def read_roots(self, path: Path) -> list[str]:
        """Return the root paths recorded in the index at ``path``."""
        ...

    def merge(self, destination: Path, old_master: Path, new_shard: Path) -> None:
        """Write the merge of ``old_master`` and ``new_shard`` to ``destination``.

        Args:
            destination: Output file
            old_master: Previous master index (not modified)
            new_shard: Sealed shard built this run; its entries win
        """
        ...

    def stats(self, path: Path) -> IndexStats | None:
        """Return statistics for the index at ``path``, or None if absent."""
        ...
