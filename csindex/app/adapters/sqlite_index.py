"""SQLite-backed index engine adapter."""

from __future__ import annotations

from pathlib import Path

from csindex.app.ports import IndexEnginePort, IndexStats
from csindex.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_LINE_LENGTH, IndexerConfig
from csindex.index.build import IndexWriter, get_index_stats, read_index_roots
from csindex.index.merge import merge_indexes


class SQLiteIndexEngine(IndexEnginePort):
    """Adapter that stores each index as one SQLite database file."""

    def __init__(
        self,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    ) -> None:
        self.max_file_size = max_file_size
        self.max_line_length = max_line_length

    @classmethod
    def from_config(cls, config: IndexerConfig) -> "SQLiteIndexEngine":
        return cls(
            max_file_size=config.max_file_size,
            max_line_length=config.max_line_length,
        )

    def create(self, path: Path, *, verbose: bool = False) -> IndexWriter:
        return IndexWriter(
            path,
            verbose=verbose,
            max_file_size=self.max_file_size,
            max_line_length=self.max_line_length,
        )

    def read_roots(self, path: Path) -> list[str]:
        return read_index_roots(path)

    def merge(self, destination: Path, old_master: Path, new_shard: Path) -> None:
        merge_indexes(destination, old_master, new_shard)

    def stats(self, path: Path) -> IndexStats | None:
        stats = get_index_stats(path)
        if stats is None:
            return None
        return IndexStats(path=str(path), **stats)
