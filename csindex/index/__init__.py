"""SQLite-backed source index: writer, reader and merge."""

from csindex.index.build import (
    IndexWriter,
    check_fts5_trigram_available,
    get_index_stats,
    open_index,
    read_index_roots,
)
from csindex.index.merge import merge_indexes

__all__ = [
    "IndexWriter",
    "check_fts5_trigram_available",
    "get_index_stats",
    "merge_indexes",
    "open_index",
    "read_index_roots",
]
