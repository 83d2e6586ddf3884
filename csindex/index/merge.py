"""Merge a previous master index with a freshly built shard."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from csindex.errors import IndexMergeError
from csindex.index.build import create_database, open_index, read_index_roots, rebuild_fts
from csindex.utils.paths import is_within, remove_if_exists

logger = logging.getLogger(__name__)

_MERGE_FILES = """
INSERT INTO files(path, sha256, size, mtime, content)
SELECT path, sha256, size, mtime, content FROM (
    SELECT path, sha256, size, mtime, content FROM old.files
    WHERE NOT revisited(path)
      AND path NOT IN (SELECT path FROM new.files)
    UNION ALL
    SELECT path, sha256, size, mtime, content FROM new.files
)
ORDER BY path
"""

_MERGE_ROOTS = """
INSERT OR IGNORE INTO roots(path)
SELECT path FROM old.roots
UNION
SELECT path FROM new.roots
ORDER BY path
"""


def merge_indexes(destination: Path, old_master: Path, new_shard: Path) -> int:
    """Write the merge of ``old_master`` and ``new_shard`` to ``destination``.

    Entries of the shard win. Entries of the old master are carried over
    unless their path lies under one of the shard's roots, in which case the
    shard's walk was authoritative and a missing entry means the file is gone.
    Root paths are the union of both inputs.

    Neither input is modified. On failure ``destination`` is removed.

    Args:
        destination: Output index file (replaced if present)
        old_master: Previous master index
        new_shard: Sealed shard from this run

    Returns:
        Number of files in the merged index

    Raises:
        IndexNotFoundError: If an input does not exist
        IndexFormatError: If an input is not a csindex index
        IndexMergeError: If the merged index cannot be written
    """
    open_index(old_master).close()
    new_roots = read_index_roots(new_shard)

    def revisited(path: str) -> bool:
        return any(is_within(path, root) for root in new_roots)

    try:
        conn = create_database(destination)
    except (sqlite3.Error, OSError) as exc:
        raise IndexMergeError(f"Cannot create merge output {destination}: {exc}") from exc

    try:
        conn.create_function("revisited", 1, revisited, deterministic=True)
        conn.execute("ATTACH DATABASE ? AS old", (str(old_master),))
        conn.execute("ATTACH DATABASE ? AS new", (str(new_shard),))
        conn.execute(_MERGE_ROOTS)
        conn.execute(_MERGE_FILES)
        rebuild_fts(conn)
        conn.commit()
        (file_count,) = conn.execute("SELECT COUNT(*) FROM files").fetchone()
        conn.execute("DETACH DATABASE old")
        conn.execute("DETACH DATABASE new")
    except sqlite3.Error as exc:
        conn.close()
        remove_if_exists(destination)
        raise IndexMergeError(
            f"Cannot merge {new_shard} into {old_master}: {exc}"
        ) from exc

    conn.close()
    logger.debug("Merged %d files into %s", file_count, destination)
    return file_count
