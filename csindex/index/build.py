"""Build single-file source indexes backed by SQLite.

An index file holds the recorded root paths, one row per indexed source file,
and (when the SQLite build supports it) an FTS5 trigram table over file
contents for substring search.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from typing import Any

from csindex.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_LINE_LENGTH
from csindex.errors import IndexBuildError, IndexFormatError, IndexNotFoundError
from csindex.utils.hashing import compute_sha256
from csindex.utils.paths import remove_if_exists

logger = logging.getLogger(__name__)

INDEX_FORMAT = "csindex"
SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
CREATE TABLE roots (
    path TEXT PRIMARY KEY
);
CREATE TABLE files (
    id INTEGER PRIMARY KEY,
    path TEXT NOT NULL UNIQUE,
    sha256 TEXT NOT NULL,
    size INTEGER NOT NULL,
    mtime REAL NOT NULL,
    content TEXT NOT NULL
);
"""

_FTS_SCHEMA = """
CREATE VIRTUAL TABLE files_fts USING fts5(
    content,
    content='files',
    content_rowid='id',
    tokenize='trigram'
)
"""


@lru_cache(maxsize=1)
def check_fts5_trigram_available() -> bool:
    """Return True when the linked SQLite supports FTS5 with the trigram tokenizer."""
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("CREATE VIRTUAL TABLE probe USING fts5(body, tokenize='trigram')")
    except sqlite3.OperationalError:
        return False
    finally:
        conn.close()
    return True


def create_database(path: Path) -> sqlite3.Connection:
    """Create an empty index at ``path``, replacing any file already there."""
    remove_if_exists(path)
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(_SCHEMA)
        fts = check_fts5_trigram_available()
        if fts:
            conn.execute(_FTS_SCHEMA)
        conn.executemany(
            "INSERT INTO meta(key, value) VALUES (?, ?)",
            [
                ("format", INDEX_FORMAT),
                ("schema_version", str(SCHEMA_VERSION)),
                ("fts", "trigram" if fts else "none"),
            ],
        )
        conn.commit()
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def fts_enabled(conn: sqlite3.Connection, schema: str = "main") -> bool:
    """Return True when the index opened as ``schema`` carries a trigram table."""
    row = conn.execute(f"SELECT value FROM {schema}.meta WHERE key = 'fts'").fetchone()
    return row is not None and row[0] == "trigram"


def rebuild_fts(conn: sqlite3.Connection) -> None:
    """Repopulate the trigram table from ``files`` when the index has one."""
    if fts_enabled(conn):
        conn.execute("INSERT INTO files_fts(files_fts) VALUES ('rebuild')")


def open_index(path: Path) -> sqlite3.Connection:
    """Open an existing index read-only.

    Raises:
        IndexNotFoundError: If ``path`` does not exist
        IndexFormatError: If ``path`` is not a csindex index
    """
    path = Path(path)
    if not path.is_file():
        raise IndexNotFoundError(path)

    uri = f"{path.resolve().as_uri()}?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as exc:
        raise IndexFormatError(f"Cannot open index {path}: {exc}") from exc

    try:
        row = conn.execute("SELECT value FROM meta WHERE key = 'format'").fetchone()
    except sqlite3.DatabaseError as exc:
        conn.close()
        raise IndexFormatError(f"{path} is not a csindex index: {exc}") from exc

    if row is None or row[0] != INDEX_FORMAT:
        conn.close()
        raise IndexFormatError(f"{path} is not a csindex index")
    return conn


def read_index_roots(path: Path) -> list[str]:
    """Return the root paths recorded in the index at ``path``, sorted."""
    conn = open_index(path)
    try:
        return [row[0] for row in conn.execute("SELECT path FROM roots ORDER BY path")]
    except sqlite3.DatabaseError as exc:
        raise IndexFormatError(f"Cannot read roots from {path}: {exc}") from exc
    finally:
        conn.close()


def get_index_stats(path: Path) -> dict[str, Any] | None:
    """Get statistics about the index.

    Args:
        path: Index file

    Returns:
        Dictionary with index statistics or None if index not found
    """
    if not Path(path).is_file():
        return None

    conn = open_index(path)
    try:
        file_count, total_bytes = conn.execute(
            "SELECT COUNT(*), COALESCE(SUM(size), 0) FROM files"
        ).fetchone()
        (root_count,) = conn.execute("SELECT COUNT(*) FROM roots").fetchone()
        return {
            "files": file_count,
            "roots": root_count,
            "total_bytes": total_bytes,
            "fts": fts_enabled(conn),
        }
    except sqlite3.DatabaseError as exc:
        raise IndexFormatError(f"Cannot read statistics from {path}: {exc}") from exc
    finally:
        conn.close()


def storable_path(path: str) -> bool:
    """Return True when ``path`` is valid UTF-8 on disk and can be stored as text."""
    try:
        os.fsencode(path).decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def decode_source(data: bytes, max_line_length: int) -> tuple[str | None, str | None]:
    """Decode file bytes as indexable source text.

    Returns:
        ``(text, None)`` for acceptable content, ``(None, reason)`` otherwise
    """
    if b"\x00" in data:
        return None, "binary file"
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return None, "invalid UTF-8"

    longest = max((len(line) for line in data.split(b"\n")), default=0)
    if longest > max_line_length:
        return None, f"very long lines ({longest} bytes)"
    return text, None


class IndexWriter:
    """Append-only writer that produces one index file.

    The writer is sealed by :meth:`flush`; after that every append raises.
    Files the writer refuses (too large, binary, not UTF-8, overlong lines) are
    counted and, in verbose mode, logged.
    """

    def __init__(
        self,
        path: Path,
        *,
        verbose: bool = False,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    ) -> None:
        self.path = Path(path)
        self.verbose = verbose
        self.max_file_size = max_file_size
        self.max_line_length = max_line_length
        self.file_count = 0
        self.rejected_count = 0

        try:
            self._conn: sqlite3.Connection | None = create_database(self.path)
        except (sqlite3.Error, OSError) as exc:
            raise IndexBuildError(f"Cannot create index {self.path}: {exc}") from exc

    @property
    def sealed(self) -> bool:
        return self._conn is None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise IndexBuildError(f"Index {self.path} is sealed; no further appends allowed")
        return self._conn

    def add_paths(self, roots: Iterable[str]) -> None:
        """Record the root paths this index covers."""
        conn = self._connection()
        storable: list[str] = []
        for root in roots:
            if storable_path(root):
                storable.append(root)
            else:
                logger.warning("%r: path is not valid UTF-8, not recorded", root)
        try:
            conn.executemany(
                "INSERT OR IGNORE INTO roots(path) VALUES (?)", ((root,) for root in storable)
            )
        except sqlite3.Error as exc:
            raise IndexBuildError(f"Cannot record roots in {self.path}: {exc}") from exc

    def add_file(self, path: str) -> bool:
        """Index the file at ``path``.

        Returns:
            True if the file was indexed, False if it was unreadable or refused
        """
        conn = self._connection()
        if not storable_path(path):
            # Surrogate-escaped names cannot be stored as SQLite text.
            logger.warning("%r: file name is not valid UTF-8, ignoring", path)
            self.rejected_count += 1
            return False

        try:
            with open(path, "rb") as handle:
                info = os.fstat(handle.fileno())
                if info.st_size > self.max_file_size:
                    self._reject(path, f"too long ({info.st_size} bytes)")
                    return False
                data = handle.read()
        except OSError as exc:
            logger.warning("%s: %s", path, exc)
            self.rejected_count += 1
            return False

        text, reason = decode_source(data, self.max_line_length)
        if text is None:
            self._reject(path, reason or "unreadable")
            return False

        if self.verbose:
            logger.info("%s: %d bytes", path, len(data))

        try:
            conn.execute(
                "INSERT OR REPLACE INTO files(path, sha256, size, mtime, content) "
                "VALUES (?, ?, ?, ?, ?)",
                (path, compute_sha256(data), len(data), info.st_mtime, text),
            )
        except sqlite3.Error as exc:
            raise IndexBuildError(f"Cannot add {path} to {self.path}: {exc}") from exc

        self.file_count += 1
        return True

    def _reject(self, path: str, reason: str) -> None:
        self.rejected_count += 1
        if self.verbose:
            logger.info("%s: %s, ignoring", path, reason)

    def flush(self) -> None:
        """Commit all appended files and seal the index."""
        conn = self._connection()
        try:
            rebuild_fts(conn)
            conn.commit()
        except sqlite3.Error as exc:
            raise IndexBuildError(f"Cannot flush index {self.path}: {exc}") from exc
        finally:
            conn.close()
            self._conn = None

    def abort(self) -> None:
        """Discard an unsealed index and delete its file."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        remove_if_exists(self.path)
