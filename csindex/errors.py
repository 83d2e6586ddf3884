"""Exception types surfaced by the indexing pipeline."""

from __future__ import annotations

from pathlib import Path


class CsindexError(RuntimeError):
    """Base class for errors that abort an indexing run."""


class IndexNotFoundError(CsindexError):
    """Raised when an operation needs an existing index file that is absent."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"No index found at {path}. Run 'csindex <path>...' to create one."
        )
        self.path = path


class IndexFormatError(CsindexError):
    """Raised when a file exists but is not a readable csindex index."""


class IndexBuildError(CsindexError):
    """Raised when the index writer cannot create or seal a shard."""


class IndexMergeError(CsindexError):
    """Raised when merging the previous master with a new shard fails."""


class IndexPublishError(CsindexError):
    """Raised when the final rename onto the master index fails."""


class IndexLockedError(CsindexError):
    """Raised when another run holds the lock for the same master index."""

    def __init__(self, lock_path: Path) -> None:
        super().__init__(
            f"Another csindex run holds {lock_path}; try again once it finishes."
        )
        self.lock_path = lock_path


class ProfileOutputError(CsindexError):
    """Raised when the requested CPU profile file cannot be created."""
