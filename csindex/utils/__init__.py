"""Utility modules for common operations."""

from csindex.utils.hashing import compute_sha256
from csindex.utils.locking import IndexLock
from csindex.utils.paths import find_upward, is_within, remove_if_exists
from csindex.utils.profiling import cpu_profile

__all__ = [
    "IndexLock",
    "compute_sha256",
    "cpu_profile",
    "find_upward",
    "is_within",
    "remove_if_exists",
]
