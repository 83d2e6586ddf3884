"""Path utilities for directory and file operations."""

from __future__ import annotations

import os
from pathlib import Path


def find_upward(name: str, start: Path | None = None) -> Path | None:
    """Return the first ``name`` found in ``start`` or any of its parents."""
    current = Path(os.path.abspath(start if start is not None else Path.cwd()))

    for directory in (current, *current.parents):
        candidate = directory / name
        if candidate.exists():
            return candidate

    return None


def is_within(path: str, root: str) -> bool:
    """Return True when ``path`` equals ``root`` or lies beneath it.

    Comparison is by path components, so ``/src/foobar`` is not within
    ``/src/foo``.
    """
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def remove_if_exists(path: Path) -> bool:
    """Unlink ``path``; return False when it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
