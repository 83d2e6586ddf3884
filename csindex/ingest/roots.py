"""Normalization of user-supplied index roots."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

UNRESOLVED = ""


def canonicalize(value: str | os.PathLike[str]) -> str:
    """Return the absolute, symlink-free form of ``value``.

    Raises:
        OSError: If the filesystem cannot be queried
        RuntimeError: If ``~user`` cannot be expanded or a symlink loop is found
        ValueError: If the path is malformed (for example an embedded NUL)
    """
    return str(Path(value).expanduser().resolve())


def resolve_roots(inputs: Iterable[str | os.PathLike[str]]) -> list[str]:
    """Resolve ``inputs`` to canonical roots in sorted order.

    An input that fails to resolve is logged and left as an empty sentinel, so
    one bad argument never aborts the run. Sorting keeps index construction
    deterministic; sentinels sort first and are dropped.
    """
    resolved: list[str] = []
    for value in inputs:
        try:
            resolved.append(canonicalize(value))
        except (OSError, RuntimeError, ValueError) as exc:
            logger.warning("%s: %s", value, exc)
            resolved.append(UNRESOLVED)

    resolved.sort()

    start = 0
    while start < len(resolved) and resolved[start] == UNRESOLVED:
        start += 1
    return resolved[start:]
