"""Depth-first traversal of source trees driven by the admission filter."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from csindex.ingest.filter import AdmissionFilter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalkReport:
    """Counters collected while walking one root."""

    root: str
    files: int = 0
    skipped_files: int = 0
    pruned_directories: int = 0
    errors: int = 0


def iter_admitted_files(
    root: str | os.PathLike[str],
    admission: AdmissionFilter,
    *,
    report: WalkReport | None = None,
) -> Iterator[str]:
    """Yield admitted regular files under ``root`` in depth-first lexical order.

    Symlinks are never followed. The root itself is classified by its final
    path component, so walking ``/src/tests`` yields nothing.

    Entries that cannot be statted and directories that cannot be listed are
    logged and counted in ``report``; the walk carries on with their siblings.

    Args:
        root: Directory (or single file) to walk
        admission: Filter consulted for every entry
        report: Optional counters updated in place

    Yields:
        Paths of admitted regular files
    """
    root_path = os.fspath(root)
    if report is None:
        report = WalkReport(root=root_path)

    stack = [root_path]
    while stack:
        path = stack.pop()
        try:
            info = os.lstat(path)
        except OSError as exc:
            logger.warning("%s: %s", path, exc)
            report.errors += 1
            continue

        is_directory = stat.S_ISDIR(info.st_mode)
        name = os.path.basename(path)
        if name and not admission.keeps(name, is_directory):
            if is_directory:
                report.pruned_directories += 1
            else:
                report.skipped_files += 1
            continue

        if is_directory:
            try:
                names = sorted(os.listdir(path))
            except OSError as exc:
                logger.warning("%s: %s", path, exc)
                report.errors += 1
                continue
            # Reversed so the lexically first child is popped first.
            stack.extend(os.path.join(path, child) for child in reversed(names))
            continue

        if not stat.S_ISREG(info.st_mode):
            logger.debug("Skipping non-regular file %s", path)
            report.skipped_files += 1
            continue

        report.files += 1
        yield path


def walk_tree(
    root: str | os.PathLike[str],
    admission: AdmissionFilter,
    on_file: Callable[[str], object],
) -> WalkReport:
    """Walk ``root`` and call ``on_file`` for every admitted regular file."""
    report = WalkReport(root=os.fspath(root))
    for path in iter_admitted_files(root, admission, report=report):
        on_file(path)
    return report
