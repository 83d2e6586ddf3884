"""Discovery adapter that walks the local filesystem."""

from __future__ import annotations

from collections.abc import Callable

from csindex.app.ports import SourceDiscoveryPort
from csindex.ingest.filter import AdmissionFilter
from csindex.ingest.walk import WalkReport, walk_tree


class FileSystemWalkerAdapter(SourceDiscoveryPort):
    """Adapter that feeds admitted files via the depth-first tree walker."""

    def walk(
        self,
        root: str,
        admission: AdmissionFilter,
        on_file: Callable[[str], object],
    ) -> WalkReport:
        return walk_tree(root, admission, on_file)
