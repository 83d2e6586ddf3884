"""Discovery port interface for walking source trees."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from csindex.ingest.filter import AdmissionFilter
from csindex.ingest.walk import WalkReport


class SourceDiscoveryPort(Protocol):
    """Port interface for feeding admitted source files to a callback."""

    def walk(
        self,
        root: str,
        admission: AdmissionFilter,
        on_file: Callable[[str], object],
    ) -> WalkReport:
        """Call ``on_file`` for every admitted regular file under ``root``."""
        ...
