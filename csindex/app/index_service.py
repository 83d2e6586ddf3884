"""Build, merge and publish orchestration for the master index."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from csindex.app.ports import IndexEnginePort, IndexStats, SourceDiscoveryPort
from csindex.config import IndexerConfig
from csindex.errors import (
    CsindexError,
    IndexBuildError,
    IndexMergeError,
    IndexPublishError,
)
from csindex.ingest.filter import AdmissionFilter
from csindex.ingest.roots import resolve_roots
from csindex.ingest.walk import WalkReport
from csindex.utils.locking import IndexLock
from csindex.utils.paths import remove_if_exists

logger = logging.getLogger(__name__)


class IndexMode(str, Enum):
    """How a run produces the next master index."""

    RESET = "reset"
    INCREMENTAL = "incremental"


@dataclass(frozen=True, slots=True)
class BuildPlan:
    """Every artifact touched by one build, named explicitly.

    ``shard`` and ``merge_output`` are temporary files in the master's
    directory, so publishing either one is a same-filesystem rename.
    """

    mode: IndexMode
    master: Path
    shard: Path
    merge_output: Path | None = None

    @property
    def publish_source(self) -> Path:
        """Artifact renamed onto the master at publish."""
        return self.merge_output if self.merge_output is not None else self.shard

    @property
    def transient(self) -> tuple[Path, ...]:
        if self.merge_output is None:
            return (self.shard,)
        return (self.shard, self.merge_output)


@dataclass(slots=True)
class IndexRunResult:
    """Summary of one indexing run."""

    master: Path
    mode: IndexMode | None = None
    roots: list[str] = field(default_factory=list)
    reports: list[WalkReport] = field(default_factory=list)
    files_indexed: int = 0
    files_rejected: int = 0
    merged: bool = False
    published: bool = False
    wiped: bool = False


def _reserve_artifact(master: Path, suffix: str) -> Path:
    fd, name = tempfile.mkstemp(dir=str(master.parent), prefix=f"{master.name}.", suffix=suffix)
    os.close(fd)
    return Path(name)


class IndexService:
    """Maintain the master index: wipe, or build → merge → publish.

    The master index is only ever changed by one ``os.replace`` (or, for a
    wipe, one unlink), and the whole run holds the sibling lock file so two
    invocations cannot interleave their artifacts.
    """

    def __init__(
        self,
        *,
        config: IndexerConfig,
        engine: IndexEnginePort,
        discovery: SourceDiscoveryPort,
        admission: AdmissionFilter | None = None,
    ) -> None:
        self._config = config
        self._engine = engine
        self._discovery = discovery
        self._admission = admission or AdmissionFilter.from_file_types(config.file_types)

    @property
    def master_path(self) -> Path:
        return self._config.index_path

    def list_roots(self) -> list[str]:
        """Return the root paths recorded in the master index.

        Raises:
            IndexNotFoundError: If there is no master index
        """
        return self._engine.read_roots(self.master_path)

    def stats(self) -> IndexStats | None:
        return self._engine.stats(self.master_path)

    def run(self, paths: Sequence[str]) -> IndexRunResult:
        """Index ``paths`` into the master index.

        With no ``paths`` the roots recorded in the existing master are
        re-indexed, unless reset was requested, in which case the master is
        deleted and nothing is built.

        Raises:
            IndexLockedError: If another run holds the index lock
            IndexNotFoundError: If roots must be reused but no master exists
            IndexBuildError: If the shard cannot be built
            IndexMergeError: If the shard cannot be merged into the master
            IndexPublishError: If the new index cannot replace the master
        """
        roots = resolve_roots(paths)
        if self._config.reset and not roots and not self.master_path.exists():
            # Nothing to wipe; no lock file is left behind.
            return IndexRunResult(master=self.master_path, wiped=True)

        with IndexLock(self._config.lock_path, timeout=self._config.lock_timeout):
            return self._run_locked(paths, roots)

    def _run_locked(self, paths: Sequence[str], roots: list[str]) -> IndexRunResult:
        master = self.master_path

        if self._config.reset and not roots:
            return self._wipe(master)

        if not paths:
            roots = resolve_roots(self._engine.read_roots(master))

        mode = IndexMode.RESET
        if not self._config.reset and master.exists():
            mode = IndexMode.INCREMENTAL

        plan = self._plan(master, mode)
        result = IndexRunResult(master=master, mode=mode, roots=roots)
        try:
            self._build(plan, result)
            if plan.merge_output is not None:
                self._merge(plan)
                result.merged = True
            self._publish(plan)
            result.published = True
        finally:
            self._cleanup(plan)

        logger.info("done")
        return result

    def _wipe(self, master: Path) -> IndexRunResult:
        try:
            removed = remove_if_exists(master)
        except OSError as exc:
            raise IndexPublishError(f"Cannot remove index {master}: {exc}") from exc
        if removed:
            logger.info("removed %s", master)
        return IndexRunResult(master=master, wiped=True)

    def _plan(self, master: Path, mode: IndexMode) -> BuildPlan:
        try:
            shard = _reserve_artifact(master, ".shard")
        except OSError as exc:
            raise IndexBuildError(f"Cannot create index shard next to {master}: {exc}") from exc

        if mode is IndexMode.RESET:
            return BuildPlan(mode=mode, master=master, shard=shard)

        try:
            merge_output = _reserve_artifact(master, ".merge")
        except OSError as exc:
            remove_if_exists(shard)
            raise IndexMergeError(f"Cannot create merge output next to {master}: {exc}") from exc
        return BuildPlan(mode=mode, master=master, shard=shard, merge_output=merge_output)

    def _build(self, plan: BuildPlan, result: IndexRunResult) -> None:
        writer = self._engine.create(plan.shard, verbose=self._config.verbose)

        def on_file(path: str) -> None:
            if writer.add_file(path):
                result.files_indexed += 1
            else:
                result.files_rejected += 1

        try:
            writer.add_paths(result.roots)
            for root in result.roots:
                logger.info("index %s", root)
                result.reports.append(self._discovery.walk(root, self._admission, on_file))
            logger.info("flush index")
            writer.flush()
        except Exception:
            writer.abort()
            raise

    def _merge(self, plan: BuildPlan) -> None:
        assert plan.merge_output is not None
        logger.info("merge %s %s", plan.master, plan.shard)
        try:
            self._engine.merge(plan.merge_output, plan.master, plan.shard)
        except IndexMergeError:
            raise
        except (CsindexError, OSError) as exc:
            raise IndexMergeError(f"Cannot merge {plan.shard} into {plan.master}: {exc}") from exc

    def _publish(self, plan: BuildPlan) -> None:
        try:
            if plan.merge_output is not None:
                remove_if_exists(plan.shard)
            os.replace(plan.publish_source, plan.master)
        except OSError as exc:
            raise IndexPublishError(f"Cannot publish index {plan.master}: {exc}") from exc

    def _cleanup(self, plan: BuildPlan) -> None:
        for artifact in plan.transient:
            try:
                if remove_if_exists(artifact):
                    logger.debug("Removed leftover artifact %s", artifact)
            except OSError as exc:
                logger.warning("Cannot remove %s: %s", artifact, exc)
