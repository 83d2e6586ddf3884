"""Advisory file lock serializing writers of the same master index."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from types import TracebackType
from typing import IO

from csindex.errors import CsindexError, IndexLockedError

IS_WINDOWS = os.name == "nt"
if not IS_WINDOWS:
    import fcntl
else:
    import msvcrt

logger = logging.getLogger(__name__)


def _try_lock(handle: IO[str]) -> None:
    if IS_WINDOWS:
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(handle: IO[str]) -> None:
    if IS_WINDOWS:
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class IndexLock:
    """Exclusive lock held for a whole wipe or build → merge → publish run.

    The lock lives on a sibling file rather than on the index itself because
    the index file is replaced by rename during publish. The lock file is left
    in place after release; deleting it would race with a waiting run.
    """

    def __init__(self, path: Path, *, timeout: float = 0.0, poll_interval: float = 0.05):
        self.path = Path(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._handle: IO[str] | None = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Take the lock, polling for up to ``timeout`` seconds.

        Raises:
            IndexLockedError: If another holder keeps the lock past the timeout
            CsindexError: If the lock file cannot be opened
        """
        if self._handle is not None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+", encoding="utf-8")
        except OSError as exc:
            raise CsindexError(f"Cannot open lock file {self.path}: {exc}") from exc

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                _try_lock(handle)
                break
            except OSError:
                if time.monotonic() >= deadline:
                    handle.close()
                    raise IndexLockedError(self.path) from None
                time.sleep(self.poll_interval)

        logger.debug("Acquired index lock %s", self.path)
        self._handle = handle

    def release(self) -> None:
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            _unlock(handle)
        finally:
            handle.close()
        logger.debug("Released index lock %s", self.path)

    def __enter__(self) -> "IndexLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
