"""CPU profiling hook for indexing runs."""

from __future__ import annotations

import cProfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from csindex.errors import ProfileOutputError


@contextmanager
def cpu_profile(output: Path | None) -> Iterator[cProfile.Profile | None]:
    """Profile the enclosed block and dump pstats data to ``output``.

    The output file is created before profiling starts so that an unwritable
    destination aborts the run instead of discarding a finished profile.
    """
    if output is None:
        yield None
        return

    try:
        output.open("wb").close()
    except OSError as exc:
        raise ProfileOutputError(f"Cannot create CPU profile {output}: {exc}") from exc

    profiler = cProfile.Profile()
    profiler.enable()
    try:
        yield profiler
    finally:
        profiler.disable()
        profiler.dump_stats(str(output))
