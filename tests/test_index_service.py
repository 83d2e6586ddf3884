"""Tests for the build → merge → publish service."""

from __future__ import annotations

import os
import sqlite3
import sys
from pathlib import Path

import pytest

from csindex.app import IndexMode, IndexService
from csindex.app.adapters import FileSystemWalkerAdapter, SQLiteIndexEngine
from csindex.errors import (
    IndexLockedError,
    IndexMergeError,
    IndexNotFoundError,
    IndexPublishError,
)
from csindex.ingest import roots as roots_module
from csindex.utils.locking import IndexLock


class RecordingEngine(SQLiteIndexEngine):
    """SQLite engine that records which operations the service requested."""

    def __init__(self, *, fail_merge: bool = False) -> None:
        super().__init__()
        self.fail_merge = fail_merge
        self.created: list[Path] = []
        self.merges: list[tuple[Path, Path, Path]] = []

    def create(self, path: Path, *, verbose: bool = False):
        self.created.append(path)
        return super().create(path, verbose=verbose)

    def merge(self, destination: Path, old_master: Path, new_shard: Path) -> None:
        self.merges.append((destination, old_master, new_shard))
        if self.fail_merge:
            destination.write_bytes(b"partial")
            raise OSError("disk full")
        super().merge(destination, old_master, new_shard)


class RecordingWalker(FileSystemWalkerAdapter):
    def __init__(self) -> None:
        self.roots: list[str] = []

    def walk(self, root, admission, on_file):
        self.roots.append(root)
        return super().walk(root, admission, on_file)


def _service(config, engine=None, walker=None) -> IndexService:
    return IndexService(
        config=config,
        engine=engine or RecordingEngine(),
        discovery=walker or RecordingWalker(),
    )


def _indexed(index_file: Path) -> list[str]:
    conn = sqlite3.connect(str(index_file))
    try:
        return [row[0] for row in conn.execute("SELECT path FROM files ORDER BY path")]
    finally:
        conn.close()


def _leftovers(index_file: Path) -> list[str]:
    return sorted(
        path.name
        for path in index_file.parent.iterdir()
        if path.name.endswith((".shard", ".merge"))
    )


def test_first_build_publishes_directly(make_config, index_path: Path, source_tree: Path):
    engine = RecordingEngine()
    service = _service(make_config(), engine=engine)

    result = service.run([str(source_tree)])

    assert result.mode is IndexMode.RESET
    assert result.published and not result.merged
    assert engine.merges == []
    assert result.files_indexed == 4
    assert len(_indexed(index_path)) == 4
    assert service.list_roots() == [str(source_tree.resolve())]
    assert _leftovers(index_path) == []


def test_shard_is_a_unique_sibling_of_the_master(make_config, index_path: Path, source_tree: Path):
    engine = RecordingEngine()

    _service(make_config(), engine=engine).run([str(source_tree)])

    (shard,) = engine.created
    assert shard.parent == index_path.parent
    assert shard != index_path
    assert shard.name.startswith(index_path.name)


def test_second_run_merges_and_keeps_untouched_roots(
    make_config, index_path: Path, temp_dir: Path, make_tree
):
    first = make_tree(temp_dir / "first", {"a.c": "int a;\n"})
    second = make_tree(temp_dir / "second", {"b.c": "int b_v1;\n", "gone.c": "int gone;\n"})
    _service(make_config()).run([str(first), str(second)])

    (second / "b.c").write_text("int b_v2;\n", encoding="utf-8")
    (second / "gone.c").unlink()
    engine = RecordingEngine()
    result = _service(make_config(), engine=engine).run([str(second)])

    assert result.mode is IndexMode.INCREMENTAL
    assert result.merged
    ((destination, old_master, new_shard),) = engine.merges
    assert old_master == index_path
    assert new_shard == engine.created[0]
    assert destination not in (index_path, new_shard)

    first_file = str((first / "a.c").resolve())
    second_file = str((second / "b.c").resolve())
    assert _indexed(index_path) == sorted([first_file, second_file])
    conn = sqlite3.connect(str(index_path))
    try:
        (content,) = conn.execute(
            "SELECT content FROM files WHERE path = ?", (second_file,)
        ).fetchone()
    finally:
        conn.close()
    assert content == "int b_v2;\n"
    assert _leftovers(index_path) == []


def test_reset_with_paths_rebuilds_without_merge(
    make_config, index_path: Path, temp_dir: Path, make_tree
):
    first = make_tree(temp_dir / "first", {"a.c": "int a;\n"})
    second = make_tree(temp_dir / "second", {"b.c": "int b;\n"})
    _service(make_config()).run([str(first)])

    engine = RecordingEngine()
    result = _service(make_config(reset=True), engine=engine).run([str(second)])

    assert result.mode is IndexMode.RESET
    assert engine.merges == []
    assert _indexed(index_path) == [str((second / "b.c").resolve())]


def test_reset_without_paths_wipes_the_master(make_config, index_path: Path, source_tree: Path):
    _service(make_config()).run([str(source_tree)])
    engine = RecordingEngine()
    walker = RecordingWalker()

    result = _service(make_config(reset=True), engine=engine, walker=walker).run([])

    assert result.wiped
    assert not index_path.exists()
    assert engine.created == []
    assert walker.roots == []


def test_reset_without_paths_and_no_master_is_a_noop(make_config, index_path: Path):
    result = _service(make_config(reset=True)).run([])

    assert result.wiped
    assert not index_path.exists()


def test_no_paths_reuses_recorded_roots(make_config, index_path: Path, source_tree: Path):
    _service(make_config()).run([str(source_tree)])
    (source_tree / "lib" / "new.c").write_text("int fresh;\n", encoding="utf-8")
    walker = RecordingWalker()

    result = _service(make_config(), walker=walker).run([])

    assert walker.roots == [str(source_tree.resolve())]
    assert result.merged
    assert str((source_tree / "lib" / "new.c").resolve()) in _indexed(index_path)


def test_no_paths_and_no_master_raises(make_config):
    with pytest.raises(IndexNotFoundError):
        _service(make_config()).run([])


def test_unresolvable_path_does_not_stop_others(
    make_config, index_path: Path, source_tree: Path, monkeypatch
):
    original = roots_module.canonicalize

    def canonicalize(value):
        if value == "unreadable":
            raise OSError("permission denied")
        return original(value)

    monkeypatch.setattr(roots_module, "canonicalize", canonicalize)

    result = _service(make_config()).run(["unreadable", str(source_tree)])

    assert result.roots == [str(source_tree.resolve())]
    assert len(_indexed(index_path)) == 4


def test_failed_merge_leaves_master_byte_identical(
    make_config, index_path: Path, source_tree: Path
):
    _service(make_config()).run([str(source_tree)])
    before = index_path.read_bytes()

    with pytest.raises(IndexMergeError, match="disk full"):
        _service(make_config(), engine=RecordingEngine(fail_merge=True)).run([str(source_tree)])

    assert index_path.read_bytes() == before
    assert _leftovers(index_path) == []


def test_failed_publish_removes_artifacts(
    make_config, index_path: Path, source_tree: Path, monkeypatch
):
    import csindex.app.index_service as service_module

    def broken_replace(src, dst):
        raise OSError("read-only filesystem")

    monkeypatch.setattr(service_module.os, "replace", broken_replace)

    with pytest.raises(IndexPublishError):
        _service(make_config()).run([str(source_tree)])

    assert not index_path.exists()
    assert _leftovers(index_path) == []


def test_run_refuses_while_lock_is_held(make_config, index_path: Path, source_tree: Path):
    config = make_config()

    with IndexLock(config.lock_path):
        with pytest.raises(IndexLockedError):
            _service(config).run([str(source_tree)])

    assert not index_path.exists()


def test_file_types_from_config_drive_admission(make_config, index_path: Path, source_tree: Path):
    result = _service(make_config(file_types="md")).run([str(source_tree)])

    assert result.files_indexed == 1
    assert _indexed(index_path) == [str((source_tree / "README.md").resolve())]


def test_list_roots_without_master(make_config):
    with pytest.raises(IndexNotFoundError):
        _service(make_config()).list_roots()


def test_stats_reports_master(make_config, source_tree: Path):
    service = _service(make_config())
    assert service.stats() is None

    service.run([str(source_tree)])

    stats = service.stats()
    assert stats is not None
    assert stats.files == 4
    assert stats.roots == 1


@pytest.mark.skipif(
    not sys.platform.startswith("linux"), reason="needs a filesystem accepting non-UTF-8 names"
)
def test_non_utf8_file_name_is_refused_not_fatal(make_config, index_path: Path, temp_dir: Path):
    root = temp_dir / "mixed"
    root.mkdir()
    (root / "good.c").write_text("int good;\n", encoding="utf-8")
    with open(os.path.join(os.fsencode(root), b"bad\xff.c"), "wb") as handle:
        handle.write(b"int bad;\n")

    result = _service(make_config()).run([str(root)])

    assert result.published
    assert result.files_indexed == 1
    assert result.files_rejected == 1
    assert _indexed(index_path) == [str((root / "good.c").resolve())]


def test_wipe_without_master_takes_no_lock(make_config, index_path: Path):
    config = make_config(reset=True)

    result = _service(config).run([])

    assert result.wiped
    assert not config.lock_path.exists()
