"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
import time
from collections.abc import Generator
from pathlib import Path

import pytest

from csindex.config import IndexerConfig, Settings

SOURCE_FILES = {
    "main.c": "int main(void) { return util(); }\n",
    "include/util.h": "int util(void);\n",
    "lib/util.c": "int util(void) { return 0; }\n",
    "lib/parser.CC": "// generated parser\n",
    "lib/util_test.c": "void test_util(void) {}\n",
    "lib/test_parser.c": "void test_parser(void) {}\n",
    "lib/util.c~": "stale backup\n",
    "lib/#util.c#": "editor lock\n",
    "lib/Makefile": "all:\n\tcc util.c\n",
    "README.md": "# sample tree\n",
    "tests/fixture.c": "int fixture;\n",
    "unittest/case.c": "int case_;\n",
    ".git/hooks/pre-commit.c": "int hook;\n",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any SQLite handles
        gc.collect()
        time.sleep(0.05)
        shutil.rmtree(tmpdir, ignore_errors=True)


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree():
    """Expose ``write_tree`` to tests that need bespoke layouts."""
    return write_tree


@pytest.fixture
def source_tree(temp_dir: Path) -> Path:
    """Source tree mixing admissible files with everything the filter rejects."""
    return write_tree(temp_dir / "src", SOURCE_FILES)


@pytest.fixture
def index_path(temp_dir: Path) -> Path:
    """Location of the master index used by a test."""
    directory = temp_dir / "index"
    directory.mkdir()
    return directory / ".csearchindex"


@pytest.fixture
def make_config(index_path: Path):
    """Factory for run configurations pointing at ``index_path``."""

    def factory(**overrides) -> IndexerConfig:
        values = {"index_path": index_path}
        values.update(overrides)
        return IndexerConfig(**values)

    return factory


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated csindex settings scoped to tests."""

    import csindex.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    settings = config_module.Settings(_env_file=None, index_file=None)
    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings
