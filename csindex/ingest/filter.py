"""Admission rules deciding which files are indexed and which directories are walked.

Directory rules are coarse and cheap so whole subtrees (test suites, VCS
metadata) are pruned before they are ever listed. File rules combine naming
heuristics for test sources with an extension allow-list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_FILE_TYPES = "c|cpp|cxx|cc|inc|asm|s|h|hh|hxx|hpp|def|hdr|y|lex|yy"

EXCLUDED_DIRECTORY_NAMES = frozenset(
    {"test", "tests", "testsuite", "testsuites", "unittest", "unittests"}
)

_HIDDEN_PREFIXES = (".", "#", "~")


class Decision(str, Enum):
    """Outcome of an admission check."""

    KEEP = "keep"
    SKIP = "skip"


class Scope(str, Enum):
    """Kind of path element an admission decision applies to."""

    FILE = "file"
    DIRECTORY = "directory"


def is_hidden_or_backup(name: str) -> bool:
    """Hidden entries, editor lock files (``#foo#``) and backups (``foo~``)."""
    return not name or name.startswith(_HIDDEN_PREFIXES) or name.endswith("~")


def parse_file_types(file_types: str) -> frozenset[str]:
    """Split a ``c|h|cc`` allow-list into lower-cased extensions."""
    return frozenset(
        entry.strip().lower() for entry in file_types.split("|") if entry.strip()
    )


@dataclass(frozen=True, slots=True)
class DirectoryAdmission:
    """Decides whether a directory is descended into."""

    excluded_names: frozenset[str] = EXCLUDED_DIRECTORY_NAMES

    scope = Scope.DIRECTORY

    def decide(self, name: str) -> Decision:
        if is_hidden_or_backup(name) or name in self.excluded_names:
            return Decision.SKIP
        return Decision.KEEP


@dataclass(frozen=True, slots=True)
class FileAdmission:
    """Decides whether a regular file is handed to the index writer.

    Test-name heuristics are case-sensitive while the extension comparison is
    not, so ``parser_Test.c`` and ``parser.C`` are both admitted.
    """

    extensions: frozenset[str] = field(
        default_factory=lambda: parse_file_types(DEFAULT_FILE_TYPES)
    )

    scope = Scope.FILE

    @classmethod
    def from_file_types(cls, file_types: str) -> "FileAdmission":
        return cls(extensions=parse_file_types(file_types))

    def decide(self, name: str) -> Decision:
        if is_hidden_or_backup(name):
            return Decision.SKIP
        # foo_test.c
        if "_test." in name:
            return Decision.SKIP
        # test_foo.c
        if name.startswith("test_"):
            return Decision.SKIP

        _, dot, extension = name.rpartition(".")
        if not dot:
            return Decision.SKIP
        if extension.lower() in self.extensions:
            return Decision.KEEP
        return Decision.SKIP


@dataclass(frozen=True, slots=True)
class AdmissionFilter:
    """Combined classifier consulted by the tree walker for every entry."""

    directories: DirectoryAdmission = field(default_factory=DirectoryAdmission)
    files: FileAdmission = field(default_factory=FileAdmission)

    @classmethod
    def from_file_types(cls, file_types: str = DEFAULT_FILE_TYPES) -> "AdmissionFilter":
        return cls(files=FileAdmission.from_file_types(file_types))

    def decide(self, name: str, is_directory: bool) -> Decision:
        if is_directory:
            return self.directories.decide(name)
        return self.files.decide(name)

    def keeps(self, name: str, is_directory: bool) -> bool:
        return self.decide(name, is_directory) is Decision.KEEP
