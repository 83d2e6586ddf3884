"""Source discovery: admission rules, root resolution and tree walking."""

from csindex.ingest.filter import (
    DEFAULT_FILE_TYPES,
    AdmissionFilter,
    Decision,
    DirectoryAdmission,
    FileAdmission,
    Scope,
)
from csindex.ingest.roots import resolve_roots
from csindex.ingest.walk import WalkReport, iter_admitted_files, walk_tree

__all__ = [
    "DEFAULT_FILE_TYPES",
    "AdmissionFilter",
    "Decision",
    "DirectoryAdmission",
    "FileAdmission",
    "Scope",
    "WalkReport",
    "iter_admitted_files",
    "resolve_roots",
    "walk_tree",
]
