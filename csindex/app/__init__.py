"""Application layer for csindex.

This layer orchestrates indexing without depending on a concrete index
engine. All side effects are delegated to adapters via port interfaces.
"""

__all__ = [
    "BuildPlan",
    "IndexMode",
    "IndexRunResult",
    "IndexService",
]

from csindex.app.index_service import BuildPlan, IndexMode, IndexRunResult, IndexService
