"""Port interfaces for the csindex application layer.

Domain logic depends on these protocols, never on concrete implementations.
"""

__all__ = [
    "IndexEnginePort",
    "IndexStats",
    "IndexWriterPort",
    "SourceDiscoveryPort",
]

from csindex.app.ports.discovery import SourceDiscoveryPort
from csindex.app.ports.index import IndexEnginePort, IndexStats, IndexWriterPort
