"""csindex - incremental index builder for source-code search.

Walks source trees, admits the files worth searching, and atomically publishes
an updated index file.
"""

__version__ = "0.1.0"
__author__ = "csindex Contributors"

from csindex.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
