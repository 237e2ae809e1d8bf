"""
Archivist — archive navigation and resource aggregation engine.

Presents a flat, parent-reference document collection as a navigable tree
with per-category cursors, groups the approved course-resource catalog by
course and type under composable filters, and keeps both fed from live
subscriptions behind a TTL cache.
"""

__version__ = "1.0.0"
__all__ = ["archive", "cli", "documents", "engine", "resources"]
