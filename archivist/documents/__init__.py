"""
Archivist Documents — the archive as a virtual filesystem.

Flat documents keyed by parent_path, a TreeStore answering "children of X",
and per-category navigation cursors with breadcrumb trails.
"""

from archivist.documents.models import ANCHOR, Document, DocumentKind
from archivist.documents.navigation import Breadcrumb, NavigationCursor, NavigationManager
from archivist.documents.tree import TreeAnomalies, TreeStore
from archivist.documents.viewer import ViewerMode, ViewerTarget, resolve_viewer

__all__ = [
    "ANCHOR",
    "Document",
    "DocumentKind",
    "Breadcrumb",
    "NavigationCursor",
    "NavigationManager",
    "TreeAnomalies",
    "TreeStore",
    "ViewerMode",
    "ViewerTarget",
    "resolve_viewer",
]
