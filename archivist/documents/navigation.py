"""
Per-category navigation — cursor and breadcrumb trail over a TreeStore.

A cursor is a stack machine over depth d >= 0:
    descend(folder)  d -> d + 1
    jump_to(k)       d -> k
    ascend()         d -> d - 1 (no-op at d = 0)
current_path always equals the path of the last breadcrumb entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from archivist.documents.models import Document
from archivist.documents.tree import TreeStore
from archivist.engine.errors import NavigationError

logger = logging.getLogger("archivist.documents.navigation")


@dataclass(frozen=True)
class Breadcrumb:
    label: str
    path: str


class NavigationCursor:
    """Navigation position inside one root category."""

    def __init__(self, category: Document):
        self._category_id = category.id
        self._breadcrumb: List[Breadcrumb] = [Breadcrumb(category.title, category.id)]

    @property
    def category_id(self) -> str:
        return self._category_id

    @property
    def current_path(self) -> str:
        return self._breadcrumb[-1].path

    @property
    def breadcrumb(self) -> List[Breadcrumb]:
        return list(self._breadcrumb)

    @property
    def depth(self) -> int:
        return len(self._breadcrumb) - 1

    def descend(self, folder: Document) -> None:
        if not folder.is_folder:
            raise NavigationError(
                f"Cannot open {folder.kind.value} '{folder.title}' as a folder",
                category_id=self._category_id,
                object_id=folder.id,
            )
        self._breadcrumb.append(Breadcrumb(folder.title, folder.id))

    def jump_to(self, index: int) -> None:
        if not 0 <= index < len(self._breadcrumb):
            raise NavigationError(
                f"Breadcrumb index {index} out of range (depth {self.depth})",
                category_id=self._category_id,
                index=index,
            )
        del self._breadcrumb[index + 1:]

    def ascend(self) -> None:
        if len(self._breadcrumb) <= 1:
            return
        self.jump_to(len(self._breadcrumb) - 2)

    def is_at_root(self) -> bool:
        return len(self._breadcrumb) == 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NavigationCursor):
            return NotImplemented
        return (
            self._category_id == other._category_id
            and self._breadcrumb == other._breadcrumb
        )

    def __repr__(self) -> str:
        trail = " / ".join(c.label for c in self._breadcrumb)
        return f"NavigationCursor({self._category_id!r}: {trail})"


class NavigationManager:
    """
    Keyed map of category id -> NavigationCursor.

    Cursors are created lazily from the category document and survive
    snapshot updates; only reset() or forget() drops them. At most one
    category is expanded at a time.
    """

    def __init__(self) -> None:
        self._cursors: Dict[str, NavigationCursor] = {}
        self.expanded: Optional[str] = None

    def cursor(self, category: Document) -> NavigationCursor:
        cursor = self._cursors.get(category.id)
        if cursor is None:
            cursor = NavigationCursor(category)
            self._cursors[category.id] = cursor
        return cursor

    def get(self, category_id: str) -> Optional[NavigationCursor]:
        return self._cursors.get(category_id)

    def reset(self, category: Document) -> NavigationCursor:
        cursor = NavigationCursor(category)
        self._cursors[category.id] = cursor
        return cursor

    def forget(self, category_id: str) -> bool:
        if self.expanded == category_id:
            self.expanded = None
        return self._cursors.pop(category_id, None) is not None

    def toggle(self, category_id: str) -> Optional[str]:
        """Expand category_id, or collapse it if it is already expanded."""
        self.expanded = None if self.expanded == category_id else category_id
        return self.expanded

    def open_at(self, category: Document, doc_id: str, tree: TreeStore) -> NavigationCursor:
        """
        Rebuild the cursor for a deep link to doc_id inside category.

        Folders on the ancestor chain become breadcrumb entries; a file
        target opens its containing folder. An unknown or foreign target
        leaves the cursor at the category root.
        """
        cursor = self.reset(category)
        chain = tree.ancestry(doc_id)
        if not chain or chain[0].id != category.id:
            logger.info(f"Deep link {doc_id!r} is not inside category {category.id!r}")
            return cursor
        for doc in chain[1:]:
            if not doc.is_folder:
                break
            cursor.descend(doc)
        return cursor

    def __len__(self) -> int:
        return len(self._cursors)
