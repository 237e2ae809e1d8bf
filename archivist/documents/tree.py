"""
Archive TreeStore — flat document snapshots viewed as a virtual filesystem.

Each feeding subscription contributes one snapshot under a source key;
ingesting replaces that source's contribution wholesale. The store view is
the union of all sources (first-seen id wins, arrival order = source
registration order, then snapshot order).

Structure is tracked in a NetworkX DiGraph with parent -> child edges rooted
at the anchor sentinel. Nodes not reachable from the anchor (orphans, parent
cycles, and anything hanging below them) are left out of children() and
reported by anomalies().
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from archivist.documents.models import ANCHOR, Document
from archivist.engine.logging import log, log_structure_anomaly

logger = logging.getLogger("archivist.documents.tree")


@dataclass
class TreeAnomalies:
    """Structural problems found at the last ingestion."""
    orphans: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    unreachable: List[str] = field(default_factory=list)

    @property
    def has_any(self) -> bool:
        return bool(self.orphans or self.cycles)

    def to_dict(self) -> Dict[str, List]:
        return {
            "orphans": list(self.orphans),
            "cycles": [list(c) for c in self.cycles],
            "unreachable": list(self.unreachable),
        }


class TreeStore:
    """
    Read-only tree over the latest document snapshots.

    Usage:
        tree = TreeStore()
        tree.ingest(documents, source="all_documents")
        tree.root_categories()
        tree.children(category.id)
    """

    def __init__(self, anchor: str = ANCHOR, max_depth: int = 64):
        self._anchor = anchor
        self._max_depth = max_depth
        self._sources: "OrderedDict[str, List[Document]]" = OrderedDict()
        self._docs: "OrderedDict[str, Document]" = OrderedDict()
        self._children: Dict[str, List[Document]] = {}
        self._graph = nx.DiGraph()
        self._reachable: Set[str] = set()
        self._anomalies = TreeAnomalies()
        self.version = 0

    # -------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------

    def ingest(self, documents: Iterable[Document], source: str = "default") -> None:
        """Replace one source's contribution with a new snapshot."""
        self._sources[source] = list(documents)
        self._rebuild(source)

    def remove_source(self, source: str) -> bool:
        if self._sources.pop(source, None) is None:
            return False
        self._rebuild(source)
        return True

    def _rebuild(self, source: str) -> None:
        docs: "OrderedDict[str, Document]" = OrderedDict()
        for snapshot in self._sources.values():
            for doc in snapshot:
                docs.setdefault(doc.id, doc)

        graph = nx.DiGraph()
        graph.add_node(self._anchor)
        for doc in docs.values():
            graph.add_edge(doc.parent_path, doc.id)

        reachable = nx.descendants(graph, self._anchor)
        cycles = [sorted(c) for c in nx.simple_cycles(graph)]
        cyclic = {n for c in cycles for n in c}
        orphans = [
            doc.id for doc in docs.values()
            if doc.parent_path != self._anchor
            and doc.parent_path not in docs
            and doc.id not in cyclic
        ]
        unreachable = [
            doc_id for doc_id in docs
            if doc_id not in reachable and doc_id not in cyclic and doc_id not in orphans
        ]

        children: Dict[str, List[Document]] = {}
        for doc in docs.values():
            if doc.id in reachable:
                children.setdefault(doc.parent_path, []).append(doc)

        self._docs = docs
        self._graph = graph
        self._reachable = reachable
        self._children = children
        self.version += 1
        self._report(TreeAnomalies(orphans, sorted(cycles), unreachable), source)

    def _report(self, anomalies: TreeAnomalies, source: str) -> None:
        previous = self._anomalies
        self._anomalies = anomalies
        if anomalies.orphans and anomalies.orphans != previous.orphans:
            logger.warning(
                f"{len(anomalies.orphans)} orphan document(s) hidden: "
                f"{', '.join(anomalies.orphans[:10])}"
            )
            log(log_structure_anomaly("orphan", anomalies.orphans, source=source))
        if anomalies.cycles and anomalies.cycles != previous.cycles:
            members = [n for c in anomalies.cycles for n in c]
            logger.warning(f"Parent cycle(s) hidden: {anomalies.cycles}")
            log(log_structure_anomaly("cycle", members, source=source))

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------

    def root_categories(self) -> List[Document]:
        """Kind=root documents under the anchor, oldest first (stable on ties)."""
        roots = [
            d for d in self._docs.values()
            if d.is_root and d.parent_path == self._anchor
        ]
        return sorted(roots, key=lambda d: d.created_at_seconds)

    def children(self, path: str) -> List[Document]:
        """
        Documents directly under path: folders first, then everything else,
        each group in arrival order. Unknown or empty paths give [].
        """
        items = self._children.get(path, [])
        folders = [d for d in items if d.is_folder]
        others = [d for d in items if not d.is_folder]
        return folders + others

    def by_tag(self, tag_id: str) -> List[Document]:
        """Documents cross-referenced to tag_id, in arrival order."""
        return [d for d in self._docs.values() if d.related_tag_id == tag_id]

    def tag_listing(self, tag_id: str) -> List[Document]:
        """by_tag(), newest first: the flat listing shown for one committee."""
        return sorted(self.by_tag(tag_id), key=lambda d: d.created_at_seconds, reverse=True)

    def get(self, doc_id: str) -> Optional[Document]:
        return self._docs.get(doc_id)

    def ancestry(self, doc_id: str) -> List[Document]:
        """
        Chain of documents from the category root down to doc_id (inclusive).

        Returns [] for unknown or unreachable nodes, and for chains deeper
        than max_depth.
        """
        if doc_id not in self._reachable:
            return []
        try:
            path = nx.shortest_path(self._graph, self._anchor, doc_id)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return []
        chain = path[1:]
        if len(chain) > self._max_depth:
            logger.warning(f"Ancestry of {doc_id!r} exceeds max depth {self._max_depth}")
            return []
        return [self._docs[n] for n in chain]

    def anomalies(self) -> TreeAnomalies:
        return self._anomalies

    @property
    def anchor(self) -> str:
        return self._anchor

    @property
    def sources(self) -> List[str]:
        return list(self._sources.keys())

    def __len__(self) -> int:
        return len(self._docs)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._docs
