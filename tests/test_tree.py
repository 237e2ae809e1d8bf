"""Unit tests for archivist.documents.tree — TreeStore."""

import pytest

from archivist.documents.models import Document
from archivist.documents.tree import TreeStore
from conftest import doc


def parse(*records):
    return Document.parse_records(records)


class TestRootCategories:

    def test_oldest_first(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert [d.id for d in tree.root_categories()] == ["F2", "F1"]

    def test_ties_keep_arrival_order(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("b", "root", "main", created=5),
            doc("a", "root", "main", created=5),
            doc("c", "root", "main"),
        ))
        assert [d.id for d in tree.root_categories()] == ["c", "b", "a"]

    def test_only_roots_under_anchor(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("r", "root", "main"),
            doc("f", "folder", "main"),
            doc("nested", "root", "r"),
        ))
        assert [d.id for d in tree.root_categories()] == ["r"]

    def test_custom_anchor(self):
        tree = TreeStore(anchor="top")
        tree.ingest(parse(doc("r", "root", "top"), doc("x", "root", "main")))
        assert [d.id for d in tree.root_categories()] == ["r"]


class TestChildren:

    def test_folders_first(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert [d.id for d in tree.children("F1")] == ["A", "a-file"]

    def test_nested(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert [d.id for d in tree.children("A")] == ["B"]
        assert [d.id for d in tree.children("B")] == ["b-file"]

    def test_arrival_order_within_group(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("r", "root", "main"),
            doc("f2", "file", "r"),
            doc("d2", "folder", "r"),
            doc("f1", "file", "r"),
            doc("d1", "folder", "r"),
        ))
        assert [d.id for d in tree.children("r")] == ["d2", "d1", "f2", "f1"]

    def test_unknown_and_empty_paths(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert tree.children("nope") == []
        assert tree.children("b-file") == []

    def test_every_child_listed_under_its_parent(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        for d in documents:
            if d.parent_path != "main":
                assert d in tree.children(d.parent_path)

    def test_snapshot_replaces(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        tree.ingest([d for d in documents if d.id != "A"])
        assert [d.id for d in tree.children("F1")] == ["a-file"]
        assert tree.children("A") == []
        assert "B" not in [d.id for d in tree.children("A")]


class TestSources:

    def test_union_first_seen_wins(self):
        tree = TreeStore()
        tree.ingest(parse(doc("r", "root", "main", title="from roots")), source="roots")
        tree.ingest(parse(
            doc("r", "root", "main", title="from documents"),
            doc("f", "file", "r"),
        ), source="documents")
        assert tree.get("r").title == "from roots"
        assert [d.id for d in tree.children("r")] == ["f"]
        assert tree.sources == ["roots", "documents"]

    def test_remove_source(self):
        tree = TreeStore()
        tree.ingest(parse(doc("r", "root", "main")), source="roots")
        tree.ingest(parse(doc("f", "file", "r")), source="documents")
        assert tree.remove_source("documents") is True
        assert tree.remove_source("documents") is False
        assert tree.children("r") == []
        assert len(tree) == 1

    def test_version_bumps(self):
        tree = TreeStore()
        tree.ingest([])
        tree.ingest([])
        assert tree.version == 2


class TestAnomalies:

    def test_orphan_hidden(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("r", "root", "main"),
            doc("o", "folder", "ghost"),
            doc("below", "file", "o"),
        ))
        anomalies = tree.anomalies()
        assert anomalies.orphans == ["o"]
        assert anomalies.unreachable == ["below"]
        assert anomalies.has_any
        assert tree.children("ghost") == []
        assert tree.children("o") == []
        assert "o" in tree

    def test_cycle_hidden(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("r", "root", "main"),
            doc("x", "folder", "y"),
            doc("y", "folder", "x"),
            doc("self", "folder", "self"),
        ))
        anomalies = tree.anomalies()
        assert anomalies.cycles == [["self"], ["x", "y"]]
        assert anomalies.orphans == []
        assert tree.children("x") == []
        assert tree.children("self") == []

    def test_clean_tree(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert tree.anomalies().has_any is False
        assert tree.anomalies().to_dict() == {"orphans": [], "cycles": [], "unreachable": []}

    def test_anomaly_logged_once(self, caplog):
        tree = TreeStore()
        records = parse(doc("o", "folder", "ghost"))
        with caplog.at_level("WARNING", logger="archivist.documents.tree"):
            tree.ingest(records)
            tree.ingest(records)
        assert len([r for r in caplog.records if "orphan" in r.getMessage()]) == 1


class TestLookups:

    def test_ancestry(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert [d.id for d in tree.ancestry("b-file")] == ["F1", "A", "B", "b-file"]
        assert [d.id for d in tree.ancestry("F1")] == ["F1"]

    def test_ancestry_unknown_or_hidden(self):
        tree = TreeStore()
        tree.ingest(parse(doc("o", "folder", "ghost")))
        assert tree.ancestry("o") == []
        assert tree.ancestry("missing") == []

    def test_ancestry_depth_limit(self):
        records = [doc("r", "root", "main")]
        parent = "r"
        for i in range(5):
            records.append(doc(f"d{i}", "folder", parent))
            parent = f"d{i}"
        tree = TreeStore(max_depth=3)
        tree.ingest(parse(*records))
        assert [d.id for d in tree.ancestry("d1")] == ["r", "d0", "d1"]
        assert tree.ancestry("d4") == []

    def test_by_tag_and_listing(self):
        tree = TreeStore()
        tree.ingest(parse(
            doc("old", "file", "r", created=1, relatedCommissionId="c1"),
            doc("new", "file", "r", created=9, relatedCommissionId="c1"),
            doc("other", "file", "r", created=5, relatedCommissionId="c2"),
        ))
        assert [d.id for d in tree.by_tag("c1")] == ["old", "new"]
        assert [d.id for d in tree.tag_listing("c1")] == ["new", "old"]
        assert tree.by_tag("none") == []

    def test_get(self, documents):
        tree = TreeStore()
        tree.ingest(documents)
        assert tree.get("A").title == "Folder A"
        assert tree.get("missing") is None
        assert len(tree) == len(documents)
