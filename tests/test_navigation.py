"""Unit tests for archivist.documents.navigation — cursors and breadcrumbs."""

import pytest

from archivist.documents.navigation import Breadcrumb, NavigationCursor, NavigationManager
from archivist.documents.tree import TreeStore
from archivist.engine.errors import NavigationError


@pytest.fixture
def tree(documents):
    store = TreeStore()
    store.ingest(documents)
    return store


class TestNavigationCursor:

    def test_starts_at_category(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        assert cursor.current_path == "F1"
        assert cursor.breadcrumb == [Breadcrumb("Yönetmelikler", "F1")]
        assert cursor.is_at_root()
        assert cursor.depth == 0

    def test_descend(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        cursor.descend(tree.get("B"))
        assert cursor.current_path == "B"
        assert [c.label for c in cursor.breadcrumb] == ["Yönetmelikler", "Folder A", "Folder B"]
        assert cursor.depth == 2

    def test_descend_file_rejected(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        with pytest.raises(NavigationError) as exc_info:
            cursor.descend(tree.get("a-file"))
        assert exc_info.value.category_id == "F1"
        assert exc_info.value.object_id == "a-file"
        assert cursor.depth == 0

    def test_current_path_matches_last_crumb(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        for step in (tree.get("A"), tree.get("B")):
            cursor.descend(step)
            assert cursor.current_path == cursor.breadcrumb[-1].path
        cursor.ascend()
        assert cursor.current_path == cursor.breadcrumb[-1].path

    def test_descend_then_ascend_round_trip(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        fresh = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        cursor.descend(tree.get("B"))
        cursor.ascend()
        cursor.ascend()
        assert cursor == fresh

    def test_ascend_at_root_is_noop(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.ascend()
        assert cursor == NavigationCursor(tree.get("F1"))

    def test_jump_to_zero_resets(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        cursor.descend(tree.get("B"))
        cursor.jump_to(0)
        assert cursor == NavigationCursor(tree.get("F1"))

    def test_jump_to_middle_truncates(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        cursor.descend(tree.get("B"))
        cursor.jump_to(1)
        assert cursor.current_path == "A"
        assert len(cursor.breadcrumb) == 2

    def test_jump_to_current_is_noop(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        cursor.jump_to(1)
        assert cursor.current_path == "A"

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_jump_out_of_range(self, tree, index):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        with pytest.raises(NavigationError):
            cursor.jump_to(index)
        assert cursor.current_path == "A"

    def test_breadcrumb_is_a_copy(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.breadcrumb.append(Breadcrumb("x", "x"))
        assert cursor.depth == 0

    def test_repr(self, tree):
        cursor = NavigationCursor(tree.get("F1"))
        cursor.descend(tree.get("A"))
        assert repr(cursor) == "NavigationCursor('F1': Yönetmelikler / Folder A)"


class TestNavigationManager:

    def test_cursor_is_lazy_and_kept(self, tree):
        nav = NavigationManager()
        cursor = nav.cursor(tree.get("F1"))
        assert nav.get("F1") is cursor
        assert nav.cursor(tree.get("F1")) is cursor
        assert nav.get("F2") is None
        assert len(nav) == 1

    def test_cursors_independent(self, tree):
        nav = NavigationManager()
        nav.cursor(tree.get("F1")).descend(tree.get("A"))
        assert nav.cursor(tree.get("F2")).is_at_root()
        assert nav.cursor(tree.get("F1")).current_path == "A"

    def test_reset_and_forget(self, tree):
        nav = NavigationManager()
        nav.cursor(tree.get("F1")).descend(tree.get("A"))
        assert nav.reset(tree.get("F1")).is_at_root()
        nav.expanded = "F1"
        assert nav.forget("F1") is True
        assert nav.forget("F1") is False
        assert nav.expanded is None

    def test_toggle_single_expansion(self):
        nav = NavigationManager()
        assert nav.toggle("F1") == "F1"
        assert nav.toggle("F2") == "F2"
        assert nav.toggle("F2") is None

    def test_open_at_file_opens_folder(self, tree):
        nav = NavigationManager()
        cursor = nav.open_at(tree.get("F1"), "b-file", tree)
        assert [c.path for c in cursor.breadcrumb] == ["F1", "A", "B"]

    def test_open_at_folder(self, tree):
        nav = NavigationManager()
        cursor = nav.open_at(tree.get("F1"), "A", tree)
        assert cursor.current_path == "A"

    def test_open_at_foreign_target(self, tree):
        nav = NavigationManager()
        nav.cursor(tree.get("F1")).descend(tree.get("A"))
        cursor = nav.open_at(tree.get("F1"), "x-file", tree)
        assert cursor.is_at_root()
        assert nav.get("F1") is cursor

    def test_open_at_unknown(self, tree):
        nav = NavigationManager()
        assert nav.open_at(tree.get("F2"), "missing", tree).is_at_root()
