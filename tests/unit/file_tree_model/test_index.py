"""Tests for node index selection edits, eligibility, and epochs."""

from __future__ import annotations

import threading
import unittest

from repo2txt.file_tree_model import FileNode, FileUpdate, NodeIndex, ScanEpoch, eligible_files


def _node(node_id: str, is_directory: bool = False, selected: bool = True) -> FileNode:
    parent, _, name = node_id.rpartition("/")
    return FileNode(
        id=node_id,
        parent_id=parent or None,
        name=name,
        path=f"/root/{node_id}",
        relative_path=node_id,
        is_directory=is_directory,
        selected=selected,
    )


def _index(*nodes: FileNode) -> NodeIndex:
    index = NodeIndex()
    index.replace_all({node.id: node for node in nodes})
    return index


class UpdateSelectionTests(unittest.TestCase):
    def test_directory_cascade_stays_inside_prefix(self) -> None:
        index = _index(
            _node("a", is_directory=True),
            _node("a/x.txt"),
            _node("a/sub", is_directory=True),
            _node("a/sub/deep.txt"),
            _node("ab.txt"),
            _node("ab", is_directory=True),
            _node("ab/y.txt"),
        )
        self.assertTrue(index.update_selection("a", False))
        state = index.snapshot()

        for node_id in ("a", "a/x.txt", "a/sub", "a/sub/deep.txt"):
            self.assertFalse(state[node_id].selected, node_id)
        for node_id in ("ab.txt", "ab", "ab/y.txt"):
            self.assertTrue(state[node_id].selected, node_id)

    def test_file_selection_does_not_cascade(self) -> None:
        index = _index(_node("a.txt"), _node("a.txt.bak"))
        index.update_selection("a.txt", False)
        self.assertFalse(index.get("a.txt").selected)
        self.assertTrue(index.get("a.txt.bak").selected)

    def test_unknown_ids_are_no_ops(self) -> None:
        index = _index(_node("a.txt"))
        self.assertFalse(index.update_selection("missing", False))
        self.assertFalse(index.toggle_expanded("missing", True))
        self.assertTrue(index.get("a.txt").selected)

    def test_toggle_expanded_only_touches_the_node(self) -> None:
        index = _index(_node("d", is_directory=True), _node("d/e", is_directory=True))
        index.toggle_expanded("d", True)
        self.assertTrue(index.get("d").expanded)
        self.assertFalse(index.get("d/e").expanded)

    def test_select_all_and_deselect_all(self) -> None:
        index = _index(_node("d", is_directory=True, selected=False), _node("d/f.txt", selected=False))
        index.select_all_files()
        self.assertTrue(index.get("d/f.txt").selected)
        self.assertFalse(index.get("d").selected)
        index.deselect_all()
        self.assertFalse(index.get("d/f.txt").selected)


class IndexReadTests(unittest.TestCase):
    def test_reads_return_copies(self) -> None:
        index = _index(_node("a.txt"))
        copy = index.get("a.txt")
        copy.selected = False
        self.assertTrue(index.get("a.txt").selected)
        snapshot = index.snapshot()
        snapshot["a.txt"].selected = False
        self.assertTrue(index.get("a.txt").selected)

    def test_apply_updates_ignores_unknown_ids(self) -> None:
        index = _index(_node("a.txt"))
        applied = index.apply_updates([FileUpdate("a.txt", 10, 3), FileUpdate("gone.txt", 1, 1)])
        self.assertEqual(applied, 1)
        self.assertEqual((index.get("a.txt").size, index.get("a.txt").token_count), (10, 3))

    def test_add_missing_keeps_existing_nodes(self) -> None:
        index = _index(_node("a.txt", selected=False))
        added = index.add_missing([_node("a.txt"), _node("b.txt")])
        self.assertEqual([node.id for node in added], ["b.txt"])
        self.assertFalse(index.get("a.txt").selected)

    def test_search_is_case_insensitive_on_names(self) -> None:
        index = _index(_node("src", is_directory=True), _node("src/Main.py"), _node("docs.md"))
        self.assertEqual(index.search("MAIN"), ["src/Main.py"])
        self.assertEqual(index.search("s"), ["docs.md", "src"])

    def test_nodes_are_sorted_for_display(self) -> None:
        index = _index(_node("b.txt"), _node("z", is_directory=True), _node("a.txt"))
        self.assertEqual([node.id for node in index.nodes()], ["z", "a.txt", "b.txt"])


class EligibilityTests(unittest.TestCase):
    def test_only_immediate_parent_is_checked(self) -> None:
        nodes = {
            node.id: node
            for node in (
                _node("top", is_directory=True, selected=False),
                _node("top/mid", is_directory=True, selected=True),
                _node("top/mid/leaf.txt"),
                _node("top/direct.txt"),
                _node("root.txt"),
                _node("off.txt", selected=False),
            )
        }
        eligible = {node.id for node in eligible_files(nodes)}
        self.assertEqual(eligible, {"top/mid/leaf.txt", "root.txt"})


class ScanEpochTests(unittest.TestCase):
    def test_run_if_current_blocks_stale_epochs(self) -> None:
        epoch = ScanEpoch()
        first = epoch.advance()
        ran, value = epoch.run_if_current(first, lambda: "ok")
        self.assertEqual((ran, value), (True, "ok"))
        second = epoch.advance()
        self.assertEqual(second, first + 1)
        self.assertFalse(epoch.is_current(first))
        calls: list[int] = []
        ran, value = epoch.run_if_current(first, lambda: calls.append(1))
        self.assertFalse(ran)
        self.assertEqual(calls, [])

    def test_action_may_advance_the_epoch_itself(self) -> None:
        epoch = ScanEpoch()
        first = epoch.advance()
        ran, value = epoch.run_if_current(first, epoch.advance)
        self.assertEqual((ran, value), (True, first + 1))
        self.assertFalse(epoch.is_current(first))

    def test_running_action_does_not_stall_epoch_checks(self) -> None:
        epoch = ScanEpoch()
        current = epoch.advance()
        seen: list[bool] = []

        def action() -> bool:
            checker = threading.Thread(target=lambda: seen.append(epoch.is_current(current)))
            checker.start()
            checker.join(2.0)
            return not checker.is_alive()

        ran, finished = epoch.run_if_current(current, action)
        self.assertTrue(ran)
        self.assertTrue(finished)
        self.assertEqual(seen, [True])


if __name__ == "__main__":
    unittest.main()
