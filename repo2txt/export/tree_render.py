"""Plain-text rendering of the selection tree used as the export header."""

from __future__ import annotations

from collections.abc import Mapping

from ..file_tree_model import FileNode, node_sort_key

SELECTED_MARKER = "[✓]"
UNSELECTED_MARKER = "[ ]"
DIRECTORY_ICON = "▶ "


def build_tree_structure(nodes: Mapping[str, FileNode]) -> str:
    """Render every node as a box-drawing tree with selection markers.

    A directory's children are shown when it is expanded or selected, so
    selected files inside a collapsed folder stay visible. Siblings are
    ordered directories first, then by name.
    """
    children_of: dict[str | None, list[FileNode]] = {}
    for node in nodes.values():
        children_of.setdefault(node.parent_id or None, []).append(node)
    for siblings in children_of.values():
        siblings.sort(key=node_sort_key)

    lines: list[str] = []

    def visit(node: FileNode, prefix: str, is_last: bool) -> None:
        marker = SELECTED_MARKER if node.selected else UNSELECTED_MARKER
        icon = DIRECTORY_ICON if node.is_directory else ""
        branch = "└── " if is_last else "├── "
        lines.append(f"{prefix}{branch}{marker} {icon}{node.name}")
        if not node.is_directory or not (node.expanded or node.selected):
            return
        children = children_of.get(node.id, [])
        child_prefix = prefix + ("    " if is_last else "│   ")
        for idx, child in enumerate(children):
            visit(child, child_prefix, idx == len(children) - 1)

    roots = children_of.get(None, [])
    for idx, node in enumerate(roots):
        visit(node, "", idx == len(roots) - 1)
    return "\n".join(lines)


__all__ = [
    "DIRECTORY_ICON",
    "SELECTED_MARKER",
    "UNSELECTED_MARKER",
    "build_tree_structure",
]
