"""Tree builder - projects flat node records into a nested, sorted forest.

The projection is stateless and rebuilt from scratch after every mutation;
nothing is patched incrementally.

Nodes whose parent is not a stored folder (orphans, or children of a file)
are surfaced at the root rather than dropped.
"""

from collections.abc import Iterable

from rbuilder_core.filesystem.models import Node, TreeNode
from rbuilder_core.filesystem.paths import name_of, parent_of


def _sort_key(node: TreeNode) -> tuple[int, str, str]:
    # Folders first, then case-insensitive by name with the raw name as tie-break
    return (0 if node.type == "folder" else 1, node.name.casefold(), node.name)


def _sort_recursive(nodes: list[TreeNode]) -> None:
    nodes.sort(key=_sort_key)
    for node in nodes:
        if node.children:
            _sort_recursive(node.children)


def build_tree(nodes: Iterable[Node]) -> list[TreeNode]:
    """Build the presentation forest from flat nodes.

    Args:
        nodes: Stored nodes in any order

    Returns:
        Root-level TreeNodes, each folder's children sorted folders-first then by name
    """
    by_path: dict[str, TreeNode] = {}
    for node in nodes:
        by_path[node.path] = TreeNode(
            name=name_of(node.path),
            path=node.path,
            type=node.type,
            last_modified=node.last_modified,
            size=node.size,
            children=[] if node.is_folder else None,
        )

    roots: list[TreeNode] = []
    for tree_node in by_path.values():
        parent = by_path.get(parent_of(tree_node.path))
        if parent is not None and parent.type == "folder" and parent is not tree_node:
            parent.children.append(tree_node)
        else:
            roots.append(tree_node)

    _sort_recursive(roots)
    return roots


def walk(tree: list[TreeNode]) -> Iterable[TreeNode]:
    """Depth-first, pre-order iteration over a forest in display order."""
    for node in tree:
        yield node
        if node.children:
            yield from walk(node.children)
