"""Tests for build_tree.

build_tree is a pure projection, so these tests feed it hand-built nodes:
- nesting by parent path
- folders-first, name ordering at every level
- orphans and children of files surface at the root
- determinism
"""

import random

from rbuilder_core.filesystem.models import Node
from rbuilder_core.filesystem.tree import build_tree, walk


def names(tree):
    return [node.name for node in tree]


class TestNesting:
    """Tests for parent/child linking."""

    def test_children_attached_to_parent_folder(self):
        nodes = [
            Node.folder("/Package"),
            Node.folder("/Package/R"),
            Node.file("/Package/R/hello.R", "x"),
            Node.file("/README.md", "hi"),
        ]

        tree = build_tree(nodes)

        assert names(tree) == ["Package", "README.md"]
        package = tree[0]
        assert names(package.children) == ["R"]
        assert names(package.children[0].children) == ["hello.R"]

    def test_files_have_no_children_list(self):
        tree = build_tree([Node.file("/README.md", "hi")])
        assert tree[0].children is None

    def test_empty_folder_has_empty_children(self):
        tree = build_tree([Node.folder("/Package")])
        assert tree[0].children == []

    def test_empty_input(self):
        assert build_tree([]) == []

    def test_tree_node_carries_metadata(self):
        tree = build_tree([Node.file("/a.R", "abc", last_modified=77)])

        assert tree[0].size == 3
        assert tree[0].last_modified == 77
        assert tree[0].path == "/a.R"


class TestOrdering:
    """Tests for sort order at each level."""

    def test_folders_before_files(self):
        nodes = [Node.file("/a.R", ""), Node.folder("/z"), Node.file("/b.R", ""), Node.folder("/m")]

        assert names(build_tree(nodes)) == ["m", "z", "a.R", "b.R"]

    def test_name_order_ignores_case(self):
        nodes = [Node.file("/beta.R", ""), Node.file("/Alpha.R", ""), Node.file("/gamma.R", "")]

        assert names(build_tree(nodes)) == ["Alpha.R", "beta.R", "gamma.R"]

    def test_nested_levels_sorted(self):
        nodes = [
            Node.folder("/P"),
            Node.file("/P/z.R", ""),
            Node.folder("/P/tests"),
            Node.file("/P/a.R", ""),
            Node.folder("/P/R"),
        ]

        assert names(build_tree(nodes)[0].children) == ["R", "tests", "a.R", "z.R"]


class TestOrphans:
    """Nodes without a stored folder parent are surfaced at the root."""

    def test_missing_parent_becomes_root(self):
        nodes = [Node.folder("/Package"), Node.file("/Ghost/file.R", "")]

        tree = build_tree(nodes)

        assert sorted(n.path for n in tree) == ["/Ghost/file.R", "/Package"]

    def test_child_of_file_becomes_root(self):
        nodes = [Node.file("/notes.txt", ""), Node.file("/notes.txt/inner.R", "")]

        tree = build_tree(nodes)

        assert len(tree) == 2
        assert all(node.children is None for node in tree)


class TestDeterminism:
    """Same input set -> same tree, regardless of input order."""

    def test_repeat_build_identical(self):
        nodes = [
            Node.folder("/Package", last_modified=1),
            Node.folder("/Package/R", last_modified=1),
            Node.file("/Package/R/a.R", "a", last_modified=1),
            Node.file("/Package/DESCRIPTION", "d", last_modified=1),
            Node.folder("/Resources", last_modified=1),
        ]
        shuffled = nodes[:]
        random.Random(7).shuffle(shuffled)

        first = [n.to_dict() for n in build_tree(nodes)]
        second = [n.to_dict() for n in build_tree(shuffled)]

        assert first == second

    def test_walk_is_preorder_display_order(self):
        nodes = [
            Node.folder("/P"),
            Node.file("/P/b.R", ""),
            Node.folder("/P/R"),
            Node.file("/P/R/a.R", ""),
        ]

        assert [n.path for n in walk(build_tree(nodes))] == ["/P", "/P/R", "/P/R/a.R", "/P/b.R"]
