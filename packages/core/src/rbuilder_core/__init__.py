"""rbuilder core - virtual project file system for the R package builder."""

from rbuilder_core.config import FileSystemSettings
from rbuilder_core.filesystem import (
    FileSystem,
    InMemoryNodeStore,
    JsonFileNodeStore,
    Node,
    NodeStore,
    PackageFileTools,
    TreeNode,
    build_tree,
)

__all__ = [
    "FileSystemSettings",
    "FileSystem",
    "NodeStore",
    "InMemoryNodeStore",
    "JsonFileNodeStore",
    "Node",
    "TreeNode",
    "build_tree",
    "PackageFileTools",
]
