"""Virtual file system for rbuilder projects.

A path-addressed tree of files and folders stored as flat records.
This package provides four layers:

1. Store Layer (store.py, json_store.py):
   - NodeStore ABC: flat path -> Node persistence with atomic batches
   - InMemoryNodeStore / JsonFileNodeStore implementations

2. Path & Tree Layer (paths.py, tree.py):
   - Pure path arithmetic, unique " (copy)" naming
   - build_tree: flat nodes -> sorted presentation forest

3. Core Layer (core.py):
   - FileSystem: create / save / cascading delete, rename, duplicate

4. Gateway Layer (gateway.py):
   - PackageFileTools: policy-restricted operations and pydantic-ai tools for agents

The layered design allows:
- Swappable storage backends
- Hierarchy rules enforced in exactly one place
- A narrower surface for automated callers
"""

from rbuilder_core.filesystem.core import FileSystem, seed_nodes
from rbuilder_core.filesystem.errors import (
    DuplicatePathError,
    FileSystemError,
    InvalidPathError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
    PolicyViolationError,
    StorageFailure,
)
from rbuilder_core.filesystem.export import ArchiveEntry, archive_entries
from rbuilder_core.filesystem.gateway import PackageFileTools, ToolResult
from rbuilder_core.filesystem.json_store import JsonFileNodeStore
from rbuilder_core.filesystem.models import Node, NodeType, TreeNode
from rbuilder_core.filesystem.store import BatchOp, InMemoryNodeStore, NodeStore, open_node_store
from rbuilder_core.filesystem.tree import build_tree

__all__ = [
    # Store
    "NodeStore",
    "InMemoryNodeStore",
    "JsonFileNodeStore",
    "BatchOp",
    "open_node_store",
    # Models
    "Node",
    "NodeType",
    "TreeNode",
    "build_tree",
    # Core
    "FileSystem",
    "seed_nodes",
    # Gateway
    "PackageFileTools",
    "ToolResult",
    # Export
    "ArchiveEntry",
    "archive_entries",
    # Errors
    "FileSystemError",
    "NotFoundError",
    "NotAFileError",
    "NotAFolderError",
    "DuplicatePathError",
    "InvalidPathError",
    "PolicyViolationError",
    "StorageFailure",
]
