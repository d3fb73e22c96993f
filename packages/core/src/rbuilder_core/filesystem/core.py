"""File system core - tree-consistent operations over a flat node store.

The store only understands individual path keys. This module turns that into a
hierarchy: every cascading operation (delete, rename, duplicate) computes the
closure of a path - the path itself plus every stored path beneath it - from one
snapshot of the store and commits the whole closure as a single batch.

Invariants maintained here:
- No two nodes share a path (add-if-absent in the store, explicit checks on rename)
- A folder's descendants are exactly the nodes prefixed by "<folder>/"
- Cascading operations apply to the full closure or not at all

Typical usage:
    store = InMemoryNodeStore()
    fs = FileSystem(store)
    await fs.initialize()                       # seeds /Package, /Resources, /README.md
    await fs.create_node("/Package/demo", "folder")
    await fs.create_node("/Package/demo/DESCRIPTION", "file", "Package: demo")
    await fs.rename_node("/Package/demo", "demo2")
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from rbuilder_core.filesystem.errors import (
    DuplicatePathError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
)
from rbuilder_core.filesystem.models import Node, NodeType, TreeNode, now_ms
from rbuilder_core.filesystem.paths import (
    ROOT,
    is_descendant_or_self,
    is_strict_descendant,
    join,
    numbered_sibling,
    parent_of,
    replace_prefix,
    unique_sibling,
    validate_name,
    validate_path,
)
from rbuilder_core.filesystem.store import BatchOp, NodeStore, open_node_store
from rbuilder_core.filesystem.tree import build_tree

if TYPE_CHECKING:
    from rbuilder_core.config import FileSystemSettings

logger = logging.getLogger(__name__)

PACKAGE_ROOT = "/Package"
RESOURCES_ROOT = "/Resources"
README_PATH = "/README.md"

README_CONTENT = (
    "# AI-Powered R Package Builder\n\n"
    "Welcome!\n\n"
    "This is a simple README file to get you started.\n\n"
    'You can edit this file and click "Save" to persist the changes.'
)

NEW_FILE_STEM, NEW_FILE_EXTENSION = "Untitled", ".R"
NEW_FOLDER_STEM = "NewFolder"


def seed_nodes() -> list[Node]:
    """The canonical initial project layout, freshly timestamped."""
    timestamp = now_ms()
    return [
        Node.folder(PACKAGE_ROOT, last_modified=timestamp),
        Node.folder(RESOURCES_ROOT, last_modified=timestamp),
        Node.file(README_PATH, README_CONTENT, last_modified=timestamp),
    ]


class FileSystem:
    """Hierarchical file and folder operations on top of a NodeStore.

    Mutations are serialised behind one lock so the snapshot used to compute a
    closure cannot go stale before its batch is committed. The store handle is
    injected; nothing here is global.
    """

    def __init__(self, store: NodeStore, resources_root: str = RESOURCES_ROOT):
        """Initialize FileSystem.

        Args:
            store: Backing NodeStore (shared by nothing else that writes)
            resources_root: Folder that upload_resource() writes into
        """
        self.store = store
        self.resources_root = resources_root
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_settings(cls, settings: "FileSystemSettings") -> "FileSystem":
        """Build a FileSystem over the store configured in settings (not yet initialized)."""
        return cls(open_node_store(settings), resources_root=settings.resources_prefix)

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the mutation lock for the current event loop."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Prepare the store and seed it if empty. Safe to call on every start."""
        await self.store.initialize()
        async with self._get_lock():
            if await self.store.count() == 0:
                await self._seed()

    async def reset(self) -> None:
        """Delete every node and re-seed in one batch. Irreversible."""
        async with self._get_lock():
            logger.info("Resetting file system")
            operations = [BatchOp.delete(n.path) for n in await self.store.get_all()]
            operations += [BatchOp.add(node) for node in seed_nodes()]
            await self.store.run_batch(operations)

    async def _seed(self) -> None:
        logger.info("Seeding initial file system data")
        await self.store.run_batch([BatchOp.add(node) for node in seed_nodes()])

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_node(self, path: str) -> Optional[Node]:
        return await self.store.get(path)

    async def list_all(self) -> list[Node]:
        return await self.store.get_all()

    async def get_tree(self) -> list[TreeNode]:
        """Current contents projected into a sorted tree."""
        return build_tree(await self.store.get_all())

    async def list_files(self, prefix: str) -> list[Node]:
        """File nodes anywhere beneath prefix, ordered by path."""
        nodes = await self.store.get_all()
        files = [n for n in nodes if n.is_file and is_strict_descendant(n.path, prefix)]
        return sorted(files, key=lambda n: n.path)

    # ========================================================================
    # Single-node mutations
    # ========================================================================

    async def create_node(
        self, path: str, type: NodeType, content: Optional[str] = None
    ) -> Node:
        """Create a file or folder at path.

        Args:
            path: Absolute path of the new node
            type: "file" or "folder"
            content: Initial file content (ignored for folders)

        Returns:
            The stored node

        Raises:
            InvalidPathError: If path is malformed
            NotAFolderError: If the parent path exists and is a file
            DuplicatePathError: If a node already exists at path
        """
        validate_path(path)
        if type == "file":
            node = Node.file(path, content or "")
        elif type == "folder":
            node = Node.folder(path)
        else:
            raise ValueError(f"Unknown node type: {type}")

        async with self._get_lock():
            await self._check_parent(path)
            await self.store.add(node)

        logger.debug(f"Created {type} {path}")
        return node

    async def save_file_content(self, path: str, content: str) -> Node:
        """Overwrite a file's content.

        Raises:
            NotFoundError: If nothing exists at path
            NotAFileError: If path is a folder
        """
        async with self._get_lock():
            node = await self.store.get(path)
            if node is None:
                raise NotFoundError(path)
            if not node.is_file:
                raise NotAFileError(path)

            updated = node.model_copy(
                update={
                    "content": content,
                    "size": len(content),
                    "last_modified": max(now_ms(), node.last_modified),
                }
            )
            await self.store.put(updated)

        logger.debug(f"Saved {path} ({len(content)} chars)")
        return updated

    async def _check_parent(self, path: str) -> None:
        parent = parent_of(path)
        if parent == ROOT:
            return
        parent_node = await self.store.get(parent)
        if parent_node is not None and not parent_node.is_folder:
            raise NotAFolderError(parent)

    # ========================================================================
    # Cascading mutations
    # ========================================================================

    @staticmethod
    def _closure(path: str, nodes: list[Node]) -> list[Node]:
        """Stored nodes at or beneath path."""
        return [n for n in nodes if is_descendant_or_self(n.path, path)]

    async def delete_node(self, path: str) -> list[str]:
        """Delete path and everything beneath it in one batch.

        Deleting a path that does not exist is a no-op.

        Returns:
            Paths that were removed
        """
        async with self._get_lock():
            closure = self._closure(path, await self.store.get_all())
            doomed = [n.path for n in closure]
            if path not in doomed:
                doomed.insert(0, path)
            await self.store.run_batch([BatchOp.delete(p) for p in doomed])

        logger.debug(f"Deleted {path} ({len(closure)} nodes)")
        return [n.path for n in closure]

    async def rename_node(self, old_path: str, new_name: str) -> str:
        """Rename a node in place, carrying its whole subtree along.

        Args:
            old_path: Current path of the node
            new_name: New last segment (no "/")

        Returns:
            The node's new path (old_path if the name did not change)

        Raises:
            InvalidPathError: If new_name is empty or contains "/"
            NotFoundError: If old_path does not exist
            DuplicatePathError: If the new path, or any remapped descendant path, is taken
        """
        validate_name(new_name)
        new_path = join(parent_of(old_path), new_name)
        if new_path == old_path:
            return old_path

        async with self._get_lock():
            nodes = await self.store.get_all()
            existing = {n.path for n in nodes}
            if old_path not in existing:
                raise NotFoundError(old_path)
            if new_path in existing:
                raise DuplicatePathError(new_path)

            closure = self._closure(old_path, nodes)
            timestamp = now_ms()
            operations = [BatchOp.delete(n.path) for n in closure]
            operations += [
                BatchOp.add(n.moved_to(replace_prefix(n.path, old_path, new_path), timestamp))
                for n in closure
            ]
            await self.store.run_batch(operations)

        logger.debug(f"Renamed {old_path} -> {new_path} ({len(closure)} nodes)")
        return new_path

    async def duplicate_node(self, path: str) -> str:
        """Copy a node and its subtree to the first free " (copy)" sibling path.

        Returns:
            Path of the new copy

        Raises:
            NotFoundError: If path does not exist
        """
        async with self._get_lock():
            nodes = await self.store.get_all()
            existing = {n.path for n in nodes}
            if path not in existing:
                raise NotFoundError(path)

            new_path = unique_sibling(path, existing)
            timestamp = now_ms()
            await self.store.run_batch(
                [
                    BatchOp.add(n.moved_to(replace_prefix(n.path, path, new_path), timestamp))
                    for n in self._closure(path, nodes)
                ]
            )

        logger.debug(f"Duplicated {path} -> {new_path}")
        return new_path

    # ========================================================================
    # Explorer conveniences
    # ========================================================================

    async def new_file(self, parent_path: str) -> Node:
        """Create an empty "Untitled.R" (or "Untitled-N.R") under parent_path."""
        return await self._create_placeholder(parent_path, "file")

    async def new_folder(self, parent_path: str) -> Node:
        """Create an empty "NewFolder" (or "NewFolder-N") under parent_path."""
        return await self._create_placeholder(parent_path, "folder")

    async def _create_placeholder(self, parent_path: str, type: NodeType) -> Node:
        if parent_path != ROOT:
            validate_path(parent_path)

        async with self._get_lock():
            nodes = await self.store.get_all()
            parent = next((n for n in nodes if n.path == parent_path), None)
            if parent is not None and not parent.is_folder:
                raise NotAFolderError(parent_path)

            taken = {n.path for n in nodes}
            if type == "file":
                path = numbered_sibling(parent_path, NEW_FILE_STEM, NEW_FILE_EXTENSION, taken)
                node = Node.file(path, "")
            else:
                path = numbered_sibling(parent_path, NEW_FOLDER_STEM, "", taken)
                node = Node.folder(path)
            await self.store.add(node)

        logger.debug(f"Created placeholder {type} {node.path}")
        return node

    async def upload_resource(self, file_name: str, content: str) -> Node:
        """Store an uploaded file under the resources folder.

        Raises:
            InvalidPathError: If file_name is not a single path segment
            DuplicatePathError: If a resource with that name already exists
        """
        validate_name(file_name)
        return await self.create_node(join(self.resources_root, file_name), "file", content)
