"""Node store layer - flat path-keyed persistence without hierarchy awareness.

This layer knows nothing about folders or subtrees. It stores Node records
keyed by their full path and offers:
- get / get_all reads (absence is None, never an error)
- add (insert-if-absent, DuplicatePathError otherwise), put (upsert), delete (no-op if absent)
- run_batch: a list of add/put/delete operations applied all-or-nothing

The file system core builds cascading delete/rename/duplicate on top of
run_batch; a half-applied batch would corrupt the tree, so every backend must
stage a batch completely before making any of it visible.

Backends:
- InMemoryNodeStore (this module): ephemeral, used by tests and throwaway sessions
- JsonFileNodeStore (json_store.py): durable single-file snapshot
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional
from urllib.parse import urlparse

from rbuilder_core.filesystem.errors import DuplicatePathError
from rbuilder_core.filesystem.models import Node

if TYPE_CHECKING:
    from rbuilder_core.config import FileSystemSettings

logger = logging.getLogger(__name__)

BatchKind = Literal["add", "put", "delete"]


@dataclass(frozen=True)
class BatchOp:
    """One write inside a batch."""

    kind: BatchKind
    path: str
    node: Optional[Node] = None  # None for deletes

    @classmethod
    def add(cls, node: Node) -> "BatchOp":
        return cls(kind="add", path=node.path, node=node)

    @classmethod
    def put(cls, node: Node) -> "BatchOp":
        return cls(kind="put", path=node.path, node=node)

    @classmethod
    def delete(cls, path: str) -> "BatchOp":
        return cls(kind="delete", path=path)


def apply_operations(records: dict[str, Node], operations: Iterable[BatchOp]) -> None:
    """Apply operations in order to a staged record map.

    Callers pass a copy of their live state and only swap it in if this
    returns without raising.

    Raises:
        DuplicatePathError: If an add targets a path present at that point in the batch
    """
    for op in operations:
        if op.kind == "delete":
            records.pop(op.path, None)
        elif op.kind == "add":
            if op.path in records:
                raise DuplicatePathError(op.path)
            records[op.path] = op.node.model_copy()
        elif op.kind == "put":
            records[op.path] = op.node.model_copy()
        else:
            raise ValueError(f"Unknown batch operation: {op.kind}")


class NodeStore(ABC):
    """Abstract node store interface.

    Implementations must:
    - Make initialize() idempotent (first call creates backing structure)
    - Return None from get() for absent paths
    - Apply run_batch() atomically
    - Raise StorageFailure for backend I/O errors
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create the backing structure if needed. Safe to call repeatedly."""
        pass

    @abstractmethod
    async def get_all(self) -> list[Node]:
        """All stored nodes, in no particular order."""
        pass

    @abstractmethod
    async def get(self, path: str) -> Optional[Node]:
        """The node at path, or None."""
        pass

    @abstractmethod
    async def run_batch(self, operations: list[BatchOp]) -> None:
        """Apply add/put/delete operations as one all-or-nothing unit."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every node."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def add(self, node: Node) -> None:
        """Insert node; DuplicatePathError if its path is taken."""
        await self.run_batch([BatchOp.add(node)])

    async def put(self, node: Node) -> None:
        """Insert or overwrite node by path."""
        await self.run_batch([BatchOp.put(node)])

    async def delete(self, path: str) -> None:
        """Remove the node at path; no-op if absent."""
        await self.run_batch([BatchOp.delete(path)])

    async def count(self) -> int:
        return len(await self.get_all())


class InMemoryNodeStore(NodeStore):
    """In-memory node store.

    Data is lost on restart. Records are copied on the way in and out so
    callers can't mutate stored state behind the store's back.
    """

    def __init__(self, nodes: Optional[Iterable[Node]] = None):
        self._records: dict[str, Node] = {}
        self._lock: Optional[asyncio.Lock] = None
        for node in nodes or []:
            self._records[node.path] = node.model_copy()

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the lock for the current event loop."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def initialize(self) -> None:
        pass

    async def get_all(self) -> list[Node]:
        async with self._get_lock():
            return [node.model_copy() for node in self._records.values()]

    async def get(self, path: str) -> Optional[Node]:
        async with self._get_lock():
            node = self._records.get(path)
            return node.model_copy() if node is not None else None

    async def run_batch(self, operations: list[BatchOp]) -> None:
        async with self._get_lock():
            staged = dict(self._records)
            apply_operations(staged, operations)
            self._records = staged

    async def count(self) -> int:
        async with self._get_lock():
            return len(self._records)

    async def clear(self) -> None:
        async with self._get_lock():
            self._records = {}

    async def close(self) -> None:
        self._records.clear()


def open_node_store(settings: "FileSystemSettings") -> NodeStore:
    """Build the node store named by settings.store_url.

    Supported:
        memory://                    -> InMemoryNodeStore
        file:///abs/path/store.json  -> JsonFileNodeStore
        /abs/path/store.json         -> JsonFileNodeStore (bare path)

    Raises:
        ValueError: For an unsupported URL scheme
    """
    url = settings.store_url
    parsed = urlparse(url)

    if parsed.scheme == "memory":
        logger.info("Using in-memory node store (contents are not persisted)")
        return InMemoryNodeStore()

    if parsed.scheme in ("file", ""):
        from rbuilder_core.filesystem.json_store import JsonFileNodeStore

        file_path = parsed.path if parsed.scheme == "file" else url
        if not file_path:
            raise ValueError(f"Store URL has no file path: {url}")
        logger.info(f"Using JSON file node store at {file_path}")
        return JsonFileNodeStore(file_path)

    raise ValueError(f"Unsupported node store URL scheme '{parsed.scheme}' in {url}")
