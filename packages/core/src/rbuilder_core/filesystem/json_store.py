"""Durable node store backed by a single JSON snapshot file.

File layout:
    {"version": 1, "nodes": [{"path": "/Package", "type": "folder", "lastModified": ...}, ...]}

Every write stages a complete new snapshot, writes it to a temp file next to
the target and os.replace()s it into place, so a crash leaves either the old or
the new snapshot on disk - never a half-written batch. The in-memory view is
swapped only after the replace succeeds.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from rbuilder_core.filesystem.errors import StorageFailure
from rbuilder_core.filesystem.models import Node
from rbuilder_core.filesystem.store import BatchOp, NodeStore, apply_operations

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class JsonFileNodeStore(NodeStore):
    """Node store persisted to a JSON file on local disk."""

    def __init__(self, file_path: str):
        """Initialize JsonFileNodeStore.

        Args:
            file_path: Snapshot file location (created on first initialize())
        """
        self.file_path = Path(file_path).expanduser()
        self._records: Optional[dict[str, Node]] = None
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    # ========================================================================
    # Disk I/O (runs in a worker thread)
    # ========================================================================

    def _read_snapshot(self) -> dict[str, Node]:
        try:
            data = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageFailure(f"Failed to read node store {self.file_path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
            raise StorageFailure(f"Node store {self.file_path} is not a valid snapshot")

        records: dict[str, Node] = {}
        try:
            for raw in data["nodes"]:
                node = Node.from_dict(raw)
                records[node.path] = node
        except (KeyError, TypeError, ValidationError) as e:
            raise StorageFailure(f"Node store {self.file_path} holds a malformed record: {e}") from e
        return records

    def _write_snapshot(self, records: dict[str, Node]) -> None:
        payload: dict[str, Any] = {
            "version": SNAPSHOT_VERSION,
            "nodes": [records[path].to_dict() for path in sorted(records)],
        }
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.", suffix=".tmp", dir=self.file_path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.file_path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageFailure(f"Failed to write node store {self.file_path}: {e}") from e

    async def _commit(self, records: dict[str, Node]) -> None:
        await asyncio.to_thread(self._write_snapshot, records)
        self._records = records

    async def _ensure_loaded(self) -> dict[str, Node]:
        """Load (or create) the snapshot on first use. Caller holds the lock."""
        if self._records is not None:
            return self._records

        if self.file_path.exists():
            self._records = await asyncio.to_thread(self._read_snapshot)
            logger.debug(f"Loaded {len(self._records)} nodes from {self.file_path}")
        else:
            logger.info(f"Creating node store at {self.file_path}")
            await self._commit({})
        return self._records

    # ========================================================================
    # NodeStore interface
    # ========================================================================

    async def initialize(self) -> None:
        async with self._get_lock():
            await self._ensure_loaded()

    async def get_all(self) -> list[Node]:
        async with self._get_lock():
            records = await self._ensure_loaded()
            return [node.model_copy() for node in records.values()]

    async def get(self, path: str) -> Optional[Node]:
        async with self._get_lock():
            node = (await self._ensure_loaded()).get(path)
            return node.model_copy() if node is not None else None

    async def run_batch(self, operations: list[BatchOp]) -> None:
        async with self._get_lock():
            staged = dict(await self._ensure_loaded())
            apply_operations(staged, operations)
            await self._commit(staged)

    async def count(self) -> int:
        async with self._get_lock():
            return len(await self._ensure_loaded())

    async def clear(self) -> None:
        async with self._get_lock():
            await self._commit({})

    async def close(self) -> None:
        self._records = None
