"""Tests for NodeStore backends.

The same contract runs against every backend:
- absence is None, not an error
- add is insert-if-absent; put overwrites; delete tolerates absence
- run_batch is all-or-nothing
- initialize is idempotent
JsonFileNodeStore additionally persists across instances.
"""

import json

import pytest

from rbuilder_core.config import FileSystemSettings
from rbuilder_core.filesystem.errors import DuplicatePathError, StorageFailure
from rbuilder_core.filesystem.json_store import JsonFileNodeStore
from rbuilder_core.filesystem.models import Node
from rbuilder_core.filesystem.store import BatchOp, InMemoryNodeStore, open_node_store


@pytest.fixture(params=["memory", "json"])
async def store(request, tmp_path):
    """Each backend, initialized and empty."""
    if request.param == "memory":
        backend = InMemoryNodeStore()
    else:
        backend = JsonFileNodeStore(str(tmp_path / "files.json"))
    await backend.initialize()
    yield backend
    await backend.close()


class TestReads:
    """Tests for get / get_all / count."""

    async def test_empty_store(self, store):
        assert await store.get_all() == []
        assert await store.count() == 0

    async def test_get_missing_returns_none(self, store):
        assert await store.get("/nope") is None

    async def test_get_returns_copy(self, store):
        """Mutating a returned node does not change the stored record."""
        await store.add(Node.file("/a.R", "one", last_modified=1))

        fetched = await store.get("/a.R")
        fetched.content = "changed"

        assert (await store.get("/a.R")).content == "one"


class TestSingleWrites:
    """Tests for add / put / delete."""

    async def test_add_then_get(self, store):
        node = Node.file("/Package/x.R", "body", last_modified=1)

        await store.add(node)

        assert await store.get("/Package/x.R") == node

    async def test_add_duplicate_raises(self, store):
        await store.add(Node.file("/x", "first", last_modified=1))

        with pytest.raises(DuplicatePathError) as exc_info:
            await store.add(Node.file("/x", "second", last_modified=2))

        assert exc_info.value.path == "/x"
        assert (await store.get("/x")).content == "first"

    async def test_put_overwrites(self, store):
        await store.add(Node.file("/x", "first", last_modified=1))

        await store.put(Node.file("/x", "second", last_modified=2))

        assert (await store.get("/x")).content == "second"
        assert await store.count() == 1

    async def test_put_inserts_when_absent(self, store):
        await store.put(Node.folder("/new", last_modified=1))
        assert await store.get("/new") is not None

    async def test_delete_missing_is_noop(self, store):
        await store.add(Node.folder("/keep", last_modified=1))

        await store.delete("/missing")

        assert await store.count() == 1

    async def test_delete_existing(self, store):
        await store.add(Node.folder("/gone", last_modified=1))
        await store.delete("/gone")
        assert await store.get("/gone") is None


class TestBatches:
    """Tests for run_batch atomicity."""

    async def test_batch_applies_in_order(self, store):
        """Delete then add of the same key inside one batch succeeds (rename pattern)."""
        await store.add(Node.file("/old", "body", last_modified=1))

        await store.run_batch(
            [
                BatchOp.delete("/old"),
                BatchOp.add(Node.file("/new", "body", last_modified=2)),
                BatchOp.add(Node.file("/old", "again", last_modified=3)),
            ]
        )

        assert {n.path for n in await store.get_all()} == {"/old", "/new"}
        assert (await store.get("/old")).content == "again"

    async def test_failed_batch_leaves_store_untouched(self, store):
        await store.add(Node.file("/taken", "original", last_modified=1))
        await store.add(Node.file("/victim", "v", last_modified=1))

        with pytest.raises(DuplicatePathError):
            await store.run_batch(
                [
                    BatchOp.delete("/victim"),
                    BatchOp.add(Node.file("/fresh", "", last_modified=2)),
                    BatchOp.add(Node.file("/taken", "clobber", last_modified=2)),
                ]
            )

        assert {n.path for n in await store.get_all()} == {"/taken", "/victim"}
        assert (await store.get("/taken")).content == "original"

    async def test_duplicate_adds_within_one_batch_rejected(self, store):
        with pytest.raises(DuplicatePathError):
            await store.run_batch(
                [
                    BatchOp.add(Node.folder("/twice", last_modified=1)),
                    BatchOp.add(Node.folder("/twice", last_modified=1)),
                ]
            )
        assert await store.count() == 0

    async def test_empty_batch(self, store):
        await store.run_batch([])
        assert await store.count() == 0

    async def test_clear(self, store):
        await store.run_batch([BatchOp.add(Node.folder(f"/f{i}", last_modified=1)) for i in range(3)])

        await store.clear()

        assert await store.get_all() == []


class TestInitialize:
    """Tests for idempotent initialization."""

    async def test_initialize_twice_keeps_data(self, store):
        await store.add(Node.folder("/Package", last_modified=1))

        await store.initialize()
        await store.initialize()

        assert await store.count() == 1


class TestJsonFileNodeStore:
    """Durability-specific tests for JsonFileNodeStore."""

    async def test_initialize_creates_file(self, json_store, json_store_path):
        assert not json_store_path.exists()

        await json_store.initialize()

        data = json.loads(json_store_path.read_text())
        assert data == {"version": 1, "nodes": []}

    async def test_data_survives_reopen(self, json_store, json_store_path):
        await json_store.initialize()
        await json_store.add(Node.file("/Package/x.R", "persisted", last_modified=5))
        await json_store.close()

        reopened = JsonFileNodeStore(str(json_store_path))
        await reopened.initialize()

        node = await reopened.get("/Package/x.R")
        assert node.content == "persisted"
        assert node.last_modified == 5

    async def test_file_holds_camelcase_records(self, json_store, json_store_path):
        await json_store.add(Node.folder("/Package", last_modified=3))

        data = json.loads(json_store_path.read_text())

        assert data["nodes"] == [{"path": "/Package", "type": "folder", "size": 0, "lastModified": 3}]

    async def test_failed_batch_not_written(self, json_store, json_store_path):
        await json_store.add(Node.folder("/a", last_modified=1))
        before = json_store_path.read_text()

        with pytest.raises(DuplicatePathError):
            await json_store.run_batch(
                [BatchOp.add(Node.folder("/b", last_modified=1)), BatchOp.add(Node.folder("/a", last_modified=1))]
            )

        assert json_store_path.read_text() == before

    async def test_no_temp_files_left_behind(self, json_store, json_store_path):
        await json_store.add(Node.folder("/a", last_modified=1))
        await json_store.delete("/a")

        assert [p.name for p in json_store_path.parent.iterdir()] == [json_store_path.name]

    async def test_corrupt_file_raises_storage_failure(self, json_store_path):
        json_store_path.parent.mkdir(parents=True)
        json_store_path.write_text("{not json")

        store = JsonFileNodeStore(str(json_store_path))

        with pytest.raises(StorageFailure):
            await store.initialize()

    async def test_invalid_utf8_raises_storage_failure(self, json_store_path):
        json_store_path.parent.mkdir(parents=True)
        json_store_path.write_bytes(
            b'{"version": 1, "nodes": [{"path": "/\xff", "type": "folder", "lastModified": 1}]}'
        )

        store = JsonFileNodeStore(str(json_store_path))

        with pytest.raises(StorageFailure):
            await store.initialize()

    async def test_malformed_record_raises_storage_failure(self, json_store_path):
        json_store_path.parent.mkdir(parents=True)
        json_store_path.write_text(json.dumps({"version": 1, "nodes": [{"path": "/x"}]}))

        with pytest.raises(StorageFailure):
            await JsonFileNodeStore(str(json_store_path)).get_all()


class TestOpenNodeStore:
    """Tests for open_node_store URL routing."""

    def test_memory_url(self):
        store = open_node_store(FileSystemSettings(store_url="memory://"))
        assert isinstance(store, InMemoryNodeStore)

    def test_file_url(self, tmp_path):
        target = tmp_path / "store.json"
        store = open_node_store(FileSystemSettings(store_url=f"file://{target}"))

        assert isinstance(store, JsonFileNodeStore)
        assert store.file_path == target

    def test_bare_path(self, tmp_path):
        target = tmp_path / "store.json"
        store = open_node_store(FileSystemSettings(store_url=str(target)))

        assert isinstance(store, JsonFileNodeStore)
        assert store.file_path == target

    def test_unknown_scheme_raises(self):
        with pytest.raises(ValueError, match="Unsupported node store URL scheme"):
            open_node_store(FileSystemSettings(store_url="redis://localhost:6379"))
