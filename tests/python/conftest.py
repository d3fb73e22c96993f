"""Shared pytest fixtures for rbuilder tests.

This module provides reusable fixtures for testing without heavy mocking:
- memory_store: empty InMemoryNodeStore
- json_store: JsonFileNodeStore in a temp directory
- fs: initialized (seeded) FileSystem over an in-memory store
- package_tools: PackageFileTools gateway over fs
"""

import pydantic_ai.models
import pytest

from rbuilder_core.filesystem import (
    FileSystem,
    InMemoryNodeStore,
    JsonFileNodeStore,
    PackageFileTools,
)

# Global safety: Prevent accidental LLM API calls in tests
# Tests must explicitly use TestModel or FunctionModel for deterministic behavior
pydantic_ai.models.ALLOW_MODEL_REQUESTS = False


@pytest.fixture
def memory_store():
    """Empty in-memory node store."""
    return InMemoryNodeStore()


@pytest.fixture
def json_store_path(tmp_path):
    """Location for a JSON node store snapshot (file not created yet)."""
    return tmp_path / "state" / "files.json"


@pytest.fixture
def json_store(json_store_path):
    """JsonFileNodeStore writing into a temp directory."""
    return JsonFileNodeStore(str(json_store_path))


@pytest.fixture
async def fs(memory_store):
    """Seeded FileSystem: /Package, /Resources, /README.md.

    Example:
        async def test_something(fs):
            await fs.create_node("/Package/R", "folder")
            assert await fs.get_node("/Package/R") is not None
    """
    file_system = FileSystem(memory_store)
    await file_system.initialize()
    return file_system


@pytest.fixture
async def package_tools(fs):
    """Agent gateway restricted to /Package, reading /Resources."""
    return PackageFileTools(fs)

