"""
Pytest configuration and fixtures for blobfs tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import pytest

from blobfs.config import Settings, clear_settings_cache
from blobfs.fs import BlobFS
from blobfs.store.base import RecordStore
from blobfs.store.memory import InMemoryRecordStore
from blobfs.store.sqlite import SQLiteRecordStore
from blobfs.types import NodeType


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "BLOBFS_DB_PATH": str(temp_dir / "data" / "blobfs.db"),
        "BLOBFS_TABLE_NAME": "records",
        "BLOBFS_BLOCK_SIZE": "4",
        "BLOBFS_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from blobfs.config import get_settings

    clear_settings_cache()
    yield get_settings()
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture(params=["memory", "sqlite"])
async def record_store(
    request: pytest.FixtureRequest, temp_dir: Path
) -> AsyncGenerator[RecordStore, None]:
    """Each record store backend, initialized."""
    if request.param == "memory":
        store: RecordStore = InMemoryRecordStore()
    else:
        store = SQLiteRecordStore(temp_dir / "records.db")
    await store.init()
    yield store
    await store.close()


@pytest.fixture
async def fs(record_store: RecordStore) -> AsyncGenerator[BlobFS, None]:
    """BlobFS with block size 4 on each backend."""
    blobfs = BlobFS(record_store, block_size=4)
    await blobfs.init()
    yield blobfs


@pytest.fixture
async def memory_fs(memory_store: InMemoryRecordStore) -> AsyncGenerator[BlobFS, None]:
    """BlobFS with block size 4 on the in-memory store."""
    blobfs = BlobFS(memory_store, block_size=4)
    await blobfs.init()
    yield blobfs


@pytest.fixture
async def file_node(fs: BlobFS) -> str:
    """Id of an empty file node named f1."""
    await fs.create_node("f1", "f1", NodeType.FILE)
    return "f1"
