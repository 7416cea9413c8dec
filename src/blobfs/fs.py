"""
BlobFS: chunked blob storage on a keyed record store.

Lays out one record store as three namespaces:
- ``config:``  store-level settings (the default block size)
- ``node:``    node metadata records
- ``blob:``    per-node blocks under ``blob:<node_id>:<index>``
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from blobfs.blocks import BlockStore
from blobfs.config import Settings
from blobfs.cursor import BytesLike, Cursor
from blobfs.exceptions import ConfigurationError
from blobfs.logging import get_logger
from blobfs.nodes import NodeTree
from blobfs.store.base import RecordStore
from blobfs.store.sqlite import SQLiteRecordStore
from blobfs.types import NodeMeta, NodeType

logger = get_logger(__name__)

DEFAULT_BLOCK_SIZE = 4096
BLOCK_SIZE_KEY = "block_size"


class BlobFS:
    """Node tree plus random-access blobs over one RecordStore."""

    def __init__(self, store: RecordStore, block_size: int | None = None) -> None:
        """Initialize BlobFS.

        Args:
            store: The backing record store.
            block_size: Default block size for new nodes. Only used when the
                store has none recorded yet.
        """
        if block_size is not None and block_size <= 0:
            raise ConfigurationError(
                "block_size must be positive", context={"block_size": block_size}
            )
        self.store = store
        self._config_db = store.prefix("config:")
        self._node_db = store.prefix("node:")
        self._blob_db = store.prefix("blob:")
        self._requested_block_size = block_size
        self.tree = NodeTree(self._node_db, block_size or DEFAULT_BLOCK_SIZE)
        self._node_locks: dict[str, asyncio.Lock] = {}
        self._node_lock_users: dict[str, int] = {}
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> BlobFS:
        """Build an SQLite-backed instance from settings."""
        store = SQLiteRecordStore(settings.DB_PATH, settings.TABLE_NAME)
        return cls(store, block_size=settings.BLOCK_SIZE)

    @property
    def block_size(self) -> int:
        """Default block size for new nodes."""
        return self.tree.default_block_size

    async def init(self) -> None:
        """Initialize the store and settle the default block size.

        The first init records the default block size under
        ``config:block_size``; later inits reuse the recorded value.
        """
        if self._initialized:
            return
        await self.store.init()

        raw = await self._config_db.get_or_none(BLOCK_SIZE_KEY)
        if raw is None:
            await self._config_db.put(BLOCK_SIZE_KEY, str(self.block_size).encode())
        else:
            recorded = int(raw)
            if self._requested_block_size not in (None, recorded):
                logger.warning(
                    "Ignoring requested block size; store already uses another",
                    requested=self._requested_block_size,
                    recorded=recorded,
                )
            self.tree.default_block_size = recorded

        self._initialized = True
        logger.info("BlobFS initialized", block_size=self.block_size)

    async def close(self) -> None:
        await self.store.close()
        self._initialized = False

    async def __aenter__(self) -> BlobFS:
        await self.init()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- nodes -------------------------------------------------------------

    async def create_node(
        self,
        node_id: str,
        name: str,
        node_type: NodeType = NodeType.FILE,
        parent: str | None = None,
        block_size: int | None = None,
    ) -> NodeMeta:
        return await self.tree.create_node(
            node_id, name, node_type, block_size=block_size, parent=parent
        )

    async def get_node(self, node_id: str) -> NodeMeta:
        return await self.tree.get_node(node_id)

    # -- blobs -------------------------------------------------------------

    async def open(self, node_id: str) -> Cursor:
        """Open a cursor on a file node."""
        return await Cursor.open(self.tree, self._blob_db, node_id)

    async def block_indices(self, node_id: str) -> list[int]:
        """Persisted block indices of a node."""
        meta = await self.tree.get_node(node_id)
        return await BlockStore(self._blob_db, node_id, meta.block_size).indices()

    @asynccontextmanager
    async def node_lock(self, node_id: str) -> AsyncIterator[None]:
        """Hold the process-local lock for ``node_id``.

        Callers that may open the same node from several tasks use this to
        keep one cursor per node at a time.
        """
        lock = self._node_locks.setdefault(node_id, asyncio.Lock())
        self._node_lock_users[node_id] = self._node_lock_users.get(node_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once no task holds or waits on it
            self._node_lock_users[node_id] -= 1
            if not self._node_lock_users[node_id]:
                del self._node_lock_users[node_id]
                del self._node_locks[node_id]

    async def read_range(self, node_id: str, start: int, length: int) -> bytes:
        """Read up to ``length`` bytes from ``start``, clamped at the blob's end.

        Raises:
            InvalidPositionError: If start is past the blob's size.
        """
        async with self.node_lock(node_id):
            async with await self.open(node_id) as cursor:
                await cursor.seek(start)
                return await cursor.read_bytes(length)

    async def write_at(
        self, node_id: str, data: BytesLike, position: int | None = None
    ) -> int:
        """Write ``data`` at ``position``, or append when position is None."""
        async with self.node_lock(node_id):
            async with await self.open(node_id) as cursor:
                if position is None:
                    position = cursor.size()
                return await cursor.write(data, position=position)
