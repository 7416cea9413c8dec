"""
Random-access cursor over one blob.

A Cursor maps absolute byte positions to ``(block_index, index_in_block)``
pairs and keeps at most one block resident. The resident block is flushed
(if dirty) whenever the cursor moves to a different block, so memory use is
one block regardless of blob size. Size growth is tracked in memory and
persisted to the node record on flush/close.

Blocks below ``ceil(size / block_size)`` must exist in the block store;
blocks at or past that boundary are allocated zero-filled in memory and only
persisted once flushed.

A cursor is not shared between tasks: every operation takes the cursor's
lock, so operations on one cursor run strictly one after another. Two
cursors on the same node at once are not supported; see BlobFS.node_lock.
"""

from __future__ import annotations

import asyncio
from typing import Any

from blobfs.blocks import BlockStore
from blobfs.exceptions import (
    CorruptStateError,
    CursorClosedError,
    InvalidPositionError,
    NotAFileError,
    ValidationError,
)
from blobfs.logging import get_logger, log_context
from blobfs.nodes import NodeTree
from blobfs.store.base import PrefixedRecordStore
from blobfs.types import NodeMeta, blocks_for_size

logger = get_logger(__name__)

BytesLike = bytes | bytearray | memoryview


class Cursor:
    """Stateful read/write handle on one file node."""

    def __init__(self, tree: NodeTree, blocks: BlockStore, meta: NodeMeta) -> None:
        self._tree = tree
        self._blocks = blocks
        self.node_id = meta.node_id
        self.block_size = meta.block_size

        self._size = meta.size
        self._position = 0

        self._block: bytearray | None = None
        self._cached_index: int | None = None
        self._block_dirty = False
        self._header_dirty = False

        self._closed = False
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls, tree: NodeTree, blob_db: PrefixedRecordStore, node_id: str
    ) -> Cursor:
        """Open a cursor at position 0 with no block cached.

        Raises:
            NotFoundError: If the node does not exist.
            NotAFileError: If the node is a directory.
        """
        meta = await tree.get_node(node_id)
        if not meta.is_file:
            logger.debug("Cannot open a directory node", node_id=node_id)
            raise NotAFileError("Cannot open a directory node", context={"node_id": node_id})
        await tree.touch(node_id)
        logger.debug("Opened cursor", node_id=node_id, size=meta.size)
        return cls(tree, BlockStore(blob_db, node_id, meta.block_size), meta)

    # -- state -------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def block_index(self) -> int:
        return self._position // self.block_size

    @property
    def index_in_block(self) -> int:
        return self._position % self.block_size

    def size(self) -> int:
        """Logical size, including growth not yet persisted."""
        return self._size

    def tell(self) -> int:
        return self._position

    def eof(self) -> bool:
        return self._position >= self._size

    # -- block cache -------------------------------------------------------

    async def _ensure_block(self) -> bytearray:
        """Make the block under the current position resident."""
        index = self.block_index
        if self._block is not None and self._cached_index == index:
            return self._block

        await self._drop_block()

        if index < blocks_for_size(self._size, self.block_size):
            data = await self._blocks.load(index)
            if data is None:
                context = {"node_id": self.node_id, "index": index, "size": self._size}
                logger.error("Expected block is missing", **context)
                raise CorruptStateError("Expected block is missing", context=context)
            if len(data) != self.block_size:
                context = {"node_id": self.node_id, "index": index, "length": len(data)}
                logger.error("Block has the wrong length", **context)
                raise CorruptStateError("Block has the wrong length", context=context)
            self._block = bytearray(data)
            logger.debug("Loaded block", index=index)
        else:
            self._block = bytearray(self.block_size)
            logger.debug("Allocated block", index=index)

        self._cached_index = index
        return self._block

    async def _flush_block(self) -> None:
        if self._block is None or self._cached_index is None or not self._block_dirty:
            return
        await self._blocks.save(self._cached_index, self._block)
        self._block_dirty = False
        logger.debug("Flushed block", index=self._cached_index)

    async def _drop_block(self) -> None:
        await self._flush_block()
        self._block = None
        self._cached_index = None

    async def _flush(self) -> None:
        await self._flush_block()
        if self._header_dirty:
            await self._tree.update_size(self.node_id, self._size)
            self._header_dirty = False
            logger.debug("Flushed header", size=self._size)

    # -- helpers -----------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise CursorClosedError("Cursor is closed", context={"node_id": self.node_id})

    @staticmethod
    def _check_range(buffer_len: int, offset: int, length: int | None) -> tuple[int, int]:
        if offset < 0 or offset > buffer_len:
            raise ValidationError(
                "offset outside buffer",
                context={"field": "offset", "value": offset, "buffer_length": buffer_len},
            )
        if length is None:
            length = buffer_len - offset
        if length < 0 or offset + length > buffer_len:
            raise ValidationError(
                "length outside buffer",
                context={"field": "length", "value": length, "buffer_length": buffer_len},
            )
        return offset, length

    async def _seek(self, pos: int) -> None:
        if pos < 0 or pos > self._size:
            context = {"node_id": self.node_id, "position": pos, "size": self._size}
            logger.debug("Position outside blob", **context)
            raise InvalidPositionError("Position outside blob", context=context)
        if self._block is not None and pos // self.block_size != self._cached_index:
            await self._drop_block()
        self._position = pos

    # -- public API --------------------------------------------------------

    async def seek(self, pos: int) -> None:
        """Move to ``pos``. Seeking to exactly size() is the append point.

        Raises:
            InvalidPositionError: If pos is negative or past size().
        """
        async with self._lock:
            self._check_open()
            with log_context(node_id=self.node_id, operation="seek"):
                await self._seek(pos)

    async def read(
        self,
        buffer: bytearray | memoryview,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Read up to ``length`` bytes into ``buffer[offset:]``.

        Args:
            buffer: Writable bytes-like destination.
            offset: Start index in buffer.
            length: Maximum bytes to read; defaults to the rest of buffer.
            position: Absolute blob position to read from; defaults to the
                current position.

        Returns:
            Number of bytes read. Fewer than requested at end of blob.
        """
        view = memoryview(buffer).cast("B")
        if view.readonly:
            raise ValidationError("read buffer must be writable", context={"field": "buffer"})
        offset, length = self._check_range(len(view), offset, length)

        async with self._lock:
            self._check_open()
            with log_context(node_id=self.node_id, operation="read"):
                if position is not None:
                    await self._seek(position)
                return await self._read_into(view, offset, length)

    async def _read_into(self, view: memoryview, offset: int, length: int) -> int:
        total = 0
        while total < length and self._position < self._size:
            block = await self._ensure_block()
            start = self.index_in_block
            n = min(length - total, self.block_size - start, self._size - self._position)
            view[offset + total : offset + total + n] = block[start : start + n]
            total += n
            self._position += n
        return total

    async def read_bytes(self, length: int | None = None) -> bytes:
        """Read up to ``length`` bytes (default: to end) and return them.

        The buffer is sized to what remains in the blob, so asking for more
        than that returns a short result.
        """
        if length is not None and length < 0:
            raise ValidationError(
                "length must not be negative", context={"field": "length", "value": length}
            )

        async with self._lock:
            self._check_open()
            with log_context(node_id=self.node_id, operation="read"):
                remaining = max(self._size - self._position, 0)
                length = remaining if length is None else min(length, remaining)
                buffer = bytearray(length)
                n = await self._read_into(memoryview(buffer), 0, length)
                return bytes(buffer[:n])

    async def write(
        self,
        data: BytesLike,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Write ``data[offset:offset + length]`` at the current position.

        Size grows with the write position once it passes the old end, so
        an overlapping write only adds the part beyond the previous size.

        Returns:
            Number of bytes written.
        """
        view = memoryview(data).cast("B")
        offset, length = self._check_range(len(view), offset, length)

        async with self._lock:
            self._check_open()
            with log_context(node_id=self.node_id, operation="write"):
                if position is not None:
                    await self._seek(position)

                total = 0
                while total < length:
                    block = await self._ensure_block()
                    start = self.index_in_block
                    n = min(length - total, self.block_size - start)
                    block[start : start + n] = view[offset + total : offset + total + n]
                    self._block_dirty = True
                    total += n
                    self._position += n
                    if self._position > self._size:
                        self._size = self._position
                        self._header_dirty = True
                return total

    async def flush(self) -> None:
        """Persist the dirty block and size without closing."""
        async with self._lock:
            self._check_open()
            with log_context(node_id=self.node_id, operation="flush"):
                await self._flush()

    async def close(self) -> None:
        """Flush and release the cursor. Repeated calls are no-ops.

        If a flush fails the error propagates and the cursor stays open,
        so close() can be retried.
        """
        async with self._lock:
            if self._closed:
                return
            with log_context(node_id=self.node_id, operation="close"):
                await self._flush()
                self._block = None
                self._cached_index = None
                self._closed = True
                logger.debug("Closed cursor", size=self._size)

    async def __aenter__(self) -> Cursor:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"position={self._position}"
        return f"Cursor(node_id={self.node_id!r}, size={self._size}, {state})"
