"""Block store access: the fixed-size blocks of one node."""

from __future__ import annotations

from blobfs.exceptions import ValidationError
from blobfs.store.base import PrefixedRecordStore


class BlockStore:
    """Per-node view over ``blob:<node_id>:``, addressed by block index."""

    def __init__(self, blob_db: PrefixedRecordStore, node_id: str, block_size: int) -> None:
        self._db = blob_db.prefix(f"{node_id}:")
        self.node_id = node_id
        self.block_size = block_size

    async def load(self, index: int) -> bytes | None:
        """Fetch block ``index``, or None if it was never persisted."""
        return await self._db.get_or_none(str(index))

    async def save(self, index: int, data: bytes | bytearray) -> None:
        """Persist block ``index``. Data must be exactly one block long."""
        if len(data) != self.block_size:
            raise ValidationError(
                "Block data must be exactly block_size bytes",
                context={"node_id": self.node_id, "index": index, "length": len(data)},
            )
        await self._db.put(str(index), bytes(data))

    async def indices(self) -> list[int]:
        """Indices of all persisted blocks, in numeric order."""
        keys = await self._db.keys()
        # Ids containing ":" can make another node's keys share this prefix
        return sorted(int(k) for k in keys if k.isdigit())
