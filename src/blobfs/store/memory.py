"""In-memory record store, used for tests and embedding."""

from __future__ import annotations

from blobfs.store.base import RecordStore


class InMemoryRecordStore(RecordStore):
    """Dict-backed record store.

    Transactions snapshot the dict on begin and restore it on rollback.
    ``writes`` counts successful puts, which tests use to detect redundant
    flushes.
    """

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, bytes] = {}
        self._snapshot: dict[str, bytes] | None = None
        self.writes = 0

    async def _get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def _put(self, key: str, value: bytes) -> None:
        self._data[key] = value
        self.writes += 1

    async def _delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def _keys(self, prefix: str) -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    async def _begin(self) -> None:
        self._snapshot = dict(self._data)

    async def _commit(self) -> None:
        self._snapshot = None

    async def _rollback(self) -> None:
        if self._snapshot is not None:
            self._data = self._snapshot
            self._snapshot = None

    def __len__(self) -> int:
        return len(self._data)
