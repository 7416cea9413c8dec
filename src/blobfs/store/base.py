"""
Base classes for record stores.

A record store is a flat keyed map of opaque byte values. Callers carve it
into independent namespaces with ``prefix()``; blobfs uses ``config:``,
``node:`` and ``blob:<node_id>:``.

Backends implement the raw ``_get``/``_put``/``_delete``/``_keys`` hooks and
the transaction hooks. The public coroutines here add:
- serialization of standalone operations and whole transactions
- wrapping of backend errors into StoreFailureError
- JSON-object partial updates on top of get/put
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Mapping, TypeVar

import orjson

from blobfs.exceptions import BlobFSError, CorruptStateError, NotFoundError, StoreFailureError
from blobfs.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RecordStore(ABC):
    """Abstract keyed get/put/update store over byte values."""

    #: Backend exception types that are reported as StoreFailureError.
    failure_types: tuple[type[Exception], ...] = ()

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"blobfs_tx_{id(self)}", default=False
        )

    # -- lifecycle ---------------------------------------------------------

    async def init(self) -> None:
        """Prepare the backend. Safe to call multiple times."""

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> RecordStore:
        await self.init()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- backend hooks -----------------------------------------------------

    @abstractmethod
    async def _get(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def _put(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def _delete(self, key: str) -> bool: ...

    @abstractmethod
    async def _keys(self, prefix: str) -> list[str]: ...

    @abstractmethod
    async def _begin(self) -> None: ...

    @abstractmethod
    async def _commit(self) -> None: ...

    @abstractmethod
    async def _rollback(self) -> None: ...

    # -- plumbing ----------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        """Hold the store lock unless the current task owns a transaction."""
        if self._in_transaction.get():
            yield
            return
        async with self._lock:
            yield

    async def _guard(self, operation: str, key: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except BlobFSError:
            raise
        except self.failure_types as e:
            logger.error("Record store failure", store_op=operation, key=key, error=str(e))
            raise StoreFailureError(
                f"Record store {operation} failed",
                context={"operation": operation, "key": key, "error": str(e)},
            ) from e

    # -- public API --------------------------------------------------------

    async def get_or_none(self, key: str) -> bytes | None:
        """Get the value at ``key``, or None if absent."""
        async with self._exclusive():
            return await self._guard("get", key, self._get(key))

    async def get(self, key: str) -> bytes:
        """Get the value at ``key``.

        Raises:
            NotFoundError: If the key does not exist.
        """
        value = await self.get_or_none(key)
        if value is None:
            raise NotFoundError("Record not found", context={"key": key})
        return value

    async def put(self, key: str, value: bytes) -> None:
        """Insert or replace the value at ``key``."""
        async with self._exclusive():
            await self._guard("put", key, self._put(key, bytes(value)))

    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""
        async with self._exclusive():
            return await self._guard("delete", key, self._delete(key))

    async def keys(self, prefix: str = "") -> list[str]:
        """List keys starting with ``prefix``, sorted."""
        async with self._exclusive():
            return await self._guard("keys", prefix, self._keys(prefix))

    async def update(self, key: str, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the JSON object stored at ``key``.

        Raises:
            NotFoundError: If the key does not exist.
            CorruptStateError: If the stored value is not a JSON object.
        """
        async with self.transaction():
            raw = await self.get(key)
            try:
                record = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                logger.error("Record is not valid JSON", key=key)
                raise CorruptStateError(
                    "Record is not valid JSON", context={"key": key}
                ) from e
            if not isinstance(record, dict):
                logger.error("Record is not a JSON object", key=key)
                raise CorruptStateError("Record is not a JSON object", context={"key": key})
            record.update(patch)
            await self.put(key, orjson.dumps(record))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RecordStore]:
        """Group operations atomically.

        Nested transactions join the outermost one. Any exception rolls the
        whole group back and propagates.
        """
        if self._in_transaction.get():
            yield self
            return

        async with self._lock:
            token = self._in_transaction.set(True)
            try:
                await self._guard("begin", "", self._begin())
                try:
                    yield self
                except BaseException:
                    await self._guard("rollback", "", self._rollback())
                    raise
                await self._guard("commit", "", self._commit())
            finally:
                self._in_transaction.reset(token)

    def prefix(self, namespace: str) -> PrefixedRecordStore:
        """Return a view of this store with ``namespace`` prepended to keys."""
        return PrefixedRecordStore(self, namespace)


class PrefixedRecordStore:
    """Namespace view over a RecordStore. Views nest."""

    def __init__(self, base: RecordStore, namespace: str) -> None:
        self.base = base
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get_or_none(self, key: str) -> bytes | None:
        return await self.base.get_or_none(self._key(key))

    async def get(self, key: str) -> bytes:
        return await self.base.get(self._key(key))

    async def put(self, key: str, value: bytes) -> None:
        await self.base.put(self._key(key), value)

    async def delete(self, key: str) -> bool:
        return await self.base.delete(self._key(key))

    async def update(self, key: str, patch: Mapping[str, Any]) -> None:
        await self.base.update(self._key(key), patch)

    async def keys(self, prefix: str = "") -> list[str]:
        """List keys within this namespace, with the namespace stripped."""
        full = await self.base.keys(self._key(prefix))
        cut = len(self.namespace)
        return [k[cut:] for k in full]

    def transaction(self):
        return self.base.transaction()

    def prefix(self, namespace: str) -> PrefixedRecordStore:
        return PrefixedRecordStore(self.base, self.namespace + namespace)

    def __repr__(self) -> str:
        return f"PrefixedRecordStore({self.namespace!r})"
