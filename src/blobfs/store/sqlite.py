"""
SQLite-backed record store using aiosqlite.

All namespaces share one table of ``(key TEXT PRIMARY KEY, data BLOB)``
rows. The connection runs in autocommit mode; ``transaction()`` issues an
explicit ``BEGIN IMMEDIATE`` / ``COMMIT`` pair.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import aiosqlite

from blobfs.exceptions import StoreFailureError
from blobfs.logging import get_logger
from blobfs.store.base import RecordStore
from blobfs.types import utc_now

logger = get_logger(__name__)

MEMORY_DB = ":memory:"


class SQLiteRecordStore(RecordStore):
    """Record store persisted in a single SQLite table."""

    failure_types = (sqlite3.Error, ValueError)

    def __init__(self, db_path: Path | str, table_name: str = "records") -> None:
        """Initialize SQLiteRecordStore.

        Args:
            db_path: Path to the database file, or ":memory:".
            table_name: Table holding all records. Must be a plain identifier.
        """
        super().__init__()
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        self.table_name = table_name
        self._db: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open the connection and create the schema if needed."""
        if self._db is not None:
            return

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self.db_path), isolation_level=None)
            await self._db.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key TEXT PRIMARY KEY,
                    data BLOB NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
        except sqlite3.Error as e:
            raise StoreFailureError(
                "Could not open record store",
                context={"db_path": str(self.db_path), "error": str(e)},
            ) from e

        logger.info("Record store initialized", db_path=str(self.db_path), table=self.table_name)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreFailureError("SQLiteRecordStore not initialized. Call init() first.")
        return self._db

    async def _get(self, key: str) -> bytes | None:
        async with self.db.execute(
            f"SELECT data FROM {self.table_name} WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return bytes(row[0]) if row else None

    async def _put(self, key: str, value: bytes) -> None:
        await self.db.execute(
            f"INSERT OR REPLACE INTO {self.table_name} (key, data, updated_at) VALUES (?, ?, ?)",
            (key, value, utc_now().isoformat()),
        )

    async def _delete(self, key: str) -> bool:
        async with self.db.execute(
            f"DELETE FROM {self.table_name} WHERE key = ?", (key,)
        ) as cursor:
            return cursor.rowcount > 0

    async def _keys(self, prefix: str) -> list[str]:
        async with self.db.execute(
            f"SELECT key FROM {self.table_name} "
            "WHERE substr(key, 1, length(?)) = ? ORDER BY key",
            (prefix, prefix),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def _begin(self) -> None:
        await self.db.execute("BEGIN IMMEDIATE")

    async def _commit(self) -> None:
        await self.db.execute("COMMIT")

    async def _rollback(self) -> None:
        await self.db.execute("ROLLBACK")
