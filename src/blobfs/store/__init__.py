"""
Record store package.

This package provides the keyed-record layer blobfs is built on:
- base.py: RecordStore contract and PrefixedRecordStore namespace views
- memory.py: dict-backed store for tests and embedding
- sqlite.py: aiosqlite-backed persistent store
"""

from blobfs.store.base import PrefixedRecordStore, RecordStore
from blobfs.store.memory import InMemoryRecordStore
from blobfs.store.sqlite import SQLiteRecordStore

__all__ = [
    "InMemoryRecordStore",
    "PrefixedRecordStore",
    "RecordStore",
    "SQLiteRecordStore",
]
