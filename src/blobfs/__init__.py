"""
blobfs: chunked blob storage with random-access cursors over a keyed record store.
"""

from blobfs.cursor import Cursor
from blobfs.exceptions import (
    BlobFSError,
    CorruptStateError,
    CursorClosedError,
    InvalidPositionError,
    NotFoundError,
    ParentNotFoundError,
    StoreFailureError,
)
from blobfs.fs import BlobFS
from blobfs.types import NodeMeta, NodeType

__version__ = "0.1.0"

__all__ = [
    "BlobFS",
    "BlobFSError",
    "CorruptStateError",
    "Cursor",
    "CursorClosedError",
    "InvalidPositionError",
    "NodeMeta",
    "NodeType",
    "NotFoundError",
    "ParentNotFoundError",
    "StoreFailureError",
    "__version__",
]
