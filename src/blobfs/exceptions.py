"""
Custom exception hierarchy for blobfs.

All exceptions inherit from BlobFSError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class BlobFSError(Exception):
    """Base exception for all blobfs errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(BlobFSError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(BlobFSError):
    """Raised when an argument fails validation.

    Context should include:
        - field: The field that failed validation
        - value: The invalid value
    """

    pass


class NotFoundError(BlobFSError):
    """Raised when a node id or store key does not exist.

    Context should include:
        - node_id or key: What was looked up
    """

    pass


class ParentNotFoundError(BlobFSError):
    """Raised when a node is created under a parent that does not exist."""

    pass


class InvalidParentError(BlobFSError):
    """Raised when a node is created under a parent that is not a directory."""

    pass


class NodeExistsError(BlobFSError):
    """Raised when a node id is already taken."""

    pass


class NotAFileError(BlobFSError):
    """Raised when a cursor is opened on a directory node."""

    pass


class InvalidPositionError(BlobFSError):
    """Raised when a seek or positioned read/write targets past the end.

    Context should include:
        - position: The requested position
        - size: The current logical size
    """

    pass


class CorruptStateError(BlobFSError):
    """Raised when an expected block is missing or malformed.

    This indicates an invariant violation, e.g. a prior write that was
    never flushed, not a caller error.
    """

    pass


class StoreFailureError(BlobFSError):
    """Raised when the underlying record store fails.

    Context should include:
        - operation: The store operation (get, put, update, ...)
        - key: The key involved
        - error: The original error message
    """

    pass


class CursorClosedError(BlobFSError):
    """Raised when I/O is attempted on a closed cursor."""

    pass
