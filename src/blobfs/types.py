"""
Core types for blobfs.

- NodeType: closed enum of node kinds
- NodeMeta: immutable snapshot of a node's metadata record
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "node")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def blocks_for_size(size: int, block_size: int) -> int:
    """Number of blocks needed to hold ``size`` bytes (ceiling division)."""
    return -(-size // block_size)


class NodeType(str, Enum):
    """Kinds of nodes in the tree."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class NodeMeta:
    """Metadata record of a node.

    The parent link is a plain foreign-key field holding the parent's id;
    root nodes have ``parent=None``.
    """

    node_id: str
    name: str
    type: NodeType
    size: int
    block_size: int
    creation: datetime
    access: datetime
    parent: str | None = None

    @property
    def is_file(self) -> bool:
        return self.type == NodeType.FILE

    @property
    def block_count(self) -> int:
        """Upper bound on the number of persisted blocks."""
        return blocks_for_size(self.size, self.block_size)

    def to_record(self) -> dict[str, Any]:
        """Convert to the persisted record layout (id is the key, not a field)."""
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type.value,
            "block_size": self.block_size,
            "creation": self.creation.isoformat(),
            "access": self.access.isoformat(),
            "parent": self.parent,
        }

    @classmethod
    def from_record(cls, node_id: str, data: dict[str, Any]) -> NodeMeta:
        return cls(
            node_id=node_id,
            name=data["name"],
            type=NodeType(data["type"]),
            size=int(data["size"]),
            block_size=int(data["block_size"]),
            creation=datetime.fromisoformat(data["creation"]),
            access=datetime.fromisoformat(data["access"]),
            parent=data.get("parent"),
        )
