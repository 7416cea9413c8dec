"""
Node metadata and tree building.

Each node is one orjson-encoded record in the ``node:`` namespace, keyed by
node id. The parent link is an explicit ``parent`` field on the child's
record; there is no separate children index.
"""

from __future__ import annotations

import orjson

from blobfs.exceptions import (
    CorruptStateError,
    InvalidParentError,
    NodeExistsError,
    NotFoundError,
    ParentNotFoundError,
    ValidationError,
)
from blobfs.logging import get_logger, log_context
from blobfs.store.base import PrefixedRecordStore
from blobfs.types import NodeMeta, NodeType, utc_now

logger = get_logger(__name__)


class NodeTree:
    """Creates and reads node metadata records."""

    def __init__(self, node_db: PrefixedRecordStore, default_block_size: int = 4096) -> None:
        """Initialize NodeTree.

        Args:
            node_db: Namespace holding node records.
            default_block_size: Block size for nodes created without one.
        """
        self._db = node_db
        self.default_block_size = default_block_size

    async def create_node(
        self,
        node_id: str,
        name: str,
        node_type: NodeType,
        block_size: int | None = None,
        parent: str | None = None,
    ) -> NodeMeta:
        """Create a node with size 0 and current timestamps.

        The parent lookup and the insert run in one store transaction.

        Args:
            node_id: Opaque id of the new node.
            name: Human-readable name.
            node_type: FILE or DIRECTORY.
            block_size: Block size in bytes; defaults to default_block_size.
            parent: Optional id of an existing directory node.

        Returns:
            The created node's metadata.

        Raises:
            ValidationError: If name is empty or block_size is not positive.
            NodeExistsError: If node_id is already taken.
            ParentNotFoundError: If parent does not exist.
            InvalidParentError: If parent is not a directory.
        """
        if block_size is None:
            block_size = self.default_block_size
        if not isinstance(block_size, int) or block_size <= 0:
            raise ValidationError(
                "block_size must be a positive integer",
                context={"field": "block_size", "value": block_size},
            )
        if not name:
            raise ValidationError("name must not be empty", context={"field": "name"})
        node_type = NodeType(node_type)

        with log_context(node_id=node_id, operation="create_node"):
            async with self._db.transaction():
                if await self._db.get_or_none(node_id) is not None:
                    logger.warning("Node already exists")
                    raise NodeExistsError("Node already exists", context={"node_id": node_id})

                if parent is not None:
                    parent_raw = await self._db.get_or_none(parent)
                    if parent_raw is None:
                        logger.warning("Parent node does not exist", parent=parent)
                        raise ParentNotFoundError(
                            "Parent node does not exist",
                            context={"node_id": node_id, "parent": parent},
                        )
                    parent_meta = self._decode(parent, parent_raw)
                    if parent_meta.type != NodeType.DIRECTORY:
                        logger.warning("Parent node is not a directory", parent=parent)
                        raise InvalidParentError(
                            "Parent node is not a directory",
                            context={"node_id": node_id, "parent": parent},
                        )

                now = utc_now()
                meta = NodeMeta(
                    node_id=node_id,
                    name=name,
                    type=node_type,
                    size=0,
                    block_size=block_size,
                    creation=now,
                    access=now,
                    parent=parent,
                )
                await self._db.put(node_id, orjson.dumps(meta.to_record()))

            logger.info(
                "Created node",
                name=name,
                type=node_type.value,
                block_size=block_size,
                parent=parent,
            )
        return meta

    async def get_node(self, node_id: str) -> NodeMeta:
        """Get a node's metadata.

        Raises:
            NotFoundError: If the node does not exist.
        """
        raw = await self._db.get_or_none(node_id)
        if raw is None:
            logger.debug("Node not found", node_id=node_id)
            raise NotFoundError("Node not found", context={"node_id": node_id})
        return self._decode(node_id, raw)

    async def exists(self, node_id: str) -> bool:
        return await self._db.get_or_none(node_id) is not None

    async def update_size(self, node_id: str, new_size: int) -> None:
        """Persist a node's size. Used by cursor flush."""
        if new_size < 0:
            raise ValidationError(
                "size must not be negative", context={"field": "size", "value": new_size}
            )
        try:
            await self._db.update(node_id, {"size": new_size})
        except NotFoundError as e:
            logger.warning("Node vanished before its size was saved", node_id=node_id)
            raise NotFoundError("Node not found", context={"node_id": node_id}) from e

    async def touch(self, node_id: str) -> None:
        """Set a node's access time to now."""
        try:
            await self._db.update(node_id, {"access": utc_now().isoformat()})
        except NotFoundError as e:
            logger.debug("Node not found", node_id=node_id)
            raise NotFoundError("Node not found", context={"node_id": node_id}) from e

    @staticmethod
    def _decode(node_id: str, raw: bytes) -> NodeMeta:
        try:
            return NodeMeta.from_record(node_id, orjson.loads(raw))
        except (orjson.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            context = {"node_id": node_id, "error": str(e)}
            logger.error("Malformed node record", **context)
            raise CorruptStateError("Malformed node record", context=context) from e
