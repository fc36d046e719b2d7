"""Core service that copies a block tree from one parent to another.

Children are fetched page by page, sanitized, and appended at the destination
in ordered batches. Every child that has children of its own is replicated
as a task on the shared ConcurrencyLimiter, and every remote call goes
through the ApiRetryService.
"""

import asyncio
import copy
import logging
from functools import partial
from typing import List, Optional, Sequence, Tuple

from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import Block, NodeId
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50
DEFAULT_PAGE_SIZE = 100

# (source child, created destination child) for children that need recursion
NodePair = Tuple[Block, Block]


def sanitize_block(block: Block) -> Block:
    """Strips server-managed fields from a fetched block.

    Keeps the type tag, a deep copy of the type-specific payload and the
    has_children marker. Unknown types pass through the same way; a block
    without a type is kept as-is minus its id so the caller still sees it.
    """
    block_type = block.get("type")
    if not block_type:
        logger.warning(f"Block {block.get('id', '?')} has no type; passing it through unchanged.")
        return {k: copy.deepcopy(v) for k, v in block.items() if k not in ("id", "object")}

    base: Block = {"type": block_type}
    if block.get(block_type) is not None:
        base[block_type] = copy.deepcopy(block[block_type])
    if block.get("has_children"):
        base["has_children"] = True
    return base


def sanitize_blocks(blocks: Sequence[Block]) -> List[Block]:
    return [sanitize_block(b) for b in blocks]


class TreeReplicator:
    """Replicates page/block hierarchies with bounded fan-out."""

    def __init__(
        self,
        workspace: WorkspaceGateway,
        api_retry_service: ApiRetryService,
        limiter: ConcurrencyLimiter,
        batch_size: int = MAX_BATCH_SIZE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        self.workspace = workspace
        self.api_retry_service = api_retry_service
        self.limiter = limiter
        self.batch_size = batch_size
        self.page_size = page_size

    async def fetch_all_children(self, block_id: NodeId) -> List[Block]:
        """Returns every direct child of ``block_id``, following pagination."""
        results: List[Block] = []
        cursor: Optional[str] = None
        while True:
            page = await self.api_retry_service.execute(
                partial(self.workspace.list_children, block_id, start_cursor=cursor, page_size=self.page_size),
                endpoint_name="blocks.children.list",
            )
            results.extend(page.get("results") or [])
            cursor = page.get("next_cursor") if page.get("has_more") else None
            if not cursor:
                break
        logger.debug(f"Fetched {len(results)} children of {block_id}")
        return results

    async def append_in_batches(self, parent_id: NodeId, children: Sequence[Block]) -> List[Block]:
        """Appends children in sequential batches so destination order matches source order."""
        created: List[Block] = []
        for start in range(0, len(children), self.batch_size):
            chunk = list(children[start:start + self.batch_size])
            results = await self.api_retry_service.execute(
                partial(self.workspace.append_children, parent_id, chunk),
                endpoint_name="blocks.children.append",
            )
            created.extend(results)
        return created

    async def replicate(self, source_id: NodeId, destination_parent_id: NodeId) -> None:
        """Copies the whole subtree under ``source_id`` into ``destination_parent_id``.

        Completes only once every descendant has been copied. The first
        unrecoverable error is raised; siblings already in flight keep
        running and nothing already written is rolled back.
        """
        logger.info(f"Replicating children of {source_id} into {destination_parent_id}")
        pairs = await self._copy_children(source_id, destination_parent_id)
        await self._replicate_descendants(pairs)

    async def _copy_children(self, source_id: NodeId, destination_parent_id: NodeId) -> List[NodePair]:
        """Copies one level and returns the pairs whose source has children."""
        blocks = await self.fetch_all_children(source_id)
        if not blocks:
            return []
        created = await self.append_in_batches(destination_parent_id, sanitize_blocks(blocks))
        if len(created) != len(blocks):
            logger.warning(
                f"Created {len(created)} blocks under {destination_parent_id} for {len(blocks)} source blocks"
            )
        return [(src, dst) for src, dst in zip(blocks, created) if src.get("has_children")]

    async def _replicate_subtree(self, source: Block, destination: Block) -> None:
        # The limiter slot covers this node's own list/append only, so
        # nested levels never wait on slots held by their ancestors.
        pairs = await self.limiter.submit(partial(self._copy_children, source["id"], destination["id"]))
        await self._replicate_descendants(pairs)

    async def _replicate_descendants(self, pairs: List[NodePair]) -> None:
        if pairs:
            await asyncio.gather(*(self._replicate_subtree(src, dst) for src, dst in pairs))
