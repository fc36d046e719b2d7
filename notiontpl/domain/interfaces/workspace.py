"""Interface for the remote workspace (Notion) API.

Defines the async contract the application services use to read and write
pages, blocks and databases. Acts as both the Remote Tree Source
(listing children) and the Remote Tree Sink (appending children).
"""

import abc
from typing import Any, Dict, List, Optional

from notiontpl.domain.models.common import Block, BlockPage, NodeId


class WorkspaceGateway(abc.ABC):
    """Abstract Base Class for remote workspace interactions.

    Errors raised by implementations should expose an optional numeric
    ``status`` attribute so the retry service can tell transient failures
    from fatal ones.
    """

    @abc.abstractmethod
    async def list_children(
        self,
        block_id: NodeId,
        start_cursor: Optional[str] = None,
        page_size: int = 100,
    ) -> BlockPage:
        """Lists one page of the direct children of a block or page.

        Args:
            block_id: The parent block or page id.
            start_cursor: Cursor returned by the previous page, if any.
            page_size: Maximum number of children in this page.

        Returns:
            A BlockPage with ``results``, ``has_more`` and ``next_cursor``.
        """
        pass

    @abc.abstractmethod
    async def append_children(self, parent_id: NodeId, children: List[Block]) -> List[Block]:
        """Appends blocks under a parent, in order.

        Args:
            parent_id: The block or page receiving the children.
            children: Sanitized blocks (at most 50 per call).

        Returns:
            The created blocks, in the same order as ``children``.
        """
        pass

    @abc.abstractmethod
    async def retrieve_page(self, page_id: NodeId) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def create_page(
        self,
        parent: Dict[str, Any],
        properties: Dict[str, Any],
        icon: Optional[Dict[str, Any]] = None,
        cover: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def update_page(self, page_id: NodeId, properties: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def retrieve_database(self, database_id: NodeId) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def create_database(
        self,
        parent: Dict[str, Any],
        title: List[Dict[str, Any]],
        properties: Dict[str, Any],
        icon: Optional[Dict[str, Any]] = None,
        cover: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def update_database(self, database_id: NodeId, properties: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abc.abstractmethod
    async def query_database(
        self, database_id: NodeId, start_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        """Queries one page of rows from a database.

        Returns:
            A dict with ``results``, ``has_more`` and ``next_cursor``.
        """
        pass
