"""Concrete implementation of the WorkspaceGateway interface using the Notion API.

Hides the specifics of the notion-client library. Errors from the SDK
(``APIResponseError``, ``HTTPResponseError``) carry a ``status`` attribute and
are propagated unchanged so the retry service can classify them.
"""

import logging
from typing import Any, Dict, List, Optional

from notion_client import AsyncClient

from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import Block, BlockPage, NodeId

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = (
    "Missing Notion token. Please create an internal integration at "
    "https://www.notion.so/my-integrations and set NOTION_TOKEN in a .env file."
)

# Read-only fields the API reports on blocks but rejects on create.
READ_ONLY_BLOCK_FIELDS = ("has_children",)


def _without_none(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def to_append_payload(block: Block) -> Block:
    return {k: v for k, v in block.items() if k not in READ_ONLY_BLOCK_FIELDS}


class NotionWorkspace(WorkspaceGateway):
    """Notion implementation of the WorkspaceGateway interface."""

    def __init__(self, token: Optional[str] = None, client: Optional[AsyncClient] = None):
        """Initializes the Notion client.

        Args:
            token: Notion integration token.
            client: Pre-built AsyncClient (takes precedence over ``token``).
        """
        if client is None:
            if not token:
                raise ValueError(MISSING_TOKEN_MESSAGE)
            client = AsyncClient(auth=token)
        self.client = client
        logger.info("NotionWorkspace initialized.")

    async def list_children(
        self,
        block_id: NodeId,
        start_cursor: Optional[str] = None,
        page_size: int = 100,
    ) -> BlockPage:
        response = await self.client.blocks.children.list(
            block_id=block_id, **_without_none(start_cursor=start_cursor, page_size=page_size)
        )
        return BlockPage(
            results=response.get("results", []),
            has_more=bool(response.get("has_more")),
            next_cursor=response.get("next_cursor"),
        )

    async def append_children(self, parent_id: NodeId, children: List[Block]) -> List[Block]:
        logger.debug(f"Appending {len(children)} blocks to {parent_id}")
        response = await self.client.blocks.children.append(
            block_id=parent_id, children=[to_append_payload(b) for b in children]
        )
        return response.get("results", [])

    async def retrieve_page(self, page_id: NodeId) -> Dict[str, Any]:
        return await self.client.pages.retrieve(page_id=page_id)

    async def create_page(
        self,
        parent: Dict[str, Any],
        properties: Dict[str, Any],
        icon: Optional[Dict[str, Any]] = None,
        cover: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.client.pages.create(
            parent=parent, properties=properties, **_without_none(icon=icon, cover=cover)
        )

    async def update_page(self, page_id: NodeId, properties: Dict[str, Any]) -> Dict[str, Any]:
        return await self.client.pages.update(page_id=page_id, properties=properties)

    async def retrieve_database(self, database_id: NodeId) -> Dict[str, Any]:
        return await self.client.databases.retrieve(database_id=database_id)

    async def create_database(
        self,
        parent: Dict[str, Any],
        title: List[Dict[str, Any]],
        properties: Dict[str, Any],
        icon: Optional[Dict[str, Any]] = None,
        cover: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.client.databases.create(
            parent=parent, title=title, properties=properties, **_without_none(icon=icon, cover=cover)
        )

    async def update_database(self, database_id: NodeId, properties: Dict[str, Any]) -> Dict[str, Any]:
        return await self.client.databases.update(database_id=database_id, properties=properties)

    async def query_database(
        self, database_id: NodeId, start_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self.client.databases.query(
            database_id=database_id, **_without_none(start_cursor=start_cursor)
        )

    async def aclose(self) -> None:
        await self.client.aclose()
