"""
Core service for cloning an existing master page or database into a
target location. Page clones copy the whole block tree with the
TreeReplicator; database clones copy the property schema only.
"""

import logging
from typing import Any, Dict

from notiontpl.core.services.template_service import TemplateService
from notiontpl.core.services.tree_replicator import TreeReplicator
from notiontpl.domain.errors import TemplateError
from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import CloneMode, NodeId
from notiontpl.infrastructure.notion.property_schema import (
    get_page_title_text,
    get_title_property_name,
    get_title_text,
    text_value,
    title_property,
    transform_properties_to_create,
)
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

DATABASE_TARGET_MUST_BE_PAGE = (
    "When cloning a database, targetId must be a page_id "
    "(a page where the new database will be created)."
)


class CloneService:
    """Orchestrates the from-master cloning functionality."""

    def __init__(
        self,
        workspace: WorkspaceGateway,
        api_retry_service: ApiRetryService,
        tree_replicator: TreeReplicator,
        template_service: TemplateService,
    ):
        self.workspace = workspace
        self.api_retry_service = api_retry_service
        self.tree_replicator = tree_replicator
        self.template_service = template_service

    async def get_database_title_prop_name(self, database_id: NodeId) -> str:
        database = await self.api_retry_service.execute(
            lambda: self.workspace.retrieve_database(database_id), endpoint_name="databases.retrieve"
        )
        return get_title_property_name(database)

    async def clone_from_master(
        self, master_id: NodeId, target_id: NodeId, mode: CloneMode = CloneMode("under_page")
    ) -> Dict[str, Any]:
        """Clones ``master_id`` under ``target_id`` and returns the created object."""
        master = await self.template_service.export_master(master_id)
        if master.kind == "page":
            return await self._clone_page(master.page, target_id, mode)
        return await self._clone_database(master.database, target_id)

    async def _clone_page(self, page: Dict[str, Any], target_id: NodeId, mode: CloneMode) -> Dict[str, Any]:
        title = get_page_title_text(page, default="Cloned Page")
        if mode == "into_database":
            title_name = await self.get_database_title_prop_name(target_id)
            parent = {"database_id": target_id}
            properties = {title_name: title_property(title)}
        else:
            parent = {"page_id": target_id}
            properties = {"title": title_property(title)}

        new_page = await self.api_retry_service.execute(
            lambda: self.workspace.create_page(parent, properties), endpoint_name="pages.create"
        )
        logger.info(f"Created page {new_page['id']} ({mode}); copying blocks from {page['id']}")
        await self.tree_replicator.replicate(page["id"], new_page["id"])
        return new_page

    async def _clone_database(self, database: Dict[str, Any], target_id: NodeId) -> Dict[str, Any]:
        try:
            await self.api_retry_service.execute(
                lambda: self.workspace.retrieve_page(target_id), endpoint_name="pages.retrieve"
            )
        except Exception as e:
            raise TemplateError(DATABASE_TARGET_MUST_BE_PAGE) from e

        schema = transform_properties_to_create(database.get("properties"))
        title = get_title_text(database.get("title")) or "Cloned Database"
        created = await self.api_retry_service.execute(
            lambda: self.workspace.create_database({"page_id": target_id}, text_value(title), schema),
            endpoint_name="databases.create",
        )
        logger.info(f"Created database {created.get('id')} from schema with {len(schema)} properties")
        return created
