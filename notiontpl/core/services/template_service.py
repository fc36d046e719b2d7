"""
Core service for exporting Notion objects to portable JSON templates and
instantiating templates back into a workspace.

A page template holds the page title, icon, cover and sanitized top-level
blocks; a database template holds the title, icon, cover and create-schema.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from notiontpl.core.services.tree_replicator import TreeReplicator, sanitize_blocks
from notiontpl.domain.errors import TemplateError
from notiontpl.domain.interfaces.file_system import FileSystem
from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import Block, FilePath, NodeId, ParentType
from notiontpl.infrastructure.notion.property_schema import (
    get_page_title_text,
    get_title_text,
    text_value,
    title_property,
    transform_properties_to_create,
)
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

NOT_PAGE_OR_DATABASE = "ID is neither a Page nor a Database. Make sure the integration has access."


@dataclass
class MasterObject:
    """A page (with its top-level blocks) or a database fetched as a master."""
    kind: str
    page: Optional[Dict[str, Any]] = None
    blocks: List[Block] = field(default_factory=list)
    database: Optional[Dict[str, Any]] = None


class TemplateService:
    """Exports and instantiates JSON templates."""

    def __init__(
        self,
        workspace: WorkspaceGateway,
        api_retry_service: ApiRetryService,
        tree_replicator: TreeReplicator,
        file_system: FileSystem,
    ):
        self.workspace = workspace
        self.api_retry_service = api_retry_service
        self.tree_replicator = tree_replicator
        self.file_system = file_system

    async def export_master(self, object_id: NodeId) -> MasterObject:
        """Fetches ``object_id`` as a page, falling back to a database."""
        try:
            page = await self.api_retry_service.execute(
                lambda: self.workspace.retrieve_page(object_id), endpoint_name="pages.retrieve"
            )
            blocks = await self.tree_replicator.fetch_all_children(object_id)
            return MasterObject(kind="page", page=page, blocks=blocks)
        except Exception as page_error:
            logger.debug(f"{object_id} is not a readable page ({page_error}); trying database.")

        try:
            database = await self.api_retry_service.execute(
                lambda: self.workspace.retrieve_database(object_id), endpoint_name="databases.retrieve"
            )
        except Exception as db_error:
            raise TemplateError(NOT_PAGE_OR_DATABASE) from db_error
        return MasterObject(kind="database", database=database)

    async def export_to_template(self, object_id: NodeId) -> Dict[str, Any]:
        """Builds a portable template from an existing page or database."""
        master = await self.export_master(object_id)
        if master.kind == "page":
            return {
                "kind": "page",
                "title": get_page_title_text(master.page),
                "icon": master.page.get("icon"),
                "cover": master.page.get("cover"),
                "children": sanitize_blocks(master.blocks),
            }
        database = master.database
        return {
            "kind": "database",
            "title": get_title_text(database.get("title")) or "Untitled DB",
            "icon": database.get("icon"),
            "cover": database.get("cover"),
            "properties": transform_properties_to_create(database.get("properties")),
        }

    async def export_to_json(self, object_id: NodeId, pretty: bool = True) -> str:
        template = await self.export_to_template(object_id)
        if pretty:
            return json.dumps(template, indent=2, ensure_ascii=False)
        return json.dumps(template, separators=(",", ":"), ensure_ascii=False)

    async def load_template(self, path: FilePath) -> Dict[str, Any]:
        if not await self.file_system.file_exists(path):
            raise TemplateError("Template file not found")
        try:
            template = json.loads(await self.file_system.read_file(path))
        except json.JSONDecodeError as e:
            raise TemplateError(f"Template is not valid JSON: {e}") from e
        if not isinstance(template, dict):
            raise TemplateError("Template must be a JSON object")
        return template

    async def create_from_json_file(self, path: FilePath, parent_id: NodeId, parent_type: ParentType) -> Dict[str, Any]:
        template = await self.load_template(path)
        return await self.create_from_template(template, parent_id, parent_type)

    async def create_from_template(
        self, template: Dict[str, Any], parent_id: NodeId, parent_type: ParentType
    ) -> Dict[str, Any]:
        """Instantiates a page or database template under ``parent_id``."""
        kind = template.get("kind")
        if kind == "page":
            return await self._create_page_from_template(template, parent_id, parent_type)
        if kind == "database":
            return await self._create_database_from_template(template, parent_id, parent_type)
        raise TemplateError("Unknown template kind")

    async def _create_page_from_template(
        self, template: Dict[str, Any], parent_id: NodeId, parent_type: ParentType
    ) -> Dict[str, Any]:
        title = template.get("title") or "Untitled"
        properties = template.get("properties") or {}
        children = template.get("children") or []

        if parent_type == "page":
            # Pages under a page only accept the title property.
            title_prop = properties.get("title")
            if not (isinstance(title_prop, dict) and title_prop.get("title")):
                title_prop = title_property(title)
            parent = {"page_id": parent_id}
            page_properties = {"title": title_prop}
        else:
            parent = {"database_id": parent_id}
            page_properties = properties

        created = await self.api_retry_service.execute(
            lambda: self.workspace.create_page(
                parent, page_properties, icon=template.get("icon"), cover=template.get("cover")
            ),
            endpoint_name="pages.create",
        )
        if children:
            await self.tree_replicator.append_in_batches(created["id"], children)
        logger.info(f"Created page {created.get('id')} with {len(children)} blocks")
        return created

    async def _create_database_from_template(
        self, template: Dict[str, Any], parent_id: NodeId, parent_type: ParentType
    ) -> Dict[str, Any]:
        if parent_type != "page":
            raise TemplateError("Database templates must be created under a page (use --parent-type page)")
        title = template.get("title") or "Untitled DB"
        created = await self.api_retry_service.execute(
            lambda: self.workspace.create_database(
                {"page_id": parent_id},
                text_value(title),
                template.get("properties") or {},
                icon=template.get("icon"),
                cover=template.get("cover"),
            ),
            endpoint_name="databases.create",
        )
        logger.info(f"Created database {created.get('id')}")
        return created
