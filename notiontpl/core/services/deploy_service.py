"""
Core service for deploying a small Notion "app" from a YAML blueprint.

Steps:
1. Create databases without relation properties.
2. Patch relation properties once every alias has an id.
3. Create pages (and their blocks) under the target page.
4. Insert seed rows.
5. Attach signed Start/Pause/Stop links to every task row (needs a base URL
   and an app secret).
6. Create an install info page. Secrets are never written to Notion.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from notiontpl.core.services.tree_replicator import TreeReplicator
from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.blueprint import Blueprint, DatabaseSpec
from notiontpl.domain.models.common import ActionLinks, NodeId
from notiontpl.infrastructure.notion.property_schema import (
    build_db_properties,
    build_seed_properties,
    get_title_property_name,
    text_value,
    title_property,
)
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.security.action_links import build_task_links

logger = logging.getLogger(__name__)

TASKS_ALIAS = "tasks"
CALENDAR_ALIAS = "calendar"


@dataclass
class DeploymentResult:
    """Ids created by a deployment."""
    alias_to_id: Dict[str, str] = field(default_factory=dict)
    pages: Dict[str, str] = field(default_factory=dict)
    seeded_rows: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    linked_tasks: int = 0
    info: Optional[str] = None


def action_links_paragraph(links: ActionLinks) -> Dict[str, Any]:
    """Paragraph block reading 'Start  |  Pause  |  Stop' with each word linked."""
    entries = [("Start", links["start"]), ("Pause", links["pause"]), ("Stop", links["stop"])]
    rich_text = []
    for index, (label, href) in enumerate(entries):
        rich_text.append({"type": "text", "text": {"content": label, "link": {"url": href}}})
        if index < len(entries) - 1:
            rich_text.append({"type": "text", "text": {"content": "  |  "}})
    return {"type": "paragraph", "paragraph": {"rich_text": rich_text}}


class DeployService:
    """Deploys blueprints into a target page."""

    def __init__(
        self,
        workspace: WorkspaceGateway,
        api_retry_service: ApiRetryService,
        tree_replicator: TreeReplicator,
        default_base_url: Optional[str] = None,
    ):
        self.workspace = workspace
        self.api_retry_service = api_retry_service
        self.tree_replicator = tree_replicator
        self.default_base_url = default_base_url

    async def _call(self, endpoint_name: str, operation):
        return await self.api_retry_service.execute(operation, endpoint_name=endpoint_name)

    async def deploy(
        self,
        blueprint: Blueprint,
        target_page_id: NodeId,
        base_url: Optional[str] = None,
        app_secret: Optional[str] = None,
    ) -> DeploymentResult:
        """Runs every deployment step and returns the created ids.

        The backend URL comes from the explicit argument, then the blueprint's
        backend.baseUrl, then the configured default.
        """
        result = DeploymentResult()
        base_url = base_url or blueprint.base_url or self.default_base_url

        result.alias_to_id = await self.create_databases(blueprint.databases, target_page_id)
        result.pages = await self.create_pages(blueprint, target_page_id)
        result.seeded_rows = await self.create_seeds(blueprint.seeds, result.alias_to_id)

        tasks_db_id = result.alias_to_id.get(TASKS_ALIAS)
        if tasks_db_id and base_url and app_secret:
            result.linked_tasks = await self.attach_action_links(
                tasks_db_id, result.alias_to_id.get(CALENDAR_ALIAS), base_url, app_secret
            )
        elif tasks_db_id:
            logger.info("Skipping action links: base URL or app secret not provided.")

        result.info = await self.create_info_page(blueprint, target_page_id, result.alias_to_id, base_url)
        return result

    async def create_databases(self, databases: List[DatabaseSpec], parent_page_id: NodeId) -> Dict[str, str]:
        """Creates databases in order, then patches relations in a second pass."""
        created: Dict[str, str] = {}
        for db in databases:
            properties = build_db_properties(db.plain_properties())
            response = await self._call("databases.create", lambda: self.workspace.create_database(
                {"page_id": parent_page_id}, text_value(db.title), properties
            ))
            created[db.alias] = response["id"]
            logger.info(f"Created database '{db.alias}' -> {response['id']}")

        for db in databases:
            if not db.relation_properties():
                continue
            schema = build_db_properties(db.properties, created)
            await self._call("databases.update", lambda: self.workspace.update_database(created[db.alias], schema))
            logger.info(f"Attached relations to database '{db.alias}'")
        return created

    async def create_pages(self, blueprint: Blueprint, parent_page_id: NodeId) -> Dict[str, str]:
        pages: Dict[str, str] = {}
        for spec in blueprint.pages:
            created = await self._call("pages.create", lambda: self.workspace.create_page(
                {"page_id": parent_page_id},
                {"title": title_property(spec.title)},
                icon=spec.icon,
                cover=spec.cover,
            ))
            pages[spec.alias or created["id"]] = created["id"]
            if spec.children:
                await self.tree_replicator.append_in_batches(created["id"], spec.children)
        return pages

    async def create_seeds(
        self, seeds: Dict[str, List[Dict[str, Any]]], alias_to_id: Dict[str, str]
    ) -> Dict[str, List[Dict[str, Any]]]:
        rows_by_alias: Dict[str, List[Dict[str, Any]]] = {}
        for alias, rows in seeds.items():
            database_id = alias_to_id.get(alias)
            if not database_id:
                logger.warning(f"Seeds reference unknown database alias '{alias}'; skipping.")
                continue
            database = await self._call(
                "databases.retrieve", lambda: self.workspace.retrieve_database(database_id)
            )
            title_name = get_title_property_name(database)
            for row in rows:
                properties = build_seed_properties(row, title_name)
                page = await self._call("pages.create", lambda: self.workspace.create_page(
                    {"database_id": database_id}, properties
                ))
                rows_by_alias.setdefault(alias, []).append(page)
        return rows_by_alias

    async def attach_action_links(
        self,
        tasks_db_id: NodeId,
        calendar_db_id: Optional[str],
        base_url: str,
        app_secret: str,
    ) -> int:
        """Sets URL properties and appends a link paragraph on every task row."""
        linked = 0
        cursor: Optional[str] = None
        while True:
            response = await self._call(
                "databases.query", lambda: self.workspace.query_database(tasks_db_id, start_cursor=cursor)
            )
            for row in response.get("results", []):
                links = build_task_links(base_url, app_secret, row["id"], tasks_db_id, calendar_db_id)
                await self._call("pages.update", lambda: self.workspace.update_page(row["id"], {
                    "Start URL": {"url": links["start"]},
                    "Pause URL": {"url": links["pause"]},
                    "Stop URL": {"url": links["stop"]},
                }))
                await self._call("blocks.children.append", lambda: self.workspace.append_children(
                    row["id"], [action_links_paragraph(links)]
                ))
                linked += 1
            cursor = response.get("next_cursor") if response.get("has_more") else None
            if not cursor:
                break
        logger.info(f"Attached action links to {linked} task(s)")
        return linked

    async def create_info_page(
        self,
        blueprint: Blueprint,
        parent_page_id: NodeId,
        alias_to_id: Dict[str, str],
        base_url: Optional[str],
    ) -> str:
        info = await self._call("pages.create", lambda: self.workspace.create_page(
            {"page_id": parent_page_id}, {"title": title_property(f"{blueprint.name} - Installed")}
        ))
        summary = (
            f"Installed app: {blueprint.name}\n"
            f"Tasks DB: {alias_to_id.get(TASKS_ALIAS) or '-'}\n"
            f"Calendar DB: {alias_to_id.get(CALENDAR_ALIAS) or '-'}\n"
            f"Base URL: {base_url or '-'}\n"
        )
        await self._call("blocks.children.append", lambda: self.workspace.append_children(
            info["id"], [{"type": "paragraph", "paragraph": {"rich_text": text_value(summary)}}]
        ))
        return info["id"]
