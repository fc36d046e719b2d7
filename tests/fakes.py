"""In-memory test doubles for the Notion workspace."""

import asyncio
import copy
import itertools
from typing import Any, Dict, List, Optional

from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import Block, BlockPage


class ApiError(Exception):
    """Stand-in for notion_client.APIResponseError (exposes ``status``)."""

    def __init__(self, status: Optional[int], message: str = "api error"):
        super().__init__(message)
        self.status = status


def _schema_type(config: Dict[str, Any]) -> Optional[str]:
    if config.get("type"):
        return config["type"]
    return next((k for k in config if k not in ("id", "name")), None)


class FakeWorkspace(WorkspaceGateway):
    """In-memory Notion workspace.

    Blocks are stored per parent in insertion order. ``failures`` maps a
    method name to a list of exceptions raised (one per call) before the
    method starts succeeding.
    """

    def __init__(self, page_size_cap: int = 100):
        self.page_size_cap = page_size_cap
        self.children: Dict[str, List[Block]] = {}
        self.blocks: Dict[str, Block] = {}
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.databases: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, List[Exception]] = {}
        self.closed = False
        self._ids = itertools.count(1)

    # --- helpers for tests ---

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)

    def calls_for(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]

    def add_block(self, parent_id: str, block_type: str = "paragraph", text: str = "", payload=None) -> Block:
        block_id = self.new_id("blk")
        block = {
            "object": "block",
            "id": block_id,
            "type": block_type,
            "has_children": False,
            block_type: payload if payload is not None else {"rich_text": [{"type": "text", "text": {"content": text}}]},
        }
        self._attach(parent_id, block)
        return block

    def build_tree(self, root_id: str, depth: int, breadth: int, label: str = "n") -> None:
        """Complete tree of ``depth`` levels with ``breadth`` children per node."""
        if depth == 0:
            return
        for i in range(breadth):
            child = self.add_block(root_id, text=f"{label}.{i}")
            self.build_tree(child["id"], depth - 1, breadth, label=f"{label}.{i}")

    def shape(self, root_id: str) -> List[Any]:
        """Nested (type, payload, children) tuples ignoring ids."""
        return [
            (b["type"], b.get(b["type"]), self.shape(b["id"]))
            for b in self.children.get(root_id, [])
        ]

    def add_page(self, properties: Optional[Dict[str, Any]] = None, parent=None, **extra: Any) -> Dict[str, Any]:
        page_id = extra.pop("id", None) or self.new_id("page")
        page = {
            "object": "page",
            "id": page_id,
            "parent": parent or {"type": "workspace", "workspace": True},
            "properties": copy.deepcopy(properties or {}),
            "url": f"https://www.notion.so/{page_id}",
            **extra,
        }
        self.pages[page_id] = page
        return page

    def add_database(self, properties: Dict[str, Any], title: str = "DB", **extra: Any) -> Dict[str, Any]:
        database_id = extra.pop("id", None) or self.new_id("db")
        database = {
            "object": "database",
            "id": database_id,
            "title": [{"type": "text", "text": {"content": title}, "plain_text": title}],
            "properties": {},
            **extra,
        }
        self.databases[database_id] = database
        self._merge_schema(database, properties)
        return database

    def rows(self, database_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.pages.values() if (p.get("parent") or {}).get("database_id") == database_id]

    # --- internals ---

    def _attach(self, parent_id: str, block: Block) -> None:
        self.children.setdefault(parent_id, []).append(block)
        self.blocks[block["id"]] = block
        if parent_id in self.blocks:
            self.blocks[parent_id]["has_children"] = True

    def _maybe_fail(self, method: str) -> None:
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    def _merge_schema(self, database: Dict[str, Any], properties: Dict[str, Any]) -> None:
        for name, config in properties.items():
            prop_type = _schema_type(config)
            database["properties"][name] = {
                "id": name[:4],
                "name": name,
                "type": prop_type,
                prop_type: copy.deepcopy(config.get(prop_type) or {}),
            }

    async def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method,) + args)
        await asyncio.sleep(0)
        self._maybe_fail(method)

    # --- WorkspaceGateway ---

    async def list_children(self, block_id, start_cursor=None, page_size=100) -> BlockPage:
        await self._record("list_children", block_id, start_cursor)
        items = self.children.get(block_id, [])
        size = min(page_size, self.page_size_cap)
        start = int(start_cursor or 0)
        end = start + size
        has_more = end < len(items)
        return BlockPage(
            results=copy.deepcopy(items[start:end]),
            has_more=has_more,
            next_cursor=str(end) if has_more else None,
        )

    async def append_children(self, parent_id, children) -> List[Block]:
        await self._record("append_children", parent_id, len(children))
        if len(children) > 100:
            raise ApiError(400, "children length should be <= 100")
        created = []
        for child in children:
            block_type = child.get("type")
            block = {
                "object": "block",
                "id": self.new_id("blk"),
                "type": block_type,
                "has_children": False,
                block_type: copy.deepcopy(child.get(block_type)),
            }
            self._attach(parent_id, block)
            created.append(copy.deepcopy(block))
        return created

    async def retrieve_page(self, page_id):
        await self._record("retrieve_page", page_id)
        if page_id not in self.pages:
            raise ApiError(404, f"Could not find page with ID: {page_id}")
        return copy.deepcopy(self.pages[page_id])

    async def create_page(self, parent, properties, icon=None, cover=None):
        await self._record("create_page", parent, properties)
        page = self.add_page(properties, parent=parent, icon=icon, cover=cover)
        return copy.deepcopy(page)

    async def update_page(self, page_id, properties):
        await self._record("update_page", page_id, properties)
        if page_id not in self.pages:
            raise ApiError(404, f"Could not find page with ID: {page_id}")
        self.pages[page_id]["properties"].update(copy.deepcopy(properties))
        return copy.deepcopy(self.pages[page_id])

    async def retrieve_database(self, database_id):
        await self._record("retrieve_database", database_id)
        if database_id not in self.databases:
            raise ApiError(404, f"Could not find database with ID: {database_id}")
        return copy.deepcopy(self.databases[database_id])

    async def create_database(self, parent, title, properties, icon=None, cover=None):
        await self._record("create_database", parent, title, properties)
        database = self.add_database(properties, title="", parent=parent, icon=icon, cover=cover)
        database["title"] = copy.deepcopy(title)
        return copy.deepcopy(database)

    async def update_database(self, database_id, properties):
        await self._record("update_database", database_id, properties)
        self._merge_schema(self.databases[database_id], properties)
        return copy.deepcopy(self.databases[database_id])

    async def query_database(self, database_id, start_cursor=None):
        await self._record("query_database", database_id, start_cursor)
        rows = self.rows(database_id)
        start = int(start_cursor or 0)
        end = start + self.page_size_cap
        has_more = end < len(rows)
        return {
            "results": copy.deepcopy(rows[start:end]),
            "has_more": has_more,
            "next_cursor": str(end) if has_more else None,
        }

    async def aclose(self) -> None:
        self.closed = True
