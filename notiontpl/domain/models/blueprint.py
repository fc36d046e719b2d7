"""Domain models for app deployment blueprints.

A blueprint declares databases (with a simplified property schema), pages,
seed rows and the backend that serves signed task action links.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from notiontpl.domain.errors import BlueprintError


@dataclass
class DatabaseSpec:
    """A database to create under the target page."""
    alias: str
    title: str
    properties: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def plain_properties(self) -> Dict[str, Dict[str, Any]]:
        return {k: v for k, v in self.properties.items() if v.get("type") != "relation"}

    def relation_properties(self) -> Dict[str, Dict[str, Any]]:
        return {k: v for k, v in self.properties.items() if v.get("type") == "relation"}


@dataclass
class PageSpec:
    """A page to create under the target page."""
    title: str = "Untitled"
    alias: Optional[str] = None
    icon: Optional[Dict[str, Any]] = None
    cover: Optional[Dict[str, Any]] = None
    children: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Blueprint:
    """Parsed deployment blueprint."""
    name: str = "App"
    base_url: Optional[str] = None
    databases: List[DatabaseSpec] = field(default_factory=list)
    pages: List[PageSpec] = field(default_factory=list)
    seeds: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def has_database(self, alias: str) -> bool:
        return any(db.alias == alias for db in self.databases)

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Blueprint":
        """Builds a Blueprint from a loaded YAML document.

        Missing sections default to empty; a section with the wrong shape
        raises BlueprintError.
        """
        if not isinstance(doc, dict):
            raise BlueprintError("Blueprint must be a mapping at the top level.")

        metadata = doc.get("metadata") or {}
        backend = doc.get("backend") or {}
        resources = doc.get("resources") or {}
        install = doc.get("install") or {}

        raw_databases = resources.get("databases")
        raw_pages = resources.get("pages")
        databases = []
        for index, db in enumerate(raw_databases if isinstance(raw_databases, list) else []):
            if not isinstance(db, dict) or not db.get("alias"):
                raise BlueprintError(f"resources.databases[{index}] needs an 'alias'.")
            properties = db.get("properties") or {}
            if not isinstance(properties, dict):
                raise BlueprintError(f"resources.databases[{index}].properties must be a mapping.")
            specs: Dict[str, Dict[str, Any]] = {}
            for name, spec in properties.items():
                if spec is None:
                    spec = {}
                if not isinstance(spec, dict):
                    raise BlueprintError(f"resources.databases[{index}].properties.{name} must be a mapping.")
                specs[name] = spec
            databases.append(DatabaseSpec(
                alias=str(db["alias"]),
                title=str(db.get("title") or db["alias"]),
                properties=specs,
            ))

        pages = []
        for index, pg in enumerate(raw_pages if isinstance(raw_pages, list) else []):
            if not isinstance(pg, dict):
                raise BlueprintError(f"resources.pages[{index}] must be a mapping.")
            children = pg.get("children") or []
            pages.append(PageSpec(
                title=str(pg.get("title") or "Untitled"),
                alias=pg.get("alias"),
                icon=pg.get("icon"),
                cover=pg.get("cover"),
                children=children if isinstance(children, list) else [],
            ))

        seeds = install.get("seeds") or {}
        if not isinstance(seeds, dict):
            raise BlueprintError("install.seeds must be a mapping of database alias to rows.")
        seed_rows: Dict[str, List[Dict[str, Any]]] = {}
        for alias, rows in seeds.items():
            rows = rows or []
            if not isinstance(rows, list):
                raise BlueprintError(f"install.seeds.{alias} must be a list of rows.")
            for row_index, row in enumerate(rows):
                if not isinstance(row, dict):
                    raise BlueprintError(f"install.seeds.{alias}[{row_index}] must be a mapping.")
            seed_rows[alias] = list(rows)

        return cls(
            name=str(metadata.get("name") or "App"),
            base_url=backend.get("baseUrl"),
            databases=databases,
            pages=pages,
            seeds=seed_rows,
        )
