"""Translation between Notion property schemas and create/update payloads.

- transform_properties_to_create: retrieved database schema -> create schema
- build_db_properties: simplified blueprint schema -> create schema
- build_seed_properties: plain seed row values -> page property values
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from notiontpl.domain.models.common import PropertySchema

logger = logging.getLogger(__name__)

OPTION_TYPES = ("select", "multi_select", "status")
SIMPLE_BLUEPRINT_TYPES = ("checkbox", "number", "date", "rich_text", "url")


def text_value(content: str) -> List[Dict[str, Any]]:
    """Rich text array holding a single plain text run."""
    return [{"type": "text", "text": {"content": content}}]


def title_property(content: str) -> Dict[str, Any]:
    return {"title": text_value(content)}


def get_title_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    return "".join(
        t.get("plain_text") or (t.get("text") or {}).get("content") or ""
        for t in rich_text or []
    )


def get_page_title_text(page: Mapping[str, Any], default: str = "Untitled") -> str:
    """Returns the text of the first non-empty title property of a page."""
    for prop in (page.get("properties") or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title" and isinstance(prop.get("title"), list):
            text = get_title_text(prop["title"])
            if text:
                return text
    return default


def get_title_property_name(database: Mapping[str, Any], default: str = "Name") -> str:
    for name, prop in (database.get("properties") or {}).items():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return name
    return default


def _copy_options(options: Optional[List[Any]], default_color: Optional[str] = None) -> List[Dict[str, Any]]:
    copied = []
    for option in options or []:
        if isinstance(option, dict):
            entry = {"name": option.get("name")}
            color = option.get("color") or default_color
        else:
            entry = {"name": str(option)}
            color = default_color
        if color:
            entry["color"] = color
        copied.append(entry)
    return copied


def transform_properties_to_create(properties: Optional[Mapping[str, Any]]) -> PropertySchema:
    """Converts a retrieved database schema into a create-database schema.

    Options are copied by name and color only (ids are server-managed).
    """
    out: PropertySchema = {}
    for name, prop in (properties or {}).items():
        prop_type = prop.get("type")
        if not prop_type:
            continue
        source = prop.get(prop_type) or {}
        config: Dict[str, Any] = {}
        if prop_type in OPTION_TYPES and source.get("options"):
            config["options"] = _copy_options(source["options"])
        elif prop_type == "number" and source.get("format"):
            config["format"] = source["format"]
        elif prop_type == "formula" and source.get("expression"):
            config["expression"] = source["expression"]
        elif prop_type == "relation" and source.get("database_id"):
            config["database_id"] = source["database_id"]
            config["type"] = source.get("type", "single_property")
            config[config["type"]] = {}
        elif prop_type == "rollup":
            config = {
                k: source[k]
                for k in ("relation_property_name", "rollup_property_name", "function")
                if source.get(k)
            }
        out[name] = {"type": prop_type, prop_type: config}
    return out


def build_db_properties(
    schema: Optional[Mapping[str, Any]],
    alias_to_id: Optional[Mapping[str, str]] = None,
) -> PropertySchema:
    """Builds a create schema from the simplified blueprint schema.

    Relations are resolved through ``alias_to_id`` and skipped until the
    target database exists. Unsupported types are skipped.
    """
    alias_to_id = alias_to_id or {}
    out: PropertySchema = {}
    for name, definition in (schema or {}).items():
        prop_type = (definition or {}).get("type")
        if not prop_type:
            continue
        if prop_type == "title":
            out[name] = {"title": {}}
        elif prop_type in OPTION_TYPES:
            options = (definition.get(prop_type) or {}).get("options") or []
            out[name] = {prop_type: {"options": _copy_options(options, default_color="default")}}
        elif prop_type in SIMPLE_BLUEPRINT_TYPES:
            out[name] = {prop_type: {}}
        elif prop_type == "relation":
            alias = (definition.get("relation") or {}).get("database")
            database_id = alias_to_id.get(alias)
            if not database_id:
                logger.debug(f"Relation '{name}' targets unknown alias '{alias}'; skipping for now.")
                continue
            out[name] = {"relation": {"database_id": database_id, "type": "single_property", "single_property": {}}}
        else:
            logger.debug(f"Unsupported blueprint property type '{prop_type}' for '{name}'; skipping.")
    return out


def build_seed_properties(row: Mapping[str, Any], title_prop_name: str) -> Dict[str, Any]:
    """Maps a plain seed row onto page property values."""
    title_value = row.get(title_prop_name) or row.get("Name") or "Untitled"
    properties: Dict[str, Any] = {}
    for key, value in row.items():
        if key in (title_prop_name, "Name"):
            properties[title_prop_name] = title_property(str(title_value))
        elif isinstance(value, bool):
            properties[key] = {"checkbox": value}
        elif isinstance(value, (int, float)):
            properties[key] = {"number": value}
        elif isinstance(value, str):
            properties[key] = {"rich_text": text_value(value)}
        else:
            properties[key] = value
    if title_prop_name not in properties:
        properties[title_prop_name] = title_property(str(title_value))
    return properties
