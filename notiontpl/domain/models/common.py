"""Defines common Value Objects used across different domain contexts.

These objects represent simple values such as Notion identifiers, raw block
payloads and retry configuration, ensuring consistency and type safety.
"""

from typing import Any, Dict, List, NewType, Optional, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
NodeId = NewType("NodeId", str)              # Page, block or database id
FilePath = NewType("FilePath", str)          # Path to a template/blueprint file
ParentType = NewType("ParentType", str)      # 'page' or 'database'
CloneMode = NewType("CloneMode", str)        # 'under_page' or 'into_database'

# Raw Notion objects are passed around as plain dicts (opaque payloads).
Block = Dict[str, Any]
PropertySchema = Dict[str, Dict[str, Any]]

PARENT_TYPES = ("page", "database")
CLONE_MODES = ("under_page", "into_database")


# --- Structured Data ---
class BlockPage(TypedDict):
    """One page of a paginated children listing."""
    results: List[Block]
    has_more: bool
    next_cursor: Optional[str]


class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_attempts: int
    initial_delay: float
    factor: float
    max_delay: float


class ActionLinks(TypedDict):
    """Signed Start/Pause/Stop URLs attached to a task row."""
    start: str
    pause: str
    stop: str
