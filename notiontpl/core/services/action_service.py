"""
Core service behind the signed task action links.

start  -> Status "In Progress", timer on, remember the start time
pause  -> add elapsed minutes to the running total, Status "Paused", timer off
stop   -> like pause with Status "Done", plus an optional calendar entry

Only properties that exist on the task page are written.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from notiontpl.domain.interfaces.workspace import WorkspaceGateway
from notiontpl.domain.models.common import NodeId
from notiontpl.infrastructure.notion.property_schema import (
    get_title_property_name,
    get_title_text,
    title_property,
)
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

STATUS_PROP = "Status"
RUNNING_PROP = "Timer Running"
LAST_STARTED_PROP = "Last Started At"
TOTAL_PROP = "Total Tracked (min)"

STATUS_BY_ACTION = {"start": "In Progress", "pause": "Paused", "stop": "Done"}


def parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_accumulated_minutes(last_iso: Optional[str], total: Optional[float], now: datetime) -> float:
    """Adds the whole minutes since ``last_iso`` (rounded half up, never negative) to ``total``."""
    total = total or 0
    if not last_iso:
        return total
    try:
        started = parse_iso(last_iso)
    except ValueError:
        logger.warning(f"Unparseable start time '{last_iso}'; keeping total {total}")
        return total
    elapsed_min = (now - started).total_seconds() / 60
    return total + max(0, math.floor(elapsed_min + 0.5))


class UnknownActionError(ValueError):
    """Raised for actions other than start, pause and stop."""


class ActionService:
    """Applies start/pause/stop actions to a task page."""

    def __init__(
        self,
        workspace: WorkspaceGateway,
        api_retry_service: ApiRetryService,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.workspace = workspace
        self.api_retry_service = api_retry_service
        self.clock = clock

    async def handle(
        self,
        action: str,
        task_id: NodeId,
        tasks_db_id: Optional[str] = None,
        calendar_db_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if action not in STATUS_BY_ACTION:
            raise UnknownActionError("Unknown action")

        task = await self.api_retry_service.execute(
            lambda: self.workspace.retrieve_page(task_id), endpoint_name="pages.retrieve"
        )
        props = task.get("properties") or {}
        now = self.clock()
        now_iso = to_iso(now)
        update: Dict[str, Any] = {}

        status_prop = props.get(STATUS_PROP)
        if isinstance(status_prop, dict) and status_prop.get("type") == "status":
            update[STATUS_PROP] = {"status": {"name": STATUS_BY_ACTION[action]}}
        if RUNNING_PROP in props:
            update[RUNNING_PROP] = {"checkbox": action == "start"}

        if action == "start":
            if LAST_STARTED_PROP in props:
                update[LAST_STARTED_PROP] = {"date": {"start": now_iso}}
            await self._update_task(task_id, update)
            logger.info(f"Started timer on task {task_id}")
            return {"ok": True, "action": action, "at": now_iso}

        last_started = (props.get(LAST_STARTED_PROP) or {}).get("date") or {}
        last_iso = last_started.get("start") or last_started.get("end")
        current_total = (props.get(TOTAL_PROP) or {}).get("number") or 0
        new_total = compute_accumulated_minutes(last_iso, current_total, now)
        if LAST_STARTED_PROP in props:
            update[LAST_STARTED_PROP] = {"date": None}
        if TOTAL_PROP in props:
            update[TOTAL_PROP] = {"number": new_total}
        await self._update_task(task_id, update)

        if action == "stop" and calendar_db_id:
            await self._create_calendar_entry(task, task_id, tasks_db_id, calendar_db_id, now_iso, new_total)

        logger.info(f"{action.capitalize()} task {task_id}: total {new_total} min")
        return {"ok": True, "action": action, "totalMin": new_total}

    async def _update_task(self, task_id: NodeId, update: Dict[str, Any]) -> None:
        await self.api_retry_service.execute(
            lambda: self.workspace.update_page(task_id, update), endpoint_name="pages.update"
        )

    async def _create_calendar_entry(
        self,
        task: Dict[str, Any],
        task_id: NodeId,
        tasks_db_id: Optional[str],
        calendar_db_id: str,
        now_iso: str,
        total_minutes: float,
    ) -> None:
        title_name = "Name"
        if tasks_db_id:
            tasks_db = await self.api_retry_service.execute(
                lambda: self.workspace.retrieve_database(tasks_db_id), endpoint_name="databases.retrieve"
            )
            title_name = get_title_property_name(tasks_db)
        task_title = get_title_text(((task.get("properties") or {}).get(title_name) or {}).get("title")) or "Task"
        await self.api_retry_service.execute(
            lambda: self.workspace.create_page({"database_id": calendar_db_id}, {
                "Name": title_property(task_title),
                "When": {"date": {"start": now_iso}},
                "Duration (min)": {"number": total_minutes},
                "Task": {"relation": [{"id": task_id}]},
            }),
            endpoint_name="pages.create",
        )
