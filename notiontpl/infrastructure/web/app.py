"""HTTP backend for signed task action links and incoming webhooks.

Routes:
- GET  /api/a/{start|pause|stop}?taskId&tasksDbId&calendarDbId&action&ts&nonce&sig
- POST /api/webhook/{name}?secret=APP_SECRET

Errors are returned as ``{"error": "<message>"}``.
"""

import hmac
import json
import logging
import re
from typing import Any, Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from notiontpl import __version__
from notiontpl.core.services.action_service import ActionService
from notiontpl.infrastructure.config.settings import get_app_secret, get_backoff_policy, get_notion_token
from notiontpl.infrastructure.notion.notion_workspace import NotionWorkspace
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.security.action_links import ACTIONS, verify_signature

logger = logging.getLogger(__name__)

WEBHOOK_NAME = re.compile(r"^[A-Za-z0-9_-]+$")

ActionServiceFactory = Callable[[str], ActionService]


def default_action_service(token: str) -> ActionService:
    return ActionService(NotionWorkspace(token=token), ApiRetryService.from_policy(get_backoff_policy()))


def error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


router = APIRouter(prefix="/api")


@router.get("/a/{action}")
async def handle_action(action: str, request: Request) -> JSONResponse:
    if action not in ACTIONS:
        return error(404, "Unknown action")
    secret = get_app_secret()
    token = get_notion_token()
    if not secret:
        return error(500, "Missing APP_SECRET")
    if not token:
        return error(500, "Missing NOTION_TOKEN")

    query = dict(request.query_params)
    if not verify_signature(secret, query):
        return error(401, "Invalid signature")
    if query.get("action") != action:
        return error(401, "Invalid signature")

    factory: ActionServiceFactory = request.app.state.action_service_factory
    try:
        result = await factory(token).handle(
            action,
            query["taskId"],
            tasks_db_id=query.get("tasksDbId") or None,
            calendar_db_id=query.get("calendarDbId") or None,
        )
    except Exception as e:
        logger.error(f"Action '{action}' failed for task {query.get('taskId')}: {e}", exc_info=True)
        return error(500, "Internal error")
    return JSONResponse(status_code=200, content=result)


@router.post("/webhook/{name}")
async def handle_webhook(name: str, request: Request) -> JSONResponse:
    if not WEBHOOK_NAME.match(name):
        return error(404, "Route not found")
    secret = get_app_secret()
    if not secret:
        return error(500, "Missing APP_SECRET")
    provided = request.query_params.get("secret")
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8")):
        return error(401, "Invalid secret")

    body = await read_body(request)
    logger.info(f"Webhook '{name}' received (payload={'yes' if body else 'no'})")
    return JSONResponse(status_code=200, content={"ok": True, "webhook": name, "received": bool(body)})


async def read_body(request: Request) -> Optional[Any]:
    raw = await request.body()
    if not raw:
        return None
    if "application/json" in request.headers.get("content-type", ""):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Webhook body declared JSON but failed to parse; keeping raw text.")
    return raw.decode("utf-8", errors="replace")


def create_app(action_service_factory: Optional[ActionServiceFactory] = None) -> FastAPI:
    """Builds the FastAPI application.

    Args:
        action_service_factory: Builds an ActionService from a Notion token.
            Defaults to a NotionWorkspace-backed service.
    """
    app = FastAPI(
        title="notion-template backend",
        version=__version__,
        description="Signed Start/Pause/Stop links for deployed task databases.",
    )
    app.state.action_service_factory = action_service_factory or default_action_service

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return error(exc.status_code, message)

    app.include_router(router)
    return app
