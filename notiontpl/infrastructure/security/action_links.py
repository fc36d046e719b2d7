"""HMAC-signed action links for task rows.

Signature payload (pipe-joined, missing values as empty strings):

    taskId|action|ts|nonce|tasksDbId|calendarDbId

signature = hex(HMAC_SHA256(secret, payload)). The backend recomputes it
from the query string and compares in constant time.
"""

import hashlib
import hmac
import time
import uuid
from typing import Mapping, Optional
from urllib.parse import urlencode

from notiontpl.domain.models.common import ActionLinks

ACTIONS = ("start", "pause", "stop")
SIGNED_FIELDS = ("taskId", "action", "ts", "nonce", "tasksDbId", "calendarDbId")
REQUIRED_FIELDS = ("sig", "action", "taskId", "ts", "nonce")


def hmac_sign(secret: str, payload: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_payload(params: Mapping[str, Optional[str]]) -> str:
    return "|".join(str(params.get(k) or "") for k in SIGNED_FIELDS)


def build_action_url(
    base_url: str,
    action: str,
    params: Mapping[str, Optional[str]],
    secret: Optional[str] = None,
    ts: Optional[str] = None,
    nonce: Optional[str] = None,
) -> str:
    """Builds ``<base_url>/a/<action>?...`` carrying a signature when a secret is given."""
    query = {k: v for k, v in params.items() if v}
    query["action"] = action
    query["ts"] = ts or str(int(time.time() * 1000))
    query["nonce"] = nonce or str(uuid.uuid4())
    if secret:
        query["sig"] = hmac_sign(secret, signature_payload(query))
    return f"{base_url.rstrip('/')}/a/{action}?{urlencode(query)}"


def build_task_links(
    base_url: str,
    secret: str,
    task_id: str,
    tasks_db_id: Optional[str],
    calendar_db_id: Optional[str],
) -> ActionLinks:
    params = {"taskId": task_id, "tasksDbId": tasks_db_id, "calendarDbId": calendar_db_id}
    return ActionLinks(
        start=build_action_url(base_url, "start", params, secret),
        pause=build_action_url(base_url, "pause", params, secret),
        stop=build_action_url(base_url, "stop", params, secret),
    )


def verify_signature(secret: str, query: Mapping[str, Optional[str]]) -> bool:
    """Checks the ``sig`` query parameter against the recomputed signature."""
    if not all(query.get(k) for k in REQUIRED_FIELDS):
        return False
    expected = hmac_sign(secret, signature_payload(query))
    return hmac.compare_digest(expected, str(query["sig"]))
