import hmac
from datetime import datetime, timezone
from urllib.parse import urlsplit

import pytest
from fastapi.testclient import TestClient

from notiontpl.core.services.action_service import ActionService
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.security.action_links import build_task_links
from notiontpl.infrastructure.web.app import create_app
from tests.fakes import FakeWorkspace

SECRET = "app-secret"
NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_workspace():
    return FakeWorkspace()


@pytest.fixture
def tokens_seen():
    return []


@pytest.fixture
def client(monkeypatch, fake_workspace, tokens_seen):
    monkeypatch.setenv("APP_SECRET", SECRET)
    monkeypatch.setenv("NOTION_TOKEN", "secret_token")

    def factory(token):
        tokens_seen.append(token)
        return ActionService(fake_workspace, ApiRetryService(initial_backoff_s=0), clock=lambda: NOW)

    return TestClient(create_app(action_service_factory=factory))


def path_of(url):
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}"


@pytest.fixture
def task(fake_workspace):
    return fake_workspace.add_page({
        "Status": {"type": "status", "status": {"name": "Todo"}},
        "Timer Running": {"type": "checkbox", "checkbox": False},
        "Last Started At": {"type": "date", "date": None},
    })


def test_start_link_runs_action(client, fake_workspace, task, tokens_seen):
    links = build_task_links("http://testserver/api", SECRET, task["id"], None, None)

    response = client.get(path_of(links["start"]))

    assert response.status_code == 200
    assert response.json() == {"ok": True, "action": "start", "at": "2024-05-01T12:00:00.000Z"}
    assert fake_workspace.pages[task["id"]]["properties"]["Timer Running"] == {"checkbox": True}
    assert tokens_seen == ["secret_token"]


def test_invalid_signature(client, task):
    links = build_task_links("http://testserver/api", "wrong-secret", task["id"], None, None)

    response = client.get(path_of(links["pause"]))

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}


def test_signature_for_other_action_is_rejected(client, task):
    start_url = build_task_links("http://testserver/api", SECRET, task["id"], None, None)["start"]

    response = client.get(path_of(start_url).replace("/a/start?", "/a/stop?"))

    assert response.status_code == 401


def test_unknown_action(client):
    response = client.get("/api/a/explode?taskId=t")
    assert response.status_code == 404
    assert response.json() == {"error": "Unknown action"}


def test_missing_secret(client, monkeypatch):
    monkeypatch.delenv("APP_SECRET")
    response = client.get("/api/a/start?taskId=t")
    assert response.status_code == 500
    assert response.json() == {"error": "Missing APP_SECRET"}


def test_missing_token(client, monkeypatch, task):
    monkeypatch.delenv("NOTION_TOKEN")
    links = build_task_links("http://testserver/api", SECRET, task["id"], None, None)
    response = client.get(path_of(links["start"]))
    assert response.status_code == 500
    assert response.json() == {"error": "Missing NOTION_TOKEN"}


def test_action_failure_is_internal_error(client):
    links = build_task_links("http://testserver/api", SECRET, "no-such-task", None, None)

    response = client.get(path_of(links["stop"]))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}


def test_webhook(client):
    response = client.post(f"/api/webhook/github?secret={SECRET}", json={"ref": "main"})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "webhook": "github", "received": True}

    empty = client.post(f"/api/webhook/ping?secret={SECRET}")
    assert empty.json()["received"] is False


def test_webhook_rejects_bad_secret(client):
    response = client.post("/api/webhook/github?secret=nope", json={})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid secret"}


def test_unknown_route_and_method(client):
    assert client.get("/nowhere").json() == {"error": "Route not found"}
    response = client.get("/api/webhook/github")
    assert response.status_code == 405
    assert "error" in response.json()


def test_webhook_secret_is_compared_in_constant_time(client, mocker):
    compare = mocker.spy(hmac, "compare_digest")

    response = client.post(f"/api/webhook/deploy?secret={SECRET}x")

    assert response.status_code == 401
    compare.assert_called_once_with(f"{SECRET}x".encode("utf-8"), SECRET.encode("utf-8"))
