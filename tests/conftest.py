import pytest
from typer.testing import CliRunner

from notiontpl.core.services.tree_replicator import TreeReplicator
from notiontpl.infrastructure.config import settings
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter
from tests.fakes import FakeWorkspace


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def workspace():
    return FakeWorkspace()


@pytest.fixture
def fast_retry():
    """Retry service with zero backoff."""
    return ApiRetryService(initial_backoff_s=0, max_backoff_s=0)


@pytest.fixture
def replicator(workspace, fast_retry):
    return TreeReplicator(workspace, fast_retry, ConcurrencyLimiter(3))


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps tests independent of the developer's environment and config files."""
    for name in ("NOTION_TOKEN", "NOTION_API_KEY", "APP_SECRET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "_config", {})
    settings.clear_test_config()
    yield
    settings.clear_test_config()
