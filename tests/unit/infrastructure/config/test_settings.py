import pytest

from notiontpl.infrastructure.config import settings


@pytest.fixture
def fresh_settings(monkeypatch):
    """Allows load_configuration to run again against temporary files."""
    monkeypatch.setattr(settings, "_loaded", False)
    monkeypatch.setattr(settings, "_config", {})
    return settings


def test_yaml_is_flattened_and_env_wins(fresh_settings, tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "replication:\n  concurrency: 7\nretry:\n  max_attempts: 3\nnotion:\n  token: yaml-token\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "9")
    monkeypatch.chdir(tmp_path)

    fresh_settings.load_configuration(config_file=config_file)

    assert fresh_settings.get_concurrency() == 7
    assert fresh_settings.get_backoff_policy()["max_attempts"] == 9
    assert fresh_settings.get_notion_token() == "yaml-token"


def test_dotenv_does_not_override_environment(fresh_settings, tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("NOTION_TOKEN=from-dotenv\nAPP_SECRET=dotenv-secret\n", encoding="utf-8")
    monkeypatch.setenv("APP_SECRET", "real-secret")
    # load_dotenv writes into os.environ; register the key so it is removed afterwards.
    monkeypatch.setenv("NOTION_TOKEN", "placeholder")
    monkeypatch.delenv("NOTION_TOKEN")

    fresh_settings.load_configuration(config_file=tmp_path / "absent.yaml", env_file=env_file)

    assert fresh_settings.get_notion_token() == "from-dotenv"
    assert fresh_settings.get_app_secret() == "real-secret"


def test_token_fallback_to_notion_api_key(monkeypatch):
    monkeypatch.setenv("NOTION_API_KEY", "legacy")
    assert settings.get_notion_token() == "legacy"


def test_defaults():
    assert settings.get_concurrency() == 3
    assert settings.get_batch_size() == 50
    assert settings.get_backoff_policy() == {
        "max_attempts": 5, "initial_delay": 0.5, "factor": 2.0, "max_delay": 5.0,
    }
    assert settings.get_app_secret() is None


def test_test_config_overrides_everything(monkeypatch):
    monkeypatch.setenv("REPLICATION_CONCURRENCY", "8")
    settings.set_config_for_testing({"replication.concurrency": 2})
    assert settings.get_concurrency() == 2
    settings.clear_test_config()
    assert settings.get_concurrency() == 8


@pytest.mark.parametrize("raw", ["00123456", "true", "0", "1.50"])
def test_secrets_are_returned_verbatim(monkeypatch, raw):
    monkeypatch.setenv("APP_SECRET", raw)
    monkeypatch.setenv("NOTION_TOKEN", raw)
    assert settings.get_app_secret() == raw
    assert settings.get_notion_token() == raw


def test_numeric_settings_are_cast_from_environment(monkeypatch):
    monkeypatch.setenv("REPLICATION_BATCH_SIZE", "25")
    monkeypatch.setenv("RETRY_INITIAL_DELAY", "0.25")
    assert settings.get_batch_size() == 25
    assert settings.get_backoff_policy()["initial_delay"] == 0.25
    assert settings.get_config("replication.batch_size") == "25"
