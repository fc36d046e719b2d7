"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.notiontpl/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from notiontpl.domain.models.common import BackoffPolicy
from notiontpl.infrastructure.resilience.api_retry import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_INITIAL_BACKOFF_S,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_BACKOFF_S,
)
from notiontpl.infrastructure.resilience.concurrency_limiter import DEFAULT_CONCURRENCY

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".notiontpl"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
DEFAULT_BATCH_SIZE = 50

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority). Nested sections are flattened to dotted keys.
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file. override=False: real environment variables take precedence.
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    # 3. Environment variables are read lazily by get_config.
    _loaded = True


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def _env_key(key: str) -> str:
    return key.upper().replace(".", "_")


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Environment values are returned as raw strings; typed getters below cast
    the numeric settings.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (``replication.concurrency`` -> ``REPLICATION_CONCURRENCY``)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_key(key)
    if env_key in os.environ:
        return os.environ[env_key]

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def _first_set(*keys: str) -> Optional[str]:
    for key in keys:
        value = get_config(key)
        if value is not None and value != "":
            return str(value)
    return None


def get_notion_token() -> Optional[str]:
    """Checks NOTION_TOKEN, then NOTION_API_KEY, then yaml notion.token."""
    return _first_set("NOTION_TOKEN", "NOTION_API_KEY", "notion.token")


def get_app_secret() -> Optional[str]:
    """HMAC secret shared between the deploy command and the action backend."""
    return _first_set("APP_SECRET", "backend.app_secret")


def get_backend_base_url() -> Optional[str]:
    url = get_config("backend.base_url")
    return str(url) if url else None


def get_concurrency() -> int:
    return int(get_config("replication.concurrency", DEFAULT_CONCURRENCY))


def get_batch_size() -> int:
    return int(get_config("replication.batch_size", DEFAULT_BATCH_SIZE))


def get_backoff_policy() -> BackoffPolicy:
    return BackoffPolicy(
        max_attempts=int(get_config("retry.max_attempts", DEFAULT_MAX_ATTEMPTS)),
        initial_delay=float(get_config("retry.initial_delay", DEFAULT_INITIAL_BACKOFF_S)),
        factor=float(get_config("retry.factor", DEFAULT_BACKOFF_FACTOR)),
        max_delay=float(get_config("retry.max_delay", DEFAULT_MAX_BACKOFF_S)),
    )


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
