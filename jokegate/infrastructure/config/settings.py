"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML configuration file, a .env file and
environment variables. Keys are dotted paths into the YAML document, e.g.
'resilience.jokeService.retry.max_attempts'; the matching environment
variable is JOKEGATE_RESILIENCE_JOKESERVICE_RETRY_MAX_ATTEMPTS.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
ENV_PREFIX = "JOKEGATE_"
ENV_FILE_NAME = ".env"
DEFAULT_CONFIG_FILE = Path("jokegate.yaml")
DEFAULT_BASE_URL = "https://api.chucknorris.io"
DEFAULT_TIMEOUT_S = 5.0
DEFAULT_POLICY_GROUP = "jokeService"

_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None, reload: bool = False) -> None:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Default values supplied by the caller

    Args:
        config_file: Path to the YAML file (JOKEGATE_CONFIG_FILE or ./jokegate.yaml if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Discard previously loaded values and load again.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. .env first so it can point at the YAML file; override=False keeps real ENV VARS on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 2. YAML file (lowest priority)
    config_path = config_file or Path(os.getenv(f"{ENV_PREFIX}CONFIG_FILE", str(DEFAULT_CONFIG_FILE)))
    if config_path.is_file():
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f)
        if isinstance(yaml_config, dict):
            _config.update(yaml_config)
            logger.info(f"Loaded configuration from YAML: {config_path}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {config_path} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_path}")

    _loaded = True
    logger.info("Configuration loading process completed.")


def env_key(key: str) -> str:
    """Maps a dotted config key to its environment variable name."""
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def _lookup(data: Dict[str, Any], key: str) -> Any:
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Args:
        key: The dotted configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    name = env_key(key)
    if name in os.environ:
        return _coerce(os.environ[name])

    value = _lookup(_config, key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
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

def get_api_base_url() -> str:
    return str(get_config("api.base_url", DEFAULT_BASE_URL)).rstrip("/")


def get_api_timeout() -> float:
    return float(get_config("api.timeout_s", DEFAULT_TIMEOUT_S))


def get_policy_group() -> str:
    """Name of the policy group guarding the joke API calls."""
    return str(get_config("api.policy_group", DEFAULT_POLICY_GROUP))


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of dotted keys to values
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
