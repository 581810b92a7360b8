"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables and a dedicated
configuration file (~/.uservibe/config.yaml), and builds the typed
:class:`UserVibeSettings` the rest of the application consumes.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from uservibe.domain.models.common import FetchParams
from uservibe.infrastructure.remote.arctic_shift_source import DEFAULT_API_BASE

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".uservibe"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "USERVIBE_"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


@dataclass
class UserVibeSettings:
    """Effective settings. Keys mirror the YAML file and ``USERVIBE_*`` variables."""
    limit: int = 10
    after: str = "6month"          # "" queries all time
    cache_days: float = 7.0
    paused: bool = False
    max_retries: int = 5
    give_up_cooldown_seconds: float = 900.0
    request_timeout_seconds: float = 10.0
    api_base: str = DEFAULT_API_BASE
    cache_backend: str = "disk"    # 'disk' or 'memory'
    cache_dir: str = str(DEFAULT_CONFIG_DIR / "cache")
    sub_color: str = "#6a5cff"
    count_color: str = "#d93900"
    sub_text_color: str = "#ffffff"
    count_text_color: str = "#ffffff"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_days * 24 * 60 * 60

    @property
    def fetch_params(self) -> FetchParams:
        return FetchParams(limit=self.limit, after=self.after)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Keys written back by save_settings (the rest are deployment concerns)
USER_EDITABLE_KEYS = (
    "limit", "after", "cache_days", "paused",
    "sub_color", "count_color", "sub_text_color", "count_text_color",
)


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (override=False: real env vars take precedence)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables are read lazily by get_config

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets anything loaded so the next load_configuration starts over."""
    global _config, _loaded
    _config = {}
    _loaded = False


def env_key_for(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    """Converts common string forms from the environment to Python values."""
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


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (``USERVIBE_`` + upper-cased key, dots as underscores)
    3. YAML config (flat key, or nested sections for dotted keys)
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_key_for(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    # Dotted keys may also live in nested YAML sections: logging: {level: DEBUG}
    node: Any = _config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            break
        node = node[part]
    else:
        return node

    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the current process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value
    os.environ[env_key_for(key)] = str(value)


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None


def load_settings() -> UserVibeSettings:
    """Builds the effective settings, starting from the defaults.

    Values of the wrong type are logged and replaced by the default.
    """
    defaults = UserVibeSettings()
    values: Dict[str, Any] = {}
    for f in fields(UserVibeSettings):
        default = getattr(defaults, f.name)
        raw = get_config(f.name, default)
        values[f.name] = _as_type_of(default, raw, f.name)
    return UserVibeSettings(**values)


def _as_type_of(default: Any, raw: Any, name: str) -> Any:
    if raw is None:
        return default
    try:
        if isinstance(default, bool):
            if isinstance(raw, str):
                return raw.strip().lower() in ("1", "true", "yes", "on")
            return bool(raw)
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        return str(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for setting '{name}': {raw!r}. Using default {default!r}.")
        return default


def save_settings(settings: UserVibeSettings, config_file: Path = DEFAULT_CONFIG_FILE) -> None:
    """Persists the user-editable settings to the YAML file.

    Other keys already present in the file are preserved.
    """
    existing: Dict[str, Any] = {}
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                existing = loaded
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read existing config {config_file}, overwriting: {e}")

    for key in USER_EDITABLE_KEYS:
        existing[key] = getattr(settings, key)
        _config[key] = existing[key]

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        yaml.safe_dump(existing, f, sort_keys=True)
    logger.info(f"Saved settings to {config_file}")


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values for testing purposes.

    These values will override any existing configuration.
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


def config_file_path() -> Path:
    """The YAML file to use: ``USERVIBE_CONFIG_FILE`` if set, else the default."""
    override = os.environ.get(ENV_PREFIX + "CONFIG_FILE")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE
