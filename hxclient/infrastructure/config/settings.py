"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.hxclient/config.yaml), and assembles them into the
typed ClientSettings used to build a Client.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from hxclient import build
from hxclient.infrastructure.resilience.retry_policy import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_MIN_RETRY_DELAY,
    DEFAULT_RETRYABLE_STATUS_CODES,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".hxclient"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "HXCLIENT_"

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    reload: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Load again even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
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

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env file found).")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('retry.max_retries')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def env_var_name(key: str) -> str:
    """Maps a dotted config key to its environment variable name."""
    return ENV_PREFIX + key.upper().replace('.', '_')


def _coerce(value: str) -> Any:
    """Converts environment strings to bool, int or float where possible."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (HXCLIENT_ prefixed, dots as underscores)
    3. YAML config
    4. Default value

    Args:
        key: The dotted configuration key, e.g. 'retry.max_retries'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the current process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    _config[key] = value
    os.environ[env_var_name(key)] = str(value)
    logger.debug(f"Config set: {key}={value}")


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()


# --- Typed Settings ---

def _as_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {default}.")
        return default


def _as_int(key: str, default: int) -> int:
    value = get_config(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {default}.")
        return default


def _as_bool(key: str, default: bool) -> bool:
    value = get_config(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _as_int_tuple(key: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    """Accepts a YAML list or a comma-separated string ('429,503')."""
    value = get_config(key, default)
    items: List[Any]
    if isinstance(value, str):
        items = [part for part in value.split(',') if part.strip()]
    elif isinstance(value, int):
        items = [value]
    else:
        items = list(value)
    try:
        return tuple(int(item) for item in items)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {default}.")
        return default


@dataclass
class RetrySettings:
    max_retries: int = DEFAULT_MAX_RETRIES
    min_delay: float = DEFAULT_MIN_RETRY_DELAY
    max_delay: float = DEFAULT_MAX_RETRY_DELAY
    status_codes: Tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES


@dataclass
class RateLimitSettings:
    enabled: bool = True
    rate: float = 2.0
    burst: int = 1


@dataclass
class CacheSettings:
    enabled: bool = False
    capacity: int = 128
    default_ttl: float = 15 * 60
    directory: Optional[Path] = None  # L2 disk cache disabled when None


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    file: Optional[str] = None


@dataclass
class ClientSettings:
    """Everything needed to build a Client and configure logging."""
    namespace: str = build.NAME
    timeout: float = 10.0
    debug: bool = False
    retry: RetrySettings = field(default_factory=RetrySettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_client_settings() -> ClientSettings:
    """Builds ClientSettings from the loaded configuration sources."""
    load_configuration()

    cache_dir = get_config('cache.directory')
    if cache_dir is None and _as_bool('cache.disk', False):
        cache_dir = DEFAULT_CACHE_DIR

    log_file = get_config('logging.file')

    return ClientSettings(
        namespace=str(get_config('client.namespace', build.NAME)),
        timeout=_as_float('client.timeout', 10.0),
        debug=_as_bool('client.debug', False),
        retry=RetrySettings(
            max_retries=_as_int('retry.max_retries', DEFAULT_MAX_RETRIES),
            min_delay=_as_float('retry.min_delay', DEFAULT_MIN_RETRY_DELAY),
            max_delay=_as_float('retry.max_delay', DEFAULT_MAX_RETRY_DELAY),
            status_codes=_as_int_tuple('retry.status_codes', DEFAULT_RETRYABLE_STATUS_CODES),
        ),
        rate_limit=RateLimitSettings(
            enabled=_as_bool('rate_limit.enabled', True),
            rate=_as_float('rate_limit.rate', 2.0),
            burst=_as_int('rate_limit.burst', 1),
        ),
        cache=CacheSettings(
            enabled=_as_bool('cache.enabled', False),
            capacity=_as_int('cache.capacity', 128),
            default_ttl=_as_float('cache.default_ttl', 15 * 60),
            directory=Path(cache_dir).expanduser() if cache_dir else None,
        ),
        logging=LoggingSettings(
            level=str(get_config('logging.level', 'INFO')).upper(),
            format=str(get_config('logging.format', DEFAULT_LOG_FORMAT)),
            file=str(log_file) if log_file else None,
        ),
    )
