"""Configuration loading for jobtop.

Settings come from, in increasing priority: built-in defaults, the YAML file
(``.jobtop/config.yaml`` or the path in ``JOBTOP_CONFIG``/``--config``),
environment variables, and finally CLI flags (applied by ``cli.py``).

Example ``.jobtop/config.yaml``::

    server:
      url: http://localhost:9292
      api_key: secret
      timeout: 10
    refresh_interval: 2
    initial_view: queues
    job_limit: 500
    log_file: .jobtop/logs/jobtop.log
    log_level: INFO
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .models import VIEW_ORDER, View

CONFIG_ENV = "JOBTOP_CONFIG"
URL_ENV = "JOBTOP_URL"
API_KEY_ENV = "JOBTOP_API_KEY"

DEFAULT_REFRESH_INTERVAL = 2.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_JOB_LIMIT = 500
DEFAULT_LOG_LEVEL = "WARNING"


def get_config_dir() -> Path:
    return Path.cwd() / ".jobtop"


def get_default_config_path() -> Path:
    return get_config_dir() / "config.yaml"


def get_default_log_path() -> Path:
    return get_config_dir() / "logs" / "jobtop.log"


@dataclass
class Settings:
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    initial_view: View = View.MAIN
    job_limit: int = DEFAULT_JOB_LIMIT
    log_file: Path = field(default_factory=get_default_log_path)
    log_level: str = DEFAULT_LOG_LEVEL


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a dict (empty file -> empty dict)."""
    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return config


def _positive(value: Any, name: str, cast=float):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def parse_view(value: Any) -> View:
    name = str(value).lower()
    if name not in VIEW_ORDER:
        valid = ", ".join(v.value for v in VIEW_ORDER)
        raise ConfigError(f"Unknown view {value!r} (expected one of: {valid})")
    return View(name)


def parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Unknown log level {value!r}")
    return level


def load_settings(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from the config file and environment.

    Args:
        config_path: Explicit config file; it must exist. Without one,
            ``JOBTOP_CONFIG`` and then ``.jobtop/config.yaml`` are tried, and a
            missing default file just means defaults.
        env: Environment mapping, ``os.environ`` when omitted.

    Raises:
        ConfigError: the file is unreadable or holds invalid values.
    """
    if env is None:
        env = os.environ

    explicit = config_path is not None or bool(env.get(CONFIG_ENV))
    path = Path(config_path or env.get(CONFIG_ENV) or get_default_config_path())
    if path.exists():
        config = load_config_file(path)
    elif explicit:
        raise ConfigError(f"Config file not found: {path}")
    else:
        config = {}

    server = config.get("server") or {}
    if not isinstance(server, dict):
        raise ConfigError("'server' must be a mapping")

    settings = Settings()
    settings.url = env.get(URL_ENV) or server.get("url") or None
    settings.api_key = env.get(API_KEY_ENV) or server.get("api_key") or None
    if "timeout" in server:
        settings.timeout = _positive(server["timeout"], "server.timeout")
    if "refresh_interval" in config:
        settings.refresh_interval = _positive(config["refresh_interval"], "refresh_interval")
    if "initial_view" in config:
        settings.initial_view = parse_view(config["initial_view"])
    if "job_limit" in config:
        settings.job_limit = _positive(config["job_limit"], "job_limit", cast=int)
    if config.get("log_file"):
        settings.log_file = Path(config["log_file"])
    if "log_level" in config:
        settings.log_level = parse_log_level(config["log_level"])
    return settings
