"""
Configuration management for kana
Loads site settings from kana.yml files and builds the site descriptor
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml

from .errors import ConfigError
from .models import ARTIFACT_TYPES, DATABASE_ENGINES, MULTISITE_MODES, SiteDescriptor
from ..utils.logger import get_module_logger

logger = get_module_logger("config")

GLOBAL_CONFIG_NAME = "kana.yml"
LOCAL_CONFIG_NAME = ".kana.yml"
IMAGE_CACHE_NAME = "images.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "type": "site",
    "php": "8.2",
    "domain_suffix": "sites.cfw.li",
    "ssl": True,
    "automatic_login": True,
    "wp_debug": False,
    "script_debug": False,
    "environment": "local",
    "multisite": "none",
    "database": "mariadb",
    "phpmyadmin": False,
    "mailpit": False,
    "update_interval": 14,
}

BOOLEAN_SETTINGS = (
    "ssl", "automatic_login", "wp_debug", "script_debug", "phpmyadmin", "mailpit",
)


class TimeoutConfig:
    """Centralized timeout configuration"""

    # Docker availability
    ENGINE_MAX_ATTEMPTS = int(os.getenv('KANA_ENGINE_RETRIES', '12'))
    ENGINE_RETRY_INTERVAL = float(os.getenv('KANA_ENGINE_RETRY_INTERVAL', '5'))

    # Database readiness after start
    DB_READY_TIMEOUT = float(os.getenv('KANA_DB_READY_TIMEOUT', '30'))
    DB_POLL_INTERVAL = 1.0

    # Container stop
    CONTAINER_STOP_TIMEOUT = int(os.getenv('KANA_STOP_TIMEOUT', '10'))

    @classmethod
    def log_config(cls):
        """Log current timeout configuration"""
        logger.debug("Timeout Configuration:")
        logger.debug("  Docker availability: %d attempts, %.1fs apart",
                     cls.ENGINE_MAX_ATTEMPTS, cls.ENGINE_RETRY_INTERVAL)
        logger.debug("  Database ready: %.1fs (poll interval: %.1fs)",
                     cls.DB_READY_TIMEOUT, cls.DB_POLL_INTERVAL)
        logger.debug("  Container stop: %ds", cls.CONTAINER_STOP_TIMEOUT)


def get_app_dir() -> Path:
    """Directory holding global settings, the image cache and named sites"""
    override = os.getenv("KANA_APP_DIR")
    if override:
        return Path(override).expanduser()
    return Path(typer.get_app_dir("kana"))


def sanitize_site_name(name: str) -> str:
    """
    Turn a directory name into a site name usable in container and host names

    Examples:
        >>> sanitize_site_name("My Plugin_v2")
        'my-plugin-v2'
    """
    sanitized = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    if not sanitized:
        raise ConfigError(f"Cannot derive a site name from {name!r}")
    return sanitized


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read one settings file; a missing file is an empty one"""
    if not path.exists():
        return {}

    try:
        with path.open("r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")

    unknown = set(data) - set(DEFAULT_SETTINGS) - {"name"}
    if unknown:
        logger.warning("Ignoring unknown settings in %s: %s", path, ", ".join(sorted(unknown)))

    logger.debug("Loaded settings from %s", path)
    return {k: v for k, v in data.items() if k in DEFAULT_SETTINGS or k == "name"}


def validate_settings(settings: Dict[str, Any]):
    """Raise ConfigError for values the container layer cannot work with"""
    if settings["type"] not in ARTIFACT_TYPES:
        raise ConfigError(
            f"Invalid type {settings['type']!r}, expected one of {', '.join(ARTIFACT_TYPES)}"
        )
    if settings["database"] not in DATABASE_ENGINES:
        raise ConfigError(
            f"Invalid database {settings['database']!r}, expected one of {', '.join(DATABASE_ENGINES)}"
        )
    if settings["multisite"] not in MULTISITE_MODES:
        raise ConfigError(
            f"Invalid multisite {settings['multisite']!r}, expected one of {', '.join(MULTISITE_MODES)}"
        )
    for key in BOOLEAN_SETTINGS:
        # a quoted "false" would otherwise be truthy
        if not isinstance(settings[key], bool):
            raise ConfigError(f"Invalid {key} {settings[key]!r}, expected true or false")
    if not re.fullmatch(r"\d+(\.\d+)*", str(settings["php"])):
        raise ConfigError(f"Invalid php version {settings['php']!r}")
    try:
        if int(settings["update_interval"]) < 0:
            raise ConfigError("update_interval cannot be negative")
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid update_interval {settings['update_interval']!r}") from e


def load_settings(
    working_directory: Path,
    name: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    app_dir: Optional[Path] = None,
) -> SiteDescriptor:
    """
    Build the descriptor for the site in working_directory

    Settings are layered: defaults, then the global kana.yml in the app
    directory, then .kana.yml in the working directory, then overrides
    (None values in overrides are ignored). Passing name makes this a named
    site whose files live under the app directory.
    """
    working_directory = Path(working_directory).resolve()
    app_dir = Path(app_dir) if app_dir else get_app_dir()

    settings = dict(DEFAULT_SETTINGS)
    settings.update(_read_yaml(app_dir / GLOBAL_CONFIG_NAME))
    settings.update(_read_yaml(working_directory / LOCAL_CONFIG_NAME))
    settings.update({k: v for k, v in (overrides or {}).items() if v is not None})

    validate_settings(settings)

    is_named_site = bool(name)
    site_name = sanitize_site_name(name or settings.get("name") or working_directory.name)

    return SiteDescriptor(
        name=site_name,
        working_directory=working_directory,
        site_directory=app_dir / "sites" / site_name,
        artifact_type=settings["type"],
        domain=f"{site_name}.{settings['domain_suffix']}",
        php=str(settings["php"]),
        automatic_login=settings["automatic_login"],
        wp_debug=settings["wp_debug"],
        script_debug=settings["script_debug"],
        environment=str(settings["environment"] or ""),
        multisite=settings["multisite"],
        database=settings["database"],
        ssl=settings["ssl"],
        is_named_site=is_named_site,
        phpmyadmin=settings["phpmyadmin"],
        mailpit=settings["mailpit"],
        update_interval=int(settings["update_interval"]),
    )
