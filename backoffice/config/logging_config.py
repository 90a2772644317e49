"""
Logging setup driven by config.yaml.

``configure_logging()`` runs once from the FastAPI lifespan. ``module_log_levels``
accepts plain logger names and ``group:<name>`` keys that fan out to the
libraries listed in ``LOGGER_GROUPS``::

    module_log_levels:
      group:infrastructure: WARNING
      backoffice.utils.cache: DEBUG
"""

import logging
from typing import Dict

from backoffice.config.settings import get_log_format, get_log_level, get_module_log_levels

LOGGER_GROUPS = {
    # blockchain provider traffic
    "http_clients": ("httpx", "httpcore"),
    "infrastructure": ("fastapi", "uvicorn", "redis", "psycopg", "psycopg_pool"),
}

_configured = False


def expand_module_log_levels(raw_levels: Dict[str, str]) -> Dict[str, str]:
    """Replace ``group:<name>`` entries by one entry per library in the group."""
    levels: Dict[str, str] = {}
    for name, level in raw_levels.items():
        if not name.startswith("group:"):
            levels[name] = level
            continue

        group = name[len("group:"):]
        members = LOGGER_GROUPS.get(group)
        if members is None:
            logging.warning(f"Unknown logger group {group!r}; known groups: {sorted(LOGGER_GROUPS)}")
            continue
        for member in members:
            levels[member] = level
    return levels


def configure_logging(force: bool = False) -> None:
    """Apply root level, format and per-logger levels. No-op on repeat calls unless ``force``."""
    global _configured
    if _configured and not force:
        return

    root_level = get_log_level()
    logging.basicConfig(level=root_level, format=get_log_format(), force=True)

    overrides = expand_module_log_levels(get_module_log_levels())
    for name, level in overrides.items():
        if level not in logging.getLevelNamesMapping():
            logging.warning(f"Ignoring invalid level {level!r} for logger {name!r}")
            continue
        logging.getLogger(name).setLevel(level)

    _configured = True
    logging.getLogger(__name__).debug(f"Logging ready: root={root_level}, overrides={sorted(overrides)}")


def reset_logging_config() -> None:
    global _configured
    _configured = False


def is_logging_configured() -> bool:
    return _configured
