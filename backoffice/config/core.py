"""
config.yaml discovery and loading.

The file holds infrastructure settings only (Redis, HTTP caching, blockchain
providers, logging, CORS); credentials come from the environment. String
values may reference environment variables as ``$VAR`` or ``${VAR}``.

Lookup order: ``$BACKOFFICE_CONFIG``, the working directory, the project root.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml
from pydantic import ValidationError

from backoffice.config.models import InfrastructureConfig

logger = logging.getLogger(__name__)

INFRASTRUCTURE_CONFIG_FILE = "config.yaml"
CONFIG_PATH_ENV_VAR = "BACKOFFICE_CONFIG"

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_BRACED_VAR = re.compile(r"\$\{([^}]+)\}")

_loaded_files: Dict[str, Dict[str, Any]] = {}


def substitute_env_vars(value: str) -> str:
    """Expand ``${VAR}`` anywhere and a bare ``$VAR`` spanning the whole value.

    Variables that are not set stay as written.
    """
    if not isinstance(value, str):
        return value

    expanded = _BRACED_VAR.sub(lambda match: os.getenv(match.group(1), match.group(0)), value)

    name = expanded[1:]
    if expanded.startswith("$") and name.isidentifier():
        return os.getenv(name, expanded)
    return expanded


def _expand_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _expand_tree(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand_tree(item) for item in node]
    if isinstance(node, str):
        return substitute_env_vars(node)
    return node


def find_config_file(
    filename: str = INFRASTRUCTURE_CONFIG_FILE,
    search_paths: Optional[Sequence[Path]] = None,
    env_var: Optional[str] = CONFIG_PATH_ENV_VAR,
) -> Optional[Path]:
    """
    Locate a config file.

    An existing path in ``env_var`` wins. Otherwise the first directory in
    ``search_paths`` (default: working directory, then project root) that
    contains ``filename`` is used. Returns None when nothing matches.
    """
    override = os.getenv(env_var) if env_var else None
    if override:
        if Path(override).is_file():
            return Path(override)
        logger.warning(f"{env_var}={override} does not exist, searching default locations")

    if search_paths is None:
        search_paths = [Path.cwd(), _PROJECT_ROOT]

    for directory in search_paths:
        candidate = Path(directory) / filename
        if candidate.is_file():
            return candidate
    return None


def load_yaml_config(file_path: str, use_cache: bool = True) -> Dict[str, Any]:
    """Read a YAML mapping with environment variables expanded.

    Missing or empty files yield an empty dict.
    """
    if use_cache and file_path in _loaded_files:
        return _loaded_files[file_path]

    path = Path(file_path)
    if not path.is_file():
        logger.warning(f"Configuration file not found: {file_path}")
        return {}

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring {file_path}: top level is not a mapping")
        return {}

    settings = _expand_tree(raw)
    logger.debug(f"Loaded {len(settings)} top-level settings from {file_path}")

    if use_cache:
        _loaded_files[file_path] = settings
    return settings


def clear_config_cache():
    """Forget loaded files so the next access re-reads config.yaml."""
    _loaded_files.clear()
    load_infrastructure_config.cache_clear()


@lru_cache(maxsize=1)
def load_infrastructure_config(config_path: Optional[str] = None) -> InfrastructureConfig:
    path = Path(config_path) if config_path else find_config_file()
    if path is None:
        logger.warning("No config.yaml found, using built-in defaults")
        return InfrastructureConfig()

    try:
        return InfrastructureConfig(**load_yaml_config(str(path)))
    except ValidationError as e:
        logger.warning(f"Invalid settings in {path}, using built-in defaults: {e}")
        return InfrastructureConfig()


def get_infrastructure_config() -> InfrastructureConfig:
    return load_infrastructure_config()
