"""Runtime configuration: YAML config file plus environment overrides.

Values are copied onto ``Constants`` so the rest of the code keeps reading a
single data holder. Loading never raises; a broken config file is logged and
ignored so that resolution can still run with defaults.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from .constants import Constants

logger = logging.getLogger(__name__)


def default_config_path() -> str:
    """Return the per-user config file location."""
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    if os.name == "nt":
        base = os.environ.get("APPDATA", base)
    return os.path.join(base, "canonpack", "config.yml")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Explicit path. Falls back to $CANONPACK_CONFIG, then the
            per-user default location.

    Returns:
        Configuration dict, empty when no usable file exists.
    """
    path = config_path or os.environ.get(Constants.ENV_CONFIG) or default_config_path()
    if not os.path.isfile(path):
        if config_path:
            logger.warning("Config file not found: %s", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}

    if isinstance(data, dict):
        return data
    logger.warning("Ignoring config file %s: top level is not a mapping", path)
    return {}


def _dig(cfg: Dict[str, Any], dot_path: str) -> Any:
    node: Any = cfg
    for part in dot_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _as_int(value: Any, key: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer value for %s: %r", key, value)
        return None


def apply_config(cfg: Optional[Dict[str, Any]] = None) -> None:
    """Apply config file values, then environment overrides, onto Constants.

    Recognized keys: http.timeout, http.retries, registry.default,
    registry.listing_ttl, cache.root.
    """
    cfg = cfg or {}

    timeout = _dig(cfg, "http.timeout")
    if timeout is not None:
        value = _as_int(timeout, "http.timeout")
        if value is not None:
            Constants.REQUEST_TIMEOUT = value
    retries = _dig(cfg, "http.retries")
    if retries is not None:
        value = _as_int(retries, "http.retries")
        if value is not None:
            Constants.HTTP_RETRY_MAX = max(1, value)
    ttl = _dig(cfg, "registry.listing_ttl")
    if ttl is not None:
        value = _as_int(ttl, "registry.listing_ttl")
        if value is not None:
            Constants.LISTING_CACHE_TTL_SEC = value
    registry = _dig(cfg, "registry.default")
    if registry:
        Constants.DEFAULT_REGISTRY = str(registry)
    cache_root = _dig(cfg, "cache.root")
    if cache_root:
        Constants.CACHE_ROOT = os.path.expanduser(str(cache_root))

    # Environment wins over the file
    env_registry = os.environ.get(Constants.ENV_REGISTRY)
    if env_registry:
        Constants.DEFAULT_REGISTRY = env_registry.strip()
    env_cache = os.environ.get(Constants.ENV_CACHE_ROOT)
    if env_cache:
        Constants.CACHE_ROOT = os.path.expanduser(env_cache.strip())
    env_timeout = os.environ.get(Constants.ENV_TIMEOUT)
    if env_timeout:
        value = _as_int(env_timeout, Constants.ENV_TIMEOUT)
        if value is not None:
            Constants.REQUEST_TIMEOUT = value
