"""Runtime configuration: config file, environment and CLI overrides.

Precedence, highest first: CLI flags, environment variables, the config file
given with ``--config`` (YAML or JSON), then the defaults in ``Constants``.
Resolved values are applied onto ``Constants`` so every module reads one
source of truth.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config-file key -> (Constants attribute, coercion)
_TUNABLES = {
    "cache_dir": ("CACHE_DIR", str),
    "results_dir": ("RESULTS_DIR", str),
    "query": ("QUERY", str),
    "max_pages": ("MAX_PAGES", int),
    "max_workers": ("MAX_WORKERS", int),
    "request_timeout": ("REQUEST_TIMEOUT", int),
}

# Constants attribute -> environment variable
_ENV_OVERRIDES = {
    "CACHE_DIR": Constants.ENV_CACHE_DIR,
    "RESULTS_DIR": Constants.ENV_RESULTS_DIR,
}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load configuration from a YAML/YML or JSON file.

    A missing or unreadable file is logged and treated as empty.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            if config_path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        logger.error("Failed to load config: %s", exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config file without a top-level mapping: %s", config_path)
        return {}
    return data


def is_truthy(value: Any) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def apply_overrides(args: Any, config: Optional[Dict[str, Any]] = None) -> None:
    """Apply config file, environment and CLI values onto ``Constants``."""
    config = config or {}

    for key, (attr, coerce) in _TUNABLES.items():
        if config.get(key) is not None:
            try:
                setattr(Constants, attr, coerce(config[key]))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid config value %s=%r", key, config[key])

    for attr, env_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value and env_value.strip():
            setattr(Constants, attr, env_value.strip())

    if getattr(args, "CACHE_DIR", None):
        Constants.CACHE_DIR = args.CACHE_DIR
    if getattr(args, "RESULTS_DIR", None):
        Constants.RESULTS_DIR = args.RESULTS_DIR
    if getattr(args, "QUERY", None):
        Constants.QUERY = args.QUERY
    if getattr(args, "MAX_PAGES", None) is not None:
        Constants.MAX_PAGES = int(args.MAX_PAGES)
    if getattr(args, "MAX_WORKERS", None) is not None:
        Constants.MAX_WORKERS = max(1, int(args.MAX_WORKERS))


def is_debug_mode(args: Any, config: Optional[Dict[str, Any]] = None) -> bool:
    """Debug mode: strict one-at-a-time classification and DEBUG logging."""
    if getattr(args, "DEBUG", False):
        return True
    if is_truthy(os.environ.get(Constants.ENV_DEBUG, "")):
        return True
    return is_truthy((config or {}).get("debug", False))


def get_github_token(args: Any, config: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Get the GitHub token from CLI, environment or config file, in that order."""
    cli_token = getattr(args, "GITHUB_TOKEN", None)
    if cli_token and cli_token.strip():
        return cli_token.strip()

    env_token = os.environ.get(Constants.ENV_GITHUB_TOKEN)
    if env_token and env_token.strip():
        return env_token.strip()

    config_token = (config or {}).get("github_token")
    if isinstance(config_token, str) and config_token.strip():
        return config_token.strip()

    return None
