"""Configuration loading and overrides for runtime tunables.

Precedence, lowest to highest: built-in ``Constants`` defaults, the config
file (``--config`` or the first default location found), environment
variables, then CLI flags. A broken config file is reported and ignored so
it never prevents a run.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

_RESOLVER_KEYS = {
    "include_dev": "INCLUDE_DEV",
    "include_build": "INCLUDE_BUILD",
    "allow_multiple_versions": "ALLOW_MULTIPLE_VERSIONS",
    "include_root": "INCLUDE_ROOT",
}


def default_config_paths() -> List[str]:
    """Candidate config files, in lookup order."""
    home = os.path.expanduser(Constants.CONFIG_HOME_DIR)
    return (
        [os.path.join(os.getcwd(), n) for n in Constants.CONFIG_FILE_NAMES]
        + [os.path.join(home, n) for n in Constants.CONFIG_FILE_NAMES]
    )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load a YAML or JSON config file.

    Args:
        config_path: Explicit path; when omitted the default locations are tried.

    Returns:
        Config dict (empty when nothing usable was found).
    """
    if config_path:
        if not os.path.isfile(config_path):
            logger.warning("Config file not found: %s", config_path)
            return {}
        path = config_path
    else:
        path = next((p for p in default_config_paths() if os.path.isfile(p)), None)
        if path is None:
            return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", path)
        return {}
    logger.debug("Loaded config from %s", path)
    return data


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply the ``resolver``, ``index`` and ``output`` sections onto Constants."""
    resolver = cfg.get("resolver") or {}
    if isinstance(resolver, dict):
        for key, attr in _RESOLVER_KEYS.items():
            if key in resolver:
                setattr(Constants, attr, bool(resolver[key]))
    else:
        logger.warning("Ignoring `resolver` config section: expected a mapping")

    index = cfg.get("index")
    if isinstance(index, dict):
        index = index.get("path")
    if isinstance(index, str) and index.strip():
        Constants.INDEX_PATH = os.path.expanduser(index.strip())

    output = cfg.get("output") or {}
    fmt = output.get("format") if isinstance(output, dict) else None
    if isinstance(fmt, str) and fmt.lower() in Constants.OUTPUT_FORMATS:
        Constants.OUTPUT_FORMAT = fmt.lower()
    elif fmt is not None:
        logger.warning("Ignoring output format %r: expected one of %s", fmt, ", ".join(Constants.OUTPUT_FORMATS))


def apply_env_overrides() -> None:
    """Apply environment variable overrides."""
    index = os.environ.get(Constants.INDEX_ENV)
    if index and index.strip():
        Constants.INDEX_PATH = os.path.expanduser(index.strip())


def apply_cli_overrides(args) -> None:
    """Apply CLI flags, which take precedence over every other source."""
    if getattr(args, "INDEX", None):
        Constants.INDEX_PATH = args.INDEX
    if getattr(args, "INCLUDE_DEV", False):
        Constants.INCLUDE_DEV = True
    if getattr(args, "INCLUDE_BUILD", False):
        Constants.INCLUDE_BUILD = True
    if getattr(args, "SINGLE_VERSION", False):
        Constants.ALLOW_MULTIPLE_VERSIONS = False
    if getattr(args, "INCLUDE_ROOT", False):
        Constants.INCLUDE_ROOT = True


def configure(args) -> None:
    """Load config and apply every override layer for a CLI run."""
    apply_config(load_config(getattr(args, "CONFIG", None)))
    apply_env_overrides()
    apply_cli_overrides(args)
