"""
scratchkit configuration loader.

Loads optional settings from .scratchkit/config.yaml under the project root.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".scratchkit"
CONFIG_FILE = "config.yaml"

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "features": {
        "default_type": ["Website"],
        "dynamic": True,
        "default": False,
    },
    "migration": {
        "run_on": "/",
    },
    "version": {
        "manifest_name": "manifest.json",
        "package_file": "package.json",
        "fallback": "...",
    },
}


def load_raw_config(root: Path) -> Dict[str, Any]:
    """
    Load .scratchkit/config.yaml.

    Args:
        root: Project root path

    Returns:
        Parsed configuration dict, or empty dict if the file doesn't exist
        or can't be parsed

    Example config:
        features:
          default_type: [Website, Editor]
        migration:
          run_on: "/projects/*"
        version:
          manifest_name: manifest.json
    """
    config_path = Path(root) / CONFIG_DIR / CONFIG_FILE

    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}

    if not isinstance(config, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", config_path)
        return {}
    return config


def load_config(root: Path) -> Dict[str, Dict[str, Any]]:
    """
    Get the full configuration with defaults applied.

    Args:
        root: Project root path

    Returns:
        Configuration dict with one mapping per section
    """
    raw = load_raw_config(root)
    config = copy.deepcopy(DEFAULTS)

    for section, defaults in config.items():
        overrides = raw.get(section) or {}
        if not isinstance(overrides, dict):
            continue
        for key in defaults:
            if key in overrides:
                defaults[key] = overrides[key]

    return config
