"""
Configuration loader for dcmview.

Settings come from a YAML file merged over built-in defaults, so a missing
file or a partial one is fine. The file is looked up in this order:
an explicit path, ``$DCMVIEW_CONFIG``, ``~/.config/dcmview/config.yaml``.
"""

import os
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV = "DCMVIEW_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/dcmview/config.yaml")

_DEFAULTS: dict[str, Any] = {
    "display": {
        "protocol": "auto",
        "width_ratio": 0.5,
        "min_cols": 8,
        "cell_width": 10,
        "cell_height": 20,
    },
    "probe": {
        "timeout": 0.25,
    },
    "logging": {
        "level": "WARNING",
        "file": None,
        "rotate_bytes": 5 * 1024 * 1024,
        "rotate_keep": 3,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base*, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def config_path(explicit: str | Path | None = None) -> Path:
    if explicit is not None:
        return Path(explicit)
    if os.environ.get(CONFIG_ENV):
        return Path(os.environ[CONFIG_ENV])
    return DEFAULT_CONFIG_PATH.expanduser()


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load the YAML configuration file and merge it with the built-in defaults."""
    path = config_path(path)
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Configuration in {path} must be a mapping, got {type(user_config).__name__}")
    else:
        user_config = {}
    return _deep_merge(_DEFAULTS, user_config)
