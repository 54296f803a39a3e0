"""
Server configuration file support.

Reads/writes ``~/.speedtest-server/config.json``.  Command-line flags
override whatever is stored here.

Supported keys::

    host = "0.0.0.0"         # bind address
    port = 8080
    static_dir = "static"    # index.html and assets
    test_duration = 60.0     # seconds per /api/speedtest loop
    log_level = "INFO"
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_STATIC_DIR,
    DEFAULT_TEST_DURATION,
)

_CONFIG_DIR = os.path.join(Path.home(), ".speedtest-server")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "host": DEFAULT_HOST,
    "port": DEFAULT_PORT,
    "static_dir": DEFAULT_STATIC_DIR,
    "test_duration": DEFAULT_TEST_DURATION,
    "log_level": "INFO",
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update({k: v for k, v in user.items() if k in DEFAULTS})
    except (json.JSONDecodeError, IOError):
        pass  # corrupt file; use defaults

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    config = load_config()
    config[key] = value
    return save_config(config)


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()
