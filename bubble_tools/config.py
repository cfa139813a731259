"""
Configuration for the bubble CLI.

Sources (later wins):
    1. DEFAULT_CONFIG
    2. <app_dir>/config.toml
    3. Environment: BUBBLE_TOOLS_HOME, BUBBLE_TOOLS_LOG_LEVEL, BUBBLE_TOOLS_KEY
    4. Explicit overrides (CLI flags)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from bubble_tools import APP_DIR_NAME, CONFIG_FILE, DEFAULT_KEY

log = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "app_dir": str(Path.home() / APP_DIR_NAME),
    "log_level": "WARNING",
    "default_key": DEFAULT_KEY,
    "chain": None,
}

_ENV_VARS = {
    "BUBBLE_TOOLS_HOME": "app_dir",
    "BUBBLE_TOOLS_LOG_LEVEL": "log_level",
    "BUBBLE_TOOLS_KEY": "default_key",
}


def default_app_dir() -> Path:
    """App directory from BUBBLE_TOOLS_HOME or ~/.bubble-tools."""
    return Path(os.environ.get("BUBBLE_TOOLS_HOME") or DEFAULT_CONFIG["app_dir"])


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        import tomllib
    except ImportError:
        try:
            import tomli as tomllib
        except ImportError:
            log.warning("tomllib/tomli not available, ignoring %s", path)
            return {}

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        log.warning("Failed to load config from %s: %s", path, e)
        return {}


def load_config(
    app_dir: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the effective configuration.

    ``app_dir`` selects where config.toml is read from; it also becomes the
    configured app_dir. Unknown keys in the file are kept as-is.
    """
    config = dict(DEFAULT_CONFIG)

    env = {key: os.environ[var] for var, key in _ENV_VARS.items() if os.environ.get(var)}
    root = Path(app_dir) if app_dir else Path(env.get("app_dir", config["app_dir"]))

    path = root / CONFIG_FILE
    if path.is_file():
        config.update(_read_toml(path))

    config.update(env)
    config["app_dir"] = str(root)
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})
    return config
