"""
cartscope configuration.

Configuration priority (highest to lowest):
1. Environment variables (CARTSCOPE_BACKEND_URL, ...)
2. Local config file (~/.cartscope/config.json)
3. Production defaults

Usage:
    from cartscope.config import config

    url = config.BACKEND_URL
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DEFAULTS: dict[str, Any] = {
    "BACKEND_URL": "https://aunpbdtpdp.us-west-2.awsapprunner.com",
    "FETCH_IP_URL": "https://api.ipify.org/?format=json",
    "SOURCE": "chatgpt-extension",
    "HTTP_TIMEOUT": 10.0,
    "IP_TIMEOUT": 5.0,
    "STATE_DIR": "~/.cartscope",
}

_ENV_PREFIX = "CARTSCOPE_"

LOCAL_CONFIG_PATH = Path.home() / ".cartscope" / "config.json"


def _load_local_config(path: Path) -> dict[str, Any]:
    """Load the local config file if it exists."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a JSON object")
        return {}
    return data


def _get_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid timeout {value!r}, using {default}")
        return default


@dataclass(frozen=True)
class CartScopeConfig:
    """Immutable configuration object."""

    BACKEND_URL: str
    FETCH_IP_URL: str
    SOURCE: str
    HTTP_TIMEOUT: float
    IP_TIMEOUT: float
    STATE_DIR: Path

    @property
    def SETTINGS_PATH(self) -> Path:
        return self.STATE_DIR / "settings.json"


def build_config(
    env: Mapping[str, str] | None = None,
    local_path: Path | None = None,
) -> CartScopeConfig:
    """Build configuration from all sources."""
    env = os.environ if env is None else env
    values = {**_DEFAULTS}

    local_config = _load_local_config(local_path or LOCAL_CONFIG_PATH)
    for key in values:
        if key in local_config:
            values[key] = local_config[key]

    for key in values:
        if _ENV_PREFIX + key in env:
            values[key] = env[_ENV_PREFIX + key]

    return CartScopeConfig(
        BACKEND_URL=str(values["BACKEND_URL"]).rstrip("/"),
        FETCH_IP_URL=str(values["FETCH_IP_URL"]),
        SOURCE=str(values["SOURCE"]),
        HTTP_TIMEOUT=_get_float(values["HTTP_TIMEOUT"], _DEFAULTS["HTTP_TIMEOUT"]),
        IP_TIMEOUT=_get_float(values["IP_TIMEOUT"], _DEFAULTS["IP_TIMEOUT"]),
        STATE_DIR=Path(str(values["STATE_DIR"])).expanduser(),
    )


# Singleton config instance
config = build_config()
