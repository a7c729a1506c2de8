"""Library configuration: file + env vars."""

from __future__ import annotations

import functools
import json
import os
from pathlib import Path
from typing import Any

from .api.constants import (
    BLUOS_PORT,
    DEFAULT_TIMEOUT,
    MAX_SCAN_HOSTS,
    PROBE_TIMEOUT,
    RESOLVE_TIMEOUT,
    SCAN_CONCURRENCY,
    SCAN_TIMEOUT,
    STATUS_TIMEOUT,
)

DEFAULTS: dict[str, Any] = {
    "port": BLUOS_PORT,
    "timeout": DEFAULT_TIMEOUT,
    "status_timeout": STATUS_TIMEOUT,
    "probe_timeout": PROBE_TIMEOUT,
    "scan_timeout": SCAN_TIMEOUT,
    "scan_concurrency": SCAN_CONCURRENCY,
    "max_hosts": MAX_SCAN_HOSTS,
    "resolve_timeout": RESOLVE_TIMEOUT,
}

# key -> (env var, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "port": ("BLUESHIFT_PORT", int),
    "timeout": ("BLUESHIFT_TIMEOUT", float),
    "status_timeout": ("BLUESHIFT_STATUS_TIMEOUT", float),
    "probe_timeout": ("BLUESHIFT_PROBE_TIMEOUT", float),
    "scan_timeout": ("BLUESHIFT_SCAN_TIMEOUT", float),
    "scan_concurrency": ("BLUESHIFT_SCAN_CONCURRENCY", int),
    "max_hosts": ("BLUESHIFT_MAX_HOSTS", int),
    "resolve_timeout": ("BLUESHIFT_RESOLVE_TIMEOUT", float),
}


def _default_config_path() -> Path:
    """Default config file path (XDG ~/.config/blueshift/config.json)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", os.path.expanduser("~")))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")))
    return base / "blueshift" / "config.json"


def load_config() -> dict[str, Any]:
    """Load config from file and env vars. Env vars override file values.

    Config file: BLUESHIFT_CONFIG_FILE or ~/.config/blueshift/config.json
    Keys: port, timeout, status_timeout, probe_timeout, scan_timeout,
    scan_concurrency, max_hosts, resolve_timeout

    Env overrides: BLUESHIFT_<KEY> (e.g. BLUESHIFT_PROBE_TIMEOUT=1.5).
    Values that cannot be converted are ignored.
    """
    cfg: dict[str, Any] = {}

    path = os.environ.get("BLUESHIFT_CONFIG_FILE") or str(_default_config_path())
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                file_cfg = json.load(f)
        except (json.JSONDecodeError, OSError):
            file_cfg = {}
        if isinstance(file_cfg, dict):
            for key, (_, convert) in _ENV_OVERRIDES.items():
                if key not in file_cfg:
                    continue
                try:
                    cfg[key] = convert(file_cfg[key])
                except (TypeError, ValueError):
                    pass

    for key, (env_name, convert) in _ENV_OVERRIDES.items():
        if env := os.environ.get(env_name):
            try:
                cfg[key] = convert(env)
            except ValueError:
                pass

    return cfg


@functools.lru_cache(maxsize=1)
def _cached_settings() -> dict[str, Any]:
    return {**DEFAULTS, **load_config()}


def get_settings() -> dict[str, Any]:
    """Return the effective settings: defaults overlaid with load_config().

    The config file is read once per process; call reload_settings() after
    changing it or the BLUESHIFT_* environment.
    """
    return dict(_cached_settings())


def reload_settings() -> dict[str, Any]:
    """Drop the cached settings and read config file and env vars again."""
    _cached_settings.cache_clear()
    return get_settings()


def setting(name: str, value: Any = None) -> Any:
    """Return value if given, otherwise the configured setting for name."""
    if value is not None:
        return value
    return _cached_settings()[name]
