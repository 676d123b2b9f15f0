"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Cascading merge (system -> user -> project -> env)
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from activeshell.config.paths import get_config_paths
from activeshell.config.schema import Config, LoggingConfig, ShellConfig

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("activeshell.config")

_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge config dicts, later layers winning.

    Nested dicts merge key by key, lists and scalars replace, and a None
    value leaves the lower layer untouched.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in (layer or {}).items():
            if value is None:
                continue
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = value
    return merged


def env_overrides() -> dict[str, Any]:
    """Config values taken from ACTIVESHELL_* environment variables."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("ACTIVESHELL_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    log_level = os.environ.get("ACTIVESHELL_LOG_LEVEL")
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level

    timeout = os.environ.get("ACTIVESHELL_TIMEOUT_MS")
    if timeout:
        try:
            overrides.setdefault("shell", {})["default_timeout_ms"] = int(timeout)
        except ValueError:
            _log.warning("Ignoring non-integer ACTIVESHELL_TIMEOUT_MS=%r", timeout)

    return overrides


def _positive_int(value: Any, default: int, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    if value is not None:
        _log.warning("Ignoring invalid %s=%r, using %d", name, value, default)
    return default


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    defaults = ShellConfig()

    shell_data = data.get("shell") or {}
    env_data = shell_data.get("env") or {}
    grace = shell_data.get("close_grace_seconds", defaults.close_grace_seconds)
    if not isinstance(grace, (int, float)) or isinstance(grace, bool) or grace < 0:
        _log.warning("Ignoring invalid shell.close_grace_seconds=%r", grace)
        grace = defaults.close_grace_seconds

    shell = ShellConfig(
        default_timeout_ms=_positive_int(
            shell_data.get("default_timeout_ms"),
            defaults.default_timeout_ms,
            "shell.default_timeout_ms",
        ),
        max_output_chars=_positive_int(
            shell_data.get("max_output_chars"),
            defaults.max_output_chars,
            "shell.max_output_chars",
        ),
        close_grace_seconds=float(grace),
        default_session_id=str(shell_data.get("default_session_id") or defaults.default_session_id),
        env={str(k): str(v) for k, v in env_data.items()} if isinstance(env_data, dict) else {},
    )

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
    )

    for key in sorted(data.keys() - {"shell", "logging"}):
        _log.warning("Ignoring unknown config section %r", key)

    return Config(shell=shell, logging=logging_config)


def load_config(root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($root/.activeshell/config.yaml)
    3. User config
    4. System config

    Args:
        root: Project directory for project-level config.
        reload: Force reload even if cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and root is None:
        return _cached_config

    layers: list[dict[str, Any]] = []
    for path in get_config_paths(root):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            layers.append(layer)
    layers.append(env_overrides())

    config = dict_to_config(merge_layers(*layers))

    # Only the global (rootless) config is cached
    if root is None:
        _cached_config = config
    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config. Used by tests."""
    global _cached_config
    _cached_config = None
