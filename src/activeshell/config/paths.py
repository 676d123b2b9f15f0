"""Platform-aware configuration path resolution.

- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), $XDG_CONFIG_HOME, ~/.config/activeshell/ or ~/.activeshell/ (user)
- Project: $root/.activeshell/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "activeshell"
PROJECT_DIR = ".activeshell"


def get_system_config_path() -> Path | None:
    """System-level config path (may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    """User-level config path (may not exist)."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / PROJECT_DIR / CONFIG_FILENAME


def get_project_config_path(root: str) -> Path:
    """Project-level config path under ``root`` (may not exist)."""
    return Path(root) / PROJECT_DIR / CONFIG_FILENAME


def get_config_paths(root: str | None = None) -> list[Path]:
    """All config paths, lowest priority first."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if root:
        candidates.append(get_project_config_path(root))
    return [p for p in candidates if p is not None]
