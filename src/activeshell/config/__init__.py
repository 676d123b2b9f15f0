"""Configuration management for activeshell.

Hierarchical YAML configuration:
- System-level config (/etc/activeshell/ or %PROGRAMDATA%)
- User-level config (~/.config/activeshell/ or %APPDATA%)
- Project-level config ($root/.activeshell/)
- Environment variable overrides (highest priority)

Example usage:
    from activeshell.config import load_config

    config = load_config(root="/path/to/project")
    print(config.shell.default_timeout_ms)
"""

from activeshell.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from activeshell.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from activeshell.config.schema import (
    Config,
    LoggingConfig,
    ShellConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "LoggingConfig",
    "ShellConfig",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
