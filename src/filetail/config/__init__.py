"""Configuration for filetail.

Per-entry-point config records (validated on construction) and a
cascading YAML settings layer:
- System-level (/etc/filetail/ or %PROGRAMDATA%)
- User-level (~/.config/filetail/, ~/.filetail/ or %APPDATA%)
- Project-level ($project_root/.filetail/)
- Environment variable overrides (highest priority)

Example usage:
    from filetail.config import load_settings

    settings = load_settings(project_root=".")
    print(settings.tail.poll_interval)
"""

from filetail.config.loader import (
    dict_to_settings,
    load_settings,
    merge_settings,
)
from filetail.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from filetail.config.schema import (
    LinesConfig,
    LoggingConfig,
    Settings,
    TailConfig,
    WatchConfig,
)

__all__ = [
    # Main API
    "load_settings",
    "dict_to_settings",
    "merge_settings",
    # Schema types
    "Settings",
    "WatchConfig",
    "TailConfig",
    "LinesConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
