"""Platform-aware settings path resolution.

Handles settings file locations for:
- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), ~/.config/filetail/ or ~/.filetail/ (user)
- Project: $project_root/.filetail/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "filetail"
SHORT_NAME = ".filetail"


def get_system_config_path() -> Path | None:
    """Get system-level settings path (the file may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
    else:
        return Path("/etc") / APP_NAME / CONFIG_FILENAME
    return None


def get_user_config_path() -> Path | None:
    """Get user-level settings path (the file may not exist)."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

        home = Path.home()
        xdg_default = home / ".config"
        if xdg_default.exists():
            return xdg_default / APP_NAME / CONFIG_FILENAME

        return home / SHORT_NAME / CONFIG_FILENAME

    return None


def get_project_config_path(project_root: str | Path) -> Path:
    """Get project-level settings path (may not exist)."""
    return Path(project_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(project_root: str | Path | None = None) -> list[Path]:
    """Get all settings paths in priority order (lowest to highest).

    Args:
        project_root: Optional directory for project-level settings.

    Returns:
        List of paths in order: system, user, project.
    """
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if project_root:
        paths.append(get_project_config_path(project_root))

    return paths
