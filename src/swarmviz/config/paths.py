"""Platform-aware configuration path resolution.

- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/swarmviz (system), $XDG_CONFIG_HOME, ~/.config/swarmviz or ~/.swarmviz (user)
- Project: <project_root>/.swarmviz/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
ENV_FILENAME = ".env"
APP_NAME = "swarmviz"
PROJECT_DIR = ".swarmviz"


def get_system_config_path() -> Path | None:
    """Path of the system-wide config file (may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    """Path of the per-user config file (may not exist)."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        return Path(app_data) / APP_NAME / CONFIG_FILENAME if app_data else None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / f".{APP_NAME}" / CONFIG_FILENAME


def get_project_config_path(project_root: str | Path) -> Path:
    """Path of the project-level config file (may not exist)."""
    return Path(project_root) / PROJECT_DIR / CONFIG_FILENAME


def get_env_file_path(project_root: str | Path | None = None) -> Path:
    """Path of the optional ``.env`` file read for env-style settings."""
    return Path(project_root or Path.cwd()) / ENV_FILENAME


def get_config_paths(project_root: str | Path | None = None) -> list[Path]:
    """All config paths, lowest priority first: system, user, project."""
    paths = [p for p in (get_system_config_path(), get_user_config_path()) if p]
    if project_root:
        paths.append(get_project_config_path(project_root))
    return paths
