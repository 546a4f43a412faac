"""User-global rundev home directory.

Provides the canonical function for locating the per-user ~/.rundev/
directory that holds the provisioning registry, installed Node.js versions
and package managers, and the optional config file.
"""

from __future__ import annotations

import os
from pathlib import Path

from rundev.core.constants import (
    CONFIG_FILE,
    NODE_VERSIONS_DIR,
    PACKAGE_MANAGERS_DIR,
    REGISTRY_FILE,
)


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_rundev_home() -> Path:
    """Return the path to the user-global rundev directory.

    Resolution order:
    1. RUNDEV_HOME environment variable (all platforms)
    2. ~/.rundev/ on macOS/Linux (Path.home() / ".rundev")
    3. %LOCALAPPDATA%\\rundev\\ on Windows (via platformdirs)

    Returns:
        Path: Absolute path to the rundev home directory.
    """
    if env_home := os.environ.get("RUNDEV_HOME"):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("rundev"))

    return Path.home() / ".rundev"


def get_registry_path(home: Path | None = None) -> Path:
    return (home or get_rundev_home()) / REGISTRY_FILE


def get_config_path(home: Path | None = None) -> Path:
    return (home or get_rundev_home()) / CONFIG_FILE


def get_node_versions_dir(home: Path | None = None) -> Path:
    return (home or get_rundev_home()) / NODE_VERSIONS_DIR


def get_package_managers_dir(home: Path | None = None) -> Path:
    return (home or get_rundev_home()) / PACKAGE_MANAGERS_DIR


__all__ = [
    "get_rundev_home",
    "get_registry_path",
    "get_config_path",
    "get_node_versions_dir",
    "get_package_managers_dir",
]
