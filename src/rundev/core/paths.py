"""Project root discovery."""

from __future__ import annotations

import logging
from pathlib import Path

from rundev.errors import RootNotFoundError

logger = logging.getLogger(__name__)


def is_filesystem_root(path: Path) -> bool:
    """Return True when *path* is its own parent."""
    return path == path.parent


def locate_project_root(start: Path, marker: str) -> Path:
    """Walk up from *start* to the nearest directory containing *marker*.

    The starting directory itself is checked first.  The search is a
    point-in-time lookup, nothing is cached or retried.

    Args:
        start: Directory to start searching from.
        marker: File name that identifies the project root (e.g. ``package.json``).

    Returns:
        Absolute path of the first directory containing the marker.

    Raises:
        RootNotFoundError: If the filesystem root is reached without a match.
    """
    candidate = Path(start).absolute()
    while True:
        if (candidate / marker).exists():
            logger.debug("Found %s in %s", marker, candidate)
            return candidate
        if is_filesystem_root(candidate):
            raise RootNotFoundError(
                f"no {marker} found in {Path(start).absolute()} or any parent directory "
                "(reached the filesystem root)"
            )
        candidate = candidate.parent


__all__ = ["is_filesystem_root", "locate_project_root"]
