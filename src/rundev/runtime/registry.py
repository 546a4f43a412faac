"""Persistent record of provisioned Node.js and package manager versions.

The registry lives at ``~/.rundev/registry.json``::

    {
      "nodeVersions": ["18.0.0", "20.2.0"],
      "packageManagers": {"npm": [], "yarn": [], "pnpm": ["8.6.0"]}
    }

Entries are only ever appended.  Writes merge with whatever is on disk
under an exclusive file lock and land via temp file + rename, so parallel
rundev invocations sharing one home directory never lose entries or leave
a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import IO

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


def _default_package_managers() -> dict[str, list[str]]:
    return {"npm": [], "yarn": [], "pnpm": []}


class Registry(BaseModel):
    """In-memory view of registry.json."""

    model_config = ConfigDict(populate_by_name=True)

    node_versions: list[str] = Field(default_factory=list, alias="nodeVersions")
    package_managers: dict[str, list[str]] = Field(
        default_factory=_default_package_managers, alias="packageManagers"
    )

    def has_runtime(self, version: str) -> bool:
        return version in self.node_versions

    def add_runtime(self, version: str) -> None:
        if version not in self.node_versions:
            self.node_versions.append(version)

    def has_package_manager(self, name: str, version: str) -> bool:
        return version in self.package_managers.get(name, [])

    def add_package_manager(self, name: str, version: str) -> None:
        versions = self.package_managers.setdefault(name, [])
        if version not in versions:
            versions.append(version)

    def merge(self, other: Registry) -> None:
        """Add every entry of *other* that this registry does not have yet."""
        for version in other.node_versions:
            self.add_runtime(version)
        for name, versions in other.package_managers.items():
            for version in versions:
                self.add_package_manager(name, version)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2)


def _lock_exclusive(fd: IO[str]) -> None:
    """Acquire an exclusive file lock, blocking if another process holds it.

    On Unix: uses ``fcntl.flock`` with a non-blocking attempt first.
    If another process holds the lock, falls back to a blocking wait.

    On Windows: uses ``msvcrt.locking`` with ``LK_LOCK`` (blocking).
    """
    if sys.platform == "win32":
        import msvcrt

        msvcrt.locking(fd.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            # Another rundev is writing -- wait for it
            fcntl.flock(fd, fcntl.LOCK_EX)


def load_registry(path: Path) -> Registry:
    """Load the registry from *path*.

    A missing file is an empty registry.  An unreadable or corrupted file is
    logged and also treated as empty; it is replaced on the next write.
    """
    if not path.exists():
        return Registry()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return Registry.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Ignoring unreadable registry %s: %s", path, e)
        return Registry()


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)  # Atomic on POSIX
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def save_registry(registry: Registry, path: Path) -> None:
    """Persist *registry* to *path*, merging entries written by other processes.

    *registry* is updated in place with the merged result.

    Raises:
        OSError: If the lock or the write fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_name(f".{path.name}.lock")
    with open(lock_path, "w") as lock_fd:
        _lock_exclusive(lock_fd)
        registry.merge(load_registry(path))
        _atomic_write(path, registry.to_json())
    logger.debug("Registry written to %s", path)


__all__ = ["Registry", "load_registry", "save_registry"]
