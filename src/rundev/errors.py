"""Exception hierarchy and error taxonomy for rundev.

Every stage of the pipeline raises one of the typed errors below at its
boundary.  The orchestrator catches them per stage and reports a single
human-readable line tagged with an :class:`ErrorKind`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds reported by the pipeline's error branches."""

    ROOT_NOT_FOUND = "RootNotFound"
    MANIFEST_UNREADABLE = "ManifestUnreadable"
    MANIFEST_INVALID = "ManifestInvalid"
    VERSION_UNRESOLVABLE = "VersionUnresolvable"
    PROVISION_FAILED = "ProvisionFailed"
    LOCKFILE_UNREADABLE = "LockfileUnreadable"
    PROCESS_SPAWN_FAILED = "ProcessSpawnFailed"
    INSTALL_NONZERO_EXIT = "InstallNonzeroExit"


class RundevError(Exception):
    """Base exception for rundev errors."""


class RootNotFoundError(RundevError):
    """Raised when no ancestor directory contains the marker file."""


class ManifestInvalidError(RundevError):
    """Raised when package.json is not valid JSON or fails schema validation."""


class ProvisionFailedError(RundevError):
    """Raised when a runtime or package manager cannot be installed."""


class ProcessSpawnError(RundevError):
    """Raised when a child process cannot be started."""


class InstallFailedError(RundevError):
    """Raised when the dependency install exits with a nonzero status."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"dependency install exited with status {exit_code}")
        self.exit_code = exit_code


class ConfigValidationError(RundevError):
    """Raised when ~/.rundev/config.yaml cannot be parsed or validated."""


__all__ = [
    "ErrorKind",
    "RundevError",
    "RootNotFoundError",
    "ManifestInvalidError",
    "ProvisionFailedError",
    "ProcessSpawnError",
    "InstallFailedError",
    "ConfigValidationError",
]
