"""Provisioning store: idempotent installs of Node.js and package managers.

The store owns the :class:`Registry` for the lifetime of the process.  Each
``ensure_*`` call consults the registry first and only downloads what is
missing.  The registry is appended to and persisted after a download
succeeds, never before, so a failed or cancelled install leaves no trace in
it and is simply attempted again on the next call.

Layout under the rundev home::

    node-versions/<version>/bin/node
    package-managers/<name>/<version>/<entry point>
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from pathlib import Path

from rundev.core.constants import DEFAULT_NODE_MIRROR, DEFAULT_NPM_REGISTRY
from rundev.errors import ProvisionFailedError
from rundev.package_managers import PackageManagerSpec, get_package_manager_spec
from rundev.resolver import PackageManagerDecision, Provenance, VersionDecision
from rundev.runtime.download import Provisioner
from rundev.runtime.home import get_node_versions_dir, get_package_managers_dir, get_registry_path
from rundev.runtime.registry import Registry, save_registry

logger = logging.getLogger(__name__)

_NODE_PLATFORMS = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "win",
}

_NODE_ARCHITECTURES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7l",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}


def node_platform() -> str:
    """Return the platform name used in Node.js download URLs."""
    system = platform.system().lower()
    return _NODE_PLATFORMS.get(system, system)


def node_arch() -> str:
    """Return the architecture name used in Node.js download URLs."""
    machine = platform.machine().lower()
    return _NODE_ARCHITECTURES.get(machine, machine)


@dataclass(frozen=True)
class ProvisionedPaths:
    """Executables for a resolved :class:`VersionDecision`."""

    runtime_executable: Path
    package_manager_executable: Path
    package_manager: PackageManagerSpec

    @property
    def runtime_bin_dir(self) -> Path:
        return self.runtime_executable.parent


class ProvisioningStore:
    """Installs Node.js versions and package managers under the rundev home."""

    def __init__(
        self,
        home: Path,
        registry: Registry,
        provisioner: Provisioner,
        *,
        node_mirror: str = DEFAULT_NODE_MIRROR,
        npm_registry: str = DEFAULT_NPM_REGISTRY,
        platform_name: str | None = None,
        arch: str | None = None,
    ) -> None:
        self.home = home
        self.registry = registry
        self.provisioner = provisioner
        self.node_mirror = node_mirror.rstrip("/")
        self.npm_registry = npm_registry.rstrip("/")
        self.platform_name = platform_name or node_platform()
        self.arch = arch or node_arch()

    @property
    def registry_path(self) -> Path:
        return get_registry_path(self.home)

    # ------------------------------------------------------------------
    # Layout and download locators
    # ------------------------------------------------------------------

    def runtime_dir(self, version: str) -> Path:
        return get_node_versions_dir(self.home) / version

    def runtime_executable(self, version: str) -> Path:
        return self.runtime_dir(version) / "bin" / "node"

    def bundled_npm_executable(self, version: str) -> Path:
        return self.runtime_dir(version) / "lib" / "node_modules" / "npm" / "bin" / "npm-cli.js"

    def package_manager_dir(self, name: str, version: str) -> Path:
        return get_package_managers_dir(self.home) / name / version

    def runtime_url(self, version: str) -> str:
        return (
            f"{self.node_mirror}/v{version}/"
            f"node-v{version}-{self.platform_name}-{self.arch}.tar.gz"
        )

    def package_manager_url(self, name: str, version: str) -> str:
        return f"{self.npm_registry}/{name}/-/{name}-{version}.tgz"

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        try:
            save_registry(self.registry, self.registry_path)
        except OSError as e:
            raise ProvisionFailedError(
                f"Could not update registry {self.registry_path}: {e}"
            ) from e

    async def ensure_runtime(self, version: str) -> Path:
        """Install Node.js *version* if needed and return the ``node`` executable.

        Raises:
            ProvisionFailedError: If the download, extraction or registry write fails.
        """
        if not self.registry.has_runtime(version):
            await self.provisioner.provision(self.runtime_url(version), self.runtime_dir(version))
            self.registry.add_runtime(version)
            self._persist()
            logger.info("Node version %s installed successfully.", version)
        return self.runtime_executable(version)

    async def ensure_package_manager(
        self, decision: PackageManagerDecision, runtime_version: str
    ) -> Path:
        """Install the package manager in *decision* if needed and return its entry point.

        The bundled npm (provenance "default") comes with the runtime and
        never touches the registry.

        Raises:
            ProvisionFailedError: If the package manager cannot be provisioned.
        """
        if decision.provenance is Provenance.DEFAULT or decision.version is None:
            return self.bundled_npm_executable(runtime_version)

        spec = get_package_manager_spec(decision.name)
        if not spec.provisionable:
            raise ProvisionFailedError(f"{spec.name} cannot be provisioned by rundev")

        name, version = decision.name, decision.version
        target = self.package_manager_dir(name, version)
        if not self.registry.has_package_manager(name, version):
            await self.provisioner.provision(self.package_manager_url(name, version), target)
            self.registry.add_package_manager(name, version)
            self._persist()
            logger.info("Package manager %s@%s installed successfully.", name, version)
        return target / spec.entry_point

    async def ensure(self, decision: VersionDecision) -> ProvisionedPaths:
        """Provision everything *decision* needs, runtime first."""
        runtime = await self.ensure_runtime(decision.runtime_version)
        package_manager = await self.ensure_package_manager(
            decision.package_manager, decision.runtime_version
        )
        return ProvisionedPaths(
            runtime_executable=runtime,
            package_manager_executable=package_manager,
            package_manager=get_package_manager_spec(decision.package_manager.name),
        )


__all__ = [
    "ProvisionedPaths",
    "ProvisioningStore",
    "node_platform",
    "node_arch",
]
