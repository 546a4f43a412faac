"""Package manager definitions.

Each supported package manager is described by the script rundev hands to
the Node.js runtime, the lockfile whose changes trigger a reinstall, and the
arguments used for installing and running scripts.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PackageManagerSpec:
    """Static description of a package manager."""

    name: str
    lockfile: str
    # Script inside the extracted npm-registry tarball, run with ``node``.
    # None means rundev cannot provision this package manager.
    entry_point: str | None
    install_args: tuple[str, ...] = ("install",)
    run_args: tuple[str, ...] = ("run",)

    @property
    def provisionable(self) -> bool:
        return self.entry_point is not None


PACKAGE_MANAGERS: dict[str, PackageManagerSpec] = {
    "npm": PackageManagerSpec(
        name="npm",
        lockfile="package-lock.json",
        entry_point="bin/npm-cli.js",
    ),
    "yarn": PackageManagerSpec(
        name="yarn",
        lockfile="yarn.lock",
        entry_point="bin/yarn.js",
    ),
    "pnpm": PackageManagerSpec(
        name="pnpm",
        lockfile="pnpm-lock.yaml",
        entry_point="bin/pnpm.cjs",
    ),
    # bun ships native binaries, not a node script on the npm registry
    "bun": PackageManagerSpec(
        name="bun",
        lockfile="bun.lockb",
        entry_point=None,
    ),
}

# Order in which engines.<tool> constraints are consulted.
DECLARED_ORDER: tuple[str, ...] = ("npm", "yarn", "pnpm")


def get_package_manager_spec(name: str) -> PackageManagerSpec:
    """Return the spec for package manager *name*.

    Raises:
        ValueError: If the package manager is not recognized.
    """
    spec = PACKAGE_MANAGERS.get(name)
    if spec is None:
        valid = ", ".join(sorted(PACKAGE_MANAGERS))
        raise ValueError(f"Unknown package manager: {name}. Valid package managers: {valid}")
    return spec


__all__ = [
    "PackageManagerSpec",
    "PACKAGE_MANAGERS",
    "DECLARED_ORDER",
    "get_package_manager_spec",
]
