"""Version resolution for package.json.

Maps a validated manifest to the Node.js version and package manager the
project needs.  Pure functions, no I/O.

Resolution rules:
    - Node.js: minimum version satisfying ``engines.node``.
    - Package manager, first match wins:
        1. ``packageManager`` field (``name@x.y.z``) -> provenance "explicit"
        2. ``engines.npm``, ``engines.yarn``, ``engines.pnpm`` -> "declared"
        3. npm bundled with Node.js -> "default"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from semantic_version import NpmSpec, Version
from semantic_version.base import AllOf, AnyOf, Range

from rundev.manifest import PackageJson
from rundev.package_managers import DECLARED_ORDER

PACKAGE_MANAGER_PATTERN = re.compile(
    r"(?P<name>npm|pnpm|yarn|bun)@(?P<version>\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)"
)

# Loose parsing: ">= 18" -> ">=18", ">=v18" -> ">=18", "v18" -> "18", "~> 1.2" -> "~1.2"
_LOOSE_TILDE = re.compile(r"~>")
_OPERATOR_GAP = re.compile(r"(<=|>=|<|>|=|~|\^)\s+")
_VERSION_PREFIX = re.compile(r"(^|[\s<>=~^])[vV]+(?=\d)")
_WHITESPACE = re.compile(r"\s+")


class Provenance(str, Enum):
    """Which manifest field a package manager decision came from."""

    EXPLICIT = "explicit"
    DECLARED = "declared"
    DEFAULT = "default"


@dataclass(frozen=True)
class PackageManagerDecision:
    """Package manager to use; ``version`` is None for the bundled npm."""

    provenance: Provenance
    name: str
    version: str | None = None

    def describe(self) -> str:
        if self.provenance is Provenance.DEFAULT:
            return f"bundled {self.name} (not found in engines or packageManager)"
        field = "packageManager" if self.provenance is Provenance.EXPLICIT else "engines"
        return f"{self.name}@{self.version} (found in {field})"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"provenance": self.provenance.value, "name": self.name}
        if self.version is not None:
            data["version"] = self.version
        return data


@dataclass(frozen=True)
class VersionDecision:
    """Runtime and package manager required by a manifest.

    Equality is structural, so two manifests that differ only in fields
    rundev does not consult produce equal decisions.
    """

    runtime_version: str
    package_manager: PackageManagerDecision

    def to_dict(self) -> dict[str, Any]:
        return {
            "runtimeVersion": self.runtime_version,
            "packageManager": self.package_manager.to_dict(),
        }


def _normalize_range(expression: str) -> str:
    expression = _WHITESPACE.sub(" ", expression.strip())
    expression = _LOOSE_TILDE.sub("~", expression)
    expression = _OPERATOR_GAP.sub(r"\1", expression)
    return _VERSION_PREFIX.sub(r"\1", expression)


def _iter_ranges(clause: Any) -> Iterator[Range]:
    if isinstance(clause, Range):
        yield clause
    elif isinstance(clause, (AllOf, AnyOf)):
        for sub in clause.clauses:
            yield from _iter_ranges(sub)


def _lower_bound(comparator: Range) -> Version | None:
    target = comparator.target
    if comparator.operator == Range.OP_GT:
        if target.prerelease:
            return Version(
                major=target.major,
                minor=target.minor,
                patch=target.patch,
                prerelease=tuple(target.prerelease) + ("0",),
            )
        return target.next_patch()
    if comparator.operator in (Range.OP_GTE, Range.OP_EQ):
        return Version(
            major=target.major,
            minor=target.minor,
            patch=target.patch,
            prerelease=target.prerelease,
        )
    return None


def min_version(expression: str | None) -> str | None:
    """Return the lowest version satisfying an npm range, or None.

    Mirrors npm's ``semver.minVersion`` with loose parsing: ``0.0.0`` and
    ``0.0.0-0`` are tried first, then every comparator's lower bound.

    >>> min_version(">=18.0.0")
    '18.0.0'
    >>> min_version("^20.2")
    '20.2.0'
    """
    if not expression or not expression.strip():
        return None
    try:
        spec = NpmSpec(_normalize_range(expression))
    except ValueError:
        return None

    for floor in (Version("0.0.0"), Version("0.0.0-0")):
        if spec.match(floor):
            return str(floor)

    candidates = [
        bound
        for bound in (_lower_bound(comparator) for comparator in _iter_ranges(spec.clause))
        if bound is not None and spec.match(bound)
    ]
    if not candidates:
        return None
    return str(min(candidates))


def determine_node_version(manifest: PackageJson) -> str | None:
    """Return the minimum Node.js version required by ``engines.node``."""
    engines = manifest.engines
    return min_version(engines.node if engines else None)


def determine_package_manager(manifest: PackageJson) -> PackageManagerDecision:
    """Pick the package manager, falling back to the bundled npm."""
    if manifest.package_manager:
        match = PACKAGE_MANAGER_PATTERN.search(manifest.package_manager)
        if match:
            version = min_version(match.group("version"))
            if version:
                return PackageManagerDecision(Provenance.EXPLICIT, match.group("name"), version)

    engines = manifest.engines
    if engines:
        for name in DECLARED_ORDER:
            version = min_version(getattr(engines, name))
            if version:
                return PackageManagerDecision(Provenance.DECLARED, name, version)

    return PackageManagerDecision(Provenance.DEFAULT, "npm")


def resolve_versions(manifest: PackageJson) -> VersionDecision | None:
    """Resolve a manifest to a :class:`VersionDecision`.

    Returns None when the Node.js version cannot be determined; package
    manager resolution always succeeds.
    """
    runtime_version = determine_node_version(manifest)
    if runtime_version is None:
        return None
    return VersionDecision(runtime_version, determine_package_manager(manifest))


__all__ = [
    "PACKAGE_MANAGER_PATTERN",
    "Provenance",
    "PackageManagerDecision",
    "VersionDecision",
    "min_version",
    "determine_node_version",
    "determine_package_manager",
    "resolve_versions",
]
