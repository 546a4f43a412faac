"""Shared path constants for the rundev store and project layout."""

from __future__ import annotations

PACKAGE_JSON = "package.json"

REGISTRY_FILE = "registry.json"
CONFIG_FILE = "config.yaml"
NODE_VERSIONS_DIR = "node-versions"
PACKAGE_MANAGERS_DIR = "package-managers"

DEFAULT_NODE_MIRROR = "https://nodejs.org/dist"
DEFAULT_NPM_REGISTRY = "https://registry.npmjs.org"
DEFAULT_DEV_SCRIPT = "dev"

__all__ = [
    "PACKAGE_JSON",
    "REGISTRY_FILE",
    "CONFIG_FILE",
    "NODE_VERSIONS_DIR",
    "PACKAGE_MANAGERS_DIR",
    "DEFAULT_NODE_MIRROR",
    "DEFAULT_NPM_REGISTRY",
    "DEFAULT_DEV_SCRIPT",
]
