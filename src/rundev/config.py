"""User configuration for rundev.

The configuration is stored in ~/.rundev/config.yaml.  Every key is
optional::

    dev_script: dev
    node_mirror: https://nodejs.org/dist
    npm_registry: https://registry.npmjs.org
    watch_debounce_ms: 50
    wait_for_exit: false
    download_timeout: 300
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from rundev.core.constants import (
    DEFAULT_DEV_SCRIPT,
    DEFAULT_NODE_MIRROR,
    DEFAULT_NPM_REGISTRY,
)
from rundev.errors import ConfigValidationError
from rundev.watcher import DEFAULT_DEBOUNCE_MS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RundevConfig:
    """Settings for the dev pipeline.

    Attributes:
        dev_script: package.json script started after install
        node_mirror: Base URL for Node.js release tarballs
        npm_registry: Base URL for package manager tarballs
        watch_debounce_ms: Debounce window for file change notifications
        wait_for_exit: Wait for a superseded child to exit before restarting
        download_timeout: Seconds before a download gives up (None = never)
    """

    dev_script: str = DEFAULT_DEV_SCRIPT
    node_mirror: str = DEFAULT_NODE_MIRROR
    npm_registry: str = DEFAULT_NPM_REGISTRY
    watch_debounce_ms: int = DEFAULT_DEBOUNCE_MS
    wait_for_exit: bool = False
    download_timeout: float | None = None

    def with_overrides(self, **overrides: Any) -> RundevConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _check_type(key: str, value: Any, expected: tuple[type, ...]) -> None:
    # bool is an int subclass; a YAML "true" is never a valid number here
    if isinstance(value, bool) and bool not in expected:
        raise ConfigValidationError(f"Invalid {key} in config.yaml: expected a number")
    if not isinstance(value, expected):
        names = " or ".join(t.__name__ for t in expected)
        raise ConfigValidationError(f"Invalid {key} in config.yaml: expected {names}")


_EXPECTED_TYPES: dict[str, tuple[type, ...]] = {
    "dev_script": (str,),
    "node_mirror": (str,),
    "npm_registry": (str,),
    "watch_debounce_ms": (int,),
    "wait_for_exit": (bool,),
    "download_timeout": (int, float),
}


def load_config(config_file: Path) -> RundevConfig:
    """Load configuration from *config_file*.

    Args:
        config_file: Path to config.yaml

    Returns:
        RundevConfig instance (defaults if the file does not exist)

    Raises:
        ConfigValidationError: If the YAML is invalid or a value has the wrong type.
    """
    if not config_file.exists():
        logger.debug("Config file not found: %s", config_file)
        return RundevConfig()

    yaml = YAML(typ="safe")
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except (OSError, YAMLError) as e:
        raise ConfigValidationError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_file} must contain a mapping")

    known = {f.name for f in fields(RundevConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown key(s) in %s: %s", config_file, ", ".join(unknown))

    values: dict[str, Any] = {}
    for key in known & set(data):
        value = data[key]
        if value is None:
            continue
        _check_type(key, value, _EXPECTED_TYPES[key])
        values[key] = value

    return RundevConfig(**values)


__all__ = ["RundevConfig", "load_config"]
