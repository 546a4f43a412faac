"""Tests for rundev home directory resolution."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from rundev.runtime.home import (
    get_config_path,
    get_node_versions_dir,
    get_package_managers_dir,
    get_registry_path,
    get_rundev_home,
)


class TestGetRundevHome:
    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNDEV_HOME", str(tmp_path / "custom"))

        assert get_rundev_home() == tmp_path / "custom"

    def test_unix_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RUNDEV_HOME", raising=False)

        with patch("rundev.runtime.home._is_windows", return_value=False):
            assert get_rundev_home() == Path.home() / ".rundev"

    def test_windows_uses_platformdirs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RUNDEV_HOME", raising=False)

        with (
            patch("rundev.runtime.home._is_windows", return_value=True),
            patch("platformdirs.user_data_dir", return_value="C:/Users/u/AppData/Local/rundev") as mock_dir,
        ):
            home = get_rundev_home()

        mock_dir.assert_called_once_with("rundev")
        assert home == Path("C:/Users/u/AppData/Local/rundev")


class TestPathHelpers:
    def test_paths_under_explicit_home(self, tmp_path: Path) -> None:
        assert get_registry_path(tmp_path) == tmp_path / "registry.json"
        assert get_config_path(tmp_path) == tmp_path / "config.yaml"
        assert get_node_versions_dir(tmp_path) == tmp_path / "node-versions"
        assert get_package_managers_dir(tmp_path) == tmp_path / "package-managers"

    def test_paths_default_to_rundev_home(self, rundev_home: Path) -> None:
        assert get_registry_path() == rundev_home / "registry.json"
