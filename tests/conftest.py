from __future__ import annotations

import json
from pathlib import Path

import pytest

from rundev.runtime.registry import Registry
from tests.utils import CountingStore, FakeFiles, FakeLauncher, FakeProvisioner


@pytest.fixture()
def rundev_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point RUNDEV_HOME at a temp dir and return the path."""
    home = tmp_path / "rundev-home"
    monkeypatch.setenv("RUNDEV_HOME", str(home))
    return home


@pytest.fixture()
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture()
def write_manifest(project_root: Path):
    """Write package.json in the project root from a dict."""

    def _write(data: dict) -> Path:
        path = project_root / "package.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture()
def store(tmp_path: Path, provisioner: FakeProvisioner) -> CountingStore:
    return CountingStore(
        tmp_path / "store",
        Registry(),
        provisioner,
        platform_name="linux",
        arch="x64",
    )


@pytest.fixture()
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture()
def files() -> FakeFiles:
    return FakeFiles()
