"""Tests for the provisioning registry file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from rundev.runtime.registry import Registry, load_registry, save_registry


class TestRegistry:
    def test_defaults(self) -> None:
        registry = Registry()

        assert registry.node_versions == []
        assert registry.package_managers == {"npm": [], "yarn": [], "pnpm": []}

    def test_add_is_idempotent(self) -> None:
        registry = Registry()
        registry.add_runtime("18.0.0")
        registry.add_runtime("18.0.0")
        registry.add_package_manager("pnpm", "8.6.0")
        registry.add_package_manager("pnpm", "8.6.0")

        assert registry.node_versions == ["18.0.0"]
        assert registry.package_managers["pnpm"] == ["8.6.0"]

    def test_membership(self) -> None:
        registry = Registry(node_versions=["20.2.0"], package_managers={"yarn": ["1.22.0"]})

        assert registry.has_runtime("20.2.0")
        assert not registry.has_runtime("18.0.0")
        assert registry.has_package_manager("yarn", "1.22.0")
        assert not registry.has_package_manager("pnpm", "1.22.0")

    def test_merge_keeps_existing_order(self) -> None:
        registry = Registry(node_versions=["18.0.0"])
        registry.merge(Registry(node_versions=["20.2.0", "18.0.0"], package_managers={"pnpm": ["8.6.0"]}))

        assert registry.node_versions == ["18.0.0", "20.2.0"]
        assert registry.package_managers["pnpm"] == ["8.6.0"]

    def test_json_uses_camel_case_keys(self) -> None:
        data = json.loads(Registry(node_versions=["18.0.0"]).to_json())

        assert data == {
            "nodeVersions": ["18.0.0"],
            "packageManagers": {"npm": [], "yarn": [], "pnpm": []},
        }


class TestLoadRegistry:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_registry(tmp_path / "registry.json") == Registry()

    def test_reads_camel_case_file(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text(
            json.dumps({"nodeVersions": ["18.0.0"], "packageManagers": {"yarn": ["1.22.0"]}})
        )

        registry = load_registry(path)

        assert registry.has_runtime("18.0.0")
        assert registry.has_package_manager("yarn", "1.22.0")

    def test_corrupt_file_is_empty_with_warning(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "registry.json"
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="rundev"):
            registry = load_registry(path)

        assert registry == Registry()
        assert "Ignoring unreadable registry" in caplog.text

    def test_wrong_shape_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"nodeVersions": "18.0.0"}))

        assert load_registry(path) == Registry()


class TestSaveRegistry:
    def test_round_trips_through_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "home" / "registry.json"
        registry = Registry()
        registry.add_runtime("18.0.0")
        registry.add_package_manager("pnpm", "8.6.0")

        save_registry(registry, path)

        assert load_registry(path) == registry

    def test_merges_entries_written_by_another_process(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"nodeVersions": ["16.20.0"], "packageManagers": {"yarn": ["1.22.0"]}}))
        registry = Registry(node_versions=["18.0.0"])

        save_registry(registry, path)

        on_disk = load_registry(path)
        assert on_disk.node_versions == ["18.0.0", "16.20.0"]
        assert on_disk.has_package_manager("yarn", "1.22.0")
        # the in-memory registry sees the merged result too
        assert registry.has_runtime("16.20.0")

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"

        save_registry(Registry(node_versions=["18.0.0"]), path)
        save_registry(Registry(node_versions=["20.2.0"]), path)

        assert not list(tmp_path.glob("*.tmp"))
        assert load_registry(path).node_versions == ["20.2.0", "18.0.0"]
