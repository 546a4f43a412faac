"""Tests for package.json parsing and validation."""

from __future__ import annotations

import json

import pytest

from rundev.errors import ManifestInvalidError
from rundev.manifest import Engines, PackageJson, parse_manifest


class TestParseManifest:
    def test_reads_consulted_fields(self) -> None:
        manifest = parse_manifest(
            json.dumps(
                {
                    "name": "app",
                    "packageManager": "pnpm@8.6.0",
                    "engines": {"node": ">=18", "pnpm": "^8"},
                }
            )
        )

        assert manifest.package_manager == "pnpm@8.6.0"
        assert manifest.engines == Engines(node=">=18", pnpm="^8")

    def test_unknown_fields_are_ignored(self) -> None:
        manifest = parse_manifest(
            json.dumps(
                {
                    "scripts": {"dev": "vite"},
                    "dependencies": {"react": "^18"},
                    "engines": {"node": ">=18", "vscode": "^1.80.0"},
                }
            )
        )

        assert manifest.engines is not None
        assert manifest.engines.node == ">=18"

    def test_empty_object_is_valid(self) -> None:
        assert parse_manifest("{}") == PackageJson()

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ManifestInvalidError) as exc_info:
            parse_manifest('{"engines": {"node": ">=18"')

        assert "not valid JSON" in str(exc_info.value)

    def test_engines_must_be_an_object(self) -> None:
        with pytest.raises(ManifestInvalidError, match="engines"):
            parse_manifest(json.dumps({"engines": ">=18"}))

    def test_engine_constraint_must_be_a_string(self) -> None:
        with pytest.raises(ManifestInvalidError, match="engines.node"):
            parse_manifest(json.dumps({"engines": {"node": 18}}))

    def test_package_manager_must_be_a_string(self) -> None:
        with pytest.raises(ManifestInvalidError, match="packageManager"):
            parse_manifest(json.dumps({"packageManager": ["pnpm"]}))

    def test_top_level_must_be_an_object(self) -> None:
        with pytest.raises(ManifestInvalidError):
            parse_manifest("[1, 2, 3]")

    def test_equal_content_gives_equal_models(self) -> None:
        content = json.dumps({"engines": {"node": ">=18"}})

        assert parse_manifest(content) == parse_manifest(content)
