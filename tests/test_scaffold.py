"""Tests for plugin scaffolding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from plugin_sync.catalog import CatalogStore
from plugin_sync.config import load_settings
from plugin_sync.scaffold import ScaffoldError, scaffold_plugin


class TestScaffoldPlugin:
    def test_creates_skeleton_and_registers(self, project: Path) -> None:
        settings = load_settings(project)

        result = scaffold_plugin(settings, "ep_hello", section="client", description="Says hello")

        plugin_dir = settings.plugins_path / "ep_hello"
        assert result.path == plugin_dir
        assert result.registered
        assert sorted(p.name for p in result.files) == ["README.md", "index.js", "package.json"]

        manifest = json.loads((plugin_dir / "package.json").read_text())
        assert manifest["name"] == "ep_hello"
        assert manifest["version"] == "0.1.0"
        assert manifest["description"] == "Says hello"

        catalog = CatalogStore(settings.catalog_path).load()
        assert [e.target for e in catalog.section("client")] == ["ep_hello@^0.1.0"]

    def test_default_section(self, project: Path) -> None:
        settings = load_settings(project)

        result = scaffold_plugin(settings, "ep_hello")

        assert result.section == "server"

    def test_scoped_name(self, project: Path) -> None:
        settings = load_settings(project)

        result = scaffold_plugin(settings, "@acme/hello", version="1.0.0")

        assert (settings.plugins_path / "@acme" / "hello" / "package.json").is_file()
        assert result.version_range == "^1.0.0"

    @pytest.mark.parametrize("name", ["./hello", "hello/sub", "Hello World", "@acme", "@acme/Hello"])
    def test_invalid_names(self, project: Path, name: str) -> None:
        with pytest.raises(ScaffoldError, match="Invalid plugin name"):
            scaffold_plugin(load_settings(project), name)

    def test_existing_directory(self, project: Path) -> None:
        settings = load_settings(project)
        (settings.plugins_path / "ep_hello").mkdir(parents=True)

        with pytest.raises(ScaffoldError, match="already exists"):
            scaffold_plugin(settings, "ep_hello")

    def test_catalog_failure_keeps_files(self, project: Path) -> None:
        settings = load_settings(project)
        settings.catalog_path.write_text("- not a mapping\n")

        result = scaffold_plugin(settings, "ep_hello")

        assert not result.registered
        assert "Could not update catalog" in result.warnings[0]
        assert (settings.plugins_path / "ep_hello" / "index.js").is_file()
        assert "⚠" in str(result)
