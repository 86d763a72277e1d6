"""Shared fixtures building fake host projects."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


def install_package(project_dir: Path, name: str, version: str) -> Path:
    """Create node_modules/<name>/package.json declaring ``version``."""
    package_dir = project_dir / "node_modules" / name
    package_dir.mkdir(parents=True)
    (package_dir / "package.json").write_text(json.dumps({"name": name, "version": version}))
    return package_dir


def create_local_plugin(project_dir: Path, name: str, with_manifest: bool = True) -> Path:
    """Create plugins/<name>, optionally with its own package.json."""
    plugin_dir = project_dir / "plugins" / name
    plugin_dir.mkdir(parents=True)
    if with_manifest:
        (plugin_dir / "package.json").write_text(json.dumps({"name": name, "version": "0.1.0"}))
    return plugin_dir


@pytest.fixture
def project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir
