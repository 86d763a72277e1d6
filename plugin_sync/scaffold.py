"""Create new local plugin skeletons."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from plugin_sync.catalog import CatalogError, CatalogStore
from plugin_sync.config import Settings
from plugin_sync.namespace import classify

logger = logging.getLogger(__name__)

PACKAGE_NAME_PATTERN = re.compile(r"[a-z0-9][a-z0-9._\-]*")


class ScaffoldError(Exception):
    """Raised when a plugin skeleton cannot be created."""

    pass


@dataclass
class ScaffoldResult:
    """Result of scaffolding a plugin."""

    name: str
    section: str
    path: Path
    version_range: str
    files: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def registered(self) -> bool:
        return not self.warnings

    def __str__(self) -> str:
        parts = [f"✓ Created {self.name} in {self.path}"]
        for path in self.files:
            parts.append(f"  {path.name}")
        if self.registered:
            parts.append(f"Registered in section {self.section} as {self.version_range}")
        else:
            parts.append("Warnings:")
            for w in self.warnings:
                parts.append(f"  ⚠ {w}")
        return "\n".join(parts)


def scaffold_plugin(
    settings: Settings,
    name: str,
    section: str | None = None,
    description: str = "",
    version: str = "0.1.0",
) -> ScaffoldResult:
    """Create a local plugin and register it in the catalog.

    The skeleton is written under the plugins directory. A failure to update
    the catalog afterwards is reported as a warning and leaves the created
    files in place.

    Args:
        settings: Project settings
        name: Package name of the new plugin
        section: Catalog section (defaults to settings.default_section)
        description: Short description for package.json
        version: Initial version

    Returns:
        ScaffoldResult describing the created plugin

    Raises:
        ScaffoldError: If the name is invalid or the plugin already exists
    """
    if not _valid_name(name):
        raise ScaffoldError(f"Invalid plugin name: {name!r}")

    section = section or settings.default_section
    plugin_dir = settings.plugins_path / name
    if plugin_dir.exists():
        raise ScaffoldError(f"Plugin directory already exists: {plugin_dir}")

    try:
        files = _write_skeleton(plugin_dir, name, description, version)
    except OSError as e:
        raise ScaffoldError(f"Failed to create {plugin_dir}: {e}") from e

    result = ScaffoldResult(
        name=name,
        section=section,
        path=plugin_dir,
        version_range=f"^{version}",
        files=files,
    )

    store = CatalogStore(settings.catalog_path)
    try:
        store.append(section, name, result.version_range)
    except (CatalogError, OSError, yaml.YAMLError) as e:
        logger.warning("Could not register %s in %s: %s", name, store.path, e)
        result.warnings.append(f"Could not update catalog {store.path}: {e}")

    return result


def _write_skeleton(plugin_dir: Path, name: str, description: str, version: str) -> list[Path]:
    plugin_dir.mkdir(parents=True)

    manifest = {
        "name": name,
        "version": version,
        "description": description,
        "main": "index.js",
        "license": "MIT",
    }
    manifest_path = plugin_dir / "package.json"
    manifest_path.write_text(json.dumps(manifest, indent=2) + "\n")

    index_path = plugin_dir / "index.js"
    index_path.write_text(
        "'use strict';\n"
        "\n"
        "exports.register = (host) => {\n"
        f"  host.log('{name} loaded');\n"
        "};\n"
    )

    readme_path = plugin_dir / "README.md"
    readme_path.write_text(f"# {name}\n\n{description or 'A local plugin.'}\n")

    return [manifest_path, index_path, readme_path]


def _valid_name(name: str) -> bool:
    package = classify(name)
    if package.package_root != name:
        return False
    if package.is_scoped:
        scope, _, bare = name[1:].partition("/")
        return bool(scope) and PACKAGE_NAME_PATTERN.fullmatch(bare) is not None
    return PACKAGE_NAME_PATTERN.fullmatch(name) is not None
