"""Declared plugin catalog stored in plugins.yaml."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from plugin_sync.namespace import package_root

ANY_VERSION = "*"


class CatalogError(Exception):
    """Raised when the catalog file cannot be read or is malformed."""

    pass


@dataclass(frozen=True)
class PluginEntry:
    """A plugin declared in the catalog."""

    name: str
    version_range: str
    section: str = ""

    @property
    def package_root(self) -> str:
        return package_root(self.name)

    @property
    def target(self) -> str:
        """Install target in ``name@range`` form."""
        return f"{self.name}@{self.version_range}"

    def __str__(self) -> str:
        return f"{self.name} {self.version_range}"


@dataclass
class Catalog:
    """Ordered mapping of section name to declared plugin entries."""

    sections: dict[str, list[PluginEntry]] = field(default_factory=dict)

    def entries(self) -> Iterator[PluginEntry]:
        """Iterate all sections flattened, in declaration order."""
        for entries in self.sections.values():
            yield from entries

    def section(self, name: str) -> list[PluginEntry]:
        return self.sections.get(name, [])

    def __len__(self) -> int:
        return sum(len(entries) for entries in self.sections.values())

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        return {
            section: {entry.name: entry.version_range for entry in entries}
            for section, entries in self.sections.items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> Catalog:
        """Create from a parsed catalog document.

        Raises:
            CatalogError: If the document does not map sections to plugins
        """
        sections: dict[str, list[PluginEntry]] = {}

        for section, plugins in data.items():
            section = str(section)
            if plugins is None:
                plugins = {}
            if not isinstance(plugins, dict):
                raise CatalogError(f"Section {section!r} must map plugin names to version ranges")

            entries = []
            for name, version_range in plugins.items():
                if version_range is None:
                    version_range = ANY_VERSION
                if not isinstance(version_range, str):
                    raise CatalogError(
                        f"Version range for {name!r} in section {section!r} must be a string"
                    )
                entries.append(PluginEntry(name=str(name), version_range=version_range, section=section))
            sections[section] = entries

        return cls(sections=sections)


class CatalogStore:
    """Read and update the persisted catalog.

    Every operation goes back to the file, so independent invocations never
    share in-memory catalog state.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Catalog:
        """Read the catalog, returning an empty one if the file does not exist.

        Raises:
            CatalogError: If the file is unreadable or malformed
        """
        if not self.path.exists():
            return Catalog()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise CatalogError(f"Cannot read catalog {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise CatalogError(f"Catalog {self.path} must be a mapping of sections")

        return Catalog.from_dict(data)

    def save(self, catalog: Catalog) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.dump(catalog.to_dict(), f, default_flow_style=False, sort_keys=False)

    def append(self, section: str, name: str, version_range: str = ANY_VERSION) -> Catalog:
        """Add or replace a plugin in a section and persist the result.

        Args:
            section: Section to add the plugin to (created if missing)
            name: Plugin name
            version_range: Required version range

        Returns:
            The newly persisted catalog
        """
        data = self.load().to_dict()
        data.setdefault(section, {})[name] = version_range

        catalog = Catalog.from_dict(data)
        self.save(catalog)
        return catalog


class LocalPlugins:
    """Membership test for plugins living in the project's own tree."""

    def __init__(self, plugins_dir: Path):
        self.plugins_dir = Path(plugins_dir)

    def path_for(self, root: str) -> Path:
        return self.plugins_dir / root

    def is_local(self, root: str) -> bool:
        # relative references such as "./lib" must not match plugins_dir itself
        if root in ("", ".", ".."):
            return False
        return self.path_for(root).is_dir()
