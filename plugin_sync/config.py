"""Project settings read from plugin-sync.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

SETTINGS_FILE = "plugin-sync.yaml"


class ConfigError(Exception):
    """Raised when the settings file is invalid."""

    pass


@dataclass
class Settings:
    """Layout of the host project.

    Attributes:
        project_dir: Root of the host project; packages resolve from here
        catalog: Catalog file, relative to project_dir
        plugins_dir: Directory holding local plugins, relative to project_dir
        package_manager: npm, yarn, pnpm or auto
        default_section: Section new plugins are registered in
    """

    project_dir: Path
    catalog: str = "plugins.yaml"
    plugins_dir: str = "plugins"
    package_manager: str = "auto"
    default_section: str = "server"

    @property
    def catalog_path(self) -> Path:
        return self.project_dir / self.catalog

    @property
    def plugins_path(self) -> Path:
        return self.project_dir / self.plugins_dir

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "project_dir"}


def get_settings_path(project_dir: Path) -> Path:
    return project_dir / SETTINGS_FILE


def load_settings(project_dir: Optional[Path] = None, **overrides: Optional[str]) -> Settings:
    """Load settings for a project.

    Args:
        project_dir: Project root (defaults to the current directory)
        **overrides: Values taking precedence over the file; None is ignored

    Returns:
        Settings with file values and overrides applied

    Raises:
        ConfigError: If the settings file is not a YAML mapping
    """
    if project_dir is None:
        project_dir = Path.cwd()
    project_dir = Path(project_dir).resolve()

    data: dict = {}
    settings_path = get_settings_path(project_dir)
    if settings_path.exists():
        try:
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {settings_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{settings_path} must contain a mapping")

    known = {f.name for f in fields(Settings)} - {"project_dir"}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r in %s", key, settings_path)
            continue
        values[key] = str(value)

    values.update({key: value for key, value in overrides.items() if value is not None})

    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

    return Settings(project_dir=project_dir, **values)
