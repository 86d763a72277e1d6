"""Probe the installed state of packages under node_modules trees."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from semantic_version import NpmSpec, Version

logger = logging.getLogger(__name__)


class InstallationProber:
    """Answer read-only questions about installed packages.

    Resolution follows the node lookup rules: ``node_modules/<root>`` is
    searched in the base directory and then in each of its ancestors, and the
    first ``package.json`` found wins. Nothing is cached, so every query
    reflects the filesystem at the time it is asked.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).resolve()

    def manifest_path(self, root: str) -> Optional[Path]:
        """Locate the package.json of an installed package root."""
        for directory in (self.base_dir, *self.base_dir.parents):
            candidate = directory / "node_modules" / root / "package.json"
            try:
                if candidate.is_file():
                    return candidate
            except OSError as e:
                logger.debug("Cannot stat %s: %s", candidate, e)
        return None

    def is_installed(self, root: str) -> bool:
        """Return True if a manifest for ``root`` can be located."""
        return self.manifest_path(root) is not None

    def installed_version(self, root: str) -> Optional[str]:
        """Return the version declared by the installed manifest, if any."""
        path = self.manifest_path(root)
        if path is None:
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug("Cannot read manifest %s: %s", path, e)
            return None

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str):
            logger.debug("Manifest %s declares no version", path)
            return None
        return version

    def satisfies_range(self, root: str, version_range: str) -> bool:
        """Return True if ``root`` is installed at a version within ``version_range``.

        Invalid versions and ranges count as not satisfied.
        """
        version = self.installed_version(root)
        if version is None:
            return False

        try:
            return NpmSpec(version_range).match(Version(version))
        except ValueError as e:
            logger.debug("Cannot match %s@%s against %r: %s", root, version, version_range, e)
            return False
