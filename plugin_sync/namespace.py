"""Classify declared plugin names into resolvable package roots."""

from __future__ import annotations

import re
from dataclasses import dataclass

EXTERNAL_NAME_PATTERN = re.compile(r"^\w[a-z0-9.\-]+")


@dataclass(frozen=True)
class PackageName:
    """A declared plugin name split into its resolvable parts."""

    name: str
    package_root: str
    is_scoped: bool
    is_external_candidate: bool


def classify(name: str) -> PackageName:
    """Classify a declared plugin name.

    Scoped names (``@scope/pkg/sub``) resolve through their first two path
    segments, plain names (``pkg/sub``) through their first one.

    Args:
        name: Plugin name as declared in the catalog

    Returns:
        PackageName with the package root and candidate flags
    """
    is_scoped = name.startswith("@")
    segments = name.split("/")
    package_root = "/".join(segments[:2] if is_scoped else segments[:1])

    is_external_candidate = is_scoped or EXTERNAL_NAME_PATTERN.match(name) is not None

    return PackageName(
        name=name,
        package_root=package_root,
        is_scoped=is_scoped,
        is_external_candidate=is_external_candidate,
    )


def package_root(name: str) -> str:
    """Return the package root of a declared plugin name."""
    return classify(name).package_root
