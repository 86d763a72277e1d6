"""Plugin catalog reconciliation.

This package compares the plugins a project declares with what is actually
installed, and installs or upgrades whatever is missing.
"""

from plugin_sync.catalog import Catalog, CatalogStore, LocalPlugins, PluginEntry
from plugin_sync.executor import ActionExecutor, ExecutionError, detect_package_manager
from plugin_sync.namespace import PackageName, classify
from plugin_sync.prober import InstallationProber
from plugin_sync.reconcile import ActionSets, Classification, reconcile

__version__ = "0.1.0"

__all__ = [
    "ActionExecutor",
    "ActionSets",
    "Catalog",
    "CatalogStore",
    "Classification",
    "ExecutionError",
    "InstallationProber",
    "LocalPlugins",
    "PackageName",
    "PluginEntry",
    "classify",
    "detect_package_manager",
    "reconcile",
]
