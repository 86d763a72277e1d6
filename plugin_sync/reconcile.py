"""Reconcile the declared catalog against installed state.

Reconciliation is a pure classification pass: every declared plugin is
classified as local, missing, out of date or satisfied, and the
classification decides which action set it lands in. Nothing is installed
here; see ``plugin_sync.executor`` for that.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol

from plugin_sync.catalog import Catalog, PluginEntry
from plugin_sync.namespace import classify


class Membership(Protocol):
    def is_local(self, root: str) -> bool: ...


class Prober(Protocol):
    def is_installed(self, root: str) -> bool: ...

    def satisfies_range(self, root: str, version_range: str) -> bool: ...


class Classification(Enum):
    """Installation state of a declared plugin."""

    LOCAL = "local"
    MISSING = "missing"
    OUT_OF_DATE = "out-of-date"
    SATISFIED = "satisfied"


@dataclass(frozen=True)
class ClassifiedEntry:
    entry: PluginEntry
    package_root: str
    state: Classification


@dataclass
class ActionSets:
    """Actions derived from one reconciliation pass.

    Attributes:
        local: Plugins living in the project's own tree
        fetchable: Remote plugins that are not installed
        upgradable: Installed remote plugins to refresh (upgrade mode only)
        report: Every classified entry, in catalog order
    """

    local: list[PluginEntry] = field(default_factory=list)
    fetchable: list[PluginEntry] = field(default_factory=list)
    upgradable: list[PluginEntry] = field(default_factory=list)
    report: list[ClassifiedEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.local or self.fetchable or self.upgradable)

    def by_state(self, state: Classification) -> list[PluginEntry]:
        return [item.entry for item in self.report if item.state is state]

    def summary(self) -> dict:
        """Return entry counts per classification and action set."""
        counts = {state.value: len(self.by_state(state)) for state in Classification}
        counts.update(
            {
                "local_installs": len(self.local),
                "fetch": len(self.fetchable),
                "upgrade": len(self.upgradable),
            }
        )
        return counts


def reconcile(
    catalog: Catalog,
    membership: Membership,
    prober: Prober,
    upgrade_remote: bool = False,
    on_classified: Optional[Callable[[ClassifiedEntry], None]] = None,
) -> ActionSets:
    """Classify every catalog entry and derive the action sets.

    Entries that are neither external package names nor local plugins
    (relative module references and the like) are skipped; the rest of the
    catalog is still classified.

    Args:
        catalog: Declared plugins
        membership: Decides whether a package root is a local plugin
        prober: Answers installed / in-range queries for package roots
        upgrade_remote: Queue installed remote plugins for upgrade
        on_classified: Called once per classified entry, in catalog order

    Returns:
        ActionSets holding the local, fetchable and upgradable entries
    """
    actions = ActionSets()

    for entry in catalog.entries():
        name = classify(entry.name)
        root = name.package_root
        is_local = membership.is_local(root)

        if not name.is_external_candidate and not is_local:
            continue

        if is_local:
            state = Classification.LOCAL
            actions.local.append(entry)
        elif not prober.is_installed(root):
            state = Classification.MISSING
            actions.fetchable.append(entry)
        elif not prober.satisfies_range(root, entry.version_range):
            state = Classification.OUT_OF_DATE
            if upgrade_remote:
                actions.upgradable.append(entry)
        else:
            state = Classification.SATISFIED
            if upgrade_remote:
                actions.upgradable.append(entry)

        classified = ClassifiedEntry(entry=entry, package_root=root, state=state)
        actions.report.append(classified)
        if on_classified is not None:
            on_classified(classified)

    return actions
