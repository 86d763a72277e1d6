"""Run the package manager for the actions derived by reconciliation."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from plugin_sync.catalog import LocalPlugins, PluginEntry
from plugin_sync.reconcile import ActionSets

logger = logging.getLogger(__name__)

Runner = Callable[[list[str], Path], subprocess.CompletedProcess]


class ExecutionError(Exception):
    """Raised when a package manager command fails."""

    def __init__(
        self,
        message: str,
        command: Optional[list[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


@dataclass(frozen=True)
class PackageManager:
    """Command lines of one package manager."""

    name: str
    install_deps: tuple[str, ...]
    add: tuple[str, ...]
    upgrade: tuple[str, ...]

    def install_deps_command(self) -> list[str]:
        return [self.name, *self.install_deps]

    def add_command(self, entries: list[PluginEntry]) -> list[str]:
        return [self.name, *self.add, *(entry.target for entry in entries)]

    def upgrade_command(self, entries: list[PluginEntry]) -> list[str]:
        return [self.name, *self.upgrade, *(entry.target for entry in entries)]


PACKAGE_MANAGERS = {
    "npm": PackageManager("npm", ("install",), ("install",), ("install",)),
    "yarn": PackageManager("yarn", ("install",), ("add",), ("upgrade",)),
    "pnpm": PackageManager("pnpm", ("install",), ("add",), ("update",)),
}

LOCKFILES = [
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
    ("package-lock.json", "npm"),
]


def detect_package_manager(project_dir: Path, preferred: str = "auto") -> PackageManager:
    """Pick the package manager for a project.

    An explicit preference wins. Otherwise the project's lockfile decides,
    then the first of npm, yarn and pnpm found on PATH.

    Raises:
        ExecutionError: If the preference is unknown or nothing is available
    """
    if preferred != "auto":
        if preferred not in PACKAGE_MANAGERS:
            raise ExecutionError(
                f"Unknown package manager {preferred!r} "
                f"(expected one of: {', '.join(PACKAGE_MANAGERS)})"
            )
        return PACKAGE_MANAGERS[preferred]

    for lockfile, name in LOCKFILES:
        if (project_dir / lockfile).exists():
            logger.debug("Found %s, using %s", lockfile, name)
            return PACKAGE_MANAGERS[name]

    for name, manager in PACKAGE_MANAGERS.items():
        if shutil.which(name):
            logger.debug("Using %s from PATH", name)
            return manager

    raise ExecutionError("No package manager found (install npm, yarn or pnpm)")


def run_command(command: list[str], cwd: Path) -> subprocess.CompletedProcess:
    """Run a command to completion, capturing its output."""
    return subprocess.run(command, cwd=cwd, capture_output=True, text=True, check=False)


@dataclass
class Step:
    """One package manager invocation."""

    description: str
    command: list[str]
    cwd: Path
    executed: bool = False

    def __str__(self) -> str:
        return f"{self.description}: {' '.join(self.command)}"


@dataclass
class ExecutionReport:
    """Steps performed (or planned, in dry run mode) by the executor."""

    steps: list[Step] = field(default_factory=list)
    dry_run: bool = False

    @property
    def executed(self) -> list[Step]:
        return [step for step in self.steps if step.executed]


class ActionExecutor:
    """Apply reconciliation actions through a package manager.

    Steps run strictly in order: local plugin dependency installs one after
    another, then the batched fetch of missing plugins, then the batched
    upgrade. The first failing step aborts the rest.
    """

    def __init__(
        self,
        package_manager: PackageManager,
        project_dir: Path,
        local_plugins: LocalPlugins,
        runner: Runner = run_command,
        dry_run: bool = False,
        on_step: Optional[Callable[[Step], None]] = None,
    ):
        self.package_manager = package_manager
        self.project_dir = Path(project_dir)
        self.local_plugins = local_plugins
        self.runner = runner
        self.dry_run = dry_run
        self.on_step = on_step

    def plan(self, actions: ActionSets) -> list[Step]:
        """Compute the steps for a set of actions without running them."""
        steps = []
        pm = self.package_manager

        for entry in actions.local:
            plugin_dir = self.local_plugins.path_for(entry.package_root)
            if not (plugin_dir / "package.json").is_file():
                logger.debug("Local plugin %s has no package.json, skipping", entry.name)
                continue
            steps.append(
                Step(
                    description=f"Install dependencies of {entry.name}",
                    command=pm.install_deps_command(),
                    cwd=plugin_dir,
                )
            )

        if actions.fetchable:
            steps.append(
                Step(
                    description=f"Install {len(actions.fetchable)} missing plugin(s)",
                    command=pm.add_command(actions.fetchable),
                    cwd=self.project_dir,
                )
            )

        if actions.upgradable:
            steps.append(
                Step(
                    description=f"Upgrade {len(actions.upgradable)} plugin(s)",
                    command=pm.upgrade_command(actions.upgradable),
                    cwd=self.project_dir,
                )
            )

        return steps

    def execute(self, actions: ActionSets) -> ExecutionReport:
        """Run every planned step.

        Returns:
            ExecutionReport listing the steps

        Raises:
            ExecutionError: If a command cannot be started or exits non-zero
        """
        report = ExecutionReport(steps=self.plan(actions), dry_run=self.dry_run)

        for step in report.steps:
            if self.on_step is not None:
                self.on_step(step)

            if self.dry_run:
                logger.info("Dry run, not running: %s (in %s)", " ".join(step.command), step.cwd)
                continue

            self._run(step)
            step.executed = True

        return report

    def _run(self, step: Step) -> None:
        logger.debug("Running %s in %s", " ".join(step.command), step.cwd)
        try:
            result = self.runner(step.command, step.cwd)
        except OSError as e:
            raise ExecutionError(
                f"{step.description} failed: {e}", command=step.command
            ) from e

        if result.returncode != 0:
            raise ExecutionError(
                f"{step.description} failed with exit code {result.returncode}",
                command=step.command,
                returncode=result.returncode,
                stderr=result.stderr or "",
            )
