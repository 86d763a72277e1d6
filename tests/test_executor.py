"""Tests for the action executor."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from conftest import create_local_plugin
from plugin_sync.catalog import LocalPlugins, PluginEntry
from plugin_sync.executor import (
    PACKAGE_MANAGERS,
    ActionExecutor,
    ExecutionError,
    detect_package_manager,
)
from plugin_sync.reconcile import ActionSets


class FakeRunner:
    """Record commands and answer with canned exit codes."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.calls: list[tuple[list[str], Path]] = []

    def __call__(self, command: list[str], cwd: Path) -> subprocess.CompletedProcess:
        self.calls.append((command, cwd))
        returncode = 1 if self.fail_on and self.fail_on in command else 0
        return subprocess.CompletedProcess(command, returncode, stdout="", stderr="boom" if returncode else "")


def make_actions(project: Path) -> ActionSets:
    create_local_plugin(project, "ep_local")
    create_local_plugin(project, "ep_bare", with_manifest=False)
    return ActionSets(
        local=[PluginEntry("ep_local", "*"), PluginEntry("ep_bare", "*")],
        fetchable=[PluginEntry("left-pad", "^1.0.0"), PluginEntry("@acme/widgets/button", "~2.1.0")],
        upgradable=[PluginEntry("lodash", "^4.17.0")],
    )


def make_executor(project: Path, runner: FakeRunner, manager: str = "npm", **kwargs) -> ActionExecutor:
    return ActionExecutor(
        PACKAGE_MANAGERS[manager],
        project,
        LocalPlugins(project / "plugins"),
        runner=runner,
        **kwargs,
    )


class TestExecute:
    def test_runs_local_then_fetch_then_upgrade(self, project: Path) -> None:
        runner = FakeRunner()
        report = make_executor(project, runner).execute(make_actions(project))

        assert runner.calls == [
            (["npm", "install"], project / "plugins" / "ep_local"),
            (["npm", "install", "left-pad@^1.0.0", "@acme/widgets/button@~2.1.0"], project),
            (["npm", "install", "lodash@^4.17.0"], project),
        ]
        assert len(report.executed) == 3

    def test_yarn_commands(self, project: Path) -> None:
        runner = FakeRunner()
        make_executor(project, runner, manager="yarn").execute(make_actions(project))

        assert [command for command, _ in runner.calls] == [
            ["yarn", "install"],
            ["yarn", "add", "left-pad@^1.0.0", "@acme/widgets/button@~2.1.0"],
            ["yarn", "upgrade", "lodash@^4.17.0"],
        ]

    def test_empty_sets_run_nothing(self, project: Path) -> None:
        runner = FakeRunner()
        report = make_executor(project, runner).execute(ActionSets())

        assert runner.calls == []
        assert report.steps == []

    def test_dry_run_plans_but_does_not_run(self, project: Path) -> None:
        runner = FakeRunner()
        seen = []
        report = make_executor(project, runner, dry_run=True, on_step=seen.append).execute(
            make_actions(project)
        )

        assert runner.calls == []
        assert report.dry_run
        assert len(report.steps) == 3
        assert report.executed == []
        assert seen == report.steps

    def test_failing_fetch_aborts_upgrade(self, project: Path) -> None:
        runner = FakeRunner(fail_on="left-pad@^1.0.0")

        with pytest.raises(ExecutionError) as excinfo:
            make_executor(project, runner).execute(make_actions(project))

        assert excinfo.value.returncode == 1
        assert excinfo.value.stderr == "boom"
        assert "left-pad@^1.0.0" in excinfo.value.command
        assert len(runner.calls) == 2

    def test_missing_executable(self, project: Path) -> None:
        def runner(command: list[str], cwd: Path) -> subprocess.CompletedProcess:
            raise FileNotFoundError(command[0])

        executor = ActionExecutor(
            PACKAGE_MANAGERS["pnpm"], project, LocalPlugins(project / "plugins"), runner=runner
        )

        with pytest.raises(ExecutionError, match="failed"):
            executor.execute(ActionSets(fetchable=[PluginEntry("left-pad", "*")]))


class TestDetectPackageManager:
    def test_explicit_preference(self, project: Path) -> None:
        assert detect_package_manager(project, "pnpm").name == "pnpm"

    def test_unknown_preference(self, project: Path) -> None:
        with pytest.raises(ExecutionError, match="Unknown package manager"):
            detect_package_manager(project, "bower")

    @pytest.mark.parametrize(
        "lockfile,expected",
        [("yarn.lock", "yarn"), ("pnpm-lock.yaml", "pnpm"), ("package-lock.json", "npm")],
    )
    def test_lockfile_decides(self, project: Path, lockfile: str, expected: str) -> None:
        (project / lockfile).write_text("")

        assert detect_package_manager(project).name == expected

    def test_falls_back_to_path(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shutil.which", lambda name: "/usr/bin/yarn" if name == "yarn" else None)

        assert detect_package_manager(project).name == "yarn"

    def test_nothing_available(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shutil.which", lambda name: None)

        with pytest.raises(ExecutionError, match="No package manager found"):
            detect_package_manager(project)
