"""CLI for reconciling a project's plugin catalog."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from plugin_sync.catalog import CatalogError, CatalogStore, LocalPlugins
from plugin_sync.config import ConfigError, Settings, load_settings
from plugin_sync.executor import ActionExecutor, ExecutionError, Step, detect_package_manager
from plugin_sync.prober import InstallationProber
from plugin_sync.reconcile import ActionSets, Classification, ClassifiedEntry, reconcile
from plugin_sync.scaffold import ScaffoldError, scaffold_plugin

STATE_STYLES = {
    Classification.LOCAL: ("•", "cyan"),
    Classification.MISSING: ("✗", "red"),
    Classification.OUT_OF_DATE: ("⚠", "yellow"),
    Classification.SATISFIED: ("✓", "green"),
}


@click.group()
@click.version_option()
@click.option(
    "--project-dir",
    "-C",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Host project directory (defaults to the current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, project_dir: Optional[Path], verbose: bool) -> None:
    """Keep a project's declared plugins installed and up to date."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = project_dir


def _settings(ctx: click.Context, **overrides: Optional[str]) -> Settings:
    try:
        return load_settings(ctx.obj, **overrides)
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red")
        raise SystemExit(1)


def _reconcile(settings: Settings, upgrade_remote: bool, quiet: bool) -> ActionSets:
    try:
        catalog = CatalogStore(settings.catalog_path).load()
    except CatalogError as e:
        click.secho(f"✗ {e}", fg="red")
        raise SystemExit(1)

    prober = InstallationProber(settings.project_dir)

    def show(item: ClassifiedEntry) -> None:
        symbol, color = STATE_STYLES[item.state]
        line = f"  {symbol} {item.entry.name} {item.entry.version_range}"
        if item.state is Classification.OUT_OF_DATE:
            installed = prober.installed_version(item.package_root)
            line += f" (installed: {installed or 'unknown'})"
        click.secho(f"{line}  [{item.state.value}]", fg=color)

    return reconcile(
        catalog,
        LocalPlugins(settings.plugins_path),
        prober,
        upgrade_remote=upgrade_remote,
        on_classified=None if quiet else show,
    )


def _echo_action_sets(actions: ActionSets) -> None:
    for label, entries in (
        ("Local", actions.local),
        ("Fetch", actions.fetchable),
        ("Upgrade", actions.upgradable),
    ):
        if entries:
            click.echo(f"{label} ({len(entries)}): {', '.join(entry.target for entry in entries)}")


@main.command()
@click.option("--upgrade-remote", "-u", is_flag=True, help="Also queue installed remote plugins for upgrade")
@click.pass_context
def status(ctx: click.Context, upgrade_remote: bool) -> None:
    """Show the state of every declared plugin."""
    settings = _settings(ctx)
    click.echo(f"Checking plugins in {settings.catalog_path}...")

    actions = _reconcile(settings, upgrade_remote, quiet=False)

    if not actions.report:
        click.echo("No plugins declared.")
        return

    click.echo()
    _echo_action_sets(actions)

    out_of_date = actions.by_state(Classification.OUT_OF_DATE)
    if out_of_date and not upgrade_remote:
        click.secho(
            f"⚠ {len(out_of_date)} plugin(s) out of date, run sync --upgrade-remote to upgrade",
            fg="yellow",
        )


@main.command()
@click.option("--upgrade-remote", "-u", is_flag=True, help="Upgrade installed remote plugins")
@click.option("--quiet", "-q", is_flag=True, help="Do not report each plugin")
@click.option("--dry-run", "-n", is_flag=True, help="Show what would run without running it")
@click.option("--package-manager", type=click.Choice(["auto", "npm", "yarn", "pnpm"]), default=None)
@click.pass_context
def sync(
    ctx: click.Context,
    upgrade_remote: bool,
    quiet: bool,
    dry_run: bool,
    package_manager: Optional[str],
) -> None:
    """Install missing plugins and local plugin dependencies."""
    settings = _settings(ctx, package_manager=package_manager)

    if not quiet:
        click.echo(f"Checking plugins in {settings.catalog_path}...")
    actions = _reconcile(settings, upgrade_remote, quiet)

    out_of_date = actions.by_state(Classification.OUT_OF_DATE)
    if out_of_date and not upgrade_remote:
        click.secho(
            f"⚠ Not upgrading out of date plugins: {', '.join(str(entry) for entry in out_of_date)}",
            fg="yellow",
        )

    if actions.is_empty:
        click.secho("✓ Nothing to do", fg="green")
        return

    def show_step(step: Step) -> None:
        prefix = "[dry run] " if dry_run else ""
        click.echo(f"{prefix}{step.description}")
        click.secho(f"  $ {' '.join(step.command)}", dim=True)

    try:
        pm = detect_package_manager(settings.project_dir, settings.package_manager)
        executor = ActionExecutor(
            pm,
            settings.project_dir,
            LocalPlugins(settings.plugins_path),
            dry_run=dry_run,
            on_step=show_step,
        )
        report = executor.execute(actions)
    except ExecutionError as e:
        click.secho(f"✗ {e}", fg="red")
        if e.stderr:
            click.echo(e.stderr.rstrip(), err=True)
        raise SystemExit(1)

    if dry_run:
        click.secho(f"✓ Dry run: {len(report.steps)} step(s) planned", fg="green")
    else:
        click.secho(f"✓ Completed {len(report.executed)} step(s)", fg="green")


@main.command(name="list")
@click.pass_context
def list_plugins(ctx: click.Context) -> None:
    """List declared plugins by section."""
    settings = _settings(ctx)

    try:
        catalog = CatalogStore(settings.catalog_path).load()
    except CatalogError as e:
        click.secho(f"✗ {e}", fg="red")
        raise SystemExit(1)

    if not len(catalog):
        click.echo("No plugins declared.")
        return

    for section, entries in catalog.sections.items():
        click.secho(f"{section} ({len(entries)}):", fg="cyan", bold=True)
        for entry in entries:
            click.echo(f"  {entry.name} {entry.version_range}")


@main.command()
@click.argument("name", required=False)
@click.option("--section", "-s", default=None, help="Catalog section to register the plugin in")
@click.option("--description", "-d", default=None, help="Plugin description")
@click.option("--version", "version", default="0.1.0", show_default=True, help="Initial version")
@click.pass_context
def new(
    ctx: click.Context,
    name: Optional[str],
    section: Optional[str],
    description: Optional[str],
    version: str,
) -> None:
    """Create a new local plugin and register it."""
    settings = _settings(ctx)

    if name is None:
        name = click.prompt("Plugin name")
    if section is None:
        section = click.prompt("Section", default=settings.default_section)
    if description is None:
        description = click.prompt("Description", default="", show_default=False)

    try:
        result = scaffold_plugin(settings, name, section=section, description=description, version=version)
    except ScaffoldError as e:
        click.secho(f"✗ {e}", fg="red")
        raise SystemExit(1)

    click.secho(str(result), fg="green" if result.registered else "yellow")


if __name__ == "__main__":
    main()
