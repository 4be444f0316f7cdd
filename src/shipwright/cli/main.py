"""Shipwright CLI - Main entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shipwright import __version__
from shipwright.config import Settings, configure_logging, get_settings, load_release_config
from shipwright.errors import ShipwrightError

app = typer.Typer(
    name="shipwright",
    help="Run the configured release pipeline for the current repository",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)

_STATUS_STYLES = {
    "succeeded": "green",
    "skipped": "dim",
    "not_found": "red",
    "failed": "red",
}


def _load_settings(
    config: Optional[Path], working_dir: Optional[Path], log_level: Optional[str]
) -> Settings:
    overrides = {
        key: value
        for key, value in (
            ("config_file", config),
            ("working_dir", working_dir),
            ("log_level", log_level),
        )
        if value is not None
    }
    if not overrides:
        return get_settings()
    return Settings(**overrides)


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Release configuration file (default: shipwright.yml)"
    ),
    working_dir: Optional[Path] = typer.Option(
        None, "--working-dir", "-C", help="Repository to release (default: current directory)"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Print the run result as JSON"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """Run the release pipeline when no command is given."""
    if version:
        console.print(f"shipwright {__version__}")
        raise typer.Exit(0)

    settings = _load_settings(config, working_dir, log_level)
    configure_logging(
        level=settings.log_level,
        format="json" if json_logs else settings.log_format,
        sanitize_logs=settings.sanitize_logs,
    )
    ctx.obj = settings

    if ctx.invoked_subcommand is None:
        _run_pipeline(settings, json_output)


def _run_pipeline(settings: Settings, json_output: bool) -> None:
    from shipwright.engine import ReleaseEngine

    try:
        release_config = load_release_config(settings.config_path)
        engine = ReleaseEngine.from_settings(settings, release_config)
        result = engine.run()
    except ShipwrightError as e:
        logger.error("Release aborted: %s", e)
        _fail(str(e))

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        raise typer.Exit(result.exit_code)

    table = Table(title="Plugins")
    table.add_column("Plugin")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")
    for outcome in result.outcomes:
        status = outcome.result.status.value
        detail = outcome.result.error or (
            outcome.result.skip_reason.value if outcome.result.skip_reason else ""
        )
        table.add_row(
            outcome.entry.label,
            outcome.entry.stage.value,
            f"[{_STATUS_STYLES.get(status, 'white')}]{status}[/]",
            detail,
        )
    console.print(table)

    executed = result.release_plugins_executed
    lines = [
        f"[bold]{result.status.upper()}[/bold] on {result.context.branch} "
        f"({result.context.tag})",
        f"Release plugins executed: {', '.join(executed) if executed else 'none'}",
        f"Artifacts: {result.context.artifacts_dir}",
    ]
    if result.aborted_by:
        lines.append(f"[red]Aborted by {result.aborted_by}[/red]")
    if result.suggested_release_branch:
        lines.append(
            f"[dim]Run on '{result.suggested_release_branch}' to trigger release plugins[/dim]"
        )
    border = "green" if result.exit_code == 0 else "red"
    console.print(Panel("\n".join(lines), title="Release", border_style=border))
    raise typer.Exit(result.exit_code)


@app.command()
def plan(ctx: typer.Context):
    """Show how each configured plugin would be treated on the current branch."""
    from shipwright.plugins import is_publish_capable, policy_for, skip_reason
    from shipwright.release import GitRepository

    settings: Settings = ctx.obj
    try:
        registry = load_release_config(settings.config_path).registry()
        git = GitRepository(
            settings.working_dir, remote=settings.git_remote, timeout=settings.git_timeout_seconds
        )
        branch = git.current_branch()
    except ShipwrightError as e:
        _fail(str(e))

    release_branches = registry.release_branches()
    mode = "release" if branch in release_branches else "non-release"
    console.print(f"[dim]Branch:[/dim] {branch} ({mode})")

    table = Table(title="Plan")
    table.add_column("#", justify="right")
    table.add_column("Plugin")
    table.add_column("Stage")
    table.add_column("On failure")
    table.add_column("Publish")
    table.add_column("Runs")
    for index, entry in enumerate(registry, start=1):
        reason = skip_reason(entry, branch)
        table.add_row(
            str(index),
            entry.label,
            entry.stage.value,
            "abort" if policy_for(entry.stage).abort_on_failure else "continue",
            "yes" if is_publish_capable(entry) else "",
            "[green]yes[/green]" if reason is None else f"[dim]no ({reason.value})[/dim]",
        )
    console.print(table)


@app.command("plugins")
def list_plugins(ctx: typer.Context):
    """List the plugins that resolve from the built-in and override directories."""
    from shipwright.plugins import PUBLISH_PLUGINS, discover_plugins

    settings: Settings = ctx.obj
    found = discover_plugins(settings.plugin_search_dirs)
    if not found:
        console.print("[yellow]No plugins found[/yellow]")
        return

    table = Table(title="Plugins")
    table.add_column("Name")
    table.add_column("Source")
    table.add_column("Publish")
    for name, path in sorted(found.items()):
        source = "built-in" if path.parent == settings.builtin_plugins_dir else str(path.parent)
        table.add_row(name, source, "yes" if name in PUBLISH_PLUGINS else "")
    console.print(table)


if __name__ == "__main__":
    app()
