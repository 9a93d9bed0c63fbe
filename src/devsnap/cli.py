"""CLI entry point for devsnap using Typer.

Exit codes: 0 success, 1 policy/validation error, 2 filesystem adapter
error, 3 confirmation declined by the operator.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from collections.abc import Coroutine
from datetime import datetime
from enum import StrEnum
from importlib.resources import files
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from devsnap import __version__
from devsnap.adapters import FilesystemAdapter, SnapperAdapter
from devsnap.config import Configuration
from devsnap.disk import format_bytes
from devsnap.errors import ConfigurationError, FilesystemError, NotFoundError, SnapshotError
from devsnap.hooks import HookDispatcher
from devsnap.logger import configure_logging, create_log_file_path, get_latest_log_file, get_logs_directory
from devsnap.models import (
    AlertLevel,
    ChangeType,
    HealthReport,
    PathChange,
    RestoreResult,
    Snapshot,
    SnapshotKind,
    Tier,
    VcsEvent,
)
from devsnap.monitor import Monitor
from devsnap.policy import PolicyStore
from devsnap.restore import RestoreSession, rollback_phrase
from devsnap.retention import RetentionEngine
from devsnap.scheduler import Scheduler
from devsnap.vcs import install_hooks, resolve_event_refs, resolve_repo_name

EXIT_OK = 0
EXIT_POLICY = 1
EXIT_FILESYSTEM = 2
EXIT_ABORTED = 3

app = typer.Typer(
    name="snapshot",
    help="Snapshot lifecycle manager for btrfs development workstations",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to config file (default: ~/.config/devsnap/config.yaml)",
    ),
]


class CreateKind(StrEnum):
    """Kinds an operator may create with `snapshot create`."""

    MILESTONE = "milestone"
    MANUAL = "manual"


def _version_callback(value: bool) -> None:
    """Print version and exit if --version flag is provided."""
    if value:
        console.print(f"devsnap {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version_flag: Annotated[
        bool,
        typer.Option("--version", "-v", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Create, prune, inspect and restore btrfs snapshots."""


def _fail(error: SnapshotError) -> NoReturn:
    """Print an error with its kind and exit with the matching code."""
    if isinstance(error, ConfigurationError):
        console.print("[bold red]Configuration error:[/bold red]")
        for item in error.errors:
            console.print(f"  {escape(item.path)}: {escape(item.message)}")
    else:
        console.print(f"[bold red]Error ({error.kind_name}):[/bold red] {escape(str(error))}")
    sys.exit(EXIT_FILESYSTEM if isinstance(error, FilesystemError) else EXIT_POLICY)


def _load_configuration(config_path: Path | None) -> Configuration:
    """Load configuration, exiting with code 1 if it is invalid."""
    try:
        return Configuration.from_yaml(config_path or Configuration.get_default_config_path())
    except ConfigurationError as e:
        _fail(e)


def _build_adapter(cfg: Configuration) -> FilesystemAdapter:
    """Production adapter for a configuration."""
    return SnapperAdapter(cfg.subvolumes, timeouts=cfg.timeouts, sudo=cfg.sudo)


def _setup_logging(cfg: Configuration, command: str, to_file: bool = True) -> None:
    log_file_path = create_log_file_path(command) if to_file else None
    configure_logging(cfg.log_file_level, cfg.log_cli_level, log_file_path)


def _prepare(
    config_path: Path | None,
    command: str,
    subvolume: str | None = None,
) -> tuple[Configuration, FilesystemAdapter]:
    """Shared command setup: config, logging and adapter."""
    cfg = _load_configuration(config_path)
    if subvolume is not None:
        try:
            cfg.get_subvolume(subvolume)
        except ConfigurationError as e:
            _fail(e)
    _setup_logging(cfg, command)
    return cfg, _build_adapter(cfg)


def _run[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning devsnap errors into an exit code."""
    try:
        return asyncio.run(coro)
    except SnapshotError as e:
        _fail(e)


def _now() -> datetime:
    # Local, timezone-aware: cron expressions are written in wall-clock time
    return datetime.now().astimezone()


def _format_age(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    if seconds < 3600:
        return f"{int(seconds // 60)}m"
    if seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    return f"{seconds / 86400:.1f}d"


def _format_tags(tags: dict[str, str]) -> str:
    return ", ".join(f"{k}={v}" for k, v in sorted(tags.items()))


def _snapshot_table(snapshots: list[Snapshot], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Created")
    table.add_column("Kind")
    table.add_column("Protected", justify="center")
    table.add_column("Description")
    table.add_column("Tags", style="dim")
    for snapshot in snapshots:
        table.add_row(
            str(snapshot.id),
            snapshot.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            snapshot.kind.value,
            "[green]yes[/green]" if snapshot.protected else "",
            escape(snapshot.description),
            escape(_format_tags(snapshot.tags)),
        )
    return table


_CHANGE_STYLES = {
    ChangeType.ADDED: ("+", "green"),
    ChangeType.REMOVED: ("-", "red"),
    ChangeType.MODIFIED: ("~", "yellow"),
}


def _print_changes(changes: list[PathChange], numbered: bool = False) -> None:
    if not changes:
        console.print("[green]No differences from the live subvolume[/green]")
        return
    for index, change in enumerate(changes, start=1):
        symbol, style = _CHANGE_STYLES[change.change]
        text = Text()
        if numbered:
            text.append(f"{index:4} ", style="dim")
        text.append(f"{symbol} ", style=style)
        text.append(change.path)
        console.print(text)


def _select_paths(changes: list[PathChange]) -> list[str]:
    """Interactive path selection from a reviewed diff."""
    _print_changes(changes, numbered=True)
    while True:
        answer = Prompt.ask(
            "Paths to restore (numbers separated by spaces, 'all', or empty to cancel)",
            default="",
            show_default=False,
        ).strip()
        if not answer:
            return []
        if answer.lower() == "all":
            return [change.path for change in changes]
        try:
            indices = [int(token) for token in answer.replace(",", " ").split()]
        except ValueError:
            console.print("[yellow]Enter numbers from the list above[/yellow]")
            continue
        if all(1 <= i <= len(changes) for i in indices):
            return [changes[i - 1].path for i in indices]
        console.print(f"[yellow]Numbers must be between 1 and {len(changes)}[/yellow]")


def _print_restore_result(result: RestoreResult) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Path")
    table.add_column("Result")
    for item in result.paths:
        if item.success:
            table.add_row(escape(item.path), "[green]restored[/green]")
        else:
            kind = getattr(item.error, "kind_name", "error")
            table.add_row(escape(item.path), f"[red]failed ({kind}):[/red] {escape(str(item.error))}")
    console.print(table)
    color = "green" if not result.failed else "red"
    console.print(f"[bold {color}]{result.state.value.upper()}[/bold {color}]")
    safety = result.safety_snapshot
    console.print(f"[dim]Undo with: snapshot restore {safety.subvolume} {safety.id}[/dim]")


def _print_report(report: HealthReport) -> None:
    table = Table(title=f"Status: {report.subvolume}", show_header=False)
    table.add_column("Metric", style="cyan", width=22)
    table.add_column("Value")
    table.add_row("Store usage", f"{report.used_percent}%")
    table.add_row("Free space", format_bytes(report.free_bytes))
    table.add_row("Snapshots", str(report.snapshot_count))
    table.add_row("Oldest snapshot", _format_age(report.oldest_snapshot_age))
    for tier in Tier:
        if tier in report.tier_counts:
            table.add_row(f"  {tier.value}", str(report.tier_counts[tier]))
    console.print(table)
    for alert in report.alerts:
        style = "bold red" if alert.level == AlertLevel.CRITICAL else "yellow"
        console.print(f"[{style}]{alert.level.value.upper()}:[/{style}] {escape(alert.message)}")


def _confirm(question: str) -> bool:
    return Prompt.ask(question, choices=["y", "n"], default="n").lower() == "y"


@app.command()
def create(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to snapshot")],
    description: Annotated[str, typer.Argument(help="Snapshot description")],
    kind: Annotated[CreateKind, typer.Option("--kind", help="Snapshot kind")] = CreateKind.MANUAL,
    protect: Annotated[
        bool | None,
        typer.Option("--protect/--no-protect", help="Exempt from automatic deletion (default: yes)"),
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Create a snapshot of a subvolume now."""
    _, adapter = _prepare(config, "create", subvolume)
    snapshot_kind = SnapshotKind(kind.value)
    protected = snapshot_kind.protected_by_default if protect is None else protect
    snapshot = _run(adapter.create_snapshot(subvolume, snapshot_kind, description, {}, protected=protected))
    state = "protected" if snapshot.protected else "unprotected"
    console.print(f"[green]Created {snapshot.kind.value} snapshot {snapshot.id}[/green] of {subvolume} ({state})")


@app.command("list")
def list_snapshots(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to list")],
    config: ConfigOption = None,
) -> None:
    """List snapshots of a subvolume, newest first."""
    _, adapter = _prepare(config, "list", subvolume)
    snapshots = _run(RestoreSession(adapter, subvolume).browse())
    if not snapshots:
        console.print(f"[yellow]No snapshots for {subvolume}[/yellow]")
        return
    console.print(_snapshot_table(snapshots, f"Snapshots of {subvolume}"))


@app.command()
def diff(
    subvolume: Annotated[str, typer.Argument(help="Subvolume")],
    snapshot_id: Annotated[int, typer.Argument(help="Snapshot to compare with the live subvolume")],
    config: ConfigOption = None,
) -> None:
    """Show paths that changed since a snapshot."""
    _, adapter = _prepare(config, "diff", subvolume)
    changes = _run(RestoreSession(adapter, subvolume).review(snapshot_id))
    _print_changes(changes)
    if changes:
        console.print(f"\n{len(changes)} changed path(s)")


async def _restore(
    session: RestoreSession,
    snapshot_id: int,
    paths: list[str],
    full: bool,
    yes: bool,
    confirmation: str | None,
) -> int:
    changes = await session.review(snapshot_id)
    subvolume = session.subvolume

    if full:
        await session.ensure_rollback_target()
        _print_changes(changes)
        phrase = rollback_phrase(subvolume)
        if confirmation is None:
            console.print(
                f"[bold red]Full rollback discards every change to '{subvolume}' "
                f"made after snapshot {snapshot_id}.[/bold red]"
            )
            confirmation = Prompt.ask(f"Type [bold]{phrase}[/bold] to continue")
        if confirmation != phrase:
            console.print("[yellow]Confirmation phrase did not match, aborted[/yellow]")
            return EXIT_ABORTED
        safety = await session.take_safety_snapshot()
        console.print(f"Safety snapshot {safety.id} created")
        await session.restore_subvolume(confirmation)
        console.print(f"[bold green]Rolled back {subvolume} to snapshot {snapshot_id}[/bold green]")
        console.print(f"[dim]Undo with: snapshot restore {subvolume} {safety.id} --all[/dim]")
        return EXIT_OK

    if not paths:
        if not changes:
            console.print("[green]Nothing to restore: no differences from the live subvolume[/green]")
            return EXIT_OK
        paths = _select_paths(changes)
        if not paths:
            console.print("[yellow]No paths selected, aborted[/yellow]")
            return EXIT_ABORTED
    else:
        _print_changes(changes)

    if not yes and not _confirm(f"Restore {len(paths)} path(s) from snapshot {snapshot_id}?"):
        console.print("[yellow]Aborted[/yellow]")
        return EXIT_ABORTED

    safety = await session.take_safety_snapshot()
    console.print(f"Safety snapshot {safety.id} created")
    result = await session.restore_paths(paths)
    _print_restore_result(result)
    return EXIT_FILESYSTEM if result.failed else EXIT_OK


@app.command()
def restore(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to restore into")],
    snapshot_id: Annotated[int, typer.Argument(help="Snapshot to restore from")],
    paths: Annotated[list[str] | None, typer.Argument(help="Paths to restore (omit to choose interactively)")] = None,
    full: Annotated[bool, typer.Option("--all", help="Roll back the whole subvolume")] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask before restoring paths")] = False,
    confirmation: Annotated[
        str | None,
        typer.Option("--confirm", help="Rollback confirmation phrase for --all (skips the prompt)"),
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Restore paths, or the whole subvolume, from a snapshot.

    A protected pre-restore snapshot of the live subvolume is always taken
    first so the restore itself can be undone.
    """
    if full and paths:
        console.print("[bold red]Error:[/bold red] --all cannot be combined with paths")
        raise typer.Exit(EXIT_POLICY)
    _, adapter = _prepare(config, "restore", subvolume)
    session = RestoreSession(adapter, subvolume)
    exit_code = _run(_restore(session, snapshot_id, list(paths or []), full, yes, confirmation))
    raise typer.Exit(exit_code)


@app.command()
def reconcile(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to prune")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would be deleted without deleting")] = False,
    config: ConfigOption = None,
) -> None:
    """Apply the retention policy to a subvolume."""
    cfg, adapter = _prepare(config, "reconcile", subvolume)
    engine = RetentionEngine(adapter, PolicyStore.from_configuration(cfg))
    result = _run(engine.reconcile(subvolume, dry_run=dry_run))

    verb = "Would delete" if dry_run else "Deleted"
    if result.deleted:
        console.print(_snapshot_table(result.deleted, f"{verb} {len(result.deleted)} snapshot(s)"))
    else:
        console.print("[green]Nothing to delete[/green]")
    console.print(f"Kept {len(result.kept)} snapshot(s)")

    if result.errors:
        for error in result.errors:
            kind = getattr(error, "kind_name", "error")
            console.print(f"[bold red]Error ({kind}):[/bold red] {escape(str(error))}")
        console.print("[yellow]Failed deletions will be retried on the next reconcile[/yellow]")
        raise typer.Exit(EXIT_FILESYSTEM)


@app.command()
def status(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to report on")],
    config: ConfigOption = None,
) -> None:
    """Show store usage, snapshot counts and alerts."""
    cfg, adapter = _prepare(config, "status", subvolume)
    monitor = Monitor(adapter, PolicyStore.from_configuration(cfg))
    _print_report(_run(monitor.report(subvolume)))


@app.command()
def summary(config: ConfigOption = None) -> None:
    """Snapshot counts for every configured subvolume."""
    cfg, adapter = _prepare(config, "summary")
    monitor = Monitor(adapter, PolicyStore.from_configuration(cfg))
    reports = _run(monitor.summary())

    table = Table(title="Snapshot summary", show_header=True, header_style="bold magenta")
    table.add_column("Subvolume", style="cyan")
    table.add_column("Snapshots", justify="right")
    table.add_column("Usage", justify="right")
    table.add_column("Oldest", justify="right")
    table.add_column("Alerts")
    for report in reports:
        level = report.highest_alert
        style = "bold red" if level == AlertLevel.CRITICAL else "yellow"
        alert = "" if level is None else f"[{style}]{level.value}[/]"
        if report.error is not None:
            table.add_row(report.subvolume, "-", "-", "-", f"{alert} {escape(report.error)}")
            continue
        table.add_row(
            report.subvolume,
            str(report.snapshot_count),
            f"{report.used_percent}%",
            _format_age(report.oldest_snapshot_age),
            alert,
        )
    console.print(table)
    console.print(f"Total snapshots: {sum(report.snapshot_count for report in reports)}")


@app.command()
def delete(
    subvolume: Annotated[str, typer.Argument(help="Subvolume")],
    snapshot_id: Annotated[int, typer.Argument(help="Snapshot to delete")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    config: ConfigOption = None,
) -> None:
    """Delete one snapshot, protected or not."""
    _, adapter = _prepare(config, "delete", subvolume)

    async def _delete() -> bool:
        snapshots = await adapter.list_snapshots(subvolume)
        target = next((s for s in snapshots if s.id == snapshot_id), None)
        if target is None:
            raise NotFoundError(snapshot_id, subvolume)
        note = " (protected)" if target.protected else ""
        if not yes and not _confirm(f"Delete {target.kind.value} snapshot {snapshot_id}{note}?"):
            return False
        await adapter.delete_snapshot(snapshot_id, subvolume)
        return True

    if not _run(_delete()):
        console.print("[yellow]Aborted[/yellow]")
        raise typer.Exit(EXIT_ABORTED)
    console.print(f"[green]Deleted snapshot {snapshot_id}[/green] of {subvolume}")


@app.command()
def predeploy(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to snapshot")],
    project: Annotated[str, typer.Argument(help="Project being deployed")],
    version: Annotated[str, typer.Argument(help="Version being deployed")],
    config: ConfigOption = None,
) -> None:
    """Snapshot a subvolume before a deployment."""
    _, adapter = _prepare(config, "predeploy", subvolume)
    snapshot = _run(
        adapter.create_snapshot(
            subvolume,
            SnapshotKind.PRE_DEPLOY,
            f"pre-deploy-{project}-{version}",
            {"project": project, "version": version},
        )
    )
    console.print(f"[green]Created pre-deploy snapshot {snapshot.id}[/green] of {subvolume}")


@app.command()
def tick(
    at: Annotated[
        str | None,
        typer.Option("--at", help="Evaluate the schedule at this ISO 8601 time instead of now"),
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Run due schedule entries. Meant to be started every minute by a timer.

    Snapshot failures are logged and never change the exit code.
    """
    cfg = _load_configuration(config)
    if at is None:
        now = _now()
    else:
        try:
            now = datetime.fromisoformat(at).astimezone()
        except ValueError:
            console.print(f"[bold red]Error:[/bold red] Invalid --at time: {escape(at)}")
            raise typer.Exit(EXIT_POLICY) from None
    _setup_logging(cfg, "tick", to_file=False)
    scheduler = Scheduler(_build_adapter(cfg), PolicyStore.from_configuration(cfg), cfg.schedule)
    created = asyncio.run(scheduler.tick(now))
    for snapshot in created:
        console.print(f"Created {snapshot.kind.value} snapshot {snapshot.id} of {snapshot.subvolume}")


@app.command()
def fire(
    subvolume: Annotated[str, typer.Argument(help="Subvolume to snapshot")],
    tier: Annotated[Tier, typer.Argument(help="Timeline tier")],
    config: ConfigOption = None,
) -> None:
    """Take a timeline snapshot of one tier now, unless one is younger than min_age."""
    cfg, adapter = _prepare(config, "fire", subvolume)
    scheduler = Scheduler(adapter, PolicyStore.from_configuration(cfg))
    snapshot = asyncio.run(scheduler.run(subvolume, tier, _now()))
    if snapshot is None:
        console.print(f"No {tier.value} snapshot taken for {subvolume}")
    else:
        console.print(f"[green]Created {snapshot.kind.value} snapshot {snapshot.id}[/green] of {subvolume}")


@app.command()
def hook(
    event: Annotated[str, typer.Argument(help="pre-commit, pre-rebase or post-checkout")],
    hook_args: Annotated[list[str] | None, typer.Argument(help="Arguments git passed to the hook")] = None,
    config: ConfigOption = None,
) -> None:
    """Entry point for git hook scripts. Always exits 0."""
    try:
        cfg = Configuration.from_yaml(config or Configuration.get_default_config_path())
        _setup_logging(cfg, "hook", to_file=False)
    except (SnapshotError, OSError) as e:
        err_console.print(f"devsnap: hook skipped: {escape(str(e))}")
        return
    if cfg.hooks.subvolume is None:
        return

    async def _dispatch() -> None:
        try:
            vcs_event = VcsEvent(event)
        except ValueError:
            vcs_event = None
        if vcs_event is None:
            before = after = "HEAD"
        else:
            before, after = await resolve_event_refs(vcs_event, list(hook_args or []))
        dispatcher = HookDispatcher(
            _build_adapter(cfg),
            cfg.hooks.subvolume,
            timeout=cfg.timeouts.hook,
            skip_during_rebase=cfg.hooks.skip_during_rebase,
        )
        await dispatcher.on_vcs_event(
            event,
            await resolve_repo_name(),
            before,
            after,
            reflog_action=os.environ.get("GIT_REFLOG_ACTION"),
        )

    try:
        asyncio.run(_dispatch())
    except (SnapshotError, OSError) as e:
        err_console.print(f"devsnap: hook skipped: {escape(str(e))}")


@app.command("install-hooks")
def install_hooks_command(
    repo: Annotated[Path, typer.Argument(help="Repository working tree")] = Path("."),
    command: Annotated[str, typer.Option("--command", help="How hook scripts call devsnap")] = "snapshot",
) -> None:
    """Install snapshot hooks into a git repository."""
    try:
        installed = install_hooks(repo.resolve(), command=command)
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_POLICY) from None

    for item in installed:
        console.print(f"[green]Installed[/green] {item.path}")
        if item.backup is not None:
            console.print(f"  [dim]previous hook kept as {item.backup.name}[/dim]")


def _display_log_file(log_file: Path) -> None:
    """Display a JSON-lines log file with Rich formatting."""
    level_colors = {
        "debug": "dim",
        "full": "cyan",
        "info": "green",
        "warning": "yellow",
        "error": "red",
        "critical": "bold red",
    }

    console.print(f"\n[bold]Log file:[/bold] {log_file}\n")

    try:
        with log_file.open("r", encoding="utf-8") as f:
            for line_num, raw_line in enumerate(f, start=1):
                line = raw_line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    console.print(f"[dim]Line {line_num}:[/dim] {escape(line)}")
                    continue

                timestamp = entry.get("timestamp", "")
                level = str(entry.get("level", "info")).lower()
                time_part = timestamp.split("T")[1].split(".")[0] if "T" in timestamp else timestamp

                text = Text()
                text.append(f"{time_part} ", style="dim")
                text.append(f"[{level:8}]", style=level_colors.get(level, "white"))
                text.append(f" [{entry.get('logger', '')}]", style="blue")
                text.append(f" {entry.get('event', '')}")

                context_fields = {
                    k: v
                    for k, v in entry.items()
                    if k not in {"timestamp", "level", "logger", "event", "hostname"}
                }
                if context_fields:
                    text.append(" " + " ".join(f"{k}={v}" for k, v in context_fields.items()), style="dim")
                console.print(text)
    except OSError as e:
        console.print(f"[bold red]Error reading log file:[/bold red] {escape(str(e))}")
        sys.exit(EXIT_POLICY)


@app.command()
def logs(
    last: Annotated[bool, typer.Option("--last", help="Display the most recent log file")] = False,
) -> None:
    """View log files.

    By default, lists the logs directory. Use --last to display the most recent log file.
    """
    if last:
        log_file = get_latest_log_file()
        if log_file is None:
            console.print("[yellow]No log files found[/yellow]")
            console.print(f"Logs directory: {get_logs_directory()}")
            raise typer.Exit(EXIT_POLICY)
        _display_log_file(log_file)
        return

    logs_dir = get_logs_directory()
    console.print(f"Logs directory: {logs_dir}")
    if not logs_dir.exists():
        console.print("\n[yellow]Logs directory does not exist yet[/yellow]")
        return
    log_files = sorted(logs_dir.glob("snapshot-*.log"), reverse=True)
    if not log_files:
        console.print("\n[yellow]No log files found[/yellow]")
        return
    console.print(f"\nFound {len(log_files)} log file(s):")
    for log_file in log_files[:10]:
        console.print(f"  {log_file.name}")
    if len(log_files) > 10:
        console.print(f"  ... and {len(log_files) - 10} more")


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing configuration file"),
    ] = False,
) -> None:
    """Initialize default configuration file.

    Creates ~/.config/devsnap/config.yaml with the root and home profiles.
    Use --force to overwrite an existing configuration.
    """
    config_path = Configuration.get_default_config_path()

    if config_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {config_path}")
        console.print("Use --force to overwrite")
        raise typer.Exit(EXIT_POLICY)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    default_config = files("devsnap").joinpath("default-config.yaml").read_text()
    config_path.write_text(default_config)

    console.print(f"[green]Created configuration file:[/green] {config_path}")
    console.print("\n[dim]Please review the configuration, especially:[/dim]")
    console.print("[dim]  - subvolumes (snapper config names and mount points must match your system)[/dim]")
    console.print("[dim]  - schedule (cron expressions are evaluated in local time)[/dim]")


if __name__ == "__main__":
    app()
