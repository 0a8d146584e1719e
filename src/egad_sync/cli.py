"""CLI for egad-sync."""

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from .api import MonitoringSession
from .config import MonitorConfig, load_config
from .core import ChangeKind, DiffResult
from .errors import StateNotFoundError, TrackerError
from .events import FileDiffs, MonitorEvent, SyncError, SyncStarted, SyncStopped
from .ops import create_tracker, load_tracker, refresh_tracker, save_tracker
from .utils import format_mtime, humanize_size, relative_to_root


app = typer.Typer(help="""\
Poll a directory tree for created, modified and deleted files.
Monitoring state is persisted so it resumes after a restart.""")

console = Console()

CHANGE_ICONS = {
    ChangeKind.CREATED: "[green]+[/green]",
    ChangeKind.MODIFIED: "[yellow]M[/yellow]",
    ChangeKind.DELETED: "[red]-[/red]",
}


class ConsoleSink:
    """Prints monitoring events to the rich console."""

    def emit(self, event: MonitorEvent) -> None:
        if isinstance(event, FileDiffs):
            console.print(f"[bold]Changes in {event.folder}:[/bold]")
            for line in event.changes:
                kind, _, path = line.partition(": ")
                try:
                    icon = CHANGE_ICONS[ChangeKind(kind)]
                except ValueError:
                    icon = "?"
                console.print(f"  {icon} {path}")
        elif isinstance(event, SyncError):
            console.print(f"[red]✗[/red] {event.message}")
        elif isinstance(event, SyncStarted):
            console.print(f"[green]✓[/green] {event.message}: {event.folder}")
        elif isinstance(event, SyncStopped):
            console.print(f"[dim]{event.message}[/dim]")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _get_config(
    config_file: Optional[Path] = None,
    state_file: Optional[Path] = None,
    interval: Optional[float] = None,
    include_dirs: Optional[bool] = None,
) -> MonitorConfig:
    """Load configuration, exiting with a message when it is invalid."""
    try:
        return load_config(
            config_file,
            state_file_path=state_file,
            sync_interval_secs=interval,
            include_directories=include_dirs,
        )
    except TrackerError as e:
        _fail(e)


def _fail(e: TrackerError) -> NoReturn:
    console.print(f"[red]✗[/red] {e}")
    raise typer.Exit(1)


def _print_diff(diff: DiffResult, root: str) -> None:
    if diff.is_empty:
        console.print("[green]✓[/green] No changes")
        return
    for change in diff.changes:
        console.print(f"  {CHANGE_ICONS[change.kind]} {relative_to_root(change.path, root)}")
    counts = ", ".join(f"{n} {kind.value.lower()}" for kind, n in diff.summary.items())
    console.print(f"\n[dim]{counts}[/dim]")


def _run_foreground(session: MonitoringSession) -> None:
    """Block until the session's loop exits or the user interrupts."""
    loop = session.loop
    console.print(
        f"[dim]Polling every {session.config.sync_interval_secs:g}s, "
        f"press Ctrl-C to exit (monitoring state is kept)[/dim]"
    )
    try:
        while loop is not None and not loop.wait_stopped(0.5):
            pass
    except KeyboardInterrupt:
        console.print()
    finally:
        session.close()


# Shared options
ConfigOpt = typer.Option(None, "--config", help="YAML config file")
StateFileOpt = typer.Option(None, "--state-file", help="State file location")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Debug logging")


@app.command()
def start(
    path: Path = typer.Argument(..., help="Directory to monitor"),
    once: bool = typer.Option(False, "--once", help="Only take and persist the initial snapshot"),
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between scans"),
    include_dirs: Optional[bool] = typer.Option(None, "--include-dirs/--files-only", help="Report directory changes too"),
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
    verbose: bool = VerboseOpt,
):
    """Start monitoring a directory.

    Examples:
        egad-sync start ~/Documents             # Monitor in the foreground
        egad-sync start ~/Documents --once      # Record a snapshot and exit
    """
    _setup_logging(verbose)
    config = _get_config(config_file, state_file, interval, include_dirs)

    if once:
        try:
            tracker = create_tracker(path, config)
        except TrackerError as e:
            _fail(e)
        console.print(
            f"[green]✓[/green] Tracking {tracker.root_target} "
            f"({tracker.file_count} files, {tracker.dir_count} directories)"
        )
        return

    session = MonitoringSession(config, ConsoleSink())
    try:
        session.start_monitoring(path)
    except TrackerError:
        # ConsoleSink already printed the error
        raise typer.Exit(1)
    _run_foreground(session)


@app.command()
def watch(
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between scans"),
    include_dirs: Optional[bool] = typer.Option(None, "--include-dirs/--files-only", help="Report directory changes too"),
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
    verbose: bool = VerboseOpt,
):
    """Resume monitoring from persisted state."""
    _setup_logging(verbose)
    config = _get_config(config_file, state_file, interval, include_dirs)
    session = MonitoringSession(config, ConsoleSink())
    if not session.resume():
        console.print("[yellow]Monitoring is not active[/yellow]")
        console.print("Start it with:")
        console.print("  [cyan]egad-sync start <path>[/cyan]")
        raise typer.Exit(1)
    _run_foreground(session)


@app.command()
def status(
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
):
    """Show whether monitoring is active."""
    config = _get_config(config_file, state_file)
    try:
        tracker = load_tracker(config)
    except StateNotFoundError:
        console.print("[yellow]●[/yellow] Monitoring inactive")
        return
    except TrackerError as e:
        console.print("[yellow]●[/yellow] Monitoring inactive")
        console.print(f"[dim]{e}[/dim]")
        return
    console.print(f"[green]●[/green] Monitoring {tracker.root_target}")
    console.print(
        f"  {tracker.file_count} files, {tracker.dir_count} directories, "
        f"{humanize_size(tracker.total_size)}"
    )
    console.print(f"  [dim]State: {config.state_file_path}[/dim]")


@app.command()
def show(
    limit: int = typer.Option(50, "--limit", help="Maximum entries to list (0 for all)"),
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
):
    """List the persisted snapshot."""
    config = _get_config(config_file, state_file)
    try:
        tracker = load_tracker(config)
    except TrackerError as e:
        _fail(e)

    table = Table(title=tracker.root_target)
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Modified")

    paths = sorted(tracker.files_state)
    shown = paths if limit <= 0 else paths[:limit]
    for path in shown:
        meta = tracker.files_state[path]
        name = relative_to_root(path, tracker.root_target)
        if meta.is_dir:
            table.add_row(f"[blue]{name}/[/blue]", "-", format_mtime(meta.mtime_ns))
        else:
            table.add_row(name, humanize_size(meta.size), format_mtime(meta.mtime_ns))
    console.print(table)
    if len(shown) < len(paths):
        console.print(f"[dim]... and {len(paths) - len(shown)} more[/dim]")


@app.command()
def diff(
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
    verbose: bool = VerboseOpt,
):
    """Run a single scan against persisted state and record the result."""
    _setup_logging(verbose)
    config = _get_config(config_file, state_file)
    try:
        tracker = load_tracker(config)
        result = refresh_tracker(tracker)
        if not result.is_empty:
            save_tracker(tracker, config)
    except TrackerError as e:
        _fail(e)
    console.print(f"[bold]Changes in {tracker.root_target}[/bold]\n")
    _print_diff(result, tracker.root_target)


@app.command()
def stop(
    config_file: Optional[Path] = ConfigOpt,
    state_file: Optional[Path] = StateFileOpt,
):
    """Stop monitoring and delete persisted state."""
    config = _get_config(config_file, state_file)
    session = MonitoringSession(config)
    try:
        session.stop_monitoring()
    except StateNotFoundError:
        console.print("[yellow]Monitoring is not active, nothing to stop[/yellow]")
        raise typer.Exit(1)
    except TrackerError as e:
        _fail(e)
    console.print("[green]✓[/green] Monitoring stopped, state deleted")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
