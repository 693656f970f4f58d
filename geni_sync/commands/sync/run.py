"""
Sync run commands for Geni: push, pull, full sync and schema check.
"""
#region Imports
from rich.console import Console
from rich.table import Table

from geni_sync.commands.sync import common
from geni_sync.sync.errors import SyncError
from geni_sync.sync.orchestrator import SyncReport
#endregion


#region Helper Functions


def display_report(console: Console, report: SyncReport, pushed: bool, pulled: bool) -> None:
    """Print a summary table for a finished sync."""
    table = Table(title="Sync Complete", show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    if pushed:
        table.add_row("Pushed", str(report.pushed))
    if pulled:
        table.add_row("Inserted", str(report.inserted))
        table.add_row("Updated", str(report.overwritten))
        table.add_row("Unchanged", str(report.discarded))

    console.print()
    console.print(table)


#endregion


#region Commands


def push_command():
    """Push local changes to the configured provider."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        with console.status("[bold]Pushing...[/bold]"):
            report = orchestrator.push_once()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Push failed")
    display_report(console, report, pushed=True, pulled=False)


def pull_command():
    """Pull remote changes and merge them locally."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        with console.status("[bold]Pulling...[/bold]"):
            report = orchestrator.pull_once()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Pull failed")
    display_report(console, report, pushed=False, pulled=True)


def full_sync_command():
    """Push local changes, then pull remote ones."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        with console.status("[bold]Syncing...[/bold]"):
            report = orchestrator.full_sync()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Sync failed")
    display_report(console, report, pushed=True, pulled=True)


def schema_command():
    """Create the Supabase tables, or check they exist."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        orchestrator.ensure_schema()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Schema check failed")
    console.print("[green]Schema created successfully or already exists[/green]")


#endregion
