"""
Shared helpers for the sync commands.
"""
#region Imports
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from geni_sync.storage import get_db_path
from geni_sync.storage.local_store import LocalStore
from geni_sync.sync.errors import SchemaMissing, SyncError
from geni_sync.sync.orchestrator import SyncOrchestrator
#endregion


#region Functions


def get_orchestrator(load_saved: bool = True) -> SyncOrchestrator:
    """
    Open the local store and restore the saved provider.

    Args:
        load_saved: Whether to restore the last configured provider

    Returns:
        Ready SyncOrchestrator

    Raises:
        typer.Exit: If the saved configuration cannot be loaded
    """
    orchestrator = SyncOrchestrator(LocalStore(get_db_path()))
    if load_saved:
        try:
            orchestrator.load_saved_sync_config()
        except (SyncError, ValueError) as e:
            fail(Console(), e, "Invalid saved sync configuration")
    return orchestrator


def fail(console: Console, error: Exception, title: Optional[str] = None) -> None:
    """
    Print an error verbatim and exit with status 1.

    Raises:
        typer.Exit: Always
    """
    if isinstance(error, SchemaMissing):
        console.print(Panel(str(error), title="Supabase schema missing", border_style="yellow"))
    else:
        console.print(Panel(str(error), title=title or "Sync failed", border_style="red"))
    raise typer.Exit(1)


#endregion
