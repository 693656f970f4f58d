"""
Sync status command for Geni.

Displays the configured provider, session state and pending local changes.
"""
#region Imports
from rich.console import Console
from rich.table import Table

from geni_sync.commands.sync import common
from geni_sync.storage import get_db_path
#endregion


#region Constants
PROVIDER_NAMES = {
    "api_server": "API Server",
    "supabase": "Supabase",
    "google_drive": "Google Drive",
}
#endregion


#region Command


def sync_status_command():
    """
    Show current sync configuration and status.

    Displays:
    - Provider and authentication state
    - Signed-in user
    - Unsynced record counts and last successful sync
    """
    console = Console()

    orchestrator = common.get_orchestrator()
    status = orchestrator.get_sync_status()
    user = orchestrator.current_user()

    table = Table(
        title="Sync Status",
        show_header=False,
        box=None,
        padding=(0, 2),
    )
    table.add_column("Key", style="bold")
    table.add_column("Value")

    if status.provider is None:
        table.add_row("Provider", "[yellow]Not configured[/yellow]")
    else:
        table.add_row("Provider", PROVIDER_NAMES.get(status.provider, status.provider))
        table.add_row(
            "Authenticated",
            "[green]Yes[/green]" if status.is_authenticated else "[red]No[/red]"
        )
        if user:
            table.add_row("User", user.email)

        provider_status = orchestrator.client.provider.get_status()
        if "oauth_state" in provider_status:
            table.add_row("OAuth", provider_status["oauth_state"])
        if provider_status.get("db_uri"):
            table.add_row("Database", provider_status["db_uri"])

    table.add_row("", "")
    table.add_row("Local store", str(get_db_path()))
    table.add_row("Unsynced collections", str(status.unsynced_collections_count))
    table.add_row("Unsynced requests", str(status.unsynced_requests_count))
    table.add_row("Unsynced environments", str(status.unsynced_environments_count))
    table.add_row(
        "Last sync",
        status.last_sync.strftime("%Y-%m-%d %H:%M:%S UTC") if status.last_sync else "[dim]Never[/dim]"
    )

    console.print()
    console.print(table)

    if status.provider is None:
        console.print()
        console.print("[yellow]Run 'geni sync setup' to configure sync[/yellow]")


#endregion
