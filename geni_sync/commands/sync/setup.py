"""
Sync setup command for Geni.

Interactive wizard for choosing a sync provider and entering its settings.
Supports non-interactive mode via CLI flags.
"""
#region Imports
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from geni_sync.commands.sync import common
from geni_sync.config import user_config
from geni_sync.sync.errors import SyncError
#endregion


#region Constants
PROVIDER_OPTIONS = {
    "api_server": {
        "name": "API Server",
        "description": "Self-hosted Geni server with email/password accounts",
        "details": [
            "Syncs record by record",
            "Requires a running Geni API server",
        ],
    },
    "supabase": {
        "name": "Supabase",
        "description": "Tables in your own Supabase project",
        "details": [
            "Syncs record by record",
            "Free tier available, project API key required",
            "Database URI optional (creates tables automatically)",
        ],
    },
    "google_drive": {
        "name": "Google Drive",
        "description": "One JSON file in your Google Drive",
        "details": [
            "Syncs the whole dataset at once",
            "Requires an OAuth client id and secret",
        ],
    },
}

# Settings prompted for each provider: (key, prompt, secret, optional)
PROVIDER_PROMPTS = {
    "api_server": [
        ("api_server_url", "API Server URL", False, False),
    ],
    "supabase": [
        ("supabase_url", "Supabase project URL", False, False),
        ("supabase_api_key", "Supabase API key", True, False),
        ("supabase_db_uri", "Database URI (blank to skip)", True, True),
    ],
    "google_drive": [
        ("google_client_id", "Google Client ID", False, False),
        ("google_client_secret", "Google Client Secret", True, False),
        ("google_redirect_uri", "Redirect URI", False, False),
    ],
}

DEFAULT_GOOGLE_REDIRECT_URI = "http://localhost:8080/callback"
#endregion


#region Helper Functions


def display_provider_options(console: Console) -> list[str]:
    """
    Display sync provider options.

    Returns:
        List of provider keys in display order
    """
    console.print("\n[bold]SYNC PROVIDER[/bold]")
    console.print("-" * 13)
    console.print()

    available = list(PROVIDER_OPTIONS)
    for i, key in enumerate(available, 1):
        opt = PROVIDER_OPTIONS[key]
        console.print(f"  [{i}] {opt['name']}")
        console.print(f"      [dim]{opt['description']}[/dim]")
        for detail in opt["details"]:
            console.print(f"      [dim]- {detail}[/dim]")
        console.print()

    return available


def collect_settings(provider: str, given: dict, interactive: bool) -> dict:
    """
    Fill in missing provider settings.

    Args:
        provider: Canonical provider id
        given: Settings passed as flags (None for absent)
        interactive: Whether to prompt for missing values

    Returns:
        Settings dictionary for the provider
    """
    settings = {}
    for key, label, secret, optional in PROVIDER_PROMPTS[provider]:
        value = given.get(key)
        if value is None and key == "google_redirect_uri" and not interactive:
            value = DEFAULT_GOOGLE_REDIRECT_URI
        if value is None and interactive:
            if key == "google_redirect_uri":
                value = Prompt.ask(label, default=DEFAULT_GOOGLE_REDIRECT_URI)
            elif optional:
                value = Prompt.ask(label, password=secret, default="", show_default=False) or None
            else:
                value = Prompt.ask(label, password=secret)
        if value:
            settings[key] = value
    return settings


#endregion


#region Command


def setup_sync_command(
    provider: Optional[str] = typer.Option(
        None, "--provider", "-p",
        help="Sync provider: api_server, supabase, google_drive"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Do not prompt (for non-interactive use)"
    ),
    # API server
    api_server_url: Optional[str] = typer.Option(
        None, "--api-server-url",
        help="API server base URL (for API server provider)"
    ),
    # Supabase
    supabase_url: Optional[str] = typer.Option(
        None, "--supabase-url",
        help="Supabase project URL (for Supabase provider)"
    ),
    supabase_api_key: Optional[str] = typer.Option(
        None, "--supabase-api-key",
        help="Supabase API key (for Supabase provider)"
    ),
    supabase_db_uri: Optional[str] = typer.Option(
        None, "--supabase-db-uri",
        help="Postgres connection string, enables automatic table creation"
    ),
    # Google Drive
    google_client_id: Optional[str] = typer.Option(
        None, "--google-client-id",
        help="OAuth client id (for Google Drive provider)"
    ),
    google_client_secret: Optional[str] = typer.Option(
        None, "--google-client-secret",
        help="OAuth client secret (for Google Drive provider)"
    ),
    google_redirect_uri: Optional[str] = typer.Option(
        None, "--google-redirect-uri",
        help="OAuth redirect URI (for Google Drive provider)"
    ),
):
    """
    Configure cloud sync.

    Choose a provider and enter its settings. For Supabase the tables are
    created (or checked) right away.

    Use --yes for non-interactive mode with all settings given via flags.
    """
    console = Console()

    console.print(Panel.fit(
        "[bold]Geni Sync Setup[/bold]\n"
        "[dim]Sync collections, requests and environments across devices[/dim]",
        border_style="blue",
    ))

    if provider:
        selected_provider = user_config.normalize_provider_id(provider)
        if selected_provider is None:
            console.print(f"[red]Error: Invalid sync provider '{provider}'[/red]")
            console.print(f"[yellow]Valid providers: {', '.join(user_config.VALID_SYNC_PROVIDERS)}[/yellow]")
            raise typer.Exit(1)
    elif yes:
        console.print("[red]Error: --provider is required with --yes[/red]")
        raise typer.Exit(1)
    else:
        available = display_provider_options(console)
        choices = [str(i) for i in range(1, len(available) + 1)]
        choice = Prompt.ask("Select sync provider", choices=choices, default="1")
        selected_provider = available[int(choice) - 1]

    console.print(f"[green]Selected provider:[/green] {PROVIDER_OPTIONS[selected_provider]['name']}")

    given = {
        "api_server_url": api_server_url,
        "supabase_url": supabase_url,
        "supabase_api_key": supabase_api_key,
        "supabase_db_uri": supabase_db_uri,
        "google_client_id": google_client_id,
        "google_client_secret": google_client_secret,
        "google_redirect_uri": google_redirect_uri,
    }
    settings = collect_settings(selected_provider, given, interactive=not yes)

    is_valid, error = user_config.validate_sync_config(settings, selected_provider)
    if not is_valid:
        console.print(f"[red]Error: {error}[/red]")
        raise typer.Exit(1)

    orchestrator = common.get_orchestrator(load_saved=False)
    try:
        client = orchestrator.initialize_sync(selected_provider, settings)
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Setup failed")

    console.print(f"\n[green]Sync configured with {client.name}[/green]")

    if selected_provider == "google_drive":
        console.print("[dim]Next: run 'geni sync auth-url' to connect your Google account[/dim]")
    elif selected_provider == "api_server":
        console.print("[dim]Next: run 'geni sync sign-in' (or 'geni sync sign-up')[/dim]")
    else:
        console.print("[dim]Next: run 'geni sync full' to sync[/dim]")


#endregion
