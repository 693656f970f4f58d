"""
Sync authentication commands for Geni.

Email/password accounts for the API server and Supabase; OAuth for Google
Drive. Sessions are saved so later commands can reuse them.
"""
#region Imports
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from geni_sync.commands.sync import common
from geni_sync.sync.errors import SyncError
#endregion


#region Commands


def sign_in_command(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Account password"),
):
    """Sign in to the API server or Supabase."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        response = orchestrator.sign_in(email, password)
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Sign in failed")
    console.print(f"[green]Signed in as {response.user.email}[/green]")


def sign_up_command(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True,
        help="Account password"
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
):
    """Create an account on the API server or Supabase."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        response = orchestrator.sign_up(email, password, name)
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Sign up failed")
    console.print(f"[green]Account created for {response.user.email}[/green]")


def auth_url_command():
    """Print the Google consent URL to open in a browser."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        url, state = orchestrator.get_auth_url()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Authorization failed")

    console.print(Panel(url, title="Open this URL to authorize Geni", border_style="blue"))
    console.print(f"[dim]State: {state}[/dim]")
    console.print("[dim]Then run: geni sync exchange-code --code <code> --state <state>[/dim]")


def exchange_code_command(
    code: str = typer.Option(..., "--code", "-c", prompt=True, help="Code from the redirect URL"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="State from the redirect URL"),
):
    """Finish Google authorization with the code from the redirect."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        response = orchestrator.exchange_code(code, state)
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Authorization failed")
    console.print(f"[green]Connected Google Drive as {response.user.email}[/green]")


def refresh_command():
    """Refresh the Google access token."""
    console = Console()
    orchestrator = common.get_orchestrator()
    try:
        orchestrator.refresh_token()
    except (SyncError, ValueError) as e:
        common.fail(console, e, title="Token refresh failed")
    console.print("[green]Access token refreshed[/green]")


def logout_command():
    """Sign out and forget every saved sync setting."""
    console = Console()
    orchestrator = common.get_orchestrator(load_saved=False)
    try:
        orchestrator.load_saved_sync_config()
    except (SyncError, ValueError) as e:
        # Still cleared below
        console.print(f"[yellow]Ignoring unreadable saved configuration: {e}[/yellow]")
    orchestrator.logout()
    console.print("[green]Logged out; sync configuration cleared[/green]")


#endregion
