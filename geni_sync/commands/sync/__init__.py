"""
Sync commands for Geni.

Provides subcommands for cloud sync:
- setup: Choose and configure a sync provider
- status: Show provider, session and pending changes
- push / pull / full: Run a sync
- sign-in / sign-up: Email and password accounts (API server, Supabase)
- auth-url / exchange-code / refresh: Google Drive OAuth
- schema: Create or check the Supabase tables
- logout: Sign out and forget the provider
"""
#region Imports
import typer

from geni_sync.commands.sync import auth, run, setup, status
#endregion


#region App Setup
app = typer.Typer(
    name="sync",
    help="Cloud sync for collections, requests and environments",
    no_args_is_help=True,
)
#endregion


#region Command Registration
app.command(name="setup")(setup.setup_sync_command)
app.command(name="status")(status.sync_status_command)
app.command(name="push")(run.push_command)
app.command(name="pull")(run.pull_command)
app.command(name="full")(run.full_sync_command)
app.command(name="schema")(run.schema_command)
app.command(name="sign-in")(auth.sign_in_command)
app.command(name="sign-up")(auth.sign_up_command)
app.command(name="auth-url")(auth.auth_url_command)
app.command(name="exchange-code")(auth.exchange_code_command)
app.command(name="refresh")(auth.refresh_command)
app.command(name="logout")(auth.logout_command)
#endregion
