"""
Geni command-line entry point.
"""
#region Imports
import logging

import typer
from rich.logging import RichHandler

from geni_sync.commands.sync import app as sync_app
#endregion


#region App Setup
app = typer.Typer(
    name="geni",
    help="Geni API client tools",
    no_args_is_help=True,
)
app.add_typer(sync_app, name="sync")
#endregion


#region Callbacks


def configure_logging(verbose: bool) -> None:
    """Send log records to the terminal; debug detail only with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Geni API client tools."""
    configure_logging(verbose)


#endregion


if __name__ == "__main__":
    app()
