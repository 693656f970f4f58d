"""
Local storage for Geni.
"""
#region Imports
import os
from pathlib import Path
#endregion


#region Constants
DEFAULT_DB_PATH = Path.home() / ".geni" / "geni.db"
#endregion


#region Functions


def get_db_path() -> Path:
    """
    Location of the local SQLite store.

    Returns:
        GENI_DB_PATH if set, else ~/.geni/geni.db
    """
    override = os.environ.get("GENI_DB_PATH")
    return Path(override).expanduser() if override else DEFAULT_DB_PATH


#endregion
