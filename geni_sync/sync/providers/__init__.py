"""
Sync providers for Geni.

Item-level providers (API server, Supabase) sync record by record; the Google
Drive provider reads and writes the whole dataset as one document.
"""
#region Imports
from geni_sync.sync.providers.base import BulkProvider, ItemLevelProvider, SyncProvider
from geni_sync.sync.providers.api_server import ApiServerProvider
from geni_sync.sync.providers.supabase import SupabaseProvider
from geni_sync.sync.providers.google_drive import GoogleDriveProvider
#endregion


__all__ = [
    "SyncProvider",
    "ItemLevelProvider",
    "BulkProvider",
    "ApiServerProvider",
    "SupabaseProvider",
    "GoogleDriveProvider",
]
