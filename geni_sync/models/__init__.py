"""
Data model for Geni.

Syncable records (collections, requests, environments) and the small value
types exchanged with remote providers.
"""
#region Imports
from geni_sync.models.records import (
    Collection,
    Environment,
    EntityType,
    HttpRequest,
    SyncableRecord,
    SyncPayload,
    SyncStatus,
    TokenResponse,
    User,
)
#endregion


__all__ = [
    "Collection",
    "Environment",
    "EntityType",
    "HttpRequest",
    "SyncableRecord",
    "SyncPayload",
    "SyncStatus",
    "TokenResponse",
    "User",
]
