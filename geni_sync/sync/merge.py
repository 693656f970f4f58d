"""
Conflict resolution for pulled records.

Resolution is whole-record last-writer-wins. A remote record is matched to
its local copy by cloud_id only (local ids never leave the device). When
matched, the remote copy wins if it is newer by timestamp OR by version;
either condition alone is enough, so a higher version with an older or equal
timestamp still overwrites the local copy.
"""
#region Imports
import logging
from enum import Enum

from geni_sync.models.records import EntityType, Environment, SyncableRecord, new_local_id
#endregion


#region Constants
logger = logging.getLogger(__name__)
#endregion


#region Types


class MergeOutcome(str, Enum):
    """What a merge did to the local store."""

    INSERTED = "inserted"
    OVERWRITTEN = "overwritten"
    DISCARDED = "discarded"


#endregion


#region Functions


def remote_wins(local: SyncableRecord, remote: SyncableRecord) -> bool:
    """
    Decide whether a remote copy replaces the local one.

    Args:
        local: Stored local record
        remote: Incoming remote record with the same cloud_id

    Returns:
        True if remote.updated_at is later OR remote.version is higher
    """
    return remote.updated_at > local.updated_at or remote.version > local.version


def apply_remote(local: SyncableRecord, remote: SyncableRecord) -> SyncableRecord:
    """
    Build the overwritten local record.

    Payload fields, updated_at and version come from the remote; local id,
    cloud_id and created_at are kept. Environment activation stays local.

    Returns:
        New record instance, marked synced
    """
    changes = remote.payload()
    if isinstance(local, Environment):
        changes["is_active"] = local.is_active
    changes["updated_at"] = remote.updated_at
    changes["version"] = remote.version
    changes["synced"] = True
    return local.copy(**changes)


def merge_record(store, entity: EntityType, remote: SyncableRecord) -> MergeOutcome:
    """
    Merge one remote record into the local store.

    Args:
        store: Local store exposing find_by_cloud_id, existing_ids, add, replace
        entity: Entity type of the record
        remote: Record as read from the provider

    Returns:
        MergeOutcome describing the change made
    """
    if not remote.cloud_id:
        # Matching on a missing cloud_id would pair it with any never-pushed record
        logger.warning(f"Discarding remote {entity.label} without cloud_id (name={getattr(remote, 'name', '?')!r})")
        return MergeOutcome.DISCARDED

    local = store.find_by_cloud_id(entity, remote.cloud_id)

    if local is None:
        taken = store.existing_ids(entity)
        local_id = new_local_id()
        while local_id in taken:
            local_id = new_local_id()

        changes = {"id": local_id, "synced": True}
        if entity is EntityType.ENVIRONMENT:
            changes["is_active"] = False
        store.add(remote.copy(**changes))
        logger.debug(f"Inserted remote {entity.label} {remote.cloud_id} as {local_id}")
        return MergeOutcome.INSERTED

    if remote_wins(local, remote):
        store.replace(apply_remote(local, remote))
        logger.debug(
            f"Remote {entity.label} {remote.cloud_id} won "
            f"(v{local.version}->v{remote.version})"
        )
        return MergeOutcome.OVERWRITTEN

    return MergeOutcome.DISCARDED


#endregion
