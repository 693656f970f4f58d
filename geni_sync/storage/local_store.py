"""
SQLite local store for collections, requests and environments.

Each entity type has its own table holding the sync metadata as columns and
the entity payload as a JSON document. There are no transactions across
tables; every call opens and closes its own connection.
"""
#region Imports
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

from geni_sync.models.records import (
    Collection,
    EntityType,
    Environment,
    HttpRequest,
    SyncableRecord,
    format_timestamp,
)
from geni_sync.sync.merge import MergeOutcome, merge_record
#endregion


#region Constants
logger = logging.getLogger(__name__)

TABLE_COLUMNS = "id, cloud_id, version, synced, created_at, updated_at, payload"
#endregion


#region Helper Functions


def _row_to_record(entity: EntityType, row: sqlite3.Row) -> SyncableRecord:
    """
    Rebuild a record from a table row.

    Args:
        entity: Entity type of the table the row came from
        row: Row with TABLE_COLUMNS

    Returns:
        Record of the entity's class
    """
    data = json.loads(row["payload"]) if row["payload"] else {}
    data.update({
        "id": row["id"],
        "cloud_id": row["cloud_id"],
        "version": row["version"],
        "synced": bool(row["synced"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    })
    return entity.record_class.from_dict(data)


def _record_to_params(record: SyncableRecord) -> tuple:
    """Column values for an INSERT or UPDATE, in TABLE_COLUMNS order."""
    return (
        record.id,
        record.cloud_id,
        record.version,
        1 if record.synced else 0,
        format_timestamp(record.created_at),
        format_timestamp(record.updated_at),
        json.dumps(record.payload(), sort_keys=True),
    )


#endregion


#region Store


class LocalStore:
    """
    Durable local copy of every record.

    This is the source of truth for unsynced state: the sync client never
    holds pending changes itself.
    """

    def __init__(self, db_path: Path):
        """
        Open (and create if needed) the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.init_database()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Open a connection that commits on success and always closes."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_database(self) -> None:
        """
        Create tables and indexes if they don't exist.

        Raises:
            sqlite3.Error: If database initialization fails
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            cursor = conn.cursor()
            for entity in EntityType:
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {entity.value} (
                        id TEXT PRIMARY KEY,
                        cloud_id TEXT,
                        version INTEGER NOT NULL DEFAULT 0,
                        synced INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        payload TEXT NOT NULL
                    )
                """)
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{entity.value}_cloud_id
                    ON {entity.value}(cloud_id)
                """)
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{entity.value}_synced
                    ON {entity.value}(synced)
                """)

    #region Generic CRUD

    def add(self, record: SyncableRecord) -> SyncableRecord:
        """
        Insert a new record as given.

        Args:
            record: Record to insert; its id must be unused

        Returns:
            The stored record

        Raises:
            ValueError: If a record with the same id already exists
        """
        entity = record.ENTITY
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {entity.value} ({TABLE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    _record_to_params(record),
                )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"{entity.label} {record.id} already exists") from e
        return record

    def get(self, entity: EntityType, record_id: str) -> Optional[SyncableRecord]:
        """Fetch one record by local id."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {TABLE_COLUMNS} FROM {entity.value} WHERE id = ?",
                (record_id,),
            ).fetchone()
        return _row_to_record(entity, row) if row else None

    def list_records(self, entity: EntityType) -> list:
        """All records of one entity type, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {TABLE_COLUMNS} FROM {entity.value} ORDER BY created_at, id"
            ).fetchall()
        return [_row_to_record(entity, row) for row in rows]

    def update(self, record: SyncableRecord) -> SyncableRecord:
        """
        Save a local edit.

        The record is marked unsynced and its updated_at refreshed; version is
        left alone until the next push.

        Returns:
            The stored record

        Raises:
            KeyError: If the record does not exist
        """
        record.touch()
        return self.replace(record)

    def replace(self, record: SyncableRecord) -> SyncableRecord:
        """
        Overwrite a stored record exactly as given.

        Raises:
            KeyError: If the record does not exist
        """
        entity = record.ENTITY
        params = _record_to_params(record)
        with self._connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE {entity.value}
                SET cloud_id = ?, version = ?, synced = ?, created_at = ?,
                    updated_at = ?, payload = ?
                WHERE id = ?
                """,
                params[1:] + (params[0],),
            )
            if cursor.rowcount == 0:
                raise KeyError(f"{entity.label} {record.id} not found")
        return record

    def delete(self, entity: EntityType, record_id: str) -> bool:
        """
        Delete one record locally.

        Local deletes are not propagated to the remote.

        Returns:
            True if a record was removed
        """
        if entity is EntityType.COLLECTION:
            return self.delete_collection(record_id)

        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {entity.value} WHERE id = ?", (record_id,))
            return cursor.rowcount > 0

    def delete_collection(self, collection_id: str) -> bool:
        """
        Delete a collection with its sub-collections and their requests.

        Returns:
            True if the collection existed
        """
        to_visit = [collection_id]
        doomed = []
        collections = self.list_records(EntityType.COLLECTION)

        while to_visit:
            current = to_visit.pop()
            doomed.append(current)
            to_visit.extend(c.id for c in collections if c.parent_id == current)

        doomed_set = set(doomed)
        request_ids = [
            r.id for r in self.list_records(EntityType.REQUEST) if r.collection_id in doomed_set
        ]

        with self._connect() as conn:
            conn.executemany(
                f"DELETE FROM {EntityType.REQUEST.value} WHERE id = ?",
                [(rid,) for rid in request_ids],
            )
            cursor = conn.execute(
                f"DELETE FROM {EntityType.COLLECTION.value} WHERE id = ?", (collection_id,)
            )
            existed = cursor.rowcount > 0
            conn.executemany(
                f"DELETE FROM {EntityType.COLLECTION.value} WHERE id = ?",
                [(cid,) for cid in doomed[1:]],
            )

        if len(doomed) > 1 or request_ids:
            logger.debug(
                f"Deleted collection {collection_id} with {len(doomed) - 1} sub-collection(s) "
                f"and {len(request_ids)} request(s)"
            )
        return existed

    def find_by_cloud_id(self, entity: EntityType, cloud_id: str) -> Optional[SyncableRecord]:
        """Find the local copy of a remote record."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {TABLE_COLUMNS} FROM {entity.value} WHERE cloud_id = ? LIMIT 1",
                (cloud_id,),
            ).fetchone()
        return _row_to_record(entity, row) if row else None

    def existing_ids(self, entity: EntityType) -> set:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT id FROM {entity.value}").fetchall()
        return {row["id"] for row in rows}

    #endregion

    #region Sync Interface

    def get_unsynced(self, entity: EntityType) -> list:
        """Records created or edited locally and not yet confirmed pushed."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {TABLE_COLUMNS} FROM {entity.value} WHERE synced = 0 ORDER BY created_at, id"
            ).fetchall()
        return [_row_to_record(entity, row) for row in rows]

    def get_unsynced_collections(self) -> list:
        return self.get_unsynced(EntityType.COLLECTION)

    def get_unsynced_requests(self) -> list:
        return self.get_unsynced(EntityType.REQUEST)

    def get_unsynced_environments(self) -> list:
        return self.get_unsynced(EntityType.ENVIRONMENT)

    def count_unsynced(self, entity: EntityType) -> int:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS n FROM {entity.value} WHERE synced = 0"
            ).fetchone()
        return row["n"]

    def mark_synced(
        self,
        entity: EntityType,
        record_id: str,
        cloud_id: str,
        version: int,
        pushed_updated_at: Optional[datetime] = None,
    ) -> None:
        """
        Record a confirmed push.

        cloud_id and version are always stored. When pushed_updated_at is
        given, the synced flag is only set if the stored record still has that
        updated_at; an edit saved while the push was in flight stays unsynced
        and goes out with the next push.

        A record that vanished locally while the push was in flight is
        skipped with a warning.
        """
        if pushed_updated_at is None:
            synced_sql, params = "1", (cloud_id, version, record_id)
        else:
            synced_sql = "CASE WHEN updated_at = ? THEN 1 ELSE synced END"
            params = (cloud_id, version, format_timestamp(pushed_updated_at), record_id)

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE {entity.value} SET cloud_id = ?, version = ?, synced = {synced_sql} WHERE id = ?",
                params,
            )
            if cursor.rowcount == 0:
                logger.warning(f"Cannot mark {entity.label} {record_id} synced: not found locally")

    def mark_collection_synced(self, record_id: str, cloud_id: str, version: int) -> None:
        self.mark_synced(EntityType.COLLECTION, record_id, cloud_id, version)

    def mark_request_synced(self, record_id: str, cloud_id: str, version: int) -> None:
        self.mark_synced(EntityType.REQUEST, record_id, cloud_id, version)

    def mark_environment_synced(self, record_id: str, cloud_id: str, version: int) -> None:
        self.mark_synced(EntityType.ENVIRONMENT, record_id, cloud_id, version)

    def merge(self, remote: SyncableRecord) -> MergeOutcome:
        """Merge one pulled record into the store."""
        return merge_record(self, remote.ENTITY, remote)

    def merge_collection(self, remote: Collection) -> MergeOutcome:
        return merge_record(self, EntityType.COLLECTION, remote)

    def merge_request(self, remote: HttpRequest) -> MergeOutcome:
        return merge_record(self, EntityType.REQUEST, remote)

    def merge_environment(self, remote: Environment) -> MergeOutcome:
        return merge_record(self, EntityType.ENVIRONMENT, remote)

    #endregion

    #region Environments

    def set_active_environment(self, environment_id: Optional[str]) -> None:
        """
        Make one environment active, or none.

        Activation is local-only, so this does not mark anything unsynced.

        Raises:
            KeyError: If environment_id is given but unknown
        """
        if environment_id is not None and self.get(EntityType.ENVIRONMENT, environment_id) is None:
            raise KeyError(f"environment {environment_id} not found")

        for env in self.list_records(EntityType.ENVIRONMENT):
            should_be_active = env.id == environment_id
            if env.is_active != should_be_active:
                self.replace(env.copy(is_active=should_be_active))

    def get_active_environment(self) -> Optional[Environment]:
        for env in self.list_records(EntityType.ENVIRONMENT):
            if env.is_active:
                return env
        return None

    #endregion


#endregion
