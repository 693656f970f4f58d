"""
Syncable record model for Geni.

Collections, requests and environments share the same sync metadata
(cloud_id, version, synced, timestamps). The entity payload is opaque to the
sync engine and is copied verbatim on merge.
"""
#region Imports
import re
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional
#endregion


#region Helper Functions

# Fractional seconds; PostgREST trims trailing zeros, fromisoformat wants 3 or 6 digits on 3.10
FRACTION_PATTERN = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    """Generate a fresh local record identifier."""
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from its wire representation.

    Accepts datetimes and ISO 8601 strings (including a trailing "Z" and
    any number of fractional digits, truncated to microseconds).
    Naive values are treated as UTC so comparisons never mix naive and aware.

    Args:
        value: datetime, ISO string or None

    Returns:
        Timezone-aware datetime or None
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ISO 8601, or None."""
    return value.isoformat() if value is not None else None


#endregion


#region Types


class EntityType(str, Enum):
    """
    Kinds of syncable records.

    The value doubles as the remote endpoint / table name and the local
    table name.
    """

    COLLECTION = "collections"
    REQUEST = "requests"
    ENVIRONMENT = "environments"

    @property
    def record_class(self) -> type:
        return RECORD_CLASSES[self]

    @property
    def label(self) -> str:
        """Singular, human-readable name."""
        return {
            EntityType.COLLECTION: "collection",
            EntityType.REQUEST: "request",
            EntityType.ENVIRONMENT: "environment",
        }[self]


@dataclass
class SyncableRecord:
    """
    Base shape shared by every synced entity.

    Subclasses list their entity-specific fields in PAYLOAD_FIELDS; those are
    the fields copied from a winning remote record during merge.
    """

    id: str = field(default_factory=new_local_id)
    cloud_id: Optional[str] = None
    version: int = 0
    synced: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    ENTITY: ClassVar[EntityType]
    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = ()
    SYNC_FIELDS: ClassVar[tuple[str, ...]] = (
        "id", "cloud_id", "version", "synced", "created_at", "updated_at",
    )

    def payload(self) -> dict:
        """Entity-specific fields only."""
        return {name: getattr(self, name) for name in self.PAYLOAD_FIELDS}

    def to_dict(self) -> dict:
        """
        Serialize to a JSON-compatible dictionary.

        Returns:
            Dict with sync metadata and payload, timestamps as ISO strings
        """
        data = {
            "id": self.id,
            "cloud_id": self.cloud_id,
            "version": self.version,
            "synced": self.synced,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }
        data.update(self.payload())
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncableRecord":
        """
        Build a record from a dictionary, ignoring unknown keys.

        Missing timestamps fall back to each other, then to the current time,
        so records from older remotes still have something to compare.

        Args:
            data: Serialized record

        Returns:
            Record instance of the calling class
        """
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}

        created_at = parse_timestamp(data.get("created_at"))
        updated_at = parse_timestamp(data.get("updated_at"))
        kwargs["created_at"] = created_at or updated_at or utc_now()
        kwargs["updated_at"] = updated_at or kwargs["created_at"]

        if not kwargs.get("id"):
            kwargs["id"] = new_local_id()
        kwargs["version"] = int(kwargs.get("version") or 0)
        kwargs["synced"] = bool(kwargs.get("synced", False))
        if kwargs.get("cloud_id") is not None:
            kwargs["cloud_id"] = str(kwargs["cloud_id"])

        return cls(**kwargs)

    def to_remote_dict(self) -> dict:
        """
        Serialize for a remote provider.

        The local id and the synced flag are device-local and never sent.
        """
        data = self.to_dict()
        data.pop("id", None)
        data.pop("synced", None)
        return data

    @classmethod
    def from_remote_dict(cls, data: dict, id_fields: tuple = ("cloud_id", "id")) -> "SyncableRecord":
        """
        Build a record from a remote representation.

        Args:
            data: Record as returned by the remote
            id_fields: Keys tried in order for the remote identifier

        Returns:
            Record with cloud_id set and a throwaway local id
        """
        cloud_id = None
        for key in id_fields:
            if data.get(key):
                cloud_id = str(data[key])
                break

        local = dict(data)
        local["id"] = None
        local["cloud_id"] = cloud_id
        local["synced"] = True
        return cls.from_dict(local)

    def copy(self, **changes) -> "SyncableRecord":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def touch(self) -> None:
        """Mark the record as locally modified."""
        self.updated_at = utc_now()
        self.synced = False


@dataclass
class Collection(SyncableRecord):
    """A folder of requests; collections nest through parent_id."""

    name: str = ""
    description: Optional[str] = None
    parent_id: Optional[str] = None
    auth: Optional[dict] = None

    ENTITY: ClassVar[EntityType] = EntityType.COLLECTION
    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = ("name", "description", "parent_id", "auth")


@dataclass
class HttpRequest(SyncableRecord):
    """A saved HTTP request."""

    name: str = "New Request"
    method: str = "GET"
    url: str = "https://"
    headers: dict = field(default_factory=dict)
    body: Any = None
    collection_id: Optional[str] = None

    ENTITY: ClassVar[EntityType] = EntityType.REQUEST
    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = (
        "name", "method", "url", "headers", "body", "collection_id",
    )


@dataclass
class Environment(SyncableRecord):
    """
    A named set of variables.

    is_active is a local-only concept: it is part of the payload but is never
    taken from a remote copy.
    """

    name: str = ""
    variables: dict = field(default_factory=dict)
    is_active: bool = False

    ENTITY: ClassVar[EntityType] = EntityType.ENVIRONMENT
    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = ("name", "variables", "is_active")


RECORD_CLASSES = {
    EntityType.COLLECTION: Collection,
    EntityType.REQUEST: HttpRequest,
    EntityType.ENVIRONMENT: Environment,
}


class RemoteRecords(list):
    """
    Records parsed from a remote listing.

    Items that could not be parsed are kept out of the list and reported in
    rejected as (entity label, cloud_id, error).
    """

    def __init__(self, records=(), rejected=None):
        super().__init__(records)
        self.rejected = list(rejected or [])


def parse_remote_records(entity: EntityType, items: list, id_fields: tuple = ("cloud_id", "id")) -> RemoteRecords:
    """
    Parse remote items one by one so a malformed item does not hide the rest.

    Args:
        entity: Entity type of every item
        items: Raw remote representations
        id_fields: Keys tried in order for the remote identifier

    Returns:
        RemoteRecords with the parsed records and the rejected items
    """
    parsed = RemoteRecords()
    for item in items:
        try:
            parsed.append(entity.record_class.from_remote_dict(item, id_fields=id_fields))
        except (TypeError, ValueError, AttributeError) as e:
            cloud_id = None
            if isinstance(item, dict):
                cloud_id = next((str(item[key]) for key in id_fields if item.get(key)), None)
            parsed.rejected.append((entity.label, cloud_id, e))
    return parsed


@dataclass
class User:
    """Identity of the signed-in account on a remote provider."""

    id: str
    email: str
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=str(data.get("id", "")),
            email=str(data.get("email", "")),
            name=data.get("name"),
        )


@dataclass
class TokenResponse:
    """Result of a successful sign-in, sign-up or OAuth code exchange."""

    access_token: str
    refresh_token: Optional[str]
    user: User


@dataclass
class SyncPayload:
    """
    The three record lists moved by a pull or a bulk push.

    rejected holds (entity label, cloud_id, error) for remote items that
    could not be parsed.
    """

    collections: list = field(default_factory=list)
    requests: list = field(default_factory=list)
    environments: list = field(default_factory=list)
    rejected: list = field(default_factory=list)

    def records(self, entity: EntityType) -> list:
        """Records of one entity type."""
        return {
            EntityType.COLLECTION: self.collections,
            EntityType.REQUEST: self.requests,
            EntityType.ENVIRONMENT: self.environments,
        }[entity]

    def is_empty(self) -> bool:
        return not (self.collections or self.requests or self.environments)

    def count(self) -> int:
        return len(self.collections) + len(self.requests) + len(self.environments)


@dataclass
class SyncStatus:
    """Snapshot reported to the command layer."""

    is_authenticated: bool
    provider: Optional[str] = None
    unsynced_collections_count: int = 0
    unsynced_requests_count: int = 0
    unsynced_environments_count: int = 0
    last_sync: Optional[datetime] = None

    @property
    def unsynced_total(self) -> int:
        return (
            self.unsynced_collections_count
            + self.unsynced_requests_count
            + self.unsynced_environments_count
        )


#endregion
