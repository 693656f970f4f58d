"""
Base classes for sync providers.

Defines the interface that all sync providers must implement. Providers fall
into two capability classes: item-level providers offer per-record CRUD,
bulk providers read and write the whole dataset as one document. Each
intermediate base rejects the other class's operations before touching the
network.
"""
#region Imports
from abc import ABC, abstractmethod
from typing import Optional

from geni_sync.models.records import EntityType, SyncableRecord, SyncPayload, User
from geni_sync.sync.errors import UnsupportedOperation
#endregion


#region Base Class


class SyncProvider(ABC):
    """
    Abstract base class for sync providers.

    All sync providers must implement these methods to provide
    consistent sync functionality across different backends.
    """

    provider_id: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    def requires_account(self) -> bool:
        """Whether this provider requires an account."""
        return True

    @abstractmethod
    def supports_item_level_ops(self) -> bool:
        """
        Whether the provider offers per-record create/update/delete/list.

        Returns:
            True for item-level providers, False for bulk providers
        """
        pass

    @abstractmethod
    def authenticate(self, **credentials) -> Optional[object]:
        """
        Establish a session with the remote.

        Args:
            **credentials: Provider-specific credentials

        Returns:
            Provider-specific session token response
        """
        pass

    @abstractmethod
    def is_authenticated(self) -> bool:
        """
        Check if the provider is ready to sync.

        Returns:
            True if a session (or standing credential) is present
        """
        pass

    @abstractmethod
    def current_user(self) -> Optional[User]:
        """
        Get the signed-in identity.

        Returns:
            User or None if not signed in
        """
        pass

    @abstractmethod
    def sign_out(self) -> None:
        """Discard in-memory session state."""
        pass

    def get_status(self) -> dict:
        """
        Get provider status information.

        Returns:
            Dict with status details (varies by provider)
        """
        user = self.current_user()
        return {
            "provider": self.provider_id,
            "authenticated": self.is_authenticated(),
            "user": user.email if user else None,
            "item_level": self.supports_item_level_ops(),
        }

    def export_session(self) -> dict:
        """
        Session tokens worth persisting between processes.

        Returns:
            JSON-compatible dict; empty if nothing to keep
        """
        return {}

    def restore_session(self, session: dict) -> None:
        """Load tokens saved by export_session()."""
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass

    # Item-level capability

    @abstractmethod
    def create_remote(self, entity: EntityType, record: SyncableRecord) -> str:
        """
        Create a record remotely.

        Args:
            entity: Entity type (selects endpoint / table)
            record: Record to create

        Returns:
            cloud_id assigned by the remote
        """
        pass

    @abstractmethod
    def update_remote(self, entity: EntityType, cloud_id: str, record: SyncableRecord) -> None:
        """Overwrite the remote record identified by cloud_id."""
        pass

    @abstractmethod
    def delete_remote(self, entity: EntityType, cloud_id: str) -> None:
        """Delete the remote record identified by cloud_id."""
        pass

    @abstractmethod
    def list_remote(self, entity: EntityType) -> list:
        """
        List every remote record of one entity type.

        Returns:
            Records with cloud_id set. Implementations return a RemoteRecords
            list so unparseable items are reported instead of raised.
        """
        pass

    # Bulk capability

    @abstractmethod
    def push_bulk(self, payload: SyncPayload) -> None:
        """Write the whole dataset as one remote document."""
        pass

    @abstractmethod
    def pull_bulk(self) -> SyncPayload:
        """Read the whole dataset from the remote document."""
        pass


class ItemLevelProvider(SyncProvider):
    """Provider with per-record CRUD; bulk operations are rejected."""

    def supports_item_level_ops(self) -> bool:
        return True

    def push_bulk(self, payload: SyncPayload) -> None:
        raise UnsupportedOperation(
            f"{self.name} syncs record by record; bulk push is not supported"
        )

    def pull_bulk(self) -> SyncPayload:
        raise UnsupportedOperation(
            f"{self.name} syncs record by record; bulk pull is not supported"
        )


class BulkProvider(SyncProvider):
    """Provider that only reads and writes the full dataset at once."""

    def supports_item_level_ops(self) -> bool:
        return False

    def _unsupported(self, operation: str) -> UnsupportedOperation:
        return UnsupportedOperation(
            f"Individual {operation} not supported for {self.name}, use bulk sync instead"
        )

    def create_remote(self, entity: EntityType, record: SyncableRecord) -> str:
        raise self._unsupported("create")

    def update_remote(self, entity: EntityType, cloud_id: str, record: SyncableRecord) -> None:
        raise self._unsupported("update")

    def delete_remote(self, entity: EntityType, cloud_id: str) -> None:
        raise self._unsupported("delete")

    def list_remote(self, entity: EntityType) -> list:
        raise self._unsupported("list")


#endregion
