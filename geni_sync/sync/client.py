"""
Sync client façade.

Wraps exactly one provider and exposes the union of operations. Item-level
and bulk providers are driven differently: item-level push writes each
record with create-or-update, bulk push uploads the whole dataset at once.
"""
#region Imports
import logging
from typing import Callable, Optional

import httpx

from geni_sync.models.records import (
    Collection,
    EntityType,
    Environment,
    HttpRequest,
    SyncableRecord,
    SyncPayload,
    TokenResponse,
    User,
)
from geni_sync.sync import ProviderConfig, get_provider
from geni_sync.sync.errors import UnsupportedOperation
from geni_sync.sync.providers.base import SyncProvider
#endregion


#region Constants
logger = logging.getLogger(__name__)

# Called after each accepted write: (entity, record, cloud_id, version)
OnPushed = Callable[[EntityType, SyncableRecord, str, int], None]
#endregion


#region Client


class SyncClient:
    """
    Single entry point to the active provider.

    Records handed to push_sync are never mutated; the accepted cloud_id and
    version are reported through the on_pushed callback so the caller can
    persist them.
    """

    def __init__(self, provider: SyncProvider):
        self.provider = provider

    @classmethod
    def from_config(cls, config: ProviderConfig, http_client: Optional[httpx.Client] = None) -> "SyncClient":
        """
        Build a client for a provider configuration.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        return cls(get_provider(config.provider, http_client=http_client, **config.settings))

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def supports_item_level_ops(self) -> bool:
        return self.provider.supports_item_level_ops()

    #region Push / Pull

    def push_sync(
        self,
        collections: list,
        requests: list,
        environments: list,
        on_pushed: Optional[OnPushed] = None,
    ) -> int:
        """
        Push records to the remote.

        Item-level providers receive one create or update per record, in the
        order collections, requests, environments. A failure stops the loop;
        records already pushed have been reported through on_pushed.

        Bulk providers receive one document holding every record given.
        Only unsynced records get a new version and are reported.

        Args:
            collections: Collection records
            requests: HttpRequest records
            environments: Environment records
            on_pushed: Callback invoked for each accepted record

        Returns:
            Number of records accepted by the remote
        """
        payload = SyncPayload(
            collections=list(collections),
            requests=list(requests),
            environments=list(environments),
        )
        if self.supports_item_level_ops:
            return self._push_items(payload, on_pushed)
        return self._push_document(payload, on_pushed)

    def _push_items(self, payload: SyncPayload, on_pushed: Optional[OnPushed]) -> int:
        pushed = 0
        for entity in EntityType:
            for record in payload.records(entity):
                cloud_id, version = self.push_record(entity, record)
                pushed += 1
                if on_pushed is not None:
                    on_pushed(entity, record, cloud_id, version)
        return pushed

    def _push_document(self, payload: SyncPayload, on_pushed: Optional[OnPushed]) -> int:
        outgoing = SyncPayload()
        accepted = []
        for entity in EntityType:
            for record in payload.records(entity):
                # The document needs a stable remote key even for never-synced records
                cloud_id = record.cloud_id or record.id
                if record.synced:
                    outgoing.records(entity).append(record.copy(cloud_id=cloud_id))
                else:
                    stamped = record.copy(cloud_id=cloud_id, version=record.version + 1)
                    outgoing.records(entity).append(stamped)
                    accepted.append((entity, record, cloud_id, stamped.version))

        self.provider.push_bulk(outgoing)

        if on_pushed is not None:
            for entity, record, cloud_id, version in accepted:
                on_pushed(entity, record, cloud_id, version)
        return len(accepted)

    def pull_sync(self) -> SyncPayload:
        """
        Read every remote record.

        Returns:
            SyncPayload with cloud_id set on each record; remote items that
            could not be parsed are listed in payload.rejected
        """
        if not self.supports_item_level_ops:
            return self.provider.pull_bulk()

        payload = SyncPayload()
        for entity in EntityType:
            records = self.provider.list_remote(entity)
            payload.records(entity).extend(records)
            payload.rejected.extend(getattr(records, "rejected", []))
        return payload

    #endregion

    #region Item Operations

    def push_record(self, entity: EntityType, record: SyncableRecord) -> tuple[str, int]:
        """
        Create or update one record, keyed on cloud_id.

        Returns:
            Tuple of (cloud_id, accepted version)

        Raises:
            UnsupportedOperation: If the provider is bulk-only
        """
        stamped = record.copy(version=record.version + 1)
        if record.cloud_id:
            self.provider.update_remote(entity, record.cloud_id, stamped)
            cloud_id = record.cloud_id
        else:
            cloud_id = self.provider.create_remote(entity, stamped)
            logger.debug(f"Created remote {entity.label} {cloud_id} for {record.id}")
        return cloud_id, stamped.version

    def push_collection(self, collection: Collection) -> tuple[str, int]:
        return self.push_record(EntityType.COLLECTION, collection)

    def push_request(self, request: HttpRequest) -> tuple[str, int]:
        return self.push_record(EntityType.REQUEST, request)

    def push_environment(self, environment: Environment) -> tuple[str, int]:
        return self.push_record(EntityType.ENVIRONMENT, environment)

    def delete_collection(self, cloud_id: str) -> None:
        self.provider.delete_remote(EntityType.COLLECTION, cloud_id)

    def delete_request(self, cloud_id: str) -> None:
        self.provider.delete_remote(EntityType.REQUEST, cloud_id)

    def delete_environment(self, cloud_id: str) -> None:
        self.provider.delete_remote(EntityType.ENVIRONMENT, cloud_id)

    #endregion

    #region Authentication

    def _provider_method(self, method_name: str, action: str) -> Callable:
        method = getattr(self.provider, method_name, None)
        if method is None:
            raise UnsupportedOperation(f"{action} is not supported for {self.name}")
        return method

    def is_authenticated(self) -> bool:
        return self.provider.is_authenticated()

    def current_user(self) -> Optional[User]:
        return self.provider.current_user()

    def sign_out(self) -> None:
        self.provider.sign_out()

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> TokenResponse:
        return self._provider_method("sign_up", "Sign up")(email, password, name)

    def sign_in(self, email: str, password: str) -> TokenResponse:
        return self._provider_method("sign_in", "Sign in")(email, password)

    def get_auth_url(self) -> tuple[str, str]:
        return self._provider_method("generate_auth_url", "OAuth authorization")()

    def exchange_code(self, code: str, state: Optional[str] = None) -> TokenResponse:
        return self._provider_method("exchange_code", "OAuth code exchange")(code, state)

    def refresh_token(self) -> TokenResponse:
        return self._provider_method("refresh_access_token", "Token refresh")()

    def ensure_schema(self) -> None:
        self._provider_method("ensure_schema", "Schema provisioning")()

    def close(self) -> None:
        self.provider.close()

    #endregion


#endregion
