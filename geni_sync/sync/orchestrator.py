"""
Sync orchestration: the command surface used by the CLI.

One SyncOrchestrator owns the local store and the active SyncClient. Every
push, pull, authentication call and reconfiguration runs under a single
lock, so a full sync (push then pull) is never interleaved with another
operation and reconfiguration never swaps the client mid-call.
"""
#region Imports
import logging
import sqlite3
import threading
from dataclasses import dataclass
from typing import Optional

import httpx

from geni_sync.config.user_config import (
    clear_sync_config,
    get_last_sync,
    get_last_sync_provider,
    get_provider_config,
    get_session,
    save_provider_config,
    save_session,
    set_last_sync,
    set_last_sync_provider,
)
from geni_sync.models.records import (
    EntityType,
    SyncableRecord,
    SyncStatus,
    TokenResponse,
    User,
    format_timestamp,
    parse_timestamp,
    utc_now,
)
from geni_sync.storage.local_store import LocalStore
from geni_sync.sync import ProviderConfig
from geni_sync.sync.client import SyncClient
from geni_sync.sync.errors import ConfigurationError, MergeError
from geni_sync.sync.merge import MergeOutcome
#endregion


#region Constants
logger = logging.getLogger(__name__)
#endregion


#region Types


@dataclass
class SyncReport:
    """Counts from one push, pull or full sync."""

    pushed: int = 0
    inserted: int = 0
    overwritten: int = 0
    discarded: int = 0

    def record(self, outcome: MergeOutcome) -> None:
        if outcome is MergeOutcome.INSERTED:
            self.inserted += 1
        elif outcome is MergeOutcome.OVERWRITTEN:
            self.overwritten += 1
        else:
            self.discarded += 1

    @property
    def pulled(self) -> int:
        return self.inserted + self.overwritten + self.discarded


#endregion


#region Orchestrator


class SyncOrchestrator:
    """
    Runs sync operations against the local store.

    The client is None until initialize_sync() or load_saved_sync_config()
    succeeds.
    """

    def __init__(self, store: LocalStore, http_client: Optional[httpx.Client] = None):
        """
        Args:
            store: Local record store
            http_client: Optional httpx client handed to every provider built
        """
        self.store = store
        self.http_client = http_client
        self._lock = threading.Lock()
        self._client: Optional[SyncClient] = None

    @property
    def client(self) -> Optional[SyncClient]:
        return self._client

    def _require_client(self) -> SyncClient:
        if self._client is None:
            raise ConfigurationError("Sync is not configured. Run 'geni sync setup' first.")
        return self._client

    def _swap_client(self, client: Optional[SyncClient]) -> None:
        """Replace the active client; caller holds the lock."""
        previous = self._client
        self._client = client
        if previous is not None and previous is not client:
            previous.close()

    def _persist_session(self, client: SyncClient) -> None:
        save_session(client.provider_id, client.provider.export_session())

    #region Configuration

    def initialize_sync(self, provider_id: str, provider_config: dict) -> SyncClient:
        """
        Configure a provider and make it the active one.

        For Supabase the schema is ensured first; if that fails nothing is
        changed.

        Args:
            provider_id: Provider id or alias
            provider_config: Provider-specific settings

        Returns:
            The new active client

        Raises:
            ConfigurationError: If the settings are invalid
            SchemaMissing: If Supabase tables are missing and cannot be created
        """
        config = ProviderConfig.from_dict(provider_config, provider=provider_id)
        client = SyncClient.from_config(config, http_client=self.http_client)

        if config.provider == "supabase":
            client.ensure_schema()

        with self._lock:
            self._swap_client(client)

        save_provider_config(config.provider, config.settings)
        set_last_sync_provider(config.provider)
        # A new configuration starts without a session
        save_session(config.provider, {})

        logger.info(f"Sync initialized with {client.name}")
        return client

    def load_saved_sync_config(self) -> Optional[ProviderConfig]:
        """
        Restore the last configured provider and its session.

        Returns:
            The restored configuration, or None if sync was never configured
        """
        provider = get_last_sync_provider()
        if provider is None:
            return None

        blob = get_provider_config(provider)
        if blob is None:
            logger.warning(f"Last sync provider {provider} has no saved configuration")
            return None

        config = ProviderConfig.from_dict(blob, provider=provider)
        client = SyncClient.from_config(config, http_client=self.http_client)
        client.provider.restore_session(get_session(config.provider))

        with self._lock:
            self._swap_client(client)

        logger.debug(f"Loaded saved sync configuration for {client.name}")
        return config

    def logout(self) -> None:
        """Sign out, drop the client and clear every saved provider setting."""
        with self._lock:
            if self._client is not None:
                self._client.sign_out()
            self._swap_client(None)
        clear_sync_config()
        logger.info("Logged out and cleared sync configuration")

    #endregion

    #region Sync

    def _on_pushed(self, entity: EntityType, record: SyncableRecord, cloud_id: str, version: int) -> None:
        self.store.mark_synced(entity, record.id, cloud_id, version, pushed_updated_at=record.updated_at)

    def _push(self, client: SyncClient, report: SyncReport) -> None:
        unsynced = {entity: self.store.get_unsynced(entity) for entity in EntityType}
        if not any(unsynced.values()):
            logger.info("Nothing to push")
            return

        if client.supports_item_level_ops:
            records = unsynced
        else:
            # The document is rewritten whole, so it carries every local record
            records = {entity: self.store.list_records(entity) for entity in EntityType}

        try:
            report.pushed += client.push_sync(
                records[EntityType.COLLECTION],
                records[EntityType.REQUEST],
                records[EntityType.ENVIRONMENT],
                on_pushed=self._on_pushed,
            )
        finally:
            self._persist_session(client)
        logger.info(f"Pushed {report.pushed} record(s) to {client.name}")

    def _pull(self, client: SyncClient, report: SyncReport) -> None:
        try:
            payload = client.pull_sync()
        finally:
            self._persist_session(client)

        failures = list(payload.rejected)
        for label, cloud_id, error in payload.rejected:
            logger.error(f"Skipping unreadable remote {label} {cloud_id}: {error}")

        for entity in EntityType:
            for remote in payload.records(entity):
                try:
                    report.record(self.store.merge(remote))
                except (sqlite3.Error, ValueError, KeyError) as e:
                    logger.error(f"Failed to merge {entity.label} {remote.cloud_id}: {e}")
                    failures.append((entity.label, remote.cloud_id, e))

        if failures:
            raise MergeError(failures)

        set_last_sync(format_timestamp(utc_now()))
        logger.info(
            f"Pulled {report.pulled} record(s) from {client.name}: "
            f"{report.inserted} inserted, {report.overwritten} overwritten"
        )

    def push_once(self) -> SyncReport:
        """
        Push every unsynced local record.

        Records are marked synced as each write is accepted, so a failure
        part-way leaves earlier records synced and the rest pending.
        """
        report = SyncReport()
        with self._lock:
            self._push(self._require_client(), report)
        return report

    def pull_once(self) -> SyncReport:
        """
        Pull every remote record and merge it locally.

        Raises:
            MergeError: If some records could not be merged (the rest were)
        """
        report = SyncReport()
        with self._lock:
            self._pull(self._require_client(), report)
        return report

    def full_sync(self) -> SyncReport:
        """Push then pull in one critical section."""
        report = SyncReport()
        with self._lock:
            client = self._require_client()
            self._push(client, report)
            self._pull(client, report)
        return report

    def get_sync_status(self) -> SyncStatus:
        client = self._client
        return SyncStatus(
            is_authenticated=client.is_authenticated() if client else False,
            provider=client.provider_id if client else None,
            unsynced_collections_count=self.store.count_unsynced(EntityType.COLLECTION),
            unsynced_requests_count=self.store.count_unsynced(EntityType.REQUEST),
            unsynced_environments_count=self.store.count_unsynced(EntityType.ENVIRONMENT),
            last_sync=parse_timestamp(get_last_sync()),
        )

    #endregion

    #region Authentication

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> TokenResponse:
        with self._lock:
            client = self._require_client()
            response = client.sign_up(email, password, name)
            self._persist_session(client)
        return response

    def sign_in(self, email: str, password: str) -> TokenResponse:
        with self._lock:
            client = self._require_client()
            response = client.sign_in(email, password)
            self._persist_session(client)
        return response

    def get_auth_url(self) -> tuple[str, str]:
        """
        Returns:
            Tuple of (consent URL, state)
        """
        with self._lock:
            client = self._require_client()
            result = client.get_auth_url()
            # The PKCE verifier must survive until exchange_code, possibly in another process
            self._persist_session(client)
        return result

    def exchange_code(self, code: str, state: Optional[str] = None) -> TokenResponse:
        with self._lock:
            client = self._require_client()
            try:
                response = client.exchange_code(code, state)
            finally:
                self._persist_session(client)
        return response

    def refresh_token(self) -> TokenResponse:
        with self._lock:
            client = self._require_client()
            response = client.refresh_token()
            self._persist_session(client)
        return response

    def ensure_schema(self) -> None:
        with self._lock:
            self._require_client().ensure_schema()

    def current_user(self) -> Optional[User]:
        client = self._client
        return client.current_user() if client else None

    #endregion


#endregion
