"""
Sync module for Geni.

Provides cloud sync of collections, requests and environments via multiple
providers:
- API Server: self-hosted Geni REST API
- Supabase: PostgREST tables in a Supabase project
- Google Drive: one JSON document in the user's Drive
"""
#region Imports
from dataclasses import dataclass, field
from typing import Optional

import httpx

from geni_sync.config.user_config import (
    PROVIDER_CONFIG_KEYS,
    VALID_SYNC_PROVIDERS,
    normalize_provider_id,
    validate_sync_config,
)
from geni_sync.sync.errors import ConfigurationError
from geni_sync.sync.providers.base import SyncProvider
from geni_sync.sync.providers.api_server import ApiServerProvider
from geni_sync.sync.providers.supabase import SupabaseProvider
from geni_sync.sync.providers.google_drive import GoogleDriveProvider
#endregion


#region Types


@dataclass
class ProviderConfig:
    """
    Provider id plus its provider-specific settings.

    settings holds only the keys listed in PROVIDER_CONFIG_KEYS for the
    provider, e.g. {"supabase_url": ..., "supabase_api_key": ...}.
    """

    provider: str
    settings: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"provider": self.provider, **self.settings}

    @classmethod
    def from_dict(cls, data: dict, provider: Optional[str] = None) -> "ProviderConfig":
        """
        Build from a flat config blob.

        Args:
            data: Blob with provider-specific keys (and optionally "provider")
            provider: Provider id, overriding data["provider"]

        Raises:
            ConfigurationError: If the provider is unknown
        """
        provider_id = normalize_provider_id(provider or data.get("provider") or "")
        if provider_id is None:
            raise ConfigurationError(
                f"Invalid sync provider: {provider or data.get('provider')}. "
                f"Must be one of {VALID_SYNC_PROVIDERS}"
            )
        allowed = PROVIDER_CONFIG_KEYS[provider_id]
        settings = {key: data.get(key) for key in allowed if data.get(key) is not None}
        return cls(provider=provider_id, settings=settings)

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If a required setting is missing or malformed
        """
        is_valid, error = validate_sync_config(self.settings, self.provider)
        if not is_valid:
            raise ConfigurationError(error)


#endregion


#region Factory


PROVIDERS = {
    "api_server": ApiServerProvider,
    "supabase": SupabaseProvider,
    "google_drive": GoogleDriveProvider,
}


def get_provider(provider_name: str, http_client: Optional[httpx.Client] = None, **config) -> SyncProvider:
    """
    Get a sync provider instance by name.

    Args:
        provider_name: Provider identifier or alias (api_server, supabase, google_drive)
        http_client: Optional httpx client shared with the provider
        **config: Provider-specific configuration

    Returns:
        Configured SyncProvider instance

    Raises:
        ConfigurationError: If the provider is unknown or its settings invalid
    """
    provider_config = ProviderConfig.from_dict(config, provider=provider_name)
    provider_config.validate()

    return PROVIDERS[provider_config.provider](http_client=http_client, **provider_config.settings)


#endregion


__all__ = [
    "ProviderConfig",
    "SyncProvider",
    "ApiServerProvider",
    "SupabaseProvider",
    "GoogleDriveProvider",
    "get_provider",
]
