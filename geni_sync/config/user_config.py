#region Imports
import json
import os
import re
from pathlib import Path
from typing import Optional
#endregion


#region Types
VALID_SYNC_PROVIDERS = ["api_server", "supabase", "google_drive"]

# Provider blob keys accepted per provider; anything else is dropped on save
PROVIDER_CONFIG_KEYS = {
    "api_server": ["api_server_url"],
    "supabase": ["supabase_url", "supabase_api_key", "supabase_db_uri"],
    "google_drive": ["google_client_id", "google_client_secret", "google_redirect_uri"],
}

VALID_URL_PATTERN = re.compile(r'^https?://[^\s/$.?#].[^\s]*$', re.IGNORECASE)
VALID_DB_URI_PATTERN = re.compile(r'^postgres(ql)?://\S+$', re.IGNORECASE)
#endregion


#region Constants
CONFIG_PATH = Path(
    os.environ.get("GENI_CONFIG_PATH", str(Path.home() / ".geni" / "sync_config.json"))
)
#endregion


#region Functions


def load_config() -> dict:
    """
    Load user configuration from disk.

    Returns:
        Configuration dictionary, or defaults if missing or unreadable
    """
    if not CONFIG_PATH.exists():
        return get_default_config()

    try:
        with open(CONFIG_PATH, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError):
        return get_default_config()

    # Fill keys added after the file was written
    defaults = get_default_config()
    for key, value in defaults.items():
        config.setdefault(key, value)
    return config


def save_config(config: dict) -> None:
    """
    Save user configuration to disk.

    Args:
        config: Configuration dictionary to save

    Raises:
        IOError: If config cannot be written
    """
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)

    with open(CONFIG_PATH, "w") as f:
        json.dump(config, f, indent=2)


def get_default_config() -> dict:
    """
    Get default configuration values.

    Returns:
        Default configuration dictionary
    """
    return {
        "version": "1.0",
        "last_sync_provider": None,  # "api_server", "supabase", "google_drive"
        "sync_providers": {},  # Provider id -> provider config blob
        "sync_sessions": {},  # Provider id -> session tokens
        "last_sync": None,  # ISO timestamp of the last successful pull
    }


#endregion


#region Sync Configuration Functions


def normalize_provider_id(provider: str) -> Optional[str]:
    """
    Map a provider name or alias to its canonical id.

    Args:
        provider: e.g. "api", "apiserver", "googledrive", "Supabase"

    Returns:
        Canonical provider id, or None if unknown
    """
    aliases = {
        "api_server": "api_server",
        "apiserver": "api_server",
        "api": "api_server",
        "supabase": "supabase",
        "google_drive": "google_drive",
        "googledrive": "google_drive",
    }
    return aliases.get((provider or "").strip().lower())


def get_last_sync_provider() -> Optional[str]:
    """
    Get the provider selected most recently.

    Returns:
        Provider id or None if sync was never configured
    """
    config = load_config()
    return config.get("last_sync_provider")


def set_last_sync_provider(provider: str) -> None:
    """
    Set the provider selected most recently.

    Args:
        provider: One of VALID_SYNC_PROVIDERS

    Raises:
        ValueError: If provider is not valid
    """
    if provider not in VALID_SYNC_PROVIDERS:
        raise ValueError(f"Invalid sync provider: {provider}. Must be one of {VALID_SYNC_PROVIDERS}")

    config = load_config()
    config["last_sync_provider"] = provider
    save_config(config)


def get_provider_config(provider: str) -> Optional[dict]:
    """
    Get the saved configuration blob for one provider.

    Args:
        provider: Provider id

    Returns:
        Config dictionary or None if never saved
    """
    config = load_config()
    return config.get("sync_providers", {}).get(provider)


def validate_sync_config(sync_config: dict, provider: str) -> tuple[bool, Optional[str]]:
    """
    Validate provider-specific sync configuration.

    Args:
        sync_config: Dictionary of provider-specific settings
        provider: The sync provider being configured

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(sync_config, dict):
        return False, "sync_config must be a dictionary"

    if provider == "api_server":
        url = sync_config.get("api_server_url") or ""
        if not url:
            return False, "API Server URL required"
        if not VALID_URL_PATTERN.match(url):
            return False, f"API Server URL is not a valid http(s) URL: {url}"

    elif provider == "supabase":
        url = sync_config.get("supabase_url") or ""
        api_key = sync_config.get("supabase_api_key") or ""
        db_uri = sync_config.get("supabase_db_uri") or ""
        if not url:
            return False, "Supabase URL required"
        if not VALID_URL_PATTERN.match(url):
            return False, f"Supabase URL is not a valid http(s) URL: {url}"
        if not api_key:
            return False, "Supabase API key required"
        if db_uri and not VALID_DB_URI_PATTERN.match(db_uri):
            return False, "Database URI must start with postgresql:// or postgres://"

    elif provider == "google_drive":
        if not sync_config.get("google_client_id"):
            return False, "Google Client ID required"
        if not sync_config.get("google_client_secret"):
            return False, "Google Client Secret required"
        redirect_uri = sync_config.get("google_redirect_uri") or ""
        if not redirect_uri:
            return False, "Google Redirect URI required"
        if not VALID_URL_PATTERN.match(redirect_uri):
            return False, f"Google Redirect URI is not a valid http(s) URL: {redirect_uri}"

    else:
        return False, f"Invalid sync provider: {provider}. Must be one of {VALID_SYNC_PROVIDERS}"

    return True, None


def save_provider_config(provider: str, sync_config: dict) -> None:
    """
    Save the configuration blob for one provider.

    Args:
        provider: Provider id
        sync_config: Provider-specific settings

    Raises:
        ValueError: If the configuration does not validate
    """
    is_valid, error = validate_sync_config(sync_config, provider)
    if not is_valid:
        raise ValueError(error)

    allowed = PROVIDER_CONFIG_KEYS[provider]
    blob = {key: sync_config.get(key) for key in allowed}

    config = load_config()
    config.setdefault("sync_providers", {})[provider] = blob
    save_config(config)


def get_session(provider: str) -> dict:
    """
    Get saved session tokens for a provider.

    Returns:
        Session dictionary (empty if none)
    """
    config = load_config()
    return config.get("sync_sessions", {}).get(provider) or {}


def save_session(provider: str, session: dict) -> None:
    """
    Save session tokens for a provider so a later process can resume.

    An empty session removes the entry.
    """
    config = load_config()
    sessions = config.setdefault("sync_sessions", {})
    if session:
        sessions[provider] = session
    else:
        sessions.pop(provider, None)
    save_config(config)


def get_last_sync() -> Optional[str]:
    """Get the ISO timestamp of the last successful pull."""
    config = load_config()
    return config.get("last_sync")


def set_last_sync(timestamp: str) -> None:
    """Record the ISO timestamp of a successful pull."""
    config = load_config()
    config["last_sync"] = timestamp
    save_config(config)


def clear_sync_config() -> None:
    """
    Remove every provider-keyed entry and the last-provider pointer.

    Called on logout.
    """
    config = load_config()
    config["last_sync_provider"] = None
    config["sync_providers"] = {}
    config["sync_sessions"] = {}
    config["last_sync"] = None
    save_config(config)


def is_sync_configured() -> bool:
    """
    Check if sync has been configured.

    Returns:
        True if a provider was selected and its config saved
    """
    provider = get_last_sync_provider()
    return provider is not None and get_provider_config(provider) is not None


#endregion
