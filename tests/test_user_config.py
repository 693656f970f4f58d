#region Imports
import json

import pytest

from geni_sync.config import user_config
#endregion


class TestLoadSave:
    def test_missing_file_gives_defaults(self):
        assert user_config.load_config() == user_config.get_default_config()

    def test_corrupt_file_gives_defaults(self, config_path):
        config_path.write_text("{not json")
        assert user_config.load_config()["sync_providers"] == {}

    def test_old_file_gains_new_keys(self, config_path):
        config_path.write_text(json.dumps({"last_sync_provider": "supabase"}))

        config = user_config.load_config()

        assert config["last_sync_provider"] == "supabase"
        assert config["sync_sessions"] == {}


class TestProviderConfig:
    @pytest.mark.parametrize("alias, expected", [
        ("api", "api_server"),
        ("APIServer", "api_server"),
        ("googledrive", "google_drive"),
        ("Supabase", "supabase"),
        ("dropbox", None),
    ])
    def test_normalize_provider_id(self, alias, expected):
        assert user_config.normalize_provider_id(alias) == expected

    def test_save_filters_unknown_keys(self):
        user_config.save_provider_config("supabase", {
            "supabase_url": "https://abc.supabase.co",
            "supabase_api_key": "anon",
            "api_server_url": "https://ignored.test",
        })

        saved = user_config.get_provider_config("supabase")
        assert saved == {
            "supabase_url": "https://abc.supabase.co",
            "supabase_api_key": "anon",
            "supabase_db_uri": None,
        }

    @pytest.mark.parametrize("provider, settings, message", [
        ("api_server", {}, "API Server URL required"),
        ("supabase", {"supabase_url": "https://abc.supabase.co"}, "Supabase API key required"),
        ("supabase", {"supabase_url": "https://a.co", "supabase_api_key": "k", "supabase_db_uri": "mysql://x"},
         "Database URI"),
        ("google_drive", {"google_client_id": "id"}, "Google Client Secret required"),
        ("dropbox", {}, "Invalid sync provider"),
    ])
    def test_validation_messages(self, provider, settings, message):
        is_valid, error = user_config.validate_sync_config(settings, provider)
        assert is_valid is False
        assert message in error

    def test_save_rejects_invalid(self):
        with pytest.raises(ValueError):
            user_config.save_provider_config("api_server", {"api_server_url": "ftp://x"})

    def test_set_last_sync_provider_rejects_unknown(self):
        with pytest.raises(ValueError):
            user_config.set_last_sync_provider("dropbox")


class TestSessions:
    def test_empty_session_removes_entry(self):
        user_config.save_session("api_server", {"access_token": "t"})
        assert user_config.get_session("api_server") == {"access_token": "t"}

        user_config.save_session("api_server", {})
        assert "api_server" not in user_config.load_config()["sync_sessions"]

    def test_clear_sync_config(self):
        user_config.save_provider_config("api_server", {"api_server_url": "https://geni.test"})
        user_config.set_last_sync_provider("api_server")
        user_config.set_last_sync("2024-01-01T10:00:00+00:00")
        assert user_config.is_sync_configured() is True

        user_config.clear_sync_config()

        assert user_config.is_sync_configured() is False
        assert user_config.get_last_sync() is None
