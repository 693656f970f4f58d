#region Imports
import json

import httpx
import pytest
from typer.testing import CliRunner

from geni_sync.cli import app
from geni_sync.commands.sync import common
from geni_sync.config import user_config
from geni_sync.models.records import Collection
from geni_sync.sync.orchestrator import SyncOrchestrator
from conftest import json_response
#endregion


runner = CliRunner()


@pytest.fixture(autouse=True)
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "cli.db"
    monkeypatch.setenv("GENI_DB_PATH", str(path))
    return path


@pytest.fixture
def faked_network(store, fake_server, monkeypatch):
    """Make every command use the test store and the fake server."""
    def get_orchestrator(load_saved=True):
        orchestrator = SyncOrchestrator(store, http_client=fake_server.client())
        if load_saved:
            orchestrator.load_saved_sync_config()
        return orchestrator

    monkeypatch.setattr(common, "get_orchestrator", get_orchestrator)
    return fake_server


class TestSetup:
    def test_non_interactive_setup(self):
        result = runner.invoke(app, [
            "sync", "setup", "--provider", "api", "--api-server-url", "https://geni.test", "--yes",
        ])

        assert result.exit_code == 0, result.output
        assert "Sync configured with API Server" in result.output
        assert user_config.get_last_sync_provider() == "api_server"

    def test_invalid_provider(self):
        result = runner.invoke(app, ["sync", "setup", "--provider", "dropbox", "--yes"])
        assert result.exit_code == 1
        assert "Invalid sync provider" in result.output

    def test_missing_settings(self):
        result = runner.invoke(app, ["sync", "setup", "--provider", "supabase", "--yes"])
        assert result.exit_code == 1
        assert "Supabase URL required" in result.output

    def test_schema_missing_prints_sql(self, faked_network):
        faked_network.route(
            "GET", "/rest/v1/collections",
            httpx.Response(404, text='relation "public.collections" does not exist'),
        )

        result = runner.invoke(app, [
            "sync", "setup", "--provider", "supabase", "--yes",
            "--supabase-url", "https://abc.supabase.co", "--supabase-api-key", "anon",
        ])

        assert result.exit_code == 1
        assert "Database tables not found" in result.output
        assert "CREATE TABLE IF NOT EXISTS collections" in result.output


class TestStatus:
    def test_unconfigured(self):
        result = runner.invoke(app, ["sync", "status"])
        assert result.exit_code == 0
        assert "Not configured" in result.output

    def test_configured(self):
        runner.invoke(app, ["sync", "setup", "-p", "api_server", "--api-server-url", "https://geni.test", "-y"])

        result = runner.invoke(app, ["sync", "status"])

        assert result.exit_code == 0
        assert "API Server" in result.output
        assert "Never" in result.output


class TestRun:
    def test_push_without_setup_fails(self):
        result = runner.invoke(app, ["sync", "push"])
        assert result.exit_code == 1
        assert "Sync is not configured" in result.output

    def test_push_error_is_shown_verbatim(self, faked_network, store):
        faked_network.route("POST", "/api/auth/login", json_response(200, {
            "access_token": "tok", "user": {"id": "u1", "email": "ada@example.com"},
        }))
        faked_network.route("POST", "/api/collections", httpx.Response(503, text="maintenance"))
        store.add(Collection(id="L1", name="Users"))

        runner.invoke(app, ["sync", "setup", "-p", "api_server", "--api-server-url", "https://geni.test", "-y"])
        sign_in = runner.invoke(app, ["sync", "sign-in", "--email", "ada@example.com", "--password", "pw"])
        assert sign_in.exit_code == 0, sign_in.output

        result = runner.invoke(app, ["sync", "push"])

        assert result.exit_code == 1
        assert "maintenance" in result.output
        assert "503" in result.output

    def test_full_sync_summary(self, faked_network, store):
        faked_network.route("POST", "/api/auth/login", json_response(200, {
            "access_token": "tok", "user": {"id": "u1", "email": "ada@example.com"},
        }))
        faked_network.route("POST", "/api/collections", json_response(201, {"cloud_id": "C1"}))
        for entity in ("collections", "requests", "environments"):
            faked_network.route("GET", f"/api/{entity}", json_response(200, []))
        store.add(Collection(id="L1", name="Users"))

        runner.invoke(app, ["sync", "setup", "-p", "api_server", "--api-server-url", "https://geni.test", "-y"])
        runner.invoke(app, ["sync", "sign-in", "--email", "ada@example.com", "--password", "pw"])
        result = runner.invoke(app, ["sync", "full"])

        assert result.exit_code == 0, result.output
        assert "Pushed" in result.output
        assert store.get_unsynced_collections() == []


class TestAuth:
    def test_auth_url_for_google(self):
        runner.invoke(app, [
            "sync", "setup", "-p", "google_drive", "-y",
            "--google-client-id", "id", "--google-client-secret", "secret",
        ])

        result = runner.invoke(app, ["sync", "auth-url"])

        assert result.exit_code == 0, result.output
        assert "accounts.google.com" in result.output
        assert user_config.get_session("google_drive")["pending_verifiers"]

    def test_auth_url_on_api_server_is_unsupported(self):
        runner.invoke(app, ["sync", "setup", "-p", "api", "--api-server-url", "https://geni.test", "-y"])

        result = runner.invoke(app, ["sync", "auth-url"])

        assert result.exit_code == 1
        assert "not supported for API Server" in result.output

    def test_logout(self):
        runner.invoke(app, ["sync", "setup", "-p", "api", "--api-server-url", "https://geni.test", "-y"])

        result = runner.invoke(app, ["sync", "logout"])

        assert result.exit_code == 0
        assert user_config.get_last_sync_provider() is None


class TestBrokenSavedConfig:
    @pytest.fixture(autouse=True)
    def broken_config(self, config_path):
        config_path.write_text(json.dumps({
            "last_sync_provider": "supabase",
            "sync_providers": {"supabase": {"supabase_url": "not a url", "supabase_api_key": "k"}},
        }))

    def test_commands_show_a_panel(self):
        result = runner.invoke(app, ["sync", "status"])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "not a valid" in result.output

    def test_logout_clears_it(self):
        result = runner.invoke(app, ["sync", "logout"])

        assert result.exit_code == 0, result.output
        assert user_config.get_last_sync_provider() is None
        assert user_config.get_provider_config("supabase") is None
