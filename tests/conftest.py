"""
Shared fixtures for the Geni sync tests.

Remote services are faked with httpx.MockTransport; nothing touches the
network or the user's home directory.
"""
#region Imports
import json
from datetime import datetime, timezone

import httpx
import pytest

from geni_sync.config import user_config
from geni_sync.storage.local_store import LocalStore
#endregion


#region Helpers


def json_response(status: int, data) -> httpx.Response:
    return httpx.Response(status, json=data)


class FakeServer:
    """
    Route table for an httpx.MockTransport.

    Routes are keyed by (method, path) and map to an httpx.Response or a
    callable taking the request. Every request is recorded; unknown routes
    answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def route(self, method: str, path: str, response) -> None:
        self.routes[(method.upper(), path)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        if callable(response):
            return response(request)
        # Fresh copy so a route can answer more than once
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def calls(self, method: str, path: str = None) -> list:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content.decode("utf-8"))


def at(hour: int, minute: int = 0) -> datetime:
    """A fixed UTC time on 2024-01-01."""
    return datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)


#endregion


#region Fixtures


@pytest.fixture(autouse=True)
def config_path(tmp_path, monkeypatch):
    """Point the user config at a temp file for every test."""
    path = tmp_path / "sync_config.json"
    monkeypatch.setattr(user_config, "CONFIG_PATH", path)
    return path


@pytest.fixture
def store(tmp_path):
    """Fresh local store in a temp directory."""
    return LocalStore(tmp_path / "geni.db")


@pytest.fixture
def fake_server():
    return FakeServer()


#endregion
