"""
API Server sync provider for Geni.

Talks to the bespoke Geni REST API: email/password accounts and one CRUD
endpoint per entity type under /api.
"""
#region Imports
import logging
from typing import Optional

import httpx

from geni_sync.models.records import EntityType, SyncableRecord, TokenResponse, User, parse_remote_records
from geni_sync.sync.errors import AuthenticationFailed, NotAuthenticated, RemoteRejected, TransportError
from geni_sync.sync.providers.base import ItemLevelProvider
from geni_sync.sync.providers.http import build_client, read_json, send
#endregion


#region Constants
logger = logging.getLogger(__name__)
#endregion


#region Provider


class ApiServerProvider(ItemLevelProvider):
    """
    Provider for a self-hosted Geni API server.

    Endpoints:
    - POST /api/auth/register, POST /api/auth/login
    - GET/POST /api/{collections,requests,environments}
    - PUT/DELETE /api/{entity}/{cloud_id}
    """

    provider_id = "api_server"

    def __init__(
        self,
        api_server_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        **kwargs
    ):
        """
        Initialize API Server provider.

        Args:
            api_server_url: Base URL of the server, e.g. https://geni.example.com
            http_client: Optional pre-built httpx client
        """
        self.base_url = (api_server_url or "").rstrip("/")
        self.client = build_client(http_client)
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user_info: Optional[User] = None

    @property
    def name(self) -> str:
        return "API Server"

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    #region Authentication

    def _store_auth_response(self, data: dict, context: str) -> TokenResponse:
        """Keep the tokens and user from a login/register reply."""
        if not isinstance(data, dict) or not data.get("access_token"):
            raise TransportError(f"Failed to {context}: response has no access_token")

        user = User.from_dict(data.get("user") or {})
        self.access_token = data["access_token"]
        self.refresh_token = data.get("refresh_token")
        self.user_info = user

        return TokenResponse(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            user=user,
        )

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> TokenResponse:
        """
        Register a new account and start a session.

        Raises:
            AuthenticationFailed: If the server rejects the registration
        """
        body = {"email": email, "password": password, "name": name}
        try:
            response = send(self.client, "POST", self._url("/api/auth/register"), "register", json=body)
        except RemoteRejected as e:
            raise AuthenticationFailed(f"Registration failed: {e.body}") from e

        logger.info(f"Registered API server account {email}")
        return self._store_auth_response(read_json(response, "register"), "register")

    def sign_in(self, email: str, password: str) -> TokenResponse:
        """
        Log in with email and password.

        Raises:
            AuthenticationFailed: If the credentials are rejected
        """
        body = {"email": email, "password": password}
        try:
            response = send(self.client, "POST", self._url("/api/auth/login"), "log in", json=body)
        except RemoteRejected as e:
            raise AuthenticationFailed(f"Login failed: {e.body}") from e

        logger.info(f"Signed in to API server as {email}")
        return self._store_auth_response(read_json(response, "log in"), "log in")

    def authenticate(self, email: str = "", password: str = "", name: Optional[str] = None,
                     register: bool = False, **kwargs) -> TokenResponse:
        if register:
            return self.sign_up(email, password, name)
        return self.sign_in(email, password)

    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def current_user(self) -> Optional[User]:
        return self.user_info

    def sign_out(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user_info = None

    def export_session(self) -> dict:
        if not self.access_token:
            return {}
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user": self.user_info.to_dict() if self.user_info else None,
        }

    def restore_session(self, session: dict) -> None:
        self.access_token = session.get("access_token")
        self.refresh_token = session.get("refresh_token")
        user = session.get("user")
        self.user_info = User.from_dict(user) if user else None

    def close(self) -> None:
        self.client.close()

    def _auth_headers(self) -> dict:
        """
        Bearer header for the current session.

        Raises:
            NotAuthenticated: If no access token is held
        """
        if not self.access_token:
            raise NotAuthenticated()
        return {"Authorization": f"Bearer {self.access_token}"}

    #endregion

    #region Item Operations

    def create_remote(self, entity: EntityType, record: SyncableRecord) -> str:
        headers = self._auth_headers()
        context = f"create {entity.label}"
        response = send(
            self.client, "POST", self._url(f"/api/{entity.value}"), context,
            headers=headers, json=record.to_remote_dict(),
        )

        created = read_json(response, context)
        cloud_id = None
        if isinstance(created, dict):
            cloud_id = created.get("cloud_id") or created.get("id")
        if not cloud_id:
            raise TransportError(f"Failed to {context}: server returned no id")
        return str(cloud_id)

    def update_remote(self, entity: EntityType, cloud_id: str, record: SyncableRecord) -> None:
        headers = self._auth_headers()
        send(
            self.client, "PUT", self._url(f"/api/{entity.value}/{cloud_id}"),
            f"update {entity.label}", headers=headers, json=record.to_remote_dict(),
        )

    def delete_remote(self, entity: EntityType, cloud_id: str) -> None:
        headers = self._auth_headers()
        send(
            self.client, "DELETE", self._url(f"/api/{entity.value}/{cloud_id}"),
            f"delete {entity.label}", headers=headers,
        )

    def list_remote(self, entity: EntityType) -> list:
        headers = self._auth_headers()
        context = f"get {entity.value}"
        response = send(self.client, "GET", self._url(f"/api/{entity.value}"), context, headers=headers)

        items = read_json(response, context)
        if not isinstance(items, list):
            raise TransportError(f"Failed to {context}: expected a list")
        return parse_remote_records(entity, items)

    #endregion


#endregion
