"""
Google Drive sync provider for Geni.

Stores the whole dataset as one JSON document (geni_data.json) inside an
app folder the user owns. Access uses OAuth2 authorization code + PKCE with
the drive.file scope, so only files created by this app are visible.
"""
#region Imports
import json
import logging
import uuid
from datetime import timedelta
from typing import Optional

import httpx

from geni_sync.models.records import (
    EntityType,
    SyncPayload,
    TokenResponse,
    User,
    format_timestamp,
    parse_remote_records,
    parse_timestamp,
    utc_now,
)
from geni_sync.sync.errors import (
    AuthenticationFailed,
    NoRefreshToken,
    NotAuthenticated,
    RemoteRejected,
    TransportError,
)
from geni_sync.sync.providers.base import BulkProvider
from geni_sync.sync.providers.http import build_client, read_json, send
from geni_sync.sync.providers.oauth import (
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    OAuthState,
    PkcePair,
    build_authorization_url,
    new_state,
)
#endregion


#region Constants
logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"

FOLDER_NAME = "Geni API Client"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DATA_FILE_NAME = "geni_data.json"
DOCUMENT_VERSION = "1.0"

# Refresh slightly before Google's stated expiry
EXPIRY_MARGIN = timedelta(seconds=60)
#endregion


#region Helper Functions


def build_document(payload: SyncPayload) -> dict:
    """
    Serialize a payload as the Drive data document.

    Returns:
        {collections, requests, environments, version, last_updated}
    """
    document = {
        entity.value: [record.to_remote_dict() for record in payload.records(entity)]
        for entity in EntityType
    }
    document["version"] = DOCUMENT_VERSION
    document["last_updated"] = format_timestamp(utc_now())
    return document


def parse_document(document: dict) -> SyncPayload:
    """
    Read a Drive data document back into records.

    Malformed items are reported in payload.rejected; the rest are parsed.

    Raises:
        TransportError: If the document or one of its record lists has the wrong shape
    """
    check_document(document)

    payload = SyncPayload()
    for entity in EntityType:
        parsed = parse_remote_records(entity, document.get(entity.value) or [])
        payload.records(entity).extend(parsed)
        payload.rejected.extend(parsed.rejected)
    return payload


def check_document(document) -> None:
    if not isinstance(document, dict):
        raise TransportError(f"{DATA_FILE_NAME} is not a JSON object")
    for entity in EntityType:
        if not isinstance(document.get(entity.value) or [], list):
            raise TransportError(f"{DATA_FILE_NAME}: {entity.value} is not a list")


def carry_over(outgoing: dict, existing: dict) -> dict:
    """
    Add records from the current Drive document that the outgoing one lacks.

    Another device may have uploaded records this device has not pulled yet;
    they are kept verbatim, keyed on cloud_id.

    Args:
        outgoing: Document about to be uploaded
        existing: Document currently on Drive

    Returns:
        The outgoing document with the missing remote records appended
    """
    for entity in EntityType:
        sent = {str(item.get("cloud_id")) for item in outgoing[entity.value]}
        kept = [
            item for item in existing.get(entity.value) or []
            if isinstance(item, dict) and item.get("cloud_id") and str(item["cloud_id"]) not in sent
        ]
        if kept:
            logger.debug(f"Keeping {len(kept)} remote {entity.value} not present locally")
        outgoing[entity.value].extend(kept)
    return outgoing


#endregion


#region Provider


class GoogleDriveProvider(BulkProvider):
    """
    Google Drive provider (bulk document sync).

    Flow:
    1. generate_auth_url() -> open the URL, user consents
    2. exchange_code(code, state) with the code from the redirect
    3. push_bulk / pull_bulk read and write geni_data.json
    """

    provider_id = "google_drive"

    def __init__(
        self,
        google_client_id: Optional[str] = None,
        google_client_secret: Optional[str] = None,
        google_redirect_uri: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        **kwargs
    ):
        """
        Initialize Google Drive provider.

        Args:
            google_client_id: OAuth client id
            google_client_secret: OAuth client secret
            google_redirect_uri: Redirect URI registered for the client
            http_client: Optional pre-built httpx client
        """
        self.client_id = google_client_id or ""
        self.client_secret = google_client_secret or ""
        self.redirect_uri = google_redirect_uri or ""
        self.client = build_client(http_client)

        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.token_expires_at = None
        self.folder_id: Optional[str] = None
        self.user_info: Optional[User] = None
        # state -> PKCE verifier for authorizations not yet exchanged
        self.pending_verifiers: dict = {}

    @property
    def name(self) -> str:
        return "Google Drive"

    @property
    def oauth_state(self) -> OAuthState:
        if self.access_token:
            return OAuthState.TOKEN_EXPIRED if self.token_expired() else OAuthState.AUTHORIZED
        if self.pending_verifiers:
            return OAuthState.AUTHORIZATION_REQUESTED
        return OAuthState.UNAUTHENTICATED

    #region OAuth

    def generate_auth_url(self) -> tuple[str, str]:
        """
        Start an authorization.

        Returns:
            Tuple of (consent URL, state); keep the state to pass to exchange_code
        """
        pkce = PkcePair.generate()
        state = new_state()
        self.pending_verifiers[state] = pkce.verifier
        url = build_authorization_url(self.client_id, self.redirect_uri, state, pkce.challenge)
        logger.info("Generated Google authorization URL")
        return url, state

    def _take_verifier(self, state: Optional[str]) -> Optional[str]:
        if state is not None:
            if state not in self.pending_verifiers:
                raise AuthenticationFailed(
                    "Unknown or already used OAuth state; generate a new authorization URL"
                )
            return self.pending_verifiers[state]
        if self.pending_verifiers:
            # Most recent authorization
            return list(self.pending_verifiers.values())[-1]
        return None

    def _store_tokens(self, data: dict) -> None:
        if not isinstance(data, dict) or not data.get("access_token"):
            raise TransportError("Token response has no access_token")

        self.access_token = data["access_token"]
        # Google omits refresh_token on refresh; keep the one we have
        if data.get("refresh_token"):
            self.refresh_token = data["refresh_token"]
        expires_in = data.get("expires_in")
        self.token_expires_at = (
            utc_now() + timedelta(seconds=int(expires_in)) if expires_in else None
        )

    def exchange_code(self, code: str, state: Optional[str] = None) -> TokenResponse:
        """
        Trade an authorization code for tokens.

        Also loads the Google profile and makes sure the app folder exists.

        Args:
            code: Code from the redirect
            state: State from the redirect; defaults to the latest authorization

        Returns:
            TokenResponse with the signed-in user

        Raises:
            AuthenticationFailed: If the state is unknown or Google rejects the code
        """
        verifier = self._take_verifier(state)
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }
        if verifier:
            form["code_verifier"] = verifier

        try:
            response = send(self.client, "POST", GOOGLE_TOKEN_URL, "exchange authorization code", data=form)
        except RemoteRejected as e:
            raise AuthenticationFailed(f"Authorization code exchange failed: {e.body}") from e

        self._store_tokens(read_json(response, "exchange authorization code"))
        self.pending_verifiers.clear()

        self.user_info = self.fetch_user_info()
        self.ensure_root_folder()
        logger.info(f"Signed in to Google Drive as {self.user_info.email}")

        return TokenResponse(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            user=self.user_info,
        )

    def refresh_access_token(self) -> TokenResponse:
        """
        Get a new access token with the refresh token.

        Raises:
            NoRefreshToken: If no refresh token was ever issued
            AuthenticationFailed: If Google rejects the refresh token
        """
        if not self.refresh_token:
            raise NoRefreshToken()

        form = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            response = send(self.client, "POST", GOOGLE_TOKEN_URL, "refresh access token", data=form)
        except RemoteRejected as e:
            raise AuthenticationFailed(f"Token refresh failed: {e.body}") from e

        self._store_tokens(read_json(response, "refresh access token"))
        logger.info("Refreshed Google access token")

        return TokenResponse(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            user=self.user_info or User(id="", email=""),
        )

    def token_expired(self) -> bool:
        if self.token_expires_at is None:
            return False
        return utc_now() >= self.token_expires_at - EXPIRY_MARGIN

    def _bearer(self) -> dict:
        """
        Authorization header, refreshing an expired token first when possible.

        Raises:
            NotAuthenticated: If there is no usable token
        """
        if not self.access_token:
            raise NotAuthenticated()
        if self.token_expired():
            if not self.refresh_token:
                raise NotAuthenticated("Google access token expired; sign in again")
            self.refresh_access_token()
        return {"Authorization": f"Bearer {self.access_token}"}

    def fetch_user_info(self) -> User:
        response = send(
            self.client, "GET", GOOGLE_USERINFO_URL, "get user info", headers=self._bearer()
        )
        data = read_json(response, "get user info")
        return User(id=str(data.get("id", "")), email=str(data.get("email", "")), name=data.get("name"))

    def authenticate(self, code: str = "", state: Optional[str] = None, **kwargs) -> TokenResponse:
        return self.exchange_code(code, state)

    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def current_user(self) -> Optional[User]:
        return self.user_info

    def sign_out(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.token_expires_at = None
        self.folder_id = None
        self.user_info = None
        self.pending_verifiers.clear()

    def get_status(self) -> dict:
        status = super().get_status()
        status.update({
            "oauth_state": self.oauth_state.value,
            "token_expires_at": format_timestamp(self.token_expires_at),
            "has_refresh_token": self.refresh_token is not None,
        })
        return status

    def export_session(self) -> dict:
        if not self.access_token and not self.pending_verifiers:
            return {}
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_expires_at": format_timestamp(self.token_expires_at),
            "folder_id": self.folder_id,
            "user": self.user_info.to_dict() if self.user_info else None,
            "pending_verifiers": dict(self.pending_verifiers),
        }

    def restore_session(self, session: dict) -> None:
        self.access_token = session.get("access_token")
        self.refresh_token = session.get("refresh_token")
        self.token_expires_at = parse_timestamp(session.get("token_expires_at"))
        self.folder_id = session.get("folder_id")
        user = session.get("user")
        self.user_info = User.from_dict(user) if user else None
        self.pending_verifiers = dict(session.get("pending_verifiers") or {})

    def close(self) -> None:
        self.client.close()

    #endregion

    #region Drive Files

    def ensure_root_folder(self) -> str:
        """
        Find or create the app folder; the id is cached until sign-out.

        Returns:
            Drive folder id
        """
        if self.folder_id:
            return self.folder_id

        headers = self._bearer()
        query = f"name='{FOLDER_NAME}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        response = send(
            self.client, "GET", f"{DRIVE_API}/files", "search for folder",
            headers=headers, params={"q": query, "fields": "files(id, name)"},
        )
        files = read_json(response, "search for folder").get("files") or []

        if files:
            self.folder_id = files[0]["id"]
        else:
            response = send(
                self.client, "POST", f"{DRIVE_API}/files", "create folder",
                headers=headers, params={"fields": "id"},
                json={"name": FOLDER_NAME, "mimeType": FOLDER_MIME_TYPE},
            )
            self.folder_id = read_json(response, "create folder").get("id")
            if not self.folder_id:
                raise TransportError("Failed to create folder: no id returned")
            logger.info(f"Created Drive folder '{FOLDER_NAME}'")

        return self.folder_id

    def find_data_file(self, folder_id: str) -> Optional[str]:
        """Id of geni_data.json in the folder, or None."""
        query = f"name='{DATA_FILE_NAME}' and '{folder_id}' in parents and trashed=false"
        response = send(
            self.client, "GET", f"{DRIVE_API}/files", "search for file",
            headers=self._bearer(), params={"q": query, "fields": "files(id, name)"},
        )
        files = read_json(response, "search for file").get("files") or []
        return files[0]["id"] if files else None

    def push_bulk(self, payload: SyncPayload) -> None:
        """
        Overwrite geni_data.json with the given dataset, creating it if needed.

        Records already on Drive whose cloud_id is not in the payload are
        carried over, so records pushed by other devices survive the upload.

        Raises:
            NotAuthenticated: If not signed in
            RemoteRejected: If Drive rejects the upload
            TransportError: If the current document is unreadable
        """
        folder_id = self.ensure_root_folder()
        document = build_document(payload)
        file_id = self.find_data_file(folder_id)

        if file_id:
            document = carry_over(document, self._download_document(file_id))
        content = json.dumps(document, indent=2)

        if file_id:
            send(
                self.client, "PATCH", f"{DRIVE_UPLOAD_API}/files/{file_id}", "update file",
                headers={**self._bearer(), "Content-Type": "application/json"},
                params={"uploadType": "media"},
                content=content.encode("utf-8"),
            )
        else:
            boundary = uuid.uuid4().hex
            metadata = {"name": DATA_FILE_NAME, "mimeType": "application/json", "parents": [folder_id]}
            body = (
                f"--{boundary}\r\n"
                "Content-Type: application/json; charset=UTF-8\r\n\r\n"
                f"{json.dumps(metadata)}\r\n"
                f"--{boundary}\r\n"
                "Content-Type: application/json\r\n\r\n"
                f"{content}\r\n"
                f"--{boundary}--"
            )
            send(
                self.client, "POST", f"{DRIVE_UPLOAD_API}/files", "create file",
                headers={**self._bearer(), "Content-Type": f"multipart/related; boundary={boundary}"},
                params={"uploadType": "multipart"},
                content=body.encode("utf-8"),
            )

        logger.info(f"Uploaded {payload.count()} record(s) to {DATA_FILE_NAME}")

    def pull_bulk(self) -> SyncPayload:
        """
        Download geni_data.json.

        Returns:
            Parsed payload, empty if the file does not exist yet
        """
        folder_id = self.ensure_root_folder()
        file_id = self.find_data_file(folder_id)
        if not file_id:
            logger.info(f"No {DATA_FILE_NAME} on Drive yet")
            return SyncPayload()

        return parse_document(self._download_document(file_id))

    def _download_document(self, file_id: str) -> dict:
        response = send(
            self.client, "GET", f"{DRIVE_API}/files/{file_id}", "download file",
            headers=self._bearer(), params={"alt": "media"},
        )
        document = read_json(response, "download file")
        check_document(document)
        return document

    #endregion


#endregion
