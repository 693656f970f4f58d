"""
OAuth2 authorization-code flow with PKCE for Google.
"""
#region Imports
import base64
import hashlib
import secrets
from dataclasses import dataclass
from enum import Enum

import httpx
#endregion


#region Constants
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# RFC 7636 allows 43-128 characters
VERIFIER_BYTES = 64
#endregion


#region Types


class OAuthState(str, Enum):
    """Where a provider is in the authorization flow."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    AUTHORIZED = "authorized"
    TOKEN_EXPIRED = "token_expired"


@dataclass(frozen=True)
class PkcePair:
    """A PKCE code verifier and its S256 challenge."""

    verifier: str
    challenge: str

    @classmethod
    def generate(cls) -> "PkcePair":
        verifier = secrets.token_urlsafe(VERIFIER_BYTES)
        return cls(verifier=verifier, challenge=s256_challenge(verifier))


#endregion


#region Functions


def s256_challenge(verifier: str) -> str:
    """BASE64URL(SHA256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def new_state() -> str:
    """Random anti-forgery state value."""
    return secrets.token_urlsafe(32)


def build_authorization_url(client_id: str, redirect_uri: str, state: str, challenge: str) -> str:
    """
    Build the consent-screen URL.

    Args:
        client_id: OAuth client id
        redirect_uri: Registered redirect URI
        state: Anti-forgery state echoed back on redirect
        challenge: PKCE S256 code challenge

    Returns:
        Absolute URL to open in a browser
    """
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(GOOGLE_SCOPES),
        "state": state,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
        # Needed for Google to issue a refresh token
        "access_type": "offline",
        "prompt": "consent",
    }
    return str(httpx.URL(GOOGLE_AUTH_URL, params=params))


#endregion
