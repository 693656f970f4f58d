"""
Error types raised by the sync engine.

Provider errors propagate unchanged in kind through the sync client and the
orchestrator. Messages are written to be shown to the user verbatim.
"""
#region Imports
from typing import Optional
#endregion


#region Exceptions


class SyncError(Exception):
    """Base class for every sync failure."""


class ConfigurationError(SyncError, ValueError):
    """Provider settings are missing or invalid."""


class NotAuthenticated(SyncError):
    """The provider has no session token for the requested operation."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthenticationFailed(SyncError):
    """Bad credentials, a registration conflict or a rejected OAuth exchange."""


class RemoteRejected(SyncError):
    """
    The remote answered with a non-success status.

    Attributes:
        status: HTTP status code
        body: Response body text, kept for diagnostics
    """

    def __init__(self, status: int, body: str, context: Optional[str] = None):
        self.status = status
        self.body = body
        self.context = context
        prefix = f"{context}: " if context else ""
        super().__init__(f"{prefix}remote rejected request ({status}): {body}")


class UnsupportedOperation(SyncError):
    """The active provider does not offer this capability."""


class SchemaMissing(SyncError):
    """
    The relational provider has no tables and cannot create them itself.

    Attributes:
        ddl: The exact SQL to run by hand
    """

    def __init__(self, message: str, ddl: str):
        self.ddl = ddl
        super().__init__(message)


class TransportError(SyncError):
    """Network failure or an unreadable response."""


class NoRefreshToken(SyncError):
    """A token refresh was requested but no refresh token was ever issued."""

    def __init__(self, message: str = "No refresh token available"):
        super().__init__(message)


class MergeError(SyncError):
    """
    One or more pulled records could not be merged.

    The remaining records were merged; failures lists (entity, cloud_id,
    error) for the ones that were not.
    """

    def __init__(self, failures: list):
        self.failures = failures
        details = "; ".join(
            f"{entity} {cloud_id}: {error}" for entity, cloud_id, error in failures
        )
        super().__init__(f"Failed to merge {len(failures)} record(s): {details}")


#endregion
