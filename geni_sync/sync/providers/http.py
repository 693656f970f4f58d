"""
Shared httpx plumbing for the remote providers.

Every provider call goes through send(): transport failures become
TransportError, non-2xx responses become RemoteRejected carrying the body.
"""
#region Imports
import json
import logging
from typing import Any, Optional

import httpx

from geni_sync.sync.errors import RemoteRejected, TransportError
#endregion


#region Constants
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
#endregion


#region Functions


def build_client(http_client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT) -> httpx.Client:
    """
    Return the injected client or a new one.

    Args:
        http_client: Pre-configured client (tests pass one with a MockTransport)
        timeout: Timeout for a newly created client, in seconds

    Returns:
        httpx.Client
    """
    if http_client is not None:
        return http_client
    return httpx.Client(timeout=timeout, follow_redirects=True)


def send(client: httpx.Client, method: str, url: str, context: str, **kwargs) -> httpx.Response:
    """
    Perform one HTTP request.

    Args:
        client: httpx client
        method: HTTP method
        url: Absolute URL
        context: Short description used in error messages, e.g. "create collection"
        **kwargs: Passed to httpx.Client.request

    Returns:
        The successful response

    Raises:
        TransportError: On connection errors or timeouts
        RemoteRejected: On non-2xx status
    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.RequestError as e:
        raise TransportError(f"Failed to {context}: connection error to {url}: {e}") from e

    if not response.is_success:
        logger.debug(f"{method} {url} -> {response.status_code}")
        raise RemoteRejected(response.status_code, response.text, context=f"Failed to {context}")

    return response


def read_json(response: httpx.Response, context: str) -> Any:
    """
    Decode a JSON response body.

    Raises:
        TransportError: If the body is not valid JSON
    """
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise TransportError(
            f"Failed to {context}: response is not valid JSON: {response.text[:200]}"
        ) from e


#endregion
