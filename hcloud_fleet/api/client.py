"""
Authenticated HTTP transport for the Hetzner Cloud API.
"""
from typing import Any, Dict, Optional
import logging

import httpx

from ..core.config import DEFAULT_API_URL
from ..core.exceptions import ConfigurationError, FetchError


logger = logging.getLogger(__name__)


def extract_error_message(payload: Any) -> Optional[str]:
    """Pull the provider-supplied error message out of a response body.

    Args:
        payload: Decoded JSON body

    Returns:
        ``error.message``, else a top-level ``message``, else None
    """
    if not isinstance(payload, dict):
        return None
    error = payload.get('error')
    if isinstance(error, dict) and error.get('message'):
        return str(error['message'])
    if payload.get('message'):
        return str(payload['message'])
    return None


class HCloudClient:
    """Thin wrapper around ``httpx.Client`` bound to one API token."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            token: Hetzner Cloud API token
            base_url: API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ConfigurationError: If the token is blank
        """
        if not token or not token.strip():
            raise ConfigurationError("Missing API token")

        self.base_url = base_url.rstrip('/')
        self._http = httpx.Client(
            base_url=self.base_url + '/',
            headers={
                'Authorization': f"Bearer {token.strip()}",
                'Content-Type': 'application/json',
            },
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "HCloudClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a path and decode its JSON object body.

        Args:
            path: Path relative to the base URL (e.g. 'servers')
            params: Optional query parameters

        Returns:
            Decoded JSON object

        Raises:
            FetchError: On transport errors, non-2xx status or malformed body
        """
        path = path.lstrip('/')
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {path} failed: {e}", details=str(e), path=path) from e

        if not response.is_success:
            message = None
            try:
                message = extract_error_message(response.json())
            except ValueError:
                pass
            reason = message or response.reason_phrase
            raise FetchError(
                f"Request to {path} failed with HTTP {response.status_code}: {reason}",
                details=response.text,
                status_code=response.status_code,
                path=path,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(f"Malformed JSON from {path}", details=str(e), path=path) from e

        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected payload from {path}: expected an object", path=path)

        return payload

    def post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        """POST a JSON body and return the raw response, whatever its status.

        Raises:
            httpx.HTTPError: On transport failures
        """
        return self._http.post(path.lstrip('/'), json=body)

    def get_pricing(self) -> Dict[str, Any]:
        """Fetch the raw price catalog document."""
        return self.get_json('pricing')

    def get_action(self, action_id: int) -> Dict[str, Any]:
        """Fetch an action by id."""
        return self.get_json(f"actions/{action_id}")

    def create_image(self, server_id: int, body: Dict[str, Any]) -> httpx.Response:
        """Submit a create_image action for a server."""
        logger.debug(f"POST servers/{server_id}/actions/create_image")
        return self.post(f"servers/{server_id}/actions/create_image", body)
