"""Shared HTTP plumbing for the REST-backed adapters."""

import logging
from typing import Any, Dict, Optional, Type

import requests

from ..core.errors import (
    AuthExpired,
    NotFound,
    PlaylistNotFound,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
)
from .base import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def error_detail(response: requests.Response) -> str:
    """Extract the API's error message from a response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return str(body)[:200]


class HttpAdapter(ProviderAdapter):
    """Adapter talking to a JSON REST API with a bearer token."""

    api_base = ""
    service_name = ""

    def __init__(
        self,
        playlist_id: str,
        access_token: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize adapter.

        Args:
            playlist_id: Provider-side playlist id
            access_token: OAuth bearer token
            session: HTTP session, a new one by default
            timeout: Per-request timeout in seconds
        """
        super().__init__(playlist_id)
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        not_found: Type[NotFound] = PlaylistNotFound,
    ) -> Any:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path below ``api_base`` or an absolute URL (paging links)
            params: Query parameters
            json: JSON body
            not_found: Exception raised on 404

        Returns:
            Decoded body, None for empty responses
        """
        url = path if path.startswith("http") else f"{self.api_base}{path}"
        logger.debug("%s %s %s", method, url, params or "")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ProviderUnavailable(f"{self.service_name} request timed out") from e
        except requests.ConnectionError as e:
            raise ProviderUnavailable(f"Cannot reach {self.service_name}: {e}") from e

        self._raise_for_status(response, not_found)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _raise_for_status(
        self, response: requests.Response, not_found: Type[NotFound]
    ) -> None:
        """Map an HTTP error status onto the provider error taxonomy."""
        status = response.status_code
        if status < 400:
            return
        message = f"{self.service_name} API error {status}: {error_detail(response)}"
        if status == 401:
            raise AuthExpired(message)
        if status == 404:
            raise not_found(message)
        if status == 429:
            raise RateLimited(
                message, retry_after=parse_retry_after(response.headers.get("Retry-After"))
            )
        if status == 409 or status >= 500:
            raise ProviderUnavailable(message)
        raise ProviderError(message)
