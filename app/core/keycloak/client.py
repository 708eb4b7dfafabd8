"""Low-level HTTP client for Keycloak Admin API.

Handles bearer authentication, timeouts and error normalization.
Token acquisition is out of scope: the client is built with a pre-obtained token.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any

import requests

from .exceptions import ApiError, TransportError

REQUEST_TIMEOUT = 5

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API with a static bearer token.

    Features:
    - Per-call timeout
    - Centralized error handling (transport errors and non-2xx responses)
    - No retries; retry policy belongs to the caller

    Usage:
        client = KeycloakClient("http://keycloak:8080/auth", token)
        users = client.invoke("GET", "/admin/realms/demo/users", params={"search": "alice"})
    """

    def __init__(self, base_url: str, token: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize Keycloak client.

        Args:
            base_url: Admin base URL, including any context path (e.g. ``/auth``)
            token: Bearer token sent on every call
            timeout: Per-call timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def invoke(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Execute one authenticated request and return the parsed body.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API endpoint path (e.g., "/admin/realms/demo/users")
            params: Query parameters
            json: JSON payload

        Returns:
            Parsed JSON body, response text, or None for an empty body

        Raises:
            TransportError: On connection failure or timeout
            ApiError: On non-2xx response
        """
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self._token}"}

        try:
            resp = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.debug("%s %s -> transport error: %s", method, url, exc)
            raise TransportError(method, url, exc) from exc

        logger.debug("%s %s -> %s", method, url, resp.status_code)
        self._handle_error(method, resp)
        return self._parse_body(resp)

    def _handle_error(self, method: str, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            ApiError: If response status is outside the 2xx range
        """
        if not 200 <= resp.status_code < 300:
            raise ApiError(method, resp.status_code, resp.text, resp.url)

    @staticmethod
    def _parse_body(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text


def create_client_with_token(kc_url: str, token: str, timeout: float = REQUEST_TIMEOUT) -> KeycloakClient:
    """Create a KeycloakClient from a base URL and a pre-obtained token."""
    return KeycloakClient(kc_url, token, timeout=timeout)
