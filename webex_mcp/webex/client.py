"""
Minimal Webex REST API client.

A ``WebexClient`` is bound to one Webex access token. In HTTP mode many
clients share a single ``httpx.AsyncClient`` owned by the client cache, so
constructing one is cheap and dropping one leaks no connections.
"""

import logging
from typing import Any

import httpx

from webex_mcp.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://webexapis.com/v1"


class WebexClient:
    """Token-bound facade over the Webex REST API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def access_token(self) -> str:
        return self._access_token

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Call a Webex API endpoint and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the API base URL (e.g., "/people/me")
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Raises:
            UpstreamError: Transport failure or non-2xx response
        """
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._access_token}"
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            msg = f"Webex API request {method} {path} failed"
            raise UpstreamError(msg) from e

        if response.status_code >= 400:
            logger.warning(
                "Webex API %s %s returned %d (trackingid=%s)",
                method,
                path,
                response.status_code,
                response.headers.get("trackingid", "-"),
            )
            msg = f"Webex API {method} {path} failed (status {response.status_code})"
            raise UpstreamError(msg, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_my_details(self) -> dict[str, Any]:
        """Profile of the authenticated user (GET /people/me)."""
        return await self.request("GET", "/people/me")

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()
