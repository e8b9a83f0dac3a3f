"""HTTP client for the Supacortex API."""

from __future__ import annotations

from typing import Any

import httpx


class ApiClient:
    """Thin JSON client. Raises httpx.HTTPStatusError on non-2xx responses."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.Client(timeout=30.0, transport=transport)

    def _headers(self) -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def get(self, path: str, params: dict | None = None) -> Any:
        """Make GET request."""
        res = self.client.get(f"{self.base_url}{path}", headers=self._headers(), params=params or {})
        res.raise_for_status()
        return res.json()

    def post(self, path: str, data: dict | None = None) -> Any:
        """Make POST request."""
        res = self.client.post(f"{self.base_url}{path}", json=data or {}, headers=self._headers())
        res.raise_for_status()
        return res.json()

    def close(self):
        """Close client."""
        self.client.close()


def error_message(exc: httpx.HTTPStatusError) -> str:
    """Pull the server's {"error": ...} message out of a failed response."""
    try:
        body = exc.response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"{exc.response.status_code} {exc.response.reason_phrase}"
