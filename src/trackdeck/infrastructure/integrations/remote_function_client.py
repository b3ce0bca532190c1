"""HTTP client for the remote platform functions.

Hey future me - every platform lookup (Spotify, Deezer, SoundCloud, YouTube) is a
small serverless function living behind ONE base URL:

    POST <functions_url>/<function name>   body = JSON payload

The functions answer with the platform payload as JSON, or {"error": "..."}.
invoke() NEVER raises for remote problems - it returns FunctionResult with
error set, and the platform adapters decide what an error means for them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from trackdeck.config import PlatformSettings

logger = logging.getLogger(__name__)


@dataclass
class FunctionResult:
    """Outcome of one remote function call.

    data may be None or empty without an error: the platform simply had nothing.
    """

    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RemoteFunctionClient:
    """Invokes named remote functions over HTTP."""

    def __init__(
        self,
        settings: PlatformSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Function endpoint configuration
            transport: Optional transport override (tests pass httpx.MockTransport)
        """
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._settings.api_key:
                headers["Authorization"] = f"Bearer {self._settings.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._settings.functions_url.rstrip("/"),
                headers=headers,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def invoke(self, function_name: str, payload: dict[str, Any]) -> FunctionResult:
        """Call a remote function.

        Args:
            function_name: e.g. "get-spotify-artist-info"
            payload: JSON body

        Returns:
            FunctionResult with data, or with error on transport failure,
            non-2xx status or an {"error": ...} body
        """
        client = await self._get_client()
        try:
            response = await client.post(f"/{function_name}", json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"Remote function {function_name} unreachable: {e}")
            return FunctionResult(error=f"transport error: {e}")

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                f"Remote function {function_name} returned HTTP {response.status_code}"
            )
            return FunctionResult(error=f"HTTP {response.status_code}: {response.text[:200]}")

        if not response.content:
            return FunctionResult(data=None)

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Remote function {function_name} returned invalid JSON")
            return FunctionResult(error="invalid JSON response")

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                error = error.get("message") or str(error)
            return FunctionResult(error=str(error))

        return FunctionResult(data=data)
