"""
HTTP client for the Houston backend API.

The backend owns the moderation rules and receives the moderation logs and
punishment events produced by the bot. Every request carries the shared
``x-api-key`` header. A single ``aiohttp.ClientSession`` is created lazily
and reused until :meth:`BackendClient.close` is called.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Mapping

import aiohttp

from houston.util.logger import get_logger

logger = get_logger("backend_client")

RULES_PATH = "/api/moderation/internal/rules"
LOGS_PATH = "/api/moderation/internal/logs"
BANS_PATH = "/api/moderation/internal/bans"
TIMEOUTS_PATH = "/api/moderation/internal/timeouts"

# Longest response body kept on an error for diagnostics
ERROR_BODY_LIMIT = 500


class BackendError(Exception):
    """Raised when a backend request fails at the transport or HTTP level.

    Attributes:
        status (int | None): HTTP status, None when no response was received.
        body (str | None): Response body (truncated), if any.
        url (str): The URL that was requested.
    """

    def __init__(self, message: str, *, url: str, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.body = body

    def to_log_dict(self) -> Dict[str, Any]:
        return {"message": str(self), "status": self.status, "body": self.body, "url": self.url}


class BackendClient:
    """
    Thin async wrapper around the backend's internal moderation endpoints.

    Args:
        base_url (str): Backend base URL, e.g. ``http://localhost:3001``.
        api_key (str): Shared key sent as ``x-api-key``.
        timeout_seconds (float): Default total timeout per request.
    """

    def __init__(self, base_url: str, api_key: str, *, timeout_seconds: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or ""
        self.timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    @property
    def is_configured(self) -> bool:
        """True when an API key is available; without it the backend rejects every call."""
        return bool(self.api_key)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"x-api-key": self.api_key})
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> Any:
        """Perform one request and return the decoded JSON body (or None when empty).

        Raises:
            BackendError: On connection errors, timeouts and non-2xx responses.
        """
        url = self.url_for(path)
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=timeout_seconds or self.timeout_seconds)
        try:
            async with session.request(method, url, params=params, json=payload, timeout=timeout) as response:
                text = await response.text()
                if response.status >= 400:
                    raise BackendError(
                        f"Backend responded with HTTP {response.status}",
                        url=url,
                        status=response.status,
                        body=text[:ERROR_BODY_LIMIT] or None,
                    )
        except asyncio.TimeoutError:
            raise BackendError("Request to backend timed out", url=url) from None
        except aiohttp.ClientError as exc:
            raise BackendError(str(exc) or type(exc).__name__, url=url) from exc

        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def fetch_rules(self, *, timeout_seconds: float | None = None) -> List[Dict[str, Any]]:
        """Fetch the enabled moderation rules.

        Returns:
            List[Dict[str, Any]]: The raw rule objects from the ``rules`` field.
        """
        data = await self._request("GET", RULES_PATH, params={"enabled": "true"}, timeout_seconds=timeout_seconds)
        rules = data.get("rules") if isinstance(data, dict) else None
        if rules is None:
            return []
        if not isinstance(rules, list):
            raise BackendError("Backend returned a non-array rules field", url=self.url_for(RULES_PATH))
        return rules

    async def post_log(self, payload: Mapping[str, Any]) -> Any:
        """Submit a moderation report."""
        return await self._request("POST", LOGS_PATH, payload=payload)

    async def post_ban(self, payload: Mapping[str, Any], *, timeout_seconds: float | None = None) -> Any:
        return await self._request("POST", BANS_PATH, payload=payload, timeout_seconds=timeout_seconds)

    async def post_timeout(self, payload: Mapping[str, Any], *, timeout_seconds: float | None = None) -> Any:
        return await self._request("POST", TIMEOUTS_PATH, payload=payload, timeout_seconds=timeout_seconds)

    async def close(self) -> None:
        """Close the HTTP session if one was opened."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
