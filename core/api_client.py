"""
Signage API Client

HTTP access to the upstream signage API for the player endpoints:
display lookup by device key and heartbeat.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from models.request_models import HeartbeatRequest


class ApiUnreachableError(Exception):
    """The API gave no response at all (connection failure or timeout)"""


@dataclass
class ApiSession:
    """Session context handed to every collaborator that talks to the API"""

    api_url: str
    device_key: str
    token: Optional[str] = None
    fetch_timeout: float = 10.0
    heartbeat_timeout: float = 5.0

    def __post_init__(self):
        self.api_url = self.api_url.rstrip("/")

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


@dataclass
class ApiResponse:
    status: int
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error_message(self) -> Optional[str]:
        """Server-provided error text, if the body carried one"""
        for key in ("error", "message", "detail"):
            value = self.payload.get(key)
            if isinstance(value, str) and value:
                return value
        return None


class SignageApiClient:
    """aiohttp client bound to one ApiSession"""

    def __init__(self, session: ApiSession):
        self.session = session
        self._http: Optional[aiohttp.ClientSession] = None

    @property
    def device_key(self) -> str:
        return self.session.device_key

    def resolve_url(self, url: str) -> str:
        """Absolute and data: URLs pass through, anything else is relative to the API"""
        if url.startswith("http") or url.startswith("data:"):
            return url
        return f"{self.session.api_url}{url}"

    def _client(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(headers=self.session.headers())
        return self._http

    async def get_display(self) -> ApiResponse:
        """
        Fetch the display assigned to this device key.

        Returns:
            ApiResponse with the HTTP status and decoded JSON body

        Raises:
            ApiUnreachableError: If the API could not be reached
        """
        url = f"{self.session.api_url}/api/displays/player/{self.device_key}"
        timeout = aiohttp.ClientTimeout(total=self.session.fetch_timeout)
        try:
            async with self._client().get(url, timeout=timeout) as resp:
                payload = await self._read_json(resp)
                return ApiResponse(status=resp.status, payload=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiUnreachableError(f"{url}: {e!r}") from e

    async def send_heartbeat(self) -> ApiResponse:
        """
        Report this device as alive.

        Raises:
            ApiUnreachableError: If the API could not be reached
        """
        url = f"{self.session.api_url}/api/displays/heartbeat"
        body = HeartbeatRequest(device_key=self.device_key).model_dump(by_alias=True)
        timeout = aiohttp.ClientTimeout(total=self.session.heartbeat_timeout)
        try:
            async with self._client().post(url, json=body, timeout=timeout) as resp:
                return ApiResponse(status=resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiUnreachableError(f"{url}: {e!r}") from e

    async def close(self):
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None

    @staticmethod
    async def _read_json(resp: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            data = await resp.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            logging.debug(f"Non-JSON response body from {resp.url} ({resp.status})")
            return {}
        return data if isinstance(data, dict) else {}
