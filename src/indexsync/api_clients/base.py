"""Transport interface and the aiohttp implementation."""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import TransportError
from ..utils.logging import get_logger


@dataclass
class ApiRequest:
    """One request to the remote search service."""

    method: str
    url: str
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})

    def redacted_body(self) -> Dict[str, Any]:
        """Body with the auth token masked, for logging."""
        body = dict(self.body)
        if body.get("auth_token"):
            body["auth_token"] = "***"
        return body


@dataclass
class ApiResponse:
    """Status and decoded JSON body of a response."""

    status: int
    data: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BaseTransport(ABC):
    """Pluggable request/response primitive."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def send(self, request: ApiRequest) -> ApiResponse:
        """Send a request and wait for its response.

        Raises:
            TransportError: If the request could not be completed
        """
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class AiohttpTransport(BaseTransport):
    """Transport backed by a single aiohttp client session."""

    def __init__(self, verify_ssl: bool = False, timeout: float = 30.0):
        """Initialize transport.

        Args:
            verify_ssl: Verify TLS certificates of the remote service
            timeout: Total timeout per request in seconds
        """
        super().__init__()
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            connector = aiohttp.TCPConnector(ssl=self.verify_ssl)
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def send(self, request: ApiRequest) -> ApiResponse:
        session = self._get_session()

        try:
            async with session.request(
                request.method,
                request.url,
                data=json.dumps(request.body),
                headers=request.headers
            ) as response:
                text = await response.text()
        except asyncio.TimeoutError:
            raise TransportError(f"Request timed out after {self.timeout}s: {request.method} {request.url}")
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}")

        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            data = None

        self.logger.debug(
            "Request completed",
            method=request.method,
            url=request.url,
            status=response.status
        )

        return ApiResponse(status=response.status, data=data, text=text)

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
