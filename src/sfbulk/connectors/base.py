"""Base class for httpx-backed Salesforce connectors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from sfbulk.core.config import SalesforceConfig
from sfbulk.core.exceptions import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    ServerError,
)

logger = structlog.get_logger(__name__)


class Connector(ABC):
    """Owns one :class:`httpx.AsyncClient` for the lifetime of a node run.

    Usage::

        async with SalesforceConnector(config) as sf:
            records = await sf.query_all("SELECT Id FROM Account")
    """

    def __init__(
        self,
        config: SalesforceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> SalesforceConfig:
        return self._config

    async def connect(self) -> None:
        """Open the underlying HTTP client."""
        if not self._config.instance_url:
            raise ConfigurationError("instance_url is required to connect")
        self._client = httpx.AsyncClient(
            base_url=self._config.instance_url,
            headers=self._build_headers(),
            timeout=self._config.timeout,
            transport=self._transport,
        )
        logger.info(
            "connector.connected",
            connector=type(self).__name__,
            base_url=self._config.instance_url,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("connector.closed", connector=type(self).__name__)

    @abstractmethod
    def _build_headers(self) -> dict[str, str]:
        """Build the default headers for every request."""
        ...

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            raise RuntimeError(
                f"{type(self).__name__} is not connected. Call connect() first."
            )
        return self._client

    async def _send(self, request: httpx.Request) -> httpx.Response:
        """Send *request*, translating httpx failures into sfbulk errors."""
        client = self._ensure_connected()
        try:
            response = await client.send(request)
        except httpx.TimeoutException as exc:
            raise APITimeoutError(
                f"{request.method} {request.url.path} timed out",
                details={"method": request.method, "url": str(request.url)},
            ) from exc
        except httpx.TransportError as exc:
            raise APIConnectionError(
                f"{request.method} {request.url.path} failed: {exc}",
                details={"method": request.method, "url": str(request.url)},
            ) from exc

        if response.is_error:
            raise _error_from_response(request, response)
        return response

    async def __aenter__(self) -> Connector:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


def _error_from_response(request: httpx.Request, response: httpx.Response) -> APIError:
    """Build the matching :class:`APIError` subclass for a non-2xx response.

    Salesforce error bodies are a JSON list of ``{"message", "errorCode"}``
    objects; the first entry supplies the message and code.
    """
    status = response.status_code
    message = response.reason_phrase or f"HTTP {status}"
    code: str | None = None
    body: Any = response.text
    try:
        body = response.json()
    except ValueError:
        pass
    first = body[0] if isinstance(body, list) and body else body
    if isinstance(first, dict):
        message = str(first.get("message") or message)
        code = first.get("errorCode")

    details = {"method": request.method, "path": request.url.path, "body": body}
    text = f"{request.method} {request.url.path} returned {status}: {message}"

    if status in (401, 403):
        return AuthenticationError(text, code, details, status_code=status)
    if status == 429:
        retry_after: float | None = None
        header = response.headers.get("Retry-After")
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None
        return RateLimitError(
            text, code, details, status_code=status, retry_after=retry_after
        )
    if status >= 500:
        return ServerError(text, code, details, status_code=status)
    return APIError(text, code, details, status_code=status)
