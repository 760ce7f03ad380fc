"""Base adapter interface for remote collaborators."""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class BaseAdapter(ABC):
    """A remote service DaySense talks to: document store, identity or
    inference backend.

    Subclasses implement connect(), disconnect() and health_check().
    ``connect`` returning False means the service is not configured, which
    callers treat as "run without it" rather than as an error.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._connected = False
        self.logger = logger.bind(adapter=name)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """Prepare the client. False when required settings are missing."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the client."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the service answered (or could answer) a request."""

    async def __aenter__(self) -> "BaseAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()


class HTTPAdapter(BaseAdapter):
    """Adapter speaking JSON over HTTPS with a single ``httpx.AsyncClient``.

    Requests are sent once; there is no retry or backoff. Pass a custom
    ``transport`` to route requests somewhere other than the network.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _open_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._connected = False
        self.logger.debug("Disconnected")

    async def health_check(self) -> bool:
        return self._client is not None

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: type["AdapterError"] | None = None,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            ConnectionError: When the service cannot be reached.
            AuthenticationError: On 401/403 responses.
            FetchError or ``error_cls``: On any other transport or HTTP error.
        """
        error_cls = error_cls or FetchError
        client = self._open_client()

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            self.logger.error("Service unreachable", method=method, path=path, error=str(e))
            raise ConnectionError(self.name, f"{method} {path} failed: {e}") from e
        except httpx.HTTPError as e:
            self.logger.error("Request failed", method=method, path=path, error=str(e))
            raise error_cls(self.name, f"{method} {path} failed: {e}") from e

        if allow_not_found and response.status_code == 404:
            return None
        if response.status_code in (401, 403):
            raise AuthenticationError(
                self.name, f"{method} {path} rejected: {response.status_code}"
            )
        if response.is_error:
            self.logger.error(
                "Request returned an error",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise error_cls(
                self.name,
                f"{method} {path} failed: {response.status_code} {response.reason_phrase}",
            )

        if not response.content:
            return None
        return response.json()


class AdapterError(Exception):
    """Base exception for adapter errors."""

    def __init__(self, adapter_name: str, message: str) -> None:
        self.adapter_name = adapter_name
        self.message = message
        super().__init__(f"[{adapter_name}] {message}")


class ConnectionError(AdapterError):
    """Raised when adapter fails to connect."""

    pass


class AuthenticationError(AdapterError):
    """Raised when authentication fails."""

    pass


class FetchError(AdapterError):
    """Raised when a read from the remote service fails."""

    pass


class WriteError(AdapterError):
    """Raised when a write to the remote service fails."""

    pass
