"""Base class for VSAC protocol adapters.

Both adapters (SVS and FHIR) extend this ABC. The shared ``httpx.AsyncClient``,
HTTP status mapping and optional transport retry (tenacity) live here, so
each adapter only implements ``fetch``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vsac_service.cache import ResponseCache
from vsac_service.config import VsacConfig
from vsac_service.errors import AuthenticationError, NetworkError
from vsac_service.models import Credential, FetchResult

logger = logging.getLogger(__name__)


class _TransientError(Exception):
    """Raised internally on 5xx / 429 so tenacity can retry."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"Transient error {response.status_code}")


def map_http_error(response: httpx.Response) -> NetworkError:
    """Map a non-success response to ``NetworkError`` (or its auth subclass)."""
    status = response.status_code
    body = response.text[:500]
    message = f"{response.request.method} {response.request.url.path} returned {status}"
    if status in (401, 403):
        return AuthenticationError(message, status_code=status, response_body=body)
    return NetworkError(message, status_code=status, response_body=body)


def version_label(version: str | None) -> str:
    return f" version {version}" if version is not None else ""


class BaseValueSetAdapter(ABC):
    """Abstract base class for async VSAC adapters.

    Provides:
    - ``httpx.AsyncClient`` with the configured timeout, or an injected client.
    - ``_request`` mapping failures to ``NetworkError`` with optional retry
      (``VsacConfig.max_attempts``; the default of 1 means no retry).

    Args:
        config: Endpoint, timeout and retry settings.
        client: Pre-built HTTP client (tests inject a ``MockTransport``).
    """

    #: Human-readable protocol name used in logs.
    name: str = "base"

    def __init__(
        self,
        config: VsacConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or VsacConfig()
        self._http = client or httpx.AsyncClient(timeout=self.config.timeout)

    async def __aenter__(self) -> "BaseValueSetAdapter":
        return self

    async def __aexit__(self, _exc_type: object, _exc: object, _tb: object) -> None:
        await self.aclose()

    # -- Abstract interface --------------------------------------------------

    @abstractmethod
    async def fetch(
        self,
        credential: Credential,
        oid: str,
        version: str | None = None,
        cache: ResponseCache | None = None,
    ) -> FetchResult | None:
        """Download and normalize one value set.

        Args:
            credential: UMLS credential.
            oid: Value set OID.
            version: Optional value set version.
            cache: When given, the raw response is written to it.

        Returns:
            The server-confirmed value set, or None when the server returned
            nothing to store.

        Raises:
            NetworkError: Non-success HTTP status or transport failure.
            ProtocolError: Payload present but unusable.
            PersistenceError: Raw response could not be cached.
        """
        ...

    async def end_batch(self) -> None:
        """Drop any state shared by the calls of one batch."""

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- HTTP ----------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, _TransientError)),
            stop=stop_after_attempt(max(1, self.config.max_attempts)),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._http.request(method, url, **kwargs)
                    if response.status_code >= 500 or response.status_code == 429:
                        raise _TransientError(response)
        except _TransientError as exc:
            raise map_http_error(exc.response) from None
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {url} failed: {exc!r}") from exc

        if not response.is_success:
            raise map_http_error(response)
        return response
