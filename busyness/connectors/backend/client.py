"""Busyness — Backend API Client.

Thin async wrapper over httpx. Retries are deliberately left to whoever
schedules fetch cycles; a failed request fails the cycle.
"""

import time
from typing import Any, Dict, Optional

import httpx

from busyness.config import settings
from busyness.core.logging import get_logger

logger = get_logger("backend.client")


class BackendAPIError(Exception):
    """Raised when a backend request fails in transport."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class EnvelopeError(BackendAPIError):
    """Raised when a response is not ``success: true`` or has the wrong shape."""


class BusynessClient:
    """Async HTTP client for the busyness backend."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "BusynessClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get_json(self, url: str) -> Dict[str, Any]:
        """GET ``url`` and decode a JSON object body."""
        client = await self._get_client()
        started = time.monotonic()

        try:
            resp = await client.get(url)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Backend returned HTTP {e.response.status_code}",
                extra={"endpoint": url, "status_code": e.response.status_code},
            )
            raise BackendAPIError(
                f"Backend HTTP error {e.response.status_code}",
                e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Backend request failed: {e}", extra={"endpoint": url})
            raise BackendAPIError(f"Backend request failed: {e}") from e
        except ValueError as e:
            raise EnvelopeError(f"Backend returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise EnvelopeError("Backend response is not a JSON object")

        logger.debug(
            "Backend request complete",
            extra={
                "endpoint": url,
                "status_code": resp.status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return body
