"""HTTP client abstraction for push gateway delivery.

This module provides the aiohttp-backed implementation of the HTTPClient
Protocol. It owns a single ClientSession for its whole lifetime, so one
instance can be shared read-only by every dispatch running on the loop.
Retry policy lives in the gateway transports, not here.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Self

import aiohttp

from push_dispatch.types.models import Response


class AIOHTTPClient:
    """Async HTTP client implementing the HTTPClient Protocol using aiohttp.

    Example:
        >>> async with AIOHTTPClient() as client:
        ...     response = await client.post(
        ...         "https://push.example.com/send",
        ...         {"registration_ids": ["token"]},
        ...         timeout=10.0,
        ...         headers={"Authorization": "key=..."},
        ...     )
    """

    def __init__(
        self,
        *,
        default_timeout_seconds: float = 10.0,
        connection_limit: int = 100,
    ) -> None:
        """Initialize HTTP client.

        Args:
            default_timeout_seconds: Session-wide total timeout in seconds
            connection_limit: Maximum simultaneous connections held by the pool
        """
        self._default_timeout_seconds: float = default_timeout_seconds
        self._connection_limit: int = connection_limit
        self._session: aiohttp.ClientSession | None = None
        self._logger: logging.Logger = logging.getLogger(__name__)

    async def __aenter__(self) -> Self:
        timeout = aiohttp.ClientTimeout(total=self._default_timeout_seconds)
        connector = aiohttp.TCPConnector(limit=self._connection_limit)
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            json_serialize=json.dumps,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def post(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        timeout: float,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send HTTP POST request with timeout.

        Args:
            url: Target URL for the POST request
            payload: Request body data (will be JSON-encoded)
            timeout: Request timeout in seconds (keyword-only)
            headers: Extra request headers (keyword-only)

        Returns:
            HTTP response with status, body, and headers

        Raises:
            RuntimeError: If used outside of ``async with``
            TimeoutError: If request exceeds timeout
            ValueError: If URL is malformed
            aiohttp.ClientError: For connection issues
        """
        if self._session is None:
            msg = "HTTP client session not initialized. Use 'async with' context manager."
            raise RuntimeError(msg)

        self._logger.debug("Initiating POST request to %s", url)

        try:
            async with asyncio.timeout(timeout):
                async with self._session.post(
                    url,
                    json=dict(payload),
                    headers=dict(headers) if headers else None,
                ) as response:
                    body: Mapping[str, object]
                    try:
                        parsed: object = await response.json()  # pyright: ignore[reportAny]
                    except (aiohttp.ContentTypeError, ValueError):
                        parsed = None
                    # Error pages and plain-text bodies are surfaced as empty mappings
                    body = parsed if isinstance(parsed, dict) else {}  # pyright: ignore[reportUnknownVariableType]

                    return Response(
                        status=response.status,
                        body=body,
                        headers=dict(response.headers),
                    )
        except TimeoutError:
            self._logger.warning("Request to %s timed out after %.1fs", url, timeout)
            raise
        except aiohttp.InvalidURL as exc:
            self._logger.error("Invalid URL: %s", url)
            raise ValueError(f"Malformed URL: {url}") from exc
        except aiohttp.ClientError as exc:
            self._logger.warning("Client error for %s: %s", url, exc)
            raise


class DryRunHTTPClient:
    """HTTPClient that logs requests instead of sending them.

    Every request is answered with a synthetic gateway body reporting
    success for each entry of ``registration_ids``.
    """

    def __init__(self) -> None:
        self._logger: logging.Logger = logging.getLogger(__name__)
        self.requests: list[tuple[str, dict[str, object]]] = []

    async def post(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        timeout: float,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        body = dict(payload)
        self.requests.append((url, body))
        self._logger.info("[dry-run] POST %s (timeout=%.1fs): %s", url, timeout, json.dumps(body, default=str))

        recipients = body.get("registration_ids")
        count = len(recipients) if isinstance(recipients, list) else 0  # pyright: ignore[reportUnknownArgumentType]
        return Response(
            status=200,
            body={
                "multicast_id": 0,
                "success": count,
                "failure": 0,
                "canonical_ids": 0,
                "results": [{"message_id": f"dry-run:{index}"} for index in range(count)],
            },
            headers={},
        )
