"""GCM HTTP transport.

Submits a wire message for a batch of registration tokens and returns the
gateway response with results aligned to the submitted batch.

Retry policy:
- network errors, timeouts and HTTP 5xx are retried with exponential
  backoff (``Retry-After`` wins when the gateway sends it)
- HTTP 401 and other 4xx responses are final
- recipients reported as ``Unavailable`` or ``InternalServerError`` are
  re-sent on their own; their new results are written back at their
  original positions
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Final

import aiohttp

from push_dispatch.providers.gcm.config import GcmConfig
from push_dispatch.providers.gcm.errors import (
    BatchTooLargeError,
    GcmAuthenticationError,
    GcmTransportError,
)
from push_dispatch.types import GatewayResponse, GatewayResult, HTTPClient, WirePayload

__all__ = ["MAX_RECIPIENTS", "RETRYABLE_RESULT_ERRORS", "GcmSender"]

MAX_RECIPIENTS: Final[int] = 1000
RETRYABLE_RESULT_ERRORS: Final[frozenset[str]] = frozenset({"Unavailable", "InternalServerError"})


@dataclass(slots=True)
class GcmSender:
    """Gateway client shared by every dispatch of a provider.

    Holds no per-send state; concurrent ``send`` calls are independent.
    """

    config: GcmConfig
    http_client: HTTPClient
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    async def send(
        self,
        message: WirePayload,
        recipients: Sequence[str],
        retries: int,
    ) -> GatewayResponse:
        """Send ``message`` to ``recipients`` with up to ``retries`` retries.

        Raises:
            ValueError: If the batch is empty or retries is negative
            BatchTooLargeError: If the batch exceeds MAX_RECIPIENTS
            GcmAuthenticationError: If the gateway rejects the API key
            GcmTransportError: If no usable response was obtained
        """
        if not recipients:
            msg = "At least one recipient is required"
            raise ValueError(msg)
        if len(recipients) > MAX_RECIPIENTS:
            raise BatchTooLargeError(recipients=len(recipients), limit=MAX_RECIPIENTS)
        if retries < 0:
            msg = "retries must be >= 0"
            raise ValueError(msg)

        results: list[GatewayResult | None] = [None] * len(recipients)
        pending: list[int] = list(range(len(recipients)))
        multicast_id: int | None = None
        first_response: GatewayResponse | None = None
        resent = False

        for attempt in range(retries + 1):
            batch = [recipients[index] for index in pending]
            try:
                response = await self._post(message, batch)
            except GcmAuthenticationError:
                raise
            except GcmTransportError as exc:
                if attempt >= retries or not _is_retryable(exc):
                    if all(result is None for result in results):
                        raise
                    # Earlier attempts produced results; keep them and report
                    # the still-pending recipients as unavailable
                    self._logger.warning(
                        "GCM retry failed, %d recipient(s) left unavailable: %s",
                        len(pending),
                        exc,
                    )
                    break
                delay = self._backoff_delay(attempt, exc)
                self._logger.warning(
                    "GCM request failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1,
                    retries + 1,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
                continue

            if len(response.results) != len(batch):
                # Cannot pair results with tokens; hand back as-is for the
                # reconciler to reject
                if first_response is None:
                    return response
                self._logger.warning(
                    "GCM returned %d result(s) for a retry batch of %d, giving up on retries",
                    len(response.results),
                    len(batch),
                )
                break

            if first_response is None:
                first_response = response
                if response.failure <= 0:
                    # Gateway reports no failures; nothing to re-send
                    return response
            else:
                resent = True

            multicast_id = response.multicast_id if multicast_id is None else multicast_id
            still_pending: list[int] = []
            for index, result in zip(pending, response.results, strict=True):
                results[index] = result
                if result.error in RETRYABLE_RESULT_ERRORS:
                    still_pending.append(index)
            pending = still_pending

            if not pending:
                break
            if attempt < retries:
                delay = self._backoff_delay(attempt)
                self._logger.info(
                    "Re-sending to %d unavailable recipient(s) in %.1fs",
                    len(pending),
                    delay,
                )
                await asyncio.sleep(delay)

        if not resent and first_response is not None:
            # Counters are recomputed only once re-sent results were merged
            return first_response

        merged = [
            result if result is not None else GatewayResult(error="Unavailable")
            for result in results
        ]
        return GatewayResponse.from_results(merged, multicast_id=multicast_id)

    async def _post(self, message: WirePayload, batch: Sequence[str]) -> GatewayResponse:
        """Perform one HTTP call and translate failures to transport errors."""
        headers = {
            "Authorization": self.config.authorization_header,
            "Content-Type": "application/json",
        }
        try:
            response = await self.http_client.post(
                self.config.endpoint,
                message.to_payload(batch),
                timeout=self.config.request_timeout,
                headers=headers,
            )
        except TimeoutError as exc:
            msg = f"GCM request timed out after {self.config.request_timeout:.1f}s"
            raise GcmTransportError(msg) from exc
        except (aiohttp.ClientError, OSError) as exc:
            msg = f"GCM connection failed: {exc}"
            raise GcmTransportError(msg) from exc

        if response.status == 200:
            return GatewayResponse.from_body(response.body)
        if response.status == 401:
            raise GcmAuthenticationError()

        raise GcmTransportError(
            f"GCM responded with HTTP {response.status}",
            status=response.status,
            retry_after=_parse_retry_after(response.headers),
        )

    def _backoff_delay(self, attempt: int, exc: GcmTransportError | None = None) -> float:
        """Exponential backoff constrained by the configured maximum."""
        if exc is not None and exc.retry_after is not None:
            return min(exc.retry_after, self.config.max_backoff_seconds)
        backoff = self.config.backoff_base_seconds * (2.0**attempt)
        return min(backoff, self.config.max_backoff_seconds)


def _is_retryable(exc: GcmTransportError) -> bool:
    """Network failures (no status) and 5xx are retryable; 4xx are not."""
    return exc.status is None or exc.status >= 500


def _parse_retry_after(headers: Mapping[str, str]) -> float | None:
    value = headers.get("Retry-After") or headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
