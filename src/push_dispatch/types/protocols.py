"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish
contracts between the dispatcher, its transport and the HTTP layer
without requiring inheritance.
"""

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from push_dispatch.types.models import GatewayResponse, Response


class WirePayload(Protocol):
    """Anything that can render itself as a gateway request body."""

    def to_payload(self, recipients: Sequence[str]) -> dict[str, object]:
        """Render the request body addressed to ``recipients``."""
        ...


@runtime_checkable
class PushTransport(Protocol):
    """Protocol for gateway transports.

    A transport submits one wire message for a batch of recipients and
    returns the parsed gateway response, retrying transient failures
    within the given budget.
    """

    async def send(
        self,
        message: WirePayload,
        recipients: Sequence[str],
        retries: int,
    ) -> GatewayResponse:
        """Submit ``message`` to ``recipients``.

        Args:
            message: Wire message to deliver
            recipients: Ordered batch of device tokens
            retries: Number of retries after the first attempt

        Returns:
            Gateway response whose results are index-aligned with
            ``recipients``

        Raises:
            Exception: If no usable response was obtained
        """
        ...


class HTTPClient(Protocol):
    """Protocol for HTTP client operations.

    Defines the interface for making HTTP requests with timeout support.
    """

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
            payload: Request body data
            timeout: Request timeout in seconds (keyword-only)
            headers: Extra request headers (keyword-only)

        Returns:
            HTTP response with status, body, and headers
        """
        ...
