"""Data models for push-dispatch.

This module defines the dataclasses exchanged between the transport,
the reconciler and the caller of a dispatch.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Self


@dataclass(slots=True)
class Response:
    """HTTP response.

    Represents an HTTP response with status code, body, and headers.
    """

    status: int
    body: Mapping[str, object]
    headers: Mapping[str, str]


@dataclass(slots=True, frozen=True)
class GatewayResult:
    """Per-recipient entry of a gateway response.

    Entries are positionally correlated with the recipient batch that was
    submitted: result ``i`` belongs to recipient ``i``.
    """

    message_id: str | None = None
    registration_id: str | None = None
    error: str | None = None

    @classmethod
    def from_body(cls, body: object) -> Self:
        """Build a result from one element of the gateway ``results`` array.

        Anything that is not a mapping yields an empty (successful) result.
        """
        if not isinstance(body, Mapping):
            return cls()
        message_id = body.get("message_id")
        registration_id = body.get("registration_id")
        error = body.get("error")
        return cls(
            message_id=str(message_id) if message_id is not None else None,
            registration_id=str(registration_id) if registration_id is not None else None,
            error=str(error) if error else None,
        )


@dataclass(slots=True, frozen=True)
class GatewayResponse:
    """Parsed multicast response returned by the push gateway."""

    multicast_id: int | None = None
    success: int = 0
    failure: int = 0
    canonical_ids: int = 0
    results: tuple[GatewayResult, ...] = ()

    @classmethod
    def from_body(cls, body: Mapping[str, object]) -> Self:
        """Parse the JSON body of a successful gateway call.

        Missing counters default to zero and a missing ``results`` array
        yields an empty tuple.
        """
        raw_results = body.get("results")
        results: tuple[GatewayResult, ...] = ()
        if isinstance(raw_results, Sequence) and not isinstance(raw_results, str):
            results = tuple(GatewayResult.from_body(item) for item in raw_results)
        return cls(
            multicast_id=_coerce_int(body.get("multicast_id")),
            success=_coerce_int(body.get("success")) or 0,
            failure=_coerce_int(body.get("failure")) or 0,
            canonical_ids=_coerce_int(body.get("canonical_ids")) or 0,
            results=results,
        )

    @classmethod
    def from_results(
        cls,
        results: Sequence[GatewayResult],
        *,
        multicast_id: int | None = None,
    ) -> Self:
        """Build a response whose counters are derived from ``results``."""
        failure = sum(1 for result in results if result.error)
        canonical = sum(1 for result in results if result.registration_id)
        return cls(
            multicast_id=multicast_id,
            success=len(results) - failure,
            failure=failure,
            canonical_ids=canonical,
            results=tuple(results),
        )


def _coerce_int(value: object) -> int | None:
    """Convert gateway counters to int when feasible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


class RecipientStatus(Enum):
    """Classification of a single recipient after reconciliation."""

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    INVALIDATED = "invalidated"


@dataclass(slots=True, frozen=True)
class RecipientOutcome:
    """Reconciled outcome for one device token."""

    token: str
    status: RecipientStatus
    error_code: str | None = None


@dataclass(slots=True, frozen=True)
class DispatchOutcome:
    """Result of one dispatch call.

    ``invalidated`` lists tokens the gateway reported as permanently gone,
    ``error`` carries the combined failure (transport or per-recipient) if
    any, and ``outcomes`` holds the per-recipient classification in batch
    order. ``outcomes`` is empty when no response was reconciled.
    """

    invalidated: tuple[str, ...] = ()
    error: Exception | None = None
    outcomes: tuple[RecipientOutcome, ...] = ()
    response: GatewayResponse | None = None

    @property
    def ok(self) -> bool:
        """True when nothing was invalidated and no error was recorded."""
        return self.error is None and not self.invalidated
