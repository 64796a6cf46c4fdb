"""Reconciliation of GCM multicast responses.

Walks the per-recipient results of a gateway response in lockstep with
the submitted tokens and sorts every recipient into success, transient
error or permanent invalidation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from push_dispatch.providers.gcm.errors import GcmDispatchError, ResultCountMismatchError
from push_dispatch.types import (
    DispatchOutcome,
    GatewayResponse,
    RecipientOutcome,
    RecipientStatus,
)

__all__ = ["INVALIDATION_ERRORS", "classify_error", "format_error_line", "reconcile"]

# Tokens reported with these codes will never be deliverable again
INVALIDATION_ERRORS: Final[frozenset[str]] = frozenset({"NotRegistered", "InvalidRegistration"})

_PROVIDER_LABEL: Final[str] = "GCM"


def classify_error(code: str | None) -> RecipientStatus:
    """Map a per-recipient error code to a recipient status."""
    if code in INVALIDATION_ERRORS:
        return RecipientStatus.INVALIDATED
    if code:
        return RecipientStatus.TRANSIENT_ERROR
    return RecipientStatus.SUCCESS


def format_error_line(code: str, token: str) -> str:
    """Human-readable line describing one failed recipient."""
    return f"{_PROVIDER_LABEL} error code: {code or 'Unknown'}, deviceToken: {token}"


def reconcile(response: GatewayResponse, recipients: Sequence[str]) -> DispatchOutcome:
    """Turn a gateway response into a dispatch outcome.

    Only responses reporting ``failure > 0`` with a ``results`` array are
    walked; anything else is a silent success.

    Args:
        response: Parsed gateway response
        recipients: Tokens in the order they were submitted

    Returns:
        Outcome listing invalidated tokens and the combined error, if any

    Raises:
        ResultCountMismatchError: If results and recipients differ in length
    """
    if response.failure <= 0:
        delivered = tuple(
            RecipientOutcome(token=token, status=RecipientStatus.SUCCESS) for token in recipients
        )
        return DispatchOutcome(outcomes=delivered, response=response)
    if not response.results:
        # Failures reported without detail cannot be attributed to tokens
        return DispatchOutcome(response=response)

    if len(response.results) != len(recipients):
        raise ResultCountMismatchError(
            recipients=len(recipients),
            results=len(response.results),
        )

    invalidated: list[str] = []
    lines: list[str] = []
    codes: dict[str, str] = {}
    outcomes: list[RecipientOutcome] = []

    for token, result in zip(recipients, response.results, strict=True):
        code = result.error
        status = classify_error(code)
        outcomes.append(RecipientOutcome(token=token, status=status, error_code=code))
        if status is RecipientStatus.INVALIDATED:
            invalidated.append(token)
        elif status is RecipientStatus.TRANSIENT_ERROR and code:
            lines.append(format_error_line(code, token))
            codes[token] = code

    error = GcmDispatchError(lines, codes) if lines else None
    return DispatchOutcome(
        invalidated=tuple(invalidated),
        error=error,
        outcomes=tuple(outcomes),
        response=response,
    )
