"""Exception hierarchy for the GCM provider."""

from __future__ import annotations

from collections.abc import Mapping

__all__ = [
    "BatchTooLargeError",
    "GcmAuthenticationError",
    "GcmDispatchError",
    "GcmError",
    "GcmTransportError",
    "ResultCountMismatchError",
]


class GcmError(RuntimeError):
    """Base exception for GCM failures."""


class GcmTransportError(GcmError):
    """No usable gateway response was obtained, even after retries."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status: int | None = status
        self.retry_after: float | None = retry_after


class GcmAuthenticationError(GcmTransportError):
    """The gateway rejected the server API key (HTTP 401)."""

    def __init__(self, message: str = "GCM rejected the server API key") -> None:
        super().__init__(message, status=401)


class GcmDispatchError(GcmError):
    """Combined per-recipient failures of a single dispatch.

    The message holds one line per failed recipient; ``codes`` maps each of
    those device tokens to the gateway error code.
    """

    def __init__(self, lines: list[str], codes: Mapping[str, str]) -> None:
        super().__init__("\n".join(lines))
        self.lines: list[str] = list(lines)
        self.codes: dict[str, str] = dict(codes)


class ResultCountMismatchError(GcmError, ValueError):
    """Gateway results cannot be paired with the submitted recipients."""

    def __init__(self, *, recipients: int, results: int) -> None:
        super().__init__(
            f"GCM returned {results} result(s) for {recipients} recipient(s); "
            f"outcomes cannot be attributed"
        )
        self.recipients: int = recipients
        self.results: int = results


class BatchTooLargeError(GcmError, ValueError):
    """More device tokens than the gateway accepts in one request."""

    def __init__(self, *, recipients: int, limit: int) -> None:
        super().__init__(f"GCM accepts at most {limit} recipients per dispatch, got {recipients}")
        self.recipients: int = recipients
        self.limit: int = limit
