"""Type definitions and protocols for push-dispatch.

This package provides:
- Data models (dataclasses for responses and dispatch outcomes)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from push_dispatch.types.aliases import (
    DeviceToken,
    RecipientBatch,
    Recipients,
    SignalListener,
)
from push_dispatch.types.models import (
    DispatchOutcome,
    GatewayResponse,
    GatewayResult,
    RecipientOutcome,
    RecipientStatus,
    Response,
)
from push_dispatch.types.protocols import (
    HTTPClient,
    PushTransport,
    WirePayload,
)

__all__ = [
    # Type aliases
    "DeviceToken",
    "RecipientBatch",
    "Recipients",
    "SignalListener",
    # Data models
    "DispatchOutcome",
    "GatewayResponse",
    "GatewayResult",
    "RecipientOutcome",
    "RecipientStatus",
    "Response",
    # Protocols
    "HTTPClient",
    "PushTransport",
    "WirePayload",
]
