"""GCM push provider.

Importing the package registers a redaction pattern for Google server
API keys so they never reach log output.
"""

import re
from typing import Final

from push_dispatch.providers.gcm.config import DEFAULT_ENDPOINT, GcmConfig
from push_dispatch.providers.gcm.errors import (
    BatchTooLargeError,
    GcmAuthenticationError,
    GcmDispatchError,
    GcmError,
    GcmTransportError,
    ResultCountMismatchError,
)
from push_dispatch.providers.gcm.message import WireMessage, build_message
from push_dispatch.providers.gcm.provider import (
    DEVICES_GONE,
    ERROR,
    GcmProvider,
    create_provider,
)
from push_dispatch.providers.gcm.reconciler import reconcile
from push_dispatch.providers.gcm.sender import MAX_RECIPIENTS, GcmSender
from push_dispatch.utils.sanitization import REDACTED, register_sanitization_pattern

# Google API keys: "AIza" followed by 35 URL-safe characters
_GOOGLE_API_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bAIza[0-9A-Za-z_\-]{35}\b")

register_sanitization_pattern(_GOOGLE_API_KEY_PATTERN, REDACTED)

__all__ = [
    "DEFAULT_ENDPOINT",
    "DEVICES_GONE",
    "ERROR",
    "MAX_RECIPIENTS",
    "BatchTooLargeError",
    "GcmAuthenticationError",
    "GcmConfig",
    "GcmDispatchError",
    "GcmError",
    "GcmProvider",
    "GcmSender",
    "GcmTransportError",
    "ResultCountMismatchError",
    "WireMessage",
    "build_message",
    "create_provider",
    "reconcile",
]
