"""Type aliases using modern PEP 695 syntax.

This module defines type aliases for common type patterns
throughout the application.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import TypeAlias

# Device identifier as issued by the push gateway to an app installation
DeviceToken: TypeAlias = str

# Ordered batch of device tokens; gateway results correlate by position
RecipientBatch: TypeAlias = Sequence[DeviceToken]

# Callers may address a single device or an ordered batch
Recipients: TypeAlias = DeviceToken | RecipientBatch

# Listener invoked when a dispatch emits a signal; may be sync or async
SignalListener: TypeAlias = Callable[[object], Awaitable[None] | None]
