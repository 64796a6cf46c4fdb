"""Provider-agnostic notification records handed to push providers."""

from __future__ import annotations

from .models import Notification

__all__ = [
    "Notification",
]
