"""Notification models."""

from __future__ import annotations

from .notification import Notification

__all__ = ["Notification"]
