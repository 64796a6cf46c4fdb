"""push-dispatch - push notification delivery through Google Cloud Messaging.

Builds gateway messages from application notifications, sends them to
batches of device tokens and reconciles the per-device results into
invalidated tokens and dispatch errors.
"""

from push_dispatch.__main__ import main

__all__ = ["main"]
