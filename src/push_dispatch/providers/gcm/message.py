"""GCM wire message and the builder that maps notifications onto it.

Message parameters follow the legacy HTTP protocol:
https://firebase.google.com/docs/cloud-messaging/http-server-ref

The gateway has no typed slot for most application fields, so every
present notification field travels in ``data``. Presentation fields are
additionally routed either to the natively rendered ``notification``
mapping or, for data-only notifications, to ``data``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from push_dispatch.notifications.models import Notification

__all__ = ["PRESENTATION_FIELDS", "WireMessage", "build_message"]

# Optional presentation fields, routed only when truthy
PRESENTATION_FIELDS: Final[tuple[str, ...]] = (
    "icon",
    "sound",
    "badge",
    "tag",
    "color",
    "click_action",
)

# GCM has no reserved parameters for these, so they always ride in data
_ALWAYS_IN_DATA: Final[tuple[str, ...]] = ("alert", "badge")


@dataclass(slots=True)
class WireMessage:
    """Provider envelope for one send.

    ``data`` is delivered to the app untouched; ``notification`` is rendered
    by the device OS.
    """

    time_to_live: int | None = None
    collapse_key: str | None = None
    delay_while_idle: bool | None = None
    data: dict[str, object] = field(default_factory=dict)
    notification: dict[str, object] = field(default_factory=dict)

    def add_data(self, key: str, value: object) -> None:
        self.data[key] = value

    def add_notification(self, key: str, value: object) -> None:
        self.notification[key] = value

    def to_payload(self, recipients: Sequence[str]) -> dict[str, object]:
        """Render the JSON request body addressed to ``recipients``."""
        payload: dict[str, object] = {"registration_ids": list(recipients)}
        if self.collapse_key is not None:
            payload["collapse_key"] = self.collapse_key
        if self.delay_while_idle is not None:
            payload["delay_while_idle"] = self.delay_while_idle
        if self.time_to_live is not None:
            payload["time_to_live"] = self.time_to_live
        payload["data"] = dict(self.data)
        if self.notification:
            payload["notification"] = dict(self.notification)
        return payload


def build_message(notification: Notification, *, now: datetime | None = None) -> WireMessage:
    """Build the GCM wire message for ``notification``.

    Never fails: absent fields are omitted and falsy presentation values
    are skipped.

    Args:
        notification: Notification to deliver
        now: Reference instant for the time to live (defaults to now)

    Returns:
        A fresh WireMessage
    """
    message = WireMessage(
        time_to_live=notification.ttl_seconds_from_now(now),
        collapse_key=notification.collapse_key,
        delay_while_idle=notification.delay_while_idle,
    )

    present = notification.present_fields()
    keys = list(present)
    keys.extend(name for name in _ALWAYS_IN_DATA if name not in present)

    for key in keys:
        value = present.get(key)
        if value is not None:
            message.add_data(key, value)

    title = notification.title if notification.title is not None else notification.message_from
    _add_key(message, notification, "title", title)
    _add_key(message, notification, "body", notification.alert)

    for name in PRESENTATION_FIELDS:
        value = getattr(notification, name)  # pyright: ignore[reportAny]
        if value:
            _add_key(message, notification, name, value)

    return message


def _add_key(message: WireMessage, notification: Notification, key: str, value: object) -> None:
    if value is None:
        return
    if notification.data_only:
        message.add_data(key, value)
    else:
        message.add_notification(key, value)
