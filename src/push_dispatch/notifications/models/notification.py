"""Notification model shared by all push providers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    ModelWrapValidatorHandler,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import override

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    """Application-level push notification.

    Typed fields cover the presentation and delivery options known to the
    gateways. Any other keyword is kept as a custom field, in insertion
    order, and travels in the data payload. Fields accept either their
    Python name or their camelCase wire name. A typed field holding a
    value of the wrong type or range is left unset instead of rejecting
    the notification. Instances are immutable.
    """

    model_config = ConfigDict(  # pyright: ignore[reportIncompatibleVariableOverride]
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    alert: str | None = Field(
        default=None,
        description="Text displayed to the user",
    )
    badge: int | str | None = Field(
        default=None,
        description="Badge counter shown on the app icon",
    )
    sound: str | None = Field(
        default=None,
        description="Sound played on delivery",
    )
    title: str | None = Field(
        default=None,
        description="Title displayed above the alert",
    )
    message_from: str | None = Field(
        default=None,
        description="Sender name; used as title when no title is given",
    )
    icon: str | None = Field(default=None, description="Notification icon")
    tag: str | None = Field(
        default=None,
        description="Replaces an earlier notification with the same tag",
    )
    color: str | None = Field(default=None, description="Icon color (#rrggbb)")
    click_action: str | None = Field(
        default=None,
        alias="click_action",
        description="Action triggered when the user taps the notification",
    )
    collapse_key: str | None = Field(
        default=None,
        description="Groups messages so only the last one is delivered",
    )
    delay_while_idle: bool | None = Field(
        default=None,
        description="Hold the message until the device becomes active",
    )
    data_only: bool = Field(
        default=False,
        description="Deliver presentation fields in the data payload only",
    )
    content_available: bool | None = Field(
        default=None,
        description="Wake the app in the background on delivery",
    )
    category: str | None = Field(default=None, description="Notification category")
    expiration_interval: int | None = Field(
        default=None,
        ge=0,
        description="Seconds the gateway keeps the message before dropping it",
    )
    expiration_time: AwareDatetime | None = Field(
        default=None,
        description="Instant after which the message is dropped",
    )

    @model_validator(mode="wrap")
    @classmethod
    def omit_malformed_fields(
        cls,
        data: object,
        handler: ModelWrapValidatorHandler[Notification],
    ) -> Notification:
        """Drop typed fields whose values fail validation, then retry once."""
        try:
            return handler(data)
        except ValidationError as exc:
            if not isinstance(data, dict):
                raise
            failed = {error["loc"][0] for error in exc.errors() if error["loc"]}
            malformed: set[str] = set()
            for name, info in cls.model_fields.items():
                if name in failed or info.alias in failed:
                    malformed.add(name)
                    if info.alias is not None:
                        malformed.add(info.alias)
            cleaned = {key: value for key, value in data.items() if key not in malformed}  # pyright: ignore[reportUnknownVariableType]
            if len(cleaned) == len(data):  # pyright: ignore[reportUnknownArgumentType]
                raise
            logger.debug("Omitting malformed notification field(s): %s", sorted(failed, key=str))
            return handler(cleaned)

    @property
    def custom_fields(self) -> dict[str, object]:
        """Application-defined fields, in insertion order."""
        return dict(self.model_extra or {})

    def ttl_seconds_from_now(self, now: datetime | None = None) -> int | None:
        """Time to live in whole seconds, or None when no expiry is set.

        ``expiration_interval`` takes precedence over ``expiration_time``;
        an expiry already in the past yields 0.
        """
        if self.expiration_interval is not None:
            return self.expiration_interval
        if self.expiration_time is None:
            return None
        reference = now or datetime.now(tz=UTC)
        remaining = (self.expiration_time - reference).total_seconds()
        return max(0, int(remaining))

    def present_fields(self) -> dict[str, object]:
        """Explicitly supplied, non-null fields keyed by wire name.

        Declared fields count only when the caller set them; custom fields
        always count. Values are in JSON form.
        """
        dumped = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_unset=True,
        )
        return {key: value for key, value in dumped.items() if value is not None}

    @override
    def __str__(self) -> str:
        return f"Notification(alert={self.alert!r}, data_only={self.data_only})"
