"""GCM provider configuration schema."""

from __future__ import annotations

from typing import Annotated, Final
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import override

from push_dispatch.utils.sanitization import REDACTED

DEFAULT_ENDPOINT: Final[str] = "https://fcm.googleapis.com/fcm/send"


class GcmConfig(BaseModel):
    """Pydantic schema for GCM / legacy FCM HTTP configuration."""

    model_config = ConfigDict(  # pyright: ignore[reportIncompatibleVariableOverride]
        extra="forbid",
        str_strip_whitespace=True,
        frozen=True,
    )

    server_api_key: Annotated[
        str,
        Field(
            description="Server API key from the Firebase/Google developer console",
            min_length=1,
        ),
    ]
    endpoint: Annotated[
        str,
        Field(
            description="Gateway send endpoint",
        ),
    ] = DEFAULT_ENDPOINT
    retries: Annotated[
        int,
        Field(
            description="Retries after the first attempt on transport failure",
            ge=0,
            le=10,
        ),
    ] = 3
    request_timeout: Annotated[
        float,
        Field(
            description="Per-request timeout in seconds",
            gt=0,
        ),
    ] = 10.0
    backoff_base_seconds: Annotated[
        float,
        Field(
            description="Delay before the first retry; doubled on every attempt",
            ge=0,
        ),
    ] = 1.0
    max_backoff_seconds: Annotated[
        float,
        Field(
            description="Upper bound for a single retry delay",
            gt=0,
        ),
    ] = 60.0

    @field_validator("server_api_key")
    @classmethod
    def validate_server_api_key(cls, value: str) -> str:
        """Reject keys containing whitespace."""
        if any(char.isspace() for char in value):
            msg = "Server API key must not contain whitespace"
            raise ValueError(msg)
        return value

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        """Require an absolute HTTPS endpoint."""
        parsed = urlparse(value)
        if parsed.scheme.lower() != "https":
            msg = "Endpoint must use HTTPS"
            raise ValueError(msg)
        if not parsed.hostname:
            msg = "Endpoint must include a host name"
            raise ValueError(msg)
        return value

    @property
    def authorization_header(self) -> str:
        """Value of the Authorization header expected by the gateway."""
        return f"key={self.server_api_key}"

    @override
    def __repr__(self) -> str:
        return (
            f"GcmConfig("
            f"server_api_key={REDACTED!r}, "
            f"endpoint={self.endpoint!r}, "
            f"retries={self.retries!r}, "
            f"request_timeout={self.request_timeout!r})"
        )

    @override
    def __str__(self) -> str:
        return self.__repr__()
