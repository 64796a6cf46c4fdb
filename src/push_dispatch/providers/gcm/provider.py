"""GCM push provider.

Wires the message builder, the gateway transport and the reconciler
together. A dispatch either returns its DispatchOutcome to an awaiting
caller (``push_notification``) or runs in the background (``submit``); in
both cases the outcome is also announced to registered listeners:

- ``devices_gone``: list of tokens the gateway reported as permanently
  unregistered, for the caller to prune from its subscription store
- ``error``: the exception describing a transport failure or the
  combined per-recipient errors of one dispatch

The transport is created once and shared read-only by all dispatches, so
any number of dispatches may run concurrently on the same provider.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Final, Literal, TypeAlias

from push_dispatch.notifications.models import Notification
from push_dispatch.providers.gcm.config import GcmConfig
from push_dispatch.providers.gcm.errors import (
    BatchTooLargeError,
    GcmError,
    GcmTransportError,
    ResultCountMismatchError,
)
from push_dispatch.providers.gcm.message import build_message
from push_dispatch.providers.gcm.reconciler import reconcile
from push_dispatch.providers.gcm.sender import MAX_RECIPIENTS, GcmSender
from push_dispatch.types import (
    DispatchOutcome,
    HTTPClient,
    PushTransport,
    Recipients,
    SignalListener,
)
from push_dispatch.utils.logging import (
    generate_correlation_id,
    get_correlation_id,
    log_with_context,
    reset_correlation_id,
    set_correlation_id,
)

__all__ = ["DEVICES_GONE", "ERROR", "GcmProvider", "create_provider"]

_PROVIDER_NAME: Final[str] = "GCM"

DEVICES_GONE: Final = "devices_gone"
ERROR: Final = "error"

SignalName: TypeAlias = Literal["devices_gone", "error"]


@dataclass(slots=True)
class GcmProvider:
    """Push provider delivering notifications through GCM.

    Attributes:
        config: GCM configuration (API key, endpoint, retry budget)
        http_client: HTTP client used by the default transport
        transport: Gateway transport; a GcmSender is built when omitted
    """

    config: GcmConfig
    http_client: HTTPClient | None = None
    transport: PushTransport | None = None
    _listeners: dict[str, list[SignalListener]] = field(init=False, repr=False)
    _background: set[asyncio.Task[DispatchOutcome]] = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        if self.transport is None:
            if self.http_client is None:
                msg = "GcmProvider needs either an http_client or a transport"
                raise ValueError(msg)
            self.transport = GcmSender(config=self.config, http_client=self.http_client)
        self._listeners = {DEVICES_GONE: [], ERROR: []}
        self._background = set()
        self._logger.debug("GCM provider ready (endpoint=%s)", self.config.endpoint)

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    def add_listener(self, signal: SignalName, listener: SignalListener) -> None:
        """Register a sync or async callable for ``signal``."""
        self._signal_listeners(signal).append(listener)

    def remove_listener(self, signal: SignalName, listener: SignalListener) -> None:
        """Unregister ``listener``; unknown listeners are ignored."""
        listeners = self._signal_listeners(signal)
        if listener in listeners:
            listeners.remove(listener)

    async def push_notification(
        self,
        notification: Notification,
        device_tokens: Recipients,
    ) -> DispatchOutcome:
        """Deliver ``notification`` to one token or an ordered batch.

        Failures never raise: they are reported through the returned
        outcome and the ``error`` signal. A batch over MAX_RECIPIENTS
        fails with BatchTooLargeError before any request is made.
        """
        tokens = _normalize_recipients(device_tokens)

        context_token = None
        if get_correlation_id() is None:
            context_token = set_correlation_id(generate_correlation_id())
        try:
            outcome = await self._dispatch(notification, tokens)
            log_with_context(
                self._logger,
                logging.INFO,
                "GCM dispatch completed",
                extra={
                    "recipients": len(tokens),
                    "invalidated": len(outcome.invalidated),
                    "failed": outcome.error is not None,
                },
            )
            await self._announce(outcome)
        finally:
            if context_token is not None:
                reset_correlation_id(context_token)
        return outcome

    def submit(
        self,
        notification: Notification,
        device_tokens: Recipients,
    ) -> asyncio.Task[DispatchOutcome]:
        """Start a dispatch in the background and return its task.

        Must be called from a running event loop. Results are delivered
        through listeners; the task may also be awaited.
        """
        task = asyncio.get_running_loop().create_task(
            self.push_notification(notification, device_tokens)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait until every dispatch started with ``submit`` has finished."""
        while self._background:
            _ = await asyncio.gather(*self._background, return_exceptions=True)

    async def _dispatch(self, notification: Notification, tokens: list[str]) -> DispatchOutcome:
        if not tokens:
            self._logger.debug("No recipients, nothing to send")
            return DispatchOutcome()
        if len(tokens) > MAX_RECIPIENTS:
            return DispatchOutcome(error=BatchTooLargeError(recipients=len(tokens), limit=MAX_RECIPIENTS))

        message = build_message(notification)
        self._logger.debug("Sending message to %s: %s", tokens, message)

        transport = self.transport
        assert transport is not None
        try:
            response = await transport.send(message, tokens, self.config.retries)
        except GcmError as exc:
            self._logger.debug("Cannot send message: %s", exc, exc_info=True)
            return DispatchOutcome(error=exc)
        except Exception as exc:
            # Custom transports may raise anything
            self._logger.debug("Cannot send message: %s", exc, exc_info=True)
            error = GcmTransportError(f"Unexpected transport failure: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return DispatchOutcome(error=error)

        try:
            outcome = reconcile(response, tokens)
        except ResultCountMismatchError as exc:
            self._logger.debug("Cannot reconcile response: %s", exc)
            return DispatchOutcome(error=exc, response=response)

        for token in outcome.invalidated:
            self._logger.debug("Device %s is no longer registered.", token)
        if outcome.ok:
            self._logger.debug("GCM result: %s", response)
        return outcome

    async def _announce(self, outcome: DispatchOutcome) -> None:
        if outcome.invalidated:
            await self._emit(DEVICES_GONE, list(outcome.invalidated))
        if outcome.error is not None:
            self._logger.warning("GCM dispatch failed: %s", outcome.error)
            await self._emit(ERROR, outcome.error)

    async def _emit(self, signal: str, payload: object) -> None:
        for listener in list(self._listeners[signal]):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._logger.exception("Listener for %s signal failed", signal)

    def _signal_listeners(self, signal: str) -> list[SignalListener]:
        try:
            return self._listeners[signal]
        except KeyError:
            msg = f"Unknown signal {signal!r}; expected {DEVICES_GONE!r} or {ERROR!r}"
            raise ValueError(msg) from None


def _normalize_recipients(device_tokens: Recipients) -> list[str]:
    """A bare token string is a one-element batch."""
    if isinstance(device_tokens, str):
        return [device_tokens]
    return list(device_tokens)


def create_provider(
    *,
    config: GcmConfig,
    http_client: HTTPClient,
) -> GcmProvider:
    """Factory function for creating GcmProvider instances.

    Example:
        >>> config = GcmConfig(server_api_key="AIza...")
        >>> async with AIOHTTPClient() as http_client:
        ...     provider = create_provider(config=config, http_client=http_client)
        ...     outcome = await provider.push_notification(notification, tokens)
    """
    return GcmProvider(config=config, http_client=http_client)
