"""Tests for the GCM push provider."""

from __future__ import annotations

import asyncio
from typing import cast
from unittest.mock import AsyncMock

import pytest

from push_dispatch.notifications import Notification
from push_dispatch.providers.gcm.config import GcmConfig
from push_dispatch.providers.gcm.errors import (
    BatchTooLargeError,
    GcmDispatchError,
    GcmTransportError,
    ResultCountMismatchError,
)
from push_dispatch.providers.gcm.message import WireMessage
from push_dispatch.providers.gcm.provider import DEVICES_GONE, ERROR, GcmProvider, create_provider
from push_dispatch.providers.gcm.sender import GcmSender
from push_dispatch.types import (
    GatewayResponse,
    GatewayResult,
    HTTPClient,
    PushTransport,
    Response,
)
from push_dispatch.utils.logging import get_correlation_id, set_correlation_id


def _response(*errors: str | None) -> GatewayResponse:
    return GatewayResponse.from_results(
        [GatewayResult(error=error) if error else GatewayResult(message_id="m") for error in errors],
        multicast_id=1,
    )


class MockTransport:
    """Transport double returning canned gateway responses."""

    def __init__(self, *responses: GatewayResponse | BaseException) -> None:
        self.send: AsyncMock = AsyncMock(side_effect=list(responses))


def _provider(config: GcmConfig, transport: MockTransport) -> GcmProvider:
    return GcmProvider(config=config, transport=cast(PushTransport, cast(object, transport)))


class Recorder:
    """Collects signal payloads in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def attach(self, provider: GcmProvider) -> None:
        provider.add_listener(DEVICES_GONE, lambda payload: self.events.append((DEVICES_GONE, payload)))
        provider.add_listener(ERROR, lambda payload: self.events.append((ERROR, payload)))


NOTIFICATION = Notification(alert="hello", title="CI")


@pytest.mark.unit
class TestPushNotification:
    """Awaitable dispatch path."""

    async def test_successful_dispatch_emits_nothing(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport(_response(None, None))
        provider = _provider(gcm_config, transport)
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, ["a", "b"])

        assert outcome.ok is True
        assert recorder.events == []

    async def test_transport_receives_message_tokens_and_retry_budget(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport(_response(None))
        provider = _provider(gcm_config, transport)

        _ = await provider.push_notification(NOTIFICATION, ["a"])

        message, tokens, retries = transport.send.await_args.args
        assert isinstance(message, WireMessage)
        assert message.notification == {"title": "CI", "body": "hello"}
        assert tokens == ["a"]
        assert retries == gcm_config.retries

    async def test_single_token_normalized_to_batch(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport(_response(None))

        _ = await _provider(gcm_config, transport).push_notification(NOTIFICATION, "solo")

        assert transport.send.await_args.args[1] == ["solo"]

    async def test_invalidated_tokens_signalled_before_error(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport(_response("NotRegistered", "MismatchSenderId", None))
        provider = _provider(gcm_config, transport)
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, ["gone", "bad", "fine"])

        assert [name for name, _ in recorder.events] == [DEVICES_GONE, ERROR]
        assert recorder.events[0][1] == ["gone"]
        error = recorder.events[1][1]
        assert isinstance(error, GcmDispatchError)
        assert str(error) == "GCM error code: MismatchSenderId, deviceToken: bad"
        assert outcome.invalidated == ("gone",)
        assert outcome.error is error

    async def test_transport_failure_reported_as_error(self, gcm_config: GcmConfig) -> None:
        failure = GcmTransportError("GCM responded with HTTP 500", status=500)
        provider = _provider(gcm_config, MockTransport(failure))
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, ["a"])

        assert outcome.error is failure
        assert outcome.invalidated == ()
        assert recorder.events == [(ERROR, failure)]

    async def test_result_count_mismatch_reported_as_error(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response("NotRegistered")))
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, ["a", "b"])

        assert isinstance(outcome.error, ResultCountMismatchError)
        assert outcome.invalidated == ()
        assert [name for name, _ in recorder.events] == [ERROR]

    async def test_empty_batch_skips_gateway(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport()
        provider = _provider(gcm_config, transport)
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, [])

        assert outcome.ok is True
        assert transport.send.await_count == 0
        assert recorder.events == []

    async def test_oversized_batch_reported_as_error(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport()
        provider = _provider(gcm_config, transport)
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, [f"t{i}" for i in range(1001)])

        assert isinstance(outcome.error, BatchTooLargeError)
        assert "at most 1000" in str(outcome.error)
        assert transport.send.await_count == 0
        assert recorder.events == [(ERROR, outcome.error)]

    async def test_unexpected_transport_exception_wrapped(self, gcm_config: GcmConfig) -> None:
        cause = RuntimeError("socket closed")
        provider = _provider(gcm_config, MockTransport(cause))
        recorder = Recorder()
        recorder.attach(provider)

        outcome = await provider.push_notification(NOTIFICATION, ["a"])

        assert isinstance(outcome.error, GcmTransportError)
        assert outcome.error.__cause__ is cause
        assert str(outcome.error) == "Unexpected transport failure: RuntimeError: socket closed"
        assert outcome.invalidated == ()
        assert recorder.events == [(ERROR, outcome.error)]


@pytest.mark.unit
class TestListeners:
    """Listener registration and invocation."""

    async def test_async_listener_awaited(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response("NotRegistered")))
        received: list[object] = []

        async def on_gone(payload: object) -> None:
            await asyncio.sleep(0)
            received.append(payload)

        provider.add_listener(DEVICES_GONE, on_gone)
        _ = await provider.push_notification(NOTIFICATION, ["a"])

        assert received == [["a"]]

    async def test_failing_listener_does_not_stop_others(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response("NotRegistered")))
        received: list[object] = []

        def broken(_payload: object) -> None:
            raise RuntimeError("listener bug")

        provider.add_listener(DEVICES_GONE, broken)
        provider.add_listener(DEVICES_GONE, received.append)

        outcome = await provider.push_notification(NOTIFICATION, ["a"])

        assert received == [["a"]]
        assert outcome.invalidated == ("a",)

    async def test_removed_listener_not_called(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response("NotRegistered")))
        received: list[object] = []
        provider.add_listener(DEVICES_GONE, received.append)
        provider.remove_listener(DEVICES_GONE, received.append)

        _ = await provider.push_notification(NOTIFICATION, ["a"])

        assert received == []

    def test_unknown_signal_rejected(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport())

        with pytest.raises(ValueError, match="Unknown signal"):
            provider.add_listener("delivered", print)  # pyright: ignore[reportArgumentType]


@pytest.mark.unit
class TestBackgroundDispatch:
    """Fire-and-forget dispatch path."""

    async def test_submit_delivers_through_listeners(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response("InvalidRegistration")))
        recorder = Recorder()
        recorder.attach(provider)

        task = provider.submit(NOTIFICATION, ["a"])
        await provider.drain()

        assert task.done()
        assert recorder.events == [(DEVICES_GONE, ["a"])]

    async def test_submitted_oversized_batch_reaches_error_listener(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport()
        provider = _provider(gcm_config, transport)
        recorder = Recorder()
        recorder.attach(provider)

        task = provider.submit(NOTIFICATION, [f"t{i}" for i in range(1001)])
        await provider.drain()

        assert task.exception() is None
        assert [name for name, _ in recorder.events] == [ERROR]
        assert isinstance(recorder.events[0][1], BatchTooLargeError)
        assert transport.send.await_count == 0

    async def test_submitted_task_can_be_awaited(self, gcm_config: GcmConfig) -> None:
        provider = _provider(gcm_config, MockTransport(_response(None)))

        outcome = await provider.submit(NOTIFICATION, "a")

        assert outcome.ok is True

    async def test_concurrent_dispatches_are_independent(self, gcm_config: GcmConfig) -> None:
        transport = MockTransport(_response("NotRegistered"), _response(None), _response("MessageTooBig"))
        provider = _provider(gcm_config, transport)

        outcomes = await asyncio.gather(
            provider.push_notification(NOTIFICATION, ["x"]),
            provider.push_notification(NOTIFICATION, ["y"]),
            provider.push_notification(NOTIFICATION, ["z"]),
        )

        assert sum(len(outcome.invalidated) for outcome in outcomes) == 1
        assert sum(1 for outcome in outcomes if outcome.error is not None) == 1
        assert transport.send.await_count == 3


@pytest.mark.unit
class TestCorrelation:
    """Correlation ID handling per dispatch."""

    async def test_dispatch_runs_under_fresh_correlation_id(self, gcm_config: GcmConfig) -> None:
        seen: list[str | None] = []

        async def send(*_args: object) -> GatewayResponse:
            seen.append(get_correlation_id())
            return _response(None)

        transport = MockTransport()
        transport.send.side_effect = send
        provider = _provider(gcm_config, transport)

        _ = await provider.push_notification(NOTIFICATION, ["a"])

        assert seen[0] is not None
        assert get_correlation_id() is None

    async def test_existing_correlation_id_preserved(self, gcm_config: GcmConfig) -> None:
        seen: list[str | None] = []

        async def send(*_args: object) -> GatewayResponse:
            seen.append(get_correlation_id())
            return _response(None)

        transport = MockTransport()
        transport.send.side_effect = send
        _ = set_correlation_id("request-42")

        _ = await _provider(gcm_config, transport).push_notification(NOTIFICATION, ["a"])

        assert seen == ["request-42"]
        assert get_correlation_id() == "request-42"


@pytest.mark.unit
class TestConstruction:
    """Provider creation."""

    def test_requires_http_client_or_transport(self, gcm_config: GcmConfig) -> None:
        with pytest.raises(ValueError, match="http_client or a transport"):
            _ = GcmProvider(config=gcm_config)

    async def test_create_provider_sends_through_http_client(self, gcm_config: GcmConfig) -> None:
        body = {"multicast_id": 5, "success": 0, "failure": 1, "results": [{"error": "NotRegistered"}]}
        http_post = AsyncMock(return_value=Response(status=200, body=body, headers={}))

        class StubHTTPClient:
            post = http_post

        provider = create_provider(config=gcm_config, http_client=cast(HTTPClient, cast(object, StubHTTPClient())))

        outcome = await provider.push_notification(NOTIFICATION, ["a"])

        assert isinstance(provider.transport, GcmSender)
        assert provider.get_provider_name() == "GCM"
        assert outcome.invalidated == ("a",)
        assert http_post.await_count == 1


async def test_transport_failure_signals_error_once_without_invalidation(gcm_config: GcmConfig) -> None:
    provider = _provider(gcm_config, MockTransport(GcmTransportError("connection refused")))
    recorder = Recorder()
    recorder.attach(provider)

    _ = await provider.push_notification(NOTIFICATION, ["a", "b", "c"])

    assert [name for name, _ in recorder.events] == [ERROR]


async def test_zero_failure_count_from_gateway_invalidates_nobody(gcm_config: GcmConfig) -> None:
    body = {"multicast_id": 1, "success": 0, "failure": 0, "results": [{"error": "NotRegistered"}]}
    http_post = AsyncMock(return_value=Response(status=200, body=body, headers={}))

    class StubHTTPClient:
        post = http_post

    provider = create_provider(config=gcm_config, http_client=cast(HTTPClient, cast(object, StubHTTPClient())))
    recorder = Recorder()
    recorder.attach(provider)

    outcome = await provider.push_notification(NOTIFICATION, ["a"])

    assert outcome.ok is True
    assert outcome.invalidated == ()
    assert recorder.events == []
    assert http_post.await_count == 1
