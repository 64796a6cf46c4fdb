"""Unit tests for the HTTP client implementations."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from push_dispatch.utils.http_client import AIOHTTPClient, DryRunHTTPClient


def _mock_response(*, status: int = 200, json_body: object = None, json_error: Exception | None = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": "application/json"}
    response.json = AsyncMock(return_value=json_body, side_effect=json_error)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=None)
    return context


def _client_with_session(session: MagicMock) -> AIOHTTPClient:
    client = AIOHTTPClient()
    client._session = session  # pyright: ignore[reportPrivateUsage]
    return client


@pytest.mark.unit
class TestAIOHTTPClient:
    """aiohttp-backed client."""

    async def test_context_manager_creates_and_closes_session(self) -> None:
        client = AIOHTTPClient()

        async with client:
            session = client._session  # pyright: ignore[reportPrivateUsage]
            assert isinstance(session, aiohttp.ClientSession)

        assert client._session is None  # pyright: ignore[reportPrivateUsage]
        assert session.closed

    async def test_post_without_session_raises(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = await AIOHTTPClient().post("https://x.test", {}, timeout=1.0)

    async def test_post_returns_json_body(self) -> None:
        session = MagicMock()
        session.post = MagicMock(return_value=_mock_response(json_body={"success": 1}))
        client = _client_with_session(session)

        response = await client.post(
            "https://x.test/send",
            {"registration_ids": ["a"]},
            timeout=5.0,
            headers={"Authorization": "key=k"},
        )

        assert response.status == 200
        assert response.body == {"success": 1}
        session.post.assert_called_once_with(
            "https://x.test/send",
            json={"registration_ids": ["a"]},
            headers={"Authorization": "key=k"},
        )

    async def test_non_json_body_becomes_empty_mapping(self) -> None:
        session = MagicMock()
        session.post = MagicMock(return_value=_mock_response(status=500, json_error=ValueError("not json")))

        response = await _client_with_session(session).post("https://x.test", {}, timeout=5.0)

        assert response.status == 500
        assert response.body == {}

    async def test_non_mapping_json_becomes_empty_mapping(self) -> None:
        session = MagicMock()
        session.post = MagicMock(return_value=_mock_response(json_body=["unexpected"]))

        response = await _client_with_session(session).post("https://x.test", {}, timeout=5.0)

        assert response.body == {}

    async def test_timeout_propagates(self) -> None:
        async def hang(*_args: object) -> None:
            await asyncio.sleep(10)

        context = MagicMock()
        context.__aenter__ = hang
        context.__aexit__ = AsyncMock(return_value=None)
        session = MagicMock()
        session.post = MagicMock(return_value=context)

        with pytest.raises(TimeoutError):
            _ = await _client_with_session(session).post("https://x.test", {}, timeout=0.01)

    async def test_invalid_url_becomes_value_error(self) -> None:
        session = MagicMock()
        session.post = MagicMock(side_effect=aiohttp.InvalidURL("bad"))

        with pytest.raises(ValueError, match="Malformed URL"):
            _ = await _client_with_session(session).post("bad", {}, timeout=1.0)

    async def test_client_error_propagates(self) -> None:
        session = MagicMock()
        session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(aiohttp.ClientConnectionError):
            _ = await _client_with_session(session).post("https://x.test", {}, timeout=1.0)


@pytest.mark.unit
class TestDryRunHTTPClient:
    """Dry-run client."""

    async def test_records_request_and_reports_success_per_recipient(self) -> None:
        client = DryRunHTTPClient()

        response = await client.post("https://x.test", {"registration_ids": ["a", "b"]}, timeout=1.0)

        assert client.requests == [("https://x.test", {"registration_ids": ["a", "b"]})]
        assert response.status == 200
        assert response.body["success"] == 2
        assert response.body["failure"] == 0
        assert response.body["results"] == [{"message_id": "dry-run:0"}, {"message_id": "dry-run:1"}]

    async def test_missing_registration_ids(self) -> None:
        response = await DryRunHTTPClient().post("https://x.test", {}, timeout=1.0)

        assert response.body["results"] == []
