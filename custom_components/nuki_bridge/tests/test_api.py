"""Test the Nuki Bridge request dispatcher."""

import asyncio
import json
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from aiohttp.client_exceptions import ClientConnectionError
import pytest

from custom_components.nuki_bridge.api import (
    DispatcherState,
    NukiBridgeClient,
    NukiBridgeConnectionError,
    NukiBridgeEndpoint,
)
from custom_components.nuki_bridge.const import MIN_RECHECK_DELAY

ENDPOINT = NukiBridgeEndpoint(
    host="192.168.1.50", token="secret", port=8080, request_interval=0, retry_count=3
)


def _response(status: int = 200, body: Any = None, error: Exception | None = None):
    response = MagicMock()
    response.status = status
    if error is not None:
        response.json = AsyncMock(side_effect=error)
    else:
        response.json = AsyncMock(return_value=body)
    return response


def _session(side_effect: Any) -> MagicMock:
    session = MagicMock()
    session.get = AsyncMock(side_effect=side_effect)
    session.close = AsyncMock()
    return session


def _urls(session: MagicMock) -> list[str]:
    return [call.args[0] for call in session.get.call_args_list]


async def test_send_success() -> None:
    """Test a successful request returns the decoded body."""
    session = _session([_response(body=[{"nukiId": 1}])])
    client = NukiBridgeClient(ENDPOINT, session)

    response = await client.async_send("/list")

    assert response.success
    assert response.body == [{"nukiId": 1}]
    assert _urls(session) == ["http://192.168.1.50:8080/list?token=secret"]
    assert client.state is DispatcherState.IDLE
    assert client.pending == 0


async def test_token_appended_to_query() -> None:
    """Test the token is appended to an existing query string."""
    session = _session([_response(body={"success": True})])
    client = NukiBridgeClient(ENDPOINT, session)

    await client.async_lock_action(11, 0, 2)

    assert _urls(session) == [
        "http://192.168.1.50:8080/lockAction?nukiId=11&deviceType=0&action=2&token=secret"
    ]


async def test_callback_add_encodes_url() -> None:
    """Test the callback URL is URL-encoded."""
    session = _session([_response(body={"success": True})])
    client = NukiBridgeClient(ENDPOINT, session)

    await client.async_callback_add("http://10.0.0.2:40506")

    assert _urls(session) == [
        "http://192.168.1.50:8080/callback/add?url=http%3A%2F%2F10.0.0.2%3A40506"
        "&token=secret"
    ]


async def test_fifo_single_in_flight() -> None:
    """Test concurrent submissions are sent one at a time in arrival order."""
    in_flight = 0
    max_in_flight = 0

    async def fake_get(url: str, timeout: Any) -> MagicMock:
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return _response(body={"url": url})

    session = _session(fake_get)
    client = NukiBridgeClient(ENDPOINT, session)

    responses = await asyncio.gather(
        client.async_send("/a"), client.async_send("/b"), client.async_send("/c")
    )

    assert max_in_flight == 1
    assert [response.body["url"] for response in responses] == _urls(session)
    assert _urls(session) == [
        "http://192.168.1.50:8080/a?token=secret",
        "http://192.168.1.50:8080/b?token=secret",
        "http://192.168.1.50:8080/c?token=secret",
    ]


async def test_throttle_between_requests() -> None:
    """Test two requests are separated by the minimum interval."""
    loop = asyncio.get_running_loop()
    call_times: list[float] = []

    async def fake_get(url: str, timeout: Any) -> MagicMock:
        call_times.append(loop.time())
        return _response(body={})

    endpoint = NukiBridgeEndpoint(host="bridge", token="secret", request_interval=0.2)
    client = NukiBridgeClient(endpoint, _session(fake_get))

    first = asyncio.create_task(client.async_send("/a"))
    second = asyncio.create_task(client.async_send("/b"))
    await first
    assert client.state is DispatcherState.WAITING
    await second

    assert len(call_times) == 2
    assert call_times[1] - call_times[0] >= 0.2


async def test_throttle_recheck_floor() -> None:
    """Test the throttle re-check is never scheduled sooner than the floor."""
    loop = asyncio.get_running_loop()
    call_times: list[float] = []

    async def fake_get(url: str, timeout: Any) -> MagicMock:
        call_times.append(loop.time())
        return _response(body={})

    endpoint = NukiBridgeEndpoint(host="bridge", token="secret", request_interval=0.02)
    client = NukiBridgeClient(endpoint, _session(fake_get))

    first = asyncio.create_task(client.async_send("/a"))
    second = asyncio.create_task(client.async_send("/b"))
    await first
    assert client.state is DispatcherState.WAITING
    handle = client._recheck_handle
    assert handle is not None
    # Timer handles may fire up to one clock tick early
    assert handle.when() - client._last_completed >= MIN_RECHECK_DELAY - 0.001
    await second

    assert call_times[1] - call_times[0] >= MIN_RECHECK_DELAY - 0.001


async def test_retry_exhaustion() -> None:
    """Test a failing request is attempted retry_count times and then dropped."""
    session = _session(ClientConnectionError("unreachable"))
    client = NukiBridgeClient(ENDPOINT, session)

    response = await client.async_send("/list")

    assert not response.success
    assert response.body is None
    assert session.get.await_count == 3
    assert client.pending == 0


async def test_retry_keeps_fifo_slot() -> None:
    """Test a retried request stays ahead of later submissions."""
    session = _session(
        [
            ClientConnectionError("unreachable"),
            _response(body={"request": "a"}),
            _response(body={"request": "b"}),
        ]
    )
    client = NukiBridgeClient(ENDPOINT, session)

    first, second = await asyncio.gather(
        client.async_send("/a"), client.async_send("/b")
    )

    assert first.body == {"request": "a"}
    assert second.body == {"request": "b"}
    assert _urls(session) == [
        "http://192.168.1.50:8080/a?token=secret",
        "http://192.168.1.50:8080/a?token=secret",
        "http://192.168.1.50:8080/b?token=secret",
    ]


@pytest.mark.parametrize(
    "response",
    [
        _response(status=500, body={"success": True}),
        _response(error=json.JSONDecodeError("Expecting value", "<html>", 0)),
        _response(body=None),
    ],
    ids=["status", "not_json", "empty"],
)
async def test_unusable_response_is_retried(response: MagicMock) -> None:
    """Test non-200, non-JSON and empty responses count as failures."""
    session = _session([response, response, response])
    client = NukiBridgeClient(ENDPOINT, session)

    result = await client.async_send("/list")

    assert not result.success
    assert session.get.await_count == 3


async def test_unexpected_error_counts_as_attempt(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test an unexpected error is retried within the bound and then dropped."""
    session = _session(RuntimeError("boom"))
    client = NukiBridgeClient(ENDPOINT, session)

    response = await client.async_send("/list")

    assert not response.success
    assert session.get.await_count == 3
    assert client.pending == 0
    assert client.state is DispatcherState.IDLE
    assert "Unexpected error while requesting /list" in caplog.text


async def test_timeout_is_a_failure() -> None:
    """Test a timeout is retried like a transport error."""
    session = _session([TimeoutError(), _response(body=[])])
    client = NukiBridgeClient(ENDPOINT, session)

    result = await client.async_send("/list")

    assert result.success
    assert result.body == []


async def test_missing_token_reported_once(caplog: pytest.LogCaptureFixture) -> None:
    """Test an incomplete endpoint fails requests without sending them."""
    session = _session([])
    client = NukiBridgeClient(NukiBridgeEndpoint(host="bridge", token=""), session)

    with caplog.at_level(logging.ERROR):
        first = await client.async_send("/list")
        second = await client.async_send("/list")

    assert not first.success
    assert not second.success
    session.get.assert_not_awaited()
    assert caplog.text.count("No bridge IP address or API token provided") == 1


async def test_validate_connection_failure() -> None:
    """Test the connection check raises when the list cannot be fetched."""
    endpoint = NukiBridgeEndpoint(host="bridge", token="secret", retry_count=1)
    client = NukiBridgeClient(endpoint, _session(ClientConnectionError()))

    with pytest.raises(NukiBridgeConnectionError):
        await client.async_validate_connection()


async def test_close_fails_waiting_requests() -> None:
    """Test closing the client completes queued requests with a failure."""
    endpoint = NukiBridgeEndpoint(host="bridge", token="secret", request_interval=30)
    session = _session([_response(body=[]), _response(body=[])])
    client = NukiBridgeClient(endpoint, session)

    first = asyncio.create_task(client.async_send("/a"))
    second = asyncio.create_task(client.async_send("/b"))
    assert (await first).success
    assert client.state is DispatcherState.WAITING

    await client.async_close()

    assert not (await second).success
    assert session.get.await_count == 1
    assert not (await client.async_send("/c")).success
    session.close.assert_not_awaited()
