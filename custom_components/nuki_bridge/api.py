"""API client for the Nuki Bridge."""

from __future__ import annotations

import asyncio
from collections import deque
import contextlib
from dataclasses import dataclass, field
from enum import StrEnum
from http import HTTPStatus
import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from aiohttp import ClientTimeout
from aiohttp.client_exceptions import ClientError

from homeassistant.exceptions import HomeAssistantError

from .const import (
    DEFAULT_BRIDGE_PORT,
    DEFAULT_REQUEST_INTERVAL,
    DEFAULT_RETRY_COUNT,
    ENDPOINT_CALLBACK_ADD,
    ENDPOINT_CALLBACK_LIST,
    ENDPOINT_LIST,
    ENDPOINT_LOCK_ACTION,
    ENDPOINT_REBOOT,
    MIN_RECHECK_DELAY,
    REQUEST_TIMEOUT,
)

_LOGGER = logging.getLogger(__name__)


class NukiBridgeApiError(HomeAssistantError):
    """Exception to indicate the bridge returned an unusable response."""


class NukiBridgeConnectionError(HomeAssistantError):
    """Exception to indicate a connection error occurred."""


class NukiBridgeConfigurationError(HomeAssistantError):
    """Exception to indicate the bridge address or token is missing."""


@dataclass(frozen=True)
class NukiBridgeEndpoint:
    """Address and request policy of a single bridge."""

    host: str
    token: str
    port: int = DEFAULT_BRIDGE_PORT
    request_interval: float = DEFAULT_REQUEST_INTERVAL
    retry_count: int = DEFAULT_RETRY_COUNT
    timeout: float = REQUEST_TIMEOUT

    @property
    def is_configured(self) -> bool:
        """Return if both the address and the token are known."""
        return bool(self.host) and bool(self.token)

    def url_for(self, path: str) -> str:
        """Return the full URL for a bridge path, including the token."""
        separator = "&" if "?" in path else "?"
        return f"http://{self.host}:{self.port}{path}{separator}token={self.token}"


@dataclass(frozen=True)
class BridgeResponse:
    """Outcome of a request sent to the bridge."""

    success: bool
    body: Any = None


@dataclass
class QueuedRequest:
    """A request waiting in the dispatcher queue."""

    path: str
    future: asyncio.Future[BridgeResponse] = field(repr=False)
    retry_count: int = 0


class DispatcherState(StrEnum):
    """Scheduling state of the dispatcher."""

    IDLE = "idle"
    WAITING = "waiting"
    IN_FLIGHT = "in_flight"


class NukiBridgeClient:
    """API client for the Nuki Bridge.

    The bridge cannot cope with parallel or bursty calls, so every request goes
    through a FIFO queue that is processed one request at a time, with a
    minimum interval between two requests. All methods must be called from the
    event loop that owns the client.
    """

    def __init__(
        self,
        endpoint: NukiBridgeEndpoint,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            endpoint: Address, token and request policy of the bridge
            session: Optional session to use instead of a private one

        """
        self.endpoint = endpoint
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._queue: deque[QueuedRequest] = deque()
        self._state = DispatcherState.IDLE
        self._last_completed: float | None = None
        self._recheck_handle: asyncio.TimerHandle | None = None
        self._request_task: asyncio.Task[None] | None = None
        self._configuration_error_reported = False
        self._closed = False

    @property
    def state(self) -> DispatcherState:
        """Return the current scheduling state."""
        return self._state

    @property
    def pending(self) -> int:
        """Return the number of queued requests, including the one in flight."""
        return len(self._queue)

    async def async_send(self, path: str) -> BridgeResponse:
        """Queue a request and wait for its outcome.

        Transport and protocol errors are not raised, they complete the
        request with an unsuccessful response once the retries are exhausted.
        """
        if self._closed:
            return BridgeResponse(success=False)
        future: asyncio.Future[BridgeResponse] = (
            asyncio.get_running_loop().create_future()
        )
        self._queue.append(QueuedRequest(path, future))
        self._process()
        return await future

    def _process(self) -> None:
        """Start the next request if the dispatcher is idle."""
        if self._closed or self._state is not DispatcherState.IDLE or not self._queue:
            return

        if not self.endpoint.is_configured:
            self._fail_configuration()
            return

        loop = asyncio.get_running_loop()
        if self._last_completed is not None:
            elapsed = loop.time() - self._last_completed
            if elapsed < self.endpoint.request_interval:
                delay = max(MIN_RECHECK_DELAY, self.endpoint.request_interval - elapsed)
                self._state = DispatcherState.WAITING
                self._recheck_handle = loop.call_later(delay, self._recheck)
                return

        self._state = DispatcherState.IN_FLIGHT
        self._request_task = loop.create_task(self._async_execute(self._queue[0]))

    def _recheck(self) -> None:
        """Leave the waiting state once the throttle delay has passed."""
        self._recheck_handle = None
        self._state = DispatcherState.IDLE
        self._process()

    def _fail_configuration(self) -> None:
        """Fail all queued requests because the endpoint is incomplete."""
        if not self._configuration_error_reported:
            _LOGGER.error(
                "No bridge IP address or API token provided, requests are not sent"
            )
            self._configuration_error_reported = True
        while self._queue:
            self._resolve(self._queue.popleft(), BridgeResponse(success=False))

    async def _async_execute(self, item: QueuedRequest) -> None:
        """Send the request at the head of the queue."""
        loop = asyncio.get_running_loop()
        try:
            body = await self._async_request(item.path)
        except (NukiBridgeApiError, NukiBridgeConnectionError) as err:
            _LOGGER.warning(
                "Error while communicating with the Nuki Bridge (%s, attempt %s of %s): %s",
                item.path,
                item.retry_count + 1,
                self.endpoint.retry_count,
                err,
            )
            self._count_failure(item)
        except Exception:  # pylint: disable=broad-except
            _LOGGER.exception("Unexpected error while requesting %s", item.path)
            self._count_failure(item)
        else:
            self._queue.popleft()
            self._resolve(item, BridgeResponse(success=True, body=body))
        finally:
            self._last_completed = loop.time()
            self._request_task = None
            if not self._closed:
                self._state = DispatcherState.IDLE
                self._process()

    def _count_failure(self, item: QueuedRequest) -> None:
        """Drop the head request once it used up its attempts."""
        item.retry_count += 1
        if item.retry_count >= self.endpoint.retry_count:
            self._queue.popleft()
            self._resolve(item, BridgeResponse(success=False))

    async def _async_request(self, path: str) -> Any:
        """Perform a single GET request against the bridge.

        Returns:
            The decoded JSON body

        Raises:
            NukiBridgeApiError: If the bridge answers with a non-200 status or
                an undecodable body
            NukiBridgeConnectionError: If the connection fails or times out

        """
        try:
            response = await self._session.get(
                self.endpoint.url_for(path),
                timeout=ClientTimeout(total=self.endpoint.timeout),
            )
            try:
                if response.status != HTTPStatus.OK:
                    raise NukiBridgeApiError(f"Status code: {response.status}")
                data = await response.json(content_type=None)
            finally:
                response.release()
        except ClientError as err:
            raise NukiBridgeConnectionError(
                f"Failed to connect to Nuki Bridge: {err}"
            ) from err
        except TimeoutError as err:
            raise NukiBridgeConnectionError(
                "Timeout while waiting for the Nuki Bridge"
            ) from err
        except ValueError as err:
            raise NukiBridgeApiError(f"Invalid response from Nuki Bridge: {err}") from err

        if data is None:
            raise NukiBridgeApiError("Could not get body from response")
        return data

    @staticmethod
    def _resolve(item: QueuedRequest, response: BridgeResponse) -> None:
        # The caller may have stopped waiting, the request is still consumed.
        if not item.future.done():
            item.future.set_result(response)

    async def async_validate_connection(self) -> bool:
        """Test if we can get the device list from the bridge.

        Returns:
            True if connection is successful

        Raises:
            NukiBridgeConfigurationError: If host or token is missing
            NukiBridgeConnectionError: If the device list cannot be fetched

        """
        if not self.endpoint.is_configured:
            raise NukiBridgeConfigurationError("Bridge host and token are required")
        response = await self.async_list()
        if not response.success:
            _LOGGER.error("Failed to connect to Nuki Bridge at %s", self.endpoint.host)
            raise NukiBridgeConnectionError(
                f"Failed to get devices from Nuki Bridge at {self.endpoint.host}"
            )
        if not isinstance(response.body, list):
            raise NukiBridgeApiError("Device list is not a list")
        return True

    async def async_list(self) -> BridgeResponse:
        """Get the devices paired with the bridge, with their last known state."""
        return await self.async_send(ENDPOINT_LIST)

    async def async_lock_action(
        self, nuki_id: int, device_type: int, action: int
    ) -> BridgeResponse:
        """Execute a lock action on a device."""
        return await self.async_send(
            f"{ENDPOINT_LOCK_ACTION}?nukiId={nuki_id}"
            f"&deviceType={device_type}&action={action}"
        )

    async def async_callback_list(self) -> BridgeResponse:
        """Get the callback URLs registered on the bridge."""
        return await self.async_send(ENDPOINT_CALLBACK_LIST)

    async def async_callback_add(self, url: str) -> BridgeResponse:
        """Register a callback URL on the bridge."""
        return await self.async_send(f"{ENDPOINT_CALLBACK_ADD}?url={quote(url, safe='')}")

    async def async_reboot(self) -> BridgeResponse:
        """Reboot the bridge."""
        return await self.async_send(ENDPOINT_REBOOT)

    async def async_close(self) -> None:
        """Stop processing and close the API client session."""
        self._closed = True
        if self._recheck_handle:
            self._recheck_handle.cancel()
            self._recheck_handle = None
        if self._request_task and not self._request_task.done():
            self._request_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._request_task
        self._request_task = None
        while self._queue:
            self._resolve(self._queue.popleft(), BridgeResponse(success=False))
        self._state = DispatcherState.IDLE
        if self._owns_session:
            await self._session.close()
