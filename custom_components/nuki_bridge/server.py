"""HTTP servers receiving bridge callbacks and serving the control API."""

from __future__ import annotations

from http import HTTPStatus
import logging

from aiohttp import web
import voluptuous as vol

from .coordinator import NukiBridgeCoordinator
from .devices import SmartLockKind
from .ingestion import parse_callback
from .models import LockState

_LOGGER = logging.getLogger(__name__)

KEY_COORDINATOR = web.AppKey("coordinator", NukiBridgeCoordinator)
KEY_API_TOKEN = web.AppKey("api_token", str)

DEVICE_UPDATE_SCHEMA = vol.Schema(
    vol.All(
        {
            vol.Optional("locked"): bool,
            vol.Optional("unlatch"): vol.In([True]),
        },
        vol.Length(min=1),
    )
)


async def _async_handle_callback(request: web.Request) -> web.Response:
    """Handle a state change pushed by the bridge."""
    try:
        payload = await request.json()
    except ValueError:
        _LOGGER.warning("Callback received, but body is not JSON")
        return web.Response(status=HTTPStatus.BAD_REQUEST)

    try:
        status = parse_callback(payload)
    except vol.Invalid:
        _LOGGER.warning("Callback received, but invalid")
        return web.Response(status=HTTPStatus.BAD_REQUEST)

    _LOGGER.debug("Callback received for %s", status.nuki_id)
    request.app[KEY_COORDINATOR].async_handle_callback(status)
    return web.Response(status=HTTPStatus.OK)


def create_callback_app(coordinator: NukiBridgeCoordinator) -> web.Application:
    """Create the application receiving the bridge callbacks."""
    app = web.Application()
    app[KEY_COORDINATOR] = coordinator
    app.router.add_post("/{tail:.*}", _async_handle_callback)
    return app


@web.middleware
async def _token_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Reject requests without the configured token."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        _LOGGER.warning("API - Authorization header missing")
        return web.Response(status=HTTPStatus.UNAUTHORIZED)
    if authorization != request.app[KEY_API_TOKEN]:
        _LOGGER.warning("API - Token invalid")
        return web.Response(status=HTTPStatus.UNAUTHORIZED)
    return await handler(request)


def _device_id(request: web.Request) -> int | None:
    try:
        nuki_id = int(request.match_info["nuki_id"])
    except ValueError:
        return None
    if nuki_id not in (request.app[KEY_COORDINATOR].data or {}):
        return None
    return nuki_id


async def _async_get_device(request: web.Request) -> web.Response:
    """Return the derived state of a device."""
    nuki_id = _device_id(request)
    if nuki_id is None:
        return web.Response(status=HTTPStatus.NOT_FOUND)
    view = request.app[KEY_COORDINATOR].data[nuki_id]
    return web.json_response(view.kind.describe(view))


async def _async_post_device(request: web.Request) -> web.Response:
    """Apply a desired state change to a device."""
    nuki_id = _device_id(request)
    if nuki_id is None:
        _LOGGER.warning("API - Device not found")
        return web.Response(status=HTTPStatus.NOT_FOUND)

    try:
        body = DEVICE_UPDATE_SCHEMA(await request.json())
    except (ValueError, vol.Invalid):
        _LOGGER.warning("API - Body invalid")
        return web.Response(status=HTTPStatus.BAD_REQUEST)

    coordinator = request.app[KEY_COORDINATOR]
    if body.get("unlatch") and not isinstance(
        coordinator.data[nuki_id].kind, SmartLockKind
    ):
        _LOGGER.warning("API - %s has no latch", nuki_id)
        return web.Response(status=HTTPStatus.BAD_REQUEST)

    confirmed = True
    if "locked" in body:
        _LOGGER.info("%s - Set locked to %s via API", nuki_id, body["locked"])
        confirmed &= await coordinator.async_set_target(
            nuki_id, LockState.SECURED if body["locked"] else LockState.UNSECURED
        )
    if body.get("unlatch"):
        _LOGGER.info("%s - Unlatch via API", nuki_id)
        confirmed &= await coordinator.async_set_target(
            nuki_id, LockState.UNSECURED, latch=True
        )

    if not confirmed:
        _LOGGER.warning("API - Error while setting value")
        return web.Response(status=HTTPStatus.BAD_REQUEST)
    return web.Response(status=HTTPStatus.OK)


def create_control_app(coordinator: NukiBridgeCoordinator, token: str) -> web.Application:
    """Create the token protected control API."""
    app = web.Application(middlewares=[_token_middleware])
    app[KEY_COORDINATOR] = coordinator
    app[KEY_API_TOKEN] = token
    app.router.add_get("/devices/{nuki_id}", _async_get_device)
    app.router.add_post("/devices/{nuki_id}", _async_post_device)
    return app


async def async_start_server(app: web.Application, port: int) -> web.AppRunner:
    """Serve an application on all interfaces.

    Raises:
        OSError: If the port cannot be bound

    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise
    return runner
