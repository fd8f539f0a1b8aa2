"""Integration for Nuki Smart Locks and Openers paired with a Nuki Bridge."""

from __future__ import annotations

from datetime import timedelta
import logging

from aiohttp import web

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_PORT, CONF_SCAN_INTERVAL, CONF_TOKEN
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import device_registry as dr

from .api import NukiBridgeClient, NukiBridgeEndpoint
from .const import (
    CONF_API_ENABLED,
    CONF_API_PORT,
    CONF_API_TOKEN,
    CONF_CALLBACK_HOST,
    CONF_CALLBACK_PORT,
    CONF_REQUEST_INTERVAL,
    CONF_RETRY_COUNT,
    DEFAULT_API_PORT,
    DEFAULT_BRIDGE_PORT,
    DEFAULT_CALLBACK_PORT,
    DEFAULT_REQUEST_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_SCAN_INTERVAL,
    DOMAIN,
    PLATFORMS,
)
from .coordinator import NukiBridgeCoordinator
from .server import async_start_server, create_callback_app, create_control_app

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a Nuki Bridge from a config entry."""
    options = entry.options

    # Create API instance
    client = NukiBridgeClient(
        NukiBridgeEndpoint(
            host=entry.data[CONF_HOST],
            port=entry.data.get(CONF_PORT, DEFAULT_BRIDGE_PORT),
            token=entry.data[CONF_TOKEN],
            request_interval=options.get(CONF_REQUEST_INTERVAL, DEFAULT_REQUEST_INTERVAL),
            retry_count=options.get(CONF_RETRY_COUNT, DEFAULT_RETRY_COUNT),
        )
    )

    # Create coordinator, the first refresh discovers the devices
    coordinator = NukiBridgeCoordinator(
        hass,
        entry,
        client,
        update_interval=timedelta(
            minutes=options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL)
        ),
    )
    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady:
        await client.async_close()
        raise

    # Store coordinator for platforms to access
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    dr.async_get(hass).async_get_or_create(
        config_entry_id=entry.entry_id,
        identifiers={(DOMAIN, entry.entry_id)},
        manufacturer="Nuki",
        model="Bridge",
        name=f"Nuki Bridge ({entry.data[CONF_HOST]})",
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Receive state changes pushed by the bridge
    callback_host = entry.data.get(CONF_CALLBACK_HOST)
    if callback_host:
        callback_port = entry.data.get(CONF_CALLBACK_PORT, DEFAULT_CALLBACK_PORT)
        if await _async_serve(
            entry, create_callback_app(coordinator), callback_port, "Callback server"
        ):
            # Registration waits behind other bridge requests, do not block setup
            entry.async_create_background_task(
                hass,
                coordinator.async_register_callback(
                    f"http://{callback_host}:{callback_port}"
                ),
                "Nuki Bridge callback registration",
            )
    else:
        _LOGGER.warning(
            "No callback host configured, states are only updated on refresh"
        )

    if options.get(CONF_API_ENABLED):
        await _async_serve(
            entry,
            create_control_app(coordinator, options.get(CONF_API_TOKEN, "")),
            options.get(CONF_API_PORT, DEFAULT_API_PORT),
            "API",
        )

    entry.async_on_unload(entry.add_update_listener(update_listener))

    return True


async def _async_serve(
    entry: ConfigEntry, app: web.Application, port: int, name: str
) -> bool:
    """Start a server that is stopped when the entry is unloaded."""
    try:
        runner = await async_start_server(app, port)
    except OSError as err:
        _LOGGER.error("%s could not be started on port %s: %s", name, port, err)
        return False
    entry.async_on_unload(runner.cleanup)
    _LOGGER.info("%s started on port %s", name, port)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        coordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.client.async_close()

        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)

    return unload_ok


async def update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    await hass.config_entries.async_reload(entry.entry_id)
