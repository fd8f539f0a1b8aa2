"""Data update coordinator for Nuki Bridge devices."""

from __future__ import annotations

from datetime import timedelta
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import BridgeResponse, NukiBridgeApiError, NukiBridgeClient
from .const import CONF_DEVICES, DOMAIN, SIGNAL_DOORBELL_RING
from .devices import device_kind_for
from .ingestion import NukiDeviceDescriptor, parse_device_list
from .models import (
    LockState,
    NukiBridgeData,
    NukiCommand,
    NukiDeviceSettings,
    NukiDeviceView,
    RawDeviceStatus,
)

_LOGGER = logging.getLogger(__name__)


def _confirmed(response: BridgeResponse) -> bool:
    """Return if the bridge reported the action as successful."""
    return (
        response.success
        and isinstance(response.body, dict)
        and response.body.get("success") is True
    )


class NukiBridgeCoordinator(DataUpdateCoordinator[NukiBridgeData]):
    """Nuki Bridge data update coordinator.

    Owns the device views of one bridge. Views are only mutated from the
    event loop, in sections without awaits, so reconciliation, optimistic
    updates and teardown never interleave.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        client: NukiBridgeClient,
        update_interval: timedelta | None = None,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=update_interval,
        )
        self.client = client

    def _settings_for(self, nuki_id: int) -> NukiDeviceSettings:
        devices = self.config_entry.options.get(CONF_DEVICES, {})
        return NukiDeviceSettings.from_options(devices.get(str(nuki_id)))

    async def _async_update_data(self) -> NukiBridgeData:
        """Fetch the device list from the bridge.

        Returns:
            Device views keyed by Nuki ID

        Raises:
            UpdateFailed: If the device list could not be fetched

        """
        response = await self.client.async_list()
        if not response.success:
            raise UpdateFailed("Could not get devices from the Nuki Bridge")
        try:
            descriptors = parse_device_list(response.body)
        except NukiBridgeApiError as err:
            raise UpdateFailed(f"Invalid response from Nuki Bridge: {err}") from err

        return self._merge_devices(descriptors)

    def _merge_devices(self, descriptors: list[NukiDeviceDescriptor]) -> NukiBridgeData:
        """Create, reconcile and tear down views from a fresh device list."""
        devices: NukiBridgeData = dict(self.data or {})
        present: set[int] = set()

        for descriptor in descriptors:
            kind = device_kind_for(descriptor.device_type)
            if kind is None:
                _LOGGER.debug(
                    "Device with Nuki ID %s not added, device type %s is not supported",
                    descriptor.nuki_id,
                    descriptor.device_type,
                )
                continue

            present.add(descriptor.nuki_id)
            view = devices.get(descriptor.nuki_id)
            if view is None:
                _LOGGER.info(
                    "Device with Nuki ID %s and name %s is a %s",
                    descriptor.nuki_id,
                    descriptor.name,
                    kind.model,
                )
                view = NukiDeviceView(
                    nuki_id=descriptor.nuki_id,
                    name=descriptor.name,
                    kind=kind,
                    settings=self._settings_for(descriptor.nuki_id),
                )
                devices[descriptor.nuki_id] = view

            view.name = descriptor.name
            view.firmware_version = descriptor.firmware_version
            if descriptor.status is not None:
                kind.reconcile(view, descriptor.status)

        for nuki_id in set(devices) - present:
            self._async_remove_device(devices.pop(nuki_id))

        return devices

    @callback
    def _async_remove_device(self, view: NukiDeviceView) -> None:
        """Remove a device that is no longer paired with the bridge."""
        _LOGGER.info("Removing device with Nuki ID %s", view.nuki_id)
        device_registry = dr.async_get(self.hass)
        device = device_registry.async_get_device(
            identifiers={(DOMAIN, str(view.nuki_id))}
        )
        if device is not None:
            device_registry.async_update_device(
                device.id, remove_config_entry_id=self.config_entry.entry_id
            )

    @callback
    def async_handle_callback(self, status: RawDeviceStatus) -> bool:
        """Apply a state pushed by the bridge.

        Returns:
            True if the status belonged to a known device

        """
        view = (self.data or {}).get(status.nuki_id)
        if view is None:
            _LOGGER.debug("Callback for unknown device %s ignored", status.nuki_id)
            return False

        view.kind.reconcile(view, status)
        if view.kind.is_ring(view, status):
            _LOGGER.debug("%s - Updating doorbell: Ring", view.nuki_id)
            async_dispatcher_send(
                self.hass, SIGNAL_DOORBELL_RING.format(view.nuki_id)
            )
        self.async_update_listeners()
        return True

    async def async_register_callback(self, url: str) -> bool:
        """Make sure the bridge pushes state changes to the callback URL."""
        response = await self.client.async_callback_list()
        if not response.success:
            _LOGGER.warning("Could not get the callbacks registered on the Nuki Bridge")
            return False

        callbacks = (
            response.body.get("callbacks") or []
            if isinstance(response.body, dict)
            else []
        )
        if any(entry.get("url") == url for entry in callbacks if isinstance(entry, dict)):
            _LOGGER.debug("Callback %s already registered", url)
            return True

        response = await self.client.async_callback_add(url)
        if not response.success or (
            isinstance(response.body, dict) and response.body.get("success") is False
        ):
            _LOGGER.warning("Could not register callback %s on the Nuki Bridge", url)
            return False

        _LOGGER.info("Callback %s registered", url)
        return True

    async def async_set_target(
        self, nuki_id: int, target: LockState, *, latch: bool = False
    ) -> bool:
        """Move the lock (or its latch) of a device to the target state.

        Returns:
            True if the device is, or already was, in the requested state

        """
        view = (self.data or {}).get(nuki_id)
        if view is None:
            _LOGGER.warning("Cannot set target of unknown device %s", nuki_id)
            return False
        command = view.kind.translate_command(view, target, latch=latch)
        if command is None:
            current = view.latch_current if latch else view.lock_current
            _LOGGER.debug(
                "%s - Nothing to do, current state %s, requested %s",
                nuki_id,
                current,
                target,
            )
            return current is target
        return await self._async_run_command(view, command)

    async def async_set_switch(self, nuki_id: int, feature: str, on: bool) -> bool:
        """Toggle a switchable feature of a device."""
        view = (self.data or {}).get(nuki_id)
        if view is None:
            _LOGGER.warning("Cannot set %s of unknown device %s", feature, nuki_id)
            return False
        command = view.kind.translate_switch(view, feature, on)
        if command is None:
            _LOGGER.warning("%s - %s is not supported", nuki_id, feature)
            return False
        return await self._async_run_command(view, command)

    @callback
    def async_request_target(
        self, nuki_id: int, target: LockState, *, latch: bool = False
    ) -> None:
        """Schedule a target change without waiting for the bridge."""
        self.config_entry.async_create_task(
            self.hass,
            self.async_set_target(nuki_id, target, latch=latch),
            f"{DOMAIN} set target {nuki_id}",
        )

    @callback
    def async_request_switch(self, nuki_id: int, feature: str, on: bool) -> None:
        """Schedule a feature toggle without waiting for the bridge."""
        self.config_entry.async_create_task(
            self.hass,
            self.async_set_switch(nuki_id, feature, on),
            f"{DOMAIN} set {feature} {nuki_id}",
        )

    async def _async_run_command(
        self, view: NukiDeviceView, command: NukiCommand
    ) -> bool:
        if command.action is None:
            _LOGGER.info("%s - %s", view.nuki_id, command.name)
            view.apply_command(command)
            self.async_update_listeners()
            return False

        _LOGGER.info("%s - %s", view.nuki_id, command.name)
        response = await self.client.async_lock_action(
            view.nuki_id, command.device_type, command.action
        )
        if not _confirmed(response):
            _LOGGER.warning(
                "%s - %s could not be confirmed by the Nuki Bridge",
                view.nuki_id,
                command.name,
            )
            return False

        # The device may have been removed while the request was queued
        view = (self.data or {}).get(view.nuki_id)
        if view is None:
            return False
        view.apply_command(command)
        self.async_update_listeners()
        return True

    async def async_reboot_bridge(self) -> bool:
        """Reboot the bridge."""
        _LOGGER.info("%s - Reboot", self.client.endpoint.host)
        response = await self.client.async_reboot()
        return response.success
