"""Maintenance buttons of the Nuki Bridge."""

from __future__ import annotations

from homeassistant.components.button import ButtonDeviceClass, ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import NukiBridgeCoordinator


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up the Nuki Bridge buttons."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [NukiRebootButton(coordinator), NukiRefreshButton(coordinator)]
    )


class NukiBridgeButton(CoordinatorEntity[NukiBridgeCoordinator], ButtonEntity):
    """Base class for buttons of the bridge itself."""

    _attr_has_entity_name = True
    _attr_entity_category = EntityCategory.CONFIG

    def __init__(self, coordinator: NukiBridgeCoordinator, key: str) -> None:
        """Initialize the button."""
        super().__init__(coordinator)
        entry_id = coordinator.config_entry.entry_id
        self._attr_unique_id = f"{entry_id}_{key}"
        self._attr_device_info = DeviceInfo(identifiers={(DOMAIN, entry_id)})


class NukiRebootButton(NukiBridgeButton):
    """Reboot the bridge."""

    _attr_device_class = ButtonDeviceClass.RESTART

    def __init__(self, coordinator: NukiBridgeCoordinator) -> None:
        """Initialize the button."""
        super().__init__(coordinator, "reboot")

    async def async_press(self) -> None:
        """Reboot the bridge."""
        if not await self.coordinator.async_reboot_bridge():
            raise HomeAssistantError("Failed to reboot the Nuki Bridge")


class NukiRefreshButton(NukiBridgeButton):
    """Fetch the device list of the bridge again."""

    _attr_name = "Refresh devices"

    def __init__(self, coordinator: NukiBridgeCoordinator) -> None:
        """Initialize the button."""
        super().__init__(coordinator, "refresh")

    async def async_press(self) -> None:
        """Refresh the device list."""
        await self.coordinator.async_request_refresh()
