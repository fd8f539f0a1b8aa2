"""Base entity for Nuki Bridge devices."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import callback
from homeassistant.helpers.entity import DeviceInfo, Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import NukiBridgeCoordinator
from .models import NukiDeviceView


class NukiEntity(CoordinatorEntity[NukiBridgeCoordinator]):
    """Base class for entities bound to a Nuki device."""

    _attr_has_entity_name = True

    def __init__(
        self, coordinator: NukiBridgeCoordinator, view: NukiDeviceView, key: str
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._nuki_id = view.nuki_id
        self._attr_unique_id = f"{view.nuki_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, str(view.nuki_id))},
            name=view.name,
            manufacturer="Nuki",
            model=view.kind.model,
            serial_number=str(view.nuki_id),
            sw_version=view.firmware_version,
            via_device=(DOMAIN, coordinator.config_entry.entry_id),
        )

    @property
    def view(self) -> NukiDeviceView:
        """Return the current view of the device."""
        return self.coordinator.data[self._nuki_id]

    @property
    def available(self) -> bool:  # type: ignore[override]
        """Return if the device is still paired with the bridge."""
        return self._nuki_id in (self.coordinator.data or {})


@callback
def async_add_device_entities(
    coordinator: NukiBridgeCoordinator,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
    factory: Callable[[NukiBridgeCoordinator, NukiDeviceView], Iterable[Entity]],
) -> None:
    """Add entities for current devices and for devices discovered later."""
    known: set[int] = set()

    @callback
    def _async_add_new_devices() -> None:
        current = set(coordinator.data or {})
        # Removed devices may come back with a later listing
        known.intersection_update(current)
        new_ids = current - known
        if not new_ids:
            return
        known.update(new_ids)
        async_add_entities(
            [
                entity
                for nuki_id in sorted(new_ids)
                for entity in factory(coordinator, coordinator.data[nuki_id])
            ]
        )

    _async_add_new_devices()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_new_devices))
