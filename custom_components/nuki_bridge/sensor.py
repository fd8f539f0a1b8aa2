"""Battery level sensor of Nuki Smart Locks."""

from __future__ import annotations

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import DOMAIN
from .coordinator import NukiBridgeCoordinator
from .devices import SmartLockKind
from .entity import NukiEntity, async_add_device_entities
from .models import NukiDeviceView


def _sensor_entities(
    coordinator: NukiBridgeCoordinator, view: NukiDeviceView
) -> list[Entity]:
    if isinstance(view.kind, SmartLockKind):
        return [NukiBatteryLevelSensor(coordinator, view, "battery_level")]
    return []


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Nuki sensors."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_device_entities(coordinator, entry, async_add_entities, _sensor_entities)


class NukiBatteryLevelSensor(NukiEntity, SensorEntity):
    """Battery charge of a Smart Lock."""

    _attr_device_class = SensorDeviceClass.BATTERY
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def native_value(self) -> int | None:  # type: ignore[override]
        """Return the battery charge in percent."""
        return self.view.battery_level
