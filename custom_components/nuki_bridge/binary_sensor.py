"""Door and battery sensors of Nuki devices."""

from __future__ import annotations

from typing import Any

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import ATTR_FAULT, DOMAIN
from .coordinator import NukiBridgeCoordinator
from .devices import SmartLockKind
from .entity import NukiEntity, async_add_device_entities
from .models import NukiDeviceView


def _binary_sensor_entities(
    coordinator: NukiBridgeCoordinator, view: NukiDeviceView
) -> list[Entity]:
    entities: list[Entity] = [NukiBatteryLowSensor(coordinator, view, "battery_low")]
    if isinstance(view.kind, SmartLockKind):
        entities.append(
            NukiBatteryChargingSensor(coordinator, view, "battery_charging")
        )
        if view.settings.door_sensor_enabled:
            entities.append(NukiDoorSensor(coordinator, view, "door"))
    return entities


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Nuki binary sensors."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_device_entities(
        coordinator, entry, async_add_entities, _binary_sensor_entities
    )


class NukiDoorSensor(NukiEntity, BinarySensorEntity):
    """Door sensor paired with a Smart Lock."""

    _attr_device_class = BinarySensorDeviceClass.DOOR
    _attr_name = "Door"

    @property
    def is_on(self) -> bool | None:  # type: ignore[override]
        """Return if the door is open."""
        return self.view.door_open

    @property
    def extra_state_attributes(self) -> dict[str, Any]:  # type: ignore[override]
        """Return if the door sensor reports a fault."""
        return {ATTR_FAULT: self.view.door_fault}


class NukiBatteryLowSensor(NukiEntity, BinarySensorEntity):
    """Critical battery indicator."""

    _attr_device_class = BinarySensorDeviceClass.BATTERY
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def is_on(self) -> bool | None:  # type: ignore[override]
        """Return if the battery is low."""
        return self.view.battery_low


class NukiBatteryChargingSensor(NukiEntity, BinarySensorEntity):
    """Battery charging indicator."""

    _attr_device_class = BinarySensorDeviceClass.BATTERY_CHARGING
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def is_on(self) -> bool | None:  # type: ignore[override]
        """Return if the battery is charging."""
        return self.view.battery_charging
