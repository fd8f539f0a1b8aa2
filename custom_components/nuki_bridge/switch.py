"""Ring to open and continuous mode switches of Nuki Openers."""

from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import DOMAIN, FEATURE_CONTINUOUS_MODE, FEATURE_RING_TO_OPEN
from .coordinator import NukiBridgeCoordinator
from .devices import OpenerKind
from .entity import NukiEntity, async_add_device_entities
from .models import NukiDeviceView


def _switch_entities(
    coordinator: NukiBridgeCoordinator, view: NukiDeviceView
) -> list[Entity]:
    if not isinstance(view.kind, OpenerKind):
        return []
    entities: list[Entity] = []
    if view.settings.ring_to_open_enabled:
        entities.append(
            NukiOpenerSwitch(coordinator, view, FEATURE_RING_TO_OPEN, "Ring to Open")
        )
    if view.settings.continuous_mode_enabled:
        entities.append(
            NukiOpenerSwitch(
                coordinator, view, FEATURE_CONTINUOUS_MODE, "Continuous Mode"
            )
        )
    return entities


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Nuki Opener switches."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_device_entities(coordinator, entry, async_add_entities, _switch_entities)


class NukiOpenerSwitch(NukiEntity, SwitchEntity):
    """Switch for a mode of the Opener."""

    def __init__(
        self,
        coordinator: NukiBridgeCoordinator,
        view: NukiDeviceView,
        feature: str,
        name: str,
    ) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, view, feature)
        self._feature = feature
        self._attr_name = name

    @property
    def is_on(self) -> bool | None:  # type: ignore[override]
        """Return if the mode is active."""
        if self._feature == FEATURE_RING_TO_OPEN:
            return self.view.ring_to_open
        return self.view.continuous_mode

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Activate the mode."""
        self.coordinator.async_request_switch(self._nuki_id, self._feature, True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Deactivate the mode."""
        self.coordinator.async_request_switch(self._nuki_id, self._feature, False)
