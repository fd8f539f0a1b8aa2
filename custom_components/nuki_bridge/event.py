"""Doorbell events of Nuki Openers."""

from __future__ import annotations

from homeassistant.components.event import EventDeviceClass, EventEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import DOMAIN, EVENT_TYPE_RING, SIGNAL_DOORBELL_RING
from .coordinator import NukiBridgeCoordinator
from .devices import OpenerKind
from .entity import NukiEntity, async_add_device_entities
from .models import NukiDeviceView


def _event_entities(
    coordinator: NukiBridgeCoordinator, view: NukiDeviceView
) -> list[Entity]:
    if isinstance(view.kind, OpenerKind) and view.settings.doorbell_enabled:
        return [NukiDoorbell(coordinator, view, "doorbell")]
    return []


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Nuki Opener doorbells."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_device_entities(coordinator, entry, async_add_entities, _event_entities)


class NukiDoorbell(NukiEntity, EventEntity):
    """Doorbell ring detected by the Opener."""

    _attr_device_class = EventDeviceClass.DOORBELL
    _attr_event_types = [EVENT_TYPE_RING]
    _attr_name = "Doorbell"

    async def async_added_to_hass(self) -> None:
        """Subscribe to rings of the device."""
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_DOORBELL_RING.format(self._nuki_id),
                self._async_handle_ring,
            )
        )

    @callback
    def _async_handle_ring(self) -> None:
        self._trigger_event(EVENT_TYPE_RING)
        self.async_write_ha_state()
