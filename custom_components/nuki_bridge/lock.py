"""Support for Nuki Smart Locks and Openers."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.lock import LockEntity, LockEntityFeature
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import DOMAIN
from .coordinator import NukiBridgeCoordinator
from .devices import OpenerKind, SmartLockKind
from .entity import NukiEntity, async_add_device_entities
from .models import LockState, NukiDeviceView

_LOGGER = logging.getLogger(__name__)


def _lock_entities(
    coordinator: NukiBridgeCoordinator, view: NukiDeviceView
) -> list[Entity]:
    entities: list[Entity] = []
    if isinstance(view.kind, SmartLockKind):
        entities.append(NukiSmartLock(coordinator, view, "lock"))
        if view.settings.unlatch_lock:
            entities.append(NukiLatch(coordinator, view, "latch"))
    elif isinstance(view.kind, OpenerKind):
        entities.append(NukiOpener(coordinator, view, "lock"))
    return entities


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Nuki lock entities."""
    coordinator: NukiBridgeCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_device_entities(coordinator, entry, async_add_entities, _lock_entities)


class NukiLockBase(NukiEntity, LockEntity):
    """Base class for Nuki locks, exposing a current and a target state."""

    _attr_name = None

    def _states(self) -> tuple[LockState | None, LockState | None]:
        return self.view.lock_current, self.view.lock_target

    @property
    def is_locked(self) -> bool | None:  # type: ignore[override]
        """Return if the lock is secured, None if unknown."""
        current, _ = self._states()
        if current is None or current is LockState.JAMMED:
            return None
        return current is LockState.SECURED

    @property
    def is_jammed(self) -> bool:  # type: ignore[override]
        """Return if the motor of the lock is blocked."""
        current, _ = self._states()
        return current is LockState.JAMMED

    @property
    def is_locking(self) -> bool:  # type: ignore[override]
        """Return if the lock is on its way to secured."""
        current, target = self._states()
        return target is LockState.SECURED and current is LockState.UNSECURED

    @property
    def is_unlocking(self) -> bool:  # type: ignore[override]
        """Return if the lock is on its way to unsecured."""
        current, target = self._states()
        return target is LockState.UNSECURED and current is LockState.SECURED

    async def async_lock(self, **kwargs: Any) -> None:
        """Lock the device."""
        _LOGGER.debug("%s - Lock requested", self._nuki_id)
        self.coordinator.async_request_target(self._nuki_id, LockState.SECURED)

    async def async_unlock(self, **kwargs: Any) -> None:
        """Unlock the device."""
        _LOGGER.debug("%s - Unlock requested", self._nuki_id)
        self.coordinator.async_request_target(self._nuki_id, LockState.UNSECURED)


class NukiSmartLock(NukiLockBase):
    """Representation of the lock cylinder of a Nuki Smart Lock."""

    _attr_supported_features = LockEntityFeature.OPEN

    async def async_open(self, **kwargs: Any) -> None:
        """Unlatch the door."""
        _LOGGER.debug("%s - Open requested", self._nuki_id)
        self.coordinator.async_request_target(
            self._nuki_id, LockState.UNSECURED, latch=True
        )


class NukiLatch(NukiLockBase):
    """Representation of the latch of a Nuki Smart Lock.

    The latch reports whether the door is held shut, so an unlocked door
    still shows a secured latch.
    """

    _attr_name = "Latch"

    def _states(self) -> tuple[LockState | None, LockState | None]:
        return self.view.latch_current, self.view.latch_target

    async def async_lock(self, **kwargs: Any) -> None:
        """Request securing the latch, which only closes by itself."""
        _LOGGER.debug("%s - Latch lock requested", self._nuki_id)
        self.coordinator.async_request_target(
            self._nuki_id, LockState.SECURED, latch=True
        )

    async def async_unlock(self, **kwargs: Any) -> None:
        """Unlatch the door."""
        _LOGGER.debug("%s - Latch unlock requested", self._nuki_id)
        self.coordinator.async_request_target(
            self._nuki_id, LockState.UNSECURED, latch=True
        )


class NukiOpener(NukiLockBase):
    """Representation of a Nuki Opener.

    Unlocking actuates the electric strike, locking is not possible.
    """
