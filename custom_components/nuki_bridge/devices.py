"""State reconciliation and command translation for Nuki device kinds."""

from __future__ import annotations

import logging
from typing import Any

from .const import (
    DEVICE_TYPE_OPENER,
    DEVICE_TYPE_SMART_LOCK,
    DOOR_SENSOR_CLOSED,
    DOOR_SENSOR_OPEN,
    FEATURE_CONTINUOUS_MODE,
    FEATURE_RING_TO_OPEN,
    LOCK_ACTION_LOCK,
    LOCK_ACTION_UNLATCH,
    LOCK_ACTION_UNLOCK,
    LOCK_STATE_LOCKED,
    LOCK_STATE_MOTOR_BLOCKED,
    LOCK_STATE_UNLATCHED,
    LOCK_STATE_UNLOCKED,
    OPENER_ACTION_ACTIVATE_CONTINUOUS,
    OPENER_ACTION_ACTIVATE_RTO,
    OPENER_ACTION_DEACTIVATE_CONTINUOUS,
    OPENER_ACTION_DEACTIVATE_RTO,
    OPENER_ACTION_ELECTRIC_STRIKE,
    OPENER_MODE_CONTINUOUS,
    OPENER_STATE_ONLINE,
    OPENER_STATE_OPEN,
    OPENER_STATE_OPENING,
    OPENER_STATE_RTO_ACTIVE,
)
from .models import LockState, NukiCommand, NukiDeviceView, RawDeviceStatus

_LOGGER = logging.getLogger(__name__)


class NukiDeviceKind:
    """Behaviour shared by all device kinds handled by the bridge."""

    device_type: int
    model: str

    def reconcile(self, view: NukiDeviceView, status: RawDeviceStatus) -> None:
        """Update the view in place from a raw status."""
        raise NotImplementedError

    def translate_command(
        self, view: NukiDeviceView, target: LockState, *, latch: bool = False
    ) -> NukiCommand | None:
        """Return the command reaching the target state, None if nothing to do."""
        raise NotImplementedError

    def translate_switch(
        self, view: NukiDeviceView, feature: str, on: bool
    ) -> NukiCommand | None:
        """Return the command toggling a device feature."""
        return None

    def is_ring(self, view: NukiDeviceView, status: RawDeviceStatus) -> bool:
        """Return if the status carries a doorbell ring to forward."""
        return False

    def describe(self, view: NukiDeviceView) -> dict[str, Any]:
        """Return a serializable snapshot of the view."""
        return {
            "nuki_id": view.nuki_id,
            "name": view.name,
            "model": self.model,
            "firmware_version": view.firmware_version,
            "lock": {"current": view.lock_current, "target": view.lock_target},
            "battery": {
                "low": view.battery_low,
                "charging": view.battery_charging,
                "level": view.battery_level,
            },
        }

    @staticmethod
    def _set_lock(
        view: NukiDeviceView, current: LockState, target: LockState | None
    ) -> None:
        _LOGGER.debug(
            "%s - Updating lock state: %s/%s", view.nuki_id, current, target or "-"
        )
        view.lock_current = current
        if target is not None:
            view.lock_target = target

    @staticmethod
    def _set_battery_critical(view: NukiDeviceView, status: RawDeviceStatus) -> None:
        _LOGGER.debug(
            "%s - Updating critical battery: %s", view.nuki_id, status.battery_critical
        )
        view.battery_low = status.battery_critical


class SmartLockKind(NukiDeviceKind):
    """Nuki Smart Lock, with an optional latch and door sensor."""

    device_type = DEVICE_TYPE_SMART_LOCK
    model = "Smart Lock"

    def reconcile(self, view: NukiDeviceView, status: RawDeviceStatus) -> None:
        """Update the view in place from a raw status."""
        latch = view.settings.unlatch_lock
        if status.state == LOCK_STATE_LOCKED:
            self._set_lock(view, LockState.SECURED, LockState.SECURED)
            if latch:
                view.latch_current = view.latch_target = LockState.SECURED
        elif status.state == LOCK_STATE_UNLOCKED:
            self._set_lock(view, LockState.UNSECURED, LockState.UNSECURED)
            # An unlocked door is still shut, so the latch stays closed
            if latch:
                view.latch_current = view.latch_target = LockState.SECURED
        elif status.state == LOCK_STATE_UNLATCHED:
            self._set_lock(view, LockState.UNSECURED, LockState.UNSECURED)
            if latch:
                view.latch_current = view.latch_target = LockState.UNSECURED
        elif status.state == LOCK_STATE_MOTOR_BLOCKED:
            self._set_lock(view, LockState.JAMMED, None)
            if latch:
                view.latch_current = LockState.JAMMED

        self._set_battery_critical(view, status)
        if status.battery_charging is not None:
            view.battery_charging = status.battery_charging
        if status.battery_charge_state is not None:
            view.battery_level = status.battery_charge_state

        if view.settings.door_sensor_enabled:
            if status.door_sensor_state == DOOR_SENSOR_OPEN:
                view.door_open = True
                view.door_fault = False
            elif status.door_sensor_state == DOOR_SENSOR_CLOSED:
                view.door_open = False
                view.door_fault = False
            else:
                _LOGGER.debug(
                    "%s - Door sensor fault: %s", view.nuki_id, status.door_sensor_state
                )
                view.door_fault = True

    def translate_command(
        self, view: NukiDeviceView, target: LockState, *, latch: bool = False
    ) -> NukiCommand | None:
        """Return the command reaching the target state, None if nothing to do."""
        if latch:
            return self._translate_unlatch(view, target)

        settings = view.settings
        if target is LockState.UNSECURED:
            if view.lock_current is LockState.SECURED:
                if settings.unlatch_from_locked_to_unlocked:
                    return self._unlatch_command()
                return NukiCommand(
                    name="Unlock",
                    device_type=self.device_type,
                    action=LOCK_ACTION_UNLOCK,
                    lock_state=LockState.UNSECURED,
                )
            if view.lock_current is LockState.UNSECURED:
                if settings.unlatch_from_unlocked_to_unlocked:
                    return self._unlatch_command()
            return None

        if target is LockState.SECURED:
            if view.lock_current is LockState.SECURED:
                if not settings.lock_from_locked_to_locked:
                    return None
                name = "Lock again (already locked)"
            else:
                name = "Lock"
            return NukiCommand(
                name=name,
                device_type=self.device_type,
                action=LOCK_ACTION_LOCK,
                lock_state=LockState.SECURED,
                latch_state=LockState.SECURED,
            )
        return None

    def _translate_unlatch(
        self, view: NukiDeviceView, target: LockState
    ) -> NukiCommand | None:
        # The latch can only be opened, it closes by itself
        if target is not LockState.UNSECURED:
            return None
        if (
            view.lock_current is LockState.SECURED
            and view.settings.unlatch_lock_prevent_unlatch_if_locked
        ):
            return NukiCommand(
                name="Unlatch prevented (locked)",
                device_type=self.device_type,
                latch_state=LockState.SECURED,
            )
        return self._unlatch_command()

    def _unlatch_command(self) -> NukiCommand:
        return NukiCommand(
            name="Unlatch",
            device_type=self.device_type,
            action=LOCK_ACTION_UNLATCH,
            lock_state=LockState.UNSECURED,
            latch_state=LockState.UNSECURED,
        )

    def describe(self, view: NukiDeviceView) -> dict[str, Any]:
        """Return a serializable snapshot of the view."""
        data = super().describe(view)
        if view.settings.unlatch_lock:
            data["latch"] = {"current": view.latch_current, "target": view.latch_target}
        if view.settings.door_sensor_enabled:
            data["door"] = {"open": view.door_open, "fault": view.door_fault}
        return data


class OpenerKind(NukiDeviceKind):
    """Nuki Opener, driving the electric strike of an intercom."""

    device_type = DEVICE_TYPE_OPENER
    model = "Opener"

    def reconcile(self, view: NukiDeviceView, status: RawDeviceStatus) -> None:
        """Update the view in place from a raw status."""
        settings = view.settings
        # Online and RTO active both mean the door is shut
        if status.state in (OPENER_STATE_ONLINE, OPENER_STATE_RTO_ACTIVE):
            if not settings.leave_open:
                self._set_lock(view, LockState.SECURED, LockState.SECURED)
        elif status.state == OPENER_STATE_OPEN:
            self._set_lock(view, LockState.UNSECURED, LockState.UNSECURED)
        elif status.state == OPENER_STATE_OPENING:
            _LOGGER.debug("%s - Updating lock state: -/%s", view.nuki_id, LockState.UNSECURED)
            view.lock_target = LockState.UNSECURED

        if settings.continuous_mode_enabled and status.mode is not None:
            _LOGGER.debug("%s - Updating continuous mode: %s", view.nuki_id, status.mode)
            view.continuous_mode = status.mode == OPENER_MODE_CONTINUOUS

        if settings.ring_to_open_enabled and status.state in (
            OPENER_STATE_ONLINE,
            OPENER_STATE_RTO_ACTIVE,
        ):
            _LOGGER.debug("%s - Updating RTO: %s", view.nuki_id, status.state)
            view.ring_to_open = status.state == OPENER_STATE_RTO_ACTIVE

        self._set_battery_critical(view, status)

    def is_ring(self, view: NukiDeviceView, status: RawDeviceStatus) -> bool:
        """Return if the status carries a doorbell ring to forward."""
        return view.settings.doorbell_enabled and status.ring_action

    def translate_command(
        self, view: NukiDeviceView, target: LockState, *, latch: bool = False
    ) -> NukiCommand | None:
        """Return the command reaching the target state, None if nothing to do."""
        # The opener has no latch and cannot be secured remotely
        if latch or target is not LockState.UNSECURED:
            return None
        return NukiCommand(
            name="Open",
            device_type=self.device_type,
            action=OPENER_ACTION_ELECTRIC_STRIKE,
            lock_state=LockState.UNSECURED,
        )

    def translate_switch(
        self, view: NukiDeviceView, feature: str, on: bool
    ) -> NukiCommand | None:
        """Return the command toggling ring to open or continuous mode."""
        if feature == FEATURE_RING_TO_OPEN:
            return NukiCommand(
                name=f"Set RTO to {on}",
                device_type=self.device_type,
                action=OPENER_ACTION_ACTIVATE_RTO if on else OPENER_ACTION_DEACTIVATE_RTO,
                ring_to_open=on,
            )
        if feature == FEATURE_CONTINUOUS_MODE:
            return NukiCommand(
                name=f"Set continuous mode to {on}",
                device_type=self.device_type,
                action=(
                    OPENER_ACTION_ACTIVATE_CONTINUOUS
                    if on
                    else OPENER_ACTION_DEACTIVATE_CONTINUOUS
                ),
                continuous_mode=on,
            )
        return None

    def describe(self, view: NukiDeviceView) -> dict[str, Any]:
        """Return a serializable snapshot of the view."""
        data = super().describe(view)
        if view.settings.ring_to_open_enabled:
            data["ring_to_open"] = view.ring_to_open
        if view.settings.continuous_mode_enabled:
            data["continuous_mode"] = view.continuous_mode
        return data


SMART_LOCK = SmartLockKind()
OPENER = OpenerKind()

_KINDS: dict[int, NukiDeviceKind] = {
    DEVICE_TYPE_SMART_LOCK: SMART_LOCK,
    DEVICE_TYPE_OPENER: OPENER,
}


def device_kind_for(device_type: int) -> NukiDeviceKind | None:
    """Return the kind handling a bridge device type, None if unsupported."""
    return _KINDS.get(device_type)
