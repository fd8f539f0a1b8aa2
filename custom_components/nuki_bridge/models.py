"""Data models for the Nuki Bridge integration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .devices import NukiDeviceKind


class LockState(StrEnum):
    """Externally visible state of a lock or latch."""

    SECURED = "secured"
    UNSECURED = "unsecured"
    JAMMED = "jammed"


@dataclass(frozen=True)
class RawDeviceStatus:
    """Device state as reported by the bridge, in a listing or a callback."""

    nuki_id: int
    state: int | None = None
    mode: int | None = None
    door_sensor_state: int | None = None
    battery_critical: bool = False
    battery_charging: bool | None = None
    battery_charge_state: int | None = None
    ring_action: bool = False


@dataclass(frozen=True)
class NukiDeviceSettings:
    """Per-device behaviour configured by the user."""

    unlatch_lock: bool = False
    unlatch_from_locked_to_unlocked: bool = False
    unlatch_from_unlocked_to_unlocked: bool = False
    lock_from_locked_to_locked: bool = False
    unlatch_lock_prevent_unlatch_if_locked: bool = False
    door_sensor_enabled: bool = False
    leave_open: bool = False
    ring_to_open_enabled: bool = False
    continuous_mode_enabled: bool = False
    doorbell_enabled: bool = False

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> NukiDeviceSettings:
        """Build the settings from the stored options of a device."""
        if not options:
            return cls()
        return cls(
            **{
                flag.name: bool(options[flag.name])
                for flag in fields(cls)
                if flag.name in options
            }
        )


@dataclass(frozen=True)
class NukiCommand:
    """Bridge action together with the state it leads to once confirmed.

    A command without an action is a local correction that is applied
    without contacting the bridge.
    """

    name: str
    device_type: int
    action: int | None = None
    lock_state: LockState | None = None
    latch_state: LockState | None = None
    ring_to_open: bool | None = None
    continuous_mode: bool | None = None


@dataclass
class NukiDeviceView:
    """Local model for storing the derived state of a Nuki device."""

    nuki_id: int
    name: str
    kind: NukiDeviceKind
    settings: NukiDeviceSettings
    firmware_version: str | None = None
    lock_current: LockState | None = None
    lock_target: LockState | None = None
    latch_current: LockState | None = None
    latch_target: LockState | None = None
    door_open: bool | None = None
    door_fault: bool = False
    ring_to_open: bool | None = None
    continuous_mode: bool | None = None
    battery_low: bool | None = None
    battery_charging: bool | None = None
    battery_level: int | None = None

    def apply_command(self, command: NukiCommand) -> None:
        """Apply the state of a confirmed (or local) command."""
        if command.lock_state is not None:
            self.lock_current = self.lock_target = command.lock_state
        if command.latch_state is not None and self.settings.unlatch_lock:
            self.latch_current = self.latch_target = command.latch_state
        if command.ring_to_open is not None:
            self.ring_to_open = command.ring_to_open
        if command.continuous_mode is not None:
            self.continuous_mode = command.continuous_mode


# Represents all devices keyed by their Nuki ID
NukiBridgeData = dict[int, NukiDeviceView]
