"""Normalization of bridge listings and callbacks into raw device status."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import voluptuous as vol

from .api import NukiBridgeApiError
from .models import RawDeviceStatus

_LOGGER = logging.getLogger(__name__)

DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required("nukiId"): vol.Coerce(int),
        vol.Required("deviceType"): vol.Coerce(int),
        vol.Optional("name"): vol.Any(None, vol.Coerce(str)),
        vol.Optional("firmwareVersion"): vol.Any(None, vol.Coerce(str)),
        vol.Optional("lastKnownState"): vol.Any(None, dict),
    },
    extra=vol.ALLOW_EXTRA,
)

CALLBACK_SCHEMA = vol.Schema(
    {
        vol.Required("nukiId"): vol.All(vol.Coerce(int), vol.Range(min=1)),
    },
    extra=vol.ALLOW_EXTRA,
)


@dataclass(frozen=True)
class NukiDeviceDescriptor:
    """A device entry of the bridge device list."""

    nuki_id: int
    device_type: int
    name: str
    firmware_version: str | None = None
    status: RawDeviceStatus | None = None


def _as_int(value: Any) -> int | None:
    """Return the value as an integer, None if it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_status(nuki_id: int, data: dict[str, Any]) -> RawDeviceStatus:
    """Normalize a state dictionary of the bridge into a raw status."""
    charging = data.get("batteryCharging")
    return RawDeviceStatus(
        nuki_id=nuki_id,
        state=_as_int(data.get("state")),
        mode=_as_int(data.get("mode")),
        door_sensor_state=_as_int(data.get("doorsensorState")),
        battery_critical=bool(data.get("batteryCritical")),
        battery_charging=charging if isinstance(charging, bool) else None,
        battery_charge_state=_as_int(data.get("batteryChargeState")),
        ring_action=bool(data.get("ringactionState")),
    )


def parse_callback(payload: Any) -> RawDeviceStatus:
    """Normalize the body of a bridge callback.

    Raises:
        vol.Invalid: If the payload does not identify a device

    """
    if not isinstance(payload, dict):
        raise vol.Invalid("Callback payload is not an object")
    nuki_id = CALLBACK_SCHEMA(payload)["nukiId"]
    return parse_status(nuki_id, payload)


def parse_device_list(body: Any) -> list[NukiDeviceDescriptor]:
    """Normalize the response of the device list endpoint.

    Raises:
        NukiBridgeApiError: If the response is not a list

    """
    if not isinstance(body, list):
        raise NukiBridgeApiError(f"Unexpected device list: {body!r}")

    descriptors: list[NukiDeviceDescriptor] = []
    for entry in body:
        try:
            device = DEVICE_SCHEMA(entry)
        except vol.Invalid as err:
            _LOGGER.debug("Skipping invalid device entry %s: %s", entry, err)
            continue

        nuki_id = device["nukiId"]
        last_known_state = device.get("lastKnownState")
        descriptors.append(
            NukiDeviceDescriptor(
                nuki_id=nuki_id,
                device_type=device["deviceType"],
                name=device.get("name") or f"Nuki {nuki_id}",
                firmware_version=device.get("firmwareVersion"),
                status=(
                    parse_status(nuki_id, last_known_state)
                    if last_known_state
                    else None
                ),
            )
        )
    return descriptors
