"""Global fixtures for Nuki Bridge integration."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.nuki_bridge.api import BridgeResponse, NukiBridgeClient
from custom_components.nuki_bridge.const import DOMAIN
from custom_components.nuki_bridge.coordinator import NukiBridgeCoordinator
from homeassistant.core import HomeAssistant

from .const import MOCK_CONFIG, MOCK_DEVICE_OPTIONS, MOCK_LISTING

pytest_plugins = "pytest_homeassistant_custom_component"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> None:  # noqa: D103
    return


@pytest.fixture
def config_entry() -> MockConfigEntry:
    """Return a config entry with device options."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Nuki Bridge (test_host)",
        unique_id="test_host",
        data=MOCK_CONFIG,
        options=MOCK_DEVICE_OPTIONS,
    )


@pytest.fixture
def mock_client() -> MagicMock:
    """Return a bridge client answering with the mock device list."""
    client = MagicMock(spec=NukiBridgeClient)
    client.endpoint = MagicMock(host="test_host")
    client.async_list = AsyncMock(
        return_value=BridgeResponse(success=True, body=MOCK_LISTING)
    )
    client.async_lock_action = AsyncMock(
        return_value=BridgeResponse(success=True, body={"success": True})
    )
    client.async_callback_list = AsyncMock(
        return_value=BridgeResponse(success=True, body={"callbacks": []})
    )
    client.async_callback_add = AsyncMock(
        return_value=BridgeResponse(success=True, body={"success": True})
    )
    client.async_reboot = AsyncMock(
        return_value=BridgeResponse(success=True, body={"success": True})
    )
    client.async_close = AsyncMock()
    return client


@pytest.fixture
async def coordinator(
    hass: HomeAssistant, config_entry: MockConfigEntry, mock_client: MagicMock
) -> NukiBridgeCoordinator:
    """Return a coordinator that fetched the mock device list."""
    config_entry.add_to_hass(hass)
    coordinator = NukiBridgeCoordinator(hass, config_entry, mock_client)
    await coordinator.async_refresh()
    return coordinator
