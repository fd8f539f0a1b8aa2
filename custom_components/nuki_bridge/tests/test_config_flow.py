"""Test the Nuki Bridge config flow."""

from unittest.mock import MagicMock, patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.nuki_bridge.api import (
    NukiBridgeApiError,
    NukiBridgeConnectionError,
)
from custom_components.nuki_bridge.const import DOMAIN
from custom_components.nuki_bridge.devices import OPENER, SMART_LOCK
from custom_components.nuki_bridge.models import NukiDeviceSettings, NukiDeviceView
from homeassistant.config_entries import SOURCE_USER
from homeassistant.const import CONF_HOST
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType

from .const import MOCK_CONFIG, OPENER_ID, SMART_LOCK_ID

VALIDATE_CONN = (
    "custom_components.nuki_bridge.api.NukiBridgeClient.async_validate_connection"
)

BRIDGE_OPTIONS = {
    "request_interval": 2.5,
    "retry_count": 2,
    "scan_interval": 5,
    "api_enabled": True,
    "api_port": 40011,
    "api_token": "api_secret",
}


@pytest.fixture(autouse=True)
def bypass_setup_fixture():
    """Prevent setup."""
    with patch(
        "custom_components.nuki_bridge.async_setup_entry",
        return_value=True,
    ):
        yield


@pytest.fixture
def setup_entry(hass: HomeAssistant, config_entry: MockConfigEntry) -> MockConfigEntry:
    """Add the config entry with a coordinator holding two devices."""
    config_entry.add_to_hass(hass)
    coordinator = MagicMock()
    coordinator.data = {
        SMART_LOCK_ID: NukiDeviceView(
            nuki_id=SMART_LOCK_ID,
            name="Front Door",
            kind=SMART_LOCK,
            settings=NukiDeviceSettings(),
        ),
        OPENER_ID: NukiDeviceView(
            nuki_id=OPENER_ID,
            name="Intercom",
            kind=OPENER,
            settings=NukiDeviceSettings(),
        ),
    }
    hass.data.setdefault(DOMAIN, {})[config_entry.entry_id] = coordinator
    return config_entry


async def test_form(hass: HomeAssistant) -> None:
    """Test we get the form."""

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": SOURCE_USER}
    )
    assert result["handler"] == DOMAIN
    assert result.get("type") is FlowResultType.FORM
    assert result.get("step_id") == "user"
    assert result.get("errors") == {}
    data_schema = result.get("data_schema")
    assert data_schema is not None
    assert isinstance(data_schema.schema[CONF_HOST], type)


async def test_flow_success(hass: HomeAssistant) -> None:
    """Test that we can configure with valid mock config."""

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": SOURCE_USER}
    )
    with patch(VALIDATE_CONN, return_value=True):
        result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
            result["flow_id"], user_input=MOCK_CONFIG
        )
    assert result.get("type") == FlowResultType.CREATE_ENTRY
    assert result.get("title") == "Nuki Bridge (test_host)"
    assert result.get("data") == MOCK_CONFIG
    assert result.get("result")


async def test_flow_already_configured(
    hass: HomeAssistant, config_entry: MockConfigEntry
) -> None:
    """Test that a bridge can only be configured once."""
    config_entry.add_to_hass(hass)

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": SOURCE_USER}
    )
    with patch(VALIDATE_CONN, return_value=True):
        result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
            result["flow_id"], user_input=MOCK_CONFIG
        )
    assert result.get("type") == FlowResultType.ABORT
    assert result.get("reason") == "already_configured"


async def test_flow_failure(hass: HomeAssistant) -> None:
    """Test that a validation exception fails the config flow."""

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": SOURCE_USER}
    )
    with patch(VALIDATE_CONN, side_effect=NukiBridgeConnectionError):
        result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
            result["flow_id"], user_input=MOCK_CONFIG
        )
    assert result.get("type") == FlowResultType.FORM
    assert result.get("step_id") == "user"
    assert result.get("errors") == {"base": "cannot_connect"}

    with patch(VALIDATE_CONN, side_effect=NukiBridgeApiError):
        result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
            result["flow_id"], user_input=MOCK_CONFIG
        )
    assert result.get("errors") == {"base": "invalid_response"}

    with patch(VALIDATE_CONN, side_effect=Exception):
        result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
            result["flow_id"], user_input=MOCK_CONFIG
        )
    assert result.get("errors") == {"base": "unknown"}


async def test_flow_missing_token(hass: HomeAssistant) -> None:
    """Test an empty token is reported as incomplete credentials."""

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(  # type: ignore[call-arg]
        result["flow_id"], user_input={**MOCK_CONFIG, "token": ""}
    )
    assert result.get("type") == FlowResultType.FORM
    assert result.get("errors") == {"base": "invalid_auth"}


async def test_options_bridge(
    hass: HomeAssistant, setup_entry: MockConfigEntry
) -> None:
    """Test the request policy and control API options."""
    result = await hass.config_entries.options.async_init(setup_entry.entry_id)
    assert result.get("type") is FlowResultType.MENU

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "bridge"}
    )
    assert result.get("type") is FlowResultType.FORM
    assert result.get("step_id") == "bridge"

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {**BRIDGE_OPTIONS, "api_token": ""}
    )
    assert result.get("type") is FlowResultType.FORM
    assert result.get("errors") == {"base": "api_token_required"}

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], BRIDGE_OPTIONS
    )
    assert result.get("type") is FlowResultType.CREATE_ENTRY
    assert setup_entry.options["api_token"] == "api_secret"
    assert setup_entry.options["request_interval"] == 2.5
    # Device settings are kept
    assert str(SMART_LOCK_ID) in setup_entry.options["devices"]


async def test_options_device(
    hass: HomeAssistant, setup_entry: MockConfigEntry
) -> None:
    """Test the per-device flags depend on the device kind."""
    result = await hass.config_entries.options.async_init(setup_entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "device"}
    )
    assert result.get("step_id") == "device"

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"device": str(OPENER_ID)}
    )
    assert result.get("step_id") == "device_settings"
    schema_keys = {str(key) for key in result["data_schema"].schema}
    assert "leave_open" in schema_keys
    assert "unlatch_lock" not in schema_keys

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"leave_open": True, "doorbell_enabled": True}
    )
    assert result.get("type") is FlowResultType.CREATE_ENTRY
    opener_options = setup_entry.options["devices"][str(OPENER_ID)]
    assert opener_options["leave_open"] is True
    assert opener_options["ring_to_open_enabled"] is False
    assert str(SMART_LOCK_ID) in setup_entry.options["devices"]


async def test_options_device_without_devices(
    hass: HomeAssistant, config_entry: MockConfigEntry
) -> None:
    """Test the device step aborts before the bridge reported devices."""
    config_entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(config_entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "device"}
    )
    assert result.get("type") is FlowResultType.ABORT
    assert result.get("reason") == "no_devices"


async def test_options_device_removed(
    hass: HomeAssistant, setup_entry: MockConfigEntry
) -> None:
    """Test the flow aborts when the selected device disappears."""
    result = await hass.config_entries.options.async_init(setup_entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "device"}
    )
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"device": str(OPENER_ID)}
    )
    assert result.get("step_id") == "device_settings"

    del hass.data[DOMAIN][setup_entry.entry_id].data[OPENER_ID]
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"leave_open": True}
    )
    assert result.get("type") is FlowResultType.ABORT
    assert result.get("reason") == "no_devices"
    assert str(OPENER_ID) not in setup_entry.options.get("devices", {})
