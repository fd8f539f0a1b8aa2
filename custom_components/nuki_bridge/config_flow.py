"""Config flow for Nuki Bridge integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_HOST, CONF_PORT, CONF_SCAN_INTERVAL, CONF_TOKEN
from homeassistant.core import callback

from .api import (
    NukiBridgeApiError,
    NukiBridgeClient,
    NukiBridgeConfigurationError,
    NukiBridgeConnectionError,
    NukiBridgeEndpoint,
)
from .const import (
    CONF_API_ENABLED,
    CONF_API_PORT,
    CONF_API_TOKEN,
    CONF_CALLBACK_HOST,
    CONF_CALLBACK_PORT,
    CONF_DEVICE,
    CONF_DEVICES,
    CONF_REQUEST_INTERVAL,
    CONF_RETRY_COUNT,
    DEFAULT_API_PORT,
    DEFAULT_BRIDGE_PORT,
    DEFAULT_CALLBACK_PORT,
    DEFAULT_REQUEST_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_SCAN_INTERVAL,
    DOMAIN,
    OPENER_FLAGS,
    SMART_LOCK_FLAGS,
)
from .devices import SmartLockKind

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): str,
        vol.Required(CONF_PORT, default=DEFAULT_BRIDGE_PORT): vol.Coerce(int),
        vol.Required(CONF_TOKEN): str,
        vol.Optional(CONF_CALLBACK_HOST): str,
        vol.Required(CONF_CALLBACK_PORT, default=DEFAULT_CALLBACK_PORT): vol.Coerce(
            int
        ),
    }
)


class NukiBridgeConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Nuki Bridge."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Return the options flow."""
        return NukiBridgeOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            host = user_input[CONF_HOST]

            # Check if already configured
            await self.async_set_unique_id(host)
            self._abort_if_unique_id_configured()

            # A single attempt, the user is waiting for the result
            api = NukiBridgeClient(
                NukiBridgeEndpoint(
                    host=host,
                    port=user_input[CONF_PORT],
                    token=user_input[CONF_TOKEN],
                    retry_count=1,
                )
            )
            try:
                await api.async_validate_connection()

                # Create entry
                return self.async_create_entry(
                    title=f"Nuki Bridge ({host})",
                    data=user_input,
                )
            except NukiBridgeConfigurationError:
                errors["base"] = "invalid_auth"
            except NukiBridgeConnectionError:
                errors["base"] = "cannot_connect"
            except NukiBridgeApiError:
                errors["base"] = "invalid_response"
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception("Unexpected exception")
                errors["base"] = "unknown"
            finally:
                await api.async_close()

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )


class NukiBridgeOptionsFlow(OptionsFlow):
    """Handle bridge and per-device options."""

    def __init__(self) -> None:
        """Initialize the options flow."""
        self._nuki_id: int | None = None

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Choose between bridge and device settings."""
        return self.async_show_menu(step_id="init", menu_options=["bridge", "device"])

    async def async_step_bridge(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the request policy and the control API settings."""
        errors: dict[str, str] = {}
        options = self.config_entry.options

        if user_input is not None:
            if user_input[CONF_API_ENABLED] and not user_input.get(CONF_API_TOKEN):
                errors["base"] = "api_token_required"
            else:
                return self.async_create_entry(data={**options, **user_input})

        schema = vol.Schema(
            {
                vol.Required(
                    CONF_REQUEST_INTERVAL,
                    default=options.get(CONF_REQUEST_INTERVAL, DEFAULT_REQUEST_INTERVAL),
                ): vol.All(vol.Coerce(float), vol.Range(min=0.1, max=60)),
                vol.Required(
                    CONF_RETRY_COUNT,
                    default=options.get(CONF_RETRY_COUNT, DEFAULT_RETRY_COUNT),
                ): vol.All(vol.Coerce(int), vol.Range(min=1, max=10)),
                vol.Required(
                    CONF_SCAN_INTERVAL,
                    default=options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
                ): vol.All(vol.Coerce(int), vol.Range(min=1, max=1440)),
                vol.Required(
                    CONF_API_ENABLED, default=options.get(CONF_API_ENABLED, False)
                ): bool,
                vol.Required(
                    CONF_API_PORT, default=options.get(CONF_API_PORT, DEFAULT_API_PORT)
                ): vol.Coerce(int),
                vol.Optional(
                    CONF_API_TOKEN, default=options.get(CONF_API_TOKEN, "")
                ): str,
            }
        )
        return self.async_show_form(step_id="bridge", data_schema=schema, errors=errors)

    async def async_step_device(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Select the device to configure."""
        coordinator = self.hass.data.get(DOMAIN, {}).get(self.config_entry.entry_id)
        devices = (coordinator.data or {}) if coordinator else {}
        if not devices:
            return self.async_abort(reason="no_devices")

        if user_input is not None:
            self._nuki_id = int(user_input[CONF_DEVICE])
            return await self.async_step_device_settings()

        choices = {str(nuki_id): view.name for nuki_id, view in devices.items()}
        return self.async_show_form(
            step_id="device",
            data_schema=vol.Schema({vol.Required(CONF_DEVICE): vol.In(choices)}),
        )

    async def async_step_device_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the policy flags of the selected device."""
        coordinator = self.hass.data.get(DOMAIN, {}).get(self.config_entry.entry_id)
        view = (coordinator.data or {}).get(self._nuki_id) if coordinator else None
        if view is None:
            # Removed by a refresh since it was selected
            return self.async_abort(reason="no_devices")
        key = str(self._nuki_id)
        device_options = self.config_entry.options.get(CONF_DEVICES, {})

        if user_input is not None:
            return self.async_create_entry(
                data={
                    **self.config_entry.options,
                    CONF_DEVICES: {**device_options, key: user_input},
                }
            )

        flags = SMART_LOCK_FLAGS if isinstance(view.kind, SmartLockKind) else OPENER_FLAGS
        current = device_options.get(key, {})
        schema = vol.Schema(
            {vol.Required(flag, default=current.get(flag, False)): bool for flag in flags}
        )
        return self.async_show_form(
            step_id="device_settings",
            data_schema=schema,
            description_placeholders={"name": view.name},
        )
