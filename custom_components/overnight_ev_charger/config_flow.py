"""Config flow for Overnight EV Charger integration."""
from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    CONF_BATTERY_CAPACITY,
    CONF_BATTERY_SOH,
    CONF_CAC_SENSOR,
    CONF_CAPACITY_SENSOR,
    CONF_CHARGE_RATE,
    CONF_CHARGE_SWITCH,
    CONF_CHARGING_SENSOR,
    CONF_CHEAP_RATE,
    CONF_CHEAP_WINDOW_END,
    CONF_CHEAP_WINDOW_START,
    CONF_CLIMATE_ENTITY,
    CONF_NOTIFY_SERVICE,
    CONF_PLUG_SENSOR,
    CONF_READY_BY,
    CONF_SOC_SENSOR,
    CONF_SOH_SENSOR,
    CONF_STANDARD_RATE,
    CONF_TARGET_SOC,
    CONF_VOLTAGE_SENSOR,
    DEFAULT_BATTERY_CAPACITY,
    DEFAULT_BATTERY_SOH,
    DEFAULT_CHARGE_RATE,
    DEFAULT_CHEAP_RATE,
    DEFAULT_CHEAP_WINDOW_END,
    DEFAULT_CHEAP_WINDOW_START,
    DEFAULT_NAME,
    DEFAULT_STANDARD_RATE,
    DEFAULT_TARGET_SOC,
    DOMAIN,
    MAX_CHARGE_RATE,
    MAX_PLAUSIBLE_CAPACITY,
    MAX_PLAUSIBLE_SOH,
    MAX_TARGET_SOC,
    MIN_CHARGE_RATE,
    MIN_PLAUSIBLE_CAPACITY,
    MIN_PLAUSIBLE_SOH,
    MIN_TARGET_SOC,
)
from .domain.time_window import parse_time_of_day
from .exceptions import ConfigurationError


def _validate_schedule(user_input: dict[str, Any]) -> dict[str, str]:
    """Return form errors for a schedule step."""
    errors: dict[str, str] = {}
    try:
        start = parse_time_of_day(
            user_input.get(CONF_CHEAP_WINDOW_START, DEFAULT_CHEAP_WINDOW_START)
        )
        end = parse_time_of_day(
            user_input.get(CONF_CHEAP_WINDOW_END, DEFAULT_CHEAP_WINDOW_END)
        )
        if user_input.get(CONF_READY_BY):
            parse_time_of_day(user_input[CONF_READY_BY])
    except ConfigurationError:
        errors["base"] = "invalid_time"
        return errors

    # Overnight windows are fine (e.g. 23:30 to 05:30), empty ones are not
    if (start.hour, start.minute) == (end.hour, end.minute):
        errors["base"] = "invalid_window"
    return errors


def _validate_pricing(user_input: dict[str, Any]) -> dict[str, str]:
    """Return form errors for a pricing step."""
    cheap = user_input.get(CONF_CHEAP_RATE, DEFAULT_CHEAP_RATE)
    standard = user_input.get(CONF_STANDARD_RATE, DEFAULT_STANDARD_RATE)
    if cheap >= standard:
        return {"base": "cheap_must_be_lower"}
    return {}


def _rate_selector() -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=0.001,
            max=5.0,
            step=0.001,
            unit_of_measurement="/kWh",
            mode=selector.NumberSelectorMode.BOX,
        )
    )


def _schedule_schema(defaults: dict[str, Any]) -> dict:
    """Schedule fields shared by the config and options flows."""
    ready_by = defaults.get(CONF_READY_BY)
    return {
        vol.Required(
            CONF_CHEAP_WINDOW_START, default=defaults[CONF_CHEAP_WINDOW_START]
        ): selector.TimeSelector(),
        vol.Required(
            CONF_CHEAP_WINDOW_END, default=defaults[CONF_CHEAP_WINDOW_END]
        ): selector.TimeSelector(),
        vol.Required(
            CONF_TARGET_SOC, default=defaults[CONF_TARGET_SOC]
        ): selector.NumberSelector(
            selector.NumberSelectorConfig(
                min=MIN_TARGET_SOC,
                max=MAX_TARGET_SOC,
                step=5,
                unit_of_measurement="%",
                mode=selector.NumberSelectorMode.SLIDER,
            )
        ),
        vol.Required(
            CONF_CHARGE_RATE, default=defaults[CONF_CHARGE_RATE]
        ): selector.NumberSelector(
            selector.NumberSelectorConfig(
                min=MIN_CHARGE_RATE,
                max=MAX_CHARGE_RATE,
                step=0.1,
                unit_of_measurement="kW",
                mode=selector.NumberSelectorMode.BOX,
            )
        ),
        vol.Optional(
            CONF_READY_BY,
            description={"suggested_value": ready_by} if ready_by else None,
        ): selector.TimeSelector(),
    }


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Overnight EV Charger."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self.vehicle_info: dict[str, Any] = {}
        self.battery_info: dict[str, Any] = {}
        self.schedule_info: dict[str, Any] = {}
        self.pricing_info: dict[str, Any] = {}

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 1: Vehicle entities."""
        errors: dict[str, str] = {}

        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        if user_input is not None:
            # Validate entities exist
            for key in (
                CONF_SOC_SENSOR,
                CONF_CHARGING_SENSOR,
                CONF_PLUG_SENSOR,
                CONF_CHARGE_SWITCH,
                CONF_CLIMATE_ENTITY,
            ):
                entity_id = user_input.get(key)
                if entity_id and self.hass.states.get(entity_id) is None:
                    errors[key] = "entity_not_found"

            if not errors:
                self.vehicle_info = user_input
                return await self.async_step_battery()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_SOC_SENSOR): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain="sensor")
                    ),
                    vol.Required(CONF_CHARGING_SENSOR): selector.EntitySelector(
                        selector.EntitySelectorConfig(
                            domain=["binary_sensor", "sensor"]
                        )
                    ),
                    vol.Required(CONF_PLUG_SENSOR): selector.EntitySelector(
                        selector.EntitySelectorConfig(
                            domain=["binary_sensor", "sensor"]
                        )
                    ),
                    vol.Required(CONF_CHARGE_SWITCH): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain="switch")
                    ),
                    vol.Optional(CONF_CLIMATE_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain=["climate", "switch"])
                    ),
                }
            ),
            errors=errors,
        )

    async def async_step_battery(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 2: Battery capacity detection."""
        if user_input is not None:
            self.battery_info = user_input
            return await self.async_step_schedule()

        sensor = selector.EntitySelector(selector.EntitySelectorConfig(domain="sensor"))
        return self.async_show_form(
            step_id="battery",
            data_schema=vol.Schema(
                {
                    vol.Optional(CONF_CAPACITY_SENSOR): sensor,
                    vol.Optional(CONF_SOH_SENSOR): sensor,
                    vol.Optional(CONF_CAC_SENSOR): sensor,
                    vol.Optional(CONF_VOLTAGE_SENSOR): sensor,
                    vol.Required(
                        CONF_BATTERY_CAPACITY, default=DEFAULT_BATTERY_CAPACITY
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            min=MIN_PLAUSIBLE_CAPACITY,
                            max=MAX_PLAUSIBLE_CAPACITY,
                            step=0.5,
                            unit_of_measurement="kWh",
                            mode=selector.NumberSelectorMode.BOX,
                        )
                    ),
                    vol.Required(
                        CONF_BATTERY_SOH, default=DEFAULT_BATTERY_SOH
                    ): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            min=MIN_PLAUSIBLE_SOH,
                            max=MAX_PLAUSIBLE_SOH,
                            step=1,
                            unit_of_measurement="%",
                            mode=selector.NumberSelectorMode.SLIDER,
                        )
                    ),
                }
            ),
        )

    async def async_step_schedule(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 3: Cheap window, target and charger power."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = _validate_schedule(user_input)
            if not errors:
                self.schedule_info = user_input
                return await self.async_step_pricing()

        defaults = {
            CONF_CHEAP_WINDOW_START: DEFAULT_CHEAP_WINDOW_START,
            CONF_CHEAP_WINDOW_END: DEFAULT_CHEAP_WINDOW_END,
            CONF_TARGET_SOC: DEFAULT_TARGET_SOC,
            CONF_CHARGE_RATE: DEFAULT_CHARGE_RATE,
        }
        return self.async_show_form(
            step_id="schedule",
            data_schema=vol.Schema(_schedule_schema(defaults)),
            errors=errors,
        )

    async def async_step_pricing(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 4: Cheap and standard rates."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = _validate_pricing(user_input)
            if not errors:
                self.pricing_info = user_input
                return await self.async_step_notifications()

        return self.async_show_form(
            step_id="pricing",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_CHEAP_RATE, default=DEFAULT_CHEAP_RATE
                    ): _rate_selector(),
                    vol.Required(
                        CONF_STANDARD_RATE, default=DEFAULT_STANDARD_RATE
                    ): _rate_selector(),
                }
            ),
            errors=errors,
        )

    async def async_step_notifications(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 5: Notification target."""
        if user_input is not None:
            # Merge all data and create entry
            data = {
                **self.vehicle_info,
                **self.battery_info,
                **self.schedule_info,
                **self.pricing_info,
                **user_input,
            }
            return self.async_create_entry(title=DEFAULT_NAME, data=data)

        return self.async_show_form(
            step_id="notifications",
            data_schema=vol.Schema(
                {vol.Optional(CONF_NOTIFY_SERVICE): _notify_selector(self.hass)}
            ),
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return OptionsFlowHandler(config_entry)


def _notify_selector(hass) -> selector.Selector:
    """Dropdown of notify services, or free text when none are registered."""
    notify_services = hass.services.async_services().get("notify", {})
    options = [
        {"value": f"notify.{service}", "label": f"notify.{service}"}
        for service in notify_services
    ]
    if options:
        return selector.SelectSelector(
            selector.SelectSelectorConfig(
                options=options,
                mode=selector.SelectSelectorMode.DROPDOWN,
            )
        )
    return selector.TextSelector(
        selector.TextSelectorConfig(type=selector.TextSelectorType.TEXT)
    )


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options flow for Overnight EV Charger."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    def _get_value(self, key: str, default: Any) -> Any:
        """Get value from options or data with fallback to default."""
        return self._config_entry.options.get(
            key,
            self._config_entry.data.get(key, default)
        )

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage the options - single page for simplicity."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = {**_validate_schedule(user_input), **_validate_pricing(user_input)}
            if not errors:
                # Cleared optional fields must shadow the values in entry data
                user_input.setdefault(CONF_READY_BY, None)
                user_input.setdefault(CONF_NOTIFY_SERVICE, None)
                return self.async_create_entry(title="", data=user_input)

        defaults = {
            CONF_CHEAP_WINDOW_START: self._get_value(
                CONF_CHEAP_WINDOW_START, DEFAULT_CHEAP_WINDOW_START
            ),
            CONF_CHEAP_WINDOW_END: self._get_value(
                CONF_CHEAP_WINDOW_END, DEFAULT_CHEAP_WINDOW_END
            ),
            CONF_TARGET_SOC: self._get_value(CONF_TARGET_SOC, DEFAULT_TARGET_SOC),
            CONF_CHARGE_RATE: self._get_value(CONF_CHARGE_RATE, DEFAULT_CHARGE_RATE),
            CONF_READY_BY: self._get_value(CONF_READY_BY, None),
        }
        schema_dict = {
            **_schedule_schema(defaults),
            vol.Required(
                CONF_CHEAP_RATE,
                default=self._get_value(CONF_CHEAP_RATE, DEFAULT_CHEAP_RATE),
            ): _rate_selector(),
            vol.Required(
                CONF_STANDARD_RATE,
                default=self._get_value(CONF_STANDARD_RATE, DEFAULT_STANDARD_RATE),
            ): _rate_selector(),
        }

        notify_service = self._get_value(CONF_NOTIFY_SERVICE, None)
        schema_dict[
            vol.Optional(
                CONF_NOTIFY_SERVICE,
                description=(
                    {"suggested_value": notify_service} if notify_service else None
                ),
            )
        ] = _notify_selector(self.hass)

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(schema_dict),
            errors=errors,
        )
