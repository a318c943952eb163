"""Integration services.

Schemas only coerce types. Range checks live in the coordinator, which
rejects bad values with an alert notification and keeps the old setting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import voluptuous as vol

from homeassistant.core import ServiceCall, ServiceResponse, SupportsResponse

from .charger_logging import get_logger
from .const import (
    DOMAIN,
    SERVICE_CLEAR_READY_BY,
    SERVICE_NEXT_CHARGE,
    SERVICE_SET_CHARGE_RATE,
    SERVICE_SET_RATES,
    SERVICE_SET_READY_BY,
    SERVICE_SET_TARGET,
    SERVICE_SET_WINDOW,
    SERVICE_START,
    SERVICE_STATUS,
    SERVICE_STOP,
)

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .coordinator import ChargerCoordinator

ATTR_TARGET = "target"
ATTR_HOUR = "hour"
ATTR_MINUTE = "minute"
ATTR_START_HOUR = "start_hour"
ATTR_START_MINUTE = "start_minute"
ATTR_END_HOUR = "end_hour"
ATTR_END_MINUTE = "end_minute"
ATTR_CHARGE_RATE = "charge_rate"
ATTR_CHEAP_RATE = "cheap_rate"
ATTR_STANDARD_RATE = "standard_rate"

SET_TARGET_SCHEMA = vol.Schema({vol.Required(ATTR_TARGET): vol.Coerce(float)})

SET_READY_BY_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_HOUR): vol.Coerce(int),
        vol.Optional(ATTR_MINUTE, default=0): vol.Coerce(int),
    }
)

SET_WINDOW_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_START_HOUR): vol.Coerce(int),
        vol.Optional(ATTR_START_MINUTE, default=0): vol.Coerce(int),
        vol.Required(ATTR_END_HOUR): vol.Coerce(int),
        vol.Optional(ATTR_END_MINUTE, default=0): vol.Coerce(int),
    }
)

SET_CHARGE_RATE_SCHEMA = vol.Schema(
    {vol.Required(ATTR_CHARGE_RATE): vol.Coerce(float)}
)

SET_RATES_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_CHEAP_RATE): vol.Coerce(float),
        vol.Required(ATTR_STANDARD_RATE): vol.Coerce(float),
    }
)

_ALL_SERVICES = (
    SERVICE_SET_TARGET,
    SERVICE_SET_READY_BY,
    SERVICE_CLEAR_READY_BY,
    SERVICE_SET_WINDOW,
    SERVICE_SET_CHARGE_RATE,
    SERVICE_SET_RATES,
    SERVICE_START,
    SERVICE_STOP,
    SERVICE_STATUS,
    SERVICE_NEXT_CHARGE,
)


def async_register_services(hass: HomeAssistant, coordinator: ChargerCoordinator) -> None:
    """Register the integration services for a coordinator."""

    async def handle_set_target(call: ServiceCall) -> None:
        await coordinator.async_set_target(call.data[ATTR_TARGET])

    async def handle_set_ready_by(call: ServiceCall) -> None:
        await coordinator.async_set_ready_by(call.data[ATTR_HOUR], call.data[ATTR_MINUTE])

    async def handle_clear_ready_by(call: ServiceCall) -> None:
        await coordinator.async_clear_ready_by()

    async def handle_set_window(call: ServiceCall) -> None:
        await coordinator.async_set_window(
            call.data[ATTR_START_HOUR],
            call.data[ATTR_START_MINUTE],
            call.data[ATTR_END_HOUR],
            call.data[ATTR_END_MINUTE],
        )

    async def handle_set_charge_rate(call: ServiceCall) -> None:
        await coordinator.async_set_charge_rate(call.data[ATTR_CHARGE_RATE])

    async def handle_set_rates(call: ServiceCall) -> None:
        await coordinator.async_set_rates(
            call.data[ATTR_CHEAP_RATE], call.data[ATTR_STANDARD_RATE]
        )

    async def handle_start(call: ServiceCall) -> None:
        await coordinator.async_manual_start()

    async def handle_stop(call: ServiceCall) -> None:
        await coordinator.async_manual_stop()

    async def handle_status(call: ServiceCall) -> ServiceResponse:
        message = await coordinator.async_send_status()
        return {"message": message, "state": coordinator.state.to_dict()}

    async def handle_next_charge(call: ServiceCall) -> ServiceResponse:
        message = await coordinator.async_send_next_charge()
        schedule = coordinator.state.schedule
        return {
            "message": message,
            "schedule": schedule.to_dict() if schedule else None,
        }

    hass.services.async_register(
        DOMAIN, SERVICE_SET_TARGET, handle_set_target, schema=SET_TARGET_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_READY_BY, handle_set_ready_by, schema=SET_READY_BY_SCHEMA
    )
    hass.services.async_register(DOMAIN, SERVICE_CLEAR_READY_BY, handle_clear_ready_by)
    hass.services.async_register(
        DOMAIN, SERVICE_SET_WINDOW, handle_set_window, schema=SET_WINDOW_SCHEMA
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_CHARGE_RATE,
        handle_set_charge_rate,
        schema=SET_CHARGE_RATE_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_RATES, handle_set_rates, schema=SET_RATES_SCHEMA
    )
    hass.services.async_register(DOMAIN, SERVICE_START, handle_start)
    hass.services.async_register(DOMAIN, SERVICE_STOP, handle_stop)
    hass.services.async_register(
        DOMAIN,
        SERVICE_STATUS,
        handle_status,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_NEXT_CHARGE,
        handle_next_charge,
        supports_response=SupportsResponse.OPTIONAL,
    )

    get_logger().debug("SERVICES_REGISTERED", count=len(_ALL_SERVICES))


def async_remove_services(hass: HomeAssistant) -> None:
    """Remove the integration services."""
    for service in _ALL_SERVICES:
        hass.services.async_remove(DOMAIN, service)
