"""Test the integration services."""
from datetime import time

import pytest

from homeassistant.core import HomeAssistant

from custom_components.overnight_ev_charger.const import (
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
from custom_components.overnight_ev_charger.core.state import RecoveryState

ALL_SERVICES = (
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


async def _call(hass: HomeAssistant, service: str, data: dict | None = None, **kwargs):
    return await hass.services.async_call(
        DOMAIN, service, data or {}, blocking=True, **kwargs
    )


@pytest.mark.asyncio
async def test_services_registered(hass: HomeAssistant, setup_integration):
    """Test all services are registered after setup."""
    for service in ALL_SERVICES:
        assert hass.services.has_service(DOMAIN, service)


@pytest.mark.asyncio
async def test_set_target(hass: HomeAssistant, coordinator):
    """Test the target service and its range check."""
    await _call(hass, SERVICE_SET_TARGET, {"target": 90})
    assert coordinator.state.target_soc_pct == 90.0

    await _call(hass, SERVICE_SET_TARGET, {"target": 101})
    assert coordinator.state.target_soc_pct == 90.0


@pytest.mark.asyncio
async def test_ready_by_set_and_clear(hass: HomeAssistant, coordinator):
    """Test setting and clearing the deadline."""
    await _call(hass, SERVICE_SET_READY_BY, {"hour": 7, "minute": 30})
    assert coordinator.state.ready_by == time(7, 30)

    await _call(hass, SERVICE_SET_READY_BY, {"hour": 6})
    assert coordinator.state.ready_by == time(6, 0)

    await _call(hass, SERVICE_CLEAR_READY_BY)
    assert coordinator.state.ready_by is None


@pytest.mark.asyncio
async def test_set_window(hass: HomeAssistant, coordinator, service_calls):
    """Test the window service rejects an empty window."""
    await _call(
        hass,
        SERVICE_SET_WINDOW,
        {"start_hour": 0, "start_minute": 30, "end_hour": 7, "end_minute": 30},
    )
    assert coordinator.state.cheap_start == time(0, 30)
    assert coordinator.state.cheap_end == time(7, 30)

    await _call(hass, SERVICE_SET_WINDOW, {"start_hour": 2, "end_hour": 2})
    await hass.async_block_till_done()
    assert coordinator.state.cheap_start == time(0, 30)
    assert "must differ" in service_calls["notify"][-1].data["message"]


@pytest.mark.asyncio
async def test_set_charge_rate_and_rates(hass: HomeAssistant, coordinator):
    """Test charger power and price services."""
    await _call(hass, SERVICE_SET_CHARGE_RATE, {"charge_rate": 7.4})
    assert coordinator.state.charge_rate_kw == 7.4

    await _call(hass, SERVICE_SET_RATES, {"cheap_rate": 0.07, "standard_rate": 0.31})
    assert coordinator.state.cheap_rate_per_kwh == 0.07
    assert coordinator.state.standard_rate_per_kwh == 0.31

    await _call(hass, SERVICE_SET_RATES, {"cheap_rate": 0.40, "standard_rate": 0.31})
    assert coordinator.state.cheap_rate_per_kwh == 0.07


@pytest.mark.asyncio
async def test_start_and_stop(hass: HomeAssistant, coordinator, service_calls):
    """Test manual start and stop services."""
    await _call(hass, SERVICE_START)
    assert len(service_calls["turn_on"]) == 1
    assert coordinator.state.session.manual_override

    await _call(hass, SERVICE_STOP)
    assert len(service_calls["turn_off"]) == 1
    assert coordinator.state.session.state == RecoveryState.IDLE


@pytest.mark.asyncio
async def test_status_returns_response(hass: HomeAssistant, coordinator, service_calls):
    """Test the status service sends and returns the summary."""
    response = await _call(hass, SERVICE_STATUS, return_response=True)
    await hass.async_block_till_done()

    assert "SOC: 50% -> target 80%" in response["message"]
    assert response["state"]["target_soc_pct"] == 80.0
    assert response["state"]["session"]["state"] == "idle"
    assert service_calls["notify"][-1].data["message"] == response["message"]


@pytest.mark.asyncio
async def test_next_charge_returns_schedule(hass: HomeAssistant, coordinator):
    """Test the next charge service returns the schedule."""
    response = await _call(hass, SERVICE_NEXT_CHARGE, return_response=True)

    assert response["schedule"]["mode"] == "fits_window"
    assert response["schedule"]["kwh_needed"] == 12.0
    assert "12.0 kWh" in response["message"]


@pytest.mark.asyncio
async def test_services_removed_on_unload(hass: HomeAssistant, setup_integration):
    """Test services go away with the entry."""
    await hass.config_entries.async_unload(setup_integration.entry_id)
    await hass.async_block_till_done()

    for service in ALL_SERVICES:
        assert not hass.services.has_service(DOMAIN, service)
