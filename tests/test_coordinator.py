"""Test the charger coordinator with a simulated vehicle."""
from datetime import time, timedelta

import pytest

from homeassistant.const import STATE_OFF, STATE_ON
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
from homeassistant.util import dt as dt_util

from custom_components.overnight_ev_charger.const import DOMAIN, STORAGE_KEY
from custom_components.overnight_ev_charger.core.state import RecoveryState
from custom_components.overnight_ev_charger.domain.optimizer import ScheduleMode

from .conftest import CHARGE_SWITCH, CHARGING_SENSOR, PLUG_SENSOR, SOC_SENSOR


def _at(hour: int, minute: int):
    """Today at the given local time."""
    return dt_util.now().replace(hour=hour, minute=minute, second=0, microsecond=0)


def _messages(service_calls) -> list[str]:
    return [call.data["message"] for call in service_calls["notify"]]


@pytest.mark.asyncio
async def test_state_built_from_config(coordinator):
    """Test the entry data ends up in the state."""
    state = coordinator.state

    assert state.soc_sensor_entity == SOC_SENSOR
    assert state.cheap_start == time(23, 30)
    assert state.cheap_end == time(5, 30)
    assert state.target_soc_pct == 80.0
    assert state.charge_rate_kw == 1.8
    assert state.ready_by is None
    assert state.battery.usable_capacity_kwh == 40.0
    assert state.battery.source == "configured"

    # Plugged in at setup, so a schedule exists
    assert state.telemetry.soc == 50.0
    assert state.is_plugged_in
    assert state.schedule is not None
    assert state.schedule.kwh_needed == pytest.approx(12.0)


@pytest.mark.asyncio
async def test_tick_before_window_waits(coordinator, service_calls):
    """Nothing starts before the cheap window opens."""
    await coordinator._async_tick(_at(20, 0))

    assert coordinator.state.schedule.mode == ScheduleMode.FITS_WINDOW
    assert coordinator.state.schedule.start_at == _at(23, 30)
    assert not coordinator.state.scheduled_charge_started
    assert service_calls["turn_on"] == []


@pytest.mark.asyncio
async def test_tick_in_window_starts_charge_once(
    hass: HomeAssistant, coordinator, service_calls
):
    """The scheduled charge starts inside the window and only once."""
    await coordinator._async_tick(_at(23, 45))
    await hass.async_block_till_done()

    assert len(service_calls["turn_on"]) == 1
    assert service_calls["turn_on"][0].data["entity_id"] == CHARGE_SWITCH
    assert coordinator.state.scheduled_charge_started
    assert coordinator.state.session.state == RecoveryState.ACTIVE
    assert not coordinator.state.session.manual_override
    assert any("Scheduled charge started" in m for m in _messages(service_calls))

    hass.states.async_set(CHARGING_SENSOR, STATE_ON)
    await coordinator._async_tick(_at(23, 46))

    assert len(service_calls["turn_on"]) == 1
    assert coordinator.state.session.state == RecoveryState.ACTIVE


@pytest.mark.asyncio
async def test_charge_stopping_triggers_recovery(
    hass: HomeAssistant, coordinator, service_calls
):
    """A supervised charge that stops is scheduled for a retry."""
    await coordinator._async_tick(_at(23, 45))
    # Charging sensor still reports off on the next tick
    await coordinator._async_tick(_at(23, 46))
    await hass.async_block_till_done()

    session = coordinator.state.session
    assert session.state == RecoveryState.INTERRUPTED
    assert session.attempt_count == 1
    assert coordinator.scheduler.pending_count == 1
    assert any("attempt 1/3" in m for m in _messages(service_calls))


@pytest.mark.asyncio
async def test_target_reached_stops_charge(
    hass: HomeAssistant, coordinator, service_calls
):
    """Reaching the target stops the charge."""
    await coordinator._async_tick(_at(23, 45))
    hass.states.async_set(CHARGING_SENSOR, STATE_ON)
    hass.states.async_set(SOC_SENSOR, "80")
    await coordinator._async_tick(_at(3, 0) + timedelta(days=1))
    await hass.async_block_till_done()

    assert len(service_calls["turn_off"]) == 1
    assert coordinator.state.session.state == RecoveryState.IDLE
    assert any("Charge complete" in m for m in _messages(service_calls))


@pytest.mark.asyncio
async def test_unplug_ends_session(hass: HomeAssistant, coordinator, service_calls):
    """Unplugging resets recovery and drops the schedule."""
    await coordinator._async_tick(_at(23, 45))
    assert coordinator.state.session.state == RecoveryState.ACTIVE

    hass.states.async_set(PLUG_SENSOR, STATE_OFF)
    await hass.async_block_till_done()

    assert coordinator.state.session.state == RecoveryState.IDLE
    assert coordinator.state.schedule is None
    assert not coordinator.state.scheduled_charge_started
    assert coordinator.scheduler.pending_count == 0
    assert any("unplugged" in m for m in _messages(service_calls))


@pytest.mark.asyncio
async def test_plug_in_announces_schedule(
    hass: HomeAssistant, coordinator, service_calls
):
    """A new plug-in computes and announces a schedule."""
    hass.states.async_set(PLUG_SENSOR, STATE_OFF)
    await hass.async_block_till_done()
    assert coordinator.state.schedule is None

    hass.states.async_set(PLUG_SENSOR, STATE_ON)
    await hass.async_block_till_done()

    assert coordinator.state.schedule is not None
    assert coordinator.state.schedule.needs_charge
    assert coordinator.state.session.attempt_count == 0


@pytest.mark.asyncio
async def test_manual_start_blocked_when_unplugged(
    hass: HomeAssistant, coordinator, service_calls
):
    """Manual start is refused without a cable."""
    hass.states.async_set(PLUG_SENSOR, STATE_OFF)
    await hass.async_block_till_done()

    assert await coordinator.async_manual_start() is False
    await hass.async_block_till_done()

    assert service_calls["turn_on"] == []
    assert any("not plugged in" in m for m in _messages(service_calls))


@pytest.mark.asyncio
async def test_manual_start_blocked_when_charging(
    hass: HomeAssistant, coordinator, service_calls
):
    """Manual start is refused while already charging."""
    hass.states.async_set(CHARGING_SENSOR, STATE_ON)

    assert await coordinator.async_manual_start() is False
    assert service_calls["turn_on"] == []


@pytest.mark.asyncio
async def test_manual_start_begins_manual_session(
    hass: HomeAssistant, coordinator, service_calls
):
    """Manual start charges now without automatic retries."""
    assert await coordinator.async_manual_start() is True

    assert len(service_calls["turn_on"]) == 1
    session = coordinator.state.session
    assert session.state == RecoveryState.ACTIVE
    assert session.manual_override
    assert coordinator.state.scheduled_charge_started

    # Interrupted manual session is not retried
    await coordinator._async_tick(_at(23, 50))
    await hass.async_block_till_done()
    assert coordinator.state.session.state == RecoveryState.IDLE
    assert coordinator.state.session.attempt_count == 0
    assert coordinator.scheduler.pending_count == 0
    assert any("No auto-retry" in m for m in _messages(service_calls))


@pytest.mark.asyncio
async def test_manual_start_overrides_pending_retry(
    hass: HomeAssistant, coordinator, service_calls
):
    """Manual start during recovery cancels the pending retry."""
    await coordinator._async_tick(_at(23, 45))
    await coordinator._async_tick(_at(23, 46))
    assert coordinator.state.session.state == RecoveryState.INTERRUPTED

    assert await coordinator.async_manual_start() is True

    session = coordinator.state.session
    assert session.manual_override
    assert session.state == RecoveryState.ACTIVE
    assert session.attempt_count == 0
    assert coordinator.scheduler.pending_count == 0


@pytest.mark.asyncio
async def test_manual_stop(hass: HomeAssistant, coordinator, service_calls):
    """Manual stop cancels recovery and keeps the schedule from restarting."""
    await coordinator._async_tick(_at(23, 45))
    await coordinator._async_tick(_at(23, 46))

    assert await coordinator.async_manual_stop() is True

    assert len(service_calls["turn_off"]) == 1
    assert coordinator.state.session.state == RecoveryState.IDLE
    assert coordinator.scheduler.pending_count == 0

    await coordinator._async_tick(_at(23, 50))
    assert len(service_calls["turn_on"]) == 1


@pytest.mark.asyncio
async def test_unknown_soc_skips_schedule_check(
    hass: HomeAssistant, coordinator, service_calls
):
    """An unavailable SOC never starts a charge."""
    hass.states.async_set(SOC_SENSOR, "unavailable")
    await coordinator._async_tick(_at(23, 45))

    assert service_calls["turn_on"] == []
    assert not coordinator.state.scheduled_charge_started


@pytest.mark.asyncio
async def test_settings_are_validated(
    hass: HomeAssistant, coordinator, service_calls
):
    """Out of range settings are rejected and the old value kept."""
    assert await coordinator.async_set_target(10) is False
    assert await coordinator.async_set_charge_rate(500) is False
    assert await coordinator.async_set_window(1, 0, 1, 0) is False
    assert await coordinator.async_set_window(25, 0, 6, 0) is False
    assert await coordinator.async_set_rates(0.30, 0.28) is False
    assert await coordinator.async_set_ready_by(7, 75) is False
    await hass.async_block_till_done()

    state = coordinator.state
    assert state.target_soc_pct == 80.0
    assert state.charge_rate_kw == 1.8
    assert state.cheap_start == time(23, 30)
    assert state.cheap_rate_per_kwh == 0.09
    assert state.ready_by is None
    rejected = [m for m in _messages(service_calls) if "Previous setting kept" in m]
    assert len(rejected) == 6


@pytest.mark.asyncio
async def test_settings_change_reschedules_and_persists(
    hass: HomeAssistant, hass_storage, coordinator, setup_integration
):
    """Accepted settings recompute the schedule and are stored."""
    assert await coordinator.async_set_charge_rate(7.2) is True
    assert coordinator.state.schedule.minutes_needed == 100

    assert await coordinator.async_set_ready_by(7, 30) is True
    assert coordinator.state.ready_by == time(7, 30)

    stored = hass_storage[f"{STORAGE_KEY}.{setup_integration.entry_id}"]["data"]
    assert stored["charge_rate_kw"] == 7.2
    assert stored["ready_by"] == "07:30"

    assert await coordinator.async_clear_ready_by() is True
    assert coordinator.state.ready_by is None


@pytest.mark.asyncio
async def test_stored_settings_restored(
    hass: HomeAssistant, hass_storage, vehicle_states, service_calls, mock_config_entry
):
    """Settings saved earlier override the entry data."""
    hass_storage[f"{STORAGE_KEY}.{mock_config_entry.entry_id}"] = {
        "version": 1,
        "minor_version": 1,
        "key": f"{STORAGE_KEY}.{mock_config_entry.entry_id}",
        "data": {
            "cheap_start": "00:30",
            "cheap_end": "07:30",
            "target_soc_pct": 90,
            "ready_by": "08:00",
            "charge_rate_kw": "not a number",
        },
    }
    for entity_id, (state, attributes) in vehicle_states.items():
        hass.states.async_set(entity_id, state, attributes)
    mock_config_entry.add_to_hass(hass)
    await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    state = hass.data[DOMAIN][mock_config_entry.entry_id].state
    assert state.cheap_start == time(0, 30)
    assert state.cheap_end == time(7, 30)
    assert state.target_soc_pct == 90.0
    assert state.ready_by == time(8, 0)
    # Unreadable value falls back to the entry data
    assert state.charge_rate_kw == 1.8

    await hass.config_entries.async_unload(mock_config_entry.entry_id)
    await hass.async_block_till_done()


@pytest.mark.asyncio
async def test_status_and_next_charge_text(hass: HomeAssistant, coordinator):
    """Test the reporting helpers."""
    status = await coordinator.async_send_status()
    assert "SOC: 50% -> target 80%" in status
    assert "Cheap window: 23:30-05:30" in status
    assert "Recovery: idle (attempt 0/3)" in status

    summary = await coordinator.async_send_next_charge()
    assert "12.0 kWh" in summary


@pytest.mark.asyncio
async def test_plug_in_with_unknown_soc_waits(
    hass: HomeAssistant, coordinator, service_calls
):
    """A plug-in without a SOC reading announces nothing until it is readable."""
    hass.states.async_set(PLUG_SENSOR, STATE_OFF)
    hass.states.async_set(SOC_SENSOR, "unavailable")
    await hass.async_block_till_done()

    hass.states.async_set(PLUG_SENSOR, STATE_ON)
    await hass.async_block_till_done()

    assert coordinator.state.schedule is None
    messages = _messages(service_calls)
    assert any("SOC is unavailable" in m for m in messages)
    assert not any(m.startswith("Next charge") for m in messages)

    hass.states.async_set(SOC_SENSOR, "50")
    await coordinator._async_tick(_at(20, 0))

    assert coordinator.state.schedule.kwh_needed == pytest.approx(12.0)
    assert coordinator.state.schedule.start_at == _at(23, 30)


@pytest.mark.asyncio
async def test_status_reports_pending_retry(hass: HomeAssistant, coordinator):
    """The status names the next recovery step while a retry waits."""
    await coordinator._async_tick(_at(23, 45))
    await coordinator._async_tick(_at(23, 46))
    next_due = coordinator.scheduler.next_due()
    assert next_due is not None

    status = await coordinator.async_send_status()

    assert f"Next recovery step: {next_due.strftime('%H:%M:%S')}" in status
    assert "Recovery: interrupted (attempt 1/3)" in status


@pytest.mark.asyncio
async def test_failed_command_shown_in_status(hass: HomeAssistant, coordinator):
    """A failed vehicle command is kept for the status report."""

    async def refuse(call: ServiceCall) -> None:
        raise HomeAssistantError("vehicle asleep")

    hass.services.async_register("switch", "turn_on", refuse)

    await coordinator.async_manual_start()
    status = await coordinator.async_send_status()

    assert coordinator.state.last_status == (
        "Command charge-start failed: vehicle asleep"
    )
    assert "Last status: Command charge-start failed: vehicle asleep" in status
