"""Fixtures for testing."""
import pytest
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_mock_service,
)

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.const import STATE_OFF, STATE_ON

from custom_components.overnight_ev_charger.const import (
    DOMAIN,
    CONF_BATTERY_CAPACITY,
    CONF_BATTERY_SOH,
    CONF_CHARGE_RATE,
    CONF_CHARGE_SWITCH,
    CONF_CHARGING_SENSOR,
    CONF_CHEAP_RATE,
    CONF_CHEAP_WINDOW_END,
    CONF_CHEAP_WINDOW_START,
    CONF_CLIMATE_ENTITY,
    CONF_NOTIFY_SERVICE,
    CONF_PLUG_SENSOR,
    CONF_SOC_SENSOR,
    CONF_STANDARD_RATE,
    CONF_TARGET_SOC,
)

SOC_SENSOR = "sensor.ev_battery_level"
CHARGING_SENSOR = "binary_sensor.ev_charging"
PLUG_SENSOR = "binary_sensor.ev_plugged_in"
CHARGE_SWITCH = "switch.ev_charging"
CLIMATE_SWITCH = "switch.ev_climate"

ENTRY_DATA = {
    CONF_SOC_SENSOR: SOC_SENSOR,
    CONF_CHARGING_SENSOR: CHARGING_SENSOR,
    CONF_PLUG_SENSOR: PLUG_SENSOR,
    CONF_CHARGE_SWITCH: CHARGE_SWITCH,
    CONF_CLIMATE_ENTITY: CLIMATE_SWITCH,
    CONF_BATTERY_CAPACITY: 40.0,
    CONF_BATTERY_SOH: 100.0,
    CONF_CHEAP_WINDOW_START: "23:30:00",
    CONF_CHEAP_WINDOW_END: "05:30:00",
    CONF_TARGET_SOC: 80.0,
    CONF_CHARGE_RATE: 1.8,
    CONF_CHEAP_RATE: 0.09,
    CONF_STANDARD_RATE: 0.28,
    CONF_NOTIFY_SERVICE: "notify.mobile_app_phone",
}


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations defined in the test dir."""
    yield


@pytest.fixture
def vehicle_states():
    """Car plugged in at 50%, not charging."""
    return {
        SOC_SENSOR: ("50", {"unit_of_measurement": "%", "device_class": "battery"}),
        CHARGING_SENSOR: (STATE_OFF, {}),
        PLUG_SENSOR: (STATE_ON, {"device_class": "plug"}),
        CHARGE_SWITCH: (STATE_OFF, {}),
        CLIMATE_SWITCH: (STATE_OFF, {}),
    }


@pytest.fixture
def service_calls(hass: HomeAssistant):
    """Record vehicle commands and notifications."""
    return {
        "turn_on": async_mock_service(hass, "switch", "turn_on"),
        "turn_off": async_mock_service(hass, "switch", "turn_off"),
        "notify": async_mock_service(hass, "notify", "mobile_app_phone"),
    }


@pytest.fixture
def mock_config_entry():
    """Config entry with the reference vehicle."""
    return MockConfigEntry(domain=DOMAIN, data=dict(ENTRY_DATA), unique_id=DOMAIN)


@pytest.fixture
async def setup_integration(
    hass: HomeAssistant, vehicle_states, service_calls, mock_config_entry
):
    """Set up integration with mock states."""
    for entity_id, (state, attributes) in vehicle_states.items():
        hass.states.async_set(entity_id, state, attributes)

    mock_config_entry.add_to_hass(hass)
    await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    yield mock_config_entry

    if mock_config_entry.state is ConfigEntryState.LOADED:
        await hass.config_entries.async_unload(mock_config_entry.entry_id)
        await hass.async_block_till_done()


@pytest.fixture
def coordinator(hass: HomeAssistant, setup_integration):
    """Coordinator of the set up entry."""
    return hass.data[DOMAIN][setup_integration.entry_id]
