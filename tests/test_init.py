"""Test integration setup and teardown."""
import pytest
from homeassistant.core import HomeAssistant
from homeassistant.config_entries import ConfigEntryState

from custom_components.overnight_ev_charger.const import (
    CONF_TARGET_SOC,
    DOMAIN,
    STORAGE_KEY,
)
from custom_components.overnight_ev_charger.coordinator import ChargerCoordinator


@pytest.mark.asyncio
async def test_setup_entry(hass: HomeAssistant, setup_integration):
    """Test integration sets up correctly."""
    assert setup_integration.state == ConfigEntryState.LOADED
    assert isinstance(
        hass.data[DOMAIN][setup_integration.entry_id], ChargerCoordinator
    )


@pytest.mark.asyncio
async def test_unload_entry(hass: HomeAssistant, setup_integration):
    """Test integration unloads correctly."""
    coordinator = hass.data[DOMAIN][setup_integration.entry_id]
    assert await hass.config_entries.async_unload(setup_integration.entry_id)
    await hass.async_block_till_done()

    assert setup_integration.state == ConfigEntryState.NOT_LOADED
    assert setup_integration.entry_id not in hass.data[DOMAIN]
    assert coordinator.scheduler.pending_count == 0


@pytest.mark.asyncio
async def test_options_update_reloads(
    hass: HomeAssistant, hass_storage, setup_integration, coordinator
):
    """Test saved options win over settings changed through services."""
    await coordinator.async_set_target(95)
    key = f"{STORAGE_KEY}.{setup_integration.entry_id}"
    assert hass_storage[key]["data"]["target_soc_pct"] == 95.0

    hass.config_entries.async_update_entry(
        setup_integration, options={CONF_TARGET_SOC: 70.0}
    )
    await hass.async_block_till_done()

    reloaded = hass.data[DOMAIN][setup_integration.entry_id]
    assert reloaded is not coordinator
    assert reloaded.state.target_soc_pct == 70.0
    assert key not in hass_storage
