"""The Overnight EV Charger integration.

Architecture:
- Unified state management (core/state.py)
- Event-driven communication (core/events.py)
- Vehicle abstraction (core/hardware.py)
- Tick-driven deferred callbacks and recovery (core/deferred.py, core/recovery.py)
- Pure scheduling logic (domain/*.py)
- Factory-based entities (entities/*.py)
- Unified logging (charger_logging/*.py)
"""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from .const import DOMAIN
from .coordinator import ChargerCoordinator

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.BUTTON,
    Platform.NUMBER,
    Platform.SWITCH,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Overnight EV Charger from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    coordinator = ChargerCoordinator(hass, entry)
    await coordinator.async_init()

    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    _LOGGER.info("Overnight EV Charger initialized for %s", entry.title)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        coordinator: ChargerCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        coordinator.async_unload()

    return unload_ok


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed.

    Options saved from the UI replace settings changed through services.
    """
    coordinator: ChargerCoordinator | None = hass.data[DOMAIN].get(entry.entry_id)
    if coordinator is not None:
        await coordinator.settings.async_remove()
    await hass.config_entries.async_reload(entry.entry_id)
