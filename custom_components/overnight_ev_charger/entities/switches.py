"""Switch entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.switch import SwitchEntity
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.restore_state import RestoreEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

from ..charger_logging import get_logger
from .device import build_device_info


class FileLoggingSwitch(SwitchEntity, RestoreEntity):
    """Switch to control file logging of charger events.

    When ON: events also go to charger.log and daily JSON-lines files
    When OFF: events go to the Home Assistant log only
    """

    _attr_has_entity_name = True
    _attr_icon = "mdi:bug"
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, entry_id: str) -> None:
        """Initialize."""
        self._logger = get_logger()

        self._attr_unique_id = f"{entry_id}_file_logging"
        self._attr_name = "File Logging"
        self._attr_is_on = self._logger.file_logging_enabled
        self._attr_device_info = build_device_info(entry_id)

    async def async_added_to_hass(self) -> None:
        """Restore previous state."""
        await super().async_added_to_hass()
        last_state = await self.async_get_last_state()
        if last_state is not None and last_state.state == "on":
            self._logger.set_file_logging(True)
            self._attr_is_on = True

    async def async_turn_on(self, **kwargs) -> None:
        """Turn on file logging."""
        self._logger.set_file_logging(True)
        self._attr_is_on = True
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs) -> None:
        """Turn off file logging."""
        self._logger.set_file_logging(False)
        self._attr_is_on = False
        self.async_write_ha_state()

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        return {"log_dir": str(self._logger.log_dir)}


async def async_setup_switches(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up switch entities."""
    async_add_entities([
        FileLoggingSwitch(entry.entry_id),
    ])
