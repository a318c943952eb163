"""Persistence of settings changed at runtime through services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.helpers import storage

from ..charger_logging import get_logger
from ..const import STORAGE_KEY, STORAGE_VERSION
from ..domain.time_window import parse_time_of_day
from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..core.state import ChargerState

_TIME_FIELDS = ("cheap_start", "cheap_end", "ready_by")
_FLOAT_FIELDS = (
    "cheap_rate_per_kwh",
    "standard_rate_per_kwh",
    "target_soc_pct",
    "charge_rate_kw",
)


class SettingsStore:
    """Best-effort key/value store for runtime settings."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry the settings belong to
        """
        self._store = storage.Store(hass, STORAGE_VERSION, f"{STORAGE_KEY}.{entry_id}")
        self._logger = get_logger()

    async def async_load(self) -> dict[str, Any]:
        """Load stored settings, empty when nothing was saved yet."""
        data = await self._store.async_load()
        if not isinstance(data, dict):
            return {}
        self._logger.debug("SETTINGS_LOADED", keys=list(data))
        return data

    async def async_save(self, settings: dict[str, Any]) -> None:
        """Save settings."""
        await self._store.async_save(settings)
        self._logger.debug("SETTINGS_SAVED")

    async def async_remove(self) -> None:
        """Delete stored settings."""
        await self._store.async_remove()

    def apply(self, state: ChargerState, data: dict[str, Any]) -> None:
        """Overlay stored settings onto the state, skipping unreadable values."""
        updates: dict[str, Any] = {}
        for key in _TIME_FIELDS:
            if key not in data:
                continue
            try:
                updates[key] = parse_time_of_day(data[key]) if data[key] else None
            except ConfigurationError as ex:
                self._logger.warning(
                    "STORED_SETTING_INVALID", key=key, value=data[key], error=str(ex)
                )
        for key in _FLOAT_FIELDS:
            if data.get(key) is None:
                continue
            try:
                updates[key] = float(data[key])
            except (TypeError, ValueError) as ex:
                self._logger.warning(
                    "STORED_SETTING_INVALID", key=key, value=data[key], error=str(ex)
                )

        # Window bounds are mandatory
        for key in ("cheap_start", "cheap_end"):
            if key in updates and updates[key] is None:
                del updates[key]

        state.update(**updates)
