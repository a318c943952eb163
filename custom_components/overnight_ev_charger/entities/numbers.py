"""Number entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.const import PERCENTAGE, UnitOfPower
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from ..coordinator import ChargerCoordinator

from ..charger_logging import get_logger
from ..const import (
    MAX_CHARGE_RATE,
    MAX_TARGET_SOC,
    MIN_CHARGE_RATE,
    MIN_TARGET_SOC,
    SIGNAL_UPDATE,
)
from .device import build_device_info


class _SettingNumber(NumberEntity):
    """Number entity mirroring one coordinator setting."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, entry_id: str, coordinator: ChargerCoordinator, key: str) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._logger = get_logger()
        self._attr_unique_id = f"{entry_id}_{key}"
        self._attr_device_info = build_device_info(entry_id)

    def _read(self) -> float:
        raise NotImplementedError

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_UPDATE,
                self._handle_update,
            )
        )
        self._handle_update()

    @callback
    def _handle_update(self) -> None:
        """Sync with coordinator state."""
        self._attr_native_value = self._read()
        self.async_write_ha_state()


class TargetSocNumber(_SettingNumber):
    """Target state of charge."""

    _attr_native_min_value = MIN_TARGET_SOC
    _attr_native_max_value = MAX_TARGET_SOC
    _attr_native_step = 5
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_mode = NumberMode.SLIDER
    _attr_icon = "mdi:battery-charging-80"

    def __init__(self, entry_id: str, coordinator: ChargerCoordinator) -> None:
        """Initialize."""
        super().__init__(entry_id, coordinator, "target_soc_setting")
        self._attr_name = "Target SOC Setting"
        self._attr_native_value = self._read()

    def _read(self) -> float:
        return self._coordinator.state.target_soc_pct

    async def async_set_native_value(self, value: float) -> None:
        """Handle value change from UI."""
        self._logger.info("TARGET_SOC_SET_REQUEST", value=value)
        await self._coordinator.async_set_target(value)
        self._handle_update()


class ChargeRateNumber(_SettingNumber):
    """Charger power."""

    _attr_native_min_value = MIN_CHARGE_RATE
    _attr_native_max_value = MAX_CHARGE_RATE
    _attr_native_step = 0.1
    _attr_native_unit_of_measurement = UnitOfPower.KILO_WATT
    _attr_mode = NumberMode.BOX
    _attr_icon = "mdi:ev-station"

    def __init__(self, entry_id: str, coordinator: ChargerCoordinator) -> None:
        """Initialize."""
        super().__init__(entry_id, coordinator, "charge_rate_setting")
        self._attr_name = "Charge Rate Setting"
        self._attr_native_value = self._read()

    def _read(self) -> float:
        return self._coordinator.state.charge_rate_kw

    async def async_set_native_value(self, value: float) -> None:
        """Handle value change from UI."""
        self._logger.info("CHARGE_RATE_SET_REQUEST", value=value)
        await self._coordinator.async_set_charge_rate(value)
        self._handle_update()


async def async_setup_numbers(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: ChargerCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up number entities."""
    async_add_entities([
        TargetSocNumber(entry.entry_id, coordinator),
        ChargeRateNumber(entry.entry_id, coordinator),
    ])
