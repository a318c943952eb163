"""Binary sensor entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from ..core.state import ChargerState

from ..const import SIGNAL_UPDATE
from ..core.state import RecoveryState
from .device import build_device_info


@dataclass
class BinarySensorDefinition:
    """Definition for a binary sensor."""

    key: str
    name: str
    value_fn: Callable[[Any], bool]
    device_class: BinarySensorDeviceClass | None = None
    icon_on: str | None = None
    icon_off: str | None = None


def _charge_scheduled(state) -> bool:
    return (
        state.schedule is not None
        and state.schedule.needs_charge
        and not state.scheduled_charge_started
    )


BINARY_SENSOR_DEFINITIONS: list[BinarySensorDefinition] = [
    BinarySensorDefinition(
        key="charging_scheduled",
        name="Charging Scheduled",
        value_fn=_charge_scheduled,
        icon_on="mdi:calendar-check",
        icon_off="mdi:calendar-blank",
    ),
    BinarySensorDefinition(
        key="recovery_active",
        name="Recovery Active",
        value_fn=lambda s: s.session.state
        in (RecoveryState.INTERRUPTED, RecoveryState.WAKE_IN_PROGRESS),
        device_class=BinarySensorDeviceClass.PROBLEM,
    ),
    BinarySensorDefinition(
        key="manual_override",
        name="Manual Override",
        value_fn=lambda s: s.session.manual_override,
        icon_on="mdi:hand-back-right",
        icon_off="mdi:robot",
    ),
    BinarySensorDefinition(
        key="plugged_in",
        name="Plugged In",
        value_fn=lambda s: s.is_plugged_in,
        device_class=BinarySensorDeviceClass.PLUG,
    ),
]


class ChargerBinarySensor(BinarySensorEntity):
    """Generic charger binary sensor."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        entry_id: str,
        state: ChargerState,
        definition: BinarySensorDefinition,
    ) -> None:
        """Initialize."""
        self._state = state
        self._definition = definition

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_device_class = definition.device_class
        self._attr_device_info = build_device_info(entry_id)

    @property
    def icon(self) -> str | None:
        """Return icon based on state."""
        if self._definition.icon_on and self._definition.icon_off:
            return self._definition.icon_on if self.is_on else self._definition.icon_off
        return None

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
        """Handle state update."""
        try:
            self._attr_is_on = bool(self._definition.value_fn(self._state))
        except (AttributeError, TypeError):
            self._attr_is_on = False
        self.async_write_ha_state()


async def async_setup_binary_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    state: ChargerState,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensor entities."""
    entities = [
        ChargerBinarySensor(entry.entry_id, state, definition)
        for definition in BINARY_SENSOR_DEFINITIONS
    ]
    async_add_entities(entities)
