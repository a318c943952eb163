"""Sensor entities using factory pattern.

Instead of defining each sensor manually, we use a data-driven approach.
Add a new sensor = add one line to SENSOR_DEFINITIONS.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.const import (
    PERCENTAGE,
    UnitOfEnergy,
    UnitOfPower,
    UnitOfTime,
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
from ..domain.energy import charger_type
from ..domain.optimizer import ScheduleMode
from .device import build_device_info


@dataclass
class SensorDefinition:
    """Definition for a sensor entity."""

    key: str  # Unique identifier
    name: str  # Display name
    value_fn: Callable[[Any], Any]  # Function to get value from state
    attrs_fn: Callable[[Any], dict[str, Any]] | None = None
    unit: str | None = None
    device_class: SensorDeviceClass | None = None
    state_class: SensorStateClass | None = None
    options: list[str] | None = None
    icon: str | None = None


def _schedule_value(attr: str, digits: int | None = 2):
    """Build a value_fn reading one attribute of the current schedule."""

    def value_fn(state):
        if state.schedule is None:
            return None
        value = getattr(state.schedule, attr)
        if value is None or digits is None:
            return value
        return round(value, digits)

    return value_fn


# All sensor definitions in one place
SENSOR_DEFINITIONS: list[SensorDefinition] = [
    # Schedule
    SensorDefinition(
        key="next_charge_start",
        name="Next Charge Start",
        value_fn=_schedule_value("start_at", None),
        device_class=SensorDeviceClass.TIMESTAMP,
    ),
    SensorDefinition(
        key="next_charge_end",
        name="Next Charge End",
        value_fn=_schedule_value("end_at", None),
        device_class=SensorDeviceClass.TIMESTAMP,
    ),
    SensorDefinition(
        key="schedule_mode",
        name="Schedule Mode",
        value_fn=lambda s: s.schedule.mode.value if s.schedule else None,
        attrs_fn=lambda s: {"reason": s.schedule.reason if s.schedule else None},
        device_class=SensorDeviceClass.ENUM,
        options=[mode.value for mode in ScheduleMode],
        icon="mdi:calendar-clock",
    ),
    SensorDefinition(
        key="energy_needed",
        name="Energy Needed",
        value_fn=_schedule_value("kwh_needed"),
        unit=UnitOfEnergy.KILO_WATT_HOUR,
        device_class=SensorDeviceClass.ENERGY,
    ),
    SensorDefinition(
        key="hours_needed",
        name="Charge Duration",
        value_fn=_schedule_value("hours_needed"),
        unit=UnitOfTime.HOURS,
        device_class=SensorDeviceClass.DURATION,
    ),
    SensorDefinition(
        key="estimated_cost",
        name="Estimated Cost",
        value_fn=_schedule_value("total_cost"),
        attrs_fn=lambda s: {
            "overflow_cost": round(s.schedule.overflow_cost, 2) if s.schedule else None,
            "cheap_hours": round(s.schedule.cheap_hours, 2) if s.schedule else None,
        },
        icon="mdi:cash",
    ),
    SensorDefinition(
        key="overflow_hours",
        name="Overflow Hours",
        value_fn=_schedule_value("overflow_hours"),
        attrs_fn=lambda s: {
            "pre_window_hours": (
                round(s.schedule.pre_window_hours, 2) if s.schedule else None
            ),
            "post_window_hours": (
                round(s.schedule.post_window_hours, 2) if s.schedule else None
            ),
        },
        unit=UnitOfTime.HOURS,
        device_class=SensorDeviceClass.DURATION,
    ),
    SensorDefinition(
        key="buffer_hours",
        name="Buffer Before Ready-By",
        value_fn=_schedule_value("buffer_hours"),
        unit=UnitOfTime.HOURS,
        device_class=SensorDeviceClass.DURATION,
    ),

    # Battery
    SensorDefinition(
        key="usable_capacity",
        name="Usable Battery Capacity",
        value_fn=lambda s: round(s.battery.usable_capacity_kwh, 2),
        attrs_fn=lambda s: s.battery.to_dict(),
        unit=UnitOfEnergy.KILO_WATT_HOUR,
        device_class=SensorDeviceClass.ENERGY_STORAGE,
        state_class=SensorStateClass.MEASUREMENT,
    ),

    # Recovery
    SensorDefinition(
        key="recovery_state",
        name="Recovery State",
        value_fn=lambda s: s.session.state.value,
        attrs_fn=lambda s: s.session.to_dict(),
        device_class=SensorDeviceClass.ENUM,
        options=[state.value for state in RecoveryState],
        icon="mdi:restart-alert",
    ),
    SensorDefinition(
        key="retry_attempts",
        name="Retry Attempts",
        value_fn=lambda s: s.session.attempt_count,
        state_class=SensorStateClass.MEASUREMENT,
        icon="mdi:counter",
    ),

    # Configuration (read-only display)
    SensorDefinition(
        key="charge_rate",
        name="Charge Rate",
        value_fn=lambda s: s.charge_rate_kw,
        attrs_fn=lambda s: {"charger_type": charger_type(s.charge_rate_kw)},
        unit=UnitOfPower.KILO_WATT,
        device_class=SensorDeviceClass.POWER,
    ),
    SensorDefinition(
        key="target_soc",
        name="Target SOC",
        value_fn=lambda s: s.target_soc_pct,
        unit=PERCENTAGE,
        device_class=SensorDeviceClass.BATTERY,
    ),
    SensorDefinition(
        key="cheap_window",
        name="Cheap Window",
        value_fn=lambda s: s.tariff.label(),
        attrs_fn=lambda s: {
            "cheap_rate": s.cheap_rate_per_kwh,
            "standard_rate": s.standard_rate_per_kwh,
        },
        icon="mdi:clock-time-four-outline",
    ),
    SensorDefinition(
        key="ready_by",
        name="Ready By",
        value_fn=lambda s: s.ready_by.strftime("%H:%M") if s.ready_by else "not set",
        icon="mdi:alarm",
    ),
]


class ChargerSensor(SensorEntity):
    """Generic charger sensor entity."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        entry_id: str,
        state: ChargerState,
        definition: SensorDefinition,
    ) -> None:
        """Initialize."""
        self._state = state
        self._definition = definition

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_native_unit_of_measurement = definition.unit
        self._attr_device_class = definition.device_class
        self._attr_state_class = definition.state_class
        self._attr_options = definition.options
        self._attr_icon = definition.icon
        self._attr_device_info = build_device_info(entry_id)

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
            self._attr_native_value = self._definition.value_fn(self._state)
            if self._definition.attrs_fn is not None:
                self._attr_extra_state_attributes = self._definition.attrs_fn(
                    self._state
                )
        except (ValueError, TypeError, AttributeError, KeyError):
            self._attr_native_value = None
        self.async_write_ha_state()


async def async_setup_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    state: ChargerState,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up all sensor entities."""
    entities = [
        ChargerSensor(entry.entry_id, state, definition)
        for definition in SENSOR_DEFINITIONS
    ]
    async_add_entities(entities)
