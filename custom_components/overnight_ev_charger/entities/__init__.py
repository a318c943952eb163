"""Entities module - HA entity definitions using factory pattern.

All entities are thin wrappers that:
- Read from ChargerState
- Delegate actions to the coordinator
- Refresh on the integration's dispatcher signal
"""

from .binary_sensors import BINARY_SENSOR_DEFINITIONS, async_setup_binary_sensors
from .buttons import BUTTON_DEFINITIONS, async_setup_buttons
from .numbers import async_setup_numbers
from .sensors import SENSOR_DEFINITIONS, async_setup_sensors
from .switches import async_setup_switches

__all__ = [
    "async_setup_sensors",
    "async_setup_binary_sensors",
    "async_setup_numbers",
    "async_setup_switches",
    "async_setup_buttons",
    "BINARY_SENSOR_DEFINITIONS",
    "BUTTON_DEFINITIONS",
    "SENSOR_DEFINITIONS",
]
