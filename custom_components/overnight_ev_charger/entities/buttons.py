"""Button entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from homeassistant.components.button import ButtonEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from ..coordinator import ChargerCoordinator

from ..charger_logging import get_logger
from .device import build_device_info


@dataclass
class ButtonDefinition:
    """Definition for a button entity."""

    key: str
    name: str
    press_fn: Callable[[Any], Awaitable[Any]]
    icon: str | None = None


BUTTON_DEFINITIONS: list[ButtonDefinition] = [
    ButtonDefinition(
        key="start_charge",
        name="Start Charge",
        press_fn=lambda c: c.async_manual_start(),
        icon="mdi:play-circle",
    ),
    ButtonDefinition(
        key="stop_charge",
        name="Stop Charge",
        press_fn=lambda c: c.async_manual_stop(),
        icon="mdi:stop-circle",
    ),
    ButtonDefinition(
        key="recalculate",
        name="Recalculate Schedule",
        press_fn=lambda c: c.async_recalculate(),
        icon="mdi:refresh",
    ),
]


class ChargerButton(ButtonEntity):
    """Button delegating its press to the coordinator."""

    _attr_has_entity_name = True

    def __init__(
        self,
        entry_id: str,
        coordinator: ChargerCoordinator,
        definition: ButtonDefinition,
    ) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._definition = definition
        self._logger = get_logger()

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_icon = definition.icon
        self._attr_device_info = build_device_info(entry_id)

    async def async_press(self) -> None:
        """Handle button press."""
        self._logger.info("BUTTON_PRESSED", button=self._definition.key)
        await self._definition.press_fn(self._coordinator)


async def async_setup_buttons(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: ChargerCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up button entities."""
    async_add_entities([
        ChargerButton(entry.entry_id, coordinator, definition)
        for definition in BUTTON_DEFINITIONS
    ])
