"""Event Bus for component communication.

Components announce what happened through events instead of calling each
other. Every event is logged, and events that change what entities show are
forwarded to Home Assistant as a dispatcher signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from homeassistant.helpers.dispatcher import async_dispatcher_send

from ..charger_logging import get_logger
from ..const import SIGNAL_UPDATE

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class ChargerEvent(str, Enum):
    """Event types for the Overnight EV Charger integration."""

    # Vehicle
    PLUGGED_IN = "charger.plugged_in"
    UNPLUGGED = "charger.unplugged"

    # Schedule
    SCHEDULE_UPDATED = "charger.schedule_updated"
    SETTINGS_CHANGED = "charger.settings_changed"

    # Charging
    CHARGE_STARTED = "charger.charge_started"
    CHARGE_STOPPED = "charger.charge_stopped"
    TARGET_REACHED = "charger.target_reached"

    # Recovery
    RECOVERY_STATE_CHANGED = "charger.recovery_state_changed"
    RETRY_EXHAUSTED = "charger.retry_exhausted"

    # Errors
    COMMAND_FAILED = "charger.command_failed"

    # UI update trigger
    UI_UPDATE = "charger.ui_update"


_UI_EVENTS = {
    ChargerEvent.UI_UPDATE,
    ChargerEvent.SCHEDULE_UPDATED,
    ChargerEvent.SETTINGS_CHANGED,
    ChargerEvent.RECOVERY_STATE_CHANGED,
    ChargerEvent.PLUGGED_IN,
    ChargerEvent.UNPLUGGED,
    ChargerEvent.CHARGE_STARTED,
    ChargerEvent.CHARGE_STOPPED,
    ChargerEvent.TARGET_REACHED,
}


@dataclass
class EventData:
    """Container for event data."""

    event: ChargerEvent
    timestamp: datetime
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event": self.event.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# Type alias for event handlers
EventHandler = Callable[[EventData], Awaitable[None]]


class ChargerEventBus:
    """Central event bus for the integration."""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the event bus.

        Args:
            hass: Home Assistant instance
        """
        self.hass = hass
        self._logger = get_logger()
        self._handlers: dict[ChargerEvent, list[EventHandler]] = {}

    async def emit(self, event: ChargerEvent, **data: Any) -> None:
        """Emit an event.

        Args:
            event: Event type to emit
            **data: Event data
        """
        event_data = EventData(
            event=event,
            timestamp=datetime.now(),
            data=data,
        )

        self._logger.debug(f"EVENT_{event.name}", **data)

        for handler in list(self._handlers.get(event, [])):
            try:
                await handler(event_data)
            except Exception as ex:
                self._logger.error(
                    "EVENT_HANDLER_ERROR",
                    event=event.name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(ex),
                )

        if event in _UI_EVENTS:
            async_dispatcher_send(self.hass, SIGNAL_UPDATE)

    def on(self, event: ChargerEvent, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler.

        Returns:
            Unsubscribe function
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe():
            self.off(event, handler)

        return unsubscribe

    def off(self, event: ChargerEvent, handler: EventHandler) -> None:
        """Unregister an event handler."""
        if event in self._handlers and handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    async def emit_state_update(self) -> None:
        """Convenience method to emit UI update event."""
        await self.emit(ChargerEvent.UI_UPDATE)
