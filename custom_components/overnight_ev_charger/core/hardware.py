"""Vehicle abstraction layer - single point of access for all HA entities.

This module provides a narrow interface to:
- Read vehicle metrics (SOC, charging flag, plug state, battery data)
- Issue vehicle commands (charge start/stop, climate on/off)
- Send notifications

Nothing here raises into the tick: unreadable telemetry degrades to None and
a failed command is logged and reported as False. A command that returns
True was only dispatched, its effect is confirmed by the next reading.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.exceptions import HomeAssistantError

from ..charger_logging import get_logger
from ..const import (
    BATTERY_CACHE_SECONDS,
    CATEGORY_CONFIG,
    CATEGORY_MANUAL,
    CATEGORY_RECOVERY,
    CATEGORY_SCHEDULE,
    CATEGORY_STATUS,
    COMMAND_CHARGE_START,
    COMMAND_CHARGE_STOP,
    COMMAND_CLIMATE_OFF,
    COMMAND_CLIMATE_ON,
    DEFAULT_NAME,
    DOMAIN,
    LEVEL_ALERT,
    METRIC_CAC,
    METRIC_CAPACITY,
    METRIC_CHARGING,
    METRIC_PLUGGED_IN,
    METRIC_SOC,
    METRIC_SOH,
    METRIC_VOLTAGE,
)
from ..domain.energy import BatteryProfile, capacity_from_cac, resolve_battery_profile
from ..exceptions import CommandExecutionError, TelemetryUnavailableError
from .events import ChargerEvent, ChargerEventBus
from .state import ChargerState, TelemetrySnapshot

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_ON_STATES = {"on", "true", "charging", "connected", "plugged", "plugged_in", "yes"}
_OFF_STATES = {
    "off",
    "false",
    "not_charging",
    "disconnected",
    "unplugged",
    "no",
    "idle",
    "complete",
}

_CATEGORY_TITLES = {
    CATEGORY_SCHEDULE: "Charge schedule",
    CATEGORY_STATUS: "Charge status",
    CATEGORY_MANUAL: "Manual charge",
    CATEGORY_CONFIG: "Charger settings",
    CATEGORY_RECOVERY: "Charge recovery",
}


class VehicleInterface:
    """Abstraction layer for all vehicle/HA entity interactions."""

    def __init__(
        self,
        hass: HomeAssistant,
        state: ChargerState,
        events: ChargerEventBus,
    ) -> None:
        """Initialize the vehicle interface.

        Args:
            hass: Home Assistant instance
            state: Charger state container
            events: Event bus
        """
        self.hass = hass
        self.state = state
        self.events = events
        self._logger = get_logger()

    # ========== Telemetry ==========

    def _metric_entity(self, name: str) -> str:
        return {
            METRIC_SOC: self.state.soc_sensor_entity,
            METRIC_CHARGING: self.state.charging_sensor_entity,
            METRIC_PLUGGED_IN: self.state.plug_sensor_entity,
            METRIC_CAPACITY: self.state.capacity_sensor_entity,
            METRIC_SOH: self.state.soh_sensor_entity,
            METRIC_CAC: self.state.cac_sensor_entity,
            METRIC_VOLTAGE: self.state.voltage_sensor_entity,
        }.get(name, "")

    def _read_state(self, name: str) -> str:
        """Raw state string of a metric's entity.

        Raises:
            TelemetryUnavailableError: If the entity is unset, missing or unavailable
        """
        entity_id = self._metric_entity(name)
        if not entity_id:
            raise TelemetryUnavailableError(name, "not configured")

        state = self.hass.states.get(entity_id)
        if state is None:
            raise TelemetryUnavailableError(name, f"entity {entity_id} not found")
        if state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            raise TelemetryUnavailableError(name, f"entity {entity_id} is {state.state}")
        return state.state

    def get_metric(self, name: str) -> float | None:
        """Numeric value of a metric, or None when it cannot be read."""
        try:
            raw = self._read_state(name)
            try:
                value = float(raw)
            except (ValueError, TypeError) as ex:
                raise TelemetryUnavailableError(name, f"non-numeric value {raw!r}") from ex
        except TelemetryUnavailableError as ex:
            if ex.reason == "not configured":
                self._logger.debug("METRIC_NOT_CONFIGURED", metric=name)
            else:
                self._logger.warning("METRIC_UNAVAILABLE", metric=name, reason=ex.reason)
            return None

        self._logger.debug("METRIC_READ", metric=name, value=value)
        return value

    def is_on(self, name: str) -> bool | None:
        """Boolean value of a metric, or None when it cannot be read."""
        try:
            raw = self._read_state(name).lower()
        except TelemetryUnavailableError as ex:
            self._logger.warning("METRIC_UNAVAILABLE", metric=name, reason=ex.reason)
            return None

        if raw in _ON_STATES:
            return True
        if raw in _OFF_STATES:
            return False
        self._logger.warning("METRIC_UNRECOGNIZED", metric=name, value=raw)
        return None

    def read_snapshot(self, now: datetime) -> TelemetrySnapshot:
        """Read SOC, charging and plug state once and store the snapshot."""
        snapshot = TelemetrySnapshot(
            soc=self.get_metric(METRIC_SOC),
            is_charging=self.is_on(METRIC_CHARGING),
            is_plugged_in=self.is_on(METRIC_PLUGGED_IN),
            taken_at=now,
        )
        self.state.telemetry = snapshot
        return snapshot

    def get_battery_profile(self, now: datetime) -> BatteryProfile:
        """Battery profile, refreshed from telemetry at most once a minute."""
        refreshed = self.state.battery_refreshed_at
        if refreshed is not None and now - refreshed < timedelta(
            seconds=BATTERY_CACHE_SECONDS
        ):
            return self.state.battery

        capacity = self.get_metric(METRIC_CAPACITY)
        if capacity is None:
            cac = self.get_metric(METRIC_CAC)
            if cac is not None:
                capacity = capacity_from_cac(cac, self.get_metric(METRIC_VOLTAGE))

        profile = resolve_battery_profile(
            telemetry_capacity_kwh=capacity,
            telemetry_soh_pct=self.get_metric(METRIC_SOH),
            configured_capacity_kwh=self.state.configured_capacity_kwh,
            configured_soh_pct=self.state.configured_soh_pct,
        )
        if profile != self.state.battery:
            self._logger.info("BATTERY_PROFILE_UPDATED", **profile.to_dict())

        self.state.battery = profile
        self.state.battery_refreshed_at = now
        return profile

    # ========== Commands ==========

    def _command_target(self, command: str) -> tuple[str, str, str]:
        """Map a command to (domain, service, entity_id).

        Raises:
            CommandExecutionError: If the command is unknown or unconfigured
        """
        if command in (COMMAND_CHARGE_START, COMMAND_CHARGE_STOP):
            entity_id = self.state.charge_switch_entity
        elif command in (COMMAND_CLIMATE_ON, COMMAND_CLIMATE_OFF):
            entity_id = self.state.climate_entity
        else:
            raise CommandExecutionError(command, f"Unknown command {command}")

        if not entity_id:
            raise CommandExecutionError(command, f"No entity configured for {command}")

        service = (
            "turn_on"
            if command in (COMMAND_CHARGE_START, COMMAND_CLIMATE_ON)
            else "turn_off"
        )
        return entity_id.split(".", 1)[0], service, entity_id

    async def async_execute(self, command: str) -> bool:
        """Dispatch a vehicle command.

        Returns:
            True if the service call was accepted
        """
        try:
            domain, service, entity_id = self._command_target(command)
            try:
                await self.hass.services.async_call(
                    domain,
                    service,
                    {"entity_id": entity_id},
                    blocking=True,
                )
            except (HomeAssistantError, ValueError) as ex:
                raise CommandExecutionError(command, str(ex)) from ex
        except CommandExecutionError as ex:
            self._logger.error("COMMAND_FAILED", command=command, error=str(ex))
            await self.events.emit(
                ChargerEvent.COMMAND_FAILED, command=command, error=str(ex)
            )
            return False

        self._logger.info("COMMAND_SENT", command=command, entity_id=entity_id)
        return True

    # ========== Notifications ==========

    async def async_notify(self, level: str, category: str, message: str) -> bool:
        """Send a notification, best effort.

        Uses the configured notify service, or a persistent notification
        when none is set.

        Returns:
            True if sent successfully
        """
        title = f"{DEFAULT_NAME}: {_CATEGORY_TITLES.get(category, category)}"
        if level == LEVEL_ALERT:
            title = f"⚠️ {title}"

        notify_service = self.state.notify_service
        if notify_service:
            if "." in notify_service:
                domain, service = notify_service.split(".", 1)
            else:
                domain, service = "notify", notify_service
            data = {"title": title, "message": message}
        else:
            domain, service = "persistent_notification", "create"
            data = {
                "title": title,
                "message": message,
                "notification_id": f"{DOMAIN}_{category.replace('.', '_')}",
            }

        try:
            await self.hass.services.async_call(domain, service, data)
        except (HomeAssistantError, ValueError) as ex:
            self._logger.error(
                "NOTIFICATION_FAILED",
                service=f"{domain}.{service}",
                category=category,
                error=str(ex),
            )
            return False

        self._logger.info(
            "NOTIFICATION_SENT", level=level, category=category, length=len(message)
        )
        return True
