"""Overnight EV Charger Coordinator - Thin orchestrator for all components.

It:
- Builds the state from the config entry and stored settings
- Drives the 60 s tick and reacts to plug changes
- Delegates scheduling to the optimizer and supervision to the recovery machine
- Validates settings changes coming from services and entities

It does NOT contain scheduling or recovery logic itself.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import TYPE_CHECKING, Any

from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.helpers.event import (
    async_track_state_change_event,
    async_track_time_interval,
)
from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import Event, HomeAssistant

from .charger_logging import get_logger
from .const import (
    COMMAND_CHARGE_START,
    COMMAND_CHARGE_STOP,
    CONF_BATTERY_CAPACITY,
    CONF_BATTERY_SOH,
    CONF_CAC_SENSOR,
    CONF_CAPACITY_SENSOR,
    CONF_CHARGE_RATE,
    CONF_CHARGE_SWITCH,
    CONF_CHARGING_SENSOR,
    CONF_CHEAP_RATE,
    CONF_CHEAP_WINDOW_END,
    CONF_CHEAP_WINDOW_START,
    CONF_CLIMATE_ENTITY,
    CONF_NOTIFY_SERVICE,
    CONF_PLUG_SENSOR,
    CONF_READY_BY,
    CONF_SOC_SENSOR,
    CONF_SOH_SENSOR,
    CONF_STANDARD_RATE,
    CONF_TARGET_SOC,
    CONF_VOLTAGE_SENSOR,
    DEFAULT_CHARGE_RATE,
    DEFAULT_CHEAP_RATE,
    DEFAULT_CHEAP_WINDOW_END,
    DEFAULT_CHEAP_WINDOW_START,
    DEFAULT_STANDARD_RATE,
    DEFAULT_TARGET_SOC,
    MAX_CHARGE_RATE,
    MAX_TARGET_SOC,
    MIN_CHARGE_RATE,
    MIN_TARGET_SOC,
    TICK_INTERVAL,
)
from .core.deferred import DeferredScheduler
from .core.events import ChargerEvent, ChargerEventBus, EventData
from .core.hardware import VehicleInterface
from .core.recovery import RecoveryMachine
from .core.state import ChargerState
from .domain.energy import charger_type
from .domain.optimizer import ScheduleMode, ScheduleOptimizer, ScheduleResult
from .domain.time_window import parse_time_of_day, to_minute_of_day
from .exceptions import ConfigurationError
from .infra.notifier import Notifier
from .infra.storage import SettingsStore
from .services import async_register_services, async_remove_services


class ChargerCoordinator:
    """Thin orchestrator for the Overnight EV Charger."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        self.hass = hass
        self.entry = entry
        self._listeners = []
        self._logger = get_logger()

        self._logger.info("COORDINATOR_INIT_START", entry_id=entry.entry_id)

        self.state = self._create_state_from_config()
        self.events = ChargerEventBus(hass)
        self.vehicle = VehicleInterface(hass, self.state, self.events)
        self.notifier = Notifier(self.state, self.vehicle)
        self.scheduler = DeferredScheduler(dt_util.now)
        self.recovery = RecoveryMachine(
            self.state,
            self.vehicle,
            self.scheduler,
            self.notifier,
            dt_util.now,
            self.events,
        )
        self.settings = SettingsStore(hass, entry.entry_id)

        self._logger.info("COORDINATOR_INIT_COMPLETE")

    def _create_state_from_config(self) -> ChargerState:
        """Create state object from config entry."""
        data = self.entry.data
        options = self.entry.options

        def get_config(key, default):
            return options.get(key, data.get(key, default))

        ready_by = get_config(CONF_READY_BY, None)

        return ChargerState(
            # Vehicle entities
            soc_sensor_entity=data.get(CONF_SOC_SENSOR, ""),
            charging_sensor_entity=data.get(CONF_CHARGING_SENSOR, ""),
            plug_sensor_entity=data.get(CONF_PLUG_SENSOR, ""),
            charge_switch_entity=data.get(CONF_CHARGE_SWITCH, ""),
            climate_entity=data.get(CONF_CLIMATE_ENTITY) or "",
            notify_service=get_config(CONF_NOTIFY_SERVICE, "") or "",

            # Battery detection
            capacity_sensor_entity=data.get(CONF_CAPACITY_SENSOR) or "",
            soh_sensor_entity=data.get(CONF_SOH_SENSOR) or "",
            cac_sensor_entity=data.get(CONF_CAC_SENSOR) or "",
            voltage_sensor_entity=data.get(CONF_VOLTAGE_SENSOR) or "",
            configured_capacity_kwh=data.get(CONF_BATTERY_CAPACITY),
            configured_soh_pct=data.get(CONF_BATTERY_SOH),

            # Schedule and pricing
            cheap_start=parse_time_of_day(
                get_config(CONF_CHEAP_WINDOW_START, DEFAULT_CHEAP_WINDOW_START)
            ),
            cheap_end=parse_time_of_day(
                get_config(CONF_CHEAP_WINDOW_END, DEFAULT_CHEAP_WINDOW_END)
            ),
            target_soc_pct=float(get_config(CONF_TARGET_SOC, DEFAULT_TARGET_SOC)),
            charge_rate_kw=float(get_config(CONF_CHARGE_RATE, DEFAULT_CHARGE_RATE)),
            ready_by=parse_time_of_day(ready_by) if ready_by else None,
            cheap_rate_per_kwh=float(get_config(CONF_CHEAP_RATE, DEFAULT_CHEAP_RATE)),
            standard_rate_per_kwh=float(
                get_config(CONF_STANDARD_RATE, DEFAULT_STANDARD_RATE)
            ),
        )

    async def async_init(self) -> None:
        """Initialize async components."""
        self._logger.info("COORDINATOR_ASYNC_INIT_START")

        stored = await self.settings.async_load()
        if stored:
            self.settings.apply(self.state, stored)
            self._logger.info("SETTINGS_RESTORED", **self.state.settings_dict())

        now = dt_util.now()
        snapshot = self.vehicle.read_snapshot(now)
        self.vehicle.get_battery_profile(now)
        if snapshot.is_plugged_in and snapshot.soc is not None:
            self.recalculate(now)

        self._setup_listeners()
        async_register_services(self.hass, self)

        self._logger.info("COORDINATOR_ASYNC_INIT_COMPLETE", **snapshot.to_dict())

    def _setup_listeners(self) -> None:
        """Register the periodic tick and plug tracking."""
        self._listeners.append(
            async_track_time_interval(self.hass, self._async_tick, TICK_INTERVAL)
        )
        self._listeners.append(
            self.events.on(
                ChargerEvent.COMMAND_FAILED, self._async_on_command_failed
            )
        )
        if self.state.plug_sensor_entity:
            self._listeners.append(
                async_track_state_change_event(
                    self.hass,
                    [self.state.plug_sensor_entity],
                    self._async_handle_plug_change,
                )
            )
        self._logger.debug("LISTENERS_REGISTERED", count=len(self._listeners))

    def async_unload(self) -> None:
        """Unload the coordinator."""
        for remove in self._listeners:
            remove()
        self._listeners.clear()
        async_remove_services(self.hass)
        self.recovery.reset("unload")
        self.scheduler.clear()
        self._logger.info("COORDINATOR_UNLOADED")

    # ========== Tick ==========

    async def _async_tick(self, now: datetime) -> None:
        """Periodic tick: telemetry, recovery, deferred callbacks, schedule."""
        now = dt_util.as_local(now)
        await self._async_refresh(now)
        self.vehicle.get_battery_profile(now)
        await self.recovery.async_check(now)
        await self.scheduler.async_fire_due()
        await self._async_schedule_check(now)
        await self.events.emit_state_update()

    async def async_run_tick(self) -> None:
        """Run one tick immediately."""
        await self._async_tick(dt_util.now())

    async def _async_refresh(self, now: datetime) -> None:
        """Take a telemetry snapshot and react to plug transitions."""
        was_plugged = self.state.telemetry.is_plugged_in
        snapshot = self.vehicle.read_snapshot(now)

        if snapshot.is_plugged_in and not was_plugged:
            await self._async_on_plugged_in(now)
        elif snapshot.is_plugged_in is False and was_plugged:
            await self._async_on_unplugged()

    async def _async_handle_plug_change(self, event: Event) -> None:
        """Plug sensor changed state."""
        new_state = event.data.get("new_state")
        if new_state is None or new_state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            return

        now = dt_util.now()
        await self._async_refresh(now)
        if self.state.is_plugged_in:
            await self._async_schedule_check(now)

    async def _async_on_command_failed(self, event: EventData) -> None:
        """Remember the last failed command for the status report."""
        self.state.last_status = (
            f"Command {event.data.get('command')} failed: {event.data.get('error')}"
        )
        await self.events.emit_state_update()

    async def _async_on_plugged_in(self, now: datetime) -> None:
        """New plug-in: supersede the previous session and schedule."""
        self._logger.separator("PLUGGED IN")
        self.recovery.reset("plugged in")
        self.state.update(scheduled_charge_started=False, schedule=None)

        self.vehicle.get_battery_profile(now)
        if self.state.current_soc is None:
            # The tick schedules once the SOC can be read
            self._logger.warning("PLUG_IN_SOC_UNAVAILABLE")
            await self.notifier.send_soc_unavailable()
        else:
            result = self.recalculate(now)
            await self.notifier.send_schedule(result)
        await self.events.emit(ChargerEvent.PLUGGED_IN, soc=self.state.current_soc)

    async def _async_on_unplugged(self) -> None:
        """Unplugged: end supervision and drop the schedule."""
        self._logger.separator("UNPLUGGED")
        had_session = not self.state.session.is_idle
        self.recovery.reset("unplugged")
        self.state.update(scheduled_charge_started=False, schedule=None)
        if had_session:
            await self.notifier.send_unplugged()
        await self.events.emit(ChargerEvent.UNPLUGGED, soc=self.state.current_soc)

    # ========== Scheduling ==========

    def recalculate(self, now: datetime | None = None) -> ScheduleResult:
        """Recompute the schedule from the current snapshot and settings."""
        now = now or dt_util.now()
        state = self.state
        try:
            result = ScheduleOptimizer.optimize(
                state.charge_target(),
                state.tariff,
                state.battery,
                state.charge_rate_kw,
                now,
            )
        except ConfigurationError as ex:
            self._logger.error("SCHEDULE_FAILED", error=str(ex))
            result = ScheduleResult(mode=ScheduleMode.NO_ACTION, reason=str(ex))

        if result != state.schedule:
            self._logger.info(
                "SCHEDULE_COMPUTED",
                mode=result.mode.value,
                start=result.start_at.isoformat() if result.start_at else None,
                kwh=round(result.kwh_needed, 2),
                cost=round(result.total_cost, 2),
            )
        state.schedule = result
        state.last_schedule_check = now
        return result

    async def _async_schedule_check(self, now: datetime) -> None:
        """Start the scheduled charge once its start time has come."""
        state = self.state
        if not state.is_plugged_in:
            return
        if not state.session.is_idle or state.scheduled_charge_started:
            return
        if state.current_soc is None:
            self._logger.debug("SCHEDULE_CHECK_SKIPPED", reason="soc unavailable")
            return

        result = self.recalculate(now)
        if not result.needs_charge or result.start_at is None:
            return
        if result.start_at <= now:
            await self._async_start_scheduled(result)

    async def _async_start_scheduled(self, result: ScheduleResult) -> None:
        """Start the scheduled charge and begin supervising it."""
        self._logger.separator("SCHEDULED CHARGE")
        self._logger.info(
            "SCHEDULED_CHARGE_START",
            mode=result.mode.value,
            soc=self.state.current_soc,
            target=self.state.target_soc_pct,
        )
        await self.vehicle.async_execute(COMMAND_CHARGE_START)
        self.state.scheduled_charge_started = True
        await self.recovery.async_begin(manual=False)
        await self.notifier.send_charge_started(result)
        await self.events.emit(
            ChargerEvent.CHARGE_STARTED, mode=result.mode.value, manual=False
        )

    # ========== Manual control ==========

    async def async_manual_start(self) -> bool:
        """Start a manual charge session.

        Returns:
            True if the start command was issued
        """
        state = self.state
        snapshot = self.vehicle.read_snapshot(dt_util.now())

        reason = None
        if not snapshot.is_plugged_in:
            reason = "vehicle is not plugged in"
        elif snapshot.is_charging:
            reason = "vehicle is already charging"
        elif snapshot.soc is not None and snapshot.soc >= state.target_soc_pct:
            reason = f"target {state.target_soc_pct:.0f}% already reached"

        if reason:
            self._logger.warning("MANUAL_START_BLOCKED", reason=reason)
            await self.notifier.send_manual(f"Manual start blocked: {reason}.", alert=True)
            return False

        self._logger.info("MANUAL_START", soc=snapshot.soc)
        await self.vehicle.async_execute(COMMAND_CHARGE_START)
        state.scheduled_charge_started = True
        if state.session.is_idle:
            await self.recovery.async_begin(manual=True)
        else:
            self.recovery.engage_manual_override()
        await self.notifier.send_manual(
            f"Manual charge started at {snapshot.soc:.0f}%, "
            f"charging to {state.target_soc_pct:.0f}%."
            if snapshot.soc is not None
            else f"Manual charge started, charging to {state.target_soc_pct:.0f}%."
        )
        await self.events.emit(ChargerEvent.CHARGE_STARTED, manual=True)
        return True

    async def async_manual_stop(self) -> bool:
        """Stop charging and cancel any pending recovery.

        Returns:
            True if the stop command was accepted
        """
        self._logger.info("MANUAL_STOP", state=self.state.session.state.value)
        self.recovery.reset("manual stop")
        self.state.scheduled_charge_started = True
        success = await self.vehicle.async_execute(COMMAND_CHARGE_STOP)
        await self.notifier.send_manual(
            "Charging stopped. Automatic retries cancelled."
            if success
            else "Stop command failed, please check the vehicle.",
            alert=not success,
        )
        await self.events.emit(ChargerEvent.CHARGE_STOPPED, manual=True)
        return success

    async def async_recalculate(self) -> ScheduleResult:
        """Refresh telemetry and recompute the schedule on request."""
        now = dt_util.now()
        await self._async_refresh(now)
        self.vehicle.get_battery_profile(now)
        result = self.recalculate(now)
        await self.events.emit(ChargerEvent.SCHEDULE_UPDATED, mode=result.mode.value)
        return result

    # ========== Settings ==========

    async def _async_apply_settings(self, description: str, **changes: Any) -> None:
        """Store changed settings, reschedule and confirm to the user."""
        self.state.update(**changes)
        await self.settings.async_save(self.state.settings_dict())
        self._logger.info("SETTINGS_CHANGED", **self.state.settings_dict())

        if (
            self.state.is_plugged_in
            and not self.state.scheduled_charge_started
            and self.state.current_soc is not None
        ):
            self.recalculate()

        await self.notifier.send_config_changed(description)
        await self.events.emit(ChargerEvent.SETTINGS_CHANGED, description=description)

    async def _async_reject(self, ex: ConfigurationError) -> bool:
        self._logger.warning("SETTING_REJECTED", field=ex.field, error=str(ex))
        await self.notifier.send_config_rejected(str(ex))
        return False

    async def async_set_target(self, target_soc: float) -> bool:
        """Set the target SOC (20 to 100 %)."""
        if not MIN_TARGET_SOC <= target_soc <= MAX_TARGET_SOC:
            return await self._async_reject(
                ConfigurationError(
                    "target_soc",
                    f"Target SOC must be between {MIN_TARGET_SOC:.0f} and "
                    f"{MAX_TARGET_SOC:.0f}%, got {target_soc}",
                )
            )

        await self._async_apply_settings(
            f"Target SOC set to {target_soc:.0f}%.", target_soc_pct=float(target_soc)
        )
        return True

    async def async_set_ready_by(self, hour: int, minute: int) -> bool:
        """Set the ready-by deadline."""
        try:
            to_minute_of_day(hour, minute)
        except ConfigurationError as ex:
            return await self._async_reject(ex)

        await self._async_apply_settings(
            f"Ready by {hour:02d}:{minute:02d}.", ready_by=time(hour, minute)
        )
        return True

    async def async_clear_ready_by(self) -> bool:
        """Remove the ready-by deadline."""
        await self._async_apply_settings("Ready-by deadline cleared.", ready_by=None)
        return True

    async def async_set_window(
        self, start_hour: int, start_minute: int, end_hour: int, end_minute: int
    ) -> bool:
        """Set the cheap tariff window."""
        try:
            start = to_minute_of_day(start_hour, start_minute)
            end = to_minute_of_day(end_hour, end_minute)
            if start == end:
                raise ConfigurationError(
                    "window", "Cheap window start and end must differ"
                )
        except ConfigurationError as ex:
            return await self._async_reject(ex)

        await self._async_apply_settings(
            f"Cheap window set to {start_hour:02d}:{start_minute:02d}-"
            f"{end_hour:02d}:{end_minute:02d}.",
            cheap_start=time(start_hour, start_minute),
            cheap_end=time(end_hour, end_minute),
        )
        return True

    async def async_set_charge_rate(self, charge_rate_kw: float) -> bool:
        """Set the charger power (1 to 350 kW)."""
        if not MIN_CHARGE_RATE <= charge_rate_kw <= MAX_CHARGE_RATE:
            return await self._async_reject(
                ConfigurationError(
                    "charge_rate_kw",
                    f"Charge rate must be between {MIN_CHARGE_RATE:.0f} and "
                    f"{MAX_CHARGE_RATE:.0f} kW, got {charge_rate_kw}",
                )
            )

        await self._async_apply_settings(
            f"Charge rate set to {charge_rate_kw:.1f} kW "
            f"({charger_type(charge_rate_kw)}).",
            charge_rate_kw=float(charge_rate_kw),
        )
        return True

    async def async_set_rates(self, cheap_rate: float, standard_rate: float) -> bool:
        """Set the cheap and standard prices per kWh."""
        if cheap_rate < 0 or standard_rate <= 0:
            return await self._async_reject(
                ConfigurationError("rates", "Rates must be positive")
            )
        if cheap_rate >= standard_rate:
            return await self._async_reject(
                ConfigurationError(
                    "rates", "Cheap rate must be lower than the standard rate"
                )
            )

        await self._async_apply_settings(
            f"Rates set to {cheap_rate:.2f} cheap / {standard_rate:.2f} standard per kWh.",
            cheap_rate_per_kwh=float(cheap_rate),
            standard_rate_per_kwh=float(standard_rate),
        )
        return True

    # ========== Reporting ==========

    async def async_send_status(self) -> str:
        """Send and return the full status."""
        await self._async_refresh(dt_util.now())
        next_action = self.scheduler.next_due()
        await self.notifier.send_status(next_action)
        return self.notifier.status_text(next_action)

    async def async_send_next_charge(self) -> str:
        """Send and return the next charge summary."""
        now = dt_util.now()
        await self._async_refresh(now)
        if (
            self.state.is_plugged_in
            and self.state.session.is_idle
            and not self.state.scheduled_charge_started
            and self.state.current_soc is not None
        ):
            self.recalculate(now)
        await self.notifier.send_next_charge()
        return self.notifier.next_charge_summary()
