"""Notification formatting and sending.

This module handles all user-facing text:
- Schedule and status messages
- Recovery progress and terminal messages
- Rejected settings and blocked manual actions
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..const import (
    CATEGORY_CONFIG,
    CATEGORY_MANUAL,
    CATEGORY_RECOVERY,
    CATEGORY_SCHEDULE,
    CATEGORY_STATUS,
    LEVEL_ALERT,
    LEVEL_INFO,
    MAX_RETRY_ATTEMPTS,
)
from ..domain.energy import charger_type
from ..domain.optimizer import ScheduleMode, ScheduleResult

if TYPE_CHECKING:
    from ..core.hardware import VehicleInterface
    from ..core.state import ChargerState


def _hhmm(value: datetime | None) -> str:
    return value.strftime("%H:%M") if value else "--:--"


def _soc(value: float | None) -> str:
    return f"{value:.0f}%" if value is not None else "unknown"


def format_schedule(result: ScheduleResult | None) -> str:
    """One-line summary of a schedule."""
    if result is None:
        return "No schedule calculated yet."
    if result.mode == ScheduleMode.NO_ACTION:
        return f"No charge needed: {result.reason}."
    if result.mode == ScheduleMode.EMERGENCY:
        return (
            f"Charging now until {_hhmm(result.end_at)} "
            f"({result.kwh_needed:.1f} kWh, {result.total_cost:.2f}). {result.reason}."
        )
    line = (
        f"Next charge {_hhmm(result.start_at)}-{_hhmm(result.end_at)}, "
        f"{result.kwh_needed:.1f} kWh in {result.hours_needed:.1f}h, "
        f"est. cost {result.total_cost:.2f}"
    )
    if result.overflow_hours > 0:
        line += f" ({result.overflow_hours:.1f}h at standard rate)"
    return line + "."


class Notifier:
    """Handles all notification logic."""

    def __init__(
        self,
        state: ChargerState,
        vehicle: VehicleInterface,
    ) -> None:
        """Initialize notifier.

        Args:
            state: Charger state
            vehicle: Vehicle interface used for sending
        """
        self.state = state
        self.vehicle = vehicle

    # ========== Schedule ==========

    async def send_schedule(self, result: ScheduleResult) -> bool:
        """Announce a newly calculated schedule."""
        level = LEVEL_ALERT if result.mode == ScheduleMode.EMERGENCY else LEVEL_INFO
        return await self.vehicle.async_notify(
            level, CATEGORY_SCHEDULE, format_schedule(result)
        )

    async def send_soc_unavailable(self) -> bool:
        """Plugged in without a readable SOC."""
        return await self.vehicle.async_notify(
            LEVEL_INFO,
            CATEGORY_SCHEDULE,
            "Plugged in, but the SOC is unavailable. "
            "The charge will be scheduled once it can be read.",
        )

    async def send_charge_started(self, result: ScheduleResult | None) -> bool:
        """Announce that the scheduled charge has begun."""
        message = (
            f"Scheduled charge started at {_soc(self.state.current_soc)}, "
            f"target {self.state.target_soc_pct:.0f}%"
        )
        if result is not None and result.end_at is not None:
            message += f", expected to finish {_hhmm(result.end_at)}"
        return await self.vehicle.async_notify(
            LEVEL_INFO, CATEGORY_SCHEDULE, message + "."
        )

    def next_charge_summary(self) -> str:
        """One-line next charge summary."""
        return format_schedule(self.state.schedule)

    async def send_next_charge(self) -> bool:
        """Send the one-line next charge summary."""
        return await self.vehicle.async_notify(
            LEVEL_INFO, CATEGORY_SCHEDULE, self.next_charge_summary()
        )

    def status_text(self, next_action: datetime | None = None) -> str:
        """Full multi-line status.

        Args:
            next_action: Due time of the next pending recovery step
        """
        state = self.state
        session = state.session
        ready_by = state.ready_by.strftime("%H:%M") if state.ready_by else "not set"
        lines = [
            f"SOC: {_soc(state.current_soc)} -> target {state.target_soc_pct:.0f}%",
            f"Plugged in: {'yes' if state.is_plugged_in else 'no'}, "
            f"charging: {'yes' if state.is_charging else 'no'}",
            f"Cheap window: {state.tariff.label()} "
            f"({state.cheap_rate_per_kwh:.2f} / {state.standard_rate_per_kwh:.2f} per kWh)",
            f"Ready by: {ready_by}",
            f"Charge rate: {state.charge_rate_kw:.1f} kW "
            f"({charger_type(state.charge_rate_kw)})",
            f"Battery: {state.battery.usable_capacity_kwh:.1f} kWh usable "
            f"({state.battery.source})",
            f"Schedule: {format_schedule(state.schedule)}",
            f"Recovery: {session.state.value}"
            f" (attempt {session.attempt_count}/{MAX_RETRY_ATTEMPTS})"
            + (" [manual]" if session.manual_override else ""),
        ]
        if next_action is not None:
            lines.append(f"Next recovery step: {next_action.strftime('%H:%M:%S')}")
        lines.append(f"Last status: {state.last_status}")
        return "\n".join(lines)

    async def send_status(self, next_action: datetime | None = None) -> bool:
        """Send the full status."""
        return await self.vehicle.async_notify(
            LEVEL_INFO, CATEGORY_STATUS, self.status_text(next_action)
        )

    # ========== Session end ==========

    async def send_unplugged(self) -> bool:
        """Vehicle was unplugged during a supervised session."""
        return await self.vehicle.async_notify(
            LEVEL_INFO,
            CATEGORY_STATUS,
            f"Vehicle unplugged at {_soc(self.state.current_soc)}, charge session ended.",
        )

    async def send_target_reached(self, soc: float | None) -> bool:
        """Target SOC reached."""
        return await self.vehicle.async_notify(
            LEVEL_INFO,
            CATEGORY_STATUS,
            f"Charge complete: {_soc(soc)} reached "
            f"(target {self.state.target_soc_pct:.0f}%).",
        )

    # ========== Recovery ==========

    async def send_retry_scheduled(
        self, attempt: int, delay: timedelta, soc: float | None
    ) -> bool:
        """Charging stopped, a recovery attempt is pending."""
        minutes = int(delay.total_seconds() // 60)
        return await self.vehicle.async_notify(
            LEVEL_ALERT,
            CATEGORY_RECOVERY,
            f"Charging stopped at {_soc(soc)}. Retrying in {minutes} min "
            f"(attempt {attempt}/{MAX_RETRY_ATTEMPTS}).",
        )

    async def send_retry_resumed(self, attempt: int) -> bool:
        """Charge restarted after a wake sequence."""
        return await self.vehicle.async_notify(
            LEVEL_INFO,
            CATEGORY_RECOVERY,
            f"Charge restart sent (attempt {attempt}/{MAX_RETRY_ATTEMPTS}).",
        )

    async def send_retry_exhausted(self, soc: float | None) -> bool:
        """All recovery attempts failed."""
        return await self.vehicle.async_notify(
            LEVEL_ALERT,
            CATEGORY_RECOVERY,
            f"Charging failed after {MAX_RETRY_ATTEMPTS} restart attempts. "
            f"Last known SOC {_soc(soc)}. Please check the vehicle and charger "
            "and start charging manually.",
        )

    async def send_manual_interrupted(self, soc: float | None) -> bool:
        """A manual session stopped; manual sessions never auto-retry."""
        return await self.vehicle.async_notify(
            LEVEL_ALERT,
            CATEGORY_MANUAL,
            f"Manual charge stopped at {_soc(soc)}. No auto-retry for manual sessions.",
        )

    # ========== Manual and settings ==========

    async def send_manual(self, message: str, alert: bool = False) -> bool:
        """Feedback for a manual start or stop."""
        return await self.vehicle.async_notify(
            LEVEL_ALERT if alert else LEVEL_INFO, CATEGORY_MANUAL, message
        )

    async def send_config_changed(self, message: str) -> bool:
        """A setting was changed."""
        return await self.vehicle.async_notify(LEVEL_INFO, CATEGORY_CONFIG, message)

    async def send_config_rejected(self, message: str) -> bool:
        """A setting was rejected, previous value kept."""
        return await self.vehicle.async_notify(
            LEVEL_ALERT, CATEGORY_CONFIG, f"{message}. Previous setting kept."
        )
