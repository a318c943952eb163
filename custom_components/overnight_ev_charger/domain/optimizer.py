"""Pure charge schedule optimization.

Decides when an overnight charge should start so the target SOC is reached
by the ready-by deadline, preferring the cheap tariff window. It has NO
dependencies on Home Assistant.

Reaching the target by the deadline always outranks cost: cost is reported
but never used to refuse or delay a required charge.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any

from .energy import (
    BatteryProfile,
    TariffWindow,
    duration_hours,
    energy_needed_kwh,
    split_cost,
)
from .time_window import is_within_window, minutes_until


class ScheduleMode(str, Enum):
    """Outcome classification of a schedule calculation."""

    FITS_WINDOW = "fits_window"
    STARTS_EARLY = "starts_early"
    EMERGENCY = "emergency"
    NO_ACTION = "no_action"


@dataclass(frozen=True)
class ChargeTarget:
    """Where the battery is and where it has to be."""

    current_soc_pct: float
    target_soc_pct: float
    ready_by: time | None = None


@dataclass(frozen=True)
class ScheduleResult:
    """Computed charge schedule. Recomputed, never mutated."""

    mode: ScheduleMode
    reason: str
    kwh_needed: float = 0.0
    hours_needed: float = 0.0
    minutes_needed: int = 0
    start_at: datetime | None = None
    end_at: datetime | None = None
    cheap_hours: float = 0.0
    pre_window_hours: float = 0.0
    post_window_hours: float = 0.0
    buffer_hours: float | None = None
    total_cost: float = 0.0
    overflow_cost: float = 0.0

    @property
    def overflow_hours(self) -> float:
        """Hours charged outside the cheap window."""
        return self.pre_window_hours + self.post_window_hours

    @property
    def start_minute(self) -> int | None:
        """Start as minute of day."""
        if self.start_at is None:
            return None
        return self.start_at.hour * 60 + self.start_at.minute

    @property
    def end_minute(self) -> int | None:
        """End as minute of day."""
        if self.end_at is None:
            return None
        return self.end_at.hour * 60 + self.end_at.minute

    @property
    def needs_charge(self) -> bool:
        """True when a charge session is planned."""
        return self.mode != ScheduleMode.NO_ACTION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for entity attributes and diagnostics."""
        return {
            "mode": self.mode.value,
            "reason": self.reason,
            "kwh_needed": round(self.kwh_needed, 2),
            "hours_needed": round(self.hours_needed, 2),
            "minutes_needed": self.minutes_needed,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
            "cheap_hours": round(self.cheap_hours, 2),
            "overflow_hours": round(self.overflow_hours, 2),
            "pre_window_hours": round(self.pre_window_hours, 2),
            "post_window_hours": round(self.post_window_hours, 2),
            "buffer_hours": (
                round(self.buffer_hours, 2) if self.buffer_hours is not None else None
            ),
            "total_cost": round(self.total_cost, 2),
            "overflow_cost": round(self.overflow_cost, 2),
        }


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


class ScheduleOptimizer:
    """Pure schedule optimization logic."""

    @staticmethod
    def optimize(
        target: ChargeTarget,
        tariff: TariffWindow,
        battery: BatteryProfile,
        charge_rate_kw: float,
        now: datetime,
    ) -> ScheduleResult:
        """Calculate the best start time for a charge.

        Algorithm:
        1. Short-circuit when the target is met or the window is empty
        2. Convert the SOC delta to whole minutes, rounded up
        3. Candidate start is the open cheap window (now) or the next one
        4. Without a deadline accept the candidate
        5. With a deadline move the start earlier when the candidate is too
           late, or start immediately when even that is too late

        Args:
            target: Current and target SOC plus optional ready-by time
            tariff: Cheap window and rates
            battery: Battery profile for this calculation
            charge_rate_kw: Charger power, must be positive
            now: Current local time

        Returns:
            ScheduleResult describing the decision

        Raises:
            ConfigurationError: If charge_rate_kw is not positive
        """
        if target.current_soc_pct >= target.target_soc_pct:
            return ScheduleResult(
                mode=ScheduleMode.NO_ACTION,
                reason=(
                    f"Target already reached ({target.current_soc_pct:.0f}% >= "
                    f"{target.target_soc_pct:.0f}%)"
                ),
            )

        if tariff.is_zero_length:
            return ScheduleResult(
                mode=ScheduleMode.NO_ACTION,
                reason="Zero-length cheap window, nothing to schedule",
            )

        kwh = energy_needed_kwh(
            target.current_soc_pct,
            target.target_soc_pct,
            battery.usable_capacity_kwh,
        )
        hours = duration_hours(kwh, charge_rate_kw)
        # Round before ceil so float noise never adds a minute
        minutes = math.ceil(round(hours * 60, 6))

        if minutes == 0:
            return ScheduleResult(
                mode=ScheduleMode.NO_ACTION,
                reason="No energy needed",
                kwh_needed=kwh,
                hours_needed=hours,
            )

        session = timedelta(minutes=minutes)
        now_minute = now.replace(second=0, microsecond=0)
        now_min = now.hour * 60 + now.minute

        if is_within_window(now_min, tariff.start_min, tariff.end_min):
            candidate = now_minute
        else:
            candidate = now_minute + timedelta(
                minutes=minutes_until(tariff.start_min, now_min)
            )
        charge_end = candidate + session

        base = {
            "kwh_needed": kwh,
            "hours_needed": hours,
            "minutes_needed": minutes,
        }

        if target.ready_by is None:
            split = split_cost(candidate, charge_end, charge_rate_kw, tariff)
            return ScheduleResult(
                mode=ScheduleMode.FITS_WINDOW,
                reason=_fits_reason(tariff, split.post_window_hours, None),
                start_at=candidate,
                end_at=charge_end,
                cheap_hours=split.cheap_hours,
                pre_window_hours=split.pre_window_hours,
                post_window_hours=split.post_window_hours,
                total_cost=split.cost,
                overflow_cost=_overflow_cost(
                    split.overflow_hours, charge_rate_kw, tariff
                ),
                **base,
            )

        ready_min = target.ready_by.hour * 60 + target.ready_by.minute
        deadline = now_minute + timedelta(
            minutes=minutes_until(ready_min, now_min, allow_now=False)
        )

        if charge_end <= deadline:
            split = split_cost(candidate, charge_end, charge_rate_kw, tariff)
            buffer = _hours_between(charge_end, deadline)
            return ScheduleResult(
                mode=ScheduleMode.FITS_WINDOW,
                reason=_fits_reason(tariff, split.post_window_hours, buffer),
                start_at=candidate,
                end_at=charge_end,
                cheap_hours=split.cheap_hours,
                pre_window_hours=split.pre_window_hours,
                post_window_hours=split.post_window_hours,
                buffer_hours=buffer,
                total_cost=split.cost,
                overflow_cost=_overflow_cost(
                    split.overflow_hours, charge_rate_kw, tariff
                ),
                **base,
            )

        forced_start = deadline - session

        # A start due within the current minute still counts as on time
        if forced_start < now_minute:
            end = now + session
            split = split_cost(now, end, charge_rate_kw, tariff)
            shortfall = _hours_between(deadline, end)
            return ScheduleResult(
                mode=ScheduleMode.EMERGENCY,
                reason=(
                    f"Deadline unreachable: starting now finishes "
                    f"{shortfall:.1f}h after ready-by"
                ),
                start_at=now,
                end_at=end,
                cheap_hours=split.cheap_hours,
                pre_window_hours=split.pre_window_hours,
                post_window_hours=split.post_window_hours,
                buffer_hours=0.0,
                total_cost=split.cost,
                overflow_cost=_overflow_cost(
                    split.overflow_hours, charge_rate_kw, tariff
                ),
                **base,
            )

        split = split_cost(forced_start, deadline, charge_rate_kw, tariff)
        overflow_cost = _overflow_cost(split.overflow_hours, charge_rate_kw, tariff)
        return ScheduleResult(
            mode=ScheduleMode.STARTS_EARLY,
            reason=(
                f"Starts early to meet ready-by: {split.overflow_hours:.1f}h "
                f"outside cheap window costs {overflow_cost:.2f}"
            ),
            start_at=forced_start,
            end_at=deadline,
            cheap_hours=split.cheap_hours,
            pre_window_hours=split.pre_window_hours,
            post_window_hours=split.post_window_hours,
            buffer_hours=0.0,
            total_cost=split.cost,
            overflow_cost=overflow_cost,
            **base,
        )


def _overflow_cost(
    overflow_hours: float, charge_rate_kw: float, tariff: TariffWindow
) -> float:
    return overflow_hours * charge_rate_kw * tariff.standard_rate_per_kwh


def _fits_reason(
    tariff: TariffWindow, post_window_hours: float, buffer_hours: float | None
) -> str:
    reason = f"Fits cheap window {tariff.label()}"
    if post_window_hours > 0:
        reason += f", runs {post_window_hours:.1f}h past window end"
    if buffer_hours is not None:
        reason += f", {buffer_hours:.1f}h to spare before ready-by"
    return reason
