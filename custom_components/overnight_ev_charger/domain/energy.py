"""Energy and cost model.

Converts an SOC delta into kWh using the SOH-adjusted usable capacity, kWh
into charging time at a fixed charge rate, and prices a charging interval
against a two-tier tariff.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any

from ..const import (
    DEFAULT_BATTERY_CAPACITY,
    DEFAULT_BATTERY_SOH,
    DEFAULT_PACK_VOLTAGE,
    MAX_PLAUSIBLE_CAPACITY,
    MAX_PLAUSIBLE_SOH,
    MIN_PLAUSIBLE_CAPACITY,
    MIN_PLAUSIBLE_SOH,
)
from ..exceptions import ConfigurationError
from .time_window import (
    format_minute_of_day,
    is_within_window,
    to_minute_of_day,
    window_duration_minutes,
)


@dataclass(frozen=True)
class BatteryProfile:
    """Battery capacity and health used for one calculation."""

    nominal_capacity_kwh: float = DEFAULT_BATTERY_CAPACITY
    state_of_health_pct: float = DEFAULT_BATTERY_SOH
    source: str = "default"

    @property
    def usable_capacity_kwh(self) -> float:
        """Capacity the battery can still hold."""
        return self.nominal_capacity_kwh * self.state_of_health_pct / 100.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nominal_capacity_kwh": round(self.nominal_capacity_kwh, 2),
            "state_of_health_pct": round(self.state_of_health_pct, 1),
            "usable_capacity_kwh": round(self.usable_capacity_kwh, 2),
            "source": self.source,
        }


@dataclass(frozen=True)
class TariffWindow:
    """Daily cheap-rate window and the two prices."""

    cheap_start: time
    cheap_end: time
    cheap_rate_per_kwh: float
    standard_rate_per_kwh: float

    @property
    def start_min(self) -> int:
        """Cheap window start as minute of day."""
        return to_minute_of_day(self.cheap_start.hour, self.cheap_start.minute)

    @property
    def end_min(self) -> int:
        """Cheap window end as minute of day."""
        return to_minute_of_day(self.cheap_end.hour, self.cheap_end.minute)

    @property
    def duration_minutes(self) -> int:
        """Window length in minutes."""
        return window_duration_minutes(self.start_min, self.end_min)

    @property
    def is_zero_length(self) -> bool:
        """True when start equals end."""
        return self.duration_minutes == 0

    def label(self) -> str:
        """Window as "HH:MM-HH:MM"."""
        return (
            f"{format_minute_of_day(self.start_min)}-"
            f"{format_minute_of_day(self.end_min)}"
        )


@dataclass(frozen=True)
class CostBreakdown:
    """Hours and cost of a charging interval split around the cheap window."""

    pre_window_hours: float = 0.0
    cheap_hours: float = 0.0
    post_window_hours: float = 0.0
    cost: float = 0.0

    @property
    def overflow_hours(self) -> float:
        """Hours charged at the standard rate."""
        return self.pre_window_hours + self.post_window_hours


def energy_needed_kwh(
    current_soc: float, target_soc: float, usable_capacity_kwh: float
) -> float:
    """Energy to go from current to target SOC; 0 when target is already met."""
    return max(0.0, (target_soc - current_soc) / 100.0 * usable_capacity_kwh)


def duration_hours(kwh: float, charge_rate_kw: float) -> float:
    """Charging time for an amount of energy.

    Raises:
        ConfigurationError: If the charge rate is not positive
    """
    if charge_rate_kw <= 0:
        raise ConfigurationError(
            "charge_rate_kw", f"Charge rate must be positive, got {charge_rate_kw}"
        )
    return kwh / charge_rate_kw


def split_cost(
    start: datetime,
    end: datetime,
    charge_rate_kw: float,
    tariff: TariffWindow,
) -> CostBreakdown:
    """Split [start, end) around the cheap window nearest to start and price it.

    The nearest instance is the one containing start, or else the next one
    to open. Time outside that single instance is billed at the standard
    rate, including any later cheap windows of a multi-day span.
    """
    if end <= start:
        return CostBreakdown()

    total_hours = (end - start).total_seconds() / 3600
    duration = tariff.duration_minutes

    if duration == 0:
        return CostBreakdown(
            pre_window_hours=total_hours,
            cost=total_hours * charge_rate_kw * tariff.standard_rate_per_kwh,
        )

    start_of_minute = start.replace(second=0, microsecond=0)
    start_min = start.hour * 60 + start.minute
    if is_within_window(start_min, tariff.start_min, tariff.end_min):
        offset = (start_min - tariff.start_min) % 1440
        window_open = start_of_minute - timedelta(minutes=offset)
    else:
        offset = (tariff.start_min - start_min) % 1440
        window_open = start_of_minute + timedelta(minutes=offset)
    window_close = window_open + timedelta(minutes=duration)

    def _hours(a: datetime, b: datetime) -> float:
        return max(0.0, (b - a).total_seconds() / 3600)

    pre = _hours(start, min(end, window_open))
    cheap = _hours(max(start, window_open), min(end, window_close))
    post = _hours(max(start, window_close), end)

    cost = (
        (pre + post) * charge_rate_kw * tariff.standard_rate_per_kwh
        + cheap * charge_rate_kw * tariff.cheap_rate_per_kwh
    )
    return CostBreakdown(
        pre_window_hours=pre,
        cheap_hours=cheap,
        post_window_hours=post,
        cost=cost,
    )


def capacity_from_cac(cac_ah: float, pack_voltage: float | None) -> float:
    """Nominal capacity in kWh from amp-hour capacity and pack voltage."""
    voltage = pack_voltage if pack_voltage else DEFAULT_PACK_VOLTAGE
    return cac_ah * voltage / 1000.0


def _plausible(value: float | None, low: float, high: float) -> bool:
    return value is not None and low <= value <= high


def resolve_battery_profile(
    telemetry_capacity_kwh: float | None = None,
    telemetry_soh_pct: float | None = None,
    configured_capacity_kwh: float | None = None,
    configured_soh_pct: float | None = None,
) -> BatteryProfile:
    """Pick the first plausible capacity and SOH from telemetry, config, default."""
    source = "telemetry"
    if _plausible(telemetry_capacity_kwh, MIN_PLAUSIBLE_CAPACITY, MAX_PLAUSIBLE_CAPACITY):
        capacity = telemetry_capacity_kwh
    elif _plausible(configured_capacity_kwh, MIN_PLAUSIBLE_CAPACITY, MAX_PLAUSIBLE_CAPACITY):
        capacity = configured_capacity_kwh
        source = "configured"
    else:
        capacity = DEFAULT_BATTERY_CAPACITY
        source = "default"

    if _plausible(telemetry_soh_pct, MIN_PLAUSIBLE_SOH, MAX_PLAUSIBLE_SOH):
        soh = telemetry_soh_pct
    elif _plausible(configured_soh_pct, MIN_PLAUSIBLE_SOH, MAX_PLAUSIBLE_SOH):
        soh = configured_soh_pct
    else:
        soh = DEFAULT_BATTERY_SOH

    return BatteryProfile(
        nominal_capacity_kwh=float(capacity),
        state_of_health_pct=float(soh),
        source=source,
    )


def charger_type(charge_rate_kw: float) -> str:
    """Classify a charge rate."""
    if charge_rate_kw < 2.5:
        return "granny"
    if charge_rate_kw < 4:
        return "type2_slow"
    if charge_rate_kw < 10:
        return "type2_fast"
    return "rapid"
