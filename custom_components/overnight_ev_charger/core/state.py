"""Single Source of Truth - All state in one place.

This module contains the ChargerState class which holds ALL state for the
integration. It is owned by the coordinator and passed by reference to every
component; no component keeps its own copy of configuration or session flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any

from ..charger_logging import get_logger
from ..const import (
    DEFAULT_CHARGE_RATE,
    DEFAULT_CHEAP_RATE,
    DEFAULT_STANDARD_RATE,
    DEFAULT_TARGET_SOC,
)
from ..domain.energy import BatteryProfile, TariffWindow
from ..domain.optimizer import ChargeTarget, ScheduleResult


class RecoveryState(str, Enum):
    """States of the interruption-recovery machine."""

    IDLE = "idle"
    ACTIVE = "active"
    INTERRUPTED = "interrupted"
    WAKE_IN_PROGRESS = "wake_in_progress"
    FAILED = "failed"


@dataclass
class RetrySession:
    """Supervision state of one charge session."""

    state: RecoveryState = RecoveryState.IDLE
    attempt_count: int = 0
    scheduled_retry_at: datetime | None = None
    manual_override: bool = False
    started_at: datetime | None = None
    last_soc: float | None = None
    pending_callbacks: list[int] = field(default_factory=list)

    @property
    def is_idle(self) -> bool:
        """Check if no session is supervised."""
        return self.state == RecoveryState.IDLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "state": self.state.value,
            "attempt_count": self.attempt_count,
            "scheduled_retry_at": (
                self.scheduled_retry_at.isoformat() if self.scheduled_retry_at else None
            ),
            "manual_override": self.manual_override,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_soc": self.last_soc,
            "pending_callbacks": len(self.pending_callbacks),
        }


@dataclass
class TelemetrySnapshot:
    """Vehicle readings taken once per tick."""

    soc: float | None = None
    is_charging: bool | None = None
    is_plugged_in: bool | None = None
    taken_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "soc": self.soc,
            "is_charging": self.is_charging,
            "is_plugged_in": self.is_plugged_in,
            "taken_at": self.taken_at.isoformat() if self.taken_at else None,
        }


@dataclass
class ChargerState:
    """Single Source of Truth - ALL state lives here."""

    # Entity IDs (read-only after init)
    soc_sensor_entity: str = ""
    charging_sensor_entity: str = ""
    plug_sensor_entity: str = ""
    charge_switch_entity: str = ""
    climate_entity: str = ""
    notify_service: str = ""
    capacity_sensor_entity: str = ""
    soh_sensor_entity: str = ""
    cac_sensor_entity: str = ""
    voltage_sensor_entity: str = ""

    # Battery fallbacks
    configured_capacity_kwh: float | None = None
    configured_soh_pct: float | None = None

    # Schedule configuration (changed through services)
    cheap_start: time = time(23, 30)
    cheap_end: time = time(5, 30)
    cheap_rate_per_kwh: float = DEFAULT_CHEAP_RATE
    standard_rate_per_kwh: float = DEFAULT_STANDARD_RATE
    target_soc_pct: float = DEFAULT_TARGET_SOC
    charge_rate_kw: float = DEFAULT_CHARGE_RATE
    ready_by: time | None = None

    # Runtime state
    telemetry: TelemetrySnapshot = field(default_factory=TelemetrySnapshot)
    battery: BatteryProfile = field(default_factory=BatteryProfile)
    battery_refreshed_at: datetime | None = None
    schedule: ScheduleResult | None = None
    session: RetrySession = field(default_factory=RetrySession)

    # Set once the scheduled charge has been started for the current plug-in.
    scheduled_charge_started: bool = False

    last_status: str = "No command failures"
    last_schedule_check: datetime | None = None

    def __post_init__(self):
        """Initialize logger after dataclass init."""
        self._logger = get_logger()

    @property
    def tariff(self) -> TariffWindow:
        """Current tariff window."""
        return TariffWindow(
            cheap_start=self.cheap_start,
            cheap_end=self.cheap_end,
            cheap_rate_per_kwh=self.cheap_rate_per_kwh,
            standard_rate_per_kwh=self.standard_rate_per_kwh,
        )

    @property
    def current_soc(self) -> float | None:
        """SOC from the latest snapshot."""
        return self.telemetry.soc

    @property
    def is_plugged_in(self) -> bool:
        """Plug state from the latest snapshot (unknown counts as unplugged)."""
        return bool(self.telemetry.is_plugged_in)

    @property
    def is_charging(self) -> bool:
        """Charging flag from the latest snapshot."""
        return bool(self.telemetry.is_charging)

    def charge_target(self) -> ChargeTarget:
        """Build the optimizer target from the snapshot and configuration.

        A missing SOC reading is taken as 0 %.
        """
        return ChargeTarget(
            current_soc_pct=self.current_soc if self.current_soc is not None else 0.0,
            target_soc_pct=self.target_soc_pct,
            ready_by=self.ready_by,
        )

    def update(self, **kwargs) -> None:
        """Update state fields and log the change.

        Args:
            **kwargs: Fields to update
        """
        changes = {}
        for key, value in kwargs.items():
            if hasattr(self, key):
                old_value = getattr(self, key)
                if old_value != value:
                    setattr(self, key, value)
                    changes[key] = {"old": old_value, "new": value}

        if changes:
            self._logger.debug("STATE_UPDATED", changes=changes)

    def settings_dict(self) -> dict[str, Any]:
        """Runtime settings as stored between restarts."""
        return {
            "cheap_start": self.cheap_start.strftime("%H:%M"),
            "cheap_end": self.cheap_end.strftime("%H:%M"),
            "cheap_rate_per_kwh": self.cheap_rate_per_kwh,
            "standard_rate_per_kwh": self.standard_rate_per_kwh,
            "target_soc_pct": self.target_soc_pct,
            "charge_rate_kw": self.charge_rate_kw,
            "ready_by": self.ready_by.strftime("%H:%M") if self.ready_by else None,
        }

    def to_dict(self) -> dict[str, Any]:
        """Export full state as dictionary."""
        return {
            **self.settings_dict(),
            "telemetry": self.telemetry.to_dict(),
            "battery": self.battery.to_dict(),
            "schedule": self.schedule.to_dict() if self.schedule else None,
            "session": self.session.to_dict(),
            "scheduled_charge_started": self.scheduled_charge_started,
            "last_status": self.last_status,
        }
