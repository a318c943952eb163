"""Interruption recovery for a supervised charge session.

States: idle -> active -> interrupted -> wake_in_progress -> active, with
failed as a terminal step back to idle. The machine is driven by the
periodic tick (async_check) and by its own deferred callbacks; it never
waits inline.

A command returning True is never taken as proof of success. Whether a
restart worked is decided by the charging flag on a later tick.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..charger_logging import get_logger
from ..const import (
    COMMAND_CHARGE_START,
    COMMAND_CHARGE_STOP,
    COMMAND_CLIMATE_OFF,
    COMMAND_CLIMATE_ON,
    MAX_RETRY_ATTEMPTS,
    METRIC_PLUGGED_IN,
    METRIC_SOC,
    RETRY_BACKOFF,
    WAKE_RESUME_DELAY,
    WAKE_SETTLE_DELAY,
)
from .events import ChargerEvent
from .state import RecoveryState, RetrySession

if TYPE_CHECKING:
    from ..infra.notifier import Notifier
    from .deferred import DeferredScheduler
    from .events import ChargerEventBus
    from .hardware import VehicleInterface
    from .state import ChargerState


class RecoveryMachine:
    """Supervises a charge session and retries after unexpected stops."""

    def __init__(
        self,
        state: ChargerState,
        vehicle: VehicleInterface,
        scheduler: DeferredScheduler,
        notifier: Notifier,
        clock: Callable[[], datetime],
        events: ChargerEventBus | None = None,
    ) -> None:
        """Initialize the machine.

        Args:
            state: Charger state holding the retry session
            vehicle: Telemetry and command surface
            scheduler: Deferred callbacks driven by the tick
            notifier: User notifications
            clock: Returns the current time
            events: Optional event bus for state change announcements
        """
        self.state = state
        self.vehicle = vehicle
        self.scheduler = scheduler
        self.notifier = notifier
        self._clock = clock
        self.events = events
        self._logger = get_logger()

    @property
    def session(self) -> RetrySession:
        """Current retry session."""
        return self.state.session

    # ========== Session lifecycle ==========

    async def async_begin(self, manual: bool = False) -> None:
        """Start supervising a charge that was just commanded on.

        Any previous session is discarded with its pending callbacks.
        """
        self.reset("superseded")
        self.state.session = RetrySession(
            state=RecoveryState.ACTIVE,
            manual_override=manual,
            started_at=self._clock(),
            last_soc=self.state.current_soc,
        )
        self._logger.info(
            "RECOVERY_SESSION_STARTED", manual=manual, soc=self.state.current_soc
        )
        await self._async_emit()

    def engage_manual_override(self) -> None:
        """Mark the running session as operator controlled.

        Pending wake and retry callbacks are cancelled; the session stays
        supervised for unplug and target checks but never retries again.
        """
        session = self.session
        if session.is_idle:
            return
        self._cancel_pending()
        session.manual_override = True
        session.attempt_count = 0
        session.scheduled_retry_at = None
        if session.state in (RecoveryState.INTERRUPTED, RecoveryState.WAKE_IN_PROGRESS):
            session.state = RecoveryState.ACTIVE
        self._logger.info("MANUAL_OVERRIDE_ENGAGED", state=session.state.value)

    def reset(self, reason: str) -> None:
        """Return to idle, cancelling every callback of the session."""
        session = self.session
        cancelled = self._cancel_pending()
        if not session.is_idle or cancelled:
            self._logger.info(
                "RECOVERY_RESET",
                reason=reason,
                previous_state=session.state.value,
                attempts=session.attempt_count,
                cancelled=cancelled,
            )
        self.state.session = RetrySession()

    # ========== Tick ==========

    async def async_check(self, now: datetime | None = None) -> None:
        """Evaluate the session against the current telemetry snapshot."""
        session = self.session
        if session.is_idle:
            return

        now = now or self._clock()
        telemetry = self.state.telemetry
        if telemetry.soc is not None:
            session.last_soc = telemetry.soc

        if telemetry.is_plugged_in is False:
            await self._async_end_unplugged()
            return

        if session.state != RecoveryState.ACTIVE:
            # Waiting on a deferred retry or wake step
            return

        soc = telemetry.soc
        if soc is not None and soc >= self.state.target_soc_pct:
            await self._async_end_target_reached(soc)
            return

        if telemetry.is_charging is False:
            if session.manual_override:
                self._logger.warning("MANUAL_SESSION_INTERRUPTED", soc=soc)
                self.reset("manual session interrupted")
                await self.notifier.send_manual_interrupted(session.last_soc)
                await self._async_emit()
                return
            await self._async_interrupted(now)

    # ========== Transitions ==========

    async def _async_interrupted(self, now: datetime) -> None:
        session = self.session
        session.state = RecoveryState.INTERRUPTED
        self._logger.warning(
            "CHARGE_INTERRUPTED", soc=session.last_soc, attempts=session.attempt_count
        )

        if session.attempt_count >= MAX_RETRY_ATTEMPTS:
            session.state = RecoveryState.FAILED
            last_soc = session.last_soc
            self._logger.error(
                "RECOVERY_FAILED", attempts=session.attempt_count, soc=last_soc
            )
            await self.notifier.send_retry_exhausted(last_soc)
            if self.events is not None:
                await self.events.emit(ChargerEvent.RETRY_EXHAUSTED, soc=last_soc)
            self.reset("retries exhausted")
            await self._async_emit()
            return

        session.attempt_count += 1
        delay = RETRY_BACKOFF[session.attempt_count]
        session.scheduled_retry_at = now + delay
        self._defer(self._async_start_wake, delay, "wake_sequence")
        self._logger.info(
            "RETRY_SCHEDULED",
            attempt=session.attempt_count,
            delay_s=int(delay.total_seconds()),
            retry_at=session.scheduled_retry_at.isoformat(),
        )
        await self.notifier.send_retry_scheduled(
            session.attempt_count, delay, session.last_soc
        )
        await self._async_emit()

    async def _async_start_wake(self) -> None:
        session = self.session
        if session.state != RecoveryState.INTERRUPTED or session.manual_override:
            return
        session.state = RecoveryState.WAKE_IN_PROGRESS
        session.scheduled_retry_at = None
        self._logger.info("WAKE_SEQUENCE_START", attempt=session.attempt_count)
        await self.vehicle.async_execute(COMMAND_CLIMATE_ON)
        self._defer(self._async_finish_wake, WAKE_SETTLE_DELAY, "climate_off")
        await self._async_emit()

    async def _async_finish_wake(self) -> None:
        if self.session.state != RecoveryState.WAKE_IN_PROGRESS:
            return
        await self.vehicle.async_execute(COMMAND_CLIMATE_OFF)
        self._defer(self._async_resume, WAKE_RESUME_DELAY, "resume_charge")

    async def _async_resume(self) -> None:
        session = self.session
        if session.state != RecoveryState.WAKE_IN_PROGRESS:
            return

        if self.vehicle.is_on(METRIC_PLUGGED_IN) is False:
            await self._async_end_unplugged()
            return

        soc = self.vehicle.get_metric(METRIC_SOC)
        if soc is not None:
            session.last_soc = soc
            if soc >= self.state.target_soc_pct:
                await self._async_end_target_reached(soc, stop=False)
                return

        await self.vehicle.async_execute(COMMAND_CHARGE_START)
        session.state = RecoveryState.ACTIVE
        self._logger.info("RETRY_CHARGE_RESTARTED", attempt=session.attempt_count, soc=soc)
        await self.notifier.send_retry_resumed(session.attempt_count)
        await self._async_emit()

    async def _async_end_unplugged(self) -> None:
        self.reset("unplugged")
        await self.notifier.send_unplugged()
        await self._async_emit()

    async def _async_end_target_reached(self, soc: float, stop: bool = True) -> None:
        if stop:
            await self.vehicle.async_execute(COMMAND_CHARGE_STOP)
        self._logger.info("TARGET_REACHED", soc=soc, target=self.state.target_soc_pct)
        self.reset("target reached")
        await self.notifier.send_target_reached(soc)
        if self.events is not None:
            await self.events.emit(ChargerEvent.TARGET_REACHED, soc=soc)
        await self._async_emit()

    # ========== Helpers ==========

    def _defer(
        self, action: Callable[[], Awaitable[Any]], delay: timedelta, name: str
    ) -> None:
        session = self.session
        session.pending_callbacks = [
            callback_id
            for callback_id in session.pending_callbacks
            if self.scheduler.is_pending(callback_id)
        ]
        session.pending_callbacks.append(self.scheduler.schedule(action, delay, name))

    def _cancel_pending(self) -> int:
        session = self.session
        cancelled = self.scheduler.cancel_all(session.pending_callbacks)
        session.pending_callbacks = []
        return cancelled

    async def _async_emit(self) -> None:
        if self.events is not None:
            await self.events.emit(
                ChargerEvent.RECOVERY_STATE_CHANGED, **self.session.to_dict()
            )
