"""Tick-driven deferred callbacks.

Delayed actions are recorded with a due time and fired by the periodic tick,
so nothing ever sleeps on the event loop. Delays shorter than the tick
interval are honored at the next tick, not precisely.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime, timedelta
from itertools import count
from typing import Any, Awaitable, Callable, Iterable

from ..charger_logging import get_logger

DeferredAction = Callable[[], "Awaitable[None] | None"]


@dataclass
class DeferredCallback:
    """One pending action."""

    id: int
    due_at: datetime
    action: DeferredAction
    name: str = ""


class DeferredScheduler:
    """Holds deferred callbacks and fires the due ones on each tick."""

    def __init__(self, clock: Callable[[], datetime]) -> None:
        """Initialize the scheduler.

        Args:
            clock: Returns the current time, injected for tests
        """
        self._clock = clock
        self._logger = get_logger()
        self._ids = count(1)
        self._pending: dict[int, DeferredCallback] = {}

    def schedule(
        self, action: DeferredAction, delay: timedelta, name: str = ""
    ) -> int:
        """Register an action to run once delay has elapsed.

        Returns:
            Callback id usable with cancel()
        """
        callback = DeferredCallback(
            id=next(self._ids),
            due_at=self._clock() + delay,
            action=action,
            name=name or getattr(action, "__name__", "callback"),
        )
        self._pending[callback.id] = callback
        self._logger.debug(
            "DEFERRED_SCHEDULED",
            id=callback.id,
            name=callback.name,
            due_at=callback.due_at.isoformat(),
        )
        return callback.id

    def cancel(self, callback_id: int) -> bool:
        """Remove a callback before it fires.

        Returns:
            True if the callback was still pending
        """
        callback = self._pending.pop(callback_id, None)
        if callback is None:
            return False
        self._logger.debug("DEFERRED_CANCELLED", id=callback_id, name=callback.name)
        return True

    def cancel_all(self, callback_ids: Iterable[int]) -> int:
        """Cancel several callbacks, returning how many were still pending."""
        return sum(1 for callback_id in list(callback_ids) if self.cancel(callback_id))

    def is_pending(self, callback_id: int) -> bool:
        """Check if a callback has neither fired nor been cancelled."""
        return callback_id in self._pending

    @property
    def pending_count(self) -> int:
        """Number of pending callbacks."""
        return len(self._pending)

    def next_due(self) -> datetime | None:
        """Earliest due time among pending callbacks."""
        if not self._pending:
            return None
        return min(callback.due_at for callback in self._pending.values())

    async def async_fire_due(self, now: datetime | None = None) -> int:
        """Fire every callback due at now, in registration order.

        A failing callback is logged and does not stop the others. Callbacks
        scheduled while firing wait for a later tick.

        Returns:
            Number of callbacks fired
        """
        now = now or self._clock()
        due = [
            callback
            for callback in sorted(self._pending.values(), key=lambda c: c.id)
            if callback.due_at <= now
        ]

        fired = 0
        for callback in due:
            # Cancelled by an earlier callback in this batch
            if self._pending.pop(callback.id, None) is None:
                continue
            fired += 1
            try:
                result: Any = callback.action()
                if inspect.isawaitable(result):
                    await result
                self._logger.debug("DEFERRED_FIRED", id=callback.id, name=callback.name)
            except Exception as ex:
                self._logger.error(
                    "DEFERRED_CALLBACK_ERROR",
                    id=callback.id,
                    name=callback.name,
                    error=str(ex),
                )
        return fired

    def clear(self) -> None:
        """Drop every pending callback."""
        if self._pending:
            self._logger.debug("DEFERRED_CLEARED", count=len(self._pending))
        self._pending.clear()
