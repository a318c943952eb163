"""Core module for Overnight EV Charger.

Contains the fundamental building blocks:
- State: Single source of truth for all state
- Events: Event bus for component communication
- Hardware: Vehicle interface over HA entities
- Deferred: Tick-driven delayed callbacks
- Recovery: Interruption recovery state machine
"""

from .deferred import DeferredScheduler
from .events import ChargerEvent, ChargerEventBus
from .hardware import VehicleInterface
from .recovery import RecoveryMachine
from .state import ChargerState, RecoveryState, RetrySession

__all__ = [
    "ChargerEvent",
    "ChargerEventBus",
    "ChargerState",
    "DeferredScheduler",
    "RecoveryMachine",
    "RecoveryState",
    "RetrySession",
    "VehicleInterface",
]
