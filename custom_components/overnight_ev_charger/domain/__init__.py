"""Domain logic module - pure scheduling logic without HA dependencies.

All modules in this package contain pure functions that:
- Take inputs and produce outputs
- Have no side effects
- Don't access HA directly
"""

from .energy import BatteryProfile, CostBreakdown, TariffWindow
from .optimizer import ChargeTarget, ScheduleMode, ScheduleOptimizer, ScheduleResult

__all__ = [
    "BatteryProfile",
    "ChargeTarget",
    "CostBreakdown",
    "ScheduleMode",
    "ScheduleOptimizer",
    "ScheduleResult",
    "TariffWindow",
]
