"""Event-style logging for the Overnight EV Charger integration."""

from .unified_logger import ChargerLogger, get_logger

__all__ = ["ChargerLogger", "get_logger"]
