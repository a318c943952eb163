"""Exception types for the Overnight EV Charger integration.

Only boundary validation raises out of this package. Telemetry and command
errors are raised internally and converted to defaults or a logged failure by
the hardware layer, so the tick never sees them.
"""


class ChargerError(Exception):
    """Base exception for all charger components."""


class ConfigurationError(ChargerError):
    """Raised when user supplied configuration is out of range."""

    def __init__(self, field: str | None = None, message: str | None = None):
        if message is None:
            if field:
                message = f"Invalid value for {field}"
            else:
                message = "Invalid configuration"
        super().__init__(message)
        self.field = field


class TelemetryUnavailableError(ChargerError):
    """Raised when a vehicle metric cannot be read."""

    def __init__(self, metric: str, reason: str = "unavailable"):
        super().__init__(f"Metric {metric} {reason}")
        self.metric = metric
        self.reason = reason


class CommandExecutionError(ChargerError):
    """Raised when a vehicle command could not be dispatched."""

    def __init__(self, command: str, message: str | None = None):
        super().__init__(message or f"Command {command} failed")
        self.command = command
