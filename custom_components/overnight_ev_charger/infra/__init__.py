"""Infrastructure layer - notifications and persistence."""

from .notifier import Notifier
from .storage import SettingsStore

__all__ = ["Notifier", "SettingsStore"]
