"""Event logger used by every component of the integration.

Each entry is an event name plus keyword context, e.g.
``logger.info("RETRY_SCHEDULED", attempt=2, delay_s=300)``.

Entries always go to the Home Assistant log. When file logging is enabled a
background thread also writes:
1. A rotating text log (``charger.log``)
2. One JSON-lines file per day (``YYYY/MM/DD/events.jsonl``)

File I/O never runs on the event loop.
"""

from __future__ import annotations

import atexit
import json
import logging
import queue
import threading
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOGGER = logging.getLogger(__name__)

_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class ChargerLogger:
    """Structured event logger with optional background file output."""

    def __init__(
        self,
        name: str = "charger",
        log_dir: Path | None = None,
        file_logging_enabled: bool = False,
        max_file_size_mb: int = 2,
        backup_count: int = 3,
    ) -> None:
        """Initialize the logger.

        Args:
            name: Child logger name below the integration logger
            log_dir: Directory for log files (default: <component>/log)
            file_logging_enabled: Start the file writer immediately
            max_file_size_mb: Size limit of the rotating text log
            backup_count: Rotated files to keep
        """
        self.name = name
        self.log_dir = log_dir or Path(__file__).parent.parent / "log"
        self._max_bytes = max_file_size_mb * 1024 * 1024
        self._backup_count = backup_count
        self._file_logging_enabled = False

        self._ha_logger = logging.getLogger(
            f"custom_components.overnight_ev_charger.{name}"
        )
        self._file_handler: RotatingFileHandler | None = None

        self._queue: queue.Queue = queue.Queue(maxsize=10000)
        self._writer: threading.Thread | None = None
        self._stop = threading.Event()

        if file_logging_enabled:
            self.set_file_logging(True)

    # ========== File writer ==========

    def _ensure_writer(self) -> None:
        """Start the writer thread if it is not running."""
        if self._writer is not None and self._writer.is_alive():
            return

        self._stop.clear()
        self._writer = threading.Thread(
            target=self._writer_loop,
            name="OvernightChargerLogWriter",
            daemon=True,
        )
        self._writer.start()
        atexit.register(self._shutdown)

    def _shutdown(self) -> None:
        """Stop the writer thread."""
        if self._writer is None:
            return
        self._stop.set()
        self._queue.put(None)
        self._writer.join(timeout=2.0)

    def _writer_loop(self) -> None:
        """Drain the queue and write entries to disk."""
        self._open_text_log()

        while not self._stop.is_set():
            try:
                item = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            if item is None:
                break
            try:
                self._append_event(*item)
            except OSError as ex:
                _LOGGER.error("Failed to write event log: %s", ex)

        if self._file_handler is not None:
            self._ha_logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

    def _open_text_log(self) -> None:
        """Attach the rotating text handler (writer thread only)."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                self.log_dir / "charger.log",
                maxBytes=self._max_bytes,
                backupCount=self._backup_count,
                encoding="utf-8",
            )
        except OSError as ex:
            _LOGGER.error("Failed to open charger log file: %s", ex)
            return

        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler.setLevel(logging.DEBUG)
        self._ha_logger.addHandler(handler)
        self._file_handler = handler

    def _append_event(
        self, timestamp: datetime, level: str, event: str, data: dict
    ) -> None:
        """Append one JSON line to the daily event file."""
        day_dir = (
            self.log_dir
            / str(timestamp.year)
            / f"{timestamp.month:02d}"
            / f"{timestamp.day:02d}"
        )
        day_dir.mkdir(parents=True, exist_ok=True)
        entry = {
            "ts": timestamp.isoformat(timespec="milliseconds"),
            "level": level,
            "event": event,
            "data": data,
        }
        with open(day_dir / "events.jsonl", "a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, default=str) + "\n")

    # ========== Public API ==========

    def log(self, level: str, event: str, /, **data: Any) -> None:
        """Log an event.

        Args:
            level: One of critical, error, warning, info, debug
            event: Upper-case event name, e.g. "SCHEDULE_COMPUTED"
            **data: Context values
        """
        message = event
        if data:
            message += " | " + " | ".join(f"{k}={v}" for k, v in data.items())
        self._ha_logger.log(_LEVELS.get(level, logging.DEBUG), message)

        if self._file_logging_enabled:
            try:
                self._queue.put_nowait((datetime.now(), level, event, data))
            except queue.Full:
                _LOGGER.warning("Event log queue full, dropping %s", event)

    def critical(self, event: str, /, **data: Any) -> None:
        """Log a critical event."""
        self.log("critical", event, **data)

    def error(self, event: str, /, **data: Any) -> None:
        """Log an error event."""
        self.log("error", event, **data)

    def warning(self, event: str, /, **data: Any) -> None:
        """Log a warning event."""
        self.log("warning", event, **data)

    def info(self, event: str, /, **data: Any) -> None:
        """Log an info event."""
        self.log("info", event, **data)

    def debug(self, event: str, /, **data: Any) -> None:
        """Log a debug event."""
        self.log("debug", event, **data)

    def separator(self, title: str = "") -> None:
        """Log a visual separator at debug level."""
        self.debug(f"{'-' * 16} {title} {'-' * 16}" if title else "-" * 40)

    def set_file_logging(self, enabled: bool) -> None:
        """Enable or disable file output."""
        if enabled == self._file_logging_enabled:
            return
        self._file_logging_enabled = enabled
        if enabled:
            self._ensure_writer()
        self.info("FILE_LOGGING_CHANGED", enabled=enabled)

    @property
    def file_logging_enabled(self) -> bool:
        """Return True when file output is on."""
        return self._file_logging_enabled


_logger_instance: ChargerLogger | None = None


def get_logger() -> ChargerLogger:
    """Return the shared logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = ChargerLogger()
    return _logger_instance
