from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config_loader import LoggingSettings

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class StartupLogBufferHandler(logging.Handler):
    """Hold the first records after boot and write them to a file once.

    The buffer is written when the startup window elapses, when ``capacity``
    records have been collected, or when the handler is flushed or closed,
    whichever comes first. Later records are ignored.
    """

    def __init__(
        self,
        output_dir: Path,
        window_seconds: float = 180.0,
        capacity: int = 2000,
    ) -> None:
        super().__init__()
        self.output_dir = output_dir
        self.capacity = max(1, capacity)
        self._records: list[str] = []
        self._written_to: Optional[Path] = None
        self._done = False
        self._guard = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        if window_seconds > 0:
            self._timer = threading.Timer(window_seconds, self.flush)
            self._timer.daemon = True
            self._timer.start()

    @property
    def file_path(self) -> Optional[Path]:
        with self._guard:
            return self._written_to

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._guard:
            if self._done:
                return
            self._records.append(line)
            full = len(self._records) >= self.capacity
        if full:
            self.flush()

    def flush(self) -> None:
        with self._guard:
            if self._done:
                return
            self._done = True
            lines, self._records = self._records, []
            if not lines:
                return
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target = self.output_dir / f"startup_{stamp}.log"
            target.write_text("\n".join(lines) + "\n", encoding="utf-8")
            self._written_to = target

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        try:
            self.flush()
        finally:
            super().close()


def configure_logging(settings: LoggingSettings | None = None) -> StartupLogBufferHandler | None:
    """Set up root logging and, when configured, the startup log buffer."""
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=DEFAULT_FORMAT)
    else:
        root.setLevel(level)

    if not settings.startup_log_dir:
        return None
    handler = StartupLogBufferHandler(
        output_dir=Path(settings.startup_log_dir),
        window_seconds=settings.startup_window_seconds,
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.addHandler(handler)
    logging.getLogger(__name__).info(
        "Startup log buffering enabled dir=%s window=%.0fs",
        settings.startup_log_dir,
        settings.startup_window_seconds,
    )
    return handler


__all__ = ["DEFAULT_FORMAT", "StartupLogBufferHandler", "configure_logging"]
