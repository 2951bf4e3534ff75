from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from .config import Palette, Settings
from .install_log import InstallLog

_LEVEL_TAGS = {
    logging.DEBUG: ("DEBUG", "blue"),
    logging.INFO: ("SETUP", "green"),
    logging.WARNING: ("WARNING", "yellow"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("ERROR", "red"),
}


class ConsoleFormatter(logging.Formatter):
    def __init__(self, palette: Palette):
        super().__init__()
        self.palette = palette

    def format(self, record: logging.LogRecord) -> str:
        tag, color = _LEVEL_TAGS.get(record.levelno, (record.levelname, "reset"))
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        return f"{self.palette.paint(f'[{tag}]', color)} {msg}"


class ConsoleHandler(logging.StreamHandler):
    """Operator-facing sink. Always writes, then pauses briefly for readability."""

    def __init__(self, palette: Palette, pace_seconds: float = 0.0):
        super().__init__(stream=sys.stdout)
        self.setFormatter(ConsoleFormatter(palette))
        self.pace_seconds = pace_seconds

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        if self.pace_seconds > 0 and record.levelno >= logging.INFO:
            time.sleep(self.pace_seconds)


class InstallLogHandler(logging.Handler):
    """Persisted sink. Best-effort: a missing or read-only store is skipped."""

    def __init__(self, install_log: InstallLog):
        super().__init__(level=logging.INFO)
        self.install_log = install_log

    def emit(self, record: logging.LogRecord) -> None:
        level = "ERROR" if record.levelno >= logging.ERROR else record.levelname
        self.install_log.record(level, record.getMessage())

    def handleError(self, record: logging.LogRecord) -> None:
        pass


def configure_logging(
    settings: Settings,
    install_log: Optional[InstallLog] = None,
    *,
    verbose: bool = False,
) -> logging.Logger:
    """Attach the console and install-log sinks to the root logger.

    Calling it again replaces the previously attached sinks instead of
    stacking duplicates.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for h in list(getattr(logger, "_ubungpu_handlers", [])):
        logger.removeHandler(h)

    handlers: list[logging.Handler] = [ConsoleHandler(settings.palette, settings.pace_seconds)]
    if install_log is not None:
        handlers.append(InstallLogHandler(install_log))

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_ubungpu_handlers", handlers)
    return logger
