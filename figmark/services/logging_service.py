"""
Logging service for the FigMark annotation editor.

Centralizes logging configuration with console and file output, and
routes Qt's own diagnostics (qWarning and friends) into Python logging
so they land in the same place.
Log files are stored in ~/.local/share/figmark/logs/ by default.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QtMsgType, qInstallMessageHandler


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "figmark" / "logs"

# Environment override for the log level, e.g. FIGMARK_LOG_LEVEL=debug
LOG_LEVEL_ENV = "FIGMARK_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}

# Module-level flag to track if logging has been set up
_logging_initialized = False


def resolve_log_level(level: Union[int, str, None]) -> int:
    """
    Turn a level name or number into a logging level.

    The FIGMARK_LOG_LEVEL environment variable wins over the argument.
    Unknown names fall back to INFO.
    """
    level = os.environ.get(LOG_LEVEL_ENV) or level
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _qt_message_handler(msg_type, context, message) -> None:
    """Forward Qt messages to the 'qt' logger."""
    logging.getLogger("qt").log(_QT_LEVELS.get(msg_type, logging.INFO), message)


def setup_logging(
    log_level: Union[int, str, None] = None,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the logging system for FigMark.

    Args:
        log_level: Level name or number. Defaults to INFO.
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to ~/.local/share/figmark/logs/

    Calling it again only applies the new level to the existing handlers.
    """
    global _logging_initialized

    level = resolve_log_level(log_level)
    root_logger = logging.getLogger()

    if _logging_initialized:
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return

    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Console handler - always enabled
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # File handler - optional
    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / f"figmark_{datetime.now().strftime('%Y%m%d')}.log"

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            root_logger.addHandler(file_handler)

        except (OSError, PermissionError) as e:
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    qInstallMessageHandler(_qt_message_handler)
    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.
    """
    return logging.getLogger(name)
