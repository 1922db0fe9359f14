"""
FigMark - image annotation editor.

This is the main entry point for the application.
Run with: python -m figmark.app [IMAGE]
"""

import signal
import sys
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from figmark import __version__
from figmark.core.app_core import AppCore
from figmark.services.logging_service import get_logger, setup_logging


_app: Optional[QApplication] = None


def _handle_signal(signum, frame) -> None:
    """Quit cleanly on SIGINT/SIGTERM."""
    if _app is not None:
        _app.quit()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for FigMark.

    Args:
        argv: Command line arguments (defaults to sys.argv).

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    argv = list(sys.argv if argv is None else argv)

    # Initialize basic logging first to catch early errors
    setup_logging()
    logger = get_logger(__name__)

    try:
        logger.info(f"Starting FigMark {__version__}...")

        _app = QApplication(argv)
        _app.setApplicationName("FigMark")
        _app.setOrganizationName("FigMark")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        # Let the interpreter run periodically so Python signal handlers fire
        wake_timer = QTimer()
        wake_timer.timeout.connect(lambda: None)
        wake_timer.start(200)

        # Positional arguments left after Qt consumed its own options
        args = _app.arguments()[1:]
        image_path = Path(args[0]) if args else None

        core = AppCore(_app, image_path)

        exit_code = _app.exec()
        logger.info(f"FigMark exiting with code {exit_code}")
        del core
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
