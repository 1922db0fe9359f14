"""
Application core for FigMark.

This module contains the AppCore class which is responsible for:
- Initializing services (config, logging)
- Applying global styling (dark theme)
- Creating the main window that hosts the annotation editor
- Opening an initial image passed on the command line
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from figmark.services.config_service import ConfigService
from figmark.services.logging_service import get_logger, setup_logging
from figmark.ui.main_window import MainWindow

Role = QPalette.ColorRole

DARK_PALETTE = {
    Role.Window: "#2d2d2d",
    Role.WindowText: "#dcdcdc",
    Role.Base: "#232323",
    Role.AlternateBase: "#323232",
    Role.Text: "#dcdcdc",
    Role.Button: "#373737",
    Role.ButtonText: "#dcdcdc",
    Role.Highlight: "#5078b4",
    Role.HighlightedText: "#ffffff",
    Role.ToolTipBase: "#3c3c3c",
    Role.ToolTipText: "#dcdcdc",
}

DISABLED_TEXT_ROLES = (Role.WindowText, Role.Text, Role.ButtonText)


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize services
    - Apply the dark theme when configured
    - Create and show the MainWindow
    """

    def __init__(
        self,
        app: QApplication,
        image_path: Optional[Path] = None,
        config_service: Optional[ConfigService] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            image_path: Optional image to open right away.
            config_service: Optional pre-built config (defaults to the user config).
        """
        super().__init__()
        self._app = app
        self._config_service = config_service
        self._main_window: Optional[MainWindow] = None

        self._init_services()
        if self._config_service.theme == "dark":
            self._apply_dark_theme()
        self._init_ui(image_path)

    @property
    def main_window(self) -> Optional[MainWindow]:
        return self._main_window

    @property
    def config(self) -> ConfigService:
        return self._config_service

    def _init_services(self) -> None:
        """Initialize application services."""
        if self._config_service is None:
            self._config_service = ConfigService()

        setup_logging(self._config_service.log_level)
        self._logger = get_logger(__name__)
        self._logger.info(f"Theme from config: {self._config_service.theme}")

    def _apply_dark_theme(self) -> None:
        """Apply a dark color palette to the application."""
        palette = QPalette()
        for role, color in DARK_PALETTE.items():
            palette.setColor(role, QColor(color))

        # Disabled buttons (undo/redo/clear/save) need to read as disabled
        for role in DISABLED_TEXT_ROLES:
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor("#7f7f7f"))

        self._app.setPalette(palette)
        self._app.setStyleSheet(
            "QToolTip { background-color: #3d3d3d; color: #dcdcdc;"
            " border: 1px solid #5a5a5a; padding: 4px; }"
        )
        self._logger.debug("Dark theme applied")

    def _init_ui(self, image_path: Optional[Path]) -> None:
        """Create and show the main window."""
        self._main_window = MainWindow(self._config_service)
        self._main_window.show()

        if image_path is not None:
            if not self._main_window.open_path(image_path):
                self._logger.warning(f"Could not open initial image {image_path}")
