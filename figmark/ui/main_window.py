"""
Main window for FigMark.

A small host application around the embeddable annotation editor. It
plays the role the surrounding application would normally play:
- Picks an image (command line or File > Open)
- Opens an editing session for it
- Persists the flattened PNG and a JSON legend when the user saves
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QWidget,
)

from figmark.editor.controller import ShortcutAction
from figmark.editor.editor_widget import AnnotationEditorWidget
from figmark.editor.render import ImageReference
from figmark.services.config_service import ConfigService
from figmark.services.logging_service import get_logger

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp)"


class MainWindow(QMainWindow):
    """
    Main application window for FigMark.

    Features:
    - Menu bar with File and Edit menus
    - The annotation editor as central widget
    - Saves annotated images next to a JSON legend
    """

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Optional config service for save folder and editor settings.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._current_path: Optional[Path] = None
        self._last_saved: Optional[Path] = None

        self._editor = AnnotationEditorWidget(
            self._config,
            on_save=self._on_editor_saved,
            on_cancel=self._on_editor_cancelled,
            parent=self,
        )
        self._editor.load_failed.connect(self._on_load_failed)

        self._setup_window()
        self.setCentralWidget(self._editor)
        self._setup_menu_bar()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("FigMark - Image Annotation")
        self.setMinimumSize(800, 600)
        self.resize(1200, 800)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Image...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open)
        file_menu.addAction(open_action)

        save_action = QAction("&Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._editor.save)
        file_menu.addAction(save_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── Edit Menu ────────────────────────────────────────────────
        edit_menu = menu_bar.addMenu("&Edit")

        undo_action = QAction("&Undo", self)
        undo_action.triggered.connect(lambda: self._on_shortcut(ShortcutAction.UNDO))
        edit_menu.addAction(undo_action)

        redo_action = QAction("&Redo", self)
        redo_action.triggered.connect(lambda: self._on_shortcut(ShortcutAction.REDO))
        edit_menu.addAction(redo_action)

    # ─── Public Methods ───────────────────────────────────────────────────

    @property
    def editor(self) -> AnnotationEditorWidget:
        return self._editor

    @property
    def last_saved(self) -> Optional[Path]:
        return self._last_saved

    def open_path(self, path: Path) -> bool:
        """Open an image file in a fresh editing session."""
        self._current_path = Path(path)
        opened = self._editor.open_image(
            ImageReference(source=self._current_path, title=self._current_path.name)
        )
        if opened:
            self.setWindowTitle(f"FigMark - {self._current_path.name}")
            self.statusBar().showMessage(f"Annotating {self._current_path}")
        return opened

    # ─── Menu Actions ─────────────────────────────────────────────────────

    def _on_open(self) -> None:
        start_dir = str(self._current_path.parent) if self._current_path else str(Path.home())
        filename, _ = QFileDialog.getOpenFileName(self, "Open Image", start_dir, IMAGE_FILTER)
        if filename:
            self.open_path(Path(filename))

    def _on_shortcut(self, action: ShortcutAction) -> None:
        controller = self._editor.controller
        if controller:
            controller.handle_shortcut(action)

    # ─── Editor Callbacks ─────────────────────────────────────────────────

    def _save_folder(self) -> Path:
        if self._config:
            return Path(self._config.default_save_folder)
        return Path.home() / "Pictures" / "FigMark"

    def _on_editor_saved(self, png_bytes: bytes, data_uri: str, annotations: List[dict]) -> None:
        """Write the flattened image and its legend to the save folder."""
        folder = self._save_folder()
        stem = self._current_path.stem if self._current_path else "image"
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        image_path = folder / f"{stem}_annotated_{timestamp}.png"
        legend_path = image_path.with_suffix(".json")

        try:
            folder.mkdir(parents=True, exist_ok=True)
            image_path.write_bytes(png_bytes)
            with open(legend_path, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "source": str(self._current_path) if self._current_path else None,
                        "image": image_path.name,
                        "annotations": annotations,
                    },
                    f,
                    indent=2,
                )
        except OSError as e:
            self._logger.error(f"Failed to write {image_path}: {e}")
            QMessageBox.warning(self, "Save Failed", f"Could not write {image_path}:\n{e}")
            return

        self._last_saved = image_path
        self._logger.info(f"Saved {image_path} with {len(annotations)} annotations")
        self.statusBar().showMessage(f"Saved {image_path}")

    def _on_editor_cancelled(self) -> None:
        self.statusBar().showMessage("Annotation cancelled")

    def _on_load_failed(self, message: str) -> None:
        QMessageBox.warning(self, "Cannot Open Image", message)
