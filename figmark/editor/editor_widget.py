"""
Editor widget for FigMark - the embeddable annotation editor UI.

This widget composes the complete editor interface:
- Header with the image title
- Toolbar with tool, color, line-width, undo/redo and clear buttons
- Center canvas showing the base and overlay layers
- Note editor row shown while a shape's note is open
- Footer with Cancel / Use Annotated Image

It also owns the session lifecycle. Opening an image creates a fresh
store and controller; closing is two-phase: the drag is cancelled right
away, and disposal runs on the next event-loop tick unless a new
session starts first.
"""

from typing import Callable, List, Optional

from PySide6.QtCore import QPoint, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QColor, QGuiApplication, QIcon, QPainter, QPixmap, QPolygon
from PySide6.QtWidgets import (
    QButtonGroup,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from figmark.editor.annotations import LINE_WIDTHS, PALETTE, AnnotationType
from figmark.editor.controller import InteractionController
from figmark.editor.editor_canvas import AnnotationCanvas
from figmark.editor.errors import EmptyExportError, ExportError, ImageLoadError
from figmark.editor.export import FlattenResult, flatten
from figmark.editor.render import BaseLayer, ImageReference
from figmark.editor.session import AnnotationStore, EditorMode, SessionState
from figmark.services.config_service import ConfigService
from figmark.services.logging_service import get_logger

SaveCallback = Callable[[bytes, str, List[dict]], None]
CancelCallback = Callable[[], None]

# Fallback bounding box when no screen is available
DEFAULT_MAX_SIZE = (1024, 768)


class ColorSwatch(QPushButton):
    """Checkable palette swatch."""

    def __init__(self, name: str, color: str, parent=None):
        super().__init__(parent)
        self.color = color
        self.setCheckable(True)
        self.setFixedSize(26, 26)
        self.setToolTip(name)
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {color};
                border: 2px solid #555;
                border-radius: 4px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
            QPushButton:checked {{
                border-color: #4a90e2;
            }}
        """)


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a small toolbar icon programmatically."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(color)

    margin = 4

    if shape == "rectangle":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(margin, margin, size - margin * 2, size - margin * 2)

    elif shape == "arrow":
        painter.drawLine(6, 18, 18, 6)
        painter.setBrush(color)
        painter.drawPolygon(QPolygon([QPoint(18, 6), QPoint(12, 7), QPoint(17, 12)]))

    elif shape in ("undo", "redo"):
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawArc(5, 7, 14, 12, 0, 180 * 16)
        painter.setBrush(color)
        if shape == "undo":
            painter.drawPolygon(QPolygon([QPoint(2, 13), QPoint(8, 13), QPoint(5, 17)]))
        else:
            painter.drawPolygon(QPolygon([QPoint(16, 13), QPoint(22, 13), QPoint(19, 17)]))

    elif shape == "clear":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(7, 8, 10, 12)
        painter.drawLine(5, 7, 19, 7)
        painter.drawLine(10, 4, 14, 4)
        painter.drawLine(10, 11, 10, 17)
        painter.drawLine(14, 11, 14, 17)

    painter.end()
    return QIcon(pixmap)


class AnnotationEditorWidget(QWidget):
    """
    Embeddable image annotation editor.

    Signals:
        saved: (png_bytes, data_uri, annotations) after a successful save.
            png_bytes is a Python bytes object.
        cancelled: The user dismissed the editor.
        load_failed: An image could not be opened (message).
        session_opened: A new session is ready.
        session_closed: A session has been disposed.
    """

    saved = Signal(object, str, list)
    cancelled = Signal()
    load_failed = Signal(str)
    session_opened = Signal()
    session_closed = Signal()

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        on_save: Optional[SaveCallback] = None,
        on_cancel: Optional[CancelCallback] = None,
        max_size: Optional[tuple] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._on_save = on_save
        self._on_cancel = on_cancel
        self._max_size = max_size

        self._image_ref: Optional[ImageReference] = None
        self._base: Optional[BaseLayer] = None
        self._store: Optional[AnnotationStore] = None
        self._controller: Optional[InteractionController] = None
        self._closing = False

        # Phase two of teardown; a zero-interval single shot runs on the next tick
        self._teardown_timer = QTimer(self)
        self._teardown_timer.setSingleShot(True)
        self._teardown_timer.setInterval(0)
        self._teardown_timer.timeout.connect(self._dispose_session)

        self._setup_ui()
        self._refresh_actions()

    # ─── UI ───────────────────────────────────────────────────────────────

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        # ─── Header ───────────────────────────────────────────────────
        self._title = QLabel("Annotate Image")
        self._title.setStyleSheet("font-weight: bold; font-size: 14px;")
        main_layout.addWidget(self._title)

        subtitle = QLabel("Draw rectangles and arrows to highlight areas of interest")
        subtitle.setStyleSheet("color: #999; font-size: 11px;")
        main_layout.addWidget(subtitle)

        # ─── Toolbar ──────────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border: 1px solid #3a3a3a;
                border-radius: 6px;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolButton {
                background-color: transparent;
                border: none;
                border-radius: 6px;
                padding: 4px 6px;
                min-width: 28px;
                min-height: 28px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
        """)

        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)
        tool_configs = [
            (AnnotationType.RECTANGLE, "Rectangle", "rectangle", "R"),
            (AnnotationType.ARROW, "Arrow", "arrow", "A"),
        ]
        for tool_type, tooltip, icon_shape, shortcut in tool_configs:
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(icon_shape))
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.setProperty("tool_type", tool_type)
            btn.clicked.connect(lambda checked, t=tool_type: self.select_tool(t))
            self._tool_group.addButton(btn)
            self._toolbar.addWidget(btn)
            if tool_type == AnnotationType.RECTANGLE:
                btn.setChecked(True)

        self._toolbar.addSeparator()

        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)
        for name, value in PALETTE.items():
            swatch = ColorSwatch(name, value)
            swatch.clicked.connect(lambda checked, c=value: self.select_color(c))
            self._color_group.addButton(swatch)
            self._toolbar.addWidget(swatch)

        self._toolbar.addSeparator()

        self._width_group = QButtonGroup(self)
        self._width_group.setExclusive(True)
        for name, width in LINE_WIDTHS.items():
            btn = QToolButton()
            btn.setText(name)
            btn.setCheckable(True)
            btn.setProperty("line_width", width)
            btn.clicked.connect(lambda checked, w=width: self.select_line_width(w))
            self._width_group.addButton(btn)
            self._toolbar.addWidget(btn)

        self._toolbar.addSeparator()

        self._undo_btn = QToolButton()
        self._undo_btn.setIcon(_create_tool_icon("undo"))
        self._undo_btn.setToolTip("Undo (Ctrl+Z)")
        self._undo_btn.clicked.connect(self._on_undo)
        self._toolbar.addWidget(self._undo_btn)

        self._redo_btn = QToolButton()
        self._redo_btn.setIcon(_create_tool_icon("redo"))
        self._redo_btn.setToolTip("Redo (Ctrl+Y)")
        self._redo_btn.clicked.connect(self._on_redo)
        self._toolbar.addWidget(self._redo_btn)

        self._clear_btn = QToolButton()
        self._clear_btn.setIcon(_create_tool_icon("clear", QColor(239, 68, 68)))
        self._clear_btn.setToolTip("Clear All")
        self._clear_btn.clicked.connect(self._on_clear_all)
        self._toolbar.addWidget(self._clear_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Canvas ───────────────────────────────────────────────────
        canvas_frame = QFrame()
        canvas_frame.setStyleSheet("QFrame { background-color: #1a1a1a; border-radius: 6px; }")
        canvas_layout = QHBoxLayout(canvas_frame)
        canvas_layout.setContentsMargins(12, 12, 12, 12)
        self._canvas = AnnotationCanvas()
        canvas_layout.addWidget(self._canvas, 0, Qt.AlignmentFlag.AlignCenter)
        main_layout.addWidget(canvas_frame, 1)

        # ─── Note Editor ──────────────────────────────────────────────
        self._note_row = QWidget()
        note_layout = QHBoxLayout(self._note_row)
        note_layout.setContentsMargins(0, 0, 0, 0)
        self._note_label = QLabel("Note")
        self._note_edit = QLineEdit()
        self._note_edit.setPlaceholderText("Add a note for this shape (optional)")
        self._note_edit.textEdited.connect(self._on_note_edited)
        self._note_edit.returnPressed.connect(self._on_note_save)
        self._note_save_btn = QPushButton("Save Note")
        self._note_save_btn.clicked.connect(self._on_note_save)
        self._note_skip_btn = QPushButton("Skip")
        self._note_skip_btn.clicked.connect(self._on_note_skip)
        note_layout.addWidget(self._note_label)
        note_layout.addWidget(self._note_edit, 1)
        note_layout.addWidget(self._note_save_btn)
        note_layout.addWidget(self._note_skip_btn)
        self._note_row.setVisible(False)
        main_layout.addWidget(self._note_row)

        # ─── Footer ───────────────────────────────────────────────────
        footer = QHBoxLayout()
        footer.addStretch()
        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.clicked.connect(self.cancel)
        footer.addWidget(self._cancel_btn)
        self._save_btn = QPushButton("Use Annotated Image")
        self._save_btn.setDefault(True)
        self._save_btn.clicked.connect(self.save)
        footer.addWidget(self._save_btn)
        main_layout.addLayout(footer)

    # ─── Session Lifecycle ────────────────────────────────────────────────

    @property
    def store(self) -> Optional[AnnotationStore]:
        return self._store

    @property
    def controller(self) -> Optional[InteractionController]:
        return self._controller

    @property
    def canvas(self) -> AnnotationCanvas:
        return self._canvas

    @property
    def base_layer(self) -> Optional[BaseLayer]:
        return self._base

    @property
    def has_session(self) -> bool:
        return self._store is not None and not self._closing

    @property
    def teardown_pending(self) -> bool:
        return self._teardown_timer.isActive()

    def _fit_bounds(self) -> tuple:
        if self._max_size:
            return self._max_size

        width_ratio = self._config.fit_width_ratio if self._config else 0.8
        height_ratio = self._config.fit_height_ratio if self._config else 0.6

        screen = QGuiApplication.primaryScreen()
        if screen is None:
            return DEFAULT_MAX_SIZE
        available = screen.availableGeometry()
        return (available.width() * width_ratio, available.height() * height_ratio)

    def open_image(self, image_ref: ImageReference) -> bool:
        """
        Start a fresh session for an image.

        Any previous session is disposed first, and a scheduled teardown
        is cancelled so it cannot clobber the new session.

        Returns:
            False if the image could not be decoded.
        """
        if self._teardown_timer.isActive():
            self._teardown_timer.stop()
            self._logger.debug("Cancelled scheduled teardown for new session")
        self._dispose_session()

        max_width, max_height = self._fit_bounds()
        try:
            base = BaseLayer.from_source(image_ref.source, max_width, max_height)
        except ImageLoadError as e:
            self._logger.error(f"Failed to open image '{image_ref.title}': {e}")
            self.load_failed.emit(str(e))
            return False

        hit_padding = self._config.hit_padding if self._config else None
        topmost_first = self._config.hover_topmost_first if self._config else False
        store_kwargs = {"topmost_first": topmost_first}
        if hit_padding is not None:
            store_kwargs["hit_padding"] = hit_padding

        self._image_ref = image_ref
        self._base = base
        self._store = AnnotationStore(parent=self, **store_kwargs)
        self._controller = InteractionController(
            self._store,
            color=self._config.default_color if self._config else PALETTE["Red"],
            line_width=self._config.default_line_width if self._config else LINE_WIDTHS["Medium"],
        )
        self._closing = False

        self._store.changed.connect(self._on_state_changed)
        self._store.history.can_undo_changed.connect(self._refresh_actions)
        self._store.history.can_redo_changed.connect(self._refresh_actions)
        self._canvas.attach(base, self._controller)

        self._title.setText(f"Annotate Image: {image_ref.title}" if image_ref.title else "Annotate Image")
        self._sync_tool_buttons()
        self._refresh_actions()
        self._canvas.setFocus()

        self._logger.info(f"Session opened for '{image_ref.title}' ({base.size[0]}x{base.size[1]})")
        self.session_opened.emit()
        return True

    def close_session(self) -> None:
        """
        Begin closing the session.

        The in-progress drag is dropped immediately without recording;
        disposal of the session state happens on the next event-loop tick.
        """
        if self._store is None or self._closing:
            return

        self._closing = True
        if self._controller is not None:
            self._controller.cancel()
        self._refresh_actions()
        self._teardown_timer.start()
        self._logger.debug("Session closing; teardown scheduled")

    @Slot()
    def _dispose_session(self) -> None:
        """Release the session state. Safe to call more than once."""
        if self._store is None:
            return

        self._canvas.detach()
        store = self._store
        self._store = None
        self._controller = None
        self._base = None
        self._image_ref = None
        self._closing = False

        store.changed.disconnect(self._on_state_changed)
        store.reset()
        store.deleteLater()

        self._note_row.setVisible(False)
        self._note_edit.clear()
        self._refresh_actions()
        self._logger.info("Session disposed")
        self.session_closed.emit()

    # ─── Host Actions ─────────────────────────────────────────────────────

    def export(self) -> FlattenResult:
        """
        Flatten the current session.

        Raises:
            EmptyExportError: If there are no annotations.
            ExportError: If encoding fails.
        """
        if self._store is None or self._base is None:
            raise ExportError("No open session")
        return flatten(self._base, self._store.annotations)

    @Slot()
    def save(self) -> bool:
        """
        Flatten and hand the result to the host.

        An open note is saved first. Keeps the session on failure.
        """
        if self._controller is None or not self._controller.can_save:
            return False

        # A note still being typed belongs in the export
        if self._controller.mode == EditorMode.EDITING_NOTE:
            self._controller.save_note(self._note_edit.text())

        try:
            result = self.export()
        except EmptyExportError:
            self._logger.debug("Save ignored: nothing to export")
            return False
        except ExportError as e:
            self._logger.error(f"Export failed: {e}")
            QMessageBox.warning(
                self,
                "Save Failed",
                f"Failed to save the annotated image. Please try again.\n\n{e}",
            )
            return False

        self.saved.emit(result.png_bytes, result.data_uri, result.annotations)
        if self._on_save:
            self._on_save(result.png_bytes, result.data_uri, result.annotations)
        self.close_session()
        return True

    @Slot()
    def cancel(self) -> None:
        """Dismiss the editor without saving."""
        self.close_session()
        self.cancelled.emit()
        if self._on_cancel:
            self._on_cancel()

    # ─── Tool Selection ───────────────────────────────────────────────────

    def select_tool(self, tool: AnnotationType) -> None:
        if self._controller:
            self._controller.select_tool(tool)
        self._sync_tool_buttons()

    def select_color(self, color: str) -> None:
        if self._controller:
            self._controller.select_color(color)
        self._sync_tool_buttons()

    def select_line_width(self, width: int) -> None:
        if self._controller:
            self._controller.select_line_width(width)
        self._sync_tool_buttons()

    def _sync_tool_buttons(self) -> None:
        """Reflect the controller's tool/color/width on the toolbar."""
        if self._controller is None:
            return
        for btn in self._tool_group.buttons():
            btn.setChecked(btn.property("tool_type") == self._controller.tool)
        for btn in self._color_group.buttons():
            btn.setChecked(btn.color == self._controller.color)
        for btn in self._width_group.buttons():
            btn.setChecked(btn.property("line_width") == self._controller.line_width)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(object)
    def _on_state_changed(self, state: SessionState) -> None:
        editing = state.mode == EditorMode.EDITING_NOTE
        if editing:
            index = state.editing_index
            self._note_label.setText(f"Note #{index + 1}")
            if self._note_edit.text() != state.note_buffer:
                self._note_edit.setText(state.note_buffer)
            if self._note_row.isHidden():
                self._note_row.setVisible(True)
                self._note_edit.setFocus()
        elif not self._note_row.isHidden():
            self._note_row.setVisible(False)
            self._note_edit.clear()
            self._canvas.setFocus()
        self._refresh_actions()

    def _refresh_actions(self, *args) -> None:
        controller = None if self._closing else self._controller
        self._undo_btn.setEnabled(bool(controller and controller.can_undo))
        self._redo_btn.setEnabled(bool(controller and controller.can_redo))
        self._clear_btn.setEnabled(bool(controller and controller.can_clear))
        self._save_btn.setEnabled(bool(controller and controller.can_save))

    def _on_undo(self) -> None:
        if self._controller:
            self._controller.undo()

    def _on_redo(self) -> None:
        if self._controller:
            self._controller.redo()

    def _on_clear_all(self) -> None:
        if self._controller:
            self._controller.clear_all()

    def _on_note_edited(self, text: str) -> None:
        if self._store and self._store.mode == EditorMode.EDITING_NOTE:
            self._store.set_note_buffer(text)

    def _on_note_save(self) -> None:
        if self._controller:
            self._controller.save_note(self._note_edit.text())

    def _on_note_skip(self) -> None:
        if self._controller:
            self._controller.skip_note()

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Tool shortcuts (R / A) outside the note editor."""
        key = event.key()
        modifiers = event.modifiers()

        if self._controller and self._controller.mode != EditorMode.EDITING_NOTE and not modifiers:
            if key == Qt.Key.Key_R:
                self.select_tool(AnnotationType.RECTANGLE)
                return
            if key == Qt.Key.Key_A:
                self.select_tool(AnnotationType.ARROW)
                return

        if key == Qt.Key.Key_Escape and not self._note_row.isHidden():
            self._on_note_skip()
            return

        super().keyPressEvent(event)
