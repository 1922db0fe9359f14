"""
Editor canvas widget for FigMark.

The AnnotationCanvas displays the two render layers stacked at the same
position:
- The base layer (source image, rasterized once per session)
- The overlay layer (annotations, badges, live preview)

Pointer and keyboard events are forwarded to the InteractionController.
Every store change repaints the overlay synchronously before the next
input event is handled.
"""

from typing import Optional

from PySide6.QtCore import QPointF, Qt, Slot
from PySide6.QtGui import QColor, QKeyEvent, QMouseEvent, QPainter
from PySide6.QtWidgets import QSizePolicy, QToolTip, QWidget

from figmark.editor.controller import InteractionController, ShortcutAction
from figmark.editor.render import BaseLayer, OverlayLayer
from figmark.editor.session import SessionState
from figmark.services.logging_service import get_logger


class AnnotationCanvas(QWidget):
    """
    Widget hosting the base and overlay layers for one session.

    Shows the hovered annotation's note as a tooltip.
    """

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._base: Optional[BaseLayer] = None
        self._overlay: Optional[OverlayLayer] = None
        self._controller: Optional[InteractionController] = None
        self._last_hover: Optional[int] = None

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.setCursor(Qt.CursorShape.CrossCursor)

    # ─── Session Binding ──────────────────────────────────────────────────

    def attach(self, base: BaseLayer, controller: InteractionController) -> None:
        """Bind the canvas to a freshly opened session."""
        self.detach()

        self._base = base
        self._controller = controller
        width, height = base.size
        self._overlay = OverlayLayer(width, height)
        self.setFixedSize(width, height)

        controller.store.changed.connect(self._on_state_changed)
        self._on_state_changed(controller.store.state)

    def detach(self) -> None:
        """Release the current session's layers."""
        if self._controller is not None:
            self._controller.store.changed.disconnect(self._on_state_changed)
        self._base = None
        self._overlay = None
        self._controller = None
        self._last_hover = None
        QToolTip.hideText()
        self.update()

    @property
    def base_layer(self) -> Optional[BaseLayer]:
        return self._base

    @property
    def overlay_layer(self) -> Optional[OverlayLayer]:
        return self._overlay

    # ─── Repaint ──────────────────────────────────────────────────────────

    @Slot(object)
    def _on_state_changed(self, state: SessionState) -> None:
        if self._overlay is None:
            return
        self._overlay.repaint(state)
        self.update()

        if state.hover_index != self._last_hover:
            self._last_hover = state.hover_index
            self._update_tooltip(state)

    def _update_tooltip(self, state: SessionState) -> None:
        index = state.hover_index
        if index is None or not state.valid_index(index):
            QToolTip.hideText()
            self.setCursor(Qt.CursorShape.CrossCursor)
            return

        annotation = state.annotations[index]
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        if annotation.has_note:
            pos = annotation.bounding_rect.topLeft().toPoint()
            QToolTip.showText(self.mapToGlobal(pos), f"{index + 1}. {annotation.text}", self)
        else:
            QToolTip.hideText()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Stack the overlay on top of the base layer."""
        painter = QPainter(self)
        if self._base is None:
            painter.fillRect(self.rect(), QColor(26, 26, 26))
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            painter.end()
            return

        painter.drawImage(0, 0, self._base.image)
        if self._overlay is not None:
            painter.drawImage(0, 0, self._overlay.image)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if self._controller and event.button() == Qt.MouseButton.LeftButton:
            self._controller.pointer_down(self._clamp(event.position()))
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._controller:
            self._controller.pointer_move(self._clamp(event.position()))
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self._controller and event.button() == Qt.MouseButton.LeftButton:
            self._controller.pointer_up(self._clamp(event.position()))
            return
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:
        if self._controller:
            self._controller.pointer_leave()
        super().leaveEvent(event)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Undo/redo shortcuts; the controller ignores them while editing a note."""
        if self._controller is None:
            super().keyPressEvent(event)
            return

        key = event.key()
        modifiers = event.modifiers()

        if modifiers & Qt.KeyboardModifier.ControlModifier:
            if key == Qt.Key.Key_Z:
                if modifiers & Qt.KeyboardModifier.ShiftModifier:
                    action = ShortcutAction.REDO
                else:
                    action = ShortcutAction.UNDO
                if self._controller.handle_shortcut(action):
                    return
            elif key == Qt.Key.Key_Y:
                if self._controller.handle_shortcut(ShortcutAction.REDO):
                    return

        if key == Qt.Key.Key_Escape:
            self._controller.pointer_leave()
            return

        super().keyPressEvent(event)

    def _clamp(self, pos: QPointF) -> QPointF:
        """Keep pointer positions inside the overlay's pixel space."""
        if self._base is None:
            return QPointF(pos)
        width, height = self._base.size
        return QPointF(
            min(max(pos.x(), 0.0), float(width)),
            min(max(pos.y(), 0.0), float(height)),
        )
