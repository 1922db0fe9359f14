"""
Interaction controller for the FigMark editor.

Translates pointer and keyboard input into AnnotationStore transitions.
The controller holds no session state of its own beyond the current
tool/color/width choice and where the active drag began; the mode
(Idle, Drawing, Editing-Note) is derived from the store's state.

    Idle --pointer-down--> Drawing --pointer-up--> Editing-Note
      ^                      |                         |
      |                 pointer-leave            save / skip
      +----------------------+-------------------------+

Clicking (pointer-down/up without dragging) on a hovered annotation
re-opens its note instead of committing a zero-length shape.
"""

from enum import Enum, auto
from typing import Optional

from PySide6.QtCore import QPointF

from figmark.editor.annotations import (
    DEFAULT_COLOR,
    DEFAULT_LINE_WIDTH,
    AnnotationType,
    is_line_width,
    is_palette_color,
)
from figmark.editor.errors import OutOfRangeError
from figmark.editor.geometry import distance
from figmark.editor.session import AnnotationStore, EditorMode
from figmark.services.logging_service import get_logger

# Drags shorter than this are treated as clicks on a hovered annotation
CLICK_TOLERANCE = 3


class ShortcutAction(Enum):
    """Keyboard actions routed through the controller."""
    UNDO = auto()
    REDO = auto()


class InteractionController:
    """
    Pointer/keyboard state machine driving an AnnotationStore.
    """

    def __init__(
        self,
        store: AnnotationStore,
        color: str = DEFAULT_COLOR,
        line_width: int = DEFAULT_LINE_WIDTH,
    ) -> None:
        self._logger = get_logger(__name__)
        self._store = store
        self._tool = AnnotationType.RECTANGLE
        self._color = color if is_palette_color(color) else DEFAULT_COLOR
        self._line_width = line_width if is_line_width(line_width) else DEFAULT_LINE_WIDTH

        self._press_pos: Optional[QPointF] = None
        self._press_hover: Optional[int] = None

    # ─── Tool Settings ────────────────────────────────────────────────────

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def mode(self) -> EditorMode:
        return self._store.mode

    @property
    def tool(self) -> AnnotationType:
        return self._tool

    @property
    def color(self) -> str:
        return self._color

    @property
    def line_width(self) -> int:
        return self._line_width

    def select_tool(self, tool: AnnotationType) -> None:
        self._tool = tool

    def select_color(self, color: str) -> None:
        """Pick a stroke color from the fixed palette."""
        if not is_palette_color(color):
            raise ValueError(f"Color {color!r} is not in the palette")
        self._color = color.lower()

    def select_line_width(self, width: int) -> None:
        """Pick one of the fixed stroke widths."""
        if not is_line_width(width):
            raise ValueError(f"Line width {width!r} is not supported")
        self._line_width = width

    # ─── Availability ─────────────────────────────────────────────────────

    @property
    def can_clear(self) -> bool:
        return self.mode == EditorMode.IDLE and bool(self._store.annotations)

    @property
    def can_save(self) -> bool:
        return self.mode != EditorMode.DRAWING and bool(self._store.annotations)

    @property
    def can_undo(self) -> bool:
        return self.mode != EditorMode.EDITING_NOTE and self._store.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.mode != EditorMode.EDITING_NOTE and self._store.history.can_redo

    # ─── Pointer Input ────────────────────────────────────────────────────

    def pointer_down(self, pos: QPointF) -> None:
        """Start drawing a new shape (Idle -> Drawing)."""
        if self.mode != EditorMode.IDLE:
            return

        self._press_pos = QPointF(pos)
        self._press_hover = self._store.annotation_at(pos)
        self._store.begin_shape(self._tool, self._color, self._line_width, pos)

    def pointer_move(self, pos: QPointF) -> None:
        """Update the live preview while drawing, otherwise track hover."""
        mode = self.mode
        if mode == EditorMode.DRAWING:
            self._store.update_pending(pos)
        elif mode == EditorMode.IDLE:
            self._store.hover_at(pos)

    def pointer_up(self, pos: QPointF) -> None:
        """Commit the drawn shape, or open a clicked annotation's note."""
        if self.mode != EditorMode.DRAWING:
            return

        press_pos = self._press_pos
        clicked = self._press_hover
        self._press_pos = None
        self._press_hover = None

        if (
            clicked is not None
            and press_pos is not None
            and distance(press_pos, pos) < CLICK_TOLERANCE
        ):
            self._store.cancel_pending()
            self.open_note(clicked)
            return

        self._store.commit_shape(pos)

    def pointer_leave(self) -> None:
        """Abandon any drag in progress and clear hover."""
        self._press_pos = None
        self._press_hover = None
        self._store.cancel_pending()
        self._store.set_hover(None)

    # ─── Notes ────────────────────────────────────────────────────────────

    def open_note(self, index: int) -> bool:
        """Open the note editor for an existing annotation."""
        if self.mode != EditorMode.IDLE:
            return False
        try:
            self._store.open_note(index)
        except OutOfRangeError as e:
            self._logger.warning(f"Cannot open note: {e}")
            return False
        return True

    def save_note(self, text: Optional[str] = None) -> bool:
        """
        Commit the note editor's text (Editing-Note -> Idle).

        Args:
            text: Text to save; defaults to the store's note buffer.

        Returns:
            True if a note was recorded.
        """
        index = self._store.editing_index
        if index is None:
            return False

        if text is None:
            text = self._store.note_buffer
        text = text.strip()

        try:
            self._store.set_note(index, text)
        except OutOfRangeError as e:
            # Annotation vanished under the editor; drop the edit quietly
            self._logger.warning(f"Discarding note edit: {e}")
            self._store.close_note()
            return False
        return True

    def skip_note(self) -> None:
        """Close the note editor without recording (Editing-Note -> Idle)."""
        self._store.close_note()

    # ─── Commands ─────────────────────────────────────────────────────────

    def handle_shortcut(self, action: ShortcutAction) -> bool:
        """
        Run an undo/redo shortcut.

        Shortcuts are ignored while a note is being edited so text-field
        key combinations keep working.

        Returns:
            True if the shortcut was consumed.
        """
        if self.mode == EditorMode.EDITING_NOTE:
            return False

        if self.mode == EditorMode.DRAWING:
            self._store.cancel_pending()

        if action == ShortcutAction.UNDO:
            return self._store.undo()
        if action == ShortcutAction.REDO:
            return self._store.redo()
        return False

    def undo(self) -> bool:
        return self.handle_shortcut(ShortcutAction.UNDO)

    def redo(self) -> bool:
        return self.handle_shortcut(ShortcutAction.REDO)

    def clear_all(self) -> bool:
        """Clear every annotation; only available from Idle."""
        if not self.can_clear:
            return False
        return self._store.clear_all()

    def cancel(self) -> None:
        """Drop transient state (pending drag, open note, hover)."""
        self.pointer_leave()
        self._store.close_note()
