"""
Session state and the annotation store for the FigMark editor.

All of an editing session's mutable state lives in one SessionState
value. The AnnotationStore replaces that value through explicit
transition methods and emits `changed` synchronously after each one, so
the overlay is repainted before the next input event is processed.

Transient operations (begin_shape, update_pending, hover) are never
recorded. Every operation that changes the committed list (commit_shape,
set_note, clear_all) records a snapshot in the history.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional

from PySide6.QtCore import QObject, QPointF, Signal

from figmark.editor.annotations import AnnotationType, PendingShape
from figmark.editor.errors import OutOfRangeError
from figmark.editor.geometry import HIT_PADDING, find_annotation_at
from figmark.editor.history import AnnotationHistory, Snapshot
from figmark.services.logging_service import get_logger


class EditorMode(Enum):
    """Interaction states, derived from the session state."""
    IDLE = auto()
    DRAWING = auto()
    EDITING_NOTE = auto()


@dataclass(frozen=True)
class SessionState:
    """
    Complete state of one editing session.

    Attributes:
        annotations: Committed shapes (insertion order = numbering = z-order).
        pending: The shape being dragged out, if any.
        hover_index: Annotation currently under the pointer.
        editing_index: Annotation whose note editor is open.
        note_buffer: Text currently in the note editor.
    """
    annotations: Snapshot = ()
    pending: Optional[PendingShape] = None
    hover_index: Optional[int] = None
    editing_index: Optional[int] = None
    note_buffer: str = ""

    @property
    def mode(self) -> EditorMode:
        if self.pending is not None:
            return EditorMode.DRAWING
        if self.editing_index is not None:
            return EditorMode.EDITING_NOTE
        return EditorMode.IDLE

    def valid_index(self, index: Optional[int]) -> bool:
        """True if index refers to a committed annotation."""
        return index is not None and 0 <= index < len(self.annotations)


class AnnotationStore(QObject):
    """
    Owner of the session state and its undo history.

    Signals:
        changed: Emitted after every state transition with the new state.
    """

    changed = Signal(object)  # SessionState

    def __init__(
        self,
        hit_padding: float = HIT_PADDING,
        topmost_first: bool = False,
        parent: Optional[QObject] = None,
    ) -> None:
        """
        Initialize an empty store.

        Args:
            hit_padding: Hover/click tolerance around bounding boxes.
            topmost_first: Pick the last-drawn shape when boxes overlap.
            parent: Optional QObject parent.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._state = SessionState()
        self._hit_padding = hit_padding
        self._topmost_first = topmost_first
        self._history = AnnotationHistory(self._restore_snapshot, self)

    # ─── Read Access ──────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def annotations(self) -> Snapshot:
        return self._state.annotations

    @property
    def pending(self) -> Optional[PendingShape]:
        return self._state.pending

    @property
    def hover_index(self) -> Optional[int]:
        return self._state.hover_index

    @property
    def editing_index(self) -> Optional[int]:
        return self._state.editing_index

    @property
    def note_buffer(self) -> str:
        return self._state.note_buffer

    @property
    def mode(self) -> EditorMode:
        return self._state.mode

    @property
    def history(self) -> AnnotationHistory:
        return self._history

    @property
    def history_index(self) -> int:
        return self._history.index

    @property
    def hit_padding(self) -> float:
        return self._hit_padding

    # ─── Internal ─────────────────────────────────────────────────────────

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        self.changed.emit(state)

    def _restore_snapshot(self, snapshot: Snapshot) -> None:
        """Make a snapshot live; drops indices that no longer resolve."""
        state = replace(self._state, annotations=snapshot)
        if not state.valid_index(state.hover_index):
            state = replace(state, hover_index=None)
        if state.editing_index is not None and not state.valid_index(state.editing_index):
            state = replace(state, editing_index=None, note_buffer="")
        self._set_state(state)

    def _check_index(self, index: int) -> None:
        if not self._state.valid_index(index):
            raise OutOfRangeError(index, len(self._state.annotations))

    # ─── Drawing ──────────────────────────────────────────────────────────

    def begin_shape(
        self,
        annotation_type: AnnotationType,
        color: str,
        line_width: int,
        point: QPointF
    ) -> None:
        """Start a zero-length pending shape anchored at point."""
        pending = PendingShape(
            annotation_type=annotation_type,
            color=color,
            line_width=line_width,
            start=QPointF(point),
            current=QPointF(point),
        )
        self._set_state(replace(self._state, pending=pending))

    def update_pending(self, point: QPointF) -> None:
        """Move the pending shape's end point. No-op if nothing is pending."""
        if self._state.pending is None:
            return
        self._set_state(replace(self._state, pending=self._state.pending.moved_to(point)))

    def cancel_pending(self) -> None:
        """Drop the pending shape without recording anything."""
        if self._state.pending is None:
            return
        self._set_state(replace(self._state, pending=None))

    def commit_shape(self, point: QPointF) -> Optional[int]:
        """
        Finalize the pending shape ending at point.

        Opens the note editor for the new shape.

        Returns:
            The index of the new annotation, or None if nothing was pending.
        """
        pending = self._state.pending
        if pending is None:
            return None

        annotation = pending.to_annotation(QPointF(point))
        before = self._state.annotations
        after = before + (annotation,)
        new_index = len(after) - 1

        # Clear the pending shape first so the history restore emits a
        # state with no preview left on the overlay.
        self._state = replace(
            self._state,
            pending=None,
            editing_index=new_index,
            note_buffer="",
        )
        self._history.record(before, after, "Add Annotation")

        self._logger.debug(
            f"Committed {annotation.annotation_type.name} #{new_index + 1} "
            f"({annotation.start.x():.0f},{annotation.start.y():.0f})-"
            f"({annotation.end.x():.0f},{annotation.end.y():.0f})"
        )
        return new_index

    # ─── Notes ────────────────────────────────────────────────────────────

    def open_note(self, index: int) -> None:
        """Open the note editor for an existing annotation, pre-filled."""
        self._check_index(index)
        self._set_state(replace(
            self._state,
            editing_index=index,
            note_buffer=self._state.annotations[index].text,
        ))

    def set_note_buffer(self, text: str) -> None:
        self._set_state(replace(self._state, note_buffer=text))

    def close_note(self) -> None:
        """Close the note editor, discarding the unsaved edit."""
        if self._state.editing_index is None and not self._state.note_buffer:
            return
        self._set_state(replace(self._state, editing_index=None, note_buffer=""))

    def set_note(self, index: int, text: str) -> None:
        """
        Replace an annotation's note and record the change.

        Closes the note editor.

        Raises:
            OutOfRangeError: If index does not refer to an annotation.
        """
        self._check_index(index)

        before = self._state.annotations
        after = before[:index] + (before[index].with_text(text),) + before[index + 1:]

        self._state = replace(self._state, editing_index=None, note_buffer="")
        self._history.record(before, after, "Edit Note")
        self._logger.debug(f"Note set on #{index + 1}: {text!r}")

    # ─── Hover ────────────────────────────────────────────────────────────

    def set_hover(self, index: Optional[int]) -> None:
        """Set the hovered annotation; stale indices degrade to None."""
        if index is not None and not self._state.valid_index(index):
            self._logger.debug(f"Ignoring hover on stale index {index}")
            index = None
        if index == self._state.hover_index:
            return
        self._set_state(replace(self._state, hover_index=index))

    def hover_at(self, point: QPointF) -> Optional[int]:
        """Hit-test point against committed annotations and store the result."""
        index = self.annotation_at(point)
        self.set_hover(index)
        return index

    def annotation_at(self, point: QPointF) -> Optional[int]:
        return find_annotation_at(
            point,
            self._state.annotations,
            self._hit_padding,
            self._topmost_first,
        )

    # ─── Bulk ─────────────────────────────────────────────────────────────

    def clear_all(self) -> bool:
        """
        Remove every annotation as one undoable step.

        Returns:
            False if the list was already empty (nothing recorded).
        """
        before = self._state.annotations
        if not before:
            return False

        self._state = replace(self._state, hover_index=None, editing_index=None, note_buffer="")
        self._history.record(before, (), "Clear All")
        self._logger.info(f"Cleared {len(before)} annotations")
        return True

    def undo(self) -> bool:
        return self._history.undo()

    def redo(self) -> bool:
        return self._history.redo()

    def reset(self) -> None:
        """Return to a brand-new empty session."""
        self._history.clear()
        self._set_state(SessionState())
