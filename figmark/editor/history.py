"""
Undo/redo history for the FigMark editor.

History is a linear log of full annotation-list snapshots kept on a
QUndoStack. Each recorded edit becomes a SnapshotCommand carrying the
list before and after the edit, so undoing the very first edit lands on
the empty list ("before the beginning", history index -1).

Pushing a new snapshot after one or more undos discards the redoable
tail, which is QUndoStack's native behavior.
"""

from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QUndoCommand, QUndoStack

from figmark.editor.annotations import Annotation
from figmark.services.logging_service import get_logger

Snapshot = Tuple[Annotation, ...]


class SnapshotCommand(QUndoCommand):
    """Command that swaps the live annotation list between two snapshots."""

    def __init__(
        self,
        before: Snapshot,
        after: Snapshot,
        restore: Callable[[Snapshot], None],
        label: str = "Edit Annotations",
    ) -> None:
        super().__init__(label)
        self._before = before
        self._after = after
        self._restore = restore

    @property
    def snapshot(self) -> Snapshot:
        """The snapshot this command makes active."""
        return self._after

    def redo(self) -> None:
        self._restore(self._after)

    def undo(self) -> None:
        self._restore(self._before)


class AnnotationHistory(QObject):
    """
    Linear undo/redo log of annotation snapshots.

    Signals:
        can_undo_changed: Emitted when undo availability flips.
        can_redo_changed: Emitted when redo availability flips.
    """

    can_undo_changed = Signal(bool)
    can_redo_changed = Signal(bool)

    def __init__(
        self,
        restore: Callable[[Snapshot], None],
        parent: Optional[QObject] = None
    ) -> None:
        """
        Initialize the history.

        Args:
            restore: Called with the snapshot to make live on undo/redo.
            parent: Optional QObject parent.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._restore = restore
        self._stack = QUndoStack(self)
        # Python-side mirror of the stack's commands, same order
        self._commands: List[SnapshotCommand] = []
        self._stack.canUndoChanged.connect(self.can_undo_changed)
        self._stack.canRedoChanged.connect(self.can_redo_changed)

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def index(self) -> int:
        """Index of the active snapshot; -1 means the empty initial state."""
        return self._stack.index() - 1

    @property
    def snapshots(self) -> Tuple[Snapshot, ...]:
        """All recorded snapshots, including any redoable tail."""
        return tuple(command.snapshot for command in self._commands)

    @property
    def can_undo(self) -> bool:
        return self._stack.canUndo()

    @property
    def can_redo(self) -> bool:
        return self._stack.canRedo()

    # ─── Operations ───────────────────────────────────────────────────────

    def record(self, before: Snapshot, after: Snapshot, label: str = "Edit Annotations") -> None:
        """
        Record a new snapshot as the active one.

        Truncates any redoable future first.
        """
        command = SnapshotCommand(before, after, self._restore, label)
        del self._commands[self._stack.index():]
        self._commands.append(command)
        self._stack.push(command)
        self._logger.debug(f"Recorded '{label}' ({len(after)} annotations), index={self.index}")

    def undo(self) -> bool:
        """Step back one snapshot. Returns False when already at the start."""
        if not self._stack.canUndo():
            return False
        self._stack.undo()
        self._logger.debug(f"Undo -> index {self.index}")
        return True

    def redo(self) -> bool:
        """Step forward one snapshot. Returns False when nothing to redo."""
        if not self._stack.canRedo():
            return False
        self._stack.redo()
        self._logger.debug(f"Redo -> index {self.index}")
        return True

    def clear(self) -> None:
        """Drop every recorded snapshot."""
        self._stack.clear()
        self._commands.clear()
