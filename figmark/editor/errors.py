"""
Error types raised by the FigMark annotation editor.

Only genuine I/O failures (image decode, PNG encode) are meant to reach
the host. OutOfRangeError reflects a harmless UI race and callers log
and ignore it.
"""


class AnnotationError(Exception):
    """Base class for all annotation editor errors."""


class ImageLoadError(AnnotationError):
    """The source image could not be decoded; the session cannot start."""


class OutOfRangeError(AnnotationError, IndexError):
    """An operation referenced an annotation index that no longer exists."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"Annotation index {index} out of range (count={count})")
        self.index = index
        self.count = count


class ExportError(AnnotationError):
    """Flattening or encoding the annotated image failed. Safe to retry."""


class EmptyExportError(ExportError):
    """There are no committed annotations to export."""
