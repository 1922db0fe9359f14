"""
Two-layer render pipeline for the FigMark editor.

- BaseLayer: the source image, decoded and scaled to fit exactly once per
  session. It is never re-rasterized when annotations change.
- OverlayLayer: a transparent surface the same size as the base layer,
  cleared and fully repainted on every state change.

The layers are only merged by the export step.
"""

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from PySide6.QtCore import QByteArray, Qt
from PySide6.QtGui import QColor, QImage, QPainter

from figmark.editor.annotations import (
    HIGHLIGHT_COLOR,
    HIGHLIGHT_EXTRA_WIDTH,
    Annotation,
)
from figmark.editor.errors import ImageLoadError
from figmark.editor.geometry import fit_dimensions
from figmark.editor.session import SessionState
from figmark.services.logging_service import get_logger

logger = get_logger(__name__)

ImageSource = Union[bytes, str, Path]


@dataclass(frozen=True)
class ImageReference:
    """
    An image handed to the editor by the host.

    Attributes:
        source: Raw encoded bytes, a filesystem path, or a data: URI.
        title: Display title shown in the editor header.
    """
    source: ImageSource
    title: str = ""


def decode_image(source: ImageSource) -> QImage:
    """
    Decode an image source into a QImage.

    Raises:
        ImageLoadError: If the source can't be read or decoded.
    """
    image = QImage()

    if isinstance(source, (bytes, bytearray)):
        image.loadFromData(QByteArray(bytes(source)))
        label = f"<{len(source)} bytes>"
    elif isinstance(source, str) and source.startswith("data:"):
        label = "<data uri>"
        header, _, payload = source.partition(",")
        if not payload or ";base64" not in header:
            raise ImageLoadError("Only base64 data URIs are supported")
        try:
            raw = base64.b64decode(payload, validate=True)
        except ValueError as e:
            raise ImageLoadError(f"Invalid data URI payload: {e}") from e
        image.loadFromData(QByteArray(raw))
    else:
        path = Path(source)
        label = str(path)
        if not path.is_file():
            raise ImageLoadError(f"Image file not found: {path}")
        image.load(str(path))

    if image.isNull():
        raise ImageLoadError(f"Could not decode image {label}")

    logger.debug(f"Decoded image {label}: {image.width()}x{image.height()}")
    return image


class BaseLayer:
    """
    The static, once-rasterized source image.

    Construction decodes and scales the image; nothing afterwards redraws it.
    """

    def __init__(self, source_image: QImage, max_width: float, max_height: float) -> None:
        self._original_size = (source_image.width(), source_image.height())
        width, height = fit_dimensions(
            source_image.width(), source_image.height(), max_width, max_height
        )

        if (width, height) == self._original_size:
            scaled = source_image
        else:
            scaled = source_image.scaled(
                width,
                height,
                Qt.AspectRatioMode.IgnoreAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        self._image = scaled.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)

        logger.info(
            f"Base layer ready: {self._original_size[0]}x{self._original_size[1]} "
            f"-> {width}x{height}"
        )

    @classmethod
    def from_source(
        cls,
        source: ImageSource,
        max_width: float,
        max_height: float
    ) -> "BaseLayer":
        return cls(decode_image(source), max_width, max_height)

    @property
    def image(self) -> QImage:
        return self._image

    @property
    def size(self) -> Tuple[int, int]:
        return (self._image.width(), self._image.height())

    @property
    def original_size(self) -> Tuple[int, int]:
        return self._original_size


def paint_annotations(
    painter: QPainter,
    annotations: Iterable[Annotation],
    hover_index: Optional[int] = None,
) -> None:
    """
    Paint committed annotations in list order, then their note badges.

    Later annotations are drawn over earlier ones. Badges go on top of
    all shapes so a number is never hidden by a later stroke.
    """
    annotations = list(annotations)

    for index, annotation in enumerate(annotations):
        if index == hover_index:
            annotation.paint(
                painter,
                color=HIGHLIGHT_COLOR,
                line_width=annotation.line_width + HIGHLIGHT_EXTRA_WIDTH,
            )
        else:
            annotation.paint(painter)

    for index, annotation in enumerate(annotations):
        if annotation.has_note:
            annotation.paint_badge(painter, index + 1)


class OverlayLayer:
    """
    The dynamic layer holding annotations and the live drawing preview.

    repaint() always clears and redraws the whole surface.
    """

    def __init__(self, width: int, height: int) -> None:
        self._image = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
        self._image.fill(Qt.GlobalColor.transparent)
        self.repaint_count = 0

    @property
    def image(self) -> QImage:
        return self._image

    @property
    def size(self) -> Tuple[int, int]:
        return (self._image.width(), self._image.height())

    def repaint(
        self,
        state: SessionState,
        include_pending: bool = True,
        include_hover: bool = True,
    ) -> QImage:
        """
        Redraw the overlay from a session state.

        Args:
            state: The state to draw.
            include_pending: Draw the in-progress shape preview.
            include_hover: Apply the hover highlight.

        Returns:
            The overlay image.
        """
        self._image.fill(QColor(0, 0, 0, 0))

        painter = QPainter(self._image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)

        hover_index = state.hover_index if include_hover else None
        paint_annotations(painter, state.annotations, hover_index)

        if include_pending and state.pending is not None:
            state.pending.to_annotation().paint(painter)

        painter.end()
        self.repaint_count += 1
        return self._image
