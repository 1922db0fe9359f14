"""
Flatten the base layer and committed annotations into one PNG.

The export ignores anything transient: the pending drawing preview and
the hover highlight never reach the flattened image.
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImage, QPainter

from figmark.editor.annotations import Annotation
from figmark.editor.errors import EmptyExportError, ExportError
from figmark.editor.render import BaseLayer, paint_annotations
from figmark.services.logging_service import get_logger

logger = get_logger(__name__)


@dataclass
class FlattenResult:
    """Everything handed to the host's save callback."""
    png_bytes: bytes
    data_uri: str
    width: int
    height: int
    annotations: List[Dict[str, Any]] = field(default_factory=list)


def render_flattened(base: BaseLayer, annotations: Sequence[Annotation]) -> QImage:
    """Composite committed annotations over a copy of the base image."""
    result = base.image.copy()
    painter = QPainter(result)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    paint_annotations(painter, annotations)
    painter.end()
    return result


def encode_png(image: QImage) -> bytes:
    """
    Encode a QImage as PNG bytes.

    Raises:
        ExportError: If Qt fails to encode the image.
    """
    if image.isNull():
        raise ExportError("Cannot encode an empty image")

    data = QByteArray()
    buffer = QBuffer(data)
    if not buffer.open(QIODevice.OpenModeFlag.WriteOnly):
        raise ExportError("Could not open buffer for PNG encoding")
    try:
        ok = image.save(buffer, "PNG")
    finally:
        buffer.close()

    if not ok:
        raise ExportError("PNG encoding failed")
    return bytes(data.data())


def flatten(base: BaseLayer, annotations: Sequence[Annotation]) -> FlattenResult:
    """
    Merge the base layer and annotations into one exportable image.

    Args:
        base: The session's base layer.
        annotations: Committed annotations in list order.

    Returns:
        PNG bytes, a data URI of the same PNG, and the annotation metadata.

    Raises:
        EmptyExportError: If there are no annotations (nothing is rendered).
        ExportError: If encoding fails. The caller may retry.
    """
    if not annotations:
        raise EmptyExportError("Nothing to export: no annotations")

    image = render_flattened(base, annotations)
    png_bytes = encode_png(image)
    data_uri = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

    logger.info(
        f"Flattened {len(annotations)} annotations into "
        f"{image.width()}x{image.height()} PNG ({len(png_bytes)} bytes)"
    )
    return FlattenResult(
        png_bytes=png_bytes,
        data_uri=data_uri,
        width=image.width(),
        height=image.height(),
        annotations=[a.to_dict(i) for i, a in enumerate(annotations)],
    )
