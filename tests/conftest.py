"""
Pytest configuration and shared fixtures for FigMark tests.

Qt runs on the offscreen platform so the suite works without a display.
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication

from figmark.editor.annotations import AnnotationType
from figmark.editor.session import AnnotationStore


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """
    Provide the QApplication shared by the whole test session.

    Painting text (note badges) and creating widgets both need one.
    """
    app = QApplication.instance() or QApplication([])
    yield app


def encode_test_png(width: int, height: int, color: str = "#ffffff") -> bytes:
    """Build a solid-color PNG in memory."""
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor(color))
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data.data())


@pytest.fixture
def png_factory():
    """
    Provide a function producing solid-color PNG bytes.

    Returns:
        Callable (width, height, color="#ffffff") -> bytes
    """
    return encode_test_png


@pytest.fixture
def store():
    """Provide an empty AnnotationStore with default padding."""
    return AnnotationStore()


def draw(store, tool, start, end, color="#ef4444", line_width=4):
    """Drag out and commit one shape, returning its index."""
    store.begin_shape(tool, color, line_width, QPointF(*start))
    store.update_pending(QPointF(*end))
    return store.commit_shape(QPointF(*end))


@pytest.fixture
def draw_shape():
    """
    Provide a helper that commits a shape on a store.

    Returns:
        Callable (store, tool, start, end, color=..., line_width=...) -> index
    """
    return draw


@pytest.fixture
def rect_and_arrow(store):
    """Store holding the Rectangle (10,10)-(50,40) and Arrow (60,60)-(100,90)."""
    draw(store, AnnotationType.RECTANGLE, (10, 10), (50, 40))
    store.close_note()
    draw(store, AnnotationType.ARROW, (60, 60), (100, 90))
    store.close_note()
    return store
