"""
Geometry helpers and hit-testing for FigMark annotations.

Everything here is pure: functions take Qt value types (QPointF, QRectF)
and return new values without touching any widget or painter state.
"""

import math
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF

if TYPE_CHECKING:
    from figmark.editor.annotations import Annotation


# Tolerance around a shape's bounding box for hover/click detection
HIT_PADDING = 10

# Arrowhead edges sit at +/-30 degrees from the shaft
ARROWHEAD_ANGLE = math.pi / 6
ARROWHEAD_BASE_LENGTH = 15


def normalized_rect(start: QPointF, end: QPointF) -> QRectF:
    """Return the axis-aligned box spanning two points, in any drag direction."""
    left = min(start.x(), end.x())
    top = min(start.y(), end.y())
    right = max(start.x(), end.x())
    bottom = max(start.y(), end.y())
    return QRectF(left, top, right - left, bottom - top)


def padded_rect(start: QPointF, end: QPointF, padding: float = HIT_PADDING) -> QRectF:
    """Bounding box between two points, grown by padding on every side."""
    rect = normalized_rect(start, end)
    return rect.adjusted(-padding, -padding, padding, padding)


def rect_contains(rect: QRectF, point: QPointF) -> bool:
    """
    Inclusive containment test.

    QRectF.contains() treats degenerate (zero-width or zero-height) rects
    as empty, which would make a perfectly horizontal arrow unpickable.
    """
    return (
        rect.left() <= point.x() <= rect.right()
        and rect.top() <= point.y() <= rect.bottom()
    )


def hit_test(
    point: QPointF,
    annotation: "Annotation",
    padding: float = HIT_PADDING
) -> bool:
    """
    Test whether a point falls inside an annotation's padded bounding box.

    The test is the same for every tool and ignores line width.

    Args:
        point: The pointer position in overlay pixel space.
        annotation: The annotation to test against.
        padding: Tolerance in pixels around the bounding box.

    Returns:
        True if the point is within the padded box.
    """
    return rect_contains(padded_rect(annotation.start, annotation.end, padding), point)


def find_annotation_at(
    point: QPointF,
    annotations: Sequence["Annotation"],
    padding: float = HIT_PADDING,
    topmost_first: bool = False,
) -> Optional[int]:
    """
    Find the index of the annotation under a point.

    Args:
        point: The pointer position in overlay pixel space.
        annotations: Committed annotations in list (z) order.
        padding: Tolerance in pixels around each bounding box.
        topmost_first: Scan from the last-drawn annotation downwards
            instead of from index 0.

    Returns:
        The index of the first matching annotation, or None.
    """
    indices = range(len(annotations))
    if topmost_first:
        indices = reversed(indices)

    for index in indices:
        if hit_test(point, annotations[index], padding):
            return index
    return None


def fit_dimensions(
    image_width: int,
    image_height: int,
    max_width: float,
    max_height: float,
) -> Tuple[int, int]:
    """
    Fit an image inside a bounding box while preserving aspect ratio.

    The image is never enlarged beyond its original size.

    Returns:
        (width, height) in whole pixels.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size: {image_width}x{image_height}")

    scale = min(max_width / image_width, max_height / image_height, 1.0)
    width = max(1, math.floor(image_width * scale))
    height = max(1, math.floor(image_height * scale))
    return width, height


def arrowhead_length(line_width: float) -> float:
    """Head length grows modestly with line width."""
    return ARROWHEAD_BASE_LENGTH + line_width * 2


def arrowhead_points(start: QPointF, end: QPointF, line_width: float) -> List[QPointF]:
    """
    Compute the triangular arrowhead for an arrow from start to end.

    Returns:
        [tip, left, right] where tip is the end point.
    """
    angle = math.atan2(end.y() - start.y(), end.x() - start.x())
    length = arrowhead_length(line_width)

    left = QPointF(
        end.x() - length * math.cos(angle - ARROWHEAD_ANGLE),
        end.y() - length * math.sin(angle - ARROWHEAD_ANGLE),
    )
    right = QPointF(
        end.x() - length * math.cos(angle + ARROWHEAD_ANGLE),
        end.y() - length * math.sin(angle + ARROWHEAD_ANGLE),
    )
    return [QPointF(end), left, right]


def badge_center(annotation: "Annotation") -> QPointF:
    """Badges are anchored on the top-left corner of the shape's box."""
    return normalized_rect(annotation.start, annotation.end).topLeft()


def distance(a: QPointF, b: QPointF) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b.x() - a.x(), b.y() - a.y())
