"""
Annotation models for the FigMark editor.

An Annotation is one committed shape drawn over the base image. Each
annotation knows how to:
- Paint itself on a QPainter
- Report its bounding box for hit-testing
- Serialize itself for the host's legend/metadata

Annotation Types:
- RECTANGLE: Unfilled axis-aligned stroked rectangle
- ARROW: Stroked line with a filled triangular head at the end point

Annotations are values. A note edit produces a replacement via
with_text(); nothing mutates an annotation once it is committed.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any, Dict, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QFont, QPainter, QPen, QPolygonF

from figmark.editor.geometry import arrowhead_points, badge_center, normalized_rect


class AnnotationType(Enum):
    """Enum for annotation (tool) types."""
    RECTANGLE = auto()
    ARROW = auto()


# Fixed color palette offered by the toolbar (name -> hex)
PALETTE: Dict[str, str] = {
    "Red": "#ef4444",
    "Blue": "#3b82f6",
    "Green": "#22c55e",
    "Yellow": "#eab308",
    "Purple": "#a855f7",
    "Orange": "#f97316",
    "Pink": "#ec4899",
    "White": "#ffffff",
}

# Fixed stroke widths in pixels (name -> width)
LINE_WIDTHS: Dict[str, int] = {
    "Thin": 2,
    "Medium": 4,
    "Thick": 6,
}

DEFAULT_COLOR = PALETTE["Red"]
DEFAULT_LINE_WIDTH = LINE_WIDTHS["Medium"]

# Hover highlight substitution
HIGHLIGHT_COLOR = "#fbbf24"
HIGHLIGHT_EXTRA_WIDTH = 2

# Numbered note badge
BADGE_RADIUS = 11
BADGE_TEXT_COLOR = "#ffffff"


def is_palette_color(color: str) -> bool:
    """Check a color against the fixed palette (case-insensitive)."""
    return color.lower() in PALETTE.values()


def is_line_width(width: int) -> bool:
    """Check a width against the fixed stroke widths."""
    return width in LINE_WIDTHS.values()


@dataclass(frozen=True)
class Annotation:
    """
    One committed shape.

    Coordinates are in overlay pixel space (origin top-left, y-down) and
    are never rescaled after creation.
    """
    annotation_type: AnnotationType
    start: QPointF
    end: QPointF
    color: str = DEFAULT_COLOR
    line_width: int = DEFAULT_LINE_WIDTH
    text: str = ""

    def __post_init__(self) -> None:
        # Own copies so a caller mutating its QPointF can't reach into a snapshot
        object.__setattr__(self, "start", QPointF(self.start))
        object.__setattr__(self, "end", QPointF(self.end))

    @property
    def has_note(self) -> bool:
        return bool(self.text)

    @property
    def bounding_rect(self) -> QRectF:
        """The axis-aligned box between start and end."""
        return normalized_rect(self.start, self.end)

    def with_text(self, text: str) -> "Annotation":
        """Return a copy of this annotation carrying a different note."""
        return replace(self, text=text)

    def paint(
        self,
        painter: QPainter,
        color: Optional[str] = None,
        line_width: Optional[int] = None,
    ) -> None:
        """
        Paint the shape.

        Args:
            painter: The QPainter to draw with.
            color: Override stroke color (used for hover highlight).
            line_width: Override stroke width (used for hover highlight).
        """
        qcolor = QColor(color or self.color)
        pen = QPen(qcolor)
        pen.setWidthF(line_width if line_width is not None else self.line_width)
        pen.setJoinStyle(Qt.PenJoinStyle.MiterJoin)
        painter.setPen(pen)

        if self.annotation_type == AnnotationType.RECTANGLE:
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(self.bounding_rect)
        elif self.annotation_type == AnnotationType.ARROW:
            painter.drawLine(self.start, self.end)
            # Head is filled without an outline so it keeps its true size
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(qcolor)
            painter.drawPolygon(QPolygonF(arrowhead_points(self.start, self.end, self.line_width)))

    def paint_badge(self, painter: QPainter, number: int) -> None:
        """Draw the numbered note badge at the shape's top-left corner."""
        center = badge_center(self)

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(self.color))
        painter.drawEllipse(center, BADGE_RADIUS, BADGE_RADIUS)

        # White text is unreadable on the white swatch
        text_color = "#111111" if self.color.lower() == PALETTE["White"] else BADGE_TEXT_COLOR
        painter.setPen(QColor(text_color))
        font = QFont()
        font.setPixelSize(int(BADGE_RADIUS * 1.2))
        font.setBold(True)
        painter.setFont(font)

        rect = QRectF(
            center.x() - BADGE_RADIUS,
            center.y() - BADGE_RADIUS,
            BADGE_RADIUS * 2,
            BADGE_RADIUS * 2,
        )
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, str(number))

    def to_dict(self, index: Optional[int] = None) -> Dict[str, Any]:
        """
        Serialize for the host's legend/metadata.

        Args:
            index: Zero-based list position; emitted as the 1-based badge number.
        """
        data: Dict[str, Any] = {
            "tool": self.annotation_type.name.lower(),
            "start": {"x": self.start.x(), "y": self.start.y()},
            "end": {"x": self.end.x(), "y": self.end.y()},
            "color": self.color,
            "line_width": self.line_width,
            "text": self.text,
        }
        if index is not None:
            data["number"] = index + 1
        return data


@dataclass(frozen=True)
class PendingShape:
    """An in-progress shape while a pointer drag is active."""
    annotation_type: AnnotationType
    color: str
    line_width: int
    start: QPointF
    current: QPointF

    def moved_to(self, point: QPointF) -> "PendingShape":
        return replace(self, current=QPointF(point))

    def to_annotation(self, end: Optional[QPointF] = None) -> Annotation:
        """Finalize into an Annotation ending at end (or the current point)."""
        return Annotation(
            annotation_type=self.annotation_type,
            start=self.start,
            end=end if end is not None else self.current,
            color=self.color,
            line_width=self.line_width,
        )
