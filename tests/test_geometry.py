"""
Unit tests for the geometry module.

Tests bounding boxes, padded hit-testing, image fitting and arrowheads.
"""

import math

import pytest
from PySide6.QtCore import QPointF, QRectF

from figmark.editor.annotations import Annotation, AnnotationType
from figmark.editor.geometry import (
    HIT_PADDING,
    arrowhead_length,
    arrowhead_points,
    badge_center,
    distance,
    find_annotation_at,
    fit_dimensions,
    hit_test,
    normalized_rect,
    padded_rect,
    rect_contains,
)


def make_rect(x1, y1, x2, y2):
    return Annotation(AnnotationType.RECTANGLE, QPointF(x1, y1), QPointF(x2, y2))


def make_arrow(x1, y1, x2, y2):
    return Annotation(AnnotationType.ARROW, QPointF(x1, y1), QPointF(x2, y2))


class TestBoundingBoxes:
    """Tests for normalized_rect and padded_rect."""

    def test_normalized_rect_any_drag_direction(self):
        """Should produce the same box whichever corner the drag started from."""
        forward = normalized_rect(QPointF(10, 10), QPointF(50, 40))
        backward = normalized_rect(QPointF(50, 40), QPointF(10, 10))
        diagonal = normalized_rect(QPointF(50, 10), QPointF(10, 40))

        assert forward == QRectF(10, 10, 40, 30)
        assert backward == forward
        assert diagonal == forward

    def test_padded_rect_grows_every_side(self):
        """Should extend the box by the padding on all four sides."""
        rect = padded_rect(QPointF(10, 10), QPointF(50, 40), 5)

        assert rect.left() == 5
        assert rect.top() == 5
        assert rect.right() == 55
        assert rect.bottom() == 45

    def test_rect_contains_is_inclusive(self):
        """Should count points on the edge as inside."""
        rect = QRectF(0, 0, 10, 10)

        assert rect_contains(rect, QPointF(10, 10))
        assert rect_contains(rect, QPointF(0, 5))
        assert not rect_contains(rect, QPointF(10.5, 5))

    def test_rect_contains_degenerate_rect(self):
        """Should still contain points on a zero-height box."""
        rect = normalized_rect(QPointF(0, 20), QPointF(100, 20))

        assert rect_contains(rect, QPointF(50, 20))


class TestHitTest:
    """Tests for hit_test and find_annotation_at."""

    def test_point_inside_box_always_hits(self):
        """Should hit for a point strictly inside, regardless of padding."""
        rect = make_rect(10, 10, 50, 40)

        assert hit_test(QPointF(30, 25), rect, 0)
        assert hit_test(QPointF(30, 25), rect, HIT_PADDING)

    def test_point_within_padding_hits(self):
        """Should hit 3px outside the right edge with 10px padding."""
        rect = make_rect(10, 10, 50, 40)

        assert find_annotation_at(QPointF(53, 25), [rect], 10) == 0

    def test_point_beyond_padding_misses(self):
        """Should report no hit past the padding margin."""
        rect = make_rect(10, 10, 50, 40)

        assert find_annotation_at(QPointF(61, 25), [rect], 10) is None
        assert not hit_test(QPointF(61, 25), rect, 10)

    def test_arrow_uses_its_bounding_box(self):
        """Should test arrows against the box spanning start and end."""
        arrow = make_arrow(60, 60, 100, 90)

        assert hit_test(QPointF(95, 62), arrow, 0)
        assert not hit_test(QPointF(40, 40), arrow, 10)

    def test_horizontal_arrow_is_pickable(self):
        """Should hit a perfectly horizontal arrow near its shaft."""
        arrow = make_arrow(0, 50, 100, 50)

        assert hit_test(QPointF(50, 55), arrow, 10)

    def test_empty_list_has_no_hit(self):
        """Should return None when there are no annotations."""
        assert find_annotation_at(QPointF(0, 0), []) is None

    def test_overlap_returns_first_in_list_order(self):
        """Should favor the oldest annotation by default."""
        annotations = [make_rect(0, 0, 100, 100), make_rect(20, 20, 60, 60)]

        assert find_annotation_at(QPointF(40, 40), annotations) == 0

    def test_overlap_topmost_first(self):
        """Should favor the last-drawn annotation when scanning topmost-first."""
        annotations = [make_rect(0, 0, 100, 100), make_rect(20, 20, 60, 60)]

        assert find_annotation_at(QPointF(40, 40), annotations, topmost_first=True) == 1

    def test_non_overlapping_ignores_order(self):
        """Should find the only matching annotation in either scan order."""
        annotations = [make_rect(0, 0, 10, 10), make_rect(200, 200, 220, 220)]

        assert find_annotation_at(QPointF(210, 210), annotations) == 1
        assert find_annotation_at(QPointF(210, 210), annotations, topmost_first=True) == 1


class TestFitDimensions:
    """Tests for fit_dimensions."""

    def test_small_image_is_not_enlarged(self):
        """Should keep the original size when it already fits."""
        assert fit_dimensions(200, 100, 1000, 1000) == (200, 100)

    def test_wide_image_limited_by_width(self):
        """Should scale to the width bound and preserve aspect ratio."""
        assert fit_dimensions(2000, 1000, 1000, 1000) == (1000, 500)

    def test_tall_image_limited_by_height(self):
        """Should scale to the height bound and preserve aspect ratio."""
        assert fit_dimensions(1000, 2000, 1000, 500) == (250, 500)

    def test_rounds_down_to_whole_pixels(self):
        """Should floor fractional sizes."""
        assert fit_dimensions(1000, 333, 500, 500) == (500, 166)

    def test_never_returns_zero(self):
        """Should keep at least one pixel on each axis."""
        width, height = fit_dimensions(10000, 1, 100, 100)

        assert width == 100
        assert height == 1

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
    def test_rejects_empty_images(self, width, height):
        """Should raise ValueError for non-positive sizes."""
        with pytest.raises(ValueError):
            fit_dimensions(width, height, 100, 100)


class TestArrowhead:
    """Tests for arrowhead geometry."""

    def test_length_grows_with_line_width(self):
        """Should add twice the line width to the base length."""
        assert arrowhead_length(2) == 19
        assert arrowhead_length(6) == 27

    def test_tip_is_end_point(self):
        """Should place the tip exactly on the arrow's end point."""
        tip, left, right = arrowhead_points(QPointF(0, 0), QPointF(100, 0), 4)

        assert tip == QPointF(100, 0)

    def test_edges_symmetric_about_shaft(self):
        """Should mirror the two base corners across a horizontal shaft."""
        _, left, right = arrowhead_points(QPointF(0, 0), QPointF(100, 0), 4)
        length = arrowhead_length(4)

        assert left.x() == pytest.approx(100 - length * math.cos(math.pi / 6))
        assert right.x() == pytest.approx(left.x())
        assert left.y() == pytest.approx(-right.y())
        assert distance(QPointF(100, 0), left) == pytest.approx(length)


class TestBadgeAndDistance:
    """Tests for badge_center and distance."""

    def test_badge_anchored_top_left(self):
        """Should anchor on the top-left of the box, whatever the drag direction."""
        arrow = make_arrow(100, 90, 60, 60)

        assert badge_center(arrow) == QPointF(60, 60)

    def test_distance(self):
        """Should compute euclidean distance."""
        assert distance(QPointF(0, 0), QPointF(3, 4)) == 5
