"""Tests for bed shape classification."""

import pytest

from platearrange.nesting.bed_shape import (
    BedShapeHint,
    BedShapeType,
    circle_outline,
    classify_bed_shape,
    polygon_area,
    rectangle_outline,
)
from platearrange.nesting.geometry import SCALED_EPSILON, Box, scale_


def scaled(points):
    return [(scale_(x), scale_(y)) for x, y in points]


class TestOutlines:
    """Tests for outline helpers."""

    def test_rectangle_outline(self):
        """Test rectangular outline."""
        outline = rectangle_outline(250, 210, origin=(10, 5))

        assert outline == ((10, 5), (260, 5), (260, 215), (10, 215))

    def test_circle_outline(self):
        """All vertices sit on the circle."""
        outline = circle_outline(50, center=(100, 100), segments=16)

        assert len(outline) == 16
        for x, y in outline:
            assert ((x - 100) ** 2 + (y - 100) ** 2) ** 0.5 == pytest.approx(50)

    def test_polygon_area(self):
        """Test the area in either orientation."""
        square = [(0, 0), (10, 0), (10, 10), (0, 10)]

        assert polygon_area(square) == 100
        assert polygon_area(list(reversed(square))) == 100
        assert polygon_area([(0, 0), (1, 1)]) == 0

    def test_polygon_area_closed_outline(self):
        """A repeated closing point does not change the area."""
        assert polygon_area([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]) == 100
        assert polygon_area([(0, 0), (4, 0), (0, 3)]) == 6
        assert polygon_area([(0, 0), (4, 0), (0, 0)]) == 0


class TestClassifyBedShape:
    """Tests for classify_bed_shape."""

    def test_square_is_box(self):
        """Test a square bed."""
        hint = classify_bed_shape(scaled(rectangle_outline(200, 200)))

        assert hint.type == BedShapeType.BOX
        assert hint.box == Box(0, 0, scale_(200), scale_(200))

    def test_closed_square_is_box(self):
        """A repeated closing point is accepted."""
        outline = scaled(rectangle_outline(250, 210))
        outline.append(outline[0])

        hint = classify_bed_shape(outline)

        assert hint.type == BedShapeType.BOX
        assert hint.box.width == scale_(250)

    def test_regular_polygon_is_circle(self):
        """Test a 32-gon bed."""
        outline = scaled(circle_outline(100, center=(100, 100), segments=32))

        hint = classify_bed_shape(outline)

        assert hint.type == BedShapeType.CIRCLE
        assert hint.circle.center[0] == pytest.approx(scale_(100), abs=SCALED_EPSILON)
        assert hint.circle.center[1] == pytest.approx(scale_(100), abs=SCALED_EPSILON)
        assert hint.circle.radius == pytest.approx(scale_(100), abs=10 * SCALED_EPSILON)

    def test_l_shape_is_irregular(self):
        """Test an L-shaped bed."""
        outline = scaled([(0, 0), (200, 0), (200, 100), (100, 100), (100, 200), (0, 200)])

        hint = classify_bed_shape(outline)

        assert hint.type == BedShapeType.IRREGULAR
        assert len(hint.polygon) == 6
        assert hint.box is None
        assert hint.circle is None

    def test_ellipse_is_irregular(self):
        """Vertices at different distances from the center are no circle."""
        outline = [(x, y / 2) for x, y in circle_outline(100, segments=32)]

        hint = classify_bed_shape(scaled(outline))

        assert hint.type == BedShapeType.IRREGULAR

    def test_empty_outline(self):
        """Test an empty outline."""
        hint = classify_bed_shape([])

        assert hint.type == BedShapeType.IRREGULAR
        assert hint.polygon == ()

    def test_degenerate_outline(self):
        """Collinear points have no area and are irregular."""
        hint = classify_bed_shape(scaled([(0, 0), (10, 0), (20, 0)]))

        assert hint.type == BedShapeType.IRREGULAR


class TestBedShapeHint:
    """Tests for BedShapeHint."""

    def test_default(self):
        """The default hint asks for classification."""
        assert BedShapeHint().type == BedShapeType.WHO_KNOWS

    def test_to_dict(self):
        """Test hint serialization."""
        d = BedShapeHint(BedShapeType.BOX, box=Box(0, 0, 10, 10)).to_dict()

        assert d["type"] == "box"
        assert d["box"] == [0, 0, 10, 10]
        assert "circle" not in d
