"""Tests for geometry primitives."""

import math

import pytest
from shapely.geometry import Polygon, box

from platearrange.nesting.geometry import (
    SCALED_EPSILON,
    SCALING_FACTOR,
    Box,
    Circle,
    Item,
    bounding_box,
    circumference,
    convex_hull,
    scale_,
    unscale,
    vertices,
)


class TestScaling:
    """Tests for the fixed-point conversion."""

    def test_scale_millimetre(self):
        """One millimetre is a million units."""
        assert scale_(1.0) == 1_000_000
        assert isinstance(scale_(1.0), int)

    def test_scale_rounds(self):
        """Test rounding to the nearest unit."""
        assert scale_(0.0000004) == 0
        assert scale_(0.0000006) == 1

    def test_unscale(self):
        """Test conversion back to millimetres."""
        assert unscale(2_500_000) == pytest.approx(2.5)

    def test_constants(self):
        """Test scaling constants."""
        assert SCALING_FACTOR == 1e-6
        assert SCALED_EPSILON == 100


class TestBox:
    """Tests for Box."""

    def test_dimensions(self):
        """Test width, height, area and center."""
        b = Box(0, 0, 20, 10)

        assert b.width == 20
        assert b.height == 10
        assert b.area == 200
        assert b.center == (10, 5)
        assert b.min_corner == (0, 0)
        assert b.max_corner == (20, 10)

    def test_merge(self):
        """Test merging two boxes."""
        merged = Box(0, 0, 10, 10).merge(Box(5, -5, 20, 8))

        assert merged == Box(0, -5, 20, 10)

    def test_contains(self):
        """Test box containment."""
        outer = Box(0, 0, 100, 100)

        assert outer.contains(Box(10, 10, 20, 20))
        assert outer.contains(outer)
        assert not outer.contains(Box(90, 90, 110, 100))

    def test_intersects_touching(self):
        """Touching boxes intersect."""
        assert Box(0, 0, 10, 10).intersects(Box(10, 0, 20, 10))
        assert not Box(0, 0, 10, 10).intersects(Box(11, 0, 20, 10))

    def test_translated(self):
        """Test translating a box."""
        assert Box(0, 0, 1, 1).translated(5, -2) == Box(5, -2, 6, -1)

    def test_from_points(self):
        """Test building a box from points."""
        b = Box.from_points([(3, 4), (-1, 7), (2, -2)])

        assert b == Box(-1, -2, 3, 7)

    def test_from_points_empty(self):
        """Test box of no points."""
        assert Box.from_points([]).area == 0

    def test_to_polygon(self):
        """Test conversion to a shapely polygon."""
        poly = Box(0, 0, 4, 2).to_polygon()

        assert poly.area == 8
        assert poly.bounds == (0, 0, 4, 2)


class TestCircle:
    """Tests for Circle."""

    def test_no_circle_is_falsy(self):
        """A zero radius means no circle."""
        assert not Circle()
        assert Circle((0, 0), 5)

    def test_area(self):
        """Test circle area."""
        assert Circle((0, 0), 2).area == pytest.approx(4 * math.pi)

    def test_bounding_box(self):
        """Test circle bounding box."""
        assert Circle((10, 20), 5).bounding_box == Box(5, 15, 15, 25)

    def test_to_polygon_inscribed(self):
        """The polygon approximation stays inside the circle."""
        poly = Circle((0, 0), 100).to_polygon()

        assert poly.area < Circle((0, 0), 100).area
        assert poly.area == pytest.approx(Circle((0, 0), 100).area, rel=1e-3)


class TestHelpers:
    """Tests for collection helpers."""

    def test_bounding_box_empty(self):
        """No shapes have no bounding box."""
        assert bounding_box([]) is None

    def test_bounding_box(self):
        """Test bounding box over shapes."""
        bb = bounding_box([box(0, 0, 1, 1), box(5, 5, 6, 7)])

        assert bb == Box(0, 0, 6, 7)

    def test_convex_hull(self):
        """Test hull of two separate squares."""
        hull = convex_hull([box(0, 0, 1, 1), box(3, 0, 4, 1)])

        assert hull.area == pytest.approx(4)

    def test_circumference(self):
        """Test polygon circumference."""
        assert circumference(box(0, 0, 10, 10)) == pytest.approx(40)
        assert circumference(Polygon()) == 0.0

    def test_vertices_without_closing_point(self):
        """Test distinct vertices."""
        assert len(vertices(box(0, 0, 1, 1))) == 4


class TestItem:
    """Tests for Item."""

    @pytest.fixture
    def square(self):
        """Square item of side 10 at the origin."""
        return Item(box(0, 0, 10, 10))

    def test_defaults(self, square):
        """Test default pose."""
        assert square.translation == (0, 0)
        assert square.rotation == 0.0
        assert square.inflation == 0
        assert square.area == pytest.approx(100)

    def test_vertex_count_includes_closing_point(self, square):
        """A square has five contour points."""
        assert square.vertex_count == 5

    def test_translation_rounds_to_int(self, square):
        """Translations are integer units."""
        square.translation = (1.4, 2.6)

        assert square.translation == (1, 3)

    def test_translate(self, square):
        """Test relative translation."""
        square.translation = (5, 5)
        square.translate(10, -5)

        assert square.translation == (15, 0)
        assert square.bounding_box == Box(15, 0, 25, 10)

    def test_rotation(self):
        """Rotation turns the shape around its local origin."""
        item = Item(box(0, 0, 2, 1))
        item.rotation = math.pi / 2

        bb = item.bounding_box
        assert bb.minx == pytest.approx(-1)
        assert bb.maxx == pytest.approx(0, abs=1e-9)
        assert bb.miny == pytest.approx(0, abs=1e-9)
        assert bb.maxy == pytest.approx(2)

    def test_inflation_is_mitred(self, square):
        """Inflating a square keeps it square."""
        square.inflation = 1

        assert square.bounding_box.to_tuple() == pytest.approx((-1, -1, 11, 11))
        assert square.area == pytest.approx(144)

    def test_cache_invalidated(self, square):
        """Changing the pose updates derived geometry."""
        before = square.bounding_box
        square.translation = (100, 0)

        assert square.bounding_box != before
        assert square.bounding_box.minx == 100

    def test_copy_is_independent(self, square):
        """Test copying an item."""
        square.translation = (3, 4)
        copy = square.copy()
        copy.translation = (50, 50)

        assert square.translation == (3, 4)
        assert copy.shape is square.shape
