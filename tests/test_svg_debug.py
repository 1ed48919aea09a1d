"""Tests for SVG snapshots."""

import xml.etree.ElementTree as ET

from shapely.geometry import Polygon, box

from platearrange.nesting.geometry import Box, Circle, scale_
from platearrange.nesting.svg_debug import SVG_NS, SvgSnapshotWriter


def polygons(path):
    root = ET.parse(path).getroot()
    return root.findall(f"{{{SVG_NS}}}polygon")


class TestSvgSnapshotWriter:
    """Tests for SvgSnapshotWriter."""

    def test_write_with_box_bed(self, tmp_path):
        """Shapes and the bed outline are drawn."""
        writer = SvgSnapshotWriter(tmp_path)
        shapes = [box(0, 0, scale_(10), scale_(10)), box(scale_(20), 0, scale_(30), scale_(10))]

        path = writer.write(shapes, Box(0, 0, scale_(100), scale_(100)))

        assert path.exists()
        assert path.name == "arrange_0000.svg"
        assert len(polygons(path)) == 3

    def test_counter(self, tmp_path):
        """Every snapshot gets the next number."""
        writer = SvgSnapshotWriter(tmp_path, prefix="step")

        writer.write([])
        writer.write([])

        assert writer.counter == 2
        assert [p.name for p in writer.written] == ["step_0000.svg", "step_0001.svg"]

    def test_writers_count_separately(self, tmp_path):
        """Two writers do not share a counter."""
        a = SvgSnapshotWriter(tmp_path / "a")
        b = SvgSnapshotWriter(tmp_path / "b")

        a.write([])
        a.write([])
        path = b.write([])

        assert path.name == "arrange_0000.svg"

    def test_circle_and_polygon_beds(self, tmp_path):
        """Round and irregular beds are drawn as polygons."""
        writer = SvgSnapshotWriter(tmp_path)

        round_bed = writer.write([], Circle((0, 0), scale_(50)))
        l_bed = writer.write([], Polygon([(0, 0), (10, 0), (10, 5), (5, 5), (5, 10), (0, 10)]))

        assert len(polygons(round_bed)) == 1
        assert len(polygons(l_bed)) == 1

    def test_millimetres_with_flipped_y(self, tmp_path):
        """Coordinates are written in millimetres, Y pointing up."""
        writer = SvgSnapshotWriter(tmp_path)

        path = writer.write([box(0, 0, scale_(10), scale_(20))])

        points = polygons(path)[0].get("points")
        assert "10.000,-20.000" in points
