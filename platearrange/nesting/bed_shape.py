"""Bed shape classification.

The bed outline is classified as an axis-aligned box, a circle or an
irregular polygon. The result selects the arrangement variant.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from shapely.geometry import Polygon

from platearrange.nesting.geometry import SCALED_EPSILON, Box, Circle, Point2D, distance


class BedShapeType(str, Enum):
    """Kinds of bed outline."""
    BOX = "box"
    CIRCLE = "circle"
    IRREGULAR = "irregular"
    WHO_KNOWS = "who_knows"  # Classify from the outline


@dataclass(frozen=True)
class BedShapeHint:
    """Bed shape tag with the payload matching the tag."""
    type: BedShapeType = BedShapeType.WHO_KNOWS
    box: Optional[Box] = None
    circle: Optional[Circle] = None
    polygon: Optional[Tuple[Point2D, ...]] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = {"type": self.type.value}
        if self.box is not None:
            data["box"] = list(self.box.to_tuple())
        if self.circle is not None:
            data["circle"] = {"center": list(self.circle.center), "radius": self.circle.radius}
        if self.polygon is not None:
            data["polygon"] = [list(p) for p in self.polygon]
        return data


def polygon_area(points: Sequence[Point2D]) -> float:
    """Absolute area of a closed or open outline."""
    pts = list(points)
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    if len(pts) < 3:
        return 0.0
    return Polygon(pts).area


def _fit_circle(points: Sequence[Point2D], bb: Box) -> Circle:
    """Circle around the bounding box center if all vertices agree on a radius."""
    center = bb.center
    dists = [distance(center, p) for p in points]
    avg_dist = sum(dists) / len(dists)

    for d in dists:
        if abs(d - avg_dist) > 10 * SCALED_EPSILON:
            return Circle()

    return Circle(center, avg_dist)


def classify_bed_shape(outline: Sequence[Point2D]) -> BedShapeHint:
    """Classify a bed outline given in scaled coordinates.

    The last point may repeat the first one.
    """
    points = [(float(p[0]), float(p[1])) for p in outline]
    if not points:
        return BedShapeHint(BedShapeType.IRREGULAR, polygon=())

    bb = Box.from_points(points)
    bb_area = bb.area
    poly_area = polygon_area(points)

    if bb_area > 0 and (1.0 - poly_area / bb_area) < 1e-3:
        return BedShapeHint(BedShapeType.BOX, box=bb)

    circle = _fit_circle(points, bb)
    if circle:
        return BedShapeHint(BedShapeType.CIRCLE, circle=circle)

    return BedShapeHint(BedShapeType.IRREGULAR, polygon=tuple(points))


def rectangle_outline(width: float, depth: float, origin: Point2D = (0.0, 0.0)) -> Tuple[Point2D, ...]:
    """Outline of a rectangular bed."""
    x, y = origin
    return ((x, y), (x + width, y), (x + width, y + depth), (x, y + depth))


def circle_outline(radius: float, center: Point2D = (0.0, 0.0), segments: int = 64) -> Tuple[Point2D, ...]:
    """Outline of a round bed as a regular polygon."""
    cx, cy = center
    return tuple(
        (cx + radius * math.cos(2 * math.pi * k / segments),
         cy + radius * math.sin(2 * math.pi * k / segments))
        for k in range(segments)
    )
