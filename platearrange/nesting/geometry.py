"""2D geometry primitives for the arrangement engine.

Coordinates handed to the placer live in a fixed-point space: one unit is
``SCALING_FACTOR`` millimetres. Polygon algebra is delegated to shapely.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from shapely.affinity import rotate as _srotate, translate as _stranslate
from shapely.geometry import MultiPoint, Point, Polygon, box as _sbox
from shapely.geometry.base import BaseGeometry

# One scaled unit is a nanometre
SCALING_FACTOR = 1e-6
EPSILON = 1e-4

Point2D = Tuple[float, float]


def scale_(value: float) -> int:
    """Convert millimetres to scaled integer units."""
    return int(round(value / SCALING_FACTOR))


def unscale(value: float) -> float:
    """Convert scaled units to millimetres."""
    return value * SCALING_FACTOR


SCALED_EPSILON = scale_(EPSILON)


def distance(p: Point2D, q: Point2D) -> float:
    """Euclidean distance of two points."""
    return math.hypot(q[0] - p[0], q[1] - p[1])


@dataclass(frozen=True)
class Box:
    """Axis-aligned bounding box."""
    minx: float
    miny: float
    maxx: float
    maxy: float

    @property
    def width(self) -> float:
        return self.maxx - self.minx

    @property
    def height(self) -> float:
        return self.maxy - self.miny

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point2D:
        return ((self.minx + self.maxx) / 2.0, (self.miny + self.maxy) / 2.0)

    @property
    def min_corner(self) -> Point2D:
        return (self.minx, self.miny)

    @property
    def max_corner(self) -> Point2D:
        return (self.maxx, self.maxy)

    def merge(self, other: "Box") -> "Box":
        """Smallest box containing both boxes."""
        return Box(
            min(self.minx, other.minx),
            min(self.miny, other.miny),
            max(self.maxx, other.maxx),
            max(self.maxy, other.maxy),
        )

    def contains(self, other: "Box") -> bool:
        return (self.minx <= other.minx and self.miny <= other.miny and
                self.maxx >= other.maxx and self.maxy >= other.maxy)

    def intersects(self, other: "Box") -> bool:
        return (self.minx <= other.maxx and other.minx <= self.maxx and
                self.miny <= other.maxy and other.miny <= self.maxy)

    def translated(self, dx: float, dy: float) -> "Box":
        return Box(self.minx + dx, self.miny + dy, self.maxx + dx, self.maxy + dy)

    def to_polygon(self) -> Polygon:
        return _sbox(self.minx, self.miny, self.maxx, self.maxy)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.minx, self.miny, self.maxx, self.maxy)

    @classmethod
    def from_bounds(cls, bounds: Sequence[float]) -> "Box":
        """Create from a shapely ``(minx, miny, maxx, maxy)`` tuple."""
        return cls(*(float(b) for b in bounds))

    @classmethod
    def from_points(cls, points: Iterable[Point2D]) -> "Box":
        pts = list(points)
        if not pts:
            return cls(0.0, 0.0, 0.0, 0.0)
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return cls(min(xs), min(ys), max(xs), max(ys))


@dataclass(frozen=True)
class Circle:
    """Circle given by center and radius. A zero radius means "no circle"."""
    center: Point2D = (0.0, 0.0)
    radius: float = 0.0

    def __bool__(self) -> bool:
        return self.radius > 0

    @property
    def area(self) -> float:
        return math.pi * self.radius * self.radius

    @property
    def bounding_box(self) -> Box:
        cx, cy = self.center
        r = self.radius
        return Box(cx - r, cy - r, cx + r, cy + r)

    def to_polygon(self, quad_segs: int = 32) -> Polygon:
        """Polygonal approximation inscribed in the circle."""
        return Point(self.center).buffer(self.radius, quad_segs=quad_segs)


def bounding_box(shapes: Iterable[BaseGeometry]) -> Optional[Box]:
    """Bounding box of a collection of shapes, None when empty."""
    result = None
    for shape in shapes:
        bb = Box.from_bounds(shape.bounds)
        result = bb if result is None else result.merge(bb)
    return result


def convex_hull(shapes: Iterable[BaseGeometry]) -> Polygon:
    """Convex hull of a collection of polygons."""
    coords: List[Point2D] = []
    for shape in shapes:
        coords.extend(shape.exterior.coords)
    return MultiPoint(coords).convex_hull


def circumference(polygon: BaseGeometry) -> float:
    """Length of the outer boundary of a polygon."""
    if polygon.is_empty:
        return 0.0
    if polygon.geom_type == "Polygon":
        return polygon.exterior.length
    return polygon.length


def vertices(polygon: Polygon) -> List[Point2D]:
    """Distinct vertices of a polygon's exterior (no closing point)."""
    return list(polygon.exterior.coords)[:-1]


class Item:
    """A convex footprint with a mutable pose.

    The shape never changes; translation (scaled integer units), rotation
    (radians, around the local origin) and inflation (half the clearance,
    applied as a mitred offset) make up the pose. Derived geometry is cached
    until the pose changes.
    """

    def __init__(
        self,
        shape: Polygon,
        translation: Tuple[int, int] = (0, 0),
        rotation: float = 0.0,
        inflation: int = 0,
    ):
        self._shape = shape
        self._translation = (int(translation[0]), int(translation[1]))
        self._rotation = float(rotation)
        self._inflation = int(inflation)
        self._cache: Optional[Polygon] = None

    @property
    def shape(self) -> Polygon:
        """Raw shape in local coordinates."""
        return self._shape

    @property
    def translation(self) -> Tuple[int, int]:
        return self._translation

    @translation.setter
    def translation(self, value: Tuple[float, float]) -> None:
        self._translation = (int(round(value[0])), int(round(value[1])))
        self._cache = None

    @property
    def rotation(self) -> float:
        return self._rotation

    @rotation.setter
    def rotation(self, value: float) -> None:
        self._rotation = float(value)
        self._cache = None

    @property
    def inflation(self) -> int:
        return self._inflation

    @inflation.setter
    def inflation(self, value: int) -> None:
        self._inflation = int(value)
        self._cache = None

    def translate(self, dx: float, dy: float) -> None:
        tx, ty = self._translation
        self.translation = (tx + dx, ty + dy)

    @property
    def transformed_shape(self) -> Polygon:
        shape = self._cache
        if shape is None:
            shape = self._shape
            if self._rotation:
                shape = _srotate(shape, self._rotation, origin=(0, 0), use_radians=True)
            if self._inflation > 0:
                shape = shape.buffer(self._inflation, join_style="mitre")
            tx, ty = self._translation
            if tx or ty:
                shape = _stranslate(shape, tx, ty)
            self._cache = shape
        return shape

    @property
    def area(self) -> float:
        return self.transformed_shape.area

    @property
    def bounding_box(self) -> Box:
        return Box.from_bounds(self.transformed_shape.bounds)

    @property
    def vertex_count(self) -> int:
        """Number of contour points, closing point included."""
        return len(self._shape.exterior.coords)

    def copy(self) -> "Item":
        return Item(self._shape, self._translation, self._rotation, self._inflation)

    def __repr__(self) -> str:
        return (f"Item(vertices={self.vertex_count}, translation={self._translation}, "
                f"rotation={self._rotation:.4f})")
