"""No-fit polygon placer for convex items.

Items are placed one by one. For the next item, the no-fit polygon (NFP)
with every shape on the bed is the Minkowski sum of that shape and the
mirrored item; the item's reference point must stay out of the NFP
interiors. The inner-fit region (IFR) is where the reference point keeps
the item inside the bed. Candidate positions are taken along the NFP and
IFR boundaries, every valid candidate is scored by the configured object
function and the lowest score wins.

Several beds ("bins") are filled with first-fit selection: every item tries
the open bins in order and opens a new one when it fits none of them.
"""

import math
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Callable, List, Optional, Sequence, Tuple, Union

from shapely import prepare
from shapely.affinity import translate as _stranslate
from shapely.geometry import LineString, MultiPoint, Point, Polygon, box as _sbox
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from platearrange.nesting.geometry import Box, Circle, Item, Point2D, bounding_box, vertices
from platearrange.utils import get_logger

logger = get_logger("nesting.placer")

# A bin is a box, a circle, an arbitrary polygon or nothing (unbounded)
Bin = Union[Box, Circle, Polygon, None]

# (input item index, placed item)
PlacementGroup = List[Tuple[int, Item]]

ObjectFunction = Callable[[Item], float]
BeforePacking = Callable[[List[Polygon], List[Item], List[Item]], None]

# Slack for containment checks, in scaled units
CONTAINMENT_TOLERANCE = 10

# Candidates scored between two stop condition polls
CANDIDATE_BATCH = 64


class Alignment(str, Enum):
    """Where the finished pile goes on the bed."""
    CENTER = "center"
    DONT_ALIGN = "dont_align"


@dataclass
class PlacementConfig:
    """Configuration of the placer."""
    alignment: Alignment = Alignment.CENTER
    starting_point: Alignment = Alignment.CENTER
    rotations: List[float] = field(default_factory=lambda: [0.0])  # Radians, relative to the item
    accuracy: float = 0.65  # 0..1, scales candidate sampling
    parallel: bool = True
    object_function: Optional[ObjectFunction] = None
    before_packing: Optional[BeforePacking] = None

    @property
    def edge_samples(self) -> int:
        """Candidate points taken inside every boundary edge."""
        return max(1, int(round(self.accuracy * 10)))


def nfp(fixed: Polygon, moving: Polygon) -> Polygon:
    """No-fit polygon of a convex ``moving`` shape around a convex ``fixed`` one.

    ``moving`` is given at zero translation; the result is the locus of its
    translations where the two shapes overlap (interior) or touch (boundary).
    """
    points = [
        (fx - mx, fy - my)
        for fx, fy in vertices(fixed)
        for mx, my in vertices(moving)
    ]
    return MultiPoint(points).convex_hull


def _rings(geom: BaseGeometry) -> List[List[Point2D]]:
    """Boundary point sequences of a geometry, closed rings included."""
    if geom is None or geom.is_empty:
        return []
    kind = geom.geom_type
    if kind == "Polygon":
        return [list(geom.exterior.coords)] + [list(r.coords) for r in geom.interiors]
    if kind in ("LineString", "LinearRing"):
        return [list(geom.coords)]
    if kind == "Point":
        return [[(geom.x, geom.y)]]
    rings = []
    for part in getattr(geom, "geoms", []):
        rings.extend(_rings(part))
    return rings


def boundary_points(geom: BaseGeometry, samples: int) -> List[Point2D]:
    """Vertices of a geometry's boundary plus ``samples`` points inside every edge."""
    points: List[Point2D] = []
    for ring in _rings(geom):
        if len(ring) == 1:
            points.append(ring[0])
            continue
        for (x0, y0), (x1, y1) in zip(ring[:-1], ring[1:]):
            points.append((x0, y0))
            for k in range(1, samples + 1):
                t = k / (samples + 1)
                points.append((x0 + t * (x1 - x0), y0 + t * (y1 - y0)))
        if ring[0] != ring[-1]:
            points.append(ring[-1])
    return points


def _outline(geom: BaseGeometry) -> Optional[BaseGeometry]:
    """Boundary of an areal geometry, lower dimensional ones as they are."""
    kind = geom.geom_type
    if kind in ("Polygon", "MultiPolygon"):
        return geom.boundary
    if kind in ("LineString", "MultiLineString", "Point", "MultiPoint"):
        return geom
    return None


def _intersection_points(a: BaseGeometry, b: BaseGeometry) -> List[Point2D]:
    """Points where two boundaries cross."""
    if a is None or b is None or a.is_empty or b.is_empty:
        return []
    la, lb = _outline(a), _outline(b)
    if la is None or lb is None:
        return []
    points = []
    for ring in _rings(la.intersection(lb)):
        points.extend(ring)
    return points


class BinGeometry:
    """Containment queries for one bed."""

    def __init__(self, bin: Bin):
        self.bin = bin
        self.is_box = isinstance(bin, Box)
        self.polygon: Optional[Polygon] = None
        self._check: Optional[Polygon] = None

        if bin is None:
            self.center: Point2D = (0.0, 0.0)
            return

        if isinstance(bin, Box):
            self.polygon = bin.to_polygon()
            self.center = bin.center
        elif isinstance(bin, Circle):
            self.polygon = bin.to_polygon()
            self.center = bin.center
        else:
            self.polygon = bin
            self.center = Box.from_bounds(bin.bounds).center

        self._check = self.polygon.buffer(CONTAINMENT_TOLERANCE, join_style="mitre")
        prepare(self._check)

    @property
    def bounded(self) -> bool:
        return self.bin is not None

    def inner_fit_region(self, shape: Polygon) -> Optional[BaseGeometry]:
        """Translations keeping ``shape`` inside the bed.

        None means unbounded; an empty geometry means the shape never fits.
        """
        if self.bin is None:
            return None

        if self.is_box:
            sx0, sy0, sx1, sy1 = shape.bounds
            b = self.bin
            x0, x1 = b.minx - sx0, b.maxx - sx1
            y0, y1 = b.miny - sy0, b.maxy - sy1
            if x1 < x0 - CONTAINMENT_TOLERANCE or y1 < y0 - CONTAINMENT_TOLERANCE:
                return Polygon()
            x1, y1 = max(x0, x1), max(y0, y1)
            if x1 > x0 and y1 > y0:
                return _sbox(x0, y0, x1, y1)
            if x1 > x0 or y1 > y0:
                return LineString([(x0, y0), (x1, y1)])
            return Point(x0, y0)

        # Exact for convex beds; candidates are re-checked against the bed
        copies = [_stranslate(self.polygon, -vx, -vy) for vx, vy in vertices(shape)]
        return reduce(lambda a, b: a.intersection(b), copies)

    def covers(self, shape: Polygon) -> bool:
        if self.bin is None:
            return True
        if self.is_box:
            return self._box_covers(shape)
        return self._check.covers(shape)

    def _box_covers(self, shape: Polygon) -> bool:
        b = self.bin
        sx0, sy0, sx1, sy1 = shape.bounds
        tol = CONTAINMENT_TOLERANCE
        return (sx0 >= b.minx - tol and sy0 >= b.miny - tol and
                sx1 <= b.maxx + tol and sy1 <= b.maxy + tol)

    def starting_position(self, shape: Polygon) -> Point2D:
        """Translation putting the shape's bounding box center on the bed center."""
        bb = Box.from_bounds(shape.bounds)
        return (self.center[0] - bb.center[0], self.center[1] - bb.center[1])


class NfpPlacer:
    """Places items onto a single bed."""

    def __init__(
        self,
        bin: Bin,
        config: PlacementConfig,
        stop_condition: Optional[Callable[[], bool]] = None,
        executor: Optional[Executor] = None,
    ):
        self.bin = BinGeometry(bin)
        self.config = config
        self.stop_condition = stop_condition or (lambda: False)
        self.executor = executor
        self.items: List[Item] = []
        self.pile: List[Polygon] = []
        self.closed = False

    def _score(self, item: Item, rotation: float, position: Point2D) -> float:
        candidate = item.copy()
        candidate.rotation = rotation
        candidate.translation = position
        if self.config.object_function is None:
            bb = candidate.bounding_box
            return math.hypot(bb.center[0] - self.bin.center[0], bb.center[1] - self.bin.center[1])
        return self.config.object_function(candidate)

    def _evaluate(self, item: Item, rotation: float, positions: List[Point2D]) -> Optional[List[float]]:
        """Score all positions; None when stopped midway."""
        scores: List[float] = []
        for start in range(0, len(positions), CANDIDATE_BATCH):
            if self.stop_condition():
                return None
            batch = positions[start:start + CANDIDATE_BATCH]
            fn = lambda pos: self._score(item, rotation, pos)  # noqa: E731
            if self.executor is not None and len(batch) > 1:
                scores.extend(self.executor.map(fn, batch))
            else:
                scores.extend(fn(pos) for pos in batch)
        return scores

    def _candidates(self, shape: Polygon, ifr: Optional[BaseGeometry]) -> List[Point2D]:
        """Valid reference point positions for a shape at zero translation."""
        samples = self.config.edge_samples

        if not self.pile:
            start = self.bin.starting_position(shape)
            if self._is_valid(shape, start, None):
                return [start]
            return [p for p in boundary_points(ifr, samples) if self._is_valid(shape, p, None)]

        forbidden = unary_union([nfp(placed, shape) for placed in self.pile])
        prepare(forbidden)
        points = boundary_points(forbidden, samples)
        if ifr is not None:
            points.extend(boundary_points(ifr, samples))
            points.extend(_intersection_points(forbidden, ifr))

        seen = set()
        result = []
        for p in points:
            key = (round(p[0]), round(p[1]))
            if key in seen:
                continue
            seen.add(key)
            if self._is_valid(shape, p, forbidden):
                result.append(p)
        return result

    def _is_valid(self, shape: Polygon, position: Point2D, forbidden: Optional[BaseGeometry]) -> bool:
        if forbidden is not None and forbidden.contains(Point(position)):
            return False
        if not self.bin.bounded:
            return True
        return self.bin.covers(_stranslate(shape, position[0], position[1]))

    def pack(self, item: Item, remaining: Sequence[Item] = ()) -> bool:
        """Try to place an item; on success its pose is updated."""
        if self.closed:
            return False

        if self.config.before_packing is not None:
            self.config.before_packing(list(self.pile), list(self.items), list(remaining))

        best: Optional[Tuple[float, float, Point2D]] = None
        initial_rotation = item.rotation

        for rot in self.config.rotations:
            rotation = initial_rotation + rot
            probe = item.copy()
            probe.rotation = rotation
            probe.translation = (0, 0)
            shape = probe.transformed_shape

            ifr = self.bin.inner_fit_region(shape)
            if ifr is not None and ifr.is_empty:
                continue

            positions = self._candidates(shape, ifr)
            if not positions:
                continue

            if not self.pile and len(positions) == 1:
                scores = [0.0]
            else:
                scores = self._evaluate(item, rotation, positions)
                if scores is None:
                    return False

            # Ties go to the earliest candidate
            i = min(range(len(scores)), key=lambda k: scores[k])
            if best is None or scores[i] < best[0]:
                best = (scores[i], rotation, positions[i])

        if best is None:
            return False

        _, rotation, position = best
        self._commit(item, rotation, position)
        return True

    def force_pack(self, item: Item, remaining: Sequence[Item] = ()) -> None:
        """Put an item that fits nowhere at the starting point and close the bed."""
        if self.config.before_packing is not None:
            self.config.before_packing(list(self.pile), list(self.items), list(remaining))

        probe = item.copy()
        probe.translation = (0, 0)
        self._commit(item, item.rotation, self.bin.starting_position(probe.transformed_shape))
        self.closed = True

    def _commit(self, item: Item, rotation: float, position: Point2D) -> None:
        item.rotation = rotation
        item.translation = position
        self.items.append(item)
        self.pile.append(item.transformed_shape)

    def finalize(self) -> None:
        """Apply the final alignment of the pile."""
        if self.config.alignment != Alignment.CENTER or not self.items:
            return

        pile_bb = bounding_box(self.pile)
        dx = round(self.bin.center[0] - pile_bb.center[0])
        dy = round(self.bin.center[1] - pile_bb.center[1])
        if not dx and not dy:
            return

        if self.bin.bounded and not self.bin.is_box and not self.closed:
            moved = [_stranslate(s, dx, dy) for s in self.pile]
            if not all(self.bin.covers(s) for s in moved):
                return

        for item in self.items:
            item.translate(dx, dy)
        self.pile = [item.transformed_shape for item in self.items]


class FirstFitSelection:
    """Fills beds in order, opening a new one when an item fits none."""

    def __init__(self):
        self.progress: Optional[Callable[[int], None]] = None
        self.stop_condition: Callable[[], bool] = lambda: False

    def pack_items(
        self,
        bin: Bin,
        items: Sequence[Tuple[int, Item]],
        config: PlacementConfig,
        executor: Optional[Executor] = None,
    ) -> List[PlacementGroup]:
        # Biggest first, input order among equals
        store = sorted(items, key=lambda entry: entry[1].area, reverse=True)

        placers: List[NfpPlacer] = []
        groups: List[PlacementGroup] = []
        committed = 0

        for pos, (idx, item) in enumerate(store):
            if self.stop_condition():
                logger.info(f"Placement stopped after {committed} of {len(store)} items")
                break

            remaining = [it for _, it in store[pos + 1:]]
            target = None
            for j, placer in enumerate(placers):
                if placer.pack(item, remaining):
                    target = j
                    break
                if self.stop_condition():
                    break

            if target is None:
                if self.stop_condition():
                    break
                placer = NfpPlacer(bin, config, self.stop_condition, executor)
                placers.append(placer)
                groups.append([])
                target = len(placers) - 1
                if not placer.pack(item, remaining):
                    if self.stop_condition():
                        placers.pop()
                        groups.pop()
                        break
                    logger.warning(f"Item {idx} does not fit an empty bed")
                    placer.force_pack(item, remaining)

            groups[target].append((idx, item))
            committed += 1
            logger.debug(f"Item {idx} placed on bed {target}")
            if self.progress is not None:
                self.progress(committed)

        for placer in placers:
            placer.finalize()

        return [group for group in groups if group]


class Nester:
    """Packs items into as many copies of a bed as needed."""

    def __init__(self, bin: Bin, min_obj_distance: int = 0):
        self.bin = bin
        self.min_obj_distance = min_obj_distance
        self.config = PlacementConfig()
        self.selection = FirstFitSelection()

    def configure(self, config: PlacementConfig) -> None:
        self.config = config

    def progress_indicator(self, callback: Optional[Callable[[int], None]]) -> None:
        self.selection.progress = callback

    def stop_condition(self, callback: Optional[Callable[[], bool]]) -> None:
        self.selection.stop_condition = callback or (lambda: False)

    def execute_indexed(self, items: Sequence[Item]) -> List[PlacementGroup]:
        """Arrange items and return them grouped per bed with their input index.

        The input items are not modified; the returned items carry the
        final pose.
        """
        inflation = int(math.ceil(self.min_obj_distance / 2.0)) if self.min_obj_distance > 0 else 0

        work = []
        for idx, item in enumerate(items):
            copy = item.copy()
            copy.inflation = inflation
            work.append((idx, copy))

        if self.config.parallel:
            with ThreadPoolExecutor() as executor:
                groups = self.selection.pack_items(self.bin, work, self.config, executor)
        else:
            groups = self.selection.pack_items(self.bin, work, self.config)

        for group in groups:
            for _, item in group:
                item.inflation = 0

        return groups
