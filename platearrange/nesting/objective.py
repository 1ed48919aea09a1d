"""Placement objective for the arrangement.

The placer scores every candidate position of the next item with
``objfunc``; lower scores win. The function only reads its inputs, so
candidates can be scored concurrently.

Big items (relative to the bed) gather around the center of the pile and
get rewarded for a compact pile and for lining up with same-sized
neighbours. Small items are pulled towards the cluster of big items.
"""

import math
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import Polygon

from platearrange.nesting.geometry import Box, Circle, Item, Point2D, circumference, convex_hull, distance, vertices
from platearrange.nesting.spatial_index import SpatialIndex

BIG_ITEM_THRESHOLD = 0.02


def is_big(area: float, bin_area: float, threshold: float = BIG_ITEM_THRESHOLD) -> bool:
    """Whether an item of the given area counts as big on this bed.

    Without a bed (zero area) every item is big.
    """
    if bin_area <= 0:
        return True
    return area / bin_area > threshold


def objfunc(
    bin_center: Point2D,
    merged_pile: Sequence[Polygon],
    pile_bb: Optional[Box],
    items: Sequence[Item],
    item: Item,
    bin_area: float,
    norm: float,
    spatindex: SpatialIndex,
    smalls_spatindex: SpatialIndex,
    remaining: Sequence[Item],
    big_threshold: float = BIG_ITEM_THRESHOLD,
) -> Tuple[float, Box]:
    """Score a candidate position of ``item``.

    Args:
        bin_center: Center of the bed (or its bounding box)
        merged_pile: Shapes already placed on this bed
        pile_bb: Bounding box of the pile, None for an empty pile
        items: Items already placed, addressed by the spatial indexes
        item: The candidate, already moved to the position under test
        bin_area: Bed area, 0 without a bed
        norm: Normalizing length for distances
        spatindex: Index of the big placed items
        smalls_spatindex: Index of all placed items
        remaining: Items still waiting after this one

    Returns:
        (score, bounding box of the pile with the candidate)
    """
    ibb = item.bounding_box
    item_area = item.area
    big = is_big(item_area, bin_area, big_threshold)

    fullbb = ibb if pile_bb is None else pile_bb.merge(ibb)

    # Big items accumulate in the center of the pile
    bigbb = fullbb if spatindex.empty else spatindex.bounds()

    if not (big or spatindex.empty):
        # Small items just go around the big ones; the center is enough
        return distance(ibb.center, bigbb.center) / norm, fullbb

    minc = ibb.min_corner
    maxc = ibb.max_corner
    top_left = (minc[0], maxc[1])
    bottom_right = (maxc[0], minc[1])

    cc = fullbb.center  # gravity center
    anchors = (minc, maxc, ibb.center, top_left, bottom_right)
    dist = min(distance(a, cc) for a in anchors) / norm
    bindist = distance(ibb.center, bin_center) / norm
    dist = 0.8 * dist + 0.2 * bindist

    if not remaining:
        # Last item: reward the compactness of the finished pile
        hull = convex_hull(list(merged_pile) + [item.transformed_shape])
        circ = circumference(hull) / norm
        bcirc = 2.0 * (fullbb.width + fullbb.height) / norm
        return 0.5 * circ + 0.5 * bcirc, fullbb

    density = math.sqrt((fullbb.width / norm) * (fullbb.height / norm))

    index = spatindex if big else smalls_spatindex
    neighbours = index.query(ibb)

    # Best alignment with any equally sized neighbour
    alignment_score = 1.0
    for _, idx in neighbours:
        other = items[idx]
        parea = other.area
        if abs(1.0 - parea / item_area) < 1e-6:
            bb = other.bounding_box.merge(ibb)
            ascore = 1.0 - (item_area + parea) / bb.area
            if ascore < alignment_score:
                alignment_score = ascore

    if not neighbours:
        score = 0.5 * dist + 0.5 * density
    else:
        score = 0.40 * dist + 0.40 * density + 0.2 * alignment_score

    return score, fullbb


def box_overfit(bb: Box, bin_box: Box) -> float:
    """How much a bounding box is larger than the bed, summed over both axes.

    Non-positive when it fits.
    """
    wdiff = bb.width - bin_box.width
    hdiff = bb.height - bin_box.height
    if wdiff <= 0 and hdiff <= 0:
        return max(wdiff, hdiff)
    return max(wdiff, 0.0) + max(hdiff, 0.0)


def circle_overfit(shape: Polygon, circle: Circle) -> float:
    """Distance of the farthest vertex outside the circle (negative inside)."""
    farthest = max(distance(circle.center, v) for v in vertices(shape))
    return farthest - circle.radius


def squared_miss(miss: float) -> float:
    """Penalty for a protrusion; zero when nothing sticks out."""
    return miss * miss if miss > 0 else 0.0


def pile_hull(merged_pile: List[Polygon], item: Item) -> Polygon:
    """Convex hull of the pile together with a candidate."""
    return convex_hull(list(merged_pile) + [item.transformed_shape])
