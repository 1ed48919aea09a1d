"""Automatic arrangement of model instances on the print bed.

``arrange`` projects every instance to a convex footprint, picks the
arrangement variant for the bed shape, runs the placer and writes the
resulting poses back into the model. Items that do not fit on the bed are
laid out on virtual beds next to it.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from shapely.errors import ShapelyError
from shapely.geometry import Polygon

from platearrange.model import Model
from platearrange.nesting.bed_shape import BedShapeHint, BedShapeType, classify_bed_shape
from platearrange.nesting.geometry import SCALING_FACTOR, Box, Circle, Item, Point2D, scale_
from platearrange.nesting.objective import (
    BIG_ITEM_THRESHOLD,
    box_overfit,
    circle_overfit,
    is_big,
    objfunc,
    pile_hull,
    squared_miss,
)
from platearrange.nesting.placer import Alignment, Bin, Nester, PlacementConfig, PlacementGroup
from platearrange.nesting.projection import ShapeData2D, project_model_from_top
from platearrange.nesting.spatial_index import SpatialIndex
from platearrange.utils import get_logger

logger = get_logger("nesting.arranger")

# Overflow beds are this many bed widths apart
STRIDE_PADDING = 1.2


class ArrangeError(Exception):
    """Raised when the geometry cannot be arranged."""
    pass


class BinKind(str, Enum):
    """Arrangement variants."""
    BOX = "box"
    CIRCLE = "circle"
    POLYGON = "polygon"
    NO_BIN = "no_bin"


def default_placement_config() -> PlacementConfig:
    """Placer settings used for arranging."""
    return PlacementConfig(
        # Align the arranged pile into the center of the bin
        alignment=Alignment.CENTER,
        # Start placing the items from the center of the print bed
        starting_point=Alignment.CENTER,
        # Rotations stay off until instances of one object can differ in rotation
        rotations=[0.0],
        accuracy=0.65,
        parallel=True,
    )


# Extra score for a candidate protruding from the bed
OverfitPenalty = Callable[["AutoArranger", Item, Box], float]


def _box_penalty(arranger: "AutoArranger", item: Item, fullbb: Box) -> float:
    return squared_miss(box_overfit(fullbb, arranger.bin))


def _circle_penalty(arranger: "AutoArranger", item: Item, fullbb: Box) -> float:
    if not arranger.is_big(item):
        return 0.0
    return squared_miss(circle_overfit(pile_hull(arranger.merged_pile, item), arranger.bin))


def _no_penalty(arranger: "AutoArranger", item: Item, fullbb: Box) -> float:
    return 0.0


_PENALTIES: Dict[BinKind, OverfitPenalty] = {
    BinKind.BOX: _box_penalty,
    BinKind.CIRCLE: _circle_penalty,
    BinKind.POLYGON: _no_penalty,
    BinKind.NO_BIN: _no_penalty,
}


def bin_kind(bin: Bin) -> BinKind:
    if bin is None:
        return BinKind.NO_BIN
    if isinstance(bin, Box):
        return BinKind.BOX
    if isinstance(bin, Circle):
        return BinKind.CIRCLE
    return BinKind.POLYGON


class AutoArranger:
    """Placer wired with the objective function for one bed shape.

    The pile, the placed and remaining items and both spatial indexes are
    only changed in ``_before_packing``, which the placer calls before it
    starts scoring candidates for the next item. The objective only reads
    them.
    """

    def __init__(
        self,
        bin: Bin,
        min_obj_distance: int = 0,
        progress: Optional[Callable[[int], None]] = None,
        stop_condition: Optional[Callable[[], bool]] = None,
        config: Optional[PlacementConfig] = None,
        big_threshold: float = BIG_ITEM_THRESHOLD,
        debug=None,
    ):
        self.bin = bin
        self.kind = bin_kind(bin)
        self.big_threshold = big_threshold
        self.debug = debug

        if self.kind == BinKind.BOX:
            self.bin_area = bin.area
            self.bin_center = bin.center
        elif self.kind == BinKind.CIRCLE:
            self.bin_area = bin.area
            self.bin_center = bin.center
        elif self.kind == BinKind.POLYGON:
            self.bin_area = bin.area
            self.bin_center = Box.from_bounds(bin.bounds).center
        else:
            self.bin_area = 0.0
            self.bin_center = (0.0, 0.0)

        self.norm = math.sqrt(self.bin_area) if self.bin_area > 0 else 1.0

        self.merged_pile: List[Polygon] = []
        self.pile_bb: Optional[Box] = None
        self.items: List[Item] = []
        self.remaining: List[Item] = []
        self.big_index = SpatialIndex()
        self.all_index = SpatialIndex()

        self._penalty = _PENALTIES[self.kind]

        # Bound to this arranger, the caller's config stays untouched
        if config is None:
            self.config = default_placement_config()
        else:
            self.config = replace(config, rotations=list(config.rotations))
        self.config.object_function = self._objective
        self.config.before_packing = self._before_packing

        self.nester = Nester(bin, min_obj_distance)
        self.nester.configure(self.config)
        self.nester.progress_indicator(progress)
        self.nester.stop_condition(stop_condition)

    def is_big(self, item: Item) -> bool:
        return is_big(item.area, self.bin_area, self.big_threshold)

    def _before_packing(self, merged_pile: List[Polygon], items: List[Item], remaining: List[Item]) -> None:
        self.items = items
        self.merged_pile = merged_pile
        self.remaining = remaining

        self.pile_bb = None
        for item in items:
            bb = item.bounding_box
            self.pile_bb = bb if self.pile_bb is None else self.pile_bb.merge(bb)

        self.big_index.clear()
        self.all_index.clear()
        for idx, item in enumerate(items):
            if self.is_big(item):
                self.big_index.insert(item.bounding_box, idx)
            self.all_index.insert(item.bounding_box, idx)
        self.big_index.build()
        self.all_index.build()

        if self.debug is not None:
            self.debug.write(merged_pile, self.bin)

    def _objective(self, item: Item) -> float:
        score, fullbb = objfunc(
            self.bin_center,
            self.merged_pile,
            self.pile_bb,
            self.items,
            item,
            self.bin_area,
            self.norm,
            self.big_index,
            self.all_index,
            self.remaining,
            self.big_threshold,
        )
        return score + self._penalty(self, item, fullbb)

    def __call__(self, items: Sequence[Item]) -> List[PlacementGroup]:
        self.big_index.clear()
        self.all_index.clear()
        if self.kind == BinKind.NO_BIN:
            total = sum(item.area for item in items)
            self.norm = math.sqrt(total) if total > 0 else 1.0
        return self.nester.execute_indexed(items)


@dataclass
class ArrangeOutcome:
    """What an arrangement call produced and applied."""
    num_items: int = 0
    num_groups: int = 0  # Beds used by the placer
    num_applied: int = 0  # Beds written back into the model
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.cancelled and self.num_groups == 1

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "num_items": self.num_items,
            "num_groups": self.num_groups,
            "num_applied": self.num_applied,
            "cancelled": self.cancelled,
            "success": self.success,
        }


def make_bin(outline: Sequence[Point2D], hint: BedShapeHint) -> Bin:
    """Bed geometry for the arranger from a scaled outline and its shape hint."""
    if hint.type == BedShapeType.BOX:
        return hint.box or Box.from_points(outline)
    if hint.type == BedShapeType.CIRCLE and hint.circle:
        return hint.circle
    return Polygon(outline)


def _validate_bed(outline: Sequence[Point2D]) -> None:
    polygon = Polygon(outline)
    if not polygon.is_valid or polygon.area <= 0:
        raise ArrangeError("Invalid bed outline")


def apply_result(group: PlacementGroup, batch_offset: float, shapemap: ShapeData2D) -> None:
    """Write placed poses back into the model instances.

    ``batch_offset`` (mm) is added on the X axis.
    """
    for idx, item in group:
        inst = shapemap[idx][0]
        tx, ty = item.translation
        inst.set_offset(tx * SCALING_FACTOR + batch_offset, ty * SCALING_FACTOR)
        inst.set_rotation_z(item.rotation)


def apply_groups(
    groups: Sequence[PlacementGroup],
    shapemap: ShapeData2D,
    stride: float,
    stop_condition: Callable[[], bool],
) -> int:
    """Apply groups one after the other, each ``stride`` mm further on X.

    The stop condition is polled before every group; groups applied before
    a stop stay applied. Returns the number of applied groups.
    """
    batch_offset = 0.0
    applied = 0
    for group in groups:
        if stop_condition():
            logger.warning(f"Arrangement cancelled, {applied} of {len(groups)} beds applied")
            break
        apply_result(group, batch_offset, shapemap)
        applied += 1
        # Only the first group is on the print bed, the others go next to it
        batch_offset += stride
    return applied


def run_arrangement(
    model: Model,
    min_obj_distance: float,
    bed: Optional[Sequence[Point2D]],
    hint: Optional[BedShapeHint] = None,
    first_bin_only: bool = False,
    progress: Optional[Callable[[int], None]] = None,
    stop_condition: Optional[Callable[[], bool]] = None,
    config: Optional[PlacementConfig] = None,
    big_threshold: float = BIG_ITEM_THRESHOLD,
    stride_padding: float = STRIDE_PADDING,
    debug=None,
) -> ArrangeOutcome:
    """Arrange a model and report what happened.

    Lengths are millimetres. An empty bed arranges without bounds.

    Raises:
        ArrangeError: The bed outline or an item geometry is invalid.
    """
    stop_condition = stop_condition or (lambda: False)

    shapemap = project_model_from_top(model)
    items = [item for _, item in shapemap]
    outcome = ArrangeOutcome(num_items=len(items))

    outline = [(scale_(x), scale_(y)) for x, y in (bed or [])]
    if len(outline) >= 3:
        _validate_bed(outline)
        hint = hint or BedShapeHint()
        if hint.type == BedShapeType.WHO_KNOWS:
            hint = classify_bed_shape(outline)
        bin = make_bin(outline, hint)
        binbb = Box.from_points(outline)
    else:
        hint = BedShapeHint(BedShapeType.WHO_KNOWS)
        bin = None
        binbb = Box(0, 0, 0, 0)

    logger.info(f"Arranging {len(items)} items, bed: {bin_kind(bin).value} ({hint.type.value})")

    arranger = AutoArranger(
        bin,
        scale_(min_obj_distance),
        progress,
        stop_condition,
        config=config,
        big_threshold=big_threshold,
        debug=debug,
    )

    try:
        result = arranger(items)
    except (ShapelyError, ValueError) as e:
        raise ArrangeError(f"Arrangement failed: {e}") from e

    outcome.num_groups = len(result)
    if not result:
        outcome.cancelled = stop_condition()
        return outcome

    to_apply = result[:1] if first_bin_only else result
    stride = stride_padding * binbb.width * SCALING_FACTOR
    outcome.num_applied = apply_groups(to_apply, shapemap, stride, stop_condition)
    outcome.cancelled = outcome.num_applied < len(to_apply)

    for obj in model.objects:
        obj.invalidate_bounding_box()

    if outcome.num_groups > 1:
        logger.warning(f"Objects did not fit one bed, {outcome.num_groups} beds used")
    logger.info(f"Arranged {len(items)} items on {outcome.num_groups} bed(s)")
    return outcome


def arrange(
    model: Model,
    min_obj_distance: float,
    bed: Optional[Sequence[Point2D]],
    hint: Optional[BedShapeHint] = None,
    first_bin_only: bool = False,
    progress: Optional[Callable[[int], None]] = None,
    stop_condition: Optional[Callable[[], bool]] = None,
    **kwargs,
) -> bool:
    """Arrange model instances on the bed.

    Returns True when nothing was cancelled and everything fit on the bed.
    """
    return run_arrangement(
        model, min_obj_distance, bed, hint, first_bin_only, progress, stop_condition, **kwargs
    ).success
