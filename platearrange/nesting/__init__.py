"""Automatic arrangement of objects on the print bed.

Projects object instances to 2D footprints and packs them onto one or
more beds without overlap.
"""

from platearrange.nesting.arranger import (
    ArrangeError,
    ArrangeOutcome,
    AutoArranger,
    BinKind,
    apply_result,
    arrange,
    run_arrangement,
)
from platearrange.nesting.bed_shape import (
    BedShapeHint,
    BedShapeType,
    classify_bed_shape,
)
from platearrange.nesting.geometry import (
    SCALING_FACTOR,
    Box,
    Circle,
    Item,
    scale_,
    unscale,
)
from platearrange.nesting.job import ArrangeJob, ArrangeResult
from platearrange.nesting.objective import objfunc
from platearrange.nesting.placer import Nester, PlacementConfig
from platearrange.nesting.projection import ShapeData2D, project_model_from_top
from platearrange.nesting.spatial_index import SpatialIndex

__all__ = [
    # Arranging
    "ArrangeError",
    "ArrangeOutcome",
    "AutoArranger",
    "BinKind",
    "apply_result",
    "arrange",
    "run_arrangement",
    # Bed shape
    "BedShapeHint",
    "BedShapeType",
    "classify_bed_shape",
    # Geometry
    "SCALING_FACTOR",
    "Box",
    "Circle",
    "Item",
    "scale_",
    "unscale",
    # Jobs
    "ArrangeJob",
    "ArrangeResult",
    # Internals
    "objfunc",
    "Nester",
    "PlacementConfig",
    "ShapeData2D",
    "project_model_from_top",
    "SpatialIndex",
]
