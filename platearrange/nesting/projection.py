"""Top-down projection of model instances to 2D items.

Every object is projected once, using the scaling, mirroring and X/Y
rotation of its first instance (instances of an object share these). The
footprint is the convex hull of the projected vertices. Each instance then
gets its own item carrying the instance's Z rotation and XY offset.
"""

from typing import List, Tuple

import numpy as np
from shapely.geometry import MultiPoint, Polygon
from shapely.geometry.polygon import orient

from platearrange.model import Model, ModelInstance, ModelObject, rotation_matrix
from platearrange.nesting.geometry import SCALING_FACTOR, Item, scale_
from platearrange.utils import get_logger

logger = get_logger("nesting.projection")

# Mapping of item index -> (source instance, item), in input order
ShapeData2D = List[Tuple[ModelInstance, Item]]


def object_footprint(obj: ModelObject) -> Polygon:
    """Scaled, clockwise convex hull of an object's top view.

    Returns an empty polygon when the projection is degenerate.
    """
    if len(obj.vertices) == 0 or not obj.instances:
        return Polygon()

    first = obj.instances[0]
    rx, ry, _ = first.rotation
    matrix = rotation_matrix((rx, ry, 0.0)) @ first.scale_mirror_matrix()
    points = obj.vertices @ matrix.T

    xy = np.round(points[:, :2] / SCALING_FACTOR)
    hull = MultiPoint([tuple(p) for p in xy]).convex_hull
    if hull.geom_type != "Polygon" or hull.is_empty:
        return Polygon()

    return orient(hull, sign=-1.0)


def project_model_from_top(model: Model) -> ShapeData2D:
    """Project all instances of a model to items.

    Degenerate footprints (fewer than 4 contour points including the
    closing one) are left out; those instances are never arranged.
    """
    result: ShapeData2D = []

    for obj in model.objects:
        if obj is None:
            continue

        footprint = object_footprint(obj)
        if footprint.is_empty:
            logger.debug(f"Skipping {obj.name}: degenerate footprint")
            continue

        for inst in obj.instances:
            if inst is None:
                continue

            item = Item(footprint)
            if item.vertex_count <= 3:
                logger.debug(f"Skipping instance of {obj.name}: too few hull vertices")
                continue

            item.rotation = inst.rotation[2]
            item.translation = (scale_(inst.offset[0]), scale_(inst.offset[1]))
            result.append((inst, item))

    return result
