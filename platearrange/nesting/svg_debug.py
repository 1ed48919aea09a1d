"""SVG snapshots of the pile for tracing an arrangement.

Each writer numbers its files itself, so snapshots of separate
arrangements never share a counter.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Sequence, Union

from shapely.geometry import Polygon

from platearrange.nesting.geometry import SCALING_FACTOR, Box, Circle
from platearrange.utils import get_logger

logger = get_logger("nesting.svg_debug")

SVG_NS = "http://www.w3.org/2000/svg"


def _points_attr(polygon: Polygon) -> str:
    return " ".join(f"{x * SCALING_FACTOR:.3f},{-y * SCALING_FACTOR:.3f}" for x, y in polygon.exterior.coords)


class SvgSnapshotWriter:
    """Writes one SVG per placement step into a directory."""

    def __init__(self, directory: Union[str, Path], prefix: str = "arrange"):
        self.directory = Path(directory)
        self.prefix = prefix
        self.counter = 0
        self.written: List[Path] = []

    def write(self, shapes: Sequence[Polygon], bin=None) -> Path:
        """Write the given shapes (scaled units) with the bed outline."""
        outlines: List[Polygon] = list(shapes)
        bed: Optional[Polygon] = None
        if isinstance(bin, (Box, Circle)):
            bed = bin.to_polygon()
        elif isinstance(bin, Polygon):
            bed = bin

        geoms = outlines + ([bed] if bed is not None else [])
        if geoms:
            minx = min(g.bounds[0] for g in geoms) * SCALING_FACTOR
            miny = min(g.bounds[1] for g in geoms) * SCALING_FACTOR
            maxx = max(g.bounds[2] for g in geoms) * SCALING_FACTOR
            maxy = max(g.bounds[3] for g in geoms) * SCALING_FACTOR
        else:
            minx = miny = 0.0
            maxx = maxy = 1.0

        margin = 5.0
        root = ET.Element("svg", {
            "xmlns": SVG_NS,
            "viewBox": f"{minx - margin:.3f} {-maxy - margin:.3f} "
                       f"{maxx - minx + 2 * margin:.3f} {maxy - miny + 2 * margin:.3f}",
        })

        if bed is not None:
            ET.SubElement(root, "polygon", {
                "points": _points_attr(bed),
                "fill": "none",
                "stroke": "#888888",
                "stroke-width": "0.5",
            })

        for shape in outlines:
            ET.SubElement(root, "polygon", {
                "points": _points_attr(shape),
                "fill": "#4a90d9",
                "fill-opacity": "0.5",
                "stroke": "#1f3f66",
                "stroke-width": "0.3",
            })

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{self.prefix}_{self.counter:04d}.svg"
        ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
        self.counter += 1
        self.written.append(path)
        logger.debug(f"Wrote snapshot {path}")
        return path
