"""Scene model: objects, their raw meshes and placed instances.

Only what the arrangement needs is modelled: a vertex cloud per object and
a pose per instance. Lengths are millimetres, angles radians.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from platearrange.utils import get_logger

logger = get_logger("model")

Vec3 = Tuple[float, float, float]


def rotation_matrix(rotation: Sequence[float]) -> np.ndarray:
    """Rotation matrix applying X, then Y, then Z rotation."""
    rx, ry, rz = rotation
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)

    mx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    my = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    mz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return mz @ my @ mx


@dataclass
class ModelInstance:
    """One placed copy of an object."""
    offset: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scaling_factor: Vec3 = (1.0, 1.0, 1.0)
    mirror: Vec3 = (1.0, 1.0, 1.0)  # -1 mirrors the axis

    def set_offset(self, x: float, y: float, z: Optional[float] = None) -> None:
        """Move the instance, keeping Z unless given."""
        self.offset = (float(x), float(y), self.offset[2] if z is None else float(z))

    def set_rotation_z(self, angle: float) -> None:
        self.rotation = (self.rotation[0], self.rotation[1], float(angle))

    def scale_mirror_matrix(self) -> np.ndarray:
        """Scaling and mirroring only, no rotation or translation."""
        return np.diag(np.asarray(self.scaling_factor, dtype=float) *
                       np.asarray(self.mirror, dtype=float))

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply the full instance transformation to an (N, 3) array."""
        matrix = rotation_matrix(self.rotation) @ self.scale_mirror_matrix()
        return points @ matrix.T + np.asarray(self.offset, dtype=float)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "offset": list(self.offset),
            "rotation": list(self.rotation),
            "scaling_factor": list(self.scaling_factor),
            "mirror": list(self.mirror),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelInstance":
        """Create from dictionary."""
        return cls(
            offset=tuple(data.get("offset", (0.0, 0.0, 0.0))),
            rotation=tuple(data.get("rotation", (0.0, 0.0, 0.0))),
            scaling_factor=tuple(data.get("scaling_factor", (1.0, 1.0, 1.0))),
            mirror=tuple(data.get("mirror", (1.0, 1.0, 1.0))),
        )


@dataclass(eq=False)
class ModelObject:
    """An object with a raw mesh (vertex cloud) and its instances."""
    name: str
    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    instances: List[ModelInstance] = field(default_factory=list)
    _bounding_box: Optional[Tuple[np.ndarray, np.ndarray]] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=float).reshape(-1, 3)

    def add_instance(self, instance: Optional[ModelInstance] = None) -> ModelInstance:
        instance = instance or ModelInstance()
        self.instances.append(instance)
        self.invalidate_bounding_box()
        return instance

    def bounding_box(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """World bounding box (min, max) over all instances, cached."""
        if self._bounding_box is None:
            if len(self.vertices) == 0 or not self.instances:
                return None
            points = np.vstack([inst.transform_points(self.vertices) for inst in self.instances])
            self._bounding_box = (points.min(axis=0), points.max(axis=0))
        return self._bounding_box

    def invalidate_bounding_box(self) -> None:
        self._bounding_box = None

    @classmethod
    def box(cls, name: str, size_x: float, size_y: float, size_z: float = 10.0) -> "ModelObject":
        """Cuboid centered on the origin in XY, standing on Z=0."""
        hx, hy = size_x / 2.0, size_y / 2.0
        verts = [
            (x, y, z)
            for z in (0.0, size_z)
            for x, y in ((-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy))
        ]
        return cls(name=name, vertices=np.array(verts))

    @classmethod
    def prism(cls, name: str, outline: Sequence[Tuple[float, float]], height: float = 10.0) -> "ModelObject":
        """Extrude a 2D outline to the given height."""
        verts = [(x, y, z) for z in (0.0, height) for x, y in outline]
        return cls(name=name, vertices=np.array(verts, dtype=float))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "vertices": self.vertices.tolist(),
            "instances": [inst.to_dict() for inst in self.instances],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelObject":
        """Create from dictionary."""
        return cls(
            name=data.get("name", "object"),
            vertices=np.array(data.get("vertices", []), dtype=float),
            instances=[ModelInstance.from_dict(d) for d in data.get("instances", [])],
        )


@dataclass
class Model:
    """A collection of objects to be arranged."""
    objects: List[ModelObject] = field(default_factory=list)

    def add_object(self, obj: ModelObject) -> ModelObject:
        self.objects.append(obj)
        return obj

    @property
    def instance_count(self) -> int:
        return sum(len(obj.instances) for obj in self.objects)

    def instances(self) -> List[ModelInstance]:
        return [inst for obj in self.objects for inst in obj.instances]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"objects": [obj.to_dict() for obj in self.objects]}

    @classmethod
    def from_dict(cls, data: dict) -> "Model":
        """Create from dictionary."""
        return cls(objects=[ModelObject.from_dict(d) for d in data.get("objects", [])])

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Model":
        """Load a scene from a JSON file."""
        path = Path(path)
        with open(path, "r") as f:
            data = json.load(f)
        model = cls.from_dict(data)
        logger.debug(f"Loaded {len(model.objects)} objects from {path}")
        return model

    def save(self, path: Union[str, Path]) -> None:
        """Write the scene to a JSON file."""
        path = Path(path)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
