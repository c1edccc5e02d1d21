"""Collision shapes, world-space bounds and the spatial query provider."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Protocol, Union

import fcl
import numpy as np


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned box in world space."""

    minimum: np.ndarray
    maximum: np.ndarray

    @classmethod
    def from_center_size(cls, center: np.ndarray, size: np.ndarray) -> Bounds:
        center = np.asarray(center, dtype=np.float64)
        half = np.abs(np.asarray(size, dtype=np.float64)) * 0.5
        return cls(minimum=center - half, maximum=center + half)

    @property
    def center(self) -> np.ndarray:
        return (self.minimum + self.maximum) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.maximum - self.minimum

    def intersects(self, other: Bounds) -> bool:
        return bool(
            np.all(self.minimum <= other.maximum) and np.all(other.minimum <= self.maximum)
        )

    def closest_point(self, point: np.ndarray) -> np.ndarray:
        return np.clip(np.asarray(point, dtype=np.float64), self.minimum, self.maximum)

    def union(self, other: Bounds) -> Bounds:
        return Bounds(
            minimum=np.minimum(self.minimum, other.minimum),
            maximum=np.maximum(self.maximum, other.maximum),
        )


@dataclass(frozen=True)
class Sphere:
    radius: float

    def scaled(self, scale: np.ndarray) -> Sphere:
        return Sphere(radius=self.radius * float(np.max(np.abs(scale))))


@dataclass(frozen=True)
class Box:
    size: tuple[float, float, float]

    def scaled(self, scale: np.ndarray) -> Box:
        s = np.array(self.size, dtype=np.float64) * np.abs(scale)
        return Box(size=(float(s[0]), float(s[1]), float(s[2])))


@dataclass(frozen=True)
class Cylinder:
    """Cylinder along its local z axis, centred on its origin."""

    radius: float
    length: float

    def scaled(self, scale: np.ndarray) -> Cylinder:
        scale = np.abs(scale)
        return Cylinder(
            radius=self.radius * float(max(scale[0], scale[1])),
            length=self.length * float(scale[2]),
        )


@dataclass(frozen=True, eq=False)
class Mesh:
    """Triangle mesh in its geometry frame; compared by identity."""

    vertices: np.ndarray = field(repr=False)
    faces: np.ndarray = field(repr=False)

    def scaled(self, scale: np.ndarray) -> Mesh:
        return Mesh(vertices=self.vertices * np.asarray(scale, dtype=np.float64), faces=self.faces)


Shape = Union[Sphere, Box, Cylinder, Mesh]


def oriented_bounds(half_extents: np.ndarray, pose: np.ndarray) -> Bounds:
    """World AABB enclosing an oriented box with the given half extents."""
    rotation = pose[:3, :3]
    center = pose[:3, 3]
    half = np.abs(rotation) @ np.asarray(half_extents, dtype=np.float64)
    return Bounds(minimum=center - half, maximum=center + half)


def axis_gaps(a: Bounds, b: Bounds) -> np.ndarray:
    """Per-axis separation between two boxes (negative values are overlaps)."""
    gaps = np.empty(3, dtype=np.float64)
    for i in range(3):
        if a.maximum[i] < b.minimum[i]:
            gaps[i] = b.minimum[i] - a.maximum[i]
        elif b.maximum[i] < a.minimum[i]:
            gaps[i] = a.minimum[i] - b.maximum[i]
        else:
            gaps[i] = -(min(a.maximum[i], b.maximum[i]) - max(a.minimum[i], b.minimum[i]))
    return gaps


class SpatialQueryProvider(Protocol):
    def overlap(
        self, shape_a: Shape, pose_a: np.ndarray, shape_b: Shape, pose_b: np.ndarray
    ) -> tuple[bool, float]: ...

    def bounds_intersect(self, a: Bounds, b: Bounds) -> bool: ...

    def closest_point_distance(self, a: Bounds, b: Bounds) -> float: ...


class FclQueryProvider:
    """Shape overlap through python-fcl; bounds queries in numpy.

    Penetration depth is the deepest contact fcl reports for the pair.
    Shapes that only touch count as not overlapping. Mesh BVH models are
    built once per ``Mesh`` instance.
    """

    def __init__(self, max_contacts: int = 8) -> None:
        self._request = fcl.CollisionRequest(num_max_contacts=max_contacts, enable_contact=True)
        self._models: weakref.WeakKeyDictionary[Mesh, fcl.BVHModel] = weakref.WeakKeyDictionary()

    def overlap(
        self, shape_a: Shape, pose_a: np.ndarray, shape_b: Shape, pose_b: np.ndarray
    ) -> tuple[bool, float]:
        result = fcl.CollisionResult()
        hits = fcl.collide(
            self._collision_object(shape_a, pose_a),
            self._collision_object(shape_b, pose_b),
            self._request,
            result,
        )
        if hits == 0:
            return False, 0.0
        depth = max((float(c.penetration_depth) for c in result.contacts), default=0.0)
        if depth <= 0.0:
            return False, 0.0
        return True, depth

    def bounds_intersect(self, a: Bounds, b: Bounds) -> bool:
        return a.intersects(b)

    def closest_point_distance(self, a: Bounds, b: Bounds) -> float:
        gaps = np.maximum(axis_gaps(a, b), 0.0)
        return float(np.linalg.norm(gaps))

    def _collision_object(self, shape: Shape, pose: np.ndarray) -> fcl.CollisionObject:
        transform = fcl.Transform(
            np.ascontiguousarray(pose[:3, :3], dtype=np.float64),
            np.ascontiguousarray(pose[:3, 3], dtype=np.float64),
        )
        return fcl.CollisionObject(self._geometry(shape), transform)

    def _geometry(self, shape: Shape):
        if isinstance(shape, Sphere):
            return fcl.Sphere(shape.radius)
        if isinstance(shape, Box):
            return fcl.Box(*shape.size)
        if isinstance(shape, Cylinder):
            return fcl.Cylinder(shape.radius, shape.length)
        model = self._models.get(shape)
        if model is None:
            model = fcl.BVHModel()
            model.beginModel(len(shape.vertices), len(shape.faces))
            model.addSubModel(shape.vertices, shape.faces)
            model.endModel()
            self._models[shape] = model
        return model
