"""Pydantic v2 schema models for urdfval robot descriptions."""

from __future__ import annotations

from typing import Any, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator, model_validator

JOINT_TYPES: frozenset[str] = frozenset(
    {"fixed", "revolute", "prismatic", "continuous", "spherical"}
)


class Origin(BaseModel):
    model_config = ConfigDict(extra="forbid")

    xyz: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy: tuple[float, float, float] = (0.0, 0.0, 0.0)  # radians


class Geometry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["box", "sphere", "cylinder", "mesh"]
    name: str | None = None
    size: tuple[float, float, float] | None = None
    radius: float | None = None
    length: float | None = None
    filename: str | None = None
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)
    # Bounding size of a mesh in its own frame, used when the file is not loaded.
    bounds: tuple[float, float, float] | None = None
    origin: Origin = Origin()

    # (vertices, faces) of a loaded mesh file, with ``scale`` applied.
    _mesh: Any = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _validate_by_type(self) -> Geometry:
        if self.type == "box":
            if self.size is None:
                raise ValueError("box requires 'size'")
            if any(v <= 0 for v in self.size):
                raise ValueError(f"box size must be positive, got {self.size}")
        elif self.type == "sphere":
            if self.radius is None or self.radius <= 0:
                raise ValueError("sphere requires a positive 'radius'")
        elif self.type == "cylinder":
            if self.radius is None or self.radius <= 0:
                raise ValueError("cylinder requires a positive 'radius'")
            if self.length is None or self.length <= 0:
                raise ValueError("cylinder requires a positive 'length'")
        elif self.type == "mesh":
            if not self.filename:
                raise ValueError("mesh requires 'filename'")
        return self

    def extents(self) -> np.ndarray | None:
        """Axis-aligned size of the geometry in its own frame, or None if unknown."""
        if self.type == "box":
            return np.array(self.size, dtype=np.float64)
        if self.type == "sphere":
            return np.full(3, 2.0 * self.radius, dtype=np.float64)
        if self.type == "cylinder":
            return np.array([2.0 * self.radius, 2.0 * self.radius, self.length], dtype=np.float64)
        if self._mesh is not None:
            vertices = self._mesh[0]
            return vertices.max(axis=0) - vertices.min(axis=0)
        if self.bounds is None:
            return None
        return np.abs(np.array(self.bounds, dtype=np.float64) * np.array(self.scale))

    def center(self) -> np.ndarray:
        """Centre of the geometry's bounding box in its own frame."""
        if self._mesh is None:
            return np.zeros(3, dtype=np.float64)
        vertices = self._mesh[0]
        return (vertices.max(axis=0) + vertices.min(axis=0)) * 0.5

    @property
    def mesh_data(self) -> tuple[np.ndarray, np.ndarray] | None:
        return self._mesh

    def attach_mesh(self, vertices: np.ndarray, faces: np.ndarray) -> None:
        """Attach loaded mesh data given in the file's own units."""
        scaled = np.asarray(vertices, dtype=np.float64) * np.array(self.scale, dtype=np.float64)
        self._mesh = (scaled, np.asarray(faces, dtype=np.int32))


class Part(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    visuals: list[Geometry] = []
    collisions: list[Geometry] = []


class JointLimits(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lower: float | None = None
    upper: float | None = None
    effort: float = 0.0
    velocity: float = 0.0


class JointDef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: Literal["fixed", "revolute", "prismatic", "continuous", "spherical"]
    parent: str
    child: str
    origin: Origin = Origin()
    axis: tuple[float, float, float] = (0.0, 0.0, 1.0)
    limits: JointLimits | None = None
    # Initial joint coordinate: degrees for rotational joints, meters for prismatic.
    position: float = 0.0

    @field_validator("axis")
    @classmethod
    def axis_non_zero(cls, v: tuple[float, float, float]) -> tuple[float, float, float]:
        if not any(abs(c) > 1e-12 for c in v):
            raise ValueError("joint axis must be non-zero")
        return v


class RobotDescription(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = "0.1"
    name: str
    parts: list[Part] = []
    joints: list[JointDef] = []

    @model_validator(mode="after")
    def _check_tree(self) -> RobotDescription:
        names: set[str] = set()
        for part in self.parts:
            if part.name in names:
                raise ValueError(f"Duplicate part name: {part.name!r}")
            names.add(part.name)

        joint_names: set[str] = set()
        parent_of: dict[str, str] = {}
        for joint in self.joints:
            if joint.name in joint_names:
                raise ValueError(f"Duplicate joint name: {joint.name!r}")
            joint_names.add(joint.name)
            for ref in (joint.parent, joint.child):
                if ref not in names:
                    raise ValueError(f"Joint {joint.name!r} references unknown part {ref!r}")
            if joint.child in parent_of:
                raise ValueError(f"Part {joint.child!r} has more than one parent joint")
            if joint.child == joint.parent:
                raise ValueError(f"Joint {joint.name!r} connects part {joint.child!r} to itself")
            parent_of[joint.child] = joint.parent

        for start in parent_of:
            seen = {start}
            current = parent_of.get(start)
            while current is not None:
                if current in seen:
                    raise ValueError(f"Cycle in part hierarchy at {current!r}")
                seen.add(current)
                current = parent_of.get(current)

        if self.parts:
            roots = [p.name for p in self.parts if p.name not in parent_of]
            if len(roots) != 1:
                raise ValueError(f"Expected exactly one root part, found: {roots}")
        return self

    def part(self, name: str) -> Part:
        for part in self.parts:
            if part.name == name:
                return part
        raise KeyError(name)

    def root_part(self) -> str | None:
        children = {j.child for j in self.joints}
        for part in self.parts:
            if part.name not in children:
                return part.name
        return None
