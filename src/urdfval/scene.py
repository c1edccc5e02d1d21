"""Structure source interface and an in-process kinematic scene.

The validation engine never touches robot descriptions directly. It asks a
``Scene`` to locate a robot, to enumerate its parts, joints and colliders
once, and afterwards to report and update live state (joint coordinates,
part scales, world poses and bounds).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

import numpy as np

from urdfval.collision import Bounds, Box, Cylinder, Mesh, Shape, Sphere, oriented_bounds
from urdfval.kinematics import joint_motion, make_transform, origin_transform
from urdfval.models import Geometry, RobotDescription

DEFAULT_LOWER_LIMIT = -180.0
DEFAULT_UPPER_LIMIT = 180.0

# A root object with at least this many visual parts is taken to be a robot
# when no articulated root is present.
MIN_VISUAL_PARTS_FOR_ROBOT = 5


class JointKind(str, Enum):
    FIXED = "Fixed"
    REVOLUTE = "Revolute"
    PRISMATIC = "Prismatic"
    CONTINUOUS = "Continuous"
    SPHERICAL = "Spherical"

    @classmethod
    def from_type(cls, joint_type: str) -> JointKind:
        return cls(joint_type.capitalize())


@dataclass(frozen=True)
class PartRecord:
    name: str
    parent: str | None


@dataclass(frozen=True)
class JointRecord:
    name: str
    kind: JointKind
    part: str
    parent_part: str
    lower_limit: float
    upper_limit: float
    max_effort: float = 0.0
    max_velocity: float = 0.0


@dataclass(frozen=True)
class ColliderRecord:
    id: int
    name: str
    part: str
    shape: Shape


@dataclass(frozen=True)
class RobotStructure:
    root: str
    parts: tuple[PartRecord, ...]
    joints: tuple[JointRecord, ...]
    colliders: tuple[ColliderRecord, ...]
    visual_parts: tuple[str, ...]


class Scene(Protocol):
    def find_robot(self, name: str | None = None) -> str | None: ...

    def robot_structure(self, root: str) -> RobotStructure: ...

    def robot_name(self, root: str) -> str: ...

    def joint_position(self, joint: str) -> float: ...

    def drive_joint(self, joint: str, value: float) -> None: ...

    def local_scale(self, part: str) -> np.ndarray: ...

    def set_local_scale(self, part: str, scale: np.ndarray) -> None: ...

    def world_scale(self, part: str) -> np.ndarray: ...

    def mesh_size(self, part: str) -> np.ndarray | None: ...

    def world_bounds(self, part: str) -> Bounds | None: ...

    def collider_shape(self, collider_id: int) -> Shape: ...

    def collider_pose(self, collider_id: int) -> np.ndarray: ...


@dataclass
class _Collider:
    record: ColliderRecord
    geometry: Geometry


class _LoadedRobot:
    """Live state of one robot description inside a ``KinematicScene``."""

    def __init__(self, description: RobotDescription, first_collider_id: int) -> None:
        self.description = description
        self.root = description.root_part() or description.name
        self.parents: dict[str, str | None] = {p.name: None for p in description.parts}
        self.joint_by_child = {j.child: j for j in description.joints}
        for joint in description.joints:
            self.parents[joint.child] = joint.parent
        self.positions: dict[str, float] = {j.name: j.position for j in description.joints}
        self.scales: dict[str, np.ndarray] = {
            p.name: np.ones(3, dtype=np.float64) for p in description.parts
        }
        self.colliders: list[_Collider] = []
        next_id = first_collider_id
        for part in description.parts:
            for i, geometry in enumerate(part.collisions):
                shape = _collision_shape(geometry)
                if shape is None:
                    continue
                name = geometry.name or f"{part.name}/collision_{i}"
                record = ColliderRecord(id=next_id, name=name, part=part.name, shape=shape)
                self.colliders.append(_Collider(record=record, geometry=geometry))
                next_id += 1
        self._poses: dict[str, np.ndarray] | None = None

    @property
    def actuated_joint_count(self) -> int:
        return sum(1 for j in self.description.joints if j.type != "fixed")

    @property
    def visual_part_count(self) -> int:
        return sum(1 for p in self.description.parts if p.visuals)

    def invalidate(self) -> None:
        self._poses = None

    def world_pose(self, part: str) -> np.ndarray:
        if self._poses is None:
            self._poses = {}
        pose = self._poses.get(part)
        if pose is not None:
            return pose
        joint = self.joint_by_child.get(part)
        if joint is None:
            pose = np.eye(4, dtype=np.float64)
        else:
            parent_pose = self.world_pose(joint.parent)
            pose = (
                parent_pose
                @ origin_transform(joint.origin.xyz, joint.origin.rpy)
                @ joint_motion(joint.type, joint.axis, self.positions[joint.name])
            )
        self._poses[part] = pose
        return pose

    def structure(self) -> RobotStructure:
        parts = tuple(PartRecord(name=p.name, parent=self.parents[p.name]) for p in self.description.parts)
        joints = tuple(_joint_record(j) for j in self.description.joints)
        colliders = tuple(c.record for c in self.colliders)
        visual_parts = tuple(p.name for p in self.description.parts if p.visuals)
        return RobotStructure(
            root=self.root,
            parts=parts,
            joints=joints,
            colliders=colliders,
            visual_parts=visual_parts,
        )


class KinematicScene:
    """A scene of robot descriptions posed by forward kinematics.

    Robots may be added after construction to model a scene that is still
    loading. Part, joint and collider identities must be unique across the
    whole scene.
    """

    def __init__(self, robots: Iterable[RobotDescription] = ()) -> None:
        self._robots: list[_LoadedRobot] = []
        self._part_owner: dict[str, _LoadedRobot] = {}
        self._joint_owner: dict[str, _LoadedRobot] = {}
        self._colliders: dict[int, tuple[_LoadedRobot, _Collider]] = {}
        self._scaled_shapes: dict[int, tuple[tuple[float, ...], Shape]] = {}
        for description in robots:
            self.add_robot(description)

    def add_robot(self, description: RobotDescription) -> None:
        for part in description.parts:
            if part.name in self._part_owner:
                raise ValueError(f"Part {part.name!r} already exists in the scene")
        for joint in description.joints:
            if joint.name in self._joint_owner:
                raise ValueError(f"Joint {joint.name!r} already exists in the scene")

        robot = _LoadedRobot(description, first_collider_id=len(self._colliders) + 1)
        self._robots.append(robot)
        for part in description.parts:
            self._part_owner[part.name] = robot
        for joint in description.joints:
            self._joint_owner[joint.name] = robot
        for collider in robot.colliders:
            self._colliders[collider.record.id] = (robot, collider)

    # -- discovery ---------------------------------------------------------

    def find_robot(self, name: str | None = None) -> str | None:
        """Return the root part of a robot, or None if none is loaded yet.

        Search order: by robot name (or root part name), then the first robot
        with an actuated joint, then the first with enough visual parts. A
        name that matches nothing falls through to the later searches.
        """
        if name:
            for robot in self._robots:
                if name in (robot.description.name, robot.root):
                    return robot.root
        for robot in self._robots:
            if robot.actuated_joint_count > 0:
                return robot.root
        for robot in self._robots:
            if robot.visual_part_count >= MIN_VISUAL_PARTS_FOR_ROBOT:
                return robot.root
        return None

    def robot_structure(self, root: str) -> RobotStructure:
        return self._part_owner[root].structure()

    def robot_name(self, root: str) -> str:
        return self._part_owner[root].description.name

    # -- live state --------------------------------------------------------

    def joint_position(self, joint: str) -> float:
        return self._joint_owner[joint].positions[joint]

    def drive_joint(self, joint: str, value: float) -> None:
        robot = self._joint_owner[joint]
        robot.positions[joint] = float(value)
        robot.invalidate()

    def local_scale(self, part: str) -> np.ndarray:
        return self._part_owner[part].scales[part].copy()

    def set_local_scale(self, part: str, scale: np.ndarray) -> None:
        self._part_owner[part].scales[part] = np.asarray(scale, dtype=np.float64).copy()

    def world_scale(self, part: str) -> np.ndarray:
        # Part scale applies to the part's own geometry only.
        return self.local_scale(part)

    def world_pose(self, part: str) -> np.ndarray:
        return self._part_owner[part].world_pose(part).copy()

    def mesh_size(self, part: str) -> np.ndarray | None:
        """Unscaled bounding size of a part's visual geometry in its own frame."""
        robot = self._part_owner[part]
        bounds = _union_bounds(
            robot.description.part(part).visuals, np.eye(4), np.ones(3)
        )
        return None if bounds is None else bounds.size

    def world_bounds(self, part: str) -> Bounds | None:
        robot = self._part_owner[part]
        return _union_bounds(
            robot.description.part(part).visuals,
            robot.world_pose(part),
            robot.scales[part],
        )

    def collider_shape(self, collider_id: int) -> Shape:
        robot, collider = self._colliders[collider_id]
        rotation = origin_transform((0.0, 0.0, 0.0), collider.geometry.origin.rpy)[:3, :3]
        scale = np.abs(rotation.T) @ robot.scales[collider.record.part]
        key = tuple(float(s) for s in scale)
        cached = self._scaled_shapes.get(collider_id)
        if cached is not None and cached[0] == key:
            return cached[1]
        shape = collider.record.shape
        if not np.array_equal(scale, np.ones(3)):
            shape = shape.scaled(scale)
        self._scaled_shapes[collider_id] = (key, shape)
        return shape

    def collider_pose(self, collider_id: int) -> np.ndarray:
        robot, collider = self._colliders[collider_id]
        part = collider.record.part
        return robot.world_pose(part) @ _scaled_origin(collider.geometry, robot.scales[part])


def _joint_record(joint) -> JointRecord:
    kind = JointKind.from_type(joint.type)
    limits = joint.limits
    lower = limits.lower if limits is not None and limits.lower is not None else None
    upper = limits.upper if limits is not None and limits.upper is not None else None
    if kind is JointKind.CONTINUOUS or lower is None or upper is None:
        lower, upper = DEFAULT_LOWER_LIMIT, DEFAULT_UPPER_LIMIT
    return JointRecord(
        name=joint.name,
        kind=kind,
        part=joint.child,
        parent_part=joint.parent,
        lower_limit=float(lower),
        upper_limit=float(upper),
        max_effort=float(limits.effort) if limits is not None else 0.0,
        max_velocity=float(limits.velocity) if limits is not None else 0.0,
    )


def _collision_shape(geometry: Geometry) -> Shape | None:
    if geometry.type == "sphere":
        return Sphere(radius=geometry.radius)
    if geometry.type == "box":
        return Box(size=geometry.size)
    if geometry.type == "cylinder":
        return Cylinder(radius=geometry.radius, length=geometry.length)
    if geometry.mesh_data is not None:
        vertices, faces = geometry.mesh_data
        return Mesh(vertices=vertices, faces=faces)
    extents = geometry.extents()
    if extents is None:
        return None
    return Box(size=(float(extents[0]), float(extents[1]), float(extents[2])))


def _scaled_origin(geometry: Geometry, scale: np.ndarray) -> np.ndarray:
    origin = origin_transform(geometry.origin.xyz, geometry.origin.rpy)
    return make_transform(origin[:3, 3] * scale, origin[:3, :3])


def _union_bounds(
    geometries: list[Geometry], part_pose: np.ndarray, scale: np.ndarray
) -> Bounds | None:
    result: Bounds | None = None
    for geometry in geometries:
        extents = geometry.extents()
        if extents is None:
            continue
        origin = _scaled_origin(geometry, scale)
        geometry_scale = np.abs(origin[:3, :3].T) @ scale
        center = make_transform(geometry.center() * geometry_scale)
        bounds = oriented_bounds(extents * 0.5 * geometry_scale, part_pose @ origin @ center)
        result = bounds if result is None else result.union(bounds)
    return result
