"""Shared fixtures for urdfval tests."""

from __future__ import annotations

import pytest

from urdfval.config import EngineConfig
from urdfval.engine import ValidationEngine
from urdfval.models import RobotDescription
from urdfval.parser import parse_robot_yaml
from urdfval.scene import KinematicScene

# Chain base -> a -> b -> c -> d, all revolute about z, unit cubes stacked on z.
# c is folded back into base and d into a (both non-adjacent pairs), and c's
# visual hangs 1.2m below b, so joint j_c opens a gap.
SCENARIO_YAML = """\
version: "0.1"
name: scenario
parts:
  - name: base
    visuals: [{type: box, size: [1, 1, 1]}]
    collisions: [{type: box, size: [1, 1, 1]}]
  - name: a
    visuals: [{type: box, size: [1, 1, 1]}]
    collisions: [{type: box, size: [1, 1, 1]}]
  - name: b
    visuals: [{type: box, size: [1, 1, 1]}]
    collisions: [{type: box, size: [1, 1, 1]}]
  - name: c
    visuals: [{type: box, size: [0.2, 0.2, 0.2]}]
    collisions: [{type: box, size: [0.2, 0.2, 0.2]}]
  - name: d
    visuals:
      - type: box
        size: [0.2, 0.2, 1.0]
        origin: {xyz: [0, 0, -0.4]}
    collisions: [{type: box, size: [0.2, 0.2, 0.2]}]
joints:
  - name: j_a
    type: revolute
    parent: base
    child: a
    origin: {xyz: [0, 0, 1]}
    limits: {lower: -90, upper: 90}
  - name: j_b
    type: revolute
    parent: a
    child: b
    origin: {xyz: [0, 0, 1]}
    limits: {lower: -90, upper: 90}
  - name: j_c
    type: revolute
    parent: b
    child: c
    origin: {xyz: [0, 0, -1.8]}
    limits: {lower: -90, upper: 90}
  - name: j_d
    type: revolute
    parent: c
    child: d
    origin: {xyz: [0, 0, 0.8]}
    limits: {lower: -90, upper: 90}
"""

# Two boxes side by side along x; the arm swings about z at the shoulder.
ARM_YAML = """\
version: "0.1"
name: arm
parts:
  - name: base
    visuals: [{type: box, size: [0.4, 0.4, 0.4]}]
    collisions: [{type: box, size: [0.4, 0.4, 0.4]}]
  - name: upper
    visuals:
      - type: box
        size: [1.0, 0.2, 0.2]
        origin: {xyz: [0.5, 0, 0]}
    collisions:
      - type: box
        size: [1.0, 0.2, 0.2]
        origin: {xyz: [0.5, 0, 0]}
joints:
  - name: shoulder
    type: revolute
    parent: base
    child: upper
    origin: {xyz: [0.2, 0, 0]}
    axis: [0, 0, 1]
    limits: {lower: -90, upper: 90, effort: 12.5, velocity: 2.0}
    position: 10
"""

URDF_TEXT = """\
<?xml version="1.0"?>
<robot name="urdf_arm">
  <link name="base_link">
    <visual><geometry><box size="0.4 0.4 0.2"/></geometry></visual>
    <collision><geometry><box size="0.4 0.4 0.2"/></geometry></collision>
  </link>
  <link name="shoulder_link">
    <visual>
      <origin xyz="0 0 0.25" rpy="0 0 0"/>
      <geometry><cylinder radius="0.05" length="0.5"/></geometry>
    </visual>
    <collision>
      <origin xyz="0 0 0.25" rpy="0 0 0"/>
      <geometry><cylinder radius="0.05" length="0.5"/></geometry>
    </collision>
  </link>
  <link name="slider_link">
    <visual><geometry><sphere radius="0.05"/></geometry></visual>
  </link>
  <link name="wrist_link">
    <visual><geometry><mesh filename="package://arm/wrist.stl" scale="1 1 1"/></geometry></visual>
  </link>
  <link name="tool_link"/>
  <joint name="shoulder" type="revolute">
    <parent link="base_link"/>
    <child link="shoulder_link"/>
    <origin xyz="0 0 0.1" rpy="0 0 0"/>
    <axis xyz="0 1 0"/>
    <limit lower="-1.5707963267948966" upper="1.5707963267948966" effort="30" velocity="1.5"/>
  </joint>
  <joint name="slide" type="prismatic">
    <parent link="shoulder_link"/>
    <child link="slider_link"/>
    <origin xyz="0 0 0.5"/>
    <axis xyz="0 0 1"/>
    <limit lower="0" upper="0.2" effort="10" velocity="0.1"/>
  </joint>
  <joint name="wrist" type="continuous">
    <parent link="slider_link"/>
    <child link="wrist_link"/>
    <axis xyz="0 0 1"/>
    <limit effort="5" velocity="3"/>
  </joint>
  <joint name="tool_mount" type="fixed">
    <parent link="wrist_link"/>
    <child link="tool_link"/>
  </joint>
</robot>
"""

# One link whose only geometry is a mesh file; {filename} and {scale} are filled in per test.
MESH_URDF = """\
<?xml version="1.0"?>
<robot name="beam_bot">
  <link name="beam">
    <visual><geometry><mesh filename="{filename}" scale="{scale}"/></geometry></visual>
    <collision><geometry><mesh filename="{filename}" scale="{scale}"/></geometry></collision>
  </link>
  <link name="tip">
    <visual><geometry><box size="0.2 0.2 0.2"/></geometry></visual>
  </link>
  <joint name="hinge" type="revolute">
    <parent link="beam"/>
    <child link="tip"/>
    <origin xyz="0 0 0.5"/>
    <axis xyz="0 0 1"/>
    <limit lower="-1" upper="1" effort="1" velocity="1"/>
  </joint>
</robot>
"""


class FakeClock:
    """Deterministic clock whose ``sleep`` advances time."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_engine(description, clock: FakeClock | None = None, **config) -> ValidationEngine:
    """Build an engine over a single-robot scene and run discovery."""
    clock = clock or FakeClock()
    config.setdefault("settle_delay", 0.0)
    engine = ValidationEngine(
        KinematicScene([description]),
        EngineConfig(**config),
        clock=clock,
        sleep=clock.sleep,
    )
    assert engine.start()
    return engine


def box_part(name: str, size, xyz=(0.0, 0.0, 0.0), collide: bool = True) -> dict:
    geometry = {"type": "box", "size": list(size), "origin": {"xyz": list(xyz)}}
    part = {"name": name, "visuals": [geometry]}
    if collide:
        part["collisions"] = [dict(geometry)]
    return part


@pytest.fixture
def scenario_yaml() -> str:
    return SCENARIO_YAML


@pytest.fixture
def arm_yaml() -> str:
    return ARM_YAML


@pytest.fixture
def urdf_text() -> str:
    return URDF_TEXT


@pytest.fixture
def mesh_urdf() -> str:
    return MESH_URDF


@pytest.fixture
def scenario_description():
    return parse_robot_yaml(SCENARIO_YAML)


@pytest.fixture
def arm_description():
    return parse_robot_yaml(ARM_YAML)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scenario_engine(scenario_description, clock) -> ValidationEngine:
    return make_engine(scenario_description, clock)


@pytest.fixture
def build_engine(clock):
    def _build(description, **config) -> ValidationEngine:
        return make_engine(description, clock, **config)

    return _build


@pytest.fixture
def describe():
    """Build a RobotDescription from part dicts chained by joints.

    ``joints`` entries are ``(name, parent, child, extra)`` tuples where
    ``extra`` is merged into the joint dict (type defaults to revolute).
    """

    def _describe(name, parts, joints) -> RobotDescription:
        joint_dicts = []
        for joint_name, parent, child, extra in joints:
            joint = {"name": joint_name, "type": "revolute", "parent": parent, "child": child}
            joint.update(extra)
            joint_dicts.append(joint)
        return RobotDescription(name=name, parts=parts, joints=joint_dicts)

    return _describe


@pytest.fixture
def box():
    return box_part
