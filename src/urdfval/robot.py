"""Discovered robot graph: joints, links, colliders and the part hierarchy."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from urdfval.defects import JointConfiguration
from urdfval.errors import EngineError
from urdfval.joints import JointActuator
from urdfval.links import LinkGeometry
from urdfval.scene import ColliderRecord, JointKind, Scene

logger = logging.getLogger(__name__)


class RobotModel:
    """Topology of one robot, fixed at discovery time.

    Joint and link *state* changes through their actuators; the set of parts,
    joints, links and colliders and the parent relation never change.
    """

    def __init__(
        self,
        root: str,
        name: str,
        parents: Mapping[str, str | None],
        joints: list[JointActuator],
        links: list[LinkGeometry],
        colliders: list[ColliderRecord],
    ) -> None:
        self.root = root
        self.name = name
        self.parents: Mapping[str, str | None] = MappingProxyType(dict(parents))
        self.joints: tuple[JointActuator, ...] = tuple(joints)
        self.links: tuple[LinkGeometry, ...] = tuple(links)
        self.colliders: tuple[ColliderRecord, ...] = tuple(colliders)
        self._joints_by_name = {j.name: j for j in self.joints}
        self._links_by_name = {link.name: link for link in self.links}

    def parent_of(self, part: str) -> str | None:
        return self.parents.get(part)

    def joint(self, name: str) -> JointActuator:
        try:
            return self._joints_by_name[name]
        except KeyError:
            raise EngineError(f"Unknown joint: {name!r}") from None

    def link(self, name: str) -> LinkGeometry:
        try:
            return self._links_by_name[name]
        except KeyError:
            raise EngineError(f"Unknown link: {name!r}") from None

    def find_link(self, name: str) -> LinkGeometry | None:
        return self._links_by_name.get(name)

    def joint_configuration(self) -> tuple[JointConfiguration, ...]:
        return tuple(JointConfiguration(j.name, j.current_angle) for j in self.joints)


def build_robot_model(scene: Scene, root: str, name: str | None = None) -> RobotModel:
    """Walk the structure source once and build typed joint/link records.

    Fixed joints carry no actuator and are left out of the joint list.
    """
    structure = scene.robot_structure(root)

    joints: list[JointActuator] = []
    for record in structure.joints:
        if record.kind is JointKind.FIXED:
            continue
        actuator = JointActuator(record)
        actuator.attach(scene)
        joints.append(actuator)
    logger.info("Found %d joints", len(joints))

    links: list[LinkGeometry] = []
    for part in structure.visual_parts:
        link = LinkGeometry(part)
        link.attach(scene)
        links.append(link)
    logger.info("Found %d links", len(links))
    logger.info("Found %d colliders", len(structure.colliders))

    return RobotModel(
        root=structure.root,
        name=name or structure.root,
        parents={p.name: p.parent for p in structure.parts},
        joints=joints,
        links=links,
        colliders=list(structure.colliders),
    )
