"""URDF reader producing ``RobotDescription`` models.

Revolute limits are converted from radians to degrees; prismatic limits stay
in meters. Continuous joints get the default unlimited range. Multi-DOF
``floating`` and ``planar`` joints are represented as spherical joints.
"""

from __future__ import annotations

import math
from pathlib import Path

from lxml import etree
from pydantic import ValidationError as PydanticValidationError

from urdfval.errors import ParseError
from urdfval.models import RobotDescription
from urdfval.parser import finalize_description
from urdfval.warning_policy import WarningPolicy, emit_warning

_JOINT_TYPE_MAP: dict[str, str] = {
    "revolute": "revolute",
    "continuous": "continuous",
    "prismatic": "prismatic",
    "fixed": "fixed",
    "floating": "spherical",
    "planar": "spherical",
}


def load_urdf(
    source: str | Path, *, warning_policy: WarningPolicy | None = None
) -> RobotDescription:
    """Load a URDF file (or URDF XML text) into a RobotDescription.

    Raises:
        ParseError: On XML syntax errors or structural problems.
    """
    try:
        if isinstance(source, Path):
            root = etree.parse(str(source)).getroot()
        else:
            root = etree.fromstring(source.encode("utf-8"))
    except (OSError, etree.XMLSyntaxError) as e:
        raise ParseError(f"Invalid URDF: {e}") from e

    if root.tag != "robot":
        raise ParseError(f"Expected <robot> root element, found <{root.tag}>")

    parts = [_parse_link(link) for link in root.findall("link")]
    joints = [_parse_joint(joint, warning_policy) for joint in root.findall("joint")]

    data = {
        "version": "0.1",
        "name": root.get("name") or "robot",
        "parts": parts,
        "joints": joints,
    }
    try:
        description = RobotDescription(**data)
    except PydanticValidationError as e:
        raise ParseError(f"URDF structure invalid:\n{e}") from e

    base_dir = source.parent if isinstance(source, Path) else None
    return finalize_description(description, base_dir=base_dir, warning_policy=warning_policy)


def _parse_link(link) -> dict:
    name = link.get("name")
    if not name:
        raise ParseError("<link> without a name")

    visuals = []
    for i, visual in enumerate(link.findall("visual")):
        geometry = _parse_geometry(visual, f"{name}/visual_{i}")
        if geometry is not None:
            visuals.append(geometry)

    collisions = []
    for i, collision in enumerate(link.findall("collision")):
        geometry = _parse_geometry(collision, f"{name}/collision_{i}")
        if geometry is not None:
            collisions.append(geometry)

    return {"name": name, "visuals": visuals, "collisions": collisions}


def _parse_geometry(element, default_name: str) -> dict | None:
    geometry_elem = element.find("geometry")
    if geometry_elem is None or len(geometry_elem) == 0:
        return None
    shape = geometry_elem[0]

    data: dict = {
        "name": element.get("name") or default_name,
        "origin": _parse_origin(element.find("origin")),
    }
    if shape.tag == "box":
        data["type"] = "box"
        data["size"] = _floats(shape.get("size", "0 0 0"), 3, "box size")
    elif shape.tag == "sphere":
        data["type"] = "sphere"
        data["radius"] = _float(shape.get("radius"), "sphere radius")
    elif shape.tag == "cylinder":
        data["type"] = "cylinder"
        data["radius"] = _float(shape.get("radius"), "cylinder radius")
        data["length"] = _float(shape.get("length"), "cylinder length")
    elif shape.tag == "mesh":
        data["type"] = "mesh"
        data["filename"] = shape.get("filename")
        data["scale"] = _floats(shape.get("scale", "1 1 1"), 3, "mesh scale")
    else:
        raise ParseError(f"Unsupported geometry <{shape.tag}> in {default_name}")
    return data


def _parse_origin(origin) -> dict:
    if origin is None:
        return {}
    return {
        "xyz": _floats(origin.get("xyz", "0 0 0"), 3, "origin xyz"),
        "rpy": _floats(origin.get("rpy", "0 0 0"), 3, "origin rpy"),
    }


def _parse_joint(joint, warning_policy: WarningPolicy | None) -> dict:
    name = joint.get("name")
    joint_type = joint.get("type")
    parent_elem = joint.find("parent")
    child_elem = joint.find("child")
    if not name or parent_elem is None or child_elem is None:
        raise ParseError(f"Joint {name!r} must have a name, <parent> and <child>")

    mapped = _JOINT_TYPE_MAP.get(joint_type or "")
    if mapped is None:
        emit_warning(
            "W03",
            f"Joint {name!r}",
            f"unknown type {joint_type!r} treated as fixed",
            policy=warning_policy,
        )
        mapped = "fixed"

    data: dict = {
        "name": name,
        "type": mapped,
        "parent": parent_elem.get("link"),
        "child": child_elem.get("link"),
        "origin": _parse_origin(joint.find("origin")),
    }

    axis_elem = joint.find("axis")
    if axis_elem is not None:
        data["axis"] = _floats(axis_elem.get("xyz", "1 0 0"), 3, "joint axis")
    else:
        data["axis"] = (1.0, 0.0, 0.0)

    limit_elem = joint.find("limit")
    if limit_elem is not None:
        limits: dict = {
            "effort": _float(limit_elem.get("effort", "0"), "limit effort"),
            "velocity": _float(limit_elem.get("velocity", "0"), "limit velocity"),
        }
        if mapped in ("revolute", "prismatic"):
            convert = math.degrees if mapped == "revolute" else float
            lower = limit_elem.get("lower")
            upper = limit_elem.get("upper")
            limits["lower"] = convert(_float(lower, "limit lower")) if lower is not None else 0.0
            limits["upper"] = convert(_float(upper, "limit upper")) if upper is not None else 0.0
        data["limits"] = limits
    return data


def _float(raw: str | None, what: str) -> float:
    if raw is None:
        raise ParseError(f"Missing {what}")
    try:
        return float(raw)
    except ValueError:
        raise ParseError(f"Invalid {what}: {raw!r}")


def _floats(raw: str, count: int, what: str) -> tuple[float, ...]:
    values = raw.split()
    if len(values) != count:
        raise ParseError(f"Invalid {what}: expected {count} values, got {raw!r}")
    return tuple(_float(v, what) for v in values)
