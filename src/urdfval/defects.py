"""Defect and report data model produced by validation passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ErrorType(str, Enum):
    SELF_COLLISION = "SelfCollision"
    GEOMETRY_GAP = "GeometryGap"
    # Reserved for checks not implemented yet.
    UNREACHABLE_CONFIGURATION = "UnreachableConfiguration"
    SCALE_MISMATCH = "ScaleMismatch"
    JOINT_LIMIT_COLLISION = "JointLimitCollision"
    MISSING_MESH = "MissingMesh"
    INVALID_SCALE = "InvalidScale"


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


_SEVERITY_MARKERS: dict[Severity, str] = {
    Severity.INFO: "i",
    Severity.WARNING: "⚠️",
    Severity.ERROR: "❌",
}


@dataclass(frozen=True)
class ValidationError:
    """A single defect found by a validation pass.

    ``timestamp`` is excluded from comparisons so that two passes over the
    same robot state produce equal defect lists.
    """

    error_type: ErrorType
    severity: Severity
    message: str
    affected_objects: tuple[str, ...] = ()
    penetration_depth: float = 0.0
    joint_name: str | None = None
    joint_angle: float | None = None
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self) -> None:
        if len(self.affected_objects) > 2:
            raise ValueError(
                f"A defect names at most 2 parts, got {len(self.affected_objects)}"
            )

    def __str__(self) -> str:
        marker = _SEVERITY_MARKERS[self.severity]
        return f"{marker} [{self.error_type.value}] {self.message}"

    def to_dict(self) -> dict[str, object]:
        return {
            "error_type": self.error_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "affected_objects": list(self.affected_objects),
            "penetration_depth": self.penetration_depth,
            "joint_name": self.joint_name,
            "joint_angle": self.joint_angle,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class JointConfiguration:
    joint_name: str
    angle: float


@dataclass(frozen=True)
class PassResult:
    """Outcome of one validation pass, shared read-only with consumers."""

    errors: tuple[ValidationError, ...] = ()
    error_count: int = 0
    warning_count: int = 0
    pass_index: int = 0


@dataclass(frozen=True)
class ValidationReport:
    """Point-in-time snapshot of the latest pass and the joint configuration."""

    robot_name: str
    total_joints: int
    total_links: int
    error_count: int
    warning_count: int
    errors: tuple[ValidationError, ...] = ()
    configuration: tuple[JointConfiguration, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)


def count_by_severity(errors: tuple[ValidationError, ...] | list[ValidationError]) -> tuple[int, int]:
    """Return ``(error_count, warning_count)`` for a defect list."""
    error_count = sum(1 for e in errors if e.severity is Severity.ERROR)
    warning_count = sum(1 for e in errors if e.severity is Severity.WARNING)
    return error_count, warning_count
