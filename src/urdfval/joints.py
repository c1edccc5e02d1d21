"""Joint actuation: limit clamping and angle <-> normalized position mapping."""

from __future__ import annotations

from urdfval.scene import JointKind, JointRecord, Scene

# Ranges narrower than this are treated as degenerate.
RANGE_EPSILON = 0.001


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


class JointActuator:
    """Wraps one movable joint of a discovered robot.

    Angles are degrees for rotational joints and meters for prismatic ones.
    Out-of-range commands are clamped silently. Until ``attach`` has captured
    the baseline from the scene every setter is a no-op.
    """

    def __init__(self, record: JointRecord) -> None:
        self.name = record.name
        self.kind: JointKind = record.kind
        self.part = record.part
        self.lower_limit = record.lower_limit
        self.upper_limit = record.upper_limit
        self.max_effort = record.max_effort
        self.max_velocity = record.max_velocity
        self.current_angle = 0.0
        self.normalized_position = 0.5
        self._original_angle = 0.0
        self._scene: Scene | None = None

    @property
    def is_initialized(self) -> bool:
        return self._scene is not None

    @property
    def original_angle(self) -> float:
        return self._original_angle

    @property
    def range(self) -> float:
        return self.upper_limit - self.lower_limit

    def attach(self, scene: Scene) -> None:
        """Capture the baseline angle from the scene and enable actuation."""
        raw = scene.joint_position(self.name)
        self._original_angle = clamp(raw, self.lower_limit, self.upper_limit)
        self.current_angle = self._original_angle
        if self._original_angle != raw:
            scene.drive_joint(self.name, self._original_angle)
        self._update_normalized_position()
        self._scene = scene

    def set_angle(self, degrees: float) -> None:
        if self._scene is None:
            return
        self.current_angle = clamp(float(degrees), self.lower_limit, self.upper_limit)
        self._scene.drive_joint(self.name, self.current_angle)
        self._update_normalized_position()

    def set_normalized_position(self, position: float) -> None:
        position = clamp(float(position), 0.0, 1.0)
        self.set_angle(self.lower_limit + position * self.range)

    def set_to_min(self) -> None:
        self.set_angle(self.lower_limit)

    def set_to_max(self) -> None:
        self.set_angle(self.upper_limit)

    def set_to_mid(self) -> None:
        self.set_angle((self.lower_limit + self.upper_limit) / 2.0)

    def reset_to_original(self) -> None:
        self.set_angle(self._original_angle)

    def _update_normalized_position(self) -> None:
        if abs(self.range) > RANGE_EPSILON:
            self.normalized_position = (self.current_angle - self.lower_limit) / self.range
        else:
            self.normalized_position = 0.5

    def __repr__(self) -> str:
        return (
            f"JointActuator({self.name!r}, {self.kind.value}, "
            f"angle={self.current_angle:.3f}, limits=[{self.lower_limit}, {self.upper_limit}])"
        )
