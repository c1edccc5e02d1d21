"""Homogeneous transform helpers for forward kinematics."""

from __future__ import annotations

import math

import numpy as np


def rpy_to_rotation_matrix(rpy: np.ndarray) -> np.ndarray:
    """Convert roll-pitch-yaw angles (radians) to a rotation matrix.

    Combined rotation: R = R_z * R_y * R_x
    """
    roll, pitch, yaw = rpy

    R_x = np.array(
        [
            [1.0, 0.0, 0.0],
            [0.0, math.cos(roll), -math.sin(roll)],
            [0.0, math.sin(roll), math.cos(roll)],
        ]
    )
    R_y = np.array(
        [
            [math.cos(pitch), 0.0, math.sin(pitch)],
            [0.0, 1.0, 0.0],
            [-math.sin(pitch), 0.0, math.cos(pitch)],
        ]
    )
    R_z = np.array(
        [
            [math.cos(yaw), -math.sin(yaw), 0.0],
            [math.sin(yaw), math.cos(yaw), 0.0],
            [0.0, 0.0, 1.0],
        ]
    )
    return R_z @ R_y @ R_x


def axis_angle_matrix(axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotation matrix for ``angle`` radians about ``axis`` (Rodrigues)."""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    x, y, z = axis
    K = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    return np.eye(3) + math.sin(angle) * K + (1.0 - math.cos(angle)) * (K @ K)


def make_transform(xyz: np.ndarray, rotation: np.ndarray | None = None) -> np.ndarray:
    """Build a 4x4 transform from a translation and optional 3x3 rotation."""
    T = np.eye(4, dtype=np.float64)
    if rotation is not None:
        T[:3, :3] = rotation
    T[:3, 3] = np.asarray(xyz, dtype=np.float64)
    return T


def origin_transform(xyz: tuple[float, float, float], rpy: tuple[float, float, float]) -> np.ndarray:
    return make_transform(np.array(xyz), rpy_to_rotation_matrix(np.array(rpy)))


def joint_motion(kind: str, axis: tuple[float, float, float], q: float) -> np.ndarray:
    """Transform contributed by a joint at coordinate ``q``.

    Rotational joints take ``q`` in degrees; prismatic joints take meters.
    Fixed and spherical joints contribute no motion.
    """
    if kind in ("revolute", "continuous"):
        return make_transform(np.zeros(3), axis_angle_matrix(np.array(axis), math.radians(q)))
    if kind == "prismatic":
        direction = np.asarray(axis, dtype=np.float64)
        direction = direction / np.linalg.norm(direction)
        return make_transform(direction * q)
    return np.eye(4, dtype=np.float64)
