"""Link geometry: baseline footprint, per-axis scale and derived size."""

from __future__ import annotations

import numpy as np

from urdfval.collision import Bounds
from urdfval.scene import Scene

MIN_SCALE = 0.1
MAX_SCALE = 3.0


class LinkGeometry:
    """Wraps one rigid link with renderable geometry."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.original_local_scale = np.ones(3, dtype=np.float64)
        self.original_world_size = np.zeros(3, dtype=np.float64)
        self.scale_x = 1.0
        self.scale_y = 1.0
        self.scale_z = 1.0
        self.has_error = False
        self.has_warning = False
        self._scene: Scene | None = None

    @property
    def is_initialized(self) -> bool:
        return self._scene is not None

    def attach(self, scene: Scene) -> None:
        self._scene = scene
        self.original_local_scale = scene.local_scale(self.name)
        self.original_world_size = self.world_size()

    def set_scale(self, x: float, y: float, z: float) -> None:
        self.scale_x = float(np.clip(x, MIN_SCALE, MAX_SCALE))
        self.scale_y = float(np.clip(y, MIN_SCALE, MAX_SCALE))
        self.scale_z = float(np.clip(z, MIN_SCALE, MAX_SCALE))
        if self._scene is None:
            return
        multiplier = np.array([self.scale_x, self.scale_y, self.scale_z])
        self._scene.set_local_scale(self.name, self.original_local_scale * multiplier)

    def set_uniform_scale(self, scale: float) -> None:
        self.set_scale(scale, scale, scale)

    def reset_scale(self) -> None:
        self.set_scale(1.0, 1.0, 1.0)

    def world_size(self) -> np.ndarray:
        """Mesh bounding size times the current world scale; zero without a mesh."""
        if self._scene is None:
            return np.zeros(3, dtype=np.float64)
        mesh_size = self._scene.mesh_size(self.name)
        if mesh_size is None:
            return np.zeros(3, dtype=np.float64)
        return mesh_size * np.abs(self._scene.world_scale(self.name))

    def volume(self) -> float:
        return float(np.prod(self.world_size()))

    def world_bounds(self) -> Bounds | None:
        if self._scene is None:
            return None
        return self._scene.world_bounds(self.name)

    def set_error_state(self, error: bool, warning: bool = False) -> None:
        self.has_error = error
        self.has_warning = warning

    def clear_error_state(self) -> None:
        self.has_error = False
        self.has_warning = False

    def __repr__(self) -> str:
        return (
            f"LinkGeometry({self.name!r}, scale=({self.scale_x:g}, {self.scale_y:g}, "
            f"{self.scale_z:g}))"
        )
