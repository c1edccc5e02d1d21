"""Validation engine: discovery, per-pass defect checks and consumer notification."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

import numpy as np

from urdfval.adjacency import AdjacencyClassifier
from urdfval.collision import FclQueryProvider, SpatialQueryProvider
from urdfval.config import EngineConfig
from urdfval.defects import (
    ErrorType,
    PassResult,
    Severity,
    ValidationError,
    ValidationReport,
    count_by_severity,
)
from urdfval.errors import DiscoveryError, EngineError
from urdfval.joints import JointActuator
from urdfval.links import LinkGeometry
from urdfval.robot import RobotModel, build_robot_model
from urdfval.scene import ColliderRecord, Scene

logger = logging.getLogger(__name__)

# "Still searching" log cadence during discovery, in seconds.
_SEARCH_LOG_PERIOD = 2.0


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DISCOVERING = "discovering"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class SweepSample:
    joint_name: str
    angle: float
    errors: tuple[ValidationError, ...]


def _pair_id(a: ColliderRecord, b: ColliderRecord) -> str:
    first, second = sorted((a.part, b.part))
    return f"{first}|{second}"


class ValidationEngine:
    """Runs self-collision, gap and scale checks over a discovered robot.

    Call ``start()`` to discover the robot (polling the scene until it
    appears or the discovery timeout passes), then ``run_validation()`` on
    demand or ``tick()`` from an external clock for continuous validation.
    """

    def __init__(
        self,
        scene: Scene,
        config: EngineConfig | None = None,
        *,
        query: SpatialQueryProvider | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.scene = scene
        self.config = config or EngineConfig()
        self.query: SpatialQueryProvider = query or FclQueryProvider()
        self._clock = clock
        self._sleep = sleep

        self.state = EngineState.UNINITIALIZED
        self.discovery_progress = 0.0
        self.model: RobotModel | None = None
        self.pass_count = 0

        self._adjacency: AdjacencyClassifier | None = None
        self._result = PassResult()
        self._reported_pairs: set[str] = set()
        self._last_validation_time: float | None = None
        self._running = False

        self._on_initialized: list[Callable[[], None]] = []
        self._on_validation_complete: list[Callable[[PassResult], None]] = []
        self._on_error_detected: list[Callable[[ValidationError], None]] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.state is EngineState.READY

    @property
    def result(self) -> PassResult:
        return self._result

    @property
    def current_errors(self) -> tuple[ValidationError, ...]:
        return self._result.errors

    @property
    def error_count(self) -> int:
        return self._result.error_count

    @property
    def warning_count(self) -> int:
        return self._result.warning_count

    @property
    def joints(self) -> tuple[JointActuator, ...]:
        return self.model.joints if self.model is not None else ()

    @property
    def links(self) -> tuple[LinkGeometry, ...]:
        return self.model.links if self.model is not None else ()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_initialized(self, callback: Callable[[], None]) -> Callable[[], None]:
        return _subscribe(self._on_initialized, callback)

    def subscribe_validation_complete(
        self, callback: Callable[[PassResult], None]
    ) -> Callable[[], None]:
        return _subscribe(self._on_validation_complete, callback)

    def subscribe_error_detected(
        self, callback: Callable[[ValidationError], None]
    ) -> Callable[[], None]:
        return _subscribe(self._on_error_detected, callback)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Discover the robot, build the model and run the first pass.

        Returns False (and leaves the engine FAILED) when no robot shows up
        within ``discovery_timeout``.
        """
        if self.state is not EngineState.UNINITIALIZED:
            raise EngineError(f"Cannot start engine in state {self.state.value!r}")

        logger.info("URDF quality validator starting")
        self.state = EngineState.DISCOVERING
        try:
            root = self._wait_for_robot()
        except DiscoveryError as e:
            logger.error("%s. Validator disabled.", e)
            self.state = EngineState.FAILED
            return False

        logger.info("Waiting for robot to settle...")
        if self.config.settle_delay > 0:
            self._sleep(self.config.settle_delay)

        self._initialize(root)
        return True

    def set_robot(self, root: str) -> None:
        """Initialize against a known robot root, skipping the search."""
        if self.state in (EngineState.FAILED, EngineState.DISCOVERING):
            raise EngineError(f"Cannot set robot in state {self.state.value!r}")
        self._initialize(root)

    def _wait_for_robot(self) -> str:
        timeout = self.config.discovery_timeout
        interval = self.config.discovery_poll_interval
        logger.info("Searching for robot...")

        started = self._clock()
        next_report = _SEARCH_LOG_PERIOD
        while True:
            root = self.scene.find_robot(self.config.robot_name)
            elapsed = self._clock() - started
            if root is not None:
                self.discovery_progress = 1.0
                logger.info("Robot found: %s", root)
                return root
            if elapsed >= timeout:
                self.discovery_progress = 1.0
                raise DiscoveryError(f"Robot not found after {timeout:g}s")

            self.discovery_progress = elapsed / timeout
            if elapsed >= next_report:
                logger.info("Still searching... (%.1fs / %gs)", elapsed, timeout)
                next_report += _SEARCH_LOG_PERIOD
            self._sleep(interval)

    def _initialize(self, root: str) -> None:
        logger.info("Discovering robot structure...")
        self.model = build_robot_model(self.scene, root, self.scene.robot_name(root))
        self._adjacency = AdjacencyClassifier(
            self.model.parents,
            max_depth=self.config.adjacency_max_depth,
            walk_limit=self.config.hierarchy_walk_limit,
        )
        self.state = EngineState.READY
        self.run_validation()
        self._last_validation_time = self._clock()
        logger.info(
            "Validator ready: %d joints, %d links",
            len(self.model.joints),
            len(self.model.links),
        )
        for callback in list(self._on_initialized):
            callback()

    # ------------------------------------------------------------------
    # Validation passes
    # ------------------------------------------------------------------

    def tick(self, now: float | None = None) -> PassResult | None:
        """Run a pass if continuous validation is due; return it, else None."""
        if not self.is_ready or not self.config.continuous_validation:
            return None
        if now is None:
            now = self._clock()
        if (
            self._last_validation_time is not None
            and now - self._last_validation_time < self.config.validation_interval
        ):
            return None
        result = self.run_validation()
        self._last_validation_time = now
        return result

    def run_validation(self) -> PassResult | None:
        """Run all checks over the current state; None unless the engine is READY."""
        if not self.is_ready:
            return None
        if self._running:
            raise EngineError("A validation pass is already in progress")

        self._running = True
        try:
            self._reported_pairs.clear()
            errors: list[ValidationError] = []
            self._check_self_collisions(errors)
            self._check_geometry_gaps(errors)
            self._check_scale_issues(errors)

            error_count, warning_count = count_by_severity(errors)
            self.pass_count += 1
            result = PassResult(
                errors=tuple(errors),
                error_count=error_count,
                warning_count=warning_count,
                pass_index=self.pass_count,
            )
            self._result = result
            self._apply_visual_feedback(result.errors)
        finally:
            self._running = False

        logger.debug(
            "Pass %d: %d errors, %d warnings",
            result.pass_index,
            result.error_count,
            result.warning_count,
        )
        for error in result.errors:
            for callback in list(self._on_error_detected):
                callback(error)
        for callback in list(self._on_validation_complete):
            callback(result)
        return result

    def _check_self_collisions(self, errors: list[ValidationError]) -> None:
        assert self.model is not None and self._adjacency is not None
        colliders = self.model.colliders
        threshold = self.config.penetration_threshold

        # Every collider pair of two parts is queried before the part pair
        # is reported, so the defect carries the deepest penetration.
        deepest: dict[str, tuple[str, str, float]] = {}
        for i in range(len(colliders)):
            for j in range(i + 1, len(colliders)):
                a = colliders[i]
                b = colliders[j]

                if a.part == b.part:
                    continue
                if self._adjacency.are_adjacent(a.part, b.part):
                    continue

                overlapping, penetration = self.query.overlap(
                    self.scene.collider_shape(a.id),
                    self.scene.collider_pose(a.id),
                    self.scene.collider_shape(b.id),
                    self.scene.collider_pose(b.id),
                )
                if not overlapping or penetration <= threshold:
                    continue

                pair_id = _pair_id(a, b)
                found = deepest.get(pair_id)
                if found is None:
                    deepest[pair_id] = (a.part, b.part, float(penetration))
                elif penetration > found[2]:
                    deepest[pair_id] = (found[0], found[1], float(penetration))

        for pair_id, (part_a, part_b, penetration) in deepest.items():
            if pair_id in self._reported_pairs:
                continue
            self._reported_pairs.add(pair_id)
            severity = (
                Severity.ERROR
                if penetration > self.config.collision_error_depth
                else Severity.WARNING
            )
            errors.append(
                ValidationError(
                    error_type=ErrorType.SELF_COLLISION,
                    severity=severity,
                    message=f"{part_a} ↔ {part_b}",
                    affected_objects=(part_a, part_b),
                    penetration_depth=penetration,
                )
            )

    def _check_geometry_gaps(self, errors: list[ValidationError]) -> None:
        assert self.model is not None
        for joint in self.model.joints:
            parent = self.model.parent_of(joint.part)
            if parent is None:
                continue

            parent_bounds = self.scene.world_bounds(parent)
            child_bounds = self.scene.world_bounds(joint.part)
            if parent_bounds is None or child_bounds is None:
                logger.debug("Gap check skipped for joint %s: no renderable bounds", joint.name)
                continue

            if self.query.bounds_intersect(parent_bounds, child_bounds):
                continue
            gap = self.query.closest_point_distance(parent_bounds, child_bounds)
            if gap > self.config.max_allowed_gap:
                errors.append(
                    ValidationError(
                        error_type=ErrorType.GEOMETRY_GAP,
                        severity=Severity.WARNING,
                        message=f"Gap of {gap * 100:.1f}cm between {parent} and {joint.part}",
                        affected_objects=(parent, joint.part),
                        joint_name=joint.name,
                        joint_angle=joint.current_angle,
                    )
                )

    def _check_scale_issues(self, errors: list[ValidationError]) -> None:
        assert self.model is not None
        for link in self.model.links:
            size = link.world_size()

            max_dim = float(np.max(size))
            if max_dim > self.config.max_link_dimension:
                errors.append(
                    ValidationError(
                        error_type=ErrorType.INVALID_SCALE,
                        severity=Severity.ERROR,
                        message=f"{link.name} is very large ({max_dim:.1f}m). Check scale/units.",
                        affected_objects=(link.name,),
                    )
                )

            positive = size[size > 0]
            if positive.size == 0:
                continue
            min_dim = float(np.min(positive))
            if min_dim < self.config.min_link_dimension:
                errors.append(
                    ValidationError(
                        error_type=ErrorType.INVALID_SCALE,
                        severity=Severity.WARNING,
                        message=f"{link.name} is very small ({min_dim * 1000:.2f}mm)",
                        affected_objects=(link.name,),
                    )
                )

    def _apply_visual_feedback(self, errors: Iterable[ValidationError]) -> None:
        assert self.model is not None
        for link in self.model.links:
            link.clear_error_state()

        for error in errors:
            for name in error.affected_objects:
                link = self.model.find_link(name)
                if link is None:
                    continue
                link.set_error_state(
                    link.has_error or error.severity is Severity.ERROR,
                    link.has_warning or error.severity is Severity.WARNING,
                )

    # ------------------------------------------------------------------
    # Pose sampling
    # ------------------------------------------------------------------

    def sweep(
        self, joint_names: Iterable[str] | None = None, samples: int = 3
    ) -> list[SweepSample]:
        """Validate each selected joint at evenly spaced positions over its range.

        Other joints are held at their current angles; each swept joint is
        restored afterwards and a final pass re-validates the restored pose.
        """
        model = self._require_model()
        if samples < 1:
            raise EngineError(f"samples must be >= 1, got {samples}")
        selected = (
            [model.joint(name) for name in joint_names]
            if joint_names is not None
            else list(model.joints)
        )

        results: list[SweepSample] = []
        for joint in selected:
            if samples == 1:
                targets = [(joint.lower_limit + joint.upper_limit) / 2.0]
            else:
                targets = np.linspace(joint.lower_limit, joint.upper_limit, samples).tolist()
            prior = joint.current_angle
            try:
                for target in targets:
                    joint.set_angle(target)
                    result = self.run_validation()
                    results.append(
                        SweepSample(
                            joint_name=joint.name,
                            angle=joint.current_angle,
                            errors=result.errors if result is not None else (),
                        )
                    )
            finally:
                joint.set_angle(prior)
        self.run_validation()
        return results

    # ------------------------------------------------------------------
    # Actuation API
    # ------------------------------------------------------------------

    def _require_model(self) -> RobotModel:
        if self.model is None or not self.is_ready:
            raise EngineError(f"Engine is not ready (state {self.state.value!r})")
        return self.model

    def set_joint_angle(self, name: str, degrees: float) -> None:
        self._require_model().joint(name).set_angle(degrees)

    def set_joint_normalized(self, name: str, position: float) -> None:
        self._require_model().joint(name).set_normalized_position(position)

    def set_joint_to_min(self, name: str) -> None:
        self._require_model().joint(name).set_to_min()

    def set_joint_to_max(self, name: str) -> None:
        self._require_model().joint(name).set_to_max()

    def set_joint_to_mid(self, name: str) -> None:
        self._require_model().joint(name).set_to_mid()

    def reset_joint(self, name: str) -> None:
        self._require_model().joint(name).reset_to_original()

    def reset_all_joints(self) -> None:
        for joint in self._require_model().joints:
            joint.reset_to_original()

    def set_link_scale(self, name: str, x: float, y: float, z: float) -> None:
        self._require_model().link(name).set_scale(x, y, z)

    def set_link_uniform_scale(self, name: str, scale: float) -> None:
        self._require_model().link(name).set_uniform_scale(scale)

    def reset_all_scales(self) -> None:
        for link in self._require_model().links:
            link.reset_scale()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def generate_report(self) -> ValidationReport:
        model = self.model
        return ValidationReport(
            robot_name=model.name if model is not None else "Unknown",
            total_joints=len(model.joints) if model is not None else 0,
            total_links=len(model.links) if model is not None else 0,
            error_count=self._result.error_count,
            warning_count=self._result.warning_count,
            errors=self._result.errors,
            configuration=model.joint_configuration() if model is not None else (),
        )

    def export_report(self, path: Path | None = None) -> Path:
        from urdfval.report import write_report

        written = write_report(self.generate_report(), path)
        logger.info("Report saved: %s", written)
        return written


def _subscribe(registry: list, callback: Callable) -> Callable[[], None]:
    registry.append(callback)

    def unsubscribe() -> None:
        if callback in registry:
            registry.remove(callback)

    return unsubscribe
