"""Tests for robot discovery and the engine lifecycle."""

from __future__ import annotations

import logging

import pytest

from urdfval.config import EngineConfig
from urdfval.engine import EngineState, ValidationEngine
from urdfval.errors import EngineError
from urdfval.scene import KinematicScene


def _engine(scene, clock, **config):
    return ValidationEngine(scene, EngineConfig(**config), clock=clock, sleep=clock.sleep)


class TestTimeout:
    def test_fails_after_timeout(self, clock, caplog):
        engine = _engine(KinematicScene(), clock, discovery_timeout=3, discovery_poll_interval=0.5)
        with caplog.at_level(logging.INFO, logger="urdfval.engine"):
            assert engine.start() is False

        assert engine.state is EngineState.FAILED
        assert clock.sleeps == [0.5] * 6
        assert engine.discovery_progress == 1.0
        assert "Robot not found after 3s. Validator disabled." in caplog.text
        assert "Still searching" in caplog.text

    def test_failed_engine_never_validates(self, clock):
        engine = _engine(KinematicScene(), clock, discovery_timeout=1)
        engine.start()
        assert engine.run_validation() is None
        assert engine.tick(100.0) is None
        assert engine.pass_count == 0
        assert engine.current_errors == ()
        assert engine.model is None

    def test_failed_engine_cannot_be_revived(self, clock, scenario_description):
        scene = KinematicScene()
        engine = _engine(scene, clock, discovery_timeout=1)
        engine.start()
        scene.add_robot(scenario_description)
        with pytest.raises(EngineError, match="Cannot set robot"):
            engine.set_robot("base")
        with pytest.raises(EngineError, match="Cannot start"):
            engine.start()

    def test_report_without_robot(self, clock):
        engine = _engine(KinematicScene(), clock, discovery_timeout=1)
        engine.start()
        report = engine.generate_report()
        assert report.robot_name == "Unknown"
        assert (report.total_joints, report.total_links, report.error_count) == (0, 0, 0)


class TestDelayedRobot:
    def test_robot_appears_while_polling(self, clock, scenario_description):
        scene = KinematicScene()

        def sleep(seconds):
            clock.sleep(seconds)
            if len(clock.sleeps) == 3:
                scene.add_robot(scenario_description)

        engine = ValidationEngine(
            scene,
            EngineConfig(discovery_poll_interval=0.5, settle_delay=0.25),
            clock=clock,
            sleep=sleep,
        )
        assert engine.start() is True
        assert clock.sleeps == [0.5, 0.5, 0.5, 0.25]
        assert engine.is_ready
        assert engine.discovery_progress == 1.0
        assert engine.pass_count == 1
        assert engine.error_count == 2

    def test_progress_while_searching(self, clock, scenario_description):
        scene = KinematicScene()
        seen = []

        def sleep(seconds):
            seen.append(engine.discovery_progress)
            clock.sleep(seconds)
            if len(clock.sleeps) == 2:
                scene.add_robot(scenario_description)

        engine = ValidationEngine(
            scene,
            EngineConfig(discovery_timeout=4, discovery_poll_interval=1, settle_delay=0),
            clock=clock,
            sleep=sleep,
        )
        assert engine.start()
        assert seen == [0.0, 0.25]


class TestFindRobot:
    def test_by_name(self, clock, describe, box, arm_description):
        other = describe(
            "other", [box("o0", (1, 1, 1)), box("o1", (1, 1, 1))], [("oj", "o0", "o1", {})]
        )
        engine = _engine(KinematicScene([arm_description, other]), clock, robot_name="other")
        assert engine.start()
        assert engine.model.root == "o0"
        assert engine.model.name == "other"

    def test_by_root_part_name(self, describe, box, arm_description):
        other = describe(
            "other", [box("o0", (1, 1, 1)), box("o1", (1, 1, 1))], [("oj", "o0", "o1", {})]
        )
        scene = KinematicScene([arm_description, other])
        assert scene.find_robot("o0") == "o0"

    def test_unmatched_name_falls_through(self, describe, box, arm_description):
        statue = describe("statue", [box("s", (1, 1, 1))], [])
        scene = KinematicScene([statue, arm_description])
        assert scene.find_robot("missing") == "base"

    def test_unmatched_name_with_nothing_articulated(self, describe, box):
        scene = KinematicScene([describe("statue", [box("s", (1, 1, 1))], [])])
        assert scene.find_robot("missing") is None

    def test_engine_does_not_wait_for_unmatched_name(self, clock, arm_description):
        engine = _engine(KinematicScene([arm_description]), clock, robot_name="missing", settle_delay=0)
        assert engine.start()
        assert clock.sleeps == []
        assert engine.model.name == "arm"

    def test_prefers_articulated_robot(self, describe, box, arm_description):
        statue = describe("statue", [box("s", (1, 1, 1))], [])
        scene = KinematicScene([statue, arm_description])
        assert scene.find_robot() == "base"

    def test_falls_back_to_visual_part_count(self, describe, box):
        parts = [box(f"v{i}", (1, 1, 1)) for i in range(5)]
        welds = [(f"w{i}", f"v{i - 1}", f"v{i}", {"type": "fixed"}) for i in range(1, 5)]
        scene = KinematicScene([describe("welded", parts, welds)])
        assert scene.find_robot() == "v0"

    def test_too_few_visual_parts(self, describe, box):
        parts = [box(f"v{i}", (1, 1, 1)) for i in range(4)]
        welds = [(f"w{i}", f"v{i - 1}", f"v{i}", {"type": "fixed"}) for i in range(1, 4)]
        scene = KinematicScene([describe("welded", parts, welds)])
        assert scene.find_robot() is None

    def test_duplicate_names_rejected(self, arm_description, scenario_description):
        scene = KinematicScene([arm_description])
        with pytest.raises(ValueError, match="Part 'base' already exists"):
            scene.add_robot(scenario_description)
