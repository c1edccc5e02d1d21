"""Click CLI entry point for urdfval."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from urdfval import __version__
from urdfval.config import EngineConfig, load_config
from urdfval.engine import ValidationEngine
from urdfval.errors import UrdfvalError
from urdfval.parser import load_description
from urdfval.report import render_text, report_payload
from urdfval.scene import KinematicScene
from urdfval.warning_policy import WarningPolicy

logger = logging.getLogger(__name__)


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    """Parse CLI warning options into a WarningPolicy, or None if unset."""
    if warn_as_error is None and suppress_warning is None:
        return None
    try:
        return WarningPolicy.from_options(warn_as_error, suppress_warning)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _parse_assignments(values: tuple[str, ...], option: str) -> list[tuple[str, float]]:
    """Parse repeated NAME=VALUE options."""
    parsed: list[tuple[str, float]] = []
    for raw in values:
        name, sep, value = raw.partition("=")
        if not sep or not name:
            raise click.UsageError(f"{option} expects NAME=VALUE, got {raw!r}")
        try:
            parsed.append((name, float(value)))
        except ValueError as e:
            raise click.UsageError(
                f"{option} value for {name!r} is not a number: {value!r}"
            ) from e
    return parsed


def _start_engine(
    robot_file: Path,
    config_file: Path | None,
    robot_name: str | None,
    warning_policy: WarningPolicy | None,
) -> ValidationEngine:
    description = load_description(robot_file, warning_policy=warning_policy)
    config = load_config(config_file) if config_file is not None else EngineConfig()
    if robot_name is not None:
        config = config.model_copy(update={"robot_name": robot_name})

    scene = KinematicScene([description])
    # The description is fully loaded already, so resolve the root once
    # instead of polling for it.
    root = scene.find_robot(config.robot_name)
    if root is None:
        raise click.ClickException(f"No robot found in {robot_file}")
    if config.robot_name and config.robot_name not in (root, scene.robot_name(root)):
        logger.warning(
            "No robot named %r in %s; validating %r instead",
            config.robot_name,
            robot_file,
            scene.robot_name(root),
        )
    engine = ValidationEngine(scene, config)
    engine.set_robot(root)
    return engine


_robot_file_argument = click.argument(
    "robot_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
_config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML engine configuration file.",
)
_robot_option = click.option(
    "--robot", "robot_name", type=str, default=None,
    help="Robot (or root part) name to validate; other robots are searched if it is missing.",
)
_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)
_warn_as_error_option = click.option(
    "--warn-as-error",
    "warn_as_error",
    type=str,
    default=None,
    help="Comma-separated W-codes to treat as errors: W01 unresolved mesh, "
    "W02 reversed limits, W03 unsupported joint type.",
)
_suppress_warning_option = click.option(
    "--suppress-warning",
    "suppress_warning",
    type=str,
    default=None,
    help="Comma-separated W-codes to suppress (e.g. W03).",
)


@click.group()
@click.version_option(version=__version__, prog_name="urdfval")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
def main(verbose: int = 0) -> None:
    """urdfval: self-collision, gap and scale checks for robot descriptions."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@_robot_file_argument
@_config_option
@_robot_option
@click.option(
    "--set",
    "angles",
    multiple=True,
    help="Set a joint angle before validating, as JOINT=DEGREES. May be repeated.",
)
@click.option(
    "--normalized",
    "normalized",
    multiple=True,
    help="Set a joint by normalized position, as JOINT=0..1. May be repeated.",
)
@click.option(
    "--scale",
    "scales",
    multiple=True,
    help="Uniformly scale a link before validating, as LINK=FACTOR. May be repeated.",
)
@_format_option
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the text report to this path.",
)
@click.option(
    "--fail-on-error",
    is_flag=True,
    default=False,
    help="Exit with code 3 if any Error-severity defect is found.",
)
@_warn_as_error_option
@_suppress_warning_option
def check(
    robot_file: Path,
    config_file: Path | None = None,
    robot_name: str | None = None,
    angles: tuple[str, ...] = (),
    normalized: tuple[str, ...] = (),
    scales: tuple[str, ...] = (),
    output_format: str = "text",
    output: Path | None = None,
    fail_on_error: bool = False,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Validate a robot description (.urdf or .yaml) in one pose."""
    warning_policy = _build_warning_policy(warn_as_error, suppress_warning)
    angle_values = _parse_assignments(angles, "--set")
    normalized_values = _parse_assignments(normalized, "--normalized")
    scale_values = _parse_assignments(scales, "--scale")

    try:
        engine = _start_engine(robot_file, config_file, robot_name, warning_policy)
        for name, value in angle_values:
            engine.set_joint_angle(name, value)
        for name, value in normalized_values:
            engine.set_joint_normalized(name, value)
        for name, value in scale_values:
            engine.set_link_uniform_scale(name, value)
        engine.run_validation()

        report = engine.generate_report()
        if output is not None:
            engine.export_report(output)
        if output_format == "json":
            click.echo(json.dumps(report_payload(report), indent=2))
        else:
            click.echo(render_text(report), nl=False)

        if fail_on_error and report.error_count > 0:
            raise click.exceptions.Exit(3)
    except UrdfvalError as e:
        raise click.ClickException(str(e))


@main.command()
@_robot_file_argument
@_config_option
@_robot_option
@click.option(
    "--joint",
    "joint_names",
    multiple=True,
    help="Joint to sweep. May be repeated; defaults to every movable joint.",
)
@click.option(
    "--samples",
    type=click.IntRange(min=1),
    default=3,
    show_default=True,
    help="Evenly spaced poses per joint, from lower to upper limit.",
)
@_format_option
@_warn_as_error_option
@_suppress_warning_option
def sweep(
    robot_file: Path,
    config_file: Path | None = None,
    robot_name: str | None = None,
    joint_names: tuple[str, ...] = (),
    samples: int = 3,
    output_format: str = "text",
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Validate poses sampled across each joint's travel range."""
    warning_policy = _build_warning_policy(warn_as_error, suppress_warning)

    try:
        engine = _start_engine(robot_file, config_file, robot_name, warning_policy)
        results = engine.sweep(joint_names or None, samples=samples)
    except UrdfvalError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        payload = [
            {
                "joint_name": sample.joint_name,
                "angle": sample.angle,
                "errors": [error.to_dict() for error in sample.errors],
            }
            for sample in results
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    lines: list[str] = []
    for sample in results:
        lines.append(f"{sample.joint_name} @ {sample.angle:.2f}: {len(sample.errors)} defect(s)")
        for error in sample.errors:
            lines.append(f"  {error}")
    click.echo("\n".join(lines) + ("\n" if lines else ""), nl=False)
