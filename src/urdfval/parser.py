"""YAML loading and version checking for robot descriptions."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from urdfval.errors import ParseError
from urdfval.meshes import load_mesh, resolve_mesh_path
from urdfval.models import RobotDescription
from urdfval.warning_policy import WarningPolicy, emit_warning

LATEST_VERSION = (0, 1)


def _make_yaml() -> YAML:
    """Create a ruamel.yaml safe loader that errors on duplicate keys."""
    yml = YAML(typ="safe")
    yml.allow_duplicate_keys = False
    return yml


def _read_source_text(source: str | Path) -> str:
    """Read source YAML content from path or treat input as raw YAML text."""
    if isinstance(source, Path):
        try:
            return source.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(f"Cannot read file: {e}") from e
    return source


def parse_robot_yaml(
    source: str | Path, *, warning_policy: WarningPolicy | None = None
) -> RobotDescription:
    """Parse a robot description from a YAML string or file path.

    Raises:
        ParseError: On YAML syntax errors, schema violations, or version mismatches.
    """
    text = _read_source_text(source)
    try:
        data = _make_yaml().load(text)
    except YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Top-level YAML value must be a mapping")

    version = data.get("version")
    if version is None:
        raise ParseError("Missing required field: version")
    _check_version(str(version))
    data["version"] = str(version)

    try:
        description = RobotDescription(**data)
    except PydanticValidationError as e:
        raise ParseError(f"Schema validation failed:\n{e}") from e

    base_dir = source.parent if isinstance(source, Path) else None
    return finalize_description(description, base_dir=base_dir, warning_policy=warning_policy)


def finalize_description(
    description: RobotDescription,
    *,
    base_dir: Path | None = None,
    warning_policy: WarningPolicy | None = None,
) -> RobotDescription:
    """Load mesh files and normalize reversed joint limits in place.

    Mesh filenames resolve against ``base_dir``. A mesh that cannot be found
    and has no ``bounds`` fallback is reported as W01.
    """
    loaded: dict[Path, tuple] = {}
    for part in description.parts:
        for geometry in (*part.visuals, *part.collisions):
            if geometry.type != "mesh":
                continue
            path = resolve_mesh_path(geometry.filename, base_dir)
            if path is None:
                if geometry.bounds is None:
                    emit_warning(
                        "W01",
                        f"Part {part.name!r}",
                        f"mesh {geometry.filename!r} not found; skipped by geometry checks",
                        policy=warning_policy,
                    )
                continue
            if path not in loaded:
                loaded[path] = load_mesh(path)
            geometry.attach_mesh(*loaded[path])

    for joint in description.joints:
        limits = joint.limits
        if limits is None or limits.lower is None or limits.upper is None:
            continue
        if limits.lower > limits.upper:
            emit_warning(
                "W02",
                f"Joint {joint.name!r}",
                f"lower limit {limits.lower:g} is above upper limit {limits.upper:g}; "
                "limits swapped",
                policy=warning_policy,
            )
            limits.lower, limits.upper = limits.upper, limits.lower
    return description


def load_description(
    path: Path, *, warning_policy: WarningPolicy | None = None
) -> RobotDescription:
    """Load a robot description, choosing the reader from the file suffix."""
    if path.suffix.lower() == ".urdf":
        from urdfval.urdf import load_urdf

        return load_urdf(path, warning_policy=warning_policy)
    return parse_robot_yaml(path, warning_policy=warning_policy)


def _check_version(version: str) -> None:
    """Validate version string compatibility."""
    parts = version.split(".")
    if len(parts) != 2:
        raise ParseError(f"Invalid version format: {version!r}")

    try:
        major = int(parts[0])
        minor = int(parts[1])
    except ValueError:
        raise ParseError(f"Invalid version format: {version!r}")

    if (major, minor) > LATEST_VERSION:
        raise ParseError(
            f"Unsupported version: {version!r} (latest supported is "
            f"{LATEST_VERSION[0]}.{LATEST_VERSION[1]})"
        )
