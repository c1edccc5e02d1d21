"""Text and JSON rendering of validation reports."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from urdfval.defects import ValidationReport

_BANNER = (
    "╔════════════════════════════════════════════╗",
    "║       URDF QUALITY VALIDATION REPORT       ║",
    "╚════════════════════════════════════════════╝",
)


def default_report_name(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"ValidationReport_{now:%Y%m%d_%H%M%S}.txt"


def render_text(report: ValidationReport) -> str:
    """Render a human-readable report: header, error listing, joint configuration."""
    lines: list[str] = list(_BANNER)
    lines.append("")
    lines.append(f"Robot: {report.robot_name}")
    lines.append(f"Time: {report.timestamp:%Y-%m-%d %H:%M:%S}")
    lines.append(f"Joints: {report.total_joints}")
    lines.append(f"Links: {report.total_links}")
    lines.append("")
    lines.append(f"═══ ERRORS ({len(report.errors)}) ═══")

    if not report.errors:
        lines.append("No errors found ✓")
    else:
        for error in report.errors:
            lines.append(str(error))
            if error.penetration_depth > 0:
                lines.append(f"    Penetration: {error.penetration_depth * 1000:.2f}mm")

    lines.append("")
    lines.append("═══ JOINT CONFIGURATION ═══")
    for joint in report.configuration:
        lines.append(f"  {joint.joint_name}: {joint.angle:.2f}°")

    return "\n".join(lines) + "\n"


def report_payload(report: ValidationReport) -> dict[str, object]:
    """Return a JSON-serializable dict for a report."""
    return {
        "report_schema_version": 1,
        "robot_name": report.robot_name,
        "timestamp": report.timestamp.isoformat(),
        "summary": {
            "joints": report.total_joints,
            "links": report.total_links,
            "errors": report.error_count,
            "warnings": report.warning_count,
        },
        "errors": [error.to_dict() for error in report.errors],
        "configuration": [
            {"joint_name": joint.joint_name, "angle": joint.angle}
            for joint in report.configuration
        ],
    }


def write_report(report: ValidationReport, path: Path | None = None) -> Path:
    """Write the text form of ``report``; defaults to a timestamped file name."""
    if path is None:
        path = Path(default_report_name(report.timestamp))
    path.write_text(render_text(report), encoding="utf-8")
    return path
