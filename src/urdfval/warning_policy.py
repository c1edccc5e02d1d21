"""Coded diagnostics raised while reading robot descriptions.

Each code names one kind of recoverable problem in a description. The
reader fixes up or skips the offending element and reports it here; a
``WarningPolicy`` decides whether the report is dropped, emitted as a
``UrdfvalWarning`` or escalated to a ``ParseError``.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from urdfval.errors import ParseError

WARNING_CODES: dict[str, str] = {
    "W01": "mesh file cannot be resolved; the geometry is left out of checks",
    "W02": "joint limits given in reverse order; limits swapped",
    "W03": "unsupported joint type; joint treated as fixed",
}

KNOWN_CODES: frozenset[str] = frozenset(WARNING_CODES)


class UrdfvalWarning(UserWarning):
    """A description diagnostic about one part or joint."""

    def __init__(self, code: str, subject: str, detail: str) -> None:
        self.code = code
        self.subject = subject
        self.detail = detail
        super().__init__(f"[{code}] {subject}: {detail}")


@dataclass(frozen=True)
class WarningPolicy:
    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()

    @classmethod
    def from_options(
        cls, warn_as_error: str | None = None, suppress: str | None = None
    ) -> WarningPolicy:
        """Build a policy from comma-separated code lists.

        Raises ``ValueError`` for unknown codes or a code given in both lists.
        """
        escalated = parse_code_list(warn_as_error or "")
        suppressed = parse_code_list(suppress or "")
        both = escalated & suppressed
        if both:
            raise ValueError(
                f"Warning code(s) {sorted(both)} cannot be both suppressed and escalated"
            )
        return cls(warn_as_error=escalated, suppress=suppressed)


def emit_warning(
    code: str, subject: str, detail: str, *, policy: WarningPolicy | None = None
) -> None:
    """Report a diagnostic about ``subject`` (a part or joint label)."""
    if code not in KNOWN_CODES:
        raise ValueError(f"Unknown warning code: {code!r}")
    if policy is not None:
        if code in policy.suppress:
            return
        if code in policy.warn_as_error:
            raise ParseError(f"[{code}] {subject}: {detail}")

    warnings.warn(UrdfvalWarning(code, subject, detail), stacklevel=2)


def parse_code_list(raw: str) -> frozenset[str]:
    """Parse ``"W01,w03"`` style input; codes are case-insensitive."""
    codes: set[str] = set()
    for token in raw.split(","):
        token = token.strip().upper()
        if not token:
            continue
        if token not in KNOWN_CODES:
            known = ", ".join(f"{c} ({WARNING_CODES[c]})" for c in sorted(WARNING_CODES))
            raise ValueError(f"Unknown warning code: {token!r}. Known codes: {known}")
        codes.add(token)
    return frozenset(codes)
