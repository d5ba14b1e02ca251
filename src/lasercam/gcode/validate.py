"""G-code validation and sanity checks.

Checks a generated program against the platform travel limits and the
laser's power and feed ranges before it is sent to the machine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_WORD = re.compile(r"([A-Z])\s*(-?\d+(?:\.\d*)?|-?\.\d+)")


@dataclass
class PlatformEnvelope:
    """Travel limits (mm) and laser ranges of a machine."""

    x_min: float = 0.0
    x_max: float = 400.0
    y_min: float = 0.0
    y_max: float = 400.0
    # Scan overscan may run past the platform edge by this much
    overscan_margin: float = 5.0
    max_scan_power: float = 100.0   # G1 S, 0-100 scale
    max_spindle: int = 1000         # M3 S, 0-1000 scale
    max_feed: float = 12000.0       # mm/min


@dataclass
class ValidationIssue:
    """A single validation problem found in the program."""

    severity: str  # "error" or "warning"
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of validating a program."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == "error" for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == "warning" for i in self.issues)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0


def parse_words(line: str) -> dict[str, float]:
    """Address words of one line, comment stripped.  ``G02`` → ``{"G": 2.0}``."""
    code = line.split(";", 1)[0].upper()
    return {letter: float(value) for letter, value in _WORD.findall(code)}


def _check_axis(
    result: ValidationResult,
    axis: str,
    value: float,
    lo: float,
    hi: float,
    margin: float,
    n: int,
) -> None:
    if lo <= value <= hi:
        return
    if lo - margin <= value <= hi + margin:
        result.issues.append(ValidationIssue(
            "warning", f"{axis}={value:.3f} in overscan margin outside [{lo}, {hi}]", n,
        ))
    else:
        result.issues.append(ValidationIssue(
            "error", f"{axis}={value:.3f} outside travel [{lo}, {hi}]", n,
        ))


def validate_program(
    lines: Iterable[str],
    envelope: PlatformEnvelope,
) -> ValidationResult:
    """Check a program against *envelope* limits.

    Checks performed:
    - All X/Y coordinates within platform travel (overscan margin warns)
    - ``G1 S`` scan power and ``M3 S`` laser power within range
    - Feed rates within machine maximum
    - At least one cutting move
    """
    result = ValidationResult()
    cutting = False

    for n, line in enumerate(lines, start=1):
        words = parse_words(line)
        if not words:
            continue
        g = words.get("G")
        m = words.get("M")

        if "X" in words:
            _check_axis(result, "X", words["X"], envelope.x_min, envelope.x_max,
                        envelope.overscan_margin, n)
        if "Y" in words:
            _check_axis(result, "Y", words["Y"], envelope.y_min, envelope.y_max,
                        envelope.overscan_margin, n)

        if "S" in words:
            s = words["S"]
            if m == 3 and s > envelope.max_spindle:
                result.issues.append(ValidationIssue(
                    "warning", f"Laser power S{s:g} exceeds maximum ({envelope.max_spindle})", n,
                ))
            elif g == 1 and s > envelope.max_scan_power:
                result.issues.append(ValidationIssue(
                    "warning",
                    f"Scan power S{s:g} exceeds maximum ({envelope.max_scan_power:g})", n,
                ))

        if "F" in words and words["F"] > envelope.max_feed:
            result.issues.append(ValidationIssue(
                "warning",
                f"Feed {words['F']:.1f} exceeds machine max ({envelope.max_feed:.1f})", n,
            ))

        if g in (1, 2, 3) and ("X" in words or "Y" in words):
            cutting = True

    if not cutting:
        result.issues.append(ValidationIssue(
            "warning", "Program has no cutting moves",
        ))

    if not result.is_ok:
        logger.warning(
            "Validation found %d issue(s), first: %s",
            len(result.issues), result.issues[0].message,
        )
    return result
