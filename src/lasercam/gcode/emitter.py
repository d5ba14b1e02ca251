"""Motion-request to G-code state machine.

Consecutive requests sharing power and speed collapse into one line; only
axes that actually moved are written, and ``F`` appears only when the feed
changes.  Zero power selects ``G0``, anything else ``G1 ... S<power>``.

Each export owns its own :class:`GCodeEmitter`; nothing is module-level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..core.toolpath.base import MotionRequest, MoveType
from .gcode_writer import fmt


@dataclass
class ToolpathState:
    """Cursor of the last emitted line and the pending "pen" move."""
    last_x: Optional[float] = None
    last_y: Optional[float] = None
    last_speed: Optional[float] = None
    pen_x: Optional[float] = None
    pen_y: Optional[float] = None
    pen_speed: Optional[float] = None
    pen_power: float = 0.0


@dataclass
class GCodeEmitter:
    """Accumulate minimal G-code lines for a stream of moves.

    Parameters
    ----------
    decimals:
        Coordinate precision; comparisons are made on rounded values so a
        sub-precision wiggle never produces a duplicate line.
    """

    decimals: int = 2
    state: ToolpathState = field(default_factory=ToolpathState)
    lines: list[str] = field(default_factory=list)

    def _round(self, v: Optional[float]) -> Optional[float]:
        if v is None:
            return None
        r = round(v, self.decimals)
        return 0.0 if r == 0 else r

    def flush(self) -> Optional[str]:
        """Write the pending move, if any axis changed.  Returns the line."""
        st = self.state
        rapid = MoveType.for_power(st.pen_power) is MoveType.TRAVEL
        parts = ["G0" if rapid else "G1"]
        if st.pen_x is not None and st.pen_x != st.last_x:
            parts.append(f"X{fmt(st.pen_x, self.decimals)}")
            st.last_x = st.pen_x
        if st.pen_y is not None and st.pen_y != st.last_y:
            parts.append(f"Y{fmt(st.pen_y, self.decimals)}")
            st.last_y = st.pen_y
        if len(parts) == 1:
            return None
        if not rapid:
            parts.append(f"S{fmt(st.pen_power, 2)}")
        if st.pen_speed != st.last_speed:
            if st.pen_speed is not None:
                parts.append(f"F{fmt(st.pen_speed, 1)}")
            st.last_speed = st.pen_speed
        line = " ".join(parts)
        self.lines.append(line)
        return line

    def go_to(
        self,
        x: Optional[float],
        y: Optional[float],
        power: float,
        speed: float,
        force_flush: bool = False,
    ) -> None:
        st = self.state
        if power != st.pen_power or speed != st.pen_speed:
            self.flush()
            st.pen_power = power
            st.pen_speed = speed
        if x is not None:
            st.pen_x = self._round(x)
        if y is not None:
            st.pen_y = self._round(y)
        if force_flush:
            self.flush()

    def submit(self, req: MotionRequest) -> None:
        self.go_to(req.x, req.y, req.power, req.speed, req.force_flush)

    def submit_all(self, requests: Iterable[MotionRequest]) -> None:
        for req in requests:
            self.submit(req)

    def raw(self, line: str) -> None:
        """Append a line that bypasses the motion state (comments, M-codes)."""
        self.lines.append(line)
