"""Core toolpath data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class MoveType(Enum):
    """Type of laser motion."""
    TRAVEL = "travel"        # G0, laser off
    BURN = "burn"            # G1, laser on at some power

    @classmethod
    def for_power(cls, power: float) -> MoveType:
        return cls.TRAVEL if power == 0 else cls.BURN


@dataclass(frozen=True)
class MotionRequest:
    """One requested move of the laser head.

    ``None`` for an axis keeps the current position on that axis.  Requests
    with equal power and speed merge into a single G-code line unless
    *force_flush* is set.
    """
    x: Optional[float]
    y: Optional[float]
    power: float
    speed: float
    force_flush: bool = False

    @property
    def move_type(self) -> MoveType:
        return MoveType.for_power(self.power)


@dataclass
class ScanRow:
    """Motion for one pixel row, in emission order."""
    index: int                     # machine row, 0 = bottom of platform
    y: float                       # mm
    reverse: bool = False
    requests: list[MotionRequest] = field(default_factory=list)

    def append(self, req: MotionRequest) -> None:
        self.requests.append(req)


@dataclass
class ScanStats:
    """Content detection and optimization figures for a scan plan."""
    width: int
    height: int
    resolution: float
    min_x: int = 0
    max_x: int = -1
    min_y: int = 0
    max_y: int = -1
    overscan: float = 0.0
    skipped_rows: int = 0

    @property
    def has_content(self) -> bool:
        return self.max_x >= self.min_x and self.max_y >= self.min_y

    @property
    def content_width(self) -> float:
        return (self.max_x - self.min_x + 1) * self.resolution

    @property
    def content_height(self) -> float:
        return (self.max_y - self.min_y + 1) * self.resolution

    @property
    def row_span(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def processed_rows(self) -> int:
        return self.row_span - self.skipped_rows

    @property
    def reduction_x(self) -> float:
        """Percent of platform width outside the content box."""
        full = self.width * self.resolution
        return (full - self.content_width) / full * 100

    @property
    def reduction_y(self) -> float:
        full = self.height * self.resolution
        return (full - self.content_height) / full * 100


@dataclass
class ScanPlan:
    """An ordered list of scan rows plus the statistics that produced them."""
    stats: ScanStats
    rows: list[ScanRow] = field(default_factory=list)

    def add_row(self, row: ScanRow) -> None:
        self.rows.append(row)

    @property
    def total_requests(self) -> int:
        return sum(len(r.requests) for r in self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.stats.has_content
