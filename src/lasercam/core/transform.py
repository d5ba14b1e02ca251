"""Coordinate transforms shared by the scan and vector pipelines."""

from __future__ import annotations

import math
from dataclasses import dataclass


def rotate_point(
    px: float,
    py: float,
    cx: float,
    cy: float,
    rotation: float,
) -> tuple[float, float]:
    """Rotate ``(px, py)`` about ``(cx, cy)`` by *rotation* degrees."""
    if rotation == 0:
        return (px, py)
    rad = math.radians(rotation)
    cos_a, sin_a = math.cos(rad), math.sin(rad)
    dx = px - cx
    dy = py - cy
    return (dx * cos_a - dy * sin_a + cx, dx * sin_a + dy * cos_a + cy)


def round_coord(value: float, decimals: int) -> float:
    """Round to *decimals* places; never returns negative zero."""
    r = round(value, decimals)
    return 0.0 if r == 0 else r


@dataclass(frozen=True)
class MachineTransform:
    """Screen space → machine space mapping.

    Screen Y grows downward; most laser controllers have Y growing upward.
    With *flip_y* set, ``y`` becomes ``canvas_height - y``.
    """

    flip_y: bool = False
    canvas_height: float = 0.0
    decimals: int = 3

    def apply(self, x: float, y: float) -> tuple[float, float]:
        if self.flip_y:
            y = self.canvas_height - y
        return (round_coord(x, self.decimals), round_coord(y, self.decimals))

    @property
    def reverses_handedness(self) -> bool:
        """Mirroring one axis swaps clockwise and counter-clockwise."""
        return self.flip_y
