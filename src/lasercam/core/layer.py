"""Layer and per-mode processing parameter containers.

A Layer binds a printing method (scan/engrave) to its tunables.  The Job
orchestrator turns a layer into ScanSettings or EngraveSettings before
running the matching pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..config.defaults import (
    DEFAULT_BURN_SPEED,
    DEFAULT_ENGRAVE_FEED,
    DEFAULT_ENGRAVE_POWER,
    DEFAULT_ENGRAVE_TRAVEL,
    DEFAULT_LINE_DENSITY,
    DEFAULT_OVERSCAN,
    DEFAULT_SCAN_TRAVEL,
)


class PrintingMethod(Enum):
    SCAN = "scan"
    ENGRAVE = "engrave"


@dataclass
class Layer:
    """A named set of items sharing one processing mode."""

    id: str
    name: str
    printing_method: PrintingMethod = PrintingMethod.ENGRAVE
    is_visible: bool = True

    # Scan tunables
    line_density: Optional[float] = None          # mm per pixel
    halftone: bool = False
    reverse_movement_offset: Optional[float] = None  # overscan, mm

    # Engrave tunables
    power: Optional[float] = None                 # 0-100 %

    @classmethod
    def from_dict(cls, d: dict) -> Layer:
        return cls(
            id=str(d["id"]),
            name=str(d.get("name", d["id"])),
            printing_method=PrintingMethod(d.get("printingMethod", "engrave")),
            is_visible=bool(d.get("isVisible", True)),
            line_density=d.get("lineDensity"),
            halftone=bool(d.get("halftone", False)),
            reverse_movement_offset=d.get("reverseMovementOffset"),
            power=d.get("power"),
        )


@dataclass
class ScanSettings:
    """Parameters for the raster scan pipeline.

    Powers are on a 0-100 scale, speeds in mm/min.
    """

    line_density: float = DEFAULT_LINE_DENSITY
    is_halftone: bool = False
    negative_image: bool = False
    h_flipped: bool = False
    v_flipped: bool = False
    min_power: float = 0.0
    max_power: float = 100.0
    burn_speed: float = DEFAULT_BURN_SPEED
    travel_speed: float = DEFAULT_SCAN_TRAVEL
    overscan_dist: float = DEFAULT_OVERSCAN

    def __post_init__(self) -> None:
        if self.line_density <= 0:
            raise ValueError("line_density must be positive")

    @classmethod
    def from_layer(cls, layer: Layer, **overrides) -> ScanSettings:
        base = cls(
            line_density=layer.line_density or DEFAULT_LINE_DENSITY,
            is_halftone=layer.halftone,
            overscan_dist=(
                DEFAULT_OVERSCAN if layer.reverse_movement_offset is None
                else layer.reverse_movement_offset
            ),
        )
        return replace(base, **overrides)


@dataclass
class EngraveSettings:
    """Parameters for the vector engrave pipeline."""

    feed_rate: float = DEFAULT_ENGRAVE_FEED
    travel_speed: float = DEFAULT_ENGRAVE_TRAVEL
    power: float = DEFAULT_ENGRAVE_POWER   # 0-100 %
    passes: int = 1
    flip_y: bool = False
    canvas_height: Optional[float] = None  # required with flip_y

    def __post_init__(self) -> None:
        if self.flip_y and not self.canvas_height:
            raise ValueError("canvas_height is required when flip_y is set")
        if self.passes < 1:
            raise ValueError("passes must be at least 1")

    @property
    def spindle_power(self) -> int:
        """Laser power scaled to the 0-1000 ``S`` range."""
        return int(self.power * 10 + 0.5)

    @classmethod
    def from_layer(cls, layer: Layer, **overrides) -> EngraveSettings:
        power = DEFAULT_ENGRAVE_POWER if layer.power is None else layer.power
        return cls(**{"power": power, **overrides})
