"""Default part parameters, feeds, and speeds.

Part parameters mirror the parts catalogue so that a shape with a missing
parameter renders, rasterizes and engraves the same way everywhere.
Speeds are conservative starting points for a diode laser.
"""

from ..core.items import ShapeType

# Scan (raster) defaults
DEFAULT_LINE_DENSITY = 0.1      # mm per pixel
DEFAULT_BURN_SPEED = 1000.0     # mm/min
DEFAULT_SCAN_TRAVEL = 6000.0    # mm/min
DEFAULT_OVERSCAN = 3.0          # mm

# Engrave (vector) defaults
DEFAULT_ENGRAVE_FEED = 1000.0
DEFAULT_ENGRAVE_TRAVEL = 3000.0
DEFAULT_ENGRAVE_POWER = 50.0    # percent

# Platform used when the caller does not provide one
DEFAULT_PLATFORM_WIDTH = 400.0
DEFAULT_PLATFORM_HEIGHT = 400.0


DEFAULT_PARAMETERS: dict[ShapeType, dict[str, float]] = {
    ShapeType.RECTANGLE: {"width": 100, "height": 60},
    ShapeType.CIRCLE: {"radius": 40},
    ShapeType.LINE: {"length": 100},
    ShapeType.POLYLINE: {"seg1": 40, "seg2": 50, "angle": 135, "seg3": 40},
    ShapeType.ARC: {"radius": 50, "startAngle": 0, "sweepAngle": 120},
    ShapeType.SECTOR: {"radius": 50, "startAngle": -90, "sweepAngle": 90},
    ShapeType.EQUILATERAL_TRIANGLE: {"sideLength": 80},
    ShapeType.ISOSCELES_RIGHT_TRIANGLE: {"legLength": 80},
    ShapeType.L_BRACKET: {"width": 80, "height": 80, "thickness": 15},
    ShapeType.U_CHANNEL: {"width": 80, "height": 100, "thickness": 10},
    ShapeType.FLANGE: {
        "outerDiameter": 120,
        "innerDiameter": 60,
        "boltCircleDiameter": 90,
        "boltHoleCount": 6,
        "boltHoleDiameter": 8,
    },
    ShapeType.TORUS: {"outerRadius": 60, "innerRadius": 30},
    ShapeType.CIRCLE_WITH_HOLES: {
        "radius": 80, "holeRadius": 8, "holeCount": 4, "holeDistance": 50,
    },
    ShapeType.RECTANGLE_WITH_HOLES: {
        "width": 120,
        "height": 80,
        "holeRadius": 8,
        "horizontalMargin": 20,
        "verticalMargin": 20,
    },
}


def resolve_parameters(shape_type: ShapeType, parameters: dict[str, float]) -> dict[str, float]:
    """Return *parameters* completed with the catalogue defaults."""
    merged = dict(DEFAULT_PARAMETERS.get(shape_type, {}))
    merged.update(parameters)
    return merged
