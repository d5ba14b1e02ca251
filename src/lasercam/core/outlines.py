"""Outline provider: one geometric definition per shape variant.

Every parametric shape and freehand path is described here as a list of
contours in local coordinates (relative to the item center, unrotated).
The rasterizer fills them and the vector emitter strokes them, so both
pipelines see exactly the same geometry as the on-screen renderer.

For holed shapes the first contour is the outer boundary and the rest are
holes.  Degenerate parameters (zero or negative sizes) yield no contours.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from ..config.defaults import resolve_parameters
from .items import FreehandPath, ParametricShape, ShapeType
from .transform import rotate_point

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class ArcTo:
    """Circular arc to ``(x, y)`` around ``(cx, cy)``.

    *sweep* is in degrees; its sign gives the direction in screen space.
    A full circle ends where it starts with ``sweep = ±360``.
    """
    x: float
    y: float
    cx: float
    cy: float
    sweep: float

    @property
    def radius(self) -> float:
        return math.hypot(self.x - self.cx, self.y - self.cy)


Segment = Union[LineTo, ArcTo]


@dataclass
class Contour:
    """A connected path of line and arc segments."""
    start: Point
    segments: list[Segment] = field(default_factory=list)
    closed: bool = False

    def map_points(self, fn: Callable[[float, float], Point]) -> Contour:
        """Apply an orientation-preserving point map to every vertex."""
        segs: list[Segment] = []
        for seg in self.segments:
            x, y = fn(seg.x, seg.y)
            if isinstance(seg, ArcTo):
                cx, cy = fn(seg.cx, seg.cy)
                segs.append(ArcTo(x, y, cx, cy, seg.sweep))
            else:
                segs.append(LineTo(x, y))
        return Contour(fn(*self.start), segs, self.closed)

    def placed(self, x: float, y: float, rotation: float, scale: float = 1.0) -> Contour:
        """Scale, then move to ``(x, y)`` and rotate about it."""
        def _place(px: float, py: float) -> Point:
            return rotate_point(x + px * scale, y + py * scale, x, y, rotation)
        return self.map_points(_place)

    def points(self, max_step_deg: float = 5.0, tolerance: Optional[float] = None) -> list[Point]:
        """Vertices with arcs flattened into short chords.

        With *tolerance* set, the chord step is also reduced until no chord
        strays further than *tolerance* from its arc.
        """
        pts = [self.start]
        cur = self.start
        for seg in self.segments:
            if isinstance(seg, ArcTo):
                r = math.hypot(cur[0] - seg.cx, cur[1] - seg.cy)
                a0 = math.atan2(cur[1] - seg.cy, cur[0] - seg.cx)
                n = max(2, int(math.ceil(abs(seg.sweep) / _arc_step(r, max_step_deg, tolerance))))
                step = math.radians(seg.sweep) / n
                for i in range(1, n):
                    a = a0 + step * i
                    pts.append((seg.cx + r * math.cos(a), seg.cy + r * math.sin(a)))
            pts.append((seg.x, seg.y))
            cur = (seg.x, seg.y)
        return pts


def _arc_step(radius: float, max_step_deg: float, tolerance: Optional[float]) -> float:
    """Largest chord angle (degrees) whose sagitta stays within *tolerance*."""
    if tolerance is None or tolerance <= 0 or tolerance >= radius:
        return max_step_deg
    return min(max_step_deg, math.degrees(2 * math.acos(1 - tolerance / radius)))


# ---------------------------------------------------------------------------
# Contour builders
# ---------------------------------------------------------------------------


def polygon_contour(points: list[Point]) -> Contour:
    """Closed polygon that returns to its first vertex."""
    segs: list[Segment] = [LineTo(x, y) for x, y in points[1:]]
    segs.append(LineTo(*points[0]))
    return Contour(points[0], segs, closed=True)


def polyline_contour(points: list[Point]) -> Contour:
    return Contour(points[0], [LineTo(x, y) for x, y in points[1:]], closed=False)


def circle_contour(cx: float, cy: float, radius: float) -> Contour:
    """Full clockwise circle starting at its 3 o'clock point."""
    start = (cx + radius, cy)
    return Contour(start, [ArcTo(start[0], start[1], cx, cy, -360.0)], closed=True)


def _arc_points(radius: float, start_angle: float, sweep: float) -> tuple[Point, Point]:
    s = math.radians(start_angle)
    e = math.radians(start_angle + sweep)
    return (
        (radius * math.cos(s), radius * math.sin(s)),
        (radius * math.cos(e), radius * math.sin(e)),
    )


def _rectangle(p: dict) -> list[Contour]:
    w, h = p["width"], p["height"]
    if w <= 0 or h <= 0:
        return []
    w2, h2 = w / 2, h / 2
    return [polygon_contour([(-w2, -h2), (w2, -h2), (w2, h2), (-w2, h2)])]


def _circle(p: dict) -> list[Contour]:
    r = p["radius"]
    return [circle_contour(0.0, 0.0, r)] if r > 0 else []


def _line(p: dict) -> list[Contour]:
    length = p["length"]
    if length <= 0:
        return []
    return [polyline_contour([(-length / 2, 0.0), (length / 2, 0.0)])]


def _polyline(p: dict) -> list[Contour]:
    seg1, seg2, seg3 = p["seg1"], p["seg2"], p["seg3"]
    if seg1 < 0 or seg2 < 0 or seg3 < 0 or seg1 + seg2 + seg3 <= 0:
        return []
    rad = math.radians(180 - p["angle"])
    p0 = (0.0, 0.0)
    p1 = (seg1, 0.0)
    p2 = (p1[0] + seg2 * math.cos(rad), p1[1] - seg2 * math.sin(rad))
    p3 = (p2[0] + seg3, p2[1])
    pts = [p0, p1, p2, p3]
    # Centered on the bounding box, as rendered on screen
    ox = (min(x for x, _ in pts) + max(x for x, _ in pts)) / 2
    oy = (min(y for _, y in pts) + max(y for _, y in pts)) / 2
    return [polyline_contour([(x - ox, y - oy) for x, y in pts])]


def _arc(p: dict) -> list[Contour]:
    r, sweep = p["radius"], p["sweepAngle"]
    if r <= 0 or sweep == 0:
        return []
    start, end = _arc_points(r, p["startAngle"], sweep)
    return [Contour(start, [ArcTo(end[0], end[1], 0.0, 0.0, sweep)], closed=False)]


def _sector(p: dict) -> list[Contour]:
    r, sweep = p["radius"], p["sweepAngle"]
    if r <= 0 or sweep == 0:
        return []
    start, end = _arc_points(r, p["startAngle"], sweep)
    segs: list[Segment] = [
        LineTo(*start),
        ArcTo(end[0], end[1], 0.0, 0.0, sweep),
        LineTo(0.0, 0.0),
    ]
    return [Contour((0.0, 0.0), segs, closed=True)]


def _l_bracket(p: dict) -> list[Contour]:
    w, h, t = p["width"], p["height"], p["thickness"]
    if w <= 0 or h <= 0 or t <= 0:
        return []
    w2, h2 = w / 2, h / 2
    return [polygon_contour([
        (-w2, -h2),
        (w2, -h2),
        (w2, -h2 + t),
        (-w2 + t, -h2 + t),
        (-w2 + t, h2),
        (-w2, h2),
    ])]


def _u_channel(p: dict) -> list[Contour]:
    w, h, t = p["width"], p["height"], p["thickness"]
    if w <= 0 or h <= 0 or t <= 0:
        return []
    w2, h2 = w / 2, h / 2
    return [polygon_contour([
        (-w2, -h2),
        (w2, -h2),
        (w2, h2),
        (w2 - t, h2),
        (w2 - t, -h2 + t),
        (-w2 + t, -h2 + t),
        (-w2 + t, h2),
        (-w2, h2),
    ])]


def _flange(p: dict) -> list[Contour]:
    outer = p["outerDiameter"] / 2
    if outer <= 0:
        return []
    contours = [circle_contour(0.0, 0.0, outer)]
    inner = p["innerDiameter"] / 2
    if 0 < inner < outer:
        contours.append(circle_contour(0.0, 0.0, inner))
    bolt_circle = p["boltCircleDiameter"] / 2
    hole_r = p["boltHoleDiameter"] / 2
    count = int(p["boltHoleCount"])
    if hole_r > 0:
        for i in range(count):
            # First hole at the top
            angle = i / count * 2 * math.pi - math.pi / 2
            contours.append(circle_contour(
                bolt_circle * math.cos(angle), bolt_circle * math.sin(angle), hole_r,
            ))
    return contours


def _torus(p: dict) -> list[Contour]:
    outer, inner = p["outerRadius"], p["innerRadius"]
    if outer <= 0:
        return []
    contours = [circle_contour(0.0, 0.0, outer)]
    if 0 < inner < outer:
        contours.append(circle_contour(0.0, 0.0, inner))
    return contours


def _equilateral_triangle(p: dict) -> list[Contour]:
    s = p["sideLength"]
    if s <= 0:
        return []
    h = math.sqrt(3) / 2 * s
    return [polygon_contour([(0.0, -2 / 3 * h), (-s / 2, h / 3), (s / 2, h / 3)])]


def _isosceles_right_triangle(p: dict) -> list[Contour]:
    leg = p["legLength"]
    if leg <= 0:
        return []
    # Right angle at the top-left, centroid at the origin
    return [polygon_contour([
        (-leg / 3, -leg / 3), (2 * leg / 3, -leg / 3), (-leg / 3, 2 * leg / 3),
    ])]


def _circle_with_holes(p: dict) -> list[Contour]:
    r = p["radius"]
    if r <= 0:
        return []
    contours = [circle_contour(0.0, 0.0, r)]
    hole_r, dist = p["holeRadius"], p["holeDistance"]
    count = int(p["holeCount"])
    if hole_r > 0:
        for i in range(count):
            angle = i / count * 2 * math.pi
            contours.append(circle_contour(dist * math.cos(angle), dist * math.sin(angle), hole_r))
    return contours


def _rectangle_with_holes(p: dict) -> list[Contour]:
    contours = _rectangle(p)
    if not contours:
        return []
    w2, h2 = p["width"] / 2, p["height"] / 2
    hm, vm, hole_r = p["horizontalMargin"], p["verticalMargin"], p["holeRadius"]
    if hole_r > 0:
        for hx, hy in [
            (-w2 + hm, h2 - vm),
            (w2 - hm, h2 - vm),
            (w2 - hm, -h2 + vm),
            (-w2 + hm, -h2 + vm),
        ]:
            contours.append(circle_contour(hx, hy, hole_r))
    return contours


_BUILDERS: dict[ShapeType, Callable[[dict], list[Contour]]] = {
    ShapeType.RECTANGLE: _rectangle,
    ShapeType.CIRCLE: _circle,
    ShapeType.LINE: _line,
    ShapeType.POLYLINE: _polyline,
    ShapeType.ARC: _arc,
    ShapeType.SECTOR: _sector,
    ShapeType.L_BRACKET: _l_bracket,
    ShapeType.U_CHANNEL: _u_channel,
    ShapeType.FLANGE: _flange,
    ShapeType.TORUS: _torus,
    ShapeType.EQUILATERAL_TRIANGLE: _equilateral_triangle,
    ShapeType.ISOSCELES_RIGHT_TRIANGLE: _isosceles_right_triangle,
    ShapeType.CIRCLE_WITH_HOLES: _circle_with_holes,
    ShapeType.RECTANGLE_WITH_HOLES: _rectangle_with_holes,
}


def shape_outline(shape: ParametricShape) -> list[Contour]:
    params = resolve_parameters(shape.shape_type, shape.parameters)
    contours = _BUILDERS[shape.shape_type](params)
    if not contours:
        logger.debug("Degenerate %s skipped: %s", shape.type_name, params)
    return contours


def freehand_outline(path: FreehandPath, fill: bool = True) -> list[Contour]:
    """A filled path closes into a polygon when *fill* is set; strokes stay open."""
    if len(path.points) < 2:
        return []
    if fill and path.is_closed:
        return [polygon_contour(list(path.points))]
    return [polyline_contour(list(path.points))]


def item_outline(item, fill: bool = True) -> list[Contour]:
    """Local contours of *item*; empty for items without own geometry.

    *fill* selects the region outline used for painting; engraving passes
    ``False`` to trace freehand strokes as drawn.
    """
    if isinstance(item, ParametricShape):
        return shape_outline(item)
    if isinstance(item, FreehandPath):
        return freehand_outline(item, fill)
    return []
