"""Geometry helper utilities shared by the raster and vector pipelines."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from shapely.geometry import (
    GeometryCollection,
    LineString,
    MultiPolygon,
    Point as ShapelyPoint,
    Polygon,
)
from shapely.ops import unary_union
from shapely.validation import make_valid

from ..outlines import Contour

MIN_STROKE_PX = 2.0


def ensure_polygon(geom) -> Polygon | MultiPolygon:
    """Return a valid Polygon or MultiPolygon, or empty Polygon on failure."""
    if geom is None or geom.is_empty:
        return Polygon()
    if not geom.is_valid:
        geom = make_valid(geom)
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        polys = [g for g in geom.geoms if isinstance(g, (Polygon, MultiPolygon))]
        if polys:
            return unary_union(polys)
    return Polygon()


def iter_polygons(geom: Polygon | MultiPolygon):
    """Yield individual Polygon objects from a possibly Multi geometry."""
    if isinstance(geom, Polygon):
        if not geom.is_empty:
            yield geom
    elif isinstance(geom, MultiPolygon):
        for p in geom.geoms:
            if not p.is_empty:
                yield p


def stroke_polygon(
    points: Sequence[tuple[float, float]],
    width: float,
) -> Polygon | MultiPolygon:
    """Region covered by a stroke of *width* along *points*."""
    half = max(width, MIN_STROKE_PX) / 2
    if len(points) == 1 or len(set(points)) == 1:
        return ShapelyPoint(points[0]).buffer(half)
    return ensure_polygon(LineString(points).buffer(half))


def silhouette(
    contours: list[Contour],
    to_px: Callable[[float, float], tuple[float, float]],
    stroke_px: float = MIN_STROKE_PX,
    tolerance: Optional[float] = None,
) -> Polygon | MultiPolygon:
    """Filled pixel-space region of an item's contours.

    The first closed contour is the outer boundary; further closed contours
    are holes cut from it.  Open contours become strokes of *stroke_px*.
    Arcs are flattened to within *tolerance* in contour units when given.
    """
    shell = None
    holes = []
    strokes = []
    for contour in contours:
        pts = [to_px(x, y) for x, y in contour.points(tolerance=tolerance)]
        if not contour.closed:
            strokes.append(stroke_polygon(pts, stroke_px))
        elif shell is None:
            shell = pts
        elif len(pts) >= 3:
            holes.append(pts)

    parts = []
    if shell is not None and len(shell) >= 3:
        body = ensure_polygon(Polygon(shell))
        if holes:
            body = body.difference(unary_union([ensure_polygon(Polygon(h)) for h in holes]))
        parts.append(ensure_polygon(body))
    parts.extend(strokes)
    if not parts:
        return Polygon()
    return ensure_polygon(unary_union(parts))
