"""Drawable item definitions for a layered laser canvas.

Every item is positioned by its center ``(x, y)`` in canvas units (mm) with a
rotation in degrees.  Screen convention applies: Y grows downward, and a
positive rotation turns clockwise on screen.

Groups own their children: child coordinates are local to the group center.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ShapeType(Enum):
    RECTANGLE = "RECTANGLE"
    L_BRACKET = "L_BRACKET"
    U_CHANNEL = "U_CHANNEL"
    CIRCLE = "CIRCLE"
    FLANGE = "FLANGE"
    LINE = "LINE"
    POLYLINE = "POLYLINE"
    ARC = "ARC"
    SECTOR = "SECTOR"
    TORUS = "TORUS"
    EQUILATERAL_TRIANGLE = "EQUILATERAL_TRIANGLE"
    ISOSCELES_RIGHT_TRIANGLE = "ISOSCELES_RIGHT_TRIANGLE"
    CIRCLE_WITH_HOLES = "CIRCLE_WITH_HOLES"
    RECTANGLE_WITH_HOLES = "RECTANGLE_WITH_HOLES"


# Type discriminators used by the JSON object form of non-shape items
DRAWING = "DRAWING"
TEXT = "TEXT"
IMAGE = "IMAGE"
GROUP = "GROUP"


@dataclass
class ParametricShape:
    """A catalogue part described by a type and numeric parameters."""
    shape_type: ShapeType
    parameters: dict[str, float] = field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    layer_id: str = ""

    @property
    def type_name(self) -> str:
        return self.shape_type.value


@dataclass
class FreehandPath:
    """A pen stroke.  Points are relative to ``(x, y)``."""
    points: list[tuple[float, float]] = field(default_factory=list)
    stroke_width: float = 1.0
    color: str = "#000000"
    fill_color: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    layer_id: str = ""

    @property
    def type_name(self) -> str:
        return DRAWING

    @property
    def is_closed(self) -> bool:
        return self.fill_color is not None and len(self.points) > 2


@dataclass
class TextLabel:
    """Text is never rasterized or cut; it only documents the program."""
    text: str = ""
    font_size: float = 12.0
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    layer_id: str = ""

    @property
    def type_name(self) -> str:
        return TEXT


@dataclass
class VectorSource:
    """Original unscaled geometry behind an imported vector image."""
    items: list["DrawableItem"] = field(default_factory=list)
    original_width: float = 0.0
    original_height: float = 0.0


@dataclass
class RasterImage:
    """A bitmap placed on the canvas.

    *href* is a filesystem path, a ``data:`` URL or raw encoded bytes.
    """
    href: Union[str, bytes] = ""
    width: float = 0.0
    height: float = 0.0
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    layer_id: str = ""
    vector_source: Optional[VectorSource] = None

    @property
    def type_name(self) -> str:
        return IMAGE

    @property
    def has_vector_source(self) -> bool:
        return self.vector_source is not None and len(self.vector_source.items) > 0


@dataclass
class Group:
    children: list["DrawableItem"] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    layer_id: str = ""

    @property
    def type_name(self) -> str:
        return GROUP


DrawableItem = Union[ParametricShape, FreehandPath, TextLabel, RasterImage, Group]


# ---------------------------------------------------------------------------
# JSON object form
# ---------------------------------------------------------------------------


def _points_from_dict(raw: list) -> list[tuple[float, float]]:
    pts = []
    for p in raw:
        if isinstance(p, dict):
            pts.append((float(p["x"]), float(p["y"])))
        else:
            pts.append((float(p[0]), float(p[1])))
    return pts


def item_from_dict(d: dict) -> DrawableItem:
    """Build a drawable item from its JSON object form.

    Raises ValueError for an unknown ``type``.
    """
    kind = d.get("type")
    common = dict(
        x=float(d.get("x", 0.0)),
        y=float(d.get("y", 0.0)),
        rotation=float(d.get("rotation", 0.0) or 0.0),
        layer_id=str(d.get("layerId", "")),
    )

    if kind == DRAWING:
        return FreehandPath(
            points=_points_from_dict(d.get("points", [])),
            stroke_width=float(d.get("strokeWidth", 1.0)),
            color=d.get("color", "#000000"),
            fill_color=d.get("fillColor"),
            **common,
        )
    if kind == TEXT:
        return TextLabel(
            text=str(d.get("text", "")),
            font_size=float(d.get("fontSize", 12.0)),
            **common,
        )
    if kind == IMAGE:
        source = None
        raw_source = d.get("vectorSource")
        if raw_source and raw_source.get("parsedItems"):
            dims = raw_source.get("originalDimensions") or {}
            source = VectorSource(
                items=[item_from_dict(c) for c in raw_source["parsedItems"]],
                original_width=float(dims.get("width", 0.0)),
                original_height=float(dims.get("height", 0.0)),
            )
        return RasterImage(
            href=d.get("href", ""),
            width=float(d.get("width", 0.0)),
            height=float(d.get("height", 0.0)),
            vector_source=source,
            **common,
        )
    if kind == GROUP:
        return Group(
            children=[item_from_dict(c) for c in d.get("children", [])],
            width=float(d.get("width", 0.0)),
            height=float(d.get("height", 0.0)),
            **common,
        )

    try:
        shape_type = ShapeType(kind)
    except ValueError:
        raise ValueError(f"Unknown drawable item type: {kind!r}") from None
    params = {k: float(v) for k, v in (d.get("parameters") or {}).items()}
    return ParametricShape(shape_type=shape_type, parameters=params, **common)


def item_to_dict(item: DrawableItem) -> dict:
    """Inverse of :func:`item_from_dict`."""
    d: dict = {
        "type": item.type_name,
        "x": item.x,
        "y": item.y,
        "rotation": item.rotation,
        "layerId": item.layer_id,
    }
    if isinstance(item, ParametricShape):
        d["parameters"] = dict(item.parameters)
    elif isinstance(item, FreehandPath):
        d["points"] = [{"x": x, "y": y} for x, y in item.points]
        d["strokeWidth"] = item.stroke_width
        d["color"] = item.color
        if item.fill_color is not None:
            d["fillColor"] = item.fill_color
    elif isinstance(item, TextLabel):
        d["text"] = item.text
        d["fontSize"] = item.font_size
    elif isinstance(item, RasterImage):
        if isinstance(item.href, str):
            d["href"] = item.href
        d["width"] = item.width
        d["height"] = item.height
        if item.vector_source is not None:
            d["vectorSource"] = {
                "parsedItems": [item_to_dict(c) for c in item.vector_source.items],
                "originalDimensions": {
                    "width": item.vector_source.original_width,
                    "height": item.vector_source.original_height,
                },
            }
    elif isinstance(item, Group):
        d["children"] = [item_to_dict(c) for c in item.children]
        d["width"] = item.width
        d["height"] = item.height
    return d
