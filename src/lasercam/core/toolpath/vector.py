"""Outline-tracing G-code for engrave layers.

Each contour of a placed item becomes one laser-on loop: a rapid to its
start, ``M3``, one move per edge or arc, ``M5``.  Points go through the
placement (scale, rotate about the item center), then the machine
transform (optional Y flip, rounding to 3 decimals).
"""

from __future__ import annotations

import logging
from typing import Iterable

from ...gcode import gcode_writer as gw
from ..expand import Placement, expand_items, vector_source_scale
from ..items import DrawableItem, FreehandPath, Group, ParametricShape, RasterImage, TextLabel
from ..layer import EngraveSettings
from ..outlines import ArcTo, Contour, item_outline
from ..transform import MachineTransform, round_coord

logger = logging.getLogger(__name__)

DECIMALS = 3


class VectorPathEmitter:
    """Turn drawable items into engrave-mode G-code lines.

    Stateless between calls: the same items always produce the same lines.
    """

    def __init__(self, settings: EngraveSettings):
        self.settings = settings
        self.transform = MachineTransform(
            flip_y=settings.flip_y,
            canvas_height=settings.canvas_height or 0.0,
            decimals=DECIMALS,
        )

    # -- formatting -------------------------------------------------------

    def _pos(self, x: float, y: float) -> str:
        tx, ty = self.transform.apply(x, y)
        return f"({gw.fmt(tx, DECIMALS)}, {gw.fmt(ty, DECIMALS)})"

    def _rot(self, rotation: float) -> str:
        return f"{gw.fmt(rotation, DECIMALS)}°"

    def arc_is_clockwise(self, sweep: float) -> bool:
        """``G02`` for negative sweeps, mirrored when Y is flipped."""
        clockwise = sweep < 0
        if self.transform.reverses_handedness:
            clockwise = not clockwise
        return clockwise

    # -- geometry ---------------------------------------------------------

    def contour_lines(self, contour: Contour) -> list[str]:
        """One laser-on loop for a contour already in canvas space."""
        t = self.transform
        feed = self.settings.feed_rate
        sx, sy = t.apply(*contour.start)
        lines = [gw.rapid(sx, sy, DECIMALS), gw.laser_on(self.settings.spindle_power)]

        first = True
        for seg in contour.segments:
            ex, ey = t.apply(seg.x, seg.y)
            f = feed if first else None
            if isinstance(seg, ArcTo):
                cx, cy = t.apply(seg.cx, seg.cy)
                i = round_coord(cx - sx, DECIMALS)
                j = round_coord(cy - sy, DECIMALS)
                lines.append(gw.arc(self.arc_is_clockwise(seg.sweep), ex, ey, i, j, f, DECIMALS))
            else:
                lines.append(gw.linear(ex, ey, f, DECIMALS))
            sx, sy = ex, ey
            first = False

        lines.append(gw.laser_off())
        return lines

    def _leaf_lines(self, p: Placement) -> list[str]:
        item = p.item
        if isinstance(item, TextLabel):
            return [gw.comment(
                f'Text "{item.text}" at {self._pos(p.x, p.y)} rotation {self._rot(p.rotation)}'
            )]
        if isinstance(item, RasterImage):
            return [gw.comment(
                f"Image at {self._pos(p.x, p.y)} rotation {self._rot(p.rotation)}"
                " - bitmap content needs a scan layer"
            )]
        if isinstance(item, (ParametricShape, FreehandPath)):
            lines: list[str] = []
            for contour in item_outline(item, fill=False):
                lines.extend(self.contour_lines(contour.placed(p.x, p.y, p.rotation, p.scale)))
            return lines
        logger.warning("Unsupported item type %s skipped", type(item).__name__)
        return [gw.comment(f"Unsupported object: {type(item).__name__}")]

    def _open_lines(self, p: Placement) -> list[str]:
        item = p.item
        if isinstance(item, Group):
            return [gw.comment(
                f"Begin group at {self._pos(p.x, p.y)} rotation {self._rot(p.rotation)}"
            )]
        src = item.vector_source
        scale = vector_source_scale(item)
        return [
            gw.comment(
                f"Image (vector source) at {self._pos(p.x, p.y)} "
                f"rotation {self._rot(p.rotation)}"
            ),
            gw.comment(
                f"Source size {src.original_width:.2f}x{src.original_height:.2f} -> "
                f"displayed {item.width:.2f}x{item.height:.2f}, scale {scale:.4f}"
            ),
        ]

    def _close_lines(self, p: Placement) -> list[str]:
        if isinstance(p.item, Group):
            return [gw.comment("End group")]
        return [gw.comment("End vector source")]

    # -- public -----------------------------------------------------------

    def item_lines(self, item: DrawableItem) -> list[str]:
        """All lines for one top-level item, nested items included."""
        return self.items_lines([item])

    def items_lines(self, items: Iterable[DrawableItem]) -> list[str]:
        lines: list[str] = []
        open_containers: list[Placement] = []
        for p in expand_items(items, expand_vector_sources=True):
            while open_containers and open_containers[-1].depth >= p.depth:
                lines.extend(self._close_lines(open_containers.pop()))
            if p.is_container:
                lines.extend(self._open_lines(p))
                open_containers.append(p)
            else:
                lines.extend(self._leaf_lines(p))
        while open_containers:
            lines.extend(self._close_lines(open_containers.pop()))
        return lines
