"""Scan-layer program assembly.

Builds the platform pixel grid for one layer, plans the boustrophedon scan
and writes the complete program: documentation header, setup block, one
block per scanned row, shutdown and optimization summary.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from pathlib import Path
from typing import Optional, Sequence

from ..config.defaults import DEFAULT_PLATFORM_HEIGHT, DEFAULT_PLATFORM_WIDTH
from ..core.errors import EmptyLayerError
from ..core.items import DrawableItem, RasterImage, TextLabel
from ..core.layer import Layer, PrintingMethod, ScanSettings
from ..core.raster import build_pixel_grid
from ..core.toolpath.base import ScanPlan
from ..core.toolpath.scan import NON_BLANK_THRESHOLD, plan_scan
from .emitter import GCodeEmitter
from .gcode_writer import comment, fmt

logger = logging.getLogger(__name__)

SCAN_DECIMALS = 2


class ScanPostProcessor:
    """Generate a raster scan program for one layer.

    Parameters
    ----------
    platform_width, platform_height:
        Physical work area in mm.
    canvas_width, canvas_height:
        Design canvas size the item coordinates refer to; defaults to the
        platform size.
    """

    def __init__(
        self,
        layer: Layer,
        settings: ScanSettings,
        platform_width: float = DEFAULT_PLATFORM_WIDTH,
        platform_height: float = DEFAULT_PLATFORM_HEIGHT,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
    ):
        self.layer = layer
        self.settings = settings
        self.platform_width = platform_width
        self.platform_height = platform_height
        self.canvas_width = canvas_width or platform_width
        self.canvas_height = canvas_height or platform_height

    def layer_items(self, items: Sequence[DrawableItem]) -> list[DrawableItem]:
        """Items on this layer that can leave a mark on the platform."""
        return [
            it for it in items
            if it.layer_id == self.layer.id and not isinstance(it, TextLabel)
        ]

    def _header(self, n_items: int, width: int, height: int) -> list[str]:
        s = self.settings
        return [
            comment("Platform scan program"),
            comment(f"Layer: {self.layer.name}"),
            comment(f"Object count: {n_items}"),
            comment(f"Platform size: {fmt(self.platform_width)}x{fmt(self.platform_height)} mm"),
            comment(f"Resolution: {fmt(s.line_density)} mm/pixel ({width}x{height} pixels)"),
            comment(f"Mode: {'Halftone' if s.is_halftone else 'Greyscale'}"),
            comment(f"Power range: [{fmt(s.min_power)}, {fmt(s.max_power)}] (0-100 scale)"),
            comment(
                f"Speed: burn={fmt(s.burn_speed, 1)} mm/min, "
                f"travel={fmt(s.travel_speed, 1)} mm/min"
            ),
            ";",
            "G90 ; Absolute positioning",
            "G21 ; Units in millimeters",
            f"G0 X0 Y0 F{fmt(s.travel_speed, 1)} ; Move to origin",
            "M4 ; Enable laser (variable power mode)",
            "",
        ]

    def _content_comments(self, plan: ScanPlan) -> list[str]:
        st = plan.stats
        dx = st.resolution
        os = self.settings.overscan_dist
        return [
            comment(f"Content threshold: pixel < {NON_BLANK_THRESHOLD}"),
            comment(
                f"Overscan: {fmt(os)} mm ({math.ceil(os / dx)} pixels at {dx:.3f} mm/pixel)"
            ),
            comment(
                f"Content bounds: X[{st.min_x * dx:.1f}, {st.max_x * dx:.1f}] "
                f"Y[{st.min_y * dx:.1f}, {st.max_y * dx:.1f}] mm"
            ),
            comment(
                f"Content pixels: minX={st.min_x}, maxX={st.max_x}, "
                f"minY={st.min_y}, maxY={st.max_y} "
                f"({st.max_x - st.min_x + 1}x{st.row_span} pixels)"
            ),
            comment(
                f"Content area: {st.content_width:.1f}x{st.content_height:.1f} mm "
                f"(reduced by {st.reduction_x:.1f}%x{st.reduction_y:.1f}%)"
            ),
            comment(
                f"Rows: {st.row_span} of {st.height} total "
                f"({st.row_span / st.height * 100:.1f}%)"
            ),
            "",
        ]

    def _footer(self, plan: ScanPlan) -> list[str]:
        st = plan.stats
        return [
            "M5 ; Disable laser",
            f"G0 X0 Y0 F{fmt(self.settings.travel_speed, 1)} ; Return to origin",
            "",
            comment("Optimization results:"),
            comment(
                f"- Processed {st.processed_rows} rows, skipped {st.skipped_rows} blank rows"
            ),
            comment(
                f"- Total area reduction: {st.reduction_x:.1f}% width x "
                f"{st.reduction_y:.1f}% height"
            ),
            "M2 ; End program",
        ]

    def get_lines(self, items: Sequence[DrawableItem]) -> list[str]:
        """Return the full program as a list of lines.

        Raises
        ------
        EmptyLayerError:
            If the layer has no item that can be rasterized.
        ImageLoadError:
            If an image on the layer cannot be decoded.
        """
        if self.layer.printing_method is not PrintingMethod.SCAN:
            raise ValueError(f"Layer '{self.layer.name}' is not a scan layer")
        layer_items = self.layer_items(items)
        if not layer_items:
            raise EmptyLayerError(self.layer.name, "no items to scan")

        grid = build_pixel_grid(
            layer_items,
            self.settings,
            self.platform_width,
            self.platform_height,
            self.canvas_width,
            self.canvas_height,
        )
        plan = plan_scan(grid, self.settings)

        lines = self._header(len(layer_items), grid.width, grid.height)
        if plan.is_empty:
            lines += [
                comment("No content found in layer"),
                "M5 ; Disable laser",
                "G0 X0 Y0 ; Return to origin",
                "M2 ; End program",
            ]
            return lines

        lines += self._content_comments(plan)
        emitter = GCodeEmitter(decimals=SCAN_DECIMALS)
        for row in plan.rows:
            emitter.submit_all(row.requests)
            emitter.raw("")
        lines += emitter.lines
        lines += self._footer(plan)
        logger.info(
            "Scan layer '%s': %d rows, %d lines",
            self.layer.name, len(plan.rows), len(lines),
        )
        return lines

    def generate(self, items: Sequence[DrawableItem], output_path: Path) -> Path:
        """Write the program to *output_path*."""
        output_path = Path(output_path)
        lines = self.get_lines(items)
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def generate_scan_gcode(image: RasterImage, settings: ScanSettings) -> str:
    """Scan a single image on a platform of exactly its own size."""
    layer = Layer(id="single-image", name="Single Image", printing_method=PrintingMethod.SCAN)
    placed = dataclasses.replace(
        image, x=image.width / 2, y=image.height / 2, rotation=0.0, layer_id=layer.id,
    )
    post = ScanPostProcessor(layer, settings, image.width, image.height)
    return "\n".join(post.get_lines([placed]))
