"""Platform rasterization: paint a layer's items into one pixel grid.

The platform image is a white RGB canvas sized from the physical platform
and the line density.  Items are painted in list order: bitmaps are pasted
(alpha respected) and every other item is filled solid black from its
outline.  Image sources are decoded concurrently before any painting.
"""

from __future__ import annotations

import base64
import io
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image, ImageDraw

from .dither import WHITE_THRESHOLD, flip_horizontal, flip_vertical, halftone, to_grayscale
from .errors import ImageLoadError
from .expand import Placement, leaf_placements
from .items import DrawableItem, FreehandPath, RasterImage, TextLabel
from .layer import ScanSettings
from .outlines import item_outline
from .toolpath.utils import MIN_STROKE_PX, iter_polygons, silhouette

logger = logging.getLogger(__name__)

MAX_DECODE_WORKERS = 8


@dataclass
class PixelGrid:
    """Grayscale platform samples, row 0 at the top of the platform."""

    data: np.ndarray          # int16, shape (height, width)
    resolution: float         # mm per pixel

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def non_blank_count(self, threshold: int = WHITE_THRESHOLD) -> int:
        return int(np.count_nonzero(self.data < threshold))


def _js_round(v: float) -> int:
    return int(math.floor(v + 0.5))


def platform_pixels(platform_width: float, platform_height: float, line_density: float) -> tuple[int, int]:
    """Pixel size of the platform image at *line_density* mm per pixel."""
    if line_density <= 0:
        raise ValueError("line_density must be positive")
    return (
        max(1, _js_round(platform_width / line_density)),
        max(1, _js_round(platform_height / line_density)),
    )


# ---------------------------------------------------------------------------
# Image loading
# ---------------------------------------------------------------------------


def describe_source(href: Union[str, bytes]) -> str:
    if isinstance(href, bytes):
        return f"<{len(href)} bytes>"
    if href.startswith("data:"):
        return href[:40] + ("..." if len(href) > 40 else "")
    return href


def decode_image(href: Union[str, bytes]) -> Image.Image:
    """Load an RGBA bitmap from a path, a ``data:`` URL or encoded bytes.

    Raises
    ------
    ImageLoadError:
        If the source cannot be read or decoded.
    """
    try:
        if isinstance(href, bytes):
            stream = io.BytesIO(href)
        elif href.startswith("data:"):
            header, _, payload = href.partition(",")
            if ";base64" in header:
                raw = base64.b64decode(payload, validate=True)
            else:
                raw = unquote_to_bytes(payload)
            stream = io.BytesIO(raw)
        else:
            path = Path(href)
            if not path.exists():
                raise FileNotFoundError(f"Image file not found: {path}")
            stream = path
        with Image.open(stream) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageLoadError(describe_source(href), exc) from exc


def load_images(
    images: Sequence[RasterImage],
    max_workers: int = MAX_DECODE_WORKERS,
) -> list[Image.Image]:
    """Decode all *images* concurrently, results in input order.

    Every load completes (or fails) before this returns; the first failure
    in input order is raised.
    """
    if not images:
        return []
    workers = max(1, min(max_workers, len(images)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(decode_image, img.href) for img in images]
        # Join everything before surfacing an error
        errors = [f.exception() for f in futures]
    for err in errors:
        if err is not None:
            raise err
    logger.debug("Decoded %d image(s)", len(images))
    return [f.result() for f in futures]


# ---------------------------------------------------------------------------
# Painting
# ---------------------------------------------------------------------------


def _paste_image(
    canvas: Image.Image,
    bitmap: Image.Image,
    p: Placement,
    sx: float,
    sy: float,
) -> None:
    item: RasterImage = p.item
    w = max(1, _js_round(item.width * p.scale * sx))
    h = max(1, _js_round(item.height * p.scale * sy))
    tile = bitmap.resize((w, h), Image.Resampling.LANCZOS)
    if p.rotation:
        # Screen rotation is clockwise; PIL rotates counter-clockwise
        tile = tile.rotate(-p.rotation, resample=Image.Resampling.BICUBIC, expand=True)
    left = _js_round(p.x * sx - tile.width / 2)
    top = _js_round(p.y * sy - tile.height / 2)
    canvas.paste(tile, (left, top), tile)


def _fill_shape(canvas: Image.Image, p: Placement, sx: float, sy: float) -> bool:
    contours = [c.placed(p.x, p.y, p.rotation, p.scale) for c in item_outline(p.item)]
    if not contours:
        return False

    stroke = MIN_STROKE_PX
    if isinstance(p.item, FreehandPath):
        stroke = max(MIN_STROKE_PX, p.item.stroke_width * p.scale * sx)

    # Arc chords within a quarter pixel of the true curve
    tolerance = 0.25 / max(sx, sy)
    region = silhouette(contours, lambda x, y: (x * sx, y * sy), stroke, tolerance)
    if region.is_empty:
        return False

    # Mask only the item's bounding box so holes expose what is underneath
    minx, miny, maxx, maxy = region.bounds
    left, top = int(math.floor(minx)), int(math.floor(miny))
    right, bottom = int(math.ceil(maxx)) + 1, int(math.ceil(maxy)) + 1
    mask = Image.new("L", (right - left, bottom - top), 0)
    draw = ImageDraw.Draw(mask)
    for poly in iter_polygons(region):
        draw.polygon([(x - left, y - top) for x, y in poly.exterior.coords], fill=255)
        for ring in poly.interiors:
            draw.polygon([(x - left, y - top) for x, y in ring.coords], fill=0)
    canvas.paste((0, 0, 0), (left, top, right, bottom), mask)
    return True


def rasterize_items(
    items: Sequence[DrawableItem],
    platform_width: float,
    platform_height: float,
    canvas_width: float,
    canvas_height: float,
    line_density: float,
) -> Image.Image:
    """Paint *items* onto a white platform image.

    Parameters
    ----------
    platform_width, platform_height:
        Physical platform size in mm; sets the pixel dimensions.
    canvas_width, canvas_height:
        Size of the design canvas the item coordinates refer to.

    Raises
    ------
    ImageLoadError:
        If any image on the layer cannot be decoded.
    """
    width, height = platform_pixels(platform_width, platform_height, line_density)
    if canvas_width <= 0 or canvas_height <= 0:
        raise ValueError("canvas size must be positive")
    sx = width / canvas_width
    sy = height / canvas_height

    placements = leaf_placements(items, expand_vector_sources=False)
    image_placements = [p for p in placements if isinstance(p.item, RasterImage)]
    bitmaps = iter(load_images([p.item for p in image_placements]))

    canvas = Image.new("RGB", (width, height), (255, 255, 255))
    painted = 0
    for p in placements:
        if isinstance(p.item, TextLabel):
            continue
        if isinstance(p.item, RasterImage):
            _paste_image(canvas, next(bitmaps), p, sx, sy)
            painted += 1
        elif _fill_shape(canvas, p, sx, sy):
            painted += 1

    logger.info("Rasterized %d item(s) onto %dx%d px platform", painted, width, height)
    return canvas


def build_pixel_grid(
    items: Sequence[DrawableItem],
    settings: ScanSettings,
    platform_width: float,
    platform_height: float,
    canvas_width: Optional[float] = None,
    canvas_height: Optional[float] = None,
) -> PixelGrid:
    """Rasterize, convert to grayscale, mirror and optionally halftone."""
    image = rasterize_items(
        items,
        platform_width,
        platform_height,
        canvas_width or platform_width,
        canvas_height or platform_height,
        settings.line_density,
    )
    data = to_grayscale(image, settings.negative_image)
    if settings.h_flipped:
        flip_horizontal(data)
    if settings.v_flipped:
        flip_vertical(data)
    if settings.is_halftone:
        halftone(data)
    return PixelGrid(data=data, resolution=settings.line_density)
