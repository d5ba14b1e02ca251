"""Content-aware boustrophedon scan planning.

Only the bounding box of non-blank pixels is scanned.  Rows alternate
direction by the parity of their absolute index, each row is entered and
left through an overscan margin at travel speed, and runs of more than
``RUN_SKIP_MIN`` zero-power pixels are crossed with a single rapid move.

Machine row ``y`` is grid row ``height - 1 - y``: row 0 of the grid is the
top of the platform, machine Y grows upward.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from ..dither import HALFTONE_THRESHOLD, WHITE_THRESHOLD
from ..layer import ScanSettings
from ..raster import PixelGrid
from .base import MotionRequest, ScanPlan, ScanRow, ScanStats

logger = logging.getLogger(__name__)

# Pixels below this are content
NON_BLANK_THRESHOLD = WHITE_THRESHOLD
# A zero-power run must be strictly longer than this to be skipped
RUN_SKIP_MIN = 3
# Single-power greyscale cut-off
SINGLE_POWER_THRESHOLD = 127


def pixel_power(c: int, settings: ScanSettings) -> float:
    """Laser power (0-100 scale) for one grayscale sample."""
    if settings.is_halftone:
        return settings.max_power if c < HALFTONE_THRESHOLD else 0
    if settings.max_power == settings.min_power:
        return settings.max_power if c < SINGLE_POWER_THRESHOLD else 0
    span = settings.max_power - settings.min_power
    return math.floor(settings.min_power + (1.0 - c / 255.0) * span + 0.5)


def row_powers(pixels: np.ndarray, settings: ScanSettings) -> list[float]:
    """Vectorized :func:`pixel_power` over a whole row."""
    c = pixels.astype(np.float64)
    top = float(settings.max_power)
    if settings.is_halftone:
        powers = np.where(c < HALFTONE_THRESHOLD, top, 0.0)
    elif settings.max_power == settings.min_power:
        powers = np.where(c < SINGLE_POWER_THRESHOLD, top, 0.0)
    else:
        span = settings.max_power - settings.min_power
        powers = np.floor(settings.min_power + (1.0 - c / 255.0) * span + 0.5)
    return powers.tolist()


def content_bounds(grid: PixelGrid) -> tuple[int, int, int, int] | None:
    """``(min_x, max_x, min_y, max_y)`` of non-blank pixels in machine rows."""
    mask = grid.data < NON_BLANK_THRESHOLD
    cols = np.flatnonzero(mask.any(axis=0))
    rows = np.flatnonzero(mask.any(axis=1))
    if cols.size == 0:
        return None
    h = grid.height
    return (
        int(cols[0]),
        int(cols[-1]),
        h - 1 - int(rows[-1]),
        h - 1 - int(rows[0]),
    )


def _plan_row(
    row: ScanRow,
    powers: list[float],
    row_min: int,
    row_max: int,
    grid: PixelGrid,
    settings: ScanSettings,
) -> None:
    dx = grid.resolution
    os = settings.overscan_dist
    travel = settings.travel_speed
    burn = settings.burn_speed
    reverse = row.reverse

    overscan_px = math.ceil(os / dx)
    scan_start = max(0, row_min - overscan_px)
    scan_end = min(grid.width - 1, row_max + overscan_px)
    content_start = row_min * dx
    content_end = row_max * dx

    def ix_at(sx: int) -> int:
        return scan_end - (sx - scan_start) if reverse else sx

    entry = content_end + os if reverse else content_start - os
    row.append(MotionRequest(entry, row.y, 0, travel, force_flush=True))
    if settings.is_halftone and os > 0:
        preheat = content_end + os * 0.5 if reverse else content_start - os * 0.5
        row.append(MotionRequest(preheat, None, 0, travel))
    row.append(MotionRequest(content_end if reverse else content_start, None, 0, travel))

    sx = scan_start
    while sx <= scan_end:
        ix = ix_at(sx)
        power = powers[ix]
        if power > 0:
            row.append(MotionRequest(ix * dx, None, power, burn))
            sx += 1
            continue

        blank_end = sx
        while blank_end <= scan_end and powers[ix_at(blank_end)] <= 0:
            blank_end += 1

        if blank_end - sx > RUN_SKIP_MIN:
            far = ix_at(blank_end - 1)
            row.append(MotionRequest(far * dx, None, 0, travel))
            sx = blank_end
        else:
            row.append(MotionRequest(ix * dx, None, 0, burn))
            sx += 1

    exit_x = content_start - os if reverse else content_end + os
    row.append(MotionRequest(exit_x, None, 0, travel, force_flush=True))


def plan_scan(grid: PixelGrid, settings: ScanSettings) -> ScanPlan:
    """Plan the motion for a finished pixel grid.

    Returns a plan with no rows when the grid holds no content.
    """
    stats = ScanStats(
        width=grid.width,
        height=grid.height,
        resolution=grid.resolution,
        overscan=settings.overscan_dist,
    )
    plan = ScanPlan(stats=stats)
    bounds = content_bounds(grid)
    if bounds is None:
        logger.info("No content found on %dx%d grid", grid.width, grid.height)
        return plan

    stats.min_x, stats.max_x, stats.min_y, stats.max_y = bounds
    h = grid.height
    for y in range(stats.min_y, stats.max_y + 1):
        pixels = grid.data[h - 1 - y]
        window = np.flatnonzero(pixels[stats.min_x:stats.max_x + 1] < NON_BLANK_THRESHOLD)
        if window.size == 0:
            stats.skipped_rows += 1
            continue
        row_min = stats.min_x + int(window[0])
        row_max = stats.min_x + int(window[-1])
        powers = row_powers(pixels, settings)
        row = ScanRow(index=y, y=y * grid.resolution, reverse=y % 2 != 0)
        _plan_row(row, powers, row_min, row_max, grid, settings)
        plan.add_row(row)

    logger.info(
        "Scan plan: %d rows, %d skipped, %d requests",
        len(plan.rows), stats.skipped_rows, plan.total_requests,
    )
    return plan
