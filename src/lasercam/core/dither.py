"""Grayscale conversion, mirroring and halftone dithering of platform images.

Samples are int16 in 0..255, where 0 is black (full power) and 255 is white
(laser off).
"""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Pixels at or above this value count as blank background
WHITE_THRESHOLD = 220
HALFTONE_THRESHOLD = 128

# Error-diffusion kernel, columns at offsets -2..+2, rows at offsets 0..2
_KERNEL = (
    (0, 0, 0, 7, 5),
    (3, 5, 7, 5, 3),
    (1, 3, 5, 3, 1),
)
_KERNEL_DIVISOR = 48.0


def srgb_to_linear(c: np.ndarray) -> np.ndarray:
    """sRGB 0..255 → linear 0..1."""
    v = np.asarray(c, dtype=np.float64) / 255.0
    return np.where(v < 0.04045, v / 12.92, ((v + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(lin: np.ndarray) -> np.ndarray:
    """Linear 0..1 → sRGB 0..255 (rounded half up)."""
    lin = np.clip(np.asarray(lin, dtype=np.float64), 0.0, 1.0)
    v = np.where(
        lin > 0.0031308,
        1.055 * np.power(lin, 1 / 2.4) - 0.055,
        12.92 * lin,
    )
    return np.floor(v * 255.0 + 0.5)


def to_grayscale(image: Image.Image, negative: bool = False) -> np.ndarray:
    """Perceptual luminance of *image* as an int16 ``(height, width)`` array.

    Parameters
    ----------
    negative:
        Invert luminance before re-encoding, so dark areas become blank.
    """
    rgb = np.asarray(image.convert("RGB"), dtype=np.float64)
    r = srgb_to_linear(rgb[..., 0])
    g = srgb_to_linear(rgb[..., 1])
    b = srgb_to_linear(rgb[..., 2])
    lum = 0.2126 * r + 0.7152 * g + 0.0722 * b
    if negative:
        lum = 1.0 - lum
    return linear_to_srgb(lum).astype(np.int16)


def flip_horizontal(data: np.ndarray) -> np.ndarray:
    """Mirror left/right in place."""
    data[:] = data[:, ::-1].copy()
    return data


def flip_vertical(data: np.ndarray) -> np.ndarray:
    """Mirror top/bottom in place."""
    data[:] = data[::-1, :].copy()
    return data


def halftone(data: np.ndarray) -> np.ndarray:
    """Binarize *data* in place with protected error diffusion.

    Every pixel is quantized and spreads its error, but pixels that start
    at or above ``WHITE_THRESHOLD`` never receive diffused error and end as
    exactly 255, so background stays blank next to dithered content.  Error
    is accumulated in a separate float buffer and clamped to 0..255 at each
    step.

    Only the two same-row taps depend on the pixel just quantized, so each
    row is walked in Python and the taps into the next two rows are applied
    as whole-row array operations once the row is done.
    """
    height, width = data.shape
    work = data.astype(np.float64)
    white = data >= WHITE_THRESHOLD
    out = np.empty_like(data)
    errs = np.empty(width, dtype=np.float64)

    for iy in range(height):
        row = work[iy].tolist()
        row_white = white[iy].tolist()
        for ix in range(width):
            old = row[ix]
            new = 0.0 if old < HALFTONE_THRESHOLD else 255.0
            err = old - new
            row[ix] = new
            errs[ix] = err
            if err == 0:
                continue
            for tx, weight in ((ix + 1, _KERNEL[0][3]), (ix + 2, _KERNEL[0][4])):
                if tx < width and not row_white[tx]:
                    row[tx] = min(255.0, max(0.0, row[tx] + err * weight / _KERNEL_DIVISOR))
        out[iy] = np.asarray(row)
        for ky in (1, 2):
            ty = iy + ky
            if ty >= height:
                break
            _spread_row(work[ty], white[ty], errs, _KERNEL[ky])

    out[white] = 255
    data[:] = out
    logger.debug("Halftone applied to %dx%d grid", width, height)
    return data


def _spread_row(target: np.ndarray, target_white: np.ndarray, errs: np.ndarray, weights) -> None:
    """Add one kernel row of *errs* into *target*, clamping after each tap.

    Taps run from the rightmost kernel column to the leftmost so every
    target pixel sees its sources in left-to-right order.
    """
    width = target.shape[0]
    for kx in range(len(weights) - 1, -1, -1):
        weight = weights[kx]
        shift = kx - 2
        contrib = np.zeros(width, dtype=np.float64)
        if shift >= 0:
            contrib[shift:] = errs[:width - shift]
        else:
            contrib[:shift] = errs[-shift:]
        contrib = contrib * weight / _KERNEL_DIVISOR
        touched = ~target_white & (contrib != 0)
        target[touched] = np.clip(target[touched] + contrib[touched], 0.0, 255.0)
