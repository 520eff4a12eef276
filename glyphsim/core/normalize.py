# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Ink-bounds normalisation into fixed-size canonical images."""
from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from .raster import BACKGROUND, InkBounds, Raster
from .resample import bicubic_resize

__all__ = [
    "CANONICAL_SIZE",
    "blank_canonical",
    "normalize_single",
    "normalize_pair",
]

CANONICAL_SIZE = 48


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def blank_canonical(size: int = CANONICAL_SIZE) -> np.ndarray:
    return np.full((size, size), BACKGROUND, dtype=np.uint8)


def _crop(pixels: np.ndarray, top: int, left: int, width: int, height: int) -> np.ndarray:
    """Copy a rectangle, reading rows past the bottom edge as background."""

    out = np.full((height, width), BACKGROUND, dtype=np.uint8)
    rows = max(0, min(height, pixels.shape[0] - top))
    out[:rows] = pixels[top:top + rows, left:left + width]
    return out


def _pad(image: np.ndarray, size: int) -> np.ndarray:
    out = blank_canonical(size)
    h, w = image.shape
    off_y = (size - h) // 2
    off_x = (size - w) // 2
    out[off_y:off_y + h, off_x:off_x + w] = image
    return out


def _scale_and_pad(cropped: np.ndarray, scale: float, size: int) -> np.ndarray:
    crop_h, crop_w = cropped.shape
    scaled_w = min(size, max(1, _round_half_up(crop_w * scale)))
    scaled_h = min(size, max(1, _round_half_up(crop_h * scale)))
    return _pad(bicubic_resize(cropped, scaled_w, scaled_h), size)


def normalize_single(raster: Raster, size: int = CANONICAL_SIZE) -> np.ndarray:
    """Crop ``raster`` to its ink, fit it into ``size`` x ``size`` and centre it."""

    bounds = raster.bounds
    if bounds is None:
        return blank_canonical(size)
    cropped = _crop(raster.pixels, bounds.top, bounds.left, bounds.width, bounds.height)
    scale = min(size / bounds.width, size / bounds.height)
    return _scale_and_pad(cropped, scale, size)


def _vertical_window(raster: Raster, union_top: float, union_bottom: float) -> Tuple[int, int]:
    mid = float(raster.midline)
    top = max(0, math.floor(mid + union_top))
    bottom = min(raster.height - 1, math.ceil(mid + union_bottom))
    return int(top), int(bottom)


def normalize_pair(
    a: Raster,
    b: Raster,
    size: int = CANONICAL_SIZE,
) -> Tuple[np.ndarray, np.ndarray]:
    """Normalise two rasters together so relative size and position survive.

    Both sides share one vertical window (the union of their ink extents
    measured from each raster's midline) and one scale factor, chosen so the
    wider crop and the shared height both fit. Horizontal crops stay per
    side. A side without ink becomes a blank canvas and the other side is
    normalised alone. The result is symmetric: ``normalize_pair(b, a)``
    returns the same two images swapped.
    """

    bounds_a: Optional[InkBounds] = a.bounds
    bounds_b: Optional[InkBounds] = b.bounds
    if bounds_a is None and bounds_b is None:
        return blank_canonical(size), blank_canonical(size)
    if bounds_a is None:
        return blank_canonical(size), normalize_single(b, size)
    if bounds_b is None:
        return normalize_single(a, size), blank_canonical(size)

    mid_a = float(a.midline)
    mid_b = float(b.midline)
    union_top = min(bounds_a.top - mid_a, bounds_b.top - mid_b)
    union_bottom = max(bounds_a.bottom - mid_a, bounds_b.bottom - mid_b)

    top_a, bottom_a = _vertical_window(a, union_top, union_bottom)
    top_b, bottom_b = _vertical_window(b, union_top, union_bottom)
    crop_h = max(bottom_a - top_a + 1, bottom_b - top_b + 1)

    crop_a = _crop(a.pixels, top_a, bounds_a.left, bounds_a.width, crop_h)
    crop_b = _crop(b.pixels, top_b, bounds_b.left, bounds_b.width, crop_h)

    scale = min(size / max(bounds_a.width, bounds_b.width), size / crop_h)
    return _scale_and_pad(crop_a, scale, size), _scale_and_pad(crop_b, scale, size)
