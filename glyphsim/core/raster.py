# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Raster container and ink-bounds detection."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

__all__ = [
    "BACKGROUND",
    "DEFAULT_INK_THRESHOLD",
    "InkBounds",
    "Raster",
    "detect_ink_bounds",
    "ink_coverage",
    "ink_width",
]

BACKGROUND = 255
DEFAULT_INK_THRESHOLD = 10


@dataclass(frozen=True)
class InkBounds:
    """Inclusive rectangle covering every ink pixel."""

    top: int
    bottom: int
    left: int
    right: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1


def detect_ink_bounds(pixels: np.ndarray, threshold: int = DEFAULT_INK_THRESHOLD) -> Optional[InkBounds]:
    """Return the ink rectangle of ``pixels`` or ``None`` when nothing is inked.

    Ink is any pixel darker than ``255 - threshold``.
    """

    mask = np.asarray(pixels) < (BACKGROUND - threshold)
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mask.any(axis=0))
    return InkBounds(top=int(rows[0]), bottom=int(rows[-1]), left=int(cols[0]), right=int(cols[-1]))


def ink_coverage(pixels: np.ndarray, threshold: int = DEFAULT_INK_THRESHOLD) -> float:
    """Fraction of pixels darker than ``255 - threshold``."""

    arr = np.asarray(pixels)
    if arr.size == 0:
        return 0.0
    return float(np.count_nonzero(arr < (BACKGROUND - threshold))) / float(arr.size)


def ink_width(bounds: Optional[InkBounds]) -> Optional[int]:
    if bounds is None:
        return None
    return bounds.width


@dataclass(frozen=True)
class Raster:
    """Single-channel render, 0 = ink and 255 = background.

    ``midline`` is the vertical reference line the rasterizer centred text
    on. All rasters of one batch share the rendering configuration, so pair
    normalisation can align them on it.
    """

    pixels: np.ndarray
    midline: Optional[float] = None
    _bounds: Optional[InkBounds] = field(default=None, init=False, repr=False, compare=False)
    _bounds_ready: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        arr = np.array(self.pixels, dtype=np.uint8, order="C")
        if arr.ndim != 2:
            raise ValueError(f"raster must be 2-D, got shape {arr.shape}")
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)
        if self.midline is None:
            object.__setattr__(self, "midline", arr.shape[0] / 2)

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def bounds(self) -> Optional[InkBounds]:
        if not self._bounds_ready:
            object.__setattr__(self, "_bounds", detect_ink_bounds(self.pixels))
            object.__setattr__(self, "_bounds_ready", True)
        return self._bounds

    @property
    def ink_width(self) -> Optional[int]:
        return ink_width(self.bounds)

    @classmethod
    def blank(cls, width: int, height: int) -> "Raster":
        return cls(np.full((height, width), BACKGROUND, dtype=np.uint8))
