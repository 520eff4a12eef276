# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Render provenance: native, fallback or missing.

A renderer asked for a glyph its font lacks either draws nothing, draws the
font's replacement character, draws the system "unknown codepoint" box, or
silently substitutes another font. The first three are classified as
``missing``; the last is detected by exact pixel comparison against the same
text rendered in the known fallback contexts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.raster import Raster
from ..rendering.interfaces import Rasterizer

logger = logging.getLogger(__name__)

__all__ = [
    "RenderStatus",
    "ReferenceTables",
    "Classification",
    "classify_render",
    "is_placeholder_box",
    "render_fallbacks",
]

REPLACEMENT_CHARACTER = "\ufffd"
_BOX_DARK = 200
_BOX_MIN_SIDE = 15
_BOX_EDGE_FILL = 0.75


class RenderStatus(str, Enum):
    NATIVE = "native"
    FALLBACK = "fallback"
    MISSING = "missing"


@dataclass(frozen=True)
class Classification:
    status: RenderStatus
    fallback_font: Optional[str] = None


@dataclass(frozen=True)
class ReferenceTables:
    """Reference renders built once per run and shared read-only."""

    blank: np.ndarray
    replacement: Mapping[str, Optional[np.ndarray]]
    fallback_fonts: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        rasterizer: Rasterizer,
        fonts: Iterable[str],
        fallback_fonts: Sequence[str] = (),
    ) -> "ReferenceTables":
        blank = Raster.blank(rasterizer.canvas_width, rasterizer.canvas_height).pixels
        replacement: Dict[str, Optional[np.ndarray]] = {}
        for font in fonts:
            rendered = rasterizer.rasterize(REPLACEMENT_CHARACTER, font)
            replacement[font] = None if rendered is None else rendered.pixels
        logger.debug("reference tables: %d fonts, %d fallback contexts", len(replacement), len(fallback_fonts))
        return cls(blank=blank, replacement=replacement, fallback_fonts=tuple(fallback_fonts))


def _same(a: np.ndarray, b: Optional[np.ndarray]) -> bool:
    return b is not None and a.shape == b.shape and bool(np.array_equal(a, b))


def is_placeholder_box(pixels: np.ndarray) -> bool:
    """Detect a bordered "unknown codepoint" box.

    The dark-pixel (< 200) bounding box must be at least 15x15 and each of
    its four edges must be more than 75% dark.
    """

    dark = np.asarray(pixels) < _BOX_DARK
    rows = np.flatnonzero(dark.any(axis=1))
    if rows.size == 0:
        return False
    cols = np.flatnonzero(dark.any(axis=0))
    top, bottom, left, right = rows[0], rows[-1], cols[0], cols[-1]
    box_w = right - left + 1
    box_h = bottom - top + 1
    if box_w < _BOX_MIN_SIDE or box_h < _BOX_MIN_SIDE:
        return False
    edges = (
        dark[top, left:right + 1].sum() / box_w,
        dark[bottom, left:right + 1].sum() / box_w,
        dark[top:bottom + 1, left].sum() / box_h,
        dark[top:bottom + 1, right].sum() / box_h,
    )
    return all(edge > _BOX_EDGE_FILL for edge in edges)


def render_fallbacks(rasterizer: Rasterizer, text: str, tables: ReferenceTables) -> Dict[str, np.ndarray]:
    """Render ``text`` once in each fallback context for reuse across fonts."""

    out: Dict[str, np.ndarray] = {}
    for font in tables.fallback_fonts:
        rendered = rasterizer.rasterize(text, font)
        if rendered is not None:
            out[font] = rendered.pixels
    return out


def classify_render(
    raster: Optional[Raster],
    font: str,
    tables: ReferenceTables,
    fallback_renders: Optional[Mapping[str, np.ndarray]] = None,
) -> Classification:
    if raster is None:
        return Classification(RenderStatus.MISSING)
    pixels = raster.pixels
    if _same(pixels, tables.blank) or _same(pixels, tables.replacement.get(font)):
        return Classification(RenderStatus.MISSING)
    if is_placeholder_box(pixels):
        return Classification(RenderStatus.MISSING)
    if font not in tables.fallback_fonts:
        for fb_font, fb_pixels in (fallback_renders or {}).items():
            if _same(pixels, fb_pixels):
                return Classification(RenderStatus.FALLBACK, fb_font)
    return Classification(RenderStatus.NATIVE)
