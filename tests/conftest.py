# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Pytest configuration and synthetic glyph helpers shared across the suite."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image, ImageDraw


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def blank(width: int = 64, height: int = 64) -> np.ndarray:
    return np.full((height, width), 255, dtype=np.uint8)


def draw_shape(kind: str, width: int = 64, height: int = 64, **kw) -> np.ndarray:
    """Black-on-white synthetic glyph drawn with Pillow."""

    image = Image.new("L", (width, height), color=255)
    draw = ImageDraw.Draw(image)
    box = kw.get("box", (20, 14, 44, 50))
    if kind == "rect":
        draw.rectangle(box, fill=0)
    elif kind == "ring":
        draw.ellipse(box, outline=0, width=kw.get("stroke", 5))
    elif kind == "bar":
        draw.rectangle(box, fill=0)
    elif kind == "cross":
        x0, y0, x1, y1 = box
        cx, cy = (x0 + x1) // 2, (y0 + y1) // 2
        draw.rectangle((x0, cy - 3, x1, cy + 3), fill=0)
        draw.rectangle((cx - 3, y0, cx + 3, y1), fill=0)
    elif kind == "tri":
        x0, y0, x1, y1 = box
        draw.polygon([(x0, y1), ((x0 + x1) // 2, y0), (x1, y1)], fill=0)
    else:
        raise ValueError(kind)
    return np.asarray(image, dtype=np.uint8).copy()


@pytest.fixture
def shapes():
    return draw_shape


def make_unit(unit, renders, statuses=None):
    """Build in-memory ``UnitRenders`` from ``{font: pixels or None}``."""

    from glyphsim.core.fingerprint import compute_fingerprint
    from glyphsim.core.normalize import normalize_single
    from glyphsim.core.raster import Raster
    from glyphsim.orchestrator.planner import RenderEntry, UnitRenders
    from glyphsim.orchestrator.provenance import RenderStatus

    statuses = statuses or {}
    entries = []
    for font, pixels in renders.items():
        if pixels is None:
            entries.append(RenderEntry(unit=unit, font=font, status=RenderStatus.MISSING))
            continue
        raster = Raster(pixels)
        entries.append(
            RenderEntry(
                unit=unit,
                font=font,
                status=statuses.get(font, RenderStatus.NATIVE),
                fallback_font="Fallback" if statuses.get(font) is RenderStatus.FALLBACK else None,
                fingerprint=compute_fingerprint(normalize_single(raster)),
                ink_width=raster.ink_width,
                raster=raster,
            )
        )
    return UnitRenders(unit=unit, entries=entries)
