# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Pillow-backed rasterizer."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from ..core.raster import BACKGROUND, Raster
from .interfaces import Rasterizer

logger = logging.getLogger(__name__)

__all__ = ["PillowRasterizer", "SINGLE_CANVAS"]

SINGLE_CANVAS = (64, 64)


class PillowRasterizer(Rasterizer):
    """Draw text black-on-white, centred on the canvas midline.

    ``fonts`` maps a font-context name to a font file. The point size is
    ``fill`` times the canvas height so every context shares one layout.
    """

    def __init__(
        self,
        fonts: Mapping[str, str],
        *,
        width: int = SINGLE_CANVAS[0],
        height: int = SINGLE_CANVAS[1],
        fill: float = 0.75,
    ) -> None:
        self.canvas_width = int(width)
        self.canvas_height = int(height)
        self.fill = float(fill)
        self._paths: Dict[str, str] = dict(fonts)
        self._loaded: Dict[str, Optional[ImageFont.FreeTypeFont]] = {}

    def _font(self, font: str) -> Optional[ImageFont.FreeTypeFont]:
        if font not in self._loaded:
            path = self._paths.get(font)
            loaded: Optional[ImageFont.FreeTypeFont] = None
            if path is not None:
                try:
                    loaded = ImageFont.truetype(path, size=max(1, round(self.canvas_height * self.fill)))
                except OSError as exc:
                    logger.warning("cannot load font %s from %s: %s", font, path, exc)
            self._loaded[font] = loaded
        return self._loaded[font]

    def rasterize(self, text: str, font: str) -> Optional[Raster]:
        face = self._font(font)
        if face is None:
            return None
        canvas = Image.new("L", (self.canvas_width, self.canvas_height), color=BACKGROUND)
        draw = ImageDraw.Draw(canvas)
        draw.text((self.canvas_width / 2, self.canvas_height / 2), text, font=face, fill=0, anchor="mm")
        return Raster(np.asarray(canvas, dtype=np.uint8), midline=self.canvas_height / 2)
