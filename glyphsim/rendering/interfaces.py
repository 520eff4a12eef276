# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Interfaces for the rendering collaborators."""
from __future__ import annotations

from typing import List, Optional, Protocol

from ..core.raster import Raster


class Rasterizer(Protocol):
    """Deterministic text renderer for a fixed canvas configuration."""

    canvas_width: int
    canvas_height: int

    def rasterize(self, text: str, font: str) -> Optional[Raster]:
        """Render ``text`` in ``font``; ``None`` means the font produced nothing."""
        ...


class FontRegistry(Protocol):
    def fonts(self) -> List[str]:
        ...

    def fonts_for(self, text: str) -> List[str]:
        """Font contexts that natively contain a usable glyph for ``text``."""
        ...
