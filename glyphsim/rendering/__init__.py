# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Rendering collaborators: protocols, a Pillow adapter and test doubles."""

from .interfaces import FontRegistry, Rasterizer
from .mocks import StaticFontRegistry, StaticRasterizer
from .pillow import PillowRasterizer

__all__ = [
    "FontRegistry",
    "Rasterizer",
    "PillowRasterizer",
    "StaticFontRegistry",
    "StaticRasterizer",
]
