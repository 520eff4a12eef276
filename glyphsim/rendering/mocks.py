"""In-memory rendering collaborators for tests."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from ..core.raster import Raster
from .interfaces import FontRegistry, Rasterizer

Painter = Callable[[str, str], Optional[np.ndarray]]


class StaticRasterizer(Rasterizer):
    """Serves pre-built pixel buffers keyed by ``(text, font)``.

    Unknown keys fall back to ``default`` (a painter callable) and then to a
    blank canvas, which mirrors a renderer drawing nothing.
    """

    def __init__(
        self,
        renders: Optional[Mapping[Tuple[str, str], Optional[np.ndarray]]] = None,
        *,
        width: int = 64,
        height: int = 64,
        default: Optional[Painter] = None,
    ) -> None:
        self.canvas_width = width
        self.canvas_height = height
        self._renders: Dict[Tuple[str, str], Optional[np.ndarray]] = dict(renders or {})
        self._default = default
        self.calls: List[Tuple[str, str]] = []

    def add(self, text: str, font: str, pixels: Optional[np.ndarray]) -> None:
        self._renders[(text, font)] = pixels

    def rasterize(self, text: str, font: str) -> Optional[Raster]:
        self.calls.append((text, font))
        key = (text, font)
        if key in self._renders:
            pixels = self._renders[key]
        elif self._default is not None:
            pixels = self._default(text, font)
        else:
            pixels = np.full((self.canvas_height, self.canvas_width), 255, dtype=np.uint8)
        if pixels is None:
            return None
        return Raster(pixels)


class StaticFontRegistry(FontRegistry):
    def __init__(self, coverage: Mapping[str, Iterable[str]]) -> None:
        self._coverage: Dict[str, frozenset] = {font: frozenset(texts) for font, texts in coverage.items()}
        self.calls: List[str] = []

    def fonts(self) -> List[str]:
        return list(self._coverage)

    def fonts_for(self, text: str) -> List[str]:
        self.calls.append(text)
        return [font for font, texts in self._coverage.items() if text in texts]
