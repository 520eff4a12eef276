# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Normalisation and similarity primitives."""

from .fingerprint import compute_fingerprint, fingerprint_from_hex, fingerprint_to_hex, similarity
from .normalize import CANONICAL_SIZE, blank_canonical, normalize_pair, normalize_single
from .raster import InkBounds, Raster, detect_ink_bounds, ink_coverage, ink_width
from .resample import bicubic_resize
from .ssim import compute_ssim

__all__ = [
    "CANONICAL_SIZE",
    "InkBounds",
    "Raster",
    "bicubic_resize",
    "blank_canonical",
    "compute_fingerprint",
    "compute_ssim",
    "detect_ink_bounds",
    "fingerprint_from_hex",
    "fingerprint_to_hex",
    "ink_coverage",
    "ink_width",
    "normalize_pair",
    "normalize_single",
    "similarity",
]
