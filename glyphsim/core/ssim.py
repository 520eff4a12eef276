# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Structural similarity on canonical images."""
from __future__ import annotations

import numpy as np
from skimage.metrics import structural_similarity

__all__ = ["compute_ssim"]


def compute_ssim(a: np.ndarray, b: np.ndarray) -> float:
    """Mean SSIM of two same-shape greyscale images.

    Gaussian 11x11 window (sigma 1.5), K1 = 0.01, K2 = 0.03, data range 255
    and population covariance. Symmetric, and 1.0 for identical inputs.
    """

    if a.shape != b.shape:
        raise ValueError(f"shape mismatch: {a.shape} vs {b.shape}")
    score = structural_similarity(
        a.astype(np.float64),
        b.astype(np.float64),
        data_range=255.0,
        gaussian_weights=True,
        sigma=1.5,
        use_sample_covariance=False,
        K1=0.01,
        K2=0.03,
    )
    return float(score)
