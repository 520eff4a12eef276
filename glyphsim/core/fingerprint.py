# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""64-bit perceptual fingerprints and their similarity.

Fingerprints are plain Python ints in ``[0, 2**64)``. Hot paths never loop
over bits of an arbitrary-precision integer: values are split into two 32-bit
halves and compared with a compiled popcount.
"""
from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from numba import njit, prange
from PIL import Image

__all__ = [
    "FINGERPRINT_BITS",
    "compute_fingerprint",
    "split",
    "split_many",
    "hamming",
    "similarity",
    "max_distance",
    "hamming_many",
    "best_match",
    "prefilter_mask",
    "fingerprint_to_hex",
    "fingerprint_from_hex",
]

FINGERPRINT_BITS = 64
_MASK32 = 0xFFFFFFFF


def compute_fingerprint(canonical: np.ndarray) -> int:
    """Box-filter ``canonical`` down to 8x8 and threshold at the mean.

    Bit ``i`` (most significant first, row-major) is set when sample ``i`` is
    strictly brighter than the mean of all 64 samples.
    """

    image = Image.fromarray(np.ascontiguousarray(canonical, dtype=np.uint8))
    tiny = np.asarray(image.resize((8, 8), resample=Image.Resampling.BOX), dtype=np.float64)
    bits = (tiny.reshape(-1) > tiny.mean()).astype(np.uint8)
    return int.from_bytes(np.packbits(bits).tobytes(), "big")


def split(value: int) -> Tuple[int, int]:
    return (value >> 32) & _MASK32, value & _MASK32


def split_many(values: Iterable[int]) -> Tuple[np.ndarray, np.ndarray]:
    """Split fingerprints into ``(hi, lo)`` ``uint32`` arrays."""

    vals = list(values)
    hi = np.fromiter(((v >> 32) & _MASK32 for v in vals), dtype=np.uint32, count=len(vals))
    lo = np.fromiter((v & _MASK32 for v in vals), dtype=np.uint32, count=len(vals))
    return hi, lo


@njit(cache=True)
def _popcount32(x):
    x = x & 0xFFFFFFFF
    x = x - ((x >> 1) & 0x55555555)
    x = (x & 0x33333333) + ((x >> 2) & 0x33333333)
    x = (x + (x >> 4)) & 0x0F0F0F0F
    return ((x * 0x01010101) & 0xFFFFFFFF) >> 24


@njit(cache=True)
def _hamming_split(a_hi, a_lo, b_hi, b_lo):
    return _popcount32(np.int64(a_hi) ^ np.int64(b_hi)) + _popcount32(np.int64(a_lo) ^ np.int64(b_lo))


def hamming(a: int, b: int) -> int:
    a_hi, a_lo = split(a)
    b_hi, b_lo = split(b)
    return int(_hamming_split(a_hi, a_lo, b_hi, b_lo))


def similarity(a: int, b: int) -> float:
    """``1 - hamming / 64``; 1.0 for identical fingerprints."""

    return 1.0 - hamming(a, b) / FINGERPRINT_BITS


def max_distance(threshold: float) -> int:
    """Largest Hamming distance whose similarity still reaches ``threshold``."""

    dist = FINGERPRINT_BITS
    while dist > 0 and 1.0 - dist / FINGERPRINT_BITS < threshold:
        dist -= 1
    if 1.0 - dist / FINGERPRINT_BITS < threshold:
        return -1
    return dist


@njit(cache=True)
def hamming_many(q_hi, q_lo, hi, lo):
    """Distances from one split query to every split candidate."""

    out = np.empty(hi.shape[0], dtype=np.int64)
    for i in range(hi.shape[0]):
        out[i] = _hamming_split(q_hi, q_lo, hi[i], lo[i])
    return out


@njit(cache=True)
def best_match(q_hi, q_lo, hi, lo):
    """Index and distance of the candidate closest to the query (first wins ties)."""

    best = -1
    best_dist = 65
    for i in range(hi.shape[0]):
        d = _hamming_split(q_hi, q_lo, hi[i], lo[i])
        if d < best_dist:
            best_dist = d
            best = i
    return best, best_dist


@njit(cache=True, parallel=True)
def prefilter_mask(q_hi, q_lo, q_width, hi, lo, width, max_dist, width_ratio_max):
    """Mark candidates within ``max_dist`` of any query that pass the width gate.

    Widths of ``0`` mean unknown and never block a candidate.
    """

    n = hi.shape[0]
    out = np.zeros(n, dtype=np.bool_)
    for i in prange(n):
        for j in range(q_hi.shape[0]):
            if _hamming_split(q_hi[j], q_lo[j], hi[i], lo[i]) > max_dist:
                continue
            wa = q_width[j]
            wb = width[i]
            if wa > 0 and wb > 0:
                ratio = max(wa, wb) / min(wa, wb)
                if ratio > width_ratio_max:
                    continue
            out[i] = True
            break
    return out


def fingerprint_to_hex(value: int) -> str:
    return f"{value & ((1 << FINGERPRINT_BITS) - 1):016x}"


def fingerprint_from_hex(text: str) -> int:
    return int(text, 16)
