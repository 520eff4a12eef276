# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Two-phase loading for a very large index.

Phase one reads only fingerprints and ink widths of the large side. Phase two
keeps a unit when any of its renders is close enough to any render of the
fully loaded other side and passes the width-ratio gate; only those units get
their PNGs decoded. The gate is symmetric, so either side can be the large one.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from ..artifacts.render_index import LightIndex
from ..config import ScoringConfig
from ..core import fingerprint as fp
from ..orchestrator.planner import UnitRenders

logger = logging.getLogger(__name__)

__all__ = ["select_candidate_units"]


def select_candidate_units(
    loaded: Sequence[UnitRenders],
    light: LightIndex,
    config: ScoringConfig,
) -> List[str]:
    """Names of units in ``light`` that could pair with any of ``loaded``."""

    queries = [entry for unit in loaded for entry in unit.usable()]
    if not queries or len(light) == 0:
        return []
    q_hi, q_lo = fp.split_many(entry.fingerprint for entry in queries)
    q_width = np.array([entry.ink_width or 0 for entry in queries], dtype=np.int64)
    mask = fp.prefilter_mask(
        q_hi,
        q_lo,
        q_width,
        light.hi,
        light.lo,
        light.width,
        fp.max_distance(config.fingerprint_threshold),
        float(config.width_ratio_max),
    )
    keep = np.unique(light.unit_idx[mask])
    logger.info(
        "prefilter: %d loaded renders x %d light renders -> %d/%d units",
        len(queries),
        len(light),
        keep.size,
        len(light.units),
    )
    return [light.units[i] for i in keep.tolist()]
