# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Decide which comparisons of one source unit reach the exact metric.

Each usable source render is compared in two ways:

* same-context: against every target unit rendered in the same font;
* cross-context: against the single target render, from a font the target
  unit is not available in, whose fingerprint is closest to the source.

Candidates then pass the fingerprint gate and the ink-width-ratio gate. The
ink-coverage floor runs later, in the workers, after pair normalisation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import ScoringConfig
from ..core import fingerprint as fp
from ..core.raster import Raster
from .models import ComparisonMode, UnitCounters
from .provenance import RenderStatus

__all__ = [
    "RenderEntry",
    "UnitRenders",
    "ComparisonJob",
    "TargetIndex",
    "UnitPlan",
    "plan_unit",
    "width_ratio_ok",
]


@dataclass
class RenderEntry:
    """One render of a text unit in one font context."""

    unit: str
    font: str
    status: RenderStatus
    fallback_font: Optional[str] = None
    fingerprint: Optional[int] = None
    ink_width: Optional[int] = None
    png: Optional[str] = None
    raster: Optional[Raster] = field(default=None, repr=False, compare=False)

    @property
    def usable(self) -> bool:
        return self.status is not RenderStatus.MISSING and self.fingerprint is not None


@dataclass
class UnitRenders:
    unit: str
    entries: List[RenderEntry] = field(default_factory=list)

    def by_font(self) -> Dict[str, RenderEntry]:
        return {entry.font: entry for entry in self.entries}

    def usable(self) -> List[RenderEntry]:
        return [entry for entry in self.entries if entry.usable]


@dataclass(frozen=True)
class ComparisonJob:
    index: int
    target_unit: str
    source: RenderEntry
    target: RenderEntry
    mode: ComparisonMode
    fingerprint_similarity: float


def width_ratio_ok(width_a: Optional[int], width_b: Optional[int], ratio_max: float) -> bool:
    """Ratio of pre-normalisation ink widths; unknown widths never block."""

    if not width_a or not width_b:
        return True
    return max(width_a, width_b) / min(width_a, width_b) <= ratio_max


class TargetIndex:
    """Flat fingerprint arrays over every usable target render.

    Built once per workload and shared read-only by every unit plan.
    """

    def __init__(self, units: Sequence[UnitRenders]) -> None:
        self.units: List[UnitRenders] = list(units)
        self.unit_pos: Dict[str, int] = {u.unit: i for i, u in enumerate(self.units)}
        self.by_unit: List[Dict[str, RenderEntry]] = [u.by_font() for u in self.units]

        fonts: Dict[str, int] = {}
        renders: List[RenderEntry] = []
        unit_idx: List[int] = []
        for i, unit in enumerate(self.units):
            for entry in unit.usable():
                fonts.setdefault(entry.font, len(fonts))
                renders.append(entry)
                unit_idx.append(i)
        self.font_pos = fonts
        self.renders = renders
        self.hi, self.lo = fp.split_many(entry.fingerprint for entry in renders)
        self.width = np.array([entry.ink_width or 0 for entry in renders], dtype=np.int64)
        self.unit_idx = np.array(unit_idx, dtype=np.int64)
        self.font_idx = np.array([fonts[entry.font] for entry in renders], dtype=np.int64)

        # availability[u, f]: target unit u has a usable render in font f
        self.availability = np.zeros((len(self.units), max(1, len(fonts))), dtype=np.bool_)
        if renders:
            self.availability[self.unit_idx, self.font_idx] = True

    def __len__(self) -> int:
        return len(self.units)

    def same_context(self, font: str) -> np.ndarray:
        f = self.font_pos.get(font)
        if f is None:
            return np.zeros(0, dtype=np.int64)
        return np.flatnonzero(self.font_idx == f)

    def cross_context(self, font: str) -> np.ndarray:
        f = self.font_pos.get(font)
        if f is None:
            return np.arange(len(self.renders), dtype=np.int64)
        mask = (self.font_idx != f) & ~self.availability[self.unit_idx, f]
        return np.flatnonzero(mask)


@dataclass
class UnitPlan:
    unit: str
    jobs: List[ComparisonJob] = field(default_factory=list)
    counters: UnitCounters = field(default_factory=UnitCounters)


def _width_mask(width: int, widths: np.ndarray, ratio_max: float) -> np.ndarray:
    if width <= 0:
        return np.ones(widths.shape[0], dtype=np.bool_)
    known = widths > 0
    ratio = np.maximum(widths, width) / np.maximum(np.minimum(widths, width), 1)
    return ~known | (ratio <= ratio_max)


def plan_unit(
    source: UnitRenders,
    targets: TargetIndex,
    config: ScoringConfig,
    allowed: Optional[np.ndarray] = None,
) -> UnitPlan:
    """Build the gated comparison jobs for one source unit.

    ``allowed`` optionally restricts target units (boolean mask over
    ``targets.units``). A unit never compares against itself.
    """

    plan = UnitPlan(unit=source.unit)
    counters = plan.counters
    threshold = config.fingerprint_threshold
    max_dist = fp.max_distance(threshold)
    self_pos = targets.unit_pos.get(source.unit)

    def _eligible(candidates: np.ndarray) -> np.ndarray:
        if candidates.size == 0:
            return candidates
        units = targets.unit_idx[candidates]
        keep = np.ones(candidates.shape[0], dtype=np.bool_)
        if self_pos is not None:
            keep &= units != self_pos
        if allowed is not None:
            keep &= allowed[units]
        return candidates[keep]

    def _add(target: RenderEntry, entry: RenderEntry, mode: ComparisonMode, dist: int) -> None:
        plan.jobs.append(
            ComparisonJob(
                index=len(plan.jobs),
                target_unit=target.unit,
                source=entry,
                target=target,
                mode=mode,
                fingerprint_similarity=1.0 - dist / fp.FINGERPRINT_BITS,
            )
        )

    for entry in source.usable():
        q_hi, q_lo = fp.split(entry.fingerprint)
        width = entry.ink_width or 0

        same = _eligible(targets.same_context(entry.font))
        if same.size:
            dist = fp.hamming_many(q_hi, q_lo, targets.hi[same], targets.lo[same])
            close = dist <= max_dist
            counters.fingerprint_skipped += int((~close).sum())
            same, dist = same[close], dist[close]
            fits = _width_mask(width, targets.width[same], config.width_ratio_max)
            counters.width_ratio_skipped += int((~fits).sum())
            for pos, d in zip(same[fits].tolist(), dist[fits].tolist()):
                _add(targets.renders[pos], entry, ComparisonMode.SAME_CONTEXT, d)
                counters.same_context_jobs += 1

        cross = _eligible(targets.cross_context(entry.font))
        if cross.size:
            best, best_dist = fp.best_match(q_hi, q_lo, targets.hi[cross], targets.lo[cross])
            if best < 0 or best_dist > max_dist:
                counters.fingerprint_skipped += 1
                continue
            target = targets.renders[int(cross[best])]
            if not width_ratio_ok(entry.ink_width, target.ink_width, config.width_ratio_max):
                counters.width_ratio_skipped += 1
                continue
            _add(target, entry, ComparisonMode.CROSS_CONTEXT, int(best_dist))
            counters.cross_context_jobs += 1

    return plan

