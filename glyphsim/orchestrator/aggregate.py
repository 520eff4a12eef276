# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Reduce scored jobs into per-pair summaries and workload distributions."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    ComparisonMode,
    ComparisonRecord,
    Distribution,
    PairStats,
    PairSummary,
    UnitCounters,
)
from .planner import ComparisonJob, RenderEntry, TargetIndex, UnitPlan, UnitRenders
from .provenance import RenderStatus

__all__ = [
    "JobResult",
    "format_codepoints",
    "record_for",
    "missing_records",
    "compute_stats",
    "summarize_unit",
    "compute_distribution",
]

# (job index, ssim or None, rejected by the ink-coverage floor)
JobResult = Tuple[int, Optional[float], bool]


def format_codepoints(text: str) -> str:
    return " ".join(f"U+{ord(ch):04X}" for ch in text)


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def record_for(job: ComparisonJob, ssim: Optional[float]) -> ComparisonRecord:
    return ComparisonRecord(
        source_font=job.source.font,
        target_font=job.target.font,
        mode=job.mode,
        ssim=ssim,
        fingerprint=job.fingerprint_similarity,
        source_status=job.source.status,
        source_fallback_font=job.source.fallback_font,
        target_status=job.target.status,
        target_fallback_font=job.target.fallback_font,
    )


def missing_records(source: UnitRenders, target: Dict[str, RenderEntry]) -> List[ComparisonRecord]:
    """Null-score records for shared fonts where exactly one side is missing."""

    out: List[ComparisonRecord] = []
    for entry in source.entries:
        other = target.get(entry.font)
        if other is None:
            continue
        src_missing = entry.status is RenderStatus.MISSING
        tgt_missing = other.status is RenderStatus.MISSING
        if src_missing == tgt_missing:
            continue
        out.append(
            ComparisonRecord(
                source_font=entry.font,
                target_font=other.font,
                mode=ComparisonMode.SAME_CONTEXT,
                source_status=entry.status,
                source_fallback_font=entry.fallback_font,
                target_status=other.status,
                target_fallback_font=other.fallback_font,
            )
        )
    return out


def compute_stats(records: Sequence[ComparisonRecord]) -> PairStats:
    scored = [r.ssim for r in records if r.ssim is not None]
    same = [r.ssim for r in records if r.ssim is not None and r.mode is ComparisonMode.SAME_CONTEXT]
    prints = [r.fingerprint for r in records if r.fingerprint is not None]
    stats = PairStats(
        mean_ssim=_mean(scored),
        mean_fingerprint=_mean(prints),
        max_ssim=max(scored) if scored else None,
        max_same_context_ssim=max(same) if same else None,
        comparison_count=len(scored),
        record_count=len(records),
    )
    for record in records:
        status = record.effective_status
        if status is RenderStatus.MISSING:
            stats.missing_count += 1
        elif status is RenderStatus.FALLBACK:
            stats.fallback_count += 1
        else:
            stats.native_count += 1
    return stats


def summarize_unit(
    source: UnitRenders,
    plan: UnitPlan,
    results: Iterable[JobResult],
    targets: TargetIndex,
) -> Tuple[List[PairSummary], UnitCounters]:
    """Group one unit's scored jobs by target unit, in target-index order."""

    counters = plan.counters.model_copy()
    by_target: Dict[str, List[ComparisonRecord]] = {}
    for index, ssim, ink_skipped in results:
        if ink_skipped:
            counters.ink_coverage_skipped += 1
            continue
        if ssim is not None:
            counters.ssim_computed += 1
        job = plan.jobs[index]
        by_target.setdefault(job.target_unit, []).append(record_for(job, ssim))

    summaries: List[PairSummary] = []
    for unit in sorted(by_target, key=targets.unit_pos.__getitem__):
        records = by_target[unit]
        records.extend(missing_records(source, targets.by_unit[targets.unit_pos[unit]]))
        summaries.append(
            PairSummary(
                source=source.unit,
                target=unit,
                source_codepoints=format_codepoints(source.unit),
                target_codepoints=format_codepoints(unit),
                records=records,
                stats=compute_stats(records),
            )
        )
    return summaries, counters


def compute_distribution(summaries: Iterable[PairSummary]) -> Distribution:
    dist = Distribution()
    for summary in summaries:
        dist.add(summary.stats.mean_ssim)
    return dist
