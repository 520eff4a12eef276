# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Per-unit timing and progress reporting for scoring runs."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from ..orchestrator.models import UnitCounters

UnitTraceEntry = Dict[str, Any]

__all__ = ["RunTrace", "compute_unit_stats", "format_unit_stats"]


class RunTrace:
    """Accumulates one entry per scored unit and renders progress lines."""

    def __init__(self, total_units: int, already_done: int = 0) -> None:
        self.total_units = total_units
        self.already_done = already_done
        self.entries: List[UnitTraceEntry] = []
        self.counters = UnitCounters()
        self._started = time.perf_counter()

    def record(self, unit_id: str, elapsed_ms: float, jobs: int, counters: UnitCounters) -> None:
        self.entries.append({"unit": unit_id, "elapsed_ms": float(elapsed_ms), "jobs": int(jobs)})
        self.counters = self.counters.merge(counters)

    def progress_line(self) -> str:
        scored = len(self.entries)
        done = self.already_done + scored
        elapsed = max(time.perf_counter() - self._started, 1e-9)
        rate = scored / elapsed
        eta = (self.total_units - done) / rate if rate > 0 else 0.0
        c = self.counters
        return (
            f"[{done}/{self.total_units}] {rate:.1f} units/s, ETA {eta:.0f}s "
            f"(ssim {c.ssim_computed}, skip: fingerprint {c.fingerprint_skipped}, "
            f"width {c.width_ratio_skipped}, ink {c.ink_coverage_skipped})"
        )


def compute_unit_stats(trace: Sequence[UnitTraceEntry]) -> Optional[Dict[str, Any]]:
    """Aggregate totals and the slowest unit for ``trace``."""

    if not trace:
        return None
    total_ms = sum(float(entry.get("elapsed_ms") or 0.0) for entry in trace)
    slowest = max(trace, key=lambda e: float(e.get("elapsed_ms") or 0.0))
    return {
        "count": len(trace),
        "jobs": sum(int(entry.get("jobs") or 0) for entry in trace),
        "total_elapsed_ms": total_ms,
        "mean_elapsed_ms": total_ms / len(trace),
        "slowest": {"unit": slowest.get("unit"), "elapsed_ms": slowest.get("elapsed_ms")},
    }


def format_unit_stats(stats: Optional[Dict[str, Any]]) -> str:
    if not stats:
        return "no units scored"
    slowest = stats.get("slowest") or {}
    return (
        f"{stats['count']} units, {stats['jobs']} jobs in {stats['total_elapsed_ms'] / 1000.0:.1f}s "
        f"(mean {stats['mean_elapsed_ms']:.1f} ms, slowest {slowest.get('unit')!r} "
        f"{float(slowest.get('elapsed_ms') or 0.0):.1f} ms)"
    )
