# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Pairwise scoring: provenance, gating, planning and aggregation."""

from .aggregate import compute_distribution, compute_stats, format_codepoints, summarize_unit
from .models import (
    CheckpointRecord,
    ComparisonMode,
    ComparisonRecord,
    Distribution,
    PairStats,
    PairSummary,
    RunMeta,
    UnitCounters,
)
from .planner import ComparisonJob, RenderEntry, TargetIndex, UnitPlan, UnitRenders, plan_unit, width_ratio_ok
from .provenance import Classification, ReferenceTables, RenderStatus, classify_render, is_placeholder_box

__all__ = [
    "CheckpointRecord",
    "Classification",
    "ComparisonJob",
    "ComparisonMode",
    "ComparisonRecord",
    "Distribution",
    "PairStats",
    "PairSummary",
    "ReferenceTables",
    "RenderEntry",
    "RenderStatus",
    "RunMeta",
    "TargetIndex",
    "UnitCounters",
    "UnitPlan",
    "UnitRenders",
    "classify_render",
    "compute_distribution",
    "compute_stats",
    "format_codepoints",
    "is_placeholder_box",
    "plan_unit",
    "summarize_unit",
    "width_ratio_ok",
]
