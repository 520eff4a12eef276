"""Persisted records of the scoring pipeline.

Every model serialises with camelCase keys (``model_dump(by_alias=True)``)
and accepts either spelling on input, so checkpoint lines and output
documents share one schema.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .provenance import RenderStatus

__all__ = [
    "ComparisonMode",
    "ComparisonRecord",
    "PairStats",
    "PairSummary",
    "UnitCounters",
    "CheckpointRecord",
    "Distribution",
    "RunMeta",
]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ComparisonMode(str, Enum):
    SAME_CONTEXT = "same-context"
    CROSS_CONTEXT = "cross-context"


class ComparisonRecord(_Model):
    """Scores and provenance for one (source render, target render) pairing."""

    source_font: str
    target_font: str
    mode: ComparisonMode
    ssim: Optional[float] = None
    fingerprint: Optional[float] = Field(None, ge=0.0, le=1.0)
    source_status: RenderStatus = RenderStatus.NATIVE
    source_fallback_font: Optional[str] = None
    target_status: RenderStatus = RenderStatus.NATIVE
    target_fallback_font: Optional[str] = None

    @property
    def effective_status(self) -> RenderStatus:
        statuses = (self.source_status, self.target_status)
        if RenderStatus.MISSING in statuses:
            return RenderStatus.MISSING
        if RenderStatus.FALLBACK in statuses:
            return RenderStatus.FALLBACK
        return RenderStatus.NATIVE


class PairStats(_Model):
    mean_ssim: Optional[float] = None
    mean_fingerprint: Optional[float] = None
    max_ssim: Optional[float] = None
    max_same_context_ssim: Optional[float] = None
    native_count: int = 0
    fallback_count: int = 0
    missing_count: int = 0
    comparison_count: int = 0
    record_count: int = 0


class PairSummary(_Model):
    source: str
    target: str
    source_codepoints: str
    target_codepoints: str
    records: List[ComparisonRecord] = Field(default_factory=list)
    stats: PairStats = Field(default_factory=PairStats)


class UnitCounters(_Model):
    ssim_computed: int = 0
    fingerprint_skipped: int = 0
    width_ratio_skipped: int = 0
    ink_coverage_skipped: int = 0
    same_context_jobs: int = 0
    cross_context_jobs: int = 0

    def merge(self, other: "UnitCounters") -> "UnitCounters":
        return UnitCounters(
            **{name: getattr(self, name) + getattr(other, name) for name in UnitCounters.model_fields}
        )


class CheckpointRecord(_Model):
    """One fully completed source unit."""

    unit_id: str
    pair_summaries: List[PairSummary] = Field(default_factory=list)
    counters: UnitCounters = Field(default_factory=UnitCounters)


class Distribution(_Model):
    high: int = 0
    medium: int = 0
    low: int = 0
    no_data: int = 0
    total: int = 0

    def add(self, mean_ssim: Optional[float]) -> None:
        self.total += 1
        if mean_ssim is None:
            self.no_data += 1
        elif mean_ssim >= 0.7:
            self.high += 1
        elif mean_ssim >= 0.3:
            self.medium += 1
        else:
            self.low += 1


class RunMeta(_Model):
    generated_at: str
    workload: str
    glyphsim_version: str
    source_index: str
    target_index: str
    source_units: int
    source_units_loaded: int
    target_units: int
    target_units_loaded: int
    pair_count: int
    config: Dict[str, Any] = Field(default_factory=dict)
    counters: UnitCounters = Field(default_factory=UnitCounters)
