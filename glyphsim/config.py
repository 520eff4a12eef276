# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Scoring parameters, named presets and environment overrides."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

__all__ = [
    "ScoringConfig",
    "PRESETS",
    "get_preset",
    "iter_presets",
    "default_worker_count",
]


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def default_worker_count() -> int:
    """Leave one core for the coordinator."""

    return max(1, (os.cpu_count() or 2) - 1)


@dataclass(frozen=True)
class ScoringConfig:
    """Parameters driving normalisation, gating and pipeline execution."""

    canonical_size: int = 48
    fingerprint_threshold: float = 0.3
    width_ratio_max: float = 2.0
    ink_coverage_min: float = 0.03
    workers: Optional[int] = None
    large_side_units: int = 5000
    gzip_level: int = 6
    write_batch: int = 1000
    log_every: int = 50

    def __post_init__(self) -> None:
        if self.canonical_size < 8:
            raise ValueError("canonical_size must be at least 8")
        if not 0.0 <= self.fingerprint_threshold <= 1.0:
            raise ValueError("fingerprint_threshold must be within [0, 1]")
        if self.width_ratio_max < 1.0:
            raise ValueError("width_ratio_max must be >= 1")
        if not 0.0 <= self.ink_coverage_min < 1.0:
            raise ValueError("ink_coverage_min must be within [0, 1)")
        if self.workers is not None and self.workers < 0:
            raise ValueError("workers must be >= 0")
        if not 1 <= self.gzip_level <= 9:
            raise ValueError("gzip_level must be within [1, 9]")
        if self.write_batch < 1 or self.log_every < 1:
            raise ValueError("write_batch and log_every must be positive")

    @property
    def resolved_workers(self) -> int:
        """Worker count with ``None`` resolved; ``0`` means in-process."""

        if self.workers is None:
            return default_worker_count()
        return self.workers

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def copy(self, **overrides: Any) -> "ScoringConfig":
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, base: Optional["ScoringConfig"] = None) -> "ScoringConfig":
        """Overlay ``GLYPHSIM_*`` variables on ``base`` (or the defaults)."""

        base = base or cls()
        return base.copy(
            workers=_env_int("GLYPHSIM_WORKERS", base.workers),
            fingerprint_threshold=_env_float(
                "GLYPHSIM_FINGERPRINT_THRESHOLD", base.fingerprint_threshold
            ),
            width_ratio_max=_env_float("GLYPHSIM_WIDTH_RATIO_MAX", base.width_ratio_max),
            ink_coverage_min=_env_float("GLYPHSIM_INK_COVERAGE_MIN", base.ink_coverage_min),
            large_side_units=_env_int("GLYPHSIM_LARGE_SIDE_UNITS", base.large_side_units)
            or base.large_side_units,
        )


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    config: ScoringConfig

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "description": self.description, "config": self.config.to_dict()}


PRESETS: Mapping[str, Preset] = {
    "default": Preset(
        name="default",
        description="Baseline gates used when no workload preset is chosen.",
        config=ScoringConfig(),
    ),
    "single_glyph": Preset(
        name="single_glyph",
        description="Single characters; tighter fingerprint and width gates.",
        config=ScoringConfig(fingerprint_threshold=0.5, width_ratio_max=1.5),
    ),
    "multi_glyph": Preset(
        name="multi_glyph",
        description="Short sequences; looser gates for wider renders.",
        config=ScoringConfig(fingerprint_threshold=0.3, width_ratio_max=2.0),
    ),
}


def get_preset(name: str) -> Preset:
    key = (name or "").strip().lower().replace("-", "_")
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(f"unknown preset {name!r}; expected one of {sorted(PRESETS)}") from None


def iter_presets() -> Iterable[Tuple[str, Preset]]:
    return PRESETS.items()
