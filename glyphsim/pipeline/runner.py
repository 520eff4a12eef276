# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Top-level driver: plan, score, checkpoint and stream one workload."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from .._version import __version__
from ..artifacts.gz_json import GzJsonWriter
from ..artifacts.manifest import MANIFEST_FILENAME, write_manifest
from ..artifacts.render_index import RenderIndex
from ..config import ScoringConfig
from ..errors import WorkerFailure
from ..orchestrator.aggregate import summarize_unit
from ..orchestrator.models import CheckpointRecord, Distribution, RunMeta, UnitCounters
from ..orchestrator.planner import TargetIndex, UnitRenders, plan_unit
from .instrumentation import RunTrace, compute_unit_stats, format_unit_stats
from .prefilter import select_candidate_units
from .progress import ProgressLog
from .workers import WorkerPool

logger = logging.getLogger(__name__)

__all__ = ["Workload", "RunResult", "ScoringPipeline"]


@dataclass(frozen=True)
class Workload:
    """One logical scoring job: a source index against a target index.

    ``candidates`` optionally restricts, per source unit, which target units
    are considered at all.
    """

    name: str
    source_index: Path
    target_index: Path
    output_dir: Path
    candidates: Optional[Mapping[str, Sequence[str]]] = None

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / f"{self.name}.json.gz"

    @property
    def progress_path(self) -> Path:
        return Path(self.output_dir) / f"{self.name}-progress.jsonl"


@dataclass
class RunResult:
    workload: str
    status: str
    output: Path
    units_scored: int = 0
    units_resumed: int = 0
    distribution: Optional[Distribution] = None
    counters: UnitCounters = field(default_factory=UnitCounters)
    manifest: Optional[Path] = None


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


class ScoringPipeline:
    """Runs workloads unit by unit with durable per-unit checkpoints.

    A pool passed in is borrowed and left open; otherwise one is created per
    :meth:`run` from ``config.resolved_workers`` and closed afterwards.
    """

    def __init__(self, config: Optional[ScoringConfig] = None, *, pool: Optional[WorkerPool] = None) -> None:
        self.config = config or ScoringConfig()
        self._pool = pool

    def _load_sides(self, workload: Workload):
        """Load both sides, reading fingerprints first for an oversized one.

        When either side exceeds ``large_side_units`` the larger side is
        prefiltered against the fully loaded smaller side; only its units with
        a plausible match have their PNGs decoded. Dropped source units could
        not have produced a pair.
        """

        limit = self.config.large_side_units
        source = RenderIndex(workload.source_index)
        same = Path(workload.source_index).resolve() == Path(workload.target_index).resolve()
        target = source if same else RenderIndex(workload.target_index)
        source.check_compatible(target)

        if same or max(len(source), len(target)) <= limit:
            source_units = source.load_units()
            target_units = source_units if same else target.load_units()
        elif len(target) >= len(source):
            logger.info("target side has %d units; loading fingerprints first", len(target))
            source_units = source.load_units()
            names = select_candidate_units(source_units, target.load_light(), self.config)
            target_units = target.load_units(only=names)
        else:
            logger.info("source side has %d units; loading fingerprints first", len(source))
            target_units = target.load_units()
            names = select_candidate_units(target_units, source.load_light(), self.config)
            source_units = source.load_units(only=names)
        return source, target, source_units, target_units

    def _allowed(self, workload: Workload, unit: UnitRenders, targets: TargetIndex) -> Optional[np.ndarray]:
        if workload.candidates is None:
            return None
        mask = np.zeros(len(targets), dtype=np.bool_)
        for name in workload.candidates.get(unit.unit, ()):
            pos = targets.unit_pos.get(name)
            if pos is not None:
                mask[pos] = True
        return mask

    def run(self, workload: Workload, *, fresh: bool = False) -> RunResult:
        config = self.config
        output = workload.output_path
        progress = ProgressLog(workload.progress_path, CheckpointRecord)

        if fresh:
            progress.discard()
        elif output.exists() and not progress.exists():
            logger.info("workload %s already complete: %s", workload.name, output)
            return RunResult(workload=workload.name, status="skipped", output=output)

        source, target, source_units, target_units = self._load_sides(workload)
        targets = TargetIndex(target_units)
        done = progress.replay()
        order = [unit.unit for unit in source_units]
        resumed = sum(1 for unit in order if unit in done)
        logger.info(
            "workload %s: %d source units (%d already checkpointed), %d/%d target units loaded",
            workload.name,
            len(order),
            resumed,
            len(targets),
            len(target),
        )

        pool = self._pool or WorkerPool(
            config.resolved_workers,
            size=config.canonical_size,
            coverage_min=config.ink_coverage_min,
        )
        trace = RunTrace(total_units=len(order), already_done=resumed)
        try:
            with progress:
                for unit in source_units:
                    if unit.unit in done:
                        continue
                    started = time.perf_counter()
                    plan = plan_unit(unit, targets, config, allowed=self._allowed(workload, unit, targets))
                    items = [(job.index, job.source.raster, job.target.raster) for job in plan.jobs]
                    try:
                        results = pool.run(unit.unit, items)
                    except WorkerFailure:
                        logger.error("unit %r failed; it stays unchecked and is recomputed next run", unit.unit)
                        raise
                    summaries, counters = summarize_unit(unit, plan, results, targets)
                    progress.append(CheckpointRecord(unit_id=unit.unit, pair_summaries=summaries, counters=counters))
                    trace.record(unit.unit, (time.perf_counter() - started) * 1000.0, len(items), counters)
                    if len(trace.entries) % config.log_every == 0:
                        logger.info(trace.progress_line())
        finally:
            if self._pool is None:
                pool.close()

        logger.info("scoring finished: %s", format_unit_stats(compute_unit_stats(trace.entries)))
        distribution, counters, pair_count = self._tally(progress, order)
        meta = RunMeta(
            generated_at=_utc_now_iso(),
            workload=workload.name,
            glyphsim_version=__version__,
            source_index=Path(workload.source_index).as_posix(),
            target_index=Path(workload.target_index).as_posix(),
            source_units=len(source),
            source_units_loaded=len(order),
            target_units=len(target),
            target_units_loaded=len(targets),
            pair_count=pair_count,
            config=config.to_dict(),
            counters=counters,
        )
        self._write_output(output, progress, order, meta, distribution)
        progress.discard()
        manifest = write_manifest(
            workload.output_dir,
            {
                "scores": output,
                "source_index": workload.source_index,
                "target_index": workload.target_index,
            },
            run_id=workload.name,
            config=config.to_dict(),
            filename=f"{workload.name}.{MANIFEST_FILENAME}",
        )
        logger.info(
            "wrote %s: %d pairs (high %d, medium %d, low %d, no data %d)",
            output,
            pair_count,
            distribution.high,
            distribution.medium,
            distribution.low,
            distribution.no_data,
        )
        return RunResult(
            workload=workload.name,
            status="complete",
            output=output,
            units_scored=len(trace.entries),
            units_resumed=resumed,
            distribution=distribution,
            counters=counters,
            manifest=manifest,
        )

    @staticmethod
    def _tally(progress: ProgressLog, order: Iterable[str]):
        distribution = Distribution()
        counters = UnitCounters()
        pairs = 0
        for record in progress.iter_units(order):
            counters = counters.merge(record.counters)
            for summary in record.pair_summaries:
                distribution.add(summary.stats.mean_ssim)
                pairs += 1
        return distribution, counters, pairs

    def _write_output(
        self,
        output: Path,
        progress: ProgressLog,
        order: List[str],
        meta: RunMeta,
        distribution: Distribution,
    ) -> None:
        with GzJsonWriter(output, level=self.config.gzip_level, flush_every=self.config.write_batch) as out:
            out.field("meta", meta.model_dump(mode="json", by_alias=True))
            out.field("distribution", distribution.model_dump(mode="json", by_alias=True))
            out.begin_array("pairs")
            for record in progress.iter_units(order):
                for summary in record.pair_summaries:
                    out.item(summary.model_dump_json(by_alias=True))
            out.end_array()
