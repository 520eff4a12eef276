# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Process pool that normalises and scores one unit's batch of jobs."""
from __future__ import annotations

import logging
import multiprocessing
from concurrent.futures import Future, ProcessPoolExecutor, wait
from concurrent.futures.process import BrokenProcessPool
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..core.normalize import CANONICAL_SIZE, normalize_pair
from ..core.raster import Raster, ink_coverage
from ..core.ssim import compute_ssim
from ..errors import ResampleKernelDivergence, WorkerFailure
from ..orchestrator.aggregate import JobResult

logger = logging.getLogger(__name__)

__all__ = [
    "WorkItem",
    "score_slice",
    "split_evenly",
    "WorkerPool",
    "check_kernel_agreement",
]

# (job index, source raster, target raster)
WorkItem = Tuple[int, Raster, Raster]
ScoreFn = Callable[[Sequence[WorkItem], int, float], List[JobResult]]


def score_slice(items: Sequence[WorkItem], size: int = CANONICAL_SIZE, coverage_min: float = 0.03) -> List[JobResult]:
    """Normalise each pair, apply the ink-coverage floor and score with SSIM."""

    out: List[JobResult] = []
    for index, a, b in items:
        try:
            norm_a, norm_b = normalize_pair(a, b, size)
        except ValueError as exc:
            logger.warning("job %d: normalisation failed: %s", index, exc)
            out.append((index, None, False))
            continue
        if ink_coverage(norm_a) < coverage_min or ink_coverage(norm_b) < coverage_min:
            out.append((index, None, True))
            continue
        out.append((index, compute_ssim(norm_a, norm_b), False))
    return out


def split_evenly(n: int, parts: int) -> List[Tuple[int, int]]:
    """Contiguous ``(start, stop)`` slices of at most ``ceil(n / parts)`` items."""

    if n <= 0:
        return []
    parts = max(1, min(parts, n))
    size = -(-n // parts)
    return [(start, min(start + size, n)) for start in range(0, n, size)]


class WorkerPool:
    """Fixed-size pool; ``workers=0`` scores in the calling process.

    :meth:`run` blocks until every slice of the batch has finished. Any
    failing slice, including a worker process dying, raises
    :class:`WorkerFailure` for the whole unit.

    Workers are started with ``spawn``: the coordinator may already run
    numba's threading layer (the parallel prefilter), and forking it leaves
    the parent unable to exit.
    """

    def __init__(
        self,
        workers: int,
        *,
        size: int = CANONICAL_SIZE,
        coverage_min: float = 0.03,
        score_fn: ScoreFn = score_slice,
        start_method: str = "spawn",
    ) -> None:
        self.workers = max(0, int(workers))
        self.size = size
        self.coverage_min = coverage_min
        self.score_fn = score_fn
        self._executor: Optional[ProcessPoolExecutor] = None
        if self.workers > 0:
            self._executor = ProcessPoolExecutor(
                max_workers=self.workers,
                mp_context=multiprocessing.get_context(start_method),
            )

    def run(self, unit_id: str, items: Sequence[WorkItem]) -> List[JobResult]:
        if not items:
            return []
        if self._executor is None:
            try:
                results = self.score_fn(items, self.size, self.coverage_min)
            except Exception as exc:
                raise WorkerFailure(unit_id, exc) from exc
        else:
            results = self._run_pool(unit_id, items)
        expected = {item[0] for item in items}
        if len(results) != len(items) or {r[0] for r in results} != expected:
            raise WorkerFailure(unit_id, RuntimeError("worker results do not match the dispatched jobs"))
        return results

    def _run_pool(self, unit_id: str, items: Sequence[WorkItem]) -> List[JobResult]:
        futures: List[Future] = []
        try:
            for start, stop in split_evenly(len(items), self.workers):
                futures.append(
                    self._executor.submit(self.score_fn, list(items[start:stop]), self.size, self.coverage_min)
                )
        except BrokenProcessPool as exc:
            raise WorkerFailure(unit_id, exc) from exc
        wait(futures)
        results: List[JobResult] = []
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise WorkerFailure(unit_id, exc) from exc
            results.extend(future.result())
        return results

    def close(self) -> None:
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def check_kernel_agreement(
    samples: Sequence[Tuple[str, Raster, Raster]],
    pool: WorkerPool,
    *,
    tolerance: float = 0.02,
) -> Dict[str, float]:
    """Score ``samples`` in-process and through ``pool``; return per-sample deltas.

    Raises :class:`ResampleKernelDivergence` on the first sample whose two
    SSIM values differ by more than ``tolerance``.
    """

    items = [(i, a, b) for i, (_, a, b) in enumerate(samples)]
    local = {idx: ssim for idx, ssim, _ in score_slice(items, pool.size, pool.coverage_min)}
    remote = {idx: ssim for idx, ssim, _ in pool.run("kernel-check", items)}
    deltas: Dict[str, float] = {}
    for idx, (name, _, _) in enumerate(samples):
        a, b = local.get(idx), remote.get(idx)
        if a is None or b is None:
            delta = 0.0 if a is b else float("inf")
        else:
            delta = abs(a - b)
        if delta > tolerance:
            raise ResampleKernelDivergence(name, delta, tolerance)
        deltas[name] = delta
    return deltas
