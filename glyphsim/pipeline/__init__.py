# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Parallel, resumable execution of scoring workloads."""

from __future__ import annotations

from importlib import import_module as _import_module
from typing import Any, Dict

__all__ = [
    "ProgressLog",
    "RunResult",
    "ScoringPipeline",
    "WorkerPool",
    "Workload",
    "check_kernel_agreement",
    "score_slice",
    "select_candidate_units",
]

# Resolved on first access; the render index imports the progress log.
_ATTR_TO_SPEC: Dict[str, str] = {
    "ProgressLog": ".progress",
    "RunResult": ".runner",
    "ScoringPipeline": ".runner",
    "WorkerPool": ".workers",
    "Workload": ".runner",
    "check_kernel_agreement": ".workers",
    "score_slice": ".workers",
    "select_candidate_units": ".prefilter",
}


def __getattr__(name: str) -> Any:
    spec = _ATTR_TO_SPEC.get(name)
    if spec is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = getattr(_import_module(spec, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(__all__ + list(globals().keys())))
