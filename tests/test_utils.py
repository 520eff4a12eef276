import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from glyphsim.orchestrator.models import ComparisonMode, UnitCounters
from glyphsim.utils.json_utils import json_ready
from glyphsim.utils.log import configure_logging


@dataclass
class _Point:
    x: np.int32
    tags: tuple


def test_json_ready_coerces_nested_values():
    value = {
        "mode": ComparisonMode.CROSS_CONTEXT,
        "counters": UnitCounters(ssim_computed=2),
        "point": _Point(np.int32(3), ("a", Path("x/y"))),
        "array": np.arange(3, dtype=np.uint8),
        "score": np.float64(0.25),
        1: b"raw",
    }
    assert json_ready(value) == {
        "mode": "cross-context",
        "counters": {
            "ssimComputed": 2,
            "fingerprintSkipped": 0,
            "widthRatioSkipped": 0,
            "inkCoverageSkipped": 0,
            "sameContextJobs": 0,
            "crossContextJobs": 0,
        },
        "point": {"x": 3, "tags": ["a", "x/y"]},
        "array": [0, 1, 2],
        "score": 0.25,
        "1": "raw",
    }


def test_configure_logging_installs_one_handler(monkeypatch):
    logger = logging.getLogger("glyphsim")
    saved = list(logger.handlers), logger.level
    try:
        monkeypatch.setenv("GLYPHSIM_LOG_LEVEL", "debug")
        configure_logging()
        configure_logging()
        ours = [h for h in logger.handlers if getattr(h, "_glyphsim_handler", False)]
        assert len(ours) == 1
        assert logger.level == logging.DEBUG
        assert configure_logging("warning").level == logging.WARNING
    finally:
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
