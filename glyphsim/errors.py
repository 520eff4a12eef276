# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Exception hierarchy shared by the scoring pipeline."""
from __future__ import annotations

from typing import Optional

__all__ = [
    "GlyphsimError",
    "MalformedCheckpointLine",
    "ResampleKernelDivergence",
    "WorkerFailure",
    "OutputStreamError",
    "RenderIndexError",
    "RenderConfigMismatch",
]


class GlyphsimError(Exception):
    """Base class for every error raised by :mod:`glyphsim`."""


class MalformedCheckpointLine(GlyphsimError):
    """A progress log line could not be parsed or validated."""

    def __init__(self, line_no: int, reason: str) -> None:
        super().__init__(f"checkpoint line {line_no}: {reason}")
        self.line_no = line_no
        self.reason = reason


class ResampleKernelDivergence(GlyphsimError):
    """Two resampling paths produced scores further apart than allowed."""

    def __init__(self, sample: str, delta: float, tolerance: float) -> None:
        super().__init__(f"sample {sample!r}: ssim delta {delta:.4f} exceeds {tolerance:.4f}")
        self.sample = sample
        self.delta = delta
        self.tolerance = tolerance


class WorkerFailure(GlyphsimError):
    """A slice of a unit batch failed; the unit is left uncheckpointed."""

    def __init__(self, unit_id: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"worker failure while scoring unit {unit_id!r}{detail}")
        self.unit_id = unit_id
        self.cause = cause


class OutputStreamError(GlyphsimError):
    """The output document or the progress log could not be written."""

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"cannot write {path}{detail}")
        self.path = path
        self.cause = cause


class RenderIndexError(GlyphsimError):
    """A render index is missing or unreadable."""


class RenderConfigMismatch(GlyphsimError):
    """Two render indices were produced with incompatible canvas settings."""
