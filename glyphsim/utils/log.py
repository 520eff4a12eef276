# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Logging setup for command-line entry points."""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

__all__ = ["configure_logging"]

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Attach a stdout handler to the ``glyphsim`` logger once.

    ``level`` falls back to ``GLYPHSIM_LOG_LEVEL`` and then ``INFO``. Library
    code never calls this; only entry points do.
    """

    if level is None:
        level = (os.environ.get("GLYPHSIM_LOG_LEVEL") or "INFO").strip().upper()
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("glyphsim")
    if not any(getattr(h, "_glyphsim_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._glyphsim_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
