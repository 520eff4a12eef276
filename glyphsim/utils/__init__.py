"""Utility helpers shared across glyphsim modules."""

from .json_utils import json_ready
from .log import configure_logging

__all__ = ["json_ready", "configure_logging"]
