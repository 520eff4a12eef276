"""JSON serialization helpers."""

from __future__ import annotations

import dataclasses
import enum
import numbers
from pathlib import PurePath
from typing import Any

import numpy as np


def json_ready(obj: Any):
    """Return a JSON-serializable representation of ``obj``.

    Mappings, sequences, dataclasses, enums, paths, numpy arrays and numpy
    scalars are converted recursively. Pydantic models are dumped by alias so
    the output matches the persisted camelCase layout. Unknown values are
    returned as-is so native ``json`` can handle them or fail loudly.
    """

    if obj is None or isinstance(obj, (bool, str)):
        return obj

    if isinstance(obj, enum.Enum):
        return json_ready(obj.value)

    if isinstance(obj, (int, float)):
        return obj

    if isinstance(obj, dict):
        return {str(k): json_ready(v) for k, v in obj.items()}

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return json_ready(dataclasses.asdict(obj))

    if hasattr(obj, "model_dump"):
        return json_ready(obj.model_dump(mode="json", by_alias=True))

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [json_ready(v) for v in obj]

    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()

    if isinstance(obj, PurePath):
        return obj.as_posix()

    if isinstance(obj, numbers.Number):
        return obj

    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")

    return obj


__all__ = ["json_ready"]
