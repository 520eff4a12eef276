"""glyphsim public package surface."""

from __future__ import annotations

from importlib import import_module as _import_module
from typing import Any, Dict

from ._version import __version__

__all__ = [
    "__version__",
    "Raster",
    "ScoringConfig",
    "ScoringPipeline",
    "Workload",
    "build_render_index",
    "compute_fingerprint",
    "compute_ssim",
    "detect_ink_bounds",
    "get_preset",
    "normalize_pair",
    "normalize_single",
    "similarity",
]

# Mapping of public attribute -> import path
_ATTR_TO_SPEC: Dict[str, str] = {
    "Raster": ".core.raster",
    "ScoringConfig": ".config",
    "ScoringPipeline": ".pipeline.runner",
    "Workload": ".pipeline.runner",
    "build_render_index": ".artifacts.render_index",
    "compute_fingerprint": ".core.fingerprint",
    "compute_ssim": ".core.ssim",
    "detect_ink_bounds": ".core.raster",
    "get_preset": ".config",
    "normalize_pair": ".core.normalize",
    "normalize_single": ".core.normalize",
    "similarity": ".core.fingerprint",
}

_loaded: Dict[str, Any] = {}


def _load(name: str) -> Any:
    if name not in _ATTR_TO_SPEC:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = _loaded.get(name)
    if value is None:
        module = _import_module(_ATTR_TO_SPEC[name], __name__)
        value = getattr(module, name)
        _loaded[name] = value
    return value


def __getattr__(name: str) -> Any:
    return _load(name)


def __dir__() -> list[str]:
    return sorted(set(__all__ + list(globals().keys())))
