# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""Persisted artifacts: render indices, scored output and run manifests."""

from .gz_json import GzJsonWriter, read_json_gz
from .manifest import MANIFEST_FILENAME, build_manifest, write_manifest
from .render_index import LightIndex, RenderIndex, RenderIndexMeta, RenderRecord, build_render_index

__all__ = [
    "GzJsonWriter",
    "LightIndex",
    "MANIFEST_FILENAME",
    "RenderIndex",
    "RenderIndexMeta",
    "RenderRecord",
    "build_manifest",
    "build_render_index",
    "read_json_gz",
    "write_manifest",
]
