# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

"""On-disk render index: ``index.json`` plus raw PNG rasters.

The index records, per text unit and font context, the render provenance,
the fingerprint of the unit's single-image normalisation and the raw ink
width. Scoring reads it twice over: a light pass that touches only those
numbers, and a full pass that decodes PNGs for the units it needs.
"""
from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .._version import __version__
from ..config import ScoringConfig
from ..core.fingerprint import compute_fingerprint, fingerprint_from_hex, fingerprint_to_hex, split_many
from ..core.normalize import normalize_single
from ..core.raster import Raster
from ..errors import RenderConfigMismatch, RenderIndexError
from ..orchestrator.planner import RenderEntry, UnitRenders
from ..orchestrator.provenance import ReferenceTables, RenderStatus, classify_render, render_fallbacks
from ..pipeline.progress import ProgressLog
from ..rendering.interfaces import FontRegistry, Rasterizer

logger = logging.getLogger(__name__)

__all__ = [
    "INDEX_FILENAME",
    "RENDERS_DIRNAME",
    "RenderRecord",
    "RenderIndexMeta",
    "LightIndex",
    "RenderIndex",
    "build_render_index",
]

INDEX_FILENAME = "index.json"
RENDERS_DIRNAME = "renders"
PROGRESS_FILENAME = "index-progress.jsonl"


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RenderRecord(_Model):
    font: str
    status: RenderStatus
    fallback_font: Optional[str] = None
    fingerprint: Optional[str] = None
    ink_width: Optional[int] = None
    ink_height: Optional[int] = None
    png: Optional[str] = None


class UnitRecord(_Model):
    unit_id: str
    renders: List[RenderRecord] = Field(default_factory=list)


class RenderIndexMeta(_Model):
    generated_at: str
    glyphsim_version: str
    canvas_width: int
    canvas_height: int
    midline: float
    canonical_size: int = 48
    fonts: List[str] = Field(default_factory=list)
    fallback_fonts: List[str] = Field(default_factory=list)
    unit_count: int = 0
    render_count: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)


class RenderIndexDocument(_Model):
    meta: RenderIndexMeta
    units: Dict[str, List[RenderRecord]] = Field(default_factory=dict)


@dataclass(frozen=True)
class LightIndex:
    """Fingerprint halves and ink widths of every usable render, no pixels."""

    units: List[str]
    hi: np.ndarray
    lo: np.ndarray
    width: np.ndarray
    unit_idx: np.ndarray

    def __len__(self) -> int:
        return int(self.hi.shape[0])


def _unit_slug(text: str) -> str:
    return "-".join(f"{ord(ch):04X}" for ch in text)


def _to_entry(unit: str, record: RenderRecord) -> RenderEntry:
    return RenderEntry(
        unit=unit,
        font=record.font,
        status=record.status,
        fallback_font=record.fallback_font,
        fingerprint=fingerprint_from_hex(record.fingerprint) if record.fingerprint else None,
        ink_width=record.ink_width,
        png=record.png,
    )


class RenderIndex:
    """Read access to a render index directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        path = self.root / INDEX_FILENAME
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise RenderIndexError(f"cannot read render index {path}: {exc}") from exc
        try:
            doc = RenderIndexDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise RenderIndexError(f"invalid render index {path}: {exc.errors()[0].get('msg')}") from exc
        self.meta = doc.meta
        self._units = doc.units

    def __len__(self) -> int:
        return len(self._units)

    @property
    def unit_ids(self) -> List[str]:
        return list(self._units)

    def records(self, unit: str) -> List[RenderRecord]:
        return list(self._units.get(unit, []))

    def check_compatible(self, other: "RenderIndex") -> None:
        a, b = self.meta, other.meta
        if a.canvas_height != b.canvas_height or a.midline != b.midline:
            raise RenderConfigMismatch(
                f"{self.root} renders on a {a.canvas_width}x{a.canvas_height} canvas (midline {a.midline}), "
                f"{other.root} on {b.canvas_width}x{b.canvas_height} (midline {b.midline})"
            )

    def load_light(self) -> LightIndex:
        units: List[str] = []
        prints: List[int] = []
        widths: List[int] = []
        unit_idx: List[int] = []
        for pos, (unit, records) in enumerate(self._units.items()):
            units.append(unit)
            for record in records:
                if record.status is RenderStatus.MISSING or not record.fingerprint:
                    continue
                prints.append(fingerprint_from_hex(record.fingerprint))
                widths.append(record.ink_width or 0)
                unit_idx.append(pos)
        hi, lo = split_many(prints)
        return LightIndex(
            units=units,
            hi=hi,
            lo=lo,
            width=np.array(widths, dtype=np.int64),
            unit_idx=np.array(unit_idx, dtype=np.int64),
        )

    def load_raster(self, png: str) -> Raster:
        path = self.root / RENDERS_DIRNAME / png
        try:
            with Image.open(path) as image:
                pixels = np.asarray(image.convert("L"), dtype=np.uint8)
        except OSError as exc:
            raise RenderIndexError(f"cannot decode render {path}: {exc}") from exc
        return Raster(pixels, midline=self.meta.midline)

    def load_units(self, only: Optional[Iterable[str]] = None) -> List[UnitRenders]:
        """Decode rasters for ``only`` (default: every unit), in index order."""

        wanted = None if only is None else set(only)
        out: List[UnitRenders] = []
        for unit, records in self._units.items():
            if wanted is not None and unit not in wanted:
                continue
            renders = UnitRenders(unit=unit)
            for record in records:
                entry = _to_entry(unit, record)
                if entry.usable and entry.png:
                    entry.raster = self.load_raster(entry.png)
                renders.entries.append(entry)
            out.append(renders)
        return out


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _render_unit(
    text: str,
    rasterizer: Rasterizer,
    registry: FontRegistry,
    tables: ReferenceTables,
    font_pos: Dict[str, int],
    renders_dir: Path,
    config: ScoringConfig,
) -> UnitRecord:
    fallbacks = render_fallbacks(rasterizer, text, tables) if tables.fallback_fonts else {}
    record = UnitRecord(unit_id=text)
    for font in registry.fonts_for(text):
        raster = rasterizer.rasterize(text, font)
        verdict = classify_render(raster, font, tables, fallbacks)
        if verdict.status is RenderStatus.MISSING or raster is None:
            record.renders.append(RenderRecord(font=font, status=RenderStatus.MISSING))
            continue
        bounds = raster.bounds
        canonical = normalize_single(raster, config.canonical_size)
        png = f"{_unit_slug(text)}_{font_pos.setdefault(font, len(font_pos)):03d}.png"
        Image.fromarray(np.asarray(raster.pixels)).save(renders_dir / png)
        record.renders.append(
            RenderRecord(
                font=font,
                status=verdict.status,
                fallback_font=verdict.fallback_font,
                fingerprint=fingerprint_to_hex(compute_fingerprint(canonical)),
                ink_width=None if bounds is None else bounds.width,
                ink_height=None if bounds is None else bounds.height,
                png=png,
            )
        )
    return record


def build_render_index(
    texts: Sequence[str],
    rasterizer: Rasterizer,
    registry: FontRegistry,
    outdir: Union[str, Path],
    *,
    fallback_fonts: Sequence[str] = (),
    config: Optional[ScoringConfig] = None,
    fresh: bool = False,
) -> Path:
    """Render every unit of ``texts`` into ``outdir`` and write ``index.json``.

    Each finished unit is checkpointed, so an interrupted build resumes where
    it stopped. A directory holding ``index.json`` and no progress log is
    already complete and is left untouched unless ``fresh`` is set.
    """

    config = config or ScoringConfig()
    root = Path(outdir)
    index_path = root / INDEX_FILENAME
    renders_dir = root / RENDERS_DIRNAME
    progress = ProgressLog(root / PROGRESS_FILENAME, UnitRecord)

    if fresh:
        progress.discard()
    elif index_path.exists() and not progress.exists():
        logger.info("render index %s already complete", index_path)
        return index_path
    renders_dir.mkdir(parents=True, exist_ok=True)

    units = list(dict.fromkeys(texts))
    fonts = registry.fonts()
    font_pos: Dict[str, int] = {font: i for i, font in enumerate(fonts)}
    tables = ReferenceTables.build(rasterizer, fonts, fallback_fonts)
    done = progress.replay()
    if done:
        logger.info("resuming render index build: %d/%d units done", len(done), len(units))

    started = time.perf_counter()
    with progress:
        for i, text in enumerate(units, start=1):
            if text in done:
                continue
            progress.append(_render_unit(text, rasterizer, registry, tables, font_pos, renders_dir, config))
            if i % config.log_every == 0:
                logger.info("rendered %d/%d units in %.1fs", i, len(units), time.perf_counter() - started)

        doc_units: Dict[str, List[RenderRecord]] = {}
        counts: Dict[str, int] = {}
        for record in progress.iter_units(units):
            doc_units[record.unit_id] = record.renders
            for render in record.renders:
                counts[render.status.value] = counts.get(render.status.value, 0) + 1

    meta = RenderIndexMeta(
        generated_at=_utc_now_iso(),
        glyphsim_version=__version__,
        canvas_width=rasterizer.canvas_width,
        canvas_height=rasterizer.canvas_height,
        midline=rasterizer.canvas_height / 2,
        canonical_size=config.canonical_size,
        fonts=list(font_pos),
        fallback_fonts=list(fallback_fonts),
        unit_count=len(doc_units),
        render_count=sum(counts.values()),
        status_counts=counts,
    )
    doc = RenderIndexDocument(meta=meta, units=doc_units)
    tmp = root / f".{INDEX_FILENAME}.tmp"
    tmp.write_text(doc.model_dump_json(by_alias=True, indent=1), encoding="utf-8")
    os.replace(tmp, index_path)
    progress.discard()
    logger.info(
        "render index written to %s: %d units, %d renders %s",
        index_path,
        meta.unit_count,
        meta.render_count,
        json.dumps(counts, sort_keys=True),
    )
    return index_path
