import json

import numpy as np
import pytest

from conftest import draw_shape
from glyphsim.artifacts.render_index import (
    INDEX_FILENAME,
    PROGRESS_FILENAME,
    RENDERS_DIRNAME,
    RenderIndex,
    build_render_index,
)
from glyphsim.errors import RenderConfigMismatch, RenderIndexError
from glyphsim.orchestrator.provenance import RenderStatus
from glyphsim.rendering import StaticFontRegistry, StaticRasterizer

COVERAGE = {"Serif": ["a", "b"], "Sans": ["a", "b", "c"]}


def _rasterizer(fail_on=None, height=64):
    def painter(text, font):
        if text == fail_on:
            raise RuntimeError(f"renderer crashed on {text!r}")
        return None

    return StaticRasterizer(
        {
            ("a", "Serif"): draw_shape("ring", height=height),
            ("a", "Sans"): draw_shape("cross", height=height),
            ("b", "Sans"): draw_shape("tri", height=height),
            ("b", "Noto"): draw_shape("tri", height=height),
            ("c", "Sans"): draw_shape("ring", box=(24, 20, 40, 44), height=height),
        },
        height=height,
        default=painter,
    )


def _build(outdir, rasterizer, **kw):
    return build_render_index(
        ["a", "b", "a", "c"],
        rasterizer,
        StaticFontRegistry(COVERAGE),
        outdir,
        fallback_fonts=["Noto"],
        **kw,
    )


def test_build_classifies_and_indexes(tmp_path):
    path = _build(tmp_path / "idx", _rasterizer())
    assert path.name == INDEX_FILENAME
    assert not (tmp_path / "idx" / PROGRESS_FILENAME).exists()

    index = RenderIndex(tmp_path / "idx")
    assert index.unit_ids == ["a", "b", "c"]
    assert index.meta.canvas_height == 64
    assert index.meta.midline == 32.0
    assert index.meta.status_counts == {"native": 3, "fallback": 1, "missing": 1}

    b = {record.font: record for record in index.records("b")}
    assert b["Serif"].status is RenderStatus.MISSING
    assert b["Serif"].png is None
    assert b["Sans"].status is RenderStatus.FALLBACK
    assert b["Sans"].fallback_font == "Noto"

    a_sans = {record.font: record for record in index.records("a")}["Sans"]
    assert a_sans.png == "0061_001.png"
    assert (tmp_path / "idx" / RENDERS_DIRNAME / a_sans.png).exists()
    assert a_sans.ink_width == 25
    assert len(a_sans.fingerprint) == 16

    light = index.load_light()
    assert light.units == ["a", "b", "c"]
    assert len(light) == 4
    assert light.unit_idx.tolist() == [0, 0, 1, 2]

    (unit_b,) = index.load_units(only=["b"])
    sans = unit_b.by_font()["Sans"]
    assert sans.raster is not None
    assert np.array_equal(sans.raster.pixels, draw_shape("tri"))
    assert unit_b.by_font()["Serif"].raster is None


def test_interrupted_build_resumes(tmp_path):
    outdir = tmp_path / "idx"
    with pytest.raises(RuntimeError):
        _build(outdir, _rasterizer(fail_on="c"))
    assert not (outdir / INDEX_FILENAME).exists()
    assert (outdir / PROGRESS_FILENAME).exists()

    rasterizer = _rasterizer()
    _build(outdir, rasterizer)
    rendered = {text for text, _ in rasterizer.calls}
    assert "a" not in rendered and "b" not in rendered
    assert "c" in rendered
    assert RenderIndex(outdir).unit_ids == ["a", "b", "c"]


def test_complete_index_is_left_alone(tmp_path):
    outdir = tmp_path / "idx"
    _build(outdir, _rasterizer())
    before = (outdir / INDEX_FILENAME).read_bytes()

    idle = _rasterizer()
    _build(outdir, idle)
    assert idle.calls == []
    assert (outdir / INDEX_FILENAME).read_bytes() == before

    again = _rasterizer()
    _build(outdir, again, fresh=True)
    assert again.calls
    assert json.loads((outdir / INDEX_FILENAME).read_text())["meta"]["unitCount"] == 3


def test_incompatible_render_configs(tmp_path):
    _build(tmp_path / "small", _rasterizer())
    _build(tmp_path / "tall", _rasterizer(height=128))
    small, tall = RenderIndex(tmp_path / "small"), RenderIndex(tmp_path / "tall")
    small.check_compatible(RenderIndex(tmp_path / "small"))
    with pytest.raises(RenderConfigMismatch):
        small.check_compatible(tall)


def test_unreadable_index(tmp_path):
    with pytest.raises(RenderIndexError):
        RenderIndex(tmp_path / "nowhere")
    (tmp_path / INDEX_FILENAME).write_text("{}", encoding="utf-8")
    with pytest.raises(RenderIndexError):
        RenderIndex(tmp_path)
