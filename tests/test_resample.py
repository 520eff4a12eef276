import numpy as np
import pytest

from conftest import draw_shape
from glyphsim.core import normalize as normalize_mod
from glyphsim.core import resample
from glyphsim.core.normalize import normalize_pair
from glyphsim.core.raster import Raster
from glyphsim.core.ssim import compute_ssim


def _interpreted_resize(src, dst_w, dst_h):
    return resample._bicubic_resize.py_func(np.ascontiguousarray(src, dtype=np.uint8), int(dst_w), int(dst_h))


def _sample_pairs():
    kinds = ["rect", "ring", "bar", "cross", "tri"]
    boxes = [(20, 14, 44, 50), (8, 8, 56, 56), (26, 6, 38, 58), (12, 24, 52, 40)]
    glyphs = [draw_shape(k, box=b) for k in kinds for b in boxes]
    return [(glyphs[i], glyphs[(i * 7 + 3) % len(glyphs)]) for i in range(len(glyphs))]


def test_catmull_rom_weights():
    assert resample.catmull_rom(0.0) == 1.0
    assert resample.catmull_rom(1.0) == 0.0
    assert resample.catmull_rom(2.0) == 0.0
    assert resample.catmull_rom(0.5) == pytest.approx(0.5625)
    assert resample.catmull_rom(1.5) == pytest.approx(-0.0625)


def test_same_size_resize_is_identity():
    rng = np.random.default_rng(7)
    src = rng.integers(0, 256, size=(13, 17), dtype=np.uint8)
    assert np.array_equal(resample.bicubic_resize(src, 17, 13), src)


def test_constant_image_stays_constant():
    src = np.full((9, 5), 77, dtype=np.uint8)
    out = resample.bicubic_resize(src, 31, 40)
    assert out.shape == (40, 31)
    assert (out == 77).all()


def test_resize_rejects_empty_targets():
    with pytest.raises(ValueError):
        resample.bicubic_resize(np.zeros((4, 4), dtype=np.uint8), 0, 4)
    with pytest.raises(ValueError):
        resample.bicubic_resize(np.zeros((0, 4), dtype=np.uint8), 4, 4)


def test_compiled_and_interpreted_kernels_match():
    rng = np.random.default_rng(11)
    for shape, target in [((20, 30), (48, 11)), ((64, 64), (23, 48)), ((5, 3), (1, 1))]:
        src = rng.integers(0, 256, size=shape, dtype=np.uint8)
        compiled = resample.bicubic_resize(src, *target)
        interpreted = _interpreted_resize(src, *target)
        assert compiled.shape == interpreted.shape
        assert np.abs(compiled.astype(int) - interpreted.astype(int)).max() <= 1


def test_ssim_agrees_across_kernel_paths(monkeypatch):
    pairs = _sample_pairs()
    assert len(pairs) >= 20
    compiled = [compute_ssim(*normalize_pair(Raster(a), Raster(b))) for a, b in pairs]
    monkeypatch.setattr(normalize_mod, "bicubic_resize", _interpreted_resize)
    interpreted = [compute_ssim(*normalize_pair(Raster(a), Raster(b))) for a, b in pairs]
    for x, y in zip(compiled, interpreted):
        assert abs(x - y) < 0.02
