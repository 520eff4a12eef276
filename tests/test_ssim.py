import numpy as np
import pytest

from conftest import draw_shape
from glyphsim.core.normalize import blank_canonical, normalize_pair
from glyphsim.core.raster import Raster
from glyphsim.core.ssim import compute_ssim


def test_identical_images_score_one():
    a, _ = normalize_pair(Raster(draw_shape("ring")), Raster(draw_shape("ring")))
    assert compute_ssim(a, a.copy()) == pytest.approx(1.0)
    assert compute_ssim(blank_canonical(), blank_canonical()) == pytest.approx(1.0)


def test_score_is_symmetric_and_below_one_for_different_glyphs():
    a, b = normalize_pair(Raster(draw_shape("cross")), Raster(draw_shape("tri")))
    forward = compute_ssim(a, b)
    assert forward == pytest.approx(compute_ssim(b, a))
    assert -1.0 <= forward < 0.9


def test_shape_mismatch_is_rejected():
    with pytest.raises(ValueError):
        compute_ssim(np.zeros((48, 48), dtype=np.uint8), np.zeros((32, 32), dtype=np.uint8))
