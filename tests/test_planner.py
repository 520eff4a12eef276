import numpy as np
import pytest

from conftest import draw_shape, make_unit
from glyphsim.config import ScoringConfig
from glyphsim.orchestrator.models import ComparisonMode
from glyphsim.orchestrator.planner import TargetIndex, plan_unit, width_ratio_ok
from glyphsim.pipeline.workers import score_slice

OPEN = ScoringConfig(fingerprint_threshold=0.0, workers=0)


def _score(plan):
    items = [(job.index, job.source.raster, job.target.raster) for job in plan.jobs]
    return {idx: ssim for idx, ssim, _ in score_slice(items)}


def test_identical_glyphs_score_one_in_both_directions():
    a = make_unit("a", {"Serif": draw_shape("ring")})
    b = make_unit("b", {"Serif": draw_shape("ring")})
    for source, target in ((a, b), (b, a)):
        plan = plan_unit(source, TargetIndex([target]), ScoringConfig(workers=0))
        assert len(plan.jobs) == 1
        job = plan.jobs[0]
        assert job.mode is ComparisonMode.SAME_CONTEXT
        assert job.fingerprint_similarity == 1.0
        assert _score(plan)[0] == pytest.approx(1.0)


def test_width_ratio_gate():
    narrow = make_unit("i", {"Serif": draw_shape("bar", box=(27, 14, 36, 50))})
    wide = make_unit("m", {"Serif": draw_shape("bar", box=(17, 14, 46, 50))})
    targets = TargetIndex([wide])

    gated = plan_unit(narrow, targets, OPEN)
    assert gated.jobs == []
    assert gated.counters.width_ratio_skipped == 1

    loose = plan_unit(narrow, targets, OPEN.copy(width_ratio_max=3.0))
    assert [job.target_unit for job in loose.jobs] == ["m"]
    assert loose.counters.width_ratio_skipped == 0


def test_width_ratio_ignores_unknown_widths():
    assert width_ratio_ok(None, 40, 2.0)
    assert width_ratio_ok(0, 40, 2.0)
    assert width_ratio_ok(20, 40, 2.0)
    assert not width_ratio_ok(19, 40, 2.0)


def test_fingerprint_gate_counts_skips():
    a = make_unit("a", {"Serif": draw_shape("ring")})
    b = make_unit("b", {"Serif": draw_shape("tri")})
    strict = plan_unit(a, TargetIndex([b]), ScoringConfig(fingerprint_threshold=1.0, workers=0))
    assert strict.jobs == []
    assert strict.counters.fingerprint_skipped == 1


def test_unit_never_compares_against_itself():
    a = make_unit("a", {"Serif": draw_shape("ring"), "Sans": draw_shape("cross")})
    b = make_unit("b", {"Serif": draw_shape("ring")})
    plan = plan_unit(a, TargetIndex([a, b]), OPEN)
    assert {job.target_unit for job in plan.jobs} == {"b"}


def test_cross_context_picks_closest_unit_lacking_the_font():
    source = make_unit("a", {"Serif": draw_shape("ring")})
    targets = TargetIndex(
        [
            make_unit("b", {"Serif": draw_shape("tri"), "Kai": draw_shape("ring")}),
            make_unit("c", {"Kai": draw_shape("cross")}),
            make_unit("d", {"Kai": draw_shape("ring")}),
        ]
    )
    plan = plan_unit(source, targets, OPEN)
    same = [job for job in plan.jobs if job.mode is ComparisonMode.SAME_CONTEXT]
    cross = [job for job in plan.jobs if job.mode is ComparisonMode.CROSS_CONTEXT]
    assert [(job.target_unit, job.target.font) for job in same] == [("b", "Serif")]
    # b/Kai is identical but b already has a Serif render
    assert [(job.target_unit, job.target.font) for job in cross] == [("d", "Kai")]
    assert cross[0].fingerprint_similarity == 1.0
    assert plan.counters.same_context_jobs == 1
    assert plan.counters.cross_context_jobs == 1


def test_allowed_mask_restricts_targets():
    source = make_unit("a", {"Serif": draw_shape("ring")})
    targets = TargetIndex(
        [
            make_unit("b", {"Serif": draw_shape("ring")}),
            make_unit("c", {"Serif": draw_shape("ring")}),
        ]
    )
    plan = plan_unit(source, targets, OPEN, allowed=np.array([False, True]))
    assert [job.target_unit for job in plan.jobs] == ["c"]


def test_missing_renders_are_not_planned():
    source = make_unit("a", {"Serif": None, "Sans": draw_shape("ring")})
    targets = TargetIndex([make_unit("b", {"Serif": draw_shape("ring"), "Sans": None})])
    assert targets.availability.tolist() == [[True]]
    plan = plan_unit(source, targets, OPEN)
    # no target render is in Sans, so every target render is a cross-context candidate
    assert [(job.source.font, job.target.font, job.mode) for job in plan.jobs] == [
        ("Sans", "Serif", ComparisonMode.CROSS_CONTEXT)
    ]
