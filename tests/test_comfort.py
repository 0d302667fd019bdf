"""Tests for comfort.py: weighted mastery, mode damping, breadth bonus."""

from __future__ import annotations

import math

import pytest

from abacus_mastery.comfort import (
    adjust_comfort_level,
    compute_comfort_level,
    compute_skill_count_bonus,
    compute_weighted_mastery,
)
from abacus_mastery.models import SkillBktResult
from abacus_mastery.priors import DEFAULT_PARAMS
from abacus_mastery.session_mode import MaintenanceMode, RemediationMode, SkillRef

MAINTENANCE = MaintenanceMode(skill_count=2, focus_description="Mixed practice")
REMEDIATION = RemediationMode(weak_skills=(SkillRef("b.x", "B", 0.2),), focus_description="Strengthening: B")


def result(skill_id: str, p_known: float, confidence: float) -> SkillBktResult:
    return SkillBktResult(
        skill_id=skill_id,
        p_known=p_known,
        confidence=confidence,
        uncertainty_range=(0.0, 1.0),
        opportunities=4,
        success_count=2,
        last_practiced_at=None,
        days_since_last_practice=None,
        classification=None,
        mastery_classification="developing",
        staleness_warning=None,
        params=DEFAULT_PARAMS,
    )


class TestWeightedMastery:
    def test_confidence_weighting(self):
        results = {"a.x": result("a.x", 0.9, 0.75), "b.x": result("b.x", 0.1, 0.25)}
        assert compute_weighted_mastery(results, ["a.x", "b.x"]) == pytest.approx(0.7)

    def test_skills_outside_rotation_ignored(self):
        results = {"a.x": result("a.x", 0.9, 0.5), "c.x": result("c.x", 0.0, 0.9)}
        assert compute_weighted_mastery(results, ["a.x"]) == pytest.approx(0.9)

    def test_no_data(self):
        assert compute_weighted_mastery(None, ["a.x"]) is None
        assert compute_weighted_mastery({}, ["a.x"]) is None

    def test_zero_confidence_is_no_data(self):
        assert compute_weighted_mastery({"a.x": result("a.x", 0.9, 0.0)}, ["a.x"]) is None


class TestComfortLevel:
    def test_default_without_data(self):
        comfort = compute_comfort_level(None, ["a.x", "b.x", "c.x"], MAINTENANCE)
        assert comfort.comfort_level == 0.3
        assert comfort.factors.avg_mastery is None
        assert comfort.factors.skill_count_bonus == pytest.approx(math.log(4) / 20)

    def test_maintenance_formula(self):
        results = {"a.x": result("a.x", 0.6, 0.5), "b.x": result("b.x", 0.6, 0.5)}
        comfort = compute_comfort_level(results, ["a.x", "b.x"], MAINTENANCE)
        assert comfort.factors.mode_multiplier == 1.0
        assert comfort.comfort_level == pytest.approx(0.6 + math.log(3) / 20)

    def test_remediation_dampens(self):
        results = {"a.x": result("a.x", 0.6, 0.5), "b.x": result("b.x", 0.6, 0.5)}
        damped = compute_comfort_level(results, ["a.x", "b.x"], REMEDIATION)
        plain = compute_comfort_level(results, ["a.x", "b.x"], MAINTENANCE)
        assert damped.factors.session_mode == "remediation"
        assert damped.comfort_level == pytest.approx(0.6 * 0.6 + math.log(3) / 20)
        assert damped.comfort_level < plain.comfort_level

    def test_clamped_to_one(self):
        results = {f"s.{i}": result(f"s.{i}", 1.0, 0.9) for i in range(30)}
        comfort = compute_comfort_level(results, list(results), MAINTENANCE)
        assert comfort.comfort_level == 1.0

    def test_bonus_saturates(self):
        assert compute_skill_count_bonus(0) == 0.0
        assert compute_skill_count_bonus(1000) == 0.15


class TestAdjustComfort:
    @pytest.fixture
    def base(self):
        results = {"a.x": result("a.x", 0.5, 0.5)}
        return compute_comfort_level(results, ["a.x"], MAINTENANCE)

    def test_recommended_is_unchanged(self, base):
        adjusted = adjust_comfort_level(base, "recommended")
        assert adjusted.comfort_level == pytest.approx(base.comfort_level)
        assert adjusted.comfort_adjustment == 0.0

    def test_shorter_lowers_and_keeps_raw(self, base):
        adjusted = adjust_comfort_level(base, "shorter")
        assert adjusted.comfort_level == pytest.approx(base.comfort_level - 0.3)
        assert adjusted.raw_comfort_level == base.comfort_level
        assert adjusted.comfort_adjustment == -0.3

    def test_longer_is_clamped(self, base):
        high = compute_comfort_level({"a.x": result("a.x", 0.95, 0.9)}, ["a.x"], MAINTENANCE)
        assert adjust_comfort_level(high, "longer").comfort_level == 1.0
        assert adjust_comfort_level(base, "longer").comfort_level == pytest.approx(base.comfort_level + 0.2)

    def test_adjustment_is_not_cumulative(self, base):
        twice = adjust_comfort_level(adjust_comfort_level(base, "shorter"), "shorter")
        assert twice.comfort_level == pytest.approx(base.comfort_level - 0.3)
