"""Tests for sizing.py: duration <-> problem-count projections."""

from __future__ import annotations

import pytest

from abacus_mastery.config import TimingConfig
from abacus_mastery.models import TermCountRange, TimingProfile
from abacus_mastery.sizing import (
    project_duration,
    project_problem_count,
    project_session,
    representative_term_count,
)
from abacus_mastery.timing import get_time_estimation_profile


@pytest.fixture
def profile() -> TimingProfile:
    return get_time_estimation_profile([])


class TestRepresentativeTerms:
    def test_midpoint(self):
        assert representative_term_count(TermCountRange(2, 4)) == 3

    def test_rounds_half_up(self):
        assert representative_term_count(TermCountRange(2, 3)) == 3
        assert representative_term_count(TermCountRange(3, 6)) == 5


class TestProjections:
    def test_problem_count_for_duration(self, profile):
        projection = project_problem_count(profile, TermCountRange(2, 4), "abacus", 10)
        assert projection.terms_per_problem == 3
        assert projection.seconds_per_problem == pytest.approx(26)
        assert projection.problem_count == 23
        assert 0 < projection.duration_minutes <= 10

    def test_visualization_fits_fewer(self, profile):
        abacus = project_problem_count(profile, TermCountRange(2, 4), "abacus", 10)
        visual = project_problem_count(profile, TermCountRange(2, 4), "visualization", 10)
        assert visual.problem_count < abacus.problem_count

    def test_minimum_floor(self, profile):
        projection = project_problem_count(profile, TermCountRange(4, 8), "abacus", 0)
        assert projection.problem_count == 2
        assert projection.duration_minutes > 0

    def test_negative_duration_clamped(self, profile):
        assert project_problem_count(profile, TermCountRange(2, 3), "linear", -3).problem_count == 2

    def test_duration_for_count(self, profile):
        projection = project_duration(profile, TermCountRange(2, 4), "abacus", 30)
        assert projection.duration_minutes == pytest.approx(13)

    def test_zero_pace_and_overhead(self):
        flat = TimingProfile(0.0, 0.0, None, 0, True)
        config = TimingConfig(problem_overhead_seconds=0)
        forward = project_problem_count(flat, TermCountRange(2, 2), "abacus", 5, config)
        assert forward.problem_count == 2
        assert forward.seconds_per_term == config.min_seconds_per_term
        assert forward.duration_minutes > 0
        backward = project_duration(flat, TermCountRange(2, 2), "abacus", 10, config)
        assert backward.duration_minutes == pytest.approx(10 * 2 * 3 / 60)

    def test_empty_term_range_still_takes_time(self, profile):
        projection = project_problem_count(profile, TermCountRange(0, 0), "abacus", 5)
        assert projection.seconds_per_problem > 0

    def test_duration_never_below_floor(self, profile):
        projection = project_duration(profile, TermCountRange(2, 4), "abacus", 0)
        assert projection.problem_count == 2
        assert projection.duration_minutes > 0

    @pytest.mark.parametrize("part_type", ["abacus", "visualization", "linear"])
    @pytest.mark.parametrize("minutes", [3, 8, 15, 25])
    def test_approximately_inverse(self, profile, part_type, minutes):
        term_range = TermCountRange(3, 5)
        forward = project_problem_count(profile, term_range, part_type, minutes)
        backward = project_duration(profile, term_range, part_type, forward.problem_count)
        assert backward.duration_minutes <= minutes
        assert minutes - backward.duration_minutes < forward.seconds_per_problem / 60

    def test_session_projection(self, profile):
        ranges = {"abacus": TermCountRange(2, 4), "linear": TermCountRange(2, 4)}
        projections = project_session(profile, ranges, {"abacus": 10, "linear": 5, "visualization": 5})
        assert set(projections) == {"abacus", "linear"}
        assert projections["linear"].part_type == "linear"
