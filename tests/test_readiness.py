"""Tests for readiness.py: the four solidity checks on a practised skill."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from abacus_mastery.config import ReadinessConfig
from abacus_mastery.models import AttemptRecord, SkillBktResult
from abacus_mastery.priors import DEFAULT_PARAMS
from abacus_mastery.readiness import assess_all_skills_readiness, assess_skill_readiness

NOW = datetime(2026, 5, 20, 18, 0)
SKILL = "basic.directAddition"
OTHER = "basic.heavenBead"


def attempt(
    session: int,
    index: int,
    *,
    skill_id: str = SKILL,
    correct: bool = True,
    response_time_ms: float = 3000,
    terms: int = 3,
    had_help: bool = False,
) -> AttemptRecord:
    return AttemptRecord(
        skills_required=[skill_id],
        is_correct=correct,
        timestamp=NOW - timedelta(days=session, minutes=index),
        response_time_ms=response_time_ms,
        term_count=terms,
        session_id=f"session-{session}",
        had_help=had_help,
    )


def solid_history(sessions: int = 4, per_session: int = 8, skill_id: str = SKILL) -> list[AttemptRecord]:
    """Oldest first, 1 s per term, all correct."""
    history = [
        attempt(session, index, skill_id=skill_id)
        for session in range(sessions)
        for index in range(per_session)
    ]
    return sorted(history, key=lambda a: a.timestamp)


def bkt_result(p_known: float = 0.95, confidence: float = 0.8, skill_id: str = SKILL) -> SkillBktResult:
    return SkillBktResult(
        skill_id=skill_id,
        p_known=p_known,
        confidence=confidence,
        uncertainty_range=(p_known - 0.1, min(1.0, p_known + 0.1)),
        opportunities=32,
        success_count=30,
        last_practiced_at=NOW,
        days_since_last_practice=0.0,
        classification="strong",
        mastery_classification="strong",
        staleness_warning=None,
        params=DEFAULT_PARAMS,
    )


@pytest.fixture
def history() -> list[AttemptRecord]:
    return solid_history()


class TestSolid:
    def test_all_dimensions_met(self, history):
        readiness = assess_skill_readiness(SKILL, history, bkt_result())
        assert readiness.is_solid
        dims = readiness.dimensions
        assert dims.mastery.met and dims.volume.met and dims.speed.met and dims.consistency.met
        assert dims.volume.opportunities == 32
        assert dims.volume.session_count == 4
        assert dims.speed.median_seconds_per_term == pytest.approx(1.0)
        assert dims.consistency.recent_accuracy == 1.0

    def test_untouched_skill_is_solid(self):
        readiness = assess_skill_readiness(SKILL, [], None)
        assert readiness.is_solid
        assert readiness.dimensions.volume.opportunities == 0
        assert readiness.dimensions.speed.median_seconds_per_term is None
        assert readiness.dimensions.mastery.met is False

    def test_other_skills_ignored(self, history):
        noise = [attempt(0, 100 + i, skill_id=OTHER, correct=False) for i in range(10)]
        assert assess_skill_readiness(SKILL, history + noise, bkt_result()).is_solid


class TestMastery:
    def test_low_p_known(self, history):
        readiness = assess_skill_readiness(SKILL, history, bkt_result(p_known=0.7))
        assert not readiness.dimensions.mastery.met
        assert not readiness.is_solid

    def test_low_confidence(self, history):
        readiness = assess_skill_readiness(SKILL, history, bkt_result(confidence=0.3))
        assert not readiness.dimensions.mastery.met
        assert not readiness.is_solid

    def test_missing_belief(self, history):
        mastery = assess_skill_readiness(SKILL, history, None).dimensions.mastery
        assert (mastery.met, mastery.p_known, mastery.confidence) == (False, 0.0, 0.0)


class TestVolume:
    def test_too_few_attempts(self):
        readiness = assess_skill_readiness(SKILL, solid_history(sessions=3, per_session=5), bkt_result())
        assert readiness.dimensions.volume.opportunities == 15
        assert not readiness.dimensions.volume.met
        assert not readiness.is_solid

    def test_too_few_sessions(self):
        readiness = assess_skill_readiness(SKILL, solid_history(sessions=2, per_session=15), bkt_result())
        assert readiness.dimensions.volume.session_count == 2
        assert not readiness.dimensions.volume.met

    def test_sessions_fall_back_to_calendar_day(self, history):
        undated_sessions = [replace(a, session_id=None) for a in history]
        volume = assess_skill_readiness(SKILL, undated_sessions, bkt_result()).dimensions.volume
        assert volume.session_count == 4


class TestSpeed:
    def test_slow_recent_pace(self, history):
        slow = [attempt(0, -1 - i, response_time_ms=15000) for i in range(10)]  # 5 s/term, newest
        readiness = assess_skill_readiness(SKILL, history + slow, bkt_result())
        assert readiness.dimensions.speed.median_seconds_per_term == pytest.approx(5.0)
        assert not readiness.dimensions.speed.met
        assert not readiness.is_solid

    def test_only_recent_window_counts(self, history):
        old_slow = [attempt(10, i, response_time_ms=30000) for i in range(10)]
        speed = assess_skill_readiness(SKILL, old_slow + history, bkt_result()).dimensions.speed
        assert speed.met

    def test_termless_attempts_skipped(self, history):
        termless = [attempt(0, -1 - i, terms=0, response_time_ms=60000) for i in range(3)]
        speed = assess_skill_readiness(SKILL, history + termless, bkt_result()).dimensions.speed
        assert speed.median_seconds_per_term == pytest.approx(1.0)


class TestConsistency:
    def test_recent_error(self, history):
        history[-1] = replace(history[-1], is_correct=False)
        consistency = assess_skill_readiness(SKILL, history, bkt_result()).dimensions.consistency
        assert not consistency.last_n_all_correct
        assert not consistency.met
        assert consistency.recent_accuracy == pytest.approx(14 / 15)

    def test_low_accuracy(self, history):
        for i in range(6, 10):
            history[-1 - i] = replace(history[-1 - i], is_correct=False)
        consistency = assess_skill_readiness(SKILL, history, bkt_result()).dimensions.consistency
        assert consistency.last_n_all_correct
        assert consistency.recent_accuracy == pytest.approx(11 / 15)
        assert not consistency.met

    def test_help_used(self, history):
        history[-2] = replace(history[-2], had_help=True)
        readiness = assess_skill_readiness(SKILL, history, bkt_result())
        assert readiness.dimensions.consistency.recent_help_count == 1
        assert not readiness.dimensions.consistency.met
        assert not readiness.is_solid

    def test_old_help_forgiven(self, history):
        history[0] = replace(history[0], had_help=True)
        assert assess_skill_readiness(SKILL, history, bkt_result()).dimensions.consistency.met

    def test_short_history(self):
        consistency = assess_skill_readiness(SKILL, solid_history(1, 4), bkt_result()).dimensions.consistency
        assert not consistency.last_n_all_correct
        assert not consistency.met


class TestEvidenceFilter:
    def test_retries_not_counted(self, history):
        retries = [replace(attempt(0, -1 - i, correct=False), is_retry=True) for i in range(5)]
        readiness = assess_skill_readiness(SKILL, history + retries, bkt_result())
        assert readiness.dimensions.volume.opportunities == 32
        assert readiness.is_solid

    def test_recency_refresh_not_counted(self, history):
        refresh = [replace(attempt(0, -1), source="recency-refresh")]
        readiness = assess_skill_readiness(SKILL, history + refresh, bkt_result())
        assert readiness.dimensions.volume.opportunities == 32

    def test_only_excluded_attempts_is_solid(self):
        retries = [replace(attempt(0, i, correct=False), is_retry=True) for i in range(5)]
        assert assess_skill_readiness(SKILL, retries, None).is_solid


class TestCustomThresholds:
    def test_relaxed_volume(self):
        config = ReadinessConfig(min_opportunities=15, min_sessions=3)
        readiness = assess_skill_readiness(SKILL, solid_history(3, 5), bkt_result(), config)
        assert readiness.dimensions.volume.met
        assert readiness.is_solid


class TestAllSkills:
    def test_only_rotation_skills(self, history):
        other = solid_history(skill_id=OTHER)
        results = [bkt_result(), bkt_result(p_known=0.5, skill_id=OTHER)]
        readiness = assess_all_skills_readiness(history + other, results, [SKILL])
        assert list(readiness) == [SKILL]
        assert readiness[SKILL].is_solid

    def test_mapping_input_and_order(self, history):
        other = solid_history(skill_id=OTHER)
        results = {SKILL: bkt_result(), OTHER: bkt_result(p_known=0.5, skill_id=OTHER)}
        readiness = assess_all_skills_readiness(history + other, results, [OTHER, SKILL, OTHER])
        assert list(readiness) == [OTHER, SKILL]
        assert not readiness[OTHER].is_solid
        assert readiness[SKILL].is_solid
