"""Skill readiness: is a practised skill solid enough to build on?

A skill is solid when four independent checks pass on the learner's own
attempts at it:

- mastery: the knowledge-tracing belief is high and well supported
- volume: enough attempts spread over enough separate sessions
- speed: the recent median pace per term is fast enough
- consistency: recent accuracy is high, the last few are all correct, and none
  of the last few needed help

Retries and recency-refresh attempts are not evidence of fluency and are
ignored. A skill with no qualifying attempts is treated as solid, so a
learner who has not touched a skill yet is never blocked by it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from .config import ReadinessConfig
from .logging import get_logger
from .models import AttemptRecord, SkillBktResult

logger = get_logger(__name__)

READINESS_DEFAULTS = ReadinessConfig()


@dataclass(frozen=True, slots=True)
class MasteryDimension:
    met: bool
    p_known: float
    confidence: float


@dataclass(frozen=True, slots=True)
class VolumeDimension:
    met: bool
    opportunities: int
    session_count: int


@dataclass(frozen=True, slots=True)
class SpeedDimension:
    met: bool
    median_seconds_per_term: float | None


@dataclass(frozen=True, slots=True)
class ConsistencyDimension:
    met: bool
    recent_accuracy: float
    last_n_all_correct: bool
    recent_help_count: int


@dataclass(frozen=True, slots=True)
class SkillReadinessDimensions:
    mastery: MasteryDimension
    volume: VolumeDimension
    speed: SpeedDimension
    consistency: ConsistencyDimension


@dataclass(frozen=True, slots=True)
class SkillReadinessResult:
    skill_id: str
    is_solid: bool
    dimensions: SkillReadinessDimensions


# ── Evidence selection ───────────────────────────────────────────────────────


def _relevant_attempts(
    skill_id: str,
    history: Iterable[AttemptRecord],
    config: ReadinessConfig,
) -> list[AttemptRecord]:
    excluded = set(config.excluded_sources)
    return [
        attempt
        for attempt in history
        if skill_id in attempt.skills_required and not attempt.is_retry and attempt.source not in excluded
    ]


def _most_recent_first(attempts: Sequence[AttemptRecord]) -> list[AttemptRecord]:
    """Newest first by timestamp; caller order stands in when any attempt is undated."""
    if attempts and all(attempt.timestamp is not None for attempt in attempts):
        return sorted(attempts, key=lambda attempt: attempt.timestamp, reverse=True)
    return list(reversed(attempts))


def _session_key(attempt: AttemptRecord) -> str | None:
    if attempt.session_id is not None:
        return attempt.session_id
    if attempt.timestamp is not None:
        return attempt.timestamp.date().isoformat()
    return None


# ── Dimensions ───────────────────────────────────────────────────────────────


def _mastery(bkt_result: SkillBktResult | None, config: ReadinessConfig) -> MasteryDimension:
    p_known = bkt_result.p_known if bkt_result is not None else 0.0
    confidence = bkt_result.confidence if bkt_result is not None else 0.0
    return MasteryDimension(
        met=p_known >= config.p_known_threshold and confidence >= config.confidence_threshold,
        p_known=p_known,
        confidence=confidence,
    )


def _volume(attempts: Sequence[AttemptRecord], config: ReadinessConfig) -> VolumeDimension:
    sessions = {key for key in map(_session_key, attempts) if key is not None}
    return VolumeDimension(
        met=len(attempts) >= config.min_opportunities and len(sessions) >= config.min_sessions,
        opportunities=len(attempts),
        session_count=len(sessions),
    )


def _speed(recent: Sequence[AttemptRecord], config: ReadinessConfig) -> SpeedDimension:
    window = recent[: config.speed_window_size]
    paces = [attempt.response_time_ms / (attempt.term_count * 1000) for attempt in window if attempt.term_count > 0]
    median = float(np.median(paces)) if paces else None
    return SpeedDimension(
        met=median is not None and median <= config.max_median_seconds_per_term,
        median_seconds_per_term=median,
    )


def _consistency(recent: Sequence[AttemptRecord], config: ReadinessConfig) -> ConsistencyDimension:
    accuracy_window = recent[: config.accuracy_window_size]
    accuracy = (
        sum(attempt.is_correct for attempt in accuracy_window) / len(accuracy_window) if accuracy_window else 0.0
    )
    streak_window = recent[: config.last_n_all_correct]
    all_correct = len(streak_window) >= config.last_n_all_correct and all(a.is_correct for a in streak_window)
    help_window = recent[: config.no_help_in_last_n]
    help_count = sum(attempt.had_help for attempt in help_window)
    help_free = len(help_window) >= config.no_help_in_last_n and help_count == 0
    accuracy_met = len(accuracy_window) >= config.accuracy_window_size and accuracy >= config.min_accuracy
    return ConsistencyDimension(
        met=accuracy_met and all_correct and help_free,
        recent_accuracy=accuracy,
        last_n_all_correct=all_correct,
        recent_help_count=help_count,
    )


# ── Assessment ───────────────────────────────────────────────────────────────


def assess_skill_readiness(
    skill_id: str,
    history: Iterable[AttemptRecord],
    bkt_result: SkillBktResult | None,
    config: ReadinessConfig | None = None,
) -> SkillReadinessResult:
    config = config or READINESS_DEFAULTS
    attempts = _relevant_attempts(skill_id, history, config)
    recent = _most_recent_first(attempts)
    dimensions = SkillReadinessDimensions(
        mastery=_mastery(bkt_result, config),
        volume=_volume(attempts, config),
        speed=_speed(recent, config),
        consistency=_consistency(recent, config),
    )
    is_solid = not attempts or (
        dimensions.mastery.met and dimensions.volume.met and dimensions.speed.met and dimensions.consistency.met
    )
    logger.debug("readiness.assessed", skill_id=skill_id, attempts=len(attempts), is_solid=is_solid)
    return SkillReadinessResult(skill_id=skill_id, is_solid=is_solid, dimensions=dimensions)


def assess_all_skills_readiness(
    history: Sequence[AttemptRecord],
    bkt_results: Iterable[SkillBktResult] | Mapping[str, SkillBktResult],
    practicing_skill_ids: Iterable[str],
    config: ReadinessConfig | None = None,
) -> dict[str, SkillReadinessResult]:
    """Readiness for each rotation skill, keyed by skill id in rotation order."""
    by_id = (
        dict(bkt_results)
        if isinstance(bkt_results, Mapping)
        else {result.skill_id: result for result in bkt_results}
    )
    return {
        skill_id: assess_skill_readiness(skill_id, history, by_id.get(skill_id), config)
        for skill_id in dict.fromkeys(practicing_skill_ids)
    }


__all__ = [
    "ConsistencyDimension",
    "MasteryDimension",
    "READINESS_DEFAULTS",
    "SkillReadinessDimensions",
    "SkillReadinessResult",
    "SpeedDimension",
    "VolumeDimension",
    "assess_all_skills_readiness",
    "assess_skill_readiness",
]
