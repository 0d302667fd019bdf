"""Session sizing: timing profile + term-count range -> problems and minutes per part."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from .config import TimingConfig
from .models import PartType, TermCountRange, TimingProfile
from .timing import TIME_ESTIMATION_DEFAULTS, estimate_problem_time_seconds


@dataclass(frozen=True, slots=True)
class PartProjection:
    part_type: PartType
    problem_count: int
    duration_minutes: float
    terms_per_problem: int
    seconds_per_term: float
    seconds_per_problem: float


def representative_term_count(term_range: TermCountRange) -> int:
    """Midpoint of the range, rounded half up."""
    return math.floor((term_range.min + term_range.max) / 2 + 0.5)


def _pace(profile: TimingProfile, config: TimingConfig) -> float:
    """Profile pace held inside the configured band so a part always takes time."""
    return min(max(profile.seconds_per_term, config.min_seconds_per_term), config.max_seconds_per_term)


def _seconds_per_problem(
    profile: TimingProfile,
    terms: int,
    part_type: PartType,
    config: TimingConfig,
) -> float:
    return estimate_problem_time_seconds(max(1, terms), _pace(profile, config), part_type, config)


def project_problem_count(
    profile: TimingProfile,
    term_range: TermCountRange,
    part_type: PartType,
    duration_minutes: float,
    config: TimingConfig | None = None,
) -> PartProjection:
    """How many problems of typical length fit in the duration budget."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = representative_term_count(term_range)
    per_problem = _seconds_per_problem(profile, terms, part_type, config)
    budget_seconds = max(0.0, duration_minutes) * 60
    count = max(config.min_problems_per_part, math.floor(budget_seconds / per_problem))
    return PartProjection(
        part_type=part_type,
        problem_count=count,
        duration_minutes=count * per_problem / 60,
        terms_per_problem=terms,
        seconds_per_term=_pace(profile, config),
        seconds_per_problem=per_problem,
    )


def project_duration(
    profile: TimingProfile,
    term_range: TermCountRange,
    part_type: PartType,
    problem_count: int,
    config: TimingConfig | None = None,
) -> PartProjection:
    """How long a part of `problem_count` problems will take."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = representative_term_count(term_range)
    per_problem = _seconds_per_problem(profile, terms, part_type, config)
    count = max(config.min_problems_per_part, problem_count)
    return PartProjection(
        part_type=part_type,
        problem_count=count,
        duration_minutes=count * per_problem / 60,
        terms_per_problem=terms,
        seconds_per_term=_pace(profile, config),
        seconds_per_problem=per_problem,
    )


def project_session(
    profile: TimingProfile,
    term_ranges: Mapping[PartType, TermCountRange],
    part_minutes: Mapping[PartType, float],
    config: TimingConfig | None = None,
) -> dict[PartType, PartProjection]:
    """One projection per requested part; parts without a term range are skipped."""
    return {
        part_type: project_problem_count(profile, term_ranges[part_type], part_type, minutes, config)
        for part_type, minutes in part_minutes.items()
        if part_type in term_ranges
    }


__all__ = [
    "PartProjection",
    "project_duration",
    "project_problem_count",
    "project_session",
    "representative_term_count",
]
