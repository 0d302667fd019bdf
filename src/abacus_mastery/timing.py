"""Timing profile: empirical seconds-per-term pacing and session-size estimates."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence, Sized

import numpy as np

from .config import TimingConfig
from .logging import get_logger
from .models import AttemptRecord, PartType, TimingProfile
from .priors import get_skill_family

logger = get_logger(__name__)

TIME_ESTIMATION_DEFAULTS = TimingConfig()


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _term_count(problem: int | Sized) -> int:
    """Accept either a term count or the problem's list of terms."""
    if isinstance(problem, int):
        return max(0, problem)
    return len(problem)


def _part_multiplier(part_type: PartType, config: TimingConfig) -> float:
    return config.part_type_multipliers.get(part_type, 1.0)


# ── Statistics ───────────────────────────────────────────────────────────────


def mean_excluding_outliers(
    samples: Sequence[float],
    *,
    exclude_outliers: bool = True,
    config: TimingConfig | None = None,
) -> float:
    """Mean of the samples, dropping points far from the median once the sample is large.

    Spread is measured around the median (1.4826 * MAD, or 1.2533 * mean absolute
    deviation when more than half the points coincide) so a single extreme value
    cannot inflate the cutoff that is meant to catch it.
    """
    config = config or TIME_ESTIMATION_DEFAULTS
    values = np.asarray(samples, dtype=float)
    if exclude_outliers and values.size >= config.outlier_min_results:
        median = np.median(values)
        deviations = np.abs(values - median)
        spread = 1.4826 * np.median(deviations)
        if spread == 0:
            spread = 1.2533 * deviations.mean()
        if spread > 0:
            kept = values[deviations <= config.outlier_std_devs * spread]
            if kept.size < values.size:
                logger.debug("timing.outliers_excluded", dropped=int(values.size - kept.size))
            values = kept
    return float(values.mean())


# ── Seconds per term ─────────────────────────────────────────────────────────


def calculate_seconds_per_term(
    results: Iterable[AttemptRecord],
    *,
    min_results: int | None = None,
    exclude_outliers: bool = True,
    config: TimingConfig | None = None,
) -> float | None:
    """Mean seconds per term over timed attempts, clamped; None below the minimum sample."""
    config = config or TIME_ESTIMATION_DEFAULTS
    required = config.min_results if min_results is None else min_results
    samples = [
        r.response_time_ms / 1000 / r.term_count
        for r in results
        if r.response_time_ms > 0 and r.term_count > 0
    ]
    if len(samples) < required or not samples:
        return None
    spt = mean_excluding_outliers(samples, exclude_outliers=exclude_outliers, config=config)
    return max(config.min_seconds_per_term, min(config.max_seconds_per_term, spt))


def calculate_seconds_per_term_from_sessions(
    sessions: Iterable[Iterable[AttemptRecord]],
    *,
    min_results: int | None = None,
    exclude_outliers: bool = True,
    config: TimingConfig | None = None,
) -> float | None:
    """Pool the results of several sessions before estimating."""
    pooled = [result for session in sessions for result in session]
    return calculate_seconds_per_term(
        pooled,
        min_results=min_results,
        exclude_outliers=exclude_outliers,
        config=config,
    )


# ── Per-problem and per-session estimates ────────────────────────────────────


def estimate_problem_time_ms(
    problem: int | Sized,
    seconds_per_term: float,
    part_type: PartType = "abacus",
    config: TimingConfig | None = None,
) -> float:
    """(terms * spt + overhead) * part multiplier, in milliseconds."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = _term_count(problem)
    seconds = terms * max(0.0, seconds_per_term) + config.problem_overhead_seconds
    return seconds * _part_multiplier(part_type, config) * 1000


def estimate_problem_time_seconds(
    problem: int | Sized,
    seconds_per_term: float,
    part_type: PartType = "abacus",
    config: TimingConfig | None = None,
) -> float:
    return estimate_problem_time_ms(problem, seconds_per_term, part_type, config) / 1000


def estimate_session_problem_count(
    duration_minutes: float,
    terms_per_problem: int | None = None,
    seconds_per_term: float | None = None,
    part_type: PartType = "abacus",
    config: TimingConfig | None = None,
) -> int:
    """How many problems fit in the duration, never fewer than the per-part minimum."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = config.default_terms_per_problem if terms_per_problem is None else max(0, terms_per_problem)
    spt = config.seconds_per_term if seconds_per_term is None else seconds_per_term
    seconds_per_problem = estimate_problem_time_seconds(terms, spt, part_type, config)
    if seconds_per_problem <= 0:
        return config.min_problems_per_part
    available = max(0.0, duration_minutes) * 60
    return max(config.min_problems_per_part, math.floor(available / seconds_per_problem))


def estimate_session_duration_minutes(
    problem_count: int,
    terms_per_problem: int | None = None,
    seconds_per_term: float | None = None,
    part_type: PartType = "abacus",
    config: TimingConfig | None = None,
) -> int:
    """Inverse of `estimate_session_problem_count`, rounded to whole minutes."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = config.default_terms_per_problem if terms_per_problem is None else max(0, terms_per_problem)
    spt = config.seconds_per_term if seconds_per_term is None else seconds_per_term
    total_seconds = max(0, problem_count) * estimate_problem_time_seconds(terms, spt, part_type, config)
    return _round_half_up(total_seconds / 60)


def convert_spt_to_seconds_per_problem(
    seconds_per_term: float,
    terms_per_problem: int | None = None,
    config: TimingConfig | None = None,
) -> float:
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = config.default_terms_per_problem if terms_per_problem is None else terms_per_problem
    return seconds_per_term * terms + config.problem_overhead_seconds


def convert_seconds_per_problem_to_spt(
    seconds_per_problem: float,
    terms_per_problem: int | None = None,
    config: TimingConfig | None = None,
) -> float:
    """Never negative: a per-problem time below the fixed overhead maps to 0."""
    config = config or TIME_ESTIMATION_DEFAULTS
    terms = config.default_terms_per_problem if terms_per_problem is None else terms_per_problem
    if terms <= 0:
        return 0.0
    return max(0.0, seconds_per_problem - config.problem_overhead_seconds) / terms


# ── Complexity-weighted pacing ───────────────────────────────────────────────


def skill_complexity_weight(skill_id: str, config: TimingConfig | None = None) -> float:
    """Exact match, then `operation.technique`, then the skill family, then 1.0."""
    config = config or TIME_ESTIMATION_DEFAULTS
    weights = config.skill_complexity_weights
    if skill_id in weights:
        return weights[skill_id]
    parts = skill_id.split(".")
    if len(parts) > 1:
        partial = f"{parts[0]}.{parts[-1]}"
        if partial in weights:
            return weights[partial]
    family = get_skill_family(skill_id)
    if family in config.family_complexity_weights:
        return config.family_complexity_weights[family]
    logger.debug("timing.default_complexity", skill_id=skill_id)
    return 1.0


def calculate_problem_complexity_units(
    skills_required: Sequence[str],
    config: TimingConfig | None = None,
) -> float:
    if not skills_required:
        return 1.0
    return sum(skill_complexity_weight(skill_id, config) for skill_id in skills_required)


def calculate_seconds_per_complexity_unit(
    results: Iterable[AttemptRecord],
    *,
    min_results: int | None = None,
    exclude_outliers: bool = True,
    config: TimingConfig | None = None,
) -> float | None:
    config = config or TIME_ESTIMATION_DEFAULTS
    required = config.complexity_min_results if min_results is None else min_results
    samples = [
        r.response_time_ms / 1000 / calculate_problem_complexity_units(r.skills_required, config)
        for r in results
        if r.response_time_ms > 0 and r.skills_required
    ]
    if len(samples) < required or not samples:
        return None
    spcu = mean_excluding_outliers(samples, exclude_outliers=exclude_outliers, config=config)
    return max(config.min_seconds_per_complexity_unit, min(config.max_seconds_per_complexity_unit, spcu))


# ── Profile ──────────────────────────────────────────────────────────────────


def get_time_estimation_profile(
    results: Sequence[AttemptRecord],
    config: TimingConfig | None = None,
) -> TimingProfile:
    """Flagged default profile for an empty history, otherwise the measured one.

    A non-empty history too small to estimate from keeps the default pace and
    stays flagged as default, but still reports its size.
    """
    config = config or TIME_ESTIMATION_DEFAULTS
    if not results:
        return TimingProfile(
            seconds_per_term=config.seconds_per_term,
            seconds_per_problem=convert_spt_to_seconds_per_problem(config.seconds_per_term, config=config),
            seconds_per_complexity_unit=None,
            sample_size=0,
            is_default=True,
        )

    spt = calculate_seconds_per_term(results, config=config)
    spcu = calculate_seconds_per_complexity_unit(results, config=config)
    effective_spt = spt if spt is not None else config.seconds_per_term
    profile = TimingProfile(
        seconds_per_term=effective_spt,
        seconds_per_problem=convert_spt_to_seconds_per_problem(effective_spt, config=config),
        seconds_per_complexity_unit=spcu,
        sample_size=len(results),
        is_default=spt is None,
    )
    logger.debug(
        "timing.profile",
        sample_size=profile.sample_size,
        seconds_per_term=round(profile.seconds_per_term, 3),
        is_default=profile.is_default,
    )
    return profile


__all__ = [
    "TIME_ESTIMATION_DEFAULTS",
    "calculate_problem_complexity_units",
    "calculate_seconds_per_complexity_unit",
    "calculate_seconds_per_term",
    "calculate_seconds_per_term_from_sessions",
    "convert_seconds_per_problem_to_spt",
    "convert_spt_to_seconds_per_problem",
    "estimate_problem_time_ms",
    "estimate_problem_time_seconds",
    "estimate_session_duration_minutes",
    "estimate_session_problem_count",
    "get_time_estimation_profile",
    "mean_excluding_outliers",
    "skill_complexity_weight",
]
