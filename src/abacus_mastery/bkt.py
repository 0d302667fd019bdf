"""Bayesian Knowledge Tracing (BKT) replay with blame-weighted conjunctive updates."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from .classification import classify_mastery, classify_skill, get_staleness_warning
from .config import BktConfig, ClassificationConfig
from .logging import get_logger
from .models import AttemptRecord, BktParams, BlameDistribution, SkillBktResult
from .priors import get_default_params, is_known_family

logger = get_logger(__name__)

SECONDS_PER_DAY = 86_400.0


# ── Single-skill updates ─────────────────────────────────────────────────────


def bkt_update(p_known: float, is_correct: bool, params: BktParams) -> float:
    """Bayesian posterior for one observation, no learning transition.

    Correct: P(L|obs) = P(L)*(1-P(S)) / [P(L)*(1-P(S)) + (1-P(L))*P(G)]
    Wrong:   P(L|obs) = P(L)*P(S) / [P(L)*P(S) + (1-P(L))*(1-P(G))]
    """
    if is_correct:
        numerator = p_known * (1 - params.p_slip)
        denominator = numerator + (1 - p_known) * params.p_guess
    else:
        numerator = p_known * params.p_slip
        denominator = numerator + (1 - p_known) * (1 - params.p_guess)

    if denominator <= 0:
        return max(0.0, min(1.0, p_known))
    return max(0.0, min(1.0, numerator / denominator))


def apply_learning(p_known: float, p_learn: float) -> float:
    """P(L_new) = P(L|obs) + (1 - P(L|obs)) * P(T)"""
    return max(0.0, min(1.0, p_known + (1 - p_known) * p_learn))


def update_on_correct(p_known: float, params: BktParams) -> float:
    return apply_learning(bkt_update(p_known, True, params), params.p_learn)


def update_on_incorrect(p_known: float, params: BktParams) -> float:
    # Wrong answers never advance the learning transition.
    return bkt_update(p_known, False, params)


# ── Conjunctive updates ──────────────────────────────────────────────────────


def compute_blame_weights(p_known_by_skill: Mapping[str, float]) -> dict[str, float]:
    """Split one wrong answer across its skills in proportion to (1 - p_known).

    Weights sum to 1. When every skill is already at p_known = 1 there is
    nothing to tell them apart, so the blame is split evenly.
    """
    if not p_known_by_skill:
        return {}
    gaps = {skill_id: max(0.0, 1.0 - p) for skill_id, p in p_known_by_skill.items()}
    total = sum(gaps.values())
    if total <= 0:
        share = 1.0 / len(gaps)
        return {skill_id: share for skill_id in gaps}
    return {skill_id: gap / total for skill_id, gap in gaps.items()}


def update_on_incorrect_conjunctive(
    p_known_by_skill: Mapping[str, float],
    params_by_skill: Mapping[str, BktParams],
) -> BlameDistribution:
    """Move each skill from its prior toward its full incorrect posterior by its blame weight."""
    weights = compute_blame_weights(p_known_by_skill)
    updated: dict[str, float] = {}
    for skill_id, prior in p_known_by_skill.items():
        params = params_by_skill.get(skill_id) or get_default_params(skill_id)
        posterior = update_on_incorrect(prior, params)
        updated[skill_id] = max(0.0, min(1.0, prior + weights[skill_id] * (posterior - prior)))
    return BlameDistribution(
        skill_ids=tuple(p_known_by_skill),
        blame_weights=weights,
        prior_p_known=dict(p_known_by_skill),
        updated_p_known=updated,
    )


def update_on_correct_conjunctive(
    p_known_by_skill: Mapping[str, float],
    params_by_skill: Mapping[str, BktParams],
) -> dict[str, float]:
    """Credit is not diluted: every skill on a correct answer gets the full update."""
    return {
        skill_id: update_on_correct(prior, params_by_skill.get(skill_id) or get_default_params(skill_id))
        for skill_id, prior in p_known_by_skill.items()
    }


# ── Confidence ───────────────────────────────────────────────────────────────


def compute_confidence(opportunities: int, scale: float = BktConfig().confidence_scale) -> float:
    """Saturating in the number of observations; says nothing about direction."""
    if opportunities <= 0:
        return 0.0
    return 1.0 - math.exp(-opportunities / scale)


def compute_uncertainty_range(p_known: float, confidence: float) -> tuple[float, float]:
    half_width = (1.0 - max(0.0, min(1.0, confidence))) / 2
    return max(0.0, p_known - half_width), min(1.0, p_known + half_width)


# ── Replay ───────────────────────────────────────────────────────────────────


def simulate_bkt_sequence(
    skill_id: str,
    sequence: Iterable[bool],
    params: BktParams | None = None,
) -> float:
    """Replay a single skill's observations from its prior; returns the final p_known."""
    params = params or get_default_params(skill_id)
    p_known = params.p_init
    for is_correct in sequence:
        p_known = update_on_correct(p_known, params) if is_correct else update_on_incorrect(p_known, params)
    return p_known


@dataclass(slots=True)
class _SkillState:
    params: BktParams
    p_known: float
    opportunities: int = 0
    success_count: int = 0
    last_practiced_at: datetime | None = None


@dataclass(slots=True)
class BktComputeResult:
    """Per-skill beliefs in first-seen order, plus the blame split of each wrong multi-skill attempt."""

    skills: list[SkillBktResult] = field(default_factory=list)
    blame_distributions: list[BlameDistribution] = field(default_factory=list)

    def by_skill(self) -> dict[str, SkillBktResult]:
        return {result.skill_id: result for result in self.skills}

    def get(self, skill_id: str) -> SkillBktResult | None:
        for result in self.skills:
            if result.skill_id == skill_id:
                return result
        return None


def _days_between(earlier: datetime | None, now: datetime | None) -> float | None:
    if earlier is None or now is None:
        return None
    return max(0.0, (now - earlier).total_seconds() / SECONDS_PER_DAY)


def compute_bkt_from_history(
    history: Sequence[AttemptRecord],
    *,
    now: datetime | None = None,
    bkt_config: BktConfig | None = None,
    thresholds: ClassificationConfig | None = None,
    params_by_skill: Mapping[str, BktParams] | None = None,
) -> BktComputeResult:
    """Replay a learner's attempts in the order given and classify every skill seen.

    Attempts without skills carry no evidence and are skipped. A skill listed
    twice in one attempt counts once. With `now` unset, recency is unknown and
    no staleness is reported.
    """
    bkt_config = bkt_config or BktConfig()
    thresholds = thresholds or ClassificationConfig()
    overrides = params_by_skill or {}

    states: dict[str, _SkillState] = {}
    blame_log: list[BlameDistribution] = []

    for attempt in history:
        skill_ids = list(dict.fromkeys(attempt.skills_required))
        if not skill_ids:
            continue

        for skill_id in skill_ids:
            if skill_id not in states:
                params = overrides.get(skill_id) or get_default_params(skill_id)
                if skill_id not in overrides and not is_known_family(skill_id):
                    logger.debug("bkt.default_prior", skill_id=skill_id)
                states[skill_id] = _SkillState(params=params, p_known=params.p_init)

        current = {skill_id: states[skill_id].p_known for skill_id in skill_ids}
        params_map = {skill_id: states[skill_id].params for skill_id in skill_ids}
        if attempt.is_correct:
            updated = update_on_correct_conjunctive(current, params_map)
        elif len(skill_ids) == 1:
            only = skill_ids[0]
            updated = {only: update_on_incorrect(current[only], params_map[only])}
        else:
            distribution = update_on_incorrect_conjunctive(current, params_map)
            blame_log.append(distribution)
            updated = distribution.updated_p_known

        for skill_id in skill_ids:
            state = states[skill_id]
            state.p_known = updated[skill_id]
            state.opportunities += 1
            if attempt.is_correct:
                state.success_count += 1
            if attempt.timestamp is not None and (
                state.last_practiced_at is None or attempt.timestamp > state.last_practiced_at
            ):
                state.last_practiced_at = attempt.timestamp

    results: list[SkillBktResult] = []
    for skill_id, state in states.items():
        confidence = compute_confidence(state.opportunities, bkt_config.confidence_scale)
        days = _days_between(state.last_practiced_at, now)
        results.append(
            SkillBktResult(
                skill_id=skill_id,
                p_known=state.p_known,
                confidence=confidence,
                uncertainty_range=compute_uncertainty_range(state.p_known, confidence),
                opportunities=state.opportunities,
                success_count=state.success_count,
                last_practiced_at=state.last_practiced_at,
                days_since_last_practice=days,
                classification=classify_skill(state.p_known, confidence, thresholds),
                mastery_classification=classify_mastery(state.p_known, confidence, days, thresholds),
                staleness_warning=get_staleness_warning(days, thresholds),
                params=state.params,
            )
        )

    logger.debug(
        "bkt.computed",
        attempts=len(history),
        skills=len(results),
        blamed_attempts=len(blame_log),
    )
    return BktComputeResult(skills=results, blame_distributions=blame_log)


__all__ = [
    "BktComputeResult",
    "apply_learning",
    "bkt_update",
    "compute_bkt_from_history",
    "compute_blame_weights",
    "compute_confidence",
    "compute_uncertainty_range",
    "simulate_bkt_sequence",
    "update_on_correct",
    "update_on_correct_conjunctive",
    "update_on_incorrect",
    "update_on_incorrect_conjunctive",
]
