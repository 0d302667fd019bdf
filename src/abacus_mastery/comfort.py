"""Comfort level: how ready the learner is for longer problems right now."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from .config import ComfortConfig
from .logging import get_logger
from .models import ProblemLengthPreference, SkillBktResult
from .session_mode import SessionMode

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ComfortFactors:
    avg_mastery: float | None
    session_mode: str
    mode_multiplier: float
    skill_count_bonus: float


@dataclass(frozen=True, slots=True)
class ComfortLevelResult:
    """Comfort after any length preference; `raw_comfort_level` is the value before it."""

    comfort_level: float
    factors: ComfortFactors
    raw_comfort_level: float
    comfort_adjustment: float = 0.0


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def compute_skill_count_bonus(skill_count: int, config: ComfortConfig | None = None) -> float:
    config = config or ComfortConfig()
    return min(config.max_skill_count_bonus, math.log(max(0, skill_count) + 1) / config.skill_count_bonus_divisor)


def compute_weighted_mastery(
    bkt_results: Mapping[str, SkillBktResult] | None,
    practicing_skill_ids: Iterable[str],
) -> float | None:
    """Confidence-weighted mean p_known over rotation skills; None when nothing carries weight."""
    if not bkt_results:
        return None
    weighted_sum = 0.0
    total_confidence = 0.0
    for skill_id in dict.fromkeys(practicing_skill_ids):
        result = bkt_results.get(skill_id)
        if result is None:
            continue
        weighted_sum += result.p_known * result.confidence
        total_confidence += result.confidence
    if total_confidence <= 0:
        return None
    return weighted_sum / total_confidence


def compute_comfort_level(
    bkt_results: Mapping[str, SkillBktResult] | None,
    practicing_skill_ids: Iterable[str],
    session_mode: SessionMode,
    *,
    config: ComfortConfig | None = None,
) -> ComfortLevelResult:
    """comfort = avg_mastery * mode_multiplier + skill_count_bonus, clamped to [0, 1].

    With no weighted mastery data the comfort is the conservative default,
    untouched by mode or breadth.
    """
    config = config or ComfortConfig()
    rotation = list(dict.fromkeys(practicing_skill_ids))
    mode_multiplier = config.mode_multipliers[session_mode.type]
    bonus = compute_skill_count_bonus(len(rotation), config)
    avg_mastery = compute_weighted_mastery(bkt_results, rotation)

    if avg_mastery is None:
        comfort = config.default_comfort
        logger.debug("comfort.default", rotation=len(rotation), mode=session_mode.type)
    else:
        comfort = _clamp(avg_mastery * mode_multiplier + bonus)

    factors = ComfortFactors(
        avg_mastery=avg_mastery,
        session_mode=session_mode.type,
        mode_multiplier=mode_multiplier,
        skill_count_bonus=bonus,
    )
    return ComfortLevelResult(comfort_level=comfort, factors=factors, raw_comfort_level=comfort)


def adjust_comfort_level(
    result: ComfortLevelResult,
    preference: ProblemLengthPreference | None,
    config: ComfortConfig | None = None,
) -> ComfortLevelResult:
    """Shift comfort by the learner's problem-length preference, keeping the raw value."""
    config = config or ComfortConfig()
    adjustment = config.length_adjustments.get(preference or "recommended", 0.0)
    return replace(
        result,
        comfort_level=_clamp(result.raw_comfort_level + adjustment),
        comfort_adjustment=adjustment,
    )


__all__ = [
    "ComfortFactors",
    "ComfortLevelResult",
    "adjust_comfort_level",
    "compute_comfort_level",
    "compute_skill_count_bonus",
    "compute_weighted_mastery",
]
