"""Mastery classification: belief + confidence + recency -> discrete bucket."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from .config import ClassificationConfig
from .models import BaseClassification, MasteryClassification, SkillBktResult

BKT_THRESHOLDS = ClassificationConfig()

WARNING_NOT_RECENT = "Not practiced recently"
WARNING_STALE = "Stale skill"


def classify_skill(
    p_known: float,
    confidence: float,
    thresholds: ClassificationConfig = BKT_THRESHOLDS,
) -> BaseClassification | None:
    """None means "not enough evidence yet", which callers must keep distinct from weak."""
    if confidence < thresholds.confidence_threshold:
        return None
    if p_known >= thresholds.strong_threshold:
        return "strong"
    if p_known >= thresholds.developing_threshold:
        return "developing"
    return "weak"


def get_staleness_warning(
    days_since_last_practice: float | None,
    thresholds: ClassificationConfig = BKT_THRESHOLDS,
) -> str | None:
    if days_since_last_practice is None:
        return None
    if days_since_last_practice < thresholds.warning_days:
        return None
    if days_since_last_practice < thresholds.stale_days:
        return WARNING_NOT_RECENT
    return WARNING_STALE


def classify_mastery(
    p_known: float,
    confidence: float,
    days_since_last_practice: float | None,
    thresholds: ClassificationConfig = BKT_THRESHOLDS,
) -> MasteryClassification:
    """Decision table used by the engine.

    Only the hard stale window demotes a classification; the softer
    "not practiced recently" window is surfaced as a warning alone.
    """
    base = classify_skill(p_known, confidence, thresholds)
    if base is None:
        return "unassessed"
    if days_since_last_practice is not None and days_since_last_practice >= thresholds.stale_days:
        return "stale"
    return base


def get_extended_classification(
    classification: BaseClassification | None,
    staleness_warning: str | None,
) -> MasteryClassification:
    """Display overlay: any staleness warning shows an assessed skill as stale."""
    if classification is None:
        return "unassessed"
    if staleness_warning is not None:
        return "stale"
    return classification


def is_bkt_confident(confidence: float, thresholds: ClassificationConfig = BKT_THRESHOLDS) -> bool:
    return confidence >= thresholds.confidence_threshold


def should_target_skill(
    p_known: float,
    confidence: float,
    thresholds: ClassificationConfig = BKT_THRESHOLDS,
) -> bool:
    """True exactly when the skill classifies as weak."""
    return classify_skill(p_known, confidence, thresholds) == "weak"


def calculate_bkt_multiplier(p_known: float, thresholds: ClassificationConfig = BKT_THRESHOLDS) -> float:
    """Problem-selection weight: 1.0 for a mastered skill up to 4.0 for an unknown one.

    Uses p_known squared so the top of the belief range still separates
    (0.8 -> 2.08, 0.9 -> 1.57, 0.95 -> 1.29 with the default band).
    """
    low, high = thresholds.min_multiplier, thresholds.max_multiplier
    if not math.isfinite(p_known):
        return high
    clamped = max(0.0, min(1.0, p_known))
    multiplier = high - clamped * clamped * (high - low)
    return max(low, min(high, multiplier))


@dataclass(slots=True)
class SkillDistribution:
    strong: int = 0
    stale: int = 0
    developing: int = 0
    weak: int = 0
    unassessed: int = 0
    total: int = 0

    def count(self, classification: MasteryClassification) -> int:
        return getattr(self, classification)


def compute_skill_distribution(
    results: Iterable[SkillBktResult] | Mapping[str, SkillBktResult],
    practicing_skill_ids: Iterable[str],
) -> SkillDistribution:
    """Count a rotation's skills per classification; skills without evidence are unassessed."""
    by_id = dict(results) if isinstance(results, Mapping) else {r.skill_id: r for r in results}
    distribution = SkillDistribution()
    for skill_id in dict.fromkeys(practicing_skill_ids):
        distribution.total += 1
        result = by_id.get(skill_id)
        if result is None or result.opportunities == 0:
            distribution.unassessed += 1
            continue
        bucket = result.mastery_classification
        setattr(distribution, bucket, getattr(distribution, bucket) + 1)
    return distribution


__all__ = [
    "BKT_THRESHOLDS",
    "SkillDistribution",
    "WARNING_NOT_RECENT",
    "WARNING_STALE",
    "calculate_bkt_multiplier",
    "classify_mastery",
    "classify_skill",
    "compute_skill_distribution",
    "get_extended_classification",
    "get_staleness_warning",
    "is_bkt_confident",
    "should_target_skill",
]
