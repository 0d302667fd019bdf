from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

PartType = Literal["abacus", "visualization", "linear"]
BaseClassification = Literal["weak", "developing", "strong"]
MasteryClassification = Literal["weak", "developing", "strong", "stale", "unassessed"]
ProblemLengthPreference = Literal["shorter", "recommended", "longer"]

MASTERY_CLASSIFICATIONS: tuple[MasteryClassification, ...] = (
    "weak",
    "developing",
    "strong",
    "stale",
    "unassessed",
)

MIN_TERM_COUNT = 2


@dataclass(frozen=True, slots=True)
class BktParams:
    """Knowledge-tracing parameters for one skill family."""

    p_init: float
    p_learn: float
    p_guess: float
    p_slip: float


@dataclass(slots=True)
class AttemptRecord:
    """One historical problem attempt."""

    skills_required: list[str]
    is_correct: bool
    timestamp: datetime | None = None
    response_time_ms: float = 0.0
    term_count: int = 0
    part_type: PartType | None = None
    session_id: str | None = None
    had_help: bool = False
    is_retry: bool = False
    # "practice", or "recency-refresh" for attempts injected to refresh recency
    source: str = "practice"


@dataclass(slots=True)
class SkillBktResult:
    skill_id: str
    p_known: float
    confidence: float
    uncertainty_range: tuple[float, float]
    opportunities: int
    success_count: int
    last_practiced_at: datetime | None
    days_since_last_practice: float | None
    classification: BaseClassification | None
    mastery_classification: MasteryClassification
    staleness_warning: str | None
    params: BktParams


@dataclass(frozen=True, slots=True)
class BlameDistribution:
    """How one incorrect multi-skill attempt was apportioned across its skills."""

    skill_ids: tuple[str, ...]
    blame_weights: dict[str, float]
    prior_p_known: dict[str, float]
    updated_p_known: dict[str, float]


@dataclass(frozen=True, slots=True)
class TermCountRange:
    min: int
    max: int


@dataclass(frozen=True, slots=True)
class TimingProfile:
    """Empirical pacing model for one learner."""

    seconds_per_term: float
    seconds_per_problem: float
    seconds_per_complexity_unit: float | None
    sample_size: int
    is_default: bool


@dataclass(slots=True)
class Phase:
    """A curriculum step that introduces one primary skill."""

    id: str
    primary_skill_id: str
    name: str
    order: int
    description: str = ""
    level_id: int = 1
    prerequisites: list[str] = field(default_factory=list)


__all__ = [
    "AttemptRecord",
    "BaseClassification",
    "BktParams",
    "BlameDistribution",
    "MASTERY_CLASSIFICATIONS",
    "MIN_TERM_COUNT",
    "MasteryClassification",
    "PartType",
    "Phase",
    "ProblemLengthPreference",
    "SkillBktResult",
    "TermCountRange",
    "TimingProfile",
]
