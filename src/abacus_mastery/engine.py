"""One-call façade: attempt history + learner context -> mastery snapshot and sizing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence

from .bkt import BktComputeResult, compute_bkt_from_history
from .classification import SkillDistribution, compute_skill_distribution
from .comfort import ComfortLevelResult, adjust_comfort_level, compute_comfort_level
from .config import PART_TYPES, EngineSettings, load_settings
from .curriculum import load_phases, validate_phase_graph
from .logging import configure_logging, get_logger
from .models import (
    AttemptRecord,
    PartType,
    Phase,
    ProblemLengthPreference,
    SkillBktResult,
    TermCountRange,
    TimingProfile,
)
from .readiness import SkillReadinessResult, assess_all_skills_readiness
from .session_mode import SessionMode, select_session_mode
from .sizing import PartProjection, project_session
from .term_count import TermCountExplanation, explain_term_count
from .timing import get_time_estimation_profile

logger = get_logger(__name__)


@dataclass(slots=True)
class LearnerContext:
    """Learner-scoped inputs that are not part of the attempt history."""

    practicing_skill_ids: list[str]
    phases: dict[str, Phase] | None = None
    tutorials_completed: set[str] = field(default_factory=set)
    term_count_override: TermCountRange | None = None
    defer_progression: bool = False
    problem_length_preference: ProblemLengthPreference | None = None
    display_names: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class MasterySnapshot:
    skills: list[SkillBktResult]
    distribution: SkillDistribution
    session_mode: SessionMode
    comfort: ComfortLevelResult
    term_counts: dict[PartType, TermCountExplanation]
    readiness: dict[str, SkillReadinessResult] = field(default_factory=dict)

    def skill(self, skill_id: str) -> SkillBktResult | None:
        for result in self.skills:
            if result.skill_id == skill_id:
                return result
        return None

    def term_range(self, part_type: PartType) -> TermCountRange:
        return self.term_counts[part_type].final_range


class MasteryEngine:
    """Recomputes everything from the supplied history on every call; holds settings only."""

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()
        self._default_phases: dict[str, Phase] | None = None

    @classmethod
    def from_config(cls, config_path: str | Path | None = None) -> "MasteryEngine":
        """Load settings (file + env overrides) and configure logging before building the engine."""
        settings = load_settings(config_path)
        configure_logging(settings.logging.level, settings.logging.json_output)
        return cls(settings)

    def phases(self) -> dict[str, Phase]:
        if self._default_phases is None:
            phases = load_phases(self.settings.phases_path)
            validate_phase_graph(phases)
            self._default_phases = phases
        return self._default_phases

    def compute_bkt(self, history: Sequence[AttemptRecord], now: datetime | None = None) -> BktComputeResult:
        return compute_bkt_from_history(
            history,
            now=now,
            bkt_config=self.settings.bkt,
            thresholds=self.settings.classification,
        )

    def assess(
        self,
        history: Sequence[AttemptRecord],
        context: LearnerContext,
        now: datetime | None = None,
    ) -> MasterySnapshot:
        settings = self.settings
        phases = context.phases if context.phases is not None else self.phases()
        bkt = self.compute_bkt(history, now)
        by_skill = bkt.by_skill()
        readiness = assess_all_skills_readiness(
            history, by_skill, context.practicing_skill_ids, settings.readiness
        )

        mode = select_session_mode(
            by_skill,
            context.practicing_skill_ids,
            phases,
            tutorials_completed=context.tutorials_completed,
            defer_progression=context.defer_progression,
            config=settings.session_mode,
            display_names=context.display_names,
            readiness=readiness,
        )
        comfort = compute_comfort_level(by_skill, context.practicing_skill_ids, mode, config=settings.comfort)
        if context.problem_length_preference is not None:
            comfort = adjust_comfort_level(comfort, context.problem_length_preference, settings.comfort)

        term_counts = {
            part_type: explain_term_count(part_type, comfort, context.term_count_override, settings.term_scaling)
            for part_type in PART_TYPES
        }
        snapshot = MasterySnapshot(
            skills=bkt.skills,
            distribution=compute_skill_distribution(by_skill, context.practicing_skill_ids),
            session_mode=mode,
            comfort=comfort,
            term_counts=term_counts,
            readiness=readiness,
        )
        logger.debug(
            "engine.assessed",
            attempts=len(history),
            skills=len(snapshot.skills),
            mode=mode.type,
            comfort=round(comfort.comfort_level, 3),
        )
        return snapshot

    def timing_profile(self, history: Sequence[AttemptRecord]) -> TimingProfile:
        return get_time_estimation_profile(history, self.settings.timing)

    def size_parts(
        self,
        history: Sequence[AttemptRecord],
        snapshot: MasterySnapshot,
        part_minutes: Mapping[PartType, float],
    ) -> dict[PartType, PartProjection]:
        profile = self.timing_profile(history)
        ranges = {part_type: explanation.final_range for part_type, explanation in snapshot.term_counts.items()}
        return project_session(profile, ranges, part_minutes, self.settings.timing)


__all__ = [
    "LearnerContext",
    "MasteryEngine",
    "MasterySnapshot",
]
