"""Session mode selection: remediation, progression, or maintenance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping, Union

from .classification import compute_skill_distribution
from .config import SessionModeConfig
from .curriculum import load_phases, next_phase
from .logging import get_logger
from .models import Phase, SkillBktResult
from .readiness import SkillReadinessResult

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SkillRef:
    skill_id: str
    display_name: str
    p_known: float


@dataclass(frozen=True, slots=True)
class DeferredProgression:
    """A progression that was ready but postponed; promoted later without re-deriving readiness."""

    next_skill: SkillRef
    phase: Phase
    readiness: dict[str, SkillReadinessResult] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RemediationMode:
    weak_skills: tuple[SkillRef, ...]
    focus_description: str
    type: Literal["remediation"] = field(default="remediation", init=False)


@dataclass(frozen=True, slots=True)
class ProgressionMode:
    next_skill: SkillRef
    phase: Phase
    tutorial_required: bool
    focus_description: str
    type: Literal["progression"] = field(default="progression", init=False)


@dataclass(frozen=True, slots=True)
class MaintenanceMode:
    skill_count: int
    focus_description: str
    deferred_progression: DeferredProgression | None = None
    type: Literal["maintenance"] = field(default="maintenance", init=False)


SessionMode = Union[RemediationMode, ProgressionMode, MaintenanceMode]


# ── Discriminators ───────────────────────────────────────────────────────────


def is_remediation_mode(mode: SessionMode) -> bool:
    return isinstance(mode, RemediationMode)


def is_progression_mode(mode: SessionMode) -> bool:
    return isinstance(mode, ProgressionMode)


def is_maintenance_mode(mode: SessionMode) -> bool:
    return isinstance(mode, MaintenanceMode)


def get_weak_skill_ids(mode: SessionMode) -> list[str]:
    if isinstance(mode, RemediationMode):
        return [skill.skill_id for skill in mode.weak_skills]
    return []


# ── Selection ────────────────────────────────────────────────────────────────


def _display_name(
    skill_id: str,
    phases: Mapping[str, Phase],
    display_names: Mapping[str, str] | None,
) -> str:
    if display_names and skill_id in display_names:
        return display_names[skill_id]
    for phase in phases.values():
        if phase.primary_skill_id == skill_id:
            return phase.name
    return skill_id


def _remediation_focus(weak_skills: tuple[SkillRef, ...]) -> str:
    names = [skill.display_name for skill in weak_skills]
    if len(names) <= 2:
        return "Strengthening: " + " and ".join(names)
    return f"Strengthening: {names[0]}, {names[1]} and {len(names) - 2} more"


def select_session_mode(
    skill_results: Iterable[SkillBktResult] | Mapping[str, SkillBktResult],
    practicing_skill_ids: Iterable[str],
    phases: Mapping[str, Phase] | None = None,
    *,
    tutorials_completed: Iterable[str] = (),
    defer_progression: bool = False,
    config: SessionModeConfig | None = None,
    display_names: Mapping[str, str] | None = None,
    readiness: Mapping[str, SkillReadinessResult] | None = None,
) -> SessionMode:
    """Pick exactly one practice intent for the learner's rotation.

    Remediation wins whenever enough rotation skills are weak. Progression
    needs every rotation skill strong and a next phase to move to; an empty
    rotation counts as fully strong so a new learner starts on the first
    phase. Anything else is maintenance.

    `readiness` is carried on a deferred progression for the rotation skills
    it covers. With `require_readiness_for_progression` set, a covered skill
    that is not solid also holds progression back.
    """
    config = config or SessionModeConfig()
    phases = phases if phases is not None else load_phases()
    by_id = (
        dict(skill_results)
        if isinstance(skill_results, Mapping)
        else {result.skill_id: result for result in skill_results}
    )
    rotation = list(dict.fromkeys(practicing_skill_ids))
    distribution = compute_skill_distribution(by_id, rotation)

    weak = sorted(
        (
            by_id[skill_id]
            for skill_id in rotation
            if skill_id in by_id
            and by_id[skill_id].opportunities > 0
            and by_id[skill_id].mastery_classification == "weak"
        ),
        key=lambda result: (result.p_known, result.skill_id),
    )
    if weak and len(weak) >= config.min_weak_skills_for_remediation:
        weak_skills = tuple(
            SkillRef(r.skill_id, _display_name(r.skill_id, phases, display_names), r.p_known) for r in weak
        )
        logger.debug("session_mode.remediation", weak=len(weak_skills), rotation=len(rotation))
        return RemediationMode(weak_skills=weak_skills, focus_description=_remediation_focus(weak_skills))

    deferred: DeferredProgression | None = None
    rotation_readiness = {
        skill_id: readiness[skill_id] for skill_id in rotation if readiness is not None and skill_id in readiness
    }
    not_solid = [skill_id for skill_id, result in rotation_readiness.items() if not result.is_solid]
    if not_solid and config.require_readiness_for_progression:
        logger.debug("session_mode.progression_held", not_solid=not_solid)
    elif distribution.strong == len(rotation):
        candidate = next_phase(rotation, dict(phases))
        if candidate is not None:
            skill_id = candidate.primary_skill_id
            existing = by_id.get(skill_id)
            next_skill = SkillRef(
                skill_id,
                _display_name(skill_id, phases, display_names),
                existing.p_known if existing is not None else 0.0,
            )
            if defer_progression:
                deferred = DeferredProgression(next_skill=next_skill, phase=candidate, readiness=rotation_readiness)
            else:
                logger.debug("session_mode.progression", phase=candidate.id, skill_id=skill_id)
                return ProgressionMode(
                    next_skill=next_skill,
                    phase=candidate,
                    tutorial_required=skill_id not in set(tutorials_completed),
                    focus_description=f"Learning: {next_skill.display_name}",
                )

    logger.debug(
        "session_mode.maintenance",
        rotation=len(rotation),
        strong=distribution.strong,
        deferred=deferred.phase.id if deferred else None,
    )
    return MaintenanceMode(
        skill_count=len(rotation),
        focus_description="Mixed practice",
        deferred_progression=deferred,
    )


__all__ = [
    "DeferredProgression",
    "MaintenanceMode",
    "ProgressionMode",
    "RemediationMode",
    "SessionMode",
    "SkillRef",
    "get_weak_skill_ids",
    "is_maintenance_mode",
    "is_progression_mode",
    "is_remediation_mode",
    "select_session_mode",
]
