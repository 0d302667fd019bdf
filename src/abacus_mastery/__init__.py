"""Adaptive mastery and calibration engine for abacus practice."""

from .bkt import compute_bkt_from_history, simulate_bkt_sequence
from .classification import classify_mastery, get_extended_classification
from .comfort import ComfortLevelResult, compute_comfort_level
from .config import EngineSettings, load_settings
from .engine import LearnerContext, MasteryEngine, MasterySnapshot
from .models import AttemptRecord, BktParams, SkillBktResult, TermCountRange, TimingProfile
from .readiness import SkillReadinessResult, assess_all_skills_readiness, assess_skill_readiness
from .session_mode import (
    MaintenanceMode,
    ProgressionMode,
    RemediationMode,
    SessionMode,
    select_session_mode,
)
from .term_count import apply_term_count_override, compute_term_count_range
from .timing import get_time_estimation_profile

__all__ = [
    "AttemptRecord",
    "BktParams",
    "ComfortLevelResult",
    "EngineSettings",
    "LearnerContext",
    "MaintenanceMode",
    "MasteryEngine",
    "MasterySnapshot",
    "ProgressionMode",
    "RemediationMode",
    "SessionMode",
    "SkillBktResult",
    "SkillReadinessResult",
    "TermCountRange",
    "TimingProfile",
    "apply_term_count_override",
    "assess_all_skills_readiness",
    "assess_skill_readiness",
    "classify_mastery",
    "compute_bkt_from_history",
    "compute_comfort_level",
    "compute_term_count_range",
    "get_extended_classification",
    "get_time_estimation_profile",
    "load_settings",
    "select_session_mode",
    "simulate_bkt_sequence",
]
