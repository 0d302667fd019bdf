"""Per-skill-family knowledge-tracing priors."""

from __future__ import annotations

from .models import BktParams

# Every family keeps 1 - p_slip > p_guess so a correct answer is always evidence of knowing.
SKILL_FAMILY_PRIORS: dict[str, BktParams] = {
    "basic": BktParams(p_init=0.3, p_learn=0.1, p_guess=0.2, p_slip=0.1),
    "fiveComplements": BktParams(p_init=0.1, p_learn=0.12, p_guess=0.15, p_slip=0.1),
    "fiveComplementsSub": BktParams(p_init=0.1, p_learn=0.12, p_guess=0.15, p_slip=0.1),
    "tenComplements": BktParams(p_init=0.05, p_learn=0.1, p_guess=0.15, p_slip=0.12),
    "tenComplementsSub": BktParams(p_init=0.05, p_learn=0.1, p_guess=0.15, p_slip=0.12),
    "advanced": BktParams(p_init=0.02, p_learn=0.08, p_guess=0.1, p_slip=0.15),
}

DEFAULT_PARAMS = BktParams(p_init=0.1, p_learn=0.1, p_guess=0.2, p_slip=0.1)


def get_skill_family(skill_id: str) -> str:
    """`fiveComplements.4=5-1` -> `fiveComplements`."""
    return skill_id.split(".", 1)[0]


def get_default_params(skill_id: str) -> BktParams:
    return SKILL_FAMILY_PRIORS.get(get_skill_family(skill_id), DEFAULT_PARAMS)


def is_known_family(skill_id: str) -> bool:
    return get_skill_family(skill_id) in SKILL_FAMILY_PRIORS


__all__ = [
    "DEFAULT_PARAMS",
    "SKILL_FAMILY_PRIORS",
    "get_default_params",
    "get_skill_family",
    "is_known_family",
]
