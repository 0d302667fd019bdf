"""Term-count scaling: comfort level -> allowed operands per problem."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import yaml
from pydantic import ValidationError

from .comfort import ComfortFactors, ComfortLevelResult
from .config import PART_TYPES, TermScalingConfig
from .logging import get_logger
from .models import MIN_TERM_COUNT, PartType, TermCountRange

logger = get_logger(__name__)

DEFAULT_TERM_COUNT_SCALING = TermScalingConfig()


@dataclass(frozen=True, slots=True)
class TermCountExplanation:
    """The full chain comfort -> dynamic range -> final range, for tooltips."""

    comfort_level: float
    factors: ComfortFactors
    dynamic_range: TermCountRange
    override: TermCountRange | None
    final_range: TermCountRange
    comfort_adjustment: float = 0.0
    raw_comfort_level: float | None = None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_term_count_range(
    part_type: PartType,
    comfort_level: float,
    scaling: TermScalingConfig | None = None,
) -> TermCountRange:
    """Interpolate linearly between the part type's floor (comfort 0) and ceiling (comfort 1)."""
    part = (scaling or DEFAULT_TERM_COUNT_SCALING).for_part(part_type)
    comfort = comfort_level if math.isfinite(comfort_level) else 0.0
    comfort = max(0.0, min(1.0, comfort))

    low = _round_half_up(part.floor.min + (part.ceiling.min - part.floor.min) * comfort)
    high = _round_half_up(part.floor.max + (part.ceiling.max - part.floor.max) * comfort)
    low = max(MIN_TERM_COUNT, low)
    return TermCountRange(min=low, max=max(low, high))


def apply_term_count_override(
    computed: TermCountRange,
    override: TermCountRange | None,
) -> TermCountRange:
    """An override only ever lowers the range; neither bound drops below two terms."""
    if override is None:
        return computed
    final_max = min(computed.max, override.max)
    final_min = min(computed.min, override.max)
    return TermCountRange(
        min=max(MIN_TERM_COUNT, min(final_min, final_max)),
        max=max(MIN_TERM_COUNT, final_max),
    )


def explain_term_count(
    part_type: PartType,
    comfort: ComfortLevelResult,
    override: TermCountRange | None = None,
    scaling: TermScalingConfig | None = None,
) -> TermCountExplanation:
    dynamic = compute_term_count_range(part_type, comfort.comfort_level, scaling)
    return TermCountExplanation(
        comfort_level=comfort.comfort_level,
        factors=comfort.factors,
        dynamic_range=dynamic,
        override=override,
        final_range=apply_term_count_override(dynamic, override),
        comfort_adjustment=comfort.comfort_adjustment,
        raw_comfort_level=comfort.raw_comfort_level,
    )


# ── Parsing / validation ─────────────────────────────────────────────────────


def validate_term_count_scaling(config: Any) -> str | None:
    """Return an error message for an invalid scaling mapping, or None when it is valid."""
    if not isinstance(config, dict):
        return "Config must be an object"

    for part_type in PART_TYPES:
        if part_type not in config:
            return f"Missing mode: {part_type}"
        part = config[part_type]
        if not isinstance(part, dict):
            return f"{part_type} must be an object"
        for level in ("floor", "ceiling"):
            if level not in part:
                return f"{part_type}.{level} is missing"
            bounds = part[level]
            if not isinstance(bounds, dict):
                return f"{part_type}.{level} must be an object"
            for bound in ("min", "max"):
                if bound not in bounds:
                    return f"{part_type}.{level}.{bound} is missing"
                value = bounds[bound]
                if isinstance(value, bool) or not isinstance(value, int):
                    return f"{part_type}.{level}.{bound} must be an integer"

    try:
        TermScalingConfig.model_validate(config)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        return f"{location}: {error['msg']}" if location else error["msg"]
    return None


def parse_term_count_scaling(text: str | None) -> TermScalingConfig:
    """Parse JSON or YAML text into a scaling config, falling back to the defaults."""
    if text is None:
        return DEFAULT_TERM_COUNT_SCALING
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError:
        logger.debug("term_count.scaling_unparseable")
        return DEFAULT_TERM_COUNT_SCALING

    error = validate_term_count_scaling(parsed)
    if error is not None:
        logger.debug("term_count.scaling_invalid", error=error)
        return DEFAULT_TERM_COUNT_SCALING
    return TermScalingConfig.model_validate(parsed)


__all__ = [
    "DEFAULT_TERM_COUNT_SCALING",
    "TermCountExplanation",
    "apply_term_count_override",
    "compute_term_count_range",
    "explain_term_count",
    "parse_term_count_scaling",
    "validate_term_count_scaling",
]
