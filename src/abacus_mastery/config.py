"""Engine configuration: pydantic models, YAML loader, environment overrides."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

CONFIG_PATH_ENV = "ABACUS_MASTERY_CONFIG"
CONFIG_OVERRIDES_ENV = "ABACUS_MASTERY_CONFIG_OVERRIDES"

PART_TYPES: tuple[str, ...] = ("abacus", "visualization", "linear")


class BktConfig(BaseModel):
    """Knowledge-tracing replay settings."""

    confidence_scale: float = Field(8.0, gt=0, description="Opportunities for confidence to reach ~63%.")


class ClassificationConfig(BaseModel):
    """Thresholds that bucket a belief into weak/developing/strong, plus recency windows."""

    strong_threshold: float = Field(0.8, ge=0, le=1)
    developing_threshold: float = Field(0.5, ge=0, le=1)
    confidence_threshold: float = Field(0.3, ge=0, le=1)
    warning_days: float = Field(7.0, ge=0)
    stale_days: float = Field(14.0, ge=0)
    min_multiplier: float = Field(1.0, gt=0)
    max_multiplier: float = Field(4.0, gt=0)

    @model_validator(mode="after")
    def _ordered(self) -> "ClassificationConfig":
        if self.developing_threshold >= self.strong_threshold:
            raise ValueError("developing_threshold must be below strong_threshold")
        if self.warning_days > self.stale_days:
            raise ValueError("warning_days must not exceed stale_days")
        if self.min_multiplier >= self.max_multiplier:
            raise ValueError("min_multiplier must be below max_multiplier")
        return self


class SessionModeConfig(BaseModel):
    """Policy knobs for choosing remediation / progression / maintenance."""

    min_weak_skills_for_remediation: int = Field(1, ge=1)
    require_readiness_for_progression: bool = Field(
        False, description="Also hold progression until every rotation skill is solid."
    )


class ComfortConfig(BaseModel):
    """Comfort-level damping and breadth bonus."""

    default_comfort: float = Field(0.3, ge=0, le=1)
    mode_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"remediation": 0.6, "progression": 0.85, "maintenance": 1.0}
    )
    max_skill_count_bonus: float = Field(0.15, ge=0)
    skill_count_bonus_divisor: float = Field(20.0, gt=0)
    length_adjustments: Dict[str, float] = Field(
        default_factory=lambda: {"shorter": -0.3, "recommended": 0.0, "longer": 0.2}
    )

    @field_validator("mode_multipliers")
    @classmethod
    def _all_modes(cls, value: Dict[str, float]) -> Dict[str, float]:
        missing = {"remediation", "progression", "maintenance"} - set(value)
        if missing:
            raise ValueError(f"mode_multipliers missing: {sorted(missing)}")
        return value


class RangeConfig(BaseModel):
    """An inclusive operand-count range."""

    min: int = Field(..., ge=2)
    max: int = Field(..., ge=2)

    @model_validator(mode="after")
    def _min_le_max(self) -> "RangeConfig":
        if self.min > self.max:
            raise ValueError("min must be <= max")
        return self


class PartScaling(BaseModel):
    """Range for a struggling learner (floor) and a fully comfortable one (ceiling)."""

    floor: RangeConfig
    ceiling: RangeConfig

    @model_validator(mode="after")
    def _floor_le_ceiling(self) -> "PartScaling":
        if self.floor.min > self.ceiling.min:
            raise ValueError("floor.min must be <= ceiling.min")
        if self.floor.max > self.ceiling.max:
            raise ValueError("floor.max must be <= ceiling.max")
        return self


class TermScalingConfig(BaseModel):
    """Per-part-type comfort -> term-count scaling."""

    abacus: PartScaling = Field(
        default_factory=lambda: PartScaling(floor=RangeConfig(min=2, max=3), ceiling=RangeConfig(min=4, max=8))
    )
    visualization: PartScaling = Field(
        default_factory=lambda: PartScaling(floor=RangeConfig(min=2, max=2), ceiling=RangeConfig(min=4, max=8))
    )
    linear: PartScaling = Field(
        default_factory=lambda: PartScaling(floor=RangeConfig(min=2, max=2), ceiling=RangeConfig(min=4, max=8))
    )

    def for_part(self, part_type: str) -> PartScaling:
        return getattr(self, part_type)


class TimingConfig(BaseModel):
    """Pacing defaults and clamps used by the timing estimator."""

    seconds_per_term: float = Field(8.0, gt=0)
    min_seconds_per_term: float = Field(3.0, gt=0)
    max_seconds_per_term: float = Field(30.0, gt=0)
    problem_overhead_seconds: float = Field(2.0, ge=0)
    min_problems_per_part: int = Field(2, ge=1)
    default_terms_per_problem: int = Field(3, ge=1)
    min_results: int = Field(5, ge=1)
    outlier_min_results: int = Field(10, ge=3)
    outlier_std_devs: float = Field(3.0, gt=0)
    min_seconds_per_complexity_unit: float = Field(2.0, gt=0)
    max_seconds_per_complexity_unit: float = Field(15.0, gt=0)
    complexity_min_results: int = Field(10, ge=1)
    part_type_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"abacus": 1.0, "visualization": 1.3, "linear": 0.85}
    )
    skill_complexity_weights: Dict[str, float] = Field(
        default_factory=lambda: {
            "add.direct": 1.0,
            "sub.direct": 1.0,
            "add.five": 1.5,
            "sub.five": 1.5,
            "add.ten": 2.0,
            "sub.ten": 2.0,
            "carry": 1.5,
            "borrow": 1.5,
        }
    )
    family_complexity_weights: Dict[str, float] = Field(
        default_factory=lambda: {
            "basic": 1.0,
            "fiveComplements": 1.5,
            "fiveComplementsSub": 1.5,
            "tenComplements": 2.0,
            "tenComplementsSub": 2.0,
            "advanced": 2.5,
        }
    )

    @model_validator(mode="after")
    def _bands(self) -> "TimingConfig":
        if self.min_seconds_per_term > self.max_seconds_per_term:
            raise ValueError("min_seconds_per_term must be <= max_seconds_per_term")
        if self.min_seconds_per_complexity_unit > self.max_seconds_per_complexity_unit:
            raise ValueError("min_seconds_per_complexity_unit must be <= max_seconds_per_complexity_unit")
        missing = set(PART_TYPES) - set(self.part_type_multipliers)
        if missing:
            raise ValueError(f"part_type_multipliers missing: {sorted(missing)}")
        for name in ("part_type_multipliers", "skill_complexity_weights", "family_complexity_weights"):
            if any(value <= 0 for value in getattr(self, name).values()):
                raise ValueError(f"{name} must all be positive")
        return self


class ReadinessConfig(BaseModel):
    """What "solid" means for a skill before the learner moves past it."""

    min_opportunities: int = Field(20, ge=0)
    min_sessions: int = Field(3, ge=0)
    p_known_threshold: float = Field(0.85, ge=0, le=1)
    confidence_threshold: float = Field(0.5, ge=0, le=1)
    max_median_seconds_per_term: float = Field(4.0, gt=0)
    speed_window_size: int = Field(10, ge=1)
    accuracy_window_size: int = Field(15, ge=1)
    min_accuracy: float = Field(0.85, ge=0, le=1)
    last_n_all_correct: int = Field(5, ge=1)
    no_help_in_last_n: int = Field(5, ge=1)
    excluded_sources: list[str] = Field(default_factory=lambda: ["recency-refresh"])


class LoggingConfig(BaseModel):
    """Controls for engine logging output and format."""

    level: str = Field("INFO")
    json_output: bool = False


class EngineSettings(BaseModel):
    """Top-level configuration aggregating every engine component."""

    bkt: BktConfig = Field(default_factory=BktConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    session_mode: SessionModeConfig = Field(default_factory=SessionModeConfig)
    comfort: ComfortConfig = Field(default_factory=ComfortConfig)
    term_scaling: TermScalingConfig = Field(default_factory=TermScalingConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    phases_path: Path | None = Field(None, description="Curriculum YAML; packaged default when unset.")


def read_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file into a dictionary, returning an empty mapping when the file is blank."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries, letting override values replace base entries."""
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            result[key] = merge_dicts(base[key], value)
        else:
            result[key] = value
    return result


def load_settings(config_path: str | Path | None = None) -> EngineSettings:
    """
    Read configuration, apply environment overrides, and return validated settings.

    The YAML file comes from `config_path`, else from the `ABACUS_MASTERY_CONFIG`
    env var; with neither, the built-in defaults are the base. JSON overrides in
    `ABACUS_MASTERY_CONFIG_OVERRIDES` are merged on top before validation.
    """
    path_value = config_path or os.getenv(CONFIG_PATH_ENV)
    data: Dict[str, Any] = read_yaml(Path(path_value)) if path_value else {}

    overrides_env = os.getenv(CONFIG_OVERRIDES_ENV)
    if overrides_env:
        try:
            overrides = json.loads(overrides_env)
        except json.JSONDecodeError as err:
            raise ValueError(f"Failed to parse {CONFIG_OVERRIDES_ENV} env var as JSON.") from err
        data = merge_dicts(data, overrides)

    try:
        settings = EngineSettings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc

    return settings


DEFAULT_SETTINGS = EngineSettings()


__all__ = [
    "BktConfig",
    "ClassificationConfig",
    "ComfortConfig",
    "DEFAULT_SETTINGS",
    "EngineSettings",
    "LoggingConfig",
    "PART_TYPES",
    "PartScaling",
    "RangeConfig",
    "ReadinessConfig",
    "SessionModeConfig",
    "TermScalingConfig",
    "TimingConfig",
    "load_settings",
    "merge_dicts",
    "read_yaml",
]
