"""Curriculum phases: YAML loader, DAG validation, next-phase lookup."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import Phase

PACKAGE_ROOT = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_ROOT / "data"
PHASES_FILE = DATA_DIR / "phases.yaml"

_phase_cache: dict[str, Phase] | None = None


def load_phases(path: Path | None = None) -> dict[str, Phase]:
    """Parse YAML file and return dict[phase_id, Phase]. The packaged file is cached in memory."""
    global _phase_cache
    if _phase_cache is not None and path is None:
        return _phase_cache

    file_path = path or PHASES_FILE
    with open(file_path, encoding="utf-8") as f:
        raw: list[dict[str, Any]] = yaml.safe_load(f) or []

    phases: dict[str, Phase] = {}
    for entry in raw:
        phase = Phase(
            id=str(entry["id"]),
            primary_skill_id=str(entry["primary_skill_id"]),
            name=entry.get("name", entry["id"]),
            order=int(entry.get("order", 0)),
            description=entry.get("description", ""),
            level_id=int(entry.get("level_id", 1)),
            prerequisites=list(entry.get("prerequisites", [])),
        )
        phases[phase.id] = phase

    if path is None:
        _phase_cache = phases
    return phases


def clear_cache() -> None:
    """Clear the in-memory phase cache."""
    global _phase_cache
    _phase_cache = None


def validate_phase_graph(phases: dict[str, Phase]) -> list[str]:
    """Topologically sort the phases. Returns ordered list of phase IDs.
    Raises ValueError if there are cycles or missing prerequisites.
    """
    for phase in phases.values():
        for prereq in phase.prerequisites:
            if prereq not in phases:
                raise ValueError(f"Phase '{phase.id}' has unknown prerequisite '{prereq}'")

    # Kahn's algorithm, ties broken by curriculum order then id
    in_degree: dict[str, int] = {pid: len(phase.prerequisites) for pid, phase in phases.items()}
    adj: dict[str, list[str]] = {pid: [] for pid in phases}
    for phase in phases.values():
        for prereq in phase.prerequisites:
            adj[prereq].append(phase.id)

    def sort_key(pid: str) -> tuple[int, str]:
        return phases[pid].order, pid

    queue: list[str] = sorted((pid for pid, deg in in_degree.items() if deg == 0), key=sort_key)
    result: list[str] = []

    while queue:
        node = queue.pop(0)
        result.append(node)
        for neighbor in adj[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)
        queue.sort(key=sort_key)

    if len(result) != len(phases):
        raise ValueError("Cycle detected in phase prerequisite graph")

    return result


def phase_order(phases: dict[str, Phase] | None = None) -> list[Phase]:
    """Return the full teaching sequence."""
    if phases is None:
        phases = load_phases()
    return [phases[pid] for pid in validate_phase_graph(phases)]


def phase_for_skill(skill_id: str, phases: dict[str, Phase] | None = None) -> Phase | None:
    if phases is None:
        phases = load_phases()
    for phase in phases.values():
        if phase.primary_skill_id == skill_id:
            return phase
    return None


def next_phase(
    practicing_skill_ids: Iterable[str],
    phases: dict[str, Phase] | None = None,
) -> Phase | None:
    """First phase in teaching order not yet in the rotation whose prerequisites are.

    Returns None once the curriculum is exhausted.
    """
    if phases is None:
        phases = load_phases()
    practicing = set(practicing_skill_ids)
    for phase in phase_order(phases):
        if phase.primary_skill_id in practicing:
            continue
        if all(phases[prereq].primary_skill_id in practicing for prereq in phase.prerequisites):
            return phase
    return None


__all__ = [
    "PHASES_FILE",
    "clear_cache",
    "load_phases",
    "next_phase",
    "phase_for_skill",
    "phase_order",
    "validate_phase_graph",
]
