"""Scoring heuristics: energy state, flow score and passive inference."""

from daysense.scoring.energy import EnergyState, get_energy_state
from daysense.scoring.flow import (
    ScoringError,
    calculate_flow_score,
    completion_efficiency,
    composite_score,
    energy_task_alignment,
    focus_consistency,
    weekly_average,
    weekly_trend,
)
from daysense.scoring.inference import infer_energy

__all__ = [
    "EnergyState",
    "ScoringError",
    "calculate_flow_score",
    "completion_efficiency",
    "composite_score",
    "energy_task_alignment",
    "focus_consistency",
    "get_energy_state",
    "infer_energy",
    "weekly_average",
    "weekly_trend",
]
