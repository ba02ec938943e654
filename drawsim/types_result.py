"""
drawsim/types_result.py - RoundResult and SimResult Dataclasses

Immutable result containers.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from features import DrawRecord

from .metrics import ModelMetrics
from .types_config import SimConfig
from .types_state import AgentOutcome, SimState


@dataclass(frozen=True)
class RoundResult:
    """What one call to simulate_round committed."""
    round_index: int
    draw: DrawRecord
    outcomes: Tuple[AgentOutcome, ...]
    match_rate: float
    random_rate: float
    metrics: ModelMetrics
    retrained: Optional[bool] = None  # None when no retraining was due


@dataclass(frozen=True)
class SimResult:
    """Immutable simulation result."""
    final_state: SimState
    rounds: Tuple[RoundResult, ...]
    statistics: dict
    config: SimConfig
    stopped_early: bool = False
