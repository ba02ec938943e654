"""
drawsim/types_state.py - SimState and Round Dataclasses

Mutable simulation state plus the immutable records it accumulates.
Dataclasses for state; behavior lives in cycle.py and friends.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from features import DrawRecord, FeatureConfig, DEFAULT_FEATURES

from .constants import EnginePhase, MIN_RETRAIN_INTERVAL
from .metrics import MetricsAggregator


# =============================================================================
# POPULATION
# =============================================================================

@dataclass
class Agent:
    """Simulated predictor with its own feature weighting and running score.

    weights holds one integer in [0, weight_scale] per feature dimension; the
    engine divides by weight_scale before multiplying with the feature vector.
    last_prediction is empty until the agent plays its first round.
    """
    agent_id: int
    weights: Tuple[int, ...]
    score: float = 0.0
    last_prediction: Tuple[int, ...] = ()


# =============================================================================
# AUDIT RECORDS (append-only, immutable)
# =============================================================================

@dataclass(frozen=True)
class EvolutionRecord:
    """Score of one agent after one round."""
    generation: int
    agent_id: int
    score: float


@dataclass(frozen=True)
class LogEntry:
    """Human-readable audit line."""
    message: str
    match_count: Optional[int] = None


@dataclass(frozen=True)
class TrainingRow:
    """Raw observation buffered for retraining: the draw and a representative prediction."""
    draw: DrawRecord
    prediction: Tuple[int, ...]


# =============================================================================
# ROUND ACCUMULATION
# =============================================================================

@dataclass(frozen=True)
class AgentOutcome:
    """Everything one agent produced in one round, before commit."""
    agent_id: int
    prediction: Tuple[int, ...]
    matches: int
    reward: float
    random_prediction: Tuple[int, ...]
    random_matches: int


@dataclass
class RoundAccumulator:
    """Per-round results gathered in agent-id order, committed in one step."""
    round_index: int
    position: int
    draw: DrawRecord
    outcomes: List[AgentOutcome] = field(default_factory=list)
    total_matches: int = 0
    total_random_matches: int = 0
    trace: Optional[Dict[str, list]] = None
    rng_state: Optional[tuple] = None  # engine RNG after the round, written back on commit

    def add(self, outcome: AgentOutcome) -> None:
        self.outcomes.append(outcome)
        self.total_matches += outcome.matches
        self.total_random_matches += outcome.random_matches


# =============================================================================
# SIMULATION STATE
# =============================================================================

@dataclass
class SimState:
    """Mutable state owned by exactly one simulation instance."""
    history: List[DrawRecord] = field(default_factory=list)
    features: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    feature_config: FeatureConfig = DEFAULT_FEATURES
    agents: List[Agent] = field(default_factory=list)
    generation: int = 1
    current_round: int = 0
    training_buffer: List[TrainingRow] = field(default_factory=list)
    metrics: MetricsAggregator = field(default_factory=MetricsAggregator)
    evolution: List[EvolutionRecord] = field(default_factory=list)
    logs: List[LogEntry] = field(default_factory=list)
    receipt_ledger: List[dict] = field(default_factory=list)
    rate_trace: List[Tuple[float, float]] = field(default_factory=list)
    last_trace: Optional[Dict[str, list]] = None
    retrain_interval: int = MIN_RETRAIN_INTERVAL
    max_index: int = 0
    infinite_mode: bool = False
    phase: EnginePhase = EnginePhase.IDLE
    retrain_count: int = 0
    retrain_failures: int = 0
    rng: random.Random = field(default_factory=random.Random)
