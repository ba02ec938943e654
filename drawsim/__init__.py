"""
drawsim - Multi-Agent Draw Prediction Simulation

Public API: replay draw history round by round, score a population of
predictive agents, track accuracy against a random baseline, and retrain the
predictor periodically. Flat, focused files. One file = one responsibility.
"""

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_config import (
    SimConfig,
    SCENARIO_BASELINE,
    SCENARIO_DUEL,
    SCENARIO_CROWD,
    SCENARIO_MARATHON,
    SCENARIOS,
)
from .types_state import (
    Agent,
    AgentOutcome,
    EvolutionRecord,
    LogEntry,
    RoundAccumulator,
    SimState,
    TrainingRow,
)
from .types_result import RoundResult, SimResult

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import (
    EnginePhase,
    RECEIPT_SCHEMA,
    WEIGHT_SCALE,
    MAX_SAMPLING_ATTEMPTS,
    LOG_MATCH_THRESHOLD,
    MIN_RETRAIN_INTERVAL,
)

# =============================================================================
# METRICS
# =============================================================================
from .metrics import (
    ModelMetrics,
    MetricsAggregator,
    match_rate,
    clopper_pearson,
    edge_summary,
)

# =============================================================================
# SAMPLING AND VALIDATION
# =============================================================================
from .sampling import (
    candidate_weights,
    sample_unique,
    random_pick,
    count_matches,
)
from .validation import (
    validate_history,
    validate_config,
    validate_width,
    validate_scores,
)

# =============================================================================
# RETRAINING
# =============================================================================
from .retrain import (
    RetrainFailure,
    retrain_interval,
    should_retrain,
    multi_hot,
    history_examples,
    build_training_examples,
    run_retraining,
    run_retraining_async,
)

# =============================================================================
# CORE SIMULATION
# =============================================================================
from .cycle import (
    initialize_agents,
    initialize_state,
    play_round,
    simulate_round,
    simulate_round_async,
    advance_generation,
    toggle_infinite_mode,
    extend_history,
    run_simulation,
    SimulationEngine,
)

# =============================================================================
# HISTORY AND EXPORT
# =============================================================================
from .history import synthetic_history
from .export import agent_leaderboard, export_run, generate_report

# =============================================================================
# PUBLIC API
# =============================================================================
__all__ = [
    # Types
    "SimConfig",
    "SimState",
    "SimResult",
    "RoundResult",
    "Agent",
    "AgentOutcome",
    "EvolutionRecord",
    "LogEntry",
    "RoundAccumulator",
    "TrainingRow",
    # Scenario presets
    "SCENARIO_BASELINE",
    "SCENARIO_DUEL",
    "SCENARIO_CROWD",
    "SCENARIO_MARATHON",
    "SCENARIOS",
    # Constants
    "EnginePhase",
    "RECEIPT_SCHEMA",
    "WEIGHT_SCALE",
    "MAX_SAMPLING_ATTEMPTS",
    "LOG_MATCH_THRESHOLD",
    "MIN_RETRAIN_INTERVAL",
    # Metrics
    "ModelMetrics",
    "MetricsAggregator",
    "match_rate",
    "clopper_pearson",
    "edge_summary",
    # Sampling and validation
    "candidate_weights",
    "sample_unique",
    "random_pick",
    "count_matches",
    "validate_history",
    "validate_config",
    "validate_width",
    "validate_scores",
    # Retraining
    "RetrainFailure",
    "retrain_interval",
    "should_retrain",
    "multi_hot",
    "history_examples",
    "build_training_examples",
    "run_retraining",
    "run_retraining_async",
    # Core simulation
    "initialize_agents",
    "initialize_state",
    "play_round",
    "simulate_round",
    "simulate_round_async",
    "advance_generation",
    "toggle_infinite_mode",
    "extend_history",
    "run_simulation",
    "SimulationEngine",
    # History and export
    "synthetic_history",
    "agent_leaderboard",
    "export_run",
    "generate_report",
]
