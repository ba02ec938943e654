"""
drawsim/constants.py - Simulation Constants

All engine constants in one place for tuning.
Pure data, no behavior.
"""

from enum import Enum

# =============================================================================
# POPULATION
# =============================================================================

DEFAULT_POPULATION = 10
WEIGHT_SCALE = 1000  # agent weights are integers in [0, WEIGHT_SCALE]

# =============================================================================
# SAMPLING
# =============================================================================

MAX_SAMPLING_ATTEMPTS = 1000  # bound on rejection sampling per prediction
EXPLORATION = 0.25  # uniform share blended into predictor scores

# =============================================================================
# LOGGING THRESHOLDS
# =============================================================================

LOG_MATCH_THRESHOLD = 13  # a LogEntry is written at or above this

# =============================================================================
# RETRAINING CADENCE
# =============================================================================

MIN_RETRAIN_INTERVAL = 10
RETRAIN_DIVISOR = 10  # interval = max(MIN_RETRAIN_INTERVAL, len(history) // RETRAIN_DIVISOR)

# =============================================================================
# REPORTING
# =============================================================================

CONFIDENCE_LEVEL = 0.95
TENANT_ID = "simulation"


class EnginePhase(Enum):
    """Round state machine: Idle -> RunningRound -> (Idle | Retraining) -> Idle."""
    IDLE = "idle"
    RUNNING_ROUND = "running_round"
    RETRAINING = "retraining"


# Module exports for receipt types
RECEIPT_SCHEMA = [
    "sim_init",
    "sim_round",
    "retrain",
    "generation_advance",
    "history_extend",
    "infinite_mode",
    "export",
]
