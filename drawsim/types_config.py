"""
drawsim/types_config.py - SimConfig Dataclass and Scenario Presets

Immutable configuration for simulation runs.
Frozen dataclass, no behavior.
"""

from dataclasses import dataclass

from .constants import (
    DEFAULT_POPULATION,
    WEIGHT_SCALE,
    MAX_SAMPLING_ATTEMPTS,
    EXPLORATION,
    LOG_MATCH_THRESHOLD,
    MIN_RETRAIN_INTERVAL,
    RETRAIN_DIVISOR,
    TENANT_ID,
)


@dataclass(frozen=True)
class SimConfig:
    """Simulation configuration (immutable)."""
    population_size: int = DEFAULT_POPULATION
    n_rounds: int = 100
    random_seed: int = 42
    weight_scale: int = WEIGHT_SCALE
    max_sampling_attempts: int = MAX_SAMPLING_ATTEMPTS
    exploration: float = EXPLORATION
    log_match_threshold: int = LOG_MATCH_THRESHOLD
    min_retrain_interval: int = MIN_RETRAIN_INTERVAL
    retrain_divisor: int = RETRAIN_DIVISOR
    tenant_id: str = TENANT_ID
    scenario_name: str = "BASELINE"


# =============================================================================
# SCENARIO PRESETS
# =============================================================================

SCENARIO_BASELINE = SimConfig(
    population_size=10,
    n_rounds=100,
    random_seed=42,
    scenario_name="BASELINE"
)

SCENARIO_DUEL = SimConfig(
    population_size=2,
    n_rounds=100,
    random_seed=43,
    scenario_name="DUEL"
)

SCENARIO_CROWD = SimConfig(
    population_size=50,
    n_rounds=100,
    random_seed=44,
    scenario_name="CROWD"
)

SCENARIO_MARATHON = SimConfig(
    population_size=10,
    n_rounds=1000,
    random_seed=45,
    scenario_name="MARATHON"
)

SCENARIOS = {
    config.scenario_name: config
    for config in (SCENARIO_BASELINE, SCENARIO_DUEL, SCENARIO_CROWD, SCENARIO_MARATHON)
}
