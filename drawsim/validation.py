"""
drawsim/validation.py - Contract Checks

Every check raises ContractViolation before any round state is touched.
"""

from typing import Sequence

import numpy as np

from features import DrawRecord, FeatureConfig, DEFAULT_FEATURES, validate_draw
from receipts import ContractViolation

from .types_config import SimConfig


def validate_history(history: Sequence[DrawRecord],
                     config: FeatureConfig = DEFAULT_FEATURES) -> None:
    """Non-empty, every record well formed."""
    if len(history) == 0:
        raise ContractViolation("History is empty")
    for record in history:
        if not isinstance(record, DrawRecord):
            raise ContractViolation(f"Expected DrawRecord, got {type(record).__name__}")
        validate_draw(record, config)


def validate_config(config: SimConfig) -> None:
    if config.population_size < 1:
        raise ContractViolation(f"population_size must be >= 1, got {config.population_size}")
    if config.weight_scale < 1:
        raise ContractViolation(f"weight_scale must be >= 1, got {config.weight_scale}")
    if config.max_sampling_attempts < 1:
        raise ContractViolation(
            f"max_sampling_attempts must be >= 1, got {config.max_sampling_attempts}"
        )
    if not 0.0 <= config.exploration <= 1.0:
        raise ContractViolation(f"exploration must be in [0, 1], got {config.exploration}")
    if config.min_retrain_interval < 1 or config.retrain_divisor < 1:
        raise ContractViolation(
            f"Retrain cadence must be positive, got min={config.min_retrain_interval} "
            f"divisor={config.retrain_divisor}"
        )


def validate_width(vector: Sequence[float], expected: int, what: str = "vector") -> None:
    if len(vector) != expected:
        raise ContractViolation(f"{what} width {len(vector)} does not match expected {expected}")


def validate_scores(scores: np.ndarray, n_slots: int) -> None:
    """Predictor output must be one finite score per outcome slot."""
    if scores.shape != (n_slots,):
        raise ContractViolation(
            f"Predictor returned shape {scores.shape}, expected ({n_slots},)"
        )
    if not np.all(np.isfinite(scores)):
        raise ContractViolation("Predictor returned non-finite scores")
