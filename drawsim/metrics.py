"""
drawsim/metrics.py - Running Accuracy Metrics

Weighted running averages of the agents' match rate and a random baseline.
State stays O(1): raw per-round rates are not kept here (see SimState.rate_trace).
"""

from dataclasses import dataclass
from typing import Tuple

from scipy.stats import beta

from receipts import ContractViolation

from .constants import CONFIDENCE_LEVEL


@dataclass(frozen=True)
class ModelMetrics:
    """Snapshot of the aggregator."""
    accuracy: float = 0.0
    random_accuracy: float = 0.0
    total_rounds: int = 0


@dataclass
class MetricsAggregator:
    """Running weighted accuracy tracker. Never reset during a run."""
    accuracy: float = 0.0
    random_accuracy: float = 0.0
    total_rounds: int = 0

    def update(self, round_match_rate: float, round_random_rate: float) -> ModelMetrics:
        """
        Fold one round into the running averages.

        accuracy' = (accuracy * n + rate) / (n + 1), same for the random baseline.
        """
        for name, rate in (("round_match_rate", round_match_rate),
                           ("round_random_rate", round_random_rate)):
            if not 0.0 <= rate <= 1.0:
                raise ContractViolation(f"{name} must be in [0, 1], got {rate}")
        n = self.total_rounds
        self.accuracy = (self.accuracy * n + round_match_rate) / (n + 1)
        self.random_accuracy = (self.random_accuracy * n + round_random_rate) / (n + 1)
        self.total_rounds = n + 1
        return self.snapshot()

    def snapshot(self) -> ModelMetrics:
        return ModelMetrics(
            accuracy=self.accuracy,
            random_accuracy=self.random_accuracy,
            total_rounds=self.total_rounds,
        )


def match_rate(total_matches: int, population_size: int, balls_per_draw: int = 15) -> float:
    """Share of predicted numbers that were drawn, across the whole population."""
    if population_size < 1 or balls_per_draw < 1:
        raise ContractViolation(
            f"population_size and balls_per_draw must be positive, got {population_size}, {balls_per_draw}"
        )
    return total_matches / (balls_per_draw * population_size)


# =============================================================================
# CONFIDENCE INTERVALS
# =============================================================================

def clopper_pearson(successes: int, trials: int,
                    confidence: float = CONFIDENCE_LEVEL) -> Tuple[float, float]:
    """
    Exact binomial confidence interval for a proportion.

    Uses scipy.stats.beta.ppf: lower = beta.ppf(alpha/2, k, n-k+1),
    upper = beta.ppf(1-alpha/2, k+1, n-k).
    """
    if trials <= 0:
        return 0.0, 1.0
    alpha = 1.0 - confidence
    k = min(max(successes, 0), trials)
    lower = 0.0 if k == 0 else float(beta.ppf(alpha / 2, k, trials - k + 1))
    upper = 1.0 if k == trials else float(beta.ppf(1 - alpha / 2, k + 1, trials - k))
    return lower, upper


def edge_summary(metrics: ModelMetrics, population_size: int, balls_per_draw: int = 15,
                 confidence: float = CONFIDENCE_LEVEL) -> dict:
    """
    Compare agent accuracy against the random baseline.

    Hit counts are reconstructed from the running averages, which is exact up
    to float rounding because every round contributes the same number of picks.
    """
    trials = metrics.total_rounds * population_size * balls_per_draw
    agent_hits = int(round(metrics.accuracy * trials))
    random_hits = int(round(metrics.random_accuracy * trials))
    agent_ci = clopper_pearson(agent_hits, trials, confidence)
    random_ci = clopper_pearson(random_hits, trials, confidence)
    return {
        "trials": trials,
        "confidence": confidence,
        "accuracy": metrics.accuracy,
        "random_accuracy": metrics.random_accuracy,
        "edge": metrics.accuracy - metrics.random_accuracy,
        "accuracy_ci": agent_ci,
        "random_accuracy_ci": random_ci,
        "intervals_overlap": agent_ci[0] <= random_ci[1] and random_ci[0] <= agent_ci[1],
    }


__all__ = [
    "ModelMetrics",
    "MetricsAggregator",
    "match_rate",
    "clopper_pearson",
    "edge_summary",
]
