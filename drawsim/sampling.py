"""
drawsim/sampling.py - Unique Number Sampling

Turns predictor scores into 15 distinct picks by bounded rejection sampling,
and draws the uniform random baseline.
"""

import random
from itertools import accumulate
from typing import Iterable, Sequence, Tuple

import numpy as np

from receipts import ContractViolation, SamplingExhaustion

from .validation import validate_scores


def candidate_weights(scores: Sequence[float], n_slots: int, exploration: float) -> np.ndarray:
    """
    Sampling weights over the ball values.

    Negative scores count as zero. The normalized scores are blended with a
    uniform floor of `exploration`, so every value stays reachable unless
    exploration is 0. All-zero scores fall back to uniform.
    """
    raw = np.asarray(scores, dtype=np.float64)
    validate_scores(raw, n_slots)
    raw = np.clip(raw, 0.0, None)
    total = raw.sum()
    base = raw / total if total > 0 else np.full(n_slots, 1.0 / n_slots)
    return (1.0 - exploration) * base + exploration / n_slots


def sample_unique(rng: random.Random, weights: Sequence[float], k: int,
                  ball_min: int = 1, max_attempts: int = 1000) -> Tuple[int, ...]:
    """
    Draw k distinct ball values, weighted, by rejection of repeats.

    Raises:
        ContractViolation: k larger than the number of values
        SamplingExhaustion: k distinct values not reached in max_attempts draws
    """
    if len(weights) == 0 or k > len(weights):
        raise ContractViolation(f"Cannot pick {k} distinct values from {len(weights)}")
    values = range(ball_min, ball_min + len(weights))
    cumulative = list(accumulate(float(w) for w in weights))
    if not cumulative[-1] > 0:
        raise ContractViolation("Sampling weights must have a positive total")
    picked = set()
    attempts = 0
    while len(picked) < k:
        if attempts >= max_attempts:
            raise SamplingExhaustion(
                f"Only {len(picked)} of {k} distinct values after {max_attempts} attempts"
            )
        attempts += 1
        picked.add(rng.choices(values, cum_weights=cumulative)[0])
    return tuple(sorted(picked))


def random_pick(rng: random.Random, k: int, ball_min: int = 1, ball_max: int = 25) -> Tuple[int, ...]:
    """Uniform random baseline prediction of k distinct values."""
    return tuple(sorted(rng.sample(range(ball_min, ball_max + 1), k)))


def count_matches(prediction: Iterable[int], balls: Iterable[int]) -> int:
    return len(set(prediction) & set(balls))
