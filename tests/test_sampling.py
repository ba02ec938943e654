"""
tests/test_sampling.py - Unique Number Sampling
"""

import random

import numpy as np
import pytest

from receipts import ContractViolation, SamplingExhaustion

from drawsim import candidate_weights, count_matches, random_pick, sample_unique


class TestCandidateWeights:
    def test_sums_to_one(self):
        w = candidate_weights(np.linspace(0.1, 0.9, 25), 25, 0.25)
        assert w.sum() == pytest.approx(1.0)

    def test_exploration_floor(self):
        scores = np.zeros(25)
        scores[0] = 1.0
        w = candidate_weights(scores, 25, 0.25)
        assert w.min() == pytest.approx(0.25 / 25)
        assert w[0] == pytest.approx(0.75 + 0.25 / 25)

    def test_negative_scores_ignored(self):
        scores = np.full(25, -1.0)
        scores[3] = 2.0
        w = candidate_weights(scores, 25, 0.0)
        assert w[3] == 1.0
        assert w.sum() == 1.0

    def test_all_zero_is_uniform(self):
        w = candidate_weights(np.zeros(25), 25, 0.0)
        assert np.allclose(w, 1 / 25)

    def test_wrong_shape(self):
        with pytest.raises(ContractViolation):
            candidate_weights(np.ones(24), 25, 0.25)

    def test_non_finite(self):
        scores = np.ones(25)
        scores[5] = np.nan
        with pytest.raises(ContractViolation):
            candidate_weights(scores, 25, 0.25)


class TestSampleUnique:
    def test_fifteen_distinct_sorted(self):
        picks = sample_unique(random.Random(1), [1.0] * 25, 15)
        assert len(picks) == 15
        assert len(set(picks)) == 15
        assert list(picks) == sorted(picks)
        assert min(picks) >= 1 and max(picks) <= 25

    def test_seeded(self):
        w = np.linspace(1, 5, 25)
        assert sample_unique(random.Random(9), w, 15) == sample_unique(random.Random(9), w, 15)

    def test_zero_weight_values_never_picked(self):
        w = [1.0] * 15 + [0.0] * 10
        assert sample_unique(random.Random(2), w, 15) == tuple(range(1, 16))

    def test_ball_min_offset(self):
        picks = sample_unique(random.Random(3), [1.0] * 5, 5, ball_min=10)
        assert picks == (10, 11, 12, 13, 14)

    def test_too_many_requested(self):
        with pytest.raises(ContractViolation):
            sample_unique(random.Random(0), [1.0] * 10, 15)

    def test_zero_total(self):
        with pytest.raises(ContractViolation):
            sample_unique(random.Random(0), [0.0] * 25, 15)

    def test_exhaustion(self):
        w = [1.0] + [0.0] * 24
        with pytest.raises(SamplingExhaustion):
            sample_unique(random.Random(0), w, 2, max_attempts=50)


class TestRandomPick:
    def test_distinct_in_range(self):
        picks = random_pick(random.Random(4), 15)
        assert len(set(picks)) == 15
        assert all(1 <= p <= 25 for p in picks)

    def test_count_matches(self):
        assert count_matches((1, 2, 3), (2, 3, 4)) == 2
        assert count_matches(range(1, 16), range(11, 26)) == 5
