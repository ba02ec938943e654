"""
tests/test_metrics.py - Running Accuracy and Confidence Intervals

Validates:
- Weighted running averages over rounds
- Out-of-range rates rejected without touching the aggregate
- Clopper-Pearson bounds and the edge summary
"""

import pytest

from receipts import ContractViolation

from drawsim import (
    MetricsAggregator,
    ModelMetrics,
    clopper_pearson,
    edge_summary,
    match_rate,
)


class TestMetricsAggregator:
    def test_starts_empty(self):
        snap = MetricsAggregator().snapshot()
        assert snap == ModelMetrics(0.0, 0.0, 0)

    def test_single_round(self):
        agg = MetricsAggregator()
        snap = agg.update(1.0, 0.0)
        assert snap.accuracy == 1.0
        assert snap.random_accuracy == 0.0
        assert snap.total_rounds == 1

    def test_weighted_average(self):
        agg = MetricsAggregator()
        agg.update(1.0, 0.0)
        agg.update(0.0, 1.0)
        snap = agg.update(0.5, 0.5)
        assert snap.accuracy == pytest.approx(0.5)
        assert snap.random_accuracy == pytest.approx(0.5)
        assert snap.total_rounds == 3

    def test_equal_to_mean_of_rates(self):
        rates = [0.2, 0.6, 0.4, 0.8, 0.6]
        agg = MetricsAggregator()
        for r in rates:
            agg.update(r, 1.0 - r)
        assert agg.accuracy == pytest.approx(sum(rates) / len(rates))
        assert agg.random_accuracy == pytest.approx(1.0 - sum(rates) / len(rates))

    @pytest.mark.parametrize("rate,random_rate", [(1.2, 0.5), (0.5, -0.1)])
    def test_rejects_out_of_range(self, rate, random_rate):
        agg = MetricsAggregator()
        agg.update(0.4, 0.4)
        with pytest.raises(ContractViolation):
            agg.update(rate, random_rate)
        assert agg.snapshot() == ModelMetrics(0.4, 0.4, 1)


class TestMatchRate:
    def test_all_matched(self):
        assert match_rate(30, 2, 15) == 1.0

    def test_partial(self):
        assert match_rate(9, 1, 15) == pytest.approx(0.6)

    def test_empty_population(self):
        with pytest.raises(ContractViolation):
            match_rate(0, 0, 15)


class TestClopperPearson:
    def test_no_trials(self):
        assert clopper_pearson(0, 0) == (0.0, 1.0)

    def test_zero_successes(self):
        lo, hi = clopper_pearson(0, 10)
        assert lo == 0.0
        assert hi == pytest.approx(1 - 0.025 ** 0.1, rel=1e-6)

    def test_all_successes(self):
        lo, hi = clopper_pearson(10, 10)
        assert hi == 1.0
        assert lo == pytest.approx(0.025 ** 0.1, rel=1e-6)

    def test_contains_point_estimate(self):
        lo, hi = clopper_pearson(60, 100)
        assert lo < 0.6 < hi

    def test_narrows_with_trials(self):
        lo_small, hi_small = clopper_pearson(6, 10)
        lo_big, hi_big = clopper_pearson(600, 1000)
        assert hi_big - lo_big < hi_small - lo_small


class TestEdgeSummary:
    def test_equal_accuracy_overlaps(self):
        summary = edge_summary(ModelMetrics(0.6, 0.6, 10), population_size=1)
        assert summary["trials"] == 150
        assert summary["edge"] == 0.0
        assert summary["intervals_overlap"] is True

    def test_large_edge_separates(self):
        summary = edge_summary(ModelMetrics(0.9, 0.6, 100), population_size=10)
        assert summary["edge"] == pytest.approx(0.3)
        assert summary["intervals_overlap"] is False

    def test_no_rounds(self):
        summary = edge_summary(ModelMetrics(), population_size=5)
        assert summary["trials"] == 0
        assert summary["accuracy_ci"] == (0.0, 1.0)
