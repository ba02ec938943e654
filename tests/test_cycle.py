"""
tests/test_cycle.py - Simulation Engine

Validates:
- One round per call: scores, evolution, buffer, metrics and counter move together
- History is replayed cyclically
- Contract violations leave the state untouched
- Generations, infinite mode and history extension
"""

import random
from datetime import timedelta

import numpy as np
import pytest

from features import DrawRecord, EPOCH
from predictor import DensePredictor, TrainingConfig
from receipts import ContractViolation, SamplingExhaustion
from reward import reward

from drawsim import (
    EnginePhase,
    RECEIPT_SCHEMA,
    SimConfig,
    SimResult,
    SimulationEngine,
    initialize_agents,
    initialize_state,
    run_simulation,
    synthetic_history,
)

LOW = tuple(range(1, 16))


class StubPredictor:
    def __init__(self, scores=None):
        self.scores = np.linspace(1.0, 2.0, 25) if scores is None else np.asarray(scores, dtype=float)
        self.calls = 0

    def predict(self, vector):
        self.calls += 1
        return self.scores

    def incremental_fit(self, examples):
        return True


@pytest.fixture
def history():
    return synthetic_history(3, seed=0)


@pytest.fixture
def config():
    return SimConfig(population_size=2, n_rounds=3, random_seed=7)


def _snapshot(engine):
    return (
        engine.current_round,
        [a.score for a in engine.agents],
        len(engine.evolution),
        len(engine.training_buffer),
        engine.metrics,
        engine.state.phase,
    )


class TestInitialization:
    def test_agents(self):
        agents = initialize_agents(4, 140, random.Random(0), 1000)
        assert [a.agent_id for a in agents] == [1, 2, 3, 4]
        for a in agents:
            assert len(a.weights) == 140
            assert all(0 <= w <= 1000 for w in a.weights)
            assert a.score == 0.0
            assert a.last_prediction == ()

    def test_state(self, history, config):
        state = initialize_state(history, config)
        assert state.features.shape == (3, 140)
        assert state.max_index == 3
        assert state.retrain_interval == 10
        assert state.generation == 1
        assert state.phase is EnginePhase.IDLE
        assert state.receipt_ledger[0]["receipt_type"] == "sim_init"

    def test_empty_history(self, config):
        with pytest.raises(ContractViolation):
            SimulationEngine([], StubPredictor(), config)

    def test_bad_config(self, history):
        with pytest.raises(ContractViolation):
            SimulationEngine(history, StubPredictor(), SimConfig(population_size=0))


class TestRound:
    def test_three_rounds_two_agents(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        rounds = [engine.run_round() for _ in range(3)]

        assert len(engine.evolution) == 6
        assert engine.metrics.total_rounds == 3
        assert len(engine.training_buffer) == 3
        assert engine.current_round == 3
        assert [(e.generation, e.agent_id) for e in engine.evolution] == [
            (1, 1), (1, 2), (1, 1), (1, 2), (1, 1), (1, 2),
        ]
        for agent in engine.agents:
            expected = sum(
                reward(o.matches) for r in rounds for o in r.outcomes if o.agent_id == agent.agent_id
            )
            assert agent.score == expected

    def test_outcomes(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        result = engine.run_round()
        assert [o.agent_id for o in result.outcomes] == [1, 2]
        for o in result.outcomes:
            assert len(set(o.prediction)) == 15
            assert o.matches == len(set(o.prediction) & set(history[0].balls))
            assert len(set(o.random_prediction)) == 15
        total = sum(o.matches for o in result.outcomes)
        assert result.match_rate == pytest.approx(total / 30)
        assert engine.metrics.accuracy == pytest.approx(result.match_rate)

    def test_cycles_through_history(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        draws = [engine.run_round().draw for _ in range(5)]
        assert draws == [history[0], history[1], history[2], history[0], history[1]]

    def test_buffer_holds_lowest_agent_prediction(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        result = engine.run_round()
        row = engine.training_buffer[0]
        assert row.draw == history[0]
        assert row.prediction == result.outcomes[0].prediction

    def test_perfect_prediction(self):
        history = [DrawRecord(1, EPOCH, LOW)]
        scores = [1.0] * 15 + [0.0] * 10
        engine = SimulationEngine(
            history, StubPredictor(scores), SimConfig(population_size=1, exploration=0.0)
        )
        result = engine.run_round()
        assert result.outcomes[0].prediction == LOW
        assert result.outcomes[0].matches == 15
        assert engine.agents[0].score == 8.0
        assert engine.metrics.accuracy == 1.0
        assert engine.logs[-1].message == "Agent 1 matched 15 numbers!"
        assert engine.logs[-1].match_count == 15

    def test_seeded_runs_repeat(self, history, config):
        a = SimulationEngine(history, StubPredictor(), config)
        b = SimulationEngine(history, StubPredictor(), config)
        ra = [a.run_round() for _ in range(4)]
        rb = [b.run_round() for _ in range(4)]
        assert [r.outcomes for r in ra] == [r.outcomes for r in rb]

    def test_trace_recorded(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.run_round()
        trace = engine.state.last_trace
        assert len(trace["input"]) == 140
        assert len(trace["output"]) == 25
        assert engine.state.rate_trace[0][0] == engine.metrics.accuracy

    def test_round_receipt(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.run_round()
        receipt = engine.receipts[-1]
        assert receipt["receipt_type"] == "sim_round"
        assert receipt["round"] == 0
        assert receipt["sequence_index"] == history[0].sequence_index

    def test_receipt_types_registered(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.run(10)
        engine.toggle_infinite_mode()
        engine.advance_generation()
        engine.extend_history(synthetic_history(2, first_index=4))
        types = {r["receipt_type"] for r in engine.receipts}
        assert types <= set(RECEIPT_SCHEMA)
        assert {"sim_init", "sim_round", "retrain"} <= types


class TestContractViolations:
    def test_wrong_predictor_width(self, history, config):
        engine = SimulationEngine(history, StubPredictor(np.ones(24)), config)
        before = _snapshot(engine)
        with pytest.raises(ContractViolation):
            engine.run_round()
        assert _snapshot(engine) == before

    def test_non_finite_scores(self, history, config):
        scores = np.ones(25)
        scores[0] = np.inf
        engine = SimulationEngine(history, StubPredictor(scores), config)
        with pytest.raises(ContractViolation):
            engine.run_round()
        assert engine.current_round == 0

    def test_wrong_weight_width(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.state.agents[1].weights = (1,) * 10
        before = _snapshot(engine)
        with pytest.raises(ContractViolation):
            engine.run_round()
        assert _snapshot(engine) == before

    def test_sampling_exhaustion(self, history):
        scores = [1.0] + [0.0] * 24
        config = SimConfig(population_size=2, exploration=0.0, max_sampling_attempts=20)
        engine = SimulationEngine(history, StubPredictor(scores), config)
        before = _snapshot(engine)
        with pytest.raises(SamplingExhaustion):
            engine.run_round()
        assert _snapshot(engine) == before

    def test_round_while_retraining(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.state.phase = EnginePhase.RETRAINING
        with pytest.raises(ContractViolation):
            engine.run_round()

    def test_rejected_round_keeps_rng(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.state.agents[1].weights = (1,) * 10
        rng_before = engine.state.rng.getstate()
        with pytest.raises(ContractViolation):
            engine.run_round()
        assert engine.state.rng.getstate() == rng_before

    def test_retry_after_rejection_matches_clean_run(self, history, config):
        class FailsOnce(StubPredictor):
            def predict(self, vector):
                self.calls += 1
                if self.calls == 2:
                    return np.ones(24)
                return self.scores

        clean = SimulationEngine(history, StubPredictor(), config)
        retried = SimulationEngine(history, FailsOnce(), config)
        with pytest.raises(ContractViolation):
            retried.run_round()
        assert retried.run_round().outcomes == clean.run_round().outcomes
        assert retried.state.rng.getstate() == clean.state.rng.getstate()

    def test_committed_round_advances_rng(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        rng_before = engine.state.rng.getstate()
        engine.run_round()
        assert engine.state.rng.getstate() != rng_before


class TestGenerationsAndModes:
    def test_advance_generation(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.run_round()
        weights = [a.weights for a in engine.agents]
        assert engine.advance_generation() == 2
        assert engine.logs[-1].message == "Generation 1 complete. Starting generation 2."
        engine.run_round()
        assert [e.generation for e in engine.evolution] == [1, 1, 2, 2]
        assert [a.weights for a in engine.agents] == weights

    def test_toggle_infinite_mode(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        assert engine.toggle_infinite_mode() is True
        assert engine.logs[-1].message == "Infinite mode enabled."
        assert engine.toggle_infinite_mode() is False
        assert engine.logs[-1].message == "Infinite mode disabled."

    def test_infinite_run_stops_on_request(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.toggle_infinite_mode()
        result = engine.run(should_stop=lambda: engine.current_round >= 12)
        assert result.stopped_early is True
        assert engine.current_round == 12

    def test_run_counts(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        result = engine.run(4)
        assert isinstance(result, SimResult)
        assert result.stopped_early is False
        assert len(result.rounds) == 4
        assert result.statistics["rounds"] == 4


class TestExtendHistory:
    def test_recomputes_derived_state(self, config):
        history = synthetic_history(100, seed=1)
        engine = SimulationEngine(history, StubPredictor(), config)
        assert engine.state.retrain_interval == 10
        more = synthetic_history(
            100, seed=2, first_index=101,
            start=history[-1].draw_date + timedelta(days=2),
        )
        engine.extend_history(more)
        assert engine.state.features.shape == (200, 140)
        assert engine.state.max_index == 200
        assert engine.state.retrain_interval == 20
        assert engine.receipts[-1]["receipt_type"] == "history_extend"

    def test_rejects_bad_records(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        with pytest.raises(ContractViolation):
            engine.extend_history([DrawRecord(4, EPOCH, LOW[:3])])
        assert len(engine.state.history) == 3


class TestViews:
    def test_agents_are_copies(self, history, config):
        engine = SimulationEngine(history, StubPredictor(), config)
        engine.agents[0].score = 99.0
        assert engine.state.agents[0].score == 0.0

    def test_run_simulation(self, history, config):
        result = run_simulation(history, StubPredictor(), config)
        assert result.statistics["rounds"] == 3
        assert result.final_state.metrics.total_rounds == 3


class TestWithDensePredictor:
    def test_retrains_real_model(self):
        history = synthetic_history(30, seed=6)
        model = DensePredictor(140, config=TrainingConfig(seed=6))
        engine = SimulationEngine(history, model, SimConfig(population_size=3, random_seed=6))
        result = engine.run(12)
        assert engine.state.retrain_count == 1
        assert model.updates > 0
        assert 0.0 <= result.statistics["accuracy"] <= 1.0
        assert len(engine.training_buffer) == 2
