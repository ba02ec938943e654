"""
drawsim/cycle.py - Core Simulation Loop

One call to simulate_round advances exactly one round:
    pick the draw, let every agent predict, score, commit, maybe retrain.

A round is computed into a RoundAccumulator first and committed in one step,
so a ContractViolation leaves scores, metrics, buffer and counter untouched.
"""

import random
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from features import DrawRecord, FeatureConfig, DEFAULT_FEATURES, feature_width, normalize
from receipts import ContractViolation, emit_receipt
from reward import reward

from .constants import EnginePhase
from .metrics import ModelMetrics, match_rate
from .retrain import retrain_interval, run_retraining, run_retraining_async, should_retrain
from .sampling import candidate_weights, count_matches, random_pick, sample_unique
from .types_config import SimConfig, SCENARIO_BASELINE
from .types_result import RoundResult, SimResult
from .types_state import (
    Agent,
    AgentOutcome,
    EvolutionRecord,
    LogEntry,
    RoundAccumulator,
    SimState,
    TrainingRow,
)
from .validation import validate_config, validate_history, validate_width


# =============================================================================
# INITIALIZATION
# =============================================================================

def initialize_agents(population_size: int, width: int, rng: random.Random,
                      weight_scale: int) -> List[Agent]:
    """Fixed population with ids 1..n and random integer weights in [0, weight_scale]."""
    return [
        Agent(
            agent_id=i + 1,
            weights=tuple(rng.randint(0, weight_scale) for _ in range(width)),
        )
        for i in range(population_size)
    ]


def initialize_state(history: Iterable[DrawRecord], config: SimConfig = SCENARIO_BASELINE,
                     feature_config: FeatureConfig = DEFAULT_FEATURES) -> SimState:
    """
    Validate inputs and build the state for a fresh run.

    Args:
        history: Whole draw history, oldest first
        config: SimConfig with parameters
        feature_config: Ball range and window set

    Returns:
        SimState with agents, precomputed feature matrix and retrain cadence

    Raises:
        ContractViolation: empty/malformed history or invalid config
    """
    validate_config(config)
    records = list(history)
    validate_history(records, feature_config)

    rng = random.Random(config.random_seed)
    width = feature_width(feature_config)
    state = SimState(
        history=records,
        features=normalize(records, feature_config),
        feature_config=feature_config,
        agents=initialize_agents(config.population_size, width, rng, config.weight_scale),
        retrain_interval=retrain_interval(
            len(records), config.min_retrain_interval, config.retrain_divisor
        ),
        max_index=max(r.sequence_index for r in records),
        rng=rng,
    )
    state.receipt_ledger.append(emit_receipt("sim_init", {
        "tenant_id": config.tenant_id,
        "scenario": config.scenario_name,
        "history_length": len(records),
        "population_size": config.population_size,
        "feature_width": width,
        "retrain_interval": state.retrain_interval,
        "random_seed": config.random_seed,
    }))
    return state


# =============================================================================
# ROUND
# =============================================================================

def _play_round(state: SimState, predictor, config: SimConfig) -> RoundAccumulator:
    """Compute every agent's outcome without touching shared state, RNG included."""
    fc = state.feature_config
    position = state.current_round % len(state.history)
    draw = state.history[position]
    vector = state.features[position]
    acc = RoundAccumulator(round_index=state.current_round, position=position, draw=draw)
    rng = random.Random()
    rng.setstate(state.rng.getstate())

    for agent in sorted(state.agents, key=lambda a: a.agent_id):
        validate_width(agent.weights, len(vector), f"Agent {agent.agent_id} weights")
        weighted = vector * (np.asarray(agent.weights, dtype=np.float64) / config.weight_scale)
        scores = np.asarray(predictor.predict(weighted), dtype=np.float64)
        weights = candidate_weights(scores, fc.n_slots, config.exploration)
        prediction = sample_unique(
            rng, weights, fc.balls_per_draw, fc.ball_min, config.max_sampling_attempts
        )
        matches = count_matches(prediction, draw.balls)

        baseline = random_pick(rng, fc.balls_per_draw, fc.ball_min, fc.ball_max)
        acc.add(AgentOutcome(
            agent_id=agent.agent_id,
            prediction=prediction,
            matches=matches,
            reward=reward(matches, max_matches=fc.balls_per_draw),
            random_prediction=baseline,
            random_matches=count_matches(baseline, draw.balls),
        ))
        acc.trace = {"input": weighted.tolist(), "output": scores.tolist()}

    acc.rng_state = rng.getstate()
    return acc


def _commit_round(state: SimState, acc: RoundAccumulator, config: SimConfig) -> Tuple[float, float, ModelMetrics]:
    """Apply an accumulated round to the state in agent-id order."""
    fc = state.feature_config
    population = len(state.agents)
    rate = match_rate(acc.total_matches, population, fc.balls_per_draw)
    random_rate = match_rate(acc.total_random_matches, population, fc.balls_per_draw)

    by_id = {o.agent_id: o for o in acc.outcomes}
    for agent in sorted(state.agents, key=lambda a: a.agent_id):
        outcome = by_id[agent.agent_id]
        agent.score += outcome.reward
        agent.last_prediction = outcome.prediction
        state.evolution.append(EvolutionRecord(state.generation, agent.agent_id, agent.score))
        if outcome.matches >= config.log_match_threshold:
            state.logs.append(LogEntry(
                f"Agent {agent.agent_id} matched {outcome.matches} numbers!", outcome.matches
            ))

    # representative prediction: lowest agent id
    state.training_buffer.append(TrainingRow(acc.draw, acc.outcomes[0].prediction))
    snapshot = state.metrics.update(rate, random_rate)
    state.rate_trace.append((rate, random_rate))
    state.last_trace = acc.trace
    state.rng.setstate(acc.rng_state)

    state.receipt_ledger.append(emit_receipt("sim_round", {
        "tenant_id": config.tenant_id,
        "round": acc.round_index,
        "generation": state.generation,
        "sequence_index": acc.draw.sequence_index,
        "total_matches": acc.total_matches,
        "total_random_matches": acc.total_random_matches,
        "match_rate": rate,
        "random_rate": random_rate,
        "best_matches": max(o.matches for o in acc.outcomes),
    }))
    state.current_round += 1
    return rate, random_rate, snapshot


def play_round(state: SimState, predictor, config: SimConfig = SCENARIO_BASELINE) -> RoundResult:
    """
    Play and commit exactly one round, without retraining.

    Args:
        state: Current SimState (mutated in place on success)
        predictor: Anything with predict(vector) and incremental_fit(examples)
        config: SimConfig with parameters

    Returns:
        RoundResult for the committed round, retrained=None

    Raises:
        ContractViolation: bad widths, bad predictor output, sampling
            exhaustion, or a round already in progress. State is unchanged.
    """
    if state.phase is not EnginePhase.IDLE:
        raise ContractViolation(f"Cannot start a round while {state.phase.value}")
    if not state.history:
        raise ContractViolation("History is empty")

    state.phase = EnginePhase.RUNNING_ROUND
    try:
        acc = _play_round(state, predictor, config)
        rate, random_rate, snapshot = _commit_round(state, acc, config)
    finally:
        state.phase = EnginePhase.IDLE

    return RoundResult(
        round_index=acc.round_index,
        draw=acc.draw,
        outcomes=tuple(acc.outcomes),
        match_rate=rate,
        random_rate=random_rate,
        metrics=snapshot,
    )


def simulate_round(state: SimState, predictor, config: SimConfig = SCENARIO_BASELINE) -> RoundResult:
    """Advance exactly one round: play_round, then retrain if due."""
    result = play_round(state, predictor, config)
    if should_retrain(state):
        result = replace(result, retrained=run_retraining(state, predictor, config))
    return result


async def simulate_round_async(state: SimState, predictor,
                               config: SimConfig = SCENARIO_BASELINE) -> RoundResult:
    """simulate_round for event-loop callers; an async fit is awaited in place."""
    result = play_round(state, predictor, config)
    if should_retrain(state):
        result = replace(result, retrained=await run_retraining_async(state, predictor, config))
    return result


# =============================================================================
# GENERATIONS, MODES, HISTORY
# =============================================================================

def advance_generation(state: SimState, config: SimConfig = SCENARIO_BASELINE) -> int:
    """
    Bump the generation counter and log the transition.

    Agent weights are left as they are; no selection or crossover happens here.
    """
    finished = state.generation
    state.generation += 1
    state.logs.append(LogEntry(
        f"Generation {finished} complete. Starting generation {state.generation}."
    ))
    state.receipt_ledger.append(emit_receipt("generation_advance", {
        "tenant_id": config.tenant_id,
        "round": state.current_round,
        "from_generation": finished,
        "to_generation": state.generation,
    }))
    return state.generation


def toggle_infinite_mode(state: SimState, config: SimConfig = SCENARIO_BASELINE) -> bool:
    state.infinite_mode = not state.infinite_mode
    status = "enabled" if state.infinite_mode else "disabled"
    state.logs.append(LogEntry(f"Infinite mode {status}."))
    state.receipt_ledger.append(emit_receipt("infinite_mode", {
        "tenant_id": config.tenant_id,
        "round": state.current_round,
        "infinite_mode": state.infinite_mode,
    }))
    return state.infinite_mode


def extend_history(state: SimState, records: Sequence[DrawRecord],
                   config: SimConfig = SCENARIO_BASELINE) -> None:
    """
    Append draws between rounds.

    The feature matrix, max_index and retrain_interval are recomputed, since
    the index column and the cadence both depend on the whole history.
    """
    if state.phase is not EnginePhase.IDLE:
        raise ContractViolation(f"Cannot extend history while {state.phase.value}")
    new_records = list(records)
    validate_history(new_records, state.feature_config)

    history = state.history + new_records
    features = normalize(history, state.feature_config)
    state.history = history
    state.features = features
    state.max_index = max(r.sequence_index for r in history)
    state.retrain_interval = retrain_interval(
        len(history), config.min_retrain_interval, config.retrain_divisor
    )
    state.receipt_ledger.append(emit_receipt("history_extend", {
        "tenant_id": config.tenant_id,
        "added": len(new_records),
        "history_length": len(history),
        "max_index": state.max_index,
        "retrain_interval": state.retrain_interval,
    }))


# =============================================================================
# ENGINE
# =============================================================================

def _statistics(state: SimState, rounds: Sequence[RoundResult]) -> dict:
    best = max(state.agents, key=lambda a: (a.score, -a.agent_id))
    return {
        "rounds": state.current_round,
        "generation": state.generation,
        "accuracy": state.metrics.accuracy,
        "random_accuracy": state.metrics.random_accuracy,
        "best_agent": best.agent_id,
        "best_score": best.score,
        "max_matches": max((o.matches for r in rounds for o in r.outcomes), default=0),
        "retrains": state.retrain_count,
        "retrain_failures": state.retrain_failures,
        "log_entries": len(state.logs),
    }


class SimulationEngine:
    """
    Owns one simulation instance: its agents, buffer and metrics.

    Rounds run strictly one after another. The read-only views (agents,
    evolution, metrics, logs) return copies for rendering layers.
    """

    def __init__(self, history: Iterable[DrawRecord], predictor,
                 config: SimConfig = SCENARIO_BASELINE,
                 feature_config: FeatureConfig = DEFAULT_FEATURES):
        self.config = config
        self.predictor = predictor
        self.state = initialize_state(history, config, feature_config)
        self._rounds: List[RoundResult] = []

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def run_round(self) -> RoundResult:
        """Play one round, then retrain if due. The round is kept even if retraining raises."""
        result = play_round(self.state, self.predictor, self.config)
        self._rounds.append(result)
        if should_retrain(self.state):
            result = replace(result, retrained=run_retraining(self.state, self.predictor, self.config))
            self._rounds[-1] = result
        return result

    async def run_round_async(self) -> RoundResult:
        result = play_round(self.state, self.predictor, self.config)
        self._rounds.append(result)
        if should_retrain(self.state):
            retrained = await run_retraining_async(self.state, self.predictor, self.config)
            result = replace(result, retrained=retrained)
            self._rounds[-1] = result
        return result

    def run(self, n_rounds: Optional[int] = None,
            should_stop: Optional[Callable[[], bool]] = None) -> SimResult:
        """
        Play n_rounds (default config.n_rounds), or until should_stop() is true.

        In infinite mode the round count is ignored and only should_stop ends
        the run. should_stop is checked between rounds only.
        """
        target = self.config.n_rounds if n_rounds is None else n_rounds
        played = 0
        stopped = False
        while self.state.infinite_mode or played < target:
            if should_stop is not None and should_stop():
                stopped = True
                break
            self.run_round()
            played += 1
        return self.result(stopped_early=stopped)

    def advance_generation(self) -> int:
        return advance_generation(self.state, self.config)

    def toggle_infinite_mode(self) -> bool:
        return toggle_infinite_mode(self.state, self.config)

    def extend_history(self, records: Sequence[DrawRecord]) -> None:
        extend_history(self.state, records, self.config)

    def result(self, stopped_early: bool = False) -> SimResult:
        return SimResult(
            final_state=self.state,
            rounds=tuple(self._rounds),
            statistics=_statistics(self.state, self._rounds),
            config=self.config,
            stopped_early=stopped_early,
        )

    # -------------------------------------------------------------------------
    # Reporting views
    # -------------------------------------------------------------------------

    @property
    def agents(self) -> Tuple[Agent, ...]:
        return tuple(replace(a) for a in self.state.agents)

    @property
    def evolution(self) -> Tuple[EvolutionRecord, ...]:
        return tuple(self.state.evolution)

    @property
    def metrics(self) -> ModelMetrics:
        return self.state.metrics.snapshot()

    @property
    def logs(self) -> Tuple[LogEntry, ...]:
        return tuple(self.state.logs)

    @property
    def receipts(self) -> Tuple[dict, ...]:
        return tuple(self.state.receipt_ledger)

    @property
    def training_buffer(self) -> Tuple[TrainingRow, ...]:
        return tuple(self.state.training_buffer)

    @property
    def current_round(self) -> int:
        return self.state.current_round

    @property
    def generation(self) -> int:
        return self.state.generation


# =============================================================================
# ENTRY POINT
# =============================================================================

def run_simulation(history: Iterable[DrawRecord], predictor,
                   config: SimConfig = SCENARIO_BASELINE,
                   feature_config: FeatureConfig = DEFAULT_FEATURES,
                   n_rounds: Optional[int] = None) -> SimResult:
    """
    Run a complete simulation.

    Args:
        history: Whole draw history, oldest first
        predictor: Predictor capability
        config: SimConfig with parameters
        n_rounds: Overrides config.n_rounds

    Returns:
        SimResult with final state, per-round results and statistics
    """
    engine = SimulationEngine(history, predictor, config, feature_config)
    return engine.run(n_rounds)
