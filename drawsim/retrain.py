"""
drawsim/retrain.py - Periodic Incremental Retraining

Buffers observed rounds and hands them to the predictor every
retrain_interval rounds. The buffer is cleared after every attempt, including
failed ones: data from a failed fit is discarded, not retried.
"""

import asyncio
import inspect
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from features import DrawRecord, FeatureConfig, DEFAULT_FEATURES, normalize
from receipts import StopRule, emit_receipt

from .constants import EnginePhase, MIN_RETRAIN_INTERVAL, RETRAIN_DIVISOR
from .sampling import count_matches
from .types_config import SimConfig
from .types_state import LogEntry, SimState, TrainingRow

logger = logging.getLogger(__name__)


class RetrainFailure(Exception):
    """The predictor's incremental fit raised or reported failure. Recovered locally."""
    pass


# =============================================================================
# CADENCE
# =============================================================================

def retrain_interval(history_length: int, minimum: int = MIN_RETRAIN_INTERVAL,
                     divisor: int = RETRAIN_DIVISOR) -> int:
    """Rounds between retrains: max(minimum, history_length // divisor)."""
    return max(minimum, history_length // divisor)


def should_retrain(state: SimState) -> bool:
    """Due on every multiple of the interval, and only with something buffered."""
    return state.current_round % state.retrain_interval == 0 and bool(state.training_buffer)


# =============================================================================
# EXAMPLES
# =============================================================================

def multi_hot(balls: Sequence[int], config: FeatureConfig = DEFAULT_FEATURES) -> np.ndarray:
    """Target vector: 1.0 at every drawn ball's slot."""
    target = np.zeros(config.n_slots, dtype=np.float64)
    target[np.asarray(balls, dtype=np.int64) - config.ball_min] = 1.0
    return target


def history_examples(records: Sequence[DrawRecord],
                     config: FeatureConfig = DEFAULT_FEATURES) -> List[Tuple[np.ndarray, np.ndarray]]:
    """(feature vector, multi-hot target) per draw, normalized as one history."""
    if not records:
        return []
    vectors = normalize(records, config)
    return [(vectors[i], multi_hot(r.balls, config)) for i, r in enumerate(records)]


def build_training_examples(rows: Sequence[TrainingRow],
                            config: FeatureConfig = DEFAULT_FEATURES) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Run buffered draws through the feature pipeline.

    The buffered draws are normalized as their own history, so frequency
    windows and the index column only see what was buffered.
    """
    return history_examples([row.draw for row in rows], config)


# =============================================================================
# RETRAINING
# =============================================================================

async def _wait(awaitable):
    return await awaitable


def _resolve(result):
    """
    Block until an asynchronous fit completes; pass synchronous results through.

    Inside a running event loop the fit is finished on a private loop in a
    worker thread, since asyncio.run cannot nest.
    """
    if not inspect.isawaitable(result):
        return result
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_wait(result))
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, _wait(result)).result()


def _check(result) -> None:
    if result is False:
        raise RetrainFailure("predictor reported failure")


def _record(state: SimState, rows: List[TrainingRow], error: Optional[Exception],
            config: SimConfig) -> bool:
    """Log and receipt one finished attempt. Returns True on success."""
    buffer_matches = sum(count_matches(row.prediction, row.draw.balls) for row in rows)
    if error is None:
        state.retrain_count += 1
        state.logs.append(LogEntry(f"Model updated with {len(rows)} new records."))
    else:
        detail = str(error) or type(error).__name__
        state.retrain_failures += 1
        state.logs.append(LogEntry(f"Error updating model: {detail}"))
        logger.warning(f"Retraining failed at round {state.current_round}: {detail}")

    state.receipt_ledger.append(emit_receipt("retrain", {
        "tenant_id": config.tenant_id,
        "round": state.current_round,
        "status": "ok" if error is None else "failed",
        "buffer_size": len(rows),
        "buffer_matches": buffer_matches,
        "error": None if error is None else str(error),
    }))
    return error is None


def run_retraining(state: SimState, predictor, config: SimConfig) -> bool:
    """
    Fit the predictor on the buffered rounds.

    Returns True on success, False on a recovered RetrainFailure. A StopRule
    raised while fitting still clears the buffer, then propagates.
    """
    rows = list(state.training_buffer)
    state.phase = EnginePhase.RETRAINING
    error = None
    try:
        examples = build_training_examples(rows, state.feature_config)
        _check(_resolve(predictor.incremental_fit(examples)))
    except StopRule:
        raise
    except Exception as exc:
        error = exc
    finally:
        state.training_buffer.clear()
        state.phase = EnginePhase.IDLE
    return _record(state, rows, error, config)


async def run_retraining_async(state: SimState, predictor, config: SimConfig) -> bool:
    """run_retraining for callers already inside an event loop: awaits the fit."""
    rows = list(state.training_buffer)
    state.phase = EnginePhase.RETRAINING
    error = None
    try:
        examples = build_training_examples(rows, state.feature_config)
        result = predictor.incremental_fit(examples)
        if inspect.isawaitable(result):
            result = await result
        _check(result)
    except StopRule:
        raise
    except Exception as exc:
        error = exc
    finally:
        state.training_buffer.clear()
        state.phase = EnginePhase.IDLE
    return _record(state, rows, error, config)


__all__ = [
    "RetrainFailure",
    "retrain_interval",
    "should_retrain",
    "multi_hot",
    "history_examples",
    "build_training_examples",
    "run_retraining",
    "run_retraining_async",
]
