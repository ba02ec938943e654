"""
drawsim/history.py - Synthetic Draw History

Seeded generator of valid DrawRecords for demos and tests. Loading real
history from files is left to the caller.
"""

from datetime import date, timedelta
from typing import List, Sequence

import numpy as np

from features import DrawRecord, FeatureConfig, DEFAULT_FEATURES, EPOCH

DRAW_GAPS = (2, 2, 3)  # Mon/Wed/Fri cadence, in days


def synthetic_history(n_draws: int, seed: int = 0, start: date = EPOCH,
                      first_index: int = 1, gaps: Sequence[int] = DRAW_GAPS,
                      config: FeatureConfig = DEFAULT_FEATURES) -> List[DrawRecord]:
    """
    Uniformly random draws on a fixed weekly cadence.

    Args:
        n_draws: Number of records
        seed: numpy Generator seed
        start: Date of the first draw
        first_index: sequence_index of the first draw
        gaps: Day gaps cycled between consecutive draws

    Returns:
        List of DrawRecords, oldest first, with consecutive sequence indices
    """
    rng = np.random.default_rng(seed)
    values = np.arange(config.ball_min, config.ball_max + 1)
    records = []
    draw_date = start
    for i in range(n_draws):
        balls = np.sort(rng.choice(values, size=config.balls_per_draw, replace=False))
        records.append(DrawRecord(
            sequence_index=first_index + i,
            draw_date=draw_date,
            balls=tuple(int(b) for b in balls),
        ))
        draw_date = draw_date + timedelta(days=gaps[i % len(gaps)])
    return records
