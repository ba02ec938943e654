"""
features.py - The Feature Pipeline

Converts raw draw history into fixed-width numeric vectors for the predictor,
and partially inverts them (balls and sequence index) for reporting.

Vector layout (W = number of frequency windows, K = balls per draw):
    [K ball values, date, index, sum, season, weekday, K frequencies per window]
Width = K + 5 + K * W  (140 for the default 15 balls and 8 windows).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from receipts import ContractViolation

# =============================================================================
# CONSTANTS
# =============================================================================

BALL_MIN = 1
BALL_MAX = 25
BALLS_PER_DRAW = 15
FREQUENCY_WINDOWS = (3, 5, 7, 10, 15, 20, 50, 100)
EPOCH = date(2003, 9, 29)  # first draw of the reference lottery
DAYS_PER_YEAR = 365.0
SEASONS = 4
WEEKDAYS = 7
SCALAR_FEATURES = 5  # date, index, sum, season, weekday


# =============================================================================
# TYPES
# =============================================================================

@dataclass(frozen=True)
class DrawRecord:
    """One historical draw. Immutable once ingested."""
    sequence_index: int
    draw_date: date
    balls: Tuple[int, ...]

    def __post_init__(self):
        if isinstance(self.draw_date, datetime):
            object.__setattr__(self, "draw_date", self.draw_date.date())
        if not isinstance(self.balls, tuple):
            object.__setattr__(self, "balls", tuple(self.balls))


@dataclass(frozen=True)
class FeatureConfig:
    """Ball range, window set and date epoch used to build vectors."""
    windows: Tuple[int, ...] = FREQUENCY_WINDOWS
    ball_min: int = BALL_MIN
    ball_max: int = BALL_MAX
    balls_per_draw: int = BALLS_PER_DRAW
    epoch: date = field(default=EPOCH)

    def __post_init__(self):
        if not isinstance(self.windows, tuple):
            object.__setattr__(self, "windows", tuple(self.windows))

    @property
    def date_column(self) -> int:
        return self.balls_per_draw

    @property
    def index_column(self) -> int:
        return self.balls_per_draw + 1

    @property
    def sum_column(self) -> int:
        return self.balls_per_draw + 2

    @property
    def season_column(self) -> int:
        return self.balls_per_draw + 3

    @property
    def weekday_column(self) -> int:
        return self.balls_per_draw + 4

    @property
    def frequency_start(self) -> int:
        return self.balls_per_draw + SCALAR_FEATURES

    @property
    def n_slots(self) -> int:
        """Number of distinct ball values (predictor output width)."""
        return self.ball_max - self.ball_min + 1


DEFAULT_FEATURES = FeatureConfig()


# =============================================================================
# VALIDATION
# =============================================================================

def validate_feature_config(config: FeatureConfig) -> None:
    """Raise ContractViolation if the window set or ball range is unusable."""
    if config.ball_min < 0 or config.ball_max < config.ball_min:
        raise ContractViolation(
            f"Invalid ball range [{config.ball_min}, {config.ball_max}]"
        )
    if config.balls_per_draw < 1 or config.balls_per_draw > config.n_slots:
        raise ContractViolation(
            f"balls_per_draw={config.balls_per_draw} does not fit range of {config.n_slots} values"
        )
    if not config.windows or any(w < 1 for w in config.windows):
        raise ContractViolation(f"Windows must be positive, got {config.windows}")
    if list(config.windows) != sorted(set(config.windows)):
        raise ContractViolation(f"Windows must be strictly ascending, got {config.windows}")


def validate_draw(record: DrawRecord, config: FeatureConfig = DEFAULT_FEATURES) -> None:
    """
    Check one DrawRecord against the data model.

    Raises:
        ContractViolation: negative/non-integer index, missing date, wrong ball
            count, out-of-range or duplicated balls
    """
    index = record.sequence_index
    if isinstance(index, bool) or not isinstance(index, (int, np.integer)) or index < 0:
        raise ContractViolation(f"Draw has invalid sequence_index {index!r}")
    if not isinstance(record.draw_date, date):
        raise ContractViolation(f"Draw {index} has invalid draw_date {record.draw_date!r}")
    balls = record.balls
    if len(balls) != config.balls_per_draw:
        raise ContractViolation(
            f"Draw {index} has {len(balls)} balls, expected {config.balls_per_draw}"
        )
    for ball in balls:
        if isinstance(ball, bool) or not isinstance(ball, (int, np.integer)):
            raise ContractViolation(f"Draw {index} has non-integer ball {ball!r}")
        if not config.ball_min <= ball <= config.ball_max:
            raise ContractViolation(
                f"Draw {index} ball {ball} outside [{config.ball_min}, {config.ball_max}]"
            )
    if len(set(balls)) != len(balls):
        raise ContractViolation(f"Draw {index} has duplicate balls {sorted(balls)}")


# =============================================================================
# SCALAR FEATURES
# =============================================================================

def feature_width(config: FeatureConfig = DEFAULT_FEATURES) -> int:
    """Fixed vector width for a window set."""
    return config.balls_per_draw + SCALAR_FEATURES + config.balls_per_draw * len(config.windows)


def max_ball_sum(config: FeatureConfig = DEFAULT_FEATURES) -> int:
    """Largest possible sum of balls_per_draw distinct values in the ball range."""
    low = config.ball_max - config.balls_per_draw + 1
    return sum(range(low, config.ball_max + 1))


def normalize_date(draw_date: date, epoch: date = EPOCH) -> float:
    """Fractional years since the epoch. Not clamped."""
    return (draw_date - epoch).days / DAYS_PER_YEAR


def season_index(draw_date: date) -> int:
    """0 = Dec-Feb, 1 = Mar-May, 2 = Jun-Aug, 3 = Sep-Nov."""
    return (draw_date.month % 12) // 3


def weekday_index(draw_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return draw_date.isoweekday() % WEEKDAYS


# =============================================================================
# FREQUENCY FEATURES
# =============================================================================

def presence_cumsum(records: Sequence[DrawRecord],
                    config: FeatureConfig = DEFAULT_FEATURES) -> np.ndarray:
    """
    Prefix sums of per-ball presence.

    Row r holds, for every ball value, how many of records[:r] contained it, so
    the count inside any trailing slice [start, end) is row[end] - row[start].
    """
    presence = np.zeros((len(records) + 1, config.n_slots), dtype=np.int64)
    for row, record in enumerate(records, start=1):
        presence[row, np.asarray(record.balls, dtype=np.int64) - config.ball_min] = 1
    return np.cumsum(presence, axis=0)


def frequency_block(cumulative: np.ndarray, position: int, balls: Sequence[int],
                    window: int, config: FeatureConfig = DEFAULT_FEATURES) -> np.ndarray:
    """
    Normalized occurrence counts of `balls` over the trailing window ending at `position`.

    Only records at or before `position` are counted. A window longer than the
    available history uses everything available. Counts are divided by the
    number of distinct balls seen in the window; an empty window yields zeros.
    """
    start = max(0, position - window + 1)
    counts = cumulative[position + 1] - cumulative[start]
    distinct = int(np.count_nonzero(counts))
    if distinct == 0:
        return np.zeros(len(balls), dtype=np.float64)
    slots = np.asarray(balls, dtype=np.int64) - config.ball_min
    return counts[slots].astype(np.float64) / distinct


# =============================================================================
# CORE FUNCTION 1: normalize
# =============================================================================

def normalize(history: Iterable[DrawRecord],
              config: FeatureConfig = DEFAULT_FEATURES) -> np.ndarray:
    """
    One feature vector per record, positionally aligned with the history.

    Args:
        history: Ordered DrawRecords (oldest first)
        config: Ball range and window set

    Returns:
        np.ndarray of shape (len(history), feature_width(config)), float64

    Edge cases:
        - Empty history -> array of shape (0, width)
        - Max sequence_index of 0 -> index column divided by 1
    """
    validate_feature_config(config)
    records = list(history)
    width = feature_width(config)
    if not records:
        return np.zeros((0, width), dtype=np.float64)
    for record in records:
        validate_draw(record, config)

    k = config.balls_per_draw
    balls = np.asarray([r.balls for r in records], dtype=np.float64)
    indices = np.asarray([r.sequence_index for r in records], dtype=np.float64)
    max_index = indices.max() or 1.0

    vectors = np.empty((len(records), width), dtype=np.float64)
    vectors[:, :k] = balls / config.ball_max
    vectors[:, config.date_column] = [normalize_date(r.draw_date, config.epoch) for r in records]
    vectors[:, config.index_column] = indices / max_index
    vectors[:, config.sum_column] = balls.sum(axis=1) / max_ball_sum(config)
    vectors[:, config.season_column] = [season_index(r.draw_date) / (SEASONS - 1) for r in records]
    vectors[:, config.weekday_column] = [weekday_index(r.draw_date) / (WEEKDAYS - 1) for r in records]

    cumulative = presence_cumsum(records, config)
    for position, record in enumerate(records):
        for slot, window in enumerate(config.windows):
            begin = config.frequency_start + slot * k
            vectors[position, begin:begin + k] = frequency_block(
                cumulative, position, record.balls, window, config
            )

    return vectors


# =============================================================================
# CORE FUNCTION 2: denormalize
# =============================================================================

def denormalize(vectors: Sequence[Sequence[float]], max_index_used: int,
                config: FeatureConfig = DEFAULT_FEATURES) -> List[List[float]]:
    """
    Partial inverse of normalize for reporting.

    Balls are scaled back by ball_max and rounded, the index column by
    max_index_used (0 treated as 1) and rounded. Every other column is
    passed through still normalized.

    Raises:
        ContractViolation: if a vector does not have the layout width
    """
    if len(vectors) == 0:
        return []
    rows = np.asarray(vectors, dtype=np.float64)
    width = feature_width(config)
    if rows.ndim != 2 or rows.shape[1] != width:
        raise ContractViolation(f"Expected vectors of width {width}, got shape {rows.shape}")

    k = config.balls_per_draw
    scale = max_index_used if max_index_used > 0 else 1
    restored = []
    for row in rows:
        balls = [int(round(v * config.ball_max)) for v in row[:k]]
        restored.append([
            *balls,
            float(row[config.date_column]),
            int(round(row[config.index_column] * scale)),
            *(float(v) for v in row[config.sum_column:]),
        ])
    return restored


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Constants
    "BALL_MIN",
    "BALL_MAX",
    "BALLS_PER_DRAW",
    "FREQUENCY_WINDOWS",
    "EPOCH",
    "DEFAULT_FEATURES",
    # Types
    "DrawRecord",
    "FeatureConfig",
    # Validation
    "validate_feature_config",
    "validate_draw",
    # Scalar features
    "feature_width",
    "max_ball_sum",
    "normalize_date",
    "season_index",
    "weekday_index",
    # Frequency features
    "presence_cumsum",
    "frequency_block",
    # Core functions
    "normalize",
    "denormalize",
]
