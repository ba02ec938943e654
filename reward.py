"""
reward.py - Convex Reward/Penalty Curve

Maps a round's match count to a score delta. Above the threshold the payoff
doubles per extra match; at or below it the penalty doubles per missing match.

    13 -> 2, 14 -> 4, 15 -> 8, 12 -> -1, 11 -> -2, ..., 0 -> -4096
"""

from typing import Dict

from receipts import ContractViolation

# =============================================================================
# CONSTANTS
# =============================================================================

REWARD_THRESHOLD = 12  # matches strictly above this are rewarded
MAX_MATCHES = 15


# =============================================================================
# CORE FUNCTION 1: reward
# =============================================================================

def reward(match_count: int, threshold: int = REWARD_THRESHOLD,
           max_matches: int = MAX_MATCHES) -> float:
    """
    Score delta for one prediction.

    Args:
        match_count: Size of the intersection with the drawn set, 0..max_matches
        threshold: Match count at which rewards stop and penalties begin

    Returns:
        float: 2**(m - threshold) if m > threshold else -(2**(threshold - m))

    Raises:
        ContractViolation: match_count outside [0, max_matches]
    """
    if isinstance(match_count, bool) or not 0 <= match_count <= max_matches:
        raise ContractViolation(f"match_count must be in [0, {max_matches}], got {match_count!r}")
    if match_count > threshold:
        return float(2.0 ** (match_count - threshold))
    return -float(2.0 ** (threshold - match_count))


# =============================================================================
# CORE FUNCTION 2: reward_table
# =============================================================================

def reward_table(threshold: int = REWARD_THRESHOLD,
                 max_matches: int = MAX_MATCHES) -> Dict[int, float]:
    """Full curve, one entry per possible match count."""
    return {m: reward(m, threshold, max_matches) for m in range(max_matches + 1)}


# =============================================================================
# CORE FUNCTION 3: classify_reward
# =============================================================================

def classify_reward(delta: float) -> str:
    if delta > 0:
        return "reward"
    if delta < 0:
        return "penalty"
    return "neutral"


__all__ = [
    "REWARD_THRESHOLD",
    "MAX_MATCHES",
    "reward",
    "reward_table",
    "classify_reward",
]
