"""
Risk scorer.

A transparent heuristic: each contingency costs two points from a
maximum of 10, floored at 1. Higher score means a safer offer.
"""

from collections.abc import Collection
from typing import Union

MAX_RISK_SCORE = 10
MIN_RISK_SCORE = 1
POINTS_PER_CONTINGENCY = 2


def calculate_risk_score(contingencies: Union[int, Collection[str]]) -> int:
    """
    Score offer risk from its contingencies.

    Args:
        contingencies: Contingency count, or the contingency labels

    Returns:
        Integer in [1, 10]; 0 contingencies -> 10, 5 or more -> 1
    """
    if isinstance(contingencies, int):
        count = contingencies
    else:
        count = len(contingencies)

    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, MAX_RISK_SCORE - count * POINTS_PER_CONTINGENCY))
