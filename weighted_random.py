"""
Weighted random selection

Draws without replacement with probability proportional to (shifted) weight.
Uses a general-purpose random source; the output only suggests game numbers.
"""

import random
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from config import NUMBERS_PER_BET


def select_weighted(items: Sequence[Tuple[Any, float]], count: int, rng: Optional[random.Random] = None) -> List[Any]:
    """
    Pick `count` distinct values from (value, weight) pairs.
    Weights may be negative; each draw shifts the remaining weights so the
    smallest is at least 1.
    """
    if count >= len(items):
        return [value for value, _ in items]

    rng = rng or random
    remaining = list(items)
    selected: List[Any] = []

    while len(selected) < count:
        min_weight = min(w for _, w in remaining)
        offset = max(0, 1 - min_weight)
        total = sum(w + offset for _, w in remaining)

        r = rng.random() * total
        index = len(remaining) - 1  # float error fallback
        for i, (_, w) in enumerate(remaining):
            r -= w + offset
            if r <= 0:
                index = i
                break

        selected.append(remaining.pop(index)[0])

    return selected


def generate_numbers(scores: Iterable[dict], count: int = NUMBERS_PER_BET, rng: Optional[random.Random] = None) -> List[int]:
    items = [(s["number"], s["final_score"]) for s in scores]
    return sorted(select_weighted(items, count, rng))
