"""Lightweight similarity primitives used by HostelKeep.

Implemented algorithms:
- Dice coefficient over character bigrams (whitespace-insensitive)
- Weighted location agreement
- Tiered time proximity
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from datetime import datetime

_WHITESPACE_RE = re.compile(r"\s+")
_SECONDS_PER_DAY = 60 * 60 * 24


def character_bigrams(text: str) -> Counter[str]:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def dice_coefficient(first: str, second: str) -> float:
    """Bigram overlap ratio, compatible with the ``string-similarity`` package.

    Whitespace is stripped before comparison. Identical inputs score 1.0 and any
    input shorter than two characters scores 0.0 against a different input.
    """
    a = _WHITESPACE_RE.sub("", first)
    b = _WHITESPACE_RE.sub("", second)

    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams_a = character_bigrams(a)
    bigrams_b = character_bigrams(b)
    intersection = sum((bigrams_a & bigrams_b).values())
    return (2.0 * intersection) / (len(a) + len(b) - 2)


def text_similarity(first: str, second: str) -> float:
    return dice_coefficient((first or "").lower(), (second or "").lower())


def location_similarity(
    pairs: Iterable[tuple[str, str, float]],
) -> float:
    """Sum the weight of each (left, right, weight) field that matches exactly."""
    score = 0.0
    for left, right, weight in pairs:
        if left == right:
            score += weight
    return min(1.0, score)


def day_difference(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds()) / _SECONDS_PER_DAY


def time_proximity(days_apart: float, tiers: Iterable[tuple[float, float]], floor: float) -> float:
    for max_days, score in sorted(tiers):
        if days_apart <= max_days:
            return score
    return floor
