"""
Numeric helpers shared by the detector and the metrics calculator.
"""
from __future__ import annotations
import re
from typing import Sequence
import numpy as np

_VOWEL_GROUPS = re.compile(r"[aeiouy]+")


def clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Population standard deviation divided by the mean.

    Returns 0.0 for fewer than two values or a zero mean.
    """
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    if mean == 0:
        return 0.0
    return float(arr.std()) / mean


def estimate_syllables(word: str) -> int:
    """Rough syllable count from vowel groups; at least 1 for non-empty words."""
    text = (word or "").lower()
    count = len(_VOWEL_GROUPS.findall(text))
    if count == 0 and text:
        count = 1
    return count


def words_per_minute(word_count: int, duration_ms: float) -> float:
    if word_count <= 0 or duration_ms <= 0:
        return 0.0
    return word_count / (duration_ms / 60_000.0)
