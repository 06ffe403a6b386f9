"""Weighted random selection over template candidates.

The seeded source is a fixed linear congruential generator so that the same
seed yields the same sequence of draws in every implementation.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

RandomSource = Callable[[], float]

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2**32


class SeededRandom:
    """Deterministic random source: ``state = (state * a + c) mod 2**32``.

    Each call advances the state once and returns ``state / 2**32`` in [0, 1).
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self.state = int(seed) % LCG_MODULUS

    def __call__(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.state / LCG_MODULUS


def make_random(seed: int | None = None) -> RandomSource:
    """Return a seeded source when a seed is given, else the ambient one."""
    if seed is None:
        return random.random
    return SeededRandom(seed)


def effective_weight(candidate: Any) -> float:
    """Return the candidate's own weight if it is a positive number, else 1."""
    if isinstance(candidate, Mapping):
        weight = candidate.get("weight")
    else:
        weight = getattr(candidate, "weight", None)

    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return 1.0
    if not math.isfinite(weight) or weight <= 0:
        return 1.0
    return float(weight)


def weighted_choice(candidates: Sequence[T], rng: RandomSource | None = None) -> T | None:
    """Draw one candidate with probability proportional to its weight.

    A single threshold is drawn in ``[0, total)`` and the first candidate whose
    cumulative interval ``[previous, previous + weight)`` contains it wins.

    Args:
        candidates: Items exposing a ``weight`` attribute or mapping key.
        rng: Random source returning floats in [0, 1). Defaults to the
            ambient ``random.random``.

    Returns:
        The selected candidate, or None when there are no candidates.
    """
    if not candidates:
        return None

    rng = rng or random.random
    weights = [effective_weight(c) for c in candidates]
    threshold = rng() * sum(weights)

    cumulative = 0.0
    for candidate, weight in zip(candidates, weights, strict=True):
        if threshold < cumulative + weight:
            return candidate
        cumulative += weight

    # Floating point drift can leave the threshold unclaimed.
    return candidates[-1]
