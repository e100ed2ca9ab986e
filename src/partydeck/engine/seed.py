"""Seeded shuffling.

A Lehmer (Park-Miller) generator drives a Fisher-Yates shuffle so that the
same (input order, seed) pair always produces the same pool. Every language
projection of a selection is shuffled with one shared seed.
"""

from __future__ import annotations

import math
from typing import Callable, MutableSequence, TypeVar

MODULUS = 2147483647
MULTIPLIER = 16807

T = TypeVar("T")


def _normalize_seed(seed: float) -> float:
    # Remainder keeps the sign of the seed; non-positive results are shifted up.
    if isinstance(seed, int):
        s: float = abs(seed) % MODULUS
        if seed < 0:
            s = -s
    else:
        s = math.fmod(seed, MODULUS)
    if s <= 0:
        s += MODULUS - 1
    return s


def seeded_random(seed: float) -> Callable[[], float]:
    """Return a generator of pseudorandom floats in [0, 1) for `seed`."""
    state = _normalize_seed(seed)

    def draw() -> float:
        nonlocal state
        state = (state * MULTIPLIER) % MODULUS
        return (state - 1) / (MODULUS - 1)

    return draw


def seeded_shuffle(items: MutableSequence[T], seed: float) -> MutableSequence[T]:
    """Shuffle `items` in place and return the same sequence.

    Callers that need the original order must copy before calling.
    """
    random = seeded_random(seed)
    for i in range(len(items) - 1, 0, -1):
        j = math.floor(random() * (i + 1))
        # a collapsed generator state can draw slightly below 0
        j = min(max(j, 0), i)
        items[i], items[j] = items[j], items[i]
    return items
