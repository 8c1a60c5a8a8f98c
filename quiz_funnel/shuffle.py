"""Display-order randomization.

Two separate algorithms: a one-off session shuffle for question order, and a
seeded shuffle for answer options so a question keeps its option order while
the visitor is looking at it. Neither is suitable for anything security
related.
"""
from __future__ import annotations

import random
import time
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

_system_random = random.SystemRandom()

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


def session_shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Fisher-Yates over a copy of `items` with a non-reproducible source."""
    rng = rng or _system_random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def seeded_shuffle(items: Sequence[T], seed: int) -> List[T]:
    """Fisher-Yates driven by a small linear congruential generator."""
    shuffled = list(items)
    state = seed % LCG_MODULUS
    current = len(shuffled)
    while current:
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        pick = int(state / LCG_MODULUS * current)
        current -= 1
        shuffled[current], shuffled[pick] = shuffled[pick], shuffled[current]
    return shuffled


def answer_seed(question_id: str, timestamp_ms: Optional[int] = None) -> int:
    """Seed for a question's option order: visit timestamp plus the id's first char code.

    Ids whose first characters are neighbours get seeds one or two apart and
    often share an order; only the first character feeds the seed.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return timestamp_ms + (ord(question_id[0]) if question_id else 0)
