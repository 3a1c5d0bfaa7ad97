"""Randomness primitives shared by ordering, club selection and draws."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""
    randomizer = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = randomizer.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def pick_index(size: int, rng: random.Random | None = None) -> int:
    """Return a uniformly chosen index into a pool of ``size`` items."""
    if size <= 0:
        raise ValueError("Cannot pick from an empty pool")
    randomizer = rng or random.Random()
    return randomizer.randrange(size)


__all__ = ["shuffle", "pick_index"]
