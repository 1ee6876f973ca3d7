from __future__ import annotations

"""Randomness helpers for specimen sampling and seeding."""

import os
import random
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def seed_if_needed() -> None:
    """Seed the RNG if the SEED env var is set."""
    seed = os.environ.get("SEED")
    if seed is not None:
        try:
            s = int(seed)
        except ValueError:
            return
        random.seed(s)


def sample_specimens(specimens: Sequence[T], n: int) -> List[T]:
    """Draw ``n`` items, without repeats until the pool is used up."""
    pool = list(specimens)
    if not pool or n <= 0:
        return []
    out: List[T] = []
    while len(out) < n:
        batch = pool[:]
        random.shuffle(batch)
        out.extend(batch[: n - len(out)])
    return out
