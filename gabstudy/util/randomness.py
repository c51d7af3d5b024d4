from __future__ import annotations

"""Randomness helpers for seeding and fallback question sampling."""

import os
import random
from typing import List, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def seed_if_needed() -> None:
    """Seed RNGs if SEED env var is set."""
    seed = os.environ.get("SEED")
    if seed is not None:
        try:
            s = int(seed)
        except ValueError:
            return
        random.seed(s)
        np.random.seed(s)


def random_sample(items: Sequence[T], count: int, rng: Optional[random.Random] = None) -> List[T]:
    """Up to `count` distinct items in random order."""
    r = rng or random
    k = min(max(count, 0), len(items))
    return r.sample(list(items), k)
