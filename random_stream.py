from __future__ import annotations

from typing import Protocol

import numpy as np


_SEED_MASK = (1 << 64) - 1


class RandomSource(Protocol):
    def next(self, bound: int) -> int:
        ...


class RandomStream:
    """Seeded stream of bounded integers backed by a counter-based generator.

    The same seed always yields the same sequence of draws, which is what makes
    the tie-block shuffles in ``fair_ordering`` reproducible.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed) & _SEED_MASK
        self._rng = np.random.Generator(np.random.Philox(self.seed))

    def next(self, bound: int) -> int:
        if bound < 1:
            raise ValueError("bound must be at least 1")
        return int(self._rng.integers(bound))
