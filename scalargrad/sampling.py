"""Default uniform sampler backed by the stdlib PRNG."""

import random
from typing import Optional


class RandomSampler:
    """Uniform samples in [-1, 1) from a private random.Random instance."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def __call__(self) -> float:
        # random() is in [0, 1), so this never returns 1.0
        return 2.0 * self._rng.random() - 1.0

    def __repr__(self):
        return f"RandomSampler(seed={self.seed!r})"
