"""Seeded random stream shared by everything inside one simulator.

Each simulator owns one stream, so independent instances never share state
and can run in separate processes. Child streams for batch runs come from
``numpy.random.SeedSequence`` so they are statistically independent.
"""
from typing import List, Optional, Sequence, Union

import numpy as np


class RandomStream:
    """Thin wrapper over a PCG64 ``numpy.random.Generator``."""

    def __init__(self, seed: Optional[Union[int, np.random.SeedSequence]] = None):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
        else:
            self._seed_seq = np.random.SeedSequence(seed)
        self._gen = np.random.Generator(np.random.PCG64(self._seed_seq))

    def next_float(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._gen.random())

    def next_bounded(self, max_value: int) -> int:
        """Uniform integer in [0, max_value), computed as floor(next_float() * max_value)."""
        if max_value < 0:
            raise ValueError('max_value must be non-negative')
        return int(self.next_float() * max_value)

    def next_floats(self, shape: Union[int, Sequence[int]]) -> np.ndarray:
        """Array of uniform floats in [0, 1) with the given shape."""
        return self._gen.random(shape)

    def spawn(self, n: int) -> List["RandomStream"]:
        """Derive ``n`` independent child streams."""
        return [RandomStream(child) for child in self._seed_seq.spawn(n)]
