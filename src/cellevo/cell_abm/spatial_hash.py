"""Quantized-position hash used to pair up mates in linear time.

Positions are bucketed into squares whose edge is the mating radius. The
first cell to probe a bucket in a tick claims it; every later prober of
the same bucket is matched with that occupant.
"""
from typing import Dict, Optional, Tuple


class MatingBuckets:

    def __init__(self, radius: int):
        if radius <= 0:
            raise ValueError('radius must be positive')
        self.radius = int(radius)
        self._occupants: Dict[Tuple[int, int], int] = {}

    def key_for(self, x: float, y: float) -> Tuple[int, int]:
        return int(x // self.radius), int(y // self.radius)

    def register_or_match(self, index: int, x: float, y: float) -> Optional[int]:
        """Return the occupant of the bucket at ``(x, y)``, or claim it for ``index``.

        A claimed bucket keeps its occupant; a cell never matches itself.
        """
        key = self.key_for(x, y)
        occupant = self._occupants.get(key)
        if occupant is None:
            self._occupants[key] = index
            return None
        if occupant == index:
            return None
        return occupant

    def clear(self) -> None:
        self._occupants.clear()

    def __len__(self) -> int:
        return len(self._occupants)
