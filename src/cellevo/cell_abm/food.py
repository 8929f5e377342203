"""Food field: a fixed grid holding at most one food item per grid cell.

Occupancy is a boolean numpy array indexed ``[col, row]``. Item
coordinates are not stored; they are the grid-cell centres
``index * spacing + spacing / 2``.
"""
import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from cellevo.cell_abm.config import ConfigError
from cellevo.cell_abm.randoms import RandomStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoodItem:
    x: float
    y: float


class FoodField:
    """Spatial food grid with stochastic replenishment and nearest-cell consumption."""

    def __init__(self, width: int, height: int, spacing: int):
        if spacing <= 0:
            raise ConfigError(f"food spacing must be positive, got {spacing!r}")
        cols = int(width) // int(spacing)
        rows = int(height) // int(spacing)
        if cols <= 0 or rows <= 0:
            raise ConfigError(f"a {width}x{height} field holds no {spacing}px food grid cells")
        self.width = int(width)
        self.height = int(height)
        self.spacing = int(spacing)
        self.offset = self.spacing / 2.0
        self._occupied = np.zeros((cols, rows), dtype=bool)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._occupied.shape

    @property
    def total_cells(self) -> int:
        return int(self._occupied.size)

    @property
    def occupied_count(self) -> int:
        return int(np.count_nonzero(self._occupied))

    def availability_fraction(self) -> float:
        """Occupied grid cells over total grid cells."""
        return self.occupied_count / self.total_cells

    def fill(self) -> None:
        """Place food in every grid cell."""
        self._occupied[:, :] = True

    def clear(self) -> None:
        self._occupied[:, :] = False

    def spawn_pass(self, food_density: int, rng: RandomStream) -> int:
        """Give every empty grid cell food with probability ``1 / food_density``.

        Occupied cells are left alone. Returns the number of items spawned.
        """
        spawn_chance = 1.0 / float(food_density)
        draws = rng.next_floats(self._occupied.shape)
        new_food = ~self._occupied & (draws < spawn_chance)
        self._occupied |= new_food
        return int(np.count_nonzero(new_food))

    def item_position(self, col: int, row: int) -> Tuple[float, float]:
        return col * self.spacing + self.offset, row * self.spacing + self.offset

    def nearest_index(self, x: float, y: float) -> Optional[Tuple[int, int]]:
        """Grid index nearest to ``(x, y)``, or None when it falls outside the grid.

        A position exactly between two centres resolves to the higher index.
        """
        col = int(math.floor((x - self.offset) / self.spacing + 0.5))
        row = int(math.floor((y - self.offset) / self.spacing + 0.5))
        cols, rows = self._occupied.shape
        if 0 <= col < cols and 0 <= row < rows:
            return col, row
        return None

    def has_food(self, col: int, row: int) -> bool:
        cols, rows = self._occupied.shape
        if not (0 <= col < cols and 0 <= row < rows):
            return False
        return bool(self._occupied[col, row])

    def place(self, col: int, row: int) -> None:
        """Put a food item in grid cell ``(col, row)``."""
        self._occupied[col, row] = True

    def find_and_consume_nearest(self, x: float, y: float, eating_distance: float) -> bool:
        """Eat the food item of the grid cell nearest to ``(x, y)`` if it is in reach.

        Reach uses ``sqrt(|dx| + |dy|)`` rather than the Euclidean norm; game
        balance is tuned against it. Positions off the grid find nothing.
        """
        index = self.nearest_index(x, y)
        if index is None:
            return False
        col, row = index
        if not self._occupied[col, row]:
            return False
        fx, fy = self.item_position(col, row)
        distance = math.sqrt(abs(fx - x) + abs(fy - y))
        if distance > eating_distance:
            return False
        self._occupied[col, row] = False
        return True

    def items(self) -> Iterator[FoodItem]:
        for col, row in zip(*np.nonzero(self._occupied)):
            x, y = self.item_position(int(col), int(row))
            yield FoodItem(x, y)

    def occupancy(self) -> np.ndarray:
        """Read-only copy of the occupancy grid."""
        grid = self._occupied.copy()
        grid.setflags(write=False)
        return grid
