"""
simulation_core.py

This module defines the Simulator class for the cell Agent-Based Model (ABM) in cellevo.
It owns the population, the food field and the random stream of one run, and orchestrates
the discrete tick across all agents.

Core Responsibilities:
----------------------
1. Setup:
   • Build the seed population at random positions inside the field margin.
   • Build the food grid and fill every grid cell.

2. Tick loop (`tick`):
   • Advance the tick counter and run the food spawn pass.
   • Start a fresh mating spatial hash.
   • Walk the pre-tick population in index order: probe food, mate according to the
     reproduction mode, then let the cell move, gestate and metabolise.
   • Append newborns (they first act on the next tick) and compact dead cells away in a
     single end-of-tick pass.

3. Boundary:
   • `step`, `configure` and `snapshot` are the entry points for the viewer, the exporter
     and the batch runner. All of them serialise on one lock, so observers only ever see
     the state between ticks.

Usage Example:
--------------
    from cellevo.cell_abm.config import SimulatorConfig
    from cellevo.cell_abm.simulation_core import Simulator

    sim = Simulator(SimulatorConfig(width=800, height=800, seed=7))
    sim.step(500)
    sim.configure(food_density=120, reproduction='sexual')
    snap = sim.snapshot()
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from cellevo.cell_abm.cell import Cell
from cellevo.cell_abm.config import ConfigError, ExtinctionError, Reproduction, SimulatorConfig
from cellevo.cell_abm.food import FoodField
from cellevo.cell_abm.genes import TRAITS, Genes, generate_initial
from cellevo.cell_abm.randoms import RandomStream
from cellevo.cell_abm.spatial_hash import MatingBuckets

log = logging.getLogger(__name__)

# geometry and seeding are fixed once the food grid and population exist
CONSTRUCTION_ONLY_OPTIONS = frozenset({'width', 'height', 'food_spacing', 'cell_number', 'seed'})


@dataclass(frozen=True)
class CellSnapshot:
    index: int
    x: int
    y: int
    heading: float
    genes: Genes
    gestation_remaining: int
    alive: bool
    display_seed: float
    fullness: float


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only view of a simulator between ticks."""
    tick: int
    width: int
    height: int
    food_spacing: int
    cells: Tuple[CellSnapshot, ...]
    food: np.ndarray
    food_availability: float

    @property
    def population_size(self) -> int:
        return len(self.cells)

    def food_positions(self) -> List[Tuple[float, float]]:
        offset = self.food_spacing / 2.0
        return [(col * self.food_spacing + offset, row * self.food_spacing + offset)
                for col, row in zip(*np.nonzero(self.food))]


class Simulator:
    """One simulation run: configuration, tick counter, population and food field."""

    def __init__(self, config: Optional[SimulatorConfig] = None, rng: Optional[RandomStream] = None):
        self._config = config if config is not None else SimulatorConfig()
        self._rng = rng if rng is not None else RandomStream(self._config.seed)
        self._lock = threading.Lock()
        self._ticks = 0

        self._cells: List[Cell] = [
            Cell.spawn(generate_initial(self._config.reproduction, self._rng), self._config, self._rng)
            for _ in range(self._config.cell_number)
        ]
        self._food = FoodField(self._config.width, self._config.height, self._config.food_spacing)
        self._food.fill()

        log.info("[SIM] Starting: %s cells, %sx%s field, food grid %s, %s reproduction",
                 len(self._cells), self._config.width, self._config.height,
                 self._food.shape, self._config.reproduction.value)

    # -- read accessors -----------------------------------------------------

    @property
    def config(self) -> SimulatorConfig:
        return self._config

    @property
    def tick_count(self) -> int:
        return self._ticks

    @property
    def population_size(self) -> int:
        return len(self._cells)

    @property
    def cells(self) -> Tuple[Cell, ...]:
        """Live cell objects; mutate only between ticks, e.g. when arranging a test scene."""
        return tuple(self._cells)

    @property
    def food(self) -> FoodField:
        return self._food

    @property
    def rng(self) -> RandomStream:
        return self._rng

    def add_cell(self, cell: Cell) -> None:
        with self._lock:
            self._cells.append(cell)

    # -- external entry points ---------------------------------------------

    def step(self, n: int = 1) -> None:
        """Advance by exactly ``n`` ticks."""
        for _ in range(n):
            self.tick()

    def tick(self) -> None:
        with self._lock:
            self._tick()

    def configure(self, partial: Optional[Mapping[str, Any]] = None, **kwargs) -> SimulatorConfig:
        """Apply a partial configuration atomically between ticks.

        Values are validated before anything changes; an invalid update raises
        ConfigError and leaves the current configuration in place.
        """
        changes = dict(partial or {}, **kwargs)
        fixed = sorted(set(changes) & CONSTRUCTION_ONLY_OPTIONS)
        if fixed:
            raise ConfigError(f"option(s) {', '.join(fixed)} can only be set when the simulator is built")
        with self._lock:
            new_config = self._config.updated(changes)
            self._config = new_config
        log.info("[SIM] Reconfigured at tick %s: %s", self._ticks, changes)
        return new_config

    def snapshot(self) -> SimulationSnapshot:
        with self._lock:
            cells = tuple(
                CellSnapshot(
                    index=i,
                    x=c.x,
                    y=c.y,
                    heading=c.heading,
                    genes=c.genes,
                    gestation_remaining=c.gestation_remaining,
                    alive=c.alive,
                    display_seed=c.display_seed,
                    fullness=c.fullness,
                )
                for i, c in enumerate(self._cells)
            )
            return SimulationSnapshot(
                tick=self._ticks,
                width=self._config.width,
                height=self._config.height,
                food_spacing=self._food.spacing,
                cells=cells,
                food=self._food.occupancy(),
                food_availability=self._food.availability_fraction(),
            )

    def get_food_availability_fraction(self) -> float:
        """Occupied food grid cells over total grid cells."""
        return self._food.availability_fraction()

    def population_averages(self) -> Dict[str, float]:
        """Mean of every gene trait over the current population.

        Raises ExtinctionError when no cells are left.
        """
        if not self._cells:
            raise ExtinctionError(self._ticks)
        values = np.array([[getattr(c.genes, t) for t in TRAITS] for c in self._cells], dtype=float)
        means = values.mean(axis=0)
        return {t: float(m) for t, m in zip(TRAITS, means)}

    # -- tick state machine -------------------------------------------------

    def _tick(self) -> None:
        self._ticks += 1
        config = self._config
        rng = self._rng

        spawned = self._food.spawn_pass(config.food_density, rng)
        buckets = MatingBuckets(config.mating_radius)

        dead: List[int] = []
        births = 0
        # newborns are appended past this bound and first act next tick
        for index in range(len(self._cells)):
            cell = self._cells[index]
            if not cell.alive:
                dead.append(index)
                continue

            cell.find_food_and_eat(self._food)

            if config.reproduction is Reproduction.ASEXUAL:
                if cell.reproduction_cooldown == 0 and not cell.pregnant:
                    cell.start_gestation(cell.genes, config, rng)
            else:
                # the bucket occupant may have died or conceived since it registered
                target = cell.attempt_mate(index, buckets, config,
                                           accept=lambda i: self._cells[i].can_carry())
                if target is not None:
                    # the discoverer fathers the occupant's child
                    self._cells[target].start_gestation(cell.genes, config, rng)

            newborn = cell.update(config, rng)
            if newborn is not None:
                self._cells.append(newborn)
                births += 1
            if not cell.alive:
                dead.append(index)

        if dead:
            doomed = set(dead)
            self._cells = [c for i, c in enumerate(self._cells) if i not in doomed]

        log.debug("[SIM] tick %s: %s births, %s deaths, %s food spawned, population %s",
                  self._ticks, births, len(dead), spawned, len(self._cells))
