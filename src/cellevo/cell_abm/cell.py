"""Cell agent: movement, metabolism, gestation and the food/mate probes.

A cell only knows the food field and the mating buckets through their
probe methods (`FoodField.find_and_consume_nearest`,
`MatingBuckets.register_or_match`); the simulator owns both.
"""
import math
from typing import Callable, Optional

from cellevo.cell_abm.config import CELL_PHYSIOLOGY, Reproduction, SimulatorConfig
from cellevo.cell_abm.food import FoodField
from cellevo.cell_abm.genes import Genes, crossover
from cellevo.cell_abm.randoms import RandomStream
from cellevo.cell_abm.spatial_hash import MatingBuckets

TWO_PI = 2.0 * math.pi


class Cell:
    """One organism. Owned by the simulator's population list."""

    def __init__(self, genes: Genes, x: int, y: int, heading: float,
                 metabolic_reserve: float, display_seed: float,
                 reproduction_cooldown: int = 0):
        self.genes = genes
        self.x = int(x)
        self.y = int(y)
        self.heading = heading % TWO_PI
        self.metabolic_reserve = min(float(metabolic_reserve), genes.stomach_size)
        self.display_seed = display_seed
        self.alive = True
        self.reproduction_cooldown = int(reproduction_cooldown)
        self.gestation_remaining = 0
        self.pending_child_genes: Optional[Genes] = None
        self.rotation_chance = 0.0

    @classmethod
    def spawn(cls, genes: Genes, config: SimulatorConfig, rng: RandomStream) -> "Cell":
        """New cell at a random position inside the field margin."""
        margin = int(math.ceil(config.margin))
        x = margin + rng.next_bounded(max(1, config.width - 2 * margin))
        y = margin + rng.next_bounded(max(1, config.height - 2 * margin))
        return cls(
            genes,
            x,
            y,
            heading=rng.next_float() * TWO_PI,
            metabolic_reserve=CELL_PHYSIOLOGY['initial_reserve'],
            display_seed=rng.next_float(),
            reproduction_cooldown=config.reproduction_cooldown,
        )

    def __repr__(self):
        return (f"Cell(x={self.x}, y={self.y}, reserve={self.metabolic_reserve:.3f}, "
                f"alive={self.alive}, gestation_remaining={self.gestation_remaining})")

    @property
    def speed(self) -> float:
        return (self.genes.flagellum_size * CELL_PHYSIOLOGY['speed_flagellum_coeff']
                + self.genes.stomach_size * CELL_PHYSIOLOGY['speed_stomach_coeff'])

    @property
    def fullness(self) -> float:
        """Reserve as a fraction of stomach capacity."""
        return self.metabolic_reserve / self.genes.stomach_size

    @property
    def pregnant(self) -> bool:
        return self.gestation_remaining > 0

    def can_carry(self) -> bool:
        """True when the cell is alive and free to start a pregnancy."""
        return self.alive and not self.pregnant

    # -- probes -------------------------------------------------------------

    def eat(self, food_amount: Optional[float] = None) -> None:
        if food_amount is None:
            food_amount = CELL_PHYSIOLOGY['food_value']
        self.metabolic_reserve = min(self.metabolic_reserve + food_amount, self.genes.stomach_size)

    def find_food_and_eat(self, food: FoodField) -> bool:
        """Consume the nearest food item within reach of the body radius."""
        if food.find_and_consume_nearest(self.x, self.y, self.genes.size):
            self.eat()
            return True
        return False

    def start_gestation(self, partner_genes: Genes, config: SimulatorConfig, rng: RandomStream) -> None:
        """Become pregnant with a child of ``self.genes`` x ``partner_genes``."""
        self.pending_child_genes = crossover(self.genes, partner_genes, config, rng)
        self.gestation_remaining = max(1, int(self.genes.gestation_steps))
        self.reproduction_cooldown = config.reproduction_cooldown

    def attempt_mate(self, self_index: int, buckets: MatingBuckets, config: SimulatorConfig,
                     accept: Optional[Callable[[int], bool]] = None) -> Optional[int]:
        """Probe the mating bucket at this cell's position.

        Returns the index of the cell already holding the bucket, which the
        caller impregnates with this cell's genes, or None. Only sexual runs
        mate, and only cells off cooldown and not pregnant take part.
        ``accept(index)`` may veto the occupant (e.g. it died or conceived
        earlier this tick); a vetoed pairing leaves this cell's cooldown alone.
        """
        if config.reproduction is not Reproduction.SEXUAL:
            return None
        if self.reproduction_cooldown > 0 or self.pregnant:
            return None
        other = buckets.register_or_match(self_index, self.x, self.y)
        if other is None:
            return None
        if accept is not None and not accept(other):
            return None
        self.reproduction_cooldown = config.reproduction_cooldown
        return other

    # -- per-tick transition ------------------------------------------------

    def update(self, config: SimulatorConfig, rng: RandomStream) -> Optional["Cell"]:
        """Advance one tick: move, progress reproduction, metabolise.

        Returns a newborn cell when a birth succeeds this tick.
        """
        if not self.alive:
            return None
        self._move(config, rng)
        newborn = self._progress_reproduction(config, rng)
        self._metabolise()
        return newborn

    def _move(self, config: SimulatorConfig, rng: RandomStream) -> None:
        speed = self.speed
        dx = math.cos(self.heading) * speed
        dy = math.sin(self.heading) * speed
        self.rotation_chance += CELL_PHYSIOLOGY['rotation_increment']

        margin = config.margin
        new_x = self.x + dx
        if margin <= new_x <= config.width - margin:
            self.x = int(round(new_x))
        else:
            self._turn_from_wall(rng)
        new_y = self.y + dy
        if margin <= new_y <= config.height - margin:
            self.y = int(round(new_y))
        else:
            self._turn_from_wall(rng)

        if rng.next_float() < self.rotation_chance:
            self.heading = rng.next_float() * TWO_PI
            self.rotation_chance = 0.0

    def _turn_from_wall(self, rng: RandomStream) -> None:
        lo = CELL_PHYSIOLOGY['wall_turn_min_deg']
        hi = CELL_PHYSIOLOGY['wall_turn_max_deg']
        turn = math.radians(lo + rng.next_float() * (hi - lo))
        self.heading = (self.heading + turn) % TWO_PI
        self.rotation_chance += CELL_PHYSIOLOGY['wall_rotation_increment']

    def _progress_reproduction(self, config: SimulatorConfig, rng: RandomStream) -> Optional["Cell"]:
        if self.reproduction_cooldown > 0:
            self.reproduction_cooldown -= 1
        if self.gestation_remaining <= 0:
            return None
        self.gestation_remaining -= 1
        self.metabolic_reserve -= CELL_PHYSIOLOGY['pregnancy_cost']
        if self.gestation_remaining > 0:
            return None
        newborn = self._attempt_birth(config, rng)
        self.pending_child_genes = None
        return newborn

    def _attempt_birth(self, config: SimulatorConfig, rng: RandomStream) -> Optional["Cell"]:
        self.metabolic_reserve -= CELL_PHYSIOLOGY['childbirth_cost']
        child_genes = self.pending_child_genes
        if child_genes is None:
            return None
        # short gestations are less likely to carry to term
        birth_chance = CELL_PHYSIOLOGY['birth_probability_coeff'] * self.genes.gestation_steps ** (1.0 / 3.0)
        if rng.next_float() >= birth_chance:
            return None
        return Cell(
            child_genes,
            self.x,
            self.y,
            heading=rng.next_float() * TWO_PI,
            metabolic_reserve=CELL_PHYSIOLOGY['initial_reserve'],
            display_seed=rng.next_float(),
            reproduction_cooldown=config.reproduction_cooldown,
        )

    def _metabolise(self) -> None:
        cost = (CELL_PHYSIOLOGY['energy_speed_coeff'] * self.speed
                + CELL_PHYSIOLOGY['energy_size_coeff'] * self.genes.size)
        self.metabolic_reserve -= cost
        if self.metabolic_reserve < 0.0:
            self.alive = False
