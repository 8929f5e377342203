# -*- coding: utf-8 -*-

"""
cell_abm/config.py

This module centralizes all configuration parameters for the cell Agent-Based Model (ABM)
within cellevo. Physiology constants, gene baselines, field defaults and batch defaults
live in one place so the simulator, the exporter, the batch runner and the viewer agree.

Contents:
---------
1. SIMULATOR_DEFAULTS:
   - Field geometry, food grid spacing, seed population size, food density,
     reproduction cooldown and mutation parameters.

2. CELL_PHYSIOLOGY:
   - Speed coefficients, energy usage coefficients, food value, pregnancy and
     childbirth costs, birth probability coefficient and the turning ratchet.

3. GENE_BASELINE / GENE_JITTER:
   - Trait values of the seed population. Asexual runs start every cell at the
     baseline; sexual runs add symmetric jitter per trait.

4. MATING_RADIUS:
   - Edge length (px) of the square buckets used by the mating spatial hash.

5. BATCH_DEFAULTS:
   - Instance count, tick budget and sampling interval for headless statistics runs.

6. SimulatorConfig:
   - Frozen, validated parameter bag built from SIMULATOR_DEFAULTS.
     `SimulatorConfig.updated(**partial)` returns a new validated config so a bad
     update never half-applies.

Usage:
------
    from cellevo.cell_abm.config import SimulatorConfig, Reproduction

    cfg = SimulatorConfig(width=800, height=800, reproduction=Reproduction.SEXUAL)
    cfg = cfg.updated(food_density=120)
"""
import dataclasses
import enum
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional


class ConfigError(ValueError):
    """Raised when a configuration value is rejected before being applied."""


class ExtinctionError(RuntimeError):
    """Raised when population statistics are requested for an empty population."""

    def __init__(self, tick: int):
        super().__init__(f"extinction reached at tick {tick}")
        self.tick = tick


class Reproduction(enum.Enum):
    ASEXUAL = "asexual"
    SEXUAL = "sexual"

    @classmethod
    def parse(cls, value) -> "Reproduction":
        """Accept an enum member or its (case-insensitive) string name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigError(
                f"unknown reproduction mode {value!r}; expected 'asexual' or 'sexual'"
            ) from None


# ───────────────────────────────────────────────────────────────────────────────
# 1) FIELD AND POPULATION DEFAULTS
# ───────────────────────────────────────────────────────────────────────────────
SIMULATOR_DEFAULTS = {
    'width': 1_600,                  # field width (px)
    'height': 1_600,                 # field height (px)
    'food_spacing': 40,              # food grid pitch (px)
    'cell_number': 12,               # seed population size
    'food_density': 240,             # reciprocal spawn probability per empty grid cell per tick
    'reproduction_cooldown': 200,    # ticks between mating attempts
    'mutation_chance': 0.01,         # per-trait probability of a mutation at crossover
    'mutation_percent_change': 0.1,  # mutation magnitude as a fraction of the parents' mean
    'seed': 230575,                  # default random seed
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) CELL PHYSIOLOGY
# ───────────────────────────────────────────────────────────────────────────────
CELL_PHYSIOLOGY = {
    # speed = flagellum_size * k_flagellum + stomach_size * k_stomach   (px/tick)
    'speed_flagellum_coeff': 1.5,
    'speed_stomach_coeff': 0.25,

    # energy usage per tick = k_speed * speed + k_size * size
    'energy_speed_coeff': 0.004,
    'energy_size_coeff': 0.0005,

    'food_value': 1.0,               # reserve gained per food item eaten
    'initial_reserve': 5.0,          # reserve of seed cells and newborns (capped at stomach size)
    'pregnancy_cost': 0.01,          # reserve paid per gestation tick
    'childbirth_cost': 1.0,          # reserve paid on every birth attempt
    'birth_probability_coeff': 0.18, # P(birth) = coeff * cbrt(gestation_steps)

    # turning ratchet
    'rotation_increment': 0.002,     # added to rotation_chance every tick
    'wall_rotation_increment': 0.05, # added on every rejected move at the field margin
    'wall_turn_min_deg': 60.0,       # heading nudge on wall contact, lower bound (deg)
    'wall_turn_max_deg': 130.0,      # heading nudge on wall contact, upper bound (deg, exclusive)
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) GENES
# ───────────────────────────────────────────────────────────────────────────────
GENE_BASELINE = {
    'size': 30.0,                    # body radius (px)
    'flagellum_size': 5.0,           # propulsion organ length
    'stomach_size': 10.0,            # maximum metabolic reserve
    'gestation_steps': 200.0,        # ticks needed to carry a child to term
}

# half-width of the uniform jitter applied in sexual mode
GENE_JITTER = {
    'size': 3.0,
    'flagellum_size': 0.5,
    'stomach_size': 1.0,
    'gestation_steps': 5.0,
}

# floor for every trait after mutation
MIN_TRAIT_VALUE = 0.01

# ───────────────────────────────────────────────────────────────────────────────
# 4) MATING
# ───────────────────────────────────────────────────────────────────────────────
MATING_RADIUS = 40                   # bucket edge of the mating spatial hash (px)

# ───────────────────────────────────────────────────────────────────────────────
# 5) BATCH STATISTICS
# ───────────────────────────────────────────────────────────────────────────────
BATCH_DEFAULTS = {
    'simulations': 10,               # independent instances averaged together
    'total_ticks': 1_000_000,        # ticks per instance
    'sample_interval': 1_000,        # ticks between samples
}


@dataclass(frozen=True)
class SimulatorConfig:
    """Immutable, validated parameters of one simulator run."""
    width: int = SIMULATOR_DEFAULTS['width']
    height: int = SIMULATOR_DEFAULTS['height']
    food_spacing: int = SIMULATOR_DEFAULTS['food_spacing']
    cell_number: int = SIMULATOR_DEFAULTS['cell_number']
    food_density: int = SIMULATOR_DEFAULTS['food_density']
    reproduction_cooldown: int = SIMULATOR_DEFAULTS['reproduction_cooldown']
    mutation_chance: float = SIMULATOR_DEFAULTS['mutation_chance']
    mutation_percent_change: float = SIMULATOR_DEFAULTS['mutation_percent_change']
    reproduction: Reproduction = Reproduction.ASEXUAL
    mating_radius: int = MATING_RADIUS
    seed: Optional[int] = SIMULATOR_DEFAULTS['seed']

    def __post_init__(self):
        # normalise the mode first so string modes from external callers are accepted
        object.__setattr__(self, 'reproduction', Reproduction.parse(self.reproduction))
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError for values the simulator cannot run with."""
        for name in ('width', 'height', 'food_spacing', 'food_density', 'mating_radius'):
            value = getattr(self, name)
            if not _is_int(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        for name in ('cell_number', 'reproduction_cooldown'):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
        if self.food_spacing > min(self.width, self.height):
            raise ConfigError(
                f"food_spacing {self.food_spacing} does not fit a {self.width}x{self.height} field"
            )
        for name in ('mutation_chance', 'mutation_percent_change'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value!r}")
        if self.seed is not None and (not _is_int(self.seed) or self.seed < 0):
            raise ConfigError(f"seed must be a non-negative integer or None, got {self.seed!r}")

    @property
    def margin(self) -> float:
        """Distance kept between cells and the field border."""
        return self.food_spacing / 2.0

    def updated(self, partial: Optional[Mapping[str, Any]] = None, **kwargs) -> "SimulatorConfig":
        """Return a validated copy with ``partial`` applied; ``self`` is never modified."""
        changes = dict(partial or {})
        changes.update(kwargs)
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(f"unrecognised configuration option(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **changes)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
