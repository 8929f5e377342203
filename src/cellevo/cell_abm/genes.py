"""Heritable traits and the crossover/mutation operator.

Stomach policy: a cell's stomach never exceeds its body radius
(``stomach_size <= size``), enforced on every crossover.
"""
from dataclasses import dataclass

from cellevo.cell_abm.config import (GENE_BASELINE, GENE_JITTER, MIN_TRAIT_VALUE,
                                     Reproduction, SimulatorConfig)
from cellevo.cell_abm.randoms import RandomStream


@dataclass(frozen=True)
class Genes:
    size: float
    flagellum_size: float
    stomach_size: float
    gestation_steps: float

    def as_dict(self) -> dict:
        return {
            'size': self.size,
            'flagellum_size': self.flagellum_size,
            'stomach_size': self.stomach_size,
            'gestation_steps': self.gestation_steps,
        }


TRAITS = ('size', 'flagellum_size', 'stomach_size', 'gestation_steps')


def generate_initial(mode: Reproduction, rng: RandomStream) -> Genes:
    """Genes for a seed-population cell.

    Asexual runs start from the fixed baseline. Sexual runs draw independent
    symmetric jitter per trait so the first generation already varies.
    """
    if Reproduction.parse(mode) is Reproduction.ASEXUAL:
        return Genes(**GENE_BASELINE)

    values = {}
    for trait in TRAITS:
        jitter = GENE_JITTER[trait]
        values[trait] = GENE_BASELINE[trait] + (rng.next_float() * 2.0 - 1.0) * jitter
    values['stomach_size'] = min(values['stomach_size'], values['size'])
    return Genes(**values)


def crossover(a: Genes, b: Genes, config: SimulatorConfig, rng: RandomStream) -> Genes:
    """Mix two parents trait by trait, then mutate.

    Each trait is taken from either parent with equal probability; with
    probability ``config.mutation_chance`` it is shifted up or down by the
    parents' mean times ``config.mutation_percent_change``.
    """
    size = _pick_with_mutation(a.size, b.size, config, rng)
    flagellum_size = _pick_with_mutation(a.flagellum_size, b.flagellum_size, config, rng)
    stomach_size = _pick_with_mutation(a.stomach_size, b.stomach_size, config, rng)
    gestation_steps = _pick_with_mutation(a.gestation_steps, b.gestation_steps, config, rng)
    return Genes(
        size=size,
        flagellum_size=flagellum_size,
        # stomach can never outgrow the body
        stomach_size=min(stomach_size, size),
        gestation_steps=gestation_steps,
    )


def _pick_with_mutation(a: float, b: float, config: SimulatorConfig, rng: RandomStream) -> float:
    chosen = _pick(a, b, rng)
    if rng.next_float() < config.mutation_chance:
        sign = _pick(-1.0, 1.0, rng)
        chosen += sign * ((a + b) / 2.0) * config.mutation_percent_change
    return max(chosen, MIN_TRAIT_VALUE)


def _pick(a: float, b: float, rng: RandomStream) -> float:
    return a if rng.next_float() < 0.5 else b
