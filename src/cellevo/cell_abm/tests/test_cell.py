import math

import pytest

from cellevo.cell_abm.cell import Cell
from cellevo.cell_abm.config import CELL_PHYSIOLOGY, GENE_BASELINE, SimulatorConfig
from cellevo.cell_abm.food import FoodField
from cellevo.cell_abm.genes import Genes
from cellevo.cell_abm.spatial_hash import MatingBuckets

METABOLIC_COST = (CELL_PHYSIOLOGY['energy_speed_coeff'] * 10.0
                  + CELL_PHYSIOLOGY['energy_size_coeff'] * GENE_BASELINE['size'])


def make_cell(x=400, y=400, heading=0.0, reserve=5.0, cooldown=0, genes=None):
    genes = genes or Genes(**GENE_BASELINE)
    return Cell(genes, x, y, heading=heading, metabolic_reserve=reserve,
                display_seed=0.5, reproduction_cooldown=cooldown)


def test_speed_and_fullness():
    cell = make_cell(reserve=5.0)
    # 5 * 1.5 + 10 * 0.25
    assert cell.speed == pytest.approx(10.0)
    assert cell.fullness == pytest.approx(0.5)


def test_reserve_capped_at_construction():
    cell = make_cell(reserve=50.0)
    assert cell.metabolic_reserve == GENE_BASELINE['stomach_size']


def test_eat_is_capped_at_stomach_size():
    cell = make_cell(reserve=9.5)
    cell.eat()
    assert cell.metabolic_reserve == GENE_BASELINE['stomach_size']
    cell = make_cell(reserve=2.0)
    cell.eat()
    assert cell.metabolic_reserve == pytest.approx(2.0 + CELL_PHYSIOLOGY['food_value'])


def test_spawn_places_cell_inside_margin(small_config, rng):
    for _ in range(100):
        cell = Cell.spawn(Genes(**GENE_BASELINE), small_config, rng)
        assert small_config.margin <= cell.x <= small_config.width - small_config.margin
        assert small_config.margin <= cell.y <= small_config.height - small_config.margin
        assert 0.0 <= cell.heading < 2 * math.pi
        assert cell.reproduction_cooldown == small_config.reproduction_cooldown


def test_update_moves_along_heading(small_config, rng):
    cell = make_cell(heading=0.0)
    cell.update(small_config, rng)
    assert (cell.x, cell.y) == (410, 400)


def test_update_pays_metabolic_cost(small_config, rng):
    cell = make_cell(reserve=5.0)
    assert cell.update(small_config, rng) is None
    assert cell.metabolic_reserve == pytest.approx(5.0 - METABOLIC_COST)
    assert cell.alive


def test_wall_rejects_move_and_turns(small_config, fixed_random):
    # 0.5 keeps the post-move random turn from firing
    cell = make_cell(x=775, heading=0.0)
    cell.update(small_config, fixed_random(0.5))
    assert cell.x == 775
    expected = math.radians(60.0 + 0.5 * 70.0)
    assert cell.heading == pytest.approx(expected)
    assert cell.rotation_chance == pytest.approx(
        CELL_PHYSIOLOGY['rotation_increment'] + CELL_PHYSIOLOGY['wall_rotation_increment'])


def test_rotation_ratchet_resets_after_turn(small_config, fixed_random):
    cell = make_cell(heading=0.0)
    cell.rotation_chance = 0.9
    # draw of 0.5 is below the accumulated chance, so the cell turns
    cell.update(small_config, fixed_random(0.5))
    assert cell.rotation_chance == 0.0
    assert cell.heading == pytest.approx(math.pi)


def test_starving_cell_dies_and_stays_dead(small_config, rng):
    cell = make_cell(reserve=0.01)
    cell.update(small_config, rng)
    assert not cell.alive
    x, y = cell.x, cell.y
    assert cell.update(small_config, rng) is None
    assert (cell.x, cell.y) == (x, y)


def test_cooldown_counts_down(small_config, rng):
    cell = make_cell(cooldown=5)
    cell.update(small_config, rng)
    assert cell.reproduction_cooldown == 4


def test_start_gestation(small_config, rng):
    cell = make_cell()
    partner = Genes(size=28.0, flagellum_size=4.0, stomach_size=9.0, gestation_steps=180.0)
    cell.start_gestation(partner, small_config, rng)
    assert cell.gestation_remaining == int(GENE_BASELINE['gestation_steps'])
    assert cell.reproduction_cooldown == small_config.reproduction_cooldown
    assert cell.pending_child_genes is not None


def test_gestation_costs_reserve(small_config, rng):
    cell = make_cell(reserve=5.0, cooldown=10)
    cell.start_gestation(cell.genes, small_config, rng)
    cell.update(small_config, rng)
    assert cell.gestation_remaining == int(GENE_BASELINE['gestation_steps']) - 1
    assert cell.metabolic_reserve == pytest.approx(5.0 - CELL_PHYSIOLOGY['pregnancy_cost'] - METABOLIC_COST)


def test_birth_at_term(small_config, rng):
    cell = make_cell(reserve=5.0)
    child_genes = Genes(size=29.0, flagellum_size=5.5, stomach_size=9.0, gestation_steps=190.0)
    cell.gestation_remaining = 1
    cell.pending_child_genes = child_genes
    # 0.18 * cbrt(200) > 1: birth is certain
    newborn = cell.update(small_config, rng)
    assert newborn is not None
    assert newborn.genes == child_genes
    assert (newborn.x, newborn.y) == (cell.x, cell.y)
    assert newborn.metabolic_reserve == CELL_PHYSIOLOGY['initial_reserve']
    assert newborn.reproduction_cooldown == small_config.reproduction_cooldown
    assert cell.gestation_remaining == 0
    assert cell.pending_child_genes is None
    assert cell.metabolic_reserve == pytest.approx(
        5.0 - CELL_PHYSIOLOGY['pregnancy_cost'] - CELL_PHYSIOLOGY['childbirth_cost'] - METABOLIC_COST)


def test_short_gestation_birth_can_fail(small_config, fixed_random):
    genes = Genes(size=30.0, flagellum_size=5.0, stomach_size=10.0, gestation_steps=8.0)
    # P(birth) = 0.18 * cbrt(8) = 0.36
    cell = make_cell(genes=genes)
    cell.gestation_remaining = 1
    cell.pending_child_genes = genes
    assert cell.update(small_config, fixed_random(0.9)) is None
    assert cell.pending_child_genes is None

    cell = make_cell(genes=genes)
    cell.gestation_remaining = 1
    cell.pending_child_genes = genes
    assert cell.update(small_config, fixed_random(0.1)) is not None


def test_find_food_and_eat():
    field = FoodField(800, 800, 40)
    field.place(3, 4)
    cell = make_cell(x=140, y=180, reserve=2.0)
    assert cell.find_food_and_eat(field)
    assert cell.metabolic_reserve == pytest.approx(3.0)
    assert not field.has_food(3, 4)
    assert not cell.find_food_and_eat(field)


def test_attempt_mate_asexual_never_pairs(small_config):
    buckets = MatingBuckets(small_config.mating_radius)
    a = make_cell()
    b = make_cell(x=405)
    assert a.attempt_mate(0, buckets, small_config) is None
    assert b.attempt_mate(1, buckets, small_config) is None
    assert len(buckets) == 0


def test_attempt_mate_sexual_pairs_with_occupant(small_config):
    cfg = small_config.updated(reproduction='sexual')
    buckets = MatingBuckets(cfg.mating_radius)
    a = make_cell()
    b = make_cell(x=405, y=410)
    assert a.attempt_mate(0, buckets, cfg) is None
    assert b.attempt_mate(1, buckets, cfg) == 0
    assert b.reproduction_cooldown == cfg.reproduction_cooldown


def test_attempt_mate_skipped_on_cooldown(small_config):
    cfg = small_config.updated(reproduction='sexual')
    buckets = MatingBuckets(cfg.mating_radius)
    a = make_cell(cooldown=3)
    assert a.attempt_mate(0, buckets, cfg) is None
    assert len(buckets) == 0


def test_attempt_mate_skipped_while_pregnant(small_config, rng):
    cfg = small_config.updated(reproduction='sexual')
    buckets = MatingBuckets(cfg.mating_radius)
    a = make_cell()
    a.start_gestation(a.genes, cfg, rng)
    a.reproduction_cooldown = 0
    assert a.pregnant
    assert not a.can_carry()
    assert a.attempt_mate(0, buckets, cfg) is None
    assert len(buckets) == 0


def test_attempt_mate_vetoed_partner_keeps_cooldown(small_config):
    cfg = small_config.updated(reproduction='sexual')
    buckets = MatingBuckets(cfg.mating_radius)
    a = make_cell()
    b = make_cell(x=405, y=410)
    assert a.attempt_mate(0, buckets, cfg) is None
    assert b.attempt_mate(1, buckets, cfg, accept=lambda i: False) is None
    assert b.reproduction_cooldown == 0
