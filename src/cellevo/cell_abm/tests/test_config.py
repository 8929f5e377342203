import pytest

from cellevo.cell_abm.config import (SIMULATOR_DEFAULTS, ConfigError, ExtinctionError,
                                     Reproduction, SimulatorConfig)


def test_defaults_match_table():
    cfg = SimulatorConfig()
    assert cfg.width == SIMULATOR_DEFAULTS['width']
    assert cfg.food_density == SIMULATOR_DEFAULTS['food_density']
    assert cfg.reproduction is Reproduction.ASEXUAL
    assert cfg.margin == cfg.food_spacing / 2.0


def test_reproduction_accepts_strings():
    assert SimulatorConfig(reproduction='sexual').reproduction is Reproduction.SEXUAL
    assert SimulatorConfig(reproduction=' Asexual ').reproduction is Reproduction.ASEXUAL
    with pytest.raises(ConfigError):
        SimulatorConfig(reproduction='budding')


@pytest.mark.parametrize('changes', [
    {'food_spacing': 0},
    {'width': -5},
    {'food_density': 0},
    {'food_spacing': 900, 'width': 800, 'height': 800},
    {'mutation_chance': 1.5},
    {'mutation_percent_change': -0.1},
    {'cell_number': -1},
    {'seed': -3},
    {'width': True},
])
def test_invalid_values_rejected(changes):
    with pytest.raises(ConfigError):
        SimulatorConfig(**changes)


def test_updated_returns_new_config():
    cfg = SimulatorConfig()
    new = cfg.updated({'food_density': 100}, reproduction='sexual')
    assert new.food_density == 100
    assert new.reproduction is Reproduction.SEXUAL
    # receiver untouched
    assert cfg.food_density == SIMULATOR_DEFAULTS['food_density']
    assert cfg.reproduction is Reproduction.ASEXUAL


def test_updated_rejects_unknown_and_invalid():
    cfg = SimulatorConfig()
    with pytest.raises(ConfigError):
        cfg.updated(food_desnity=5)
    with pytest.raises(ConfigError):
        cfg.updated(food_spacing=0)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_extinction_error_carries_tick():
    err = ExtinctionError(17)
    assert err.tick == 17
    assert 'tick 17' in str(err)
