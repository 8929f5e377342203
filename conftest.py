import pytest

from cellevo.cell_abm.config import SimulatorConfig
from cellevo.cell_abm.randoms import RandomStream


def pytest_configure(config):
    """Register the markers used across the suite."""
    config.addinivalue_line('markers', 'slow: long-running scenario tests (deselect with -m "not slow")')


@pytest.fixture
def small_config():
    """An 800x800 field with a 40px food grid and no seed population."""
    return SimulatorConfig(width=800, height=800, food_spacing=40, cell_number=0, seed=1234)


@pytest.fixture
def rng():
    return RandomStream(99)


class FixedRandom:
    """Random stream stand-in that always draws the same value."""

    def __init__(self, value):
        self.value = value

    def next_float(self):
        return self.value

    def next_bounded(self, max_value):
        return int(self.value * max_value)

    def next_floats(self, shape):
        import numpy as np
        return np.full(shape, self.value)


@pytest.fixture
def fixed_random():
    return FixedRandom
