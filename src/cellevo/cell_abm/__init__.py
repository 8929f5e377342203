"""Cell agent-based model: genes, food field, cells and the tick simulator."""
from cellevo.cell_abm.config import (ConfigError, ExtinctionError, Reproduction,
                                     SimulatorConfig)
from cellevo.cell_abm.simulation_core import SimulationSnapshot, Simulator

__all__ = [
    'ConfigError',
    'ExtinctionError',
    'Reproduction',
    'SimulationSnapshot',
    'Simulator',
    'SimulatorConfig',
]
