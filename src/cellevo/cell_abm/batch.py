"""
batch.py

Headless statistics runs: several independent simulators stepped for a fixed tick budget,
sampled at a fixed interval and averaged into one time series.

Each instance owns a random stream spawned from the batch seed, so the serial path and the
process-pool path produce the same table for the same settings. The food density may be
switched once, at `switch_tick` (the midpoint by default).

Usage:
------
    from cellevo.cell_abm.batch import BatchSettings, run_batch

    settings = BatchSettings(reproduction='sexual', food_density=240,
                             switched_food_density=480, total_ticks=20_000,
                             sample_interval=1_000, simulations=4)
    df = run_batch(settings, progress=lambda pct: print(f"{pct:.0f}%"))

or from the shell:

    cellevo-batch --mode sexual --food-density 240 --switched-food-density 480 -o results.csv
"""
import argparse
import logging
import math
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from cellevo.cell_abm.config import (BATCH_DEFAULTS, SIMULATOR_DEFAULTS, ConfigError,
                                     ExtinctionError, Reproduction, SimulatorConfig)
from cellevo.cell_abm.randoms import RandomStream
from cellevo.cell_abm.simulation_core import Simulator
from cellevo.cell_abm.utils import setup_console_logging

log = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'step',
    'population_size',
    'food_available_pct',
    'avg_size',
    'avg_flagellum_size',
    'avg_stomach_size',
    'avg_gestation_steps',
]

ProgressCallback = Callable[[float], None]


@dataclass
class BatchSettings:
    reproduction: Any = Reproduction.ASEXUAL
    food_density: int = SIMULATOR_DEFAULTS['food_density']
    switched_food_density: Optional[int] = None
    switch_tick: Optional[int] = None
    simulations: int = BATCH_DEFAULTS['simulations']
    total_ticks: int = BATCH_DEFAULTS['total_ticks']
    sample_interval: int = BATCH_DEFAULTS['sample_interval']
    seed: Optional[int] = SIMULATOR_DEFAULTS['seed']
    max_workers: Optional[int] = None
    base_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.reproduction = Reproduction.parse(self.reproduction)
        for name in ('simulations', 'total_ticks', 'sample_interval'):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.total_ticks % self.sample_interval:
            raise ConfigError(
                f"total_ticks ({self.total_ticks}) must be a multiple of sample_interval ({self.sample_interval})"
            )
        if self.switch_tick is None:
            self.switch_tick = self.total_ticks // 2
        if self.switched_food_density is not None and self.switched_food_density <= 0:
            raise ConfigError(f"switched_food_density must be positive, got {self.switched_food_density!r}")
        # fail early on a bad base config rather than inside a worker
        self.make_config()

    @property
    def samples(self) -> int:
        return self.total_ticks // self.sample_interval

    def make_config(self) -> SimulatorConfig:
        options = dict(self.base_config)
        options.update(reproduction=self.reproduction, food_density=self.food_density, seed=self.seed)
        return SimulatorConfig(**options)


class _InstanceRun:
    """One simulator of a batch plus its sampling bookkeeping."""

    def __init__(self, number: int, settings: BatchSettings, rng: RandomStream):
        self.number = number
        self.settings = settings
        self.sim = Simulator(settings.make_config(), rng=rng)
        self.extinct = False

    def advance(self, ticks: int) -> None:
        s = self.settings
        for _ in range(ticks):
            if s.switched_food_density is not None and self.sim.tick_count == s.switch_tick:
                self.sim.configure(food_density=s.switched_food_density)
            self.sim.tick()

    def sample(self) -> Dict[str, float]:
        sim = self.sim
        row = {
            'instance': self.number,
            'step': sim.tick_count,
            'population_size': sim.population_size,
            'food_available_pct': sim.get_food_availability_fraction() * 100.0,
        }
        try:
            averages = sim.population_averages()
        except ExtinctionError as exc:
            if not self.extinct:
                log.warning("[BATCH] instance %s: %s", self.number, exc)
                self.extinct = True
            averages = {}
        for trait in ('size', 'flagellum_size', 'stomach_size', 'gestation_steps'):
            row[f'avg_{trait}'] = averages.get(trait, math.nan)
        return row


def _run_instance(number: int, settings: BatchSettings, rng: RandomStream) -> List[Dict[str, float]]:
    run = _InstanceRun(number, settings, rng)
    rows = []
    for _ in range(settings.samples):
        run.advance(settings.sample_interval)
        rows.append(run.sample())
    return rows


def run_batch(settings: BatchSettings, progress: Optional[ProgressCallback] = None) -> pd.DataFrame:
    """Run ``settings.simulations`` instances and average their samples per step.

    ``progress(percent)`` is called once for every whole completion percentage,
    in order, ending at 100. Serial runs report after each sample interval;
    pooled runs (``max_workers > 1``) only know when a whole instance finishes,
    so the percentages for that instance arrive together (all 100 at the end
    when ``simulations == 1``). Trait averages skip extinct instances;
    population size counts them as 0.
    """
    streams = RandomStream(settings.seed).spawn(settings.simulations)
    log.info("[BATCH] Starting: %s instances x %s ticks, sampling every %s, %s reproduction",
             settings.simulations, settings.total_ticks, settings.sample_interval,
             settings.reproduction.value)

    reporter = _ProgressReporter(progress)
    if settings.max_workers is not None and settings.max_workers > 1:
        rows = []
        with ProcessPoolExecutor(max_workers=settings.max_workers) as executor:
            futures = [executor.submit(_run_instance, n, settings, rng) for n, rng in enumerate(streams)]
            for done, future in enumerate(as_completed(futures), start=1):
                rows.extend(future.result())
                reporter.update(done / settings.simulations)
    else:
        runs = [_InstanceRun(n, settings, rng) for n, rng in enumerate(streams)]
        rows = []
        for i in range(settings.samples):
            for run in runs:
                run.advance(settings.sample_interval)
                rows.append(run.sample())
            reporter.update((i + 1) / settings.samples)

    frame = pd.DataFrame(rows).sort_values(['step', 'instance'], kind='stable')
    result = (frame.drop(columns='instance')
              .groupby('step', as_index=False)
              .mean()
              .sort_values('step')
              .reset_index(drop=True))
    log.info("[BATCH] Completed %s samples", len(result))
    return result[RESULT_COLUMNS]


class _ProgressReporter:

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.reported = 0

    def update(self, fraction: float) -> None:
        percent = int(math.floor(fraction * 100.0 + 1e-9))
        while self.reported < percent:
            self.reported += 1
            if self.callback is not None:
                self.callback(float(self.reported))


def results_csv(results: pd.DataFrame) -> str:
    return results.to_csv(index=False, lineterminator='\n')


def _parse_args(argv=None):
    p = argparse.ArgumentParser(description='Averaged statistics over independent cell simulations')
    p.add_argument('--mode', choices=[m.value for m in Reproduction], default=Reproduction.ASEXUAL.value,
                   help='reproduction mode (default: asexual)')
    p.add_argument('--food-density', type=int, default=SIMULATOR_DEFAULTS['food_density'],
                   help='reciprocal food spawn probability at the start')
    p.add_argument('--switched-food-density', type=int, default=None,
                   help='food density applied from the switch tick on')
    p.add_argument('--switch-tick', type=int, default=None,
                   help='tick at which the food density switches (default: midpoint)')
    p.add_argument('--simulations', '-n', type=int, default=BATCH_DEFAULTS['simulations'])
    p.add_argument('--ticks', type=int, default=BATCH_DEFAULTS['total_ticks'])
    p.add_argument('--sample-interval', type=int, default=BATCH_DEFAULTS['sample_interval'])
    p.add_argument('--seed', type=int, default=SIMULATOR_DEFAULTS['seed'])
    p.add_argument('--workers', type=int, default=None, help='process pool size (default: serial)')
    p.add_argument('--output', '-o', default=None, help='CSV path (default: stdout)')
    p.add_argument('--verbose', '-v', action='store_true')
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    setup_console_logging(args.verbose)
    try:
        settings = BatchSettings(
            reproduction=args.mode,
            food_density=args.food_density,
            switched_food_density=args.switched_food_density,
            switch_tick=args.switch_tick,
            simulations=args.simulations,
            total_ticks=args.ticks,
            sample_interval=args.sample_interval,
            seed=args.seed,
            max_workers=args.workers,
        )
    except ConfigError as e:
        log.error("[BATCH] %s", e)
        return 2

    results = run_batch(settings, progress=lambda pct: log.info("[BATCH] %.0f%% complete", pct))
    text = results_csv(results)
    if args.output:
        with open(args.output, 'w', newline='') as f:
            f.write(text)
        log.info("[BATCH] Results written to %s", args.output)
    else:
        print(text, end='')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
