"""
cell_viewer.py

Pygame renderer for cell simulations.

`render_snapshot` draws a `SimulationSnapshot` onto any `pygame.Surface` and never touches the
simulator, so it works off-screen (tests, frame dumps) as well as inside the interactive
viewer. `run_viewer` opens a window around a live `Simulator`.

Controls:
- SPACE      : Play/Pause
- RIGHT / N  : Single step (while paused)
- W/A/S/D    : Pan camera
- Mouse wheel: Pan camera vertically
- ESC        : Quit
"""
import argparse
import logging
import math
from typing import Tuple

import pygame

from cellevo.cell_abm.config import SIMULATOR_DEFAULTS, ConfigError, Reproduction, SimulatorConfig
from cellevo.cell_abm.simulation_core import CellSnapshot, SimulationSnapshot, Simulator
from cellevo.cell_abm.utils import setup_console_logging

log = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================
WINDOW_WIDTH = 1000
WINDOW_HEIGHT = 900
FPS_TARGET = 60
CAMERA_STEP = 100

COLOR_BG = (26, 101, 171)
COLOR_FOOD = (42, 65, 85)
COLOR_MEMBRANE = (100, 220, 255)
COLOR_FLAGELLUM = (50, 200, 255)
COLOR_OUTLINE = (255, 255, 255)
COLOR_STOMACH_EDGE = (0, 0, 0)
COLOR_TEXT = (220, 220, 220)

FOOD_RADIUS = 3


def cell_color(cell: CellSnapshot) -> Tuple[int, int, int]:
    """Body fill: blue-to-green as gestation nears term, otherwise a per-cell tint."""
    if cell.gestation_remaining > 0:
        closeness = cell.gestation_remaining / cell.genes.gestation_steps * 200.0
        closeness = max(0.0, min(200.0, closeness))
        return 0, int(closeness), int(200.0 - closeness)
    seed = cell.display_seed
    return (60 + int(seed * 50),
            150 + int((seed * 7.0) % 1.0 * 50),
            150 + int((seed * 13.0) % 1.0 * 70))


def stomach_color(cell: CellSnapshot) -> Tuple[int, int, int]:
    fullness = max(0.0, min(1.0, cell.fullness))
    return int(fullness * 255), 0, 0


def render_snapshot(surface: pygame.Surface, snapshot: SimulationSnapshot,
                    camera: Tuple[int, int] = (0, 0)) -> pygame.Surface:
    """Draw food, cells and the field outline of ``snapshot`` onto ``surface``."""
    cam_x, cam_y = camera
    view_w, view_h = surface.get_size()
    surface.fill(COLOR_BG)

    for fx, fy in snapshot.food_positions():
        pygame.draw.circle(surface, COLOR_FOOD, (int(fx + cam_x), int(fy + cam_y)), FOOD_RADIUS)

    for cell in snapshot.cells:
        radius = max(1, int(round(cell.genes.size)))
        x = cell.x + cam_x
        y = cell.y + cam_y
        # skip cells entirely outside the view
        if x + radius < 0 or y + radius < 0 or x - radius > view_w or y - radius > view_h:
            continue
        _draw_cell(surface, cell, x, y, radius, snapshot.tick)

    pygame.draw.rect(surface, COLOR_OUTLINE, pygame.Rect(cam_x, cam_y, snapshot.width, snapshot.height), 2)
    return surface


def _draw_cell(surface, cell: CellSnapshot, x: int, y: int, radius: int, tick: int) -> None:
    # flagellum trails behind the heading and beats with a per-cell phase
    beat = math.radians(((cell.display_seed * 360.0 + tick) * 30.0) % 360.0)
    tail_angle = cell.heading + math.pi + 0.4 * math.sin(beat)
    tail_len = radius + (radius / 2.0) * cell.genes.flagellum_size
    tail_end = (x + tail_len * math.cos(tail_angle), y + tail_len * math.sin(tail_angle))
    pygame.draw.line(surface, COLOR_FLAGELLUM, (x, y), tail_end, 3)

    pygame.draw.circle(surface, cell_color(cell), (x, y), radius)
    pygame.draw.circle(surface, COLOR_MEMBRANE, (x, y), radius, 3)

    stomach_r = max(1, int(round(cell.genes.stomach_size)))
    pygame.draw.circle(surface, stomach_color(cell), (x, y), stomach_r)
    pygame.draw.circle(surface, COLOR_STOMACH_EDGE, (x, y), stomach_r, 1)


def run_viewer(sim: Simulator, window_size: Tuple[int, int] = (WINDOW_WIDTH, WINDOW_HEIGHT),
               fps: int = FPS_TARGET) -> None:
    """Interactive window around ``sim``; returns when the window is closed."""
    pygame.init()
    try:
        pygame.display.set_caption('cellevo')
        window = pygame.display.set_mode(window_size)
        clock = pygame.time.Clock()
        font = pygame.font.Font(None, 24)
        camera = [window_size[0] // 2 - sim.config.width // 2, 20]
        playing = False
        running = True
        log.info("[VIEW] Viewer started (%sx%s)", *window_size)

        while running:
            step_once = False
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_SPACE:
                        playing = not playing
                    elif event.key in (pygame.K_RIGHT, pygame.K_n):
                        step_once = not playing
                    elif event.key in (pygame.K_w, pygame.K_UP):
                        camera[1] -= CAMERA_STEP
                    elif event.key in (pygame.K_s, pygame.K_DOWN):
                        camera[1] += CAMERA_STEP
                    elif event.key == pygame.K_d:
                        camera[0] += CAMERA_STEP
                    elif event.key in (pygame.K_a, pygame.K_LEFT):
                        camera[0] -= CAMERA_STEP
                elif event.type == pygame.MOUSEWHEEL:
                    camera[0] -= event.x * 20
                    camera[1] += event.y * 20

            if playing or step_once:
                sim.step()

            snapshot = sim.snapshot()
            render_snapshot(window, snapshot, tuple(camera))
            label = f"{snapshot.tick} step{'s' if snapshot.tick != 1 else ''}  |  {snapshot.population_size} cells"
            window.blit(font.render(label, True, COLOR_TEXT), (10, 10))
            pygame.display.flip()
            clock.tick(fps)
    finally:
        pygame.quit()
        log.info("[VIEW] Viewer closed at tick %s", sim.tick_count)


def _parse_args(argv=None):
    p = argparse.ArgumentParser(description='Interactive cell simulation viewer')
    p.add_argument('--mode', choices=[m.value for m in Reproduction], default=Reproduction.ASEXUAL.value)
    p.add_argument('--food-density', type=int, default=SIMULATOR_DEFAULTS['food_density'])
    p.add_argument('--width', type=int, default=800)
    p.add_argument('--height', type=int, default=800)
    p.add_argument('--cells', type=int, default=SIMULATOR_DEFAULTS['cell_number'])
    p.add_argument('--seed', type=int, default=SIMULATOR_DEFAULTS['seed'])
    p.add_argument('--verbose', '-v', action='store_true')
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    setup_console_logging(args.verbose)
    try:
        config = SimulatorConfig(width=args.width, height=args.height, cell_number=args.cells,
                                 food_density=args.food_density, reproduction=args.mode, seed=args.seed)
    except ConfigError as e:
        log.error("[VIEW] %s", e)
        return 2
    run_viewer(Simulator(config))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
