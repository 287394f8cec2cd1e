"""Placement strategies: decide what fills every grid cell.

Each strategy is a generator yielding ``(x, y, block)`` once per cell in
row-major order. ``block`` is either a tile-sized (th, tw, C) array or a
single (C,) colour that gets broadcast over the cell.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence

import numpy as np

from tile_mosaic.color_utils import nearest_tiles, shift_toward
from tile_mosaic.config import Size, StrategyKind
from tile_mosaic.errors import raise_if_cancelled
from tile_mosaic.grid import GridDimensions
from tile_mosaic.progress import Phase, ProgressReporter
from tile_mosaic.tiles import Tile

logger = logging.getLogger(__name__)

CellBlocks = Iterator[tuple[int, int, np.ndarray]]
Strategy = Callable[[np.ndarray, Sequence[Tile], np.random.Generator, float], CellBlocks]


def _cells(averages: np.ndarray) -> Iterator[tuple[int, int]]:
    cols, rows = averages.shape[:2]
    for y in range(rows):
        for x in range(cols):
            yield x, y


def _match(averages: np.ndarray, tiles: Sequence[Tile]) -> tuple[list[Tile], np.ndarray]:
    """Closest tile per cell among tiles that carry an average colour."""
    candidates = [t for t in tiles if t.average is not None]
    if not candidates:
        msg = "Colour matching needs at least one tile with an average colour"
        raise ValueError(msg)
    cols, rows, channels = averages.shape
    index = nearest_tiles(
        averages.reshape(-1, channels),
        np.stack([t.average for t in candidates]),
    )
    return candidates, index.reshape(cols, rows)


def _classic(
    averages: np.ndarray,
    tiles: Sequence[Tile],
    rng: np.random.Generator,
    hue_blend: float,
) -> CellBlocks:
    candidates, index = _match(averages, tiles)
    for x, y in _cells(averages):
        yield x, y, candidates[index[x, y]].pixels


def _random(
    averages: np.ndarray,
    tiles: Sequence[Tile],
    rng: np.random.Generator,
    hue_blend: float,
) -> CellBlocks:
    if not tiles:
        msg = "Random placement needs at least one tile"
        raise ValueError(msg)
    choice = rng.integers(0, len(tiles), size=averages.shape[:2])
    for x, y in _cells(averages):
        yield x, y, tiles[choice[x, y]].pixels


def _adjust_hue(
    averages: np.ndarray,
    tiles: Sequence[Tile],
    rng: np.random.Generator,
    hue_blend: float,
) -> CellBlocks:
    candidates, index = _match(averages, tiles)
    for x, y in _cells(averages):
        tile = candidates[index[x, y]]
        yield x, y, shift_toward(tile.pixels, tile.average, averages[x, y], hue_blend)


def _plain_color(
    averages: np.ndarray,
    tiles: Sequence[Tile],
    rng: np.random.Generator,
    hue_blend: float,
) -> CellBlocks:
    for x, y in _cells(averages):
        yield x, y, averages[x, y]


STRATEGIES: dict[StrategyKind, Strategy] = {
    StrategyKind.CLASSIC: _classic,
    StrategyKind.RANDOM: _random,
    StrategyKind.ADJUST_HUE: _adjust_hue,
    StrategyKind.PLAIN_COLOR: _plain_color,
}


def get_strategy(kind: StrategyKind | str) -> Strategy:
    try:
        return STRATEGIES[StrategyKind(kind)]
    except ValueError:
        available = ", ".join(k.value for k in StrategyKind)
        msg = f"Unknown strategy '{kind}'. Available: {available}"
        raise ValueError(msg) from None


def search_and_replace(
    output: np.ndarray,
    tile_size: Size,
    grid: GridDimensions,
    tiles: Sequence[Tile],
    averages: np.ndarray,
    strategy: StrategyKind | str,
    *,
    rng: np.random.Generator | None = None,
    hue_blend: float = 0.5,
    progress: ProgressReporter | None = None,
    cancel: threading.Event | None = None,
) -> None:
    """Fill every cell of *output* in place.

    Args:
        output:    (H, W, C) uint8 buffer, at least grid x tile_size large.
        tile_size: Extent of one cell.
        grid:      Cell counts; must match ``averages.shape[:2]``.
        tiles:     Usable, already processed tiles in library order.
        averages:  (cols, rows, C) matrix from the averaging phase.
        strategy:  Which :class:`StrategyKind` to run.
        rng:       Random source for :attr:`StrategyKind.RANDOM`.
        hue_blend: Strength of the AdjustHue shift.
        progress:  Advanced once per written cell.
        cancel:    Checked between cells.
    """
    fill = get_strategy(strategy)
    progress = progress or ProgressReporter()
    rng = rng if rng is not None else np.random.default_rng()
    if averages.shape[:2] != (grid.cols, grid.rows):
        msg = f"Average matrix {averages.shape[:2]} does not match grid {tuple(grid)}"
        raise ValueError(msg)

    tw, th = tile_size
    logger.info("Placing %d cells (%s) …", grid.cells, StrategyKind(strategy).value)
    t0 = time.perf_counter()
    progress.start_phase(Phase.PLACEMENT, grid.cells)
    for x, y, block in fill(averages, tiles, rng, hue_blend):
        raise_if_cancelled(cancel)
        output[y * th:(y + 1) * th, x * tw:(x + 1) * tw] = block
        progress.advance()
    logger.info("Placement done  (%.2f s)", time.perf_counter() - t0)
