"""Per-cell average colours of the resized master image."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from tile_mosaic.color_utils import average_color, to_rgba8
from tile_mosaic.config import Size
from tile_mosaic.errors import AllocationFailure, raise_if_cancelled
from tile_mosaic.grid import GridDimensions
from tile_mosaic.progress import Phase, ProgressReporter

logger = logging.getLogger(__name__)


def allocate(shape: tuple[int, ...]) -> np.ndarray:
    """Zero-filled uint8 buffer, raising :class:`AllocationFailure` on OOM."""
    try:
        return np.zeros(shape, dtype=np.uint8)
    except MemoryError as exc:
        msg = f"Cannot allocate a {'x'.join(map(str, shape))} pixel buffer"
        raise AllocationFailure(msg) from exc


def build_average_matrix(
    image: np.ndarray,
    grid: GridDimensions,
    tile_size: Size,
    progress: ProgressReporter | None = None,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
) -> np.ndarray:
    """Average colour of every grid cell.

    Rows are independent and computed on a thread pool; each worker owns
    one row of the matrix, so no locking is needed besides the progress
    counter.

    Args:
        image:     (H, W, C) uint8 master, already resized to the output size.
        grid:      Cell counts from :func:`tile_mosaic.grid.plan_grid`.
        tile_size: Extent of one cell.
        progress:  Advanced once per finished row.
        max_workers: Thread-pool size (None = executor default).
        cancel:    Checked before each row starts.

    Returns:
        (cols, rows, C) uint8 matrix indexed ``[x, y]``.
    """
    progress = progress or ProgressReporter()
    tw, th = tile_size
    averages = allocate((grid.cols, grid.rows, image.shape[-1]))

    def _row(y: int) -> None:
        if cancel is not None and cancel.is_set():
            return
        for x in range(grid.cols):
            averages[x, y] = to_rgba8(average_color(image, x * tw, y * th, tw, th))
        progress.advance()

    logger.info("Averaging %dx%d cells …", grid.cols, grid.rows)
    t0 = time.perf_counter()
    progress.start_phase(Phase.AVERAGING, grid.rows)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(_row, y) for y in range(grid.rows)]
        for future in futures:
            future.result()
    raise_if_cancelled(cancel)
    logger.info("Average matrix ready  (%.2f s)", time.perf_counter() - t0)

    averages.flags.writeable = False
    return averages
