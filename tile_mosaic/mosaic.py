"""Mosaic generation: validate, then run the phases in order."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from tile_mosaic.averaging import allocate, build_average_matrix
from tile_mosaic.config import MosaicConfig, Size, StrategyKind
from tile_mosaic.errors import (
    FailureKind,
    TileLoadFailure,
    ValidationFailure,
    raise_if_cancelled,
)
from tile_mosaic.grid import plan_grid, validate_sizes
from tile_mosaic.image_io import resize_image
from tile_mosaic.progress import Phase, ProgressReporter, ProgressSink
from tile_mosaic.strategies import search_and_replace
from tile_mosaic.tiles import Tile, preprocess_tiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MosaicResult:
    """A finished mosaic plus the tiles that had to be left out."""

    image: np.ndarray
    skipped: tuple[TileLoadFailure, ...] = ()

    @property
    def size(self) -> Size:
        h, w = self.image.shape[:2]
        return Size(w, h)


def validate(
    master: np.ndarray | None,
    tiles: Sequence[Tile],
    config: MosaicConfig,
) -> ValidationFailure | None:
    """Check the inputs of a run without touching any pixels."""
    if master is None:
        return ValidationFailure(
            FailureKind.MISSING_MASTER_IMAGE, "No master image has been added",
        )
    reason = validate_sizes(Size(*config.output_size), Size(*config.tile_size))
    if reason is not None:
        return ValidationFailure(FailureKind.INVALID_DIMENSIONS, reason)
    if StrategyKind(config.strategy).needs_tiles and not tiles:
        return ValidationFailure(
            FailureKind.EMPTY_TILE_LIBRARY,
            f"Strategy '{StrategyKind(config.strategy).value}' needs at least one tile",
        )
    return None


def generate_mosaic(
    master: np.ndarray | None,
    tiles: Sequence[Tile],
    config: MosaicConfig,
    progress: ProgressSink | None = None,
    rng: np.random.Generator | None = None,
    cancel: threading.Event | None = None,
) -> MosaicResult | ValidationFailure:
    """Build a mosaic of *master* from *tiles*.

    Phases: resize master, plan grid, average cells, prepare tiles (skipped
    for plain colour), place tiles. Each phase finishes before the next
    starts.

    Args:
        master:   (H, W, 4) uint8 RGBA master image, or None.
        tiles:    Tile library snapshot in library order.
        config:   Output size, tile size, strategy and tuning.
        progress: Called with a non-decreasing 0-100 percentage.
        rng:      Random source for the random strategy; defaults to one
                  seeded with ``config.seed``.
        cancel:   Setting this event aborts with ``GenerationCancelled``.

    Returns:
        :class:`MosaicResult` on success, :class:`ValidationFailure` when the
        run could not start or no tile was usable.

    Raises:
        AllocationFailure: The output buffer does not fit in memory.
        GenerationCancelled: *cancel* was set.
    """
    failure = validate(master, tiles, config)
    if failure is not None:
        logger.warning("Mosaic not generated: %s", failure.reason)
        return failure

    strategy = StrategyKind(config.strategy)
    output_size, tile_size = Size(*config.output_size), Size(*config.tile_size)
    reporter = ProgressReporter(progress)
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    t_total = time.perf_counter()

    resized = resize_image(master, output_size)
    grid = plan_grid(output_size, tile_size)
    logger.info(
        "Output %dx%d, tile %dx%d, grid %dx%d, strategy %s",
        *output_size, *tile_size, *grid, strategy.value,
    )
    averages = build_average_matrix(
        resized, grid, tile_size, reporter, config.max_workers, cancel,
    )
    del resized

    usable: list[Tile] = []
    skipped: tuple[TileLoadFailure, ...] = ()
    if strategy.needs_tiles:
        usable, failures = preprocess_tiles(
            list(tiles), tile_size, strategy.needs_averages,
            reporter, config.max_workers, cancel,
        )
        skipped = tuple(failures)
        if not usable:
            failure = ValidationFailure(
                FailureKind.EMPTY_TILE_LIBRARY,
                f"None of the {len(tiles)} tiles could be loaded",
                skipped,
            )
            logger.warning("Mosaic not generated: %s", failure.reason)
            return failure
    else:
        reporter.skip_phase(Phase.PREPROCESSING)
    raise_if_cancelled(cancel)

    output = allocate((output_size.height, output_size.width, averages.shape[-1]))
    search_and_replace(
        output, tile_size, grid, usable, averages, strategy,
        rng=rng, hue_blend=config.hue_blend, progress=reporter, cancel=cancel,
    )
    reporter.finish()

    logger.info("Mosaic done  (%.2f s)", time.perf_counter() - t_total)
    return MosaicResult(output, skipped)
