"""Tile library and concurrent tile preprocessing."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from tile_mosaic.color_utils import average_color, to_rgba8
from tile_mosaic.config import Size
from tile_mosaic.errors import TileLoadFailure, raise_if_cancelled
from tile_mosaic.image_io import fit_tile
from tile_mosaic.progress import Phase, ProgressReporter

logger = logging.getLogger(__name__)

TileSource = bytes | Callable[[], bytes]


@dataclass
class Tile:
    """One candidate image for the mosaic.

    ``pixels`` and ``average`` are filled lazily by :meth:`process` and kept
    between generations as long as the tile size does not change.
    """

    identity: str
    source: TileSource = field(repr=False)
    pixels: np.ndarray | None = field(default=None, repr=False)
    average: np.ndarray | None = None
    size: Size | None = None

    def read(self) -> bytes:
        return self.source() if callable(self.source) else self.source

    def is_ready(self, tile_size: Size, with_average: bool = False) -> bool:
        return (
            self.pixels is not None
            and self.size == tile_size
            and (not with_average or self.average is not None)
        )

    def process(self, tile_size: Size, with_average: bool = False) -> None:
        """Cover-fit the source to *tile_size* and optionally average it.

        Raises:
            OSError, ValueError: The source cannot be read or decoded.
        """
        if self.pixels is None or self.size != tile_size:
            pixels = fit_tile(self.read(), tile_size)
            self.pixels, self.size, self.average = pixels, Size(*tile_size), None
        if with_average and self.average is None:
            self.average = to_rgba8(average_color(self.pixels, 0, 0, *tile_size))


class TileLibrary:
    """Insertion-ordered tiles keyed by a unique identity."""

    def __init__(self) -> None:
        self._tiles: dict[str, Tile] = {}

    def add(self, identity: str, source: TileSource) -> Tile:
        if identity in self._tiles:
            msg = f"A tile with identity {identity!r} is already registered"
            raise ValueError(msg)
        tile = Tile(identity, source)
        self._tiles[identity] = tile
        return tile

    def remove(self, identity: str) -> Tile | None:
        return self._tiles.pop(identity, None)

    def clear(self) -> None:
        self._tiles.clear()

    def snapshot(self) -> list[Tile]:
        return list(self._tiles.values())

    def __contains__(self, identity: object) -> bool:
        return identity in self._tiles

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._tiles)


def preprocess_tiles(
    tiles: list[Tile],
    tile_size: Size,
    with_average: bool = True,
    progress: ProgressReporter | None = None,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
) -> tuple[list[Tile], list[TileLoadFailure]]:
    """Bring every tile to *tile_size* on a thread pool.

    A tile that fails to load is logged, reported and left out; the rest
    carry on.

    Returns:
        ``(usable, failures)`` with *usable* in library order.
    """
    progress = progress or ProgressReporter()

    def _work(tile: Tile) -> TileLoadFailure | None:
        if cancel is not None and cancel.is_set():
            return None
        if tile.is_ready(tile_size, with_average):
            logger.debug("Tile %s already prepared", tile.identity)
            progress.advance()
            return None
        try:
            tile.process(tile_size, with_average)
        except (OSError, ValueError) as exc:
            logger.warning("Skipping tile %s: %s", tile.identity, exc)
            failure = TileLoadFailure(tile.identity, str(exc) or type(exc).__name__)
        else:
            failure = None
        progress.advance()
        return failure

    logger.info("Preparing %d tiles at %dx%d …", len(tiles), *tile_size)
    t0 = time.perf_counter()
    progress.start_phase(Phase.PREPROCESSING, len(tiles))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_work, tiles))
    raise_if_cancelled(cancel)

    failures = [f for f in results if f is not None]
    failed = {f.identity for f in failures}
    usable = [t for t in tiles if t.identity not in failed]
    logger.info(
        "Tiles ready: %d usable, %d skipped  (%.2f s)",
        len(usable), len(failures), time.perf_counter() - t0,
    )
    return usable, failures
