"""Stateful front door: a master image and a tile library kept across runs."""

from __future__ import annotations

import logging
import threading

import numpy as np

from tile_mosaic.config import MosaicConfig, Size, StrategyKind
from tile_mosaic.errors import ValidationFailure
from tile_mosaic.image_io import decode
from tile_mosaic.mosaic import MosaicResult, generate_mosaic
from tile_mosaic.progress import ProgressSink
from tile_mosaic.tiles import Tile, TileLibrary, TileSource

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()


class MosaicService:
    """Holds the master image and tile library between generations.

    Tiles keep their processed pixels, so regenerating with the same tile
    size only loads tiles added since the previous run.
    """

    def __init__(self) -> None:
        self._master: np.ndarray | None = None
        self._library = TileLibrary()

    @property
    def master_size(self) -> Size | None:
        if self._master is None:
            return None
        h, w = self._master.shape[:2]
        return Size(w, h)

    @property
    def tiles(self) -> list[Tile]:
        return self._library.snapshot()

    def add_master_image(self, data: bytes) -> Size:
        """Decode and store the master image, replacing any previous one."""
        master = decode(data)
        master.flags.writeable = False
        self._master = master
        logger.debug("Master image set: %dx%d", *self.master_size)
        return self.master_size

    def add_tile_image(self, identity: str, source: TileSource) -> None:
        """Register a tile; *source* is bytes or a callable returning bytes.

        Raises:
            ValueError: *identity* is already registered.
        """
        self._library.add(identity, source)

    def remove_tile_image(self, identity: str) -> None:
        if self._library.remove(identity) is None:
            logger.debug("No tile with identity %r to remove", identity)

    def reset(self) -> None:
        self._master = None
        self._library.clear()

    def generate_mosaic(
        self,
        output_size: Size | tuple[int, int],
        tile_size: Size | tuple[int, int],
        strategy: StrategyKind | str = _DEFAULTS.strategy,
        progress: ProgressSink | None = None,
        *,
        seed: int | None = _DEFAULTS.seed,
        hue_blend: float = _DEFAULTS.hue_blend,
        max_workers: int | None = _DEFAULTS.max_workers,
        rng: np.random.Generator | None = None,
        cancel: threading.Event | None = None,
    ) -> MosaicResult | ValidationFailure:
        """Generate a mosaic from the current master and tile library.

        See :func:`tile_mosaic.mosaic.generate_mosaic` for the phases and
        the failure contract.
        """
        config = MosaicConfig(
            output_size=Size(*output_size),
            tile_size=Size(*tile_size),
            strategy=StrategyKind(strategy),
            seed=seed,
            hue_blend=hue_blend,
            max_workers=max_workers,
        )
        return generate_mosaic(
            self._master, self._library.snapshot(), config,
            progress=progress, rng=rng, cancel=cancel,
        )
