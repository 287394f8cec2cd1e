"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple


class Size(NamedTuple):
    """A (width, height) pair in pixels."""

    width: int
    height: int


class StrategyKind(str, Enum):
    """How each grid cell gets filled."""

    CLASSIC = "classic"
    RANDOM = "random"
    ADJUST_HUE = "adjust_hue"
    PLAIN_COLOR = "plain_color"

    @property
    def needs_tiles(self) -> bool:
        return self is not StrategyKind.PLAIN_COLOR

    @property
    def needs_averages(self) -> bool:
        """Whether tiles must carry an average colour for matching."""
        return self in (StrategyKind.CLASSIC, StrategyKind.ADJUST_HUE)


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        output_size:     Size of the generated mosaic.
        tile_size:       Size of one grid cell.
        strategy:        Placement strategy (see :class:`StrategyKind`).
        seed:            Seed for the random strategy (None = non-deterministic).
        max_workers:     Thread-pool size for averaging and tile loading
                         (None = executor default).
        hue_blend:       How far AdjustHue pulls a tile toward its cell colour
                         (0 = untouched, 1 = tile average lands on target).
        max_side:        CLI only: longest side of the output when no explicit
                         output size is given (aspect ratio preserved).
        output_format:   Image format for saved files.
        save_comparison: Write a master | mosaic comparison image.
        input_dir:       Folder scanned for master images in batch mode.
        tiles_dir:       Folder scanned for tile images.
        output_dir:      Folder for results.
    """

    # Geometry
    output_size: Size = Size(1000, 1000)
    tile_size: Size = Size(50, 50)

    # Placement
    strategy: StrategyKind = StrategyKind.CLASSIC
    seed: int | None = 42
    hue_blend: float = 0.5

    # Concurrency
    max_workers: int | None = None

    # Output
    max_side: int = 1000
    output_format: str = "png"
    save_comparison: bool = True

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    tiles_dir: Path = field(default_factory=lambda: Path("tiles"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )
