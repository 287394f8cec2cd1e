"""
Tile Mosaic Generator
=====================

Rebuild a master image as a grid of smaller tile images. Ships four
placement strategies:

- **Classic** (nearest average colour)
- **Random** (seedable, ignores colour)
- **AdjustHue** (nearest match, shifted toward the cell colour)
- **PlainColor** (flat cell averages, no tiles needed)
"""

__version__ = "1.0.0"

from tile_mosaic.config import MosaicConfig, Size, StrategyKind
from tile_mosaic.errors import (
    AllocationFailure,
    FailureKind,
    GenerationCancelled,
    InvalidDimensions,
    TileLoadFailure,
    ValidationFailure,
)
from tile_mosaic.grid import GridDimensions, plan_grid
from tile_mosaic.mosaic import MosaicResult, generate_mosaic
from tile_mosaic.service import MosaicService
from tile_mosaic.tiles import Tile, TileLibrary

__all__ = [
    "AllocationFailure",
    "FailureKind",
    "GenerationCancelled",
    "GridDimensions",
    "InvalidDimensions",
    "MosaicConfig",
    "MosaicResult",
    "MosaicService",
    "Size",
    "StrategyKind",
    "Tile",
    "TileLibrary",
    "TileLoadFailure",
    "ValidationFailure",
    "generate_mosaic",
    "plan_grid",
]
