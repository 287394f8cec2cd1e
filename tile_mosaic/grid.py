"""Tile-grid planning."""

from __future__ import annotations

from typing import NamedTuple

from tile_mosaic.config import Size
from tile_mosaic.errors import InvalidDimensions


class GridDimensions(NamedTuple):
    cols: int
    rows: int

    @property
    def cells(self) -> int:
        return self.cols * self.rows


def validate_sizes(output_size: Size, tile_size: Size) -> str | None:
    """Return why *output_size* / *tile_size* cannot form a grid, or None."""
    if min(output_size) <= 0:
        return f"Output size must be positive, got {output_size.width}x{output_size.height}"
    if min(tile_size) <= 0:
        return f"Tile size must be positive, got {tile_size.width}x{tile_size.height}"
    if tile_size.width > output_size.width or tile_size.height > output_size.height:
        return (
            f"Tile size {tile_size.width}x{tile_size.height} exceeds "
            f"output size {output_size.width}x{output_size.height}"
        )
    return None


def plan_grid(output_size: Size, tile_size: Size) -> GridDimensions:
    """Number of whole tiles that fit along each axis.

    Raises:
        InvalidDimensions: A size is non-positive or a resulting axis is 0.
    """
    reason = validate_sizes(output_size, tile_size)
    if reason is not None:
        raise InvalidDimensions(reason)
    return GridDimensions(
        output_size.width // tile_size.width,
        output_size.height // tile_size.height,
    )
