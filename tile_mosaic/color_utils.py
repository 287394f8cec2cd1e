"""Region averaging, colour distance and hue adjustment."""

from __future__ import annotations

import numpy as np
from scipy.spatial.distance import cdist
from skimage.color import hsv2rgb, rgb2hsv


def average_color(
    pixels: np.ndarray,
    x: int,
    y: int,
    width: int,
    height: int,
) -> np.ndarray:
    """Mean of every channel over a rectangle of *pixels*.

    The rectangle is clipped to the buffer, so a cell hanging over the edge
    only averages the pixels that exist.

    Args:
        pixels: (H, W, C) array.
        x, y:   Top-left corner of the rectangle.
        width, height: Extent of the rectangle.

    Returns:
        (C,) float64 array.

    Raises:
        ValueError: The rectangle lies entirely outside the buffer.
    """
    h, w = pixels.shape[:2]
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + width, w), min(y + height, h)
    if x0 >= x1 or y0 >= y1:
        msg = f"Region ({x}, {y}, {width}x{height}) is outside a {w}x{h} buffer"
        raise ValueError(msg)
    region = pixels[y0:y1, x0:x1]
    return region.reshape(-1, region.shape[-1]).mean(axis=0, dtype=np.float64)


def to_rgba8(color: np.ndarray) -> np.ndarray:
    """Round a float colour to a uint8 RGBA entry."""
    return np.clip(np.rint(color), 0, 255).astype(np.uint8)


def nearest_tiles(targets: np.ndarray, candidates: np.ndarray) -> np.ndarray:
    """Index of the closest candidate colour for every target colour.

    Args:
        targets:    (N, C) colours to approximate.
        candidates: (K, C) tile average colours, in library order.

    Returns:
        (N,) int array. Exact ties resolve to the lowest index.
    """
    cost = cdist(
        targets[:, :3].astype(np.float64),
        candidates[:, :3].astype(np.float64),
        "sqeuclidean",
    )
    return np.argmin(cost, axis=1)


def shift_toward(
    pixels: np.ndarray,
    source_avg: np.ndarray,
    target_avg: np.ndarray,
    blend: float,
) -> np.ndarray:
    """Pull every pixel's hue, saturation and value toward a target colour.

    Each pixel moves by ``blend`` times the HSV offset between the tile's own
    average and *target_avg*. Hue travels the short way round the circle.

    Args:
        pixels:     (H, W, 4) uint8 tile.
        source_avg: (4,) average colour of *pixels*.
        target_avg: (4,) colour the tile should approach.
        blend:      0 leaves the tile untouched, 1 moves its average onto
                    the target.

    Returns:
        (H, W, 4) uint8 adjusted copy. Alpha is preserved.
    """
    if blend <= 0:
        return pixels.copy()

    src = rgb2hsv(source_avg[:3].astype(np.float64).reshape(1, 1, 3) / 255.0)[0, 0]
    dst = rgb2hsv(target_avg[:3].astype(np.float64).reshape(1, 1, 3) / 255.0)[0, 0]
    hue_delta = (dst[0] - src[0] + 0.5) % 1.0 - 0.5

    hsv = rgb2hsv(pixels[..., :3].astype(np.float64) / 255.0)
    hsv[..., 0] = (hsv[..., 0] + blend * hue_delta) % 1.0
    hsv[..., 1:] = np.clip(hsv[..., 1:] + blend * (dst[1:] - src[1:]), 0.0, 1.0)

    result = pixels.copy()
    result[..., :3] = np.clip(np.rint(hsv2rgb(hsv) * 255.0), 0, 255).astype(np.uint8)
    return result
