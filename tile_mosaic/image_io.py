"""Pillow codec helpers: decode, encode, resize, cover-fit, comparison grid.

Everything outside this module works on (H, W, 4) uint8 RGBA arrays.
"""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont, ImageOps

from tile_mosaic.config import Size
from tile_mosaic.errors import AllocationFailure

_FORMAT_NAMES = {"jpg": "JPEG", "jfif": "JPEG", "tif": "TIFF"}
_OPAQUE_FORMATS = frozenset({"jpg", "jpeg", "jfif", "bmp"})


def compute_target_size(
    original_width: int,
    original_height: int,
    max_side: int,
) -> Size:
    """Compute a (w, h) preserving aspect ratio.

    The longest side becomes *max_side*; the other is scaled
    proportionally (rounded to the nearest integer, minimum 1).
    """
    if original_width >= original_height:
        w = max_side
        h = max(1, round(original_height * max_side / original_width))
    else:
        h = max_side
        w = max(1, round(original_width * max_side / original_height))
    return Size(w, h)


def decode(data: bytes) -> np.ndarray:
    """Decode encoded image bytes to an (H, W, 4) uint8 RGBA array.

    Raises:
        PIL.UnidentifiedImageError: (an ``OSError``) for unreadable data.
    """
    with Image.open(io.BytesIO(data)) as img:
        return np.array(img.convert("RGBA"), dtype=np.uint8)


def encode(array: np.ndarray, fmt: str = "png") -> bytes:
    """Encode an image array; alpha is dropped for formats without it."""
    fmt = fmt.lower().lstrip(".")
    img = Image.fromarray(array.astype(np.uint8))
    if fmt in _OPAQUE_FORMATS:
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format=_FORMAT_NAMES.get(fmt, fmt.upper()))
    return buf.getvalue()


def resize_image(array: np.ndarray, size: Size) -> np.ndarray:
    """Stretch an image array to exactly *size* (LANCZOS).

    Raises:
        AllocationFailure: The resized buffer does not fit in memory.
    """
    try:
        img = Image.fromarray(array).resize(tuple(size), Image.LANCZOS)
        return np.array(img, dtype=np.uint8)
    except MemoryError as exc:
        msg = f"Cannot allocate a {size[0]}x{size[1]} resized image"
        raise AllocationFailure(msg) from exc


def fit_tile(data: bytes, size: Size) -> np.ndarray:
    """Decode *data* and cover-fit it to exactly *size*.

    The aspect ratio is preserved: the image is scaled until it covers the
    target and the excess is cropped around the centre.

    Raises:
        OSError: The data is not a readable image.
        ValueError: The header declares an image too large to decode.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fitted = ImageOps.fit(img.convert("RGBA"), tuple(size), Image.LANCZOS)
    except Image.DecompressionBombError as exc:
        raise ValueError(str(exc)) from exc
    return np.array(fitted, dtype=np.uint8)


def make_comparison_grid(
    master: np.ndarray,
    mosaic: np.ndarray,
    output_path: str | Path,
) -> None:
    """Create a 2-panel comparison: Master | Mosaic.

    The master is stretched to the mosaic's dimensions.
    """
    panel_h, panel_w = mosaic.shape[:2]
    label_height = 36

    panels = [
        Image.fromarray(master).convert("RGB").resize((panel_w, panel_h), Image.LANCZOS),
        Image.fromarray(mosaic).convert("RGB"),
    ]
    labels = ["Master", f"Mosaic {panel_w}x{panel_h}"]

    gap = 8
    total_w = len(panels) * panel_w + (len(panels) - 1) * gap
    total_h = panel_h + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel_w - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    canvas.save(output_path)
