"""Failure types returned or raised by the mosaic pipeline.

Validation problems are *returned* as :class:`ValidationFailure` so callers
can branch on them without exception handling. Broken tiles are collected
as :class:`TileLoadFailure` and reported next to a successful result. Only
genuinely fatal conditions (allocation, cancellation) are raised.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum


class FailureKind(str, Enum):
    MISSING_MASTER_IMAGE = "missing_master_image"
    EMPTY_TILE_LIBRARY = "empty_tile_library"
    INVALID_DIMENSIONS = "invalid_dimensions"


@dataclass(frozen=True)
class TileLoadFailure:
    """A tile that could not be read or decoded and was left out."""

    identity: str
    reason: str


@dataclass(frozen=True)
class ValidationFailure:
    """Generation did not run; no output buffer was produced."""

    kind: FailureKind
    reason: str
    skipped: tuple[TileLoadFailure, ...] = ()

    def __str__(self) -> str:
        return self.reason


class InvalidDimensions(ValueError):
    """Output or tile size cannot produce a non-empty grid."""


class AllocationFailure(MemoryError):
    """A pixel buffer was too large to allocate."""


class GenerationCancelled(RuntimeError):
    """The caller set the cancel flag while a generation was running."""


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise GenerationCancelled("Mosaic generation was cancelled")
