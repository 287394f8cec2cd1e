"""Weighted, thread-safe progress across the generation phases."""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum

ProgressSink = Callable[[int], None]


class Phase(Enum):
    AVERAGING = (0, 33)
    PREPROCESSING = (33, 66)
    PLACEMENT = (66, 100)

    @property
    def start(self) -> int:
        return self.value[0]

    @property
    def end(self) -> int:
        return self.value[1]


class ProgressReporter:
    """Map per-phase unit counts onto a single 0-100 percentage.

    Workers call :meth:`advance` from any thread. The counter and the sink
    call share one lock, so the sink sees a non-decreasing sequence and is
    only called when the integer percentage actually moves.
    """

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink
        self._lock = threading.Lock()
        self._phase = Phase.AVERAGING
        self._total = 0
        self._done = 0
        self._reported = -1

    @property
    def percentage(self) -> int:
        return max(self._reported, 0)

    def start_phase(self, phase: Phase, total: int) -> None:
        with self._lock:
            self._phase = phase
            self._total = total
            self._done = 0
            self._emit(phase.end if total <= 0 else phase.start)

    def skip_phase(self, phase: Phase) -> None:
        """Mark a phase as having no work."""
        self.start_phase(phase, 0)

    def advance(self, n: int = 1) -> None:
        with self._lock:
            self._done = min(self._done + n, self._total)
            span = self._phase.end - self._phase.start
            self._emit(self._phase.start + self._done * span // max(self._total, 1))

    def finish(self) -> None:
        with self._lock:
            self._emit(100)

    def _emit(self, value: int) -> None:
        if value <= self._reported:
            return
        self._reported = value
        if self._sink is not None:
            self._sink(value)
