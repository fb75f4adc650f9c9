"""Clamped resource gauge shared by job gauge modules."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

__all__ = ["GaugeSample", "ResourceGauge", "tick_count"]


@dataclass(frozen=True, slots=True)
class GaugeSample:
    """Gauge value at ``elapsed`` milliseconds into the encounter."""

    elapsed: int
    value: float

    def as_pair(self) -> tuple[int, float]:
        return (self.elapsed, self.value)


def tick_count(duration: float, tick_interval: float, max_ticks: int) -> int:
    """Number of periodic ticks credited for a buff that lasted ``duration``.

    Server ticks can land anywhere inside the window, so at least one tick is
    always credited.
    """

    if tick_interval <= 0:
        raise ValueError("tick_interval must be positive")
    if max_ticks < 1:
        raise ValueError("max_ticks must be at least 1")
    ticks = math.floor(duration / tick_interval)
    return min(max(1, ticks), max_ticks)


class ResourceGauge:
    """Resource value clamped into ``[0, maximum]``.

    Every transition goes through :meth:`set_value`, which records the
    clamped value in the history and accumulates any amount lost above the
    maximum as overflow. Downward clamps never count as overflow.
    """

    def __init__(self, maximum: float, *, initial: float = 0.0) -> None:
        if maximum <= 0:
            raise ValueError("maximum must be positive")
        self._maximum = float(maximum)
        self._current = min(max(float(initial), 0.0), self._maximum)
        self._overflow = 0.0
        self._consumption_count = 0
        self._history: list[GaugeSample] = []

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def current(self) -> float:
        return self._current

    @property
    def maximum(self) -> float:
        return self._maximum

    @property
    def overflow(self) -> float:
        return self._overflow

    @property
    def consumption_count(self) -> int:
        return self._consumption_count

    @property
    def history(self) -> tuple[GaugeSample, ...]:
        return tuple(self._history)

    def series(self) -> tuple[tuple[int, float], ...]:
        return tuple(sample.as_pair() for sample in self._history)

    def as_array(self) -> np.ndarray:
        """Return the history as a ``(n, 2)`` float array of ``(elapsed, value)``."""

        if not self._history:
            return np.empty((0, 2), dtype=float)
        return np.array([sample.as_pair() for sample in self._history], dtype=float)

    def missed_uses(self, cost: float) -> int:
        """Whole consumptions lost to overflow for an action costing ``cost``."""

        if cost <= 0:
            raise ValueError("cost must be positive")
        return math.floor(self._overflow / cost)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def set_value(self, value: float, elapsed: int) -> float:
        clamped = min(max(float(value), 0.0), self._maximum)
        self._overflow += max(0.0, float(value) - clamped)
        self._current = clamped
        self._history.append(GaugeSample(elapsed=elapsed, value=clamped))
        return clamped

    def generate(self, amount: float, elapsed: int) -> float:
        if amount == 0:
            return self._current
        return self.set_value(self._current + amount, elapsed)

    def consume(self, cost: float, elapsed: int) -> float:
        """Spend ``cost``.

        When the gauge holds less than ``cost`` the action could not have been
        used unless the gauge actually reached the cost, so the latest sample
        is raised to ``cost`` before the decrement.
        """

        self._consumption_count += 1
        if self._current < cost and self._history:
            last = self._history[-1]
            self._history[-1] = GaugeSample(elapsed=last.elapsed, value=float(cost))
        return self.set_value(self._current - cost, elapsed)

    def apply_ticks(
        self,
        duration: float,
        *,
        tick_interval: float,
        max_ticks: int,
        per_tick: float,
        elapsed: int,
    ) -> int:
        ticks = tick_count(duration, tick_interval, max_ticks)
        self.set_value(self._current + ticks * per_tick, elapsed)
        return ticks

    def reset(self, elapsed: int) -> None:
        self._current = 0.0
        self._history.append(GaugeSample(elapsed=elapsed, value=0.0))
