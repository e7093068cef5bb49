"""Bandwidth accounting strategies and the bits-per-second rate."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .grid import manhattan_distance
from .models import Position, SessionState

BITS_PER_DIRECTION = 2  # four equally likely directions


class MetricPolicy(Protocol):
    """Decides how many bits a move or a goal arrival communicates."""

    def bits_for_move(self, previous: Position, current: Position) -> float:
        """Bits credited for one accepted direction command."""

    def bits_for_arrival(self, leg_start: Position, goal: Position) -> float:
        """Bits credited when ``goal`` is reached from ``leg_start``."""


class TimingSource(Protocol):
    """Supplies the elapsed time the rate is computed over."""

    def now(self) -> float:
        """Clock reading stamped on the session at start."""

    def elapsed_seconds(self, state: SessionState, session_length_seconds: int) -> float:
        """Seconds elapsed since the session started."""


@dataclass(slots=True)
class PerMoveMetric:
    bits_per_move: float = BITS_PER_DIRECTION
    charge_blocked_moves: bool = True
    bits_per_arrival: float = 0

    def bits_for_move(self, previous: Position, current: Position) -> float:
        if previous == current and not self.charge_blocked_moves:
            return 0
        return self.bits_per_move

    def bits_for_arrival(self, leg_start: Position, goal: Position) -> float:
        return self.bits_per_arrival


@dataclass(slots=True)
class DistanceWeightedMetric:
    """Credits each completed leg with the information needed to describe its path."""

    bits_per_step: float = BITS_PER_DIRECTION

    def bits_for_move(self, previous: Position, current: Position) -> float:
        return 0

    def bits_for_arrival(self, leg_start: Position, goal: Position) -> float:
        return self.bits_per_step * manhattan_distance(leg_start, goal)


@dataclass(slots=True)
class CountdownTiming:
    clock: Callable[[], float] = time.monotonic

    def now(self) -> float:
        return self.clock()

    def elapsed_seconds(self, state: SessionState, session_length_seconds: int) -> float:
        return session_length_seconds - state.time_remaining_seconds


@dataclass(slots=True)
class WallClockTiming:
    clock: Callable[[], float] = time.monotonic

    def now(self) -> float:
        return self.clock()

    def elapsed_seconds(self, state: SessionState, session_length_seconds: int) -> float:
        if state.started_at is None:
            return 0
        end = state.ended_at if state.ended_at is not None else self.clock()
        return end - state.started_at


def bits_per_second(total_bits: float, elapsed_seconds: float) -> float:
    """Rate of communicated bits; elapsed time is floored at one second."""
    return total_bits / max(1, elapsed_seconds)


def build_metric_policy(
    name: str,
    *,
    bits_per_move: float = BITS_PER_DIRECTION,
    charge_blocked_moves: bool = True,
    bits_per_arrival: float = 0,
) -> MetricPolicy:
    key = name.strip().lower().replace("-", "_")
    if key == "per_move":
        return PerMoveMetric(
            bits_per_move=bits_per_move,
            charge_blocked_moves=charge_blocked_moves,
            bits_per_arrival=bits_per_arrival,
        )
    if key == "distance_weighted":
        return DistanceWeightedMetric(bits_per_step=bits_per_move)
    raise ValueError(f"Unknown metric policy: {name!r} (expected 'per_move' or 'distance_weighted')")


def build_timing_source(name: str, *, clock: Callable[[], float] = time.monotonic) -> TimingSource:
    key = name.strip().lower().replace("-", "_")
    if key == "countdown":
        return CountdownTiming(clock=clock)
    if key == "wall_clock":
        return WallClockTiming(clock=clock)
    raise ValueError(f"Unknown timing source: {name!r} (expected 'countdown' or 'wall_clock')")
