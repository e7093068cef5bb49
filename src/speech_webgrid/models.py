from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class GamePhase(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    OVER = "over"


@dataclass(frozen=True, slots=True)
class Position:
    row: int
    col: int


ORIGIN = Position(row=0, col=0)


@dataclass(slots=True)
class SessionState:
    goal_position: Position
    phase: GamePhase = GamePhase.NOT_STARTED
    user_position: Position = ORIGIN
    starting_position: Position = ORIGIN
    score: int = 0
    time_remaining_seconds: int = 0
    total_bits: float = 0
    started_at: float | None = None
    ended_at: float | None = None
    last_error: str | None = None
    last_command: Direction | None = None
    voice_available: bool = True
