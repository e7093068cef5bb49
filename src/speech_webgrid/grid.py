"""Bounded grid geometry, goal placement and arrival checks."""

from __future__ import annotations

import random
from typing import Protocol

from .models import Direction, Position

DEFAULT_GRID_SIZE = 10

_STEPS: dict[Direction, tuple[int, int]] = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def clamp_move(position: Position, direction: Direction, grid_size: int = DEFAULT_GRID_SIZE) -> Position:
    """Return the position one step towards ``direction``, held inside the grid.

    Moving into a wall returns an equal position rather than rejecting the move.
    """
    d_row, d_col = _STEPS[direction]
    last = grid_size - 1
    return Position(
        row=max(0, min(last, position.row + d_row)),
        col=max(0, min(last, position.col + d_col)),
    )


def sample_goal(grid_size: int = DEFAULT_GRID_SIZE, rng: RandomSource | None = None) -> Position:
    """Draw row and column independently and uniformly from ``[0, grid_size - 1]``."""
    source = rng or random
    return Position(row=source.randrange(grid_size), col=source.randrange(grid_size))


def has_arrived(user_position: Position, goal_position: Position) -> bool:
    return user_position.row == goal_position.row and user_position.col == goal_position.col


def manhattan_distance(a: Position, b: Position) -> int:
    return abs(a.row - b.row) + abs(a.col - b.col)
