"""Session state machine for the timed grid game."""

from __future__ import annotations

import logging

from .errors import StaleResult, UnrecognizedCommand
from .grid import DEFAULT_GRID_SIZE, RandomSource, clamp_move, has_arrived, sample_goal
from .interpreter import CommandInterpreter
from .metrics import CountdownTiming, MetricPolicy, PerMoveMetric, TimingSource, bits_per_second
from .models import ORIGIN, Direction, GamePhase, SessionState

DEFAULT_SESSION_LENGTH_SECONDS = 40


class GameSession:
    """Owns the game lifecycle: NOT_STARTED -> RUNNING -> OVER -> (restart) -> RUNNING.

    Every entry point is total. Calls made in the wrong phase are ignored, and
    interpretation failures only populate ``state.last_error``.
    """

    def __init__(
        self,
        *,
        grid_size: int = DEFAULT_GRID_SIZE,
        session_length_seconds: int = DEFAULT_SESSION_LENGTH_SECONDS,
        metric: MetricPolicy | None = None,
        timing: TimingSource | None = None,
        interpreter: CommandInterpreter | None = None,
        rng: RandomSource | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._grid_size = grid_size
        self._session_length_seconds = session_length_seconds
        self._metric = metric or PerMoveMetric()
        self._timing = timing or CountdownTiming()
        self._interpreter = interpreter or CommandInterpreter()
        self._rng = rng
        self._logger = logger or logging.getLogger("speech_webgrid.session")
        self._state = SessionState(goal_position=sample_goal(grid_size, rng))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def grid_size(self) -> int:
        return self._grid_size

    @property
    def session_length_seconds(self) -> int:
        return self._session_length_seconds

    @property
    def is_running(self) -> bool:
        return self._state.phase == GamePhase.RUNNING

    def start(self) -> SessionState:
        """Reset every mutable field and enter RUNNING."""
        self._state = SessionState(
            goal_position=sample_goal(self._grid_size, self._rng),
            phase=GamePhase.RUNNING,
            user_position=ORIGIN,
            starting_position=ORIGIN,
            time_remaining_seconds=self._session_length_seconds,
            started_at=self._timing.now(),
        )
        self._logger.info(
            "session_started",
            extra={
                "goal_row": self._state.goal_position.row,
                "goal_col": self._state.goal_position.col,
                "session_length_seconds": self._session_length_seconds,
            },
        )
        return self._state

    restart = start

    def tick(self) -> None:
        if not self.is_running:
            return

        self._state.time_remaining_seconds = max(0, self._state.time_remaining_seconds - 1)
        if self._state.time_remaining_seconds == 0:
            self._state.phase = GamePhase.OVER
            self._state.ended_at = self._timing.now()
            self._logger.info(
                "session_over",
                extra={
                    "score": self._state.score,
                    "total_bits": self._state.total_bits,
                    "bits_per_second": round(self.bits_per_second(), 2),
                },
            )

    def apply_direction(self, direction: Direction) -> None:
        if not self.is_running:
            return

        state = self._state
        previous = state.user_position
        current = clamp_move(previous, direction, self._grid_size)
        state.user_position = current
        state.last_command = direction
        state.last_error = None

        bits = self._metric.bits_for_move(previous, current)
        if has_arrived(current, state.goal_position):
            reached = state.goal_position
            bits += self._metric.bits_for_arrival(state.starting_position, reached)
            state.score += 1
            state.starting_position = current
            state.goal_position = sample_goal(self._grid_size, self._rng)
            self._logger.info(
                "goal_reached",
                extra={"score": state.score, "row": reached.row, "col": reached.col},
            )
        state.total_bits += bits

    def handle_key(self, code: str) -> None:
        if not self.is_running:
            return

        direction = self._interpreter.resolve_key(code)
        if direction is not None:
            self.apply_direction(direction)

    def handle_transcript(self, text: str, *, is_final: bool = True) -> None:
        """Interpret a final transcript; partial and stale transcripts are dropped."""
        try:
            self._require_running()
        except StaleResult:
            self._logger.debug("transcript_discarded", extra={"text": text})
            return

        if not is_final or not self._state.voice_available:
            return

        try:
            direction = self._interpreter.resolve_phrase(text)
        except UnrecognizedCommand as exc:
            self.report_error(str(exc))
            return
        self.apply_direction(direction)

    def handle_recognition_error(self, message: str, *, unavailable: bool = False) -> None:
        try:
            self._require_running()
        except StaleResult:
            self._logger.debug("recognition_error_discarded", extra={"error": message})
            return

        if unavailable:
            self._state.voice_available = False
        self.report_error(message)

    def report_error(self, message: str) -> None:
        self._state.last_error = message
        self._logger.info("session_error", extra={"error": message})

    def elapsed_seconds(self) -> float:
        return self._timing.elapsed_seconds(self._state, self._session_length_seconds)

    def bits_per_second(self) -> float:
        return bits_per_second(self._state.total_bits, self.elapsed_seconds())

    def _require_running(self) -> None:
        if not self.is_running:
            raise StaleResult(f"Session is {self._state.phase.value}")
