"""Asyncio event runtime that serializes all session transitions."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Coroutine

from speech_webgrid.events import GameEvent, KeyPress, RecognitionError, StartRequested, Tick, TranscriptReceived
from speech_webgrid.models import SessionState
from speech_webgrid.session import GameSession

SessionTaskFactory = Callable[[], Coroutine[Any, Any, None]]
ChangeListener = Callable[[GameEvent, SessionState], None]


class GameRuntime:
    """Queue-backed event loop feeding one ``GameSession``.

    Events are consumed by a single worker task, one at a time. Each started
    session owns a countdown timer and any registered session tasks (such as a
    microphone listening loop); all of them are cancelled as soon as the session
    is over, and on ``stop()``.
    """

    def __init__(
        self,
        session: GameSession,
        *,
        tick_interval_seconds: float = 1.0,
        max_queue_size: int = 1_000,
        logger: logging.Logger | None = None,
    ) -> None:
        self._session = session
        self._tick_interval_seconds = tick_interval_seconds
        self._logger = logger or logging.getLogger("speech_webgrid.runtime")

        self._queue: asyncio.Queue[GameEvent] = asyncio.Queue(maxsize=max_queue_size)
        self._overflow: deque[GameEvent] = deque()
        self._worker_task: asyncio.Task[None] | None = None
        self._task_factories: list[tuple[str, SessionTaskFactory]] = []
        self._session_tasks: set[asyncio.Task[None]] = set()
        self._released: list[asyncio.Task[None]] = []
        self._listeners: list[ChangeListener] = []
        self._game_over = asyncio.Event()

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def active_session_tasks(self) -> int:
        return sum(1 for task in self._session_tasks if not task.done())

    def add_session_task(self, name: str, factory: SessionTaskFactory) -> None:
        """Register a coroutine factory that runs for the lifetime of each session."""
        self._task_factories.append((name, factory))

    def add_listener(self, listener: ChangeListener) -> None:
        """Call ``listener`` with each dispatched event and the resulting session state."""
        self._listeners.append(listener)

    async def start(self) -> None:
        """Start the worker loop once for this runtime."""
        if self._worker_task and not self._worker_task.done():
            return

        self._worker_task = asyncio.create_task(self._worker_loop(), name="game-runtime-worker")
        self._logger.info("game_runtime_started", extra={"queue_maxsize": self._queue.maxsize})

    async def stop(self) -> None:
        """Release session tasks, then stop the worker loop."""
        self._cancel_session_tasks()
        await self._await_released()

        if not self._worker_task:
            return

        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        finally:
            self._worker_task = None

        self._logger.info("game_runtime_stopped")

    async def __aenter__(self) -> GameRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def post(self, event: GameEvent) -> None:
        """Enqueue an event without blocking.

        When the queue is full, player input is dropped while ticks and start
        requests are deferred until the worker finishes its current event.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            if isinstance(event, (Tick, StartRequested)):
                self._overflow.append(event)
                self._logger.warning("event_deferred", extra={"event": type(event).__name__})
                return
            self._logger.warning("event_dropped", extra={"event": type(event).__name__})

    def start_game(self) -> None:
        self.post(StartRequested())

    async def join(self) -> None:
        """Wait until every posted event has been dispatched."""
        await self._queue.join()

    async def wait_for_game_over(self) -> SessionState:
        """Wait for the running session to end and its tasks to be released."""
        await self._game_over.wait()
        await self._await_released()
        return self._session.state

    def dispatch(self, event: GameEvent) -> None:
        session = self._session
        was_running = session.is_running

        if isinstance(event, StartRequested):
            self._cancel_session_tasks()
            session.restart()
            self._game_over.clear()
            self._spawn_session_tasks()
        elif isinstance(event, Tick):
            session.tick()
        elif isinstance(event, KeyPress):
            session.handle_key(event.code)
        elif isinstance(event, TranscriptReceived):
            session.handle_transcript(event.text, is_final=event.is_final)
        elif isinstance(event, RecognitionError):
            session.handle_recognition_error(event.message, unavailable=event.unavailable)

        if was_running and not session.is_running:
            self._cancel_session_tasks()
            self._game_over.set()

        for listener in self._listeners:
            listener(event, session.state)

    async def _worker_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._dispatch_safely(event)
                while self._overflow:
                    self._dispatch_safely(self._overflow.popleft())
            finally:
                self._queue.task_done()

    def _dispatch_safely(self, event: GameEvent) -> None:
        try:
            self.dispatch(event)
        except Exception:  # noqa: BLE001 - one bad event must not stop the game loop.
            self._logger.exception("event_dispatch_failed", extra={"event": type(event).__name__})

    async def _countdown(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += self._tick_interval_seconds
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            self.post(Tick())

    def _spawn_session_tasks(self) -> None:
        self._track(asyncio.create_task(self._countdown(), name="game-countdown"))
        for name, factory in self._task_factories:
            self._track(asyncio.create_task(factory(), name=name))

    def _track(self, task: asyncio.Task[None]) -> None:
        self._session_tasks.add(task)
        task.add_done_callback(self._on_session_task_done)

    def _on_session_task_done(self, task: asyncio.Task[None]) -> None:
        self._session_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "session_task_failed",
                extra={"task": task.get_name(), "error": f"{type(exc).__name__}: {exc}"},
            )

    def _cancel_session_tasks(self) -> None:
        pending = [task for task in self._session_tasks if not task.done()]
        for task in pending:
            task.cancel()
        self._released.extend(pending)
        if pending:
            self._logger.debug("session_tasks_released", extra={"count": len(pending)})

    async def _await_released(self) -> None:
        released, self._released = self._released, []
        if released:
            await asyncio.gather(*released, return_exceptions=True)
