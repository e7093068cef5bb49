"""Typed events dispatched into the game session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StartRequested:
    """Start a new session, or restart a finished one."""


@dataclass(frozen=True, slots=True)
class Tick:
    """One second of countdown elapsed."""


@dataclass(frozen=True, slots=True)
class KeyPress:
    code: str


@dataclass(frozen=True, slots=True)
class TranscriptReceived:
    text: str
    is_final: bool = True
    confidence: float | None = None


@dataclass(frozen=True, slots=True)
class RecognitionError:
    message: str
    unavailable: bool = False


GameEvent = StartRequested | Tick | KeyPress | TranscriptReceived | RecognitionError
