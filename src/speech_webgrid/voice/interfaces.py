"""Contracts for speech recognition backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Protocol


@dataclass(frozen=True, slots=True)
class Transcript:
    """Best-effort text recognized from one utterance."""

    text: str
    is_final: bool = True
    confidence: float | None = None
    language: str | None = None


class SpeechRecognizer(Protocol):
    """Converts buffered audio into text."""

    async def transcribe(self, audio_bytes: bytes) -> Transcript:
        """Return recognized text for ``audio_bytes``.

        Raises ``TranscriptionRequestFailed`` on service errors and
        ``RecognitionUnavailable`` when the backend cannot be used at all.
        """


class StreamingRecognizer(Protocol):
    """Converts a live stream of audio chunks into partial and final transcripts."""

    def stream(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[Transcript]:
        """Yield transcripts as the service produces them."""
