"""Microphone capture and speech-to-text orchestration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterable, Callable, Protocol

from speech_webgrid.errors import RecognitionUnavailable, TranscriptionRequestFailed
from speech_webgrid.events import GameEvent, RecognitionError, TranscriptReceived

from .interfaces import SpeechRecognizer, StreamingRecognizer, Transcript

EventSink = Callable[[GameEvent], None]


@dataclass(slots=True)
class VoiceInputConfig:
    """Gating parameters for captured audio."""

    sensitivity_threshold: float = 0.0


class MicrophoneSource(Protocol):
    """Represents a microphone-backed audio source."""

    def read_chunk(self) -> bytes:
        """Block until the next utterance is captured and return it as audio bytes."""


class VoiceInputService:
    """Turns captured audio into game events.

    Transcription requests are fire-and-forget: each runs in its own task and
    posts a ``TranscriptReceived`` or ``RecognitionError`` when it completes.
    Results that arrive after the session ended are left for the session to
    discard.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer | None,
        post: EventSink,
        *,
        config: VoiceInputConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._post = post
        self._config = config or VoiceInputConfig()
        self._logger = logger or logging.getLogger("speech_webgrid.voice.input")
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> VoiceInputConfig:
        return self._config

    @property
    def pending_requests(self) -> int:
        return len(self._pending)

    def update_config(self, *, sensitivity_threshold: float | None = None) -> None:
        if sensitivity_threshold is not None:
            self._config.sensitivity_threshold = max(0.0, min(1.0, sensitivity_threshold))

    def submit(self, audio_bytes: bytes) -> asyncio.Task[None] | None:
        """Start transcribing one utterance unless it is empty or too quiet."""
        if self._recognizer is None or not audio_bytes:
            return None
        if self._estimate_signal_level(audio_bytes) < self._config.sensitivity_threshold:
            return None

        task = asyncio.create_task(
            self._transcribe_and_post(self._recognizer, audio_bytes),
            name="transcription-request",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight transcription requests to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def listen(self, microphone: MicrophoneSource) -> None:
        """Capture utterances until cancelled, submitting each for transcription."""
        self._logger.info("listening_started")
        try:
            while True:
                try:
                    audio_bytes = await asyncio.to_thread(microphone.read_chunk)
                except (RecognitionUnavailable, OSError) as exc:
                    self._post(RecognitionError(message=f"Microphone unavailable: {exc}", unavailable=True))
                    return
                self.submit(audio_bytes)
        finally:
            self._logger.info("listening_stopped")

    async def stream(self, client: StreamingRecognizer, chunks: AsyncIterable[bytes]) -> None:
        """Relay every transcript from a streaming service; the session acts on final ones only."""
        try:
            async for transcript in client.stream(chunks):
                self._post_transcript(transcript)
        except (RecognitionUnavailable, OSError) as exc:
            self._logger.warning("stream_microphone_failed", extra={"error": str(exc)})
            self._post(RecognitionError(message=f"Microphone unavailable: {exc}", unavailable=True))
        except TranscriptionRequestFailed as exc:
            self._logger.warning("stream_failed", extra={"error": str(exc)})
            self._post(RecognitionError(message=str(exc)))

    async def _transcribe_and_post(self, recognizer: SpeechRecognizer, audio_bytes: bytes) -> None:
        try:
            transcript = await recognizer.transcribe(audio_bytes)
        except RecognitionUnavailable as exc:
            self._post(RecognitionError(message=str(exc), unavailable=True))
            return
        except TranscriptionRequestFailed as exc:
            self._logger.warning("transcription_failed", extra={"error": str(exc)})
            self._post(RecognitionError(message=str(exc)))
            return
        self._post_transcript(transcript)

    def _post_transcript(self, transcript: Transcript) -> None:
        text = transcript.text.strip()
        if not text:
            return
        self._logger.debug("transcript_posted", extra={"text": text, "is_final": transcript.is_final})
        self._post(TranscriptReceived(text=text, is_final=transcript.is_final, confidence=transcript.confidence))

    @staticmethod
    def _estimate_signal_level(audio_bytes: bytes) -> float:
        """Estimate normalized mean amplitude from native-order 16-bit PCM bytes."""
        usable = len(audio_bytes) - len(audio_bytes) % 2
        if usable == 0:
            return 0.0

        samples = memoryview(audio_bytes[:usable]).cast("h")
        return sum(abs(sample) for sample in samples) / (len(samples) * 32768)
