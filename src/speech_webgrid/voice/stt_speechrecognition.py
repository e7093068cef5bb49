"""Local speech-to-text and microphone capture via the ``speech_recognition`` package."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from speech_webgrid.errors import RecognitionUnavailable, TranscriptionRequestFailed

from .input import MicrophoneSource
from .interfaces import SpeechRecognizer, Transcript

INSTALL_HINT = "Install extras with: pip install 'speech-webgrid[voice]'"


def _load_backend(component: str) -> ModuleType:
    try:
        import speech_recognition
    except ImportError as exc:  # pragma: no cover - import guard
        raise RecognitionUnavailable(f"{component} is not available. {INSTALL_HINT}") from exc
    return speech_recognition


@dataclass
class SpeechRecognitionRecognizer(SpeechRecognizer):
    """Transcribe raw 16-bit PCM utterances with the Google Web Speech endpoint.

    The best alternative is returned along with its confidence, when the
    service reports one. Silence or unintelligible audio yields an empty
    transcript rather than an error.
    """

    language: str = "en-US"
    sample_rate: int = 16_000
    sample_width: int = 2

    def __post_init__(self) -> None:
        self._sr = _load_backend("Speech recognition")
        self._recognizer = self._sr.Recognizer()

    async def transcribe(self, audio_bytes: bytes) -> Transcript:
        if not audio_bytes:
            return Transcript(text="")
        result = await asyncio.to_thread(self._recognize, audio_bytes)
        return _best_alternative(result, self.language)

    def _recognize(self, audio_bytes: bytes) -> Any:
        audio = self._sr.AudioData(audio_bytes, self.sample_rate, self.sample_width)
        try:
            return self._recognizer.recognize_google(audio, language=self.language, show_all=True)
        except self._sr.UnknownValueError:
            return []
        except self._sr.RequestError as exc:
            raise TranscriptionRequestFailed(
                f"Speech recognition request failed ({exc}). Check internet access or use --backend hosted."
            ) from exc


def _best_alternative(result: Any, language: str) -> Transcript:
    # ``show_all`` yields [] when nothing was heard.
    alternatives = result.get("alternative", []) if isinstance(result, dict) else []
    if not alternatives:
        return Transcript(text="", language=language)
    best = max(alternatives, key=lambda alternative: alternative.get("confidence", 0.0))
    confidence = best.get("confidence")
    return Transcript(
        text=str(best.get("transcript", "")).strip().lower(),
        confidence=float(confidence) if confidence is not None else None,
        language=language,
    )


class SpeechRecognitionMicrophoneSource(MicrophoneSource):
    """Blocking microphone capture, one utterance per ``read_chunk`` call.

    Ambient noise is sampled once, on the first read. ``wav=True`` returns a
    WAV file for HTTP upload; otherwise raw PCM frames are returned.
    """

    def __init__(
        self,
        *,
        phrase_time_limit: float = 2.0,
        timeout: float | None = 1.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
        wav: bool = True,
    ) -> None:
        self._sr = _load_backend("Microphone capture")
        try:
            self._microphone = self._sr.Microphone(sample_rate=sample_rate, chunk_size=chunk_size)
        except (AttributeError, OSError) as exc:
            raise RecognitionUnavailable(f"No usable microphone ({exc}). {INSTALL_HINT}") from exc
        self._recognizer = self._sr.Recognizer()
        self._phrase_time_limit = phrase_time_limit
        self._timeout = timeout
        self._calibration_seconds = max(0.0, adjust_noise_seconds)
        self._calibrated = self._calibration_seconds == 0
        self._wav = wav

    def read_chunk(self) -> bytes:
        with self._microphone as source:
            if not self._calibrated:
                self._recognizer.adjust_for_ambient_noise(source, duration=self._calibration_seconds)
                self._calibrated = True
            try:
                audio = self._recognizer.listen(source, timeout=self._timeout, phrase_time_limit=self._phrase_time_limit)
            except self._sr.WaitTimeoutError:
                return b""
        if self._wav:
            return audio.get_wav_data()
        return audio.get_raw_data()
