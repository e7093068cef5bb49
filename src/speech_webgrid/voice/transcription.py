"""Client for a hosted speech-to-text HTTP endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from speech_webgrid.errors import TranscriptionRequestFailed

from .interfaces import Transcript

DEFAULT_TIMEOUT_SECONDS = 30.0


class HostedTranscriptionClient:
    """POSTs WAV audio to a transcription service and returns the recognized phrase.

    The service answers with JSON carrying at least ``text``; ``confidence`` and
    ``language_code`` are read either at the top level or from a nested
    ``transcript`` object.
    """

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        content_type: str = "audio/wav",
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout
        self._content_type = content_type
        self._client = client
        self._logger = logger or logging.getLogger("speech_webgrid.voice.transcription")

    async def transcribe(self, audio_bytes: bytes) -> Transcript:
        if not audio_bytes:
            return Transcript(text="")

        headers = {"Content-Type": self._content_type}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            if self._client is not None:
                response = await self._client.post(self._url, content=audio_bytes, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, content=audio_bytes, headers=headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise TranscriptionRequestFailed(
                f"Transcription service returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranscriptionRequestFailed(f"Transcription request failed: {type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise TranscriptionRequestFailed("Transcription service returned a non-JSON body") from exc

        transcript = parse_transcription_body(body)
        self._logger.debug(
            "transcription_received",
            extra={"text": transcript.text, "confidence": transcript.confidence},
        )
        return transcript


def parse_transcription_body(body: Any) -> Transcript:
    if not isinstance(body, dict):
        raise TranscriptionRequestFailed("Transcription response is not a JSON object")
    if body.get("error"):
        raise TranscriptionRequestFailed(f"Transcription service error: {body['error']}")

    details = body.get("transcript") if isinstance(body.get("transcript"), dict) else {}
    text = body.get("text") or details.get("text") or ""
    confidence = body.get("confidence", details.get("confidence"))
    language = body.get("language_code", details.get("language_code"))
    return Transcript(
        text=str(text).strip().lower(),
        is_final=True,
        confidence=float(confidence) if confidence is not None else None,
        language=language,
    )
