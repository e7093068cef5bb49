from __future__ import annotations

import asyncio

import httpx
import pytest

from speech_webgrid.errors import TranscriptionRequestFailed
from speech_webgrid.voice.transcription import HostedTranscriptionClient, parse_transcription_body

URL = "http://transcriber.test/api/transcribe"


def _client(handler, **kwargs) -> HostedTranscriptionClient:
    transport = httpx.MockTransport(handler)
    return HostedTranscriptionClient(URL, client=httpx.AsyncClient(transport=transport), **kwargs)


def test_posts_wav_bytes_and_returns_lowercase_text() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["content-type"]
        seen["authorization"] = request.headers.get("authorization")
        seen["body"] = request.content
        return httpx.Response(200, json={"text": " Move LEFT ", "confidence": 0.82, "language_code": "en_us"})

    transcript = asyncio.run(_client(handler, api_key="secret").transcribe(b"RIFF....WAVE"))

    assert transcript.text == "move left"
    assert transcript.is_final is True
    assert transcript.confidence == pytest.approx(0.82)
    assert transcript.language == "en_us"
    assert seen == {"content_type": "audio/wav", "authorization": "Bearer secret", "body": b"RIFF....WAVE"}


def test_reads_metadata_from_nested_transcript() -> None:
    transcript = parse_transcription_body({"text": "Up", "transcript": {"confidence": 0.5, "language_code": "en"}})

    assert transcript.text == "up"
    assert transcript.confidence == 0.5
    assert transcript.language == "en"


def test_empty_audio_skips_the_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("request should not be sent")

    transcript = asyncio.run(_client(handler).transcribe(b""))

    assert transcript.text == ""


def test_http_error_status_raises_request_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Internal Server Error"})

    with pytest.raises(TranscriptionRequestFailed, match="HTTP 500"):
        asyncio.run(_client(handler).transcribe(b"audio"))


def test_network_error_raises_request_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TranscriptionRequestFailed, match="ConnectError"):
        asyncio.run(_client(handler).transcribe(b"audio"))


def test_non_json_body_raises_request_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(TranscriptionRequestFailed, match="non-JSON"):
        asyncio.run(_client(handler).transcribe(b"audio"))


def test_error_payload_raises_request_failed() -> None:
    with pytest.raises(TranscriptionRequestFailed, match="fileUrl is required"):
        parse_transcription_body({"error": "fileUrl is required"})
