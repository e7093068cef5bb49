from __future__ import annotations

import sys
import types

import pytest

from speech_webgrid.errors import RecognitionUnavailable


def test_voice_reports_actionable_error_when_voice_backends_missing(monkeypatch) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from speech_webgrid.main import app

    fake_stt = types.ModuleType("speech_webgrid.voice.stt_speechrecognition")

    class _MissingBackend:
        def __init__(self, *args, **kwargs) -> None:
            raise RecognitionUnavailable("Install extras with: pip install 'speech-webgrid[voice]'")

    fake_stt.SpeechRecognitionRecognizer = _MissingBackend
    fake_stt.SpeechRecognitionMicrophoneSource = _MissingBackend

    monkeypatch.setitem(sys.modules, "speech_webgrid.voice.stt_speechrecognition", fake_stt)

    result = typer_testing.CliRunner().invoke(app, ["voice", "--backend", "local"], catch_exceptions=False)

    assert result.exit_code == 1
    assert "pip install 'speech-webgrid[voice]'" in result.stdout


def test_voice_rejects_unknown_backend() -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from speech_webgrid.main import app

    result = typer_testing.CliRunner().invoke(app, ["voice", "--backend", "carrier-pigeon"])

    assert result.exit_code != 0
