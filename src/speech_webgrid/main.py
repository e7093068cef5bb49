"""CLI startup entrypoint for Speech Webgrid."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import AsyncIterator

import typer
from rich import print
from rich.console import Console

from speech_webgrid.config import settings
from speech_webgrid.display import render
from speech_webgrid.errors import RecognitionUnavailable, TranscriptionRequestFailed, UnrecognizedCommand
from speech_webgrid.events import GameEvent, KeyPress, StartRequested, Tick, TranscriptReceived
from speech_webgrid.interpreter import CommandInterpreter
from speech_webgrid.metrics import build_metric_policy, build_timing_source
from speech_webgrid.models import GamePhase, SessionState
from speech_webgrid.runtime import GameRuntime
from speech_webgrid.session import GameSession
from speech_webgrid.telemetry import configure_logging
from speech_webgrid.voice import HostedTranscriptionClient, MicrophoneSource

app = typer.Typer(name=settings.app_name, help="Speech Webgrid: steer a marker to the goal by arrow key or by voice")
console = Console()

_ARROW_SEQUENCES = {
    "\x1b[A": "ArrowUp",
    "\x1b[B": "ArrowDown",
    "\x1b[C": "ArrowRight",
    "\x1b[D": "ArrowLeft",
}
_QUIT_WORDS = ("quit", "exit")
_RESTART_WORDS = ("restart", "start")


@app.callback()
def main(log_level: str = typer.Option(None, help="Override SPEECH_WEBGRID_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


def _build_session(
    *,
    grid_size: int | None = None,
    seconds: int | None = None,
    metric: str | None = None,
    timing: str | None = None,
) -> GameSession:
    return GameSession(
        grid_size=settings.grid_size if grid_size is None else grid_size,
        session_length_seconds=settings.session_length_seconds if seconds is None else seconds,
        metric=build_metric_policy(
            settings.metric_policy if metric is None else metric,
            bits_per_move=settings.bits_per_move,
            charge_blocked_moves=settings.charge_blocked_moves,
            bits_per_arrival=settings.bits_per_arrival,
        ),
        timing=build_timing_source(settings.timing_source if timing is None else timing),
    )


def _build_runtime(session: GameSession, tick_interval: float | None = None) -> GameRuntime:
    if tick_interval is None:
        tick_interval = settings.tick_interval_seconds
    runtime = GameRuntime(session, tick_interval_seconds=tick_interval)

    def _redraw(event: GameEvent, state: SessionState) -> None:
        # Countdown ticks only redraw when they end the game.
        if isinstance(event, Tick) and state.phase != GamePhase.OVER:
            return
        console.print(render(session))
        if state.phase == GamePhase.OVER:
            console.print("Type 'restart' to play again or 'quit' to exit.")

    runtime.add_listener(_redraw)
    return runtime


def parse_input_line(line: str) -> list[GameEvent]:
    """Turn one line of terminal input into events.

    Arrow-key escape sequences become key presses; any other text is handled
    like a final voice transcript.
    """
    text = line.strip("\r\n")
    keys: list[GameEvent] = []
    index = 0
    while index < len(text):
        for sequence, code in _ARROW_SEQUENCES.items():
            if text.startswith(sequence, index):
                keys.append(KeyPress(code=code))
                index += len(sequence)
                break
        else:
            break
    if keys:
        return keys

    phrase = text.strip()
    if not phrase:
        return []
    if phrase.lower() in _RESTART_WORDS:
        return [StartRequested()]
    return [TranscriptReceived(text=phrase, is_final=True)]


async def _read_commands(runtime: GameRuntime) -> bool:
    """Feed stdin lines into the runtime; returns True when the player asked to quit."""
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return False
        if line.strip().lower() in _QUIT_WORDS:
            return True
        for event in parse_input_line(line):
            runtime.post(event)


async def _run_game(runtime: GameRuntime) -> SessionState:
    async with runtime:
        runtime.start_game()
        quit_requested = await _read_commands(runtime)
        await runtime.join()
        if not quit_requested and runtime.session.is_running:
            await runtime.wait_for_game_over()
        return runtime.session.state


@app.command("settings")
def show_settings() -> None:
    """Show the effective runtime configuration."""
    print(settings.model_dump(exclude={"transcription_api_key"}))


@app.command()
def play(
    seconds: int = typer.Option(None, min=1, help="Session length in seconds"),
    grid_size: int = typer.Option(None, min=2, help="Rows and columns of the grid"),
    metric: str = typer.Option(None, help="per_move or distance_weighted"),
    timing: str = typer.Option(None, help="countdown or wall_clock"),
    tick_interval: float = typer.Option(None, min=0.001, help="Seconds between countdown ticks"),
) -> None:
    """Play with arrow keys (press then Enter) or typed phrases such as 'go left'."""
    try:
        session = _build_session(grid_size=grid_size, seconds=seconds, metric=metric, timing=timing)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console.print("Steer [blue]U[/] to [green]G[/]: arrow keys or up/down/left/right, then Enter.")
    asyncio.run(_run_game(_build_runtime(session, tick_interval)))
    print(_summary(session))


@app.command()
def voice(
    seconds: int = typer.Option(None, min=1, help="Session length in seconds"),
    backend: str = typer.Option(None, help="local, hosted or streaming"),
    phrase_time_limit: float = typer.Option(2.0, help="Per-utterance capture limit in seconds"),
) -> None:
    """Play by voice; the keyboard and typed phrases keep working alongside."""
    from speech_webgrid.voice import StreamingTranscriptionClient, VoiceInputConfig, VoiceInputService
    from speech_webgrid.voice.stt_speechrecognition import (
        SpeechRecognitionMicrophoneSource,
        SpeechRecognitionRecognizer,
    )

    if not settings.voice_enabled:
        print({"error": "Voice input is disabled; set SPEECH_WEBGRID_VOICE_ENABLED=true or use `play`."})
        raise typer.Exit(code=1)

    chosen = (backend or settings.voice_backend).lower()
    if chosen not in ("local", "hosted", "streaming"):
        raise typer.BadParameter(f"Unknown voice backend: {chosen}")

    try:
        microphone = SpeechRecognitionMicrophoneSource(
            phrase_time_limit=phrase_time_limit,
            wav=chosen == "hosted",
        )
        if chosen == "local":
            recognizer = SpeechRecognitionRecognizer(language=settings.recognition_language)
        elif chosen == "hosted":
            recognizer = HostedTranscriptionClient(
                settings.transcription_url,
                api_key=settings.transcription_api_key,
                timeout=settings.transcription_timeout_seconds,
            )
        else:
            recognizer = None
    except RecognitionUnavailable as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    session = _build_session(seconds=seconds)
    runtime = _build_runtime(session)
    service = VoiceInputService(
        recognizer,
        runtime.post,
        config=VoiceInputConfig(sensitivity_threshold=settings.sensitivity_threshold),
    )

    if chosen == "streaming":
        client = StreamingTranscriptionClient(settings.streaming_url, api_key=settings.transcription_api_key)
        runtime.add_session_task("voice-stream", lambda: service.stream(client, _microphone_chunks(microphone)))
    else:
        runtime.add_session_task("voice-listener", lambda: service.listen(microphone))

    console.print(f"Voice backend: {chosen}. Say up, down, left or right; type 'quit' to exit.")
    asyncio.run(_run_game(runtime))
    print(_summary(session))


@app.command()
def transcribe(audio_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="WAV file to send")) -> None:
    """Send a WAV file to the hosted transcription service and show the resolved direction."""
    client = HostedTranscriptionClient(
        settings.transcription_url,
        api_key=settings.transcription_api_key,
        timeout=settings.transcription_timeout_seconds,
    )
    try:
        transcript = asyncio.run(client.transcribe(audio_file.read_bytes()))
    except TranscriptionRequestFailed as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    try:
        direction = CommandInterpreter().resolve_phrase(transcript.text).value
        error = None
    except UnrecognizedCommand as exc:
        direction = None
        error = str(exc)
    print({"text": transcript.text, "confidence": transcript.confidence, "direction": direction, "error": error})


def _summary(session: GameSession) -> dict:
    state = session.state
    return {
        "score": state.score,
        "total_bits": state.total_bits,
        "bits_per_second": round(session.bits_per_second(), 2),
    }


async def _microphone_chunks(microphone: MicrophoneSource) -> AsyncIterator[bytes]:
    while True:
        try:
            chunk = await asyncio.to_thread(microphone.read_chunk)
        except OSError as exc:
            # The streaming client reports OSError as a transcription failure.
            raise RecognitionUnavailable(str(exc)) from exc
        yield chunk


if __name__ == "__main__":
    app()
