"""Real-time transcription over a websocket connection."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable

import websockets
from websockets.exceptions import WebSocketException

from speech_webgrid.errors import TranscriptionRequestFailed

from .interfaces import Transcript

_FINAL = "FinalTranscript"
_PARTIAL = "PartialTranscript"
_TERMINATE = json.dumps({"terminate_session": True})


class StreamingTranscriptionClient:
    """Streams binary audio chunks to a realtime service and yields its transcripts.

    Audio is sent from a background task while results are read, so partial
    transcripts arrive as the player is still speaking. Only transcripts marked
    final are safe to act on.
    """

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        connect: Callable[..., Any] = websockets.connect,
        logger: logging.Logger | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._connect = connect
        self._logger = logger or logging.getLogger("speech_webgrid.voice.streaming")

    async def stream(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[Transcript]:
        """Yield transcripts until the service closes the socket.

        A failure while producing audio (for example a lost microphone) ends
        the stream and is re-raised to the caller unchanged.
        """
        headers = {"Authorization": self._api_key} if self._api_key else {}
        try:
            async with self._connect(self._url, additional_headers=headers) as ws:
                self._logger.info("stream_connected", extra={"url": self._url})
                sender = asyncio.create_task(self._send_audio(ws, chunks), name="transcription-sender")
                receive: asyncio.Task[Any] | None = None
                messages = aiter(ws)
                try:
                    while True:
                        receive = asyncio.create_task(_next_message(messages))
                        if not sender.done():
                            await asyncio.wait({receive, sender}, return_when=asyncio.FIRST_COMPLETED)
                        if sender.done() and not sender.cancelled() and sender.exception() is not None:
                            raise sender.exception()
                        message = await receive
                        if message is None:
                            break
                        transcript = parse_stream_message(message)
                        if transcript is not None:
                            yield transcript
                finally:
                    pending = [task for task in (receive, sender) if task is not None and not task.done()]
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
        except (WebSocketException, OSError) as exc:
            raise TranscriptionRequestFailed(f"Streaming transcription failed: {type(exc).__name__}: {exc}") from exc

        self._logger.info("stream_closed", extra={"url": self._url})

    @staticmethod
    async def _send_audio(ws: Any, chunks: AsyncIterable[bytes]) -> None:
        async for chunk in chunks:
            if chunk:
                await ws.send(chunk)
        await ws.send(_TERMINATE)


def parse_stream_message(message: str | bytes) -> Transcript | None:
    """Decode one service message; returns ``None`` for session bookkeeping messages."""
    try:
        payload = json.loads(message)
    except ValueError as exc:
        raise TranscriptionRequestFailed("Streaming service sent a non-JSON message") from exc

    if not isinstance(payload, dict):
        return None
    if payload.get("error"):
        raise TranscriptionRequestFailed(f"Streaming service error: {payload['error']}")

    message_type = payload.get("message_type")
    if message_type not in (_FINAL, _PARTIAL):
        return None

    text = str(payload.get("text") or "").strip().lower()
    if not text:
        return None
    confidence = payload.get("confidence")
    return Transcript(
        text=text,
        is_final=message_type == _FINAL,
        confidence=float(confidence) if confidence is not None else None,
    )


async def _next_message(messages: AsyncIterator[Any]) -> Any:
    try:
        return await anext(messages)
    except StopAsyncIteration:
        return None
