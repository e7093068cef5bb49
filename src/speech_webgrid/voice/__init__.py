"""Voice input module boundaries."""

from .input import MicrophoneSource, VoiceInputConfig, VoiceInputService
from .interfaces import SpeechRecognizer, StreamingRecognizer, Transcript
from .streaming import StreamingTranscriptionClient
from .transcription import HostedTranscriptionClient

__all__ = [
    "HostedTranscriptionClient",
    "MicrophoneSource",
    "SpeechRecognizer",
    "StreamingRecognizer",
    "StreamingTranscriptionClient",
    "Transcript",
    "VoiceInputConfig",
    "VoiceInputService",
]
