"""Error taxonomy for command interpretation and voice input."""


class WebgridError(Exception):
    """Base class for recoverable game errors."""


class UnrecognizedCommand(WebgridError):
    """Raised when a phrase cannot be resolved to a direction."""

    def __init__(self, raw_text: str) -> None:
        super().__init__(f'Unrecognized command: "{raw_text}"')
        self.raw_text = raw_text


class RecognitionUnavailable(WebgridError):
    """Raised when a speech recognition capability is not installed or not reachable."""


class TranscriptionRequestFailed(WebgridError):
    """Raised when the transcription service or the network fails."""


class StaleResult(WebgridError):
    """A transcription completed after its session ended."""
