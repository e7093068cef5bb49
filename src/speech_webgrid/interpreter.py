"""Resolution of key codes and transcribed phrases into grid directions."""

from __future__ import annotations

import logging

from .errors import UnrecognizedCommand
from .models import Direction

KEY_BINDINGS: dict[str, Direction] = {
    "ArrowUp": Direction.UP,
    "ArrowDown": Direction.DOWN,
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
}

# Words the transcription service commonly returns in place of a direction.
PHONETIC_CORRECTIONS: dict[str, Direction] = {
    "app": Direction.UP,
    "laughed": Direction.LEFT,
    "write": Direction.RIGHT,
    "downtown": Direction.DOWN,
}


class CommandInterpreter:
    """Maps raw key presses and speech transcripts onto the four directions."""

    def __init__(
        self,
        *,
        key_bindings: dict[str, Direction] | None = None,
        corrections: dict[str, Direction] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._key_bindings = dict(KEY_BINDINGS if key_bindings is None else key_bindings)
        self._corrections = {
            self.normalize(word): direction
            for word, direction in (PHONETIC_CORRECTIONS if corrections is None else corrections).items()
        }
        for direction in Direction:
            self._corrections.setdefault(direction.value, direction)
        self._logger = logger or logging.getLogger("speech_webgrid.interpreter")

    @staticmethod
    def normalize(text: str) -> str:
        return text.strip().lower()

    def resolve_key(self, code: str) -> Direction | None:
        """Return the bound direction, or ``None`` for keys that are not bound."""
        return self._key_bindings.get(code)

    def resolve_phrase(self, raw_text: str) -> Direction:
        """Resolve a transcript via the correction table, then by substring.

        Raises ``UnrecognizedCommand`` carrying the uncorrected text when neither
        stage finds a direction.
        """
        phrase = self.normalize(raw_text)

        corrected = self._corrections.get(phrase)
        if corrected is not None:
            self._logger.debug("phrase_corrected", extra={"raw": raw_text, "direction": corrected.value})
            return corrected

        found = self._first_direction_in(phrase)
        if found is not None:
            self._logger.debug("phrase_matched", extra={"raw": raw_text, "direction": found.value})
            return found

        self._logger.info("command_unrecognized", extra={"raw": raw_text})
        raise UnrecognizedCommand(raw_text)

    @staticmethod
    def _first_direction_in(phrase: str) -> Direction | None:
        hits = [(phrase.find(direction.value), direction) for direction in Direction]
        hits = [hit for hit in hits if hit[0] >= 0]
        if not hits:
            return None
        return min(hits, key=lambda hit: hit[0])[1]
