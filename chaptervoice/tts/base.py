"""Abstract base class for TTS engines."""

from abc import ABC, abstractmethod
from typing import Optional

from chaptervoice.models import TTSConfig


class TTSEngine(ABC):
    """Abstract base class that all TTS engines must implement."""

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the engine (check dependencies, credentials).

        Raises:
            RuntimeError: If the engine cannot be used (missing deps, etc.).
        """
        ...

    @abstractmethod
    async def synthesize(self, text: str, config: TTSConfig) -> bytes:
        """Synthesize text and return the encoded audio.

        Args:
            text: Plain text to synthesize.
            config: Provider voice name plus speed, pitch, stability, clarity.

        Raises:
            Exception: Any provider failure. Callers treat every exception
                as a provider error.
        """
        ...

    @abstractmethod
    async def list_voices(self, language: Optional[str] = None) -> list[dict]:
        """Return provider voices, optionally filtered by language.

        Each dict contains at least 'name' and 'language' keys.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name."""
        ...
