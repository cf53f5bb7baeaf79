"""Edge TTS engine - free online neural TTS via Microsoft Edge."""

import logging
import re
from typing import Optional

from chaptervoice.models import TTSConfig
from chaptervoice.tts.base import TTSEngine
from chaptervoice.tts import register_engine

logger = logging.getLogger(__name__)

# Max characters per TTS request to avoid Edge TTS limits
MAX_CHUNK_CHARS = 3000

# Hz of pitch offset per unit of pitch multiplier away from 1.0
PITCH_HZ_PER_UNIT = 100


@register_engine("edge")
class EdgeTTSEngine(TTSEngine):
    """TTS engine using Microsoft Edge's free online neural voices.

    Edge exposes rate and pitch only; stability and clarity have no
    equivalent and are not sent.
    """

    def initialize(self) -> None:
        import edge_tts  # noqa: F401

    async def synthesize(self, text: str, config: TTSConfig) -> bytes:
        import edge_tts

        rate = self._speed_to_rate(config.speed)
        pitch = self._pitch_to_hz(config.pitch)

        chunks = self._split_text(text)
        logger.debug("Edge TTS: %d blocchi di testo, voce %s", len(chunks), config.voice)

        # MP3 frames concatenate cleanly, so chunks are appended byte-wise
        audio = bytearray()
        for chunk in chunks:
            communicate = edge_tts.Communicate(chunk, config.voice, rate=rate, pitch=pitch)
            async for message in communicate.stream():
                if message["type"] == "audio":
                    audio.extend(message["data"])
        return bytes(audio)

    async def list_voices(self, language: Optional[str] = None) -> list[dict]:
        import edge_tts

        voices = await edge_tts.list_voices()
        result = []
        for v in voices:
            locale = v.get("Locale", "")
            if language and not locale.lower().startswith(language.lower()):
                continue
            result.append({
                "name": v["ShortName"],
                "language": locale,
                "gender": v.get("Gender", ""),
            })
        return result

    @property
    def name(self) -> str:
        return "Edge TTS"

    @staticmethod
    def _speed_to_rate(speed: float) -> str:
        """Convert speed multiplier (e.g. 1.2) to Edge TTS rate string (e.g. '+20%')."""
        percent = round((speed - 1.0) * 100)
        if percent >= 0:
            return f"+{percent}%"
        return f"{percent}%"

    @staticmethod
    def _pitch_to_hz(pitch: float) -> str:
        """Convert pitch multiplier (e.g. 0.8) to Edge TTS pitch string (e.g. '-20Hz')."""
        hz = round((pitch - 1.0) * PITCH_HZ_PER_UNIT)
        if hz >= 0:
            return f"+{hz}Hz"
        return f"{hz}Hz"

    @staticmethod
    def _split_text(text: str) -> list[str]:
        """Split text into chunks at sentence boundaries, respecting MAX_CHUNK_CHARS."""
        if len(text) <= MAX_CHUNK_CHARS:
            return [text]

        sentences = re.split(r"(?<=[.!?…])\s+", text)

        chunks = []
        current_chunk = ""

        for sentence in sentences:
            if len(current_chunk) + len(sentence) + 1 > MAX_CHUNK_CHARS and current_chunk:
                chunks.append(current_chunk.strip())
                current_chunk = sentence
            else:
                current_chunk = f"{current_chunk} {sentence}" if current_chunk else sentence

        if current_chunk.strip():
            chunks.append(current_chunk.strip())

        return chunks if chunks else [text]
