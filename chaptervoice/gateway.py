"""Speech gateway - text to a stored audio artifact, degrading to silence.

A provider failure never blocks the caller: the gateway stores a short
silent placeholder instead and reports the diagnostic in the result.
"""

import asyncio
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from chaptervoice.audio.audio_utils import render_silence
from chaptervoice.catalog import Catalog
from chaptervoice.errors import ProviderError, StorageError
from chaptervoice.models import SynthesisResult, TTSConfig, VoiceSettings
from chaptervoice.storage import ArtifactStore
from chaptervoice.tts.base import TTSEngine

logger = logging.getLogger(__name__)

MIN_AUDIO_BYTES = 100
PLACEHOLDER_SECONDS = 2.0
PLACEHOLDER_PREFIX = "tts_demo"


class SpeechGateway:
    """Turns text plus voice settings into a stored artifact."""

    def __init__(
        self,
        engine: TTSEngine,
        store: ArtifactStore,
        catalog: Catalog,
        timeout: Optional[float] = 60.0,
        min_audio_bytes: int = MIN_AUDIO_BYTES,
        placeholder_seconds: float = PLACEHOLDER_SECONDS,
    ):
        if catalog.get_voice(catalog.default_voice) is None:
            raise ValueError(f"La voce predefinita '{catalog.default_voice}' non è nel catalogo")
        self.engine = engine
        self.store = store
        self.catalog = catalog
        self.timeout = timeout
        self.min_audio_bytes = min_audio_bytes
        self.placeholder_seconds = placeholder_seconds

    async def synthesize(self, text: str, settings: VoiceSettings) -> SynthesisResult:
        """Synthesize text with the given settings.

        Settings are assumed to be validated already. Only StorageError can
        escape, when even the placeholder cannot be produced.
        """
        voice = self.catalog.resolve_voice(settings.voice)
        config = TTSConfig(
            voice=voice.provider_voice,
            speed=settings.speed,
            pitch=settings.pitch,
            stability=settings.stability,
            clarity=settings.clarity,
        )

        try:
            audio = await self._call_provider(text, config)
        except ProviderError as e:
            reason = str(e)
            logger.warning("Sintesi fallita (%s), uso audio segnaposto: %s", self.engine.name, reason)
            artifact_id = await asyncio.to_thread(self._store_placeholder)
            return SynthesisResult(artifact_id, voice.id, degraded=True, reason=reason)

        artifact_id = await asyncio.to_thread(self.store.write, audio)
        logger.info("Audio generato: %s (voce %s, %d byte)", artifact_id, voice.id, len(audio))
        return SynthesisResult(artifact_id, voice.id)

    async def _call_provider(self, text: str, config: TTSConfig) -> bytes:
        try:
            audio = await asyncio.wait_for(self.engine.synthesize(text, config), self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Timeout del provider dopo {self.timeout}s") from e
        except Exception as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        if len(audio) < self.min_audio_bytes:
            raise ProviderError(f"Audio generato troppo piccolo ({len(audio)} byte)")
        return audio

    def _store_placeholder(self) -> str:
        with tempfile.TemporaryDirectory(prefix="cv_") as tmp:
            path = Path(tmp) / "silence.mp3"
            try:
                render_silence(path, self.placeholder_seconds)
                data = path.read_bytes()
            except (OSError, RuntimeError, subprocess.CalledProcessError) as e:
                logger.exception("Generazione audio segnaposto fallita")
                raise StorageError(f"Impossibile generare l'audio segnaposto: {e}") from e
        return self.store.write(data, prefix=PLACEHOLDER_PREFIX)
