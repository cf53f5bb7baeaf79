"""Version manager - current audio and rendition history of each chapter."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, fields
from typing import Optional

from chaptervoice.chapters import ChapterRepository, check_chapter_id
from chaptervoice.errors import AuthorizationError, NotFoundError, ValidationError, VersionNotFound
from chaptervoice.gateway import SpeechGateway
from chaptervoice.models import (
    AudioVersion,
    BackgroundMusic,
    Chapter,
    SynthesisResult,
    VoiceSettings,
    check_range,
    utcnow_iso,
)
from chaptervoice.storage import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class AudioVersions:
    current: Optional[dict]
    history: list[AudioVersion]


def merge_settings(overrides: Optional[dict], stored: VoiceSettings, default_voice: str) -> VoiceSettings:
    """Effective settings: first non-empty of override, stored, provider default."""
    defaults = VoiceSettings(voice=default_voice)
    overrides = overrides or {}
    merged = {}
    for f in fields(VoiceSettings):
        for source in (overrides.get(f.name), getattr(stored, f.name), getattr(defaults, f.name)):
            if source is not None and source != "":
                merged[f.name] = source
                break
    return VoiceSettings(**merged)


def require_author(chapter: Chapter, user_id: Optional[str]) -> None:
    """Raise AuthorizationError unless user_id wrote the chapter.

    A user_id of None skips the check (trusted local callers).
    """
    if user_id is not None and chapter.author_id != user_id:
        raise AuthorizationError("Accesso negato. Puoi modificare solo l'audio dei tuoi capitoli.")


def archive_current(chapter: Chapter) -> Optional[AudioVersion]:
    """Append the current audio to the history, if there is one.

    The version number is derived from the history length.
    """
    state = chapter.audio
    if not state.current_audio:
        return None
    entry = AudioVersion(
        artifact=state.current_audio,
        version=len(state.version_history) + 1,
        settings=state.settings_snapshot(),
        created_at=utcnow_iso(),
    )
    state.version_history.append(entry)
    logger.info("Capitolo %s: archiviata versione %d (%s)", chapter.id, entry.version, entry.artifact)
    return entry


class VersionManager:
    """Orchestrates synthesis and the per-chapter audio state machine.

    Read-modify-write cycles on one chapter are serialized by a per-chapter
    lock. The lock is process-local.
    """

    def __init__(self, gateway: SpeechGateway, chapters: ChapterRepository, store: ArtifactStore):
        self.gateway = gateway
        self.chapters = chapters
        self.store = store
        # chapter id -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}

    @asynccontextmanager
    async def _chapter_lock(self, chapter_id: str):
        """Serialize work on one chapter; the lock is dropped once unused."""
        check_chapter_id(chapter_id)
        entry = self._locks.get(chapter_id)
        if entry is None:
            entry = self._locks[chapter_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[chapter_id]

    @property
    def default_voice(self) -> str:
        return self.gateway.catalog.default_voice

    def load(self, chapter_id: str) -> Chapter:
        chapter = self.chapters.get(chapter_id)
        if chapter is None:
            raise NotFoundError(f"Capitolo non trovato: {chapter_id}")
        return chapter

    async def generate_for_chapter(
        self,
        chapter_id: str,
        overrides: Optional[dict] = None,
        archive: bool = True,
        user_id: Optional[str] = None,
    ) -> tuple[Chapter, SynthesisResult]:
        """Synthesize the chapter text and make it the current audio.

        With `archive`, a previous current audio is appended to the history
        first. A degraded synthesis still replaces the current audio.
        """
        async with self._chapter_lock(chapter_id):
            chapter = self.load(chapter_id)
            require_author(chapter, user_id)
            if not chapter.content.strip():
                raise ValidationError(f"Il capitolo {chapter_id} non contiene testo")

            effective = merge_settings(overrides, chapter.audio.voice_settings, self.default_voice)
            effective.validate()

            logger.info("Sintesi capitolo %s con voce %s", chapter_id, effective.voice)
            result = await self.gateway.synthesize(chapter.content, effective)

            if archive:
                archive_current(chapter)
            chapter.audio.current_audio = result.artifact_id
            chapter.audio.voice_settings = effective
            self.chapters.save(chapter)
            return chapter, result

    async def update_settings(
        self,
        chapter_id: str,
        voice_settings: Optional[dict] = None,
        background_music: Optional[dict] = None,
        character_voices: Optional[list[dict]] = None,
        sound_effects: Optional[list[dict]] = None,
        user_id: Optional[str] = None,
    ) -> Chapter:
        """Merge partial settings into the chapter. No synthesis happens."""
        async with self._chapter_lock(chapter_id):
            chapter = self.load(chapter_id)
            require_author(chapter, user_id)
            state = chapter.audio

            # Empty values leave the stored setting in place
            voice_settings = {k: v for k, v in (voice_settings or {}).items() if v is not None and v != ""}
            if voice_settings:
                for name, value in voice_settings.items():
                    check_range(name, value)
                merged = {**state.voice_settings.to_dict(), **voice_settings}
                state.voice_settings = VoiceSettings.from_dict(merged, self.default_voice)
            if background_music:
                merged = {**asdict(state.background_music), **background_music}
                state.background_music = BackgroundMusic.from_dict(merged)
            if character_voices is not None:
                state.character_voices = list(character_voices)
            if sound_effects is not None:
                state.sound_effects = list(sound_effects)

            self.chapters.save(chapter)
            return chapter

    def list_versions(self, chapter_id: str) -> AudioVersions:
        chapter = self.load(chapter_id)
        state = chapter.audio
        current = None
        if state.current_audio:
            current = {"artifact": state.current_audio, "settings": state.voice_settings.to_dict()}
        return AudioVersions(current=current, history=list(state.version_history))

    async def restore(self, chapter_id: str, version: int, user_id: Optional[str] = None) -> Chapter:
        """Make a historical rendition current again.

        The restored entry stays in the history; the audio it replaces is
        archived under a new version number.
        """
        async with self._chapter_lock(chapter_id):
            chapter = self.load(chapter_id)
            require_author(chapter, user_id)
            state = chapter.audio

            target = next((v for v in state.version_history if v.version == version), None)
            if target is None:
                raise VersionNotFound(chapter_id, version)

            archive_current(chapter)
            state.current_audio = target.artifact
            if target.settings:
                state.voice_settings = VoiceSettings.from_dict(target.settings, self.default_voice)
            self.chapters.save(chapter)
            logger.info("Capitolo %s: ripristinata versione %d", chapter_id, version)
            return chapter

    async def clear_audio(self, chapter_id: str, user_id: Optional[str] = None) -> Chapter:
        """Drop the current audio. History is kept."""
        async with self._chapter_lock(chapter_id):
            chapter = self.load(chapter_id)
            require_author(chapter, user_id)
            state = chapter.audio
            if not state.current_audio:
                raise NotFoundError(f"Nessun file audio per il capitolo {chapter_id}")

            # A restored rendition is still referenced by the history
            if any(v.artifact == state.current_audio for v in state.version_history):
                logger.info("File %s ancora nella cronologia, non eliminato", state.current_audio)
            else:
                self.store.delete(state.current_audio)
            state.current_audio = None
            self.chapters.save(chapter)
            return chapter
