"""Shared fixtures: a scriptable TTS engine and a patched silence renderer."""

import asyncio
from typing import Optional
from unittest.mock import patch

import pytest

from chaptervoice.catalog import default_catalog
from chaptervoice.chapters import InMemoryChapterRepository
from chaptervoice.gateway import SpeechGateway
from chaptervoice.models import Chapter, ChapterAudioState, TTSConfig, VoiceSettings
from chaptervoice.storage import ArtifactStore
from chaptervoice.tts.base import TTSEngine
from chaptervoice.versions import VersionManager

FAKE_MP3 = b"ID3" + b"\xff\xfb\x90\x00" * 200
SILENCE = b"\xff\xfb\x10\x00" * 50


class FakeEngine(TTSEngine):
    """Returns canned audio, or raises `error` when set."""

    def __init__(self, audio: bytes = FAKE_MP3, error: Optional[Exception] = None, delay: float = 0):
        self.audio = audio
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, TTSConfig]] = []

    def initialize(self) -> None:
        pass

    async def synthesize(self, text: str, config: TTSConfig) -> bytes:
        self.calls.append((text, config))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.audio

    async def list_voices(self, language=None) -> list[dict]:
        voices = [
            {"name": "en-US-AriaNeural", "language": "en-US", "gender": "Female"},
            {"name": "it-IT-DiegoNeural", "language": "it-IT", "gender": "Male"},
        ]
        if language:
            voices = [v for v in voices if v["language"].lower().startswith(language.lower())]
        return voices

    @property
    def name(self) -> str:
        return "Fake TTS"


def _write_silence(path, seconds):
    path.write_bytes(SILENCE)


@pytest.fixture(autouse=True)
def silence():
    """Replace the ffmpeg-based placeholder renderer."""
    with patch("chaptervoice.gateway.render_silence", side_effect=_write_silence) as mock:
        yield mock


@pytest.fixture(autouse=True)
def ffmpeg_check():
    """Skip the startup ffmpeg lookup."""
    with patch("chaptervoice.web.app.check_ffmpeg") as web_check, patch("chaptervoice.cli.check_ffmpeg") as cli_check:
        yield web_check, cli_check


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def store(tmp_path):
    store = ArtifactStore(tmp_path / "audio")
    store.ensure_ready()
    return store


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def gateway(engine, store, catalog):
    return SpeechGateway(engine, store, catalog, timeout=1.0)


def make_chapter(chapter_id="ch1", author_id="alice", content="C'era una volta un capitolo."):
    return Chapter(
        id=chapter_id,
        title="Capitolo 1",
        content=content,
        author_id=author_id,
        audio=ChapterAudioState(voice_settings=VoiceSettings(voice="narrator-warm")),
    )


@pytest.fixture
def chapters():
    return InMemoryChapterRepository([make_chapter()])


@pytest.fixture
def manager(gateway, chapters, store):
    return VersionManager(gateway, chapters, store)


@pytest.fixture(name="make_chapter")
def make_chapter_fixture():
    return make_chapter
