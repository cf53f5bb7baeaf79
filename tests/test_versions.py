"""Tests for the chapter audio version manager."""

import asyncio

import pytest

from chaptervoice.chapters import InMemoryChapterRepository
from chaptervoice.errors import AuthorizationError, NotFoundError, ValidationError, VersionNotFound
from chaptervoice.gateway import SpeechGateway
from chaptervoice.models import VoiceSettings
from chaptervoice.versions import VersionManager, merge_settings

from conftest import FakeEngine


def _run(coro):
    return asyncio.run(coro)


def _generate(manager, overrides=None, archive=True, chapter_id="ch1"):
    chapter, result = _run(manager.generate_for_chapter(chapter_id, overrides, archive=archive))
    return chapter, result


class TestMergeSettings:
    def test_override_wins_over_stored_and_default(self):
        stored = VoiceSettings(voice="calm-female", speed=1.5, pitch=0.8)
        merged = merge_settings({"speed": 1.1}, stored, "narrator-warm")
        assert merged == VoiceSettings(voice="calm-female", speed=1.1, pitch=0.8, stability=0.5, clarity=0.75)

    def test_empty_values_fall_through(self):
        stored = VoiceSettings(voice="calm-female")
        merged = merge_settings({"voice": "", "speed": None}, stored, "narrator-warm")
        assert merged.voice == "calm-female"
        assert merged.speed == 1.0

    def test_zero_is_a_value(self):
        merged = merge_settings({"stability": 0.0}, VoiceSettings(voice="narrator-warm"), "narrator-warm")
        assert merged.stability == 0.0


class TestGenerateForChapter:
    def test_first_generation_has_no_history(self, manager, chapters):
        chapter, result = _generate(manager, {"voice": "narrator-warm", "speed": 1.0})

        assert chapter.audio.current_audio == result.artifact_id
        assert chapter.audio.version_history == []
        assert chapters.get("ch1").audio.current_audio == result.artifact_id

    def test_regenerate_archives_previous_audio(self, manager):
        first, _ = _generate(manager, {"voice": "narrator-warm", "speed": 1.0})
        first_id = first.audio.current_audio

        chapter, result = _generate(manager, {"voice": "dramatic-male", "speed": 1.2})

        history = chapter.audio.version_history
        assert len(history) == 1
        assert history[0].version == 1
        assert history[0].artifact == first_id
        assert history[0].settings["voice"] == "narrator-warm"
        assert history[0].settings["speed"] == 1.0
        assert history[0].settings["background_music"] == "none"
        assert history[0].created_at
        assert chapter.audio.current_audio == result.artifact_id != first_id
        assert chapter.audio.voice_settings.voice == "dramatic-male"

    def test_versions_are_monotonic(self, manager):
        for _ in range(5):
            _generate(manager)
        chapter = manager.load("ch1")
        assert [v.version for v in chapter.audio.version_history] == [1, 2, 3, 4]

    def test_archive_opt_out_never_grows_history(self, manager):
        _generate(manager)
        _generate(manager, archive=False)
        chapter, _ = _generate(manager, archive=False)
        assert chapter.audio.version_history == []

    def test_uses_stored_settings_when_no_override(self, manager, engine, chapters):
        chapter = chapters.get("ch1")
        chapter.audio.voice_settings = VoiceSettings(voice="wise-elder", speed=0.7)
        chapters.save(chapter)

        _generate(manager)

        _, config = engine.calls[0]
        assert config.voice == "en-US-EricNeural"
        assert config.speed == 0.7

    def test_out_of_range_override_rejected_before_provider(self, manager, engine):
        with pytest.raises(ValidationError):
            _generate(manager, {"speed": 3.0})
        assert engine.calls == []

    def test_degraded_generation_still_updates_state(self, store, catalog, chapters):
        gateway = SpeechGateway(FakeEngine(error=RuntimeError("quota superata")), store, catalog)
        manager = VersionManager(gateway, chapters, store)

        chapter, result = _generate(manager)

        assert result.degraded
        assert "quota superata" in result.reason
        assert chapter.audio.current_audio == result.artifact_id
        assert store.exists(result.artifact_id)

    def test_missing_chapter(self, manager):
        with pytest.raises(NotFoundError):
            _generate(manager, chapter_id="ignoto")

    def test_empty_chapter_rejected(self, gateway, store, make_chapter):
        repo = InMemoryChapterRepository([make_chapter(content="   ")])
        manager = VersionManager(gateway, repo, store)
        with pytest.raises(ValidationError):
            _generate(manager)

    def test_only_author_may_generate(self, manager):
        with pytest.raises(AuthorizationError):
            _run(manager.generate_for_chapter("ch1", user_id="mallory"))
        chapter, _ = _run(manager.generate_for_chapter("ch1", user_id="alice"))
        assert chapter.audio.current_audio

    def test_concurrent_generations_are_serialized(self, store, catalog, chapters):
        gateway = SpeechGateway(FakeEngine(delay=0.01), store, catalog)
        manager = VersionManager(gateway, chapters, store)

        async def both():
            await asyncio.gather(
                manager.generate_for_chapter("ch1"),
                manager.generate_for_chapter("ch1"),
                manager.generate_for_chapter("ch1"),
            )

        _run(both())
        chapter = chapters.get("ch1")
        history = chapter.audio.version_history
        assert [v.version for v in history] == [1, 2]
        assert len({v.artifact for v in history} | {chapter.audio.current_audio}) == 3

    def test_locks_are_released_after_use(self, manager):
        for i in range(50):
            with pytest.raises(NotFoundError):
                _run(manager.restore(f"missing-{i}", 1))
        _generate(manager)
        assert manager._locks == {}

    def test_invalid_chapter_id_leaves_no_lock(self, manager):
        with pytest.raises(ValidationError):
            _run(manager.generate_for_chapter("../etc"))
        assert manager._locks == {}

    def test_manager_survives_successive_event_loops(self, store, catalog, chapters):
        gateway = SpeechGateway(FakeEngine(delay=0.01), store, catalog)
        manager = VersionManager(gateway, chapters, store)

        async def two():
            await asyncio.gather(
                manager.generate_for_chapter("ch1"),
                manager.generate_for_chapter("ch1"),
            )

        _run(two())
        _run(two())
        assert [v.version for v in chapters.get("ch1").audio.version_history] == [1, 2, 3]
        assert manager._locks == {}


class TestRestore:
    def test_restore_round_trip(self, manager):
        a, _ = _generate(manager, {"voice": "narrator-warm", "speed": 1.0})
        artifact_a = a.audio.current_audio
        b, _ = _generate(manager, {"voice": "dramatic-male", "speed": 1.2})
        artifact_b = b.audio.current_audio

        chapter = _run(manager.restore("ch1", 1))

        assert chapter.audio.current_audio == artifact_a
        assert chapter.audio.voice_settings.voice == "narrator-warm"
        assert chapter.audio.voice_settings.speed == 1.0
        history = chapter.audio.version_history
        assert len(history) == 2
        assert history[0].artifact == artifact_a
        assert history[1].version == 2
        assert history[1].artifact == artifact_b
        assert history[1].settings["voice"] == "dramatic-male"
        assert history[1].settings["speed"] == 1.2

    def test_restored_audio_can_reappear_under_new_version(self, manager):
        a, _ = _generate(manager)
        artifact_a = a.audio.current_audio
        _generate(manager)
        _run(manager.restore("ch1", 1))

        chapter, _ = _generate(manager)

        artifacts = [v.artifact for v in chapter.audio.version_history]
        assert artifacts.count(artifact_a) == 2
        assert [v.version for v in chapter.audio.version_history] == [1, 2, 3]

    def test_unknown_version(self, manager):
        _generate(manager)
        with pytest.raises(VersionNotFound):
            _run(manager.restore("ch1", 7))

    def test_restore_requires_author(self, manager):
        _generate(manager)
        _generate(manager)
        with pytest.raises(AuthorizationError):
            _run(manager.restore("ch1", 1, user_id="mallory"))


class TestUpdateSettings:
    def test_empty_update_is_a_no_op(self, manager):
        before = manager.load("ch1")
        after = _run(manager.update_settings("ch1", voice_settings={}))
        assert after.audio == before.audio

    def test_partial_voice_settings_merge(self, manager):
        chapter = _run(manager.update_settings("ch1", voice_settings={"speed": 1.4}))
        assert chapter.audio.voice_settings == VoiceSettings(voice="narrator-warm", speed=1.4)

    def test_empty_voice_keeps_stored_voice(self, manager):
        _run(manager.update_settings("ch1", voice_settings={"voice": "wise-elder"}))
        chapter = _run(manager.update_settings("ch1", voice_settings={"voice": "", "speed": None}))
        assert chapter.audio.voice_settings.voice == "wise-elder"
        assert chapter.audio.voice_settings.speed == 1.0

    def test_metadata_fields(self, manager):
        _generate(manager)
        before = manager.load("ch1")

        chapter = _run(manager.update_settings(
            "ch1",
            background_music={"track_id": "horror-dread", "volume": 0.4},
            character_voices=[{"character_name": "Lupo", "voice_id": "dramatic-male"}],
            sound_effects=[{"effect_id": "heartbeat", "timestamp": 12.5}],
        ))

        assert chapter.audio.background_music.track_id == "horror-dread"
        assert chapter.audio.background_music.volume == 0.4
        assert chapter.audio.background_music.fade_in is True
        assert chapter.audio.character_voices[0]["character_name"] == "Lupo"
        assert chapter.audio.sound_effects[0]["effect_id"] == "heartbeat"
        assert chapter.audio.current_audio == before.audio.current_audio
        assert chapter.audio.version_history == before.audio.version_history

    def test_out_of_range_rejected(self, manager):
        with pytest.raises(ValidationError):
            _run(manager.update_settings("ch1", voice_settings={"clarity": 1.5}))


class TestListAndClear:
    def test_list_versions(self, manager):
        assert manager.list_versions("ch1").current is None
        _generate(manager)
        chapter, _ = _generate(manager)

        listing = manager.list_versions("ch1")
        assert listing.current["artifact"] == chapter.audio.current_audio
        assert listing.current["settings"]["voice"] == "narrator-warm"
        assert len(listing.history) == 1

    def test_clear_keeps_history(self, manager, store):
        _generate(manager)
        chapter, _ = _generate(manager)
        current = chapter.audio.current_audio

        cleared = _run(manager.clear_audio("ch1"))

        assert cleared.audio.current_audio is None
        assert len(cleared.audio.version_history) == 1
        assert not store.exists(current)

    def test_clear_without_audio(self, manager):
        with pytest.raises(NotFoundError):
            _run(manager.clear_audio("ch1"))

    def test_clear_keeps_file_referenced_by_history(self, manager, store):
        _generate(manager)
        _generate(manager)
        chapter = _run(manager.restore("ch1", 1))
        restored = chapter.audio.current_audio

        _run(manager.clear_audio("ch1"))

        assert store.exists(restored)

    def test_clear_with_missing_file_still_clears(self, manager, store):
        chapter, _ = _generate(manager)
        store.delete(chapter.audio.current_audio)

        cleared = _run(manager.clear_audio("ch1"))
        assert cleared.audio.current_audio is None


class TestExampleScenario:
    def test_generate_regenerate_restore(self, manager):
        first, _ = _generate(manager, {"voice": "narrator-warm", "speed": 1.0})
        first_id = first.audio.current_audio
        assert first.audio.version_history == []

        second, _ = _generate(manager, {"voice": "dramatic-male", "speed": 1.2}, archive=True)
        assert [(v.version, v.artifact, v.settings["voice"]) for v in second.audio.version_history] == [
            (1, first_id, "narrator-warm"),
        ]
        assert second.audio.voice_settings.voice == "dramatic-male"

        restored = _run(manager.restore("ch1", 1))
        assert restored.audio.current_audio == first_id
        assert restored.audio.voice_settings.voice == "narrator-warm"
        assert len(restored.audio.version_history) == 2
        assert restored.audio.version_history[1].settings["voice"] == "dramatic-male"
