"""Static catalog of narration voices, background music and sound effects."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "narrator-warm"
DEFAULT_MUSIC = "none"


@dataclass(frozen=True)
class VoiceProfile:
    """A selectable narration voice, backed by a provider voice."""
    id: str
    name: str
    provider_voice: str
    gender: str
    tone: str
    accent: str

    @property
    def description(self) -> str:
        return f"{self.tone} {self.accent} {self.gender} voice"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender,
            "tone": self.tone,
            "accent": self.accent,
            "description": self.description,
            "provider_voice": self.provider_voice,
        }


@dataclass(frozen=True)
class MusicTrack:
    id: str
    name: str
    mood: str
    description: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "mood": self.mood, "description": self.description}


@dataclass(frozen=True)
class SoundEffect:
    id: str
    name: str
    category: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "category": self.category}


VOICES = (
    VoiceProfile("narrator-warm", "Rachel", "en-US-AriaNeural", "female", "warm", "American"),
    VoiceProfile("narrator-confident", "Domi", "en-US-JennyNeural", "female", "confident", "American"),
    VoiceProfile("narrator-soft", "Bella", "en-US-AnaNeural", "female", "soft", "American"),
    VoiceProfile("storyteller-deep", "Josh", "en-US-GuyNeural", "male", "narrative", "American"),
    VoiceProfile("dramatic-male", "Adam", "en-US-ChristopherNeural", "male", "dramatic", "American"),
    VoiceProfile("calm-female", "Freya", "en-US-MichelleNeural", "female", "calm", "American"),
    VoiceProfile("suspense-male", "Daniel", "en-GB-RyanNeural", "male", "suspenseful", "British"),
    VoiceProfile("young-narrator", "Elli", "en-US-EmmaNeural", "female", "youthful", "American"),
    VoiceProfile("wise-elder", "Arnold", "en-US-EricNeural", "male", "wise", "American"),
)

MUSIC_TRACKS = (
    MusicTrack("none", "No Music", "none", "Pure voice narration"),
    MusicTrack("ambient-calm", "Peaceful Ambient", "calm", "Soft, peaceful ambient sounds for reflective moments"),
    MusicTrack("suspense-tension", "Dark Suspense", "suspense", "Mysterious tension-building for thrillers"),
    MusicTrack("dramatic-cinematic", "Epic Dramatic", "dramatic", "Emotional cinematic swells for climactic scenes"),
    MusicTrack("romantic-gentle", "Tender Romance", "romance", "Gentle melodies for love stories"),
    MusicTrack("adventure-epic", "Adventure Quest", "adventure", "Upbeat heroic themes for action"),
    MusicTrack("fantasy-magical", "Enchanted Realm", "fantasy", "Magical ethereal sounds for fantasy worlds"),
    MusicTrack("horror-dread", "Creeping Dread", "horror", "Unsettling ambience for horror stories"),
    MusicTrack("mystery-intrigue", "Shadowed Mystery", "mystery", "Intriguing tones for detective stories"),
    MusicTrack("scifi-ambient", "Cosmic Drift", "sci-fi", "Futuristic electronic ambience"),
    MusicTrack("melancholy-piano", "Tearful Piano", "sad", "Emotional piano for heartfelt moments"),
    MusicTrack("uplifting-hope", "Rising Hope", "inspirational", "Uplifting tones for triumphant moments"),
)

SOUND_EFFECTS = (
    SoundEffect("rain-soft", "Soft Rain", "weather"),
    SoundEffect("thunder-distant", "Distant Thunder", "weather"),
    SoundEffect("wind-howling", "Howling Wind", "weather"),
    SoundEffect("door-creak", "Creaky Door", "ambient"),
    SoundEffect("footsteps-wood", "Wooden Footsteps", "ambient"),
    SoundEffect("heartbeat", "Heartbeat", "dramatic"),
    SoundEffect("clock-ticking", "Clock Ticking", "ambient"),
    SoundEffect("fire-crackling", "Crackling Fire", "ambient"),
    SoundEffect("ocean-waves", "Ocean Waves", "nature"),
    SoundEffect("birds-morning", "Morning Birds", "nature"),
    SoundEffect("crowd-murmur", "Crowd Murmur", "ambient"),
    SoundEffect("glass-shatter", "Shattering Glass", "dramatic"),
)

# Voice groups match on keywords in the voice id
VOICE_GROUPS = {
    "narrators": ("narrator",),
    "storytellers": ("storyteller", "wise"),
    "dramatic": ("dramatic", "suspense"),
    "special": ("calm", "young"),
}

MUSIC_GROUPS = {
    "none": ("none",),
    "atmospheric": ("calm", "ambient", "sad"),
    "tension": ("suspense", "horror", "mystery"),
    "emotional": ("dramatic", "romance", "inspirational"),
    "adventure": ("adventure", "fantasy", "sci-fi"),
}

EFFECT_CATEGORIES = ("weather", "ambient", "nature", "dramatic")


@dataclass(frozen=True)
class Catalog:
    """Immutable lookup tables, built once at startup and shared read-only."""
    voices: tuple[VoiceProfile, ...]
    music: tuple[MusicTrack, ...]
    sound_effects: tuple[SoundEffect, ...]
    default_voice: str = DEFAULT_VOICE
    default_music: str = DEFAULT_MUSIC

    def list_voices(self) -> list[VoiceProfile]:
        return list(self.voices)

    def list_music(self) -> list[MusicTrack]:
        return list(self.music)

    def list_sound_effects(self) -> list[SoundEffect]:
        return list(self.sound_effects)

    def get_voice(self, voice_id: str) -> VoiceProfile | None:
        for voice in self.voices:
            if voice.id == voice_id:
                return voice
        return None

    def resolve_voice(self, voice_id: str | None) -> VoiceProfile:
        """Return the requested voice, or the default voice for unknown ids."""
        voice = self.get_voice(voice_id) if voice_id else None
        if voice is None:
            if voice_id:
                logger.warning("Voce sconosciuta '%s', uso '%s'", voice_id, self.default_voice)
            voice = self.get_voice(self.default_voice)
        if voice is None:
            raise LookupError(f"La voce predefinita '{self.default_voice}' non è nel catalogo")
        return voice

    def has_music(self, track_id: str) -> bool:
        return any(t.id == track_id for t in self.music)

    def grouped_voices(self) -> dict[str, list[VoiceProfile]]:
        return {
            group: [v for v in self.voices if any(k in v.id for k in keywords)]
            for group, keywords in VOICE_GROUPS.items()
        }

    def grouped_music(self) -> dict[str, list[MusicTrack]]:
        return {
            group: [t for t in self.music if t.mood in moods]
            for group, moods in MUSIC_GROUPS.items()
        }

    def grouped_sound_effects(self) -> dict[str, list[SoundEffect]]:
        return {
            category: [e for e in self.sound_effects if e.category == category]
            for category in EFFECT_CATEGORIES
        }


def default_catalog() -> Catalog:
    """Build the catalog shipped with the service."""
    return Catalog(voices=VOICES, music=MUSIC_TRACKS, sound_effects=SOUND_EFFECTS)
