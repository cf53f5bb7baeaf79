"""Data models for chapter audio generation."""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Optional

from chaptervoice.errors import ValidationError

SPEED_RANGE = (0.5, 2.0)
PITCH_RANGE = (0.5, 2.0)
UNIT_RANGE = (0.0, 1.0)
MAX_TEXT_CHARS = 10000

# Provider defaults, used for any field neither the caller nor the chapter sets
DEFAULT_SPEED = 1.0
DEFAULT_PITCH = 1.0
DEFAULT_STABILITY = 0.5
DEFAULT_CLARITY = 0.75

_RANGES = {
    "speed": SPEED_RANGE,
    "pitch": PITCH_RANGE,
    "stability": UNIT_RANGE,
    "clarity": UNIT_RANGE,
}


def check_text(text: str) -> None:
    """Raise ValidationError unless text has 1..MAX_TEXT_CHARS characters."""
    if not text or not text.strip():
        raise ValidationError("Il testo non può essere vuoto")
    if len(text) > MAX_TEXT_CHARS:
        raise ValidationError(f"Il testo supera {MAX_TEXT_CHARS} caratteri ({len(text)})")


def check_range(name: str, value: Optional[float]) -> None:
    """Raise ValidationError if a voice-shaping parameter is out of range."""
    if value is None or name not in _RANGES:
        return
    low, high = _RANGES[name]
    if not low <= value <= high:
        raise ValidationError(f"{name} deve essere compreso tra {low} e {high} (ricevuto {value})")


@dataclass
class VoiceSettings:
    """Voice selection plus shaping parameters; always fully populated."""
    voice: str
    speed: float = DEFAULT_SPEED
    pitch: float = DEFAULT_PITCH
    stability: float = DEFAULT_STABILITY
    clarity: float = DEFAULT_CLARITY

    def validate(self) -> None:
        if not self.voice:
            raise ValidationError("voice non può essere vuoto")
        for name in _RANGES:
            check_range(name, getattr(self, name))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, default_voice: str) -> "VoiceSettings":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v not in (None, "")}
        values.setdefault("voice", default_voice)
        return cls(**values)


@dataclass
class BackgroundMusic:
    """Background track metadata. Stored only, never mixed into the audio."""
    track_id: str = "none"
    track_name: str = "No Music"
    volume: float = 0.15
    fade_in: bool = True
    fade_out: bool = True
    auto_duck: bool = True
    duck_level: float = 0.3

    @classmethod
    def from_dict(cls, data: dict) -> "BackgroundMusic":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class AudioVersion:
    """A superseded rendition of a chapter's audio."""
    artifact: str
    version: int
    settings: dict
    created_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "AudioVersion":
        return cls(
            artifact=data["artifact"],
            version=int(data["version"]),
            settings=dict(data.get("settings") or {}),
            created_at=data.get("created_at", ""),
        )


@dataclass
class ChapterAudioState:
    """Audio-related fields of a chapter document."""
    voice_settings: VoiceSettings
    current_audio: Optional[str] = None
    background_music: BackgroundMusic = field(default_factory=BackgroundMusic)
    character_voices: list[dict] = field(default_factory=list)
    sound_effects: list[dict] = field(default_factory=list)
    version_history: list[AudioVersion] = field(default_factory=list)

    def settings_snapshot(self) -> dict:
        """Settings recorded alongside an archived rendition."""
        snapshot = self.voice_settings.to_dict()
        snapshot["background_music"] = self.background_music.track_id
        return snapshot

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, default_voice: str) -> "ChapterAudioState":
        return cls(
            voice_settings=VoiceSettings.from_dict(data.get("voice_settings") or {}, default_voice),
            current_audio=data.get("current_audio") or None,
            background_music=BackgroundMusic.from_dict(data.get("background_music") or {}),
            character_voices=list(data.get("character_voices") or []),
            sound_effects=list(data.get("sound_effects") or []),
            version_history=[AudioVersion.from_dict(v) for v in data.get("version_history") or []],
        )


@dataclass
class Chapter:
    """The slice of a chapter document this service reads and writes."""
    id: str
    title: str
    content: str
    author_id: str
    audio: ChapterAudioState

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, default_voice: str) -> "Chapter":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            author_id=data["author_id"],
            audio=ChapterAudioState.from_dict(data.get("audio") or {}, default_voice),
        )


@dataclass
class TTSConfig:
    """Parameters handed to a TTS engine for one synthesis call."""
    voice: str
    speed: float = DEFAULT_SPEED
    pitch: float = DEFAULT_PITCH
    stability: float = DEFAULT_STABILITY
    clarity: float = DEFAULT_CLARITY


@dataclass
class SynthesisResult:
    """Outcome of a synthesis call.

    `artifact_id` is always a playable artifact. When the provider failed,
    `degraded` is True and `reason` holds the diagnostic.
    """
    artifact_id: str
    voice: str
    degraded: bool = False
    reason: Optional[str] = None


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
