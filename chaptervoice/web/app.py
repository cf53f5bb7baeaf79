"""FastAPI web interface for chapter audio."""

import logging
import math
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from chaptervoice import __version__
from chaptervoice.audio.audio_utils import check_ffmpeg
from chaptervoice.catalog import DEFAULT_VOICE, Catalog, default_catalog
from chaptervoice.chapters import ChapterRepository, JsonChapterRepository
from chaptervoice.config import ServiceConfig
from chaptervoice.errors import (
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from chaptervoice.gateway import SpeechGateway
from chaptervoice.models import MAX_TEXT_CHARS, Chapter, SynthesisResult, VoiceSettings
from chaptervoice.storage import ArtifactStore
from chaptervoice.tts import get_engine, import_engines
from chaptervoice.tts.base import TTSEngine
from chaptervoice.versions import VersionManager
from chaptervoice.web.auth import TokenResolver, current_user, static_token_resolver

logger = logging.getLogger(__name__)

AUDIO_ROUTE = "/api/tts/audio"

# Listening pace used for the ad-hoc duration estimate
CHARS_PER_MINUTE = 180


# --- Pydantic models ---

class GenerateRequest(BaseModel):
    text: str = Field(min_length=1, max_length=MAX_TEXT_CHARS)
    voice: str = DEFAULT_VOICE
    speed: float = Field(1.0, ge=0.5, le=2.0)
    pitch: float = Field(1.0, ge=0.5, le=2.0)
    stability: float = Field(0.5, ge=0.0, le=1.0)
    clarity: float = Field(0.75, ge=0.0, le=1.0)


class VoiceSettingsPatch(BaseModel):
    voice: Optional[str] = None
    speed: Optional[float] = Field(None, ge=0.5, le=2.0)
    pitch: Optional[float] = Field(None, ge=0.5, le=2.0)
    stability: Optional[float] = Field(None, ge=0.0, le=1.0)
    clarity: Optional[float] = Field(None, ge=0.0, le=1.0)


class ChapterGenerateRequest(VoiceSettingsPatch):
    save_version: bool = True


class BackgroundMusicPatch(BaseModel):
    track_id: Optional[str] = None
    track_name: Optional[str] = None
    volume: Optional[float] = Field(None, ge=0.0, le=1.0)
    fade_in: Optional[bool] = None
    fade_out: Optional[bool] = None
    auto_duck: Optional[bool] = None
    duck_level: Optional[float] = Field(None, ge=0.0, le=1.0)


class CharacterVoice(BaseModel):
    character_name: str
    voice_id: str
    voice_name: Optional[str] = None
    color: str = "#6366f1"


class SoundEffectCue(BaseModel):
    effect_id: str
    effect_name: Optional[str] = None
    timestamp: float = 0.0
    volume: float = Field(0.5, ge=0.0, le=1.0)


class SettingsUpdateRequest(BaseModel):
    voice_settings: Optional[VoiceSettingsPatch] = None
    background_music: Optional[BackgroundMusicPatch] = None
    character_voices: Optional[list[CharacterVoice]] = None
    sound_effects: Optional[list[SoundEffectCue]] = None


# --- Helpers ---

def _base_url(request: Request, config: ServiceConfig) -> str:
    if config.public_base_url:
        return config.public_base_url
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def _message(result: SynthesisResult, ok: str) -> str:
    return "Generated with fallback due to error" if result.degraded else ok


def _history(chapter: Chapter) -> list[dict]:
    return [asdict(v) for v in chapter.audio.version_history]


# --- App factory ---

def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    engine: Optional[TTSEngine] = None,
    catalog: Optional[Catalog] = None,
    chapters: Optional[ChapterRepository] = None,
    resolve_token: Optional[TokenResolver] = None,
) -> FastAPI:
    config = config or ServiceConfig.from_env()
    catalog = catalog or default_catalog()

    if engine is None:
        import_engines()
        engine = get_engine(config.engine)
    engine.initialize()
    check_ffmpeg()

    store = ArtifactStore(config.audio_dir)
    store.ensure_ready()
    if chapters is None:
        chapters = JsonChapterRepository(config.chapters_dir, default_voice=catalog.default_voice)

    gateway = SpeechGateway(
        engine,
        store,
        catalog,
        timeout=config.provider_timeout,
        min_audio_bytes=config.min_audio_bytes,
        placeholder_seconds=config.placeholder_seconds,
    )
    versions = VersionManager(gateway, chapters, store)

    app = FastAPI(title="chaptervoice", version=__version__)
    app.state.resolve_token = resolve_token or static_token_resolver(config.tokens)

    def audio_url(request: Request, artifact_id: str) -> str:
        return f"{_base_url(request, config)}{AUDIO_ROUTE}/{artifact_id}"

    # --- Error mapping ---

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(AuthorizationError)
    async def authorization_error(request: Request, exc: AuthorizationError):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_error(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.error("Errore di archiviazione su %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Errore del server durante il salvataggio audio"})

    # --- Routes ---

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "engine": engine.name, "version": __version__}

    @app.post("/api/tts/generate")
    async def generate(req: GenerateRequest, request: Request, user_id: str = Depends(current_user)):
        settings = VoiceSettings(
            voice=req.voice,
            speed=req.speed,
            pitch=req.pitch,
            stability=req.stability,
            clarity=req.clarity,
        )
        result = await gateway.synthesize(req.text, settings)
        logger.info("Audio ad hoc per %s: %s", user_id, result.artifact_id)

        return {
            "message": _message(result, "Audio generated successfully"),
            "audio_file": result.artifact_id,
            "audio_url": audio_url(request, result.artifact_id),
            "error": result.reason,
            "settings": {
                **settings.to_dict(),
                "estimated_duration": math.ceil(len(req.text) / CHARS_PER_MINUTE) * 60,
            },
        }

    @app.post("/api/tts/chapter/{chapter_id}")
    async def generate_chapter(
        chapter_id: str,
        req: ChapterGenerateRequest,
        request: Request,
        user_id: str = Depends(current_user),
    ):
        overrides = req.model_dump(exclude_none=True, exclude={"save_version"})
        chapter, result = await versions.generate_for_chapter(
            chapter_id, overrides, archive=req.save_version, user_id=user_id,
        )
        return {
            "message": _message(result, "Chapter audio generated successfully"),
            "error": result.reason,
            "chapter": {
                "id": chapter.id,
                "title": chapter.title,
                "audio_file": result.artifact_id,
                "audio_url": audio_url(request, result.artifact_id),
                "voice_settings": chapter.audio.voice_settings.to_dict(),
                "version_history": _history(chapter),
            },
        }

    @app.put("/api/tts/chapter/{chapter_id}/settings")
    async def update_settings(
        chapter_id: str,
        req: SettingsUpdateRequest,
        user_id: str = Depends(current_user),
    ):
        chapter = await versions.update_settings(
            chapter_id,
            voice_settings=req.voice_settings.model_dump(exclude_none=True) if req.voice_settings else None,
            background_music=req.background_music.model_dump(exclude_none=True) if req.background_music else None,
            character_voices=[c.model_dump() for c in req.character_voices] if req.character_voices is not None else None,
            sound_effects=[s.model_dump() for s in req.sound_effects] if req.sound_effects is not None else None,
            user_id=user_id,
        )
        state = chapter.audio
        return {
            "message": "Audio settings updated",
            "chapter": {
                "id": chapter.id,
                "voice_settings": state.voice_settings.to_dict(),
                "background_music": asdict(state.background_music),
                "character_voices": state.character_voices,
                "sound_effects": state.sound_effects,
            },
        }

    @app.get("/api/tts/chapter/{chapter_id}/versions")
    async def list_versions(chapter_id: str, request: Request, user_id: str = Depends(current_user)):
        listing = versions.list_versions(chapter_id)
        current = None
        if listing.current:
            current = {
                "audio_file": listing.current["artifact"],
                "audio_url": audio_url(request, listing.current["artifact"]),
                "settings": listing.current["settings"],
            }
        return {
            "current_audio": current,
            "version_history": [asdict(v) for v in listing.history],
        }

    @app.post("/api/tts/chapter/{chapter_id}/restore/{version}")
    async def restore_version(
        chapter_id: str,
        version: int,
        request: Request,
        user_id: str = Depends(current_user),
    ):
        if version < 1:
            raise HTTPException(400, detail="Il numero di versione deve essere positivo")
        chapter = await versions.restore(chapter_id, version, user_id=user_id)
        return {
            "message": "Audio version restored",
            "chapter": {
                "id": chapter.id,
                "audio_file": chapter.audio.current_audio,
                "audio_url": audio_url(request, chapter.audio.current_audio),
                "voice_settings": chapter.audio.voice_settings.to_dict(),
            },
        }

    @app.delete("/api/tts/chapter/{chapter_id}/audio")
    async def delete_audio(chapter_id: str, user_id: str = Depends(current_user)):
        await versions.clear_audio(chapter_id, user_id=user_id)
        return {"message": "Audio file deleted successfully"}

    @app.get("/api/tts/voices")
    async def list_voices(user_id: str = Depends(current_user)):
        return {
            "voices": [v.to_dict() for v in catalog.list_voices()],
            "grouped_voices": {
                group: [v.to_dict() for v in voices]
                for group, voices in catalog.grouped_voices().items()
            },
            "default_voice": catalog.default_voice,
        }

    @app.get("/api/tts/background-music")
    async def list_music(user_id: str = Depends(current_user)):
        return {
            "background_music": [t.to_dict() for t in catalog.list_music()],
            "grouped_music": {
                group: [t.to_dict() for t in tracks]
                for group, tracks in catalog.grouped_music().items()
            },
            "default_music": catalog.default_music,
        }

    @app.get("/api/tts/sound-effects")
    async def list_sound_effects(user_id: str = Depends(current_user)):
        return {
            "sound_effects": [e.to_dict() for e in catalog.list_sound_effects()],
            "grouped_effects": {
                category: [e.to_dict() for e in effects]
                for category, effects in catalog.grouped_sound_effects().items()
            },
        }

    @app.get(AUDIO_ROUTE + "/{filename}")
    async def fetch_audio(filename: str):
        path = store.path_for(filename)
        if not path.is_file():
            raise HTTPException(404, detail="File audio non trovato")
        return FileResponse(str(path), media_type="audio/mpeg", filename=filename)

    return app


# --- CLI entry point ---

def main():
    """Run the chaptervoice web server."""
    import argparse
    import uvicorn

    config = ServiceConfig.from_env()

    parser = argparse.ArgumentParser(description="chaptervoice web interface")
    parser.add_argument("--host", default="127.0.0.1", help="Host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--data-dir", default=config.data_dir, help="Directory per audio e capitoli")
    parser.add_argument("--engine", default=config.engine, help="Motore TTS (default: edge)")
    parser.add_argument("--public-base-url", default=config.public_base_url,
                        help="URL pubblico usato nei link audio")
    parser.add_argument("--verbose", action="store_true", help="Abilita log dettagliati")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    config.data_dir = args.data_dir
    config.engine = args.engine
    config.public_base_url = args.public_base_url
    if not config.tokens:
        logger.warning("Nessun token configurato (CHAPTERVOICE_TOKENS): tutte le richieste autenticate saranno rifiutate")

    app = create_app(config)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
