"""Service configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

ENV_PREFIX = "CHAPTERVOICE_"


def parse_tokens(raw: str) -> dict[str, str]:
    """Parse 'token:user,token2:user2' into a token -> user id table."""
    tokens = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        token, sep, user_id = item.partition(":")
        if not sep or not token or not user_id:
            raise ValueError(f"Voce token non valida: {item!r} (atteso 'token:utente')")
        tokens[token] = user_id
    return tokens


@dataclass
class ServiceConfig:
    """Settings for the web service and the CLI."""
    data_dir: str = "./data"
    engine: str = "edge"
    public_base_url: Optional[str] = None
    provider_timeout: float = 60.0
    min_audio_bytes: int = 100
    placeholder_seconds: float = 2.0
    tokens: dict[str, str] = field(default_factory=dict)

    @property
    def audio_dir(self) -> Path:
        return Path(self.data_dir) / "audio"

    @property
    def chapters_dir(self) -> Path:
        return Path(self.data_dir) / "chapters"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ServiceConfig":
        """Build a config from CHAPTERVOICE_* environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        config = cls()
        if get("DATA_DIR"):
            config.data_dir = get("DATA_DIR")
        if get("ENGINE"):
            config.engine = get("ENGINE")
        if get("PUBLIC_BASE_URL"):
            config.public_base_url = get("PUBLIC_BASE_URL").rstrip("/")
        if get("PROVIDER_TIMEOUT"):
            config.provider_timeout = float(get("PROVIDER_TIMEOUT"))
        if get("MIN_AUDIO_BYTES"):
            config.min_audio_bytes = int(get("MIN_AUDIO_BYTES"))
        if get("PLACEHOLDER_SECONDS"):
            config.placeholder_seconds = float(get("PLACEHOLDER_SECONDS"))
        if get("TOKENS"):
            config.tokens = parse_tokens(get("TOKENS"))
        return config
