"""Artifact store - generated audio files on the local filesystem."""

import logging
import secrets
import time
from pathlib import Path
from typing import BinaryIO

from chaptervoice.errors import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Stores audio artifacts under a single directory, addressed by file name.

    Names are time-based plus a random suffix, so concurrent writers never
    need a lock.
    """

    def __init__(self, root: str | Path, suffix: str = ".mp3"):
        self.root = Path(root).resolve()
        self.suffix = suffix

    def ensure_ready(self) -> None:
        """Create the storage directory if needed."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Impossibile creare la directory audio {self.root}: {e}") from e

    def new_name(self, prefix: str = "tts") -> str:
        return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}{self.suffix}"

    def path_for(self, artifact_id: str) -> Path:
        """Map an artifact id to its path, rejecting anything but a bare file name."""
        if not artifact_id or Path(artifact_id).name != artifact_id or artifact_id.startswith("."):
            raise ValidationError(f"Nome file audio non valido: {artifact_id!r}")
        return self.root / artifact_id

    def write(self, data: bytes, prefix: str = "tts") -> str:
        """Persist audio bytes and return the new artifact id."""
        self.ensure_ready()
        artifact_id = self.new_name(prefix)
        path = self.root / artifact_id
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.exception("Scrittura audio fallita: %s", path)
            raise StorageError(f"Impossibile salvare {artifact_id}: {e}") from e
        logger.debug("Salvato %s (%d byte)", artifact_id, len(data))
        return artifact_id

    def exists(self, artifact_id: str) -> bool:
        return self.path_for(artifact_id).is_file()

    def open(self, artifact_id: str) -> BinaryIO:
        path = self.path_for(artifact_id)
        try:
            return path.open("rb")
        except FileNotFoundError as e:
            raise NotFoundError(f"File audio non trovato: {artifact_id}") from e
        except OSError as e:
            raise StorageError(f"Impossibile leggere {artifact_id}: {e}") from e

    def read(self, artifact_id: str) -> bytes:
        with self.open(artifact_id) as f:
            return f.read()

    def delete(self, artifact_id: str) -> bool:
        """Remove an artifact. A missing file is logged, not raised."""
        path = self.path_for(artifact_id)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("File audio già assente: %s", artifact_id)
            return False
        except OSError as e:
            logger.error("Errore eliminando il file audio %s: %s", artifact_id, e)
            return False
        return True
