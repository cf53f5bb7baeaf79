"""Chapter persistence.

Chapters are owned by the publishing platform; this service only loads a
chapter, changes its audio fields and saves it back.
"""

import copy
import json
import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from chaptervoice.catalog import DEFAULT_VOICE
from chaptervoice.errors import StorageError, ValidationError
from chaptervoice.models import Chapter

logger = logging.getLogger(__name__)

CHAPTER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def check_chapter_id(chapter_id: str) -> None:
    if not CHAPTER_ID_RE.match(chapter_id or ""):
        raise ValidationError(f"Id capitolo non valido: {chapter_id!r}")


class ChapterRepository(ABC):
    """Load and save chapter documents."""

    @abstractmethod
    def get(self, chapter_id: str) -> Optional[Chapter]:
        ...

    @abstractmethod
    def save(self, chapter: Chapter) -> None:
        ...


class InMemoryChapterRepository(ChapterRepository):
    """Thread-safe in-memory chapter store. Callers get copies."""

    def __init__(self, chapters: Optional[list[Chapter]] = None):
        self._chapters: dict[str, Chapter] = {}
        self._lock = threading.Lock()
        for chapter in chapters or []:
            self.save(chapter)

    def get(self, chapter_id: str) -> Optional[Chapter]:
        check_chapter_id(chapter_id)
        with self._lock:
            chapter = self._chapters.get(chapter_id)
            return copy.deepcopy(chapter) if chapter else None

    def save(self, chapter: Chapter) -> None:
        check_chapter_id(chapter.id)
        with self._lock:
            self._chapters[chapter.id] = copy.deepcopy(chapter)


class JsonChapterRepository(ChapterRepository):
    """One JSON document per chapter under a directory."""

    def __init__(self, root: str | Path, default_voice: str = DEFAULT_VOICE):
        self.root = Path(root).resolve()
        self.default_voice = default_voice
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, chapter_id: str) -> Path:
        check_chapter_id(chapter_id)
        return self.root / f"{chapter_id}.json"

    def get(self, chapter_id: str) -> Optional[Chapter]:
        path = self._path(chapter_id)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        return Chapter.from_dict(data, self.default_voice)

    def save(self, chapter: Chapter) -> None:
        path = self._path(chapter.id)
        payload = json.dumps(chapter.to_dict(), ensure_ascii=False, indent=2)
        # Write to a sibling temp file, then swap it in
        fd, tmp_name = tempfile.mkstemp(prefix=f".{chapter.id}_", suffix=".json", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Impossibile salvare il capitolo {chapter.id}: {e}") from e
        logger.debug("Capitolo salvato: %s", path.name)
