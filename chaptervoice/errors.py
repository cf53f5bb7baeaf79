"""Exceptions raised by the chapter audio service."""


class ChapterVoiceError(Exception):
    """Base class for all service errors."""


class ValidationError(ChapterVoiceError, ValueError):
    """Malformed input: bad text length, out-of-range parameter, bad id."""


class AuthorizationError(ChapterVoiceError):
    """The caller is not allowed to modify the chapter."""


class NotFoundError(ChapterVoiceError):
    """A chapter, artifact or version does not exist."""


class VersionNotFound(NotFoundError):
    def __init__(self, chapter_id: str, version: int):
        super().__init__(f"Versione {version} non trovata per il capitolo {chapter_id}")
        self.chapter_id = chapter_id
        self.version = version


class ProviderError(ChapterVoiceError, RuntimeError):
    """The external synthesis provider failed.

    Never escapes the speech gateway: it is turned into a degraded result.
    """


class StorageError(ChapterVoiceError, RuntimeError):
    """An artifact could not be written or read."""
