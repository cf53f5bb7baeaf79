"""Narrated audio for chapters, with version history and graceful fallback."""

__version__ = "0.1.0"
