"""Expose constructed client wrappers."""

from .gemini import GeminiClient
from .files import ImageFile, InMemoryImageFile, LocalImageFile

__all__ = [
    "GeminiClient",
    "ImageFile",
    "InMemoryImageFile",
    "LocalImageFile",
]
