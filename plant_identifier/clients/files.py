"""File handles the analysis workflow can read images from."""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional, Protocol


class ImageFile(Protocol):
    """Minimal surface shared with ``fastapi.UploadFile``."""

    filename: Optional[str]
    content_type: Optional[str]

    @property
    def size(self) -> Optional[int]: ...

    async def read(self) -> bytes: ...


class LocalImageFile:
    """An image on the local filesystem, read off the event loop."""

    def __init__(self, path: str | Path, content_type: Optional[str] = None) -> None:
        self.path = Path(path)
        self.filename: Optional[str] = self.path.name
        self.content_type: Optional[str] = (
            content_type or mimetypes.guess_type(self.path.name)[0]
        )

    @property
    def size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            # Unknown size; the read itself will surface the problem.
            return None

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


class InMemoryImageFile:
    """An already-buffered upload that outlives its HTTP request."""

    def __init__(
        self,
        data: bytes,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self._data = data
        self.filename = filename
        self.content_type = content_type

    @property
    def size(self) -> Optional[int]:
        return len(self._data)

    async def read(self) -> bytes:
        return self._data


__all__ = ["ImageFile", "InMemoryImageFile", "LocalImageFile"]
