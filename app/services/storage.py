"""Local-disk object storage for uploaded documents."""
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from app.core.errors import NotFoundError, ValidationError


class LocalFileStorage:
    """Stores blobs under ``root`` and hands back opaque relative locators."""

    PREFIX = "documents"

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        (self.root / self.PREFIX).mkdir(parents=True, exist_ok=True)

    def _path_for(self, locator: str) -> Path:
        path = (self.root / locator).resolve()
        if self.root not in path.parents:
            raise ValidationError(f"Invalid storage locator: {locator}")
        return path

    async def put(self, data: bytes, extension: str = "") -> str:
        """Write ``data`` and return its locator, e.g. ``documents/<uuid>.pdf``."""
        locator = f"{self.PREFIX}/{uuid.uuid4()}{extension.lower()}"
        async with aiofiles.open(self._path_for(locator), "wb") as buffer:
            await buffer.write(data)
        return locator

    async def get(self, locator: str) -> bytes:
        path = self._path_for(locator)
        if not await aiofiles.os.path.exists(path):
            raise NotFoundError("File not found on server")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, locator: str) -> None:
        path = self._path_for(locator)
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
