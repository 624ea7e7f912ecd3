"""Unit tests for LocalFileStorage."""

from __future__ import annotations

from pathlib import Path

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.services.storage import LocalFileStorage


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(str(tmp_path / "blobs"))


@pytest.mark.asyncio
async def test_put_then_get(storage: LocalFileStorage) -> None:
    locator = await storage.put(b"%PDF-1.4 body", ".PDF")

    assert locator.startswith("documents/")
    assert locator.endswith(".pdf")
    assert await storage.get(locator) == b"%PDF-1.4 body"


@pytest.mark.asyncio
async def test_locators_are_unique(storage: LocalFileStorage) -> None:
    first = await storage.put(b"a", ".txt")
    second = await storage.put(b"a", ".txt")
    assert first != second


@pytest.mark.asyncio
async def test_delete_removes_file(storage: LocalFileStorage) -> None:
    locator = await storage.put(b"bye", ".txt")
    await storage.delete(locator)

    with pytest.raises(NotFoundError):
        await storage.get(locator)


@pytest.mark.asyncio
async def test_delete_missing_is_noop(storage: LocalFileStorage) -> None:
    await storage.delete("documents/never-written.txt")


@pytest.mark.asyncio
async def test_locator_cannot_escape_root(storage: LocalFileStorage) -> None:
    with pytest.raises(ValidationError):
        await storage.get("../../etc/passwd")
